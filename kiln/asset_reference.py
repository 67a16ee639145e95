"""Asset references for Kiln.

This module provides ``AssetReference``, a deferred handle to an asset
registered in an ``AssetManager``. Filters added to an unresolved reference
are queued and handed to the real asset, in order, the first time an
operation needs them.

Key classes:
- AssetReference: Proxy implementing the whole asset contract.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .filters import FilterCollection
    from .manager import AssetManager
    from .protocols import Asset, Filter


@dataclass(frozen=True)
class _Unresolved:
    pass


@dataclass(frozen=True)
class _Resolved:
    asset: Asset


_UNRESOLVED = _Unresolved()


class AssetReference:
    """A reference to a named asset in an asset manager.

    The lookup happens on first use and its result is cached. A reference
    produced by ``clone()`` resolves to its own copy of the asset, so the
    two references never share mutable state.

    Attributes:
        manager: Manager the name is looked up in.
        name: Name of the referenced asset.
    """

    def __init__(self, manager: AssetManager, name: str):
        self.manager = manager
        self.name = name
        self._pending: list[Filter] = []
        self._cloned = False
        self._state: _Unresolved | _Resolved = _UNRESOLVED

    @property
    def resolved(self) -> bool:
        return isinstance(self._state, _Resolved)

    def clone(self) -> AssetReference:
        """Duplicate the reference.

        An unresolved duplicate resolves to its own copy on first use; a
        resolved one copies the already-resolved asset right away.
        """
        duplicate = AssetReference(self.manager, self.name)
        duplicate._pending = list(self._pending)
        duplicate._cloned = True
        if isinstance(self._state, _Resolved):
            duplicate._state = _Resolved(self._state.asset.clone())
        return duplicate

    def _resolve(self) -> Asset:
        if isinstance(self._state, _Resolved):
            return self._state.asset

        asset = self.manager.get(self.name)
        if self._cloned:
            asset = asset.clone()
        self._state = _Resolved(asset)
        return asset

    def _flush_filters(self) -> Asset:
        asset = self._resolve()
        while self._pending:
            asset.ensure_filter(self._pending.pop(0))
        return asset

    # Filters

    def ensure_filter(self, filter: Filter) -> None:
        self._pending.append(filter)

    def get_filters(self) -> FilterCollection:
        return self._flush_filters().get_filters()

    def clear_filters(self) -> None:
        self._pending = []
        self._resolve().clear_filters()

    # Lifecycle

    def load(self, additional_filter: Filter | None = None) -> None:
        self._flush_filters().load(additional_filter)

    def dump(self, additional_filter: Filter | None = None) -> str:
        return self._flush_filters().dump(additional_filter)

    def get_last_modified(self) -> float | None:
        return self._resolve().get_last_modified()

    # Content and locations

    @property
    def content(self) -> str | None:
        return self._resolve().content

    def set_content(self, content: str) -> None:
        self._resolve().set_content(content)

    @property
    def source_root(self) -> str | None:
        return self._resolve().source_root

    @property
    def source_path(self) -> str | None:
        return self._resolve().source_path

    @property
    def source_directory(self) -> str | None:
        return self._resolve().source_directory

    @property
    def target_path(self) -> str | None:
        return self._resolve().target_path

    def set_target_path(self, target_path: str) -> None:
        self._resolve().set_target_path(target_path)

    # Variables

    @property
    def vars(self) -> dict[str, Any]:
        return self._resolve().vars

    @property
    def values(self) -> dict[str, Any]:
        return self._resolve().values

    def set_values(self, values: dict[str, Any]) -> None:
        self._resolve().set_values(values)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        state = "resolved" if self.resolved else "unresolved"
        return f"AssetReference({self.name!r}, {state})"
