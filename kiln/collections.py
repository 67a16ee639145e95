"""Asset collections for Kiln.

Key classes:
- AssetCollection: An asset made of other assets, concatenated in order.
- GlobAsset: A collection whose members are found by glob patterns on
  first use.
"""

from __future__ import annotations

import glob
import logging
import os
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any

from . import var_utils
from .assets import BaseAsset, FileAsset
from .filters import BaseFilter, FilterCollection
from .utils import is_within

if TYPE_CHECKING:
    from .protocols import Asset, Filter

logger = logging.getLogger(__name__)


class AssetCollection(BaseAsset):
    """An asset composed of other assets.

    Loading runs the collection's load filters on a copy of each member, so
    that filters such as CssImportFilter still see where the member came
    from, and joins the dumped copies with newlines in insertion order. The
    collection's dump filters run over that concatenation. Members are not
    modified, and a failing member fails the whole operation.
    """

    def __init__(
        self,
        assets: Iterable[Asset] = (),
        filters: Iterable[Filter] = (),
        source_root: str | None = None,
        vars: dict[str, Any] | None = None,
    ):
        super().__init__(filters, source_root, None, vars)
        self._assets: list[Asset] = []
        for asset in assets:
            self.add(asset)

    def clone(self) -> AssetCollection:
        duplicate = super().clone()
        duplicate._assets = list(self._assets)
        return duplicate

    def add(self, asset: Asset) -> None:
        self._assets.append(asset)
        self._loaded = False

    def remove(self, leaf: Asset, graceful: bool = False) -> bool:
        """Remove a member by identity, searching nested collections too.

        Args:
            leaf: The asset to remove.
            graceful: Return False instead of raising when it is not found.

        Returns:
            True if the asset was removed.

        Raises:
            ValueError: If the asset is not a member and ``graceful`` is False.
        """
        for index, asset in enumerate(self._assets):
            if asset is leaf:
                del self._assets[index]
                self._loaded = False
                return True
            if isinstance(asset, AssetCollection) and asset.remove(leaf, graceful=True):
                self._loaded = False
                return True
        if graceful:
            return False
        raise ValueError("Leaf not found.")

    def replace_leaf(self, needle: Asset, replacement: Asset, graceful: bool = False) -> bool:
        """Replace a member by identity, searching nested collections too.

        Raises:
            ValueError: If the asset is not a member and ``graceful`` is False.
        """
        for index, asset in enumerate(self._assets):
            if asset is needle:
                self._assets[index] = replacement
                self._loaded = False
                return True
            if isinstance(asset, AssetCollection) and asset.replace_leaf(
                needle, replacement, graceful=True
            ):
                self._loaded = False
                return True
        if graceful:
            return False
        raise ValueError("Leaf not found.")

    def all(self) -> list[Asset]:
        """Return the current members in insertion order."""
        return list(self._assets)

    def load(self, additional_filter: Filter | None = None) -> None:
        pipeline = self._filters.clone()
        if additional_filter is not None:
            pipeline.ensure(additional_filter)
        load_phase = _LoadPhase(pipeline)

        parts = []
        for asset in self.all():
            member = asset.clone()
            member.load(load_phase)
            parts.append(member.dump())

        self._content = "\n".join(parts)
        self._loaded = True

    def get_last_modified(self) -> float | None:
        times = [asset.get_last_modified() for asset in self.all()]
        return max((t for t in times if t is not None), default=None)

    def set_values(self, values: dict[str, Any]) -> None:
        super().set_values(values)
        for asset in self._assets:
            asset.set_values({k: v for k, v in values.items() if k in asset.vars})

    def __iter__(self) -> Iterator[Asset]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self.all())

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"{type(self).__name__}({len(self._assets)} assets)"


class _LoadPhase(BaseFilter):
    """Runs only the load phase of a collection's filters on a member."""

    def __init__(self, filters: FilterCollection):
        self.filters = filters

    def filter_load(self, asset: Asset) -> None:
        self.filters.filter_load(asset)


class GlobAsset(AssetCollection):
    """A collection of file assets found by glob patterns.

    Patterns are expanded on the first observing call (``all``, ``load``,
    ``dump``, ``get_last_modified``, iteration, ``len``), all of which go
    through ``all``. Setting new values resets the collection, because a
    value may change what a pattern matches.

    Relative patterns are taken relative to the source root. Members share
    the collection's variables and values but not its filters.

    Attributes:
        globs: The glob patterns, possibly containing ``{var}`` placeholders.
    """

    def __init__(
        self,
        globs: str | Iterable[str],
        filters: Iterable[Filter] = (),
        source_root: str | None = None,
        vars: dict[str, Any] | None = None,
    ):
        self.globs = [globs] if isinstance(globs, str) else list(globs)
        self._initialized = False
        super().__init__((), filters, source_root, vars)

    @property
    def initialized(self) -> bool:
        return self._initialized

    def all(self) -> list[Asset]:
        if not self._initialized:
            self._initialize()
        return super().all()

    def set_values(self, values: dict[str, Any]) -> None:
        super().set_values(values)
        self._initialized = False

    def _initialize(self) -> None:
        """Expand every pattern into a fresh set of file assets."""
        assets: list[Asset] = []
        for pattern in self.globs:
            pattern = var_utils.resolve(pattern, self.vars, self.values)
            if self.source_root and not os.path.isabs(pattern):
                pattern = os.path.join(self.source_root, pattern)
            for path in sorted(glob.glob(pattern)):
                if not os.path.isfile(path):
                    continue
                root = self.source_root
                if root and not is_within(path, root):
                    root = None
                asset = FileAsset(path, (), root, vars=self.vars)
                asset.set_values(self.values)
                assets.append(asset)

        logger.debug("Expanded %s into %d assets", self.globs, len(assets))
        self._assets = assets
        self._initialized = True
        self._loaded = False
