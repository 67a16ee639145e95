"""Filter pipeline for Kiln.

This module contains the pieces that make up an asset's filter chain.
Filters that shell out to external tools live in ``process_filters`` and
CSS-aware filters in ``css_filters``.

Key classes:
- BaseFilter: No-op base for filters that only care about one phase.
- FilterCollection: Ordered, identity-deduplicated chain of filters.
- CallablesFilter: Wraps plain functions as load and dump stages.
- JSMinFilter: Minifies JavaScript in-process with rjsmin.
- FilterManager: Registry of filters by alias.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator
from typing import TYPE_CHECKING

from rjsmin import jsmin

if TYPE_CHECKING:
    from .protocols import Asset, Filter


class FilterNotFoundError(LookupError):
    """Error raised when a filter alias is not registered.

    Attributes:
        alias: The alias that was requested.
    """

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__(f"There is no '{alias}' filter.")


class BaseFilter:
    """Base class for filters.

    Both phases are no-ops; subclasses override the phase they act in.
    """

    def filter_load(self, asset: Asset) -> None:
        pass

    def filter_dump(self, asset: Asset) -> None:
        pass


class FilterCollection(BaseFilter):
    """An ordered collection of filters that is itself a filter.

    Filters are kept in insertion order and are unique by identity: ensuring
    the same instance twice keeps a single entry. Ensuring another
    collection adds each of its members.
    """

    def __init__(self, filters: Iterable[Filter] = ()):
        self._filters: list[Filter] = []
        for f in filters:
            self.ensure(f)

    def ensure(self, filter: Filter) -> None:
        """Add a filter unless this exact instance is already present.

        Args:
            filter: Filter (or collection of filters) to add.
        """
        if isinstance(filter, FilterCollection):
            for member in filter:
                self.ensure(member)
            return
        if any(existing is filter for existing in self._filters):
            return
        self._filters.append(filter)

    def all(self) -> list[Filter]:
        return list(self._filters)

    def clear(self) -> None:
        self._filters = []

    def clone(self) -> FilterCollection:
        return FilterCollection(self._filters)

    def filter_load(self, asset: Asset) -> None:
        for f in self._filters:
            f.filter_load(asset)

    def filter_dump(self, asset: Asset) -> None:
        for f in self._filters:
            f.filter_dump(asset)

    def __iter__(self) -> Iterator[Filter]:
        return iter(list(self._filters))

    def __len__(self) -> int:
        return len(self._filters)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"FilterCollection({len(self._filters)} filters)"


class CallablesFilter(BaseFilter):
    """Filter built from plain callables.

    Each callable receives the asset and is expected to update its content.
    """

    def __init__(
        self,
        load: Callable[[Asset], None] | None = None,
        dump: Callable[[Asset], None] | None = None,
    ):
        self._load = load
        self._dump = dump

    def filter_load(self, asset: Asset) -> None:
        if self._load is not None:
            self._load(asset)

    def filter_dump(self, asset: Asset) -> None:
        if self._dump is not None:
            self._dump(asset)


class JSMinFilter(BaseFilter):
    """Minifies JavaScript at dump time using rjsmin.

    Attributes:
        keep_bang_comments: Preserve ``/*! ... */`` license comments.
    """

    def __init__(self, keep_bang_comments: bool = False):
        self.keep_bang_comments = keep_bang_comments

    def filter_dump(self, asset: Asset) -> None:
        asset.set_content(jsmin(asset.content or "", keep_bang_comments=self.keep_bang_comments))


class FilterManager:
    """Registry of filters by alias.

    Aliases are how filters are named in configuration and in
    ``AssetFactory`` calls.
    """

    ALIAS_RE = re.compile(r"^[a-zA-Z0-9_]+$")

    def __init__(self):
        self._filters: dict[str, Filter] = {}

    def set(self, alias: str, filter: Filter) -> None:
        """Register a filter.

        Args:
            alias: Name of the filter.
            filter: Filter instance.

        Raises:
            ValueError: If the alias is not alphanumeric.
        """
        if not self.ALIAS_RE.match(alias):
            raise ValueError(f"'{alias}' is not a valid filter alias.")
        self._filters[alias] = filter

    def get(self, alias: str) -> Filter:
        """Return the filter registered under ``alias``.

        Raises:
            FilterNotFoundError: If no filter has that alias.
        """
        try:
            return self._filters[alias]
        except KeyError:
            raise FilterNotFoundError(alias) from None

    def has(self, alias: str) -> bool:
        return alias in self._filters

    def names(self) -> list[str]:
        return list(self._filters)
