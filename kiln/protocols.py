"""Protocol definitions for Kiln.

This module defines the interfaces (protocols) shared by assets and filters,
following the Dependency Inversion Principle (DIP) of SOLID.

These protocols enable:
- Loose coupling between assets, filters and the reference proxy
- Easy testing through mock implementations
- Extensibility without modifying existing code (Open/Closed Principle)

Every operation of the asset contract is listed explicitly on ``Asset`` so
that concrete assets and ``AssetReference`` implement the same surface.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .filters import FilterCollection


@runtime_checkable
class Filter(Protocol):
    """Protocol for a stage in an asset's filter pipeline.

    A filter may act at load time, at dump time, or both. Phases it does
    not care about are no-ops.
    """

    @abstractmethod
    def filter_load(self, asset: Asset) -> None:
        """Transform the asset's content right after its source is read.

        Args:
            asset: Asset whose content should be filtered in place.
        """
        ...

    @abstractmethod
    def filter_dump(self, asset: Asset) -> None:
        """Transform the asset's content when output is produced.

        Args:
            asset: Asset whose content should be filtered in place.
        """
        ...


@runtime_checkable
class DependencyExtractor(Protocol):
    """Protocol for filters that can report the sources a content depends on."""

    @abstractmethod
    def get_children(self, content: str, load_path: str | None = None) -> list[Asset]:
        """Return assets referenced by ``content``.

        Args:
            content: Source content to scan.
            load_path: Directory relative references are resolved against.

        Returns:
            List of child assets.
        """
        ...


@runtime_checkable
class Asset(Protocol):
    """Protocol for anything that behaves like an asset.

    Implemented by the concrete asset classes, by collections, and by
    ``AssetReference``.
    """

    @abstractmethod
    def ensure_filter(self, filter: Filter) -> None:
        """Add a filter unless the same instance is already present."""
        ...

    @abstractmethod
    def get_filters(self) -> FilterCollection:
        """Return the asset's filter pipeline."""
        ...

    @abstractmethod
    def clear_filters(self) -> None:
        """Remove every filter from the pipeline."""
        ...

    @abstractmethod
    def load(self, additional_filter: Filter | None = None) -> None:
        """Read the source and apply load-time filters.

        Args:
            additional_filter: One-off filter applied after the pipeline.
        """
        ...

    @abstractmethod
    def dump(self, additional_filter: Filter | None = None) -> str:
        """Apply dump-time filters to the current content and return it.

        Args:
            additional_filter: One-off filter applied after the pipeline.

        Returns:
            The dumped content.
        """
        ...

    @property
    @abstractmethod
    def content(self) -> str | None:
        """Current content, ``None`` before the asset is loaded."""
        ...

    @abstractmethod
    def set_content(self, content: str) -> None:
        ...

    @property
    @abstractmethod
    def source_root(self) -> str | None:
        ...

    @property
    @abstractmethod
    def source_path(self) -> str | None:
        ...

    @property
    @abstractmethod
    def source_directory(self) -> str | None:
        ...

    @property
    @abstractmethod
    def target_path(self) -> str | None:
        ...

    @abstractmethod
    def set_target_path(self, target_path: str) -> None:
        ...

    @abstractmethod
    def get_last_modified(self) -> float | None:
        """Return the newest modification time of the asset's sources."""
        ...

    @property
    @abstractmethod
    def vars(self) -> dict[str, Any]:
        """Declared variables mapped to their default values."""
        ...

    @property
    @abstractmethod
    def values(self) -> dict[str, Any]:
        ...

    @abstractmethod
    def set_values(self, values: dict[str, Any]) -> None:
        ...

    @abstractmethod
    def clone(self) -> Asset:
        """Return a copy with independent filters, vars and values."""
        ...
