"""Asset manager for Kiln.

The manager is the registry of named assets that ``AssetReference`` and the
``AssetWriter`` work from.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .protocols import Asset


class AssetNotFoundError(LookupError):
    """Error raised when an asset name is not registered.

    Attributes:
        name: The name of the asset that was requested.
    """

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"There is no '{name}' asset.")


class AssetManager:
    """Registry mapping names to assets."""

    NAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")

    def __init__(self):
        self._assets: dict[str, Asset] = {}

    def get(self, name: str) -> Asset:
        """Return the asset registered under ``name``.

        Raises:
            AssetNotFoundError: If no asset has that name.
        """
        try:
            return self._assets[name]
        except KeyError:
            raise AssetNotFoundError(name) from None

    def has(self, name: str) -> bool:
        return name in self._assets

    def set(self, name: str, asset: Asset) -> None:
        """Register an asset.

        Raises:
            ValueError: If the name is not alphanumeric.
        """
        if not self.NAME_RE.match(name):
            raise ValueError(f"'{name}' is not a valid asset name.")
        self._assets[name] = asset

    def names(self) -> list[str]:
        return list(self._assets)

    def clear(self) -> None:
        self._assets = {}

    def __contains__(self, name: object) -> bool:
        return name in self._assets

    def __len__(self) -> int:
        return len(self._assets)
