"""Asset writer for Kiln.

Writes dumped assets to an output directory, once for every combination of
variable values each asset declares.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from . import var_utils

if TYPE_CHECKING:
    from .manager import AssetManager
    from .protocols import Asset

logger = logging.getLogger(__name__)


class AssetWriter:
    """Writes assets to disk.

    Attributes:
        output_dir: Directory target paths are relative to.
        values: Variable names mapped to the list of values to write.
    """

    def __init__(self, output_dir: Path, values: Mapping[str, list[Any]] | None = None):
        self.output_dir = Path(output_dir)
        self.values = {name: list(choices) for name, choices in (values or {}).items()}

    def write_manager_assets(self, manager: AssetManager) -> dict[str, list[Path]]:
        """Write every asset in a manager.

        Returns:
            Asset names mapped to the files written for them.
        """
        return {name: self.write_asset(manager.get(name)) for name in manager.names()}

    def write_asset(self, asset: Asset) -> list[Path]:
        """Write one file per variable combination of ``asset``.

        Raises:
            ValueError: If the asset has no target path.
        """
        if not asset.target_path:
            raise ValueError("Cannot write an asset without a target path.")

        written = []
        for combination in var_utils.get_combinations(asset.vars, self.values):
            asset.set_values(combination)
            relative = var_utils.resolve(asset.target_path, asset.vars, asset.values)
            path = self.output_dir / relative
            self._write(path, asset.dump())
            written.append(path)
        return written

    def _write(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        logger.debug("Wrote %s", path)
