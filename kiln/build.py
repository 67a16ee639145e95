"""Project building for Kiln.

This module wires a project's ``kiln.yaml`` into a filter manager, an
asset manager and an asset writer, and writes every asset.

Key functions:
- build_assets: Build every asset of a project.
- load_config: Load project configuration from kiln.yaml.
- create_filter_manager: Register the built-in filters under their aliases.
- create_asset_manager: Create the assets declared in the configuration.

Example kiln.yaml::

    output_dir: public
    source_dir: assets
    values:
      locale: [en, de]
    assets:
      site_css:
        inputs: [css/main.css]
        filters: [cssimport, cssrewrite]
        output: css/site.css
      app_js:
        inputs: ["js/vendor/*.js", "js/{locale}/app.js"]
        filters: ["?uglifyjs"]
        output: "js/app.{locale}.js"
        vars: {locale: en}
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .css_filters import CssImportFilter, CssRewriteFilter, CyclicImportError
from .executable_utils import find_executable
from .factory import AssetFactory
from .filters import FilterManager, FilterNotFoundError, JSMinFilter
from .manager import AssetManager, AssetNotFoundError
from .process_filters import (
    ConfigurationError,
    FilterError,
    TailwindCSSFilter,
    TerserFilter,
    UglifyJs3Filter,
)
from .utils import ensure_clean_dir
from .var_utils import VariableResolutionError
from .writer import AssetWriter

logger = logging.getLogger(__name__)


class BuildError(Exception):
    """Error while building an asset, with the asset's name.

    Attributes:
        asset_name: Name of the asset that failed.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        asset_name: str,
        message: str,
        original_error: Exception | None = None,
    ):
        self.asset_name = asset_name
        self.message = message
        self.original_error = original_error
        super().__init__(f"{asset_name}: {message}")


DEFAULT_CONFIG = {
    "output_dir": "output",
    "source_dir": "assets",
    "debug": False,
    "timeout": 60,
    "binaries": {},
    "tailwind_content": [],
    "values": {},
    "assets": {},
}


@dataclass
class BuildResult:
    """Result of a build.

    Attributes:
        written: Asset names mapped to the files written for them.
        output_dir: Directory the assets were written to.
        manager: The asset manager built from the configuration.
    """

    written: dict[str, list[Path]]
    output_dir: Path
    manager: AssetManager


def load_config(project_root: Path) -> dict[str, Any]:
    """Load project configuration from kiln.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing configuration values, with defaults applied.
    """
    config_path = project_root / "kiln.yaml"
    config = DEFAULT_CONFIG.copy()
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
            if isinstance(loaded, dict):
                config.update(loaded)
    return config


def create_filter_manager(config: dict[str, Any], project_root: Path) -> FilterManager:
    """Register the built-in filters with configured binaries and timeout.

    Binary paths come from the ``binaries`` section, then a
    ``KILN_<NAME>_BIN`` environment variable, then PATH and the project's
    node_modules. A filter whose binary cannot be found is still
    registered; it raises ``ConfigurationError`` when it runs.
    """
    binaries = config.get("binaries") or {}
    timeout = config.get("timeout")

    def binary(name: str) -> str | None:
        return binaries.get(name) or find_executable(
            name, project_root, env_var=f"KILN_{name.upper()}_BIN"
        )

    content_globs = [str(project_root / pattern) for pattern in config.get("tailwind_content") or []]

    manager = FilterManager()
    manager.set("cssrewrite", CssRewriteFilter())
    manager.set("cssimport", CssImportFilter())
    manager.set("jsmin", JSMinFilter())
    manager.set(
        "uglifyjs",
        UglifyJs3Filter(
            binary("uglifyjs"),
            binaries.get("node") or os.environ.get("KILN_NODE_BIN"),
            timeout=timeout,
        ),
    )
    manager.set("terser", TerserFilter(binary("terser"), timeout=timeout))
    manager.set(
        "tailwindcss",
        TailwindCSSFilter(binary("tailwindcss"), timeout=timeout, content_globs=content_globs),
    )
    return manager


def create_asset_manager(
    config: dict[str, Any],
    project_root: Path,
    filter_manager: FilterManager,
    debug: bool = False,
) -> AssetManager:
    """Create the assets declared in the ``assets`` section.

    An entry is either an input string, a list of inputs, or a mapping with
    ``inputs``, ``filters``, ``output`` and ``vars``.

    Raises:
        BuildError: If an entry cannot be turned into an asset.
    """
    manager = AssetManager()
    factory = AssetFactory(
        str(project_root / config.get("source_dir", "assets")),
        manager,
        filter_manager,
        debug=debug,
    )
    for name, definition in (config.get("assets") or {}).items():
        if not isinstance(definition, dict):
            definition = {"inputs": definition}
        try:
            asset = factory.create_asset(
                definition.get("inputs") or [],
                definition.get("filters") or [],
                output=definition.get("output"),
                name=name,
                vars=definition.get("vars"),
            )
            manager.set(name, asset)
        except Exception as exc:
            raise BuildError(name, _format_error_message(exc), exc) from exc
    return manager


def build_assets(
    project_root: Path,
    debug: bool | None = None,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Build every asset of a project.

    Args:
        project_root: Root directory of the project.
        debug: Skip ``?``-prefixed filters; defaults to the config's ``debug``.
        clean_output: Whether to wipe the output directory before building.
        output_dir_override: Optional path to write to instead of config output_dir.

    Returns:
        BuildResult with the written files and the asset manager.

    Raises:
        BuildError: If any asset fails.
    """
    config = load_config(project_root)
    if debug is None:
        debug = bool(config.get("debug"))
    output_dir = output_dir_override or (project_root / config.get("output_dir", "output"))
    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    filter_manager = create_filter_manager(config, project_root)
    manager = create_asset_manager(config, project_root, filter_manager, debug=debug)
    writer = AssetWriter(output_dir, config.get("values"))

    written: dict[str, list[Path]] = {}
    for name in manager.names():
        try:
            written[name] = writer.write_asset(manager.get(name))
        except Exception as exc:
            raise BuildError(name, _format_error_message(exc), exc) from exc

    logger.info(
        "Wrote %d files for %d assets into %s",
        sum(len(paths) for paths in written.values()),
        len(written),
        output_dir,
    )
    return BuildResult(written=written, output_dir=output_dir, manager=manager)


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    if isinstance(exc, FilterError):
        return f"Filter failed: {exc}"
    if isinstance(exc, ConfigurationError):
        return f"Configuration error: {exc}"
    if isinstance(exc, CyclicImportError):
        return f"Cyclic import: {' -> '.join(exc.chain)}"
    if isinstance(exc, VariableResolutionError):
        return f"Variable error: {exc}"
    if isinstance(exc, (AssetNotFoundError, FilterNotFoundError)):
        return f"Not found: {exc.args[0]}"
    if isinstance(exc, FileNotFoundError):
        return f"Missing file: {exc}"

    return f"{type(exc).__name__}: {exc}"
