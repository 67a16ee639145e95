"""Kiln asset pipeline.

This package wraps web assets (files, globs of files, remote stylesheets and
scripts) in one interface and runs them through filter chains: import
inliners, URL rewriters and minifiers, many of which shell out to tools such
as uglifyjs, terser or tailwindcss.

Assets are loaded (source read, load-time filters applied) and dumped
(dump-time filters applied, output returned). Collections concatenate their
members, glob assets expand their patterns lazily, and references defer to
named assets in an asset manager.

The main entry point for projects is the CLI module, which builds the assets
declared in kiln.yaml and can watch them for changes.
"""

from .asset_reference import AssetReference
from .assets import BaseAsset, FileAsset, HttpAsset, StringAsset
from .collections import AssetCollection, GlobAsset
from .factory import AssetFactory
from .filters import FilterCollection, FilterManager
from .manager import AssetManager
from .writer import AssetWriter

__all__ = [
    "__version__",
    "AssetCollection",
    "AssetFactory",
    "AssetManager",
    "AssetReference",
    "AssetWriter",
    "BaseAsset",
    "FileAsset",
    "FilterCollection",
    "FilterManager",
    "GlobAsset",
    "HttpAsset",
    "StringAsset",
]
__version__ = "0.1.0"
