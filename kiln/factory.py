"""Asset factory for Kiln.

The factory turns the short input strings used in configuration into
asset objects, and filter aliases into filters:

- ``@name`` becomes an ``AssetReference`` to a managed asset.
- ``https://...`` and ``//host/...`` become an ``HttpAsset``.
- Inputs containing glob characters become a ``GlobAsset``.
- Anything else is a ``FileAsset``; relative paths are resolved against the
  factory root.

A filter alias prefixed with ``?`` is skipped in debug mode, so minifiers
can be turned off while developing.
"""

from __future__ import annotations

import hashlib
import json
import os
import posixpath
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from . import var_utils
from .asset_reference import AssetReference
from .assets import FileAsset, HttpAsset
from .collections import AssetCollection, GlobAsset
from .protocols import DependencyExtractor
from .utils import is_remote, is_within

if TYPE_CHECKING:
    from .filters import FilterManager
    from .manager import AssetManager
    from .protocols import Asset, Filter

GLOB_CHARS = ("*", "?", "[")


class AssetFactory:
    """Creates asset collections from input strings and filter aliases.

    Attributes:
        root: Directory relative inputs are resolved against.
        asset_manager: Manager used for ``@name`` inputs.
        filter_manager: Manager used to look up filter aliases.
        debug: Skip ``?``-prefixed filters.
    """

    def __init__(
        self,
        root: str,
        asset_manager: AssetManager | None = None,
        filter_manager: FilterManager | None = None,
        debug: bool = False,
    ):
        self.root = str(root).rstrip("/\\") or "/"
        self.asset_manager = asset_manager
        self.filter_manager = filter_manager
        self.debug = debug

    def create_asset(
        self,
        inputs: str | Iterable[str],
        filters: Iterable[str] = (),
        output: str | None = None,
        name: str | None = None,
        vars: Mapping[str, Any] | None = None,
        root: str | None = None,
    ) -> AssetCollection:
        """Create an asset collection.

        Args:
            inputs: One input string or a list of them.
            filters: Filter aliases, ``?alias`` for debug-skippable ones.
            output: Target path; ``*`` is replaced with ``name``.
            name: Name used in the target path, generated when omitted.
            vars: Variables the inputs and output may use, with defaults.
            root: Override for the factory root.

        Returns:
            An ``AssetCollection`` with its target path set.
        """
        inputs = [inputs] if isinstance(inputs, str) else list(inputs)
        filters = list(filters)
        vars = dict(vars or {})
        root = root or self.root

        if name is None:
            name = self.generate_asset_name(inputs, filters, {"output": output, "vars": vars})

        collection = AssetCollection((), (), root, vars)
        for item in inputs:
            collection.add(self.parse_input(item, root, vars))

        for alias in filters:
            if alias.startswith("?"):
                if self.debug:
                    continue
                alias = alias[1:]
            collection.ensure_filter(self._get_filter(alias))

        target = (output or "*").replace("*", name)
        if not posixpath.splitext(target)[1] and inputs:
            extension = posixpath.splitext(inputs[0])[1]
            if extension:
                target += extension
        collection.set_target_path(target)
        return collection

    def parse_input(
        self, input: str, root: str | None = None, vars: Mapping[str, Any] | None = None
    ) -> Asset:
        """Turn one input string into an asset.

        Raises:
            ValueError: For an ``@name`` input when no asset manager is set.
        """
        root = root or self.root
        vars = dict(vars or {})

        if input.startswith("@"):
            if self.asset_manager is None:
                raise ValueError(f"There is no asset manager to resolve '{input}'.")
            return AssetReference(self.asset_manager, input[1:])

        if is_remote(input):
            return HttpAsset(input, vars=vars)

        if any(char in input for char in GLOB_CHARS):
            return GlobAsset(input, (), root, vars)

        path = input if os.path.isabs(input) else os.path.join(root, input)
        if is_within(path, root):
            return FileAsset(path, (), root, vars=vars)
        return FileAsset(path, vars=vars)

    def get_last_modified(self, asset: Asset) -> float | None:
        """Return the newest modification time of an asset and its dependencies.

        Besides the asset's own sources this covers files pulled in by its
        filters (e.g. stylesheets inlined by CssImportFilter), found through
        each ``DependencyExtractor`` filter's ``get_children``. Leaves with
        such filters are loaded to be scanned.
        """
        return self._last_modified(asset, [], set())

    def _last_modified(
        self, asset: Asset, extractors: list[DependencyExtractor], seen: set[str]
    ) -> float | None:
        extractors = extractors + [
            f
            for f in asset.get_filters()
            if isinstance(f, DependencyExtractor) and f not in extractors
        ]

        if isinstance(asset, AssetCollection):
            times = [self._last_modified(member, extractors, seen) for member in asset]
        else:
            times = [asset.get_last_modified()]
            if extractors:
                scanned = asset.clone()
                scanned.clear_filters()
                scanned.load()
                directory = asset.source_directory
                if directory is not None:
                    directory = var_utils.resolve(directory, asset.vars, asset.values)
                for extractor in extractors:
                    for child in extractor.get_children(scanned.content or "", directory):
                        key = os.path.normpath(f"{child.source_root}/{child.source_path}")
                        if key in seen:
                            continue
                        seen.add(key)
                        times.append(self._last_modified(child, extractors, seen))

        return max((t for t in times if t is not None), default=None)

    def _get_filter(self, alias: str) -> Filter:
        if self.filter_manager is None:
            raise ValueError(f"There is no filter manager to resolve '{alias}'.")
        return self.filter_manager.get(alias)

    @staticmethod
    def generate_asset_name(
        inputs: list[str], filters: list[str], options: Mapping[str, Any]
    ) -> str:
        """Return a short stable name derived from the asset definition."""
        payload = json.dumps([inputs, filters, options], sort_keys=True, default=str)
        return hashlib.sha1(payload.encode("utf-8")).hexdigest()[:7]
