"""Assets for Kiln.

An asset is a unit of source content together with its filter pipeline and
output state. Assets are loaded (source read, load-time filters applied)
and dumped (dump-time filters applied to a copy of the current content).

Key classes:
- BaseAsset: Shared state and the load/dump lifecycle.
- FileAsset: Content read from a file on disk.
- StringAsset: Content held in memory.
- HttpAsset: Content fetched over HTTP with requests.

Collections of assets live in the ``collections`` module.
"""

from __future__ import annotations

import copy
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Iterable
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Any

import requests

from . import var_utils
from .filters import FilterCollection
from .utils import is_within, split_remote

if TYPE_CHECKING:
    from .protocols import Filter

logger = logging.getLogger(__name__)


class BaseAsset(ABC):
    """Base class for assets.

    Holds the filter pipeline, source location, target path, variables and
    content, and implements the load/dump lifecycle on top of a
    subclass-provided ``load``.

    Attributes:
        _content: Current content, ``None`` until loaded.
        _loaded: Whether ``load`` has run since the last reset.
    """

    def __init__(
        self,
        filters: Iterable[Filter] = (),
        source_root: str | None = None,
        source_path: str | None = None,
        vars: dict[str, Any] | None = None,
    ):
        self._filters = FilterCollection(filters)
        self._source_root = source_root
        self._source_path = source_path
        self._source_dir = None
        if source_root and source_path:
            self._source_dir = os.path.dirname(f"{source_root}/{source_path}")
        self._target_path: str | None = None
        self._vars: dict[str, Any] = dict(vars or {})
        self._values: dict[str, Any] = {}
        self._content: str | None = None
        self._loaded = False

    def clone(self) -> BaseAsset:
        duplicate = copy.copy(self)
        duplicate._filters = self._filters.clone()
        duplicate._vars = dict(self._vars)
        duplicate._values = dict(self._values)
        return duplicate

    # Filters

    def ensure_filter(self, filter: Filter) -> None:
        self._filters.ensure(filter)

    def get_filters(self) -> FilterCollection:
        return self._filters

    def clear_filters(self) -> None:
        self._filters.clear()

    # Lifecycle

    @abstractmethod
    def load(self, additional_filter: Filter | None = None) -> None:
        """Read the source and apply load-time filters."""
        ...

    def do_load(self, content: str, additional_filter: Filter | None = None) -> None:
        """Run load-time filters over freshly read content and store the result.

        Filters work on a clone so that a failing filter never leaves the
        asset half-loaded.

        Args:
            content: Raw source content.
            additional_filter: One-off filter appended to the pipeline.
        """
        pipeline = self._filters.clone()
        if additional_filter is not None:
            pipeline.ensure(additional_filter)

        working = self.clone()
        working._content = content
        pipeline.filter_load(working)

        self._content = working.content
        self._loaded = True

    def dump(self, additional_filter: Filter | None = None) -> str:
        """Apply dump-time filters to the current content and return it.

        Loads the asset first when it has not been loaded. The stored content
        is left unchanged.
        """
        if not self._loaded:
            self.load()

        pipeline = self._filters.clone()
        if additional_filter is not None:
            pipeline.ensure(additional_filter)

        working = self.clone()
        pipeline.filter_dump(working)
        return working.content or ""

    @abstractmethod
    def get_last_modified(self) -> float | None:
        ...

    # Content and locations

    @property
    def content(self) -> str | None:
        return self._content

    def set_content(self, content: str) -> None:
        self._content = content

    @property
    def source_root(self) -> str | None:
        return self._source_root

    @property
    def source_path(self) -> str | None:
        return self._source_path

    @property
    def source_directory(self) -> str | None:
        return self._source_dir

    @property
    def target_path(self) -> str | None:
        return self._target_path

    def set_target_path(self, target_path: str) -> None:
        """Set where the asset is written.

        Raises:
            ValueError: If the path uses a variable the asset does not declare.
        """
        for name in var_utils.find_placeholders(target_path):
            if name not in self._vars:
                raise ValueError(
                    f"The target path '{target_path}' contains the variable "
                    f"'{name}', which was not declared."
                )
        self._target_path = target_path

    # Variables

    @property
    def vars(self) -> dict[str, Any]:
        return self._vars

    @property
    def values(self) -> dict[str, Any]:
        return self._values

    def set_values(self, values: dict[str, Any]) -> None:
        """Set concrete values for declared variables.

        Changing values invalidates loaded content.

        Raises:
            ValueError: If a value is given for an undeclared variable.
        """
        for name in values:
            if name not in self._vars:
                raise ValueError(
                    f"The asset with source path '{self._source_path}' has no "
                    f"variable named '{name}'."
                )
        self._values = dict(values)
        self._loaded = False

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"{type(self).__name__}({self._source_root!r}, {self._source_path!r})"


class FileAsset(BaseAsset):
    """An asset backed by a file on disk.

    When no source root is given, the file's directory becomes the root and
    its basename the source path. When a root is given, the source must live
    under it and the source path is derived from it.

    Attributes:
        source: Path of the file, possibly containing ``{var}`` placeholders.
    """

    def __init__(
        self,
        source: str,
        filters: Iterable[Filter] = (),
        source_root: str | None = None,
        source_path: str | None = None,
        vars: dict[str, Any] | None = None,
    ):
        source = str(source)
        if source_root is None:
            source_root = os.path.dirname(source) or "."
            if source_path is None:
                source_path = os.path.basename(source)
        elif source_path is None:
            source_root = str(source_root)
            if not is_within(source, source_root):
                raise ValueError(
                    f"The source '{source}' is not in the root directory '{source_root}'."
                )
            source_path = os.path.relpath(source, source_root).replace(os.sep, "/")

        self.source = source
        super().__init__(filters, source_root, source_path, vars)

    def _resolved_source(self) -> str:
        source = var_utils.resolve(self.source, self._vars, self._values)
        if not os.path.isfile(source):
            raise FileNotFoundError(f"The source file '{source}' does not exist.")
        return source

    def load(self, additional_filter: Filter | None = None) -> None:
        source = self._resolved_source()
        with open(source, encoding="utf-8") as f:
            content = f.read()
        self.do_load(content, additional_filter)

    def get_last_modified(self) -> float | None:
        return os.path.getmtime(self._resolved_source())


class StringAsset(BaseAsset):
    """An asset whose source content is held in memory."""

    def __init__(
        self,
        content: str,
        filters: Iterable[Filter] = (),
        source_root: str | None = None,
        source_path: str | None = None,
        last_modified: float | None = None,
    ):
        self._string = content
        self._last_modified = last_modified
        super().__init__(filters, source_root, source_path)

    def load(self, additional_filter: Filter | None = None) -> None:
        self.do_load(self._string, additional_filter)

    def set_last_modified(self, last_modified: float | None) -> None:
        self._last_modified = last_modified

    def get_last_modified(self) -> float | None:
        return self._last_modified


class HttpAsset(BaseAsset):
    """An asset fetched from a URL.

    Protocol-relative URLs (``//host/path``) are fetched over ``http:``.

    Attributes:
        source_url: The URL, possibly containing ``{var}`` placeholders.
        ignore_errors: Produce empty content instead of raising on fetch errors.
        timeout: Seconds to wait for the server.
    """

    def __init__(
        self,
        source_url: str,
        filters: Iterable[Filter] = (),
        ignore_errors: bool = False,
        vars: dict[str, Any] | None = None,
        timeout: float = 30,
    ):
        if source_url.startswith("//"):
            source_url = f"http:{source_url}"
        elif "://" not in source_url:
            raise ValueError(f"Invalid URL: '{source_url}'")

        self.source_url = source_url
        self.ignore_errors = ignore_errors
        self.timeout = timeout
        source_root, source_path = split_remote(source_url)
        super().__init__(filters, source_root, source_path, vars)

    def load(self, additional_filter: Filter | None = None) -> None:
        url = var_utils.resolve(self.source_url, self._vars, self._values)
        logger.debug("Fetching %s", url)
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
            content = response.text
        except requests.RequestException:
            if not self.ignore_errors:
                raise
            logger.debug("Ignoring failed fetch of %s", url)
            content = ""
        self.do_load(content, additional_filter)

    def get_last_modified(self) -> float | None:
        url = var_utils.resolve(self.source_url, self._vars, self._values)
        try:
            response = requests.head(url, allow_redirects=True, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException:
            if not self.ignore_errors:
                raise
            return None
        header = response.headers.get("Last-Modified")
        if not header:
            return None
        try:
            return parsedate_to_datetime(header).timestamp()
        except (TypeError, ValueError):
            logger.debug("Unparseable Last-Modified header from %s: %r", url, header)
            return None
