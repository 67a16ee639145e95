"""CSS filters for Kiln.

Key classes:
- CssRewriteFilter: Keeps relative URLs valid when a stylesheet is written
  somewhere other than its source location.
- CssImportFilter: Inlines ``@import``-ed stylesheets.
- CyclicImportError: Raised when stylesheets import each other in a loop.
"""

from __future__ import annotations

import os
import posixpath
import re
from typing import TYPE_CHECKING

from . import var_utils
from .assets import FileAsset, HttpAsset
from .css_utils import extract_imports, filter_imports, filter_references
from .filters import BaseFilter
from .utils import is_remote, split_remote

if TYPE_CHECKING:
    from .protocols import Asset, Filter


class CyclicImportError(Exception):
    """Error raised when CSS imports form a cycle.

    Attributes:
        chain: Source locators from the outermost stylesheet to the repeat.
    """

    def __init__(self, chain: list[str], message: str | None = None):
        self.chain = chain
        super().__init__(message or "Cyclic CSS import: " + " -> ".join(chain))


class CssRewriteFilter(BaseFilter):
    """Rewrites relative URLs at dump time so they resolve from the target path.

    Nothing happens unless the asset has both a source path and a target
    path and they differ. Absolute, protocol-relative and ``data:`` URLs
    are left alone; root-relative URLs get the source host prepended when
    the source is remote.
    """

    def filter_dump(self, asset: Asset) -> None:
        source_base = asset.source_root
        source_path = asset.source_path
        target_path = asset.target_path

        if source_path is None or target_path is None:
            return
        source_path = var_utils.resolve(source_path, asset.vars, asset.values)
        target_path = var_utils.resolve(target_path, asset.vars, asset.values)
        if source_path == target_path:
            return

        host, path = self._relative_prefix(source_base, source_path, target_path)

        def rewrite(match: re.Match) -> str:
            url = match.group("url")
            if not url or "://" in url or url.startswith(("//", "data:")):
                return match.group(0)

            if url.startswith("/"):
                return match.group(0).replace(url, host.rstrip("/") + url)

            prefix = path
            relative = url
            while relative.startswith("../") and prefix.count("/") >= 2:
                prefix = prefix[: prefix.rstrip("/").rindex("/") + 1]
                relative = relative[3:]

            parts: list[str] = []
            for part in f"{host}{prefix}{relative}".split("/"):
                if part == ".." and parts and parts[-1] != "..":
                    parts.pop()
                else:
                    parts.append(part)
            return match.group(0).replace(url, "/".join(parts))

        asset.set_content(filter_references(asset.content or "", rewrite))

    @staticmethod
    def _relative_prefix(
        source_base: str | None, source_path: str, target_path: str
    ) -> tuple[str, str]:
        """Work out how to get from the target's directory back to the source's.

        Returns:
            Tuple of (host prefix, relative directory prefix).
        """
        if source_base and "://" in source_base:
            root, remote_path = split_remote(f"{source_base}/{source_path}")
            directory = posixpath.dirname(remote_path)
            return f"{root}/", f"{directory}/" if directory else ""

        source_dir = posixpath.dirname(source_path)
        target_dir = posixpath.dirname(target_path)
        if not source_dir:
            return "", "../" * target_path.count("/")
        if not target_dir:
            return "", f"{source_dir}/"

        path = ""
        while not source_path.startswith(target_dir):
            if "/" in target_dir:
                target_dir = target_dir[: target_dir.rindex("/")]
                path += "../"
            else:
                target_dir = ""
                path += "../"
                break
        path += f"{source_dir}/"[len(target_dir):].lstrip("/")
        return "", path


class CssImportFilter(BaseFilter):
    """Inlines imported stylesheets at load time.

    Each ``@import`` is classified as absolute, protocol-relative,
    root-relative or document-relative. Remote imports are fetched
    (failures give empty content); local imports are inlined only when the
    target ends in ``.css`` and exists, otherwise the statement is left as
    it is. Each imported stylesheet is dumped through ``import_filter``
    (a ``CssRewriteFilter`` by default) with the importing stylesheet's
    source path as its target path, and its own imports are inlined in turn.

    The outer scan repeats until a pass changes nothing. The chain of
    stylesheets being inlined is tracked, and importing one already on the
    chain raises ``CyclicImportError``.

    Attributes:
        import_filter: Filter applied to every imported stylesheet.
        max_passes: Upper bound on outer passes before giving up.
    """

    def __init__(self, import_filter: Filter | None = None, max_passes: int = 50):
        self.import_filter = import_filter if import_filter is not None else CssRewriteFilter()
        self.max_passes = max_passes

    def filter_load(self, asset: Asset) -> None:
        source_root = asset.source_root
        source_path = asset.source_path
        if source_path is not None:
            source_path = var_utils.resolve(source_path, asset.vars, asset.values)
        ancestors: tuple[str, ...] = ()
        if source_root is not None and source_path is not None:
            ancestors = (self._locator(f"{source_root}/{source_path}"),)

        content = asset.content or ""
        for _ in range(self.max_passes):
            filtered = self._inline(content, source_root, source_path, ancestors)
            if filtered == content:
                asset.set_content(content)
                return
            content = filtered

        raise CyclicImportError(
            list(ancestors),
            f"CSS imports did not settle after {self.max_passes} passes.",
        )

    def _inline(
        self,
        content: str,
        source_root: str | None,
        source_path: str | None,
        ancestors: tuple[str, ...],
    ) -> str:
        def replace(match: re.Match) -> str:
            url = match.group("url")
            if not url or source_root is None:
                return match.group(0)

            import_root = source_root
            if is_remote(url):
                import_root, import_path = split_remote(url)
            elif url.startswith("/"):
                import_path = url[1:]
            elif source_path is not None:
                import_path = url
                source_dir = posixpath.dirname(source_path)
                if source_dir:
                    import_path = f"{source_dir}/{import_path}"
            else:
                return match.group(0)

            import_source = f"{import_root}/{import_path}"
            if is_remote(import_source):
                imported: Asset = HttpAsset(import_source, [self.import_filter], ignore_errors=True)
            elif posixpath.splitext(import_path)[1] != ".css" or not os.path.exists(import_source):
                return match.group(0)
            else:
                imported = FileAsset(import_source, [self.import_filter], import_root, import_path)

            locator = self._locator(import_source)
            if locator in ancestors:
                raise CyclicImportError([*ancestors, locator])

            if source_path is not None:
                imported.set_target_path(source_path)
            output = imported.dump()
            return self._inline(output, source_root, source_path, (*ancestors, locator))

        return filter_imports(content, replace)

    @staticmethod
    def _locator(source: str) -> str:
        return source if is_remote(source) else os.path.normpath(source)

    def get_children(self, content: str, load_path: str | None = None) -> list[Asset]:
        """Return a file asset for each local stylesheet ``content`` imports.

        Only document-relative ``.css`` imports that exist under
        ``load_path`` are reported; remote and root-relative imports are
        skipped. With no ``load_path`` there is nothing to resolve against.
        """
        if load_path is None:
            return []

        children: list[Asset] = []
        for url in extract_imports(content):
            if is_remote(url) or url.startswith("/"):
                continue
            if posixpath.splitext(url)[1] != ".css":
                continue
            path = os.path.join(load_path, url)
            if os.path.isfile(path):
                children.append(FileAsset(path, (), load_path, url))
        return children
