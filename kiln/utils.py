"""Utility functions for Kiln.

This module contains small helpers used throughout the Kiln codebase for
path handling and locator classification.

Key functions:
    is_remote: Check whether a locator is a URL.
    split_remote: Split a URL into its host root and path.
    is_within: Check whether a path lies under a directory.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path


def is_remote(locator: str) -> bool:
    """Check whether a locator is absolute (``scheme://``) or protocol-relative.

    Examples:
        >>> is_remote("https://cdn.example.com/a.css")
        True
        >>> is_remote("//cdn.example.com/a.css")
        True
        >>> is_remote("/css/a.css")
        False
    """
    return "://" in locator or locator.startswith("//")


def split_remote(url: str) -> tuple[str, str]:
    """Split a remote URL into its root and the path below it.

    The root keeps the scheme (or the ``//`` prefix for protocol-relative
    URLs) and host; the path has no leading slash.

    Examples:
        >>> split_remote("https://example.com/css/main.css")
        ('https://example.com', 'css/main.css')
        >>> split_remote("//example.com/main.css")
        ('//example.com', 'main.css')
    """
    if url.startswith("//"):
        prefix, rest = "//", url[2:]
    else:
        scheme, rest = url.split("://", 1)
        prefix = f"{scheme}://"
    host, _, path = rest.partition("/")
    return f"{prefix}{host}", path


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(str(path))
    path.mkdir(parents=True, exist_ok=True)


def is_within(path: str, root: str) -> bool:
    """Check whether ``path`` lies under ``root``, comparing whole components.

    Examples:
        >>> is_within("/a/b/x.css", "/a/b")
        True
        >>> is_within("/a/bc/x.css", "/a/b")
        False
    """
    root = os.path.abspath(root)
    try:
        return os.path.commonpath([os.path.abspath(path), root]) == root
    except ValueError:
        # different drives
        return False
