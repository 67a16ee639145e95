"""CSS utility functions for Kiln.

This module provides regex-based helpers for finding and rewriting the
references a stylesheet makes to other files: ``url(...)`` values and
``@import`` statements. Matches inside ``/* ... */`` comments are never
touched.

Functions:
    filter_commentless: Apply a rewrite only outside comments.
    filter_urls: Rewrite ``url()`` references.
    filter_imports: Rewrite ``@import`` statements.
    filter_references: Rewrite both kinds of references.
    extract_imports: List the URLs a stylesheet imports.
"""

from __future__ import annotations

import re
from collections.abc import Callable

ReplaceCallback = Callable[[re.Match], str]

URLS_RE = re.compile(r"""url\((["']?)(?P<url>.*?)(\1)\)""")
IMPORTS_RE = re.compile(r"""@import (?:url\()?(['"]|)(?P<url>[^'")\n\r]*)\1\)?;?""")
IMPORTS_NO_URLS_RE = re.compile(r"""@import (?!url\()(['"]|)(?P<url>[^'")\n\r]*)\1;?""")
COMMENTS_RE = re.compile(r"(/\*[^*]*\*+(?:[^/][^*]*\*+)*/)")


def filter_commentless(content: str, callback: Callable[[str], str]) -> str:
    """Apply ``callback`` to every part of ``content`` outside comments.

    Args:
        content: Stylesheet source.
        callback: Function rewriting a comment-free chunk.

    Returns:
        The content with comments preserved verbatim.
    """
    parts = COMMENTS_RE.split(content)
    # re.split with one capturing group alternates text, comment, text, ...
    return "".join(
        part if index % 2 else callback(part) for index, part in enumerate(parts)
    )


def filter_urls(content: str, callback: ReplaceCallback) -> str:
    """Rewrite every ``url(...)`` reference outside comments.

    The callback receives the match; ``match["url"]`` is the bare URL.
    """
    return filter_commentless(content, lambda part: URLS_RE.sub(callback, part))


def filter_imports(content: str, callback: ReplaceCallback, include_url: bool = True) -> str:
    """Rewrite every ``@import`` statement outside comments.

    Args:
        content: Stylesheet source.
        callback: Receives the match and returns the replacement text.
        include_url: Also match the ``@import url(...)`` form.
    """
    pattern = IMPORTS_RE if include_url else IMPORTS_NO_URLS_RE
    return filter_commentless(content, lambda part: pattern.sub(callback, part))


def filter_references(content: str, callback: ReplaceCallback) -> str:
    """Rewrite every ``url()`` and ``@import`` reference outside comments."""
    content = filter_urls(content, callback)
    return filter_imports(content, callback, include_url=False)


def extract_imports(content: str) -> list[str]:
    """Return the unique URLs imported by a stylesheet, in order.

    Examples:
        >>> extract_imports('@import "a.css"; @import url(b.css);')
        ['a.css', 'b.css']
    """
    imports: list[str] = []

    def collect(match: re.Match) -> str:
        url = match.group("url")
        if url and url not in imports:
            imports.append(url)
        return match.group(0)

    filter_imports(content, collect)
    return imports
