"""Executable discovery utilities for Kiln.

This module provides the lookup used to configure process-based filters
with the path of their external binary.

Functions:
    find_executable: Locate an executable via env var, PATH or node_modules.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path


def find_executable(
    name: str, project_root: Path | None = None, env_var: str | None = None
) -> str | None:
    """Find an executable by env var override, in PATH, or in local node_modules.

    Args:
        name: Name of the executable to find (e.g., 'uglifyjs', 'terser').
        project_root: Optional project root directory to search for
            local node_modules installations.
        env_var: Optional environment variable holding an explicit path,
            checked first.

    Returns:
        Full path to the executable if found, None otherwise.

    Examples:
        >>> find_executable('node')  # System PATH lookup
        '/usr/local/bin/node'

        >>> find_executable('uglifyjs', env_var='KILN_UGLIFYJS_BIN')
        '/opt/uglify/bin/uglifyjs'
    """
    if env_var:
        explicit = os.environ.get(env_var)
        if explicit:
            return explicit

    found = shutil.which(name)
    if found:
        return found

    if project_root is not None:
        local = project_root / "node_modules" / ".bin" / name
        if local.exists():
            return str(local)

    return None
