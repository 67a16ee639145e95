"""Asset watcher for Kiln.

Rebuilds a project's assets whenever their sources change:
- Watches the source directory and the project root (for kiln.yaml).
- Ignores events inside the output directory and node_modules.
- Compares the last-modified times of every managed asset, including the
  stylesheets it imports, so edits that don't touch an asset's sources
  don't trigger a rebuild.

Key classes:
- AssetWatcher: Builds once and rebuilds on change.
- _ChangeHandler: File system event handler that triggers rebuilds.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import BuildError, build_assets, load_config
from .factory import AssetFactory
from .manager import AssetManager

logger = logging.getLogger(__name__)


class AssetWatcher:
    """Watches a project's sources and rebuilds its assets.

    Attributes:
        project_root: Root directory of the project.
        config: Project configuration.
        output_dir: Directory assets are written to.
        source_dir: Directory holding asset sources.
        debug: Skip ``?``-prefixed filters.
    """

    def __init__(self, project_root: Path, debug: bool = False):
        self.project_root = project_root
        self.config = load_config(project_root)
        self.output_dir = project_root / self.config.get("output_dir", "output")
        self.source_dir = project_root / self.config.get("source_dir", "assets")
        self.debug = debug
        self._manager: AssetManager | None = None
        self._factory = AssetFactory(str(self.source_dir))
        self._observer: Observer | None = None
        self._rebuilding = False
        self._last_rebuild_at = 0.0
        self._last_signature: tuple | None = None
        self._debounce_seconds = 0.05

    def start(self) -> None:  # pragma: no cover - integration path
        self.build()
        self._start_observer()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    def build(self) -> None:
        """Run a full build and remember the resulting source signature."""
        result = build_assets(self.project_root, debug=self.debug)
        self._manager = result.manager
        self._last_signature = self._compute_signature()

    def _start_observer(self) -> None:  # pragma: no cover - integration path
        handler = _ChangeHandler(self)
        observer = Observer()
        if self.source_dir.exists():
            observer.schedule(handler, str(self.source_dir), recursive=True)
        # Root for kiln.yaml
        observer.schedule(handler, str(self.project_root), recursive=False)
        observer.start()
        self._observer = observer

    def rebuild(self, force: bool = False) -> None:
        """Rebuild when an asset's sources are newer than the last build.

        Args:
            force: Rebuild without comparing modification times. Needed when
                files appear or disappear, since glob members are fixed once
                expanded, and when kiln.yaml changes.
        """
        now = time.time()
        if self._rebuilding or (now - self._last_rebuild_at) < self._debounce_seconds:
            return
        if not force:
            signature = self._compute_signature()
            if signature is not None and signature == self._last_signature:
                return
        self._rebuilding = True
        try:
            logger.info("Change detected; rebuilding...")
            self.config = load_config(self.project_root)
            self.build()
        except BuildError as exc:
            # Keep watching; the next change may fix it.
            logger.error("Build failed for %s: %s", exc.asset_name, exc.message)
        finally:
            self._rebuilding = False
            self._last_rebuild_at = time.time()

    def _compute_signature(self) -> tuple | None:
        if self._manager is None:
            return None
        entries = []
        for name in self._manager.names():
            try:
                modified = self._factory.get_last_modified(self._manager.get(name))
            except OSError:
                modified = None
            entries.append((name, modified))
        return tuple(entries) if entries else None


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: AssetWatcher):
        super().__init__()
        self.watcher = watcher

    def on_any_event(self, event):
        if event.is_directory:
            return
        path = Path(event.src_path)
        try:
            path.relative_to(self.watcher.output_dir)
            return
        except ValueError:
            pass
        if "node_modules" in path.parts:
            return
        structural = event.event_type in ("created", "deleted", "moved")
        self.watcher.rebuild(force=structural or path.name == "kiln.yaml")
