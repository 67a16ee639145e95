import logging
import os

from kiln.build import BuildError, BuildResult
from kiln.manager import AssetManager
from kiln.watcher import AssetWatcher, _ChangeHandler


class DummyEvent:
    def __init__(self, path, is_directory=False, event_type="modified"):
        self.src_path = path
        self.is_directory = is_directory
        self.event_type = event_type


def make_project(root):
    (root / "assets" / "css").mkdir(parents=True)
    (root / "assets" / "css" / "main.css").write_text('@import "base.css";', encoding="utf-8")
    (root / "assets" / "css" / "base.css").write_text("html{}", encoding="utf-8")
    (root / "kiln.yaml").write_text(
        "assets:\n  site_css:\n    inputs: css/main.css\n    filters: [cssimport]\n",
        encoding="utf-8",
    )
    return root


def recording_handler(watcher):
    calls = []
    watcher.rebuild = lambda force=False: calls.append(force)
    return _ChangeHandler(watcher), calls


def test_change_handler_skips_output_and_node_modules(tmp_path):
    watcher = AssetWatcher(tmp_path)
    handler, calls = recording_handler(watcher)

    handler.on_any_event(DummyEvent(str(watcher.output_dir / "site.css")))
    handler.on_any_event(DummyEvent(str(tmp_path / "node_modules" / "x" / "index.js")))
    handler.on_any_event(DummyEvent(str(tmp_path / "assets" / "css"), is_directory=True))
    assert calls == []

    handler.on_any_event(DummyEvent(str(tmp_path / "assets" / "css" / "main.css")))
    assert calls == [False]


def test_change_handler_forces_structural_changes(tmp_path):
    watcher = AssetWatcher(tmp_path)
    handler, calls = recording_handler(watcher)

    for event_type in ("created", "deleted", "moved"):
        handler.on_any_event(DummyEvent(str(tmp_path / "assets" / "new.js"), event_type=event_type))
    handler.on_any_event(DummyEvent(str(tmp_path / "kiln.yaml")))
    assert calls == [True, True, True, True]


def test_rebuild_guard(monkeypatch, tmp_path):
    watcher = AssetWatcher(tmp_path)
    watcher._debounce_seconds = 0.0
    calls = []

    def fake_build_assets(root, debug=None):
        calls.append("built")
        return BuildResult(written={}, output_dir=watcher.output_dir, manager=AssetManager())

    monkeypatch.setattr("kiln.watcher.build_assets", fake_build_assets)

    sigs = [("a",), ("a",), ("a",), ("b",), ("b",)]
    watcher._compute_signature = lambda: sigs.pop(0) if sigs else ("b",)

    watcher.build()  # remembers ("a",)
    watcher._rebuilding = True
    watcher.rebuild()  # skipped: already rebuilding
    watcher._rebuilding = False
    watcher.rebuild()  # skipped: same signature
    watcher.rebuild(force=True)  # forced
    watcher.rebuild()  # signature changed
    assert calls == ["built", "built", "built"]


def test_rebuild_tracks_imported_stylesheets(tmp_path):
    project = make_project(tmp_path)
    watcher = AssetWatcher(project)
    watcher._debounce_seconds = 0.0
    watcher.build()
    site = project / "output" / "site_css.css"
    assert site.read_text(encoding="utf-8") == "html{}"

    base = project / "assets" / "css" / "base.css"
    base.write_text("body{}", encoding="utf-8")
    later = os.path.getmtime(base) + 10
    os.utime(base, (later, later))

    watcher.rebuild()
    assert site.read_text(encoding="utf-8") == "body{}"


def test_rebuild_logs_build_errors(monkeypatch, tmp_path, caplog):
    watcher = AssetWatcher(tmp_path)
    watcher._debounce_seconds = 0.0

    def failing_build(root, debug=None):
        raise BuildError("site_css", "Missing file: main.css")

    monkeypatch.setattr("kiln.watcher.build_assets", failing_build)
    with caplog.at_level(logging.ERROR, logger="kiln.watcher"):
        watcher.rebuild(force=True)

    assert "site_css" in caplog.text
    assert "Missing file" in caplog.text
    assert watcher._rebuilding is False


def test_compute_signature(tmp_path):
    watcher = AssetWatcher(make_project(tmp_path))
    assert watcher._compute_signature() is None

    watcher.build()
    signature = watcher._compute_signature()
    assert signature[0][0] == "site_css"
    assert signature[0][1] is not None

    (tmp_path / "assets" / "css" / "main.css").unlink()
    assert watcher._compute_signature() == (("site_css", None),)
