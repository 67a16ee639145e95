import pytest

from kiln.assets import FileAsset, StringAsset
from kiln.manager import AssetManager
from kiln.var_utils import VariableResolutionError
from kiln.writer import AssetWriter


def test_write_asset_creates_directories(tmp_path):
    asset = StringAsset("body{}")
    asset.set_target_path("css/deep/site.css")

    written = AssetWriter(tmp_path / "out").write_asset(asset)
    target = tmp_path / "out" / "css" / "deep" / "site.css"
    assert written == [target]
    assert target.read_text(encoding="utf-8") == "body{}"


def test_write_asset_requires_target_path(tmp_path):
    with pytest.raises(ValueError):
        AssetWriter(tmp_path).write_asset(StringAsset("x"))


def test_write_asset_for_each_combination(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "en.js").write_text("hello", encoding="utf-8")
    (src / "de.js").write_text("hallo", encoding="utf-8")

    asset = FileAsset(str(src / "{locale}.js"), vars={"locale": "en"})
    asset.set_target_path("js/messages.{locale}.js")

    writer = AssetWriter(tmp_path / "out", {"locale": ["en", "de"]})
    written = writer.write_asset(asset)

    assert [path.name for path in written] == ["messages.en.js", "messages.de.js"]
    assert (tmp_path / "out/js/messages.en.js").read_text(encoding="utf-8") == "hello"
    assert (tmp_path / "out/js/messages.de.js").read_text(encoding="utf-8") == "hallo"


def test_write_asset_uses_defaults(tmp_path):
    (tmp_path / "en.js").write_text("hello", encoding="utf-8")
    asset = FileAsset(str(tmp_path / "{locale}.js"), vars={"locale": "en"})
    asset.set_target_path("messages.{locale}.js")

    written = AssetWriter(tmp_path / "out").write_asset(asset)
    assert [path.name for path in written] == ["messages.en.js"]


def test_write_asset_without_values_or_default(tmp_path):
    asset = FileAsset(str(tmp_path / "{locale}.js"), vars={"locale": None})
    asset.set_target_path("messages.{locale}.js")
    with pytest.raises(VariableResolutionError):
        AssetWriter(tmp_path / "out").write_asset(asset)


def test_write_manager_assets(tmp_path):
    manager = AssetManager()
    for name, content in (("site", "a{}"), ("app", "var a;")):
        asset = StringAsset(content)
        asset.set_target_path(f"{name}.txt")
        manager.set(name, asset)

    written = AssetWriter(tmp_path).write_manager_assets(manager)
    assert written == {"site": [tmp_path / "site.txt"], "app": [tmp_path / "app.txt"]}
    assert (tmp_path / "app.txt").read_text(encoding="utf-8") == "var a;"
