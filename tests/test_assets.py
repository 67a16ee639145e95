import os

import pytest
import requests

from kiln.assets import FileAsset, HttpAsset, StringAsset
from kiln.filters import BaseFilter, CallablesFilter
from kiln.protocols import Asset
from kiln.var_utils import VariableResolutionError


def append(text):
    def filter(asset):
        asset.set_content(asset.content + text)

    return filter


def test_string_asset_load_and_dump():
    asset = StringAsset(
        "body", [CallablesFilter(load=append("-loaded"), dump=append("-dumped"))]
    )
    assert asset.content is None
    asset.load()
    assert asset.content == "body-loaded"
    assert asset.dump() == "body-loaded-dumped"
    # dump does not persist into stored content
    assert asset.content == "body-loaded"


def test_dump_loads_on_demand_and_is_deterministic():
    asset = StringAsset("x", [CallablesFilter(load=append("L"), dump=append("D"))])
    first = asset.dump()
    second = asset.dump()
    assert first == second == "xLD"


def test_additional_filter_is_one_off():
    asset = StringAsset("a")
    asset.load(CallablesFilter(load=append("+extra")))
    assert asset.content == "a+extra"
    assert asset.dump(CallablesFilter(dump=append("!"))) == "a+extra!"
    assert asset.dump() == "a+extra"
    assert len(asset.get_filters()) == 0


def test_failing_load_filter_leaves_asset_unloaded():
    def boom(asset):
        asset.set_content("partial")
        raise RuntimeError("boom")

    asset = StringAsset("a", [CallablesFilter(load=boom)])
    with pytest.raises(RuntimeError):
        asset.load()
    assert asset.content is None


def test_ensure_and_clear_filters():
    asset = StringAsset("a")
    f = BaseFilter()
    asset.ensure_filter(f)
    asset.ensure_filter(f)
    assert asset.get_filters().all() == [f]
    asset.clear_filters()
    assert len(asset.get_filters()) == 0


def test_clone_is_independent():
    asset = StringAsset("a", [BaseFilter()])
    asset.load()
    clone = asset.clone()
    clone.ensure_filter(BaseFilter())
    clone.set_content("changed")
    assert len(asset.get_filters()) == 1
    assert asset.content == "a"
    assert clone.content == "changed"


def test_string_asset_last_modified():
    asset = StringAsset("a", last_modified=100.0)
    assert asset.get_last_modified() == 100.0
    asset.set_last_modified(200.0)
    assert asset.get_last_modified() == 200.0


def test_asset_satisfies_protocol():
    assert isinstance(StringAsset("a"), Asset)


def test_file_asset_paths(tmp_path):
    css = tmp_path / "css" / "main.css"
    css.parent.mkdir()
    css.write_text("a{}", encoding="utf-8")

    asset = FileAsset(str(css))
    assert asset.source_root == str(css.parent)
    assert asset.source_path == "main.css"
    assert asset.source_directory == str(css.parent)

    rooted = FileAsset(str(css), source_root=str(tmp_path))
    assert rooted.source_root == str(tmp_path)
    assert rooted.source_path == "css/main.css"
    assert rooted.source_directory == str(css.parent)


def test_file_asset_outside_root(tmp_path):
    with pytest.raises(ValueError):
        FileAsset("/elsewhere/main.css", source_root=str(tmp_path))


def test_file_asset_in_sibling_directory_with_common_prefix(tmp_path):
    with pytest.raises(ValueError):
        FileAsset(str(tmp_path / "ab" / "x.css"), source_root=str(tmp_path / "a"))


def test_file_asset_load_and_last_modified(tmp_path):
    js = tmp_path / "app.js"
    js.write_text("var a = 1;", encoding="utf-8")
    os.utime(js, (1_000_000, 1_000_000))

    asset = FileAsset(str(js))
    asset.load()
    assert asset.content == "var a = 1;"
    assert asset.get_last_modified() == 1_000_000


def test_file_asset_missing(tmp_path):
    asset = FileAsset(str(tmp_path / "missing.js"))
    with pytest.raises(FileNotFoundError):
        asset.load()
    with pytest.raises(FileNotFoundError):
        asset.get_last_modified()


def test_file_asset_variables(tmp_path):
    (tmp_path / "en.js").write_text("hello", encoding="utf-8")
    (tmp_path / "de.js").write_text("hallo", encoding="utf-8")

    asset = FileAsset(str(tmp_path / "{locale}.js"), vars={"locale": "en"})
    assert asset.dump() == "hello"
    asset.set_values({"locale": "de"})
    assert asset.dump() == "hallo"


def test_file_asset_variable_without_value(tmp_path):
    asset = FileAsset(str(tmp_path / "{locale}.js"), vars={"locale": None})
    with pytest.raises(VariableResolutionError):
        asset.load()


def test_set_values_rejects_undeclared():
    asset = StringAsset("a")
    with pytest.raises(ValueError):
        asset.set_values({"locale": "en"})


def test_set_target_path_rejects_undeclared_vars(tmp_path):
    asset = FileAsset(str(tmp_path / "a.js"), vars={"locale": "en"})
    asset.set_target_path("js/a.{locale}.js")
    assert asset.target_path == "js/a.{locale}.js"
    with pytest.raises(ValueError):
        asset.set_target_path("js/a.{theme}.js")


class FakeResponse:
    def __init__(self, text="", status=200, headers=None):
        self.text = text
        self.status_code = status
        self.headers = headers or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_http_asset_locations():
    asset = HttpAsset("https://cdn.example.com/css/site.css")
    assert asset.source_root == "https://cdn.example.com"
    assert asset.source_path == "css/site.css"

    relative = HttpAsset("//cdn.example.com/site.css")
    assert relative.source_url == "http://cdn.example.com/site.css"

    with pytest.raises(ValueError):
        HttpAsset("css/site.css")


def test_http_asset_load(monkeypatch):
    calls = {}

    def fake_get(url, timeout=None):
        calls["url"] = url
        return FakeResponse(".remote{}")

    monkeypatch.setattr("kiln.assets.requests.get", fake_get)
    asset = HttpAsset("https://cdn.example.com/site.css")
    asset.load()
    assert asset.content == ".remote{}"
    assert calls["url"] == "https://cdn.example.com/site.css"


def test_http_asset_errors(monkeypatch):
    monkeypatch.setattr(
        "kiln.assets.requests.get", lambda url, timeout=None: FakeResponse(status=404)
    )
    with pytest.raises(requests.HTTPError):
        HttpAsset("https://cdn.example.com/missing.css").load()

    ignoring = HttpAsset("https://cdn.example.com/missing.css", ignore_errors=True)
    ignoring.load()
    assert ignoring.content == ""


def test_http_asset_last_modified(monkeypatch):
    headers = {"Last-Modified": "Wed, 21 Oct 2015 07:28:00 GMT"}
    monkeypatch.setattr(
        "kiln.assets.requests.head",
        lambda url, allow_redirects=True, timeout=None: FakeResponse(headers=headers),
    )
    asset = HttpAsset("https://cdn.example.com/site.css")
    assert asset.get_last_modified() == 1445412480.0

    monkeypatch.setattr(
        "kiln.assets.requests.head",
        lambda url, allow_redirects=True, timeout=None: FakeResponse(),
    )
    assert asset.get_last_modified() is None


def test_http_asset_last_modified_ignoring_errors(monkeypatch):
    def failing_head(url, allow_redirects=True, timeout=None):
        raise requests.ConnectionError("down")

    monkeypatch.setattr("kiln.assets.requests.head", failing_head)
    assert HttpAsset("https://x.test/a.css", ignore_errors=True).get_last_modified() is None
    with pytest.raises(requests.ConnectionError):
        HttpAsset("https://x.test/a.css").get_last_modified()


def test_http_asset_malformed_last_modified(monkeypatch):
    monkeypatch.setattr(
        "kiln.assets.requests.head",
        lambda url, allow_redirects=True, timeout=None: FakeResponse(
            headers={"Last-Modified": "not a date"}
        ),
    )
    assert HttpAsset("https://cdn.example.com/site.css").get_last_modified() is None
