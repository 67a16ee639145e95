import pytest

from kiln.assets import StringAsset
from kiln.filters import (
    BaseFilter,
    CallablesFilter,
    FilterCollection,
    FilterManager,
    FilterNotFoundError,
    JSMinFilter,
)
from kiln.protocols import Filter


class RecordingFilter(BaseFilter):
    def __init__(self, name, log):
        self.name = name
        self.log = log

    def filter_load(self, asset):
        self.log.append(("load", self.name))

    def filter_dump(self, asset):
        self.log.append(("dump", self.name))


def test_filter_collection_dedupes_by_identity():
    first = BaseFilter()
    second = BaseFilter()
    collection = FilterCollection([first, second, first])
    assert collection.all() == [first, second]
    collection.ensure(second)
    assert len(collection) == 2


def test_filter_collection_flattens_nested_collections():
    a, b, c = BaseFilter(), BaseFilter(), BaseFilter()
    collection = FilterCollection([a])
    collection.ensure(FilterCollection([b, a, c]))
    assert collection.all() == [a, b, c]


def test_filter_collection_runs_in_order():
    log = []
    collection = FilterCollection([RecordingFilter("one", log), RecordingFilter("two", log)])
    asset = StringAsset("")
    collection.filter_load(asset)
    collection.filter_dump(asset)
    assert log == [("load", "one"), ("load", "two"), ("dump", "one"), ("dump", "two")]


def test_filter_collection_clone_is_independent():
    original = FilterCollection([BaseFilter()])
    clone = original.clone()
    clone.ensure(BaseFilter())
    assert len(original) == 1
    assert len(clone) == 2
    clone.clear()
    assert len(original) == 1


def test_callables_filter():
    def shout(asset):
        asset.set_content(asset.content.upper())

    def bang(asset):
        asset.set_content(asset.content + "!")

    asset = StringAsset("hi", [CallablesFilter(load=shout, dump=bang)])
    asset.load()
    assert asset.content == "HI"
    assert asset.dump() == "HI!"
    assert isinstance(CallablesFilter(), Filter)


def test_jsmin_filter():
    asset = StringAsset("function test(){ return 1 + 1; }", [JSMinFilter()])
    assert asset.dump().strip() == "function test(){return 1+1;}"
    # minification happens at dump time only
    assert asset.content == "function test(){ return 1 + 1; }"


def test_jsmin_keeps_bang_comments():
    source = "/*! license */\nvar a = 1;"
    assert "license" in StringAsset(source, [JSMinFilter(keep_bang_comments=True)]).dump()
    assert "license" not in StringAsset(source, [JSMinFilter()]).dump()


def test_filter_manager():
    manager = FilterManager()
    jsmin = JSMinFilter()
    manager.set("jsmin", jsmin)
    assert manager.has("jsmin")
    assert manager.get("jsmin") is jsmin
    assert manager.names() == ["jsmin"]

    with pytest.raises(FilterNotFoundError) as exc_info:
        manager.get("missing")
    assert isinstance(exc_info.value, LookupError)
    assert exc_info.value.alias == "missing"

    with pytest.raises(ValueError):
        manager.set("bad-alias", jsmin)
