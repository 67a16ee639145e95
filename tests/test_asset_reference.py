import pytest

from kiln.asset_reference import AssetReference
from kiln.assets import StringAsset
from kiln.filters import BaseFilter, CallablesFilter
from kiln.manager import AssetManager, AssetNotFoundError
from kiln.protocols import Asset


def suffix(text):
    def filter(asset):
        asset.set_content(asset.content + text)

    return filter


@pytest.fixture
def manager():
    manager = AssetManager()
    manager.set("main", StringAsset("main", source_root="/src", source_path="main.css"))
    return manager


def test_manager_registry(manager):
    assert manager.has("main")
    assert "main" in manager
    assert manager.names() == ["main"]
    assert len(manager) == 1

    with pytest.raises(AssetNotFoundError) as exc_info:
        manager.get("other")
    assert exc_info.value.name == "other"
    assert str(exc_info.value) == "There is no 'other' asset."

    with pytest.raises(ValueError):
        manager.set("no-dashes", StringAsset(""))

    manager.clear()
    assert len(manager) == 0


def test_reference_resolves_lazily(manager):
    reference = AssetReference(manager, "main")
    assert reference.resolved is False
    assert reference.source_path == "main.css"
    assert reference.resolved is True
    assert reference.dump() == "main"
    assert isinstance(reference, Asset)


def test_missing_reference_fails_on_use():
    reference = AssetReference(AssetManager(), "missing")
    with pytest.raises(AssetNotFoundError):
        reference.dump()


def test_pending_filters_flush_once_in_order(manager):
    reference = AssetReference(manager, "main")
    first = CallablesFilter(dump=suffix("-1"))
    second = CallablesFilter(dump=suffix("-2"))
    reference.ensure_filter(first)
    reference.ensure_filter(second)

    assert reference.dump() == "main-1-2"
    assert reference.get_filters().all() == [first, second]
    assert reference.dump() == "main-1-2"
    assert manager.get("main").get_filters().all() == [first, second]


def test_clear_filters_drops_pending(manager):
    reference = AssetReference(manager, "main")
    reference.ensure_filter(BaseFilter())
    reference.clear_filters()
    assert len(reference.get_filters()) == 0


def test_unresolved_clone_gets_its_own_asset(manager):
    reference = AssetReference(manager, "main")
    reference.ensure_filter(CallablesFilter(dump=suffix("!")))
    clone = reference.clone()

    clone.ensure_filter(CallablesFilter(dump=suffix("?")))
    assert clone.dump() == "main!?"
    assert reference.dump() == "main!"
    assert clone.get_filters() is not reference.get_filters()


def test_resolved_clone_copies_asset(manager):
    reference = AssetReference(manager, "main")
    reference.load()
    clone = reference.clone()
    assert clone.resolved is True

    clone.set_content("changed")
    assert reference.content == "main"
    assert manager.get("main").content == "main"


def test_reference_delegates_state(manager):
    reference = AssetReference(manager, "main")
    reference.set_target_path("css/main.css")
    assert manager.get("main").target_path == "css/main.css"
    assert reference.vars == {}
    assert reference.get_last_modified() is None
