from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from release_radar.engine import Channel, VersionRecord
from release_radar.errors import StoreError
from release_radar.store import MongoReleaseStore


@pytest.fixture
def mongo():
    client = MagicMock()
    store = MongoReleaseStore("mongodb://unused", "radar", "repos", client=client)
    return store, store.collection


def test_store_creates_unique_index(mongo) -> None:
    _, collection = mongo
    collection.create_index.assert_called_once_with([("owner", 1), ("name", 1)], unique=True)


def test_find_all_maps_documents(mongo) -> None:
    store, collection = mongo
    collection.find.return_value = [
        {
            "owner": "acme",
            "name": "widget",
            "releases": [{"name": "v1", "url": "u", "description": "d", "isPrerelease": True}],
            "tags": [None, {"name": "v1"}],
            "watchedUsers": [7],
        }
    ]
    entities = store.find_all()
    assert entities[0].releases == [VersionRecord("v1", "u", "d", True)]
    assert [t.name for t in entities[0].tags] == ["v1"]
    assert entities[0].watched_users == ["7"]
    collection.find.assert_called_once_with({}, {"_id": 0})


def test_push_uses_each(mongo) -> None:
    store, collection = mongo
    collection.update_one.return_value = SimpleNamespace(matched_count=1)
    store.push_to_channel("acme", "widget", Channel.RELEASES, [VersionRecord("v2", "u")])
    collection.update_one.assert_called_once_with(
        {"owner": "acme", "name": "widget"},
        {
            "$push": {
                "releases": {
                    "$each": [{"name": "v2", "url": "u", "description": "", "isPrerelease": False}]
                }
            }
        },
    )


def test_push_to_missing_document_raises(mongo) -> None:
    store, collection = mongo
    collection.update_one.return_value = SimpleNamespace(matched_count=0)
    with pytest.raises(StoreError):
        store.push_to_channel("acme", "ghost", Channel.TAGS, [VersionRecord("v1")])


def test_push_nothing_skips_write(mongo) -> None:
    store, collection = mongo
    store.push_to_channel("acme", "widget", Channel.TAGS, [])
    collection.update_one.assert_not_called()


def test_replace_uses_positional_operator(mongo) -> None:
    store, collection = mongo
    collection.update_one.return_value = SimpleNamespace(matched_count=1)
    record = VersionRecord("v1", "u", "new", False)
    assert store.replace_record_by_name("acme", "widget", Channel.RELEASES, "v1", record) is True
    collection.update_one.assert_called_once_with(
        {"owner": "acme", "name": "widget", "releases.name": "v1"},
        {"$set": {"releases.$": record.to_document()}},
    )


def test_cap_channel_slices_only_oversized(mongo) -> None:
    store, collection = mongo
    store.cap_channel("acme", "widget", Channel.TAGS, 5)
    collection.update_one.assert_called_once_with(
        {"owner": "acme", "name": "widget", "tags.5": {"$exists": True}},
        {"$push": {"tags": {"$each": [], "$slice": -5}}},
    )


def test_watchers_use_set_operators(mongo) -> None:
    store, collection = mongo
    store.add_watcher("acme", "widget", "42")
    store.remove_watcher("acme", "widget", "42")
    add_call, remove_call = collection.update_one.call_args_list
    assert add_call.args[1]["$addToSet"] == {"watchedUsers": "42"}
    assert add_call.kwargs == {"upsert": True}
    assert remove_call.args[1] == {"$pull": {"watchedUsers": "42"}}


def test_add_entity_reports_creation(mongo) -> None:
    store, collection = mongo
    collection.update_one.return_value = SimpleNamespace(upserted_id="abc")
    assert store.add_entity("acme", "widget") is True
    collection.update_one.return_value = SimpleNamespace(upserted_id=None)
    assert store.add_entity("acme", "widget") is False


def test_find_by_watcher_queries_subscription_array(mongo) -> None:
    store, collection = mongo
    collection.find.return_value = [{"owner": "acme", "name": "widget", "watchedUsers": ["42"]}]
    entities = store.find_by_watcher("42")
    assert [(e.owner, e.name) for e in entities] == [("acme", "widget")]
    collection.find.assert_called_once_with({"watchedUsers": "42"}, {"_id": 0})
