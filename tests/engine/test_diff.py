from __future__ import annotations

from release_radar.engine import TrackedEntity, VersionRecord
from release_radar.engine.diff import (
    changed_records,
    clean_records,
    merge_tag_records,
    new_records,
    reconcile_entity,
)


def test_new_records_keeps_incoming_order(make_record) -> None:
    old = [make_record("v1")]
    incoming = [make_record("v3"), make_record("v1"), make_record("v2")]
    assert [record.name for record in new_records(old, incoming)] == ["v3", "v2"]


def test_new_records_ignores_nulls_and_unnamed(make_record) -> None:
    old = [None, make_record("v1")]
    incoming = [None, VersionRecord(name=""), make_record("v2"), make_record("v1")]
    assert [record.name for record in new_records(old, incoming)] == ["v2"]
    assert new_records(None, None) == []


def test_new_records_collapses_duplicate_names(make_record) -> None:
    incoming = [make_record("v2", description="first"), make_record("v2", description="second")]
    result = new_records([], incoming)
    assert len(result) == 1
    assert result[0].description == "first"


def test_changed_records_detects_description_and_prerelease(make_record) -> None:
    old = [make_record("v1", description="old"), make_record("v2"), make_record("v3")]
    incoming = [
        make_record("v1", description="new"),
        make_record("v2", is_prerelease=True),
        make_record("v3"),
        make_record("v4", description="brand new"),
    ]
    assert [record.name for record in changed_records(old, incoming)] == ["v1", "v2"]


def test_changed_records_ignores_url_only_changes(make_record) -> None:
    old = [make_record("v1", url="https://old")]
    incoming = [make_record("v1", url="https://new")]
    assert changed_records(old, incoming) == []


def test_merge_tag_records_fills_missing_names(make_record) -> None:
    releases = [make_record("v2")]
    tags = [VersionRecord(name="v2"), VersionRecord(name="v2.1")]
    merged = merge_tag_records(releases, tags)
    assert [record.name for record in merged] == ["v2", "v2.1"]
    assert merged[0].url == releases[0].url
    assert merge_tag_records([], tags) == tags


def test_reconcile_entity_returns_none_when_nothing_moved(make_record) -> None:
    entity = TrackedEntity("acme", "widget", releases=[make_record("v1")], tags=[VersionRecord("v1")])
    assert reconcile_entity(entity, [make_record("v1")], [VersionRecord("v1")]) is None
    assert reconcile_entity(entity) is None


def test_reconcile_entity_splits_channels(make_record) -> None:
    entity = TrackedEntity(
        "acme",
        "widget",
        releases=[make_record("v1", description="old")],
        watched_users=["42"],
    )
    update = reconcile_entity(
        entity,
        releases=[make_record("v1", description="new"), make_record("v2")],
        tags=[VersionRecord("v2"), VersionRecord("v2-hotfix")],
    )
    assert update is not None
    assert [r.name for r in update.new_releases] == ["v2"]
    assert [r.name for r in update.new_tags] == ["v2", "v2-hotfix"]
    assert [r.name for r in update.changed_releases] == ["v1"]
    assert [r.name for r in update.releases] == ["v2", "v2-hotfix", "v1"]
    assert update.watched_users == ["42"]


def test_reconcile_entity_tag_only_update_is_shown_as_release() -> None:
    entity = TrackedEntity("acme", "widget", tags=[VersionRecord("v1")])
    update = reconcile_entity(entity, releases=[], tags=[VersionRecord("v1"), VersionRecord("v1.1")])
    assert update is not None
    assert [r.name for r in update.releases] == ["v1.1"]
    assert update.new_releases == []


def test_reconcile_twice_is_idempotent(make_record) -> None:
    entity = TrackedEntity("acme", "widget")
    incoming = [make_record("v1"), make_record("v2")]
    first = reconcile_entity(entity, incoming)
    assert first is not None
    entity.releases.extend(first.new_releases)
    assert reconcile_entity(entity, incoming) is None


def test_clean_records_drops_noise(make_record) -> None:
    cleaned = clean_records([None, VersionRecord(""), make_record("a"), make_record("a")])
    assert [record.name for record in cleaned] == ["a"]


def test_changed_tag_alone_is_part_of_payload() -> None:
    entity = TrackedEntity("acme", "widget", tags=[VersionRecord("v1")], watched_users=["9"])
    update = reconcile_entity(entity, tags=[VersionRecord("v1", description="retagged")])
    assert update is not None
    assert update.new_releases == [] and update.new_tags == []
    assert [r.name for r in update.changed_tags] == ["v1"]
    assert [r.description for r in update.releases] == ["retagged"]


def test_changed_release_and_tag_with_same_name_appear_once(make_record) -> None:
    entity = TrackedEntity(
        "acme", "widget", releases=[make_record("v1")], tags=[VersionRecord("v1")]
    )
    update = reconcile_entity(
        entity,
        releases=[make_record("v1", is_prerelease=True)],
        tags=[VersionRecord("v1", description="moved")],
    )
    assert update is not None
    assert [r.name for r in update.releases] == ["v1"]
    assert update.releases[0].is_prerelease is True
