"""Pure comparison of stored version history against freshly fetched records."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .records import EntityUpdate, TrackedEntity, VersionRecord

RecordSeq = Optional[Iterable[Optional[VersionRecord]]]


def clean_records(records: RecordSeq) -> list[VersionRecord]:
    """Drop null and unnamed records, keeping the first occurrence of each name."""

    cleaned: list[VersionRecord] = []
    seen: set[str] = set()
    for record in records or ():
        if record is None or not record.name:
            continue
        if record.name in seen:
            continue
        seen.add(record.name)
        cleaned.append(record)
    return cleaned


def _index_by_name(records: RecordSeq) -> dict[str, VersionRecord]:
    return {record.name: record for record in clean_records(records)}


def new_records(old_channel: RecordSeq, incoming: RecordSeq) -> list[VersionRecord]:
    """Return incoming records whose name is not stored yet, in incoming order."""

    known = _index_by_name(old_channel)
    return [record for record in clean_records(incoming) if record.name not in known]


def changed_records(old_channel: RecordSeq, incoming: RecordSeq) -> list[VersionRecord]:
    """Return stored records whose description or prerelease flag moved.

    URL differences alone never count as a change.
    """

    known = _index_by_name(old_channel)
    changed: list[VersionRecord] = []
    for record in clean_records(incoming):
        previous = known.get(record.name)
        if previous is None:
            continue
        if (
            previous.description != record.description
            or previous.is_prerelease != record.is_prerelease
        ):
            changed.append(record)
    return changed


def merge_tag_records(
    releases: Sequence[VersionRecord], tags: Sequence[VersionRecord]
) -> list[VersionRecord]:
    """Fold new tags into the release list shown to subscribers.

    With fresh releases present the tags only fill in names the releases do not
    cover; without them the tags stand in for releases entirely.
    """

    if not releases:
        return list(tags)
    names = {record.name for record in releases}
    return list(releases) + [record for record in tags if record.name not in names]


def reconcile_entity(
    old_entity: TrackedEntity,
    releases: RecordSeq = None,
    tags: RecordSeq = None,
) -> EntityUpdate | None:
    """Diff both channels of one repository; ``None`` when nothing moved."""

    fresh_releases = new_records(old_entity.releases, releases)
    fresh_tags = new_records(old_entity.tags, tags)
    edited_releases = changed_records(old_entity.releases, releases)
    edited_tags = changed_records(old_entity.tags, tags)

    if not (fresh_releases or fresh_tags or edited_releases or edited_tags):
        return None

    payload = merge_tag_records(fresh_releases, fresh_tags)
    shown = {record.name for record in payload}
    for record in [*edited_releases, *edited_tags]:
        if record.name not in shown:
            shown.add(record.name)
            payload.append(record)

    return EntityUpdate(
        owner=old_entity.owner,
        name=old_entity.name,
        releases=payload,
        watched_users=list(old_entity.watched_users),
        new_releases=fresh_releases,
        new_tags=fresh_tags,
        changed_releases=edited_releases,
        changed_tags=edited_tags,
    )


__all__ = [
    "changed_records",
    "clean_records",
    "merge_tag_records",
    "new_records",
    "reconcile_entity",
]
