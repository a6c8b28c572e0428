"""Value types shared by the fetch, diff and persistence layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Channel(str, Enum):
    """Independent version streams tracked per repository."""

    RELEASES = "releases"
    TAGS = "tags"


@dataclass(frozen=True, slots=True)
class EntityRef:
    """Repository key, compared case-sensitively."""

    owner: str
    name: str

    @classmethod
    def parse(cls, full_name: str) -> "EntityRef":
        owner, sep, name = full_name.strip().partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"Expected OWNER/NAME, got {full_name!r}")
        return cls(owner, name)

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True, slots=True)
class VersionRecord:
    """One release or tag; ``name`` identifies it within its channel."""

    name: str
    url: str = ""
    description: str = ""
    is_prerelease: bool = False

    def to_document(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "isPrerelease": self.is_prerelease,
        }

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "VersionRecord":
        return cls(
            name=document.get("name") or "",
            url=document.get("url") or "",
            description=document.get("description") or "",
            is_prerelease=bool(document.get("isPrerelease", False)),
        )


@dataclass(slots=True)
class TrackedEntity:
    """Persisted state of a watched repository."""

    owner: str
    name: str
    releases: list[VersionRecord] = field(default_factory=list)
    tags: list[VersionRecord] = field(default_factory=list)
    watched_users: list[str] = field(default_factory=list)

    @property
    def ref(self) -> EntityRef:
        return EntityRef(self.owner, self.name)

    def channel(self, channel: Channel) -> list[VersionRecord]:
        return self.releases if channel is Channel.RELEASES else self.tags

    def to_document(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "name": self.name,
            "releases": [record.to_document() for record in self.releases],
            "tags": [record.to_document() for record in self.tags],
            "watchedUsers": list(self.watched_users),
        }

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "TrackedEntity":
        return cls(
            owner=document["owner"],
            name=document["name"],
            releases=[VersionRecord.from_document(item) for item in document.get("releases") or [] if item],
            tags=[VersionRecord.from_document(item) for item in document.get("tags") or [] if item],
            watched_users=[str(user) for user in document.get("watchedUsers") or []],
        )


@dataclass(slots=True)
class EntityChannelResult:
    """Records fetched for one repository on one channel."""

    ref: EntityRef
    records: list[VersionRecord]


@dataclass(slots=True)
class FetchResult:
    """Reassembled output of a batched fetch, in input order."""

    releases: list[EntityChannelResult] = field(default_factory=list)
    tags: list[EntityChannelResult] = field(default_factory=list)
    failed: list[EntityRef] = field(default_factory=list)


@dataclass(slots=True)
class EntityUpdate:
    """Notification payload plus the per-channel mutations behind it."""

    owner: str
    name: str
    releases: list[VersionRecord]
    watched_users: list[str]
    new_releases: list[VersionRecord] = field(default_factory=list)
    new_tags: list[VersionRecord] = field(default_factory=list)
    changed_releases: list[VersionRecord] = field(default_factory=list)
    changed_tags: list[VersionRecord] = field(default_factory=list)

    @property
    def ref(self) -> EntityRef:
        return EntityRef(self.owner, self.name)

    def new_for(self, channel: Channel) -> list[VersionRecord]:
        return self.new_releases if channel is Channel.RELEASES else self.new_tags

    def changed_for(self, channel: Channel) -> list[VersionRecord]:
        return self.changed_releases if channel is Channel.RELEASES else self.changed_tags


__all__ = [
    "Channel",
    "EntityChannelResult",
    "EntityRef",
    "EntityUpdate",
    "FetchResult",
    "TrackedEntity",
    "VersionRecord",
]
