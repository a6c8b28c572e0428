"""Release store contract consumed by the reconciler."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..engine.records import Channel, TrackedEntity, VersionRecord


class ReleaseStore(ABC):
    """Minimal document CRUD over tracked repositories."""

    @abstractmethod
    def find_all(self) -> list[TrackedEntity]:
        """Return every tracked repository."""

    @abstractmethod
    def find_one(self, owner: str, name: str) -> TrackedEntity | None:
        """Return one repository or ``None``."""

    @abstractmethod
    def push_to_channel(
        self, owner: str, name: str, channel: Channel, records: Sequence[VersionRecord]
    ) -> None:
        """Append records to the end of a channel."""

    @abstractmethod
    def replace_record_by_name(
        self, owner: str, name: str, channel: Channel, record_name: str, record: VersionRecord
    ) -> bool:
        """Replace the record called ``record_name`` in place; ``False`` if absent."""

    @abstractmethod
    def cap_channel(self, owner: str, name: str, channel: Channel, limit: int) -> None:
        """Keep only the ``limit`` most recently appended records."""

    @abstractmethod
    def add_entity(self, owner: str, name: str) -> bool:
        """Create an empty repository document; ``True`` if it did not exist."""

    @abstractmethod
    def add_watcher(self, owner: str, name: str, user_id: str) -> None:
        """Subscribe a user, creating the repository when needed."""

    @abstractmethod
    def remove_watcher(self, owner: str, name: str, user_id: str) -> None:
        """Unsubscribe a user; the repository itself is kept."""

    def find_by_watcher(self, user_id: str) -> list[TrackedEntity]:
        return [entity for entity in self.find_all() if user_id in entity.watched_users]

    def close(self) -> None:
        return


__all__ = ["ReleaseStore"]
