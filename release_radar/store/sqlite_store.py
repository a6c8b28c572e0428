"""Store repository documents as JSON blobs in SQLite."""

from __future__ import annotations

import json
from pathlib import Path
from threading import Lock
from typing import Callable, Sequence

from ..engine.records import Channel, TrackedEntity, VersionRecord
from ..errors import StoreError
from .base import ReleaseStore
from .storage import SQLiteManager


class SQLiteReleaseStore(ReleaseStore):
    """Document-style store backed by a single SQLite table."""

    def __init__(self, manager: SQLiteManager, path: Path) -> None:
        self.manager = manager
        self.path = path
        self._conn = manager.connect(path)
        self._lock = Lock()

    def _load(self, owner: str, name: str) -> TrackedEntity | None:
        row = self._conn.execute(
            "SELECT document FROM repos WHERE owner = ? AND name = ?", (owner, name)
        ).fetchone()
        return TrackedEntity.from_document(json.loads(row["document"])) if row else None

    def _save(self, entity: TrackedEntity) -> None:
        self._conn.execute(
            "INSERT INTO repos(owner, name, document) VALUES (?, ?, ?) "
            "ON CONFLICT(owner, name) DO UPDATE SET document = excluded.document",
            (entity.owner, entity.name, json.dumps(entity.to_document(), ensure_ascii=False)),
        )
        self._conn.commit()

    def _mutate(self, owner: str, name: str, change: Callable[[TrackedEntity], bool]) -> bool:
        with self._lock:
            entity = self._load(owner, name)
            if entity is None:
                raise StoreError(f"Unknown repository {owner}/{name}")
            changed = change(entity)
            if changed:
                self._save(entity)
            return changed

    def find_all(self) -> list[TrackedEntity]:
        with self._lock:
            rows = self._conn.execute("SELECT document FROM repos ORDER BY rowid").fetchall()
        return [TrackedEntity.from_document(json.loads(row["document"])) for row in rows]

    def find_one(self, owner: str, name: str) -> TrackedEntity | None:
        with self._lock:
            return self._load(owner, name)

    def push_to_channel(
        self, owner: str, name: str, channel: Channel, records: Sequence[VersionRecord]
    ) -> None:
        if not records:
            return

        def _push(entity: TrackedEntity) -> bool:
            entity.channel(channel).extend(records)
            return True

        self._mutate(owner, name, _push)

    def replace_record_by_name(
        self, owner: str, name: str, channel: Channel, record_name: str, record: VersionRecord
    ) -> bool:
        def _replace(entity: TrackedEntity) -> bool:
            stored = entity.channel(channel)
            for index, existing in enumerate(stored):
                if existing.name == record_name:
                    stored[index] = record
                    return True
            return False

        try:
            return self._mutate(owner, name, _replace)
        except StoreError:
            return False

    def cap_channel(self, owner: str, name: str, channel: Channel, limit: int) -> None:
        def _cap(entity: TrackedEntity) -> bool:
            stored = entity.channel(channel)
            if len(stored) <= limit:
                return False
            del stored[: len(stored) - limit]
            return True

        self._mutate(owner, name, _cap)

    def add_entity(self, owner: str, name: str) -> bool:
        with self._lock:
            if self._load(owner, name) is not None:
                return False
            self._save(TrackedEntity(owner=owner, name=name))
            return True

    def add_watcher(self, owner: str, name: str, user_id: str) -> None:
        with self._lock:
            entity = self._load(owner, name) or TrackedEntity(owner=owner, name=name)
            if user_id not in entity.watched_users:
                entity.watched_users.append(user_id)
            self._save(entity)

    def remove_watcher(self, owner: str, name: str, user_id: str) -> None:
        with self._lock:
            entity = self._load(owner, name)
            if entity is None or user_id not in entity.watched_users:
                return
            entity.watched_users.remove(user_id)
            self._save(entity)

    def close(self) -> None:
        with self._lock:
            self._conn.commit()
            self.manager.close(self.path)


__all__ = ["SQLiteReleaseStore"]
