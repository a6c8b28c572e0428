"""MongoDB release store."""

from __future__ import annotations

from typing import Any, Sequence

from pymongo import ASCENDING, MongoClient

from ..engine.records import Channel, TrackedEntity, VersionRecord
from ..errors import StoreError
from .base import ReleaseStore

_PROJECTION = {"_id": 0}


class MongoReleaseStore(ReleaseStore):
    """Keep one document per repository in a MongoDB collection."""

    def __init__(
        self,
        uri: str,
        database: str,
        collection: str,
        client: MongoClient | None = None,
    ) -> None:
        self.client = client or MongoClient(uri)
        self.collection = self.client[database][collection]
        self.collection.create_index([("owner", ASCENDING), ("name", ASCENDING)], unique=True)

    @staticmethod
    def _key(owner: str, name: str) -> dict[str, Any]:
        return {"owner": owner, "name": name}

    def find_all(self) -> list[TrackedEntity]:
        return [TrackedEntity.from_document(doc) for doc in self.collection.find({}, _PROJECTION)]

    def find_one(self, owner: str, name: str) -> TrackedEntity | None:
        document = self.collection.find_one(self._key(owner, name), _PROJECTION)
        return TrackedEntity.from_document(document) if document else None

    def push_to_channel(
        self, owner: str, name: str, channel: Channel, records: Sequence[VersionRecord]
    ) -> None:
        if not records:
            return
        result = self.collection.update_one(
            self._key(owner, name),
            {"$push": {channel.value: {"$each": [record.to_document() for record in records]}}},
        )
        if result.matched_count == 0:
            raise StoreError(f"Unknown repository {owner}/{name}")

    def replace_record_by_name(
        self, owner: str, name: str, channel: Channel, record_name: str, record: VersionRecord
    ) -> bool:
        selector = self._key(owner, name)
        selector[f"{channel.value}.name"] = record_name
        result = self.collection.update_one(
            selector, {"$set": {f"{channel.value}.$": record.to_document()}}
        )
        return result.matched_count > 0

    def cap_channel(self, owner: str, name: str, channel: Channel, limit: int) -> None:
        selector = self._key(owner, name)
        selector[f"{channel.value}.{limit}"] = {"$exists": True}
        self.collection.update_one(
            selector, {"$push": {channel.value: {"$each": [], "$slice": -limit}}}
        )

    def add_entity(self, owner: str, name: str) -> bool:
        result = self.collection.update_one(
            self._key(owner, name),
            {"$setOnInsert": {"releases": [], "tags": [], "watchedUsers": []}},
            upsert=True,
        )
        return result.upserted_id is not None

    def add_watcher(self, owner: str, name: str, user_id: str) -> None:
        self.collection.update_one(
            self._key(owner, name),
            {
                "$addToSet": {"watchedUsers": user_id},
                "$setOnInsert": {"releases": [], "tags": []},
            },
            upsert=True,
        )

    def remove_watcher(self, owner: str, name: str, user_id: str) -> None:
        self.collection.update_one(self._key(owner, name), {"$pull": {"watchedUsers": user_id}})

    def find_by_watcher(self, user_id: str) -> list[TrackedEntity]:
        return [
            TrackedEntity.from_document(doc)
            for doc in self.collection.find({"watchedUsers": user_id}, _PROJECTION)
        ]

    def close(self) -> None:
        self.client.close()


__all__ = ["MongoReleaseStore"]
