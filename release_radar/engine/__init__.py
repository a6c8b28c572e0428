"""Engine components: fetch → diff."""

from .batch import BATCH_SIZE, BatchFetcher, split_batches
from .diff import changed_records, merge_tag_records, new_records, reconcile_entity
from .github_client import GitHubClient
from .records import (
    Channel,
    EntityChannelResult,
    EntityRef,
    EntityUpdate,
    FetchResult,
    TrackedEntity,
    VersionRecord,
)
from .thread_pool import WorkerPools

__all__ = [
    "BATCH_SIZE",
    "BatchFetcher",
    "Channel",
    "EntityChannelResult",
    "EntityRef",
    "EntityUpdate",
    "FetchResult",
    "GitHubClient",
    "TrackedEntity",
    "VersionRecord",
    "WorkerPools",
    "changed_records",
    "merge_tag_records",
    "new_records",
    "reconcile_entity",
    "split_batches",
]
