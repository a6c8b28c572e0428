"""Batched release/tag fetching against the aggregated GraphQL endpoint."""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

import structlog

from .github_client import build_batch_query, parse_releases, parse_tags, release_alias, tag_alias
from .records import EntityChannelResult, EntityRef, FetchResult
from .thread_pool import WorkerPools

BATCH_SIZE = 50


class QueryTransport(Protocol):
    def query(self, text: str) -> dict[str, Any]:
        ...


@dataclass(slots=True)
class BatchOutcome:
    """Result of one aggregated request."""

    refs: list[EntityRef]
    releases: list[EntityChannelResult]
    tags: list[EntityChannelResult]
    error: str | None = None


def split_batches(entities: Sequence[EntityRef], batch_size: int) -> list[list[EntityRef]]:
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return [list(entities[start : start + batch_size]) for start in range(0, len(entities), batch_size)]


class BatchFetcher:
    """Split tracked repositories into bounded batches and fetch them concurrently."""

    def __init__(
        self,
        transport: QueryTransport,
        pools: WorkerPools,
        batch_size: int = BATCH_SIZE,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.transport = transport
        self.pools = pools
        self.batch_size = batch_size
        self.logger = logger or structlog.get_logger("release_radar").bind(component="batch_fetcher")

    def fetch_many(self, entities: Sequence[EntityRef], per_entity_count: int) -> FetchResult:
        batches = split_batches(entities, self.batch_size)
        if not batches:
            return FetchResult()

        executor = self.pools.fetch
        futures: list[Future[BatchOutcome]] = [
            executor.submit(self._fetch_batch, index, batch, per_entity_count)
            for index, batch in enumerate(batches)
        ]

        # Futures are read in submission order so the output follows the input.
        result = FetchResult()
        for future in futures:
            outcome = future.result()
            result.releases.extend(outcome.releases)
            result.tags.extend(outcome.tags)
            if outcome.error is not None:
                result.failed.extend(outcome.refs)

        self.logger.info(
            "fetch_completed",
            entities=len(entities),
            batches=len(batches),
            releases=len(result.releases),
            tags=len(result.tags),
            failed=len(result.failed),
        )
        return result

    def _fetch_batch(self, index: int, refs: list[EntityRef], count: int) -> BatchOutcome:
        try:
            data = self.transport.query(build_batch_query(refs, count))
        except Exception as exc:  # noqa: BLE001
            self.logger.error("batch_failed", batch=index, size=len(refs), error=str(exc))
            return BatchOutcome(refs=refs, releases=[], tags=[], error=str(exc))

        releases: list[EntityChannelResult] = []
        tags: list[EntityChannelResult] = []
        for position, ref in enumerate(refs):
            release_records = parse_releases(data.get(release_alias(position)))
            if release_records:
                releases.append(EntityChannelResult(ref=ref, records=release_records))
            tag_records = parse_tags(data.get(tag_alias(position)))
            if tag_records:
                tags.append(EntityChannelResult(ref=ref, records=tag_records))
        return BatchOutcome(refs=refs, releases=releases, tags=tags)


__all__ = ["BATCH_SIZE", "BatchFetcher", "BatchOutcome", "QueryTransport", "split_batches"]
