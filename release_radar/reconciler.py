"""Reconciliation cycle wiring together history capping, fetching, diffing and persistence."""

from __future__ import annotations

import time
from concurrent.futures import Future
from typing import Mapping

import structlog

from .config import PollingConfig
from .engine import BatchFetcher, GitHubClient, WorkerPools
from .engine.diff import reconcile_entity
from .engine.records import Channel, EntityRef, EntityUpdate, FetchResult, TrackedEntity
from .logging_conf import configure_logging
from .store import ReleaseStore


class Reconciler:
    """Merge fetched releases into the store and report what changed."""

    def __init__(
        self,
        store: ReleaseStore,
        fetcher: BatchFetcher,
        pools: WorkerPools,
        polling: PollingConfig,
        github: GitHubClient | None = None,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.pools = pools
        self.polling = polling
        self.github = github
        self.logger = configure_logging().bind(component="reconciler")

    # ------------------------------------------------------------------
    # Periodic cycle
    # ------------------------------------------------------------------
    def run_cycle(self) -> list[EntityUpdate]:
        """One scheduler tick: cap, fetch, reconcile. Never raises."""

        started = time.monotonic()
        try:
            refs = [entity.ref for entity in self.cap_history()]
            incoming = self.fetcher.fetch_many(refs, self.polling.per_entity_count)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("cycle_aborted", error=str(exc))
            return []

        if incoming.releases or incoming.tags:
            self.logger.info(
                "upstream_records_received",
                releases=len(incoming.releases),
                tags=len(incoming.tags),
            )
        updates = self.reconcile_and_persist(incoming)
        self.logger.info(
            "cycle_completed",
            tracked=len(refs),
            failed=len(incoming.failed),
            updates=len(updates),
            elapsed=round(time.monotonic() - started, 3),
        )
        return updates

    def cap_history(self) -> list[TrackedEntity]:
        """Trim every channel to the history cap and return the entities read."""

        limit = self.polling.history_cap
        entities = self.store.find_all()
        for entity in entities:
            for channel in Channel:
                if len(entity.channel(channel)) <= limit:
                    continue
                try:
                    self.store.cap_channel(entity.owner, entity.name, channel, limit)
                except Exception as exc:  # noqa: BLE001
                    self.logger.warning(
                        "cap_failed",
                        repo=f"{entity.owner}/{entity.name}",
                        channel=channel.value,
                        error=str(exc),
                    )
        return entities

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------
    def reconcile_and_persist(self, incoming: FetchResult) -> list[EntityUpdate]:
        try:
            baseline = {entity.ref: entity for entity in self.store.find_all()}
        except Exception as exc:  # noqa: BLE001
            self.logger.error("baseline_read_failed", error=str(exc))
            return []
        return self.persist(self.diff(baseline, incoming))

    def diff(
        self, baseline: Mapping[EntityRef, TrackedEntity], incoming: FetchResult
    ) -> list[EntityUpdate]:
        releases = {result.ref: result.records for result in incoming.releases}
        tags = {result.ref: result.records for result in incoming.tags}
        updates: list[EntityUpdate] = []
        for ref in dict.fromkeys([*releases, *tags]):
            old_entity = baseline.get(ref)
            if old_entity is None:
                # Created after the baseline read; the next cycle picks it up.
                self.logger.debug("baseline_missing", repo=str(ref))
                continue
            update = reconcile_entity(old_entity, releases.get(ref), tags.get(ref))
            if update is not None:
                updates.append(update)
        return updates

    def persist(self, updates: list[EntityUpdate]) -> list[EntityUpdate]:
        if not updates:
            return []
        executor = self.pools.persist
        pending: list[tuple[EntityUpdate, Future[None]]] = [
            (update, executor.submit(self._persist_one, update)) for update in updates
        ]
        persisted: list[EntityUpdate] = []
        for update, future in pending:
            try:
                future.result()
            except Exception as exc:  # noqa: BLE001
                self.logger.error("persist_failed", repo=str(update.ref), error=str(exc))
                continue
            persisted.append(update)
        return persisted

    def _persist_one(self, update: EntityUpdate) -> None:
        for channel in Channel:
            self.store.push_to_channel(update.owner, update.name, channel, update.new_for(channel))
            for record in update.changed_for(channel):
                self.store.replace_record_by_name(
                    update.owner, update.name, channel, record.name, record
                )

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def track(self, owner: str, name: str, user_id: str) -> bool:
        """Subscribe ``user_id`` and prime the repository history without notifying.

        Returns ``True`` when the repository was not tracked before. Upstream
        failures propagate so callers can reject unknown repositories.
        """

        releases: list = []
        tags: list = []
        if self.github is not None:
            releases, tags = self.github.get_versions(owner, name, self.polling.per_entity_count)
        created = self.store.add_entity(owner, name)
        self.store.add_watcher(owner, name, user_id)
        entity = self.store.find_one(owner, name)
        if entity is not None:
            update = reconcile_entity(entity, releases, tags)
            if update is not None:
                self._persist_one(update)
        self.logger.info("repo_watched", repo=f"{owner}/{name}", user=user_id, created=created)
        return created

    def untrack(self, owner: str, name: str, user_id: str) -> None:
        self.store.remove_watcher(owner, name, user_id)
        self.logger.info("repo_unwatched", repo=f"{owner}/{name}", user=user_id)


__all__ = ["Reconciler"]
