"""Subscriber boundary: hand reconciliation updates to delivery handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

import structlog

from .engine.records import EntityUpdate


@dataclass(slots=True)
class DeliveryOutcome:
    """What a handler did with one update."""

    owner: str
    name: str
    recipients: tuple[str, ...]
    delivered: bool = True


class UpdateHandler(Protocol):
    def handle(self, update: EntityUpdate) -> DeliveryOutcome:
        ...


class LoggingNotifier:
    """Reference handler that records one delivery per watcher in the log."""

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = logger or structlog.get_logger("release_radar").bind(component="notifier")

    def handle(self, update: EntityUpdate) -> DeliveryOutcome:
        versions = [record.name for record in update.releases]
        for user_id in update.watched_users:
            self.logger.info(
                "release_notification",
                repo=f"{update.owner}/{update.name}",
                user=user_id,
                versions=versions,
            )
        return DeliveryOutcome(update.owner, update.name, tuple(update.watched_users))


class UpdateFanout:
    """Scheduler subscriber passing every update of a cycle to one handler."""

    def __init__(self, handler: UpdateHandler, logger: structlog.BoundLogger | None = None) -> None:
        self.handler = handler
        self.logger = logger or structlog.get_logger("release_radar").bind(component="fanout")

    def __call__(self, updates: Iterable[EntityUpdate] | None) -> list[DeliveryOutcome]:
        outcomes: list[DeliveryOutcome] = []
        for update in updates or ():
            try:
                outcomes.append(self.handler.handle(update))
            except Exception as exc:  # noqa: BLE001
                self.logger.error(
                    "delivery_failed", repo=f"{update.owner}/{update.name}", error=str(exc)
                )
                outcomes.append(
                    DeliveryOutcome(update.owner, update.name, tuple(update.watched_users), delivered=False)
                )
        if outcomes:
            self.logger.info(
                "updates_dispatched",
                updates=len(outcomes),
                recipients=sum(len(outcome.recipients) for outcome in outcomes if outcome.delivered),
            )
        return outcomes


__all__ = ["DeliveryOutcome", "LoggingNotifier", "UpdateFanout", "UpdateHandler"]
