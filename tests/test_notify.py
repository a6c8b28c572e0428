from __future__ import annotations

from unittest.mock import MagicMock

from release_radar.engine import EntityUpdate, VersionRecord
from release_radar.notify import DeliveryOutcome, LoggingNotifier, UpdateFanout


def _update(name: str, watchers: list[str]) -> EntityUpdate:
    return EntityUpdate(owner="acme", name=name, releases=[VersionRecord("v1")], watched_users=watchers)


def test_logging_notifier_logs_each_watcher() -> None:
    logger = MagicMock()
    outcome = LoggingNotifier(logger=logger).handle(_update("widget", ["1", "2"]))
    assert outcome == DeliveryOutcome("acme", "widget", ("1", "2"))
    assert logger.info.call_count == 2
    assert logger.info.call_args.kwargs["versions"] == ["v1"]


def test_fanout_continues_after_handler_failure() -> None:
    class Picky:
        def handle(self, update: EntityUpdate) -> DeliveryOutcome:
            if update.name == "broken":
                raise ConnectionError("chat api down")
            return DeliveryOutcome(update.owner, update.name, tuple(update.watched_users))

    outcomes = UpdateFanout(Picky(), logger=MagicMock())(
        [_update("broken", ["1"]), _update("widget", ["2"])]
    )
    assert [(o.name, o.delivered) for o in outcomes] == [("broken", False), ("widget", True)]


def test_fanout_accepts_empty_cycle() -> None:
    handler = MagicMock()
    assert UpdateFanout(handler)([]) == []
    assert UpdateFanout(handler)(None) == []
    handler.handle.assert_not_called()
