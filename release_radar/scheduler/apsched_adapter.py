"""Named fixed-interval tasks on top of APScheduler with result fan-out."""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..logging_conf import configure_logging

Handler = Callable[[Any], Any]


@dataclass
class _Task:
    name: str
    func: Callable[[], Any]
    interval_seconds: float
    guard: Lock = field(default_factory=Lock)
    runs: int = 0
    skipped: int = 0
    failures: int = 0


class TaskScheduler:
    """Run each named task at most once at a time and republish its results."""

    def __init__(self) -> None:
        self.scheduler = BackgroundScheduler()
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False
        self._tasks: dict[str, _Task] = {}
        self._handlers: dict[str, list[Handler]] = {}
        self._lock = Lock()

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    @staticmethod
    def job_id(name: str) -> str:
        return f"task::{name}"

    def add(self, name: str, func: Callable[[], Any], interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        with self._lock:
            self._tasks[name] = _Task(name=name, func=func, interval_seconds=interval_seconds)
        # IntervalTrigger fires first one interval after registration.
        self.scheduler.add_job(
            self.run_task,
            trigger=IntervalTrigger(seconds=interval_seconds),
            id=self.job_id(name),
            args=[name],
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.logger.info("task_scheduled", task=name, interval_seconds=interval_seconds)

    def subscribe(self, name: str, handler: Handler) -> None:
        with self._lock:
            self._handlers.setdefault(name, []).append(handler)

    def remove(self, name: str) -> None:
        with self._lock:
            self._tasks.pop(name, None)
        try:
            self.scheduler.remove_job(self.job_id(name))
        except Exception:  # noqa: BLE001
            self.logger.warning("task_remove_failed", task=name)

    def run_task(self, name: str) -> bool:
        """Execute one tick of ``name``; ``False`` when skipped or failed."""

        with self._lock:
            task = self._tasks.get(name)
        if task is None:
            self.logger.warning("task_unknown", task=name)
            return False
        if not task.guard.acquire(blocking=False):
            task.skipped += 1
            self.logger.warning("task_skipped_still_running", task=name)
            return False
        try:
            try:
                result = task.func()
            except Exception as exc:  # noqa: BLE001
                task.failures += 1
                self.logger.error("task_failed", task=name, error=str(exc))
                return False
            task.runs += 1
            self._publish(name, result)
            return True
        finally:
            task.guard.release()

    def _publish(self, name: str, result: Any) -> None:
        with self._lock:
            handlers = list(self._handlers.get(name, ()))
        for handler in handlers:
            try:
                handler(result)
            except Exception as exc:  # noqa: BLE001
                self.logger.error(
                    "task_handler_failed",
                    task=name,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(exc),
                )

    def stats(self, name: str) -> dict[str, int]:
        task = self._tasks[name]
        return {"runs": task.runs, "skipped": task.skipped, "failures": task.failures}

    def list_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run_time": getattr(job, "next_run_time", None),
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["TaskScheduler"]
