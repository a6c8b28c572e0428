"""Task scheduling."""

from .apsched_adapter import TaskScheduler

__all__ = ["TaskScheduler"]
