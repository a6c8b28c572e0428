"""Release Radar: poll GitHub repositories and reconcile new releases."""

__version__ = "0.1.0"
