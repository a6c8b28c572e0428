"""Exceptions raised across Release Radar."""

from __future__ import annotations


class ReleaseRadarError(Exception):
    """Base error for the reconciliation pipeline."""


class UpstreamError(ReleaseRadarError):
    """Raised when the GitHub GraphQL endpoint fails or returns an error payload."""


class StoreError(ReleaseRadarError):
    """Raised when a release store cannot apply a mutation."""


__all__ = ["ReleaseRadarError", "StoreError", "UpstreamError"]
