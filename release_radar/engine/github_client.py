"""GitHub GraphQL transport and payload normalisation."""

from __future__ import annotations

import json
from typing import Any, Iterable, Optional

import httpx
import structlog
from pydantic import BaseModel, Field, ValidationError

from ..config import GitHubConfig
from ..errors import UpstreamError
from .records import EntityRef, VersionRecord


class _TagNode(BaseModel):
    name: Optional[str] = None


class _ReleaseNode(BaseModel):
    url: Optional[str] = None
    isPrerelease: Optional[bool] = None
    description: Optional[str] = None
    tag: Optional[_TagNode] = None


class _ReleaseConnection(BaseModel):
    nodes: list[Optional[_ReleaseNode]] = Field(default_factory=list)


class _RefConnection(BaseModel):
    nodes: list[Optional[_TagNode]] = Field(default_factory=list)


class _RepositoryPayload(BaseModel):
    releases: Optional[_ReleaseConnection] = None
    refs: Optional[_RefConnection] = None


def _quote(value: str) -> str:
    return json.dumps(value)


# Both channels come back oldest first, the order stores append and cap in.
def releases_fragment(ref: EntityRef, count: int) -> str:
    return (
        f"repository(owner: {_quote(ref.owner)}, name: {_quote(ref.name)}) {{\n"
        f"    releases(last: {count}, orderBy: {{field: CREATED_AT, direction: ASC}}) {{\n"
        "      nodes { url isPrerelease description tag { name } }\n"
        "    }\n"
        "  }"
    )


def tags_fragment(ref: EntityRef, count: int) -> str:
    return (
        f"repository(owner: {_quote(ref.owner)}, name: {_quote(ref.name)}) {{\n"
        f'    refs(last: {count}, refPrefix: "refs/tags/", '
        "orderBy: {field: TAG_COMMIT_DATE, direction: ASC}) {\n"
        "      nodes { name }\n"
        "    }\n"
        "  }"
    )


def release_alias(index: int) -> str:
    return f"releases_{index}"


def tag_alias(index: int) -> str:
    return f"tags_{index}"


def build_batch_query(refs: Iterable[EntityRef], count: int) -> str:
    """Build one aggregated document addressing every repository by position."""

    parts: list[str] = []
    for index, ref in enumerate(refs):
        parts.append(f"  {release_alias(index)}: {releases_fragment(ref, count)}")
        parts.append(f"  {tag_alias(index)}: {tags_fragment(ref, count)}")
    return "query {\n" + "\n".join(parts) + "\n}"


def _repository(raw: Any) -> _RepositoryPayload | None:
    if not isinstance(raw, dict):
        return None
    try:
        return _RepositoryPayload.model_validate(raw)
    except ValidationError:
        return None


def parse_releases(raw: Any) -> list[VersionRecord]:
    repository = _repository(raw)
    if repository is None or repository.releases is None:
        return []
    records: list[VersionRecord] = []
    for node in repository.releases.nodes:
        if node is None or node.tag is None or not node.tag.name:
            continue
        records.append(
            VersionRecord(
                name=node.tag.name,
                url=node.url or "",
                description=node.description or "",
                is_prerelease=bool(node.isPrerelease),
            )
        )
    return records


def parse_tags(raw: Any) -> list[VersionRecord]:
    repository = _repository(raw)
    if repository is None or repository.refs is None:
        return []
    return [VersionRecord(name=node.name) for node in repository.refs.nodes if node and node.name]


class GitHubClient:
    """Thin GraphQL client; any upstream failure surfaces as ``UpstreamError``."""

    def __init__(self, config: GitHubConfig, logger: structlog.BoundLogger | None = None) -> None:
        self.config = config
        self.logger = logger or structlog.get_logger("release_radar.github")
        headers = {"Content-Type": "application/json"}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._client = httpx.Client(timeout=config.timeout, headers=headers)

    def close(self) -> None:
        self._client.close()

    def query(self, text: str) -> dict[str, Any]:
        try:
            response = self._client.post(self.config.url, json={"query": text})
        except httpx.HTTPError as exc:
            raise UpstreamError(f"GitHub request failed: {exc}") from exc
        if response.status_code != 200:
            raise UpstreamError(f"GitHub responded with status {response.status_code}")
        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamError("GitHub returned a non-JSON body") from exc
        if not isinstance(body, dict):
            raise UpstreamError("GitHub returned an unexpected payload")
        errors = body.get("errors")
        if errors:
            messages = [str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors]
            raise UpstreamError(f"GraphQL errors: {messages}")
        data = body.get("data")
        return data if isinstance(data, dict) else {}

    def get_versions(
        self, owner: str, name: str, count: int = 1
    ) -> tuple[list[VersionRecord], list[VersionRecord]]:
        """Fetch releases and tags of a single repository."""

        data = self.query(build_batch_query([EntityRef(owner, name)], count))
        return parse_releases(data.get(release_alias(0))), parse_tags(data.get(tag_alias(0)))


__all__ = [
    "GitHubClient",
    "build_batch_query",
    "parse_releases",
    "parse_tags",
    "release_alias",
    "tag_alias",
]
