"""Shared fixtures for Release Radar tests."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from release_radar.config import ConfigLocator, ConfigRepository, PollingConfig
from release_radar.engine import BatchFetcher, EntityRef, VersionRecord, WorkerPools
from release_radar.errors import UpstreamError
from release_radar.store import SQLiteManager, SQLiteReleaseStore

_ALIAS_PATTERN = re.compile(r'releases_(\d+): repository\(owner: ("[^"]*"), name: ("[^"]*")\)')
_WINDOW_PATTERN = re.compile(r"releases\(last: (\d+)")


class FakeTransport:
    """GraphQL stand-in answering aggregated queries from an in-memory catalogue.

    Catalogues are kept oldest first and each query returns the newest
    ``last: N`` entries, like the live endpoint.
    """

    def __init__(self) -> None:
        self.releases: dict[EntityRef, list[dict[str, Any]]] = {}
        self.tags: dict[EntityRef, list[str]] = {}
        self.failing: set[EntityRef] = set()
        self.queries: list[list[EntityRef]] = []

    def set_releases(self, ref: EntityRef, *nodes: dict[str, Any]) -> None:
        self.releases[ref] = list(nodes)

    def set_tags(self, ref: EntityRef, *names: str) -> None:
        self.tags[ref] = list(names)

    def query(self, text: str) -> dict[str, Any]:
        refs = [
            EntityRef(json.loads(owner), json.loads(name))
            for _, owner, name in sorted(_ALIAS_PATTERN.findall(text), key=lambda item: int(item[0]))
        ]
        self.queries.append(refs)
        window = _WINDOW_PATTERN.search(text)
        count = int(window.group(1)) if window else 1
        if any(ref in self.failing for ref in refs):
            raise UpstreamError("GraphQL errors: ['Something went wrong']")
        data: dict[str, Any] = {}
        for index, ref in enumerate(refs):
            data[f"releases_{index}"] = {
                "releases": {
                    "nodes": [
                        {
                            "url": node.get("url", f"https://github.com/{ref}/releases/{node['name']}"),
                            "isPrerelease": node.get("isPrerelease", False),
                            "description": node.get("description", ""),
                            "tag": {"name": node["name"]},
                        }
                        for node in self.releases.get(ref, [])[-count:]
                    ]
                }
            }
            data[f"tags_{index}"] = {"refs": {"nodes": [{"name": n} for n in self.tags.get(ref, [])[-count:]]}}
        return data


@pytest.fixture
def make_record() -> Callable[..., VersionRecord]:
    def _builder(name: str, **overrides: Any) -> VersionRecord:
        base: dict[str, Any] = {
            "name": name,
            "url": f"https://github.com/acme/widget/releases/{name}",
            "description": "",
            "is_prerelease": False,
        }
        base.update(overrides)
        return VersionRecord(**base)

    return _builder


@pytest.fixture
def polling_config() -> PollingConfig:
    return PollingConfig(
        batch_size=50,
        per_entity_count=2,
        interval_seconds=60,
        history_cap=5,
        fetch_workers=4,
    )


@pytest.fixture
def pools() -> Iterable[WorkerPools]:
    worker_pools = WorkerPools(fetch_workers=4, persist_workers=4)
    yield worker_pools
    worker_pools.shutdown()


@pytest.fixture
def sqlite_store(tmp_path: Path) -> Iterable[SQLiteReleaseStore]:
    manager = SQLiteManager()
    store = SQLiteReleaseStore(manager, tmp_path / "radar.db")
    yield store
    manager.close_all()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def batch_fetcher(fake_transport: FakeTransport, pools: WorkerPools) -> BatchFetcher:
    return BatchFetcher(fake_transport, pools, batch_size=50)


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("RELEASE_RADAR_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository
