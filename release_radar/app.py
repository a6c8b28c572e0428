"""Typer CLI entrypoint for Release Radar."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import AppConfig, ConfigRepository, StorageBackend
from .engine import BatchFetcher, EntityRef, EntityUpdate, GitHubClient, TrackedEntity, WorkerPools
from .errors import UpstreamError
from .logging_conf import configure_logging, default_log_dir, tail_log
from .notify import LoggingNotifier, UpdateFanout
from .reconciler import Reconciler
from .scheduler import TaskScheduler
from .store import MongoReleaseStore, ReleaseStore, SQLiteManager, SQLiteReleaseStore

RELEASES_TASK = "releases"

app = typer.Typer(help="Release Radar command line", no_args_is_help=True, rich_markup_mode=None)
repo_app = typer.Typer(name="repo", help="Manage watched repositories", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Inspect log files", no_args_is_help=True)

console = Console()


@dataclass
class AppState:
    config: AppConfig
    store: ReleaseStore
    scheduler: TaskScheduler
    reconciler: Reconciler
    pools: WorkerPools


def _build_store(repository: ConfigRepository, config: AppConfig) -> ReleaseStore:
    storage = config.storage
    if storage.backend is StorageBackend.MONGODB:
        return MongoReleaseStore(storage.mongo_uri, storage.database, storage.collection)
    return SQLiteReleaseStore(SQLiteManager(), repository.sqlite_path())


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    config = repository.load_config()
    pools = WorkerPools(config.polling.fetch_workers, config.polling.persist_workers)
    github = GitHubClient(config.github)
    fetcher = BatchFetcher(github, pools, batch_size=config.polling.batch_size)
    store = _build_store(repository, config)
    reconciler = Reconciler(store, fetcher, pools, config.polling, github=github)
    scheduler = TaskScheduler()
    scheduler.add(RELEASES_TASK, reconciler.run_cycle, config.polling.interval_seconds)
    scheduler.subscribe(RELEASES_TASK, UpdateFanout(LoggingNotifier()))
    return AppState(
        config=config,
        store=store,
        scheduler=scheduler,
        reconciler=reconciler,
        pools=pools,
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _parse_ref(full_name: str) -> EntityRef:
    try:
        return EntityRef.parse(full_name)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _render_repos_table(entities: Sequence[TrackedEntity]) -> Table:
    table = Table(title=f"Tracked repositories · {len(entities)}", box=box.SIMPLE_HEAD)
    table.add_column("Repository", style="cyan", no_wrap=True)
    table.add_column("Latest release", style="green")
    table.add_column("Latest tag", style="magenta")
    table.add_column("Watchers", style="yellow", justify="right")
    for entity in entities:
        table.add_row(
            f"{entity.owner}/{entity.name}",
            entity.releases[-1].name if entity.releases else "-",
            entity.tags[-1].name if entity.tags else "-",
            str(len(entity.watched_users)),
        )
    return table


def _render_updates_table(updates: Iterable[EntityUpdate]) -> Table:
    table = Table(title="Cycle updates", box=box.SIMPLE_HEAD)
    table.add_column("Repository", style="cyan", no_wrap=True)
    table.add_column("Versions", style="green", overflow="fold")
    table.add_column("Recipients", style="yellow", justify="right")
    for update in updates:
        table.add_row(
            f"{update.owner}/{update.name}",
            ", ".join(record.name for record in update.releases),
            str(len(update.watched_users)),
        )
    return table


app.add_typer(repo_app, name="repo")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging")
) -> None:
    ctx.obj = build_state(verbose)


@app.command("run", help="Poll on the configured interval until interrupted.")
def run(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    state.scheduler.start()
    console.print(
        f"Polling every {state.config.polling.interval_seconds:g}s, press Ctrl+C to stop.",
        style="cyan",
    )
    for job in state.scheduler.list_jobs():
        if job["next_run_time"] is not None:
            console.print(f"{job['id']} next run at {job['next_run_time']:%Y-%m-%d %H:%M:%S}", style="dim")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("Stopping.", style="dim")
    finally:
        state.scheduler.shutdown()
        state.pools.shutdown()
        state.store.close()


@app.command("poll", help="Run one reconciliation cycle now.")
def poll(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    updates: list[EntityUpdate] = []
    state.scheduler.subscribe(RELEASES_TASK, updates.extend)
    if not state.scheduler.run_task(RELEASES_TASK):
        console.print("Cycle did not complete, see the log for details.", style="red")
        raise typer.Exit(code=1)
    if not updates:
        console.print("No new or changed releases.", style="dim")
        return
    console.print(_render_updates_table(updates))


@repo_app.command("list", help="List tracked repositories.")
def repo_list(
    ctx: typer.Context,
    user: Optional[str] = typer.Option(None, "--user", help="Only repositories this subscriber watches."),
) -> None:
    state = _get_state(ctx)
    entities = state.store.find_by_watcher(user) if user else state.store.find_all()
    if not entities and user:
        console.print(f"{user} is not subscribed to any repository.", style="yellow")
        return
    if not entities:
        console.print("No repositories tracked yet, add one with `release-radar repo watch`.", style="yellow")
        return
    console.print(_render_repos_table(entities))


@repo_app.command("watch", help="Subscribe a user to OWNER/NAME.")
def repo_watch(
    ctx: typer.Context,
    full_name: str = typer.Argument(..., help="Repository as OWNER/NAME."),
    user_id: str = typer.Argument(..., help="Subscriber identifier."),
) -> None:
    state = _get_state(ctx)
    ref = _parse_ref(full_name)
    try:
        created = state.reconciler.track(ref.owner, ref.name, user_id)
    except UpstreamError as exc:
        console.print(f"Cannot subscribe to {ref}: {exc}", style="red")
        raise typer.Exit(code=1) from exc
    status = "now tracked" if created else "already tracked"
    console.print(f"{ref} {status}, {user_id} subscribed.", style="green")


@repo_app.command("unwatch", help="Unsubscribe a user from OWNER/NAME.")
def repo_unwatch(
    ctx: typer.Context,
    full_name: str = typer.Argument(..., help="Repository as OWNER/NAME."),
    user_id: str = typer.Argument(..., help="Subscriber identifier."),
) -> None:
    state = _get_state(ctx)
    ref = _parse_ref(full_name)
    state.reconciler.untrack(ref.owner, ref.name, user_id)
    console.print(f"{user_id} unsubscribed from {ref}.", style="green")


@log_app.command("show", help="Show the tail of the application log.")
def log_show(
    errors: bool = typer.Option(False, "--errors", help="Show error.log instead of radar.log."),
    tail: Optional[int] = typer.Option(100, "--tail", help="Number of lines."),
) -> None:
    path = default_log_dir() / ("error.log" if errors else "radar.log")
    lines = tail_log(path, tail or 100)
    if not lines:
        console.print("Log is empty.", style="dim")
        return
    console.print(f"{path.name} · last {len(lines)} lines", style="cyan")
    console.print("".join(lines))


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
