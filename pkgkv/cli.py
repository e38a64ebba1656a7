"""CLI entry point for pkgkv."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated

import semver
import typer
import yaml
from rich import print as rprint
from rich.syntax import Syntax
from rich.table import Table

from pkgkv.config import PkgKVConfig, load_config
from pkgkv.config.loader import DEFAULT_CONFIG_TEMPLATE
from pkgkv.events import InvalidEventError, decode_version_event
from pkgkv.ingest import IngestJob, IngestPool, IngestResult, Ingestor, VersionSource
from pkgkv.kv import KeyNotFoundError, KVError, create_store
from pkgkv.packages import Package, gunzip_bytes

app = typer.Typer(
    name="pkgkv",
    help="Project a package registry into Workers KV.",
)

config_app = typer.Typer(help="Manage pkgkv configuration.")
app.add_typer(config_app, name="config")

logger = logging.getLogger(__name__)

_NAMESPACE_KINDS = ("files", "index", "metadata")

# Global state
_config_path: str | None = None
_config: PkgKVConfig | None = None


def _get_config() -> PkgKVConfig:
    """Load the config on first use and configure logging from it."""
    global _config
    if _config is None:
        try:
            _config = load_config(_config_path)
        except ValueError as e:
            rprint(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
        _configure_logging(_config)
    return _config


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _configure_logging(cfg: PkgKVConfig) -> None:
    level = {"warn": "WARNING"}.get(cfg.log_level, cfg.log_level.upper())
    handler = logging.StreamHandler()
    if cfg.log_format == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to pkgkv.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config, _config_path
    _config_path = config
    _config = None


def _open_store(cfg: PkgKVConfig):
    try:
        return create_store(cfg.kv)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _load_descriptor(path: Path) -> Package:
    try:
        return Package.from_json(path.read_bytes())
    except (OSError, KVError) as e:
        rprint(f"[red]Error:[/red] cannot load descriptor {path}: {e}")
        raise typer.Exit(1)


def _display_results(results: list[IngestResult]) -> None:
    table = Table(title=f"Ingested ({len(results)})")
    table.add_column("package", style="cyan")
    table.add_column("version", style="cyan")
    table.add_column("keys", justify="right", style="green")
    table.add_column("existing", justify="center")
    table.add_column("error", style="red")

    for r in results:
        table.add_row(
            r.package,
            r.version,
            str(len(r.written_keys)),
            "yes" if r.found_existing else "no",
            r.error or "",
        )

    rprint(table)


def _finish(results: list[IngestResult]) -> None:
    _display_results(results)
    if any(not r.ok for r in results):
        raise typer.Exit(1)


@app.command()
def ingest(
    descriptor: Path = typer.Argument(..., help="Path to the package descriptor JSON"),
    version: str = typer.Argument(..., help="Version being ingested"),
    version_dir: Path = typer.Argument(
        ..., exists=True, file_okay=False, help="Directory holding the version's files"
    ),
) -> None:
    """Ingest one version of a package."""
    cfg = _get_config()
    pkg = _load_descriptor(descriptor)
    store = _open_store(cfg)
    result = Ingestor(store, cfg).ingest_version(pkg, version, version_dir)
    _finish([result])


@app.command(name="ingest-event")
def ingest_event(
    event: Path = typer.Argument(..., help="JSON file with the event metadata"),
    version_dir: Path = typer.Argument(
        ..., exists=True, file_okay=False, help="Directory holding the version's files"
    ),
) -> None:
    """Ingest a version described by version-published event metadata."""
    cfg = _get_config()
    try:
        decoded = decode_version_event(json.loads(event.read_text()))
    except (OSError, json.JSONDecodeError, InvalidEventError) as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    store = _open_store(cfg)
    result = Ingestor(store, cfg).ingest_version(decoded.config, decoded.version, version_dir)
    _finish([result])


def _is_version_dir(path: Path) -> bool:
    if not path.is_dir():
        return False
    try:
        semver.Version.parse(path.name)
    except ValueError:
        logger.info("skipping %s: not a semantic version", path)
        return False
    return True


def _collect_jobs(libraries_dir: Path) -> tuple[list[IngestJob], list[IngestResult]]:
    """One job per package directory holding a ``package.json``.

    Only subdirectories named by a valid semantic version are taken as
    versions. A package whose descriptor cannot be loaded gets one failed
    result per version instead of a job.
    """
    jobs, failed = [], []
    for descriptor_path in sorted(libraries_dir.glob("*/package.json")):
        versions = [
            VersionSource(version=d.name, version_dir=d)
            for d in sorted(descriptor_path.parent.iterdir())
            if _is_version_dir(d)
        ]
        if not versions:
            continue
        try:
            descriptor = Package.from_json(descriptor_path.read_bytes())
        except (OSError, KVError) as e:
            rprint(
                f"[yellow]Skipping {descriptor_path.parent.name}:[/yellow] "
                f"cannot load descriptor: {e}"
            )
            failed += [
                IngestResult(
                    package=descriptor_path.parent.name,
                    version=v.version,
                    error=f"cannot load descriptor: {e}",
                )
                for v in versions
            ]
            continue
        jobs.append(IngestJob(descriptor=descriptor, versions=versions))
    return jobs, failed


@app.command(name="ingest-all")
def ingest_all(
    libraries_dir: Path = typer.Argument(..., help="Directory of <package>/<version>/ trees"),
    workers: int | None = typer.Option(None, "--workers", "-w", help="Worker pool size"),
) -> None:
    """Ingest every version found under a libraries directory."""
    cfg = _get_config()
    jobs, failed = _collect_jobs(libraries_dir)
    if not jobs and not failed:
        rprint(f"[yellow]No packages found in {libraries_dir}.[/yellow]")
        raise typer.Exit(0)

    store = _open_store(cfg)
    pool = IngestPool(Ingestor(store, cfg), workers or cfg.ingest.max_workers)
    _finish(pool.run(jobs) + failed)


@app.command()
def get(
    key: str = typer.Argument(..., help="Key to read"),
    kind: str = typer.Option("index", "--kind", "-k", help="Namespace: files, index or metadata"),
) -> None:
    """Read a key and print its value."""
    if kind not in _NAMESPACE_KINDS:
        rprint(f"[red]Error:[/red] Invalid kind '{kind}'. Choose files, index or metadata.")
        raise typer.Exit(1)

    cfg = _get_config()
    store = _open_store(cfg)
    try:
        raw = store.read(getattr(cfg.namespaces, kind), key)
        if kind == "metadata":
            raw = gunzip_bytes(raw)
    except KeyNotFoundError:
        rprint(f"[yellow]Key '{key}' not found.[/yellow]")
        raise typer.Exit(1)
    except KVError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    text = raw.decode("utf-8", errors="replace")
    if kind != "files":
        try:
            rprint(Syntax(json.dumps(json.loads(text), indent=2), "json"))
            return
        except json.JSONDecodeError:
            logger.warning("value at %r is not JSON, printing it as text", key)
    typer.echo(text)


@app.command()
def purge(
    kind: str = typer.Argument(..., help="Namespace to empty: files, index or metadata"),
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt"),
) -> None:
    """Delete every key in a namespace."""
    if kind not in _NAMESPACE_KINDS:
        rprint(f"[red]Error:[/red] Invalid kind '{kind}'. Choose files, index or metadata.")
        raise typer.Exit(1)

    cfg = _get_config()
    namespace = getattr(cfg.namespaces, kind)
    store = _open_store(cfg)
    try:
        keys = store.list_keys(namespace)
    except KVError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    if not keys:
        rprint(f"[yellow]Namespace '{kind}' is already empty.[/yellow]")
        raise typer.Exit(0)

    if not yes:
        typer.confirm(f"Delete {len(keys)} key(s) from '{kind}'?", abort=True)

    if not store.delete_keys(namespace, keys):
        rprint(f"[red]Error:[/red] bulk delete reported failure for '{kind}'.")
        raise typer.Exit(1)
    rprint(f"[green]Deleted[/green] {len(keys)} key(s) from '{kind}'.")


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default pkgkv.yaml in current directory."""
    target = Path("pkgkv.yaml")
    if target.exists() and not force:
        rprint("[yellow]pkgkv.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")
