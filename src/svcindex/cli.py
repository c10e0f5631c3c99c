from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
import json

import typer

from svcindex.collector import collect_registrations
from svcindex.config import IndexSettings, index_settings, merge_payload, registry_defaults
from svcindex.diagnostics import DiagnosticCollector, Severity, SourceLocation
from svcindex.exceptions import RegistryReadError
from svcindex.indexer import run_index_pass
from svcindex.ingest.python_scanner import ScanConfig, scan_sources
from svcindex.json_types import JSONObject
from svcindex.registration import Registry, ordered_registrations
from svcindex.store import DirectoryResourceStore, RegistryStore

app = typer.Typer(add_completion=False, help="Index @provides service providers.")


@dataclass
class EchoDiagnosticSink(DiagnosticCollector):
    """Collects diagnostics and echoes each one to stderr as it arrives."""

    def report(
        self,
        severity: Severity,
        message: str,
        location: SourceLocation | None = None,
    ) -> None:
        super().report(severity, message, location)
        typer.echo(self.diagnostics[-1].render(), err=True)


def _resolve_settings(
    *,
    root: Path,
    config: Path | None,
    output_dir: Path | None = None,
    prefix: str | None = None,
    decorators: list[str] | None = None,
    strict_assignability: bool | None = None,
    fail_on_errors: bool | None = None,
) -> IndexSettings:
    defaults = registry_defaults(root=root, config_path=config)
    payload = merge_payload(
        {
            "output_dir": str(output_dir) if output_dir is not None else None,
            "registry_prefix": prefix,
            "decorators": list(decorators) if decorators else None,
            "strict_assignability": strict_assignability,
            "fail_on_errors": fail_on_errors,
        },
        defaults,
    )
    return index_settings(root, payload)


def _scan_config(settings: IndexSettings) -> ScanConfig:
    return ScanConfig(
        project_root=settings.root,
        exclude_dirs=set(settings.exclude_dirs),
        decorators=set(settings.decorators),
        strict_assignability=settings.strict_assignability,
    )


def _registry_store(settings: IndexSettings) -> RegistryStore:
    return RegistryStore(
        DirectoryResourceStore(settings.output_dir),
        prefix=settings.registry_prefix,
    )


def registry_payload(registry: Registry) -> JSONObject:
    return {
        contract: [
            {"name": record.name, "priority": record.priority}
            for record in ordered_registrations(registry[contract])
        ]
        for contract in sorted(registry)
    }


def _exit_code(sink: DiagnosticCollector, settings: IndexSettings) -> int:
    return 1 if settings.fail_on_errors and sink.has_errors else 0


@app.command("build")
def build(
    paths: List[Path] = typer.Argument(None, help="Files or directories to scan."),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir"),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Registry path under the output dir."),
    decorator: List[str] = typer.Option([], "--decorator", help="Qualified marker decorator name."),
    strict_assignability: Optional[bool] = typer.Option(
        None, "--strict-assignability/--no-strict-assignability"
    ),
    fail_on_errors: Optional[bool] = typer.Option(
        None, "--fail-on-errors/--no-fail-on-errors"
    ),
) -> None:
    """Scan sources and merge discovered providers into the registry files."""
    settings = _resolve_settings(
        root=root,
        config=config,
        output_dir=output_dir,
        prefix=prefix,
        decorators=decorator,
        strict_assignability=strict_assignability,
        fail_on_errors=fail_on_errors,
    )
    sink = EchoDiagnosticSink()
    events = scan_sources(paths or [root], config=_scan_config(settings), sink=sink)
    result = run_index_pass(events, store=_registry_store(settings), sink=sink)
    written = sum(len(result.registry[contract]) for contract in result.written)
    typer.echo(f"Indexed {written} provider(s) for {len(result.written)} contract(s).")
    if result.failed:
        typer.echo(
            f"Failed to write {len(result.failed)} contract(s): {', '.join(result.failed)}",
            err=True,
        )
    raise typer.Exit(code=_exit_code(sink, settings))


@app.command("scan")
def scan(
    paths: List[Path] = typer.Argument(None, help="Files or directories to scan."),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    decorator: List[str] = typer.Option([], "--decorator"),
    strict_assignability: Optional[bool] = typer.Option(
        None, "--strict-assignability/--no-strict-assignability"
    ),
    fail_on_errors: Optional[bool] = typer.Option(
        None, "--fail-on-errors/--no-fail-on-errors"
    ),
) -> None:
    """Print the providers discovered in the sources as JSON without writing."""
    settings = _resolve_settings(
        root=root,
        config=config,
        decorators=decorator,
        strict_assignability=strict_assignability,
        fail_on_errors=fail_on_errors,
    )
    sink = EchoDiagnosticSink()
    events = scan_sources(paths or [root], config=_scan_config(settings), sink=sink)
    registry = collect_registrations(events, sink=sink)
    typer.echo(json.dumps(registry_payload(registry), indent=2, sort_keys=False))
    raise typer.Exit(code=_exit_code(sink, settings))


@app.command("show")
def show(
    contract: str = typer.Argument(..., help="Qualified contract name."),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir"),
    prefix: Optional[str] = typer.Option(None, "--prefix"),
) -> None:
    """List one contract's registered providers in lookup order."""
    settings = _resolve_settings(root=root, config=config, output_dir=output_dir, prefix=prefix)
    try:
        records = _registry_store(settings).read(contract)
    except RegistryReadError as exc:
        typer.echo(f"svcindex: error: {exc.message}", err=True)
        raise typer.Exit(code=1)
    for record in ordered_registrations(records):
        typer.echo(f"{record.priority}\t{record.name}")


def main() -> None:  # pragma: no cover
    app()
