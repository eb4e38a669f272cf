from __future__ import annotations

import dataclasses
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer

from flightmap_layout.core.config import LayoutConfig, LayoutConfigError, load_layout_config
from flightmap_layout.core.errors import FlightmapError, RoadmapLoadError
from flightmap_layout.core.io.load_roadmap import dataset_id_for, load_roadmap
from flightmap_layout.core.layout.run_layout import LayoutSession, layout, summarize_layout
from flightmap_layout.core.lint.lint_roadmap import lint_roadmap
from flightmap_layout.core.state.kv_store import JsonFileKeyValueStore
from flightmap_layout.core.state.layout_store import LayoutStateStore

app = typer.Typer(add_completion=False, no_args_is_help=True)

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(message)s"
TODAY_HELP = (
    "Anchor date (YYYY-MM-DD) for a roadmap with no deadlines; "
    "defaults to the config value, else the current date"
)


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr"),
) -> None:
    """Flightmap layout CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )


@app.command("layout")
def layout_cmd(
    path: str = typer.Argument(..., help="Path to a roadmap file (.yaml/.yml/.json)"),
    dataset_id: str | None = typer.Option(None, "--dataset-id", help="Override scope (default: roadmap id)"),
    store: str | None = typer.Option(None, "--store", help="JSON file holding layout overrides"),
    config: str | None = typer.Option(None, "--config", help="YAML layout config file"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    out: str | None = typer.Option(None, "--out", help="Write the JSON layout to this file"),
    today: str | None = typer.Option(None, "--today", help=TODAY_HELP),
) -> None:
    """Compute placements and edges for a roadmap."""
    if format not in ("text", "json"):
        _usage_error("E_LAYOUT_UNKNOWN_FORMAT", f"unknown format: {format} (choose one of: text, json)", "format")

    data = _load_or_exit(path)
    cfg = _config_or_exit(config, today)
    ds = dataset_id or dataset_id_for(data)
    state = LayoutStateStore(JsonFileKeyValueStore(store), ds) if store else None

    result = layout(data, state, cfg, dataset_id=ds)
    payload = {"tool": "flightmap", "command": "layout", "ok": True, "layout": result.to_dict()}

    if out:
        _write_json(out, payload)

    if format == "json":
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    typer.echo(summarize_layout(result))
    for w in result.warnings:
        typer.echo(f"WARN: {w}", err=True)
    if out:
        typer.echo(f"OK: wrote layout to {out}")


@app.command("lint")
def lint(
    path: str = typer.Argument(..., help="Path to a roadmap file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Report dependency cycles and dangling milestone references."""
    if format not in ("text", "json"):
        _usage_error("E_LINT_UNKNOWN_FORMAT", f"unknown format: {format} (choose one of: text, json)", "format")

    def _emit_json(ok: bool, errors: list[FlightmapError], exit_code: int) -> None:
        payload = {
            "tool": "flightmap",
            "command": "lint",
            "ok": ok,
            "error_count": len(errors),
            "errors": [e.as_dict() for e in errors],
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        raise typer.Exit(code=exit_code)

    try:
        data = load_roadmap(path)
    except RoadmapLoadError as e:
        if format == "json":
            _emit_json(False, [e], 1)
        _print_errors([e])
        raise typer.Exit(code=1)

    findings: list[FlightmapError] = list(lint_roadmap(data, file=path))
    if format == "json":
        _emit_json(not findings, findings, 2 if findings else 0)

    if findings:
        _print_errors(findings)
        raise typer.Exit(code=2)
    typer.echo("OK: lint passed")


@app.command("move")
def move(
    path: str = typer.Argument(..., help="Path to a roadmap file (.yaml/.yml/.json)"),
    store: str = typer.Option(..., "--store", help="JSON file holding layout overrides"),
    y: float = typer.Option(..., "--y", help="New absolute y"),
    placement: str | None = typer.Option(None, "--placement", help="Placement id to move"),
    workstream: str | None = typer.Option(None, "--workstream", help="Workstream id to move"),
    x: float | None = typer.Option(None, "--x", help="Dropped x; reports the nearest deadline"),
    dataset_id: str | None = typer.Option(None, "--dataset-id", help="Override scope (default: roadmap id)"),
    config: str | None = typer.Option(None, "--config", help="YAML layout config file"),
    today: str | None = typer.Option(None, "--today", help=TODAY_HELP),
) -> None:
    """Commit a drag-end for one placement or one workstream."""
    if (placement is None) == (workstream is None):
        _usage_error("E_MOVE_TARGET", "pass exactly one of --placement or --workstream", "placement")

    data = _load_or_exit(path)
    cfg = _config_or_exit(config, today)
    state = LayoutStateStore(JsonFileKeyValueStore(store), dataset_id or dataset_id_for(data))
    session = LayoutSession(data, state, cfg)

    if placement is not None:
        outcome = session.end_placement_drag(placement, y, x=x)
        if outcome is None:
            _usage_error("E_MOVE_UNKNOWN_PLACEMENT", f"unknown placement id: {placement}", "placement", file=path)
        typer.echo(f"OK: placement {placement} y={outcome.y:g}")
        if outcome.snapped_deadline is not None:
            typer.echo(f"Nearest deadline: {outcome.snapped_deadline.isoformat()}")
    elif workstream is not None:
        delta = session.end_workstream_drag(workstream, y)
        if delta is None:
            _usage_error("E_MOVE_UNKNOWN_WORKSTREAM", f"unknown workstream id: {workstream}", "workstream", file=path)
        typer.echo(f"OK: workstream {workstream} y={y:g} (delta={delta:g})")


@app.command("reset")
def reset(
    path: str = typer.Argument(..., help="Path to a roadmap file (.yaml/.yml/.json)"),
    store: str = typer.Option(..., "--store", help="JSON file holding layout overrides"),
    dataset_id: str | None = typer.Option(None, "--dataset-id", help="Override scope (default: roadmap id)"),
) -> None:
    """Drop every stored override for the dataset."""
    data = _load_or_exit(path)
    ds = dataset_id or dataset_id_for(data)
    LayoutStateStore(JsonFileKeyValueStore(store), ds).reset()
    typer.echo(f"OK: reset layout for {ds}")


def _load_or_exit(path: str) -> dict[str, Any]:
    try:
        return load_roadmap(path)
    except RoadmapLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)


def _config_or_exit(config: Optional[str], today: Optional[str] = None) -> LayoutConfig:
    try:
        cfg = load_layout_config(config)
    except FileNotFoundError:
        _print_errors(
            [
                RoadmapLoadError(
                    code="E_CONFIG_FILE_NOT_FOUND",
                    message=f"config file not found: {config}",
                    file=None,
                    path="config",
                )
            ]
        )
        raise typer.Exit(code=1)
    except LayoutConfigError as e:
        _usage_error("E_CONFIG_INVALID", str(e), "config")

    if today is None:
        return cfg
    try:
        return dataclasses.replace(cfg, today=date.fromisoformat(today.strip()))
    except ValueError:
        _usage_error("E_INVALID_TODAY", f"--today must be an ISO date (YYYY-MM-DD): {today}", "today")


def _usage_error(code: str, message: str, path: str, file: Optional[str] = None) -> NoReturn:
    _print_errors([FlightmapError(code=code, message=message, file=file, path=path)])
    raise typer.Exit(code=2)


def _write_json(path: str, payload: dict[str, Any]) -> None:
    p = Path(path)
    if str(p.parent) not in (".", ""):
        p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


def _print_errors(errors: list[FlightmapError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="flightmap")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
