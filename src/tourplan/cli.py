"""Command-line interface for Tourplan."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any

import typer

from .config import TourplanConfig, discover_config, set_cli_config_path
from .engine import (
    CalendarView,
    TimelineEngine,
    TimelineResult,
    ViewGranularity,
    conflict_penalties,
)
from .engine.core import CalendarGrid, DependencyResolution
from .engine.timeutil import format_iso, parse_timestamp
from .exceptions import TourplanError
from .loader import load_timeline
from .lane_rules import describe_rules
from .logger import setup_logger
from .models import ITEM_TYPE_LABELS, Timeline

app = typer.Typer(
    name="tourplan",
    help="Timeline layout, conflict detection and dependency rendering for tour schedules",
    add_completion=False,
)

TimelineFile = Annotated[Path, typer.Argument(help="Path to the timeline YAML file")]
JsonFlag = Annotated[bool, typer.Option("--json", help="Emit JSON instead of text")]
BufferOption = Annotated[
    float | None,
    typer.Option(
        "--buffer", "-b", help="Buffer in hours (0-24, default from config)", min=0, max=24
    ),
]
StartOption = Annotated[
    str | None, typer.Option("--start", help="Window start (ISO date or timestamp)")
]
EndOption = Annotated[str | None, typer.Option("--end", help="Window end (ISO date or timestamp)")]


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            help="Verbosity level: 0=silent (default), 1=summaries, 2=decisions, 3=debug",
            min=0,
            max=3,
        ),
    ] = 0,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to config file (default: tourplan_config.yaml)",
        ),
    ] = None,
) -> None:
    """Global options for tourplan commands."""
    setup_logger(verbose)
    set_cli_config_path(config)


def _load(file: Path) -> tuple[Timeline, TourplanConfig]:
    """Load a timeline, turning domain errors into a clean CLI exit."""
    try:
        return load_timeline(file)
    except (TourplanError, FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _validate_window(start: str | None, end: str | None) -> None:
    """Reject unparsable or half-specified window options."""
    for value, option_name in ((start, "--start"), (end, "--end")):
        if value is not None and parse_timestamp(value) is None:
            typer.echo(
                f"Error: Invalid {option_name} value '{value}'. Use an ISO 8601 date or timestamp.",
                err=True,
            )
            raise typer.Exit(1) from None
    if (start is None) != (end is None):
        typer.echo("Error: --start and --end must be given together", err=True)
        raise typer.Exit(1) from None


def _emit(content: str, output: Path | None, what: str) -> None:
    """Print content or write it to a file."""
    if output:
        output.write_text(content + "\n", encoding="utf-8")
        typer.echo(f"{what} written to {output}")
    else:
        typer.echo(content)


def _format_layout(result: TimelineResult) -> str:
    lines = [
        f"Window: {format_iso(result.window.start_ms)} -> {format_iso(result.window.end_ms)}",
        f"Ticks: {len(result.ticks)}",
    ]
    for layout in result.lanes:
        lines.append("")
        lines.append(
            f"[{layout.lane}] rows={layout.row_count} top={layout.top}px height={layout.height}px"
        )
        for positioned in layout.items:
            lines.append(
                f"  row {positioned.row_index}: {positioned.item.title} ({positioned.id}, "
                f"{ITEM_TYPE_LABELS[positioned.item.type]}) "
                f"{format_iso(positioned.resolved.start_ms)} -> "
                f"{format_iso(positioned.resolved.end_ms)} "
                f"left={positioned.left_ratio:.4f} width={positioned.width_ratio:.4f}"
            )
    if result.unscheduled:
        lines.append("")
        lines.append("Unscheduled:")
        lines.extend(f"  - {item.title} ({item.id})" for item in result.unscheduled)
    if result.conflicts:
        lines.append("")
        lines.append(f"Conflicts: {len(result.conflicts)} (run 'tourplan conflicts' for details)")
    return "\n".join(lines)


def _format_conflicts(result: TimelineResult, weights: dict[str, float]) -> str:
    if not result.conflicts:
        return "No conflicts found."
    lines = [f"{len(result.conflicts)} conflicts:"]
    for conflict in result.conflicts:
        lines.append(f"  [{conflict.severity.value.upper()}] {conflict.message} ({conflict.id})")

    scores = conflict_penalties(result.conflicts, weights)
    ranked = sorted(scores.items(), key=lambda entry: (-entry[1], entry[0]))
    lines.append("")
    lines.append("Item scores:")
    lines.extend(f"  {item_id}: {score:g}" for item_id, score in ranked)
    return "\n".join(lines)


def _format_lanes(config: TourplanConfig) -> str:
    by_slug = {lane.slug: lane for lane in config.lanes}
    lines: list[str] = []
    for slug in config.lane_order():
        lane = by_slug.get(slug)
        if lane is None:
            lines.append(f"{slug}: built-in")
        else:
            lines.append(f"{slug} ({lane.label}): {describe_rules(lane.auto_assign_rules)}")
    if config.infer_lanes_from_type:
        lines.append("")
        lines.append("Items without a matching rule take the lane of their type.")
    return "\n".join(lines)


def _format_calendar(grid: CalendarGrid) -> str:
    lines = [f"{len(grid.columns)} columns"]
    for column in grid.columns:
        header = column.label
        if column.sub_label:
            header += f" ({column.sub_label})"
        if column.week_number:
            header += f" W{column.week_number}"
        lines.append("")
        lines.append(header)
        for lane in grid.lanes:
            cell = grid.cell(lane, column.id)
            if cell is None or not cell.items:
                continue
            badge = f" !{len(cell.conflicts)}" if cell.conflicts else ""
            titles = ", ".join(
                f"{item.title}*" if item.id in cell.conflicted_item_ids else item.title
                for item in cell.items
            )
            lines.append(f"  {lane}{badge}: {titles}")
    return "\n".join(lines)


def _dependencies_dict(resolution: DependencyResolution) -> dict[str, Any]:
    edges: list[dict[str, Any]] = []
    for edge in resolution.edges:
        entry: dict[str, Any] = {
            "id": edge.id,
            "from": edge.from_item_id,
            "to": edge.to_item_id,
            "kind": edge.kind.value,
            "note": edge.note,
        }
        anchored = resolution.anchor_for(edge)
        if anchored is not None:
            entry["source"] = {"x": anchored.source.x, "y": anchored.source.y}
            entry["target"] = {"x": anchored.target.x, "y": anchored.target.y}
        edges.append(entry)
    return {
        "edges": edges,
        "blockedBy": {
            item_id: [edge.from_item_id for edge in entries]
            for item_id, entries in resolution.blocked_by.items()
        },
        "dropped": resolution.dropped,
    }


def _format_dependencies(resolution: DependencyResolution) -> str:
    if not resolution.edges:
        return f"No dependencies ({resolution.dropped} dropped)."
    lines = [f"{len(resolution.edges)} dependencies ({resolution.dropped} dropped):"]
    for edge in resolution.edges:
        marker = ""
        if resolution.anchor_for(edge) is None:
            marker = " (not drawn: unscheduled endpoint)"
        note = f" - {edge.note}" if edge.note else ""
        lines.append(
            f"  {edge.from_item_id} -{edge.kind.value}-> {edge.to_item_id}{note}{marker}"
        )
    lines.append("")
    lines.append("Blocked by:")
    for item_id, entries in resolution.blocked_by.items():
        lines.append(f"  {item_id}: {', '.join(edge.from_item_id for edge in entries)}")
    return "\n".join(lines)


@app.command()
def layout(  # noqa: PLR0913 - CLI command needs multiple options
    file: TimelineFile,
    *,
    view: Annotated[
        ViewGranularity | None, typer.Option("--view", help="Time-axis granularity")
    ] = None,
    start: StartOption = None,
    end: EndOption = None,
    buffer: BufferOption = None,
    as_json: JsonFlag = False,
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Output file path")] = None,
) -> None:
    """Pack lanes into rows and print the positioned layout."""
    _validate_window(start, end)
    timeline, config = _load(file)
    engine = TimelineEngine(config.engine_config())
    result = engine.run(
        timeline.items,
        timeline.dependencies,
        view=view,
        start=start,
        end=end,
        buffer_hours=buffer,
    )
    content = json.dumps(result.to_dict(), indent=2) if as_json else _format_layout(result)
    _emit(content, output, "Layout")


@app.command()
def conflicts(
    file: TimelineFile,
    *,
    buffer: BufferOption = None,
    as_json: JsonFlag = False,
) -> None:
    """List scheduling conflicts (lane overlap, territory buffer, travel gap)."""
    timeline, config = _load(file)
    result = TimelineEngine(config.engine_config()).run(timeline.items, buffer_hours=buffer)
    if as_json:
        typer.echo(json.dumps(result.to_dict()["conflicts"], indent=2))
    else:
        typer.echo(_format_conflicts(result, config.engine.conflicts.weights))


@app.command()
def calendar(
    file: TimelineFile,
    *,
    view: Annotated[
        CalendarView, typer.Option("--view", help="Calendar column granularity")
    ] = CalendarView.WEEK,
    start: StartOption = None,
    end: EndOption = None,
    buffer: BufferOption = None,
) -> None:
    """Show the calendar grid with per-cell conflict badges."""
    _validate_window(start, end)
    timeline, config = _load(file)
    grid = TimelineEngine(config.engine_config()).calendar(
        timeline.items, view=view, start=start, end=end, buffer_hours=buffer
    )
    typer.echo(_format_calendar(grid))


@app.command()
def deps(file: TimelineFile, *, as_json: JsonFlag = False) -> None:
    """Show dependency edges that resolve against the item set."""
    timeline, config = _load(file)
    result = TimelineEngine(config.engine_config()).run(timeline.items, timeline.dependencies)
    if as_json:
        typer.echo(json.dumps(_dependencies_dict(result.dependencies), indent=2))
    else:
        typer.echo(_format_dependencies(result.dependencies))


@app.command()
def lanes() -> None:
    """List lanes in render order with their auto-assignment rules."""
    try:
        config = discover_config() or TourplanConfig()
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    typer.echo(_format_lanes(config))


def main() -> int:
    """Main entry point."""
    # Typer handles sys.exit() internally
    app()
    return 0


if __name__ == "__main__":
    main()
