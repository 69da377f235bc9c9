"""Command-line interface for quicksheets."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from quicksheets import __version__


@click.group()
@click.version_option(version=__version__, prog_name="quicksheets")
@click.option(
    "--config-dir",
    default=None,
    type=click.Path(exists=True, file_okay=False),
    help="Directory holding quicksheets.yaml (default: current directory).",
)
@click.pass_context
def main(ctx: click.Context, config_dir: str | None) -> None:
    """quicksheets -- spreadsheet formula engine.

    Lex, parse and evaluate cell formulas from the command line.
    """
    from quicksheets.config import load_config
    from quicksheets.logging.events import set_log_dir

    try:
        config = load_config(Path(config_dir) if config_dir else None)
    except ValueError as e:
        raise click.ClickException(str(e))
    set_log_dir(
        config["log_dir"],
        fsync=bool(config.get("logging_fsync", False)),
        tail_bytes=config.get("logging_tail_bytes"),
    )
    ctx.obj = config


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _load_grid(sheet_file: str | None) -> dict:
    if sheet_file is None:
        return {}
    from quicksheets.sheet import load_sheet

    try:
        return load_sheet(Path(sheet_file))
    except (ValueError, OSError) as e:
        raise click.ClickException(str(e))


def _to_json(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)


# ---------------------------------------------------------------------------
# Eval
# ---------------------------------------------------------------------------


@main.command("eval")
@click.argument("formula")
@click.option("--sheet", "sheet_file", default=None, type=click.Path(exists=True, dir_okay=False), help="Sheet file providing the grid.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_obj
def eval_cmd(config: dict[str, Any], formula: str, sheet_file: str | None, as_json: bool) -> None:
    """Evaluate FORMULA, optionally against the cells of a sheet file."""
    from quicksheets.cell_graph import CircularReferenceError
    from quicksheets.config import context_from_config
    from quicksheets.formulas import FormulaError, FormulaParseError, evaluate_formula
    from quicksheets.functions import default_functions
    from quicksheets.logging.events import (
        CIRCULAR_REFERENCE,
        FORMULA_EVAL_ERROR,
        FORMULA_PARSE_ERROR,
        EventLevel,
        EventType,
        emit,
        make_formula_event,
    )

    grid = _load_grid(sheet_file)
    context = context_from_config(grid, default_functions(), config)
    extra = {"sheet": sheet_file} if sheet_file else None

    try:
        result = evaluate_formula(formula, context)
    except FormulaError as e:
        if isinstance(e, CircularReferenceError):
            code = CIRCULAR_REFERENCE
        elif isinstance(e, FormulaParseError):
            code = FORMULA_PARSE_ERROR
        else:
            code = FORMULA_EVAL_ERROR
        emit(make_formula_event(
            EventType.formula_failed,
            EventLevel.error,
            str(e),
            formula=formula,
            error_code=code,
            extra=extra,
        ))
        if as_json:
            click.echo(_to_json({"formula": formula, "error": str(e), "error_type": type(e).__name__}))
            raise SystemExit(1)
        raise click.ClickException(str(e))

    emit(make_formula_event(
        EventType.formula_evaluated,
        EventLevel.info,
        "Formula evaluated",
        formula=formula,
        result=result,
        extra=extra,
    ))
    if as_json:
        click.echo(_to_json({"formula": formula, "result": result}))
    else:
        from quicksheets.cell_graph import format_display_value
        from quicksheets.grid import Cell

        click.echo(format_display_value(Cell(value=result)))


# ---------------------------------------------------------------------------
# Sheet
# ---------------------------------------------------------------------------


@main.command("sheet")
@click.argument("sheet_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_obj
def sheet_cmd(config: dict[str, Any], sheet_file: str, as_json: bool) -> None:
    """Evaluate every cell of SHEET_FILE and print the results."""
    from quicksheets.config import context_from_config
    from quicksheets.functions import default_functions
    from quicksheets.sheet import evaluate_sheet

    grid = _load_grid(sheet_file)
    context = context_from_config(grid, default_functions(), config)
    report = evaluate_sheet(context, source=sheet_file)

    if as_json:
        click.echo(_to_json(report))
        return

    if not report:
        click.echo("No cells.")
        return
    width = max(len(addr) for addr in report)
    for addr, entry in report.items():
        line = f"{addr:<{width}}  {entry['display']}"
        if entry["error"]:
            line += f"  ({entry['error']})"
        click.echo(line)


# ---------------------------------------------------------------------------
# Inspection
# ---------------------------------------------------------------------------


@main.command("tokens")
@click.argument("formula")
def tokens_cmd(formula: str) -> None:
    """Print the token stream of FORMULA."""
    from quicksheets.formulas import FormulaError, lex

    source = formula.strip()
    if source.startswith("="):
        source = source[1:]
    try:
        tokens = lex(source)
    except FormulaError as e:
        raise click.ClickException(str(e))
    for tok in tokens:
        click.echo(f"{tok.position:>4}  {tok.type.value:<15} {tok.value}")


@main.command("tree")
@click.argument("formula")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def tree_cmd(formula: str, as_json: bool) -> None:
    """Print the parse tree of FORMULA."""
    from quicksheets.formulas import FormulaError, parse_formula

    try:
        tree = parse_formula(formula)
    except FormulaError as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(_to_json(tree.to_dict()))
        return
    click.echo(tree.to_formula())
    _echo_tree(tree.to_dict(), 0)


def _echo_tree(node: dict[str, Any], depth: int) -> None:
    value = node["value"]
    label = node["type"] if value is None else f"{node['type']} {value!r}"
    click.echo("  " * depth + label)
    for child in node["children"]:
        _echo_tree(child, depth + 1)


@main.command("refs")
@click.argument("formula")
@click.option("--no-expand", is_flag=True, help="Report ranges as A1:B2 instead of their members.")
def refs_cmd(formula: str, no_expand: bool) -> None:
    """Print the cell addresses FORMULA references."""
    from quicksheets.coords import alpha_to_index_coord
    from quicksheets.formulas import FormulaError, extract_refs, parse_formula

    try:
        refs = extract_refs(parse_formula(formula), expand_ranges=not no_expand)
    except FormulaError as e:
        raise click.ClickException(str(e))

    def _key(ref: str) -> tuple[int, int]:
        return alpha_to_index_coord(ref.split(":")[0])

    for ref in sorted(refs, key=lambda r: (_key(r), r)):
        click.echo(ref)


# ---------------------------------------------------------------------------
# Config / events
# ---------------------------------------------------------------------------


@main.command("init")
@click.argument("directory", type=click.Path(file_okay=False), default=".")
def init_cmd(directory: str) -> None:
    """Write a default quicksheets.yaml into DIRECTORY."""
    from quicksheets.config import write_default_config

    target = Path(directory)
    target.mkdir(parents=True, exist_ok=True)
    try:
        path = write_default_config(target)
    except FileExistsError as e:
        raise click.ClickException(str(e))
    click.echo(f"Created {path}")


@main.command("events")
@click.argument("log_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--limit", default=100, type=int, help="Maximum events to show.")
def events_cmd(log_dir: str, level: str | None, event_type: str | None, limit: int) -> None:
    """Show the structured event log stored in LOG_DIR."""
    from quicksheets.logging.sink import EventSink

    sink = EventSink(Path(log_dir))
    events = sink.read_events(level=level, event_type=event_type, limit=limit)

    if not events:
        click.echo("No events found.")
        return

    for evt in events:
        ts = evt.get("ts", "")
        lvl = str(evt.get("level", "")).upper()
        etype = evt.get("event_type", "")
        msg = evt.get("message", "")
        err = evt.get("error_code")
        line = f"[{ts}] {lvl:7s} {etype}: {msg}"
        if err:
            line += f"  ({err})"
        click.echo(line)
