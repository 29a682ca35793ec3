# ruff: noqa: I001
"""CLI for the ``church_reports`` package.

A small developer tool over saved report files. Command handlers
(``cmd_ranking``, ``cmd_summary``, ``cmd_export_csv``) return process exit
codes and are wrapped by a Typer console interface. A local ``.env`` is loaded
with ``python-dotenv`` before any command runs so ``CHURCH_REPORTS_*``
settings can live next to the data.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated, Any
from collections.abc import Sequence

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from typer.models import OptionInfo

from .export import display_rows, header_labels, to_csv
from .logging_setup import configure_logging, get_logger
from .models import SpreadsheetData
from .ranking import generate_ranking
from .session import ReportLoadError, decode_report_data
from .settings import ReportSettings
from .spreadsheet import sheet_from_ranking, to_spreadsheet_data

_logger = get_logger("church_reports.cli")


# ---- File loading helpers ----------------------------------------------------


def _read_json(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ReportLoadError(f"File not found: {path}") from exc
    except PermissionError as exc:
        raise ReportLoadError(f"Permission denied: {path}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ReportLoadError(f"{path} is not valid JSON: {exc.msg}") from exc


def load_results_file(path: Path) -> list[Any]:
    """Read match results from a saved report file.

    Accepts ``{"results": [...]}``, a bare list of results, or a JSON string
    that itself encodes one of those (the way reports are stored).
    """

    raw = _read_json(path)
    if isinstance(raw, list):
        return raw
    payload = decode_report_data(raw)
    results = payload.get("results")
    if results is None:
        return []
    if not isinstance(results, list):
        raise ReportLoadError(f"'results' in {path} must be a list")
    return results


def load_roster_file(path: Path) -> list[Any]:
    """Read an organization roster: a list, or ``{"churches": [...]}``."""

    raw = _read_json(path)
    if isinstance(raw, dict):
        raw = raw.get("churches", [])
    if not isinstance(raw, list):
        raise ReportLoadError(f"roster in {path} must be a list of organizations")
    return raw


def load_spreadsheet_file(path: Path) -> SpreadsheetData:
    """Read a saved spreadsheet, bare or wrapped as ``{"spreadsheet": {...}}``."""

    payload = decode_report_data(_read_json(path))
    if isinstance(payload.get("spreadsheet"), dict):
        payload = payload["spreadsheet"]
    return SpreadsheetData.model_validate(payload)


def render_table(header: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Plain fixed-width table with the footer row separated by a rule."""

    widths = [len(h) for h in header]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(cells: Sequence[str]) -> str:
        return " | ".join(cell.ljust(widths[i]) for i, cell in enumerate(cells)).rstrip()

    rule = "-+-".join("-" * w for w in widths)
    out = [line(header), rule]
    out.extend(line(row) for row in rows[:-1])
    if rows:
        out.append(rule)
        out.append(line(rows[-1]))
    return "\n".join(out)


def _print_sheet(data: SpreadsheetData, settings: ReportSettings) -> None:
    print(data.title)
    print()
    print(render_table(header_labels(data), display_rows(data, settings)))


# ---- Command handlers --------------------------------------------------------


def cmd_ranking(results_path: Path, roster_path: Path, name: str | None = None) -> int:
    """Rank a saved report's match results by organization and print the table.

    Parameters
    ----------
    results_path:
        Saved report JSON with the match results.
    roster_path:
        JSON list of the current organizations.
    name:
        Report name used in the title (``Ranking: <name>``).
    """

    settings = ReportSettings.from_env()
    try:
        results = load_results_file(results_path)
        roster = load_roster_file(roster_path)
    except ReportLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    report = generate_ranking(results, roster, name)
    if report.notice:
        print(report.notice, file=sys.stderr)
    _print_sheet(to_spreadsheet_data(sheet_from_ranking(report, settings=settings)), settings)
    return 0


def cmd_summary(spreadsheet_path: Path) -> int:
    """Print a saved spreadsheet with its totals row."""

    settings = ReportSettings.from_env()
    try:
        data = load_spreadsheet_file(spreadsheet_path)
    except (ReportLoadError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _print_sheet(data, settings)
    return 0


def cmd_export_csv(spreadsheet_path: Path, out_path: Path) -> int:
    """Write a saved spreadsheet as ``;``-delimited CSV."""

    settings = ReportSettings.from_env()
    try:
        data = load_spreadsheet_file(spreadsheet_path)
    except (ReportLoadError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        out_path.write_text(to_csv(data, settings), encoding="utf-8", newline="")
    except OSError as e:
        print(f"Error: could not write {out_path}: {e}", file=sys.stderr)
        return 1

    _logger.info("wrote %d row(s) to %s", len(data.rows), out_path)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Rank, summarize and export saved church financial reports.",
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
RESULTS_OPTION: OptionInfo = typer.Option(
    ..., "--results", help="Saved report JSON containing match results", dir_okay=False
)
ROSTER_OPTION: OptionInfo = typer.Option(
    ..., "--roster", help="JSON list of current organizations", dir_okay=False
)
SPREADSHEET_OPTION: OptionInfo = typer.Option(
    ..., "--spreadsheet", help="Saved spreadsheet JSON", dir_okay=False
)
OUT_OPTION: OptionInfo = typer.Option(..., "--out", help="Destination CSV path", dir_okay=False)


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("ranking")
def ranking_cmd(
    results: Annotated[Path, RESULTS_OPTION],
    roster: Annotated[Path, ROSTER_OPTION],
    name: str | None = typer.Option(None, "--name", help="Report name for the title."),
) -> None:
    """Rank organizations from saved match results."""

    _exit(cmd_ranking(results, roster, name))


@app.command("summary")
def summary_cmd(spreadsheet: Annotated[Path, SPREADSHEET_OPTION]) -> None:
    """Print a saved spreadsheet with totals."""

    _exit(cmd_summary(spreadsheet))


@app.command("export-csv")
def export_csv_cmd(
    spreadsheet: Annotated[Path, SPREADSHEET_OPTION],
    out: Annotated[Path, OUT_OPTION],
) -> None:
    """Export a saved spreadsheet to CSV."""

    _exit(cmd_export_csv(spreadsheet, out))


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and configure logging."""

    # override=False keeps variables already set in the environment
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(ReportSettings.from_env().log_level)


if __name__ == "__main__":  # pragma: no cover
    app()
