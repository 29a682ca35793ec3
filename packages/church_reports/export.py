"""Render a saved spreadsheet the way the print view shows it.

Both the table and the CSV use the same derived values as the sheet model:
``balance`` is recomputed per row and the footer comes from
:func:`~church_reports.summary.calculate_summary`, so a printed report can
never disagree with the editor.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Mapping
from typing import Any

from .currency import format_amount, to_number
from .models import ColumnDef, SpreadsheetData
from .settings import ReportSettings
from .summary import calculate_summary, row_balance

TOTALS_LABEL = "TOTAIS GERAIS:"
CSV_DELIMITER = ";"


def visible_columns(data: SpreadsheetData) -> list[ColumnDef]:
    return [c for c in data.columns if c.visible]


def header_labels(data: SpreadsheetData) -> list[str]:
    return [c.label for c in visible_columns(data)]


def _fmt(amount: Any, settings: ReportSettings) -> str:
    return format_amount(
        amount,
        decimal_separator=settings.decimal_separator,
        group_separator=settings.group_separator,
    )


def _fmt_qty(value: Any) -> str:
    n = to_number(value)
    return str(int(n)) if n.is_integer() else str(n)


def display_cell(
    column: ColumnDef, row: Mapping[str, Any], position: int, settings: ReportSettings
) -> str:
    """Display string for one cell; ``position`` is 1-based."""

    if column.kind == "index":
        return str(position)
    if column.id == "balance":
        return _fmt(row_balance(row), settings)
    value = row.get(column.id)
    if column.kind in ("currency", "computed"):
        return _fmt(value, settings)
    if column.kind == "number":
        return _fmt_qty(value)
    return "" if value is None else str(value)


def totals_row(data: SpreadsheetData, settings: ReportSettings) -> list[str]:
    """Footer row: label in the first visible column, totals under their columns."""

    summary = calculate_summary(data.rows)
    totals = {
        "income": _fmt(summary.income, settings),
        "expense": _fmt(summary.expense, settings),
        "balance": _fmt(summary.balance, settings),
        "qty": _fmt_qty(summary.qty),
    }
    out: list[str] = []
    for i, column in enumerate(visible_columns(data)):
        if column.id in totals:
            out.append(totals[column.id])
        else:
            out.append(TOTALS_LABEL if i == 0 else "")
    return out


def display_rows(
    data: SpreadsheetData, settings: ReportSettings | None = None
) -> list[list[str]]:
    """Body rows followed by the totals row, as display strings."""

    settings = settings or ReportSettings()
    columns = visible_columns(data)
    rows = [
        [display_cell(col, row, position, settings) for col in columns]
        for position, row in enumerate(data.rows, start=1)
    ]
    rows.append(totals_row(data, settings))
    return rows


def to_csv(data: SpreadsheetData, settings: ReportSettings | None = None) -> str:
    """``;``-delimited CSV of the header labels, display rows and totals."""

    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=CSV_DELIMITER, lineterminator="\n")
    writer.writerow(header_labels(data))
    writer.writerows(display_rows(data, settings))
    return buf.getvalue()


__all__ = [
    "CSV_DELIMITER",
    "TOTALS_LABEL",
    "display_cell",
    "display_rows",
    "header_labels",
    "to_csv",
    "totals_row",
    "visible_columns",
]
