"""Editable report spreadsheet as an immutable state container.

A :class:`SheetState` owns two collections keyed by stable identifiers (the
column definitions and the rows) plus the report metadata (title, logo,
signatures) and the current sort. Every operation is a pure transformation
``old state -> new state``; rows are never edited in place, so any previous
state can be kept for undo (see :class:`SheetHistory`).

Cell rules
----------
- Currency columns store numbers parsed with the digit-entry codec, never the
  display string.
- Number columns (``qty``) keep only the digits of the input.
- Text columns store the raw input.
- ``balance`` is computed (``income - expense``) and never stored; ``index``
  is the display position.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Literal, TypeAlias

from .currency import parse_amount, parse_digits, to_number
from .models import ColumnDef, ManualRow, SpreadsheetData
from .ranking import RankingReport
from .settings import DEFAULT_REPORT_TITLE, DEFAULT_SIGNATURES, ReportSettings
from .summary import row_balance

MANUAL_SHEET_TITLE = "Relatório Manual"
NEW_COLUMN_LABEL = "Nova Coluna"
NEW_SIGNATURE_LABEL = "Nova Assinatura"

_CUSTOM_COLUMN_PREFIX = "custom_"
_ROW_PREFIX = "row-"
_READ_ONLY_KINDS = frozenset({"index", "computed"})
_NUMERIC_KINDS = frozenset({"currency", "number", "computed"})

Direction: TypeAlias = Literal["asc", "desc"]


def default_columns() -> tuple[ColumnDef, ...]:
    """Built-in columns for a freehand sheet."""

    return (
        ColumnDef(id="index", label="Item", kind="index", editable=False, removable=False),
        ColumnDef(id="description", label="Descrição", kind="text", removable=False),
        ColumnDef(id="income", label="Entradas", kind="currency", removable=False),
        ColumnDef(id="expense", label="Saídas", kind="currency", removable=False),
        ColumnDef(id="balance", label="Saldo", kind="computed", editable=False, removable=False),
        ColumnDef(id="qty", label="Qtd", kind="number", removable=False),
    )


@dataclass(frozen=True, slots=True)
class SortConfig:
    key: str
    direction: Direction = "asc"


@dataclass(frozen=True, slots=True)
class SheetState:
    columns: tuple[ColumnDef, ...] = field(default_factory=default_columns)
    rows: tuple[ManualRow, ...] = ()
    title: str = DEFAULT_REPORT_TITLE
    logo: str | None = None
    signatures: tuple[str, ...] = DEFAULT_SIGNATURES
    sort: SortConfig | None = None

    def column(self, column_id: str) -> ColumnDef | None:
        for col in self.columns:
            if col.id == column_id:
                return col
        return None

    def row(self, row_id: str) -> ManualRow | None:
        for row in self.rows:
            if row.get("id") == row_id:
                return row
        return None


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def new_sheet(
    *, title: str = MANUAL_SHEET_TITLE, settings: ReportSettings | None = None
) -> SheetState:
    settings = settings or ReportSettings()
    return SheetState(columns=default_columns(), title=title, signatures=settings.signatures)


def sheet_from_ranking(
    report: RankingReport, *, settings: ReportSettings | None = None
) -> SheetState:
    settings = settings or ReportSettings()
    return SheetState(
        columns=tuple(report.columns),
        rows=tuple(dict(row) for row in report.rows),
        title=report.title,
        signatures=settings.signatures,
    )


def _unique_id(prefix: str, taken: Iterable[Any]) -> str:
    used = {str(t) for t in taken}
    n = len(used) + 1
    while f"{prefix}{n}" in used:
        n += 1
    return f"{prefix}{n}"


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------


def _replace_row(state: SheetState, row_id: str, updates: Mapping[str, Any]) -> SheetState:
    if state.row(row_id) is None:
        return state
    rows = tuple({**row, **updates} if row.get("id") == row_id else row for row in state.rows)
    return replace(state, rows=rows)


def add_row(state: SheetState) -> SheetState:
    row: ManualRow = {
        "id": _unique_id(_ROW_PREFIX, (r.get("id") for r in state.rows)),
        "description": "",
        "income": 0,
        "expense": 0,
        "qty": 0,
    }
    for col in state.columns:
        if col.removable:
            row[col.id] = ""
    return replace(state, rows=(*state.rows, row))


def delete_row(state: SheetState, row_id: str) -> SheetState:
    rows = tuple(row for row in state.rows if row.get("id") != row_id)
    if len(rows) == len(state.rows):
        return state
    return replace(state, rows=rows)


def coerce_cell(column: ColumnDef, value: Any) -> Any:
    """Convert user input for ``column`` into the stored cell value."""

    if column.kind == "currency":
        if isinstance(value, str):
            return parse_amount(value)
        return round(to_number(value), 2)
    if column.kind == "number":
        return parse_digits(value if isinstance(value, str) else str(value or ""))
    return value


def edit_cell(state: SheetState, row_id: str, column_id: str, value: Any) -> SheetState:
    column = state.column(column_id)
    if column is None or not column.editable or column.kind in _READ_ONLY_KINDS:
        return state
    return _replace_row(state, row_id, {column_id: coerce_cell(column, value)})


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------


def add_column(state: SheetState, label: str = NEW_COLUMN_LABEL) -> SheetState:
    """Append an editable, removable text column. Existing rows are not touched.

    The new identifier also avoids keys still present in row data, so data left
    behind by a removed column never reappears under a new one.
    """

    taken = {c.id for c in state.columns}
    for row in state.rows:
        taken.update(str(k) for k in row)
    column = ColumnDef(
        id=_unique_id(_CUSTOM_COLUMN_PREFIX, taken),
        label=label,
        kind="text",
        editable=True,
        removable=True,
    )
    return replace(state, columns=(*state.columns, column))


def remove_column(state: SheetState, column_id: str) -> SheetState:
    """Drop a removable column definition; row data under its key is kept."""

    column = state.column(column_id)
    if column is None or not column.removable:
        return state
    columns = tuple(c for c in state.columns if c.id != column_id)
    sort = None if state.sort is not None and state.sort.key == column_id else state.sort
    return replace(state, columns=columns, sort=sort)


def rename_column(state: SheetState, column_id: str, label: str) -> SheetState:
    if state.column(column_id) is None:
        return state
    columns = tuple(
        c.model_copy(update={"label": label}) if c.id == column_id else c for c in state.columns
    )
    return replace(state, columns=columns)


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def toggle_sort(state: SheetState, key: str) -> SheetState:
    """Same key flips asc/desc; a different key starts ascending."""

    current = state.sort
    if current is not None and current.key == key and current.direction == "asc":
        return replace(state, sort=SortConfig(key, "desc"))
    return replace(state, sort=SortConfig(key, "asc"))


def _sort_value(row: Mapping[str, Any], key: str, kind: str | None) -> tuple[int, float, str]:
    if key == "balance":
        return (0, row_balance(row), "")
    value = row.get(key)
    is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
    if kind in _NUMERIC_KINDS or is_number:
        return (0, to_number(value), "")
    return (1, 0.0, "" if value is None else str(value).lower())


def sort_rows(
    rows: Iterable[ManualRow], sort: SortConfig | None, columns: Iterable[ColumnDef] = ()
) -> tuple[ManualRow, ...]:
    """Stable sort of ``rows``; strings compare case-insensitively."""

    rows = tuple(rows)
    if sort is None:
        return rows
    kind = next((c.kind for c in columns if c.id == sort.key), None)
    return tuple(
        sorted(
            rows,
            key=lambda r: _sort_value(r, sort.key, kind),
            reverse=sort.direction == "desc",
        )
    )


def sorted_rows(state: SheetState) -> tuple[ManualRow, ...]:
    return sort_rows(state.rows, state.sort, state.columns)


# ---------------------------------------------------------------------------
# Sum into cell
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PendingSum:
    """An additive adjustment opened against one currency cell.

    ``snapshot`` is the cell value when the adjustment was opened; confirming
    writes ``snapshot + delta`` even if the cell changed in the meantime.
    """

    row_id: str
    column_id: str
    snapshot: float


def open_sum(state: SheetState, row_id: str, column_id: str) -> PendingSum | None:
    """Snapshot a currency cell for an additive adjustment.

    Returns ``None`` when the row is unknown or the column is not a currency
    column, matching the other edits that ignore invalid targets.
    """

    row = state.row(row_id)
    column = state.column(column_id)
    if row is None or column is None or column.kind != "currency":
        return None
    return PendingSum(row_id=row_id, column_id=column_id, snapshot=to_number(row.get(column_id)))


def confirm_sum(state: SheetState, pending: PendingSum, delta_text: str) -> SheetState:
    total = round(pending.snapshot + parse_amount(delta_text), 2)
    return _replace_row(state, pending.row_id, {pending.column_id: total})


# ---------------------------------------------------------------------------
# Report metadata
# ---------------------------------------------------------------------------


def set_title(state: SheetState, title: str) -> SheetState:
    return replace(state, title=title)


def set_logo(state: SheetState, logo: str | None) -> SheetState:
    return replace(state, logo=logo or None)


def add_signature(state: SheetState, label: str = NEW_SIGNATURE_LABEL) -> SheetState:
    return replace(state, signatures=(*state.signatures, label))


def update_signature(state: SheetState, index: int, label: str) -> SheetState:
    if not 0 <= index < len(state.signatures):
        return state
    signatures = list(state.signatures)
    signatures[index] = label
    return replace(state, signatures=tuple(signatures))


def delete_signature(state: SheetState, index: int) -> SheetState:
    if not 0 <= index < len(state.signatures):
        return state
    return replace(
        state, signatures=tuple(s for i, s in enumerate(state.signatures) if i != index)
    )


# ---------------------------------------------------------------------------
# Persistence boundary
# ---------------------------------------------------------------------------


def to_spreadsheet_data(state: SheetState) -> SpreadsheetData:
    return SpreadsheetData(
        title=state.title,
        logo=state.logo,
        columns=list(state.columns),
        rows=[dict(row) for row in state.rows],
        signatures=list(state.signatures),
    )


def from_spreadsheet_data(
    data: SpreadsheetData, *, settings: ReportSettings | None = None
) -> SheetState:
    """Rebuild a sheet from its saved form, filling gaps with defaults.

    Rows without an identifier get a fresh one and any stored ``balance`` is
    dropped so it is always recomputed.
    """

    settings = settings or ReportSettings()
    taken = [raw.get("id") for raw in data.rows if raw.get("id")]
    rows: list[ManualRow] = []
    for raw in data.rows:
        row = {k: v for k, v in raw.items() if k != "balance"}
        if not row.get("id"):
            row["id"] = _unique_id(_ROW_PREFIX, taken)
            taken.append(row["id"])
        rows.append(row)

    return SheetState(
        columns=tuple(data.columns) or default_columns(),
        rows=tuple(rows),
        title=data.title or settings.report_title,
        logo=data.logo or None,
        signatures=(
            tuple(data.signatures) if data.signatures is not None else settings.signatures
        ),
    )


def snapshot(state: SheetState) -> str:
    """Stable serialization of the persisted parts of ``state`` (sort excluded)."""

    payload = {
        "title": state.title,
        "logo": state.logo,
        "cols": [c.model_dump(mode="json", by_alias=True) for c in state.columns],
        "rows": [dict(row) for row in state.rows],
        "sigs": list(state.signatures),
    }
    return json.dumps(payload, sort_keys=True, ensure_ascii=False, default=str)


# ---------------------------------------------------------------------------
# Undo / redo
# ---------------------------------------------------------------------------


class SheetHistory:
    """Linear undo/redo over immutable :class:`SheetState` values."""

    def __init__(self, initial: SheetState, *, limit: int = 100) -> None:
        if limit < 1:
            raise ValueError("limit must be a positive integer")
        self._limit = limit
        self._past: list[SheetState] = []
        self._future: list[SheetState] = []
        self.current = initial

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    def apply(self, state: SheetState) -> SheetState:
        if state == self.current:
            return self.current
        self._past.append(self.current)
        if len(self._past) > self._limit:
            del self._past[0]
        self._future.clear()
        self.current = state
        return state

    def undo(self) -> SheetState:
        if self._past:
            self._future.append(self.current)
            self.current = self._past.pop()
        return self.current

    def redo(self) -> SheetState:
        if self._future:
            self._past.append(self.current)
            self.current = self._future.pop()
        return self.current

    def reset(self, state: SheetState) -> SheetState:
        self._past.clear()
        self._future.clear()
        self.current = state
        return state


__all__ = [
    "MANUAL_SHEET_TITLE",
    "NEW_COLUMN_LABEL",
    "NEW_SIGNATURE_LABEL",
    "PendingSum",
    "SheetHistory",
    "SheetState",
    "SortConfig",
    "add_column",
    "add_row",
    "add_signature",
    "coerce_cell",
    "confirm_sum",
    "default_columns",
    "delete_row",
    "delete_signature",
    "edit_cell",
    "from_spreadsheet_data",
    "new_sheet",
    "open_sum",
    "remove_column",
    "rename_column",
    "set_logo",
    "set_title",
    "sheet_from_ranking",
    "snapshot",
    "sort_rows",
    "sorted_rows",
    "to_spreadsheet_data",
    "toggle_sort",
    "update_signature",
]
