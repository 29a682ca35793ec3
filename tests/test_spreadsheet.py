# ruff: noqa: E402, I001
import json
import sys
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR)] if p not in sys.path]

from church_reports.models import ColumnDef, SpreadsheetData  # noqa: E402
from church_reports.ranking import generate_ranking  # noqa: E402
from church_reports.settings import ReportSettings  # noqa: E402
from church_reports.summary import calculate_summary  # noqa: E402
from church_reports.spreadsheet import (  # noqa: E402
    MANUAL_SHEET_TITLE,
    NEW_COLUMN_LABEL,
    NEW_SIGNATURE_LABEL,
    SheetHistory,
    SheetState,
    SortConfig,
    add_column,
    add_row,
    add_signature,
    confirm_sum,
    delete_row,
    delete_signature,
    edit_cell,
    from_spreadsheet_data,
    new_sheet,
    open_sum,
    remove_column,
    rename_column,
    set_logo,
    set_title,
    sheet_from_ranking,
    snapshot,
    sort_rows,
    sorted_rows,
    to_spreadsheet_data,
    toggle_sort,
    update_signature,
)


def _sheet_with_rows(n: int = 2) -> SheetState:
    state = new_sheet()
    for _ in range(n):
        state = add_row(state)
    return state


# ---- Construction ------------------------------------------------------------


def test_new_sheet_defaults():
    state = new_sheet()
    assert state.title == MANUAL_SHEET_TITLE
    assert [c.id for c in state.columns] == ["index", "description", "income", "expense", "balance", "qty"]
    assert state.rows == ()
    assert state.signatures == ("Tesoureiro", "Pastor Responsável")


def test_sheet_from_ranking_copies_rows_and_columns():
    report = generate_ranking(
        [{"transaction": {"amount": 10}, "church": {"id": "c1"}, "status": "IDENTIFICADO"}],
        [{"id": "c1", "name": "Alpha"}],
        "Maio",
    )
    state = sheet_from_ranking(report, settings=ReportSettings(signatures=("Tesoureira",)))
    assert state.title == "Ranking: Maio"
    assert state.rows[0]["description"] == "Alpha"
    assert state.rows[0] is not report.rows[0]
    assert state.signatures == ("Tesoureira",)


# ---- Rows and cells ----------------------------------------------------------


def test_add_row_assigns_unique_ids_and_blank_custom_cells():
    state = add_column(new_sheet())
    custom_id = state.columns[-1].id
    state = add_row(add_row(state))
    ids = [r["id"] for r in state.rows]
    assert len(set(ids)) == 2
    assert state.rows[0][custom_id] == ""
    assert state.rows[0]["income"] == 0


def test_add_row_after_delete_does_not_reuse_live_ids():
    state = _sheet_with_rows(3)
    state = delete_row(state, state.rows[0]["id"])
    state = add_row(state)
    ids = [r["id"] for r in state.rows]
    assert len(set(ids)) == 3


def test_delete_unknown_row_is_noop():
    state = _sheet_with_rows(1)
    assert delete_row(state, "nope") is state


def test_operations_never_mutate_the_previous_state():
    before = _sheet_with_rows(1)
    row_id = before.rows[0]["id"]
    after = edit_cell(before, row_id, "income", "1234")
    assert before.rows[0]["income"] == 0
    assert after.rows[0]["income"] == 12.34


@pytest.mark.parametrize(
    "column_id, value, expected",
    [
        ("income", "1234", 12.34),
        ("expense", "R$ 5,00", 5.0),
        ("income", 7.456, 7.46),
        ("qty", "3 un", 3),
        ("qty", "", 0),
        ("description", "Oferta", "Oferta"),
    ],
)
def test_edit_cell_coerces_by_column_kind(column_id, value, expected):
    state = _sheet_with_rows(1)
    row_id = state.rows[0]["id"]
    assert edit_cell(state, row_id, column_id, value).rows[0][column_id] == expected


def test_pasted_digit_flood_is_stored_as_zero_and_totals_still_work():
    state = _sheet_with_rows(1)
    row_id = state.rows[0]["id"]
    flood = "9" * 400
    state = edit_cell(state, row_id, "qty", flood)
    state = edit_cell(state, row_id, "income", flood)
    assert state.rows[0]["qty"] == 0
    assert state.rows[0]["income"] == 0.0

    summary = calculate_summary(state.rows)
    assert (summary.income, summary.qty) == (0.0, 0.0)


def test_edit_cell_ignores_read_only_and_unknown_targets():
    state = _sheet_with_rows(1)
    row_id = state.rows[0]["id"]
    assert edit_cell(state, row_id, "balance", "999") is state
    assert edit_cell(state, row_id, "index", "5") is state
    assert edit_cell(state, row_id, "missing", "x") is state
    assert edit_cell(state, "missing", "income", "100") is state


def test_custom_currency_column_goes_through_the_codec():
    state = _sheet_with_rows(1)
    extra = ColumnDef(id="custom_9", label="Dízimos", kind="currency")
    state = SheetState(columns=(*state.columns, extra), rows=state.rows)
    row_id = state.rows[0]["id"]
    assert edit_cell(state, row_id, "custom_9", "250").rows[0]["custom_9"] == 2.5


# ---- Columns -----------------------------------------------------------------


def test_add_rename_and_remove_column():
    state = add_column(_sheet_with_rows(1))
    col = state.columns[-1]
    assert col.id.startswith("custom_")
    assert col.label == NEW_COLUMN_LABEL
    assert col.editable and col.removable

    state = rename_column(state, col.id, "Observação")
    assert state.column(col.id).label == "Observação"

    row_id = state.rows[0]["id"]
    state = edit_cell(state, row_id, col.id, "nota")
    state = remove_column(state, col.id)
    assert state.column(col.id) is None
    # Data under the removed key is kept but no longer displayed.
    assert state.rows[0][col.id] == "nota"


def test_readding_a_column_does_not_resurrect_removed_data():
    state = add_column(_sheet_with_rows(1))
    old_id = state.columns[-1].id
    state = edit_cell(state, state.rows[0]["id"], old_id, "antigo")
    state = add_column(remove_column(state, old_id))
    new_id = state.columns[-1].id
    assert new_id != old_id
    assert state.rows[0].get(new_id) is None


def test_builtin_columns_cannot_be_removed():
    state = new_sheet()
    assert remove_column(state, "income") is state
    assert remove_column(state, "nope") is state


def test_removing_the_sorted_column_clears_the_sort():
    state = add_column(new_sheet())
    col_id = state.columns[-1].id
    state = toggle_sort(state, col_id)
    assert remove_column(state, col_id).sort is None


# ---- Sorting -----------------------------------------------------------------


def test_toggle_sort_cycles_direction():
    state = new_sheet()
    state = toggle_sort(state, "income")
    assert state.sort == SortConfig("income", "asc")
    state = toggle_sort(state, "income")
    assert state.sort == SortConfig("income", "desc")
    state = toggle_sort(state, "income")
    assert state.sort == SortConfig("income", "asc")
    state = toggle_sort(state, "description")
    assert state.sort == SortConfig("description", "asc")


def test_sort_is_case_insensitive_and_stable():
    rows = [
        {"id": "1", "description": "beta"},
        {"id": "2", "description": "Alpha"},
        {"id": "3", "description": "alpha"},
    ]
    out = sort_rows(rows, SortConfig("description", "asc"))
    assert [r["id"] for r in out] == ["2", "3", "1"]
    out = sort_rows(rows, SortConfig("description", "desc"))
    assert [r["id"] for r in out] == ["1", "2", "3"]


def test_sort_by_balance_uses_live_values():
    rows = [
        {"id": "a", "income": 10, "expense": 0, "balance": -100},
        {"id": "b", "income": 50, "expense": 45},
    ]
    out = sort_rows(rows, SortConfig("balance", "desc"))
    assert [r["id"] for r in out] == ["a", "b"]


def test_numeric_columns_sort_numerically():
    rows = [{"id": "a", "income": "9"}, {"id": "b", "income": 10}, {"id": "c", "income": None}]
    out = sort_rows(rows, SortConfig("income", "asc"), [ColumnDef(id="income", kind="currency")])
    assert [r["id"] for r in out] == ["c", "a", "b"]


def test_sorted_rows_leaves_stored_order_alone():
    state = _sheet_with_rows(2)
    first, second = (r["id"] for r in state.rows)
    state = edit_cell(state, first, "income", "500")
    state = toggle_sort(toggle_sort(state, "income"), "income")
    assert [r["id"] for r in sorted_rows(state)] == [first, second]
    state = toggle_sort(state, "income")
    assert [r["id"] for r in sorted_rows(state)] == [second, first]
    assert [r["id"] for r in state.rows] == [first, second]


# ---- Sum into cell -----------------------------------------------------------


def test_sum_uses_the_value_seen_when_opened():
    state = _sheet_with_rows(1)
    row_id = state.rows[0]["id"]
    state = edit_cell(state, row_id, "income", "10000")  # 100.00
    pending = open_sum(state, row_id, "income")

    # Someone else sets the cell to 150.00 before the adjustment is confirmed.
    state = edit_cell(state, row_id, "income", "15000")
    state = confirm_sum(state, pending, "5000")
    assert state.rows[0]["income"] == 150.0


def test_sum_adds_cents_exactly():
    state = _sheet_with_rows(1)
    row_id = state.rows[0]["id"]
    state = edit_cell(state, row_id, "expense", "10")  # 0.10
    state = confirm_sum(state, open_sum(state, row_id, "expense"), "20")
    assert state.rows[0]["expense"] == 0.3


def test_open_sum_on_invalid_target_returns_none():
    state = _sheet_with_rows(1)
    before = snapshot(state)
    assert open_sum(state, "missing", "income") is None
    assert open_sum(state, state.rows[0]["id"], "description") is None
    assert open_sum(state, state.rows[0]["id"], "nope") is None
    assert snapshot(state) == before


def test_confirm_sum_on_deleted_row_is_noop():
    state = _sheet_with_rows(1)
    row_id = state.rows[0]["id"]
    pending = open_sum(state, row_id, "income")
    state = delete_row(state, row_id)
    assert confirm_sum(state, pending, "100") is state


# ---- Metadata ----------------------------------------------------------------


def test_signature_editing():
    state = add_signature(new_sheet())
    assert state.signatures[-1] == NEW_SIGNATURE_LABEL
    state = update_signature(state, 2, "Secretário")
    assert state.signatures == ("Tesoureiro", "Pastor Responsável", "Secretário")
    state = delete_signature(state, 0)
    assert state.signatures == ("Pastor Responsável", "Secretário")
    assert update_signature(state, 5, "x") is state
    assert delete_signature(state, -1) is state


def test_title_and_logo():
    state = set_logo(set_title(new_sheet(), "Balancete"), "data:image/png;base64,AAAA")
    assert state.title == "Balancete"
    assert state.logo.startswith("data:image/png")
    assert set_logo(state, "").logo is None


# ---- Persistence -------------------------------------------------------------


def test_spreadsheet_data_round_trip_restores_the_sheet():
    state = add_column(_sheet_with_rows(2))
    state = edit_cell(state, state.rows[0]["id"], "income", "1234")
    state = set_title(state, "Balancete de Junho")

    payload = to_spreadsheet_data(state).to_payload()
    assert payload["columns"][0]["type"] == "index"
    restored = from_spreadsheet_data(SpreadsheetData.model_validate(json.loads(json.dumps(payload))))

    assert snapshot(restored) == snapshot(state)


def test_from_spreadsheet_data_fills_gaps():
    data = SpreadsheetData.model_validate(
        {
            "title": "",
            "columns": None,
            "rows": [{"description": "a", "balance": 5}, {"id": "row-1", "description": "b"}],
        }
    )
    state = from_spreadsheet_data(data)
    assert state.title == "Relatório Financeiro"
    assert [c.id for c in state.columns][0] == "index"
    assert state.signatures == ("Tesoureiro", "Pastor Responsável")
    ids = [r["id"] for r in state.rows]
    assert len(set(ids)) == 2 and "row-1" in ids
    assert all("balance" not in r for r in state.rows)


def test_explicit_empty_signatures_are_kept():
    state = from_spreadsheet_data(SpreadsheetData(signatures=[]))
    assert state.signatures == ()


def test_snapshot_ignores_sort():
    state = _sheet_with_rows(1)
    assert snapshot(toggle_sort(state, "income")) == snapshot(state)
    assert snapshot(set_title(state, "Outro")) != snapshot(state)


# ---- History -----------------------------------------------------------------


def test_history_undo_redo():
    history = SheetHistory(new_sheet())
    first = history.current
    history.apply(add_row(first))
    second = history.current
    history.apply(set_title(second, "T"))

    assert history.undo() is second
    assert history.undo() is first
    assert not history.can_undo
    assert history.redo() is second
    assert history.can_redo


def test_history_new_change_clears_redo():
    history = SheetHistory(new_sheet())
    history.apply(add_row(history.current))
    history.undo()
    history.apply(set_title(history.current, "X"))
    assert not history.can_redo


def test_history_ignores_no_op_changes_and_honors_limit():
    history = SheetHistory(new_sheet(), limit=2)
    history.apply(history.current)
    assert not history.can_undo
    for i in range(5):
        history.apply(set_title(history.current, f"T{i}"))
    history.undo()
    history.undo()
    assert not history.can_undo
    assert history.current.title == "T2"
    with pytest.raises(ValueError):
        SheetHistory(new_sheet(), limit=0)
