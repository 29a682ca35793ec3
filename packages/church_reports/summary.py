"""Footer totals for a spreadsheet row set."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .currency import to_number


@dataclass(frozen=True, slots=True)
class Summary:
    income: float = 0.0
    expense: float = 0.0
    qty: float = 0.0

    @property
    def balance(self) -> float:
        return self.income - self.expense


def row_balance(row: Mapping[str, Any]) -> float:
    """Live ``income - expense`` for a row; ``balance`` is never read from storage."""

    return to_number(row.get("income")) - to_number(row.get("expense"))


def calculate_summary(rows: Iterable[Mapping[str, Any]]) -> Summary:
    """Fold ``rows`` into totals. Malformed cells count as zero."""

    income = expense = qty = 0.0
    for row in rows:
        income += to_number(row.get("income"))
        expense += to_number(row.get("expense"))
        qty += to_number(row.get("qty"))
    return Summary(income=income, expense=expense, qty=qty)


__all__ = ["Summary", "calculate_summary", "row_balance"]
