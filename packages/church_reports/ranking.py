"""Per-organization ranking built from (possibly persisted) match results.

The ranking hydrates the records first, keeps only records with an
organization affiliation (``IDENTIFICADO``/``PENDENTE``) that resolve to a
real organization, and rolls them up into income, expense, balance and count
per organization. Organizations are ordered by balance, highest first; equal
balances keep the order in which the organizations were first seen.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .currency import to_number
from .hydration import hydrate_match_results
from .logging_setup import get_logger
from .models import (
    RANKABLE_STATUSES,
    UNKNOWN_CHURCH_NAME,
    ColumnDef,
    ManualRow,
    Resolved,
    classify_church,
)

_logger = get_logger("church_reports.ranking")

DEFAULT_RANKING_TITLE = "Ranking Geral (Sessão Atual)"
EMPTY_RANKING_NOTICE = "Relatório vazio ou sem dados para ranking."


def ranking_columns() -> tuple[ColumnDef, ...]:
    return (
        ColumnDef(id="index", label="Pos", kind="index", editable=False, removable=False),
        ColumnDef(
            id="description",
            label="Igreja / Congregação",
            kind="text",
            editable=True,
            removable=False,
        ),
        ColumnDef(id="income", label="Entradas", kind="currency", editable=True, removable=False),
        ColumnDef(id="expense", label="Saídas", kind="currency", editable=True, removable=False),
        ColumnDef(id="balance", label="Saldo", kind="computed", editable=False, removable=False),
        ColumnDef(id="qty", label="Qtd", kind="number", editable=True, removable=False),
    )


@dataclass(slots=True)
class RankingEntry:
    """Running totals for one organization."""

    id: str
    name: str
    income: float = 0.0
    expense: float = 0.0
    count: int = 0

    @property
    def balance(self) -> float:
        return self.income - self.expense

    def add(self, amount: float) -> None:
        self.count += 1
        if amount > 0:
            self.income += amount
        elif amount < 0:
            self.expense += abs(amount)

    def to_row(self) -> ManualRow:
        return {
            "id": self.id,
            "description": self.name,
            "income": self.income,
            "expense": self.expense,
            "qty": self.count,
        }


@dataclass(frozen=True, slots=True)
class RankingReport:
    """Report-ready ranking: seed rows, fixed columns, title and optional notice."""

    rows: tuple[ManualRow, ...]
    columns: tuple[ColumnDef, ...]
    title: str
    entries: tuple[RankingEntry, ...] = field(default=())
    notice: str | None = None


def select_amount(record: Mapping[str, Any]) -> float:
    """Pick the amount a record contributes to its organization.

    Priority: the bank transaction's own amount when non-zero, then the
    expected ``contributorAmount``, then the contributor's ``amount``, else 0.
    """

    transaction = record.get("transaction")
    tx_amount = to_number(transaction.get("amount") if isinstance(transaction, Mapping) else None)
    if abs(tx_amount) > 0:
        return tx_amount

    expected = to_number(record.get("contributorAmount"))
    if expected:
        return expected

    contributor = record.get("contributor")
    if isinstance(contributor, Mapping):
        return to_number(contributor.get("amount"))
    return 0.0


def aggregate_by_church(records: Iterable[Mapping[str, Any]]) -> list[RankingEntry]:
    """Accumulate hydrated records per organization, in first-seen order."""

    stats: dict[str, RankingEntry] = {}
    for record in records:
        status = record.get("status")
        if not isinstance(status, str) or status not in RANKABLE_STATUSES:
            continue
        ref = classify_church(record.get("church"))
        if not isinstance(ref, Resolved):
            continue

        entry = stats.get(ref.id)
        if entry is None:
            entry = RankingEntry(id=ref.id, name=ref.name or UNKNOWN_CHURCH_NAME)
            stats[ref.id] = entry
        entry.add(select_amount(record))

    # sorted() is stable, including with reverse=True.
    return sorted(stats.values(), key=lambda e: e.balance, reverse=True)


def ranking_title(report_name: str | None) -> str:
    name = (report_name or "").strip()
    return f"Ranking: {name}" if name else DEFAULT_RANKING_TITLE


def generate_ranking(
    results: Any,
    churches: Iterable[Any] | None,
    report_name: str | None = None,
) -> RankingReport:
    """Hydrate ``results`` against ``churches`` and build the ranking report."""

    hydrated = hydrate_match_results(results, churches)
    entries = aggregate_by_church(hydrated)
    rows = tuple(entry.to_row() for entry in entries)

    _logger.info(
        "ranking built: %d organization(s) from %d record(s)", len(rows), len(hydrated)
    )
    return RankingReport(
        rows=rows,
        columns=ranking_columns(),
        title=ranking_title(report_name),
        entries=tuple(entries),
        notice=None if rows else EMPTY_RANKING_NOTICE,
    )


__all__ = [
    "DEFAULT_RANKING_TITLE",
    "EMPTY_RANKING_NOTICE",
    "RankingEntry",
    "RankingReport",
    "aggregate_by_church",
    "generate_ranking",
    "ranking_columns",
    "ranking_title",
    "select_amount",
]
