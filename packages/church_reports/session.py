"""The owning session: one editable sheet plus the report it came from.

:class:`AnalysisSession` is the only stateful object in the package. It keeps
the current :class:`~church_reports.spreadsheet.SheetState` behind a
:class:`~church_reports.spreadsheet.SheetHistory`, remembers which saved report
is active, and turns load failures into :class:`Notice` values instead of
exceptions so a hosting application can show them as toasts.

Ranking passes are tokenized. :meth:`AnalysisSession.begin_pass` hands out a
generation number and :meth:`AnalysisSession.commit_ranking` refuses results
whose generation has been superseded (a newer load, ranking or manual sheet
started in the meantime). Aggregation is not incremental, so a stale pass is
dropped rather than merged.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Literal, Protocol, TypeAlias

from pydantic import ValidationError

from .hydration import hydrate_match_results
from .logging_setup import get_logger
from .models import SpreadsheetData
from .ranking import RankingReport, generate_ranking
from .settings import ReportSettings
from .spreadsheet import (
    PendingSum,
    SheetHistory,
    SheetState,
    confirm_sum,
    from_spreadsheet_data,
    new_sheet,
    open_sum,
    sheet_from_ranking,
    snapshot,
    sorted_rows,
    to_spreadsheet_data,
)
from .summary import Summary, calculate_summary

_logger = get_logger("church_reports.session")

NoticeLevel: TypeAlias = Literal["info", "success", "error"]
Template: TypeAlias = Literal["ranking", "manual_structure"]

LOAD_ERROR_NOTICE = "Erro ao processar relatório."
EMPTY_REPORT_NOTICE = "Relatório vazio."
NEW_SHEET_NOTICE = "Nova planilha criada."
CURRENT_SESSION_NAME = "Sessão Atual"


class ReportLoadError(RuntimeError):
    """A persisted report could not be fetched or decoded."""


class ReportStore(Protocol):
    """Persistence collaborator able to fetch a saved report's data blob.

    Adapters signal failure with :class:`ReportLoadError` or any ``OSError``
    (connection and timeout errors included).
    """

    def fetch_report_data(self, report_id: str) -> Any:  # pragma: no cover - protocol
        ...


@dataclass(frozen=True, slots=True)
class Notice:
    level: NoticeLevel
    message: str


def decode_report_data(raw: Any) -> dict[str, Any]:
    """Decode a stored report blob into a mapping.

    Parameters
    ----------
    raw:
        ``None`` (nothing stored), a mapping, or a JSON-encoded string of a
        mapping.

    Raises
    ------
    ReportLoadError
        If ``raw`` is a string that is not JSON, or decodes to something other
        than an object.
    """

    if raw is None:
        return {}
    if isinstance(raw, str):
        if not raw.strip():
            return {}
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ReportLoadError(f"report data is not valid JSON: {exc.msg}") from exc
    if not isinstance(raw, Mapping):
        raise ReportLoadError(f"report data must be an object, got {type(raw).__name__}")
    return dict(raw)


def _has_results(results: Any) -> bool:
    return isinstance(results, (list, tuple)) and len(results) > 0


class AnalysisSession:
    """In-memory owner of the current report sheet.

    Parameters
    ----------
    roster:
        Current organizations used to hydrate persisted match results.
    store:
        Optional :class:`ReportStore` consulted when a report arrives without
        its data.
    settings:
        Formatting and default metadata; ``ReportSettings()`` when omitted.
    """

    def __init__(
        self,
        roster: Iterable[Any] | None,
        store: ReportStore | None = None,
        settings: ReportSettings | None = None,
    ) -> None:
        self.roster: list[Any] = list(roster or ())
        self.store = store
        self.settings = settings or ReportSettings()

        self.history = SheetHistory(
            SheetState(title=self.settings.report_title, signatures=self.settings.signatures)
        )
        self.template: Template = "manual_structure"
        self.active_report_id: str | None = None
        self.match_results: list[dict[str, Any]] = []
        self.notices: list[Notice] = []
        self.pending_sum: PendingSum | None = None

        self._generation = 0
        self._saved_snapshot: str | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def sheet(self) -> SheetState:
        return self.history.current

    @property
    def generation(self) -> int:
        return self._generation

    def rows(self) -> tuple[dict[str, Any], ...]:
        """Rows in display order (the current sort applied)."""

        return sorted_rows(self.sheet)

    def summary(self) -> Summary:
        return calculate_summary(self.sheet.rows)

    @property
    def is_dirty(self) -> bool:
        """Whether the sheet differs from what was last saved or loaded.

        Without a saved reference, a sheet counts as dirty once it has rows or
        a title other than the configured default.
        """

        if self.active_report_id is not None and self._saved_snapshot is not None:
            return snapshot(self.sheet) != self._saved_snapshot
        return bool(self.sheet.rows) or self.sheet.title != self.settings.report_title

    def _notify(self, level: NoticeLevel, message: str) -> Notice:
        notice = Notice(level, message)
        self.notices.append(notice)
        return notice

    def drain_notices(self) -> list[Notice]:
        notices, self.notices = self.notices, []
        return notices

    # ------------------------------------------------------------------
    # Ranking passes
    # ------------------------------------------------------------------

    def begin_pass(self) -> int:
        """Start a new pass; every earlier token becomes stale."""

        self._generation += 1
        return self._generation

    def commit_ranking(self, token: int, report: RankingReport) -> bool:
        """Install ``report`` as the current sheet if ``token`` is still current."""

        if token != self._generation:
            _logger.info(
                "discarding stale ranking pass %d (current generation %d)", token, self._generation
            )
            return False

        self.history.reset(sheet_from_ranking(report, settings=self.settings))
        self.template = "ranking"
        self.pending_sum = None
        if report.notice:
            self._notify("info", report.notice)
        return True

    def generate_ranking(self, results: Any, report_name: str | None = None) -> RankingReport:
        token = self.begin_pass()
        report = generate_ranking(results, self.roster, report_name)
        self.commit_ranking(token, report)
        return report

    def rerank(self) -> RankingReport | None:
        """Rank the match results already held by the session, if any."""

        if not self.match_results:
            return None
        name = "" if self.active_report_id else CURRENT_SESSION_NAME
        return self.generate_ranking(self.match_results, name)

    # ------------------------------------------------------------------
    # Loading and starting sheets
    # ------------------------------------------------------------------

    def _report_payload(self, report: Mapping[str, Any]) -> dict[str, Any]:
        payload = decode_report_data(report.get("data"))
        if "results" in payload or "spreadsheet" in payload:
            return payload
        if self.store is None:
            return payload

        report_id = report.get("id")
        if report_id is None:
            return payload
        _logger.debug("report %s carries no data; fetching from store", report_id)
        return decode_report_data(self.store.fetch_report_data(str(report_id)))

    def load_report(self, report: Mapping[str, Any]) -> bool:
        """Load a saved report ``{id, name, data}`` into the session.

        A saved spreadsheet is restored as it was stored; otherwise the saved
        match results are ranked under the report's name. Failures become
        error notices and leave the session as it was. Returns ``True`` when
        something was loaded.
        """

        name = str(report.get("name") or "")
        try:
            payload = self._report_payload(report)
            results = payload.get("results")
            raw_sheet = payload.get("spreadsheet")
            sheet_data = (
                SpreadsheetData.model_validate(raw_sheet) if raw_sheet is not None else None
            )
        except (ReportLoadError, ValidationError, OSError) as exc:
            _logger.warning("failed to load report %r: %s", report.get("id"), exc)
            self._notify("error", LOAD_ERROR_NOTICE)
            return False

        if not _has_results(results) and sheet_data is None:
            self._notify("error", EMPTY_REPORT_NOTICE)
            return False

        report_id = report.get("id")
        self.active_report_id = None if report_id is None else str(report_id)
        self.match_results = hydrate_match_results(results, self.roster) if results else []

        if sheet_data is not None:
            self.begin_pass()
            self.history.reset(from_spreadsheet_data(sheet_data, settings=self.settings))
            self.template = "manual_structure"
            self.pending_sum = None
            self._saved_snapshot = snapshot(self.sheet)
        else:
            self.generate_ranking(self.match_results, name)
            self._saved_snapshot = snapshot(self.sheet)

        self._notify("success", f'Relatório "{name}" carregado.')
        return True

    def start_manual(self) -> SheetState:
        """Replace the sheet with an empty freehand sheet, detached from any report."""

        self.begin_pass()
        self.active_report_id = None
        self.template = "manual_structure"
        self.pending_sum = None
        self._saved_snapshot = None
        self.history.reset(new_sheet(settings=self.settings))
        self._notify("success", NEW_SHEET_NOTICE)
        return self.sheet

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def apply(self, fn: Callable[..., SheetState], *args: Any, **kwargs: Any) -> SheetState:
        """Run a pure sheet transformation and record it for undo.

        ``fn`` receives the current state first, e.g.
        ``session.apply(edit_cell, "row-1", "income", "1234")``.
        """

        return self.history.apply(fn(self.sheet, *args, **kwargs))

    def undo(self) -> SheetState:
        return self.history.undo()

    def redo(self) -> SheetState:
        return self.history.redo()

    def open_sum(self, row_id: str, column_id: str) -> PendingSum | None:
        self.pending_sum = open_sum(self.sheet, row_id, column_id)
        return self.pending_sum

    def confirm_sum(self, delta_text: str) -> SheetState:
        """Apply the open adjustment. Without one this is a no-op."""

        pending, self.pending_sum = self.pending_sum, None
        if pending is None:
            return self.sheet
        return self.history.apply(confirm_sum(self.sheet, pending, delta_text))

    def cancel_sum(self) -> None:
        self.pending_sum = None

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def save_payload(self) -> SpreadsheetData:
        return to_spreadsheet_data(self.sheet)

    def mark_saved(self, report_id: str | None = None) -> None:
        """Record the current sheet as saved, optionally under a new report id."""

        if report_id is not None:
            self.active_report_id = report_id
        self._saved_snapshot = snapshot(self.sheet)


__all__ = [
    "AnalysisSession",
    "CURRENT_SESSION_NAME",
    "EMPTY_REPORT_NOTICE",
    "LOAD_ERROR_NOTICE",
    "NEW_SHEET_NOTICE",
    "Notice",
    "ReportLoadError",
    "ReportStore",
    "decode_report_data",
]
