"""Public interface for the ``church_reports`` package.

Financial reporting core for church/congregation reconciliation: re-linking
saved match results to the current roster, ranking organizations by balance,
and the editable report spreadsheet with its totals. This module only
re-exports the stable import surface.
"""

from .currency import format_amount, parse_amount, to_number
from .export import display_rows, to_csv
from .hydration import hydrate_match_results
from .models import (
    Church,
    ColumnDef,
    OrganizationRef,
    Resolved,
    SpreadsheetData,
    Unresolved,
    classify_church,
)
from .ranking import RankingEntry, RankingReport, generate_ranking
from .session import AnalysisSession, Notice, ReportLoadError, ReportStore, decode_report_data
from .settings import ReportSettings
from .spreadsheet import PendingSum, SheetHistory, SheetState, SortConfig
from .summary import Summary, calculate_summary

__all__ = [
    # Codec
    "format_amount",
    "parse_amount",
    "to_number",
    # Hydration and ranking
    "hydrate_match_results",
    "generate_ranking",
    "RankingEntry",
    "RankingReport",
    # Models
    "Church",
    "ColumnDef",
    "OrganizationRef",
    "Resolved",
    "SpreadsheetData",
    "Unresolved",
    "classify_church",
    # Spreadsheet and session
    "AnalysisSession",
    "Notice",
    "PendingSum",
    "ReportLoadError",
    "ReportSettings",
    "ReportStore",
    "SheetHistory",
    "SheetState",
    "SortConfig",
    "Summary",
    "calculate_summary",
    "decode_report_data",
    "display_rows",
    "to_csv",
]
