"""Environment-driven settings for report generation and display.

Values are read from the process environment (the CLI loads a local ``.env``
first via ``python-dotenv``). Library callers may also construct
:class:`ReportSettings` directly.

Variables
---------
- ``CHURCH_REPORTS_DECIMAL_SEPARATOR`` (default ``","``)
- ``CHURCH_REPORTS_GROUP_SEPARATOR`` (default ``"."``)
- ``CHURCH_REPORTS_REPORT_TITLE`` (default ``"Relatório Financeiro"``)
- ``CHURCH_REPORTS_SIGNATURES`` (comma-separated; default
  ``"Tesoureiro,Pastor Responsável"``)
- ``CHURCH_REPORTS_LOG_LEVEL`` (level name; default ``"INFO"``)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from .logging_setup import level_from_name

DEFAULT_REPORT_TITLE = "Relatório Financeiro"
DEFAULT_SIGNATURES: tuple[str, ...] = ("Tesoureiro", "Pastor Responsável")


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_separator(name: str, default: str) -> str:
    # Separators may legitimately be a single space, so only unset/empty falls back.
    value = os.getenv(name)
    if not value:
        return default
    return value


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    items = tuple(part.strip() for part in value.split(",") if part.strip())
    return items or default


@dataclass(frozen=True, slots=True)
class ReportSettings:
    """Locale and default-content settings shared by the codec, sheets and export."""

    decimal_separator: str = ","
    group_separator: str = "."
    report_title: str = DEFAULT_REPORT_TITLE
    signatures: tuple[str, ...] = field(default=DEFAULT_SIGNATURES)
    log_level: int = logging.INFO

    def __post_init__(self) -> None:
        if self.decimal_separator == self.group_separator:
            raise ValueError(
                "decimal_separator and group_separator must differ "
                f"(both are {self.decimal_separator!r})"
            )

    @classmethod
    def from_env(cls) -> ReportSettings:
        return cls(
            decimal_separator=_env_separator("CHURCH_REPORTS_DECIMAL_SEPARATOR", ","),
            group_separator=_env_separator("CHURCH_REPORTS_GROUP_SEPARATOR", "."),
            report_title=_env_str("CHURCH_REPORTS_REPORT_TITLE", DEFAULT_REPORT_TITLE),
            signatures=_env_list("CHURCH_REPORTS_SIGNATURES", DEFAULT_SIGNATURES),
            log_level=level_from_name(os.getenv("CHURCH_REPORTS_LOG_LEVEL")),
        )


__all__ = ["DEFAULT_REPORT_TITLE", "DEFAULT_SIGNATURES", "ReportSettings"]
