"""Data models and type aliases for ``church_reports``.

Match records are produced upstream (by the reconciliation pipeline) and often
reach this package straight from untyped persisted JSON. They are therefore
kept as opaque mappings (:data:`MatchRecord`) and read defensively; only the
structures this package owns and persists (columns, spreadsheets) and the
organization roster get validated ``pydantic`` models.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Record aliases and reconciliation vocabulary
# ---------------------------------------------------------------------------

MatchRecord: TypeAlias = Mapping[str, Any]
"""A reconciled pairing of a bank transaction with optional contributor/church.

Known keys: ``transaction`` (mapping with ``amount``), ``contributor``
(mapping, optional), ``church`` (mapping, bare identifier or absent),
``status``, ``contributorAmount`` and the legacy sidecars ``_churchId`` /
``_churchName``. Any other keys are carried through untouched.
"""

ManualRow: TypeAlias = dict[str, Any]
"""A spreadsheet row: ``id`` plus a free-form bag of cell values.

``balance`` is never stored; it is always ``income - expense`` on read.
"""

STATUS_IDENTIFIED = "IDENTIFICADO"
STATUS_PENDING = "PENDENTE"
STATUS_UNIDENTIFIED = "unidentified"

# Statuses that carry an organization affiliation and therefore rank.
RANKABLE_STATUSES: frozenset[str] = frozenset({STATUS_IDENTIFIED, STATUS_PENDING})

# Identifiers used historically for "no real organization".
SENTINEL_CHURCH_IDS: frozenset[str] = frozenset({"unidentified", "placeholder", "unk"})

UNKNOWN_CHURCH_NAME = "Igreja Desconhecida"


def placeholder_church() -> dict[str, str]:
    """Return a fresh copy of the stand-in used when nothing resolves."""

    return {"id": "unk", "name": "Desconhecida", "address": "", "pastor": "", "logoUrl": ""}


def is_sentinel_id(value: Any) -> bool:
    return value is None or str(value) in SENTINEL_CHURCH_IDS or str(value) == ""


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------


class Church(BaseModel):
    """An organization from the live roster. Identity is ``id``; names may repeat."""

    model_config = ConfigDict(
        frozen=True, extra="ignore", populate_by_name=True, str_strip_whitespace=True
    )

    id: str
    name: str = ""
    address: str = ""
    pastor: str = ""
    logo_url: str = Field(default="", alias="logoUrl")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> str:
        if v is None or isinstance(v, bool):
            raise ValueError("church id is required")
        s = str(v).strip()
        if not s:
            raise ValueError("church id must be non-empty")
        return s

    @field_validator("name", "address", "pastor", "logo_url", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v


ChurchLike: TypeAlias = Church | Mapping[str, Any]


def church_field(church: Any, key: str) -> Any:
    """Read ``key`` from a church given as a mapping or a :class:`Church`."""

    if church is None:
        return None
    if isinstance(church, Mapping):
        return church.get(key)
    if isinstance(church, Church) and key == "logoUrl":
        return church.logo_url
    return getattr(church, key, None)


@dataclass(frozen=True, slots=True)
class Resolved:
    """An organization reference that points at a real organization."""

    church: ChurchLike

    @property
    def id(self) -> str:
        return str(church_field(self.church, "id"))

    @property
    def name(self) -> str:
        return str(church_field(self.church, "name") or "")


@dataclass(frozen=True, slots=True)
class Unresolved:
    """No real organization could be determined (missing, blank or sentinel id)."""

    fallback: ChurchLike | None = None


OrganizationRef: TypeAlias = Resolved | Unresolved


def classify_church(church: Any) -> OrganizationRef:
    """Collapse the sentinel spellings into a single ``Unresolved`` state."""

    if church is None or not isinstance(church, (Mapping, Church)):
        return Unresolved(None)
    if is_sentinel_id(church_field(church, "id")):
        return Unresolved(church)
    return Resolved(church)


# ---------------------------------------------------------------------------
# Spreadsheet structures (persisted)
# ---------------------------------------------------------------------------

ColumnKind = Literal["index", "text", "number", "currency", "computed"]

BUILTIN_COLUMN_IDS: tuple[str, ...] = ("index", "description", "income", "expense", "balance", "qty")


class ColumnDef(BaseModel):
    """A spreadsheet column. Persisted with the key ``type`` for ``kind``."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str
    label: str = ""
    kind: ColumnKind = Field(default="text", alias="type")
    editable: bool = True
    removable: bool = True
    visible: bool = True

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> str:
        return str(v)

    @property
    def is_builtin(self) -> bool:
        return self.id in BUILTIN_COLUMN_IDS


class SpreadsheetData(BaseModel):
    """The spreadsheet payload exchanged with persistence and print collaborators."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: str = ""
    logo: str | None = None
    columns: list[ColumnDef] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    # None means "never saved"; an explicit empty list is kept as no signatures.
    signatures: list[str] | None = None

    @field_validator("columns", "rows", mode="before")
    @classmethod
    def _none_as_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v

    def to_payload(self) -> dict[str, Any]:
        """Plain JSON-ready mapping using the persisted key names."""

        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "BUILTIN_COLUMN_IDS",
    "Church",
    "ChurchLike",
    "ColumnDef",
    "ColumnKind",
    "ManualRow",
    "MatchRecord",
    "OrganizationRef",
    "RANKABLE_STATUSES",
    "Resolved",
    "SENTINEL_CHURCH_IDS",
    "STATUS_IDENTIFIED",
    "STATUS_PENDING",
    "STATUS_UNIDENTIFIED",
    "SpreadsheetData",
    "UNKNOWN_CHURCH_NAME",
    "Unresolved",
    "church_field",
    "classify_church",
    "is_sentinel_id",
    "placeholder_church",
]
