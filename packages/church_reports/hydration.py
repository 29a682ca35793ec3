"""Re-link persisted match records to the current organization roster.

Saved reports keep only fragments of the organization a record belonged to:
the embedded ``church`` object (sometimes just its identifier), or one of two
legacy sidecar fields. The roster may also have changed since the report was
saved. :func:`hydrate_match_results` repairs every record so that its
``church`` is the best currently-known organization:

1. find a candidate identifier with the ordered :data:`ID_ACCESSORS`;
2. if the roster knows that identifier, use the roster's object;
3. otherwise, if a name was saved alongside, synthesize a minimal organization;
4. otherwise keep whatever organization object the record had, or the
   placeholder when it had none.

The resolved organization is copied onto the contributor too. Inputs are
never mutated and no input shape makes the function raise.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeAlias

from .logging_setup import get_logger
from .models import (
    Church,
    ChurchLike,
    MatchRecord,
    Resolved,
    church_field,
    classify_church,
    is_sentinel_id,
    placeholder_church,
)

_logger = get_logger("church_reports.hydration")

IdAccessor: TypeAlias = Callable[[Mapping[str, Any]], str | None]


def _clean_id(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    s = str(value)
    if is_sentinel_id(s):
        return None
    return s


def _clean_name(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value)
    return s if s.strip() else None


# ---------------------------------------------------------------------------
# Identifier accessors (tried in order; first non-empty, non-sentinel wins)
# ---------------------------------------------------------------------------


def embedded_church_id(record: Mapping[str, Any]) -> str | None:
    """``church.id``, or ``church`` itself when it was saved as a bare identifier."""

    church = record.get("church")
    if isinstance(church, (str, int)) and not isinstance(church, bool):
        return _clean_id(church)
    return _clean_id(church_field(church, "id"))


def legacy_church_id(record: Mapping[str, Any]) -> str | None:
    """Top-level ``_churchId`` sidecar written by older report versions."""

    return _clean_id(record.get("_churchId"))


def contributor_church_id(record: Mapping[str, Any]) -> str | None:
    """``contributor._churchId`` sidecar written by the contributor importer."""

    contributor = record.get("contributor")
    if not isinstance(contributor, Mapping):
        return None
    return _clean_id(contributor.get("_churchId"))


ID_ACCESSORS: tuple[IdAccessor, ...] = (
    embedded_church_id,
    legacy_church_id,
    contributor_church_id,
)


def candidate_church_id(
    record: Mapping[str, Any], accessors: Iterable[IdAccessor] = ID_ACCESSORS
) -> str | None:
    for accessor in accessors:
        found = accessor(record)
        if found:
            return found
    return None


def recovered_church_name(record: Mapping[str, Any]) -> str | None:
    """Name saved with the record: ``_churchName`` first, then ``church.name``.

    A placeholder's display name (``"---"``, ``"Desconhecida"``) is not a
    recovered name and is ignored.
    """

    legacy = _clean_name(record.get("_churchName"))
    if legacy is not None:
        return legacy
    ref = classify_church(_embedded_church_object(record))
    if isinstance(ref, Resolved):
        return _clean_name(ref.name)
    return None


def _embedded_church_object(record: Mapping[str, Any]) -> ChurchLike | None:
    church = record.get("church")
    if isinstance(church, (Mapping, Church)):
        return church
    return None


# ---------------------------------------------------------------------------
# Roster lookup and record repair
# ---------------------------------------------------------------------------


def index_roster(churches: Iterable[Any] | None) -> dict[str, Mapping[str, Any]]:
    """Map identifier -> roster mapping. The first entry wins on duplicate ids.

    Mapping entries are kept as the very same objects. :class:`Church` models
    are serialized once with their persisted key names (``logoUrl``), so
    hydrated records stay JSON-shaped.
    """

    index: dict[str, Mapping[str, Any]] = {}
    for church in churches or ():
        if isinstance(church, Church):
            church = church.model_dump(by_alias=True)
        elif not isinstance(church, Mapping):
            continue
        cid = _clean_id(church.get("id"))
        if cid is not None and cid not in index:
            index[cid] = church
    return index


def synthesize_church(church_id: str, name: str) -> dict[str, str]:
    return {"id": church_id, "name": name, "address": "", "pastor": "", "logoUrl": ""}


def resolve_church(
    record: Mapping[str, Any], roster: Mapping[str, Mapping[str, Any]]
) -> tuple[ChurchLike | None, str | None]:
    """Return ``(best organization or None, candidate identifier used)``."""

    candidate = candidate_church_id(record)
    church = _embedded_church_object(record)
    if candidate is None:
        return church, None

    found = roster.get(candidate)
    if found is not None:
        return found, candidate

    name = recovered_church_name(record)
    if name is not None:
        _logger.debug("church %s not in roster; synthesized from saved name", candidate)
        return synthesize_church(candidate, name), candidate

    _logger.debug("church %s not in roster and no saved name", candidate)
    return church, candidate


def hydrate_record(
    record: MatchRecord, roster: Mapping[str, Mapping[str, Any]]
) -> dict[str, Any]:
    church, candidate = resolve_church(record, roster)

    out = dict(record)
    contributor = record.get("contributor")
    if isinstance(contributor, Mapping) and isinstance(classify_church(church), Resolved):
        out["contributor"] = {**contributor, "church": church}

    out["church"] = church if church is not None else placeholder_church()
    out["_injectedId"] = candidate
    return out


def hydrate_match_results(results: Any, churches: Iterable[Any] | None) -> list[dict[str, Any]]:
    """Return repaired copies of ``results`` linked against ``churches``.

    ``results`` is normally a list of record mappings decoded from storage;
    anything that is not a list yields ``[]`` and non-mapping entries are
    skipped.
    """

    if not isinstance(results, (list, tuple)):
        if results is not None:
            _logger.warning("expected a list of match results, got %s", type(results).__name__)
        return []

    roster = index_roster(churches)
    hydrated: list[dict[str, Any]] = []
    skipped = 0
    for record in results:
        if not isinstance(record, Mapping):
            skipped += 1
            continue
        hydrated.append(hydrate_record(record, roster))

    if skipped:
        _logger.warning("skipped %d malformed match result(s) during hydration", skipped)
    return hydrated


__all__ = [
    "ID_ACCESSORS",
    "IdAccessor",
    "candidate_church_id",
    "contributor_church_id",
    "embedded_church_id",
    "hydrate_match_results",
    "hydrate_record",
    "index_roster",
    "legacy_church_id",
    "recovered_church_name",
    "resolve_church",
    "synthesize_church",
]
