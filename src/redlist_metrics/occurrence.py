"""
Occurrence records and the rules deciding which of them enter a computation.

Legacy records may lack ``calcStatus``; `normalize_occurrence` fills it in once,
at ingestion, so the engines can rely on fully populated `Occurrence` values.
"""

import math
import uuid
from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Literal, Mapping, NamedTuple, Optional, Sequence, Tuple

CalcStatus = Literal["enabled", "disabled"]

DEFAULT_CALC_STATUS: CalcStatus = "enabled"
_CALC_STATUSES = ("enabled", "disabled")


class LatLonValidation(NamedTuple):
    """Outcome of `validate_lat_lon`; ``reason`` is None when ``ok``."""

    ok: bool
    reason: Optional[str] = None


def validate_lat_lon(lat: float, lon: float) -> LatLonValidation:
    """
    Check that a coordinate pair is usable for EOO/AOO.

    Reasons, checked in this order: ``not-finite``, ``lat-out-of-range``,
    ``lon-out-of-range`` and ``zero-zero``. (0, 0) is a common placeholder for
    missing data and is never treated as a real point.

    Examples:
        >>> validate_lat_lon(-10.0, -50.0)
        LatLonValidation(ok=True, reason=None)
        >>> validate_lat_lon(0.0, 0.0).reason
        'zero-zero'
    """
    if not is_finite_number(lat) or not is_finite_number(lon):
        return LatLonValidation(False, "not-finite")
    if lat < -90 or lat > 90:
        return LatLonValidation(False, "lat-out-of-range")
    if lon < -180 or lon > 180:
        return LatLonValidation(False, "lon-out-of-range")
    if lat == 0 and lon == 0:
        return LatLonValidation(False, "zero-zero")
    return LatLonValidation(True)


def is_finite_number(value: Any) -> bool:
    """True for int or float values other than bool, NaN and infinities."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def generate_occurrence_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Occurrence:
    """A georeferenced record of the assessed taxon."""

    id: str
    lat: float
    lon: float
    label: Optional[str] = None
    calc_status: CalcStatus = DEFAULT_CALC_STATUS
    source: Optional[str] = None

    @property
    def is_enabled(self) -> bool:
        return self.calc_status == "enabled"

    def to_dict(self) -> dict:
        """Plain-data form used at the transport and persistence boundary."""
        d = {
            "id": self.id,
            "lat": self.lat,
            "lon": self.lon,
            "calcStatus": self.calc_status,
        }
        if self.label is not None:
            d["label"] = self.label
        if self.source is not None:
            d["source"] = self.source
        return d

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Occurrence":
        """
        Build an Occurrence from its plain-data form.

        Raises:
            TypeError: If lat/lon are not numbers or id is not a string.
            ValueError: If calcStatus is not "enabled" or "disabled".
        """
        lat = d.get("lat")
        lon = d.get("lon")
        if isinstance(lat, bool) or not isinstance(lat, (int, float)):
            raise TypeError(f"lat must be a number, got {type(lat).__name__}")
        if isinstance(lon, bool) or not isinstance(lon, (int, float)):
            raise TypeError(f"lon must be a number, got {type(lon).__name__}")
        occurrence_id = d.get("id")
        if not isinstance(occurrence_id, str):
            raise TypeError(f"id must be a string, got {type(occurrence_id).__name__}")
        label = d.get("label")
        source = d.get("source")
        return cls(
            id=occurrence_id,
            lat=float(lat),
            lon=float(lon),
            label=label if isinstance(label, str) else None,
            calc_status=normalize_calc_status(d.get("calcStatus", d.get("calc_status"))),
            source=source if isinstance(source, str) else None,
        )


def normalize_calc_status(value: Any) -> CalcStatus:
    """Map a missing status to the legacy default; reject unknown values."""
    if value is None:
        return DEFAULT_CALC_STATUS
    if value not in _CALC_STATUSES:
        raise ValueError(f"calcStatus must be 'enabled' or 'disabled', got {value!r}")
    return value


def normalize_occurrence(raw: Mapping[str, Any]) -> Optional[Occurrence]:
    """
    Turn a loosely-typed record into an Occurrence, or None if it is unusable.

    Ids and labels are trimmed, blank ids are replaced by a generated one, blank
    labels are dropped and a missing ``calcStatus`` becomes ``enabled``. Records
    whose coordinates fail `validate_lat_lon` are rejected.
    """
    lat = raw.get("lat")
    lon = raw.get("lon")
    if not validate_lat_lon(lat, lon).ok:
        return None

    raw_id = raw.get("id")
    occurrence_id = raw_id.strip() if isinstance(raw_id, str) else ""
    raw_label = raw.get("label")
    label = raw_label.strip() if isinstance(raw_label, str) else ""
    raw_source = raw.get("source")
    source = raw_source.strip() if isinstance(raw_source, str) else ""

    return Occurrence(
        id=occurrence_id or generate_occurrence_id(),
        lat=float(lat),
        lon=float(lon),
        label=label or None,
        calc_status=normalize_calc_status(raw.get("calcStatus", raw.get("calc_status"))),
        source=source or None,
    )


def is_computable(occurrence: Occurrence) -> bool:
    """True if the occurrence is enabled and has valid coordinates."""
    return occurrence.is_enabled and validate_lat_lon(occurrence.lat, occurrence.lon).ok


def select_for_compute(occurrences: Iterable[Occurrence]) -> List[Occurrence]:
    """Keep only the occurrences that take part in EOO/AOO, preserving order."""
    return [occurrence for occurrence in occurrences if is_computable(occurrence)]


def dedupe_key(occurrence: Occurrence) -> Tuple[float, float, str]:
    return (round(occurrence.lat, 6), round(occurrence.lon, 6), (occurrence.label or "").strip())


def remove_invalid(occurrences: Sequence[Occurrence]) -> Tuple[List[Occurrence], int]:
    """Drop occurrences with invalid coordinates; return (kept, removed_count)."""
    kept = [o for o in occurrences if validate_lat_lon(o.lat, o.lon).ok]
    return kept, len(occurrences) - len(kept)


def dedupe_occurrences(occurrences: Sequence[Occurrence]) -> Tuple[List[Occurrence], int]:
    """
    Drop repeated records, keeping the first of each group.

    Two records are duplicates when their coordinates agree to 6 decimals and
    their trimmed labels are equal.
    """
    seen = set()
    kept = []
    for occurrence in occurrences:
        key = dedupe_key(occurrence)
        if key in seen:
            continue
        seen.add(key)
        kept.append(occurrence)
    return kept, len(occurrences) - len(kept)


def toggle_calc_status(occurrences: Sequence[Occurrence], occurrence_id: str) -> List[Occurrence]:
    """Return a new list with the given occurrence switched enabled <-> disabled."""
    toggled = []
    for occurrence in occurrences:
        if occurrence.id == occurrence_id:
            next_status = "disabled" if occurrence.is_enabled else "enabled"
            occurrence = replace(occurrence, calc_status=next_status)
        toggled.append(occurrence)
    return toggled
