"""
Canonical fingerprints of the inputs behind an EOO or AOO result.

A fingerprint changes whenever the set of computable points (coordinates to 6
decimals, trimmed labels) or, for AOO, the cell size changes. It does not
depend on list order, ids or disabled/invalid records. It is meant for change
detection only and is not collision resistant.
"""

from typing import Iterable, List, Tuple

from redlist_metrics.occurrence import Occurrence, select_for_compute

_FNV32_OFFSET_BASIS = 0x811C9DC5
_FNV32_PRIME = 0x01000193
_UINT32_MASK = 0xFFFFFFFF

_COORDINATE_DECIMALS = 6


def fnv1a_32(data: bytes) -> str:
    """
    32-bit FNV-1a hash of ``data`` as 8 lowercase hex digits.

    Example:
        >>> fnv1a_32(b"")
        '811c9dc5'
    """
    h = _FNV32_OFFSET_BASIS
    for byte in data:
        h ^= byte
        h = (h * _FNV32_PRIME) & _UINT32_MASK
    return f"{h:08x}"


def _round_coordinate(value: float) -> float:
    # "+ 0.0" folds -0.0 into 0.0 so both format as "0.000000".
    return round(value, _COORDINATE_DECIMALS) + 0.0


def _escape_label(label: str) -> str:
    return label.replace("\\", "\\\\").replace("|", "\\|").replace("\n", "\\n")


def canonical_rows(occurrences: Iterable[Occurrence]) -> List[str]:
    """Sorted "lat|lon|label" rows for the computable occurrences."""
    normalized: List[Tuple[float, float, str]] = sorted(
        (
            _round_coordinate(o.lat),
            _round_coordinate(o.lon),
            (o.label or "").strip(),
        )
        for o in select_for_compute(occurrences)
    )
    return [f"{lat:.6f}|{lon:.6f}|{_escape_label(label)}" for lat, lon, label in normalized]


def canonical_eoo_input(occurrences: Iterable[Occurrence]) -> str:
    return "\n".join(canonical_rows(occurrences))


def canonical_aoo_input(occurrences: Iterable[Occurrence], cell_size_meters: float) -> str:
    # The prefix keeps AOO strings disjoint from EOO ones: rows start with a digit or "-".
    size = _round_coordinate(float(cell_size_meters))
    return f"cellSizeMeters={size:.6f}\n" + "\n".join(canonical_rows(occurrences))


def hash_occurrences_for_eoo(occurrences: Iterable[Occurrence]) -> str:
    return fnv1a_32(canonical_eoo_input(occurrences).encode("utf-8"))


def hash_occurrences_for_aoo(occurrences: Iterable[Occurrence], cell_size_meters: float) -> str:
    return fnv1a_32(canonical_aoo_input(occurrences, cell_size_meters).encode("utf-8"))
