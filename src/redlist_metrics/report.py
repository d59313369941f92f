"""Audit summary of an occurrence set and the EOO/AOO results derived from it."""

from typing import Optional, Sequence

from redlist_metrics.aoo import is_aoo_stale
from redlist_metrics.eoo import is_eoo_stale
from redlist_metrics.occurrence import Occurrence, validate_lat_lon
from redlist_metrics.results import AooResult, EooResult, utcnow


def occurrence_stats(occurrences: Sequence[Occurrence]) -> dict:
    """Counts of valid, invalid, (0, 0) and disabled records."""
    valid = invalid = zero_zero = disabled = 0
    for occurrence in occurrences:
        validation = validate_lat_lon(occurrence.lat, occurrence.lon)
        if not validation.ok:
            invalid += 1
            if validation.reason == "zero-zero":
                zero_zero += 1
            continue
        valid += 1
        if not occurrence.is_enabled:
            disabled += 1
    return {
        "total": len(occurrences),
        "valid": valid,
        "invalid": invalid,
        "zeroZero": zero_zero,
        "disabled": disabled,
    }


def build_audit_report(
    occurrences: Sequence[Occurrence],
    cell_size_meters: float,
    eoo: Optional[EooResult] = None,
    aoo: Optional[AooResult] = None,
) -> dict:
    """
    Summarise the inputs and results of an assessment.

    Each result is reported with its hash and whether it is stale with
    respect to ``occurrences`` and ``cell_size_meters``.
    """
    from redlist_metrics import __version__

    report = {
        "settings": {"aooCellSizeMeters": cell_size_meters},
        "occurrencesStats": occurrence_stats(occurrences),
        "app": {"name": "redlist-metrics-python", "version": __version__},
        "generatedAt": utcnow().isoformat(),
    }
    if eoo is not None:
        report["eoo"] = {
            "areaKm2": eoo.area_km2,
            "pointsUsed": eoo.points_used,
            "computedAt": eoo.computed_at.isoformat(),
            "inputHash": eoo.input_hash,
            "stale": is_eoo_stale(eoo, occurrences),
        }
    if aoo is not None:
        report["aoo"] = {
            "areaKm2": aoo.area_km2,
            "cellCount": aoo.cell_count,
            "cellSizeMeters": aoo.cell_size_meters,
            "pointsUsed": aoo.points_used,
            "computedAt": aoo.computed_at.isoformat(),
            "inputHash": aoo.input_hash,
            "stale": is_aoo_stale(aoo, occurrences, cell_size_meters),
        }
    return report
