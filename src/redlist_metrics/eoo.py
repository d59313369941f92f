"""
Extent of Occurrence (EOO) for a list of occurrences.

EOO is defined in the IUCN Guidelines as the area of the minimum convex
polygon (convex hull) that encompasses all known current occurrences. Here it
is built from the computable occurrences only (enabled, valid coordinates) and
measured in Web Mercator, a planar approximation.
"""

import logging
from typing import Optional, Sequence

from redlist_metrics.hashing import hash_occurrences_for_eoo
from redlist_metrics.hull import eoo_hull_and_area
from redlist_metrics.occurrence import Occurrence, select_for_compute
from redlist_metrics.results import EooResult, utcnow

logger = logging.getLogger(__name__)


def compute_eoo(occurrences: Sequence[Occurrence]) -> EooResult:
    """
    Calculate the EOO of the computable occurrences.

    Fewer than three usable points is a normal outcome: the result has no hull
    and an area of zero.

    Args:
        occurrences: Occurrences as supplied by the caller, in any order.

    Returns:
        An EooResult stamped with the current UTC time and the input hash.

    Example:
        >>> result = compute_eoo([
        ...     Occurrence("a", -10, -50), Occurrence("b", -10, -49), Occurrence("c", -9, -50),
        ... ])
        >>> result.points_used
        3
    """
    computable = select_for_compute(occurrences)
    input_hash = hash_occurrences_for_eoo(computable)
    computed_at = utcnow()

    hull, area_km2 = eoo_hull_and_area((o.lon, o.lat) for o in computable)

    logger.debug(
        "EOO computed: %d points used, area %.3f km2, hash %s",
        len(computable), area_km2, input_hash,
    )
    return EooResult(
        area_km2=area_km2,
        hull=hull,
        points_used=len(computable),
        input_hash=input_hash,
        computed_at=computed_at,
    )


def is_eoo_stale(last_result: Optional[EooResult], occurrences: Sequence[Occurrence]) -> bool:
    """True if there is no result or it was computed from different input."""
    if last_result is None:
        return True
    return hash_occurrences_for_eoo(occurrences) != last_result.input_hash
