"""
Area of Occupancy (AOO) for a list of occurrences.

AOO counts the grid cells that contain at least one computable occurrence and
multiplies by the cell area. The grid lives in Web Mercator meters; IUCN
assessments usually use 2 km cells.
"""

import logging
from typing import Optional, Sequence

from redlist_metrics.grid import build_grid, occupied_cells, validate_cell_size
from redlist_metrics.hashing import hash_occurrences_for_aoo
from redlist_metrics.occurrence import Occurrence, select_for_compute
from redlist_metrics.results import AooResult, utcnow

logger = logging.getLogger(__name__)

M2_PER_KM2 = 1e6


def compute_aoo(occurrences: Sequence[Occurrence], cell_size_meters: float) -> AooResult:
    """
    Calculate the AOO of the computable occurrences.

    Args:
        occurrences: Occurrences as supplied by the caller, in any order.
        cell_size_meters: Grid cell edge length in meters.

    Returns:
        An AooResult with one grid polygon per occupied cell, ordered by (cx, cy).

    Raises:
        InvalidParameterError: If cell_size_meters is non-finite or <= 0.
    """
    size = validate_cell_size(cell_size_meters)
    computable = select_for_compute(occurrences)
    input_hash = hash_occurrences_for_aoo(computable, size)
    computed_at = utcnow()

    cells = occupied_cells(((o.lon, o.lat) for o in computable), size)
    cell_count = len(cells)
    area_km2 = cell_count * size * size / M2_PER_KM2

    logger.debug(
        "AOO computed: %d points in %d cells of %.1f m, area %.3f km2, hash %s",
        len(computable), cell_count, size, area_km2, input_hash,
    )
    return AooResult(
        area_km2=area_km2,
        cell_count=cell_count,
        cell_size_meters=size,
        grid=build_grid(cells, size),
        points_used=len(computable),
        input_hash=input_hash,
        computed_at=computed_at,
    )


def is_aoo_stale(
    last_result: Optional[AooResult],
    occurrences: Sequence[Occurrence],
    cell_size_meters: float,
) -> bool:
    """True if there is no result or it was computed from different points or cell size."""
    if last_result is None:
        return True
    return hash_occurrences_for_aoo(occurrences, cell_size_meters) != last_result.input_hash
