"""Convex hull of occurrence points and its planar (Web Mercator) area."""

import math
from typing import Iterable, Optional, Tuple

import numpy as np
import shapely
from shapely.geometry import MultiPoint, Polygon

from redlist_metrics.web_mercator import to_planar

M2_PER_KM2 = 1e6


def convex_hull(points: Iterable[Tuple[float, float]]) -> Optional[Polygon]:
    """
    Minimum convex polygon around (lon, lat) points.

    The hull is computed in lon/lat treated as a plane. Fewer than three
    distinct points, or points that are all collinear, have no hull.

    Returns:
        A shapely Polygon, or None when no polygon can be formed.
    """
    distinct = set(points)
    if len(distinct) < 3:
        return None

    hull = MultiPoint(sorted(distinct)).convex_hull
    if hull.geom_type != "Polygon" or hull.is_empty:
        return None
    return hull


def planar_area_km2(hull: Optional[Polygon]) -> float:
    """
    Area of a geographic polygon measured in Web Mercator, in km².

    This is a planar approximation: it overstates area away from the equator.
    Returns 0.0 for a missing or degenerate polygon.
    """
    if hull is None or hull.is_empty:
        return 0.0

    projected = shapely.transform(
        hull,
        lambda lon, lat: to_planar(np.asarray(lon, dtype=float), np.asarray(lat, dtype=float)),
        interleaved=False,
    )
    area = abs(projected.area) / M2_PER_KM2
    return area if math.isfinite(area) else 0.0


def eoo_hull_and_area(points: Iterable[Tuple[float, float]]) -> Tuple[Optional[Polygon], float]:
    hull = convex_hull(points)
    return hull, planar_area_km2(hull)
