"""
Area of Occupancy grid: binning of points into Web Mercator grid cells.

Cells are axis-aligned squares of ``cell_size_meters`` in Web Mercator meters,
anchored at the projection origin. Cell (cx, cy) covers
[cx * size, (cx + 1) * size) x [cy * size, (cy + 1) * size).
"""

import math
import numbers
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

import numpy as np
from shapely.geometry import Polygon, mapping

from redlist_metrics.errors import InvalidParameterError
from redlist_metrics.web_mercator import to_geographic, to_planar

CellKey = str

# Indices this close to an integer are snapped to it, so a point sitting on a
# cell boundary does not land on either side depending on rounding noise.
_SNAP_TOLERANCE = 1e-9


@dataclass(frozen=True)
class GridCell:
    """One occupied AOO cell and its outline in geographic coordinates."""

    cx: int
    cy: int
    cell_size_meters: float
    polygon: Polygon

    def to_feature(self) -> dict:
        return {
            "type": "Feature",
            "properties": {
                "cx": self.cx,
                "cy": self.cy,
                "cellSizeMeters": self.cell_size_meters,
            },
            "geometry": mapping(self.polygon),
        }


def validate_cell_size(cell_size_meters: float) -> float:
    """
    Raises:
        InvalidParameterError: If the cell size is not a finite positive number.
    """
    if isinstance(cell_size_meters, bool) or not isinstance(cell_size_meters, (numbers.Real, Decimal)):
        size = math.nan
    else:
        size = float(cell_size_meters)
    if not math.isfinite(size) or size <= 0:
        raise InvalidParameterError(
            f"cell_size_meters must be a finite positive number, got {cell_size_meters!r}"
        )
    return size


def _to_cell_index(values_m: np.ndarray, cell_size_meters: float) -> np.ndarray:
    raw = values_m / cell_size_meters
    nearest = np.rint(raw)
    snapped = np.where(np.abs(raw - nearest) < _SNAP_TOLERANCE, nearest, np.floor(raw))
    return snapped.astype(np.int64)


def cell_key(cx: int, cy: int) -> CellKey:
    return f"{cx}|{cy}"


def occupied_cells(
    points: Iterable[Tuple[float, float]],
    cell_size_meters: float,
) -> Dict[CellKey, Tuple[int, int]]:
    """
    Map (lon, lat) points to the set of grid cells they fall in.

    Args:
        points: (lon, lat) pairs in decimal degrees. Callers are expected to
                pass validated coordinates.
        cell_size_meters: Cell edge length in Web Mercator meters.

    Returns:
        Dict keyed by "cx|cy" with the (cx, cy) indices as values. Points in
        the same cell collapse into one entry.

    Raises:
        InvalidParameterError: If cell_size_meters is non-finite or <= 0.

    Example:
        >>> occupied_cells([(-50.0, -10.0), (-49.9999, -10.0001)], 2000)
        {'-2783|-560': (-2783, -560)}
    """
    size = validate_cell_size(cell_size_meters)
    coords = np.asarray(list(points), dtype=float).reshape(-1, 2)
    if coords.shape[0] == 0:
        return {}

    x, y = to_planar(coords[:, 0], coords[:, 1])
    cxs = _to_cell_index(np.asarray(x, dtype=float), size)
    cys = _to_cell_index(np.asarray(y, dtype=float), size)

    cells: Dict[CellKey, Tuple[int, int]] = {}
    for cx, cy in zip(cxs.tolist(), cys.tolist()):
        cells.setdefault(cell_key(cx, cy), (cx, cy))
    return cells


def cell_polygon(cx: int, cy: int, cell_size_meters: float) -> Polygon:
    """
    Outline of cell (cx, cy) as a geographic polygon.

    The exterior ring runs SW -> SE -> NE -> NW -> SW.
    """
    size = validate_cell_size(cell_size_meters)
    x0 = cx * size
    y0 = cy * size
    x1 = x0 + size
    y1 = y0 + size

    lons, lats = to_geographic(np.array([x0, x1, x1, x0]), np.array([y0, y0, y1, y1]))
    ring = [(float(lon), float(lat)) for lon, lat in zip(lons, lats)]
    return Polygon(ring + [ring[0]])


def build_grid(
    cells: Mapping[CellKey, Tuple[int, int]],
    cell_size_meters: float,
) -> Tuple[GridCell, ...]:
    """Polygons for the occupied cells, ordered by (cx, cy)."""
    return tuple(
        GridCell(cx, cy, float(cell_size_meters), cell_polygon(cx, cy, cell_size_meters))
        for cx, cy in sorted(cells.values())
    )


def grid_to_geojson(grid: Sequence[GridCell]) -> dict:
    return {
        "type": "FeatureCollection",
        "features": [cell.to_feature() for cell in grid],
    }


def grid_from_geojson(collection: Mapping) -> Tuple[GridCell, ...]:
    """Inverse of `grid_to_geojson`."""
    cells: List[GridCell] = []
    for feature in collection.get("features", []):
        properties = feature["properties"]
        ring = feature["geometry"]["coordinates"][0]
        cells.append(
            GridCell(
                cx=int(properties["cx"]),
                cy=int(properties["cy"]),
                cell_size_meters=float(properties["cellSizeMeters"]),
                polygon=Polygon([tuple(position) for position in ring]),
            )
        )
    return tuple(cells)
