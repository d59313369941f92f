"""
EOO and AOO result objects.

Results are immutable snapshots: a new computation produces a new result, it
never updates an old one. `to_dict` / `from_dict` convert to and from plain
data (geometries as GeoJSON) for workers, persistence and export; every field,
including ``inputHash``, survives the round trip so staleness can be checked
again after reloading.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Tuple

from shapely.geometry import Polygon, mapping, shape

from redlist_metrics.grid import GridCell, grid_from_geojson, grid_to_geojson


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    return value.isoformat()


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        # Epoch milliseconds, as written by older exports.
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    return datetime.fromisoformat(value)


@dataclass(frozen=True)
class EooResult:
    """Extent of Occurrence: convex hull of the computable points."""

    area_km2: float
    hull: Optional[Polygon]
    points_used: int
    input_hash: str
    computed_at: datetime

    def to_dict(self) -> dict:
        return {
            "areaKm2": self.area_km2,
            "hull": (
                {"type": "Feature", "properties": {}, "geometry": mapping(self.hull)}
                if self.hull is not None
                else None
            ),
            "pointsUsed": self.points_used,
            "inputHash": self.input_hash,
            "computedAt": _format_timestamp(self.computed_at),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "EooResult":
        hull = d.get("hull")
        if hull is not None:
            geometry = hull.get("geometry", hull)
            hull = shape(geometry)
        return cls(
            area_km2=float(d["areaKm2"]),
            hull=hull,
            points_used=int(d["pointsUsed"]),
            input_hash=str(d["inputHash"]),
            computed_at=_parse_timestamp(d["computedAt"]),
        )


@dataclass(frozen=True)
class AooResult:
    """Area of Occupancy: occupied grid cells of a fixed size."""

    area_km2: float
    cell_count: int
    cell_size_meters: float
    grid: Tuple[GridCell, ...]
    points_used: int
    input_hash: str
    computed_at: datetime

    def to_dict(self) -> dict:
        return {
            "areaKm2": self.area_km2,
            "cellCount": self.cell_count,
            "cellSizeMeters": self.cell_size_meters,
            "grid": grid_to_geojson(self.grid),
            "pointsUsed": self.points_used,
            "inputHash": self.input_hash,
            "computedAt": _format_timestamp(self.computed_at),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "AooResult":
        return cls(
            area_km2=float(d["areaKm2"]),
            cell_count=int(d["cellCount"]),
            cell_size_meters=float(d["cellSizeMeters"]),
            grid=grid_from_geojson(d.get("grid") or {}),
            points_used=int(d["pointsUsed"]),
            input_hash=str(d["inputHash"]),
            computed_at=_parse_timestamp(d["computedAt"]),
        )
