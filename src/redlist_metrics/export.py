"""
Export occurrences and EOO/AOO results for use in GIS tools and spreadsheets.

Only occurrences with valid coordinates are exported; disabled ones are kept,
since they are part of the curated data set even if not used in computation.
"""

import csv
import io
from typing import Optional, Sequence

from redlist_metrics.grid import grid_to_geojson
from redlist_metrics.occurrence import Occurrence, validate_lat_lon
from redlist_metrics.results import AooResult, EooResult

CSV_COLUMNS = ("id", "label", "lat", "lon", "source")


def exportable_occurrences(occurrences: Sequence[Occurrence]) -> list:
    return [o for o in occurrences if validate_lat_lon(o.lat, o.lon).ok]


def format_coordinate(value: float) -> str:
    """
    Shortest text that reads back as the same float, without a trailing ".0".

    Example:
        >>> format_coordinate(-10.0), format_coordinate(-49.95)
        ('-10', '-49.95')
    """
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def occurrence_feature(occurrence: Occurrence) -> dict:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [occurrence.lon, occurrence.lat]},
        "properties": {
            "id": occurrence.id,
            "label": occurrence.label,
            "source": occurrence.source,
        },
    }


def export_geojson(
    occurrences: Sequence[Occurrence],
    eoo: Optional[EooResult] = None,
    aoo: Optional[AooResult] = None,
) -> dict:
    """
    Bundle occurrences, EOO hull and AOO grid as GeoJSON.

    Returns:
        ``{"occurrences": FeatureCollection}`` plus ``"eooHull"`` (a Polygon
        Feature) when the EOO has a hull and ``"aooGrid"`` (a FeatureCollection
        of cells) when the AOO has occupied cells. The bundle can be loaded
        back with `redlist_metrics.loaders.load_json`.
    """
    exported = {
        "occurrences": {
            "type": "FeatureCollection",
            "features": [occurrence_feature(o) for o in exportable_occurrences(occurrences)],
        },
    }
    if eoo is not None and eoo.hull is not None:
        exported["eooHull"] = eoo.to_dict()["hull"]
    if aoo is not None and aoo.grid:
        exported["aooGrid"] = grid_to_geojson(aoo.grid)
    return exported


def export_occurrences_csv(occurrences: Sequence[Occurrence]) -> str:
    """
    Occurrences as CSV text with an ``id,label,lat,lon,source`` header.

    Cells containing commas, quotes or line breaks are quoted, with embedded
    quotes doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for o in exportable_occurrences(occurrences):
        writer.writerow([
            o.id,
            o.label or "",
            format_coordinate(o.lat),
            format_coordinate(o.lon),
            o.source or "",
        ])
    return buffer.getvalue()
