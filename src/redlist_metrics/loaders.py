"""Read occurrence lists from CSV, JSON and GeoJSON files."""

import csv
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from redlist_metrics.errors import LoaderError
from redlist_metrics.occurrence import Occurrence, dedupe_occurrences, normalize_occurrence, validate_lat_lon

logger = logging.getLogger(__name__)

LAT_COLUMNS = ("lat", "latitude", "decimallatitude", "y")
LON_COLUMNS = ("lon", "lng", "long", "longitude", "decimallongitude", "x")


@dataclass(frozen=True)
class LoadResult:
    """Occurrences read from a file plus what was dropped on the way."""

    occurrences: Tuple[Occurrence, ...]
    rows: int
    invalid: int
    zero_zero: int
    deduped: int
    skipped: int = 0


def parse_coordinate(value: Any) -> float:
    """
    Parse a coordinate written with a dot or a decimal comma.

    Returns NaN for blanks and anything unparseable.

    Examples:
        >>> parse_coordinate("-10,5")
        -10.5
        >>> parse_coordinate(" ")
        nan
    """
    if isinstance(value, bool):
        return float("nan")
    if isinstance(value, (int, float)):
        return float(value)
    text = "".join(str(value if value is not None else "").split()).replace(",", ".")
    if not text:
        return float("nan")
    try:
        return float(text)
    except ValueError:
        return float("nan")


def _pick_column(headers: Iterable[str], candidates: Tuple[str, ...]) -> Optional[str]:
    by_lower = {h.strip().lower(): h for h in headers}
    for candidate in candidates:
        if candidate in by_lower:
            return by_lower[candidate]
    return None


def _collect(records: Iterable[Mapping[str, Any]], source: str, skipped: int = 0) -> LoadResult:
    candidates: List[Occurrence] = []
    rows = invalid = zero_zero = 0
    for index, record in enumerate(records, start=1):
        rows += 1
        lat = parse_coordinate(record.get("lat"))
        lon = parse_coordinate(record.get("lon"))
        validation = validate_lat_lon(lat, lon)
        if not validation.ok:
            invalid += 1
            if validation.reason == "zero-zero":
                zero_zero += 1
            logger.debug("Skipping row %d: %s", index, validation.reason)
            continue
        try:
            occurrence = normalize_occurrence({**record, "lat": lat, "lon": lon, "source": source})
        except ValueError as e:
            invalid += 1
            logger.debug("Skipping row %d: %s", index, e)
            continue
        candidates.append(occurrence)

    kept, deduped = dedupe_occurrences(candidates)
    return LoadResult(tuple(kept), rows, invalid, zero_zero, deduped, skipped)


def load_csv(path: Path, encoding: str = "utf-8-sig") -> LoadResult:
    """
    Load occurrences from a CSV file with a header row.

    Raises:
        LoaderError: If the lat/lon columns are missing, the file is not in
                     ``encoding`` or it is not valid CSV.
    """
    try:
        with open(path, newline="", encoding=encoding) as f:
            reader = csv.DictReader(f)
            headers = reader.fieldnames or []
            lat_column = _pick_column(headers, LAT_COLUMNS)
            lon_column = _pick_column(headers, LON_COLUMNS)
            if lat_column is None or lon_column is None:
                raise LoaderError(f"{path}: CSV needs latitude and longitude columns, found {headers}")
            id_column = _pick_column(headers, ("id",))
            label_column = _pick_column(headers, ("label", "name"))
            status_column = _pick_column(headers, ("calcstatus", "calc_status"))

            def records():
                for row in reader:
                    record: Dict[str, Any] = {"lat": row.get(lat_column), "lon": row.get(lon_column)}
                    if id_column:
                        record["id"] = row.get(id_column)
                    if label_column:
                        record["label"] = row.get(label_column)
                    if status_column and (row.get(status_column) or "").strip():
                        record["calcStatus"] = row[status_column].strip()
                    yield record

            return _collect(records(), "csv")
    except UnicodeDecodeError as e:
        raise LoaderError(f"{path}: not readable as {encoding} ({e.reason}); try encoding='latin-1'") from e
    except csv.Error as e:
        raise LoaderError(f"{path}: invalid CSV: {e}") from e


def _point_record(feature: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """Occurrence record of a GeoJSON Point feature, or None for other geometries."""
    geometry = feature.get("geometry")
    if not isinstance(geometry, Mapping) or geometry.get("type") != "Point":
        return None
    coordinates = geometry.get("coordinates")
    if not isinstance(coordinates, (list, tuple)) or len(coordinates) < 2:
        coordinates = [None, None]
    properties = feature.get("properties")
    properties = properties if isinstance(properties, Mapping) else {}
    return {**properties, "lon": coordinates[0], "lat": coordinates[1]}


def _records_from_json(data: Any) -> Tuple[List[Mapping[str, Any]], int]:
    """Occurrence records in ``data`` and the number of non-Point features skipped."""
    if isinstance(data, Mapping) and isinstance(data.get("occurrences"), Mapping):
        # Bundle written by export_geojson
        data = data["occurrences"]
    if isinstance(data, Mapping) and data.get("type") == "FeatureCollection":
        features = data.get("features")
        records = []
        skipped = 0
        for feature in features if isinstance(features, list) else []:
            record = _point_record(feature) if isinstance(feature, Mapping) else None
            if record is None:
                skipped += 1
                continue
            records.append(record)
        return records, skipped
    if isinstance(data, Mapping) and isinstance(data.get("occurrences"), list):
        data = data["occurrences"]
    if not isinstance(data, list):
        raise LoaderError("JSON must be a list of occurrences, an object with 'occurrences', or a FeatureCollection")
    return [item for item in data if isinstance(item, Mapping)], 0


def load_json(path: Path, encoding: str = "utf-8") -> LoadResult:
    """
    Load occurrences from JSON or GeoJSON.

    Only Point features of a FeatureCollection are read; other geometries are
    counted in ``skipped``.
    """
    try:
        with open(path, encoding=encoding) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise LoaderError(f"{path}: invalid JSON: {e}") from e
    except UnicodeDecodeError as e:
        raise LoaderError(f"{path}: not readable as {encoding} ({e.reason})") from e
    records, skipped = _records_from_json(data)
    if skipped:
        logger.info("Skipped %d features without Point geometry in %s", skipped, path)
    return _collect(records, "json", skipped)


def load_occurrences(path: Union[str, Path], encoding: Optional[str] = None) -> LoadResult:
    """
    Load occurrences from a .csv, .json or .geojson file.

    Rows with invalid coordinates are dropped and counted; repeated rows
    (same coordinates to 6 decimals and same label) are collapsed.

    Args:
        path: File to read.
        encoding: Text encoding; defaults to UTF-8 (with or without BOM).

    Raises:
        LoaderError: If the file is missing, unreadable, of an unknown type,
                     or malformed.
    """
    path = Path(path)
    if not path.is_file():
        raise LoaderError(f"File not found: {path}")

    suffix = path.suffix.lower()
    try:
        if suffix == ".csv":
            result = load_csv(path, encoding or "utf-8-sig")
        elif suffix in (".json", ".geojson"):
            result = load_json(path, encoding or "utf-8")
        else:
            raise LoaderError(f"Unsupported file type '{suffix}'; use .csv, .json or .geojson")
    except (OSError, LookupError) as e:
        raise LoaderError(f"{path}: {e}") from e

    logger.info(
        "Loaded %d occurrences from %s (%d rows, %d invalid, %d duplicates)",
        len(result.occurrences), path, result.rows, result.invalid, result.deduped,
    )
    return result
