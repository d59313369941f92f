"""Tests for loaders module."""

import json
import math

import pytest

from redlist_metrics.errors import LoaderError
from redlist_metrics.loaders import load_csv, load_json, load_occurrences, parse_coordinate


class TestParseCoordinate:
    """Tests for the parse_coordinate function."""

    @pytest.mark.parametrize("value,expected", [
        ("-10,5", -10.5),
        ("-10.5", -10.5),
        (" 12,25 ", 12.25),
        (7, 7.0),
        (-3.5, -3.5),
    ])
    def test_parses_numbers(self, value, expected):
        """Test dot and decimal-comma notations."""
        assert parse_coordinate(value) == expected

    @pytest.mark.parametrize("value", ["", "   ", None, "abc", "1,2,3", True])
    def test_unparseable_is_nan(self, value):
        """Test that blanks and junk become NaN."""
        assert math.isnan(parse_coordinate(value))


class TestLoadCsv:
    """Tests for CSV loading."""

    def test_decimal_commas_and_quotes(self, tmp_path):
        """Test a semicolon-free CSV with quoted decimal-comma coordinates."""
        path = tmp_path / "points.csv"
        path.write_text(
            'id,latitude,longitude,label\n'
            'p1,"-10,5","-50,25",Site A\n'
            'p2,-9.0,-49.0,Site B\n',
            encoding="utf-8",
        )

        result = load_csv(path)

        assert result.rows == 2
        assert result.invalid == 0
        assert [(o.id, o.lat, o.lon, o.label) for o in result.occurrences] == [
            ("p1", -10.5, -50.25, "Site A"),
            ("p2", -9.0, -49.0, "Site B"),
        ]
        assert all(o.source == "csv" for o in result.occurrences)

    def test_invalid_rows_are_counted(self, tmp_path):
        """Test that invalid, (0, 0) and duplicate rows are dropped and counted."""
        path = tmp_path / "points.csv"
        path.write_text(
            "lat,lon,name\n"
            "-10,-50,a\n"
            "0,0,placeholder\n"
            ",,empty\n"
            "95,10,north of the pole\n"
            "-10.0000001,-50,a\n"
            "-9,-49,b\n",
            encoding="utf-8",
        )

        result = load_csv(path)

        assert result.rows == 6
        assert result.invalid == 3
        assert result.zero_zero == 1
        assert result.deduped == 1
        assert [o.label for o in result.occurrences] == ["a", "b"]

    def test_calc_status_column(self, tmp_path):
        """Test that calcStatus is read and blanks default to enabled."""
        path = tmp_path / "points.csv"
        path.write_text(
            "lat,lon,calcStatus\n"
            "-10,-50,disabled\n"
            "-9,-49,\n",
            encoding="utf-8",
        )

        result = load_csv(path)

        assert [o.calc_status for o in result.occurrences] == ["disabled", "enabled"]

    def test_missing_coordinate_columns(self, tmp_path):
        """Test that a CSV without lat/lon columns is rejected."""
        path = tmp_path / "points.csv"
        path.write_text("name,place\na,b\n", encoding="utf-8")

        with pytest.raises(LoaderError, match="latitude and longitude"):
            load_csv(path)

    def test_oversized_field_raises_loader_error(self, tmp_path):
        """Test that csv module errors surface as LoaderError."""
        path = tmp_path / "points.csv"
        path.write_text("lat,lon\n-10," + "1" * 200_000 + "\n", encoding="utf-8")

        with pytest.raises(LoaderError, match="invalid CSV"):
            load_csv(path)

    def test_generated_ids(self, tmp_path):
        """Test that rows without ids receive distinct generated ids."""
        path = tmp_path / "points.csv"
        path.write_text("decimalLatitude,decimalLongitude\n-10,-50\n-9,-49\n", encoding="utf-8")

        result = load_csv(path)

        ids = [o.id for o in result.occurrences]
        assert len(ids) == 2
        assert ids[0] != ids[1]


class TestLoadJson:
    """Tests for JSON and GeoJSON loading."""

    def test_plain_list(self, tmp_path):
        """Test a JSON list of occurrence objects."""
        path = tmp_path / "points.json"
        path.write_text(json.dumps([
            {"id": "a", "lat": -10, "lon": -50, "calcStatus": "enabled"},
            {"id": "b", "lat": "-9,5", "lon": "-49,5"},
        ]))

        result = load_json(path)

        assert [(o.id, o.lat, o.lon) for o in result.occurrences] == [("a", -10.0, -50.0), ("b", -9.5, -49.5)]

    def test_object_with_occurrences(self, tmp_path):
        """Test an object wrapping the list under 'occurrences'."""
        path = tmp_path / "project.json"
        path.write_text(json.dumps({"name": "x", "occurrences": [{"id": "a", "lat": -10, "lon": -50}]}))

        assert len(load_json(path).occurrences) == 1

    def test_feature_collection(self, tmp_path):
        """Test GeoJSON points with [lon, lat] order and properties."""
        path = tmp_path / "points.geojson"
        path.write_text(json.dumps({
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "geometry": {"type": "Point", "coordinates": [-50.0, -10.0]},
                    "properties": {"id": "g1", "label": "Site"},
                },
                {"type": "Feature", "geometry": None, "properties": {"id": "g2"}},
            ],
        }))

        result = load_occurrences(path)

        assert result.rows == 1
        assert result.invalid == 0
        assert result.skipped == 1
        occurrence = result.occurrences[0]
        assert (occurrence.id, occurrence.lat, occurrence.lon, occurrence.label) == ("g1", -10.0, -50.0, "Site")

    def test_non_point_features_are_skipped(self, tmp_path):
        """Test that Polygon features next to Points are skipped and counted."""
        path = tmp_path / "mixed.geojson"
        path.write_text(json.dumps({
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "geometry": {
                        "type": "Polygon",
                        "coordinates": [[[-50.0, -10.0], [-49.0, -10.0], [-50.0, -9.0], [-50.0, -10.0]]],
                    },
                    "properties": {"id": "hull"},
                },
                {
                    "type": "Feature",
                    "geometry": {"type": "Point", "coordinates": [-50.0, -10.0]},
                    "properties": {"id": "p1"},
                },
            ],
        }))

        result = load_json(path)

        assert result.rows == 1
        assert result.skipped == 1
        assert [o.id for o in result.occurrences] == ["p1"]

    def test_polygon_only_collection(self, tmp_path):
        """Test that a grid export loads as zero occurrences instead of failing."""
        path = tmp_path / "grid.geojson"
        path.write_text(json.dumps({
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "geometry": {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]},
                    "properties": {"cellKey": "0|0"},
                },
            ],
        }))

        result = load_json(path)

        assert result.occurrences == ()
        assert result.skipped == 1

    def test_malformed_features_are_skipped(self, tmp_path):
        """Test that null features and non-object geometries are skipped."""
        path = tmp_path / "odd.geojson"
        path.write_text(json.dumps({
            "type": "FeatureCollection",
            "features": [
                None,
                "feature",
                {"type": "Feature", "geometry": "POINT(-50 -10)", "properties": {}},
                {"type": "Feature", "geometry": {"type": "Point", "coordinates": [-49.0, -9.0]}, "properties": None},
            ],
        }))

        result = load_json(path)

        assert result.skipped == 3
        assert [(o.lat, o.lon) for o in result.occurrences] == [(-9.0, -49.0)]

    def test_short_point_coordinates_are_invalid(self, tmp_path):
        """Test that a Point with a single coordinate is counted as invalid."""
        path = tmp_path / "short.geojson"
        path.write_text(json.dumps({
            "type": "FeatureCollection",
            "features": [
                {"type": "Feature", "geometry": {"type": "Point", "coordinates": [-50.0]}, "properties": {}},
            ],
        }))

        result = load_json(path)

        assert result.rows == 1
        assert result.invalid == 1
        assert result.occurrences == ()

    def test_export_bundle(self, tmp_path):
        """Test that the occurrences of an export bundle are loaded."""
        path = tmp_path / "bundle.geojson"
        path.write_text(json.dumps({
            "occurrences": {
                "type": "FeatureCollection",
                "features": [
                    {"type": "Feature", "geometry": {"type": "Point", "coordinates": [-50.0, -10.0]},
                     "properties": {"id": "a", "label": "Site", "source": "csv"}},
                ],
            },
            "eooHull": {"type": "Feature", "geometry": {"type": "Polygon", "coordinates": []}, "properties": {}},
        }))

        result = load_json(path)

        assert [(o.id, o.lat, o.lon, o.label) for o in result.occurrences] == [("a", -10.0, -50.0, "Site")]

    def test_unknown_calc_status_is_invalid(self, tmp_path):
        """Test that an unknown calcStatus drops the record."""
        path = tmp_path / "points.json"
        path.write_text(json.dumps([{"id": "a", "lat": -10, "lon": -50, "calcStatus": "maybe"}]))

        result = load_json(path)

        assert result.occurrences == ()
        assert result.invalid == 1

    def test_invalid_json(self, tmp_path):
        """Test that broken JSON raises LoaderError."""
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(LoaderError, match="invalid JSON"):
            load_json(path)

    def test_wrong_shape(self, tmp_path):
        """Test that a JSON scalar is rejected."""
        path = tmp_path / "scalar.json"
        path.write_text("42")

        with pytest.raises(LoaderError):
            load_json(path)


class TestLoadOccurrences:
    """Tests for load_occurrences dispatching."""

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises LoaderError."""
        with pytest.raises(LoaderError, match="File not found"):
            load_occurrences(tmp_path / "nope.csv")

    def test_unsupported_suffix(self, tmp_path):
        """Test that unknown extensions are rejected."""
        path = tmp_path / "points.xlsx"
        path.write_text("")

        with pytest.raises(LoaderError, match="Unsupported"):
            load_occurrences(path)

    def test_accepts_string_path(self, tmp_path):
        """Test that a str path works."""
        path = tmp_path / "points.csv"
        path.write_text("lat,lon\n-10,-50\n")

        assert len(load_occurrences(str(path)).occurrences) == 1

    def test_latin1_csv(self, tmp_path):
        """Test that a Latin-1 CSV fails cleanly as UTF-8 and loads with its encoding."""
        path = tmp_path / "points.csv"
        path.write_bytes("lat,lon,label\n-10,-50,S\xe3o Paulo\n".encode("latin-1"))

        with pytest.raises(LoaderError, match="latin-1"):
            load_occurrences(path)

        result = load_occurrences(path, encoding="latin-1")
        assert [o.label for o in result.occurrences] == ["S\xe3o Paulo"]

    def test_unknown_encoding(self, tmp_path):
        """Test that an unknown encoding name raises LoaderError."""
        path = tmp_path / "points.csv"
        path.write_text("lat,lon\n-10,-50\n")

        with pytest.raises(LoaderError):
            load_occurrences(path, encoding="no-such-codec")
