import json
import logging
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from redlist_metrics import __version__
from redlist_metrics.config import MetricsConfig
from redlist_metrics.criterion_b import ITEM_ORDER, CriterionBInput, DeclineIndicator, infer_criterion_b
from redlist_metrics.errors import LoaderError
from redlist_metrics.export import export_geojson, export_occurrences_csv
from redlist_metrics.grid import grid_to_geojson
from redlist_metrics.loaders import LoadResult, load_occurrences
from redlist_metrics.report import build_audit_report
from redlist_metrics.service import GeoComputeService

app = typer.Typer(
    name="redlist-metrics",
    help="EOO, AOO and Criterion B tools for IUCN Red List assessments",
    add_completion=False,
)

OccurrenceFile = Annotated[
    Path,
    typer.Argument(help="Occurrences as .csv, .json or .geojson"),
]
CellSize = Annotated[
    Optional[float],
    typer.Option("--cell-size", "-c", help="AOO cell size in meters [default: 2000]"),
]


def _load(path: Path) -> LoadResult:
    try:
        loaded = load_occurrences(path)
    except LoaderError as e:
        print(f"✗ {e}")
        raise typer.Exit(code=1)
    print(f"Loaded {len(loaded.occurrences)} occurrences "
          f"({loaded.invalid} invalid, {loaded.deduped} duplicates skipped)")
    if loaded.skipped:
        print(f"  Ignored {loaded.skipped} features without Point geometry")
    return loaded


def _config(cell_size: Optional[float]) -> MetricsConfig:
    try:
        config = MetricsConfig.from_env()
        if cell_size is not None:
            config = MetricsConfig(
                cell_size_meters=cell_size,
                worker_timeout_s=config.worker_timeout_s,
                use_worker=config.use_worker,
                max_workers=config.max_workers,
            )
    except ValueError as e:
        print(f"✗ Invalid configuration: {e}")
        raise typer.Exit(code=1)
    return config


def _parse_items(value: Optional[str]) -> DeclineIndicator:
    if value is None:
        return DeclineIndicator()
    items = [item.strip() for item in value.split(",") if item.strip()]
    unknown = [item for item in items if item not in ITEM_ORDER]
    if unknown:
        raise typer.BadParameter(f"unknown items {unknown}; use any of {', '.join(ITEM_ORDER)}")
    return DeclineIndicator(enabled=True, items=frozenset(items))


def _write_json(path: Path, data: dict) -> None:
    path.write_text(json.dumps(data, indent=2))
    print(f"✓ Written to: {path}")


@app.command()
def eoo(
    occurrences_file: OccurrenceFile,
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Write the result (with hull) as JSON"),
    ] = None,
):
    """Calculate the Extent of Occurrence (convex hull area)."""
    loaded = _load(occurrences_file)
    config = _config(None)
    with GeoComputeService.from_config(config) as service:
        result = service.compute_eoo(loaded.occurrences)

    print(f"EOO area: {result.area_km2:.2f} km²")
    print(f"  Points used: {result.points_used}")
    print(f"  Input hash: {result.input_hash}")
    if result.hull is None:
        print("  No hull: fewer than 3 distinct valid points")
    if output:
        _write_json(output, result.to_dict())


@app.command()
def aoo(
    occurrences_file: OccurrenceFile,
    cell_size: CellSize = None,
    geojson: Annotated[
        Optional[Path], typer.Option("--geojson", help="Write the occupied grid as GeoJSON"),
    ] = None,
):
    """Calculate the Area of Occupancy (occupied grid cells)."""
    loaded = _load(occurrences_file)
    config = _config(cell_size)
    with GeoComputeService.from_config(config) as service:
        result = service.compute_aoo(loaded.occurrences, config.cell_size_meters)

    print(f"AOO area: {result.area_km2:.2f} km²")
    print(f"  Cells: {result.cell_count} x {result.cell_size_meters:g} m")
    print(f"  Points used: {result.points_used}")
    print(f"  Input hash: {result.input_hash}")
    if geojson:
        _write_json(geojson, grid_to_geojson(result.grid))


@app.command()
def assess(
    occurrences_file: OccurrenceFile,
    cell_size: CellSize = None,
    fragmented: Annotated[
        bool, typer.Option("--fragmented", help="Population is severely fragmented"),
    ] = False,
    locations: Annotated[
        Optional[int], typer.Option("--locations", min=0, help="Number of locations"),
    ] = None,
    decline: Annotated[
        Optional[str], typer.Option("--decline", help="Continuing decline items, e.g. 'iii' or 'i,iii'"),
    ] = None,
    fluctuations: Annotated[
        Optional[str], typer.Option("--fluctuations", help="Extreme fluctuation items, e.g. 'iv'"),
    ] = None,
):
    """Suggest an IUCN Criterion B category from EOO, AOO and assessment flags."""
    assessment = CriterionBInput(
        severely_fragmented=fragmented,
        number_of_locations=locations,
        continuing_decline=_parse_items(decline),
        extreme_fluctuations=_parse_items(fluctuations),
    )
    loaded = _load(occurrences_file)
    config = _config(cell_size)
    with GeoComputeService.from_config(config) as service:
        eoo_result = service.compute_eoo(loaded.occurrences)
        aoo_result = service.compute_aoo(loaded.occurrences, config.cell_size_meters)

    inference = infer_criterion_b(
        eoo_result.area_km2 if eoo_result.hull is not None else None,
        aoo_result.area_km2 if aoo_result.cell_count > 0 else None,
        assessment=assessment,
    )

    print(f"EOO: {eoo_result.area_km2:.2f} km²  AOO: {aoo_result.area_km2:.2f} km²")
    print(f"Spatial category: {inference.spatial_category}")
    print(f"Criterion B met: {'yes' if inference.criterion_b_met else 'no'}")
    if inference.suggested_code:
        print(f"Suggested code: {inference.suggested_code}")
    for note in inference.notes:
        print(f"  - {note}")


@app.command()
def report(
    occurrences_file: OccurrenceFile,
    cell_size: CellSize = None,
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Write the report here instead of stdout"),
    ] = None,
):
    """Produce a JSON audit report of the occurrences and their EOO/AOO."""
    loaded = _load(occurrences_file)
    config = _config(cell_size)
    with GeoComputeService.from_config(config) as service:
        eoo_result = service.compute_eoo(loaded.occurrences)
        aoo_result = service.compute_aoo(loaded.occurrences, config.cell_size_meters)

    audit = build_audit_report(loaded.occurrences, config.cell_size_meters, eoo_result, aoo_result)
    if output:
        _write_json(output, audit)
    else:
        print(json.dumps(audit, indent=2))


@app.command()
def export(
    occurrences_file: OccurrenceFile,
    geojson: Annotated[
        Optional[Path], typer.Option("--geojson", help="Write occurrences, EOO hull and AOO grid as GeoJSON"),
    ] = None,
    csv_file: Annotated[
        Optional[Path], typer.Option("--csv", help="Write the valid occurrences as CSV"),
    ] = None,
    cell_size: CellSize = None,
):
    """Export occurrences with their EOO hull and AOO grid for GIS tools."""
    if geojson is None and csv_file is None:
        print("✗ Nothing to export: give --geojson and/or --csv")
        raise typer.Exit(code=1)

    loaded = _load(occurrences_file)
    if csv_file:
        csv_file.write_text(export_occurrences_csv(loaded.occurrences), encoding="utf-8")
        print(f"✓ Written to: {csv_file}")
    if geojson:
        config = _config(cell_size)
        with GeoComputeService.from_config(config) as service:
            eoo_result = service.compute_eoo(loaded.occurrences)
            aoo_result = service.compute_aoo(loaded.occurrences, config.cell_size_meters)
        _write_json(geojson, export_geojson(loaded.occurrences, eoo_result, aoo_result))


@app.command(name="map")
def map_command(
    occurrences_file: OccurrenceFile,
    output: Annotated[Path, typer.Option("--output", "-o", help="PNG file to write")] = Path("assessment.png"),
    cell_size: CellSize = None,
    title: Annotated[Optional[str], typer.Option("--title", help="Map title")] = None,
    coastlines: Annotated[bool, typer.Option("--coastlines", help="Draw coastlines")] = False,
):
    """Render occurrences, the EOO hull and the AOO grid to a PNG map."""
    from redlist_metrics.map import create_metrics_map

    loaded = _load(occurrences_file)
    config = _config(cell_size)
    with GeoComputeService.from_config(config) as service:
        eoo_result = service.compute_eoo(loaded.occurrences)
        aoo_result = service.compute_aoo(loaded.occurrences, config.cell_size_meters)

    try:
        path = create_metrics_map(
            loaded.occurrences, str(output), eoo=eoo_result, aoo=aoo_result, title=title,
            show_coastlines=coastlines,
        )
    except ValueError as e:
        print(f"✗ {e}")
        raise typer.Exit(code=1)
    print(f"✓ Map saved to: {path}")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log engine details to stderr"),
    ] = False,
):
    """Main entry point for redlist-metrics CLI."""
    if version:
        print(f"redlist-metrics-python version {__version__}")
        raise typer.Exit()

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if ctx.invoked_subcommand is None:
        print("redlist-metrics: EOO, AOO and Criterion B for occurrence data")
        print("\nUse --help to see available commands")


if __name__ == "__main__":
    app()
