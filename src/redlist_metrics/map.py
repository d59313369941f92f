"""Generate PNG maps of occurrences, the EOO hull and the AOO grid using cartopy."""

import matplotlib
matplotlib.use('Agg')

import matplotlib.pyplot as plt
import cartopy.crs as ccrs
import cartopy.feature as cfeature
import numpy as np
from typing import Optional, Sequence

from redlist_metrics.occurrence import Occurrence, validate_lat_lon
from redlist_metrics.results import AooResult, EooResult

# Web Mercator, the same plane the AOO grid and EOO area are measured in.
MAP_PROJECTION = ccrs.Mercator.GOOGLE
GEOGRAPHIC = ccrs.PlateCarree()


def _map_extent(lons: np.ndarray, lats: np.ndarray, padding: float = 0.15) -> list:
    """[min_lon, max_lon, min_lat, max_lat] padded by a fraction of the span."""
    min_lon, max_lon = float(lons.min()), float(lons.max())
    min_lat, max_lat = float(lats.min()), float(lats.max())

    # Keep single points and straight lines from collapsing the extent.
    lon_range = max(max_lon - min_lon, 0.1)
    lat_range = max(max_lat - min_lat, 0.1)
    padding_x = lon_range * padding
    padding_y = lat_range * padding

    return [
        max(min_lon - padding_x, -180.0),
        min(max_lon + padding_x, 180.0),
        max(min_lat - padding_y, -85.0),
        min(max_lat + padding_y, 85.0),
    ]


def create_metrics_map(
    occurrences: Sequence[Occurrence],
    output_path: str,
    eoo: Optional[EooResult] = None,
    aoo: Optional[AooResult] = None,
    title: Optional[str] = None,
    show_coastlines: bool = False,
    dpi: int = 150,
) -> str:
    """
    Create a PNG map of an assessment.

    Parameters
    ----------
    occurrences : sequence of Occurrence
        Points to draw. Computable points are drawn filled, disabled points
        hollow; invalid coordinates are skipped.
    output_path : str
        Path where the PNG file should be saved.
    eoo : EooResult, optional
        If given and it has a hull, the hull is drawn as an outline.
    aoo : AooResult, optional
        If given, its occupied cells are drawn as filled squares.
    title : str, optional
        Title for the map. No title if None or empty.
    show_coastlines : bool, optional
        Draw Natural Earth coastlines. Needs the cartopy data cache or
        network access on first use. Default is False.
    dpi : int, optional
        Output resolution. Default is 150.

    Returns
    -------
    str
        Path to the saved PNG file

    Raises
    ------
    ValueError
        If no occurrence has valid coordinates.
    """
    drawable = [o for o in occurrences if validate_lat_lon(o.lat, o.lon).ok]
    if not drawable:
        raise ValueError("No occurrences with valid coordinates to map")

    lons = np.array([o.lon for o in drawable])
    lats = np.array([o.lat for o in drawable])
    enabled = np.array([o.is_enabled for o in drawable])

    fig = plt.figure(figsize=(12, 8))
    ax = fig.add_subplot(1, 1, 1, projection=MAP_PROJECTION)
    ax.set_extent(_map_extent(lons, lats), crs=GEOGRAPHIC)

    if show_coastlines:
        ax.add_feature(cfeature.COASTLINE, linewidth=0.5, edgecolor='grey')

    if aoo is not None and aoo.grid:
        ax.add_geometries(
            [cell.polygon for cell in aoo.grid],
            GEOGRAPHIC,
            facecolor='tab:orange',
            edgecolor='darkorange',
            alpha=0.5,
            linewidth=0.5,
        )

    if eoo is not None and eoo.hull is not None:
        ax.add_geometries(
            [eoo.hull],
            GEOGRAPHIC,
            facecolor='none',
            edgecolor='tab:blue',
            linewidth=1.5,
        )

    ax.scatter(
        lons[enabled], lats[enabled],
        s=12, color='black', transform=GEOGRAPHIC, zorder=3,
    )
    if (~enabled).any():
        ax.scatter(
            lons[~enabled], lats[~enabled],
            s=12, facecolors='none', edgecolors='grey', transform=GEOGRAPHIC, zorder=3,
        )

    for spine in ax.spines.values():
        spine.set_visible(False)

    if title:
        plt.title(title, fontsize=16, fontweight='bold')

    plt.tight_layout()
    plt.savefig(output_path, dpi=dpi, bbox_inches='tight')
    plt.close(fig)

    return output_path
