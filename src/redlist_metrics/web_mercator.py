"""
Spherical Web Mercator projection used for AOO grid binning and EOO area.

Both directions accept plain floats or numpy arrays. Latitudes are clamped to
the Web Mercator validity band before projecting and after unprojecting, so
the functions are total over finite inputs.
"""

from functools import lru_cache

import numpy as np
import pyproj

EARTH_RADIUS_M = 6378137.0
MAX_LATITUDE = 85.05112878

# Spherical Mercator on R = 6378137 m. "+over" keeps longitudes outside
# [-180, 180] from being wrapped, so grid cells at the antimeridian stay whole.
_WEB_MERCATOR_PROJ4 = (
    f"+proj=merc +a={EARTH_RADIUS_M} +b={EARTH_RADIUS_M} +lat_ts=0 +lon_0=0 "
    "+x_0=0 +y_0=0 +k=1 +units=m +over +no_defs"
)


@lru_cache(maxsize=1)
def _projection() -> pyproj.Proj:
    return pyproj.Proj(_WEB_MERCATOR_PROJ4)


def clamp_latitude(lat):
    """Clamp a latitude (or array of latitudes) to +/- MAX_LATITUDE."""
    clamped = np.clip(lat, -MAX_LATITUDE, MAX_LATITUDE)
    if np.ndim(clamped) == 0:
        return float(clamped)
    return clamped


def to_planar(lon, lat):
    """
    Project geographic coordinates to Web Mercator meters.

    Args:
        lon: Longitude in decimal degrees.
        lat: Latitude in decimal degrees; clamped to +/- 85.05112878.

    Returns:
        Tuple (x, y) in meters, floats or arrays matching the input.

    Example:
        >>> x, y = to_planar(-50.0, -10.0)
        >>> round(x)
        -5565975
    """
    return _projection()(lon, clamp_latitude(lat))


def to_geographic(x, y):
    """
    Unproject Web Mercator meters back to geographic coordinates.

    Returns:
        Tuple (lon, lat) in decimal degrees, latitude re-clamped.
    """
    lon, lat = _projection()(x, y, inverse=True)
    return lon, clamp_latitude(lat)
