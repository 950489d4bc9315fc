"""
Geodesy helpers for tracker summaries.

Positions are WGS84 latitude/longitude in decimal degrees.
"""

from typing import Optional, Sequence

import numpy as np
from numpy.typing import NDArray


EARTH_RADIUS_M = 6371000  # mean radius


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Calculate great-circle distance between points.

    Accepts scalars or numpy arrays (element-wise).

    Args:
        lat1, lon1: First point coordinates in degrees
        lat2, lon2: Second point coordinates in degrees

    Returns:
        Distance in meters
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    dlat = np.radians(np.subtract(lat2, lat1))
    dlon = np.radians(np.subtract(lon2, lon1))

    a = np.sin(dlat/2)**2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon/2)**2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1-a))

    return EARTH_RADIUS_M * c


def path_length_m(lats: Sequence[float], lons: Sequence[float]) -> float:
    """Total great-circle length of a polyline, in meters."""
    if len(lats) < 2:
        return 0.0
    lat: NDArray[np.float64] = np.asarray(lats, dtype=np.float64)
    lon: NDArray[np.float64] = np.asarray(lons, dtype=np.float64)
    segments = haversine_distance(lat[:-1], lon[:-1], lat[1:], lon[1:])
    return float(np.sum(segments))


def bounding_box(
    lats: Sequence[float],
    lons: Sequence[float],
) -> Optional[tuple[float, float, float, float]]:
    """(min_lat, min_lon, max_lat, max_lon), or None without points."""
    if len(lats) == 0:
        return None
    lat = np.asarray(lats, dtype=np.float64)
    lon = np.asarray(lons, dtype=np.float64)
    return (
        float(np.min(lat)),
        float(np.min(lon)),
        float(np.max(lat)),
        float(np.max(lon)),
    )
