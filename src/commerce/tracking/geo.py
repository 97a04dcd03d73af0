"""Great-circle distance helpers for delivery tracking."""

import math

# Mean Earth radius (IUGG), metres
EARTH_RADIUS_M = 6371008.8


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in metres between two points given in decimal degrees."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def bounding_box(latitude: float, longitude: float, radius_m: float) -> tuple[float, float, float, float]:
    """(min_lat, max_lat, min_lon, max_lon) enclosing every point within `radius_m`.

    The box is a coarse pre-filter; callers refine with `haversine_m`. Near the
    poles, or when the box would cross the antimeridian, longitude is left
    unbounded.
    """
    d_lat = math.degrees(radius_m / EARTH_RADIUS_M)
    min_lat = max(-90.0, latitude - d_lat)
    max_lat = min(90.0, latitude + d_lat)

    cos_lat = math.cos(math.radians(latitude))
    if cos_lat < 1e-6 or min_lat <= -90.0 or max_lat >= 90.0:
        return min_lat, max_lat, -180.0, 180.0

    d_lon = math.degrees(radius_m / (EARTH_RADIUS_M * cos_lat))
    min_lon, max_lon = longitude - d_lon, longitude + d_lon
    if min_lon < -180.0 or max_lon > 180.0:
        return min_lat, max_lat, -180.0, 180.0
    return min_lat, max_lat, min_lon, max_lon
