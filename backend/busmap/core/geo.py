"""Great-circle distances and bounding boxes on lat/lon degrees."""

import math

EARTH_RADIUS_KM = 6371.0


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in kilometers. Inputs must already be validated."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlon / 2) ** 2)
    # Clamp float noise so asin never sees a value above 1
    return EARTH_RADIUS_KM * 2 * math.asin(math.sqrt(min(1.0, a)))


def is_valid_coordinate(lat: float, lon: float) -> bool:
    if lat is None or lon is None:
        return False
    if math.isnan(lat) or math.isnan(lon):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def bounding_box(lat: float, lon: float, radius_km: float) -> tuple[float, float, float, float]:
    """Box (min_lat, min_lon, max_lat, max_lon) enclosing a circle of radius_km.

    Latitudes are clamped to [-90, 90]. Longitudes are left unwrapped, so a box
    near the antimeridian may extend past +/-180; callers split it.
    """
    dlat = math.degrees(radius_km / EARTH_RADIUS_KM)
    min_lat = max(-90.0, lat - dlat)
    max_lat = min(90.0, lat + dlat)

    cos_lat = math.cos(math.radians(max(abs(min_lat), abs(max_lat))))
    if cos_lat < 1e-9 or max_lat >= 90.0 or min_lat <= -90.0:
        return (min_lat, -180.0, max_lat, 180.0)
    dlon = math.degrees(radius_km / (EARTH_RADIUS_KM * cos_lat))
    if dlon >= 180.0:
        return (min_lat, -180.0, max_lat, 180.0)
    return (min_lat, lon - dlon, max_lat, lon + dlon)
