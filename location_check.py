# location_check.py
from math import radians, sin, cos, sqrt, atan2

EARTH_RADIUS_M = 6371000.0
ALLOWED_RADIUS_METERS = 50


def haversine_m(lat1, lon1, lat2, lon2):
    R = EARTH_RADIUS_M
    lat1, lon1, lat2, lon2 = map(radians, [float(lat1), float(lon1), float(lat2), float(lon2)])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat/2)**2 + cos(lat1) * cos(lat2) * sin(dlon/2)**2
    c = 2 * atan2(sqrt(a), sqrt(1-a))
    return R * c


def check_attendance_location(lat, lon, site_lat, site_lon, allowed_distance_meters=ALLOWED_RADIUS_METERS):
    """Return ``(is_within, distance)`` for a reading against a designated site.

    Readings are compared at whole-metre resolution and the boundary is
    inclusive, so a point 50.04 m out still counts as inside a 50 m fence.
    """
    distance = haversine_m(lat, lon, site_lat, site_lon)
    is_within = round(distance) <= float(allowed_distance_meters)
    return is_within, distance
