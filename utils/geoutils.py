# utils/geoutils.py
import math
from typing import Tuple

# Mean Earth radius in meters, used by every distance computation in the app
EARTH_RADIUS_M = 6371000.0

# Slack for radius checks, far below GPS precision
RADIUS_TOLERANCE_M = 1e-6


# Haversine distance
def distance_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Compute Haversine distance in meters."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)
    a = math.sin(dphi/2)**2 + math.cos(phi1)*math.cos(phi2)*math.sin(dlambda/2)**2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def destination_point(
    lat: float,
    lng: float,
    bearing_deg: float,
    distance_m: float
) -> Tuple[float, float]:
    """
    Return the (lat, lng) reached by travelling `distance_m` meters from
    (lat, lng) along the initial bearing `bearing_deg` (degrees from north).
    """
    delta = distance_m / EARTH_RADIUS_M
    theta = math.radians(bearing_deg)
    phi1 = math.radians(lat)
    lambda1 = math.radians(lng)

    phi2 = math.asin(
        math.sin(phi1) * math.cos(delta)
        + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    )
    lambda2 = lambda1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )
    # normalise longitude to [-180, 180)
    lng2 = (math.degrees(lambda2) + 540) % 360 - 180
    return math.degrees(phi2), lng2


def within_radius(distance: float, radius_m: float) -> bool:
    """
    Inclusive: a point exactly on the circle counts as inside, including one
    whose computed distance overshoots the radius by float rounding.
    """
    return distance <= radius_m + RADIUS_TOLERANCE_M
