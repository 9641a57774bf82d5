"""
Geofence validation service.
Uses Haversine formula to calculate distance between points.
"""
import math
from typing import Optional, Tuple
from ..config import settings


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Returns:
        Distance in meters
    """
    # Earth radius in meters
    R = 6371000

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2 +
        math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def inside_geofence(
    point_lat: float,
    point_lng: float,
    center_lat: Optional[float],
    center_lng: Optional[float],
    radius_m: Optional[float] = None,
) -> Tuple[bool, Optional[float]]:
    """
    Check a point against a single circular geofence.

    Returns:
        Tuple of (is_inside, distance_m). A missing center means no geofence,
        which always allows the point (distance is None in that case).
    """
    if center_lat is None or center_lng is None:
        return True, None
    if radius_m is None:
        radius_m = settings.geo_radius_m_default
    distance = haversine_distance(float(point_lat), float(point_lng), float(center_lat), float(center_lng))
    return distance <= float(radius_m), distance
