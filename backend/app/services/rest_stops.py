"""
Animal welfare rest-stop planner.

Deliberately naive: a mandatory stop every fixed interval along the planned
distance. No routing, no geography.
"""

import math
from typing import Any, Dict, List, Optional

from backend.app.core.config import settings

REST_STOP_NOTE = "Mandatory animal welfare rest stop (static rule)."


def _positive_distance(distance_km: Any) -> Optional[float]:
    if distance_km is None:
        return None
    try:
        distance = float(distance_km)
    except (TypeError, ValueError):
        return None
    if math.isnan(distance) or math.isinf(distance) or distance <= 0:
        return None
    return distance


def plan_rest_stops(distance_km: Optional[float], interval_km: Optional[float] = None) -> List[Dict[str, Any]]:
    """
    Return the ordered welfare stops for a planned distance.

    Stops fall at interval, 2*interval, ... while the offset is strictly
    less than the distance, so a 400 km trip with a 400 km interval has no
    stop and a 900 km trip has stops at 400 and 800. Unknown, zero or
    negative distances give an empty plan.
    """
    interval = interval_km or settings.rest_stop_interval_km
    distance = _positive_distance(distance_km)
    if distance is None or interval <= 0:
        return []

    stops = []
    offset = interval
    stop_number = 1
    while offset < distance:
        stops.append({
            "stop_number": stop_number,
            "at_distance_km": offset,
            "notes": REST_STOP_NOTE,
        })
        offset += interval
        stop_number += 1
    return stops


def build_rest_stop_plan(distance_km: Optional[float], interval_km: Optional[float] = None) -> Dict[str, Any]:
    """Rest-stop plan document stored on the trip."""
    return {
        "total_distance_km": _positive_distance(distance_km),
        "interval_km": interval_km or settings.rest_stop_interval_km,
        "stops": plan_rest_stops(distance_km, interval_km),
    }
