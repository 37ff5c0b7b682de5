"""
Trip-related enumerations.
"""

import enum


class TripStatus(str, enum.Enum):
    """Trip status enumeration."""
    PLANNED = "planned"  # Provisioned at assignment
    ASSIGNED = "assigned"  # Crew confirmed, not started
    EN_ROUTE = "en_route"  # Animals on board
    COMPLETED = "completed"  # Delivered (ePOD or explicit completion)
    CANCELLED = "cancelled"  # Abandoned before completion


TERMINAL_TRIP_STATUSES = (TripStatus.COMPLETED, TripStatus.CANCELLED)
