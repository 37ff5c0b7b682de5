"""
User roles enumeration.

Defines the actor roles of the livestock freight marketplace.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        SHIPPER: Owns freight and posts Loads
        HAULER: Carrier that wins Loads and runs Trips
        DRIVER: Drives a hauler's truck, captures checks and ePODs
        SUPER_ADMIN: Platform operator, global override on ownership checks
    """
    SHIPPER = "SHIPPER"
    HAULER = "HAULER"
    DRIVER = "DRIVER"
    SUPER_ADMIN = "SUPER_ADMIN"
