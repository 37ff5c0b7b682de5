"""
Load-related enumerations.
"""

import enum


class LoadStatus(str, enum.Enum):
    """Load status enumeration."""
    POSTED = "posted"  # Open on the load board
    MATCHED = "matched"  # Won by a carrier, trip provisioned
    IN_TRANSIT = "in_transit"  # Trip en route
    COMPLETED = "completed"  # Delivered


class PaymentMode(str, enum.Enum):
    """How the shipper pays the carrier."""
    ESCROW = "ESCROW"  # Funds held by the platform until ePOD
    DIRECT = "DIRECT"  # Paid off-platform, ledger entry only
