"""
Payment and dispute enumerations.
"""

import enum


class PaymentStatus(str, enum.Enum):
    """Escrow payment status. Transitions are monotonic."""
    PENDING_FUNDING = "PENDING_FUNDING"  # Opened at assignment, waiting for the shipper
    FUNDED = "FUNDED"  # Shipper funded escrow
    RELEASED = "RELEASED"  # Paid out to the hauler on ePOD


class DisputeStatus(str, enum.Enum):
    """Payment dispute lifecycle."""
    OPEN = "OPEN"
    UNDER_REVIEW = "UNDER_REVIEW"
    RESOLVED_RELEASE_TO_HAULER = "RESOLVED_RELEASE_TO_HAULER"
    RESOLVED_REFUND_TO_SHIPPER = "RESOLVED_REFUND_TO_SHIPPER"
    RESOLVED_SPLIT = "RESOLVED_SPLIT"
    CANCELLED = "CANCELLED"


RESOLVED_DISPUTE_STATUSES = (
    DisputeStatus.RESOLVED_RELEASE_TO_HAULER,
    DisputeStatus.RESOLVED_REFUND_TO_SHIPPER,
    DisputeStatus.RESOLVED_SPLIT,
)


class SettlementOutcome(str, enum.Enum):
    """Read-time settlement view once a dispute overlay applies."""
    RELEASED_TO_HAULER = "RELEASED_TO_HAULER"
    REFUNDED_TO_SHIPPER = "REFUNDED_TO_SHIPPER"
    SPLIT_BETWEEN_PARTIES = "SPLIT_BETWEEN_PARTIES"
