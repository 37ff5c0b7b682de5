"""
Payment mode selection for new loads.

ESCROW is the default. DIRECT moves money off-platform, so the shipper has
to accept the direct-payment disclaimer and say which version they accepted.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from backend.app.core.exceptions import InvalidInputError
from backend.app.models.load_enums import PaymentMode


@dataclass
class PaymentModeSelection:
    payment_mode: PaymentMode
    direct_disclaimer_version: Optional[str] = None
    direct_disclaimer_accepted_at: Optional[datetime] = None

    @property
    def is_escrow(self) -> bool:
        return self.payment_mode == PaymentMode.ESCROW


def resolve_payment_mode_selection(
    payment_mode: Optional[str],
    disclaimer_accepted: Optional[bool] = None,
    disclaimer_version: Optional[str] = None,
) -> PaymentModeSelection:
    """
    Validate a requested payment mode.

    Raises:
        InvalidInputError: unknown mode, or DIRECT without an accepted,
            versioned disclaimer
    """
    if payment_mode is None or not str(payment_mode).strip():
        return PaymentModeSelection(payment_mode=PaymentMode.ESCROW)

    normalized = str(payment_mode).strip().upper()
    try:
        mode = PaymentMode(normalized)
    except ValueError:
        raise InvalidInputError(
            f"Invalid payment_mode: {payment_mode}",
            details={"allowed": [m.value for m in PaymentMode]}
        ) from None

    if mode == PaymentMode.ESCROW:
        return PaymentModeSelection(payment_mode=mode)

    if disclaimer_accepted is not True:
        raise InvalidInputError("DIRECT payment requires accepting the direct payment disclaimer")

    version = (disclaimer_version or "").strip()
    if not version:
        raise InvalidInputError("DIRECT payment requires the accepted disclaimer version")

    return PaymentModeSelection(
        payment_mode=mode,
        direct_disclaimer_version=version,
        direct_disclaimer_accepted_at=datetime.now(timezone.utc),
    )
