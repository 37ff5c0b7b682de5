"""
Payment ledger tests: commission math and the escrow state machine.
"""

import pytest
from backend.app.domain.payments.payment_ledger import PaymentLedger
from backend.app.domain.payments.dispute_overlay import base_view
from backend.app.models.load import Load
from backend.app.models.hauler import Hauler
from backend.app.models.trip import Trip
from backend.app.models.payment_enums import PaymentStatus


@pytest.mark.parametrize("amount, rate, commission, payout", [
    (1000, 10, 100.0, 900.0),
    (999.99, 10, 100.0, 899.99),
    (0.05, 10, 0.01, 0.04),
    (1234.56, 7.5, 92.59, 1141.97),
    (500, 0, 0.0, 500.0),
])
def test_commission_split(amount, rate, commission, payout):
    got_commission, got_payout = PaymentLedger.compute_commission(amount, rate)

    assert got_commission == commission
    assert got_payout == payout


def test_commission_and_payout_add_up_to_amount():
    for amount in (0.01, 1, 19.99, 333.33, 1000, 87654.32):
        commission, payout = PaymentLedger.compute_commission(amount, 10)
        assert round(commission + payout, 2) == round(amount, 2)


@pytest.fixture
async def trip(db_session, users):
    load = Load(
        shipper_user_id=5, species="sheep", pickup_location="A", dropoff_location="B",
        offer_price=1000, currency="USD",
    )
    hauler = Hauler(user_id=7)
    db_session.add_all([load, hauler])
    await db_session.flush()

    trip = Trip(load_id=load.id, hauler_id=hauler.id, rest_stop_plan={})
    db_session.add(trip)
    await db_session.commit()
    return trip


async def _open(db_session, trip, amount=1000):
    payment = await PaymentLedger.open(
        db_session, trip_id=trip.id, load_id=trip.load_id,
        payer_user_id=5, payee_user_id=7, amount=amount, currency="usd",
    )
    await db_session.commit()
    await db_session.refresh(payment)
    return payment


async def test_open_stores_commission_at_platform_rate(db_session, trip):
    payment = await _open(db_session, trip)

    assert payment.status == PaymentStatus.PENDING_FUNDING
    assert payment.commission_rate == 10.0
    assert payment.commission_amount == 100.0
    assert payment.payout_amount is None
    assert payment.currency == "USD"
    assert payment.is_escrow is True


async def test_fund_is_conditional(db_session, trip):
    payment = await _open(db_session, trip)

    funded = await PaymentLedger.fund(db_session, payment.id, 5)
    await db_session.commit()
    assert funded.status == PaymentStatus.FUNDED
    assert funded.funded_by_user_id == 5
    assert funded.funded_at is not None

    # Second fund finds nothing pending
    assert await PaymentLedger.fund(db_session, payment.id, 5) is None


async def test_fund_unknown_payment_returns_none(db_session, trip):
    assert await PaymentLedger.fund(db_session, 12345, 5) is None


async def test_release_requires_funding(db_session, trip):
    payment = await _open(db_session, trip)

    assert await PaymentLedger.release(db_session, payment.id, 7) is None

    current = await PaymentLedger.read(db_session, payment.id, refresh=True)
    assert current.status == PaymentStatus.PENDING_FUNDING


async def test_release_fixes_payout_and_is_idempotent(db_session, trip):
    payment = await _open(db_session, trip)
    await PaymentLedger.fund(db_session, payment.id, 5)
    await db_session.commit()

    released = await PaymentLedger.release_for_trip(db_session, trip.id, 7)
    await db_session.commit()
    assert released.status == PaymentStatus.RELEASED
    assert released.commission_amount == 100.0
    assert released.payout_amount == 900.0
    first_released_at = released.released_at

    again = await PaymentLedger.release(db_session, payment.id, 7)
    assert again.status == PaymentStatus.RELEASED
    assert again.released_at == first_released_at


async def test_release_for_trip_without_payment(db_session, trip):
    assert await PaymentLedger.release_for_trip(db_session, trip.id, 7) is None


async def test_view_before_release_shows_expected_payout(db_session, trip):
    payment = await _open(db_session, trip, amount=250)

    view = base_view(payment)
    assert view["payout_amount"] == 225.0
    assert view["refund_amount"] == 0.0
    assert view["settlement_status"] is None
