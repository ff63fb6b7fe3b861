from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest

from app.core.permissions import UserRole
from app.domain.actor import Actor
from app.domain.booking_state import BookingStatus
from app.domain.records import BookingRecord, ListingSnapshot
from app.services.booking_engine import BookingEngine
from app.stores.memory import MemoryBookingStore, MemoryListingProvider, MemoryPaymentLedger

MOVE_IN = date(2026, 3, 15)


class FakeClock:
    """Deterministic engine clock; call it to read, ``advance`` to move on."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 9, 0, tzinfo=UTC))


@pytest.fixture
def listing():
    return ListingSnapshot(
        id="qwetu-aparthotel",
        name="Qwetu Aparthotel",
        address="Ngong Road, Nairobi",
        price=Decimal("20000"),
        agent_name="Jane Wanjiku",
        agent_phone="0712345678",
    )


@pytest.fixture
def other_listing():
    return ListingSnapshot(
        id="bluebell-hostel",
        name="Bluebell Hostel",
        address="Kahawa Sukari",
        price=Decimal("15001"),
        agent_name="Peter Otieno",
        agent_phone="0722000111",
    )


@pytest.fixture
def store():
    return MemoryBookingStore()


@pytest.fixture
def listings(listing, other_listing):
    return MemoryListingProvider([listing, other_listing])


@pytest.fixture
def ledger():
    return MemoryPaymentLedger()


@pytest.fixture
def engine(store, listings, clock):
    return BookingEngine(
        store,
        listings,
        clock=clock,
        max_tenants=2,
        max_retries=3,
        require_payment_before_review=False,
    )


@pytest.fixture
def tenant():
    return Actor(user_id="tenant-1", email="amina@students.ku.ac.ke", role=UserRole.TENANT)


@pytest.fixture
def other_tenant():
    return Actor(user_id="tenant-2", email="brian@students.uonbi.ac.ke", role=UserRole.TENANT)


@pytest.fixture
def admin():
    return Actor(user_id="admin-1", email="admin@unistay.co.ke", role=UserRole.ADMIN)


@pytest.fixture
async def booking(engine, tenant, listing):
    """A fresh booking awaiting payment."""
    return await engine.create_booking(tenant, listing, MOVE_IN, 1)


@pytest.fixture
async def paid_booking(engine, booking):
    """A booking whose fee has been confirmed."""
    return await engine.confirm_payment(booking.id, receipt="QKA1B2C3D4")


def make_record(requester_id: str, status: BookingStatus, requested_at: datetime, **overrides) -> BookingRecord:
    """Build a booking record directly, bypassing the engine."""
    values = dict(
        requester_id=requester_id,
        requester_email=f"{requester_id}@example.com",
        listing_id="qwetu-aparthotel",
        listing_name="Qwetu Aparthotel",
        listing_address="Ngong Road, Nairobi",
        agent_name="Jane Wanjiku",
        agent_phone="0712345678",
        move_in_date=MOVE_IN,
        tenant_count=1,
        booking_fee=Decimal("10000.00"),
        total_rent=Decimal("20000"),
        requested_at=requested_at,
        status=status,
    )
    values.update(overrides)
    return BookingRecord(**values)


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def move_in():
    return MOVE_IN
