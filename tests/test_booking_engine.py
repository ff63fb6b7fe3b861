import asyncio
import logging
from datetime import timedelta
from decimal import Decimal

import pytest

from app.core.exceptions import (
    ConcurrentModificationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from app.domain.actor import Actor
from app.domain.booking_state import ACTIVE_STATUSES, BookingStatus
from app.services.booking_engine import BookingEngine, calculate_booking_fee
from app.stores.base import ActiveBookingExists
from app.stores.memory import MemoryBookingStore


def assert_single_admin_decision(booking):
    assert booking.admin_confirmed_at is None or booking.admin_rejected_at is None


# ==================== CREATE ====================


async def test_create_booking_snapshots_listing_and_charges_half_rent(engine, tenant, listing, clock, move_in):
    booking = await engine.create_booking(tenant, listing, move_in, 2, requester_phone="254712345678")

    assert booking.id
    assert booking.status == BookingStatus.AWAITING_MANUAL_PAYMENT
    assert booking.booking_fee == Decimal("10000.00")
    assert booking.total_rent == Decimal("20000")
    assert booking.requested_at == clock()
    assert booking.requester_id == "tenant-1"
    assert booking.requester_email == tenant.email
    assert booking.requester_phone == "254712345678"
    assert booking.listing_name == "Qwetu Aparthotel"
    assert booking.agent_phone == "0712345678"
    assert booking.tenant_count == 2
    assert booking.payment_confirmed_at is None
    assert booking.admin_confirmed_at is None
    assert booking.admin_rejected_at is None


def test_booking_fee_rounds_to_cents():
    assert calculate_booking_fee(Decimal("15001")) == Decimal("7500.50")
    assert calculate_booking_fee(Decimal("9999.99")) == Decimal("5000.00")
    assert calculate_booking_fee(Decimal("20000"), ratio=Decimal("0.25")) == Decimal("5000.00")


async def test_create_booking_for_listing_looks_up_snapshot(engine, tenant, move_in):
    booking = await engine.create_booking_for_listing(tenant, "bluebell-hostel", move_in, 1)

    assert booking.listing_name == "Bluebell Hostel"
    assert booking.booking_fee == Decimal("7500.50")


async def test_create_booking_for_unknown_listing(engine, tenant, move_in):
    with pytest.raises(NotFoundError):
        await engine.create_booking_for_listing(tenant, "no-such-listing", move_in, 1)


async def test_move_in_today_is_allowed(engine, tenant, listing, clock):
    booking = await engine.create_booking(tenant, listing, clock().date(), 1)
    assert booking.move_in_date == clock().date()


async def test_move_in_in_the_past_is_rejected(engine, tenant, listing, clock, store):
    with pytest.raises(ValidationError):
        await engine.create_booking(tenant, listing, clock().date() - timedelta(days=1), 1)
    assert await store.query_all() == []


@pytest.mark.parametrize("tenant_count", [0, 3, -1])
async def test_tenant_count_out_of_range(engine, tenant, listing, move_in, tenant_count):
    with pytest.raises(ValidationError):
        await engine.create_booking(tenant, listing, move_in, tenant_count)


async def test_max_tenants_is_configurable(store, listings, clock, tenant, listing, move_in):
    engine = BookingEngine(store, listings, clock=clock, max_tenants=4)
    booking = await engine.create_booking(tenant, listing, move_in, 4)
    assert booking.tenant_count == 4


async def test_requester_without_email_is_rejected(engine, listing, move_in):
    with pytest.raises(ValidationError):
        await engine.create_booking(Actor(user_id="tenant-9"), listing, move_in, 1)


async def test_second_active_booking_conflicts_and_store_is_unchanged(
    engine, store, tenant, booking, other_listing, move_in
):
    with pytest.raises(ConflictError) as exc_info:
        await engine.create_booking(tenant, other_listing, move_in, 1)

    assert "Qwetu Aparthotel" in exc_info.value.detail
    assert [b.id for b in await store.query_all()] == [booking.id]


@pytest.mark.parametrize("status", [BookingStatus.PENDING_ADMIN_CONFIRMATION, BookingStatus.CONFIRMED])
async def test_paid_and_confirmed_bookings_still_block(
    engine, store, tenant, booking, other_listing, move_in, admin, status
):
    await engine.confirm_payment(booking.id)
    if status == BookingStatus.CONFIRMED:
        await engine.approve(booking.id, admin)

    with pytest.raises(ConflictError):
        await engine.create_booking(tenant, other_listing, move_in, 1)


async def test_can_book_again_once_previous_booking_is_terminal(
    engine, tenant, admin, booking, other_listing, move_in
):
    await engine.reject(booking.id, admin)

    second = await engine.create_booking(tenant, other_listing, move_in, 1)

    assert second.status == BookingStatus.AWAITING_MANUAL_PAYMENT


async def test_different_requesters_do_not_conflict(engine, tenant, other_tenant, listing, move_in):
    await engine.create_booking(tenant, listing, move_in, 1)
    await engine.create_booking(other_tenant, listing, move_in, 1)


async def test_concurrent_creates_leave_one_active_booking(engine, store, tenant, listing, other_listing, move_in):
    results = await asyncio.gather(
        engine.create_booking(tenant, listing, move_in, 1),
        engine.create_booking(tenant, other_listing, move_in, 1),
        return_exceptions=True,
    )

    assert sum(isinstance(r, ConflictError) for r in results) == 1
    active = [b for b in await store.query_by_requester(tenant.user_id) if b.status in ACTIVE_STATUSES]
    assert len(active) == 1


class BlindGuardStore(MemoryBookingStore):
    """Hides existing bookings from reads, as a guard check that lost a race would."""

    def __init__(self) -> None:
        super().__init__()
        self.blind = False

    async def query_by_requester(self, requester_id):
        if self.blind:
            self.blind = False
            return []
        return await super().query_by_requester(requester_id)


async def test_store_rejects_insert_that_slipped_past_guard(clock, listings, tenant, listing, other_listing, move_in):
    store = BlindGuardStore()
    engine = BookingEngine(store, listings, clock=clock)
    first = await engine.create_booking(tenant, listing, move_in, 1)

    store.blind = True
    with pytest.raises(ConflictError) as exc_info:
        await engine.create_booking(tenant, other_listing, move_in, 1)

    assert exc_info.value.listing_name == first.listing_name
    assert len(await store.query_all()) == 1


# ==================== PAYMENT CONFIRMATION ====================


async def test_confirm_payment_moves_to_admin_review(engine, booking, clock):
    clock.advance(minutes=5)

    paid = await engine.confirm_payment(booking.id, receipt="QKA1B2C3D4")

    assert paid.status == BookingStatus.PENDING_ADMIN_CONFIRMATION
    assert paid.payment_confirmed_at == clock()
    assert paid.payment_receipt == "QKA1B2C3D4"
    assert paid.updated_at == clock()


async def test_second_confirm_payment_is_rejected_and_not_restamped(engine, paid_booking, clock):
    clock.advance(hours=1)

    with pytest.raises(InvalidStateError):
        await engine.confirm_payment(paid_booking.id)

    reloaded = await engine.load(paid_booking.id)
    assert reloaded.payment_confirmed_at == paid_booking.payment_confirmed_at
    assert reloaded.status == BookingStatus.PENDING_ADMIN_CONFIRMATION


async def test_confirm_payment_unknown_booking(engine):
    with pytest.raises(NotFoundError):
        await engine.confirm_payment("missing")


async def test_legacy_pending_booking_can_be_paid_and_approved(engine, store, clock, admin, record_factory):
    booking_id = await store.create(record_factory("tenant-7", BookingStatus.PENDING, clock()))

    paid = await engine.confirm_payment(booking_id)
    approved = await engine.approve(booking_id, admin)

    assert paid.status == BookingStatus.PENDING_ADMIN_CONFIRMATION
    assert approved.status == BookingStatus.CONFIRMED


# ==================== ADMIN REVIEW ====================


async def test_approve_confirms_and_clears_rejection(engine, paid_booking, admin, clock):
    clock.advance(days=1)

    approved = await engine.approve(paid_booking.id, admin)

    assert approved.status == BookingStatus.CONFIRMED
    assert approved.admin_confirmed_at == clock()
    assert approved.admin_rejected_at is None


async def test_reject_records_rejection(engine, paid_booking, admin, clock):
    rejected = await engine.reject(paid_booking.id, admin)

    assert rejected.status == BookingStatus.REJECTED
    assert rejected.admin_rejected_at == clock()
    assert rejected.admin_confirmed_at is None


async def test_admin_may_act_before_payment(engine, booking, admin):
    approved = await engine.approve(booking.id, admin)

    assert approved.status == BookingStatus.CONFIRMED
    assert approved.payment_confirmed_at is None


async def test_strict_review_refuses_unpaid_bookings(store, listings, clock, tenant, listing, admin, move_in):
    engine = BookingEngine(store, listings, clock=clock, require_payment_before_review=True)
    booking = await engine.create_booking(tenant, listing, move_in, 1)

    with pytest.raises(InvalidStateError):
        await engine.approve(booking.id, admin)

    await engine.confirm_payment(booking.id)
    assert (await engine.approve(booking.id, admin)).status == BookingStatus.CONFIRMED


async def test_tenant_cannot_review(engine, paid_booking, tenant):
    with pytest.raises(UnauthorizedError):
        await engine.approve(paid_booking.id, tenant)
    with pytest.raises(UnauthorizedError):
        await engine.reject(paid_booking.id, tenant)
    with pytest.raises(UnauthorizedError):
        await engine.reset(paid_booking.id, tenant)

    assert (await engine.load(paid_booking.id)).status == BookingStatus.PENDING_ADMIN_CONFIRMATION


async def test_reset_on_confirmed_clears_admin_timestamps(engine, paid_booking, admin):
    await engine.approve(paid_booking.id, admin)

    reset = await engine.reset(paid_booking.id, admin)

    assert reset.status == BookingStatus.PENDING_ADMIN_CONFIRMATION
    assert reset.admin_confirmed_at is None
    assert reset.admin_rejected_at is None
    assert reset.payment_confirmed_at == paid_booking.payment_confirmed_at


async def test_reset_requires_a_decision(engine, paid_booking, admin):
    with pytest.raises(InvalidStateError):
        await engine.reset(paid_booking.id, admin)


async def test_approve_reject_sequences_keep_one_decision(engine, paid_booking, admin, clock):
    steps = [engine.approve, engine.reset, engine.reject, engine.reset, engine.approve]
    for step in steps:
        clock.advance(minutes=1)
        booking = await step(paid_booking.id, admin)
        assert_single_admin_decision(booking)

    assert booking.status == BookingStatus.CONFIRMED
    assert booking.admin_confirmed_at == clock()
    assert booking.admin_rejected_at is None


async def test_concurrent_approve_and_reject_apply_once(engine, paid_booking, admin):
    results = await asyncio.gather(
        engine.approve(paid_booking.id, admin),
        engine.reject(paid_booking.id, admin),
        return_exceptions=True,
    )

    assert sum(isinstance(r, InvalidStateError) for r in results) == 1
    final = await engine.load(paid_booking.id)
    assert final.status in (BookingStatus.CONFIRMED, BookingStatus.REJECTED)
    assert_single_admin_decision(final)


async def test_reset_rejected_booking_reopens_it(engine, store, booking, tenant, admin):
    await engine.reject(booking.id, admin)

    reopened = await engine.reset(booking.id, admin)

    assert reopened.status == BookingStatus.PENDING_ADMIN_CONFIRMATION
    assert reopened.admin_rejected_at is None
    active = [b for b in await store.query_by_requester(tenant.user_id) if b.status in ACTIVE_STATUSES]
    assert [b.id for b in active] == [booking.id]


async def test_reset_rejected_booking_conflicts_with_newer_active_booking(
    engine, store, booking, tenant, admin, other_listing, move_in, clock
):
    rejected = await engine.reject(booking.id, admin)
    clock.advance(hours=1)
    newer = await engine.create_booking(tenant, other_listing, move_in, 1)

    with pytest.raises(ConflictError) as exc_info:
        await engine.reset(booking.id, admin)

    assert exc_info.value.listing_name == "Bluebell Hostel"
    assert await engine.load(booking.id) == rejected
    active = [b for b in await store.query_by_requester(tenant.user_id) if b.status in ACTIVE_STATUSES]
    assert [b.id for b in active] == [newer.id]


async def test_store_refuses_reopening_that_slipped_past_guard(
    clock, listings, tenant, admin, listing, other_listing, move_in
):
    store = BlindGuardStore()
    engine = BookingEngine(store, listings, clock=clock)
    first = await engine.create_booking(tenant, listing, move_in, 1)
    await engine.reject(first.id, admin)
    newer = await engine.create_booking(tenant, other_listing, move_in, 1)

    store.blind = True
    with pytest.raises(ConflictError) as exc_info:
        await engine.reset(first.id, admin)

    assert exc_info.value.booking_status == newer.status.value
    assert (await store.get(first.id)).status == BookingStatus.REJECTED


# ==================== TENANT CANCEL / PURGE ====================


async def test_cancel_pending_admin_confirmation(engine, paid_booking, tenant, clock):
    clock.advance(hours=2)

    cancelled = await engine.cancel(paid_booking.id, tenant)

    assert cancelled.status == BookingStatus.CANCELLED
    assert cancelled.user_cancelled_at == clock()


async def test_cancel_awaiting_payment(engine, booking, tenant):
    assert (await engine.cancel(booking.id, tenant)).status == BookingStatus.CANCELLED


async def test_cancel_confirmed_is_rejected(engine, paid_booking, tenant, admin):
    await engine.approve(paid_booking.id, admin)

    with pytest.raises(InvalidStateError):
        await engine.cancel(paid_booking.id, tenant)

    assert (await engine.load(paid_booking.id)).status == BookingStatus.CONFIRMED


async def test_only_requester_can_cancel(engine, booking, other_tenant, admin):
    with pytest.raises(UnauthorizedError):
        await engine.cancel(booking.id, other_tenant)
    with pytest.raises(UnauthorizedError):
        await engine.cancel(booking.id, admin)


async def test_purge_removes_terminal_booking(engine, store, booking, tenant):
    await engine.cancel(booking.id, tenant)

    await engine.purge(booking.id, tenant)

    assert await store.get(booking.id) is None


async def test_purge_rejected_booking(engine, store, booking, tenant, admin):
    await engine.reject(booking.id, admin)

    await engine.purge(booking.id, tenant)

    assert await store.get(booking.id) is None


async def test_purge_confirmed_fails_and_record_remains(engine, store, paid_booking, tenant, admin):
    await engine.approve(paid_booking.id, admin)

    with pytest.raises(InvalidStateError):
        await engine.purge(paid_booking.id, tenant)

    assert (await store.get(paid_booking.id)).status == BookingStatus.CONFIRMED


async def test_only_requester_can_purge(engine, store, booking, tenant, other_tenant):
    await engine.cancel(booking.id, tenant)

    with pytest.raises(UnauthorizedError):
        await engine.purge(booking.id, other_tenant)

    assert await store.get(booking.id) is not None


async def test_admin_delete_any_status(engine, store, paid_booking, admin):
    await engine.admin_delete(paid_booking.id, admin)
    assert await store.get(paid_booking.id) is None


async def test_admin_delete_missing_and_unauthorized(engine, booking, admin, tenant):
    with pytest.raises(NotFoundError):
        await engine.admin_delete("missing", admin)
    with pytest.raises(UnauthorizedError):
        await engine.admin_delete(booking.id, tenant)


# ==================== READS ====================


async def test_get_booking_visibility(engine, booking, tenant, other_tenant, admin):
    assert (await engine.get_booking(booking.id, tenant)).id == booking.id
    assert (await engine.get_booking(booking.id, admin)).id == booking.id
    with pytest.raises(UnauthorizedError):
        await engine.get_booking(booking.id, other_tenant)


async def test_lists_are_newest_first(engine, tenant, other_tenant, admin, listing, other_listing, clock, move_in):
    first = await engine.create_booking(tenant, listing, move_in, 1)
    await engine.cancel(first.id, tenant)
    clock.advance(hours=1)
    second = await engine.create_booking(tenant, other_listing, move_in, 1)
    clock.advance(hours=1)
    third = await engine.create_booking(other_tenant, listing, move_in, 1)

    mine = await engine.list_for_requester(tenant)
    everyone = await engine.list_all(admin)

    assert [b.id for b in mine] == [second.id, first.id]
    assert [b.id for b in everyone] == [third.id, second.id, first.id]


async def test_list_all_requires_admin(engine, tenant):
    with pytest.raises(UnauthorizedError):
        await engine.list_all(tenant)


# ==================== CONDITIONAL WRITES ====================


class LosingStore(MemoryBookingStore):
    """Every conditional update loses to another writer."""

    def __init__(self) -> None:
        super().__init__()
        self.update_calls = 0

    async def update(self, booking_id, fields, expected_status):
        self.update_calls += 1
        return False


class InterferingStore(MemoryBookingStore):
    """Lets another writer change the booking just before the next update."""

    def __init__(self) -> None:
        super().__init__()
        self.interference: dict | None = None

    async def update(self, booking_id, fields, expected_status):
        if self.interference is not None:
            change, self.interference = self.interference, None
            if change:
                await super().update(booking_id, change, expected_status)
            return False
        return await super().update(booking_id, fields, expected_status)


async def test_gives_up_after_max_retries(clock, listings, tenant, admin, listing, move_in):
    store = LosingStore()
    engine = BookingEngine(store, listings, clock=clock, max_retries=3)
    booking = await engine.create_booking(tenant, listing, move_in, 1)

    with pytest.raises(ConcurrentModificationError) as exc_info:
        await engine.approve(booking.id, admin)

    assert store.update_calls == 3
    assert exc_info.value.attempts == 3
    assert exc_info.value.status_code == 409
    assert (await store.get(booking.id)).status == BookingStatus.AWAITING_MANUAL_PAYMENT


async def test_retry_applies_once_after_lost_race(clock, listings, tenant, admin, listing, move_in, caplog):
    store = InterferingStore()
    engine = BookingEngine(store, listings, clock=clock)
    booking = await engine.create_booking(tenant, listing, move_in, 1)
    store.interference = {}

    with caplog.at_level(logging.WARNING, logger="app.services.booking_engine"):
        approved = await engine.approve(booking.id, admin)

    assert approved.status == BookingStatus.CONFIRMED
    assert any("retrying" in record.getMessage() for record in caplog.records)


async def test_retry_revalidates_against_new_state(clock, listings, tenant, admin, listing, move_in):
    store = InterferingStore()
    engine = BookingEngine(store, listings, clock=clock)
    booking = await engine.create_booking(tenant, listing, move_in, 1)
    store.interference = {"status": BookingStatus.CANCELLED, "user_cancelled_at": clock()}

    with pytest.raises(InvalidStateError):
        await engine.approve(booking.id, admin)

    final = await store.get(booking.id)
    assert final.status == BookingStatus.CANCELLED
    assert final.admin_confirmed_at is None


async def test_store_refuses_immutable_field_updates(store, booking):
    with pytest.raises(ValueError):
        await store.update(booking.id, {"booking_fee": Decimal("1")}, booking.status)


async def test_store_refuses_to_reactivate_beside_an_active_booking(store, clock, record_factory):
    rejected_id = await store.create(record_factory("tenant-1", BookingStatus.REJECTED, clock()))
    await store.create(record_factory("tenant-1", BookingStatus.AWAITING_MANUAL_PAYMENT, clock()))

    with pytest.raises(ActiveBookingExists):
        await store.update(
            rejected_id,
            {"status": BookingStatus.PENDING_ADMIN_CONFIRMATION, "admin_rejected_at": None},
            expected_status=BookingStatus.REJECTED,
        )

    assert (await store.get(rejected_id)).status == BookingStatus.REJECTED
