"""Service-level tests for booking creation, updates and cancellation."""
from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.actor import Actor
from app.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from app.models.availability import AvailabilityStatus
from app.models.booking import ACTIVE_BOOKING_STATUSES, BookingStatus
from app.models.property import PropertyStatus
from app.models.user import UserRole
from app.repositories import availability as availability_repo
from app.repositories import bookings as bookings_repo
from app.repositories import properties as properties_repo
from app.schemas import bookings as schemas
from app.services import availability as availability_service
from app.services import bookings as bookings_service


class DummySession:
    """Minimal session stub supporting async transaction context."""

    def __init__(self) -> None:
        self.added: list[object] = []
        self.begin_calls = 0

    def add(self, obj: object) -> None:
        self.added.append(obj)

    def begin(self):  # noqa: D401 - mimic SQLAlchemy's async begin
        session = self

        class _Tx:
            async def __aenter__(self_inner):
                session.begin_calls += 1
                return session

            async def __aexit__(self_inner, exc_type, exc, tb):
                return False

        return _Tx()


class FakeStore:
    """In-memory stand-in for the room, override and booking repositories."""

    def __init__(self, *, overrides=(), max_occupancy: int = 2) -> None:
        self.room = SimpleNamespace(
            id="room-1",
            property_id="prop-1",
            price_per_night=Decimal("100.00"),
            max_occupancy=max_occupancy,
        )
        self.host_id = "host-1"
        self.property = SimpleNamespace(id="prop-1", host_id="host-1", status=PropertyStatus.ACTIVE)
        self.overrides = {override.day: override for override in overrides}
        self.bookings: list[SimpleNamespace] = []
        self.nights: dict[tuple[str, date], str] = {}
        self.create_calls = 0

    def install(self, monkeypatch) -> None:
        monkeypatch.setattr(properties_repo, "lock_room", self.lock_room)
        monkeypatch.setattr(properties_repo, "get_property", self.get_property)
        monkeypatch.setattr(availability_repo, "list_overrides_in_range", self.list_overrides_in_range)
        monkeypatch.setattr(bookings_repo, "list_active_overlapping", self.list_active_overlapping)
        monkeypatch.setattr(bookings_repo, "create_booking", self.create_booking)
        monkeypatch.setattr(bookings_repo, "claim_nights", self.claim_nights)
        monkeypatch.setattr(bookings_repo, "release_nights", self.release_nights)
        monkeypatch.setattr(bookings_repo, "get_scope", self.get_scope)

    def active(self) -> list[SimpleNamespace]:
        return [booking for booking in self.bookings if booking.status in ACTIVE_BOOKING_STATUSES]

    async def lock_room(self, session, *, room_id):
        await asyncio.sleep(0)
        return self.room if room_id == self.room.id else None

    async def get_property(self, session, property_id):
        return self.property if property_id == self.property.id else None

    async def list_overrides_in_range(self, session, *, room_id, start_date, end_date):
        return [override for day, override in sorted(self.overrides.items()) if start_date <= day <= end_date]

    async def list_active_overlapping(self, session, *, room_id, start_date, end_date, exclude_booking_id=None):
        await asyncio.sleep(0)
        return [
            booking
            for booking in self.active()
            if booking.room_id == room_id
            and booking.check_in < end_date
            and booking.check_out > start_date
            and booking.id != exclude_booking_id
        ]

    async def create_booking(self, session, **fields):
        await asyncio.sleep(0)
        self.create_calls += 1
        booking = SimpleNamespace(
            id=f"booking-{self.create_calls}",
            reference=f"REF{self.create_calls:09d}",
            created_at=None,
            **fields,
        )
        self.bookings.append(booking)
        return booking

    async def claim_nights(self, session, *, booking, nights):
        for night in nights:
            key = (booking.room_id, night)
            if key in self.nights:
                raise IntegrityError(
                    "INSERT INTO occupied_nights",
                    {},
                    Exception('duplicate key value violates unique constraint "pk_occupied_nights"'),
                )
            self.nights[key] = booking.id

    async def release_nights(self, session, *, booking_id):
        self.nights = {key: owner for key, owner in self.nights.items() if owner != booking_id}

    async def get_scope(self, session, booking_id, *, for_update=False):
        for booking in self.bookings:
            if booking.id == booking_id:
                return bookings_repo.BookingScope(
                    booking=booking,
                    room_id=booking.room_id,
                    property_id=self.room.property_id,
                    host_id=self.host_id,
                )
        return None

    def held_nights(self, booking_id: str) -> list[date]:
        return sorted(night for (_, night), owner in self.nights.items() if owner == booking_id)


GUEST = Actor(user_id="guest-1")
OTHER_GUEST = Actor(user_id="guest-2")
HOST = Actor(user_id="host-1", role=UserRole.HOST)
ADMIN = Actor(user_id="admin-1", role=UserRole.ADMIN)


def _request(check_in, check_out, guests=1):
    return schemas.CreateBookingRequest(
        room_id="room-1", check_in=check_in, check_out=check_out, number_of_guests=guests
    )


def _override(day, status=AvailabilityStatus.AVAILABLE, price=None):
    return SimpleNamespace(day=day, status=status, price=price, notes=None)


@pytest.mark.asyncio
async def test_create_booking_prices_default_nights(monkeypatch):
    store = FakeStore()
    store.install(monkeypatch)
    session = DummySession()

    response = await bookings_service.create_booking(_request(date(2024, 6, 1), date(2024, 6, 4)), GUEST, session)

    assert session.begin_calls == 1
    assert response.booking.total_price == Decimal("300.00")
    assert response.booking.status is BookingStatus.CONFIRMED
    assert response.booking.user_id == "guest-1"
    assert response.nights == 3
    assert store.held_nights(response.booking.id) == [date(2024, 6, 1), date(2024, 6, 2), date(2024, 6, 3)]


@pytest.mark.asyncio
async def test_create_booking_applies_price_override(monkeypatch):
    store = FakeStore(overrides=[_override(date(2024, 6, 2), price=Decimal("150.00"))])
    store.install(monkeypatch)

    response = await bookings_service.create_booking(
        _request(date(2024, 6, 1), date(2024, 6, 4)), GUEST, DummySession()
    )

    assert response.booking.total_price == Decimal("350.00")
    assert [rate.overridden for rate in response.nightly] == [False, True, False]


@pytest.mark.asyncio
async def test_overlapping_request_conflicts_but_check_out_day_is_free(monkeypatch):
    store = FakeStore()
    store.install(monkeypatch)

    first = await bookings_service.create_booking(_request(date(2024, 6, 1), date(2024, 6, 5)), GUEST, DummySession())

    with pytest.raises(ConflictError):
        await bookings_service.create_booking(_request(date(2024, 6, 4), date(2024, 6, 7)), OTHER_GUEST, DummySession())

    second = await bookings_service.create_booking(
        _request(date(2024, 6, 5), date(2024, 6, 7)), OTHER_GUEST, DummySession()
    )

    assert len(store.active()) == 2
    assert store.held_nights(first.booking.id)[-1] == date(2024, 6, 4)
    assert store.held_nights(second.booking.id) == [date(2024, 6, 5), date(2024, 6, 6)]


@pytest.mark.asyncio
async def test_create_booking_rejects_zero_nights(monkeypatch):
    store = FakeStore()
    store.install(monkeypatch)

    with pytest.raises(ValidationError):
        await bookings_service.create_booking(_request(date(2024, 6, 1), date(2024, 6, 1)), GUEST, DummySession())
    assert store.bookings == []


@pytest.mark.asyncio
async def test_create_booking_rejects_too_many_guests(monkeypatch):
    store = FakeStore(max_occupancy=2)
    store.install(monkeypatch)

    with pytest.raises(ValidationError):
        await bookings_service.create_booking(
            _request(date(2024, 6, 1), date(2024, 6, 3), guests=3), GUEST, DummySession()
        )
    assert store.bookings == []


@pytest.mark.asyncio
async def test_create_booking_unknown_room(monkeypatch):
    store = FakeStore()
    store.install(monkeypatch)
    payload = schemas.CreateBookingRequest(room_id="missing", check_in=date(2024, 6, 1), check_out=date(2024, 6, 2))

    with pytest.raises(NotFoundError):
        await bookings_service.create_booking(payload, GUEST, DummySession())


@pytest.mark.asyncio
async def test_create_booking_rejects_blocked_night(monkeypatch):
    store = FakeStore(overrides=[_override(date(2024, 6, 3), status=AvailabilityStatus.MAINTENANCE)])
    store.install(monkeypatch)

    with pytest.raises(ConflictError) as excinfo:
        await bookings_service.create_booking(_request(date(2024, 6, 1), date(2024, 6, 5)), GUEST, DummySession())

    assert "2024-06-03" in excinfo.value.detail
    assert store.bookings == []


@pytest.mark.asyncio
async def test_blocked_check_out_date_does_not_prevent_booking(monkeypatch):
    store = FakeStore(overrides=[_override(date(2024, 6, 5), status=AvailabilityStatus.BLOCKED)])
    store.install(monkeypatch)

    response = await bookings_service.create_booking(
        _request(date(2024, 6, 1), date(2024, 6, 5)), GUEST, DummySession()
    )

    assert response.nights == 4


@pytest.mark.asyncio
async def test_night_collision_on_insert_maps_to_conflict(monkeypatch):
    store = FakeStore()
    store.install(monkeypatch)
    store.nights[("room-1", date(2024, 6, 2))] = "booking-from-another-worker"

    with pytest.raises(ConflictError):
        await bookings_service.create_booking(_request(date(2024, 6, 1), date(2024, 6, 3)), GUEST, DummySession())


def _constraint_violation(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO bookings", {}, Exception(message))


@pytest.mark.asyncio
async def test_missing_guest_account_maps_to_not_found(monkeypatch):
    store = FakeStore()
    store.install(monkeypatch)

    async def reject_guest(session, **fields):
        raise _constraint_violation(
            'insert or update on table "bookings" violates foreign key constraint "fk_bookings_user_id_users"'
        )

    monkeypatch.setattr(bookings_repo, "create_booking", reject_guest)

    with pytest.raises(NotFoundError) as excinfo:
        await bookings_service.create_booking(_request(date(2024, 6, 1), date(2024, 6, 3)), GUEST, DummySession())

    assert excinfo.value.detail == "Guest account not found"


@pytest.mark.asyncio
async def test_other_constraint_violation_is_not_reported_as_taken_dates(monkeypatch):
    store = FakeStore()
    store.install(monkeypatch)

    async def reject_row(session, **fields):
        raise _constraint_violation(
            'new row for relation "bookings" violates check constraint "ck_bookings_date_order"'
        )

    monkeypatch.setattr(bookings_repo, "create_booking", reject_row)

    with pytest.raises(PersistenceError):
        await bookings_service.create_booking(_request(date(2024, 6, 1), date(2024, 6, 3)), GUEST, DummySession())


@pytest.mark.asyncio
async def test_inactive_property_rejects_new_bookings(monkeypatch):
    store = FakeStore()
    store.install(monkeypatch)
    store.property.status = PropertyStatus.INACTIVE

    with pytest.raises(ValidationError):
        await bookings_service.create_booking(_request(date(2024, 6, 1), date(2024, 6, 3)), GUEST, DummySession())

    assert store.bookings == []
    assert store.nights == {}


@pytest.mark.asyncio
async def test_concurrent_requests_for_same_nights_only_one_succeeds(monkeypatch):
    store = FakeStore()
    store.install(monkeypatch)

    results = await asyncio.gather(
        bookings_service.create_booking(_request(date(2024, 6, 1), date(2024, 6, 4)), GUEST, DummySession()),
        bookings_service.create_booking(_request(date(2024, 6, 2), date(2024, 6, 5)), OTHER_GUEST, DummySession()),
        return_exceptions=True,
    )

    successes = [result for result in results if isinstance(result, schemas.BookingResponse)]
    conflicts = [result for result in results if isinstance(result, ConflictError)]
    assert len(successes) == 1
    assert len(conflicts) == 1
    assert store.create_calls == 1
    assert len(set(store.nights.values())) == 1


@pytest.mark.asyncio
async def test_concurrent_requests_for_disjoint_nights_both_succeed(monkeypatch):
    store = FakeStore()
    store.install(monkeypatch)

    results = await asyncio.gather(
        bookings_service.create_booking(_request(date(2024, 6, 1), date(2024, 6, 3)), GUEST, DummySession()),
        bookings_service.create_booking(_request(date(2024, 6, 3), date(2024, 6, 5)), OTHER_GUEST, DummySession()),
    )

    assert {result.booking.total_price for result in results} == {Decimal("200.00")}
    assert len(store.nights) == 4


@pytest.mark.asyncio
async def test_update_dates_releases_old_nights_and_reprices(monkeypatch):
    store = FakeStore(overrides=[_override(date(2024, 6, 5), price=Decimal("130.00"))])
    store.install(monkeypatch)
    created = await bookings_service.create_booking(
        _request(date(2024, 6, 1), date(2024, 6, 4)), GUEST, DummySession()
    )

    payload = schemas.UpdateBookingRequest(check_in=date(2024, 6, 3), check_out=date(2024, 6, 6))
    response = await bookings_service.update_booking(created.booking.id, payload, GUEST, DummySession())

    assert response.booking.check_in == date(2024, 6, 3)
    assert response.booking.check_out == date(2024, 6, 6)
    assert response.booking.total_price == Decimal("330.00")
    assert store.held_nights(created.booking.id) == [date(2024, 6, 3), date(2024, 6, 4), date(2024, 6, 5)]


@pytest.mark.asyncio
async def test_update_into_another_booking_conflicts_and_keeps_state(monkeypatch):
    store = FakeStore()
    store.install(monkeypatch)
    mine = await bookings_service.create_booking(_request(date(2024, 6, 1), date(2024, 6, 3)), GUEST, DummySession())
    await bookings_service.create_booking(_request(date(2024, 6, 5), date(2024, 6, 8)), OTHER_GUEST, DummySession())

    payload = schemas.UpdateBookingRequest(check_out=date(2024, 6, 6))
    with pytest.raises(ConflictError):
        await bookings_service.update_booking(mine.booking.id, payload, GUEST, DummySession())

    assert store.held_nights(mine.booking.id) == [date(2024, 6, 1), date(2024, 6, 2)]
    assert store.bookings[0].check_out == date(2024, 6, 3)


@pytest.mark.asyncio
async def test_update_guest_count_keeps_price_from_booking_time(monkeypatch):
    store = FakeStore(overrides=[_override(date(2024, 6, 2), price=Decimal("150.00"))])
    store.install(monkeypatch)
    created = await bookings_service.create_booking(
        _request(date(2024, 6, 1), date(2024, 6, 4)), GUEST, DummySession()
    )
    store.overrides[date(2024, 6, 2)].price = Decimal("200.00")

    payload = schemas.UpdateBookingRequest(number_of_guests=2, special_requests="Late arrival")
    response = await bookings_service.update_booking(created.booking.id, payload, GUEST, DummySession())

    assert response.booking.total_price == Decimal("350.00")
    assert response.booking.number_of_guests == 2
    assert response.booking.special_requests == "Late arrival"

    day_map = availability_service.build_availability_map(
        date(2024, 6, 1),
        date(2024, 6, 4),
        default_price=store.room.price_per_night,
        overrides=store.overrides.values(),
        bookings=store.active(),
    )
    assert day_map["2024-06-02"].status is AvailabilityStatus.OCCUPIED
    assert day_map["2024-06-02"].price == Decimal("200.00")


@pytest.mark.asyncio
async def test_update_by_stranger_is_forbidden_and_missing_is_not_found(monkeypatch):
    store = FakeStore()
    store.install(monkeypatch)
    created = await bookings_service.create_booking(_request(date(2024, 6, 1), date(2024, 6, 3)), GUEST, DummySession())
    payload = schemas.UpdateBookingRequest(number_of_guests=2)

    with pytest.raises(AuthorizationError):
        await bookings_service.update_booking(created.booking.id, payload, OTHER_GUEST, DummySession())
    with pytest.raises(NotFoundError):
        await bookings_service.update_booking("missing", payload, GUEST, DummySession())

    hosted = await bookings_service.update_booking(created.booking.id, payload, HOST, DummySession())
    assert hosted.booking.number_of_guests == 2


@pytest.mark.asyncio
async def test_update_maps_database_failure_on_first_load(monkeypatch):
    store = FakeStore()
    store.install(monkeypatch)

    async def broken_scope(session, booking_id, *, for_update=False):
        raise OperationalError("SELECT bookings", {}, Exception("connection reset"))

    monkeypatch.setattr(bookings_repo, "get_scope", broken_scope)

    with pytest.raises(PersistenceError):
        await bookings_service.update_booking(
            "booking-1", schemas.UpdateBookingRequest(number_of_guests=2), GUEST, DummySession()
        )


@pytest.mark.asyncio
async def test_cancel_frees_nights_and_override_shows_again(monkeypatch):
    store = FakeStore(overrides=[_override(date(2024, 6, 2), price=Decimal("150.00"))])
    store.install(monkeypatch)
    created = await bookings_service.create_booking(
        _request(date(2024, 6, 1), date(2024, 6, 4)), GUEST, DummySession()
    )

    response = await bookings_service.cancel_booking(created.booking.id, GUEST, DummySession())

    assert response.booking.status is BookingStatus.CANCELLED
    assert response.booking.total_price == Decimal("350.00")
    assert store.nights == {}
    assert len(store.bookings) == 1

    day_map = availability_service.build_availability_map(
        date(2024, 6, 1),
        date(2024, 6, 3),
        default_price=store.room.price_per_night,
        overrides=store.overrides.values(),
        bookings=store.active(),
    )
    assert day_map["2024-06-01"].status is AvailabilityStatus.BLOCKED
    assert day_map["2024-06-02"].status is AvailabilityStatus.AVAILABLE
    assert day_map["2024-06-02"].price == Decimal("150.00")

    rebooked = await bookings_service.create_booking(
        _request(date(2024, 6, 1), date(2024, 6, 4)), OTHER_GUEST, DummySession()
    )
    assert rebooked.booking.total_price == Decimal("350.00")


@pytest.mark.asyncio
async def test_cancel_twice_and_update_cancelled_are_rejected(monkeypatch):
    store = FakeStore()
    store.install(monkeypatch)
    created = await bookings_service.create_booking(_request(date(2024, 6, 1), date(2024, 6, 3)), GUEST, DummySession())
    await bookings_service.cancel_booking(created.booking.id, GUEST, DummySession())

    with pytest.raises(ValidationError):
        await bookings_service.cancel_booking(created.booking.id, GUEST, DummySession())
    with pytest.raises(ValidationError):
        await bookings_service.update_booking(
            created.booking.id, schemas.UpdateBookingRequest(number_of_guests=2), GUEST, DummySession()
        )


@pytest.mark.asyncio
async def test_host_status_transitions(monkeypatch):
    monkeypatch.setattr(bookings_service.settings, "booking_initial_status", "pending")
    store = FakeStore()
    store.install(monkeypatch)
    created = await bookings_service.create_booking(_request(date(2024, 6, 1), date(2024, 6, 3)), GUEST, DummySession())
    assert created.booking.status is BookingStatus.PENDING

    with pytest.raises(AuthorizationError):
        await bookings_service.set_booking_status(
            created.booking.id, schemas.BookingStatusRequest(status=BookingStatus.CONFIRMED), GUEST, DummySession()
        )

    confirmed = await bookings_service.set_booking_status(
        created.booking.id, schemas.BookingStatusRequest(status=BookingStatus.CONFIRMED), HOST, DummySession()
    )
    assert confirmed.booking.status is BookingStatus.CONFIRMED

    with pytest.raises(ValidationError):
        await bookings_service.set_booking_status(
            created.booking.id, schemas.BookingStatusRequest(status=BookingStatus.PENDING), ADMIN, DummySession()
        )

    cancelled = await bookings_service.set_booking_status(
        created.booking.id, schemas.BookingStatusRequest(status=BookingStatus.CANCELLED), ADMIN, DummySession()
    )
    assert cancelled.booking.status is BookingStatus.CANCELLED
    assert store.nights == {}
