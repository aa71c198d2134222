"""Service-level tests for properties, accounts, maintenance, messaging and finance helpers."""
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.actor import Actor
from app.core.errors import AuthorizationError, ConflictError, NotFoundError, PersistenceError, ValidationError
from app.models.maintenance import TaskPriority, TaskStatus
from app.models.property import PropertyStatus
from app.models.transaction import TransactionStatus, TransactionType
from app.models.user import UserRole
from app.repositories import analytics as analytics_repo
from app.repositories import bookings as bookings_repo
from app.repositories import maintenance as maintenance_repo
from app.repositories import messages as messages_repo
from app.repositories import properties as properties_repo
from app.repositories import transactions as transactions_repo
from app.repositories import users as users_repo
from app.schemas import owner as schemas
from app.schemas import properties as properties_schema
from app.schemas import users as users_schema
from app.services import finances as finances_service
from app.services import maintenance as maintenance_service
from app.services import messages as messages_service
from app.services import properties as properties_service
from app.services import users as users_service


class DummySession:
    """Minimal session stub supporting async transaction context."""

    def __init__(self) -> None:
        self.added: list[object] = []

    def add(self, obj: object) -> None:
        self.added.append(obj)

    def begin(self):  # noqa: D401 - mimic SQLAlchemy's async begin
        session = self

        class _Tx:
            async def __aenter__(self_inner):
                return session

            async def __aexit__(self_inner, exc_type, exc, tb):
                return False

        return _Tx()


HOST = Actor(user_id="host-1", role=UserRole.HOST)
GUEST = Actor(user_id="guest-1")
PROPERTY = SimpleNamespace(id="prop-1", host_id="host-1")


def _task(**overrides):
    fields = dict(
        id="task-1",
        property_id="prop-1",
        room_id=None,
        title="Fix shower",
        description=None,
        priority=TaskPriority.HIGH,
        status=TaskStatus.PENDING,
        assigned_to=None,
        due_date=None,
        completed_at=None,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def _scope(guest_id="guest-1", property_id="prop-1"):
    booking = SimpleNamespace(id="booking-1", user_id=guest_id)
    return bookings_repo.BookingScope(booking=booking, room_id="room-1", property_id=property_id, host_id="host-1")


@pytest.mark.asyncio
async def test_completing_task_stamps_completion_time(monkeypatch):
    task = _task()
    monkeypatch.setattr(maintenance_repo, "get_by_id", AsyncMock(return_value=task))
    monkeypatch.setattr(properties_repo, "get_property", AsyncMock(return_value=PROPERTY))

    done = await maintenance_service.update_task_status(
        "task-1", schemas.TaskStatusRequest(status=TaskStatus.COMPLETED), HOST, DummySession()
    )
    assert done.status is TaskStatus.COMPLETED
    assert done.completed_at is not None

    reopened = await maintenance_service.update_task_status(
        "task-1", schemas.TaskStatusRequest(status=TaskStatus.IN_PROGRESS), HOST, DummySession()
    )
    assert reopened.completed_at is None


@pytest.mark.asyncio
async def test_task_room_must_belong_to_property(monkeypatch):
    create = AsyncMock()
    monkeypatch.setattr(properties_repo, "get_property", AsyncMock(return_value=PROPERTY))
    monkeypatch.setattr(properties_repo, "get_room_in_property", AsyncMock(return_value=None))
    monkeypatch.setattr(maintenance_repo, "create_task", create)

    payload = schemas.CreateTaskRequest(title="Paint", room_id="room-9")
    with pytest.raises(NotFoundError):
        await maintenance_service.create_task("prop-1", payload, HOST, DummySession())
    create.assert_not_awaited()


@pytest.mark.asyncio
async def test_guest_cannot_manage_tasks(monkeypatch):
    monkeypatch.setattr(properties_repo, "get_property", AsyncMock(return_value=PROPERTY))

    with pytest.raises(AuthorizationError):
        await maintenance_service.list_tasks("prop-1", GUEST, AsyncMock())


@pytest.mark.asyncio
async def test_message_goes_to_the_other_party(monkeypatch):
    create = AsyncMock(
        side_effect=lambda session, **fields: SimpleNamespace(
            id="msg-1", is_read=False, created_at=datetime(2024, 6, 1, tzinfo=timezone.utc), **fields
        )
    )
    monkeypatch.setattr(bookings_repo, "get_scope", AsyncMock(return_value=_scope()))
    monkeypatch.setattr(messages_repo, "create_message", create)

    from_guest = await messages_service.send_message(
        "booking-1", schemas.SendMessageRequest(body="What time is check-in?"), GUEST, DummySession()
    )
    from_host = await messages_service.send_message(
        "booking-1", schemas.SendMessageRequest(body="From 3pm."), HOST, DummySession()
    )

    assert from_guest.receiver_id == "host-1"
    assert from_host.receiver_id == "guest-1"


@pytest.mark.asyncio
async def test_outsider_cannot_read_messages(monkeypatch):
    monkeypatch.setattr(bookings_repo, "get_scope", AsyncMock(return_value=_scope()))

    with pytest.raises(AuthorizationError):
        await messages_service.list_messages("booking-1", Actor(user_id="someone-else"), AsyncMock())


@pytest.mark.asyncio
async def test_transaction_booking_must_match_property(monkeypatch):
    create = AsyncMock()
    monkeypatch.setattr(properties_repo, "get_property", AsyncMock(return_value=PROPERTY))
    monkeypatch.setattr(bookings_repo, "get_scope", AsyncMock(return_value=_scope(property_id="prop-2")))
    monkeypatch.setattr(transactions_repo, "create_transaction", create)

    payload = schemas.CreateTransactionRequest(
        property_id="prop-1", booking_id="booking-1", amount=Decimal("350.00"), type=TransactionType.PAYMENT
    )
    with pytest.raises(NotFoundError):
        await finances_service.create_transaction(payload, HOST, DummySession())
    create.assert_not_awaited()


@pytest.mark.asyncio
async def test_transaction_status_update(monkeypatch):
    row = SimpleNamespace(
        id="tx-1",
        property_id="prop-1",
        booking_id=None,
        amount=Decimal("80.00"),
        type=TransactionType.EXPENSE,
        status=TransactionStatus.PENDING,
        description="Cleaning",
        transaction_date=None,
    )
    monkeypatch.setattr(transactions_repo, "get_by_id", AsyncMock(return_value=row))
    monkeypatch.setattr(properties_repo, "get_property", AsyncMock(return_value=PROPERTY))

    response = await finances_service.update_transaction_status(
        "tx-1", schemas.TransactionStatusRequest(status=TransactionStatus.COMPLETED), HOST, DummySession()
    )

    assert response.status is TransactionStatus.COMPLETED


@pytest.mark.asyncio
async def test_property_analytics(monkeypatch):
    totals = AsyncMock(
        return_value=analytics_repo.BookingTotals(total=3, confirmed=2, cancelled=1, revenue=Decimal("650.00"))
    )
    monkeypatch.setattr(properties_repo, "get_property", AsyncMock(return_value=PROPERTY))
    monkeypatch.setattr(analytics_repo, "booking_totals", totals)
    monkeypatch.setattr(analytics_repo, "occupied_nights", AsyncMock(return_value=6))
    monkeypatch.setattr(analytics_repo, "room_count", AsyncMock(return_value=2))

    response = await finances_service.property_analytics(
        "prop-1", "7days", HOST, AsyncMock(), as_of=date(2024, 6, 30)
    )

    assert totals.await_args.kwargs["start_date"] == date(2024, 6, 24)
    assert totals.await_args.kwargs["end_date"] == date(2024, 7, 1)
    assert response.total_bookings == 3
    assert response.total_revenue == Decimal("650.00")
    assert response.average_booking_value == Decimal("325.00")
    assert response.occupancy_rate == pytest.approx(0.4286)


@pytest.mark.asyncio
async def test_property_analytics_rejects_unknown_period():
    with pytest.raises(ValidationError):
        await finances_service.property_analytics("prop-1", "1year", HOST, AsyncMock())


@pytest.mark.asyncio
async def test_guest_cannot_create_property():
    payload = properties_schema.CreatePropertyRequest(name="Cabin", address="1 Lake Rd", city="Oslo", country="NO")

    with pytest.raises(AuthorizationError):
        await properties_service.create_property(payload, GUEST, DummySession())


@pytest.mark.asyncio
async def test_room_with_active_bookings_cannot_be_deleted(monkeypatch):
    delete = AsyncMock()
    monkeypatch.setattr(properties_repo, "get_property", AsyncMock(return_value=PROPERTY))
    monkeypatch.setattr(
        properties_repo, "get_room_in_property", AsyncMock(return_value=SimpleNamespace(id="room-1"))
    )
    monkeypatch.setattr(bookings_repo, "count_active_for_room", AsyncMock(return_value=1))
    monkeypatch.setattr(properties_repo, "delete_room", delete)

    with pytest.raises(ConflictError):
        await properties_service.delete_room("prop-1", "room-1", HOST, DummySession())
    delete.assert_not_awaited()


ADMIN = Actor(user_id="admin-1", role=UserRole.ADMIN)


def _property(**overrides):
    fields = dict(
        id="prop-1",
        host_id="host-1",
        name="Harbour House",
        address="14 Quay Street",
        city="Lisbon",
        country="PT",
        status=PropertyStatus.ACTIVE,
        policies_json={},
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


@pytest.mark.asyncio
async def test_create_property_maps_missing_host_and_database_failures(monkeypatch):
    payload = properties_schema.CreatePropertyRequest(name="Cabin", address="1 Lake Rd", city="Oslo")
    monkeypatch.setattr(
        properties_repo,
        "create_property",
        AsyncMock(
            side_effect=IntegrityError(
                "INSERT INTO properties",
                {},
                Exception('violates foreign key constraint "fk_properties_host_id_users"'),
            )
        ),
    )
    with pytest.raises(NotFoundError):
        await properties_service.create_property(payload, HOST, DummySession())

    monkeypatch.setattr(
        properties_repo,
        "create_property",
        AsyncMock(side_effect=OperationalError("INSERT INTO properties", {}, Exception("server closed"))),
    )
    with pytest.raises(PersistenceError):
        await properties_service.create_property(payload, HOST, DummySession())


@pytest.mark.asyncio
async def test_update_property_replaces_fields_for_host_only(monkeypatch):
    prop = _property()
    monkeypatch.setattr(properties_repo, "get_property", AsyncMock(return_value=prop))
    payload = properties_schema.UpdatePropertyRequest(
        name="Harbour Loft",
        address="16 Quay Street",
        city="Porto",
        policies=properties_schema.PropertyPolicies(house_rules=["No parties"]),
    )

    with pytest.raises(AuthorizationError):
        await properties_service.update_property("prop-1", payload, GUEST, DummySession())

    response = await properties_service.update_property("prop-1", payload, HOST, DummySession())

    assert response.name == "Harbour Loft"
    assert response.city == "Porto"
    assert response.country is None
    assert prop.policies_json["house_rules"] == ["No parties"]


@pytest.mark.asyncio
async def test_set_property_status_and_missing_property(monkeypatch):
    prop = _property()
    monkeypatch.setattr(properties_repo, "get_property", AsyncMock(return_value=prop))

    response = await properties_service.set_property_status(
        "prop-1", properties_schema.PropertyStatusRequest(status=PropertyStatus.INACTIVE), ADMIN, DummySession()
    )

    assert response.status is PropertyStatus.INACTIVE
    assert prop.status is PropertyStatus.INACTIVE

    monkeypatch.setattr(properties_repo, "get_property", AsyncMock(return_value=None))
    with pytest.raises(NotFoundError):
        await properties_service.set_property_status(
            "prop-9", properties_schema.PropertyStatusRequest(status=PropertyStatus.ACTIVE), HOST, DummySession()
        )


@pytest.mark.asyncio
async def test_property_with_active_bookings_cannot_be_deleted(monkeypatch):
    delete = AsyncMock()
    monkeypatch.setattr(properties_repo, "get_property", AsyncMock(return_value=_property()))
    monkeypatch.setattr(bookings_repo, "count_active_for_property", AsyncMock(return_value=2))
    monkeypatch.setattr(properties_repo, "delete_property", delete)

    with pytest.raises(ConflictError):
        await properties_service.delete_property("prop-1", HOST, DummySession())
    delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_property_delete_with_history_is_conflict(monkeypatch):
    monkeypatch.setattr(properties_repo, "get_property", AsyncMock(return_value=_property()))
    monkeypatch.setattr(bookings_repo, "count_active_for_property", AsyncMock(return_value=0))
    monkeypatch.setattr(
        properties_repo,
        "delete_property",
        AsyncMock(side_effect=IntegrityError("DELETE FROM properties", {}, Exception("restrict"))),
    )

    with pytest.raises(ConflictError):
        await properties_service.delete_property("prop-1", HOST, DummySession())


@pytest.mark.asyncio
async def test_search_properties_hides_inactive_unless_asked(monkeypatch):
    search = AsyncMock(return_value=[_property()])
    monkeypatch.setattr(properties_repo, "search_properties", search)

    await properties_service.search_properties(AsyncMock(), city="Lisbon")
    assert search.await_args.kwargs["status"] is PropertyStatus.ACTIVE

    await properties_service.search_properties(AsyncMock(), include_inactive=True)
    assert search.await_args.kwargs["status"] is None


@pytest.mark.asyncio
async def test_register_user_rejects_taken_email(monkeypatch):
    existing = SimpleNamespace(id="user-1", email="sam@example.com")
    create = AsyncMock()
    monkeypatch.setattr(users_repo, "get_by_email", AsyncMock(return_value=existing))
    monkeypatch.setattr(users_repo, "create_user", create)

    with pytest.raises(ConflictError) as excinfo:
        await users_service.register_user(
            users_schema.RegisterUserRequest(email="Sam@example.com"), DummySession()
        )

    assert excinfo.value.code == "email_taken"
    create.assert_not_awaited()


@pytest.mark.asyncio
async def test_only_admins_list_users_or_change_roles(monkeypatch):
    target = SimpleNamespace(
        id="user-2", email="h@example.com", first_name=None, last_name=None, role=UserRole.GUEST, created_at=None
    )
    monkeypatch.setattr(users_repo, "list_users", AsyncMock(return_value=[target]))
    monkeypatch.setattr(users_repo, "get_user", AsyncMock(return_value=target))
    promote = users_schema.UserRoleRequest(role=UserRole.HOST)

    with pytest.raises(AuthorizationError):
        await users_service.list_users(HOST, AsyncMock())
    with pytest.raises(AuthorizationError):
        await users_service.set_role("user-2", promote, HOST, DummySession())

    listed = await users_service.list_users(ADMIN, AsyncMock())
    updated = await users_service.set_role("user-2", promote, ADMIN, DummySession())

    assert [user.id for user in listed.items] == ["user-2"]
    assert updated.role is UserRole.HOST
    assert target.role is UserRole.HOST
    with pytest.raises(ValidationError):
        await users_service.set_role("admin-1", promote, ADMIN, DummySession())
