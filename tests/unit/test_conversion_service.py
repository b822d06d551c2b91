"""Unit tests for ConversionService."""

from datetime import date, datetime, time
from decimal import Decimal
from unittest.mock import MagicMock, Mock

import pytest
from psycopg2 import errors as pg_errors

from fulfillment.conversion import ConversionService
from fulfillment.conversion.queries import INSERT_BOOKING
from fulfillment.directory import Provider, ProviderDirectory
from fulfillment.lifecycle import StatusTransitionRecord
from fulfillment.shared import (
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ProviderUnavailableError,
    ValidationError,
)

REQUEST_COLUMNS = [
    "id",
    "status",
    "client_user_id",
    "client_name",
    "client_email",
    "client_phone",
    "service_type",
    "location",
    "preferred_date",
    "preferred_time",
]

BOOKING_COLUMNS = [
    "id",
    "request_id",
    "provider_id",
    "service_id",
    "service_type",
    "location",
    "scheduled_date",
    "scheduled_time",
    "price",
    "status",
    "created_by",
    "created_at",
]


def make_cursor(columns=None, rows=()):
    """Cursor returning ``rows`` one fetchone() at a time, then None."""
    cursor = MagicMock()
    cursor.description = [(name,) for name in columns or []]
    cursor.fetchone.side_effect = list(rows) + [None] * 5
    return cursor


def request_row(status="new"):
    return (
        "req-1",
        status,
        "client-user-1",
        "Claire Dubois",
        "claire@example.com",
        "+33611111111",
        "menage",
        "Paris 15e",
        date(2026, 3, 2),
        time(9, 30),
    )


def booking_row(booking_id="booking-1", price=Decimal("50.00")):
    return (
        booking_id,
        "req-1",
        "provider-a",
        "service-x",
        "menage",
        "Paris 15e",
        date(2026, 3, 2),
        time(9, 30),
        price,
        "confirmed",
        "admin-1",
        datetime(2026, 2, 20, 8, 0),
    )


def system_path_records():
    return [
        StatusTransitionRecord("req-1", "request", "new", "processing", "admin-1"),
        StatusTransitionRecord("req-1", "request", "processing", "assigned", "admin-1"),
        StatusTransitionRecord("req-1", "request", "assigned", "converted", "admin-1"),
    ]


@pytest.fixture
def directory():
    directory = Mock()
    directory.get_provider_service.return_value = {
        "service_id": "service-x",
        "provider_id": "provider-a",
        "service_type": "menage",
        "hourly_rate": Decimal("25.00"),
        "is_active": True,
    }
    directory.get_provider.return_value = Provider(
        id="provider-a",
        business_name="Clean Paris",
        email="contact@cleanparis.example",
        phone="+33622222222",
        user_id="provider-user-1",
    )
    return directory


@pytest.fixture
def status_service():
    status_service = Mock()
    status_service.advance_via_system_path.return_value = system_path_records()
    return status_service


@pytest.fixture
def notifier():
    return Mock()


@pytest.fixture
def database():
    db = Mock()
    db.get_cursor.return_value.__enter__ = Mock()
    db.get_cursor.return_value.__exit__ = Mock(return_value=False)
    db.transaction.return_value.__enter__ = Mock()
    db.transaction.return_value.__exit__ = Mock(return_value=False)
    return db


def with_read_cursors(db, *cursors):
    db.get_cursor.return_value.__enter__.side_effect = list(cursors)


def with_transaction_cursor(db, cursor):
    db.transaction.return_value.__enter__.return_value = cursor
    return cursor


@pytest.fixture
def service(database, directory, status_service, notifier):
    return ConversionService(
        database=database,
        directory=directory,
        status_service=status_service,
        notifier=notifier,
        default_estimated_hours=2.0,
    )


class TestConvert:
    def test_init_requires_database(self):
        with pytest.raises(ValueError, match="Database is required"):
            ConversionService(database=None)

    def test_creates_booking_and_converts_request(self, service, database, status_service):
        with_read_cursors(
            database,
            make_cursor(REQUEST_COLUMNS, [request_row("new")]),
            make_cursor(BOOKING_COLUMNS, []),
        )
        tx_cursor = with_transaction_cursor(
            database, make_cursor(BOOKING_COLUMNS, [("req-1", "new"), booking_row()])
        )

        result = service.convert("req-1", "provider-a", "service-x", "admin-1")

        assert result.created is True
        assert result.booking.id == "booking-1"
        assert result.booking.price == 50.0

        insert_params = [c.args[1] for c in tx_cursor.execute.call_args_list if c.args[0] == INSERT_BOOKING][0]
        assert insert_params == (
            "req-1",
            "provider-a",
            "service-x",
            "menage",
            "Paris 15e",
            date(2026, 3, 2),
            time(9, 30),
            50.0,
            "confirmed",
            "admin-1",
        )
        status_service.advance_via_system_path.assert_called_once_with(
            tx_cursor,
            "req-1",
            "request",
            "converted",
            "admin-1",
            comment="Converted to booking booking-1",
        )
        assert status_service.run_side_effects.call_count == 3

    def test_notifies_client_and_provider(self, service, database, notifier):
        with_read_cursors(
            database,
            make_cursor(REQUEST_COLUMNS, [request_row("assigned")]),
            make_cursor(BOOKING_COLUMNS, []),
        )
        with_transaction_cursor(
            database, make_cursor(BOOKING_COLUMNS, [("req-1", "assigned"), booking_row()])
        )

        service.convert("req-1", "provider-a", "service-x", "admin-1")

        templates = [c.args[0] for c in notifier.notify_async.call_args_list]
        assert templates == ["booking_confirmation", "provider_new_mission"]

        client_recipient, client_data = notifier.notify_async.call_args_list[0].args[1:]
        assert client_recipient["id"] == "client-user-1"
        assert client_data["service_name"] == "menage"
        assert client_data["booking_date"] == "2026-03-02"
        assert client_data["start_time"] == "09:30"
        assert client_data["provider_name"] == "Clean Paris"

        provider_recipient, provider_data = notifier.notify_async.call_args_list[1].args[1:]
        assert provider_recipient["id"] == "provider-user-1"
        assert provider_data["booking_id"] == "booking-1"

    def test_estimated_hours_prices_booking(self, service, database):
        with_read_cursors(
            database,
            make_cursor(REQUEST_COLUMNS, [request_row("new")]),
            make_cursor(BOOKING_COLUMNS, []),
        )
        tx_cursor = with_transaction_cursor(
            database,
            make_cursor(BOOKING_COLUMNS, [("req-1", "new"), booking_row(price=Decimal("87.50"))]),
        )

        service.convert("req-1", "provider-a", "service-x", "admin-1", estimated_hours=3.5)

        insert_params = [c.args[1] for c in tx_cursor.execute.call_args_list if c.args[0] == INSERT_BOOKING][0]
        assert insert_params[7] == 87.5

    def test_second_convert_returns_first_booking(self, service, database, notifier):
        """Converting twice yields one booking; the replay returns it."""
        with_read_cursors(
            database,
            make_cursor(REQUEST_COLUMNS, [request_row("new")]),
            make_cursor(BOOKING_COLUMNS, []),
            make_cursor(REQUEST_COLUMNS, [request_row("converted")]),
            make_cursor(BOOKING_COLUMNS, [booking_row()]),
        )
        tx_cursor = with_transaction_cursor(
            database, make_cursor(BOOKING_COLUMNS, [("req-1", "new"), booking_row()])
        )

        first = service.convert("req-1", "provider-a", "service-x", "admin-1")
        second = service.convert("req-1", "provider-a", "service-x", "admin-2")

        assert first.created is True
        assert second.created is False
        assert second.booking.id == first.booking.id
        assert database.transaction.call_count == 1
        inserts = [c for c in tx_cursor.execute.call_args_list if c.args[0] == INSERT_BOOKING]
        assert len(inserts) == 1
        assert notifier.notify_async.call_count == 2

    def test_existing_live_booking_short_circuits(self, service, database, notifier):
        with_read_cursors(
            database,
            make_cursor(REQUEST_COLUMNS, [request_row("assigned")]),
            make_cursor(BOOKING_COLUMNS, [booking_row("booking-existing")]),
        )

        result = service.convert("req-1", "provider-a", "service-x", "admin-1")

        assert result.created is False
        assert result.booking.id == "booking-existing"
        database.transaction.assert_not_called()
        notifier.notify_async.assert_not_called()

    def test_concurrent_conversion_returns_winning_booking(
        self, service, database, status_service, notifier
    ):
        with_read_cursors(
            database,
            make_cursor(REQUEST_COLUMNS, [request_row("new")]),
            make_cursor(BOOKING_COLUMNS, []),
            make_cursor(BOOKING_COLUMNS, [booking_row("booking-winner")]),
        )
        tx_cursor = with_transaction_cursor(database, make_cursor(BOOKING_COLUMNS, [("req-1", "new")]))

        def execute(query, params=None):
            if query == INSERT_BOOKING:
                raise pg_errors.UniqueViolation("duplicate key value violates unique constraint")

        tx_cursor.execute.side_effect = execute

        result = service.convert("req-1", "provider-a", "service-x", "admin-1")

        assert result.created is False
        assert result.booking.id == "booking-winner"
        status_service.advance_via_system_path.assert_not_called()
        status_service.run_side_effects.assert_not_called()
        notifier.notify_async.assert_not_called()

    def test_request_converted_while_waiting_for_lock(self, service, database):
        with_read_cursors(
            database,
            make_cursor(REQUEST_COLUMNS, [request_row("assigned")]),
            make_cursor(BOOKING_COLUMNS, []),
            make_cursor(BOOKING_COLUMNS, [booking_row("booking-other")]),
        )
        tx_cursor = with_transaction_cursor(
            database, make_cursor(BOOKING_COLUMNS, [("req-1", "converted")])
        )

        result = service.convert("req-1", "provider-a", "service-x", "admin-1")

        assert result.created is False
        assert result.booking.id == "booking-other"
        assert INSERT_BOOKING not in [c.args[0] for c in tx_cursor.execute.call_args_list]

    def test_failure_inside_transaction_rolls_back(self, service, database, status_service, notifier):
        with_read_cursors(
            database,
            make_cursor(REQUEST_COLUMNS, [request_row("new")]),
            make_cursor(BOOKING_COLUMNS, []),
        )
        with_transaction_cursor(
            database, make_cursor(BOOKING_COLUMNS, [("req-1", "new"), booking_row()])
        )
        status_service.advance_via_system_path.side_effect = InvalidTransitionError("no path")

        with pytest.raises(InvalidTransitionError):
            service.convert("req-1", "provider-a", "service-x", "admin-1")

        exit_args = database.transaction.return_value.__exit__.call_args.args
        assert exit_args[0] is InvalidTransitionError
        notifier.notify_async.assert_not_called()

    def test_notification_failure_does_not_fail_conversion(self, service, database, notifier):
        with_read_cursors(
            database,
            make_cursor(REQUEST_COLUMNS, [request_row("new")]),
            make_cursor(BOOKING_COLUMNS, []),
        )
        with_transaction_cursor(
            database, make_cursor(BOOKING_COLUMNS, [("req-1", "new"), booking_row()])
        )
        notifier.notify_async.side_effect = RuntimeError("pool shut down")

        result = service.convert("req-1", "provider-a", "service-x", "admin-1")

        assert result.created is True


class TestConvertErrors:
    def test_request_not_found(self, service, database):
        with_read_cursors(database, make_cursor(REQUEST_COLUMNS, []))

        with pytest.raises(NotFoundError, match="Request req-1 not found"):
            service.convert("req-1", "provider-a", "service-x", "admin-1")

    def test_malformed_request_id_is_not_found(self, service, database, directory):
        bad_cursor = make_cursor(REQUEST_COLUMNS)
        bad_cursor.execute.side_effect = pg_errors.InvalidTextRepresentation(
            'invalid input syntax for type uuid: "req1"'
        )
        with_read_cursors(database, bad_cursor)

        with pytest.raises(NotFoundError, match="Request req1 not found"):
            service.convert("req1", "provider-a", "service-x", "admin-1")

        directory.get_provider_service.assert_not_called()

    def test_malformed_provider_id_is_unavailable(self, database, status_service):
        bad_cursor = make_cursor()
        bad_cursor.execute.side_effect = pg_errors.InvalidTextRepresentation(
            'invalid input syntax for type uuid: "prov1"'
        )
        with_read_cursors(database, make_cursor(REQUEST_COLUMNS, [request_row("new")]), bad_cursor)
        service = ConversionService(
            database=database,
            directory=ProviderDirectory(database),
            status_service=status_service,
        )

        with pytest.raises(ProviderUnavailableError):
            service.convert("req-1", "prov1", "svc1", "admin-1")

        database.transaction.assert_not_called()

    @pytest.mark.parametrize("status", ["rejected", "cancelled", "on_hold"])
    def test_non_convertible_status(self, service, database, directory, status):
        with_read_cursors(database, make_cursor(REQUEST_COLUMNS, [request_row(status)]))

        with pytest.raises(InvalidStateError):
            service.convert("req-1", "provider-a", "service-x", "admin-1")

        directory.get_provider_service.assert_not_called()
        database.transaction.assert_not_called()

    def test_converted_without_live_booking_is_invalid_state(self, service, database):
        with_read_cursors(
            database,
            make_cursor(REQUEST_COLUMNS, [request_row("converted")]),
            make_cursor(BOOKING_COLUMNS, []),
        )

        with pytest.raises(InvalidStateError):
            service.convert("req-1", "provider-a", "service-x", "admin-1")

    def test_provider_without_service(self, service, database, directory):
        with_read_cursors(database, make_cursor(REQUEST_COLUMNS, [request_row("new")]))
        directory.get_provider_service.return_value = None

        with pytest.raises(ProviderUnavailableError):
            service.convert("req-1", "provider-a", "service-x", "admin-1")

        database.transaction.assert_not_called()

    def test_inactive_service(self, service, database, directory):
        with_read_cursors(database, make_cursor(REQUEST_COLUMNS, [request_row("new")]))
        directory.get_provider_service.return_value["is_active"] = False

        with pytest.raises(ProviderUnavailableError):
            service.convert("req-1", "provider-a", "service-x", "admin-1")

    @pytest.mark.parametrize(
        "args, kwargs, message",
        [
            (("", "provider-a", "service-x", "admin-1"), {}, "request_id is required"),
            (("req-1", "provider-a", "service-x", ""), {}, "actor is required"),
            (("req-1", "provider-a", "service-x", "admin-1"), {"estimated_hours": 0}, "must be > 0"),
            (
                ("req-1", "provider-a", "service-x", "admin-1"),
                {"estimated_hours": "two"},
                "must be a number",
            ),
        ],
    )
    def test_validation(self, service, database, args, kwargs, message):
        with pytest.raises(ValidationError, match=message):
            service.convert(*args, **kwargs)

        database.get_cursor.assert_not_called()
