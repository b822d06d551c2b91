"""Unit tests for the Flask API: routing, auth and error mapping."""

from datetime import date
from unittest.mock import Mock, patch

import psycopg2
import pytest
from flask_jwt_extended import create_access_token

from backend.app import create_app
from fulfillment.conversion import Booking, ConversionResult
from fulfillment.directory import Provider
from fulfillment.lifecycle import StatusTransitionRecord, TransitionResult
from fulfillment.matching import ProviderMatcher
from fulfillment.notifier import ChannelResult, DispatchResult
from fulfillment.shared import (
    InvalidTransitionError,
    NotFoundError,
    ProviderUnavailableError,
    ValidationError,
)


@pytest.fixture
def app():
    app = create_app()
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def auth_headers(app, roles=("admin",), identity="admin-1"):
    with app.app_context():
        token = create_access_token(identity=identity, additional_claims={"roles": list(roles)})
    return {"Authorization": f"Bearer {token}"}


def make_booking():
    return Booking(
        id="booking-1",
        request_id="req-1",
        provider_id="provider-a",
        service_id="service-x",
        service_type="menage",
        location="Paris 15e",
        scheduled_date=date(2026, 3, 2),
        scheduled_time=None,
        price=50.0,
        status="confirmed",
        created_by="admin-1",
    )


class TestMatching:
    def test_search_ranks_providers(self, app, client):
        directory = Mock()
        directory.query_providers.return_value = [
            Provider(
                id="provider-b",
                business_name="B",
                rating_average=4.0,
                hourly_rate_by_service={"menage": 28.0},
                active_service_types=frozenset({"menage"}),
            ),
            Provider(
                id="provider-a",
                business_name="A",
                rating_average=4.8,
                hourly_rate_by_service={"menage": 25.0},
                active_service_types=frozenset({"menage"}),
            ),
        ]

        with patch(
            "backend.blueprints.matching.get_provider_matcher",
            return_value=ProviderMatcher(directory=directory),
        ):
            response = client.post(
                "/api/matching/search",
                json={"serviceType": "menage", "minRating": 4, "maxPrice": 30},
                headers=auth_headers(app, roles=("client",)),
            )

        assert response.status_code == 200
        body = response.get_json()
        assert [c["provider_id"] for c in body["candidates"]] == ["provider-a", "provider-b"]
        assert body["quality"]["providers_found"] == 2
        directory.query_providers.assert_called_once_with("menage", area=None, active_only=True)

    def test_search_requires_service_type(self, app, client):
        with patch("backend.blueprints.matching.get_provider_matcher") as get_matcher:
            response = client.post(
                "/api/matching/search", json={"minRating": 4}, headers=auth_headers(app)
            )

        assert response.status_code == 400
        assert response.get_json()["error"] == "validation_error"
        get_matcher.return_value.search.assert_not_called()

    def test_search_requires_token(self, client):
        response = client.post("/api/matching/search", json={"serviceType": "menage"})

        assert response.status_code == 401
        assert response.get_json()["error"] == "unauthorized"


class TestLifecycle:
    def test_transition(self, app, client):
        service = Mock()
        service.transition.return_value = TransitionResult(
            entity_id="req-1",
            entity_type="request",
            status="processing",
            record=StatusTransitionRecord("req-1", "request", "new", "processing", "admin-1"),
        )

        with patch("backend.blueprints.lifecycle.get_status_service", return_value=service):
            response = client.post(
                "/api/lifecycle/request/req-1/transition",
                json={"status": "processing", "comment": "Picked up"},
                headers=auth_headers(app),
            )

        assert response.status_code == 200
        assert response.get_json()["status"] == "processing"
        assert response.get_json()["changed"] is True
        service.transition.assert_called_once_with(
            entity_id="req-1",
            entity_type="request",
            target="processing",
            actor="admin-1",
            comment="Picked up",
        )

    def test_transition_requires_operator_role(self, app, client):
        with patch("backend.blueprints.lifecycle.get_status_service") as get_service:
            response = client.post(
                "/api/lifecycle/request/req-1/transition",
                json={"status": "processing"},
                headers=auth_headers(app, roles=("client",), identity="client-1"),
            )

        assert response.status_code == 403
        assert response.get_json()["error"] == "forbidden"
        get_service.assert_not_called()

    @pytest.mark.parametrize(
        "error, status_code, code",
        [
            (InvalidTransitionError("Cannot move request from 'rejected' to 'processing'"), 409, "invalid_transition"),
            (NotFoundError("Request req-1 not found"), 404, "not_found"),
            (ValidationError("Invalid entity type 'booking'"), 400, "validation_error"),
        ],
    )
    def test_transition_errors(self, app, client, error, status_code, code):
        service = Mock()
        service.transition.side_effect = error

        with patch("backend.blueprints.lifecycle.get_status_service", return_value=service):
            response = client.post(
                "/api/lifecycle/request/req-1/transition",
                json={"status": "processing"},
                headers=auth_headers(app),
            )

        assert response.status_code == status_code
        assert response.get_json() == {"error": code, "message": error.message}

    def test_transition_requires_status(self, app, client):
        response = client.post(
            "/api/lifecycle/request/req-1/transition", json={}, headers=auth_headers(app)
        )

        assert response.status_code == 400
        assert response.get_json()["message"] == "status is required"

    def test_unexpected_error_is_sanitized(self, app, client):
        service = Mock()
        service.transition.side_effect = RuntimeError("could not connect to database at 10.0.0.5")

        with patch("backend.blueprints.lifecycle.get_status_service", return_value=service):
            response = client.post(
                "/api/lifecycle/request/req-1/transition",
                json={"status": "processing"},
                headers=auth_headers(app),
            )

        assert response.status_code == 500
        assert response.get_json() == {
            "error": "internal_error",
            "message": "Database operation failed. Please try again.",
        }

    def test_history(self, app, client):
        service = Mock()
        service.get_history.return_value = [
            StatusTransitionRecord("app-1", "application", "pending", "under_review", "admin-1")
        ]

        with patch("backend.blueprints.lifecycle.get_status_service", return_value=service):
            response = client.get(
                "/api/lifecycle/application/app-1/history", headers=auth_headers(app)
            )

        assert response.status_code == 200
        assert response.get_json()["history"][0]["to_status"] == "under_review"

    def test_allowed_transitions(self, app, client):
        service = Mock()
        service.allowed_targets.return_value = ["on_hold", "assigned", "rejected"]

        with patch("backend.blueprints.lifecycle.get_status_service", return_value=service):
            response = client.get(
                "/api/lifecycle/request/transitions/processing", headers=auth_headers(app)
            )

        assert response.status_code == 200
        assert response.get_json() == {
            "status": "processing",
            "allowed": ["on_hold", "assigned", "rejected"],
        }
        service.allowed_targets.assert_called_once_with("request", "processing")


class TestConversions:
    def test_created_booking_returns_201(self, app, client):
        service = Mock()
        service.convert.return_value = ConversionResult(booking=make_booking(), created=True)

        with patch("backend.blueprints.conversions.get_conversion_service", return_value=service):
            response = client.post(
                "/api/conversions",
                json={"request_id": "req-1", "provider_id": "provider-a", "service_id": "service-x"},
                headers=auth_headers(app),
            )

        assert response.status_code == 201
        body = response.get_json()
        assert body["created"] is True
        assert body["booking"]["scheduled_date"] == "2026-03-02"
        service.convert.assert_called_once_with(
            request_id="req-1",
            provider_id="provider-a",
            service_id="service-x",
            actor="admin-1",
            estimated_hours=None,
        )

    def test_existing_booking_returns_200(self, app, client):
        service = Mock()
        service.convert.return_value = ConversionResult(booking=make_booking(), created=False)

        with patch("backend.blueprints.conversions.get_conversion_service", return_value=service):
            response = client.post(
                "/api/conversions",
                json={"request_id": "req-1", "provider_id": "provider-a", "service_id": "service-x"},
                headers=auth_headers(app),
            )

        assert response.status_code == 200
        assert response.get_json()["created"] is False

    def test_provider_unavailable_returns_422(self, app, client):
        service = Mock()
        service.convert.side_effect = ProviderUnavailableError(
            "Provider provider-a does not actively offer service service-x",
            provider_id="provider-a",
            service_id="service-x",
        )

        with patch("backend.blueprints.conversions.get_conversion_service", return_value=service):
            response = client.post(
                "/api/conversions",
                json={"request_id": "req-1", "provider_id": "provider-a", "service_id": "service-x"},
                headers=auth_headers(app),
            )

        assert response.status_code == 422
        assert response.get_json()["details"] == {
            "provider_id": "provider-a",
            "service_id": "service-x",
        }

    def test_missing_fields(self, app, client):
        with patch("backend.blueprints.conversions.get_conversion_service") as get_service:
            response = client.post(
                "/api/conversions", json={"request_id": "req-1"}, headers=auth_headers(app)
            )

        assert response.status_code == 400
        assert "provider_id, service_id" in response.get_json()["message"]
        get_service.assert_not_called()

    def test_non_object_body(self, app, client):
        response = client.post("/api/conversions", json=["req-1"], headers=auth_headers(app))

        assert response.status_code == 400


class TestNotifications:
    def test_notify(self, app, client):
        orchestrator = Mock()
        orchestrator.notify.return_value = DispatchResult(
            event_type="booking_reminder",
            recipient_id="client-1",
            priority="high",
            channels={
                "message": ChannelResult(attempted=True, succeeded=True),
                "sms": ChannelResult(),
                "push": ChannelResult(attempted=True, succeeded=False, error="timed out after 5s"),
            },
        )
        recipient = {"id": "client-1", "email": "claire@example.com"}
        data = {"service_name": "Ménage", "booking_date": "2026-03-02", "start_time": "09:30"}

        with patch(
            "backend.blueprints.notifications.get_notification_orchestrator",
            return_value=orchestrator,
        ):
            response = client.post(
                "/api/notifications/booking_reminder",
                json={"recipient": recipient, "data": data},
                headers=auth_headers(app),
            )

        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "sent"
        assert body["channels"]["push"]["error"] == "timed out after 5s"
        orchestrator.notify.assert_called_once_with("booking_reminder", recipient, data)

    def test_unknown_template(self, app, client):
        orchestrator = Mock()
        orchestrator.notify.side_effect = ValidationError("Unknown template 'newsletter'")

        with patch(
            "backend.blueprints.notifications.get_notification_orchestrator",
            return_value=orchestrator,
        ):
            response = client.post(
                "/api/notifications/newsletter",
                json={"recipient": {"id": "client-1"}},
                headers=auth_headers(app),
            )

        assert response.status_code == 400


class TestSystem:
    def test_health(self, client, mock_database):
        with patch("backend.blueprints.system.get_database", return_value=mock_database):
            response = client.get("/api/health")

        assert response.status_code == 200
        assert response.get_json()["status"] == "healthy"

    def test_health_degraded(self, client, mock_database, mock_cursor):
        mock_cursor.execute.side_effect = psycopg2.OperationalError("connection refused")

        with patch("backend.blueprints.system.get_database", return_value=mock_database):
            response = client.get("/api/health")

        body = response.get_json()
        assert body["status"] == "degraded"
        assert body["database"] == "unhealthy"
