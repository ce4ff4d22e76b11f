"""
Tests for error handler middleware and the booking error taxonomy.
"""
from datetime import datetime
from uuid import uuid4

import pytest
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from slotbook.api.middleware.error_handler import (
    AppException,
    BadRequestException,
    NotFoundException,
    app_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from slotbook.services.errors import (
    AlreadyReviewedException,
    InvalidTransitionException,
    NotAuthorizedException,
    NotCompletedException,
    RatingRecomputeError,
    ScheduleValidationException,
    SlotTakenException,
    SlotUnavailableException,
)


@pytest.mark.unit
def test_not_found_exception():
    exc = NotFoundException("Booking", "123")

    assert exc.message == "Booking with id '123' not found"
    assert exc.status_code == 404
    assert exc.details == {"resource": "Booking", "resource_id": "123"}


@pytest.mark.unit
def test_not_found_exception_without_id():
    exc = NotFoundException("Provider profile")

    assert exc.message == "Provider profile not found"


@pytest.mark.unit
@pytest.mark.parametrize("exc,status_code", [
    (SlotUnavailableException(uuid4(), datetime(2025, 1, 10, 18, 0), "provider is closed on this date"), 409),
    (SlotTakenException(uuid4(), datetime(2025, 1, 10, 9, 0)), 409),
    (InvalidTransitionException("completed", "cancelled"), 409),
    (NotAuthorizedException("update this booking"), 403),
    (NotCompletedException("pending"), 400),
    (AlreadyReviewedException(uuid4()), 409),
    (ScheduleValidationException("bad time", field="working_hours.monday.open", value="9am"), 422),
])
def test_domain_errors_carry_status_codes(exc, status_code):
    assert isinstance(exc, AppException)
    assert exc.status_code == status_code


@pytest.mark.unit
def test_slot_unavailable_details():
    provider_id = uuid4()
    exc = SlotUnavailableException(provider_id, datetime(2025, 1, 10, 16, 30), "time is not a bookable slot")

    assert "2025-01-10 16:30" in exc.message
    assert exc.details == {
        "provider_id": str(provider_id),
        "scheduled_at": "2025-01-10T16:30:00",
        "reason": "time is not a bookable slot",
    }


@pytest.mark.unit
def test_not_authorized_message_includes_reason():
    exc = NotAuthorizedException("update this booking", "only the provider can mark it confirmed")

    assert exc.message == "Not authorized to update this booking: only the provider can mark it confirmed"
    assert exc.details == {"action": "update this booking"}


@pytest.mark.unit
def test_rating_recompute_error_is_not_user_facing():
    exc = RatingRecomputeError(uuid4(), RuntimeError("connection reset"))

    assert not isinstance(exc, AppException)
    assert "connection reset" in str(exc)


@pytest.mark.integration
def test_domain_error_rendered_by_handler():
    app = FastAPI()
    app.add_exception_handler(AppException, app_exception_handler)

    @app.patch("/bookings/{booking_id}/status")
    async def change_status(booking_id: str):
        raise InvalidTransitionException("confirmed", "pending")

    client = TestClient(app)
    response = client.patch("/bookings/abc/status")

    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "Cannot change status from confirmed to pending"
    assert data["details"] == {"from_status": "confirmed", "to_status": "pending"}
    assert "correlation_id" in data


@pytest.mark.integration
def test_validation_error_handler():
    """Test Pydantic validation error handler."""
    app = FastAPI()
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    class ReviewBody(BaseModel):
        rating: int = Field(..., ge=1, le=5)
        comment: str = Field(..., min_length=10)

    @app.post("/review")
    async def review(data: ReviewBody):
        return {"ok": True}

    client = TestClient(app)
    response = client.post("/review", json={"rating": 9, "comment": "short"})

    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "Validation error"
    assert {tuple(e["loc"]) for e in data["details"]["errors"]} == {
        ("body", "rating"),
        ("body", "comment"),
    }


@pytest.mark.integration
def test_http_exception_handler_keeps_headers():
    app = FastAPI()
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    @app.get("/secure")
    async def secure():
        raise StarletteHTTPException(
            status_code=401,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    client = TestClient(app)
    response = client.get("/secure")

    assert response.status_code == 401
    assert response.json()["error"] == "Could not validate credentials"
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.integration
def test_unhandled_exception_handler():
    app = FastAPI()
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/boom")
    async def boom():
        raise ValueError("Unexpected error")

    client = TestClient(app, raise_server_exceptions=False)
    response = client.get("/boom")

    assert response.status_code == 500
    assert response.json()["error"] == "Internal server error"


@pytest.mark.integration
def test_exception_with_correlation_id():
    app = FastAPI()
    app.add_exception_handler(AppException, app_exception_handler)

    @app.get("/test-correlation")
    async def test_correlation(request: Request):
        request.state.correlation_id = "test-correlation-123"
        raise BadRequestException("Test error")

    client = TestClient(app)
    response = client.get("/test-correlation")

    assert response.status_code == 400
    assert response.json()["correlation_id"] == "test-correlation-123"
