"""
Integration tests for the providers API.
"""
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from slotbook.api.app import app
from slotbook.lib.jwt import create_access_token
from slotbook.models.users import UserRole


@pytest.fixture
def client(db_session):
    """Test client over a freshly created schema."""
    return TestClient(app)


def _headers(user_id, role):
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest.fixture
def owner_headers(provider):
    return _headers(provider.user_id, UserRole.PROVIDER)


@pytest.mark.integration
def test_create_provider_profile(client, customer):
    response = client.post(
        "/providers",
        json={
            "business_name": "Glow Spa",
            "category": "beauty",
            "timezone": "Asia/Dhaka",
            "services": [{"name": "Facial", "duration_minutes": 45, "price": 30}],
            "working_hours": [{"day": "friday", "open": "10:00", "close": "13:00"}],
        },
        headers=_headers(customer.id, customer.role),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["user_id"] == str(customer.id)
    assert data["timezone"] == "Asia/Dhaka"
    assert data["rating"] == 0.0
    assert data["services"][0]["duration_minutes"] == 45
    assert data["working_hours"] == [
        {"day": "friday", "open_time": "10:00", "close_time": "13:00", "is_closed": False},
    ]

    duplicate = client.post(
        "/providers",
        json={"business_name": "Glow Spa 2", "category": "beauty"},
        headers=_headers(customer.id, customer.role),
    )
    assert duplicate.status_code == 409


@pytest.mark.integration
def test_create_provider_rejects_inverted_hours(client, customer):
    response = client.post(
        "/providers",
        json={
            "business_name": "Night Owl",
            "category": "entertainment",
            "working_hours": [{"day": "saturday", "open": "22:00", "close": "02:00"}],
        },
        headers=_headers(customer.id, customer.role),
    )

    assert response.status_code == 422
    assert response.json()["details"]["errors"]["field"] == "working_hours.saturday"


@pytest.mark.integration
def test_requires_authentication(client):
    response = client.post("/providers", json={"business_name": "X", "category": "beauty"})

    assert response.status_code in (401, 403)


@pytest.mark.integration
def test_get_provider(client, provider):
    response = client.get(f"/providers/{provider.id}")

    assert response.status_code == 200
    assert response.json()["business_name"] == provider.business_name


@pytest.mark.integration
def test_get_unknown_provider(client):
    response = client.get(f"/providers/{uuid4()}")

    assert response.status_code == 404
    assert response.json()["details"]["resource"] == "Service provider"


@pytest.mark.integration
def test_availability_for_service_and_date(client, provider):
    response = client.get(
        f"/providers/{provider.id}/availability",
        params={"service_id": str(provider.services[0].id), "date": "2025-01-11"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["is_open"] is True
    assert (data["open"], data["close"], data["source"]) == ("10:00", "14:00", "weekly")
    assert data["slots"] == ["10:00", "11:00", "12:00", "13:00"]


@pytest.mark.integration
def test_availability_on_closed_day(client, provider):
    response = client.get(
        f"/providers/{provider.id}/availability",
        params={"service_id": str(provider.services[0].id), "date": "2025-01-12"},
    )

    data = response.json()
    assert data["is_open"] is False
    assert data["slots"] == []


@pytest.mark.integration
def test_availability_unknown_service(client, provider):
    response = client.get(
        f"/providers/{provider.id}/availability",
        params={"service_id": str(uuid4()), "date": "2025-01-10"},
    )

    assert response.status_code == 404


@pytest.mark.integration
def test_replace_working_hours(client, provider, owner_headers):
    response = client.put(
        "/providers/me/working-hours",
        json=[
            {"day": "tuesday", "open": "8:00", "close": "12:00"},
            {"day": "monday", "open": "09:00", "close": "17:00"},
        ],
        headers=owner_headers,
    )

    assert response.status_code == 200
    assert [(e["day"], e["open_time"]) for e in response.json()] == [
        ("monday", "09:00"),
        ("tuesday", "08:00"),
    ]

    friday = client.get(
        f"/providers/{provider.id}/availability",
        params={"service_id": str(provider.services[0].id), "date": "2025-01-10"},
    )
    assert friday.json()["slots"] == []


@pytest.mark.integration
def test_customer_without_profile_cannot_edit_hours(client, customer):
    response = client.put(
        "/providers/me/working-hours",
        json=[{"day": "monday", "open": "09:00", "close": "17:00"}],
        headers=_headers(customer.id, customer.role),
    )

    assert response.status_code == 404


@pytest.mark.integration
def test_exception_upsert_list_delete(client, provider, owner_headers):
    first = client.post(
        "/providers/me/availability-exceptions",
        json={"date": "2025-01-10", "is_available": False},
        headers=owner_headers,
    )
    second = client.post(
        "/providers/me/availability-exceptions",
        json={"date": "2025-01-10", "is_available": True, "custom_open": "12:00", "custom_close": "14:00"},
        headers=owner_headers,
    )

    assert first.status_code == second.status_code == 200
    assert second.json()["id"] == first.json()["id"]

    listed = client.get("/providers/me/availability-exceptions", headers=owner_headers).json()
    assert len(listed) == 1
    assert listed[0]["custom_open"] == "12:00"

    slots = client.get(
        f"/providers/{provider.id}/availability",
        params={"service_id": str(provider.services[0].id), "date": "2025-01-10"},
    ).json()
    assert (slots["source"], slots["slots"]) == ("exception", ["12:00", "13:00"])

    deleted = client.delete(f"/providers/me/availability-exceptions/{listed[0]['id']}", headers=owner_headers)
    assert deleted.status_code == 204
    assert client.get("/providers/me/availability-exceptions", headers=owner_headers).json() == []


@pytest.mark.integration
def test_service_crud(client, owner_headers):
    created = client.post(
        "/providers/me/services",
        json={"name": "Shave", "duration_minutes": 20, "price": "9.99"},
        headers=owner_headers,
    )
    assert created.status_code == 201
    service_id = created.json()["id"]

    updated = client.put(
        f"/providers/me/services/{service_id}",
        json={"duration_minutes": 25},
        headers=owner_headers,
    )
    assert updated.json()["duration_minutes"] == 25
    assert updated.json()["price"] == 9.99

    assert client.delete(f"/providers/me/services/{service_id}", headers=owner_headers).status_code == 204
    assert client.delete(f"/providers/me/services/{service_id}", headers=owner_headers).status_code == 404


@pytest.mark.integration
def test_service_price_must_not_be_negative(client, owner_headers):
    response = client.post(
        "/providers/me/services",
        json={"name": "Shave", "duration_minutes": 20, "price": -1},
        headers=owner_headers,
    )

    assert response.status_code == 422


@pytest.mark.integration
def test_update_own_profile(client, provider, owner_headers):
    response = client.put(
        "/providers/me",
        json={"description": "Walk-ins welcome", "subcategory": "barber", "timezone": "Europe/London"},
        headers=owner_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert (data["description"], data["subcategory"], data["timezone"]) == (
        "Walk-ins welcome",
        "barber",
        "Europe/London",
    )
    assert data["business_name"] == provider.business_name
    assert client.get(f"/providers/{provider.id}").json()["timezone"] == "Europe/London"


@pytest.mark.integration
def test_update_profile_rejects_unknown_timezone(client, owner_headers):
    response = client.put("/providers/me", json={"timezone": "Nowhere/Special"}, headers=owner_headers)

    assert response.status_code == 422
    assert response.json()["details"]["errors"] == {"timezone": "Nowhere/Special"}
