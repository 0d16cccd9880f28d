"""
API tests for the operator appointment endpoints
"""

import uuid
from datetime import date, timedelta

from detailbook.core.auth import create_access_token

APPOINTMENTS = "/api/v1/appointments"


def future_day(days: int = 3) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


async def book(client, at: str = "14:00", day: str = None, phone: str = "555-0100", name: str = "Jane Doe"):
    response = await client.post(
        "/api/v1/booking/detailer-42",
        json={
            "service_id": "basic-wash",
            "service_name": "Basic Wash",
            "service_price": "49.00",
            "scheduled_date": day or future_day(),
            "scheduled_time": at,
            "customer": {"name": name, "phone": phone, "email": "jane@example.com"},
        },
    )
    assert response.status_code == 201
    return response.json()


async def test_requires_bearer_token(client, tenant):
    missing = await client.get(f"{APPOINTMENTS}/")
    invalid = await client.get(f"{APPOINTMENTS}/", headers={"Authorization": "Bearer nope"})

    assert missing.status_code in (401, 403)
    assert invalid.status_code == 401


async def test_confirm_reports_notification(client, tenant, auth_headers, api_notifier):
    appointment = await book(client)

    response = await client.post(f"{APPOINTMENTS}/{appointment['id']}/confirm", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["appointment"]["status"] == "confirmed"
    assert data["notification"]["status"] == "sent"
    assert len(api_notifier.sent) == 1


async def test_cancel_without_reason_is_rejected(client, tenant, auth_headers):
    appointment = await book(client)

    response = await client.post(f"{APPOINTMENTS}/{appointment['id']}/cancel", headers=auth_headers, json={})

    assert response.status_code == 400
    assert response.json()["detail"] == "Cancellation reason is required"


async def test_cancel_then_purge(client, tenant, auth_headers):
    appointment = await book(client)
    url = f"{APPOINTMENTS}/{appointment['id']}"

    not_yet = await client.delete(url, headers=auth_headers)
    cancelled = await client.post(f"{url}/cancel", headers=auth_headers, json={"reason": "customer requested"})
    purged = await client.delete(url, headers=auth_headers)
    gone = await client.get(url, headers=auth_headers)

    assert not_yet.status_code == 400
    assert cancelled.json()["appointment"]["status"] == "cancelled"
    assert cancelled.json()["appointment"]["cancellation_reason"] == "customer requested"
    assert purged.status_code == 204
    assert gone.status_code == 404


async def test_reschedule_to_new_slot(client, tenant, auth_headers):
    appointment = await book(client)
    new_day = future_day(4)

    response = await client.post(
        f"{APPOINTMENTS}/{appointment['id']}/reschedule",
        headers=auth_headers,
        json={"reason": "Rain expected", "new_date": new_day, "new_time": "09:00"},
    )

    assert response.status_code == 200
    moved = response.json()["appointment"]
    assert moved["status"] == "pending"
    assert moved["scheduled_date"] == new_day
    assert moved["scheduled_time"] == "09:00:00"
    assert moved["reschedule_reason"] == "Rain expected"


async def test_lifecycle_through_completion(client, tenant, auth_headers):
    appointment = await book(client)
    url = f"{APPOINTMENTS}/{appointment['id']}"

    await client.post(f"{url}/confirm", headers=auth_headers)
    reminder = await client.post(f"{url}/reminder", headers=auth_headers)
    started = await client.post(f"{url}/start", headers=auth_headers)
    completed = await client.post(f"{url}/complete", headers=auth_headers)
    again = await client.post(f"{url}/no-show", headers=auth_headers)

    assert reminder.json()["appointment"]["reminder_sent"] is True
    assert started.json()["appointment"]["status"] == "in_progress"
    assert started.json()["notification"] is None
    assert completed.json()["appointment"]["status"] == "completed"
    assert again.status_code == 400


async def test_other_tenant_is_forbidden(client, tenant, other_tenant, auth_headers):
    appointment = await book(client)
    token = create_access_token(user_id=uuid.uuid4(), tenant_id=other_tenant.id)
    headers = {"Authorization": f"Bearer {token}"}

    response = await client.post(f"{APPOINTMENTS}/{appointment['id']}/confirm", headers=headers)
    listing = await client.get(f"{APPOINTMENTS}/", headers=headers, params={"tenant": "detailer-42"})

    assert response.status_code == 403
    assert listing.status_code == 403


async def test_list_and_filter(client, tenant, auth_headers):
    first = await book(client, at="09:00")
    second = await book(client, at="10:00")
    await client.post(f"{APPOINTMENTS}/{second['id']}/confirm", headers=auth_headers)

    everything = await client.get(f"{APPOINTMENTS}/", headers=auth_headers)
    confirmed = await client.get(f"{APPOINTMENTS}/", headers=auth_headers, params={"status": "confirmed"})

    assert [a["id"] for a in everything.json()] == [first["id"], second["id"]]
    assert [a["id"] for a in confirmed.json()] == [second["id"]]


async def test_manual_create_and_update(client, tenant, customer, auth_headers):
    created = await client.post(
        f"{APPOINTMENTS}/",
        headers=auth_headers,
        json={
            "customer_id": str(customer.id),
            "scheduled_date": future_day(),
            "scheduled_time": "16:00",
            "service_name": "Ceramic Coating",
            "amount": "450.00",
        },
    )
    updated = await client.patch(
        f"{APPOINTMENTS}/{created.json()['id']}",
        headers=auth_headers,
        json={"payment_status": "paid", "notes": "Deposit received"},
    )

    assert created.status_code == 201
    assert updated.status_code == 200
    assert updated.json()["payment_status"] == "paid"
    assert updated.json()["notes"] == "Deposit received"


async def test_services_crud(client, tenant, auth_headers):
    created = await client.post(
        "/api/v1/services/",
        headers=auth_headers,
        json={"name": "Interior Only", "price": "89.00", "duration_minutes": 90},
    )
    service_id = created.json()["id"]

    deactivated = await client.patch(
        f"/api/v1/services/{service_id}", headers=auth_headers, json={"is_active": False}
    )
    listing = await client.get("/api/v1/services/", headers=auth_headers)

    assert created.status_code == 201
    assert deactivated.json()["is_active"] is False
    assert listing.json() == []
