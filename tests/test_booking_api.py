"""
API tests for the public booking endpoints and tenant signup
"""

from datetime import date, datetime, timedelta

BOOKING = "/api/v1/booking"


def future_day(days: int = 3) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


def booking_payload(day: str, at: str = "14:00", phone: str = "555-0100", name: str = "Jane Doe", **extra):
    payload = {
        "service_id": "basic-wash",
        "service_name": "Basic Wash",
        "service_price": "49.00",
        "scheduled_date": day,
        "scheduled_time": at,
        "customer": {"name": name, "phone": phone},
    }
    payload.update(extra)
    return payload


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_booking_info_by_slug(client, tenant, service):
    response = await client.get(f"{BOOKING}/detailer-42/info")

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == str(tenant.id)
    assert data["business_name"] == "Shine Detailing"
    assert [s["name"] for s in data["services"]] == ["Full Detail"]


async def test_booking_info_unknown_tenant(client, tenant):
    response = await client.get(f"{BOOKING}/nobody-here/info")

    assert response.status_code == 404
    assert response.json()["detail"] == "Tenant not found or inactive"


async def test_book_then_conflict(client, tenant):
    day = future_day()

    first = await client.post(f"{BOOKING}/detailer-42", json=booking_payload(day))
    second = await client.post(
        f"{BOOKING}/{tenant.id}", json=booking_payload(day, phone="555-0123", name="John Roe")
    )

    assert first.status_code == 201
    assert first.json()["status"] == "pending"
    assert first.json()["service_name"] == "Basic Wash"
    assert second.status_code == 409
    assert second.json()["detail"] == "Time slot is already booked"


async def test_availability_reflects_booking(client, tenant):
    day = future_day()
    await client.post(f"{BOOKING}/detailer-42", json=booking_payload(day, at="10:00"))

    response = await client.get(
        f"{BOOKING}/detailer-42/availability", params={"start_date": day, "end_date": day}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["booked_slots"] == [{"date": day, "time": "10:00"}]
    assert "10:00" not in data["available_slots"][0]["times"]
    assert "11:00" in data["available_slots"][0]["times"]


async def test_availability_rejects_bad_range(client, tenant):
    response = await client.get(
        f"{BOOKING}/detailer-42/availability",
        params={"start_date": future_day(5), "end_date": future_day(1)},
    )

    assert response.status_code == 400


async def test_booking_validation_errors_are_specific(client, tenant):
    day = future_day()

    bad_time = await client.post(f"{BOOKING}/detailer-42", json=booking_payload(day, at="2pm"))
    bad_phone = await client.post(f"{BOOKING}/detailer-42", json=booking_payload(day, phone="call me"))
    past = await client.post(f"{BOOKING}/detailer-42", json=booking_payload("2020-01-01"))

    assert bad_time.status_code == 400
    assert bad_time.json()["detail"] == "Invalid time format (use HH:MM:SS or HH:MM)"
    assert bad_phone.json()["detail"] == "Invalid phone number format"
    assert past.json()["detail"] == "Appointment date and time must be in the future"


async def test_booking_blocked_for_expired_tenant(client, tenant_factory):
    tenant_factory("lapsed-shop", trial_ends_at=datetime(2020, 1, 1))

    response = await client.post(f"{BOOKING}/lapsed-shop", json=booking_payload(future_day()))

    assert response.status_code == 402


async def test_create_tenant_generates_unique_slug(client, tenant):
    first = await client.post("/api/v1/tenants/", json={"business_name": "Mobile Shine"})
    second = await client.post("/api/v1/tenants/", json={"business_name": "Mobile Shine!"})

    assert first.status_code == 201
    assert first.json()["slug"] == "mobile-shine"
    assert first.json()["subscription_status"] == "trial"
    assert first.json()["days_left"] == 14
    assert second.json()["slug"] == "mobile-shine-2"


async def test_create_tenant_with_taken_slug(client, tenant):
    response = await client.post(
        "/api/v1/tenants/", json={"business_name": "Copycat", "slug": "detailer-42"}
    )

    assert response.status_code == 409


async def test_create_tenant_rejects_unknown_timezone(client):
    response = await client.post(
        "/api/v1/tenants/", json={"business_name": "Nowhere", "timezone": "Mars/Olympus"}
    )

    assert response.status_code == 400


async def test_get_tenant_by_slug_and_id(client, tenant):
    by_slug = await client.get("/api/v1/tenants/detailer-42")
    by_id = await client.get(f"/api/v1/tenants/{tenant.id}")

    assert by_slug.json()["id"] == by_id.json()["id"] == str(tenant.id)
