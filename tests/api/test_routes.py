from datetime import UTC, datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from clinic.api.deps import get_session
from clinic.core.security import create_access_token
from clinic.main import app

API = "/api/v1"

EVERY_DAY_9_TO_10 = {
    "items": [
        {
            "weekday": weekday,
            "start_time": "09:00",
            "end_time": "10:00",
            "slot_duration_mins": 30,
            "timezone": "UTC",
        }
        for weekday in range(7)
    ]
}


@pytest.fixture
async def client(session_maker):
    async def override_get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


def _auth(user_id: int, role: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


def _tomorrow() -> tuple[str, str]:
    start = datetime.now(UTC).replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1)
    return start.isoformat(), (start + timedelta(days=1)).isoformat()


async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_missing_token_is_unauthorized(client: AsyncClient) -> None:
    response = await client.get(f"{API}/doctors/me/weekly-availability")

    assert response.status_code == 401


async def test_garbage_token_is_unauthorized(client: AsyncClient) -> None:
    response = await client.get(
        f"{API}/doctors/me/weekly-availability",
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 401


async def test_wrong_role_is_forbidden(client: AsyncClient, clinic_data) -> None:
    response = await client.get(
        f"{API}/doctors/me/weekly-availability",
        headers=_auth(clinic_data.patient_id, "patient"),
    )
    assert response.status_code == 403

    start, end = _tomorrow()
    response = await client.get(
        f"{API}/slots/search",
        params={"specializationId": clinic_data.cardiology_id, "from": start, "to": end},
        headers=_auth(clinic_data.doctor_id, "doctor"),
    )
    assert response.status_code == 403


async def test_weekly_availability_replace_and_read(client: AsyncClient, clinic_data) -> None:
    doctor = _auth(clinic_data.doctor_id, "doctor")

    response = await client.put(
        f"{API}/doctors/me/weekly-availability", json=EVERY_DAY_9_TO_10, headers=doctor
    )

    assert response.status_code == 200
    assert response.json()["saved"] == 7
    listed = await client.get(f"{API}/doctors/me/weekly-availability", headers=doctor)
    assert [item["weekday"] for item in listed.json()] == list(range(7))
    assert listed.json()[0]["start_time"] == "09:00:00"

    cleared = await client.put(
        f"{API}/doctors/me/weekly-availability", json={"items": []}, headers=doctor
    )
    assert cleared.json() == {"saved": 0, "items": []}


@pytest.mark.parametrize(
    "item",
    [
        {"weekday": 7, "start_time": "09:00", "end_time": "10:00", "slot_duration_mins": 30, "timezone": "UTC"},
        {"weekday": 1, "start_time": "10:00", "end_time": "09:00", "slot_duration_mins": 30, "timezone": "UTC"},
        {"weekday": 1, "start_time": "9am", "end_time": "10:00", "slot_duration_mins": 30, "timezone": "UTC"},
        {"weekday": 1, "start_time": "09:00", "end_time": "10:00", "slot_duration_mins": 4, "timezone": "UTC"},
        {"weekday": 1, "start_time": "09:00", "end_time": "10:00", "slot_duration_mins": 30, "timezone": "Nowhere/Land"},
    ],
)
async def test_invalid_weekly_availability_is_rejected(client: AsyncClient, clinic_data, item) -> None:
    response = await client.put(
        f"{API}/doctors/me/weekly-availability",
        json={"items": [item]},
        headers=_auth(clinic_data.doctor_id, "doctor"),
    )

    assert response.status_code == 422


async def test_slot_exceptions_lifecycle(client: AsyncClient, clinic_data) -> None:
    doctor = _auth(clinic_data.doctor_id, "doctor")

    bad = await client.post(
        f"{API}/doctors/me/slot-exceptions",
        json={"day": "2026-12-24", "full_day": True, "start_time": "09:00", "end_time": "10:00"},
        headers=doctor,
    )
    assert bad.status_code == 422

    created = await client.post(
        f"{API}/doctors/me/slot-exceptions",
        json={"day": "2026-12-24", "full_day": False, "start_time": "09:00", "end_time": "10:00", "reason": "Dentist"},
        headers=doctor,
    )
    assert created.status_code == 201
    exception_id = created.json()["id"]

    listed = await client.get(f"{API}/doctors/me/slot-exceptions", headers=doctor)
    assert [e["id"] for e in listed.json()] == [exception_id]
    assert listed.json()[0]["reason"] == "Dentist"

    deleted = await client.delete(f"{API}/doctors/me/slot-exceptions/{exception_id}", headers=doctor)
    assert deleted.status_code == 204
    again = await client.delete(f"{API}/doctors/me/slot-exceptions/{exception_id}", headers=doctor)
    assert again.status_code == 404


async def test_regeneration_needs_specialization_when_ambiguous(client: AsyncClient, clinic_data) -> None:
    doctor = _auth(clinic_data.doctor_id, "doctor")
    await client.put(f"{API}/doctors/me/weekly-availability", json=EVERY_DAY_9_TO_10, headers=doctor)
    linked = await client.put(
        f"{API}/doctors/me/specializations",
        json={"specializationIds": [clinic_data.cardiology_id, clinic_data.dermatology_id]},
        headers=doctor,
    )
    assert linked.json()["assigned"] == 2
    assert [s["name"] for s in linked.json()["items"]] == ["Cardiology", "Dermatology"]

    ambiguous = await client.post(f"{API}/doctors/me/slots/regenerate?weeks=1", headers=doctor)
    assert ambiguous.status_code == 400
    assert ambiguous.json()["code"] == "specialization_required"

    explicit = await client.post(
        f"{API}/doctors/me/slots/regenerate",
        params={"weeks": 1, "specializationId": clinic_data.dermatology_id},
        headers=doctor,
    )
    assert explicit.status_code == 200
    assert explicit.json()["inserted"] > 0


async def test_regeneration_weeks_are_bounded(client: AsyncClient, clinic_data) -> None:
    response = await client.post(
        f"{API}/doctors/me/slots/regenerate?weeks=0",
        headers=_auth(clinic_data.doctor_id, "doctor"),
    )

    assert response.status_code == 422


async def test_unlinking_a_specialization(client: AsyncClient, clinic_data) -> None:
    doctor = _auth(clinic_data.doctor_id, "doctor")

    removed = await client.delete(
        f"{API}/doctors/me/specializations/{clinic_data.cardiology_id}", headers=doctor
    )
    missing = await client.delete(
        f"{API}/doctors/me/specializations/{clinic_data.cardiology_id}", headers=doctor
    )

    assert removed.status_code == 204
    assert missing.status_code == 404
    listed = await client.get(f"{API}/doctors/me/specializations", headers=doctor)
    assert listed.json() == []


async def test_specialization_catalogue(client: AsyncClient, clinic_data) -> None:
    admin = _auth(1000, "admin")

    created = await client.post(f"{API}/specializations", json={"name": "Neurology"}, headers=admin)
    duplicate = await client.post(f"{API}/specializations", json={"name": "Neurology"}, headers=admin)
    forbidden = await client.post(
        f"{API}/specializations",
        json={"name": "Oncology"},
        headers=_auth(clinic_data.doctor_id, "doctor"),
    )

    assert created.status_code == 201
    assert duplicate.status_code == 409
    assert forbidden.status_code == 403
    listed = await client.get(
        f"{API}/specializations", headers=_auth(clinic_data.patient_id, "patient")
    )
    assert [s["name"] for s in listed.json()] == ["Cardiology", "Dermatology", "Neurology"]


async def test_doctor_to_patient_booking_flow(client: AsyncClient, clinic_data) -> None:
    doctor = _auth(clinic_data.doctor_id, "doctor")
    patient = _auth(clinic_data.patient_id, "patient")
    other = _auth(clinic_data.other_patient_id, "patient")

    await client.put(f"{API}/doctors/me/weekly-availability", json=EVERY_DAY_9_TO_10, headers=doctor)
    first = await client.post(f"{API}/doctors/me/slots/regenerate?weeks=1", headers=doctor)
    second = await client.post(f"{API}/doctors/me/slots/regenerate?weeks=1", headers=doctor)
    assert first.status_code == 200
    assert first.json()["inserted"] >= 14
    assert second.json() == {"inserted": 0}

    start, end = _tomorrow()
    search = {"specializationId": clinic_data.cardiology_id, "from": start, "to": end}
    page = (await client.get(f"{API}/slots/search", params=search, headers=patient)).json()
    assert page["total"] == 2
    assert page["limit"] == 20
    slot_id = page["items"][0]["id"]

    booked = await client.post(
        f"{API}/appointments", json={"slotId": slot_id, "symptoms": "cough"}, headers=patient
    )
    assert booked.status_code == 201
    assert booked.json()["status"] == "confirmed"
    appointment_id = booked.json()["id"]

    taken = await client.post(f"{API}/appointments", json={"slotId": slot_id}, headers=other)
    assert taken.status_code == 409
    missing = await client.post(f"{API}/appointments", json={"slotId": 987654}, headers=other)
    assert missing.status_code == 404

    page = (await client.get(f"{API}/slots/search", params=search, headers=patient)).json()
    assert page["total"] == 1
    assert slot_id not in [s["id"] for s in page["items"]]

    mine = (await client.get(f"{API}/appointments", headers=patient)).json()
    assert [a["id"] for a in mine] == [appointment_id]
    assert mine[0]["doctor_id"] == clinic_data.doctor_id
    schedule = (await client.get(f"{API}/doctors/me/appointments", headers=doctor)).json()
    assert [a["patient_id"] for a in schedule] == [clinic_data.patient_id]

    not_theirs = await client.patch(f"{API}/appointments/{appointment_id}/cancel", headers=other)
    assert not_theirs.status_code == 404
    cancelled = await client.patch(f"{API}/appointments/{appointment_id}/cancel", headers=patient)
    assert cancelled.status_code == 204
    twice = await client.patch(f"{API}/appointments/{appointment_id}/cancel", headers=patient)
    assert twice.status_code == 404

    page = (await client.get(f"{API}/slots/search", params=search, headers=patient)).json()
    assert page["total"] == 2

    rebooked = await client.post(f"{API}/appointments", json={"slotId": slot_id}, headers=other)
    assert rebooked.status_code == 201


async def test_search_requires_range(client: AsyncClient, clinic_data) -> None:
    response = await client.get(
        f"{API}/slots/search",
        params={"specializationId": clinic_data.cardiology_id},
        headers=_auth(clinic_data.patient_id, "patient"),
    )

    assert response.status_code == 422
