"""
HTTP tests: auth, schedule, appointment lifecycle, payments and error mapping.
"""

import pytest
from sqlalchemy import select

from clinic.modules.users.models import AuditLog, UserRole
from clinic.modules.users.schemas import UserPublic

from tests.conftest import PASSWORD, auth_headers

BOOKING = {
    "appointment_date": "2025-10-16",
    "appointment_time": "09:00",
    "reason": "Recurring chest pain after exercise",
}
CARD = {
    "amount": 150.0,
    "payment_method": "credit_card",
    "card_number": "4111111111111111",
    "card_holder": "Maria Silva",
    "expiry_date": "12/27",
    "cvv": "123",
}


def patient(users):
    return auth_headers(users.patient, UserRole.PATIENT)


def doctor(users):
    return auth_headers(users.doctor, UserRole.DOCTOR)


async def create_booking(client, users, **overrides):
    body = {"doctor_id": str(users.doctor), **BOOKING, **overrides}
    return await client.post("/api/appointments", json=body, headers=patient(users))


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_health_db(self, client):
        response = await client.get("/api/health/db")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": "sqlite"}


class TestAuth:
    """Login and current user."""

    @pytest.mark.asyncio
    async def test_login_success(self, client, users):
        response = await client.post(
            "/api/auth/login", json={"email": "Patient@Example.com", "password": PASSWORD}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["role"] == "patient"
        assert UserPublic.model_validate(data["user"]).role is UserRole.PATIENT

        me = await client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}
        )
        assert me.status_code == 200
        assert me.json()["email"] == "patient@example.com"

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client, users):
        response = await client.post(
            "/api/auth/login", json={"email": "patient@example.com", "password": "nope"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "invalid_credentials"

    @pytest.mark.asyncio
    async def test_inactive_user_cannot_login(self, client, users):
        response = await client.post(
            "/api/auth/login", json={"email": "retired@example.com", "password": PASSWORD}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/auth/me")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_garbage_token(self, client):
        response = await client.get("/api/auth/me", headers={"Authorization": "Bearer abc"})
        assert response.status_code == 401
        assert response.json()["detail"] == "invalid_token"


class TestSchedule:
    """Free-slot lookup."""

    @pytest.mark.asyncio
    async def test_all_slots_free(self, client, users):
        response = await client.get(
            f"/api/schedule/doctors/{users.doctor}/slots",
            params={"date": "2025-10-16"},
            headers=patient(users),
        )
        assert response.status_code == 200
        slots = response.json()["slots"]
        assert len(slots) == 18
        assert slots[0] == "07:00" and slots[-1] == "17:30"

    @pytest.mark.asyncio
    async def test_booked_slot_disappears(self, client, users):
        await create_booking(client, users)
        response = await client.get(
            f"/api/schedule/doctors/{users.doctor}/slots",
            params={"date": "2025-10-16"},
            headers=patient(users),
        )
        slots = response.json()["slots"]
        assert len(slots) == 17
        assert "09:00" not in slots

    @pytest.mark.asyncio
    async def test_weekend_empty(self, client, users):
        response = await client.get(
            f"/api/schedule/doctors/{users.doctor}/slots",
            params={"date": "2025-10-18"},
            headers=patient(users),
        )
        assert response.status_code == 200
        assert response.json()["slots"] == []

    @pytest.mark.asyncio
    async def test_unknown_doctor(self, client, users):
        response = await client.get(
            f"/api/schedule/doctors/{users.patient}/slots",
            params={"date": "2025-10-16"},
            headers=patient(users),
        )
        assert response.status_code == 404
        assert response.json()["error"] == "DoctorNotFound"

    @pytest.mark.asyncio
    async def test_malformed_date(self, client, users):
        response = await client.get(
            f"/api/schedule/doctors/{users.doctor}/slots",
            params={"date": "16/10/2025"},
            headers=patient(users),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "MalformedDate"


class TestAppointmentFlow:
    """Book, pay, confirm, cancel over HTTP."""

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, client, users):
        created = await create_booking(client, users)
        assert created.status_code == 201
        appointment = created.json()
        assert appointment["status"] == "pending"
        assert appointment["payment_status"] == "pending"

        early = await client.put(
            f"/api/appointments/{appointment['id']}/confirm", json={}, headers=doctor(users)
        )
        assert early.status_code == 400
        assert early.json() == {
            "success": False,
            "error": "PaymentRequired",
            "message": "Appointment must be paid before confirmation",
        }

        paid = await client.post(
            "/api/payments", json={"appointment_id": appointment["id"], **CARD}, headers=patient(users)
        )
        assert paid.status_code == 200
        assert paid.json()["success"] is True
        assert paid.json()["payment"]["status"] == "completed"

        confirmed = await client.put(
            f"/api/appointments/{appointment['id']}/confirm",
            json={"notes": "Bring previous ECG"},
            headers=doctor(users),
        )
        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "confirmed"
        assert confirmed.json()["notes"] == "Doctor notes: Bring previous ECG"

        cancelled = await client.put(
            f"/api/appointments/{appointment['id']}/cancel", headers=patient(users)
        )
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

        again = await client.put(
            f"/api/appointments/{appointment['id']}/cancel", headers=doctor(users)
        )
        assert again.status_code == 409
        assert again.json()["error"] == "AlreadyCancelled"

    @pytest.mark.asyncio
    async def test_double_booking_conflict(self, client, users):
        assert (await create_booking(client, users)).status_code == 201
        second = await client.post(
            "/api/appointments",
            json={"doctor_id": str(users.doctor), **BOOKING},
            headers=auth_headers(users.other_patient, UserRole.PATIENT),
        )
        assert second.status_code == 409
        assert second.json()["error"] == "SlotUnavailable"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides,status,error",
        [
            ({"appointment_date": "2025-10-18"}, 400, "Weekend"),
            ({"appointment_date": "2024-10-14"}, 400, "PastDate"),
            ({"appointment_time": "13:00"}, 400, "OutOfHours"),
            ({"appointment_time": "09:15"}, 400, "OutOfHours"),
            ({"appointment_time": "9h"}, 400, "MalformedTime"),
        ],
    )
    async def test_validation_errors(self, client, users, overrides, status, error):
        response = await create_booking(client, users, **overrides)
        assert response.status_code == status
        assert response.json()["error"] == error

    @pytest.mark.asyncio
    async def test_inactive_doctor_is_404(self, client, users):
        response = await create_booking(client, users, doctor_id=str(users.inactive_doctor))
        assert response.status_code == 404
        assert response.json()["message"] == "Doctor not found or inactive"

    @pytest.mark.asyncio
    async def test_short_reason_is_422(self, client, users):
        response = await create_booking(client, users, reason="pain")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_doctor_cannot_book(self, client, users):
        response = await client.post(
            "/api/appointments",
            json={"doctor_id": str(users.other_doctor), **BOOKING},
            headers=doctor(users),
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_patient_cannot_confirm(self, client, users):
        appointment = (await create_booking(client, users)).json()
        response = await client.put(
            f"/api/appointments/{appointment['id']}/confirm", json={}, headers=patient(users)
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_reads(self, client, users):
        appointment = (await create_booking(client, users)).json()
        await create_booking(client, users, appointment_date="2025-10-15", appointment_time="15:00")

        mine = await client.get("/api/appointments/my", headers=patient(users))
        assert mine.json()["total"] == 2

        today = await client.get("/api/appointments/today", headers=doctor(users))
        assert [a["appointment_time"] for a in today.json()["items"]] == ["15:00"]

        pending = await client.get("/api/appointments/status/pending", headers=doctor(users))
        assert pending.json()["total"] == 2

        one = await client.get(f"/api/appointments/{appointment['id']}", headers=doctor(users))
        assert one.status_code == 200

        stranger = await client.get(
            f"/api/appointments/{appointment['id']}",
            headers=auth_headers(users.other_doctor, UserRole.DOCTOR),
        )
        assert stranger.status_code == 404
        assert stranger.json()["error"] == "AppointmentNotFound"

    @pytest.mark.asyncio
    async def test_unknown_status_is_422(self, client, users):
        response = await client.get("/api/appointments/status/lost", headers=doctor(users))
        assert response.status_code == 422


class TestPayments:
    """Payment endpoint outcomes."""

    @pytest.mark.asyncio
    async def test_declined_payment_is_kept(self, client, users):
        appointment = (await create_booking(client, users)).json()
        declined = await client.post(
            "/api/payments",
            json={"appointment_id": appointment["id"], **CARD, "card_number": "4000000000000000"},
            headers=patient(users),
        )
        assert declined.status_code == 400
        assert declined.json()["success"] is False
        assert declined.json()["payment"]["status"] == "failed"

        history = await client.get("/api/payments/my", headers=patient(users))
        assert history.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_pay_twice(self, client, users):
        appointment = (await create_booking(client, users)).json()
        body = {"appointment_id": appointment["id"], **CARD}
        assert (await client.post("/api/payments", json=body, headers=patient(users))).status_code == 200

        again = await client.post("/api/payments", json=body, headers=patient(users))
        assert again.status_code == 409
        assert again.json()["error"] == "AlreadyPaid"

    @pytest.mark.asyncio
    async def test_expired_card(self, client, users):
        appointment = (await create_booking(client, users)).json()
        response = await client.post(
            "/api/payments",
            json={"appointment_id": appointment["id"], **CARD, "expiry_date": "01/24"},
            headers=patient(users),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "CardExpired"


class TestAudit:
    @pytest.mark.asyncio
    async def test_commit_and_rollback_audited(self, client, users, session_factory):
        await create_booking(client, users)
        await create_booking(client, users, appointment_date="2025-10-18")

        async with session_factory() as session:
            rows = (await session.execute(select(AuditLog.action, AuditLog.user_id))).all()

        actions = [action for action, _ in rows]
        assert "POST /api/appointments COMMIT" in actions
        assert "POST /api/appointments ROLLBACK" in actions
        assert all(user_id == users.patient for action, user_id in rows if "appointments" in action)
