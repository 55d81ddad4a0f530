"""
Integration tests for event registration endpoints.
"""
import pytest
import uuid
from httpx import AsyncClient
from datetime import datetime, timedelta, timezone

from gowra.core.security import hash_password
from gowra.db.models import User, Event, Registration, RoleEnum, EventStatusEnum, PaymentStatusEnum
from gowra.services.token_service import access_token_for


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def add_event(db_session, organizer: User, **overrides) -> Event:
    fields = dict(
        name="Workshop",
        venue="Lab",
        date=datetime.now(timezone.utc) + timedelta(days=3),
        price=250,
        status=EventStatusEnum.published,
        organizer_id=organizer.id,
    )
    fields.update(overrides)
    event = Event(**fields)
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest.mark.integration
@pytest.mark.asyncio
class TestRegistrationEndpoints:
    """Test registering for, listing and cancelling events."""

    async def test_register_for_event(self, client: AsyncClient, user_token, test_user, test_event):
        response = await client.post(
            "/api/registrations/",
            headers=auth_header(user_token),
            json={"eventId": str(test_event.id)}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["event_id"] == str(test_event.id)
        assert data["user_id"] == str(test_user.id)
        assert data["payment_status"] == "pending"
        assert data["payment_reference"].startswith("REG_")

    async def test_organizer_can_register_too(self, client: AsyncClient, organizer_token, test_event):
        response = await client.post(
            "/api/registrations/",
            headers=auth_header(organizer_token),
            json={"eventId": str(test_event.id)}
        )

        assert response.status_code == 201

    async def test_register_requires_authentication(self, client: AsyncClient, test_event):
        response = await client.post("/api/registrations/", json={"eventId": str(test_event.id)})

        assert response.status_code == 401

    async def test_register_twice_fails(self, client: AsyncClient, user_token, test_event):
        body = {"eventId": str(test_event.id)}
        await client.post("/api/registrations/", headers=auth_header(user_token), json=body)

        response = await client.post("/api/registrations/", headers=auth_header(user_token), json=body)

        assert response.status_code == 409
        assert response.json()["error"] == "You are already registered for this event"

    async def test_register_unknown_event(self, client: AsyncClient, user_token):
        response = await client.post(
            "/api/registrations/",
            headers=auth_header(user_token),
            json={"eventId": str(uuid.uuid4())}
        )

        assert response.status_code == 404

    async def test_register_for_full_event(
        self, client: AsyncClient, db_session, user_token, test_organizer
    ):
        event = await add_event(db_session, test_organizer, capacity=1)
        db_session.add(Registration(user_id=test_organizer.id, event_id=event.id, payment_amount=0))
        await db_session.commit()

        response = await client.post(
            "/api/registrations/",
            headers=auth_header(user_token),
            json={"eventId": str(event.id)}
        )

        assert response.status_code == 409
        assert response.json()["error"] == "This event has reached its maximum capacity"

    async def test_register_for_past_event(self, client: AsyncClient, db_session, user_token, test_organizer):
        event = await add_event(db_session, test_organizer, date=datetime.now(timezone.utc) - timedelta(days=1))

        response = await client.post(
            "/api/registrations/",
            headers=auth_header(user_token),
            json={"eventId": str(event.id)}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Cannot register for past events"

    async def test_register_after_deadline(self, client: AsyncClient, db_session, user_token, test_organizer):
        event = await add_event(
            db_session,
            test_organizer,
            registration_deadline=datetime.now(timezone.utc) - timedelta(hours=1),
        )

        response = await client.post(
            "/api/registrations/",
            headers=auth_header(user_token),
            json={"eventId": str(event.id)}
        )

        assert response.status_code == 400

    async def test_register_for_draft_event(self, client: AsyncClient, db_session, user_token, test_organizer):
        event = await add_event(db_session, test_organizer, status=EventStatusEnum.draft)

        response = await client.post(
            "/api/registrations/",
            headers=auth_header(user_token),
            json={"eventId": str(event.id)}
        )

        assert response.status_code == 400

    async def test_my_registrations(self, client: AsyncClient, user_token, test_events):
        for event in test_events[:2]:
            await client.post(
                "/api/registrations/",
                headers=auth_header(user_token),
                json={"eventId": str(event.id)}
            )

        response = await client.get("/api/registrations/my-registrations", headers=auth_header(user_token))

        assert response.status_code == 200
        assert {r["event_id"] for r in response.json()} == {str(e.id) for e in test_events[:2]}

    async def test_cancel_registration(self, client: AsyncClient, user_token, test_event):
        created = await client.post(
            "/api/registrations/",
            headers=auth_header(user_token),
            json={"eventId": str(test_event.id)}
        )

        response = await client.delete(
            f"/api/registrations/{created.json()['id']}",
            headers=auth_header(user_token)
        )

        assert response.status_code == 200
        mine = await client.get("/api/registrations/my-registrations", headers=auth_header(user_token))
        assert mine.json() == []

    async def test_cancel_someone_elses_registration(
        self, client: AsyncClient, db_session, user_token, test_event
    ):
        stranger = User(
            email="stranger@example.com",
            hashed_password=hash_password("Test123!@#"),
            role=RoleEnum.regular,
        )
        db_session.add(stranger)
        await db_session.commit()
        await db_session.refresh(stranger)
        created = await client.post(
            "/api/registrations/",
            headers=auth_header(user_token),
            json={"eventId": str(test_event.id)}
        )

        response = await client.delete(
            f"/api/registrations/{created.json()['id']}",
            headers=auth_header(access_token_for(stranger))
        )

        assert response.status_code == 404

    async def test_cancel_paid_registration(
        self, client: AsyncClient, db_session, user_token, test_user, test_event
    ):
        registration = Registration(
            user_id=test_user.id,
            event_id=test_event.id,
            payment_status=PaymentStatusEnum.paid,
            payment_amount=0,
        )
        db_session.add(registration)
        await db_session.commit()
        await db_session.refresh(registration)

        response = await client.delete(
            f"/api/registrations/{registration.id}",
            headers=auth_header(user_token)
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Paid registrations cannot be cancelled"


@pytest.mark.integration
@pytest.mark.asyncio
class TestRegistrationDetail:
    """Reading a single registration and admin status changes."""

    async def _registration(self, db_session, user: User, event: Event, **fields) -> Registration:
        registration = Registration(user_id=user.id, event_id=event.id, payment_amount=event.price, **fields)
        db_session.add(registration)
        await db_session.commit()
        await db_session.refresh(registration)
        return registration

    async def test_owner_sees_event_and_attendee(
        self, client: AsyncClient, db_session, user_token, test_user, test_event
    ):
        registration = await self._registration(db_session, test_user, test_event)

        response = await client.get(f"/api/registrations/{registration.id}", headers=auth_header(user_token))

        assert response.status_code == 200
        data = response.json()
        assert data["event_name"] == "Test Event"
        assert data["event_venue"] == "Test Venue"
        assert data["user_email"] == test_user.email
        assert data["user_name"] == "Test User"
        assert data["payment_status"] == "pending"

    async def test_admin_sees_any_registration(
        self, client: AsyncClient, db_session, admin_token, test_user, test_event
    ):
        registration = await self._registration(db_session, test_user, test_event)

        response = await client.get(f"/api/registrations/{registration.id}", headers=auth_header(admin_token))

        assert response.status_code == 200
        assert response.json()["user_id"] == str(test_user.id)

    async def test_someone_elses_registration_is_not_found(
        self, client: AsyncClient, db_session, organizer_token, test_user, test_event
    ):
        registration = await self._registration(db_session, test_user, test_event)

        response = await client.get(f"/api/registrations/{registration.id}", headers=auth_header(organizer_token))

        assert response.status_code == 404
        assert response.json()["error"] == "Registration not found"

    async def test_admin_updates_payment_status(
        self, client: AsyncClient, db_session, admin_token, test_user, test_event
    ):
        registration = await self._registration(db_session, test_user, test_event)

        response = await client.put(
            f"/api/registrations/{registration.id}/status",
            headers=auth_header(admin_token),
            json={"paymentStatus": "paid"}
        )

        assert response.status_code == 200
        assert response.json()["payment_status"] == "paid"

    async def test_status_update_rejects_unknown_status(
        self, client: AsyncClient, db_session, admin_token, test_user, test_event
    ):
        registration = await self._registration(db_session, test_user, test_event)

        response = await client.put(
            f"/api/registrations/{registration.id}/status",
            headers=auth_header(admin_token),
            json={"paymentStatus": "gifted"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_status_update_requires_admin(
        self, client: AsyncClient, db_session, organizer_token, test_user, test_event
    ):
        registration = await self._registration(db_session, test_user, test_event)

        response = await client.put(
            f"/api/registrations/{registration.id}/status",
            headers=auth_header(organizer_token),
            json={"paymentStatus": "paid"}
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Admin access required"
        assert "needsUpgrade" not in response.json()

    async def test_status_update_unknown_registration(self, client: AsyncClient, admin_token):
        response = await client.put(
            f"/api/registrations/{uuid.uuid4()}/status",
            headers=auth_header(admin_token),
            json={"paymentStatus": "paid"}
        )

        assert response.status_code == 404


@pytest.mark.integration
@pytest.mark.asyncio
class TestRegistrationStats:
    """Admin overview of registrations and revenue."""

    async def test_overview_and_top_events(
        self, client: AsyncClient, db_session, admin_token, test_user, test_organizer, test_admin
    ):
        popular = await add_event(db_session, test_organizer, name="Popular", price=100)
        quiet = await add_event(db_session, test_organizer, name="Quiet", price=40)
        db_session.add_all([
            Registration(user_id=test_user.id, event_id=popular.id, payment_amount=100,
                         payment_status=PaymentStatusEnum.paid),
            Registration(user_id=test_organizer.id, event_id=popular.id, payment_amount=100,
                         payment_status=PaymentStatusEnum.pending),
            Registration(user_id=test_admin.id, event_id=popular.id, payment_amount=100,
                         payment_status=PaymentStatusEnum.paid),
            Registration(user_id=test_user.id, event_id=quiet.id, payment_amount=40,
                         payment_status=PaymentStatusEnum.failed),
        ])
        await db_session.commit()

        response = await client.get("/api/registrations/stats/overview", headers=auth_header(admin_token))

        assert response.status_code == 200
        data = response.json()
        assert data["overview"] == {
            "total_registrations": 4,
            "paid_registrations": 2,
            "pending_registrations": 1,
            "failed_registrations": 1,
            "total_revenue": 200.0,
        }
        assert [e["event_name"] for e in data["top_events"]] == ["Popular", "Quiet"]
        assert data["top_events"][0]["registration_count"] == 3
        assert data["top_events"][0]["event_revenue"] == 200.0
        assert data["top_events"][1]["event_revenue"] == 0.0

    async def test_overview_when_empty(self, client: AsyncClient, admin_token):
        response = await client.get("/api/registrations/stats/overview", headers=auth_header(admin_token))

        assert response.json()["overview"]["total_registrations"] == 0
        assert response.json()["overview"]["total_revenue"] == 0.0
        assert response.json()["top_events"] == []

    async def test_overview_requires_admin(self, client: AsyncClient, user_token):
        response = await client.get("/api/registrations/stats/overview", headers=auth_header(user_token))

        assert response.status_code == 403
