"""HTTP tests of the appointment, notification and health endpoints."""

from collections.abc import AsyncGenerator
from datetime import timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
import pytest_asyncio
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from httpx import ASGITransport, AsyncClient
from jose import jwt

from app.config import settings
from app.core.security import access_token_subject, decode_access_token, issue_access_token
from app.dependencies import (
    get_appointment_service,
    get_current_actor,
    get_current_user_id,
    get_notification_service,
)
from app.main import app
from app.services.appointment_service import AppointmentService
from app.services.appointment_workflow import AppointmentWorkflow
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.recipient_resolver import RecipientResolver
from tests.factories import (
    FakeAppointmentRepository,
    FakeEmployeeRepository,
    as_actor,
    make_appointment,
)

API = "/api/v1"


class ActorSwitch:
    """Lets a test change who the authenticated caller is."""

    def __init__(self, actor):
        self.actor = actor

    async def __call__(self):
        return self.actor


@pytest.fixture
def stored(people):
    return make_appointment(people)


@pytest.fixture
def caller(people) -> ActorSwitch:
    return ActorSwitch(as_actor(people.employee_user, people.employee))


@pytest_asyncio.fixture
async def client(people, harness, directory, stored, caller) -> AsyncGenerator[AsyncClient, None]:
    service = AppointmentService(
        FakeAppointmentRepository([stored]),
        FakeEmployeeRepository([people.employee, people.other_employee]),
        RecipientResolver(directory),
        AppointmentWorkflow("+212 5 22 00 00 00"),
        NotificationDispatcher.for_router(harness.router),
    )
    app.dependency_overrides[get_current_actor] = caller
    app.dependency_overrides[get_appointment_service] = lambda: service
    app.dependency_overrides[get_notification_service] = lambda: harness.notifications

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_request_appointment(client, harness, people) -> None:
    response = await client.post(
        f"{API}/appointments",
        json={"requested_date_employee": "2026-04-01T10:00:00Z", "motif": "Contrôle"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "REQUESTED_EMPLOYEE"
    assert data["motif"] == "Contrôle"
    assert data["can_comment"] is True
    assert len(harness.store.for_user(people.nurse)) == 1


@pytest.mark.asyncio
async def test_invalid_transition_reports_both_statuses(client, stored) -> None:
    response = await client.post(f"{API}/appointments/{stored.id}/confirm")

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "InvalidStateTransitionException"
    assert body["current_status"] == "REQUESTED_EMPLOYEE"
    assert body["target_status"] == "CONFIRMED"


@pytest.mark.asyncio
async def test_wrong_role_is_forbidden(client, stored) -> None:
    response = await client.post(
        f"{API}/appointments/{stored.id}/propose",
        json={"proposed_date": "2026-04-01T10:00:00Z"},
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_blank_comment_is_rejected(client, stored) -> None:
    response = await client.post(f"{API}/appointments/{stored.id}/comments", json={"comment": "   "})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_appointment(client) -> None:
    response = await client.get(f"{API}/appointments/{uuid4()}")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_manager_view_is_redacted(client, caller, people, stored) -> None:
    caller.actor = as_actor(people.manager2)

    response = await client.get(f"{API}/appointments/{stored.id}")

    assert response.status_code == 200
    assert response.json()["motif"] is None
    assert response.json()["notes"] is None


@pytest.mark.asyncio
async def test_list_with_filters(client, caller, people, stored) -> None:
    caller.actor = as_actor(people.rh)

    response = await client.get(
        f"{API}/appointments", params={"status": ["REQUESTED_EMPLOYEE"], "type": "SPONTANEOUS"}
    )
    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert response.json()["items"][0]["id"] == str(stored.id)

    empty = await client.get(f"{API}/appointments", params={"status": "COMPLETED"})
    assert empty.json()["total"] == 0


@pytest.mark.asyncio
async def test_cancel_with_reason(client, caller, people, stored) -> None:
    caller.actor = as_actor(people.nurse)

    response = await client.post(
        f"{API}/appointments/{stored.id}/cancel", json={"reason": "Médecin indisponible"}
    )

    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"
    assert response.json()["cancellation_reason"] == "Médecin indisponible"


@pytest.mark.asyncio
async def test_notification_feed(client, caller, harness, people) -> None:
    first = await harness.notifications.send_general_notification(people.employee_user, "Un", "m")
    await harness.notifications.send_general_notification(people.employee_user, "Deux", "m")
    await harness.notifications.send_general_notification(people.nurse, "Autre", "m")

    feed = await client.get(f"{API}/notifications")
    assert feed.status_code == 200
    assert feed.json()["total"] == 2
    assert [n["title"] for n in feed.json()["items"]] == ["Deux", "Un"]

    count = await client.get(f"{API}/notifications/unread/count")
    assert count.json() == {"unread": 2}

    read = await client.patch(f"{API}/notifications/{first.id}/read")
    assert read.status_code == 200
    assert read.json()["read"] is True

    unread = await client.get(f"{API}/notifications/unread")
    assert [n["title"] for n in unread.json()["items"]] == ["Deux"]

    marked = await client.patch(f"{API}/notifications/read-all")
    assert marked.json() == {"updated": 1}

    deleted = await client.delete(f"{API}/notifications/{first.id}")
    assert deleted.status_code == 204


@pytest.mark.asyncio
async def test_foreign_notification_is_forbidden(client, harness, people) -> None:
    theirs = await harness.notifications.send_general_notification(people.nurse, "t", "m")

    response = await client.patch(f"{API}/notifications/{theirs.id}/read")

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invalid_token_is_rejected() -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        response = await ac.get(
            f"{API}/appointments/me", headers={"Authorization": "Bearer not-a-token"}
        )

    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize(("db_up", "expected"), [(True, "healthy"), (False, "degraded")])
async def test_readiness(db_up, expected) -> None:
    with patch(
        "app.api.v1.endpoints.health.check_database_connection",
        AsyncMock(return_value=db_up),
    ):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get(f"{API}/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == expected
    assert body["database"] == ("up" if db_up else "down")
    assert body["notifications"]["pending_dispatches"] == 0
    assert body["notifications"]["dispatch_mode"] == settings.notification_dispatch_mode


@pytest.mark.asyncio
async def test_liveness_echoes_the_request_id() -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        response = await ac.get(f"{API}/health/live", headers={"X-Request-ID": "req-42"})

    assert response.json() == {"status": "alive"}
    assert response.headers["X-Request-ID"] == "req-42"


@pytest.mark.asyncio
async def test_token_subject_becomes_the_user_id() -> None:
    user_id = uuid4()
    token = issue_access_token(user_id, extra_claims={"roles": ["INFIRMIER"]})

    resolved = await get_current_user_id(HTTPAuthorizationCredentials(scheme="Bearer", credentials=token))

    assert resolved == user_id
    assert decode_access_token(token)["roles"] == ["INFIRMIER"]


def test_reserved_claims_cannot_be_overridden() -> None:
    token = issue_access_token("abc", extra_claims={"type": "refresh", "sub": "other"})

    claims = decode_access_token(token)
    assert claims["sub"] == "abc"
    assert claims["type"] == "access"


@pytest.mark.parametrize(
    "token",
    [
        jwt.encode(
            {"sub": "00000000-0000-0000-0000-000000000001", "type": "refresh"},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        ),
        issue_access_token("not-a-uuid"),
        "garbage",
    ],
    ids=["refresh-token", "non-uuid-subject", "malformed"],
)
def test_unusable_tokens_have_no_subject(token) -> None:
    assert access_token_subject(token) is None


@pytest.mark.asyncio
async def test_expired_token_is_rejected() -> None:
    token = issue_access_token(uuid4(), expires_delta=timedelta(seconds=-5))

    with pytest.raises(HTTPException) as exc_info:
        await get_current_user_id(HTTPAuthorizationCredentials(scheme="Bearer", credentials=token))

    assert exc_info.value.status_code == 401
