"""Integration tests for onboarding_service onboarding endpoints."""

import pytest
from services.onboarding_service.models import ClubInviteCode, UserAccount
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from tests.conftest import make_auth_user, override_auth
from tests.factories import (
    ClubFactory,
    InviteCodeFactory,
    UserFactory,
    child_payload,
    persist,
)

MANAGER_PAYLOAD = {"role": "club_manager", "name": "Harbour SC", "clubType": "sports"}


async def _seed_invite(db, code="JOIN2345", **overrides):
    """A club owned by another user with an active invite code."""
    owner = await persist(db, UserFactory.create(auth_id="owner-auth"))
    club = await persist(db, ClubFactory.create(owner.id, name="Harbour SC"))
    await persist(db, InviteCodeFactory.create(club.id, owner.id, code=code, **overrides))
    return club.id


# ---------------------------------------------------------------------------
# Initial onboarding
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_complete_onboarding_as_club_manager(client):
    """POST /onboarding/complete creates a club, role and account."""
    response = await client.post("/onboarding/complete", json=MANAGER_PAYLOAD)

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["success"] is True
    assert data["accountNumber"].startswith("CQ")
    assert len(data["accountNumber"]) == 11
    assert data["clubId"] is not None
    assert data["user"]["primaryRole"] == "club_manager"
    assert data["user"]["isOnboarded"] is True
    assert data["account"]["clubName"] == "Harbour SC"
    assert data["message"] == "Club created successfully"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_complete_onboarding_as_member(client, db_session):
    club_id = await _seed_invite(db_session)

    response = await client.post(
        "/onboarding/complete",
        json={"role": "member", "clubInviteCode": "join2345", "position": "Forward"},
    )

    assert response.status_code == 201, response.text
    assert response.json()["clubId"] == club_id

    used = await db_session.scalar(
        select(ClubInviteCode.used_count).where(ClubInviteCode.code == "JOIN2345")
    )
    assert used == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_complete_onboarding_unknown_invite(client):
    response = await client.post(
        "/onboarding/complete",
        json={"role": "member", "clubInviteCode": "INVALID123"},
    )

    assert response.status_code == 404
    assert response.json() == {
        "detail": "Invite code not found",
        "code": "INVITE_CODE_NOT_FOUND",
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_complete_onboarding_exhausted_invite(client, db_session):
    await _seed_invite(db_session, usage_limit=1, used_count=1)

    response = await client.post(
        "/onboarding/complete",
        json={"role": "member", "clubInviteCode": "JOIN2345"},
    )

    assert response.status_code == 409
    assert response.json()["code"] == "INVITE_CODE_EXHAUSTED"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_complete_onboarding_as_parent(client):
    response = await client.post(
        "/onboarding/complete",
        json={
            "role": "parent",
            "children": [child_payload(), child_payload(firstName="Sam")],
        },
    )

    assert response.status_code == 201, response.text
    assert len(response.json()["childrenIds"]) == 2

    children = await client.get("/onboarding/children")
    assert children.status_code == 200
    names = [c["firstName"] for c in children.json()["children"]]
    assert names == ["Child", "Sam"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_complete_onboarding_rejects_unknown_role(client):
    response = await client.post("/onboarding/complete", json={"role": "janitor"})
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_complete_onboarding_requires_auth(onboarding_app):
    """Without a bearer token the request never reaches the handler."""
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(
        transport=ASGITransport(app=onboarding_app), base_url="http://test"
    ) as anonymous:
        response = await anonymous.post("/onboarding/complete", json=MANAGER_PAYLOAD)

    assert response.status_code in (401, 403)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_second_club_conflicts(client, db_session):
    first = await client.post("/onboarding/complete", json=MANAGER_PAYLOAD)
    assert first.status_code == 201

    second = await client.post(
        "/onboarding/roles",
        json={"role": "club_manager", "name": "Another", "clubType": "social"},
    )

    assert second.status_code == 409
    assert second.json()["code"] == "CLUB_ALREADY_EXISTS"
    accounts = await db_session.scalar(select(func.count()).select_from(UserAccount))
    assert accounts == 1


# ---------------------------------------------------------------------------
# Role management
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_role_and_switch_primary(client, db_session):
    await _seed_invite(db_session)
    await client.post("/onboarding/complete", json=MANAGER_PAYLOAD)

    added = await client.post(
        "/onboarding/roles", json={"role": "member", "clubInviteCode": "JOIN2345"}
    )
    assert added.status_code == 201, added.text
    assert added.json()["user"]["primaryRole"] == "club_manager"
    assert len(added.json()["accounts"]) == 2

    switched = await client.put("/onboarding/primary-role", json={"role": "member"})
    assert switched.status_code == 200
    assert switched.json()["newPrimaryRole"] == "member"

    status_resp = await client.get("/onboarding/status")
    assert status_resp.json()["user"]["primaryRole"] == "member"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_set_primary_to_role_not_held(client):
    await client.post("/onboarding/complete", json=MANAGER_PAYLOAD)

    response = await client.put("/onboarding/primary-role", json={"role": "parent"})
    assert response.status_code == 404
    assert response.json()["code"] == "ROLE_NOT_FOUND"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_deactivate_role_twice(client):
    await client.post(
        "/onboarding/complete", json={"role": "parent", "children": [child_payload()]}
    )

    first = await client.post("/onboarding/roles/deactivate", json={"role": "parent"})
    second = await client.post("/onboarding/roles/deactivate", json={"role": "parent"})

    assert first.status_code == 200
    assert first.json()["deactivated"] == 1
    assert first.json()["primaryRole"] is None
    assert second.status_code == 200
    assert second.json()["deactivated"] == 0

    status_resp = await client.get("/onboarding/status")
    assert status_resp.json()["accounts"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_deactivate_club_role_without_club_id(client, db_session):
    await _seed_invite(db_session)
    await client.post(
        "/onboarding/complete", json={"role": "member", "clubInviteCode": "JOIN2345"}
    )

    response = await client.post("/onboarding/roles/deactivate", json={"role": "member"})

    assert response.status_code == 200
    assert response.json()["deactivated"] == 1
    assert response.json()["primaryRole"] is None
    assert response.json()["message"] == "Role deactivated successfully"

    status_resp = await client.get("/onboarding/status")
    assert status_resp.json()["accounts"] == []


# ---------------------------------------------------------------------------
# Status & progress
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_progress_for_new_user(client):
    response = await client.get("/onboarding/progress")

    assert response.status_code == 200
    data = response.json()
    assert data["isOnboarded"] is False
    assert data["currentStep"] == "profile"
    assert "club_manager" in data["availableRoles"]
    assert data["accountNumbers"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_completion_endpoint(client):
    await client.post("/onboarding/complete", json=MANAGER_PAYLOAD)

    response = await client.post("/onboarding/completion", json={"step": "invite_members"})

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["role"] == "club_manager"
    assert data["newProgress"] == 50
    assert data["nextSuggestion"] == "profile"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_completion_rejects_unknown_step(client):
    await client.post("/onboarding/complete", json=MANAGER_PAYLOAD)

    response = await client.post("/onboarding/completion", json={"step": "bogus"})
    assert response.status_code == 422
    assert response.json()["code"] == "UNKNOWN_COMPLETION_STEP"


# ---------------------------------------------------------------------------
# Children
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_child_requires_parent_role(client, onboarding_app):
    user = make_auth_user(user_id="no-parent-role")
    with override_auth(onboarding_app, user):
        response = await client.post("/onboarding/children", json=child_payload())

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_child_for_parent(client):
    await client.post(
        "/onboarding/complete", json={"role": "parent", "children": [child_payload()]}
    )

    response = await client.post(
        "/onboarding/children",
        json=child_payload(firstName="Robin", relationship="guardian"),
    )

    assert response.status_code == 201, response.text
    assert response.json()["relationship"] == "guardian"


# ---------------------------------------------------------------------------
# Retryable failures
# ---------------------------------------------------------------------------


def _lock_timeout_error() -> OperationalError:
    return OperationalError(
        "SELECT ... FOR UPDATE", {}, Exception("canceling statement due to lock timeout")
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_complete_onboarding_lock_timeout_returns_503(client, monkeypatch):
    from services.onboarding_service.services import onboarding

    async def _lock_timeout(*args, **kwargs):
        raise _lock_timeout_error()

    monkeypatch.setattr(onboarding, "lock_user", _lock_timeout)

    response = await client.post("/onboarding/complete", json=MANAGER_PAYLOAD)

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert response.json()["code"] == "TRANSIENT_ERROR"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unhandled_operational_error_returns_503(client, monkeypatch):
    from services.onboarding_service.services import status as status_service

    async def _database_busy(*args, **kwargs):
        raise _lock_timeout_error()

    monkeypatch.setattr(status_service, "get_user_status", _database_busy)

    response = await client.get("/onboarding/status")

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert response.json() == {
        "detail": "Temporary failure, please retry",
        "code": "TRANSIENT_ERROR",
    }
