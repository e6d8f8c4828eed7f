"""Integration tests for onboarding_service account endpoints."""

import pytest
from tests.conftest import make_admin_user, override_auth


async def _onboard_manager(client) -> str:
    response = await client.post(
        "/onboarding/complete",
        json={
            "role": "club_manager",
            "name": "Harbour SC",
            "clubType": "sports",
            "personalData": {
                "firstName": "Grace",
                "lastName": "Hopper",
                "dateOfBirth": "1986-12-09",
            },
        },
    )
    assert response.status_code == 201, response.text
    return response.json()["accountNumber"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_account_by_number(client):
    number = await _onboard_manager(client)

    response = await client.get(f"/accounts/{number}")

    assert response.status_code == 200
    data = response.json()
    assert data["account"]["accountNumber"] == number
    assert data["account"]["role"] == "club_manager"
    assert data["account"]["clubName"] == "Harbour SC"
    assert data["user"]["firstName"] == "Grace"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_account_invalid_format(client):
    response = await client.get("/accounts/NOT-A-NUMBER")

    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_ACCOUNT_NUMBER"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_account_not_found(client):
    response = await client.get("/accounts/CQ000000000")

    assert response.status_code == 404
    assert response.json()["code"] == "ACCOUNT_NOT_FOUND"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_search_accounts(client):
    number = await _onboard_manager(client)

    by_name = await client.get("/accounts/search", params={"q": "grace"})
    by_role = await client.get(
        "/accounts/search", params={"q": "grace", "role": "parent"}
    )

    assert by_name.status_code == 200
    assert [a["accountNumber"] for a in by_name.json()["accounts"]] == [number]
    assert by_name.json()["accounts"][0]["userFullName"] == "Grace Hopper"
    assert by_role.json()["accounts"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_search_accounts_short_query(client):
    response = await client.get("/accounts/search", params={"q": "g"})
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_generate_account_number_requires_admin(client):
    response = await client.post(
        "/accounts/generate", json={"userId": 1, "role": "member"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_generate_account_number_as_admin(client, onboarding_app):
    with override_auth(onboarding_app, make_admin_user()):
        response = await client.post(
            "/accounts/generate", json={"userId": 1, "role": "member"}
        )

    assert response.status_code == 201, response.text
    number = response.json()["accountNumber"]
    assert number.startswith("CQ")
    assert len(number) == 11


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "onboarding"}
