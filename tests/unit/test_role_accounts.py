"""Unit tests for role and account management."""

import pytest
from libs.common.errors import ConflictError, NotFoundError
from services.onboarding_service.models import RoleKind, User, UserAccount, UserRole
from services.onboarding_service.services import role_accounts
from sqlalchemy import func, select
from tests.factories import ClubFactory, UserFactory, persist


async def _grant(db, user_id, role, club_id=None):
    user = await role_accounts.lock_user(db, user_id)
    user_role, account = await role_accounts.create_role_and_account(
        db, user=user, role=role, club_id=club_id
    )
    if user.primary_role is None:
        user.primary_role = role
    await db.commit()
    return user_role, account


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_role_and_account(db_session):
    user = await persist(db_session, UserFactory.create())
    club = await persist(db_session, ClubFactory.create(user.id))

    user_role, account = await _grant(db_session, user.id, RoleKind.MEMBER, club.id)

    assert user_role.is_active is True
    assert account.user_role_id == user_role.id
    assert account.role == RoleKind.MEMBER
    assert account.club_id == club.id
    assert len(account.account_number) == 11


@pytest.mark.asyncio
@pytest.mark.unit
async def test_duplicate_active_role_conflicts(db_session):
    user = await persist(db_session, UserFactory.create())
    club = await persist(db_session, ClubFactory.create(user.id))
    await _grant(db_session, user.id, RoleKind.MEMBER, club.id)

    with pytest.raises(ConflictError) as exc_info:
        await _grant(db_session, user.id, RoleKind.MEMBER, club.id)
    assert exc_info.value.error_code == "DUPLICATE_ROLE"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_same_role_at_different_clubs(db_session):
    user = await persist(db_session, UserFactory.create())
    club_a = await persist(db_session, ClubFactory.create(user.id, name="A"))
    club_b = await persist(db_session, ClubFactory.create(user.id, name="B"))

    await _grant(db_session, user.id, RoleKind.MEMBER, club_a.id)
    await _grant(db_session, user.id, RoleKind.MEMBER, club_b.id)

    roles = await role_accounts.list_roles(db_session, user.id)
    assert {r.club_id for r in roles} == {club_a.id, club_b.id}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_second_manager_role_conflicts(db_session):
    user = await persist(db_session, UserFactory.create())
    club_a = await persist(db_session, ClubFactory.create(user.id, name="A"))
    other = await persist(db_session, UserFactory.create())
    club_b = await persist(db_session, ClubFactory.create(other.id, name="B"))
    await _grant(db_session, user.id, RoleKind.CLUB_MANAGER, club_a.id)

    with pytest.raises(ConflictError) as exc_info:
        await _grant(db_session, user.id, RoleKind.CLUB_MANAGER, club_b.id)
    assert exc_info.value.error_code == "CLUB_ALREADY_EXISTS"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_deactivate_role_is_soft_and_idempotent(db_session):
    user = await persist(db_session, UserFactory.create())
    club = await persist(db_session, ClubFactory.create(user.id))
    _, account = await _grant(db_session, user.id, RoleKind.MEMBER, club.id)
    user_id, club_id = user.id, club.id
    account_id, account_number = account.id, account.account_number

    first = await role_accounts.deactivate_role(
        db_session, user_id=user_id, role=RoleKind.MEMBER, club_id=club_id
    )
    second = await role_accounts.deactivate_role(
        db_session, user_id=user_id, role=RoleKind.MEMBER, club_id=club_id
    )

    assert first == (1, None)
    assert second == (0, None)

    stored = (
        await db_session.execute(
            select(UserAccount)
            .where(UserAccount.id == account_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    assert stored.is_active is False
    assert stored.deactivated_at is not None
    assert stored.account_number == account_number
    assert await role_accounts.list_roles(db_session, user_id) == []
    assert len(await role_accounts.list_roles(db_session, user_id, include_inactive=True)) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_deactivate_without_club_covers_every_club(db_session):
    user = await persist(db_session, UserFactory.create())
    club_a = await persist(db_session, ClubFactory.create(user.id, name="A"))
    club_b = await persist(db_session, ClubFactory.create(user.id, name="B"))
    await _grant(db_session, user.id, RoleKind.MEMBER, club_a.id)
    await _grant(db_session, user.id, RoleKind.MEMBER, club_b.id)

    deactivated, primary = await role_accounts.deactivate_role(
        db_session, user_id=user.id, role=RoleKind.MEMBER
    )

    assert deactivated == 2
    assert primary is None
    assert await role_accounts.list_roles(db_session, user.id) == []
    active_accounts = await db_session.scalar(
        select(func.count())
        .select_from(UserAccount)
        .where(UserAccount.user_id == user.id, UserAccount.is_active.is_(True))
    )
    assert active_accounts == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_deactivate_with_club_leaves_other_clubs(db_session):
    user = await persist(db_session, UserFactory.create())
    club_a = await persist(db_session, ClubFactory.create(user.id, name="A"))
    club_b = await persist(db_session, ClubFactory.create(user.id, name="B"))
    await _grant(db_session, user.id, RoleKind.MEMBER, club_a.id)
    await _grant(db_session, user.id, RoleKind.MEMBER, club_b.id)

    deactivated, primary = await role_accounts.deactivate_role(
        db_session, user_id=user.id, role=RoleKind.MEMBER, club_id=club_a.id
    )

    assert deactivated == 1
    assert primary == RoleKind.MEMBER
    roles = await role_accounts.list_roles(db_session, user.id)
    assert [r.club_id for r in roles] == [club_b.id]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_deactivate_nothing_keeps_loaded_objects_usable(db_session):
    user = await persist(db_session, UserFactory.create(email="kept@test.com"))

    result = await role_accounts.deactivate_role(
        db_session, user_id=user.id, role=RoleKind.PARENT
    )

    assert result == (0, None)
    # Still loaded: no lazy refresh is needed to read it
    assert user.email == "kept@test.com"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_deactivate_primary_does_not_promote(db_session):
    user = await persist(db_session, UserFactory.create())
    club = await persist(db_session, ClubFactory.create(user.id))
    await _grant(db_session, user.id, RoleKind.PARENT)
    await _grant(db_session, user.id, RoleKind.MEMBER, club.id)

    deactivated, primary = await role_accounts.deactivate_role(
        db_session, user_id=user.id, role=RoleKind.PARENT
    )

    assert deactivated == 1
    assert primary is None
    stored = (
        await db_session.execute(
            select(User)
            .where(User.id == user.id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    assert stored.primary_role is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_deactivated_role_can_be_added_again(db_session):
    user = await persist(db_session, UserFactory.create())
    club = await persist(db_session, ClubFactory.create(user.id))
    _, old_account = await _grant(db_session, user.id, RoleKind.MEMBER, club.id)
    await role_accounts.deactivate_role(
        db_session, user_id=user.id, role=RoleKind.MEMBER, club_id=club.id
    )

    _, new_account = await _grant(db_session, user.id, RoleKind.MEMBER, club.id)

    assert new_account.account_number != old_account.account_number
    rows = (
        await db_session.execute(select(UserRole).where(UserRole.user_id == user.id))
    ).scalars().all()
    assert sorted(r.is_active for r in rows) == [False, True]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_primary_role(db_session):
    user = await persist(db_session, UserFactory.create())
    club = await persist(db_session, ClubFactory.create(user.id))
    await _grant(db_session, user.id, RoleKind.PARENT)
    await _grant(db_session, user.id, RoleKind.MEMBER, club.id)

    updated = await role_accounts.set_primary_role(
        db_session, user_id=user.id, role=RoleKind.MEMBER
    )
    assert updated.primary_role == RoleKind.MEMBER


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_primary_role_requires_active_role(db_session):
    user = await persist(db_session, UserFactory.create())

    with pytest.raises(NotFoundError):
        await role_accounts.set_primary_role(
            db_session, user_id=user.id, role=RoleKind.CLUB_COACH
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_account_summaries_include_club_name(db_session):
    user = await persist(db_session, UserFactory.create())
    club = await persist(db_session, ClubFactory.create(user.id, name="Harbour SC"))
    await _grant(db_session, user.id, RoleKind.MEMBER, club.id)

    summaries = await role_accounts.list_account_summaries(db_session, user.id)
    assert [s.club_name for s in summaries] == ["Harbour SC"]
