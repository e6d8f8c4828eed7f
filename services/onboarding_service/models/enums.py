"""Enum definitions for onboarding service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class RoleKind(str, enum.Enum):
    """The kind of account a user holds. Each kind has its own onboarding path."""

    CLUB_MANAGER = "club_manager"
    MEMBER = "member"
    PARENT = "parent"
    CLUB_COACH = "club_coach"


# Roles an invite code may grant
INVITABLE_ROLES = frozenset({RoleKind.MEMBER, RoleKind.PARENT})


class ClubType(str, enum.Enum):
    SPORTS = "sports"
    ACADEMIC = "academic"
    SOCIAL = "social"
    PROFESSIONAL = "professional"
    OTHER = "other"


class ChildRelationship(str, enum.Enum):
    PARENT = "parent"
    GUARDIAN = "guardian"
    GRANDPARENT = "grandparent"
    RELATIVE = "relative"
    OTHER = "other"
