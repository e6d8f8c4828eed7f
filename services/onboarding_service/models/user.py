"""User identity, personal profile and children."""

from datetime import date, datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.onboarding_service.models.enums import (
    ChildRelationship,
    RoleKind,
    enum_values,
)
from sqlalchemy import Boolean, CheckConstraint, Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship


class User(Base):
    """Platform identity. Holds zero or more roles and one primary role."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    auth_id: Mapped[Optional[str]] = mapped_column(
        String, unique=True, index=True, nullable=True
    )
    email: Mapped[Optional[str]] = mapped_column(String, index=True, nullable=True)
    primary_role: Mapped[Optional[RoleKind]] = mapped_column(
        SAEnum(
            RoleKind,
            name="role_kind_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=True,
    )
    is_onboarded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    onboarding_completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    profile: Mapped[Optional["UserProfile"]] = relationship(
        "UserProfile", back_populates="user", uselist=False, lazy="selectin"
    )

    def __repr__(self):
        return f"<User {self.id}>"


class UserProfile(Base):
    """Personal information. One per user, written during onboarding."""

    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    emergency_contact: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    medical_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="profile")

    @property
    def full_name(self) -> Optional[str]:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or None


class UserChild(Base):
    """A child registered by a parent, either at onboarding or afterwards."""

    __tablename__ = "user_children"
    __table_args__ = (
        CheckConstraint(
            "first_name IS NOT NULL AND last_name IS NOT NULL "
            "AND date_of_birth IS NOT NULL",
            name="ck_user_children_identity",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    parent_user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    relationship_kind: Mapped[ChildRelationship] = mapped_column(
        "relationship",
        SAEnum(
            ChildRelationship,
            name="child_relationship_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=ChildRelationship.PARENT,
        nullable=False,
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    club_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("clubs.id", ondelete="SET NULL"), index=True, nullable=True
    )
    membership_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    medical_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )
