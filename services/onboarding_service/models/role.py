"""Per-user roles and the numbered accounts that represent them."""

from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.onboarding_service.models.enums import RoleKind, enum_values
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

ACCOUNT_NUMBER_PATTERN = r"^CQ\d{9}$"


class UserRole(Base):
    """A (user, role-kind, club) tuple. Soft-deactivated, never deleted."""

    __tablename__ = "user_roles"
    __table_args__ = (
        # At most one active row per (user, role, club)
        Index(
            "uq_user_roles_active_scope",
            "user_id",
            "role",
            "club_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("ix_user_roles_user_active", "user_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[RoleKind] = mapped_column(
        SAEnum(
            RoleKind,
            name="role_kind_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    club_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("clubs.id", ondelete="SET NULL"), index=True, nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )
    deactivated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    account: Mapped[Optional["UserAccount"]] = relationship(
        back_populates="user_role", uselist=False, lazy="selectin"
    )

    def __repr__(self):
        return f"<UserRole user={self.user_id} {self.role.value} club={self.club_id}>"


class UserAccount(Base):
    """The externally visible account for one UserRole."""

    __tablename__ = "user_accounts"
    __table_args__ = (
        CheckConstraint("length(account_number) = 11", name="ck_account_number_length"),
        Index("ix_user_accounts_user_active", "user_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_roles.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    account_number: Mapped[str] = mapped_column(
        String(20), unique=True, index=True, nullable=False
    )
    role: Mapped[RoleKind] = mapped_column(
        SAEnum(
            RoleKind,
            name="role_kind_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    club_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("clubs.id", ondelete="SET NULL"), nullable=True
    )

    # Role-specific data (personal data lives in user_profiles)
    position: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    parent_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    onboarding_completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    deactivated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    user_role: Mapped["UserRole"] = relationship(back_populates="account")
