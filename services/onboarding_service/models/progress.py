"""Advisory onboarding progress."""

from datetime import datetime

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.onboarding_service.models.enums import RoleKind, enum_values
from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column


class CompletionStep(Base):
    """One completed checklist step for a (user, role)."""

    __tablename__ = "completion_steps"
    __table_args__ = (
        UniqueConstraint("user_id", "role", "step", name="uq_completion_step"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
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
    step: Mapped[str] = mapped_column(String(50), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
