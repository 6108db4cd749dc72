"""Matter (case) aggregate and its bookkeeping rows."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from probatedesk.db.base import Base
from probatedesk.db.enums import PortalStatus

if TYPE_CHECKING:
    from probatedesk.db.models import User


class CaseCounter(Base):
    """Atomic counters for human-facing identifiers (one row per sequence)."""

    __tablename__ = "case_counters"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    current_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)


class Matter(Base):
    """
    One estate being administered through the portal.

    case_code and user_id are assigned once and never reassigned.
    portal_status only moves forward except via the ops override.
    """

    __tablename__ = "matters"
    __table_args__ = (
        Index(
            "uq_matters_client_key_active",
            "client_key",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("idx_matters_user", "user_id", "created_at"),
        Index("idx_matters_portal_status", "portal_status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_code: Mapped[str | None] = mapped_column(String(16), unique=True, nullable=True)
    client_key: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    path_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    deceased_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Eligibility screening
    right_fit_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    right_fit_answers: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    right_fit_reasons: Mapped[list | None] = mapped_column(JSON, nullable=True)
    right_fit_completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Lifecycle
    portal_status: Mapped[str] = mapped_column(
        String(40), default=PortalStatus.INTAKE_COMPLETE.value, nullable=False
    )
    journey_status: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    will_search_mailed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    notices_mailed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    probate_filed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    grant_issued_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    user: Mapped["User | None"] = relationship()
    draft: Mapped["IntakeDraft | None"] = relationship(
        back_populates="matter", uselist=False, cascade="all, delete-orphan"
    )


class IntakeDraft(Base):
    """Free-form intake answers for a matter; read-mostly once submitted."""

    __tablename__ = "intake_drafts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    matter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("matters.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payload: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    final_snapshot: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    matter: Mapped["Matter"] = relationship(back_populates="draft")


class MatterStepProgress(Base):
    """Per-step journey ledger row (one per matter + step)."""

    __tablename__ = "matter_step_progress"
    __table_args__ = (
        UniqueConstraint("matter_id", "step_key", name="uq_matter_step_progress"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    matter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("matters.id", ondelete="CASCADE"), nullable=False
    )
    step_key: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )


class ResumeToken(Base):
    """Time-boxed credential that reattaches an email recipient to a matter."""

    __tablename__ = "resume_tokens"
    __table_args__ = (Index("idx_resume_tokens_matter", "matter_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    matter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("matters.id", ondelete="CASCADE"), nullable=False
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)


class Reminder(Base):
    """Follow-up reminder, one per (matter, type)."""

    __tablename__ = "reminders"
    __table_args__ = (
        UniqueConstraint("matter_id", "type", name="uq_reminders_matter_type"),
        Index("idx_reminders_due", "sent_at", "due_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    matter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("matters.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    due_at: Mapped[datetime] = mapped_column(nullable=False)
    sent_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
