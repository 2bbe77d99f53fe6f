import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Boolean,
    ForeignKey,
    Integer,
    JSON,
    Text,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from ..db import Base


ROLE_RESIDENT = "resident"
ROLE_OFFICIAL = "official"
ROLE_ADMIN = "admin"
ROLES = (ROLE_RESIDENT, ROLE_OFFICIAL, ROLE_ADMIN)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def uuid_pk() -> Mapped[str]:
    return mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = uuid_pk()
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=ROLE_RESIDENT, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime)


class Report(Base):
    __tablename__ = "reports"

    id: Mapped[str] = uuid_pk()
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False)
    location: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="submitted", index=True)
    images: Mapped[list] = mapped_column(JSON, default=list)
    # Snapshot of the latest exchange; report_messages holds the full history
    additional_info: Mapped[Optional[str]] = mapped_column(Text)
    additional_info_images: Mapped[list] = mapped_column(JSON, default=list)
    admin_feedback: Mapped[Optional[str]] = mapped_column(Text)
    submitted_by: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    submitted_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    submitter = relationship("User", lazy="joined")


class ReportMessage(Base):
    """Append-only conversation entry attached to a report"""
    __tablename__ = "report_messages"

    id: Mapped[str] = uuid_pk()
    report_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    sender_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    sender_role: Mapped[str] = mapped_column(String(20), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    images: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    sender = relationship("User", lazy="joined")

    __table_args__ = (
        UniqueConstraint("report_id", "sequence", name="uq_report_message_sequence"),
    )


class Memo(Base):
    __tablename__ = "memos"

    id: Mapped[str] = uuid_pk()
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)  # memo|ordinance
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    effective_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    file_url: Mapped[Optional[str]] = mapped_column(Text)
    issued_by: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    issuer = relationship("User", lazy="joined")


class SystemLog(Base):
    """Append-only audit trail of state-changing actions"""
    __tablename__ = "system_logs"

    id: Mapped[str] = uuid_pk()
    # Actor identity is denormalized so entries survive later user changes
    user_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    user_name: Mapped[Optional[str]] = mapped_column(String(255))
    user_role: Mapped[Optional[str]] = mapped_column(String(20))
    action: Mapped[str] = mapped_column(Text, nullable=False)
    affected_data: Mapped[Optional[str]] = mapped_column(Text)
    module: Mapped[Optional[str]] = mapped_column(String(50))
    ip_address: Mapped[Optional[str]] = mapped_column(String(45))
    user_agent: Mapped[Optional[str]] = mapped_column(Text)
    metadata_json: Mapped[Optional[dict]] = mapped_column("metadata", JSON)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)

    __table_args__ = (
        Index("idx_system_logs_role_module", "user_role", "module"),
    )
