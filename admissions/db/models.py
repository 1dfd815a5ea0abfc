"""SQLAlchemy ORM models for counselors, leads, sessions and presence."""

import uuid
from datetime import date, datetime

from sqlalchemy import (
    JSON, Boolean, CheckConstraint, Date, ForeignKey, Index, Integer,
    String, Text, UniqueConstraint, Uuid, func, text
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from admissions.db.base import Base
from admissions.db.enums import (
    DEFAULT_LEAD_STATUS, DEFAULT_SESSION_STATUS,
    AttendanceStatus, Availability, CounselingMode, PresenceStatus, Role
)


# =============================================================================
# Identity
# =============================================================================

class User(Base):
    """
    Login identity.

    Counselors additionally own a CounselorProfile; admin and management
    users only exist here.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), default=Role.COUNSELOR.value, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    token_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    counselor_profile: Mapped["CounselorProfile | None"] = relationship(
        back_populates="user", uselist=False
    )


# =============================================================================
# Counselors & Courses
# =============================================================================

class CounselorProfile(Base):
    """
    An admissions counselor.

    current_load counts assigned leads and is only changed through
    SQL-side increments/decrements in the assignment and presence services.
    """
    __tablename__ = "counselor_profiles"
    __table_args__ = (
        CheckConstraint("max_capacity >= 1", name="ck_counselor_max_capacity"),
        Index("idx_counselor_profiles_availability", "availability"),
        Index("idx_counselor_profiles_current_load", "current_load"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=True
    )
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mobile: Mapped[str | None] = mapped_column(String(50), nullable=True)
    expertise: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    languages: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    availability: Mapped[str] = mapped_column(
        String(20), default=Availability.ACTIVE.value, nullable=False
    )
    max_capacity: Mapped[int] = mapped_column(Integer, default=50, nullable=False)
    current_load: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped["User | None"] = relationship(back_populates="counselor_profile")
    presence: Mapped["CounselorPresence | None"] = relationship(
        back_populates="counselor", uselist=False
    )

    @property
    def load_percentage(self) -> float:
        return self.current_load / self.max_capacity * 100


class Course(Base):
    """Course a lead is enquiring about. Maintained outside this service."""
    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


# =============================================================================
# Leads & Sessions
# =============================================================================

class Lead(Base):
    """
    An inbound admissions enquiry.

    assigned_counselor_id / auto_assigned / assignment_reason are only
    written by the assignment service and the presence release path.
    """
    __tablename__ = "leads"
    __table_args__ = (
        Index("idx_leads_assigned_counselor_status", "assigned_counselor_id", "status"),
        Index("idx_leads_status_submitted", "status", "submitted_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    lead_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    student_name: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    parent_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    parent_mobile: Mapped[str | None] = mapped_column(String(50), nullable=True)
    preferred_language: Mapped[str] = mapped_column(
        String(50), default="English", nullable=False
    )
    course_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("courses.id", ondelete="RESTRICT"), nullable=False
    )
    assigned_counselor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("counselor_profiles.id", ondelete="SET NULL"), nullable=True
    )
    auto_assigned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    assignment_reason: Mapped[str] = mapped_column(Text, default="", nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_LEAD_STATUS.value, nullable=False
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    course: Mapped["Course"] = relationship()
    assigned_counselor: Mapped["CounselorProfile | None"] = relationship()


class CounselingSession(Base):
    """A scheduled counseling meeting between a counselor and a lead."""
    __tablename__ = "counseling_sessions"
    __table_args__ = (
        Index("idx_counseling_sessions_counselor_status", "counselor_id", "status"),
        Index("idx_counseling_sessions_lead", "lead_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    lead_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False
    )
    counselor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("counselor_profiles.id", ondelete="CASCADE"), nullable=False
    )
    scheduled_date: Mapped[datetime] = mapped_column(nullable=False)
    mode: Mapped[str] = mapped_column(
        String(20), default=CounselingMode.ONLINE.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_SESSION_STATUS.value, nullable=False
    )
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    lead: Mapped["Lead"] = relationship()
    counselor: Mapped["CounselorProfile"] = relationship()


# =============================================================================
# Presence & Attendance
# =============================================================================

class CounselorPresence(Base):
    """
    Live presence for one counselor (1:1), created on first login.
    """
    __tablename__ = "counselor_presence"
    __table_args__ = (
        Index("idx_counselor_presence_status", "status"),
        Index("idx_counselor_presence_last_activity", "last_activity_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    counselor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("counselor_profiles.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20), default=PresenceStatus.OFFLINE.value, nullable=False
    )
    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_activity_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_status_change: Mapped[datetime | None] = mapped_column(nullable=True)
    active_minutes_today: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_active_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    counselor: Mapped["CounselorProfile"] = relationship(back_populates="presence")


class DailyAttendance(Base):
    """One row per counselor per calendar day."""
    __tablename__ = "daily_attendance"
    __table_args__ = (
        UniqueConstraint("counselor_id", "date", name="uq_daily_attendance_counselor_date"),
        Index("idx_daily_attendance_date", "date"),
        Index("idx_daily_attendance_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    counselor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("counselor_profiles.id", ondelete="CASCADE"), nullable=False
    )
    presence_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("counselor_presence.id", ondelete="CASCADE"), nullable=False
    )
    attendance_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    login_time: Mapped[datetime | None] = mapped_column(nullable=True)
    logout_time: Mapped[datetime | None] = mapped_column(nullable=True)
    active_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=AttendanceStatus.ABSENT.value, nullable=False
    )

    counselor: Mapped["CounselorProfile"] = relationship()
