"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    User roles.

    - COUNSELOR: works assigned leads, reports presence via heartbeats
    - MANAGEMENT: dashboards, attendance, reassignment work queues
    - ADMIN: everything management can do plus manual lead assignment
    """
    COUNSELOR = "counselor"
    MANAGEMENT = "management"
    ADMIN = "admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class Availability(str, Enum):
    """Admin-controlled counselor availability for auto-assignment."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class LeadStatus(str, Enum):
    """
    Lead pipeline status.

    new → contacted → follow_up → enrolled/rejected, on_hold at any point.
    """
    NEW = "new"
    CONTACTED = "contacted"
    FOLLOW_UP = "follow_up"
    ENROLLED = "enrolled"
    REJECTED = "rejected"
    ON_HOLD = "on_hold"

    @classmethod
    def open_statuses(cls) -> list[str]:
        """Statuses where the lead still needs a counselor's attention."""
        return [cls.NEW.value, cls.CONTACTED.value, cls.FOLLOW_UP.value]


class CounselingMode(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class SessionStatus(str, Enum):
    """Counseling session (appointment) status."""
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class PresenceStatus(str, Enum):
    """
    Live counselor presence.

    ACTIVE → AWAY after 15 idle minutes, → OFFLINE after 30.
    OFFLINE is only left through a fresh login.
    """
    ACTIVE = "active"
    AWAY = "away"
    OFFLINE = "offline"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    PARTIAL = "partial"
    ABSENT = "absent"


DEFAULT_LEAD_STATUS = LeadStatus.NEW
DEFAULT_SESSION_STATUS = SessionStatus.SCHEDULED
