"""Enums and constants for HRMS — matching the database ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    """Closed role set, declared from most to least privileged."""

    SUPERADMIN = "SUPERADMIN"
    ADMIN = "ADMIN"
    HR = "HR"
    HOD = "HOD"
    MANAGER = "MANAGER"
    DIRECTOR = "DIRECTOR"
    EMPLOYEE = "EMPLOYEE"


# ── Attendance ──────────────────────────────────────────────────────

class AttendanceStatus(str, enum.Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    HALF_DAY = "HALF_DAY"
    LATE = "LATE"
    EARLY_LEAVE = "EARLY_LEAVE"


class DayState(str, enum.Enum):
    """Position of a (user, date) pair in the punch lifecycle."""

    none = "none"
    open = "open"
    closed = "closed"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    SICK = "SICK"
    CASUAL = "CASUAL"
    ANNUAL = "ANNUAL"
    MATERNITY = "MATERNITY"
    PATERNITY = "PATERNITY"
    EMERGENCY = "EMERGENCY"


class LeaveStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"



# ── Misc constants ──────────────────────────────────────────────────

NO_DEPARTMENT_LABEL = "No Department"
MAX_HISTORY_RANGE_DAYS = 90
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
