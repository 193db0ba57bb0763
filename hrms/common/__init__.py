"""Common module — shared utilities for HRMS."""

from hrms.common.audit import AuditTrail, create_audit_entry
from hrms.common.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    AttendanceStatus,
    DayState,
    LeaveStatus,
    LeaveType,
    UserRole,
)
from hrms.common.exceptions import (
    AppException,
    AuthorizationException,
    ConflictError,
    DuplicateRecordException,
    InvalidRangeException,
    InvalidStateException,
    NotFoundException,
    StoreException,
    ValidationException,
    register_exception_handlers,
)
from hrms.common.filters import apply_filters, apply_search
from hrms.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "AttendanceStatus",
    "DayState",
    "LeaveStatus",
    "LeaveType",
    "UserRole",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "AuthorizationException",
    "ConflictError",
    "DuplicateRecordException",
    "InvalidRangeException",
    "InvalidStateException",
    "NotFoundException",
    "StoreException",
    "ValidationException",
    "register_exception_handlers",
    # Filters
    "apply_filters",
    "apply_search",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
