from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    ADMIN = "admin"
    EMPLOYEE = "employee"


class Operation(str, Enum):
    CHECK_IN = "checkin"
    CHECK_OUT = "checkout"


class EndpointClass(str, Enum):
    """Endpoint sensitivity classes, each with its own rate-limit policy."""

    AUTH = "auth"
    PAYROLL_CRITICAL = "payroll_critical"
    ADMINISTRATIVE = "administrative"
    PUBLIC = "public"
    GENERAL = "general"


class DenialReason(str, Enum):
    """Expected negative outcomes of an admission attempt.

    Values double as the machine-readable ``error`` field of HTTP responses.
    """

    UNAUTHENTICATED = "Unauthenticated"
    ROLE_NOT_PERMITTED = "RoleNotPermitted"
    LOCATION_NOT_FOUND = "LocationNotFound"
    OUT_OF_RANGE = "OutOfRange"
    EVIDENCE_OWNERSHIP_VIOLATION = "EvidenceOwnershipViolation"
    MISSING_FIELDS = "MissingFields"
    ALREADY_ON_DUTY = "AlreadyOnDuty"
    NOT_ON_DUTY = "NotOnDuty"
    RATE_LIMITED = "RateLimited"


class EvidenceStatus(str, Enum):
    OWNED = "owned"
    MISSING_ALLOWED = "missing_allowed"
    MISSING = "missing"
    FOREIGN = "foreign"
    WRONG_NAMESPACE = "wrong_namespace"
    MALFORMED = "malformed"
