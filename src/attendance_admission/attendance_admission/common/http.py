from __future__ import annotations

import logging
from functools import wraps

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.enums import DenialReason, Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    CollaboratorUnavailable,
    DataIntegrityError,
    MissingFields,
    ValidationError,
)

logger = logging.getLogger(__name__)

DENIAL_STATUS = {
    DenialReason.UNAUTHENTICATED: 401,
    DenialReason.ROLE_NOT_PERMITTED: 403,
    DenialReason.EVIDENCE_OWNERSHIP_VIOLATION: 403,
    DenialReason.LOCATION_NOT_FOUND: 404,
    DenialReason.OUT_OF_RANGE: 400,
    DenialReason.MISSING_FIELDS: 400,
    DenialReason.ALREADY_ON_DUTY: 400,
    DenialReason.NOT_ON_DUTY: 400,
    DenialReason.RATE_LIMITED: 429,
}


def json_error(status: int, error: str, message: str, **extra):
    return jsonify({"error": error, "message": message, **extra}), status


def client_address() -> str:
    # ProxyFix has already rewritten remote_addr when proxy hops are trusted.
    return request.remote_addr or "unknown"


def claimed_user_id():
    return session.get("user_id")


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return json_error(401, DenialReason.UNAUTHENTICATED.value, "Authentication required")
        return view(*args, **kwargs)

    return wrapper


def role_required(identity, role: Role):
    """Verify the session claim against the identity provider, then the role."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            principal = identity.verify(session.get("user_id"))
            if principal is None:
                raise AuthenticationError("Authentication required")
            if principal.role != role:
                raise AuthorizationError(f"{role.value.capitalize()} access required")
            return view(principal, *args, **kwargs)

        return wrapper

    return decorator


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(MissingFields)
    def _missing_fields(exc: MissingFields):
        return json_error(400, exc.error_code, str(exc), fields=list(exc.fields))

    @app.errorhandler(ValidationError)
    def _validation(exc: ValidationError):
        return json_error(400, exc.error_code, str(exc))

    @app.errorhandler(AuthenticationError)
    def _authentication(exc: AuthenticationError):
        return json_error(401, DenialReason.UNAUTHENTICATED.value, str(exc))

    @app.errorhandler(AuthorizationError)
    def _authorization(exc: AuthorizationError):
        return json_error(403, DenialReason.ROLE_NOT_PERMITTED.value, str(exc))

    @app.errorhandler(CollaboratorUnavailable)
    def _unavailable(exc: CollaboratorUnavailable):
        logger.error("%s %s failed: %s unavailable", request.method, request.path, exc.collaborator)
        return json_error(500, "CollaboratorUnavailable", "Service temporarily unavailable, try again", retryable=True)

    @app.errorhandler(DataIntegrityError)
    def _integrity(exc: DataIntegrityError):
        logger.critical("%s %s aborted: %s", request.method, request.path, exc)
        return json_error(500, "InternalError", "Internal server error", retryable=False)

    @app.errorhandler(HTTPException)
    def _http(exc: HTTPException):
        return json_error(exc.code or 500, exc.name.replace(" ", ""), exc.description or exc.name)

    @app.errorhandler(Exception)
    def _unexpected(exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.path)
        return json_error(500, "InternalError", "Internal server error", retryable=False)
