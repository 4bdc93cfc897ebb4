from __future__ import annotations

import logging
from typing import Optional, Protocol

from werkzeug.security import check_password_hash

from ..common.validators import require_non_empty
from ..core.exceptions import AuthenticationError
from .model import Principal
from .repository import UserRepository

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    def verify(self, claimed_user_id: Optional[str]) -> Optional[Principal]:
        """Return the verified principal, or None when the claim cannot be verified."""
        raise NotImplementedError


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, email: str, password: str) -> Principal:
        email = require_non_empty(email, "email").lower()
        user = self._users.get_by_email(email)
        if not user or not user.is_active:
            raise AuthenticationError("Invalid email or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except (TypeError, ValueError):
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            raise AuthenticationError("Invalid email or password")

        logger.info("user %s logged in", user.user_id)
        return Principal(user_id=user.user_id, role=user.role, full_name=user.full_name)


class UserIdentityProvider:
    """Verifies a session claim against the users table on every request.

    A deactivated or deleted user loses access immediately, even with a
    still-valid session cookie.
    """

    def __init__(self, users: UserRepository):
        self._users = users

    def verify(self, claimed_user_id: Optional[str]) -> Optional[Principal]:
        if not claimed_user_id:
            return None
        user = self._users.get_by_id(str(claimed_user_id))
        if not user or not user.is_active:
            return None
        return Principal(user_id=user.user_id, role=user.role, full_name=user.full_name)
