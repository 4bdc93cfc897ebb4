from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Note: plain data object, no DB access code.
    """

    user_id: str
    email: str
    full_name: str
    password_hash: str
    role: Role
    is_active: bool = True


@dataclass(frozen=True)
class Principal:
    """Verified actor of a request."""

    user_id: str
    role: Role
    full_name: str = ""
