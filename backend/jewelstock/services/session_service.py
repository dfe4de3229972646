# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service with Multi-Tenant Support

MULTI-TENANT: Sessions capture the user's shop_id at creation time. The
resulting Principal carries that shop for every authenticated request.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout (SESSION_ABSOLUTE_HOURS, default 24h)
- Idle timeout (SESSION_IDLE_HOURS, default 2h)
- Revocable
- Shop context is immutable for the session lifetime
"""

from __future__ import annotations

import secrets
import hashlib
from dataclasses import dataclass, field
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, Shop, User
from ..permissions import Permission, Role
from jewelstock.time_utils import utcnow
from .permission_service import get_user_permissions


DEFAULT_ABSOLUTE_HOURS = 24
DEFAULT_IDLE_HOURS = 2


@dataclass(frozen=True)
class Principal:
    """
    Already-authenticated caller handed to the services.

    shop_id is None only for SUPER_ADMIN.
    """
    user_id: int
    shop_id: int | None
    role: Role
    permissions: frozenset[Permission] = field(default_factory=frozenset)

    def has(self, permission: Permission) -> bool:
        return permission in self.permissions

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "shop_id": self.shop_id,
            "role": self.role.value,
            "permissions": sorted(p.value for p in self.permissions),
        }


@dataclass
class SessionContext:
    """Complete session context returned by validate_session."""
    user: User
    session: SessionToken
    principal: Principal


def _timeouts() -> tuple[timedelta, timedelta]:
    config = current_app.config
    return (
        timedelta(hours=config.get("SESSION_ABSOLUTE_HOURS", DEFAULT_ABSOLUTE_HOURS)),
        timedelta(hours=config.get("SESSION_IDLE_HOURS", DEFAULT_IDLE_HOURS)),
    )


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)  # 32 bytes = 64 hex characters


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def build_principal(user: User, shop_id: int | None) -> Principal:
    return Principal(
        user_id=user.id,
        shop_id=shop_id,
        role=Role(user.role),
        permissions=frozenset(get_user_permissions(user.id)),
    )


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create new session token for user with shop context.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.

    Raises ValueError if the user is unknown or inactive, or if a shop user
    has no shop.
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise ValueError("User not found")
    if not user.is_active:
        raise ValueError("User account is deactivated")

    if user.role != Role.SUPER_ADMIN.value:
        if not user.shop_id:
            raise ValueError("User must belong to a shop")
        if db.session.query(Shop).filter_by(id=user.shop_id).first() is None:
            raise ValueError("Shop not found")

    absolute_timeout, _idle = _timeouts()

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        shop_id=user.shop_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + absolute_timeout,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    The shop context is taken from the session record, not the user.

    Returns None if:
    - Token is invalid, expired, or revoked
    - User account is deactivated
    - The session's shop no longer exists

    Updates last_used_at on successful validation (activity tracking).
    """
    now = utcnow()
    absolute_timeout, idle_timeout = _timeouts()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    # Check absolute timeout
    if session.expires_at < now:
        return None

    # Check idle timeout
    if now - session.last_used_at > idle_timeout:
        _revoke(session, "Idle timeout")
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        return None

    if session.shop_id is not None:
        if db.session.query(Shop).filter_by(id=session.shop_id).first() is None:
            _revoke(session, "Shop removed")
            return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(
        user=user,
        session=session,
        principal=build_principal(user, session.shop_id),
    )


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions") -> int:
    """
    Revoke all active sessions for a user.

    Returns count of sessions revoked.
    """
    now = utcnow()

    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False
    ).all()

    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason

    db.session.commit()
    return len(sessions)
