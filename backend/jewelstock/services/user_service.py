# Overview: Team management; shop owners create and edit the managers of their shop.

"""
User Service with Multi-Tenant Support

MULTI-TENANT: shop users are looked up by (shop_id, user_id); users of other
shops are reported as not found.

RULES:
- Email is unique system-wide and stored lower-cased.
- New managers start with the SHOP_MANAGER defaults unless a permission
  list is given; a list is stored as GRANT/DENY overrides against the
  role defaults.
- Owners cannot be deleted through team management (that includes
  deleting yourself).
"""

from __future__ import annotations

import re

from sqlalchemy.exc import IntegrityError

from jewelstock.extensions import db
from jewelstock.models import User
from jewelstock.permissions import Role, parse_permission_codes
from jewelstock.validation import ConflictError, ValidationError
from jewelstock.services.concurrency import atomic
from jewelstock.services.permission_service import get_user_permissions, set_user_permissions
from jewelstock.services.session_service import revoke_all_user_sessions

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class UserNotFoundError(Exception):
    """Raised when a user is not part of the caller's shop."""
    pass


def normalize_email(email: str | None) -> str:
    value = (email or "").strip().lower()
    if not value:
        raise ValidationError("Email is required")
    if len(value) > 255 or not EMAIL_RE.match(value):
        raise ValidationError("Email is not valid")
    return value


def _clean_name(name: str | None) -> str:
    value = " ".join((name or "").split())
    if not value:
        raise ValidationError("Name is required")
    if len(value) > 255:
        raise ValidationError("Name exceeds max length 255")
    return value


def _parse_permissions(codes):
    try:
        return parse_permission_codes(codes)
    except ValueError as e:
        raise ValidationError(str(e))


def user_to_dict(user: User) -> dict:
    return user.to_dict(permissions=get_user_permissions(user.id))


def _get_shop_user(shop_id: int, user_id: int) -> User:
    user = db.session.query(User).filter_by(id=user_id, shop_id=shop_id).first()
    if not user:
        raise UserNotFoundError("User not found")
    return user


def create_super_admin(name: str, email: str) -> User:
    email = normalize_email(email)
    name = _clean_name(name)
    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("Email already registered")

    user = User(shop_id=None, email=email, name=name, role=Role.SUPER_ADMIN.value, is_active=True)
    try:
        with atomic(db.session):
            db.session.add(user)
    except IntegrityError:
        raise ConflictError("Email already registered")
    return user


def get_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter_by(email=(email or "").strip().lower()).first()


def list_users(shop_id: int) -> list[dict]:
    users = (
        db.session.query(User)
        .filter_by(shop_id=shop_id)
        .order_by(User.role.asc(), User.name.asc(), User.id.asc())
        .all()
    )
    return [user_to_dict(u) for u in users]


def create_shop_manager(
    shop_id: int,
    name: str,
    email: str,
    permissions=None,
) -> dict:
    """
    Create a SHOP_MANAGER in the shop.

    permissions: optional list of permission codes; defaults to the role's
    VIEW_INVENTORY + MANAGE_STOCK.
    """
    email = normalize_email(email)
    name = _clean_name(name)
    wanted = _parse_permissions(permissions) if permissions is not None else None

    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("Email already registered")

    try:
        with atomic(db.session):
            user = User(
                shop_id=shop_id,
                email=email,
                name=name,
                role=Role.SHOP_MANAGER.value,
                is_active=True,
            )
            db.session.add(user)
            db.session.flush()
            if wanted is not None:
                set_user_permissions(user, wanted)
    except IntegrityError:
        raise ConflictError("Email already registered")

    return user_to_dict(user)


def update_user(
    shop_id: int,
    user_id: int,
    *,
    name: str | None = None,
    permissions=None,
    is_active: bool | None = None,
) -> dict:
    user = _get_shop_user(shop_id, user_id)
    if user.role == Role.SHOP_OWNER.value and (permissions is not None or is_active is False):
        raise ValidationError("Shop owner permissions cannot be changed")

    wanted = _parse_permissions(permissions) if permissions is not None else None
    new_name = _clean_name(name) if name is not None else None

    with atomic(db.session):
        if new_name is not None:
            user.name = new_name
        if is_active is not None:
            user.is_active = bool(is_active)
        if wanted is not None:
            set_user_permissions(user, wanted)

    if is_active is False:
        revoke_all_user_sessions(user.id, reason="User deactivated")
    return user_to_dict(user)


def delete_user(shop_id: int, user_id: int, *, actor_user_id: int) -> None:
    user = _get_shop_user(shop_id, user_id)
    if user.id == actor_user_id:
        raise ValidationError("You cannot delete your own account")
    if user.role == Role.SHOP_OWNER.value:
        raise ValidationError("Shop owners cannot be deleted")

    with atomic(db.session):
        db.session.delete(user)
