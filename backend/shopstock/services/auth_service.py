# Overview: Staff accounts; bcrypt password hashing and user administration.

"""
User accounts

- Passwords hashed with bcrypt (rounds from BCRYPT_ROUNDS, default 12)
- Email is the login identifier and is unique
- Users with recorded transactions or adjustments are deactivated, not deleted,
  so history keeps its attribution
"""

from __future__ import annotations

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Adjustment, Transaction, User, ROLES, ROLE_CLERK
from ..validation import ConflictError, Issue, NotFoundError, ValidationError, enforce_email

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(issues=[Issue(f"Password must be {MIN_PASSWORD_LENGTH}+ chars", ("password",))])
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the DB
        return False


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


def create_user(*, name: str, email: str, password: str, role: str = ROLE_CLERK) -> User:
    """
    Create a staff account.

    Raises:
        ValidationError: Missing name, bad email, weak password, unknown role
        ConflictError: Email already registered
    """
    issues: list[Issue] = []
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name:
        issues.append(Issue("Name is required", ("name",)))
    try:
        enforce_email({"email": email})
    except ValidationError as e:
        issues.extend(e.issues)
    if role not in ROLES:
        issues.append(Issue(f"role must be one of: {', '.join(ROLES)}", ("role",)))
    if issues:
        raise ValidationError(issues=issues)

    if db.session.query(User).filter_by(email=email).first() is not None:
        raise ConflictError("Email is already registered")

    user = User(name=name, email=email, password_hash=hash_password(password), role=role)
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """Active user matching email + password, else None."""
    if not email or not password:
        return None
    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def list_users(*, page: int | None = None, per_page: int | None = None) -> dict:
    from ..pagination import paginate

    q = db.session.query(User).order_by(User.created_at.desc(), User.id.desc())
    page_data = paginate(q, page, per_page)
    return {
        "items": [u.to_dict() for u in page_data["items"]],
        "count": len(page_data["items"]),
        "pagination": page_data["pagination"],
    }


def update_profile(*, user_id: int, name: str | None, email: str | None) -> User:
    user = _get_user(user_id)
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name or not email:
        raise ValidationError("Name and email are required")
    enforce_email({"email": email})

    clash = db.session.query(User).filter(User.email == email, User.id != user_id).first()
    if clash is not None:
        raise ConflictError("Email is already registered")

    user.name = name
    user.email = email
    db.session.commit()
    return user


def change_password(*, user_id: int, current_password: str, new_password: str) -> None:
    user = _get_user(user_id)
    if not verify_password(current_password or "", user.password_hash):
        raise ValidationError(issues=[Issue("Current password is incorrect", ("current_password",))])
    user.password_hash = hash_password(new_password)
    db.session.commit()


def set_active(*, user_id: int, is_active: bool) -> User:
    user = _get_user(user_id)
    user.is_active = is_active
    db.session.commit()
    return user


def delete_user(*, user_id: int, acting_user_id: int) -> None:
    """
    Raises:
        ConflictError: Deleting yourself, or a user with recorded history
    """
    if user_id == acting_user_id:
        raise ConflictError("You cannot delete your own account")
    user = _get_user(user_id)

    has_history = (
        db.session.query(Transaction).filter_by(user_id=user_id).count() > 0
        or db.session.query(Adjustment).filter_by(user_id=user_id).count() > 0
    )
    if has_history:
        raise ConflictError("Cannot delete a user with recorded transactions. Deactivate the account instead.")

    db.session.delete(user)
    db.session.commit()
