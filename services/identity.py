import re
from typing import List

from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import Booking, ACTIVE_STATUSES
from models.user import User, ROLES, ROLE_ADMIN, ROLE_CUSTOMER
from security.bruteforce import ensure_not_locked, register_failure, reset_attempts
from security.password import hash_password, verify_password
from security.password_policy import validate_password
from utils.errors import (
    AccountDisabled, EmailTaken, Forbidden, InvalidCredentials, TooManyAttempts,
    UserHasActiveBookings, UserNotFound, ValidationError,
)

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(value) -> str:
    return (value or "").strip().lower() if isinstance(value, str) else ""


def is_valid_email(email: str) -> bool:
    return isinstance(email, str) and len(email) <= 255 and bool(_EMAIL.match(email))


def _validate_name(name) -> List[str]:
    if not isinstance(name, str) or len(name.strip()) < 2:
        return ["Name must be at least 2 characters"]
    if len(name.strip()) > 120:
        return ["Name must be at most 120 characters"]
    return []


def register_user(name, email, password, confirm_password) -> User:
    email = normalize_email(email)
    errors = _validate_name(name)
    if not is_valid_email(email):
        errors.append("Invalid email")
    _, password_errors = validate_password(password)
    errors.extend(password_errors)
    if password != confirm_password:
        errors.append("Passwords do not match")
    if errors:
        raise ValidationError("Invalid registration data", details=errors)

    if User.query.filter_by(email=email).first():
        raise EmailTaken()

    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=ROLE_CUSTOMER,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise EmailTaken()
    return user


def authenticate(email, password) -> User:
    """Verify credentials; failures count towards the lockout."""
    email = normalize_email(email)
    ensure_not_locked(email)

    user = User.query.filter_by(email=email).first() if email else None
    if not user or not verify_password(password, user.password_hash):
        _, locked_now = register_failure(email)
        if locked_now:
            minutes = current_app.config.get("LOCKOUT_MINUTES", 5)
            raise TooManyAttempts(minutes * 60, "Too many failed attempts. Account locked.")
        raise InvalidCredentials()

    if not user.is_active:
        raise AccountDisabled()

    reset_attempts(email)
    return user


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise UserNotFound()
    return user


def _active_admin_count() -> int:
    return User.query.filter_by(role=ROLE_ADMIN, is_active=True).count()


def _would_drop_last_admin(user: User, role: str, is_active: bool) -> bool:
    if not (user.role == ROLE_ADMIN and user.is_active):
        return False
    if role == ROLE_ADMIN and is_active:
        return False
    return _active_admin_count() <= 1


def update_user(user_id: int, actor: User, data: dict) -> User:
    user = _get_user(user_id)
    errors: List[str] = []

    name = data.get("name")
    if name is not None:
        errors.extend(_validate_name(name))

    email = data.get("email")
    if email is not None:
        email = normalize_email(email)
        if not is_valid_email(email):
            errors.append("Invalid email")

    role = data.get("role", user.role)
    if role not in ROLES:
        errors.append(f"role must be one of: {', '.join(ROLES)}")

    is_active = data.get("is_active", user.is_active)
    if not isinstance(is_active, bool):
        errors.append("is_active must be true or false")

    password = data.get("password")
    if password:
        _, password_errors = validate_password(password)
        errors.extend(password_errors)

    if errors:
        raise ValidationError("Invalid user data", details=errors)

    if user.id == actor.id and (role != ROLE_ADMIN or not is_active):
        raise Forbidden("Cannot remove your own admin access")
    if _would_drop_last_admin(user, role, is_active):
        raise Forbidden("Cannot remove the last admin")

    if email is not None and email != user.email:
        if User.query.filter(User.email == email, User.id != user.id).first():
            raise EmailTaken("Email already exists")
        user.email = email
    if name is not None:
        user.name = name.strip()
    if password:
        user.password_hash = hash_password(password)
    user.role = role
    user.is_active = is_active

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise EmailTaken("Email already exists")
    return user


def delete_user(user_id: int, actor: User) -> None:
    user = _get_user(user_id)
    if user.id == actor.id:
        raise Forbidden("Cannot delete your own account")
    if _would_drop_last_admin(user, None, False):
        raise Forbidden("Cannot remove the last admin")

    active = Booking.query.filter(Booking.user_id == user.id, Booking.status.in_(ACTIVE_STATUSES)).count()
    if active:
        raise UserHasActiveBookings(details=[f"{active} active booking(s) must be cancelled first"])

    for booking in Booking.query.filter_by(user_id=user.id).all():
        db.session.delete(booking)
    db.session.flush()
    db.session.delete(user)
    db.session.commit()


def update_profile(user: User, data: dict) -> User:
    """Self-service name and password change; the password needs the current one."""
    errors: List[str] = []

    name = data.get("name")
    if name is not None:
        errors.extend(_validate_name(name))

    new_password = data.get("new_password")
    if new_password:
        if not verify_password(data.get("current_password") or "", user.password_hash):
            raise InvalidCredentials("Current password is incorrect")
        _, password_errors = validate_password(new_password)
        errors.extend(password_errors)
        if new_password != data.get("confirm_password"):
            errors.append("Passwords do not match")

    if name is None and not new_password:
        errors.append("Nothing to update: send name or new_password")
    if errors:
        raise ValidationError("Invalid profile data", details=errors)

    if name is not None:
        user.name = name.strip()
    if new_password:
        user.password_hash = hash_password(new_password)
    db.session.commit()
    return user
