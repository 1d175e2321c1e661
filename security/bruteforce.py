from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.login_attempt import LoginAttempt
from utils.errors import TooManyAttempts

def _client_ip() -> str:
    return request.headers.get("X-Forwarded-For", request.remote_addr) or "unknown"

def _row(email: str):
    return LoginAttempt.query.filter_by(email=email, ip=_client_ip()).first()

def ensure_not_locked(email: str) -> None:
    """Raises TooManyAttempts while the (email, ip) pair is locked out."""
    row = _row(email)
    if not row or not row.locked_until:
        return

    now = datetime.utcnow()
    if row.locked_until <= now:
        return

    seconds = int((row.locked_until - now).total_seconds())
    raise TooManyAttempts(max(seconds, 1), "Account temporarily locked. Try again later.")

def register_failure(email: str) -> tuple[int, bool]:
    """
    Increments failure counter. Returns (fail_count, locked_now)
    """
    now = datetime.utcnow()

    row = _row(email)
    if not row:
        row = LoginAttempt(email=email, ip=_client_ip(), fail_count=0)
        db.session.add(row)
    elif row.locked_until and row.locked_until <= now:
        # previous lockout served, start counting again
        row.fail_count = 0
        row.locked_until = None

    row.fail_count += 1
    row.last_fail_at = now

    max_attempts = current_app.config.get("MAX_LOGIN_ATTEMPTS", 5)
    lock_minutes = current_app.config.get("LOCKOUT_MINUTES", 5)

    locked_now = False
    if row.fail_count >= max_attempts:
        row.locked_until = now + timedelta(minutes=lock_minutes)
        locked_now = True

    db.session.commit()
    return row.fail_count, locked_now

def reset_attempts(email: str):
    row = _row(email)
    if not row:
        return
    db.session.delete(row)
    db.session.commit()
