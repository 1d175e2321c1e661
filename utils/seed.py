from flask import current_app

from models import db
from models.user import User, ROLE_ADMIN
from security.password import hash_password

def seed_admin():
    """
    Create (or promote) the bootstrap admin from ADMIN_EMAIL / ADMIN_PASSWORD.
    Returns the user, or None when the environment does not configure one.
    """
    email = (current_app.config.get("ADMIN_EMAIL") or "").strip().lower()
    password = current_app.config.get("ADMIN_PASSWORD") or ""
    if not email or not password:
        return None

    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(
            name=current_app.config.get("ADMIN_NAME") or "Administrator",
            email=email,
            password_hash=hash_password(password),
        )
        db.session.add(user)

    user.role = ROLE_ADMIN
    user.is_active = True
    db.session.commit()
    return user
