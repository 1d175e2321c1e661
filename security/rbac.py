from functools import wraps
from flask import g

from models.user import User
from utils.errors import Forbidden, Unauthorized

def authorize(user: User, required_role: str = None) -> User:
    """Raises Unauthorized without an identity, Forbidden on role mismatch."""
    if user is None:
        raise Unauthorized()
    if required_role and user.role != required_role:
        raise Forbidden()
    return user

def has_role(role_name: str) -> bool:
    user = getattr(g, "user", None)
    return user is not None and user.role == role_name

def require_roles(*role_names: str):
    """
    Usage: @require_roles("admin")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = authorize(getattr(g, "user", None))
            if role_names and user.role not in role_names:
                raise Forbidden()
            return fn(*args, **kwargs)
        return wrapper
    return decorator
