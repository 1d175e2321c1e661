from functools import wraps
from flask import g

from models import db
from models.user import User
from security.tokens import token_from_request, verify_token
from utils.errors import InvalidOrExpiredToken, Unauthorized

def load_current_user():
    """Resolve g.user from the bearer token on every request.

    A bad or revoked token leaves the request anonymous; endpoints that need
    an identity then answer 401.
    """
    g.user = None
    g.token_claims = None
    g.token_location = None
    g.token_error = False

    raw_token, location = token_from_request()
    if not raw_token:
        return

    try:
        claims = verify_token(raw_token)
    except InvalidOrExpiredToken:
        g.token_error = True
        return

    user = db.session.get(User, int(claims["sub"]))
    if user is None or not user.is_active:
        return

    g.user = user
    g.token_claims = claims
    g.token_location = location

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            if g.get("token_error"):
                raise InvalidOrExpiredToken()
            raise Unauthorized()
        return fn(*args, **kwargs)
    return wrapper
