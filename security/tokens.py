"""JWT issuance, verification and revocation.

Tokens carry ``sub`` (user id), ``email`` and ``role``. The role claim is for
clients only: the server re-reads the user on every request.
"""
from datetime import datetime

from flask import current_app, request
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from models import db
from models.revoked_token import RevokedToken
from models.user import User
from utils.errors import InvalidOrExpiredToken

BEARER_PREFIX = "Bearer "


def issue_token(user: User) -> str:
    return create_access_token(
        identity=str(user.id),
        additional_claims={"email": user.email, "role": user.role},
    )


def token_from_request():
    """
    Returns (raw_token, location) where location is "headers" or "cookies",
    or (None, None) when the request carries no token.
    """
    header = request.headers.get("Authorization", "")
    if header.startswith(BEARER_PREFIX):
        raw = header[len(BEARER_PREFIX):].strip()
        if raw:
            return raw, "headers"

    cookie_name = current_app.config.get("JWT_ACCESS_COOKIE_NAME", "token")
    raw = request.cookies.get(cookie_name)
    if raw:
        return raw, "cookies"
    return None, None


def is_revoked(jti: str) -> bool:
    return RevokedToken.query.filter_by(jti=jti).first() is not None


def verify_token(raw_token: str) -> dict:
    """Decode and validate a token, returning its claims."""
    if not raw_token:
        raise InvalidOrExpiredToken()
    try:
        claims = decode_token(raw_token)
    except (JWTExtendedException, PyJWTError):
        raise InvalidOrExpiredToken()

    if not claims.get("sub") or not claims.get("jti"):
        raise InvalidOrExpiredToken()
    if is_revoked(claims["jti"]):
        raise InvalidOrExpiredToken()
    return claims


def revoke_token(claims: dict) -> None:
    if not claims or is_revoked(claims["jti"]):
        return
    row = RevokedToken(
        jti=claims["jti"],
        user_id=int(claims["sub"]),
        expires_at=datetime.utcfromtimestamp(claims["exp"]),
    )
    db.session.add(row)
    db.session.commit()


def purge_expired_revocations() -> int:
    """Drop blocklist rows for tokens that have expired on their own."""
    count = RevokedToken.query.filter(RevokedToken.expires_at <= datetime.utcnow()).delete()
    db.session.commit()
    return count
