from flask import Blueprint, request, jsonify, g
from flask_jwt_extended import set_access_cookies, unset_access_cookies

from security.csrf import issue_csrf_token, clear_csrf_token
from security.tokens import issue_token, revoke_token
from services.identity import authenticate, normalize_email, register_user, update_profile
from utils.audit import log_event
from utils.auth_context import login_required
from utils.errors import AccountDisabled, InvalidCredentials, TooManyAttempts
from utils.serializers import user_to_dict


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}

    user = register_user(
        data.get("name"),
        data.get("email"),
        data.get("password") or "",
        data.get("confirm_password"),
    )
    log_event("REGISTER_SUCCESS", user_id=user.id, entity="user", entity_id=user.id)

    return jsonify(id=user.id, name=user.name, email=user.email, role=user.role), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""

    if not email or not password:
        return jsonify(error="email and password are required"), 400

    try:
        user = authenticate(email, password)
    except (InvalidCredentials, TooManyAttempts) as exc:
        log_event("LOGIN_FAIL", metadata={"email": email, "reason": exc.message})
        raise
    except AccountDisabled:
        log_event("LOGIN_DISABLED", metadata={"email": email})
        raise

    token = issue_token(user)

    resp = jsonify(user=user_to_dict(user), token=token)
    set_access_cookies(resp, token)
    resp = issue_csrf_token(resp)

    log_event("LOGIN_SUCCESS", user_id=user.id)
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(user_to_dict(g.user)), 200


@auth_bp.put("/me")
@login_required
def update_me():
    data = request.get_json(silent=True) or {}
    user = update_profile(g.user, data)

    fields = [k for k in ("name", "new_password") if data.get(k)]
    log_event("PROFILE_UPDATE", user_id=user.id, entity="user", entity_id=user.id, metadata={"fields": fields})
    return jsonify(user_to_dict(user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    revoke_token(g.token_claims)
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    unset_access_cookies(resp)
    clear_csrf_token(resp)
    return resp, 200
