from flask import Blueprint, jsonify

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    return jsonify(status="ok"), 200


from .auth import auth_bp  # noqa: E402
from .rooms import rooms_bp  # noqa: E402
from .bookings import bookings_bp  # noqa: E402
from .admin import admin_bp  # noqa: E402
