from flask import Blueprint, jsonify, g, request, current_app

from models import db
from models.audit_log import AuditLog
from models.booking import Booking
from models.user import User, ROLES
from routes.bookings import filtered_bookings
from security.rbac import require_roles
from services import booking_lifecycle, identity, reporting
from utils.audit import log_event
from utils.serializers import booking_to_dict, user_to_dict

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.get("/stats")
@require_roles("admin")
def stats():
    out = reporting.dashboard_stats()
    out["recent_bookings"] = [
        booking_to_dict(b, with_room=True, with_user=True)
        for b in reporting.recent_bookings(limit=5)
    ]
    return jsonify(out), 200


@admin_bp.get("/recent-bookings")
@require_roles("admin")
def recent_bookings():
    limit = request.args.get("limit", type=int) or current_app.config.get("RECENT_BOOKINGS_LIMIT", 3)
    limit = max(1, min(limit, 50))
    rows = reporting.recent_bookings(limit=limit)
    return jsonify([booking_to_dict(b, with_room=True, with_user=True) for b in rows]), 200


# ---------- bookings ----------
@admin_bp.get("/bookings")
@require_roles("admin")
def list_bookings():
    q, errors = filtered_bookings(request.args)
    if errors:
        return jsonify(error="Invalid filters", details=errors), 400

    limit = current_app.config.get("MAX_LIST_RESULTS", 200)
    rows = q.order_by(Booking.created_at.desc()).limit(limit).all()
    return jsonify([booking_to_dict(b, with_room=True, with_user=True) for b in rows]), 200


@admin_bp.patch("/bookings/<int:booking_id>")
@require_roles("admin")
def update_booking_status(booking_id: int):
    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip().lower()
    reason = (data.get("reason") or "").strip() or None
    if not status:
        return jsonify(error="status is required"), 400

    before = db.get_or_404(Booking, booking_id, description="Booking not found").status
    booking = booking_lifecycle.transition_booking(booking_id, g.user, status, reason=reason)

    log_event(
        "BOOKING_STATUS_CHANGE",
        user_id=g.user.id,
        entity="booking",
        entity_id=booking.id,
        metadata={"from": before, "to": booking.status, "reason": reason},
    )
    return jsonify(success=True, booking=booking_to_dict(booking)), 200


@admin_bp.delete("/bookings/<int:booking_id>")
@require_roles("admin")
def delete_booking(booking_id: int):
    booking_lifecycle.delete_booking(booking_id, g.user)

    log_event("ADMIN_BOOKING_DELETE", user_id=g.user.id, entity="booking", entity_id=booking_id)
    return jsonify(success=True), 200


# ---------- users ----------
@admin_bp.get("/users")
@require_roles("admin")
def list_users():
    role_filter = (request.args.get("role") or "").strip().lower()
    if role_filter and role_filter not in ROLES:
        return jsonify(error=f"role must be one of: {', '.join(ROLES)}"), 400

    q = User.query
    if role_filter:
        q = q.filter(User.role == role_filter)

    users = q.order_by(User.created_at.desc()).limit(current_app.config.get("MAX_LIST_RESULTS", 200)).all()
    return jsonify([user_to_dict(u) for u in users]), 200


@admin_bp.put("/users/<int:user_id>")
@require_roles("admin")
def update_user(user_id: int):
    data = request.get_json(silent=True) or {}
    user = identity.update_user(user_id, g.user, data)

    changed = sorted(k for k in data if k != "password")
    if data.get("password"):
        changed.append("password")
    log_event("ADMIN_USER_UPDATE", user_id=g.user.id, entity="user", entity_id=user.id, metadata={"fields": changed})
    return jsonify(success=True, user=user_to_dict(user)), 200


@admin_bp.delete("/users/<int:user_id>")
@require_roles("admin")
def delete_user(user_id: int):
    identity.delete_user(user_id, g.user)

    log_event("ADMIN_USER_DELETE", user_id=g.user.id, entity="user", entity_id=user_id)
    return jsonify(success=True), 200


# ---------- audit trail ----------
@admin_bp.get("/audit-logs")
@require_roles("admin")
def list_audit_logs():
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))

    action = request.args.get("action")
    user_id = request.args.get("user_id", type=int)

    q = AuditLog.query
    if action:
        q = q.filter(AuditLog.action == action)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)

    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify([
        {
            "id": r.id,
            "created_at": r.timestamp.isoformat(),
            "user_id": r.user_id,
            "action": r.action,
            "entity": r.entity,
            "entity_id": r.entity_id,
            "ip": r.ip,
            "user_agent": r.user_agent,
            "metadata": r.metadata_json,
        }
        for r in rows
    ]), 200
