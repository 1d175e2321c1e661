from flask import Blueprint, request, jsonify, g, current_app

from models.booking import Booking, BOOKING_STATUSES
from security.rbac import require_roles
from services import booking_lifecycle
from utils.audit import log_event
from utils.auth_context import login_required
from utils.dates import parse_date
from utils.errors import RoomNotAvailableForDates
from utils.serializers import booking_to_dict

bookings_bp = Blueprint("bookings", __name__, url_prefix="/bookings")


def filtered_bookings(args, user_id=None):
    """
    Build the listing query from status / room_id / user_id / start_date /
    end_date. Returns (query, errors). A user_id argument pins the owner.
    """
    errors = []
    q = Booking.query

    status = args.get("status")
    if status:
        if status not in BOOKING_STATUSES:
            errors.append(f"status must be one of: {', '.join(BOOKING_STATUSES)}")
        q = q.filter(Booking.status == status)

    room_id = args.get("room_id", type=int)
    if room_id:
        q = q.filter(Booking.room_id == room_id)

    if user_id is None:
        user_id = args.get("user_id", type=int)
    if user_id:
        q = q.filter(Booking.user_id == user_id)

    try:
        start = parse_date(args.get("start_date"))
        end = parse_date(args.get("end_date"))
    except ValueError:
        errors.append("Invalid date. Use YYYY-MM-DD")
    else:
        if start and end and end < start:
            errors.append("end_date must not be before start_date")
        if start:
            q = q.filter(Booking.check_in >= start)
        if end:
            q = q.filter(Booking.check_out <= end)

    return q, errors


@bookings_bp.get("")
@login_required
def list_bookings():
    owner = None if g.user.is_admin else g.user.id
    q, errors = filtered_bookings(request.args, user_id=owner)
    if errors:
        return jsonify(error="Invalid filters", details=errors), 400

    limit = current_app.config.get("MAX_LIST_RESULTS", 200)
    rows = q.order_by(Booking.created_at.desc()).limit(limit).all()
    return jsonify([booking_to_dict(b) for b in rows]), 200


@bookings_bp.get("/me")
@login_required
def my_bookings():
    q, errors = filtered_bookings(request.args, user_id=g.user.id)
    if errors:
        return jsonify(error="Invalid filters", details=errors), 400

    rows = q.order_by(Booking.check_in.desc()).all()
    return jsonify([booking_to_dict(b, with_room=True) for b in rows]), 200


@bookings_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = booking_lifecycle.get_booking_for(booking_id, g.user)
    return jsonify(booking_to_dict(booking, with_room=True)), 200


@bookings_bp.post("")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    room_id = data.get("room_id")
    guests = data.get("guests", 1)
    special_requests = (data.get("special_requests") or "").strip() or None

    if not room_id or not data.get("check_in") or not data.get("check_out"):
        return jsonify(error="room_id, check_in, check_out are required"), 400
    if isinstance(room_id, bool) or not isinstance(room_id, (int, str)) or not str(room_id).isdigit():
        return jsonify(error="room_id must be an integer"), 400
    room_id = int(room_id)
    try:
        check_in = parse_date(data.get("check_in"))
        check_out = parse_date(data.get("check_out"))
    except (TypeError, ValueError):
        return jsonify(error="Invalid date format. Use ISO e.g. 2026-06-01"), 400
    if isinstance(guests, bool) or not isinstance(guests, int):
        return jsonify(error="guests must be an integer"), 400

    try:
        booking = booking_lifecycle.create_booking(
            room_id, g.user.id, check_in, check_out, guests, special_requests=special_requests,
        )
    except RoomNotAvailableForDates:
        log_event("BOOKING_FAIL_DATES_TAKEN", user_id=g.user.id, entity="room", entity_id=room_id,
                  metadata={"check_in": check_in, "check_out": check_out})
        raise

    log_event("BOOKING_CREATE", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"room_id": room_id, "total_price": booking.total_price})
    return jsonify(booking_to_dict(booking)), 201


@bookings_bp.put("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip() or None

    booking = booking_lifecycle.cancel_booking(booking_id, g.user, reason=reason)

    log_event("BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id, metadata={"reason": reason})
    return jsonify(message="Booking cancelled successfully", booking=booking_to_dict(booking)), 200


@bookings_bp.delete("/<int:booking_id>")
@require_roles("admin")
def delete_booking(booking_id: int):
    booking_lifecycle.delete_booking(booking_id, g.user)

    log_event("BOOKING_DELETE", user_id=g.user.id, entity="booking", entity_id=booking_id)
    return jsonify(success=True), 200
