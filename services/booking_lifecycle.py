"""Booking admission and status lifecycle.

A booking in ``pending`` or ``confirmed`` holds one ``booking_nights`` row per
night. The unique (room_id, night) constraint on that table is what makes two
concurrent requests for overlapping stays unable to both commit; the overlap
query in front of it only produces the friendly error in the common case.
"""
import math
from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import (
    Booking, BookingNight, ACTIVE_STATUSES, BOOKING_STATUSES,
    STATUS_PENDING, STATUS_CONFIRMED, STATUS_CANCELLED, STATUS_COMPLETED,
)
from models.room import Room, STATUS_AVAILABLE, STATUS_OCCUPIED, STATUS_MAINTENANCE
from models.user import User
from utils.errors import (
    ApiError, BookingNotFound, CapacityExceeded, Forbidden, InvalidDateRange,
    InvalidTransition, RoomNotAvailableForDates, RoomNotFound, RoomUnavailable,
    ValidationError,
)

TRANSITIONS = {
    STATUS_PENDING: {STATUS_CONFIRMED, STATUS_CANCELLED},
    STATUS_CONFIRMED: {STATUS_COMPLETED, STATUS_CANCELLED},
    STATUS_CANCELLED: {STATUS_PENDING},
    STATUS_COMPLETED: {STATUS_PENDING},
}

# the only move a booking's owner may make without an admin
OWNER_TRANSITIONS = {(STATUS_PENDING, STATUS_CANCELLED)}

_DAY_SECONDS = 24 * 60 * 60


def count_nights(check_in, check_out) -> int:
    return math.ceil((check_out - check_in).total_seconds() / _DAY_SECONDS)


def calculate_total_price(nightly_price, check_in, check_out) -> Decimal:
    nights = count_nights(check_in, check_out)
    if nights < 1:
        raise InvalidDateRange()
    return (Decimal(str(nightly_price)) * nights).quantize(Decimal("0.01"))


def _nights_of(booking: Booking):
    return [booking.check_in + timedelta(days=i) for i in range(count_nights(booking.check_in, booking.check_out))]


def find_overlapping(room_id: int, check_in: date, check_out: date, exclude_booking_id=None):
    q = Booking.query.filter(
        Booking.room_id == room_id,
        Booking.status.in_(ACTIVE_STATUSES),
        Booking.check_in < check_out,
        Booking.check_out > check_in,
    )
    if exclude_booking_id is not None:
        q = q.filter(Booking.id != exclude_booking_id)
    return q.order_by(Booking.check_in.asc()).all()


def is_room_available(room_id: int, check_in: date, check_out: date) -> bool:
    return not find_overlapping(room_id, check_in, check_out)


def _lock_room(room_id):
    # FOR UPDATE is dropped by SQLite; booking_nights still guards there
    return db.session.execute(
        select(Room).where(Room.id == room_id).with_for_update()
    ).scalar_one_or_none()


def _claim_nights(booking: Booking):
    for night in _nights_of(booking):
        booking.nights.append(BookingNight(room_id=booking.room_id, night=night))


def _release_nights(booking: Booking):
    booking.nights.clear()


def _commit_or_conflict():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise RoomNotAvailableForDates()


def sync_room_occupancy(room: Room, today: date = None) -> None:
    """Mark the room occupied while a confirmed stay spans today."""
    if room is None or room.status == STATUS_MAINTENANCE:
        return
    today = today or date.today()
    occupied = (
        Booking.query
        .filter(
            Booking.room_id == room.id,
            Booking.status == STATUS_CONFIRMED,
            Booking.check_in <= today,
            Booking.check_out > today,
        )
        .first()
        is not None
    )
    wanted = STATUS_OCCUPIED if occupied else STATUS_AVAILABLE
    if room.status != wanted:
        room.status = wanted
        db.session.commit()


def create_booking(room_id, user_id, check_in, check_out, guests, special_requests=None) -> Booking:
    if check_in is None or check_out is None or check_out <= check_in:
        raise InvalidDateRange()
    if isinstance(guests, bool) or not isinstance(guests, int) or guests < 1:
        raise ValidationError("guests must be at least 1")

    try:
        room = _lock_room(room_id)
        if room is None:
            raise RoomNotFound()
        if room.status == STATUS_MAINTENANCE:
            raise RoomUnavailable(f"Room {room.number} is under maintenance")
        if guests > room.capacity:
            raise CapacityExceeded(f"Room {room.number} holds at most {room.capacity} guests")
        if find_overlapping(room.id, check_in, check_out):
            raise RoomNotAvailableForDates()
    except ApiError:
        db.session.rollback()
        raise

    booking = Booking(
        room_id=room.id,
        user_id=user_id,
        check_in=check_in,
        check_out=check_out,
        guests=guests,
        total_price=calculate_total_price(room.price, check_in, check_out),
        special_requests=special_requests,
        status=STATUS_PENDING,
    )
    _claim_nights(booking)
    db.session.add(booking)
    _commit_or_conflict()
    return booking


def get_booking_for(booking_id: int, actor: User) -> Booking:
    """Owners and admins see a booking; everyone else gets 404."""
    booking = db.session.get(Booking, booking_id)
    if booking is None or (not actor.is_admin and booking.user_id != actor.id):
        raise BookingNotFound()
    return booking


def transition_booking(booking_id: int, actor: User, new_status: str, reason: str = None) -> Booking:
    if new_status not in BOOKING_STATUSES:
        raise ValidationError("Invalid status value", details=[f"status must be one of: {', '.join(BOOKING_STATUSES)}"])

    booking = get_booking_for(booking_id, actor)
    current = booking.status

    if new_status not in TRANSITIONS.get(current, set()):
        raise InvalidTransition(f"Cannot change booking from {current} to {new_status}")
    if not actor.is_admin and (current, new_status) not in OWNER_TRANSITIONS:
        raise Forbidden("Only pending bookings can be cancelled")

    if new_status in ACTIVE_STATUSES and current not in ACTIVE_STATUSES:
        room = _lock_room(booking.room_id)
        if room is not None and room.status == STATUS_MAINTENANCE:
            db.session.rollback()
            raise RoomUnavailable(f"Room {room.number} is under maintenance")
        if find_overlapping(booking.room_id, booking.check_in, booking.check_out, exclude_booking_id=booking.id):
            db.session.rollback()
            raise RoomNotAvailableForDates()
        _claim_nights(booking)
    elif new_status not in ACTIVE_STATUSES and current in ACTIVE_STATUSES:
        _release_nights(booking)

    booking.status = new_status
    if new_status == STATUS_CANCELLED:
        booking.cancelled_at = datetime.utcnow()
        booking.cancel_reason = reason
    elif new_status == STATUS_PENDING:
        booking.cancelled_at = None
        booking.cancel_reason = None

    _commit_or_conflict()
    sync_room_occupancy(booking.room)
    return booking


def cancel_booking(booking_id: int, actor: User, reason: str = None) -> Booking:
    return transition_booking(booking_id, actor, STATUS_CANCELLED, reason=reason)


def delete_booking(booking_id: int, actor: User) -> None:
    if not actor.is_admin:
        raise Forbidden()
    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise BookingNotFound()

    room = booking.room
    db.session.delete(booking)
    db.session.commit()
    sync_room_occupancy(room)


def complete_past_stays(today: date = None) -> int:
    """Move confirmed bookings whose check-out has passed to completed."""
    today = today or date.today()
    rows = (
        Booking.query
        .filter(Booking.status == STATUS_CONFIRMED, Booking.check_out <= today)
        .all()
    )
    for booking in rows:
        _release_nights(booking)
        booking.status = STATUS_COMPLETED
    db.session.commit()

    # stays starting today flip their room too, not only the ones just completed
    for room in Room.query.filter(Room.status != STATUS_MAINTENANCE).all():
        sync_room_occupancy(room, today)
    return len(rows)
