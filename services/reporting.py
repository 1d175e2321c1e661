"""Dashboard aggregates, recomputed on every request."""
from datetime import date

from sqlalchemy import func

from models import db
from models.booking import Booking, BOOKING_STATUSES, STATUS_COMPLETED, STATUS_CONFIRMED
from models.room import Room, CATEGORIES, STATUS_AVAILABLE, STATUS_MAINTENANCE
from models.user import User
from services.booking_lifecycle import count_nights


def booking_counts() -> dict:
    rows = db.session.query(Booking.status, func.count(Booking.id)).group_by(Booking.status).all()
    counts = {status: 0 for status in BOOKING_STATUSES}
    counts.update({status: n for status, n in rows})
    return counts


def total_revenue() -> float:
    value = (
        db.session.query(func.coalesce(func.sum(Booking.total_price), 0))
        .filter(Booking.status == STATUS_COMPLETED)
        .scalar()
    )
    return round(float(value or 0), 2)


def average_stay_duration() -> float:
    stays = (
        db.session.query(Booking.check_in, Booking.check_out)
        .filter(Booking.status == STATUS_COMPLETED)
        .all()
    )
    if not stays:
        return 0.0
    nights = [count_nights(check_in, check_out) for check_in, check_out in stays]
    return round(sum(nights) / len(nights), 2)


def occupancy_rate(today: date = None) -> float:
    """Rooms with a confirmed stay spanning today over rooms not under maintenance."""
    today = today or date.today()
    bookable = Room.query.filter(Room.status != STATUS_MAINTENANCE).count()
    if not bookable:
        return 0.0

    occupied = (
        db.session.query(func.count(func.distinct(Booking.room_id)))
        .join(Room, Booking.room_id == Room.id)
        .filter(
            Room.status != STATUS_MAINTENANCE,
            Booking.status == STATUS_CONFIRMED,
            Booking.check_in <= today,
            Booking.check_out > today,
        )
        .scalar()
    )
    return round(occupied / bookable, 4)


def room_stats() -> dict:
    per_category = dict(
        db.session.query(Room.category, func.count(Room.id)).group_by(Room.category).all()
    )
    average_price = db.session.query(func.avg(Room.price)).scalar()
    return {
        "available_rooms": Room.query.filter_by(status=STATUS_AVAILABLE).count(),
        "average_price": round(float(average_price), 2) if average_price is not None else 0.0,
        "category_distribution": {c: per_category.get(c, 0) for c in CATEGORIES},
    }


def recent_bookings(limit: int = 5):
    return (
        Booking.query
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .limit(limit)
        .all()
    )


def dashboard_stats(today: date = None) -> dict:
    counts = booking_counts()
    return {
        "total_users": User.query.count(),
        "total_rooms": Room.query.count(),
        "total_bookings": sum(counts.values()),
        "pending_bookings": counts["pending"],
        "confirmed_bookings": counts["confirmed"],
        "cancelled_bookings": counts["cancelled"],
        "completed_bookings": counts["completed"],
        "total_revenue": total_revenue(),
        "average_stay_duration": average_stay_duration(),
        "occupancy_rate": occupancy_rate(today),
        "rooms": room_stats(),
    }
