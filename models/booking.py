from datetime import datetime
from models.db import db

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"
STATUS_COMPLETED = "completed"
BOOKING_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_CANCELLED, STATUS_COMPLETED)

# bookings in these states hold their nights
ACTIVE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED)


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    room_id = db.Column(db.Integer, db.ForeignKey("rooms.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    check_in = db.Column(db.Date, nullable=False, index=True)
    check_out = db.Column(db.Date, nullable=False)
    guests = db.Column(db.Integer, nullable=False, default=1)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)
    special_requests = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(255), nullable=True)

    room = db.relationship("Room", backref=db.backref("bookings", lazy="dynamic"))
    user = db.relationship("User", backref=db.backref("bookings", lazy="dynamic"))
    nights = db.relationship("BookingNight", back_populates="booking", cascade="all, delete-orphan")

    __table_args__ = (
        db.CheckConstraint("check_out > check_in", name="ck_bookings_date_range"),
        db.CheckConstraint("guests >= 1", name="ck_bookings_guests_positive"),
    )


class BookingNight(db.Model):
    """One claimed night of a room by an active booking."""

    __tablename__ = "booking_nights"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    room_id = db.Column(db.Integer, db.ForeignKey("rooms.id"), nullable=False)
    night = db.Column(db.Date, nullable=False)

    booking = db.relationship("Booking", back_populates="nights")

    __table_args__ = (
        # Hard business-rule: a room night can be held by one active booking only
        db.UniqueConstraint("room_id", "night", name="uq_booking_night_room"),
    )
