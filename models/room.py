from datetime import datetime
from models.db import db

CATEGORIES = ("Basic", "Premium", "Suite")

STATUS_AVAILABLE = "available"
STATUS_OCCUPIED = "occupied"
STATUS_MAINTENANCE = "maintenance"
ROOM_STATUSES = (STATUS_AVAILABLE, STATUS_OCCUPIED, STATUS_MAINTENANCE)


class Room(db.Model):
    __tablename__ = "rooms"

    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.String(20), unique=True, nullable=False, index=True)
    category = db.Column(db.String(20), nullable=False)

    price = db.Column(db.Numeric(10, 2), nullable=False)  # per night
    description = db.Column(db.Text, nullable=False)
    amenities = db.Column(db.JSON, nullable=False, default=list)
    images = db.Column(db.JSON, nullable=False, default=list)
    capacity = db.Column(db.Integer, nullable=False, default=1)

    status = db.Column(db.String(20), nullable=False, default=STATUS_AVAILABLE)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_rooms_price_non_negative"),
        db.CheckConstraint("capacity >= 1", name="ck_rooms_capacity_positive"),
    )
