from decimal import Decimal, InvalidOperation
from typing import List, Tuple
from urllib.parse import urlparse

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import Booking, ACTIVE_STATUSES
from models.room import Room, CATEGORIES, ROOM_STATUSES, STATUS_AVAILABLE, STATUS_MAINTENANCE
from utils.dates import parse_date
from utils.errors import RoomHasBookings, RoomNotFound, RoomNumberTaken, ValidationError

ROOM_FIELDS = ("number", "category", "price", "description", "amenities", "images", "capacity", "status")


def _is_number(value) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _is_url(value) -> bool:
    if not isinstance(value, str):
        return False
    parts = urlparse(value.strip())
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def validate_room_payload(data: dict, partial: bool = False) -> Tuple[dict, List[str]]:
    """
    Returns (clean, errors). With partial=True only the keys present are
    checked, which is how updates are applied.
    """
    clean = {}
    errors: List[str] = []

    def wanted(field):
        return field in data or not partial

    if wanted("number"):
        number = data.get("number")
        if not isinstance(number, str) or not number.strip():
            errors.append("Room number is required")
        elif len(number.strip()) > 20:
            errors.append("Room number must be at most 20 characters")
        else:
            clean["number"] = number.strip()

    if wanted("category"):
        category = data.get("category")
        if category not in CATEGORIES:
            errors.append(f"category must be one of: {', '.join(CATEGORIES)}")
        else:
            clean["category"] = category

    if wanted("price"):
        price = data.get("price")
        if not _is_number(price):
            errors.append("price must be a number")
        elif price < 0:
            errors.append("price must not be negative")
        else:
            clean["price"] = Decimal(str(price))

    if wanted("description"):
        description = data.get("description")
        if not isinstance(description, str) or len(description.strip()) < 10:
            errors.append("description must be at least 10 characters")
        else:
            clean["description"] = description.strip()

    if wanted("amenities"):
        amenities = data.get("amenities")
        if not isinstance(amenities, list) or not amenities:
            errors.append("At least one amenity is required")
        elif not all(isinstance(a, str) and a.strip() for a in amenities):
            errors.append("amenities must be non-empty strings")
        else:
            # set semantics, first occurrence wins
            clean["amenities"] = list(dict.fromkeys(a.strip() for a in amenities))

    if wanted("images"):
        images = data.get("images")
        if not isinstance(images, list) or not images:
            errors.append("At least one image is required")
        elif not all(_is_url(i) for i in images):
            errors.append("images must be valid http(s) URLs")
        else:
            clean["images"] = [i.strip() for i in images]

    if wanted("capacity"):
        capacity = data.get("capacity")
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            errors.append("capacity must be an integer of at least 1")
        else:
            clean["capacity"] = capacity

    if "status" in data:
        status = data.get("status")
        if status not in ROOM_STATUSES:
            errors.append(f"status must be one of: {', '.join(ROOM_STATUSES)}")
        else:
            clean["status"] = status

    return clean, errors


def get_room(room_id: int) -> Room:
    room = db.session.get(Room, room_id)
    if room is None:
        raise RoomNotFound()
    return room


def _number_taken(number: str, exclude_id=None) -> bool:
    q = Room.query.filter(Room.number == number)
    if exclude_id is not None:
        q = q.filter(Room.id != exclude_id)
    return q.first() is not None


def create_room(data: dict) -> Room:
    clean, errors = validate_room_payload(data)
    if errors:
        raise ValidationError("Invalid room data", details=errors)
    if _number_taken(clean["number"]):
        raise RoomNumberTaken()

    clean.setdefault("status", STATUS_AVAILABLE)
    room = Room(**clean)
    db.session.add(room)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise RoomNumberTaken()
    return room


def update_room(room_id: int, data: dict) -> Room:
    room = get_room(room_id)

    clean, errors = validate_room_payload(data, partial=True)
    if errors:
        raise ValidationError("Invalid room data", details=errors)
    if not clean:
        raise ValidationError("No room fields to update", details=[f"Allowed fields: {', '.join(ROOM_FIELDS)}"])

    if "number" in clean and clean["number"] != room.number and _number_taken(clean["number"], exclude_id=room.id):
        raise RoomNumberTaken()

    for field, value in clean.items():
        setattr(room, field, value)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise RoomNumberTaken()
    return room


def delete_room(room_id: int) -> None:
    room = get_room(room_id)
    if Booking.query.filter_by(room_id=room.id).first() is not None:
        raise RoomHasBookings()
    db.session.delete(room)
    db.session.commit()


def parse_room_filters(args) -> Tuple[dict, List[str]]:
    """Read listing filters from query args: (filters, errors)."""
    filters = {}
    errors: List[str] = []

    category = args.get("category")
    if category:
        if category not in CATEGORIES:
            errors.append(f"category must be one of: {', '.join(CATEGORIES)}")
        else:
            filters["category"] = category

    status = args.get("status")
    if status:
        if status not in ROOM_STATUSES:
            errors.append(f"status must be one of: {', '.join(ROOM_STATUSES)}")
        else:
            filters["status"] = status

    for key in ("min_price", "max_price"):
        raw = args.get(key)
        if raw in (None, ""):
            continue
        try:
            value = Decimal(raw)
        except InvalidOperation:
            errors.append(f"{key} must be a number")
            continue
        if value < 0:
            errors.append(f"{key} must not be negative")
        else:
            filters[key] = value
    if "min_price" in filters and "max_price" in filters and filters["max_price"] < filters["min_price"]:
        errors.append("max_price must be greater than or equal to min_price")

    raw_capacity = args.get("capacity")
    if raw_capacity not in (None, ""):
        try:
            capacity = int(raw_capacity)
        except ValueError:
            capacity = 0
        if capacity < 1:
            errors.append("capacity must be an integer of at least 1")
        else:
            filters["capacity"] = capacity

    try:
        check_in = parse_date(args.get("check_in"))
        check_out = parse_date(args.get("check_out"))
    except ValueError:
        errors.append("Invalid date. Use YYYY-MM-DD")
    else:
        if bool(check_in) != bool(check_out):
            errors.append("check_in and check_out must be given together")
        elif check_in and check_out <= check_in:
            errors.append("check_out must be after check_in")
        elif check_in:
            filters["check_in"] = check_in
            filters["check_out"] = check_out

    return filters, errors


def list_rooms(filters: dict, limit: int = 200):
    q = Room.query
    if "category" in filters:
        q = q.filter(Room.category == filters["category"])
    if "status" in filters:
        q = q.filter(Room.status == filters["status"])
    if "min_price" in filters:
        q = q.filter(Room.price >= filters["min_price"])
    if "max_price" in filters:
        q = q.filter(Room.price <= filters["max_price"])
    if "capacity" in filters:
        q = q.filter(Room.capacity >= filters["capacity"])
    if "check_in" in filters:
        busy = (
            select(Booking.room_id)
            .where(
                Booking.status.in_(ACTIVE_STATUSES),
                Booking.check_in < filters["check_out"],
                Booking.check_out > filters["check_in"],
            )
        )
        q = q.filter(Room.status != STATUS_MAINTENANCE, ~Room.id.in_(busy))

    return q.order_by(Room.number.asc()).limit(limit).all()
