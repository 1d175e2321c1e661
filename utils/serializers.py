def _money(value):
    return float(value) if value is not None else None

def _iso(value):
    return value.isoformat() if value else None


def room_to_dict(room):
    return {
        "id": room.id,
        "number": room.number,
        "category": room.category,
        "price": _money(room.price),
        "description": room.description,
        "amenities": list(room.amenities or []),
        "images": list(room.images or []),
        "capacity": room.capacity,
        "status": room.status,
        "created_at": _iso(room.created_at),
        "updated_at": _iso(room.updated_at),
    }


def user_to_dict(user):
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "is_active": user.is_active,
        "created_at": _iso(user.created_at),
    }


def booking_to_dict(booking, with_room=False, with_user=False):
    out = {
        "id": booking.id,
        "room_id": booking.room_id,
        "user_id": booking.user_id,
        "check_in": _iso(booking.check_in),
        "check_out": _iso(booking.check_out),
        "guests": booking.guests,
        "total_price": _money(booking.total_price),
        "special_requests": booking.special_requests,
        "status": booking.status,
        "created_at": _iso(booking.created_at),
        "updated_at": _iso(booking.updated_at),
        "cancelled_at": _iso(booking.cancelled_at),
        "cancel_reason": booking.cancel_reason,
    }
    if with_room:
        room = booking.room
        out["room"] = {
            "id": room.id,
            "number": room.number,
            "category": room.category,
            "price": _money(room.price),
            "images": list(room.images or []),
        } if room else None
    if with_user:
        user = booking.user
        out["user"] = {
            "id": user.id,
            "name": user.name,
            "email": user.email,
        } if user else None
    return out
