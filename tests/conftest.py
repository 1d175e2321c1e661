from decimal import Decimal
from itertools import count

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.room import Room
from models.user import User, ROLE_ADMIN, ROLE_CUSTOMER
from security.password import hash_password
from security.tokens import issue_token
from services import booking_lifecycle

PASSWORD = "Secret123"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    seq = count(1)

    def _make(role=ROLE_CUSTOMER, email=None, password=PASSWORD, is_active=True, name="Guest User"):
        n = next(seq)
        user = User(
            name=name,
            email=email or f"user{n}@example.com",
            password_hash=hash_password(password),
            role=role,
            is_active=is_active,
        )
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def admin(make_user):
    return make_user(role=ROLE_ADMIN, email="admin@example.com", name="Admin")


@pytest.fixture
def customer(make_user):
    return make_user(email="guest@example.com", name="Guest")


@pytest.fixture
def make_room(app):
    seq = count(101)

    def _make(number=None, price=100, capacity=2, category="Basic", status="available"):
        number = number or str(next(seq))
        room = Room(
            number=number,
            category=category,
            price=Decimal(str(price)),
            description="A quiet room overlooking the garden.",
            amenities=["wifi", "tv"],
            images=[f"https://img.example.com/rooms/{number}.jpg"],
            capacity=capacity,
            status=status,
        )
        db.session.add(room)
        db.session.commit()
        return room
    return _make


@pytest.fixture
def room(make_room):
    return make_room(number="101", price=100, capacity=2)


@pytest.fixture
def auth_headers(app):
    """Bearer headers without touching the client's cookie jar."""
    def _headers(user):
        return {"Authorization": f"Bearer {issue_token(user)}"}
    return _headers


@pytest.fixture
def book(admin):
    """Create a booking through the lifecycle, optionally walking it to a status."""
    paths = {
        "pending": [],
        "confirmed": ["confirmed"],
        "completed": ["confirmed", "completed"],
        "cancelled": ["cancelled"],
    }

    def _book(room, user, check_in, check_out, guests=1, status="pending"):
        booking = booking_lifecycle.create_booking(room.id, user.id, check_in, check_out, guests)
        for step in paths[status]:
            booking = booking_lifecycle.transition_booking(booking.id, admin, step)
        return booking
    return _book
