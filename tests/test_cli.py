from datetime import date

from models import db
from models.booking import Booking
from models.user import User


def test_seed_admin_needs_environment(app):
    result = app.test_cli_runner().invoke(args=["seed-admin"])
    assert "ADMIN_EMAIL and ADMIN_PASSWORD must be set" in result.output


def test_seed_admin_creates_admin(app):
    app.config.update(ADMIN_EMAIL="Owner@Example.com", ADMIN_PASSWORD="Secret123")
    result = app.test_cli_runner().invoke(args=["seed-admin"])
    assert "owner@example.com is an admin" in result.output

    user = User.query.filter_by(email="owner@example.com").one()
    assert user.role == "admin"


def test_make_admin(app, customer):
    runner = app.test_cli_runner()
    assert "promoted to admin" in runner.invoke(args=["make-admin", "GUEST@example.com"]).output
    assert db.session.get(User, customer.id).role == "admin"
    assert "User not found" in runner.invoke(args=["make-admin", "nobody@example.com"]).output


def test_complete_stays(app, room, customer, book):
    booking = book(room, customer, date(2024, 6, 1), date(2024, 6, 3), status="confirmed")

    result = app.test_cli_runner().invoke(args=["complete-stays", "--today", "2024-06-03"])
    assert "1 booking(s) completed" in result.output
    assert db.session.get(Booking, booking.id).status == "completed"
