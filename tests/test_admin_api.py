import json
from datetime import date, timedelta

import pytest

from models import db
from models.audit_log import AuditLog
from models.booking import Booking
from models.user import User
from services import reporting


def test_non_admin_cannot_patch_booking(client, room, customer, auth_headers, book):
    booking = book(room, customer, date(2024, 6, 1), date(2024, 6, 3))

    r = client.patch(f"/admin/bookings/{booking.id}", json={"status": "confirmed"}, headers=auth_headers(customer))
    assert r.status_code == 403
    assert client.patch(f"/admin/bookings/{booking.id}", json={"status": "confirmed"}).status_code == 401
    assert db.session.get(Booking, booking.id).status == "pending"


def test_admin_moves_booking_through_lifecycle(client, room, customer, admin, auth_headers, book):
    booking = book(room, customer, date(2024, 6, 1), date(2024, 6, 3))
    headers = auth_headers(admin)

    r = client.patch(f"/admin/bookings/{booking.id}", json={"status": "confirmed"}, headers=headers)
    assert r.status_code == 200
    assert r.get_json()["booking"]["status"] == "confirmed"

    r = client.patch(f"/admin/bookings/{booking.id}", json={"status": "pending"}, headers=headers)
    assert r.status_code == 400
    assert r.get_json()["error"] == "Cannot change booking from confirmed to pending"

    r = client.patch(f"/admin/bookings/{booking.id}", json={"status": "completed"}, headers=headers)
    assert r.status_code == 200

    log = AuditLog.query.filter_by(action="BOOKING_STATUS_CHANGE").order_by(AuditLog.id.desc()).first()
    assert json.loads(log.metadata_json) == {"from": "confirmed", "to": "completed", "reason": None}


def test_patch_booking_bad_requests(client, admin, auth_headers):
    headers = auth_headers(admin)
    assert client.patch("/admin/bookings/1", json={}, headers=headers).status_code == 400

    r = client.patch("/admin/bookings/9999", json={"status": "confirmed"}, headers=headers)
    assert r.status_code == 404
    assert r.get_json() == {"error": "Booking not found"}


def test_admin_booking_list_includes_room_and_user(client, room, customer, admin, auth_headers, book):
    book(room, customer, date(2024, 6, 1), date(2024, 6, 3))

    rows = client.get("/admin/bookings", headers=auth_headers(admin)).get_json()
    assert rows[0]["room"]["number"] == "101"
    assert rows[0]["user"]["email"] == "guest@example.com"

    rows = client.get(f"/admin/bookings?user_id={admin.id}", headers=auth_headers(admin)).get_json()
    assert rows == []


def test_admin_deletes_booking(client, room, customer, admin, auth_headers, book):
    booking_id = book(room, customer, date(2024, 6, 1), date(2024, 6, 3), status="confirmed").id

    r = client.delete(f"/admin/bookings/{booking_id}", headers=auth_headers(admin))
    assert r.status_code == 200
    assert db.session.get(Booking, booking_id) is None


@pytest.fixture
def stats_scenario(make_room, customer, book):
    today = date.today()
    r1 = make_room(number="R1", price=100, category="Basic")
    r2 = make_room(number="R2", price=200, category="Premium")
    make_room(number="R3", price=300, category="Suite", status="maintenance")

    book(r1, customer, date(2024, 6, 1), date(2024, 6, 4), status="completed")
    book(r2, customer, date(2024, 7, 1), date(2024, 7, 2), status="completed")
    book(r1, customer, today, today + timedelta(days=2), status="confirmed")
    book(r2, customer, today + timedelta(days=30), today + timedelta(days=32))
    book(r2, customer, today + timedelta(days=40), today + timedelta(days=42), status="cancelled")


def test_dashboard_stats(client, admin, auth_headers, stats_scenario):
    r = client.get("/admin/stats", headers=auth_headers(admin))
    assert r.status_code == 200
    stats = r.get_json()

    assert stats["total_users"] == 2
    assert stats["total_rooms"] == 3
    assert stats["total_bookings"] == 5
    assert stats["pending_bookings"] == 1
    assert stats["confirmed_bookings"] == 1
    assert stats["cancelled_bookings"] == 1
    assert stats["completed_bookings"] == 2
    assert stats["total_revenue"] == 500.0
    assert stats["average_stay_duration"] == 2.0
    # R1 is occupied, R2 is free, R3 is out of service
    assert stats["occupancy_rate"] == 0.5

    rooms = stats["rooms"]
    assert rooms["available_rooms"] == 1
    assert rooms["average_price"] == 200.0
    assert rooms["category_distribution"] == {"Basic": 1, "Premium": 1, "Suite": 1}
    assert len(stats["recent_bookings"]) == 5


def test_stats_on_empty_hotel(app):
    stats = reporting.dashboard_stats()
    assert stats["total_revenue"] == 0.0
    assert stats["average_stay_duration"] == 0.0
    assert stats["occupancy_rate"] == 0.0
    assert stats["rooms"]["average_price"] == 0.0


def test_stats_require_admin(client, customer, auth_headers):
    assert client.get("/admin/stats", headers=auth_headers(customer)).status_code == 403
    assert client.get("/admin/stats").status_code == 401


def test_recent_bookings(client, room, customer, admin, auth_headers, book):
    for month in range(1, 5):
        book(room, customer, date(2024, month, 1), date(2024, month, 3))

    rows = client.get("/admin/recent-bookings", headers=auth_headers(admin)).get_json()
    assert [b["check_in"] for b in rows] == ["2024-04-01", "2024-03-01", "2024-02-01"]
    assert rows[0]["user"]["name"] == "Guest"

    rows = client.get("/admin/recent-bookings?limit=1", headers=auth_headers(admin)).get_json()
    assert len(rows) == 1


def test_list_users_by_role(client, admin, customer, auth_headers):
    rows = client.get("/admin/users?role=admin", headers=auth_headers(admin)).get_json()
    assert [u["email"] for u in rows] == ["admin@example.com"]
    assert "password_hash" not in rows[0]

    assert client.get("/admin/users?role=owner", headers=auth_headers(admin)).status_code == 400


def test_update_user(client, admin, customer, auth_headers):
    r = client.put(f"/admin/users/{customer.id}", json={"role": "admin", "name": "Promoted"},
                   headers=auth_headers(admin))
    assert r.status_code == 200
    assert r.get_json()["user"]["role"] == "admin"
    assert db.session.get(User, customer.id).name == "Promoted"

    r = client.put(f"/admin/users/{customer.id}", json={"email": "admin@example.com"}, headers=auth_headers(admin))
    assert r.status_code == 409

    r = client.put(f"/admin/users/{customer.id}", json={"is_active": "yes"}, headers=auth_headers(admin))
    assert r.status_code == 400


def test_admin_cannot_demote_self(client, admin, auth_headers):
    r = client.put(f"/admin/users/{admin.id}", json={"role": "customer"}, headers=auth_headers(admin))
    assert r.status_code == 403
    assert db.session.get(User, admin.id).role == "admin"


def test_user_delete_rules(client, room, admin, customer, auth_headers, book):
    booking = book(room, customer, date(2024, 6, 1), date(2024, 6, 3))
    headers = auth_headers(admin)

    r = client.delete(f"/admin/users/{customer.id}", headers=headers)
    assert r.status_code == 409

    client.patch(f"/admin/bookings/{booking.id}", json={"status": "cancelled"}, headers=headers)
    customer_id = customer.id
    assert client.delete(f"/admin/users/{customer_id}", headers=headers).status_code == 200
    assert db.session.get(User, customer_id) is None
    assert Booking.query.count() == 0

    assert client.delete(f"/admin/users/{admin.id}", headers=headers).status_code == 403
    assert client.delete("/admin/users/9999", headers=headers).status_code == 404


def test_audit_log_listing(client, room, admin, auth_headers):
    client.put(f"/rooms/{room.id}", json={"price": 110}, headers=auth_headers(admin))

    rows = client.get("/admin/audit-logs?action=ROOM_UPDATE", headers=auth_headers(admin)).get_json()
    assert len(rows) == 1
    assert rows[0]["user_id"] == admin.id
    assert rows[0]["entity"] == "room"
    assert rows[0]["entity_id"] == str(room.id)
