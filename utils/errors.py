"""Error taxonomy shared by services and routes.

Services raise these; ``register_error_handlers`` turns them into the JSON
body ``{"error": message, "details": [...]}`` at the request boundary.
"""
from typing import List, Optional

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from models import db


class ApiError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[List[str]] = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = list(self.details)
        return body


class ValidationError(ApiError):
    status_code = 400
    message = "Invalid request"


class Unauthorized(ApiError):
    status_code = 401
    message = "Authentication required"


class Forbidden(ApiError):
    status_code = 403
    message = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    message = "Not found"


class Conflict(ApiError):
    status_code = 409
    message = "Conflict"


class TooManyAttempts(ApiError):
    status_code = 429
    message = "Too many failed attempts. Try again later."

    def __init__(self, retry_after_seconds: int, message: Optional[str] = None):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["retry_after_seconds"] = self.retry_after_seconds
        return body


# ---------- booking lifecycle ----------
class InvalidDateRange(ValidationError):
    message = "check_out must be after check_in"


class CapacityExceeded(ValidationError):
    message = "Guest count exceeds room capacity"


class InvalidTransition(ValidationError):
    message = "Invalid status transition"


class BookingNotFound(NotFound):
    message = "Booking not found"


class RoomNotAvailableForDates(Conflict):
    message = "Room is not available for the selected dates"


# ---------- room catalog ----------
class RoomNotFound(NotFound):
    message = "Room not found"


class RoomUnavailable(Conflict):
    message = "Room is not available for booking"


class RoomHasBookings(ValidationError):
    message = "This room cannot be deleted because it has bookings"


class RoomNumberTaken(Conflict):
    message = "Room number already exists"


# ---------- identity ----------
class InvalidCredentials(Unauthorized):
    message = "Invalid credentials"


class InvalidOrExpiredToken(Unauthorized):
    message = "Invalid or expired token"


class AccountDisabled(Forbidden):
    message = "Account disabled"


class UserNotFound(NotFound):
    message = "User not found"


class EmailTaken(Conflict):
    message = "Email already registered"


class UserHasActiveBookings(Conflict):
    message = "User has pending or confirmed bookings"


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def _api_error(err: ApiError):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        return jsonify(error=err.description or err.name), err.code

    @app.errorhandler(Exception)
    def _unexpected(err: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled error: %s", err)
        return jsonify(error="Internal server error"), 500
