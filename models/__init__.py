from .db import db
from .user import User
from .room import Room
from .booking import Booking, BookingNight
from .audit_log import AuditLog
from .login_attempt import LoginAttempt
from .revoked_token import RevokedToken
