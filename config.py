import os
from datetime import timedelta

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)

    # SQLite database file stored next to the app as hotel.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "hotel.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer token: Authorization header first, then the HTTP-only cookie
    JWT_TOKEN_LOCATION = ["headers", "cookies"]
    JWT_ACCESS_COOKIE_NAME = "token"
    JWT_ACCESS_COOKIE_PATH = "/"
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=int(os.getenv("TOKEN_LIFETIME_DAYS", "7")))
    JWT_SESSION_COOKIE = False
    JWT_COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() == "true"
    JWT_COOKIE_SAMESITE = "Lax"
    # CSRF is handled by security.csrf (double-submit cookie)
    JWT_COOKIE_CSRF_PROTECT = False

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = JWT_COOKIE_SECURE
    CSRF_ENABLED = True

    # Brute-force protection
    MAX_LOGIN_ATTEMPTS = int(os.getenv("MAX_LOGIN_ATTEMPTS", "5"))
    LOCKOUT_MINUTES = int(os.getenv("LOCKOUT_MINUTES", "5"))

    # Password policy
    PASSWORD_HASH_ROUNDS = 12
    PASSWORD_MIN_LEN = int(os.getenv("PASSWORD_MIN_LEN", "8"))
    PASSWORD_MAX_LEN = 128
    PASSWORD_REQUIRE_LETTER = True
    PASSWORD_REQUIRE_DIGIT = True
    PASSWORD_REQUIRE_SYMBOL = False

    # Bootstrap admin for `flask seed-admin` (never hard-coded)
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
    ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrator")

    # Listing limits
    MAX_LIST_RESULTS = 200
    RECENT_BOOKINGS_LIMIT = 3

    # Basic app settings
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret-with-enough-length-for-hs256"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    PASSWORD_HASH_ROUNDS = 4
    MAX_LOGIN_ATTEMPTS = 3
