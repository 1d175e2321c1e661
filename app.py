from datetime import date

import click
from flask import Flask, request, g
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate

from config import Config
from models import db
from models.user import User, ROLE_ADMIN
from routes import health_bp, auth_bp, rooms_bp, bookings_bp, admin_bp
from security.csrf import require_csrf
from security.tokens import purge_expired_revocations
from services.booking_lifecycle import complete_past_stays
from utils.auth_context import load_current_user
from utils.errors import register_error_handlers
from utils.seed import seed_admin

CSRF_EXEMPT_PATHS = {
    "/auth/login",
    "/auth/register",
    "/health",
}


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(rooms_bp)
    app.register_blueprint(bookings_bp)
    app.register_blueprint(admin_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Token signing/decoding
    JWTManager(app)

    register_error_handlers(app)

    @app.before_request
    def _load_user():
        load_current_user()

    @app.before_request
    def _csrf_protect():
        if not app.config.get("CSRF_ENABLED", True):
            return None
        # Only protect state-changing requests
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if request.path in CSRF_EXEMPT_PATHS:
                return None

            # Bearer headers are not sent by browsers on their own; cookies are
            if g.get("user") is not None and g.get("token_location") == "cookies":
                failure = require_csrf()
                if failure:
                    return failure
        return None

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote an existing user to admin by email."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        user.role = ROLE_ADMIN
        user.is_active = True
        db.session.commit()
        click.echo(f"{user.email} promoted to admin")

    @app.cli.command("seed-admin")
    def seed_admin_command():
        """Create the bootstrap admin from ADMIN_EMAIL / ADMIN_PASSWORD."""
        user = seed_admin()
        if user is None:
            click.echo("ADMIN_EMAIL and ADMIN_PASSWORD must be set")
            return
        click.echo(f"{user.email} is an admin")

    @app.cli.command("complete-stays")
    @click.option("--today", default=None, help="Override today's date (YYYY-MM-DD).")
    def complete_stays(today):
        """Mark confirmed bookings whose check-out has passed as completed."""
        day = date.fromisoformat(today) if today else None
        count = complete_past_stays(day)
        purged = purge_expired_revocations()
        click.echo(f"{count} booking(s) completed, {purged} expired revocation(s) purged")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
