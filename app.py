import logging
from datetime import date

from flask import Flask
from config import Config
from routes import health_bp, booking_bp, timeoff_bp, admin_bp, payments_bp, webhook_bp

from models import db
from flask_migrate import Migrate
from utils.auth_context import load_current_user


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(timeoff_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(webhook_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.before_request
    def _load_user():
        load_current_user()

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
import click
from utils.seed import seed_services
from utils.booking_store import refresh_statuses
from utils.payments import get_payment_lookup

def register_cli(app):
    @app.cli.command("seed-services")
    def seed_services_command():
        """Insert the default service catalogue (idempotent)."""
        added = seed_services()
        click.echo(f"{added} service(s) added")

    @app.cli.command("refresh-statuses")
    def refresh_statuses_command():
        """Persist paid promotions and complete past confirmed bookings."""
        counts = refresh_statuses(date.today(), get_payment_lookup())
        click.echo(f"{counts['confirmed']} booking(s) confirmed, {counts['completed']} completed")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
