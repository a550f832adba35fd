"""Shared fixtures: in-memory app, test client, identity headers."""

from datetime import date

import pytest

from app import create_app
from config import Config
from models import db
from models.booking import Booking
from models.service import Service
from scheduling.errors import UpstreamUnavailable
from utils.booking_store import insert_booking
from tests.helpers import FUTURE_DAY


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "WARNING"


class FakePayments:
    """Stands in for Stripe: payment_ref -> True/False, or raises."""

    def __init__(self):
        self.paid = {}
        self.failing = False
        self.calls = []

    def __call__(self, payment_ref):
        self.calls.append(payment_ref)
        if self.failing:
            raise UpstreamUnavailable("stripe down")
        return self.paid.get(payment_ref, False)


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def app(payments):
    app = create_app(TestConfig)
    app.config["PAYMENT_STATUS_LOOKUP"] = payments
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def customer():
    return {"X-User-Id": "cust-1", "X-User-Role": "customer"}


@pytest.fixture
def other_customer():
    return {"X-User-Id": "cust-2", "X-User-Role": "customer"}


@pytest.fixture
def admin():
    return {"X-User-Id": "admin-1", "X-User-Role": "admin"}


@pytest.fixture
def hour_service(app):
    service = Service(name="Massage Therapy", duration_minutes=60, price=7900)
    db.session.add(service)
    db.session.commit()
    return service


@pytest.fixture
def long_service(app):
    service = Service(name="Electrical Repairs", duration_minutes=100, price=12900)
    db.session.add(service)
    db.session.commit()
    return service


@pytest.fixture
def make_booking(app):
    """Insert a booking directly, bypassing the date/conflict gate."""

    def _make(service, day, label, status="confirmed", customer_id="cust-1", payment_ref=None):
        booking = Booking(
            customer_id=customer_id,
            service_id=service.id,
            service_name=service.name,
            duration_minutes=service.duration_minutes,
            appointment_date=day if isinstance(day, date) else date.fromisoformat(day),
            appointment_time=label,
            status=status,
            payment_status="paid" if status == "confirmed" else "pending",
            payment_ref=payment_ref,
        )
        return insert_booking(booking)

    return _make
