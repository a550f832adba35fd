"""Integration tests: availability, booking, reschedule and status endpoints."""

from datetime import date, timedelta

import pytest

from models import db
from models.audit_log import AuditLog
from models.booking import Booking
from models.slot_claim import SlotClaim
from scheduling.errors import ConflictError
from utils.booking_store import insert_booking, update_date_time
from tests.helpers import FUTURE_DAY


def _availability(client, service, day=FUTURE_DAY, headers=None, **params):
    query = {"serviceId": service.id, "date": day}
    query.update(params)
    resp = client.get("/availability", query_string=query, headers=headers or {})
    assert resp.status_code == 200
    return {s["time"]: s for s in resp.get_json()["availability"]}


def _book(client, headers, service, time_label, day=FUTURE_DAY):
    return client.post("/bookings", json={"service_id": service.id, "date": day, "time": time_label}, headers=headers)


class TestAvailabilityEndpoint:

    def test_requires_date(self, client, hour_service):
        resp = client.get("/availability", query_string={"serviceId": hour_service.id})
        assert resp.status_code == 400

    def test_unknown_service(self, client):
        resp = client.get("/availability", query_string={"serviceId": 999, "date": FUTURE_DAY})
        assert resp.status_code == 404

    def test_malformed_date(self, client, hour_service):
        resp = client.get("/availability", query_string={"serviceId": hour_service.id, "date": "tomorrow"})
        assert resp.status_code == 400

    def test_existing_long_booking_blocks_two_slots(self, client, hour_service, long_service, make_booking):
        make_booking(long_service, FUTURE_DAY, "9:00 AM")

        slots = _availability(client, hour_service)
        assert not slots["9:00 AM"]["available"]
        assert not slots["10:00 AM"]["available"]
        assert slots["11:00 AM"]["available"]
        assert slots["10:00 AM"]["reason"] == "Conflicts with Electrical Repairs from 9:00 AM to 10:40 AM"

    def test_available_times_listed(self, client, hour_service, make_booking):
        make_booking(hour_service, FUTURE_DAY, "1:00 PM")
        resp = client.get("/availability", query_string={"serviceId": hour_service.id, "date": FUTURE_DAY})
        assert resp.get_json()["availableTimes"] == ["9:00 AM", "10:00 AM", "11:00 AM", "2:00 PM", "3:00 PM", "4:00 PM"]


class TestCreateBooking:

    def test_requires_identity(self, client, hour_service):
        assert _book(client, {}, hour_service, "9:00 AM").status_code == 401

    def test_creates_pending_booking(self, client, customer, hour_service):
        resp = _book(client, customer, hour_service, "9:00 AM")
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["status"] == "pending"
        assert body["duration_minutes"] == 60
        assert body["service_name"] == "Massage Therapy"

        booking = db.session.get(Booking, body["id"])
        assert len(booking.claims) == 12

    def test_overlapping_booking_rejected(self, client, customer, other_customer, hour_service, long_service):
        assert _book(client, customer, long_service, "9:00 AM").status_code == 201

        resp = _book(client, other_customer, hour_service, "10:00 AM")
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "Conflicts with Electrical Repairs from 9:00 AM to 10:40 AM"
        entry = AuditLog.query.filter_by(action="BOOKING_CONFLICT").one()
        assert entry.actor_id == "cust-2"
        assert entry.metadata_dict["time"] == "10:00 AM"

    def test_back_to_back_allowed(self, client, customer, other_customer, hour_service):
        assert _book(client, customer, hour_service, "9:00 AM").status_code == 201
        assert _book(client, other_customer, hour_service, "10:00 AM").status_code == 201

    def test_non_canonical_time_rejected(self, client, customer, hour_service):
        resp = _book(client, customer, hour_service, "9:30 AM")
        assert resp.status_code == 400

    def test_past_date_rejected(self, client, customer, hour_service):
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        resp = _book(client, customer, hour_service, "9:00 AM", day=yesterday)
        assert resp.status_code == 400

    def test_time_off_blocks_booking(self, client, customer, admin, hour_service):
        client.post("/timeoff", json={
            "title": "Holiday", "type": "holiday",
            "start_date": FUTURE_DAY, "end_date": FUTURE_DAY, "is_all_day": True,
        }, headers=admin)

        resp = _book(client, customer, hour_service, "9:00 AM")
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "Unavailable due to Holiday"

    def test_cancelled_booking_frees_slot(self, client, customer, other_customer, hour_service):
        first = _book(client, customer, hour_service, "9:00 AM").get_json()
        assert client.post(f"/bookings/{first['id']}/cancel", json={}, headers=customer).status_code == 200

        slots = _availability(client, hour_service)
        assert slots["9:00 AM"]["available"]
        assert _book(client, other_customer, hour_service, "9:00 AM").status_code == 201


class TestConcurrentInsert:

    def test_slot_claims_reject_racing_writer(self, app, hour_service, make_booking):
        make_booking(hour_service, FUTURE_DAY, "9:00 AM")

        # A writer that validated before the first commit landed
        racing = Booking(
            customer_id="cust-9",
            service_id=hour_service.id,
            service_name=hour_service.name,
            duration_minutes=90,
            appointment_date=date.fromisoformat(FUTURE_DAY),
            appointment_time="9:00 AM",
            status="pending",
            payment_status="pending",
        )
        with pytest.raises(ConflictError, match="Slot already booked"):
            insert_booking(racing)

        assert Booking.query.count() == 1
        assert SlotClaim.query.count() == 12

    def test_colliding_reschedule_keeps_old_slot(self, app, hour_service, make_booking):
        mine = make_booking(hour_service, FUTURE_DAY, "9:00 AM")
        other = make_booking(hour_service, "2031-05-10", "9:00 AM", customer_id="cust-2")

        # Another writer claimed 2:00 PM after this reschedule was validated
        db.session.add(SlotClaim(booking_id=other.id, appointment_date=date.fromisoformat(FUTURE_DAY), block_start=840))
        db.session.commit()

        with pytest.raises(ConflictError, match="Slot already booked"):
            update_date_time(mine, date.fromisoformat(FUTURE_DAY), "2:00 PM")

        kept = db.session.get(Booking, mine.id)
        assert kept.appointment_date == date.fromisoformat(FUTURE_DAY)
        assert kept.appointment_time == "9:00 AM"
        assert SlotClaim.query.filter_by(booking_id=mine.id).count() == 12
        assert sorted(c.block_start for c in kept.claims)[0] == 540


class TestReschedule:

    def test_moves_booking(self, client, customer, hour_service):
        booking = _book(client, customer, hour_service, "9:00 AM").get_json()

        resp = client.post(f"/bookings/{booking['id']}/reschedule", json={"date": FUTURE_DAY, "time": "2:00 PM"}, headers=customer)
        assert resp.status_code == 200
        assert resp.get_json()["time"] == "2:00 PM"

        entry = AuditLog.query.filter_by(action="BOOKING_RESCHEDULE", entity_id=str(booking["id"])).one()
        assert entry.metadata_dict["from"]["time"] == "9:00 AM"

        slots = _availability(client, hour_service)
        assert slots["9:00 AM"]["available"]
        assert not slots["2:00 PM"]["available"]

    def test_overlap_with_own_old_slot_allowed(self, client, customer, long_service):
        booking = _book(client, customer, long_service, "9:00 AM").get_json()
        resp = client.post(f"/bookings/{booking['id']}/reschedule", json={"date": FUTURE_DAY, "time": "10:00 AM"}, headers=customer)
        assert resp.status_code == 200

    def test_same_slot_is_rejected_as_no_change(self, client, customer, hour_service):
        booking = _book(client, customer, hour_service, "9:00 AM").get_json()
        resp = client.post(f"/bookings/{booking['id']}/reschedule", json={"date": FUTURE_DAY, "time": "9:00 AM"}, headers=customer)
        assert resp.status_code == 400
        assert "same" in resp.get_json()["error"]

    def test_conflicting_reschedule(self, client, customer, other_customer, hour_service):
        mine = _book(client, customer, hour_service, "9:00 AM").get_json()
        _book(client, other_customer, hour_service, "11:00 AM")

        resp = client.post(f"/bookings/{mine['id']}/reschedule", json={"date": FUTURE_DAY, "time": "11:00 AM"}, headers=customer)
        assert resp.status_code == 409
        assert db.session.get(Booking, mine["id"]).appointment_time == "9:00 AM"

    def test_cancelled_cannot_be_rescheduled(self, client, customer, hour_service):
        booking = _book(client, customer, hour_service, "9:00 AM").get_json()
        client.post(f"/bookings/{booking['id']}/cancel", json={}, headers=customer)
        resp = client.post(f"/bookings/{booking['id']}/reschedule", json={"date": FUTURE_DAY, "time": "2:00 PM"}, headers=customer)
        assert resp.status_code == 400

    def test_past_confirmed_booking_cannot_be_rescheduled(self, client, customer, hour_service, make_booking):
        booking = make_booking(hour_service, "2020-01-10", "9:00 AM", status="confirmed")

        resp = client.post(f"/bookings/{booking.id}/reschedule", json={"date": FUTURE_DAY, "time": "2:00 PM"}, headers=customer)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Cannot reschedule an appointment that is completed"
        assert db.session.get(Booking, booking.id).appointment_date == date(2020, 1, 10)

    def test_other_customer_cannot_reschedule(self, client, customer, other_customer, hour_service):
        booking = _book(client, customer, hour_service, "9:00 AM").get_json()
        resp = client.post(f"/bookings/{booking['id']}/reschedule", json={"date": FUTURE_DAY, "time": "2:00 PM"}, headers=other_customer)
        assert resp.status_code == 404

    def test_reschedule_view_marks_current_slot(self, client, customer, hour_service):
        booking = _book(client, customer, hour_service, "10:00 AM").get_json()
        slots = _availability(client, hour_service, headers=customer, bookingId=booking["id"])
        assert slots["10:00 AM"]["available"]
        assert slots["10:00 AM"]["reason"] == "Your current appointment time"


class TestEffectiveStatus:

    def test_paid_pending_is_confirmed_and_persisted(self, client, customer, hour_service, make_booking, payments):
        booking = make_booking(hour_service, FUTURE_DAY, "9:00 AM", status="pending", payment_ref="cs_paid")
        payments.paid["cs_paid"] = True

        resp = client.get(f"/bookings/{booking.id}/status", headers=customer)
        assert resp.get_json()["status"] == "confirmed"
        assert db.session.get(Booking, booking.id).status == "confirmed"
        assert db.session.get(Booking, booking.id).payment_status == "paid"

        # second read is stable and no longer consults the provider
        resp = client.get(f"/bookings/{booking.id}/status", headers=customer)
        assert resp.get_json()["status"] == "confirmed"
        assert payments.calls == ["cs_paid"]

    def test_past_confirmed_shown_completed_without_persisting(self, client, customer, hour_service, make_booking):
        booking = make_booking(hour_service, "2020-01-10", "9:00 AM", status="confirmed")

        resp = client.get(f"/bookings/{booking.id}/status", headers=customer)
        assert resp.get_json()["status"] == "completed"
        assert db.session.get(Booking, booking.id).status == "confirmed"

    def test_paid_past_pending_becomes_completed(self, client, customer, hour_service, make_booking, payments):
        booking = make_booking(hour_service, "2020-01-10", "9:00 AM", status="pending", payment_ref="cs_old")
        payments.paid["cs_old"] = True

        resp = client.get(f"/bookings/{booking.id}/status", headers=customer)
        assert resp.get_json()["status"] == "completed"

    def test_provider_failure_falls_back_to_stored(self, client, customer, hour_service, make_booking, payments):
        booking = make_booking(hour_service, FUTURE_DAY, "9:00 AM", status="pending", payment_ref="cs_x")
        payments.failing = True

        resp = client.get(f"/bookings/{booking.id}/status", headers=customer)
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "pending"

    def test_my_bookings_lists_effective_statuses(self, client, customer, hour_service, make_booking):
        make_booking(hour_service, "2020-01-10", "9:00 AM", status="confirmed")
        make_booking(hour_service, FUTURE_DAY, "9:00 AM", status="cancelled")

        rows = client.get("/bookings/me", headers=customer).get_json()
        assert sorted(r["status"] for r in rows) == ["cancelled", "completed"]

    def test_admin_sees_any_booking(self, client, customer, other_customer, admin, hour_service):
        booking = _book(client, customer, hour_service, "9:00 AM").get_json()

        assert client.get(f"/bookings/{booking['id']}", headers=other_customer).status_code == 404
        resp = client.get(f"/bookings/{booking['id']}", headers=admin)
        assert resp.status_code == 200
        assert resp.get_json()["customer_id"] == "cust-1"


class TestCancel:

    def test_past_confirmed_booking_cannot_be_cancelled(self, client, customer, hour_service, make_booking):
        booking = make_booking(hour_service, "2020-01-10", "9:00 AM", status="confirmed")

        assert client.get(f"/bookings/{booking.id}/status", headers=customer).get_json()["status"] == "completed"
        resp = client.post(f"/bookings/{booking.id}/cancel", json={}, headers=customer)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Cannot cancel an appointment that is completed"
        assert db.session.get(Booking, booking.id).status == "confirmed"

    def test_cancel_twice_rejected(self, client, customer, hour_service):
        booking = _book(client, customer, hour_service, "9:00 AM").get_json()
        assert client.post(f"/bookings/{booking['id']}/cancel", json={"reason": "sick"}, headers=customer).status_code == 200

        resp = client.post(f"/bookings/{booking['id']}/cancel", json={}, headers=customer)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Cannot cancel an appointment that is cancelled"


class TestDeleteBooking:

    def test_owner_deletes_pending_booking(self, client, customer, other_customer, hour_service):
        booking = _book(client, customer, hour_service, "9:00 AM").get_json()

        resp = client.post(f"/bookings/{booking['id']}/delete", headers=customer)
        assert resp.status_code == 200
        assert db.session.get(Booking, booking["id"]) is None
        assert SlotClaim.query.count() == 0

        entry = AuditLog.query.filter_by(action="BOOKING_DELETE").one()
        assert entry.entity_id == str(booking["id"])
        assert entry.metadata_dict["time"] == "9:00 AM"

        # the slot is free again
        assert _book(client, other_customer, hour_service, "9:00 AM").status_code == 201

    def test_admin_can_delete(self, client, admin, hour_service, make_booking):
        booking = make_booking(hour_service, FUTURE_DAY, "9:00 AM", status="pending")
        assert client.post(f"/bookings/{booking.id}/delete", headers=admin).status_code == 200

    def test_other_customer_cannot_delete(self, client, other_customer, hour_service, make_booking):
        booking = make_booking(hour_service, FUTURE_DAY, "9:00 AM", status="pending")
        assert client.post(f"/bookings/{booking.id}/delete", headers=other_customer).status_code == 404
        assert Booking.query.count() == 1

    def test_confirmed_booking_kept(self, client, customer, hour_service, make_booking):
        booking = make_booking(hour_service, FUTURE_DAY, "9:00 AM", status="confirmed")
        resp = client.post(f"/bookings/{booking.id}/delete", headers=customer)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Only pending bookings can be deleted"
        assert SlotClaim.query.count() == 12


class TestInputValidation:

    def test_non_numeric_price_rejected(self, client, admin):
        resp = client.post("/services", json={"name": "Tuning", "duration": "45 min", "price": "cheap"}, headers=admin)
        assert resp.status_code == 400

    def test_fractional_duration_stored_in_minutes(self, client, admin):
        resp = client.post("/services", json={"name": "Deep Clean", "duration": "1.5 hours", "price": 80}, headers=admin)
        assert resp.status_code == 201
        assert resp.get_json()["duration_minutes"] == 90
