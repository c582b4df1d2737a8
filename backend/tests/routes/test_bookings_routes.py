# backend/tests/routes/test_bookings_routes.py
"""
Tests for the /api/v1/bookings endpoints.

Bodies are camelCase on the wire; errors are problem+json with a code.
"""

from datetime import time, timedelta

import pytest
import stripe

from tests.factories import auth_headers_for, book, make_customer
from trim_booking.models import Booking
from trim_booking.models.booking import BookingStatus

BOOKINGS_URL = "/api/v1/bookings"


def _payload(tenant, booking_day, start="10:00", **overrides):
    body = {
        "customerId": tenant.customer.id,
        "barberId": tenant.barber.id,
        "serviceId": tenant.service.id,
        "bookingDate": booking_day.isoformat(),
        "startTime": start,
        "paymentMethod": "pay_online",
    }
    body.update(overrides)
    return body


class TestCreateBooking:
    def test_online_booking_returns_payment_handle(
        self, client, tenant_a, booking_day, customer_headers, mock_stripe_intent
    ):
        response = client.post(
            BOOKINGS_URL, json=_payload(tenant_a, booking_day), headers=customer_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["booking"]["status"] == "PENDING"
        assert data["booking"]["paymentStatus"] == "DEPOSIT_PENDING"
        assert data["booking"]["startTime"] == "10:00:00"
        assert data["booking"]["endTime"] == "10:30:00"
        assert data["booking"]["depositAmount"] == 25.0
        assert data["booking"]["expiresAt"] is not None
        assert data["payment"]["clientSecret"] == "pi_test_123_secret_abc"
        assert data["payment"]["amountCents"] == 2500

    def test_pay_in_shop_booking_has_no_payment(
        self, client, tenant_a, booking_day, customer_headers, mock_stripe_intent
    ):
        response = client.post(
            BOOKINGS_URL,
            json=_payload(tenant_a, booking_day, paymentMethod="pay_in_shop"),
            headers=customer_headers,
        )

        assert response.status_code == 201
        assert response.json()["payment"] is None
        assert response.json()["booking"]["expiresAt"] is None
        mock_stripe_intent.assert_not_called()

    def test_slot_taken_is_conflict(
        self, client, db, tenant_a, booking_day, customer_headers, mock_stripe_intent
    ):
        other = make_customer(db, tenant_a, "ben@example.com")
        existing = book(db, tenant_a, booking_day, time(10, 0), customer=other)

        response = client.post(
            BOOKINGS_URL,
            json=_payload(tenant_a, booking_day, start="10:15"),
            headers=customer_headers,
        )

        assert response.status_code == 409
        problem = response.json()
        assert problem["code"] == "BOOKING_CONFLICT"
        assert problem["errors"]["conflicting_booking_id"] == existing.id
        assert response.headers["content-type"].startswith("application/problem+json")

    def test_outside_hours_is_unprocessable(
        self, client, tenant_a, booking_day, customer_headers
    ):
        response = client.post(
            BOOKINGS_URL,
            json=_payload(tenant_a, booking_day, start="12:15"),
            headers=customer_headers,
        )

        assert response.status_code == 422
        assert response.json()["code"] == "OUTSIDE_WORKING_HOURS"

    def test_processor_failure_releases_slot(
        self, client, db, tenant_a, booking_day, customer_headers, mock_stripe_intent
    ):
        mock_stripe_intent.side_effect = stripe.APIConnectionError("Network down")

        response = client.post(
            BOOKINGS_URL, json=_payload(tenant_a, booking_day), headers=customer_headers
        )

        assert response.status_code == 502
        assert response.json()["code"] == "PAYMENT_PROCESSOR_ERROR"
        booking = db.query(Booking).one()
        db.refresh(booking)
        assert booking.status == BookingStatus.CANCELLED.value

    def test_customer_cannot_book_for_someone_else(
        self, client, db, tenant_a, booking_day, customer_headers
    ):
        other = make_customer(db, tenant_a, "ben@example.com")

        response = client.post(
            BOOKINGS_URL,
            json=_payload(tenant_a, booking_day, customerId=other.id),
            headers=customer_headers,
        )

        assert response.status_code == 403

    def test_staff_can_book_for_a_customer(
        self, client, tenant_a, booking_day, staff_headers
    ):
        response = client.post(
            BOOKINGS_URL,
            json=_payload(tenant_a, booking_day, paymentMethod="pay_in_shop"),
            headers=staff_headers,
        )

        assert response.status_code == 201
        assert response.json()["booking"]["customerId"] == tenant_a.customer.id

    def test_blacklisted_customer_is_forbidden(self, client, db, tenant_a, booking_day):
        blocked = make_customer(db, tenant_a, "blocked@example.com", blacklisted=True)

        response = client.post(
            BOOKINGS_URL,
            json=_payload(tenant_a, booking_day, customerId=blocked.id),
            headers=auth_headers_for(blocked, tenant_a.business.slug),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "CUSTOMER_BLOCKED"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"bookingDate": "2030-13-45"},
            {"bookingDate": "2030-05-01T10:00:00"},
            {"startTime": "25:00"},
            {"startTime": "10:00:00+01:00"},
            {"paymentMethod": "crypto"},
            {"unexpected": "field"},
        ],
    )
    def test_malformed_body_is_bad_request(
        self, client, tenant_a, booking_day, customer_headers, overrides
    ):
        response = client.post(
            BOOKINGS_URL,
            json=_payload(tenant_a, booking_day, **overrides),
            headers=customer_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_missing_token_is_unauthorized(self, client, tenant_a, booking_day):
        response = client.post(
            BOOKINGS_URL,
            json=_payload(tenant_a, booking_day),
            headers={"X-Business-Slug": tenant_a.business.slug},
        )

        assert response.status_code == 401

    def test_token_from_another_business_is_forbidden(
        self, client, tenant_a, tenant_b, booking_day
    ):
        response = client.post(
            BOOKINGS_URL,
            json=_payload(tenant_a, booking_day),
            headers=auth_headers_for(tenant_b.customer, tenant_a.business.slug),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "TENANT_MISMATCH"


class TestReadAndReschedule:
    def test_owner_can_read_booking(self, client, db, tenant_a, booking_day, customer_headers):
        booking = book(db, tenant_a, booking_day, time(10, 0))

        response = client.get(f"{BOOKINGS_URL}/{booking.id}", headers=customer_headers)

        assert response.status_code == 200
        assert response.json()["id"] == booking.id
        assert response.json()["businessId"] == tenant_a.business.id

    def test_other_customer_cannot_read_booking(self, client, db, tenant_a, booking_day):
        booking = book(db, tenant_a, booking_day, time(10, 0))
        other = make_customer(db, tenant_a, "ben@example.com")

        response = client.get(
            f"{BOOKINGS_URL}/{booking.id}",
            headers=auth_headers_for(other, tenant_a.business.slug),
        )

        assert response.status_code == 403

    def test_booking_in_another_tenant_is_not_found(
        self, client, db, tenant_a, tenant_b, booking_day
    ):
        theirs = book(db, tenant_b, booking_day, time(10, 0))

        response = client.get(
            f"{BOOKINGS_URL}/{theirs.id}",
            headers=auth_headers_for(tenant_a.staff, tenant_a.business.slug),
        )

        assert response.status_code == 404
        assert response.json()["code"] == "BOOKING_NOT_FOUND"

    def test_malformed_booking_id_is_rejected(self, client, tenant_a, customer_headers):
        response = client.get(f"{BOOKINGS_URL}/not-a-ulid", headers=customer_headers)

        assert response.status_code == 400

    def test_reschedule(self, client, db, tenant_a, booking_day, customer_headers):
        booking = book(db, tenant_a, booking_day, time(10, 0), payment_method="pay_in_shop")
        next_day = booking_day + timedelta(days=1)

        response = client.put(
            f"{BOOKINGS_URL}/{booking.id}",
            json={"bookingDate": next_day.isoformat(), "startTime": "15:00"},
            headers=customer_headers,
        )

        assert response.status_code == 200
        assert response.json()["bookingDate"] == next_day.isoformat()
        assert response.json()["startTime"] == "15:00:00"

    def test_reschedule_with_utc_offset_is_bad_request(
        self, client, db, tenant_a, booking_day, customer_headers
    ):
        booking = book(db, tenant_a, booking_day, time(10, 0), payment_method="pay_in_shop")

        response = client.put(
            f"{BOOKINGS_URL}/{booking.id}",
            json={"bookingDate": booking_day.isoformat(), "startTime": "15:00:00+01:00"},
            headers=customer_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"
        db.refresh(booking)
        assert booking.start_time == time(10, 0)


class TestActions:
    def test_customer_can_cancel_own_booking(
        self, client, db, tenant_a, booking_day, customer_headers, mock_enqueue
    ):
        booking = book(db, tenant_a, booking_day, time(10, 0))

        response = client.patch(
            f"{BOOKINGS_URL}/{booking.id}/cancel",
            json={"reason": "Something came up"},
            headers=customer_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"
        assert response.json()["cancellationReason"] == "Something came up"
        assert mock_enqueue.call_count == 1

    def test_cancel_without_body(self, client, db, tenant_a, booking_day, customer_headers):
        booking = book(db, tenant_a, booking_day, time(10, 0))

        response = client.patch(f"{BOOKINGS_URL}/{booking.id}/cancel", headers=customer_headers)

        assert response.status_code == 200

    def test_cancel_twice_is_conflict(self, client, db, tenant_a, booking_day, customer_headers):
        booking = book(db, tenant_a, booking_day, time(10, 0))
        client.patch(f"{BOOKINGS_URL}/{booking.id}/cancel", headers=customer_headers)

        response = client.patch(f"{BOOKINGS_URL}/{booking.id}/cancel", headers=customer_headers)

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_TRANSITION"

    @pytest.mark.parametrize("action", ["complete", "mark-paid", "no-show"])
    def test_staff_actions_reject_customers(
        self, client, db, tenant_a, booking_day, customer_headers, action
    ):
        booking = book(db, tenant_a, booking_day, time(10, 0), payment_method="pay_in_shop")

        response = client.put(f"{BOOKINGS_URL}/{booking.id}/{action}", headers=customer_headers)

        assert response.status_code == 403
        assert response.json()["code"] == "STAFF_REQUIRED"

    def test_staff_settle_then_complete(self, client, db, tenant_a, booking_day, staff_headers):
        booking = book(db, tenant_a, booking_day, time(10, 0), payment_method="pay_in_shop")

        paid = client.put(f"{BOOKINGS_URL}/{booking.id}/mark-paid", headers=staff_headers)
        completed = client.put(f"{BOOKINGS_URL}/{booking.id}/complete", headers=staff_headers)

        assert paid.status_code == 200
        assert paid.json()["status"] == "CONFIRMED"
        assert paid.json()["paymentStatus"] == "FULLY_PAID"
        assert completed.status_code == 200
        assert completed.json()["status"] == "COMPLETED"
        assert completed.json()["outstandingBalance"] == 0.0

    def test_complete_pending_booking_is_conflict(
        self, client, db, tenant_a, booking_day, staff_headers
    ):
        booking = book(db, tenant_a, booking_day, time(10, 0))

        response = client.put(f"{BOOKINGS_URL}/{booking.id}/complete", headers=staff_headers)

        assert response.status_code == 409


class TestBarberSchedule:
    def test_staff_sees_schedule(self, client, db, tenant_a, booking_day, staff_headers):
        booking = book(db, tenant_a, booking_day, time(10, 0))

        response = client.get(
            f"{BOOKINGS_URL}/barber/{tenant_a.barber.id}/schedule",
            params={"date": booking_day.isoformat()},
            headers=staff_headers,
        )

        assert response.status_code == 200
        entries = response.json()["entries"]
        assert [e["bookingId"] for e in entries] == [booking.id]
        assert entries[0]["customerName"] == "Ana Murphy"

    def test_customer_cannot_see_schedule(self, client, tenant_a, booking_day, customer_headers):
        response = client.get(
            f"{BOOKINGS_URL}/barber/{tenant_a.barber.id}/schedule",
            params={"date": booking_day.isoformat()},
            headers=customer_headers,
        )

        assert response.status_code == 403


class TestBookingLists:
    def test_customer_sees_own_upcoming_bookings(
        self, client, db, tenant_a, booking_day, customer_headers
    ):
        booking = book(db, tenant_a, booking_day, time(10, 0), payment_method="pay_in_shop")

        response = client.get(
            f"{BOOKINGS_URL}/customer/{tenant_a.customer.id}",
            params={"scope": "upcoming"},
            headers=customer_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["bookings"][0]["id"] == booking.id
        assert data["bookings"][0]["bookingDate"] == booking_day.isoformat()

    def test_customer_cannot_list_someone_else(self, client, db, tenant_a):
        other = make_customer(db, tenant_a, "ben@example.com")

        response = client.get(
            f"{BOOKINGS_URL}/customer/{tenant_a.customer.id}",
            headers=auth_headers_for(other, tenant_a.business.slug),
        )

        assert response.status_code == 403

    def test_staff_can_list_a_customer(self, client, db, tenant_a, booking_day, staff_headers):
        book(db, tenant_a, booking_day, time(10, 0))

        response = client.get(
            f"{BOOKINGS_URL}/customer/{tenant_a.customer.id}", headers=staff_headers
        )

        assert response.status_code == 200
        assert response.json()["total"] == 1

    def test_unknown_scope_is_bad_request(self, client, tenant_a, customer_headers):
        response = client.get(
            f"{BOOKINGS_URL}/customer/{tenant_a.customer.id}",
            params={"scope": "soon"},
            headers=customer_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_staff_lists_barber_bookings_in_range(
        self, client, db, tenant_a, booking_day, staff_headers
    ):
        inside = book(db, tenant_a, booking_day, time(10, 0), payment_method="pay_in_shop")
        book(db, tenant_a, booking_day + timedelta(days=1), time(10, 0), payment_method="pay_in_shop")

        response = client.get(
            f"{BOOKINGS_URL}/barber/{tenant_a.barber.id}",
            params={"from": booking_day.isoformat(), "to": booking_day.isoformat()},
            headers=staff_headers,
        )

        assert response.status_code == 200
        assert [b["id"] for b in response.json()["bookings"]] == [inside.id]

    def test_customer_cannot_list_barber_bookings(self, client, tenant_a, customer_headers):
        response = client.get(
            f"{BOOKINGS_URL}/barber/{tenant_a.barber.id}", headers=customer_headers
        )

        assert response.status_code == 403
        assert response.json()["code"] == "STAFF_REQUIRED"

    def test_foreign_barber_is_not_found(self, client, tenant_a, tenant_b, staff_headers):
        response = client.get(
            f"{BOOKINGS_URL}/barber/{tenant_b.barber.id}", headers=staff_headers
        )

        assert response.status_code == 404
        assert response.json()["code"] == "BARBER_NOT_FOUND"
