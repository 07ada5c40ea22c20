from unittest import mock

from salondesk.config import TestConfig
from salondesk.domain import inventory
from salondesk.extensions import db
from salondesk.models import Appointment, Product
from salondesk.public import LIMITER_KEY
from salondesk.ratelimit import FixedWindowLimiter

from tests.base import AppTestCase
from tests.test_ratelimit import FakeClock


class PublicBookingTestCase(AppTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.add_staff("Amina")
        self.product = inventory.create_product({"name": "Wax", "quantity": 3})
        self.add_service("Sourcils", price=30, duration=30, linkedProductId=self.product.id)

    def book(self, **overrides):
        payload = {
            "date": "2024-06-01",
            "startTime": "10:00",
            "duration": 30,
            "client": "Leila",
            "phone": "0612345678",
            "service": "Sourcils",
            "staff": "Amina",
            "price": 30,
            "total": 30,
        }
        payload.update(overrides)
        return self.client.post("/api/public/appointments", json=payload)

    def test_paid_flag_from_public_is_ignored(self) -> None:
        response = self.book(paid=True)
        self.assertEqual(response.status_code, 201)
        appointment = Appointment.query.one()
        self.assertFalse(appointment.paid)
        self.assertEqual(appointment.created_by, "public")
        self.assertEqual(appointment.client, "Leila (0612345678)")
        # nothing consumed, nothing accrued
        self.assertEqual(db.session.get(Product, self.product.id).quantity, 3)

    def test_response_hides_client_details(self) -> None:
        body = self.book().get_json()
        self.assertEqual(set(body["appointment"]), {"date", "startTime", "duration", "staff"})

    def test_overlapping_public_booking_is_refused(self) -> None:
        self.add_service("Couleur", price=300, duration=90)
        self.assertEqual(self.book(service="Couleur").status_code, 201)
        response = self.book(startTime="10:30", client="Nadia")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(Appointment.query.count(), 1)

    def test_figures_come_from_the_service(self) -> None:
        response = self.book(duration=1, price=0, total=0)
        self.assertEqual(response.status_code, 201)
        appointment = Appointment.query.one()
        self.assertEqual(appointment.duration, 30)
        self.assertEqual(appointment.price, 30)
        self.assertEqual(appointment.total, 30)

    def test_start_time_off_the_slot_grid_is_rejected(self) -> None:
        for start_time in ("03:07", "10:15", "08:30"):
            response = self.book(startTime=start_time)
            self.assertEqual(response.status_code, 400, start_time)
        self.assertEqual(Appointment.query.count(), 0)

    def test_back_to_back_public_booking_is_accepted(self) -> None:
        self.assertEqual(self.book().status_code, 201)
        self.assertEqual(self.book(startTime="10:30", client="Nadia").status_code, 201)

    def test_unknown_staff_or_service_is_rejected(self) -> None:
        self.assertEqual(self.book(staff="Ghost").status_code, 400)
        self.assertEqual(self.book(service="Ghost").status_code, 400)

    def test_confirmation_is_sent_and_failures_do_not_break_booking(self) -> None:
        with mock.patch("salondesk.messaging.send_booking_confirmation", side_effect=RuntimeError("down")) as send:
            response = self.book()
        self.assertEqual(response.status_code, 201)
        send.assert_called_once_with("0612345678", "Leila", "2024-06-01", "10:00", "Sourcils")

    def test_public_appointments_projection(self) -> None:
        self.book()
        response = self.client.get("/api/public/appointments?date=2024-06-01")
        self.assertEqual(response.get_json(), [
            {"date": "2024-06-01", "startTime": "10:00", "duration": 30, "staff": "Amina"},
        ])
        self.assertEqual(self.client.get("/api/public/appointments").status_code, 400)

    def test_catalog_endpoints(self) -> None:
        services = self.client.get("/api/public/services").get_json()
        self.assertEqual(services, [{"name": "Sourcils", "price": 30, "duration": 30, "category": "Coiffure"}])
        staff = self.client.get("/api/public/staff").get_json()
        self.assertEqual(staff, [{"name": "Amina", "color": "#d63384"}])
        settings = self.client.get("/api/public/settings").get_json()
        self.assertEqual(settings["openingTime"], "09:00")
        self.assertNotIn("phone", settings)

    def test_public_availability(self) -> None:
        self.book()
        slots = self.client.get("/api/public/availability?staff=Amina&date=2024-06-01").get_json()
        self.assertNotIn("10:00", slots)
        self.assertIn("10:30", slots)

    def test_public_surface_does_not_need_a_session(self) -> None:
        self.assertEqual(self.client.get("/api/appointments").status_code, 401)
        self.assertEqual(self.client.get("/api/public/staff").status_code, 200)


class StrictRateLimitConfig(TestConfig):
    PUBLIC_RATE_LIMIT = 3
    PUBLIC_RATE_WINDOW = 60


class PublicRateLimitTestCase(AppTestCase):
    config_class = StrictRateLimitConfig

    def test_too_many_requests(self) -> None:
        for _ in range(3):
            self.assertEqual(self.client.get("/api/public/services").status_code, 200)
        response = self.client.get("/api/public/services")
        self.assertEqual(response.status_code, 429)
        self.assertIn("Retry-After", response.headers)
        self.assertGreaterEqual(response.get_json()["retryAfter"], 1)

    def test_limit_does_not_apply_to_admin_routes(self) -> None:
        for _ in range(5):
            self.assertEqual(self.client.get("/health").status_code, 200)

    def test_stale_addresses_are_swept_on_later_requests(self) -> None:
        clock = FakeClock()
        limiter = FixedWindowLimiter(3, 60, clock=clock)
        self.app.extensions[LIMITER_KEY] = limiter
        for n in range(50):
            response = self.client.get("/api/public/staff", environ_base={"REMOTE_ADDR": f"10.0.0.{n}"})
            self.assertEqual(response.status_code, 200)
        self.assertEqual(len(limiter._entries), 50)

        clock.advance(61)
        self.client.get("/api/public/staff", environ_base={"REMOTE_ADDR": "10.0.1.1"})
        self.assertEqual(set(limiter._entries), {"10.0.1.1"})
