from salondesk.auth import LOCKOUT_KEY
from salondesk.config import TestConfig
from salondesk.domain import admin_roles, settings
from salondesk.models import AdminRole, ROLE_PERMISSIONS
from salondesk.ratelimit import LoginLockout

from tests.base import AppTestCase
from tests.test_ratelimit import FakeClock


class SessionTestCase(AppTestCase):
    def test_no_session_is_401(self) -> None:
        response = self.client.get("/api/products")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json(), {"error": "Authentication required"})

    def test_missing_permission_is_403(self) -> None:
        self.login(name="Front desk", role="receptionist")
        self.assertEqual(self.client.get("/api/products").status_code, 403)
        self.assertEqual(self.client.get("/api/appointments").status_code, 200)

    def test_role_defaults_to_its_permission_set(self) -> None:
        body = self.login(name="Front desk", role="receptionist")
        self.assertEqual(body["permissions"], ROLE_PERMISSIONS["receptionist"])

    def test_empty_permissions_grant_everything(self) -> None:
        self.login(name="Legacy", role="manager", permissions=[])
        self.assertEqual(self.client.get("/api/products").status_code, 200)
        self.assertEqual(self.client.get("/api/admin-roles").status_code, 200)

    def test_wildcard_grants_everything(self) -> None:
        self.login(name="Root", role="receptionist", permissions=["*"])
        self.assertEqual(self.client.get("/api/reports/payroll?startDate=2024-06-01&endDate=2024-06-30").status_code, 200)

    def test_unknown_permission_is_rejected(self) -> None:
        response = self.client.post("/api/admin-roles", json={"name": "X", "pin": "1234", "permissions": ["fly"]})
        self.assertEqual(response.status_code, 400)

    def test_session_and_logout(self) -> None:
        self.login()
        session = self.client.get("/api/admin-roles/session").get_json()
        self.assertEqual(session["name"], "Owner")
        self.assertEqual(session["role"], "owner")

        self.assertEqual(self.client.post("/api/admin-roles/logout").status_code, 200)
        self.assertEqual(self.client.get("/api/admin-roles/session").status_code, 401)

    def test_pin_is_stored_hashed(self) -> None:
        self.login(pin="4321")
        role = AdminRole.query.filter_by(name="Owner").one()
        self.assertNotEqual(role.pin_hash, "4321")
        self.assertNotIn("pinHash", role.to_dict())
        self.assertTrue(role.to_dict()["hasPin"])


class EmptyPermissionsDenyConfig(TestConfig):
    EMPTY_PERMISSIONS_GRANT_ALL = False


class DefaultDenyTestCase(AppTestCase):
    config_class = EmptyPermissionsDenyConfig

    def test_empty_permissions_grant_nothing(self) -> None:
        self.login(name="Legacy", role="manager", permissions=[])
        self.assertEqual(self.client.get("/api/products").status_code, 403)


class PinLoginTestCase(AppTestCase):
    def setUp(self) -> None:
        super().setUp()
        admin_roles.create_role({"name": "Owner", "role": "owner", "pin": "1234"})

    def verify(self, pin, name="Owner"):
        return self.client.post("/api/admin-roles/verify-pin", json={"name": name, "pin": pin})

    def test_wrong_pin_is_401(self) -> None:
        response = self.verify("0000")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json(), {"error": "Invalid PIN"})

    def test_lockout_after_five_failures(self) -> None:
        for _ in range(5):
            self.assertEqual(self.verify("0000").status_code, 401)
        locked = self.verify("1234")
        self.assertEqual(locked.status_code, 429)
        self.assertGreater(locked.get_json()["retryAfter"], 0)
        self.assertIn("Retry-After", locked.headers)

    def test_success_clears_failures(self) -> None:
        for _ in range(4):
            self.verify("0000")
        self.assertEqual(self.verify("1234").status_code, 200)
        for _ in range(4):
            self.assertEqual(self.verify("0000").status_code, 401)
        self.assertEqual(self.verify("1234").status_code, 200)

    def test_lockout_is_per_name(self) -> None:
        admin_roles.create_role({"name": "Desk", "role": "receptionist", "pin": "5678"})
        for _ in range(5):
            self.verify("0000")
        self.assertEqual(self.verify("5678", name="Desk").status_code, 200)

    def test_quiet_failures_are_swept_on_later_attempts(self) -> None:
        clock = FakeClock()
        lockout = LoginLockout(5, 300, clock=clock)
        self.app.extensions[LOCKOUT_KEY] = lockout
        for n in range(20):
            self.assertEqual(self.verify("0000", name=f"Guess {n}").status_code, 401)
        self.assertEqual(len(lockout._entries), 20)

        clock.advance(301)
        self.assertEqual(self.verify("1234").status_code, 200)
        self.assertEqual(lockout._entries, {})

    def test_reset_pin_requires_business_phone(self) -> None:
        settings.update_settings({"phone": "+212 6 12-34-56-78"})
        wrong = self.client.post("/api/admin-roles/reset-pin", json={
            "name": "Owner", "businessPhone": "0600000000", "newPin": "9999",
        })
        self.assertEqual(wrong.status_code, 401)

        ok = self.client.post("/api/admin-roles/reset-pin", json={
            "name": "Owner", "businessPhone": "212612345678", "newPin": "9999",
        })
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(self.verify("9999").status_code, 200)

    def test_reset_pin_refused_while_salon_phone_unset(self) -> None:
        response = self.client.post("/api/admin-roles/reset-pin", json={
            "name": "Owner", "businessPhone": "0612345678", "newPin": "9999",
        })
        self.assertEqual(response.status_code, 401)

    def test_reset_pin_validates_input(self) -> None:
        response = self.client.post("/api/admin-roles/reset-pin", json={
            "name": "Owner", "businessPhone": "", "newPin": "12",
        })
        self.assertEqual(response.status_code, 400)

    def test_reset_pin_with_non_string_name_is_a_validation_error(self) -> None:
        for name in (123, None, ["Owner"]):
            response = self.client.post("/api/admin-roles/reset-pin", json={
                "name": name, "businessPhone": "0612345678", "newPin": "9999",
            })
            self.assertEqual(response.status_code, 400, name)
            self.assertIn("error", response.get_json())
        self.assertEqual(self.client.post("/api/admin-roles/reset-pin", json=["Owner"]).status_code, 400)


class BootstrapTestCase(AppTestCase):
    def test_first_role_needs_no_session(self) -> None:
        first = self.client.post("/api/admin-roles", json={"name": "Owner", "role": "owner", "pin": "1234"})
        self.assertEqual(first.status_code, 201)

        second = self.client.post("/api/admin-roles", json={"name": "Desk", "pin": "5678"})
        self.assertEqual(second.status_code, 401)

    def test_owner_can_add_roles(self) -> None:
        self.login()
        response = self.client.post("/api/admin-roles", json={"name": "Desk", "pin": "5678"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()["role"], "receptionist")

        duplicate = self.client.post("/api/admin-roles", json={"name": "Desk", "pin": "5678"})
        self.assertEqual(duplicate.status_code, 409)

    def test_receptionist_cannot_add_roles(self) -> None:
        self.login(name="Desk", role="receptionist")
        response = self.client.post("/api/admin-roles", json={"name": "Other", "pin": "5678"})
        self.assertEqual(response.status_code, 403)

    def test_login_picker_lists_names_only(self) -> None:
        self.login()
        admin_roles.create_role({"name": "Desk", "role": "receptionist", "pin": "5678"})
        self.client.post("/api/admin-roles/logout")
        response = self.client.get("/api/admin-roles/names")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), [{"name": "Owner"}, {"name": "Desk"}])
