from salondesk.extensions import db
from salondesk.models import Appointment, Service, StaffDeduction

from tests.base import AppTestCase


class InventoryApiTestCase(AppTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.login()

    def create(self, name="Shampoo", quantity=10, threshold=5):
        return self.client.post("/api/products", json={
            "name": name, "quantity": quantity, "lowStockThreshold": threshold,
        })

    def test_duplicate_name_is_409(self) -> None:
        self.assertEqual(self.create().status_code, 201)
        self.assertEqual(self.create().status_code, 409)

    def test_low_stock_and_lookup_by_name(self) -> None:
        self.create("Shampoo", 10)
        self.create("Wax", 2)
        low = self.client.get("/api/products/low-stock").get_json()
        self.assertEqual([p["name"] for p in low], ["Wax"])
        self.assertTrue(low[0]["lowStock"])
        self.assertEqual(self.client.get("/api/products/by-name/Shampoo").get_json()["quantity"], 10)
        self.assertEqual(self.client.get("/api/products/by-name/Nope").status_code, 404)

    def test_set_quantity_rejects_negative(self) -> None:
        product_id = self.create().get_json()["id"]
        ok = self.client.patch(f"/api/products/{product_id}/quantity", json={"quantity": 4})
        self.assertEqual(ok.get_json()["quantity"], 4)
        bad = self.client.patch(f"/api/products/{product_id}/quantity", json={"quantity": -1})
        self.assertEqual(bad.status_code, 400)

    def test_delete_unlinks_services(self) -> None:
        product_id = self.create().get_json()["id"]
        service = self.add_service(linkedProductId=product_id)
        self.assertEqual(self.client.delete(f"/api/products/{product_id}").status_code, 200)
        db.session.expire_all()
        self.assertIsNone(db.session.get(Service, service.id).linked_product_id)


class StaffApiTestCase(AppTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.login()

    def test_color_must_be_hex(self) -> None:
        response = self.client.post("/api/staff", json={"name": "Amina", "color": "pink"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("hex", response.get_json()["error"])

    def test_rename_rewrites_cached_names(self) -> None:
        amina = self.add_staff("Amina")
        self.add_service()
        self.client.post("/api/appointments", json={
            "date": "2024-06-01", "startTime": "10:00", "duration": 30, "client": "Sara",
            "service": "Brushing", "staff": "Amina", "price": 100, "total": 100,
        })
        self.client.post("/api/staff-deductions", json={
            "staffName": "Amina", "type": "advance", "description": "Advance", "amount": 50, "date": "2024-06-02",
        })

        response = self.client.patch(f"/api/staff/{amina.id}", json={"name": "Amina B."})
        self.assertEqual(response.status_code, 200)
        db.session.expire_all()
        self.assertEqual(Appointment.query.one().staff, "Amina B.")
        self.assertEqual(StaffDeduction.query.one().staff_name, "Amina B.")
        self.assertEqual(StaffDeduction.query.one().staff_id, amina.id)


class ServiceApiTestCase(AppTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.login()

    def test_commission_must_be_a_percentage(self) -> None:
        base = {"name": "Brushing", "price": 50, "duration": 30, "category": "Coiffure"}
        self.assertEqual(self.client.post("/api/services", json=dict(base, commissionPercent=120)).status_code, 400)
        created = self.client.post("/api/services", json=dict(base, commissionPercent=40))
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.get_json()["commissionPercent"], 40)

    def test_default_commission_is_fifty(self) -> None:
        created = self.client.post("/api/services", json={
            "name": "Brushing", "price": 50, "duration": 30, "category": "Coiffure",
        })
        self.assertEqual(created.get_json()["commissionPercent"], 50)

    def test_linked_product_must_exist(self) -> None:
        response = self.client.post("/api/services", json={
            "name": "Brushing", "price": 50, "duration": 30, "category": "Coiffure", "linkedProductId": 42,
        })
        self.assertEqual(response.status_code, 400)

    def test_categories(self) -> None:
        self.assertEqual(self.client.post("/api/categories", json={"name": "Coiffure"}).status_code, 201)
        self.assertEqual(self.client.post("/api/categories", json={"name": "Coiffure"}).status_code, 409)
        self.assertEqual([c["name"] for c in self.client.get("/api/categories").get_json()], ["Coiffure"])


class SettingsApiTestCase(AppTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.login()

    def test_defaults_created_on_first_read(self) -> None:
        body = self.client.get("/api/business-settings").get_json()
        self.assertEqual(body["openingTime"], "09:00")
        self.assertEqual(body["workingDays"], [1, 2, 3, 4, 5, 6])

    def test_update_validates_times_and_days(self) -> None:
        self.assertEqual(self.client.patch("/api/business-settings", json={"openingTime": "9am"}).status_code, 400)
        self.assertEqual(self.client.patch("/api/business-settings", json={"workingDays": [7]}).status_code, 400)
        response = self.client.patch("/api/business-settings", json={"openingTime": "11:00", "closingTime": "02:00"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["closingTime"], "02:00")

    def test_hours_drive_the_slot_grid(self) -> None:
        self.client.patch("/api/business-settings", json={"openingTime": "11:00", "closingTime": "02:00"})
        self.add_staff("Amina")
        slots = self.client.get("/api/availability?staff=Amina&date=2024-06-01").get_json()
        self.assertEqual(slots[0], "11:00")
        self.assertEqual(slots[-1], "02:00")
