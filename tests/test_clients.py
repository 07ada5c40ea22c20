from salondesk.domain.clients import loyalty_tier, points_for
from salondesk.extensions import db
from salondesk.models import Client, LoyaltyRedemption

from tests.base import AppTestCase


class LoyaltyRulesTestCase(AppTestCase):
    def test_tiers(self) -> None:
        self.assertEqual(loyalty_tier(0), "bronze")
        self.assertEqual(loyalty_tier(99), "bronze")
        self.assertEqual(loyalty_tier(100), "silver")
        self.assertEqual(loyalty_tier(500), "gold")
        self.assertEqual(loyalty_tier(1000), "vip")

    def test_points_for_total(self) -> None:
        self.assertEqual(points_for(250), 25)
        self.assertEqual(points_for(259), 25)
        self.assertEqual(points_for(9), 0)
        self.assertEqual(points_for(100, multiplier=2), 20)


class ClientApiTestCase(AppTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.login()
        response = self.client.post("/api/clients", json={"name": "Sara", "phone": "0612345678"})
        self.assertEqual(response.status_code, 201)
        self.client_id = response.get_json()["id"]

    def test_create_and_fetch(self) -> None:
        body = self.client.get(f"/api/clients/{self.client_id}").get_json()
        self.assertEqual(body["name"], "Sara")
        self.assertEqual(body["loyaltyPoints"], 0)
        self.assertEqual(body["loyaltyTier"], "bronze")

    def test_invalid_email_is_rejected(self) -> None:
        response = self.client.post("/api/clients", json={"name": "Bad", "email": "not-an-email"})
        self.assertEqual(response.status_code, 400)

    def test_missing_client_is_404(self) -> None:
        self.assertEqual(self.client.get("/api/clients/999").status_code, 404)
        self.assertEqual(self.client.get("/api/clients/999/appointments").status_code, 404)

    def test_accrual_adds_points_visit_and_spend(self) -> None:
        response = self.client.patch(f"/api/clients/{self.client_id}/loyalty", json={"points": 120, "spent": 300})
        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(body["loyaltyPoints"], 120)
        self.assertEqual(body["totalVisits"], 1)
        self.assertEqual(body["totalSpent"], 300)
        self.assertEqual(body["loyaltyTier"], "silver")

    def test_redemption_spends_points(self) -> None:
        self.client.patch(f"/api/clients/{self.client_id}/loyalty", json={"points": 150})
        response = self.client.post("/api/loyalty-redemptions", json={
            "clientId": self.client_id, "pointsUsed": 100,
            "rewardDescription": "Free brushing", "date": "2024-06-01",
        })
        self.assertEqual(response.status_code, 201)
        db.session.expire_all()
        self.assertEqual(db.session.get(Client, self.client_id).loyalty_points, 50)
        history = self.client.get(f"/api/loyalty-redemptions?clientId={self.client_id}").get_json()
        self.assertEqual([entry["pointsUsed"] for entry in history], [100])

    def test_redemption_over_balance_changes_nothing(self) -> None:
        self.client.patch(f"/api/clients/{self.client_id}/loyalty", json={"points": 50})
        response = self.client.post("/api/loyalty-redemptions", json={
            "clientId": self.client_id, "pointsUsed": 100,
            "rewardDescription": "Free brushing", "date": "2024-06-01",
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn("Insufficient", response.get_json()["error"])
        db.session.expire_all()
        self.assertEqual(db.session.get(Client, self.client_id).loyalty_points, 50)
        self.assertEqual(LoyaltyRedemption.query.count(), 0)

    def test_redemption_for_missing_client_is_404(self) -> None:
        response = self.client.post("/api/loyalty-redemptions", json={
            "clientId": 999, "pointsUsed": 10, "rewardDescription": "x", "date": "2024-06-01",
        })
        self.assertEqual(response.status_code, 404)

    def test_referrer_must_exist(self) -> None:
        response = self.client.post("/api/clients", json={"name": "Nadia", "referredBy": 999})
        self.assertEqual(response.status_code, 400)
        response = self.client.post("/api/clients", json={"name": "Nadia", "referredBy": self.client_id})
        self.assertEqual(response.status_code, 201)

    def test_update_and_delete(self) -> None:
        response = self.client.patch(f"/api/clients/{self.client_id}", json={"notes": "Prefers Amina"})
        self.assertEqual(response.get_json()["notes"], "Prefers Amina")
        self.assertEqual(self.client.delete(f"/api/clients/{self.client_id}").status_code, 200)
        self.assertEqual(self.client.get(f"/api/clients/{self.client_id}").status_code, 404)
