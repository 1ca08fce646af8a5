"""
Integration tests for health profile endpoints and the public emergency page.
"""

import pytest
from fastapi.testclient import TestClient

PROFILE = {
    "full_name": "Sam Lee",
    "blood_group": "B+",
    "allergies": ["Latex"],
    "emergency_contact": {"name": "Kim Lee", "phone": "555-0100"},
}


@pytest.mark.integration
class TestProfileEndpoints:

    def test_no_profile_yet(self, client: TestClient):
        assert client.get("/api/profile").status_code == 404

    def test_update_then_read(self, client: TestClient):
        updated = client.put("/api/profile", json=PROFILE)
        assert updated.status_code == 200
        assert updated.json()["user_id"] == "user-123"

        fetched = client.get("/api/profile")
        assert fetched.status_code == 200
        assert fetched.json()["allergies"] == ["Latex"]
        assert fetched.json()["emergency_contact"]["phone"] == "555-0100"

    def test_unknown_field_rejected(self, client: TestClient):
        response = client.put("/api/profile", json={**PROFILE, "ssn": "000-00-0000"})
        assert response.status_code == 422

    def test_demo_profile_read_only(self, demo_client: TestClient):
        assert demo_client.get("/api/profile").json()["full_name"] == "Alex Doe"
        assert demo_client.put("/api/profile", json=PROFILE).status_code == 403

    def test_emergency_qr(self, client: TestClient):
        response = client.get("/api/profile/emergency-qr")

        assert response.status_code == 200
        body = response.json()
        assert body["emergency_url"] == "https://medisafe.test/emergency/user-123"
        assert body["qr_code"].startswith("data:image/png;base64,")


@pytest.mark.integration
class TestEmergencyPage:

    def test_public_demo_profile(self, anonymous_client: TestClient):
        response = anonymous_client.get("/emergency/test-user-id")

        assert response.status_code == 200
        body = response.json()
        assert body["blood_group"] == "O+"
        assert body["allergies"] == ["Peanuts", "Pollen", "Aspirin"]

    def test_unknown_user(self, anonymous_client: TestClient):
        assert anonymous_client.get("/emergency/nobody").status_code == 404

    def test_no_view_quota(self, client: TestClient):
        client.put("/api/profile", json=PROFILE)

        statuses = [client.get("/emergency/user-123").status_code for _ in range(5)]

        assert statuses == [200] * 5
