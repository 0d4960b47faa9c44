"""
LeadsFlow CRM - Users and configuration API
Run: cd backend && pytest tests/test_users_config_routes.py -v
"""

from models.setup import PRODUCT_ID, LicenseData
from services.license import generate_license
from tests.conftest import TEST_PASSWORD, auth_h, make_user


def _new_user(**overrides):
    data = {"username": "Dave", "name": "Dave Rep", "email": "Dave@Acme.test", "password": "Secret123", "role": "sales"}
    data.update(overrides)
    return data


# ==================== USERS ====================

class TestUsers:

    def test_create(self, app_client, mongo, admin):
        response = app_client.post("/api/users", headers=auth_h(admin), json=_new_user())
        assert response.status_code == 201
        body = response.json()
        assert body["username"] == "dave"
        assert body["email"] == "dave@acme.test"
        assert body["isActive"] is True
        assert "password" not in body

        login = app_client.post("/api/auth/login", json={"email": "dave", "password": "Secret123"})
        assert login.status_code == 200

    def test_create_requires_admin(self, app_client, sales):
        response = app_client.post("/api/users", headers=auth_h(sales), json=_new_user())
        assert response.status_code == 403
        assert response.json()["detail"] == "Admin access required"

    def test_duplicate_username(self, app_client, admin, sales):
        response = app_client.post("/api/users", headers=auth_h(admin), json=_new_user(username="BOB"))
        assert response.status_code == 400

    def test_invalid_role(self, app_client, admin):
        response = app_client.post("/api/users", headers=auth_h(admin), json=_new_user(role="owner"))
        assert response.status_code == 422

    def test_short_password(self, app_client, admin):
        response = app_client.post("/api/users", headers=auth_h(admin), json=_new_user(password="123"))
        assert response.status_code == 422

    def test_license_user_limit(self, app_client, mongo, admin):
        app_client.app.state.runtime.license_key = generate_license(LicenseData(
            productId=PRODUCT_ID,
            purchaseCode="PC-LIMITED",
            customerEmail="buyer@example.com",
            issuedAt="2024-01-01T00:00:00+00:00",
            features=["all"],
            maxUsers=2,
        ))
        make_user(mongo, "carol")

        response = app_client.post("/api/users", headers=auth_h(admin), json=_new_user())
        assert response.status_code == 403
        assert "at most 2 users" in response.json()["detail"]
        assert len(mongo.users.docs) == 2

    def test_invalid_license_blocks_creation(self, app_client, admin):
        app_client.app.state.runtime.license_key = "not-a-license"
        response = app_client.post("/api/users", headers=auth_h(admin), json=_new_user())
        assert response.status_code == 403

    def test_list_and_get(self, app_client, admin, sales):
        users = app_client.get("/api/users", headers=auth_h(sales)).json()
        assert {u["username"] for u in users} == {"admin", "bob"}
        assert all("password" not in u for u in users)

        assert app_client.get(f"/api/users/{admin['id']}", headers=auth_h(sales)).json()["name"] == "Alice Admin"
        assert app_client.get("/api/users/nope", headers=auth_h(sales)).status_code == 404

    def test_update(self, app_client, admin, sales):
        response = app_client.put(f"/api/users/{sales['id']}", headers=auth_h(admin), json={
            "name": "Robert Sales", "role": "manager", "password": "Another1", "email": "",
        })
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Robert Sales"
        assert body["role"] == "manager"
        assert body["email"] is None
        assert "password" not in body

        assert app_client.post("/api/auth/login", json={"email": "bob", "password": TEST_PASSWORD}).status_code == 401
        assert app_client.post("/api/auth/login", json={"email": "bob", "password": "Another1"}).status_code == 200

    def test_update_blank_name_ignored(self, app_client, admin, sales):
        body = app_client.put(f"/api/users/{sales['id']}", headers=auth_h(admin), json={"name": ""}).json()
        assert body["name"] == "Bob Sales"

    def test_update_username_taken(self, app_client, admin, sales):
        response = app_client.put(f"/api/users/{sales['id']}", headers=auth_h(admin), json={"username": "admin"})
        assert response.status_code == 400

    def test_deactivate_blocks_login(self, app_client, admin, sales):
        app_client.put(f"/api/users/{sales['id']}", headers=auth_h(admin), json={"isActive": False})
        response = app_client.post("/api/auth/login", json={"email": "bob", "password": TEST_PASSWORD})
        assert response.status_code == 401

    def test_delete(self, app_client, mongo, admin, sales):
        assert app_client.delete(f"/api/users/{sales['id']}", headers=auth_h(admin)).status_code == 200
        assert [u["username"] for u in mongo.users.docs] == ["admin"]

    def test_cannot_delete_self(self, app_client, admin):
        response = app_client.delete(f"/api/users/{admin['id']}", headers=auth_h(admin))
        assert response.status_code == 400


# ==================== REFERENCE DATA ====================

class TestReferenceData:

    def test_pipeline_stages_sorted_by_order(self, app_client, admin, sales):
        app_client.post("/api/config/pipeline-stages", headers=auth_h(admin), json={"name": "Later", "order": 9, "color": "#111111"})
        app_client.post("/api/config/pipeline-stages", headers=auth_h(admin), json={"name": "First", "order": 1, "color": "#222222"})
        stages = app_client.get("/api/config/pipeline-stages", headers=auth_h(sales)).json()
        assert [s["name"] for s in stages] == ["First", "Later"]

    def test_duplicate_name_rejected(self, app_client, admin):
        app_client.post("/api/config/lead-sources", headers=auth_h(admin), json={"name": "Trade Show"})
        response = app_client.post("/api/config/lead-sources", headers=auth_h(admin), json={"name": "Trade Show"})
        assert response.status_code == 400

    def test_create_requires_admin(self, app_client, sales):
        response = app_client.post("/api/config/lead-statuses", headers=auth_h(sales), json={"name": "Hot", "color": "#ff0000"})
        assert response.status_code == 403

    def test_statuses_sorted_by_name(self, app_client, admin):
        for name in ("Warm", "Cold"):
            assert app_client.post("/api/config/lead-statuses", headers=auth_h(admin), json={"name": name, "color": "#000000"}).status_code == 201
        statuses = app_client.get("/api/config/lead-statuses", headers=auth_h(admin)).json()
        assert [s["name"] for s in statuses] == ["Cold", "Warm"]


# ==================== SYSTEM SETTINGS ====================

class TestSystemSettings:

    def test_defaults_created_on_first_read(self, app_client, mongo, sales):
        settings = app_client.get("/api/config/settings", headers=auth_h(sales)).json()
        assert settings == {
            "companyName": "",
            "companyEmail": "",
            "companyPhone": "",
            "dateFormat": "MM/DD/YYYY",
            "timeFormat": "12h",
            "timezone": "UTC",
        }
        assert len(mongo.system_settings.docs) == 1

    def test_update(self, app_client, mongo, admin):
        response = app_client.put("/api/config/settings", headers=auth_h(admin), json={
            "companyName": "Acme", "timeFormat": "24h", "dateFormat": "",
        })
        assert response.status_code == 200
        body = response.json()
        assert body["companyName"] == "Acme"
        assert body["timeFormat"] == "24h"
        assert body["dateFormat"] == "MM/DD/YYYY"
        assert len(mongo.system_settings.docs) == 1

    def test_invalid_time_format(self, app_client, admin):
        response = app_client.put("/api/config/settings", headers=auth_h(admin), json={"timeFormat": "25h"})
        assert response.status_code == 422

    def test_update_requires_admin(self, app_client, sales):
        assert app_client.put("/api/config/settings", headers=auth_h(sales), json={"companyName": "X"}).status_code == 403
