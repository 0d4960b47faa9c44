"""
LeadsFlow CRM - Leads, notes, activities, follow-ups, notifications, dashboard
Run: cd backend && pytest tests/test_leads_routes.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from tests.conftest import auth_h, make_user


def _lead(assigned_to, **overrides):
    data = {
        "name": "Jane Prospect",
        "phone": "+15551234567",
        "email": "jane@prospect.test",
        "source": "Website",
        "status": "New",
        "assignedTo": assigned_to,
        "priority": "high",
    }
    data.update(overrides)
    return data


@pytest.fixture
def lead(app_client, admin, sales):
    response = app_client.post("/api/leads", headers=auth_h(admin), json=_lead(sales["id"]))
    assert response.status_code == 201
    return response.json()


# ==================== LEADS ====================

class TestLeadsCrud:

    def test_create(self, app_client, mongo, admin, sales):
        response = app_client.post("/api/leads", headers=auth_h(admin), json=_lead(sales["id"]))
        assert response.status_code == 201
        body = response.json()
        assert body["id"]
        assert body["assignedToName"] == "Bob Sales"
        assert body["leadType"] == "individual"
        assert body["customFields"] == {}
        assert "_id" not in body
        assert len(mongo.leads.docs) == 1

    def test_create_logs_activity_and_notifies_assignee(self, app_client, mongo, lead, admin, sales):
        activities = app_client.get(f"/api/activities/lead/{lead['id']}", headers=auth_h(admin)).json()
        assert [a["action"] for a in activities] == ["created"]
        assert activities[0]["userName"] == "Alice Admin"

        notifications = app_client.get("/api/notifications", headers=auth_h(sales)).json()
        assert len(notifications) == 1
        assert notifications[0]["type"] == "lead_new"
        assert notifications[0]["relatedId"] == lead["id"]
        assert notifications[0]["isRead"] is False

    def test_self_assignment_does_not_notify(self, app_client, mongo, sales):
        app_client.post("/api/leads", headers=auth_h(sales), json=_lead(sales["id"]))
        assert mongo.notifications.docs == []

    def test_create_unknown_assignee(self, app_client, admin):
        response = app_client.post("/api/leads", headers=auth_h(admin), json=_lead("no-such-user"))
        assert response.status_code == 400

    def test_create_missing_fields(self, app_client, admin, sales):
        response = app_client.post("/api/leads", headers=auth_h(admin), json=_lead(sales["id"], name=" "))
        assert response.status_code == 422

    def test_create_invalid_priority(self, app_client, admin, sales):
        response = app_client.post("/api/leads", headers=auth_h(admin), json=_lead(sales["id"], priority="urgent"))
        assert response.status_code == 422

    def test_requires_auth(self, app_client):
        assert app_client.get("/api/leads").status_code == 401

    def test_list_and_get(self, app_client, lead, sales):
        leads = app_client.get("/api/leads", headers=auth_h(sales)).json()
        assert [l["id"] for l in leads] == [lead["id"]]
        assert leads[0]["assignedToName"] == "Bob Sales"

        one = app_client.get(f"/api/leads/{lead['id']}", headers=auth_h(sales))
        assert one.status_code == 200
        assert one.json()["name"] == "Jane Prospect"

    def test_get_missing(self, app_client, sales):
        assert app_client.get("/api/leads/nope", headers=auth_h(sales)).status_code == 404

    def test_update_status_logs_status_change(self, app_client, lead, sales):
        response = app_client.put(f"/api/leads/{lead['id']}", headers=auth_h(sales), json={"status": "Hot"})
        assert response.status_code == 200
        assert response.json()["status"] == "Hot"

        activities = app_client.get(f"/api/activities/lead/{lead['id']}", headers=auth_h(sales)).json()
        changed = [a for a in activities if a["action"] == "status_changed"]
        assert len(changed) == 1
        assert changed[0]["details"] == "Status changed from New to Hot"

    def test_update_other_fields_logs_update(self, app_client, lead, sales):
        response = app_client.put(f"/api/leads/{lead['id']}", headers=auth_h(sales),
                                  json={"companyName": "Prospect Inc", "name": ""})
        assert response.status_code == 200
        assert response.json()["companyName"] == "Prospect Inc"
        assert response.json()["name"] == "Jane Prospect"

        actions = [a["action"] for a in app_client.get(f"/api/activities/lead/{lead['id']}", headers=auth_h(sales)).json()]
        assert "updated" in actions

    def test_reassign_to_unknown_user(self, app_client, lead, sales):
        response = app_client.put(f"/api/leads/{lead['id']}", headers=auth_h(sales), json={"assignedTo": "ghost"})
        assert response.status_code == 400

    def test_delete_cascades(self, app_client, mongo, lead, admin, sales):
        app_client.post("/api/notes", headers=auth_h(sales), json={"leadId": lead["id"], "content": "Called"})
        app_client.post("/api/followups", headers=auth_h(admin), json={
            "leadId": lead["id"], "assignedTo": sales["id"], "dueDate": "2030-01-01", "dueTime": "10:00",
        })

        response = app_client.delete(f"/api/leads/{lead['id']}", headers=auth_h(admin))
        assert response.status_code == 200
        assert mongo.leads.docs == []
        assert mongo.notes.docs == []
        assert mongo.activities.docs == []
        assert mongo.followups.docs == []

    def test_delete_missing(self, app_client, admin):
        assert app_client.delete("/api/leads/nope", headers=auth_h(admin)).status_code == 404


class TestBulkImport:

    def test_imports_valid_rows_and_reports_bad_ones(self, app_client, mongo, admin, sales):
        rows = [
            _lead(sales["id"], name="Row Zero"),
            {"name": "No phone", "source": "Website", "status": "New", "assignedTo": sales["id"]},
            _lead(sales["id"], name="Row Two"),
        ]
        response = app_client.post("/api/leads/bulk-import", headers=auth_h(admin), json={"leads": rows})
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert body["failedRows"] == [1]
        assert body["message"] == "Successfully imported 2 leads"
        assert {l["name"] for l in mongo.leads.docs} == {"Row Zero", "Row Two"}
        assert all(a["details"] == "Lead imported via Excel" for a in mongo.activities.docs)

    def test_empty_batch(self, app_client, admin):
        response = app_client.post("/api/leads/bulk-import", headers=auth_h(admin), json={"leads": []})
        assert response.status_code == 400


# ==================== NOTES ====================

class TestNotes:

    def test_add_and_list(self, app_client, lead, sales):
        response = app_client.post("/api/notes", headers=auth_h(sales), json={"leadId": lead["id"], "content": "Left a voicemail"})
        assert response.status_code == 201
        assert response.json()["userName"] == "Bob Sales"

        notes = app_client.get(f"/api/notes/lead/{lead['id']}", headers=auth_h(sales)).json()
        assert [n["content"] for n in notes] == ["Left a voicemail"]
        assert notes[0]["userName"] == "Bob Sales"

        actions = [a["action"] for a in app_client.get(f"/api/activities/lead/{lead['id']}", headers=auth_h(sales)).json()]
        assert "note_added" in actions

    def test_note_on_missing_lead(self, app_client, sales):
        response = app_client.post("/api/notes", headers=auth_h(sales), json={"leadId": "nope", "content": "x"})
        assert response.status_code == 404

    def test_only_author_or_admin_deletes(self, app_client, mongo, lead, admin, sales):
        note = app_client.post("/api/notes", headers=auth_h(sales), json={"leadId": lead["id"], "content": "Mine"}).json()
        other = make_user(mongo, "carol")

        assert app_client.delete(f"/api/notes/{note['id']}", headers=auth_h(other)).status_code == 403
        assert app_client.delete(f"/api/notes/{note['id']}", headers=auth_h(admin)).status_code == 200
        assert mongo.notes.docs == []


# ==================== FOLLOW-UPS ====================

class TestFollowUps:

    def _create(self, app_client, user, lead, assignee, **overrides):
        data = {"leadId": lead["id"], "assignedTo": assignee["id"], "dueDate": "2030-01-01", "dueTime": "09:30", "notes": "Call back"}
        data.update(overrides)
        return app_client.post("/api/followups", headers=auth_h(user), json=data)

    def test_create(self, app_client, mongo, lead, admin, sales):
        response = self._create(app_client, admin, lead, sales, dueDate="2030-01-01T00:00:00.000Z")
        assert response.status_code == 201
        body = response.json()
        assert body["dueDate"] == "2030-01-01"
        assert body["status"] == "scheduled"
        assert body["leadName"] == "Jane Prospect"
        assert body["assignedToName"] == "Bob Sales"
        assert body["createdByName"] == "Alice Admin"
        assert body["completedDate"] is None

        followup_notes = [n for n in mongo.notifications.docs if n["type"] == "followup_upcoming"]
        assert len(followup_notes) == 1
        assert followup_notes[0]["recipient"] == sales["id"]

    def test_create_on_missing_lead(self, app_client, admin, sales):
        response = self._create(app_client, admin, {"id": "nope"}, sales)
        assert response.status_code == 404

    def test_complete(self, app_client, lead, admin, sales):
        followup = self._create(app_client, admin, lead, sales).json()
        response = app_client.put(f"/api/followups/{followup['id']}", headers=auth_h(sales), json={"status": "completed"})
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "completed"
        assert body["isCompleted"] is True
        assert body["completedDate"]

    def test_reopen_clears_completion(self, app_client, lead, admin, sales):
        followup = self._create(app_client, admin, lead, sales).json()
        app_client.put(f"/api/followups/{followup['id']}", headers=auth_h(sales), json={"status": "completed"})
        body = app_client.put(f"/api/followups/{followup['id']}", headers=auth_h(sales), json={"status": "scheduled"}).json()
        assert body["status"] == "scheduled"
        assert body["completedDate"] is None

    def test_invalid_status(self, app_client, lead, admin, sales):
        followup = self._create(app_client, admin, lead, sales).json()
        response = app_client.put(f"/api/followups/{followup['id']}", headers=auth_h(sales), json={"status": "cancelled"})
        assert response.status_code == 422

    def test_list_sorted_by_due_date(self, app_client, lead, admin, sales):
        self._create(app_client, admin, lead, sales, dueDate="2030-03-01")
        self._create(app_client, admin, lead, sales, dueDate="2030-01-01")
        dates = [f["dueDate"] for f in app_client.get("/api/followups", headers=auth_h(sales)).json()]
        assert dates == ["2030-01-01", "2030-03-01"]
        by_lead = app_client.get(f"/api/followups/lead/{lead['id']}", headers=auth_h(sales)).json()
        assert len(by_lead) == 2


# ==================== NOTIFICATIONS ====================

class TestNotifications:

    def test_mark_read_and_delete(self, app_client, lead, sales):
        notification = app_client.get("/api/notifications", headers=auth_h(sales)).json()[0]

        read = app_client.patch(f"/api/notifications/{notification['id']}/read", headers=auth_h(sales))
        assert read.status_code == 200
        assert read.json()["isRead"] is True

        assert app_client.delete(f"/api/notifications/{notification['id']}", headers=auth_h(sales)).status_code == 200
        assert app_client.get("/api/notifications", headers=auth_h(sales)).json() == []

    def test_read_all(self, app_client, lead, admin, sales):
        app_client.post("/api/leads", headers=auth_h(admin), json=_lead(sales["id"], name="Second"))
        response = app_client.patch("/api/notifications/read-all", headers=auth_h(sales))
        assert response.json()["count"] == 2
        assert all(n["isRead"] for n in app_client.get("/api/notifications", headers=auth_h(sales)).json())

    def test_scoped_to_recipient(self, app_client, lead, admin, sales):
        notification = app_client.get("/api/notifications", headers=auth_h(sales)).json()[0]
        assert app_client.get("/api/notifications", headers=auth_h(admin)).json() == []
        assert app_client.patch(f"/api/notifications/{notification['id']}/read", headers=auth_h(admin)).status_code == 404
        assert app_client.delete(f"/api/notifications/{notification['id']}", headers=auth_h(admin)).status_code == 404


# ==================== DASHBOARD ====================

class TestDashboard:

    def test_stats(self, app_client, mongo, admin, sales):
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        yesterday = (datetime.now(timezone.utc) - timedelta(days=1)).strftime("%Y-%m-%d")

        app_client.post("/api/leads", headers=auth_h(admin), json=_lead(sales["id"], status="New"))
        app_client.post("/api/leads", headers=auth_h(admin), json=_lead(sales["id"], status="Closed Won", source="Referral"))
        lost = app_client.post("/api/leads", headers=auth_h(admin), json=_lead(admin["id"], status="Closed Lost")).json()
        mongo.leads.docs.append({"id": "orphan", "name": "Orphan", "status": "New", "source": "Other", "assignedTo": None})

        for due in (today, yesterday, "2099-01-01"):
            app_client.post("/api/followups", headers=auth_h(admin), json={
                "leadId": lost["id"], "assignedTo": sales["id"], "dueDate": due, "dueTime": "10:00",
            })

        stats = app_client.get("/api/dashboard/stats", headers=auth_h(sales)).json()
        assert stats["totalLeads"] == 4
        assert stats["activeLeads"] == 2
        assert stats["convertedLeads"] == 1
        assert stats["todayFollowUps"] == 1
        assert stats["overdueFollowUps"] == 1
        assert stats["leadsByStatus"] == {"New": 2, "Closed Won": 1, "Closed Lost": 1}
        assert stats["leadsBySource"] == {"Website": 2, "Referral": 1, "Other": 1}
        assert stats["leadsByUser"] == {"Bob Sales": 2, "Alice Admin": 1, "Unassigned": 1}

    def test_empty(self, app_client, sales):
        stats = app_client.get("/api/dashboard/stats", headers=auth_h(sales)).json()
        assert stats["totalLeads"] == 0
        assert stats["leadsByUser"] == {}
