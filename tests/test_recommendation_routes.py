"""
Integration tests for the auto recommendation JSON API.
"""

from fakes import OTHER_USER_ID, USER_ID, make_recommendation

BASE = "/api/v1/recommendations"
MISSING_ID = "99999999-9999-4999-8999-999999999999"


class TestAuthRequired:
    def test_list_requires_login(self, client):
        response = client.get(BASE)

        assert response.status_code == 401
        assert response.get_json() == {"success": False, "error": "Authentication required"}

    def test_generate_requires_login(self, client):
        assert client.post(f"{BASE}/generate").status_code == 401


class TestListRecommendations:
    def test_lists_visible_rows(self, client, logged_in, rec_store):
        visible = rec_store.insert(make_recommendation())
        rec_store.insert(make_recommendation(rule="later", scheduled_offset_days=2, expires_offset_days=5))

        response = client.get(BASE)

        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert [r["id"] for r in body["data"]["recommendations"]] == [visible.id]
        assert body["data"]["pagination"]["total"] == 1

    def test_status_filter(self, client, logged_in, rec_store):
        acked = rec_store.insert(make_recommendation(status="acknowledged"))

        body = client.get(f"{BASE}?status=acknowledged").get_json()

        assert [r["id"] for r in body["data"]["recommendations"]] == [acked.id]

    def test_invalid_filter(self, client, logged_in):
        response = client.get(f"{BASE}?priority=critical")

        assert response.status_code == 400
        body = response.get_json()
        assert body["success"] is False
        assert body["field"] == "priority"

    def test_non_numeric_page(self, client, logged_in):
        response = client.get(f"{BASE}?page=two")

        assert response.status_code == 400
        assert response.get_json()["field"] == "page"


class TestDashboard:
    def test_summary(self, client, logged_in, rec_store):
        rec_store.insert(make_recommendation(priority="urgent"))

        body = client.get(f"{BASE}/dashboard").get_json()

        assert body["data"]["total"] == 1
        assert body["data"]["urgent_count"] == 1


class TestGetRecommendation:
    def test_get(self, client, logged_in, rec_store):
        rec = rec_store.insert(make_recommendation())

        body = client.get(f"{BASE}/{rec.id}").get_json()

        assert body["data"]["id"] == rec.id
        assert body["data"]["source"] == "stored"

    def test_invalid_id(self, client, logged_in):
        response = client.get(f"{BASE}/not-a-uuid")
        assert response.status_code == 400

    def test_missing(self, client, logged_in):
        response = client.get(f"{BASE}/{MISSING_ID}")

        assert response.status_code == 404
        assert response.get_json()["success"] is False

    def test_other_users_row_is_not_found(self, client, logged_in, rec_store):
        rec = rec_store.insert(make_recommendation(user_id=OTHER_USER_ID))
        assert client.get(f"{BASE}/{rec.id}").status_code == 404


class TestStatusChanges:
    def test_acknowledge_with_notes(self, client, logged_in, rec_store):
        rec = rec_store.insert(make_recommendation())

        response = client.put(f"{BASE}/{rec.id}/acknowledge", json={"notes": "Done this morning"})

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["status"] == "acknowledged"
        assert data["notes"] == "Done this morning"
        assert rec_store.rows[rec.id].action_taken is True

    def test_repeat_acknowledge_succeeds(self, client, logged_in, rec_store):
        rec = rec_store.insert(make_recommendation())
        client.put(f"{BASE}/{rec.id}/acknowledge")

        response = client.put(f"{BASE}/{rec.id}/acknowledge")

        assert response.status_code == 200
        assert response.get_json()["data"]["status"] == "acknowledged"

    def test_acknowledge_dismissed_conflicts(self, client, logged_in, rec_store):
        rec = rec_store.insert(make_recommendation(status="dismissed"))

        response = client.post(f"{BASE}/{rec.id}/acknowledge")

        assert response.status_code == 409
        assert response.get_json()["success"] is False
        assert rec_store.rows[rec.id].status == "dismissed"

    def test_dismiss_other_users_row(self, client, logged_in, rec_store):
        rec = rec_store.insert(make_recommendation(user_id=OTHER_USER_ID))

        assert client.put(f"{BASE}/{rec.id}/dismiss").status_code == 404
        assert rec_store.rows[rec.id].status == "active"

    def test_dismiss_expired_window_conflicts(self, client, logged_in, rec_store):
        rec = rec_store.insert(make_recommendation(scheduled_offset_days=-5, expires_offset_days=-1))
        assert client.put(f"{BASE}/{rec.id}/dismiss").status_code == 409


class TestGenerate:
    def test_generate_for_current_user(self, client, logged_in, rec_store):
        response = client.post(f"{BASE}/generate")

        assert response.status_code == 200
        assert response.get_json()["data"] == {"count": 3}
        assert len(rec_store.rows) == 3

    def test_generate_all_disabled_by_default(self, client, logged_in):
        assert client.post(f"{BASE}/generate-all").status_code == 404

    def test_generate_all_when_enabled(self, app, client, logged_in, users, plant_store):
        app.config["BATCH_TRIGGER_ENABLED"] = True
        users.user_ids.append(OTHER_USER_ID)
        plant_store.fail_users = {OTHER_USER_ID}

        body = client.post(f"{BASE}/generate-all").get_json()

        assert body["data"]["users"] == 2
        assert body["data"]["failed"] == 1

    def test_database_failure_is_sanitized(self, client, logged_in, plant_store):
        plant_store.fail_users = {USER_ID}

        response = client.post(f"{BASE}/generate")

        assert response.status_code == 500
        assert response.get_json()["error"] == "We're experiencing technical difficulties. Please try again."


class TestAppBasics:
    def test_unknown_route_is_json(self, client):
        response = client.get("/api/v1/nope")

        assert response.status_code == 404
        assert response.get_json() == {"success": False, "error": "Not found"}

    def test_security_headers(self, client):
        response = client.get(BASE)

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
