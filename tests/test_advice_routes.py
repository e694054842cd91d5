"""
Integration tests for the advice and observation JSON API.
"""

from fakes import OTHER_USER_ID, USER_ID, USER_PLANT_ID

SUPERVISOR_ID = "55555555-5555-4555-8555-555555555555"


def _seed_advice(engine, user_id=USER_ID, title="Treat aphids"):
    return engine.advice.create(SUPERVISOR_ID, user_id, USER_PLANT_ID, {
        "type": "treatment",
        "title": title,
        "description": "Spray neem oil on the undersides of the leaves.",
    })


class TestAdviceRoutes:
    def test_list(self, client, logged_in, engine):
        _seed_advice(engine)
        _seed_advice(engine, user_id=OTHER_USER_ID)

        body = client.get("/api/v1/advice").get_json()

        assert body["count"] == 1
        assert body["data"][0]["title"] == "Treat aphids"

    def test_list_bad_status(self, client, logged_in):
        assert client.get("/api/v1/advice?status=archived").status_code == 400

    def test_mark_viewed(self, client, logged_in, engine):
        advice = _seed_advice(engine)

        body = client.post(f"/api/v1/advice/{advice.id}/viewed").get_json()

        assert body["data"]["status"] == "viewed"

    def test_respond_implemented(self, client, logged_in, engine):
        advice = _seed_advice(engine)

        response = client.put(f"/api/v1/advice/{advice.id}/respond", json={
            "status": "implemented", "message": "Sprayed twice",
        })

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["status"] == "implemented"
        assert data["user_response"]["message"] == "Sprayed twice"

    def test_respond_invalid(self, client, logged_in, engine):
        advice = _seed_advice(engine)

        response = client.put(f"/api/v1/advice/{advice.id}/respond", json={"status": "later"})

        assert response.status_code == 400
        assert response.get_json()["field"] == "status"

    def test_respond_to_someone_elses_advice(self, client, logged_in, engine):
        advice = _seed_advice(engine, user_id=OTHER_USER_ID)

        response = client.put(f"/api/v1/advice/{advice.id}/respond", json={"status": "implemented"})

        assert response.status_code == 404

    def test_feed(self, client, logged_in, engine):
        _seed_advice(engine)
        observation = engine.observations.record("user", USER_ID, USER_PLANT_ID, "Spots")
        engine.observations.review(observation.id, SUPERVISOR_ID, "Remove affected leaves", "concern")

        data = client.get("/api/v1/advice/feed").get_json()["data"]

        assert data["recommendations"] == 1
        assert data["observation_feedbacks"] == 1
        assert {i["kind"] for i in data["items"]} == {"recommendation", "observation_feedback"}


class TestObservationRoutes:
    def test_record_and_list(self, client, logged_in):
        response = client.post("/api/v1/observations", json={
            "plant_id": USER_PLANT_ID, "title": "New leaves", "description": "Three new leaves this week",
        })

        assert response.status_code == 201
        assert response.get_json()["data"]["status"] == "pending"

        body = client.get(f"/api/v1/observations?plant_id={USER_PLANT_ID}").get_json()
        assert body["count"] == 1
        assert body["data"][0]["title"] == "New leaves"

    def test_record_requires_plant_id(self, client, logged_in):
        response = client.post("/api/v1/observations", json={"title": "New leaves"})

        assert response.status_code == 400
        assert response.get_json()["field"] == "plant_id"

    def test_record_on_unknown_plant(self, client, logged_in):
        response = client.post("/api/v1/observations", json={
            "plant_id": "99999999-9999-4999-8999-999999999999", "title": "New leaves",
        })
        assert response.status_code == 404
