"""Smoke tests for API routes."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from lesson_progress.api.dependencies import get_database
from lesson_progress.api.routes import register_exception_handlers, router

HEADERS = {"X-Learner-Id": "learner-1"}


@pytest.fixture
def client(db, catalog):
    app = FastAPI()
    app.include_router(router)
    register_exception_handlers(app)
    app.dependency_overrides[get_database] = lambda: db
    with TestClient(app) as c:
        yield c


class TestHealthCheck:
    def test_health_returns_ok(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestIdentity:
    def test_missing_learner_header(self, client):
        response = client.post("/api/progress/units/unit-order/start")
        assert response.status_code == 401


class TestWrites:
    def test_start_unit(self, client):
        response = client.post("/api/progress/units/unit-order/start", headers=HEADERS)
        assert response.status_code == 200
        progress = response.json()["progress"]
        assert progress["unit_id"] == "unit-order"
        assert progress["started_at"] is not None

    def test_start_unknown_unit(self, client):
        response = client.post("/api/progress/units/nope/start", headers=HEADERS)
        assert response.status_code == 404
        assert response.json() == {"error": "Unit not found"}

    def test_asset_update_clamps(self, client):
        response = client.post(
            "/api/progress/assets/asset-video/update",
            json={"secondsWatched": 130, "progressPercentage": 150},
            headers=HEADERS,
        )
        assert response.status_code == 200
        body = response.json()["asset_progress"]
        assert body["unit_id"] == "unit-order"
        assert body["progress_percentage"] == 100.0
        assert body["completed"] is True

    def test_asset_update_huge_numbers_clamp(self, client):
        response = client.post(
            "/api/progress/assets/asset-video/update",
            json={"secondsWatched": 10**400, "progressPercentage": 50},
            headers=HEADERS,
        )
        assert response.status_code == 200
        body = response.json()["asset_progress"]
        assert body["seconds_watched"] == 2**31 - 1
        assert body["progress_percentage"] == 50.0

    def test_asset_update_missing_fields(self, client):
        response = client.post(
            "/api/progress/assets/asset-video/update",
            json={"secondsWatched": 10},
            headers=HEADERS,
        )
        assert response.status_code == 400

    def test_asset_update_unknown_asset(self, client):
        response = client.post(
            "/api/progress/assets/nope/update",
            json={"secondsWatched": 10, "progressPercentage": 10},
            headers=HEADERS,
        )
        assert response.status_code == 404

    def test_pronunciation_attempt(self, client):
        response = client.post(
            "/api/progress/units/unit-order/pronunciation",
            json={"audioKey": "rec/1.webm", "score": 84, "feedback": "Good"},
            headers=HEADERS,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["attempt_count"] == 1
        assert data["average_score"] == 84.0
        assert data["attempt"]["audio_key"] == "rec/1.webm"

    def test_pronunciation_score_out_of_range(self, client):
        response = client.post(
            "/api/progress/units/unit-order/pronunciation",
            json={"audioKey": "rec/1.webm", "score": 101},
            headers=HEADERS,
        )
        assert response.status_code == 400

    def test_complete_unit(self, client):
        response = client.post(
            "/api/progress/units/unit-order/complete", json={"finalScore": 92}, headers=HEADERS
        )
        assert response.status_code == 200
        data = response.json()
        assert data["progress"]["completed"] is True
        assert data["progress"]["score"] == 92
        assert data["daily_plan_updated"] is False

    def test_complete_unit_without_body(self, client):
        response = client.post("/api/progress/units/unit-chat/complete", headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["progress"]["score"] == 0

    @pytest.mark.parametrize("final_score", [150, "150", -1, 10**400])
    def test_complete_final_score_out_of_range(self, client, final_score):
        response = client.post(
            "/api/progress/units/unit-order/complete",
            json={"finalScore": final_score},
            headers=HEADERS,
        )
        assert response.status_code == 400
        assert client.get("/api/progress/units/unit-order", headers=HEADERS).json()["progress"] is None

    def test_pronunciation_score_string_checked_like_number(self, client):
        response = client.post(
            "/api/progress/units/unit-order/pronunciation",
            json={"audioKey": "rec/1.webm", "score": "150"},
            headers=HEADERS,
        )
        assert response.status_code == 400

    def test_pronunciation_score_not_a_number(self, client):
        response = client.post(
            "/api/progress/units/unit-order/pronunciation",
            json={"audioKey": "rec/1.webm", "score": "loud"},
            headers=HEADERS,
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Score must be a number"}


class TestReads:
    def test_unit_progress_never_started(self, client):
        response = client.get("/api/progress/units/unit-order", headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["progress"] is None

    def test_asset_progress_list(self, client):
        client.post(
            "/api/progress/assets/asset-audio/update",
            json={"secondsWatched": 30, "progressPercentage": 50},
            headers=HEADERS,
        )
        response = client.get("/api/progress/units/unit-order/assets", headers=HEADERS)
        rows = response.json()["asset_progress"]
        assert len(rows) == 1
        assert rows[0]["asset"]["storage_key"] == "cafe/order.mp3"

    def test_pronunciation_history(self, client):
        response = client.get("/api/progress/units/unit-order/pronunciation", headers=HEADERS)
        assert response.json() == {"attempts": [], "average_score": 0.0, "count": 0}

    def test_summary(self, client):
        client.post("/api/progress/units/unit-ticket/complete", json={"finalScore": 70},
                    headers=HEADERS)
        response = client.get("/api/progress/summary", headers=HEADERS)
        assert response.status_code == 200
        data = response.json()
        assert data["completed_units"] == 1
        assert data["stories"][0]["story_id"] == "story-trip"

    def test_story_progress(self, client):
        response = client.get("/api/progress/stories/story-cafe", headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["total_units"] == 3

    def test_story_unknown(self, client):
        response = client.get("/api/progress/stories/nope", headers=HEADERS)
        assert response.status_code == 404

    def test_story_without_units(self, client):
        response = client.get("/api/progress/stories/story-empty", headers=HEADERS)
        assert response.status_code == 404
