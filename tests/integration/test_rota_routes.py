"""
Integration tests for the rota HTTP API.

Each test runs the real application lifespan against the in-memory store,
so toggles travel through the live subscription before the grid changes.
"""

import time

import jwt
import pytest
from fastapi.testclient import TestClient

from rota.config import Settings
from rota.main import create_app


def _settings(**overrides):
    values = {
        "ROTA_STORE_BACKEND": "memory",
        "ROTA_TASKS": ["Breakfast", "Lunch", "Dinner"],
        "ROTA_WEEKS_TO_DISPLAY": 2,
        "REDIS_URL": None,
        "ROTA_JWT_SECRET": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _auth(user_id: str) -> dict:
    return {"Authorization": f"Bearer {user_id}"}


def wait_for(client, user_id, predicate, attempts=50):
    """Poll the grid until the live snapshot satisfies predicate."""
    board = None
    for _ in range(attempts):
        board = client.get("/rota", headers=_auth(user_id)).json()
        if predicate(board):
            return board
        time.sleep(0.02)
    raise AssertionError(f"grid never converged: {board}")


def find_slot(board, slot_id):
    for week in board["weeks"]:
        for day in week["days"]:
            for slot in day["slots"]:
                if slot["slot_id"] == slot_id:
                    return slot
    return None


def first_slot_id(board):
    return board["weeks"][0]["days"][0]["slots"][0]["slot_id"]


@pytest.fixture
def client():
    app = create_app(_settings())
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def offline_client():
    app = create_app(_settings(ROTA_STORE_BACKEND="offline"))
    with TestClient(app) as test_client:
        yield test_client


def _named(client, user_id, name):
    response = client.put("/rota/me", json={"display_name": name}, headers=_auth(user_id))
    assert response.status_code == 200


class TestHealth:
    def test_healthz(self, client):
        response = client.get("/healthz")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": "family-care-rota"}

    def test_readyz_live(self, client):
        data = None
        for _ in range(50):
            data = client.get("/readyz").json()
            if data["checks"]["sync"]["status"] == "live":
                break
            time.sleep(0.02)

        assert data["overall_ok"] is True
        assert data["mode"] == "live"
        assert data["checks"]["store"]["backend"] == "memory"
        assert data["checks"]["configuration"]["app_id"] == "NETLIFY_HOSTED_APP"

    def test_readyz_offline_still_answers(self, offline_client):
        response = offline_client.get("/readyz")

        assert response.status_code == 200
        data = response.json()
        assert data["overall_ok"] is False
        assert data["mode"] == "offline"
        assert data["checks"]["store"]["ok"] is False

    def test_request_id_header(self, client):
        response = client.get("/healthz", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"


class TestIdentity:
    def test_new_identity_cannot_claim(self, client):
        response = client.get("/rota/me", headers=_auth("A"))

        assert response.status_code == 200
        data = response.json()
        assert data == {"user_id": "A", "display_name": "", "color": None, "can_claim": False}

    def test_set_display_name(self, client):
        response = client.put("/rota/me", json={"display_name": " Alice "}, headers=_auth("A"))

        assert response.status_code == 200
        data = response.json()
        assert data["display_name"] == "Alice"
        assert data["color"] == "hsl(88, 70%, 50%)"
        assert data["can_claim"] is True
        assert client.get("/rota/me", headers=_auth("A")).json()["display_name"] == "Alice"

    @pytest.mark.parametrize("name", ["", "   ", "x" * 41])
    def test_invalid_display_name(self, client, name):
        response = client.put("/rota/me", json={"display_name": name}, headers=_auth("A"))

        assert response.status_code == 422

    def test_missing_token_rejected(self, client):
        response = client.get("/rota/me")

        assert response.status_code in (401, 403)


class TestGrid:
    def test_grid_shape(self, client):
        board = client.get("/rota", headers=_auth("A")).json()

        assert board["mode"] == "live"
        assert board["tasks"] == ["Breakfast", "Lunch", "Dinner"]
        assert len(board["weeks"]) == 2
        for week in board["weeks"]:
            assert [d["day_name"] for d in week["days"]] == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
            assert all(len(d["slots"]) == 3 for d in week["days"])
        assert sum(d["is_today"] for d in board["weeks"][0]["days"]) == 1

    def test_weeks_query(self, client):
        board = client.get("/rota?weeks=5", headers=_auth("A")).json()

        assert len(board["weeks"]) == 5

    @pytest.mark.parametrize("weeks", [0, 53])
    def test_weeks_query_bounds(self, client, weeks):
        response = client.get(f"/rota?weeks={weeks}", headers=_auth("A"))

        assert response.status_code == 422


class TestToggle:
    def test_claim_then_release(self, client):
        _named(client, "A", "Alice")
        slot_id = first_slot_id(client.get("/rota", headers=_auth("A")).json())

        response = client.post(f"/rota/slots/{slot_id}/toggle", headers=_auth("A"))

        assert response.status_code == 200
        assert response.json() == {
            "slot_id": slot_id,
            "status": "claimed",
            "previous_state": "unclaimed",
        }
        board = wait_for(client, "A", lambda b: find_slot(b, slot_id)["state"] == "claimed_by_me")
        slot = find_slot(board, slot_id)
        assert slot["claimant_name"] == "Alice"
        assert slot["claimant_color"] == "hsl(88, 70%, 50%)"
        assert board["claimed_count"] == 1

        response = client.post(f"/rota/slots/{slot_id}/toggle", headers=_auth("A"))

        assert response.json()["status"] == "released"
        board = wait_for(client, "A", lambda b: find_slot(b, slot_id)["state"] == "unclaimed")
        assert find_slot(board, slot_id)["claimant_name"] is None
        assert board["claimed_count"] == 0

    def test_other_claimant_is_ignored(self, client):
        _named(client, "A", "Alice")
        _named(client, "B", "Bob")
        slot_id = first_slot_id(client.get("/rota", headers=_auth("A")).json())
        client.post(f"/rota/slots/{slot_id}/toggle", headers=_auth("A"))
        wait_for(client, "B", lambda b: find_slot(b, slot_id)["state"] == "claimed_by_other")

        response = client.post(f"/rota/slots/{slot_id}/toggle", headers=_auth("B"))

        assert response.status_code == 200
        assert response.json()["status"] == "ignored"
        assert find_slot(client.get("/rota", headers=_auth("B")).json(), slot_id)["claimant_name"] == "Alice"

    def test_unnamed_identity_gets_conflict(self, client):
        slot_id = first_slot_id(client.get("/rota", headers=_auth("A")).json())

        response = client.post(f"/rota/slots/{slot_id}/toggle", headers=_auth("A"))

        assert response.status_code == 409
        assert response.json()["detail"] == "Set your display name before claiming slots"

    def test_malformed_slot_id(self, client):
        _named(client, "A", "Alice")

        response = client.post("/rota/slots/Breakfast/toggle", headers=_auth("A"))

        assert response.status_code == 400

    def test_write_failure_is_bad_gateway(self, client):
        _named(client, "A", "Alice")
        slot_id = first_slot_id(client.get("/rota", headers=_auth("A")).json())
        client.app.state.rota.store.fail_writes_with = "network unreachable"

        response = client.post(f"/rota/slots/{slot_id}/toggle", headers=_auth("A"))

        assert response.status_code == 502

    def test_offline_mode_rejects_toggles(self, offline_client):
        _named(offline_client, "A", "Alice")
        board = offline_client.get("/rota", headers=_auth("A")).json()

        response = offline_client.post(
            f"/rota/slots/{first_slot_id(board)}/toggle", headers=_auth("A")
        )

        assert board["mode"] == "offline"
        assert board["can_claim"] is False
        assert response.status_code == 409
        assert response.json()["detail"] == "Rota is in offline mode"


class TestJwtAuth:
    SECRET = "test-secret"

    @pytest.fixture
    def jwt_client(self):
        app = create_app(_settings(ROTA_JWT_SECRET=self.SECRET))
        with TestClient(app) as test_client:
            yield test_client

    def _token(self, **claims):
        payload = {"sub": "user-1", "aud": "rota"}
        payload.update(claims)
        return jwt.encode(payload, self.SECRET, algorithm="HS256")

    def test_valid_token_identity(self, jwt_client):
        response = jwt_client.get("/rota/me", headers={"Authorization": f"Bearer {self._token()}"})

        assert response.status_code == 200
        assert response.json()["user_id"] == "user-1"

    def test_wrong_audience_rejected(self, jwt_client):
        token = self._token(aud="someone-else")

        response = jwt_client.get("/rota/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_opaque_token_rejected(self, jwt_client):
        response = jwt_client.get("/rota/me", headers=_auth("A"))

        assert response.status_code == 401
