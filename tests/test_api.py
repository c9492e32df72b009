from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from safeorder.main import app
from safeorder.services.session_manager import get_session_manager

PROFILE = {"name": "Sam", "age": 12, "allergies": ["fish"]}


@pytest.fixture
async def client(manager):
    app.dependency_overrides[get_session_manager] = lambda: manager
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _start(client, scenario_id="cafe_first_order") -> str:
    response = await client.post("/sessions", json={"scenario_id": scenario_id, "profile": PROFILE})
    assert response.status_code == 201
    return response.json()["session_id"]


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": "1.0.0"}


async def test_ready_reports_database_state(client):
    with patch("safeorder.routers.health.check_db_connectivity", new=AsyncMock(return_value=True)):
        ok = await client.get("/ready")
    with patch("safeorder.routers.health.check_db_connectivity", new=AsyncMock(return_value=False)):
        down = await client.get("/ready")
    assert (ok.status_code, ok.json()) == (200, {"db": "ok"})
    assert (down.status_code, down.json()) == (503, {"db": "error"})


async def test_list_scenarios(client):
    response = await client.get("/scenarios")
    assert response.status_code == 200
    body = response.json()
    assert [s["id"] for s in body] == ["cafe_first_order", "busy_bistro", "harbour_tasting"]
    assert body[2]["level"] == "advanced"


async def test_scenario_menu_partitions_items(client):
    response = await client.get("/scenarios/cafe_first_order/menu", params={"allergies": "fish, dairy"})
    assert response.status_code == 200
    body = response.json()
    assert body["allergies"] == ["fish", "dairy"]
    assert "mn3" in body["unsafe_item_ids"]
    assert "mn1" in body["unsafe_item_ids"]
    assert "st1" in body["safe_item_ids"]
    assert body["menu"]["restaurant_name"] == "The Golden Fork"


async def test_scenario_menu_without_allergies_is_all_safe(client):
    body = (await client.get("/scenarios/cafe_first_order/menu")).json()
    assert body["unsafe_item_ids"] == []
    assert len(body["safe_item_ids"]) == 10


async def test_unknown_scenario_menu(client):
    assert (await client.get("/scenarios/nope/menu")).status_code == 404


async def test_session_round_trip(client):
    session_id = await _start(client)

    turn = await client.post(f"/sessions/{session_id}/turns", json={"message": "I'm allergic to fish"})
    assert turn.status_code == 200
    body = turn.json()
    assert body["turn_number"] == 1
    assert body["context"]["allergies_disclosed"] is True
    assert body["should_end"] is False

    await client.post(
        f"/sessions/{session_id}/turns",
        json={"message": "I'll have the Tomato & Basil Soup please"},
    )
    report = await client.post(f"/sessions/{session_id}/finish")
    assert report.status_code == 200
    assessment = report.json()["assessment"]
    assert assessment["overall_grade"] == "PASS"
    assert assessment["total_score"] == 90
    assert report.json()["feedback"]["tone"] == "encouraging"

    closed = await client.post(f"/sessions/{session_id}/turns", json={"message": "Hello"})
    assert closed.status_code == 409


async def test_start_session_errors(client):
    missing_profile = await client.post("/sessions", json={"scenario_id": "cafe_first_order"})
    assert missing_profile.status_code == 422

    unknown = await client.post("/sessions", json={"scenario_id": "nope", "profile": PROFILE})
    assert unknown.status_code == 404


async def test_unknown_session_routes(client):
    assert (await client.post("/sessions/missing/turns", json={"message": "Hi"})).status_code == 404
    assert (await client.post("/sessions/missing/finish")).status_code == 404
    assert (await client.delete("/sessions/missing")).status_code == 404


async def test_abandon_session(client):
    session_id = await _start(client, "busy_bistro")
    response = await client.delete(f"/sessions/{session_id}")
    assert response.json() == {"session_id": session_id, "status": "abandoned"}
    assert (await client.post(f"/sessions/{session_id}/finish")).status_code == 409


async def test_empty_message_is_rejected(client):
    session_id = await _start(client)
    response = await client.post(f"/sessions/{session_id}/turns", json={"message": ""})
    assert response.status_code == 422


async def test_unhandled_errors_use_machine_readable_body(manager):
    app.dependency_overrides[get_session_manager] = lambda: manager
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    try:
        with patch.object(manager, "finish_session", new=AsyncMock(side_effect=RuntimeError("boom"))):
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                response = await ac.post("/sessions/any/finish")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error", "code": "TRAINER_UNAVAILABLE"}
