"""
REST layer over an in-memory SQLite database.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from crusade.api.database import Base, get_db
from crusade.api.main import app


@pytest.fixture
def client():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def campaign_id(client):
    response = client.post("/campaigns", json={"name": "Sabbat Worlds"})
    assert response.status_code == 200
    return response.json()["campaign_id"]


def _url(campaign_id, path=""):
    return f"/campaigns/{campaign_id}{path}"


def test_root_and_setups(client):
    assert client.get("/").json()["message"] == "Crusade Campaign API"
    setups = client.get("/setups").json()["setups"]
    assert "crusade_default" in [s["id"] for s in setups]
    assert "orbital_shield" in client.get("/definitions").json()["stratagems"]


def test_create_and_fetch_campaign(client, campaign_id):
    body = client.get(_url(campaign_id)).json()
    assert body["state"]["name"] == "Sabbat Worlds"
    assert body["state"]["turn_number"] == 1
    assert "imperium" in body["state"]["faction_stats"]
    assert "WARP_STORM" in body["definitions"]["event_types"]
    listed = client.get("/campaigns").json()["campaigns"]
    assert [c["id"] for c in listed] == [campaign_id]


def test_unknown_setup_is_rejected(client):
    assert client.post("/campaigns", json={"name": "x", "setup_id": "nowhere"}).status_code == 400


def test_missing_campaign_is_404(client):
    assert client.get(_url("does-not-exist")).status_code == 404
    assert client.post(_url("does-not-exist", "/advance-turn")).status_code == 404


def test_delete_campaign(client, campaign_id):
    assert client.delete(_url(campaign_id)).json() == {"deleted": campaign_id}
    assert client.get(_url(campaign_id)).status_code == 404


def test_purchase_success_is_saved(client, campaign_id):
    response = client.post(_url(campaign_id, "/purchase"), json={
        "faction_id": "imperium", "item_id": "deploy_ship", "target_planet_id": "cadia",
    })
    assert response.status_code == 200
    assert response.json()["result"]["ok"] is True
    state = client.get(_url(campaign_id)).json()["state"]
    assert state["ships"][0]["planet_id"] == "cadia"
    assert state["faction_resources"]["imperium"]["resource2"] == 0


def test_rejected_purchase_is_400_and_not_saved(client, campaign_id):
    before = client.get(_url(campaign_id)).json()["state"]
    response = client.post(_url(campaign_id, "/purchase"), json={
        "faction_id": "imperium", "item_id": "value_two_boost", "target_planet_id": "macragge",
    })
    assert response.status_code == 400
    assert "must own" in response.json()["detail"]
    assert client.get(_url(campaign_id)).json()["state"] == before


def test_warp_beacon_over_http(client, campaign_id):
    client.put(_url(campaign_id, "/auto-distribution"), json={
        "enabled": True, "manual_allocation": {"imperium": {"resource4": 4}},
    })
    client.post(_url(campaign_id, "/advance-turn"))
    first = client.post(_url(campaign_id, "/purchase"), json={
        "faction_id": "imperium", "item_id": "warp_beacon", "target_planet_id": "cadia",
    }).json()
    assert first["result"]["requires_second_planet"] is True
    assert first["state"]["pending_two_phase"]["imperium"]["first_planet_id"] == "cadia"
    second = client.post(_url(campaign_id, "/purchase/complete"), json={
        "faction_id": "imperium", "item_id": "warp_beacon",
        "first_planet_id": "cadia", "second_planet_id": "colchis",
    })
    assert second.status_code == 200
    targets = client.get(_url(campaign_id, "/planets/cadia/move-targets")).json()["targets"]
    assert targets == ["armageddon", "colchis", "fenris"]


def test_events_and_move_targets(client, campaign_id):
    response = client.post(_url(campaign_id, "/events"), json={
        "type": "WARP_STORM", "planet_id": "armageddon", "duration": 2,
    })
    assert response.status_code == 200
    event_id = response.json()["event"]["id"]
    assert client.get(_url(campaign_id, "/planets/cadia/move-targets")).json()["targets"] == ["fenris"]
    assert client.delete(_url(campaign_id, f"/events/{event_id}")).status_code == 200
    assert client.get(_url(campaign_id, "/planets/cadia/move-targets")).json()["targets"] == ["armageddon", "fenris"]
    assert client.delete(_url(campaign_id, f"/events/{event_id}")).status_code == 404


def test_bad_event_commands_are_400(client, campaign_id):
    assert client.post(_url(campaign_id, "/events"), json={"type": "PLAGUE", "planet_id": "terra"}).status_code == 400
    assert client.post(_url(campaign_id, "/events"), json={"type": "NOPE", "planet_id": "cadia"}).status_code == 400
    assert client.post(_url(campaign_id, "/events"), json={
        "type": "PLAGUE", "planet_id": "cadia", "duration": 0,
    }).status_code == 400


def test_random_event_with_seed(client, campaign_id):
    event = client.post(_url(campaign_id, "/events/random"), json={"seed": 11}).json()["event"]
    assert event["type"] != "CUSTOM"
    assert client.get(_url(campaign_id)).json()["state"]["events"][0]["id"] == event["id"]


def test_unknown_planet_move_targets_is_404(client, campaign_id):
    assert client.get(_url(campaign_id, "/planets/terra/move-targets")).status_code == 404


def test_toggle_connection(client, campaign_id):
    body = client.post(_url(campaign_id, "/connections/toggle"), json={"planet_a": "cadia", "planet_b": "baal"}).json()
    assert body["change"] == "added"
    planets = {p["id"]: p for p in body["state"]["planets"]}
    assert "baal" in planets["cadia"]["connections"]
    assert "cadia" in planets["baal"]["connections"]
    bad = client.post(_url(campaign_id, "/connections/toggle"), json={"planet_a": "cadia", "planet_b": "cadia"})
    assert bad.status_code == 400


def test_move_ship(client, campaign_id):
    ship = client.post(_url(campaign_id, "/purchase"), json={
        "faction_id": "imperium", "item_id": "deploy_ship", "target_planet_id": "cadia",
    }).json()["result"]["data"]["ship"]
    moved = client.post(_url(campaign_id, f"/ships/{ship['id']}/move"), json={"target_planet_id": "fenris"})
    assert moved.json()["ship"]["planet_id"] == "fenris"
    assert client.post(_url(campaign_id, f"/ships/{ship['id']}/move"), json={"target_planet_id": "baal"}).status_code == 400


def test_planet_owner_and_battle_status(client, campaign_id):
    planet = client.post(_url(campaign_id, "/planets/fenris/owner"), json={"faction_id": "tau"}).json()["planet"]
    assert planet["owner"] == "tau"
    assert planet["history"][-1]["to"] == "tau"
    status = client.post(_url(campaign_id, "/planets/fenris/battle-status"), json={"status": "siege"})
    assert status.json()["planet"]["battle_status"] == "siege"
    assert client.post(_url(campaign_id, "/planets/fenris/battle-status"), json={"status": "riot"}).status_code == 400


def test_stratagem_and_faction_status(client, campaign_id):
    response = client.post(_url(campaign_id, "/stratagems"), json={
        "faction_id": "orks", "stratagem_id": "resource_boost", "target_planet_id": "macragge",
    })
    assert response.status_code == 200
    status = client.get(_url(campaign_id, "/factions/orks")).json()
    assert status["stratagems"]["resource_boost"]["on_cooldown"] is True
    assert status["projected_income"] == {"resource2": 5, "resource3": 2, "resource4": -1}
    again = client.post(_url(campaign_id, "/stratagems"), json={
        "faction_id": "orks", "stratagem_id": "resource_boost", "target_planet_id": "macragge",
    })
    assert again.status_code == 400


def test_advance_turn(client, campaign_id):
    body = client.post(_url(campaign_id, "/advance-turn")).json()
    assert body["summary"]["turn"] == 2
    assert body["state"]["turn_number"] == 2
    assert body["state"]["faction_resources"]["imperium"]["resource3"] == 5
    assert client.get(_url(campaign_id)).json()["state"]["turn_number"] == 2


def test_auto_distribution(client, campaign_id):
    settings = client.put(_url(campaign_id, "/auto-distribution"), json={
        "enabled": True, "manual_allocation": {"tau": {"resource1": 2}},
    }).json()["auto_distribution"]
    assert settings["enabled"] is True
    state = client.post(_url(campaign_id, "/advance-turn")).json()["state"]
    assert state["faction_resources"]["tau"] == {"resource1": 2}


def test_galactic_order_lifecycle(client, campaign_id):
    first = client.post(_url(campaign_id, "/orders"), json={"seed": 9}).json()["order"]
    assert first["id"] == "order_001"
    progress = client.post(_url(campaign_id, "/orders/progress"), json={"amount": 2, "key": "baal"}).json()
    assert progress["order"]["progress"] == 2
    assert progress["order_progress"] == {"baal": 2}
    assert client.delete(_url(campaign_id, "/orders/current")).status_code == 200
    assert client.delete(_url(campaign_id, "/orders/current")).status_code == 404
    assert client.post(_url(campaign_id, "/orders/progress"), json={}).status_code == 400
    assert client.post(_url(campaign_id, "/orders"), json={"order_type": "HEIST"}).status_code == 400


def test_campaign_config_overrides_are_stored(client):
    campaign_id = client.post("/campaigns", json={
        "name": "Short", "config": {"order_turns_range": [1, 1]},
    }).json()["campaign_id"]
    order = client.post(_url(campaign_id, "/orders"), json={"order_type": "DIPLOMACY"}).json()["order"]
    assert order["turns"] == 1
    summary = client.post(_url(campaign_id, "/advance-turn")).json()["summary"]
    assert summary["finished_order"]["expired"] is True


def test_named_distribution_modes(client, campaign_id):
    saved = client.put(_url(campaign_id, "/distribution-modes/tithe"), json={
        "allocation": {"tau": {"resource1": 2, "resource3": -1}},
    }).json()["auto_distribution"]
    assert saved["custom_modes"] == {"tithe": {"tau": {"resource1": 2, "resource3": -1}}}
    assert client.put(_url(campaign_id, "/auto-distribution"), json={"enabled": True, "mode": "feast"}).status_code == 400
    client.put(_url(campaign_id, "/auto-distribution"), json={"enabled": True, "mode": "tithe"})
    state = client.post(_url(campaign_id, "/advance-turn")).json()["state"]
    assert state["faction_resources"]["tau"] == {"resource1": 2, "resource3": -1}
    assert state["auto_distribution"]["mode"] == "tithe"
    assert client.delete(_url(campaign_id, "/distribution-modes/tithe")).json()["auto_distribution"]["mode"] == "MANUAL"
    assert client.delete(_url(campaign_id, "/distribution-modes/tithe")).status_code == 404
    assert client.put(_url(campaign_id, "/distribution-modes/MANUAL"), json={"allocation": {}}).status_code == 400
