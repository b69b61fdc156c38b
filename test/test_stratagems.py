"""
Stratagem activation: cooldown gating plus the same validate -> debit -> resolve pipeline as purchases.
"""

from copy import deepcopy

import pytest

from crusade.engine.queries import is_stratagem_on_cooldown, stratagem_status


def _fund(campaign, faction_id, amount=20):
    campaign.state.faction_resources[faction_id] = {f"resource{i}": amount for i in range(1, 5)}


def test_orbital_shield_cooldown_window(campaign):
    _fund(campaign, "eldar")
    campaign.state.turn_number = 10
    assert campaign.use_stratagem("eldar", "orbital_shield", "nocturne").ok

    campaign.advance_turn()
    assert campaign.state.turn_number == 11
    assert not campaign.use_stratagem("eldar", "orbital_shield", "nocturne").ok

    campaign.advance_turn()
    assert campaign.state.turn_number == 12
    assert not campaign.use_stratagem("eldar", "orbital_shield", "nocturne").ok

    campaign.advance_turn()
    assert campaign.state.turn_number == 13
    assert campaign.use_stratagem("eldar", "orbital_shield", "nocturne").ok


def test_cooldown_is_set_to_definition_value(campaign):
    _fund(campaign, "orks")
    campaign.use_stratagem("orks", "orbital_bombardment", "cadia")
    assert campaign.state.stratagem_cooldowns["orks"]["orbital_bombardment"] == 2
    assert is_stratagem_on_cooldown(campaign.state, "orks", "orbital_bombardment")
    assert not is_stratagem_on_cooldown(campaign.state, "eldar", "orbital_bombardment")


def test_cooldown_failure_changes_nothing(campaign):
    _fund(campaign, "orks")
    campaign.use_stratagem("orks", "orbital_bombardment", "cadia")
    before = deepcopy(campaign.state.to_dict())
    result = campaign.use_stratagem("orks", "orbital_bombardment", "armageddon")
    assert not result.ok
    assert "cooldown" in result.message
    assert campaign.state.to_dict() == before


def test_cooldowns_are_per_faction(campaign):
    _fund(campaign, "orks")
    _fund(campaign, "chaos")
    assert campaign.use_stratagem("orks", "orbital_bombardment", "cadia").ok
    assert campaign.use_stratagem("chaos", "orbital_bombardment", "armageddon").ok


@pytest.mark.parametrize("stratagem_id,target", [
    ("orbital_shield", "macragge"),
    ("emergency_recall", "baal"),
    ("orbital_bombardment", "cadia"),
    ("precision_strike", "cadia"),
    ("deep_space_scan", "cadia"),
    ("resource_sabotage", "cadia"),
    ("resource_boost", "macragge"),
    ("psychic_scream", "cadia"),
    ("establish_cult", "cadia"),
])
def test_stratagem_debits_exactly_the_cost(campaign, stratagem_id, target):
    _fund(campaign, "orks")
    cost = campaign.definitions.stratagems[stratagem_id].cost
    result = campaign.use_stratagem("orks", stratagem_id, target)
    assert result.ok, result.message
    for resource_id, balance in campaign.state.faction_resources["orks"].items():
        assert balance == 20 - cost.get(resource_id, 0)


def test_unknown_stratagem_and_ownership(campaign):
    _fund(campaign, "orks")
    assert not campaign.use_stratagem("orks", "exterminatus", "cadia").ok
    result = campaign.use_stratagem("orks", "orbital_shield", "cadia")
    assert not result.ok
    assert "must own" in result.message
    assert "orks" not in campaign.state.stratagem_cooldowns


def test_insufficient_resources_for_stratagem(campaign):
    campaign.state.faction_resources["orks"] = {"resource4": 1}
    result = campaign.use_stratagem("orks", "warp_jump", "cadia")
    assert not result.ok
    assert campaign.state.faction_resources["orks"] == {"resource4": 1}


def test_bombardment_and_precision_strike(campaign):
    _fund(campaign, "orks")
    cadia = campaign.state.planets["cadia"]
    campaign.use_stratagem("orks", "orbital_bombardment", "cadia")
    assert cadia.value_two == 4
    campaign.use_stratagem("orks", "precision_strike", "cadia")
    assert cadia.value_two == 2
    assert cadia.battle_status == "skirmish"


def test_shield_and_recall_clear_battle_status(campaign):
    _fund(campaign, "orks")
    macragge = campaign.state.planets["macragge"]
    macragge.set_battle_status("major_battle")
    campaign.use_stratagem("orks", "emergency_recall", "macragge")
    assert macragge.battle_status == "none"
    macragge.set_battle_status("siege")
    campaign.use_stratagem("orks", "orbital_shield", "macragge")
    assert macragge.battle_status == "none"
    assert campaign.state.get_modifier("macragge", "orbital_shield") is True


def test_shield_lasts_until_next_turn(campaign):
    _fund(campaign, "orks")
    _fund(campaign, "imperium")
    campaign.use_stratagem("orks", "orbital_shield", "macragge")
    assert not campaign.use_stratagem("imperium", "orbital_bombardment", "macragge").ok
    campaign.advance_turn()
    assert campaign.use_stratagem("imperium", "orbital_bombardment", "macragge").ok


def test_deep_space_scan_reveals_planet(campaign):
    _fund(campaign, "chaos")
    campaign.add_event("PLAGUE", "cadia")
    result = campaign.use_stratagem("chaos", "deep_space_scan", "cadia")
    assert result.data["planet"]["owner"] == "imperium"
    assert [e["type"] for e in result.data["events"]] == ["PLAGUE"]
    assert campaign.state.get_modifier("cadia", "scanned_by") == "chaos"


def test_warp_jump_needs_a_fleet(campaign):
    _fund(campaign, "orks")
    before = deepcopy(campaign.state.to_dict())
    result = campaign.use_stratagem("orks", "warp_jump", "colchis")
    assert not result.ok
    assert campaign.state.to_dict() == before

    ship = campaign.graph.add_ship("orks", "macragge")
    assert campaign.use_stratagem("orks", "warp_jump", "colchis").ok
    assert ship.planet_id == "colchis"


def test_psychic_scream_hits_enemy_planets_in_sector(campaign):
    _fund(campaign, "imperium")
    before = {pid: p.value_two for pid, p in campaign.state.planets.items()}
    result = campaign.use_stratagem("imperium", "psychic_scream", "baal")
    assert sorted(result.data["planet_ids"]) == ["baal", "chogoris", "medusa", "nocturne"]
    for pid in ("baal", "nocturne", "medusa", "chogoris"):
        assert campaign.state.planets[pid].value_two == before[pid] - 1
    assert campaign.state.planets["cadia"].value_two == before["cadia"]


def test_psychic_scream_spares_own_planets(campaign):
    _fund(campaign, "imperium")
    result = campaign.use_stratagem("imperium", "psychic_scream", "cadia")
    assert sorted(result.data["planet_ids"]) == ["fenris", "macragge"]
    assert campaign.state.planets["cadia"].value_two == 8


def test_establish_cult(campaign):
    _fund(campaign, "chaos")
    campaign.use_stratagem("chaos", "establish_cult", "armageddon")
    assert campaign.state.planets["armageddon"].battle_status == "skirmish"
    assert campaign.state.get_modifier("armageddon", "cult") == "chaos"


def test_stratagem_status_query(campaign):
    _fund(campaign, "eldar", amount=2)
    campaign.use_stratagem("eldar", "orbital_shield", "nocturne")
    status = stratagem_status(campaign.state, campaign.definitions, "eldar")
    assert status["orbital_shield"]["on_cooldown"]
    assert status["orbital_shield"]["cooldown_remaining"] == 3
    assert not status["orbital_shield"]["usable"]
    assert status["resource_boost"]["usable"]
    assert not status["psychic_scream"]["affordable"]
