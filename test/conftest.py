"""
Shared fixtures: the bundled default setup and a small hand-built galaxy.

Default setup at a glance (each listed faction starts with 3 of every resource):
- imperium: cadia (FORTRESS), armageddon (HIVE)
- orks: macragge (FORGE), baal (WAR_TORN)
- eldar: nocturne (MINING), medusa (CURSED)
- chaos: prospero (CORRUPTED), colchis (CARDINAL)
- caliban is DESTROYED; fenris, chogoris, olympia are unclaimed
"""

import pytest

from crusade.config import CampaignConfig
from crusade.engine.campaign import Campaign
from crusade.engine.definitions import load_static_definitions
from crusade.engine.utils import initialize_campaign_state


@pytest.fixture
def definitions():
    return load_static_definitions()


@pytest.fixture
def campaign():
    return Campaign.new()


@pytest.fixture
def make_campaign(definitions):
    """
    Build a campaign over a tiny galaxy: a - b - c in a line plus isolated d.
    imperium owns a and b, orks own c.
    """
    def _make(config: CampaignConfig | None = None, wallets: dict | None = None) -> Campaign:
        setup = {
            "sectors": [{"id": "core", "name": "Core", "planet_ids": ["a", "b", "c", "d"]}],
            "planets": [
                {"id": "a", "name": "Alpha", "type": "HIVE", "owner": "imperium", "connections": ["b"]},
                {"id": "b", "name": "Beta", "type": "FORGE", "owner": "imperium", "connections": ["a", "c"]},
                {"id": "c", "name": "Gamma", "type": "CURSED", "owner": "orks", "connections": ["b"]},
                {"id": "d", "name": "Delta", "type": "AGRI", "owner": None, "connections": []},
            ],
            "faction_resources": wallets if wallets is not None else {},
        }
        state = initialize_campaign_state(definitions, setup, config)
        return Campaign(state, definitions, config)
    return _make
