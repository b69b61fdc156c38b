"""
Query functions for UI integration.
These functions help the UI understand what is available
without mutating campaign state.
"""

from typing import Any

from crusade.config import CampaignConfig
from crusade.engine.definitions import CampaignDefinitions
from crusade.engine.state import CampaignState
from crusade.engine.turns import planet_harvest
from crusade.engine.wallet import Wallet


def is_stratagem_on_cooldown(state: CampaignState, faction_id: str, stratagem_id: str) -> bool:
    return state.stratagem_cooldowns.get(faction_id, {}).get(stratagem_id, 0) > 0


def affordable_items(state: CampaignState, definitions: CampaignDefinitions, faction_id: str) -> list[str]:
    """Shop item ids the faction can pay for right now (targets are not checked)."""
    wallet = Wallet(state.faction_resources)
    return [item_id for item_id, item in definitions.shop_items.items() if wallet.can_afford(faction_id, item.cost)]


def stratagem_status(state: CampaignState, definitions: CampaignDefinitions, faction_id: str) -> dict[str, dict[str, Any]]:
    """
    Per stratagem: {cooldown_remaining, on_cooldown, affordable, usable}.
    usable = off cooldown and affordable.
    """
    wallet = Wallet(state.faction_resources)
    out = {}
    for stratagem_id, stratagem in definitions.stratagems.items():
        remaining = state.stratagem_cooldowns.get(faction_id, {}).get(stratagem_id, 0)
        affordable = wallet.can_afford(faction_id, stratagem.cost)
        out[stratagem_id] = {
            "cooldown_remaining": remaining,
            "on_cooldown": remaining > 0,
            "affordable": affordable,
            "usable": remaining <= 0 and affordable,
        }
    return out


def projected_income(
    state: CampaignState,
    definitions: CampaignDefinitions,
    faction_id: str,
    config: CampaignConfig | None = None,
) -> dict[str, int]:
    """What the faction would harvest if the turn advanced now."""
    config = config or CampaignConfig()
    totals: dict[str, int] = {}
    for planet in state.planets.values():
        if planet.owner != faction_id:
            continue
        for resource_id, amount in planet_harvest(planet, state, definitions, config).items():
            totals[resource_id] = totals.get(resource_id, 0) + amount
    return totals


def faction_stats(state: CampaignState, definitions: CampaignDefinitions) -> dict[str, dict[str, Any]]:
    """
    Per faction: planets owned, total value_one/value_two, fleets, resources.
    Factions that appear only as planet owners or wallets are included too.
    """
    faction_ids = list(definitions.factions)
    for fid in list(state.faction_resources) + [p.owner for p in state.planets.values() if p.owner]:
        if fid not in faction_ids:
            faction_ids.append(fid)

    stats = {}
    for faction_id in faction_ids:
        owned = [p for p in state.planets.values() if p.owner == faction_id]
        faction_def = definitions.factions.get(faction_id)
        stats[faction_id] = {
            "display_name": faction_def.display_name if faction_def else faction_id,
            "planets": [p.id for p in owned],
            "planet_count": len(owned),
            "total_value_one": sum(p.value_one for p in owned),
            "total_value_two": sum(p.value_two for p in owned),
            "fleets": sum(1 for s in state.ships if s.faction_id == faction_id),
            "resources": dict(state.faction_resources.get(faction_id, {})),
        }
    return stats
