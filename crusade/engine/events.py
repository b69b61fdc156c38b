"""
Notification records for UI hooks and logging.
They describe what happened during an operation; they are not the timed CampaignEvents
(see campaign_events.py), which are part of the campaign state.
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class GameEvent:
    """Base notification. All notifications have a type and payload."""
    type: str
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "payload": self.payload}


# ===== Notification Type Constants =====

# Turn
TURN_ADVANCED = "turn_advanced"

# Timed events
CAMPAIGN_EVENT_ADDED = "campaign_event_added"
CAMPAIGN_EVENT_EXPIRED = "campaign_event_expired"

# Economy
RESOURCES_CHANGED = "resources_changed"
HARVEST_COLLECTED = "harvest_collected"
ITEM_PURCHASED = "item_purchased"
STRATAGEM_USED = "stratagem_used"
COOLDOWN_READY = "cooldown_ready"

# Map
CONNECTION_CHANGED = "connection_changed"
SHIP_DEPLOYED = "ship_deployed"
SHIP_MOVED = "ship_moved"
PLANET_CHANGED = "planet_changed"

# Galactic orders
ORDER_FINISHED = "order_finished"


# ===== Factory Functions =====

def turn_advanced(old_turn: int, new_turn: int) -> GameEvent:
    return GameEvent(TURN_ADVANCED, {"old_turn": old_turn, "new_turn": new_turn})


def campaign_event_added(event_id: str, event_type: str, planet_id: str, start_turn: int) -> GameEvent:
    return GameEvent(CAMPAIGN_EVENT_ADDED, {
        "event_id": event_id,
        "event_type": event_type,
        "planet_id": planet_id,
        "start_turn": start_turn,
    })


def campaign_event_expired(event_id: str, event_type: str, planet_id: str) -> GameEvent:
    return GameEvent(CAMPAIGN_EVENT_EXPIRED, {
        "event_id": event_id,
        "event_type": event_type,
        "planet_id": planet_id,
    })


def resources_changed(faction: str, changes: dict[str, int], reason: str) -> GameEvent:
    return GameEvent(RESOURCES_CHANGED, {
        "faction": faction,
        "changes": changes,  # resource -> signed delta
        "reason": reason,
    })


def harvest_collected(faction: str, income: dict[str, int], planets: list[str]) -> GameEvent:
    """Emitted once per owning faction during advance_turn."""
    return GameEvent(HARVEST_COLLECTED, {
        "faction": faction,
        "income": income,  # resource -> amount (may be negative)
        "planets": planets,  # planet_ids that contributed
    })


def item_purchased(faction: str, item_id: str, cost: dict[str, int], target_planet_id: str | None) -> GameEvent:
    return GameEvent(ITEM_PURCHASED, {
        "faction": faction,
        "item_id": item_id,
        "cost": cost,
        "target_planet_id": target_planet_id,
    })


def stratagem_used(
    faction: str,
    stratagem_id: str,
    cost: dict[str, int],
    target_planet_id: str | None,
    cooldown: int,
) -> GameEvent:
    return GameEvent(STRATAGEM_USED, {
        "faction": faction,
        "stratagem_id": stratagem_id,
        "cost": cost,
        "target_planet_id": target_planet_id,
        "cooldown": cooldown,
    })


def cooldown_ready(faction: str, stratagem_id: str) -> GameEvent:
    return GameEvent(COOLDOWN_READY, {"faction": faction, "stratagem_id": stratagem_id})


def connection_changed(planet_a: str, planet_b: str, change: str) -> GameEvent:
    return GameEvent(CONNECTION_CHANGED, {
        "planet_a": planet_a,
        "planet_b": planet_b,
        "change": change,  # "added" or "removed"
    })


def ship_deployed(ship_id: str, faction: str, planet_id: str) -> GameEvent:
    return GameEvent(SHIP_DEPLOYED, {"ship_id": ship_id, "faction": faction, "planet_id": planet_id})


def ship_moved(ship_id: str, from_planet: str, to_planet: str) -> GameEvent:
    return GameEvent(SHIP_MOVED, {"ship_id": ship_id, "from_planet": from_planet, "to_planet": to_planet})


def planet_changed(planet_id: str, changes: dict[str, Any]) -> GameEvent:
    """changes: field -> new value (value_one, value_two, owner, type, battle_status, modifiers)."""
    return GameEvent(PLANET_CHANGED, {"planet_id": planet_id, "changes": changes})


def order_finished(order_id: str, order_type: str, completed: bool, reward: dict[str, int]) -> GameEvent:
    return GameEvent(ORDER_FINISHED, {
        "order_id": order_id,
        "order_type": order_type,
        "completed": completed,
        "reward": reward,
    })
