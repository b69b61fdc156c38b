"""
Campaign state representation.
Plain records with invariant-checking mutators; components share one CampaignState and mutate it in place.
Includes JSON serialization for save/load functionality.
"""

import json
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

from crusade.engine import BATTLE_STATUSES, BATTLE_STATUS_NONE
from crusade.engine.campaign_events import CampaignEvent


def _int(v: Any, default: int) -> int:
    try:
        return int(v) if v is not None else default
    except (TypeError, ValueError):
        return default


def _ensure_str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(x) for x in value]


def _ensure_amount_map(value: Any) -> dict[str, int]:
    """Parse {resource_id: amount}; drops entries that are not integers."""
    if not isinstance(value, dict):
        return {}
    out = {}
    for k, v in value.items():
        try:
            out[str(k)] = int(v)
        except (TypeError, ValueError):
            pass
    return out


def _ensure_nested_amount_map(value: Any) -> dict[str, dict[str, int]]:
    """Parse {outer_id: {inner_id: amount}} (wallets, cooldowns)."""
    if not isinstance(value, dict):
        return {}
    return {str(k): _ensure_amount_map(v) for k, v in value.items()}


@dataclass
class Planet:
    """A planet on the galaxy map. value_one/value_two never go below zero."""
    id: str
    name: str
    type: str
    owner: str | None = None
    value_one: int = 0
    value_two: int = 0
    # Per-turn harvest yield, seeded from the planet type
    resources: dict[str, int] = field(default_factory=dict)
    # Static edge set, embedded per planet (kept symmetric by ConnectivityGraph)
    connections: list[str] = field(default_factory=list)
    battle_status: str = BATTLE_STATUS_NONE
    history: list[dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        self.value_one = max(0, self.value_one)
        self.value_two = max(0, self.value_two)

    def adjust_value_one(self, delta: int) -> int:
        self.value_one = max(0, self.value_one + delta)
        return self.value_one

    def adjust_value_two(self, delta: int) -> int:
        self.value_two = max(0, self.value_two + delta)
        return self.value_two

    def set_owner(self, faction_id: str | None, turn: int = 0, record_history: bool = True) -> None:
        """Change owner, recording a conquest entry when the owner actually changes."""
        previous = self.owner
        self.owner = faction_id
        if record_history and previous != faction_id:
            self.history.append({
                "turn": turn,
                "event": "conquest",
                "from": previous,
                "to": faction_id,
            })

    def set_battle_status(self, status: str) -> None:
        if status not in BATTLE_STATUSES:
            raise ValueError(f"Unknown battle status: {status}")
        self.battle_status = status

    def has_connection(self, planet_id: str) -> bool:
        return planet_id in self.connections

    def add_connection(self, planet_id: str) -> None:
        if planet_id not in self.connections:
            self.connections.append(planet_id)

    def remove_connection(self, planet_id: str) -> None:
        if planet_id in self.connections:
            self.connections.remove(planet_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "owner": self.owner,
            "value_one": self.value_one,
            "value_two": self.value_two,
            "resources": dict(self.resources),
            "connections": list(self.connections),
            "battle_status": self.battle_status,
            "history": list(self.history),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Planet":
        if not isinstance(data, dict):
            data = {}
        status = data.get("battle_status")
        if status not in BATTLE_STATUSES:
            status = BATTLE_STATUS_NONE
        history = data.get("history")
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or data.get("id") or ""),
            type=str(data.get("type") or ""),
            owner=data.get("owner"),
            value_one=_int(data.get("value_one"), 0),
            value_two=_int(data.get("value_two"), 0),
            resources=_ensure_amount_map(data.get("resources")),
            connections=_ensure_str_list(data.get("connections")),
            battle_status=status,
            history=[h for h in history if isinstance(h, dict)] if isinstance(history, list) else [],
        )


@dataclass
class Ship:
    """A fleet token on the map."""
    id: str
    faction_id: str
    planet_id: str
    name: str = "Fleet"
    created_turn: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "faction_id": self.faction_id,
            "planet_id": self.planet_id,
            "name": self.name,
            "created_turn": self.created_turn,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Ship":
        if not isinstance(data, dict):
            data = {}
        return cls(
            id=str(data.get("id") or ""),
            faction_id=str(data.get("faction_id") or ""),
            planet_id=str(data.get("planet_id") or ""),
            name=str(data.get("name") or "Fleet"),
            created_turn=_int(data.get("created_turn"), 0),
        )


@dataclass
class Sector:
    """Named group of planets."""
    id: str
    name: str
    planet_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "planet_ids": list(self.planet_ids)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Sector":
        if not isinstance(data, dict):
            data = {}
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            planet_ids=_ensure_str_list(data.get("planet_ids")),
        )


@dataclass
class GalacticOrder:
    """A time-boxed, faction-wide objective. progress counts toward target; turns_remaining is the turn budget."""
    id: str
    type: str
    name: str
    description: str
    reward: dict[str, int]
    target: int
    turns: int
    turns_remaining: int
    progress: int = 0
    completed: bool = False
    expired: bool = False
    sector: str | None = None
    resource: str | None = None
    amount: int | None = None
    created_turn: int = 0
    finished_turn: int | None = None

    @property
    def finished(self) -> bool:
        return self.completed or self.expired

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "reward": dict(self.reward),
            "target": self.target,
            "turns": self.turns,
            "turns_remaining": self.turns_remaining,
            "progress": self.progress,
            "completed": self.completed,
            "expired": self.expired,
            "sector": self.sector,
            "resource": self.resource,
            "amount": self.amount,
            "created_turn": self.created_turn,
            "finished_turn": self.finished_turn,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GalacticOrder":
        if not isinstance(data, dict):
            data = {}
        turns = _int(data.get("turns"), 1)
        amount = data.get("amount")
        finished_turn = data.get("finished_turn")
        return cls(
            id=str(data.get("id") or ""),
            type=str(data.get("type") or ""),
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            reward=_ensure_amount_map(data.get("reward")),
            target=_int(data.get("target"), 1),
            turns=turns,
            turns_remaining=_int(data.get("turns_remaining"), turns),
            progress=_int(data.get("progress"), 0),
            completed=bool(data.get("completed", False)),
            expired=bool(data.get("expired", False)),
            sector=data.get("sector"),
            resource=data.get("resource"),
            amount=_int(amount, 0) if amount is not None else None,
            created_turn=_int(data.get("created_turn"), 0),
            finished_turn=_int(finished_turn, 0) if finished_turn is not None else None,
        )


DISTRIBUTION_MODE_MANUAL = "MANUAL"


def _default_auto_distribution() -> dict[str, Any]:
    return {"enabled": False, "mode": DISTRIBUTION_MODE_MANUAL, "manual_allocation": {}, "custom_modes": {}}


def _ensure_auto_distribution(value: Any) -> dict[str, Any]:
    """Parse the GM allocation settings; custom_modes maps a mode name to a faction -> resource allocation."""
    if not isinstance(value, dict):
        return _default_auto_distribution()
    modes = value.get("custom_modes")
    if not isinstance(modes, dict):
        modes = {}
    return {
        "enabled": bool(value.get("enabled", False)),
        "mode": str(value.get("mode") or DISTRIBUTION_MODE_MANUAL),
        "manual_allocation": _ensure_nested_amount_map(value.get("manual_allocation")),
        "custom_modes": {str(name): _ensure_nested_amount_map(alloc) for name, alloc in modes.items()},
    }


def _ensure_pending_two_phase(value: Any) -> dict[str, dict[str, str]]:
    """Parse {faction_id: {"item_id": str, "first_planet_id": str}}."""
    if not isinstance(value, dict):
        return {}
    out = {}
    for faction_id, pending in value.items():
        if not isinstance(pending, dict):
            continue
        item_id = pending.get("item_id")
        first = pending.get("first_planet_id")
        if item_id and first:
            out[str(faction_id)] = {"item_id": str(item_id), "first_planet_id": str(first)}
    return out


@dataclass
class CampaignState:
    """Complete campaign state."""
    turn_number: int
    # planet_id -> Planet (insertion order is display order)
    planets: dict[str, Planet]
    name: str = "Crusade Campaign"
    ships: list[Ship] = field(default_factory=list)
    sectors: list[Sector] = field(default_factory=list)
    events: list[CampaignEvent] = field(default_factory=list)
    # faction_id -> {resource_id -> amount}; amounts may be negative
    faction_resources: dict[str, dict[str, int]] = field(default_factory=dict)
    # faction_id -> {stratagem_id -> turns until usable}
    stratagem_cooldowns: dict[str, dict[str, int]] = field(default_factory=dict)
    # planet_id -> {modifier_key -> value} (trade_hub, mining_upgrade, elite_training, ...)
    planet_modifiers: dict[str, dict[str, Any]] = field(default_factory=dict)
    current_order: GalacticOrder | None = None
    completed_orders: list[GalacticOrder] = field(default_factory=list)
    # progress_key -> count reported for the current order
    order_progress: dict[str, int] = field(default_factory=dict)
    # faction_id -> first step of a two-phase purchase awaiting its second planet
    pending_two_phase: dict[str, dict[str, str]] = field(default_factory=dict)
    auto_distribution: dict[str, Any] = field(default_factory=_default_auto_distribution)
    # Counters for generating unique ids (prefix -> next number)
    id_counters: dict[str, int] = field(default_factory=dict)

    def copy(self) -> "CampaignState":
        """Return a deep copy of this campaign state."""
        return deepcopy(self)

    def generate_id(self, prefix: str) -> str:
        """Generate a unique, deterministic id such as 'event_007'."""
        self.id_counters[prefix] = self.id_counters.get(prefix, 0) + 1
        return f"{prefix}_{self.id_counters[prefix]:03d}"

    def get_planet(self, planet_id: str | None) -> Planet | None:
        if planet_id is None:
            return None
        return self.planets.get(planet_id)

    def get_ship(self, ship_id: str) -> Ship | None:
        for ship in self.ships:
            if ship.id == ship_id:
                return ship
        return None

    def sector_for_planet(self, planet_id: str) -> Sector | None:
        for sector in self.sectors:
            if planet_id in sector.planet_ids:
                return sector
        return None

    def get_modifier(self, planet_id: str, key: str) -> Any:
        return self.planet_modifiers.get(planet_id, {}).get(key)

    def set_modifier(self, planet_id: str, key: str, value: Any) -> None:
        self.planet_modifiers.setdefault(planet_id, {})[key] = value

    def clear_modifier(self, planet_id: str, key: str) -> None:
        mods = self.planet_modifiers.get(planet_id)
        if mods and key in mods:
            del mods[key]
            if not mods:
                del self.planet_modifiers[planet_id]

    # ===== Serialization Methods =====

    def to_dict(self) -> dict[str, Any]:
        """Convert CampaignState to a dictionary for JSON serialization."""
        return {
            "name": self.name,
            "turn_number": self.turn_number,
            "planets": [p.to_dict() for p in self.planets.values()],
            "ships": [s.to_dict() for s in self.ships],
            "sectors": [s.to_dict() for s in self.sectors],
            "events": [e.to_dict() for e in self.events],
            "faction_resources": deepcopy(self.faction_resources),
            "stratagem_cooldowns": deepcopy(self.stratagem_cooldowns),
            "planet_modifiers": deepcopy(self.planet_modifiers),
            "current_order": self.current_order.to_dict() if self.current_order else None,
            "completed_orders": [o.to_dict() for o in self.completed_orders],
            "order_progress": dict(self.order_progress),
            "pending_two_phase": deepcopy(self.pending_two_phase),
            "auto_distribution": deepcopy(self.auto_distribution),
            "id_counters": dict(self.id_counters),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CampaignState":
        """Create CampaignState from a dictionary (handles missing/None for backwards compat)."""
        if not isinstance(data, dict):
            data = {}
        planets_data = data.get("planets") or []
        if isinstance(planets_data, dict):
            planets_data = list(planets_data.values())
        planets = {}
        for pd in planets_data:
            if isinstance(pd, dict):
                planet = Planet.from_dict(pd)
                planets[planet.id] = planet
        mods = data.get("planet_modifiers") or {}
        if not isinstance(mods, dict):
            mods = {}
        order = data.get("current_order")
        events = [CampaignEvent.from_dict(e) for e in (data.get("events") or []) if isinstance(e, dict)]
        return cls(
            name=str(data.get("name") or "Crusade Campaign"),
            turn_number=_int(data.get("turn_number"), 1),
            planets=planets,
            ships=[Ship.from_dict(s) for s in (data.get("ships") or []) if isinstance(s, dict)],
            sectors=[Sector.from_dict(s) for s in (data.get("sectors") or []) if isinstance(s, dict)],
            events=[e for e in events if not e.is_expired],
            faction_resources=_ensure_nested_amount_map(data.get("faction_resources")),
            stratagem_cooldowns=_ensure_nested_amount_map(data.get("stratagem_cooldowns")),
            planet_modifiers={str(k): dict(v) for k, v in mods.items() if isinstance(v, dict)},
            current_order=GalacticOrder.from_dict(order) if isinstance(order, dict) else None,
            completed_orders=[
                GalacticOrder.from_dict(o) for o in (data.get("completed_orders") or []) if isinstance(o, dict)
            ],
            order_progress=_ensure_amount_map(data.get("order_progress")),
            pending_two_phase=_ensure_pending_two_phase(data.get("pending_two_phase")),
            auto_distribution=_ensure_auto_distribution(data.get("auto_distribution")),
            id_counters=_ensure_amount_map(data.get("id_counters")),
        )

    def to_json(self, indent: int = 2) -> str:
        """Serialize CampaignState to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> "CampaignState":
        """Deserialize CampaignState from a JSON string."""
        return cls.from_dict(json.loads(json_str))

    def save(self, filepath: str) -> None:
        """Save CampaignState to a JSON file."""
        with open(filepath, "w") as f:
            f.write(self.to_json())

    @classmethod
    def load(cls, filepath: str) -> "CampaignState":
        """Load CampaignState from a JSON file."""
        with open(filepath, "r") as f:
            return cls.from_json(f.read())
