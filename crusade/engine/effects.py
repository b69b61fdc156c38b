"""
Effect resolvers for shop items and stratagems, one per item id.

Each Effect has two parts:
- check(ctx) -> error message or None. Runs before the wallet is debited, so a failed
  precondition never costs anything.
- resolve(ctx) -> EffectOutcome. Runs after the debit and only mutates campaign state.

Resolvers never touch the wallet; the TransactionEngine owns debits.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from crusade.config import CampaignConfig
from crusade.engine import (
    BATTLE_STATUS_NONE,
    BATTLE_STATUS_SIEGE,
    BATTLE_STATUS_SKIRMISH,
    DESTROYED_PLANET_TYPE,
    RESURRECTED_PLANET_TYPE,
)
from crusade.engine import events as notifications
from crusade.engine.campaign_events import EFFECT_NONE, EventRegistry
from crusade.engine.connectivity import ConnectivityGraph
from crusade.engine.definitions import CampaignDefinitions
from crusade.engine.events import GameEvent
from crusade.engine.state import CampaignState, Planet

logger = logging.getLogger(__name__)

# ===== Planet modifier keys =====

MOD_ELITE_TRAINING = "elite_training"
MOD_PLANETARY_DEFENSE = "planetary_defense"
MOD_TRADE_HUB = "trade_hub"
MOD_MINING_UPGRADE = "mining_upgrade"
MOD_INFILTRATED = "infiltrated"
MOD_ORBITAL_SHIELD = "orbital_shield"
MOD_SCANNED_BY = "scanned_by"
MOD_RESOURCE_SABOTAGE = "resource_sabotage"
MOD_RESOURCE_BOOST = "resource_boost"
MOD_CULT = "cult"

# Consumed (cleared) by the next advance_turn
ONE_SHOT_MODIFIERS = (MOD_ORBITAL_SHIELD, MOD_RESOURCE_SABOTAGE, MOD_RESOURCE_BOOST)


@dataclass
class EffectContext:
    """Everything a resolver may read or mutate."""
    state: CampaignState
    definitions: CampaignDefinitions
    registry: EventRegistry
    graph: ConnectivityGraph
    config: CampaignConfig
    faction_id: str
    item_id: str
    target: Planet | None = None
    # Second planet of a two-phase purchase
    second_target: Planet | None = None


@dataclass
class EffectOutcome:
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    notifications: list[GameEvent] = field(default_factory=list)


Check = Callable[[EffectContext], str | None]
Resolve = Callable[[EffectContext], EffectOutcome]


@dataclass
class Effect:
    resolve: Resolve
    check: Check | None = None

    def precheck(self, ctx: EffectContext) -> str | None:
        return self.check(ctx) if self.check else None


SHOP_EFFECTS: dict[str, Effect] = {}
STRATAGEM_EFFECTS: dict[str, Effect] = {}


def shop_effect(item_id: str, check: Check | None = None):
    def register(fn: Resolve) -> Resolve:
        SHOP_EFFECTS[item_id] = Effect(resolve=fn, check=check)
        return fn
    return register


def stratagem_effect(stratagem_id: str, check: Check | None = None):
    def register(fn: Resolve) -> Resolve:
        STRATAGEM_EFFECTS[stratagem_id] = Effect(resolve=fn, check=check)
        return fn
    return register


# ===== Shared helpers =====

def _owned_planets(ctx: EffectContext) -> list[Planet]:
    return [p for p in ctx.state.planets.values() if p.owner == ctx.faction_id]


def _changed(planet: Planet, **changes: Any) -> GameEvent:
    return notifications.planet_changed(planet.id, changes)


def _enemy_target(ctx: EffectContext) -> str | None:
    if ctx.target.owner == ctx.faction_id:
        return f"Cannot target your own planet {ctx.target.name}"
    return None


def _unshielded_enemy_target(ctx: EffectContext) -> str | None:
    error = _enemy_target(ctx)
    if error:
        return error
    if ctx.state.get_modifier(ctx.target.id, MOD_ORBITAL_SHIELD):
        return f"{ctx.target.name} is protected by an orbital shield"
    return None


def _unshielded_target(ctx: EffectContext) -> str | None:
    if ctx.state.get_modifier(ctx.target.id, MOD_ORBITAL_SHIELD):
        return f"{ctx.target.name} is protected by an orbital shield"
    return None


def _lower_value_two(ctx: EffectContext, amount: int, verb: str) -> EffectOutcome:
    planet = ctx.target
    new_value = planet.adjust_value_two(-amount)
    return EffectOutcome(
        message=f"{verb} {planet.name}: Value Two -{amount} (now {new_value})",
        data={"planet_id": planet.id, "value_two": new_value},
        notifications=[_changed(planet, value_two=new_value)],
    )


# ===== Shop items =====

@shop_effect("value_two_boost")
def _value_two_boost(ctx: EffectContext) -> EffectOutcome:
    planet = ctx.target
    new_value = planet.adjust_value_two(2)
    return EffectOutcome(
        message=f"Value Two on {planet.name} raised to {new_value}",
        data={"planet_id": planet.id, "value_two": new_value},
        notifications=[_changed(planet, value_two=new_value)],
    )


@shop_effect("value_one_boost")
def _value_one_boost(ctx: EffectContext) -> EffectOutcome:
    planet = ctx.target
    new_value = planet.adjust_value_one(1)
    return EffectOutcome(
        message=f"Value One on {planet.name} raised to {new_value}",
        data={"planet_id": planet.id, "value_one": new_value},
        notifications=[_changed(planet, value_one=new_value)],
    )


@shop_effect("deploy_ship")
def _deploy_ship(ctx: EffectContext) -> EffectOutcome:
    ship = ctx.graph.add_ship(ctx.faction_id, ctx.target.id)
    return EffectOutcome(
        message=f"Fleet deployed at {ctx.target.name}",
        data={"ship": ship.to_dict()},
        notifications=[notifications.ship_deployed(ship.id, ctx.faction_id, ctx.target.id)],
    )


@shop_effect("fortify")
def _fortify(ctx: EffectContext) -> EffectOutcome:
    planet = ctx.target
    new_value = planet.adjust_value_two(4)
    planet.set_battle_status(BATTLE_STATUS_SIEGE)
    return EffectOutcome(
        message=f"Siege started on {planet.name} (Value Two {new_value})",
        data={"planet_id": planet.id, "value_two": new_value, "battle_status": planet.battle_status},
        notifications=[_changed(planet, value_two=new_value, battle_status=planet.battle_status)],
    )


def _spy_network_check(ctx: EffectContext) -> str | None:
    if ctx.target is None and not _owned_planets(ctx):
        return "Spy Network needs a planet you own"
    return None


@shop_effect("spy_network", check=_spy_network_check)
def _spy_network(ctx: EffectContext) -> EffectOutcome:
    anchor = ctx.target or _owned_planets(ctx)[0]
    event = ctx.registry.add(
        "CUSTOM",
        anchor.id,
        duration=ctx.config.spy_network_duration,
        name="Spy Network",
        description=f"Intelligence network of {ctx.faction_id}",
        effect=EFFECT_NONE,
        custom_data={"faction": ctx.faction_id, "source": "spy_network"},
    )
    return EffectOutcome(
        message=f"Spy Network active for {event.duration} turns",
        data={"event": event.to_dict()},
        notifications=[notifications.campaign_event_added(event.id, event.type, anchor.id, event.start_turn)],
    )


@shop_effect("propaganda")
def _propaganda(ctx: EffectContext) -> EffectOutcome:
    owned = _owned_planets(ctx)
    for planet in owned:
        planet.adjust_value_one(1)
    return EffectOutcome(
        message=f"Supply Lines: +1 Value One on {len(owned)} planets",
        data={"planet_ids": [p.id for p in owned]},
        notifications=[_changed(p, value_one=p.value_one) for p in owned],
    )


@shop_effect("elite_training")
def _elite_training(ctx: EffectContext) -> EffectOutcome:
    planet = ctx.target
    new_value = planet.adjust_value_two(1)
    ctx.state.set_modifier(planet.id, MOD_ELITE_TRAINING, True)
    return EffectOutcome(
        message=f"Elite Training on {planet.name}",
        data={"planet_id": planet.id, "value_two": new_value},
        notifications=[_changed(planet, value_two=new_value, modifiers={MOD_ELITE_TRAINING: True})],
    )


@shop_effect("planetary_defense")
def _planetary_defense(ctx: EffectContext) -> EffectOutcome:
    planet = ctx.target
    new_value = planet.adjust_value_two(2)
    ctx.state.set_modifier(planet.id, MOD_PLANETARY_DEFENSE, True)
    return EffectOutcome(
        message=f"Planetary Defense built on {planet.name}",
        data={"planet_id": planet.id, "value_two": new_value},
        notifications=[_changed(planet, value_two=new_value, modifiers={MOD_PLANETARY_DEFENSE: True})],
    )


@shop_effect("trade_hub")
def _trade_hub(ctx: EffectContext) -> EffectOutcome:
    ctx.state.set_modifier(ctx.target.id, MOD_TRADE_HUB, True)
    return EffectOutcome(
        message=f"Trade Hub established on {ctx.target.name}",
        data={"planet_id": ctx.target.id},
        notifications=[_changed(ctx.target, modifiers={MOD_TRADE_HUB: True})],
    )


@shop_effect("mining_upgrade")
def _mining_upgrade(ctx: EffectContext) -> EffectOutcome:
    level = int(ctx.state.get_modifier(ctx.target.id, MOD_MINING_UPGRADE) or 0) + 1
    ctx.state.set_modifier(ctx.target.id, MOD_MINING_UPGRADE, level)
    return EffectOutcome(
        message=f"Mining Upgrade on {ctx.target.name} (level {level})",
        data={"planet_id": ctx.target.id, "level": level},
        notifications=[_changed(ctx.target, modifiers={MOD_MINING_UPGRADE: level})],
    )


@shop_effect("sabotage", check=_unshielded_enemy_target)
def _sabotage(ctx: EffectContext) -> EffectOutcome:
    return _lower_value_two(ctx, 3, "Sabotaged")


@shop_effect("infiltrate", check=_enemy_target)
def _infiltrate(ctx: EffectContext) -> EffectOutcome:
    ctx.state.set_modifier(ctx.target.id, MOD_INFILTRATED, ctx.faction_id)
    return EffectOutcome(
        message=f"Infiltration unit deployed on {ctx.target.name}",
        data={"planet_id": ctx.target.id},
        notifications=[_changed(ctx.target, modifiers={MOD_INFILTRATED: ctx.faction_id})],
    )


def _warp_beacon_check(ctx: EffectContext) -> str | None:
    if ctx.second_target is None:
        return None
    if ctx.second_target.id == ctx.target.id:
        return "Select two different planets"
    if ctx.graph.is_connected(ctx.target.id, ctx.second_target.id):
        return f"{ctx.target.name} and {ctx.second_target.name} are already connected"
    return None


@shop_effect("warp_beacon", check=_warp_beacon_check)
def _warp_beacon(ctx: EffectContext) -> EffectOutcome:
    a, b = ctx.target, ctx.second_target
    ctx.graph.add_connection(a.id, b.id)
    return EffectOutcome(
        message=f"Warp Beacon connects {a.name} and {b.name}",
        data={"connection": [a.id, b.id]},
        notifications=[notifications.connection_changed(a.id, b.id, "added")],
    )


def _resurrection_check(ctx: EffectContext) -> str | None:
    if ctx.target.type != DESTROYED_PLANET_TYPE:
        return f"{ctx.target.name} is not destroyed"
    return None


@shop_effect("resurrection", check=_resurrection_check)
def _resurrection(ctx: EffectContext) -> EffectOutcome:
    planet = ctx.target
    planet.type = RESURRECTED_PLANET_TYPE
    planet.value_one = 1
    planet.value_two = 0
    type_def = ctx.definitions.planet_types.get(RESURRECTED_PLANET_TYPE)
    planet.resources = dict(type_def.harvest_yield) if type_def else {}
    planet.set_owner(ctx.faction_id, ctx.state.turn_number)
    return EffectOutcome(
        message=f"{planet.name} has been resurrected",
        data={"planet": planet.to_dict()},
        notifications=[_changed(planet, type=planet.type, owner=planet.owner, value_one=1, value_two=0)],
    )


def _super_weapon_check(ctx: EffectContext) -> str | None:
    if ctx.target.type == DESTROYED_PLANET_TYPE:
        return f"{ctx.target.name} is already destroyed"
    return _unshielded_enemy_target(ctx)


@shop_effect("super_weapon", check=_super_weapon_check)
def _super_weapon(ctx: EffectContext) -> EffectOutcome:
    planet = ctx.target
    planet.type = DESTROYED_PLANET_TYPE
    planet.value_one = 0
    planet.value_two = 0
    planet.resources = {}
    planet.set_battle_status(BATTLE_STATUS_NONE)
    planet.set_owner(None, ctx.state.turn_number)
    ctx.state.planet_modifiers.pop(planet.id, None)
    logger.info("Planet %s destroyed by %s", planet.id, ctx.faction_id)
    return EffectOutcome(
        message=f"{planet.name} has been destroyed",
        data={"planet": planet.to_dict()},
        notifications=[_changed(planet, type=planet.type, owner=None, value_one=0, value_two=0)],
    )


# ===== Stratagems =====

@stratagem_effect("orbital_shield")
def _orbital_shield(ctx: EffectContext) -> EffectOutcome:
    planet = ctx.target
    ctx.state.set_modifier(planet.id, MOD_ORBITAL_SHIELD, True)
    planet.set_battle_status(BATTLE_STATUS_NONE)
    return EffectOutcome(
        message=f"Orbital Shield raised over {planet.name}",
        data={"planet_id": planet.id},
        notifications=[_changed(planet, battle_status=planet.battle_status, modifiers={MOD_ORBITAL_SHIELD: True})],
    )


@stratagem_effect("emergency_recall")
def _emergency_recall(ctx: EffectContext) -> EffectOutcome:
    planet = ctx.target
    planet.set_battle_status(BATTLE_STATUS_NONE)
    return EffectOutcome(
        message=f"Ground forces recalled from {planet.name}",
        data={"planet_id": planet.id},
        notifications=[_changed(planet, battle_status=planet.battle_status)],
    )


@stratagem_effect("orbital_bombardment", check=_unshielded_target)
def _orbital_bombardment(ctx: EffectContext) -> EffectOutcome:
    return _lower_value_two(ctx, 4, "Bombarded")


@stratagem_effect("precision_strike", check=_unshielded_target)
def _precision_strike(ctx: EffectContext) -> EffectOutcome:
    outcome = _lower_value_two(ctx, 2, "Precision strike on")
    ctx.target.set_battle_status(BATTLE_STATUS_SKIRMISH)
    outcome.notifications.append(_changed(ctx.target, battle_status=ctx.target.battle_status))
    return outcome


@stratagem_effect("deep_space_scan")
def _deep_space_scan(ctx: EffectContext) -> EffectOutcome:
    planet = ctx.target
    ctx.state.set_modifier(planet.id, MOD_SCANNED_BY, ctx.faction_id)
    return EffectOutcome(
        message=f"Deep Space Scan of {planet.name} complete",
        data={
            "planet": planet.to_dict(),
            "modifiers": dict(ctx.state.planet_modifiers.get(planet.id, {})),
            "events": [e.to_dict() for e in ctx.registry.get_by_planet(planet.id)],
            "ships": [s.to_dict() for s in ctx.graph.ships_at(planet.id)],
        },
    )


@stratagem_effect("resource_sabotage", check=_unshielded_target)
def _resource_sabotage(ctx: EffectContext) -> EffectOutcome:
    ctx.state.set_modifier(ctx.target.id, MOD_RESOURCE_SABOTAGE, True)
    return EffectOutcome(
        message=f"{ctx.target.name} will produce nothing next turn",
        data={"planet_id": ctx.target.id},
        notifications=[_changed(ctx.target, modifiers={MOD_RESOURCE_SABOTAGE: True})],
    )


@stratagem_effect("resource_boost")
def _resource_boost(ctx: EffectContext) -> EffectOutcome:
    ctx.state.set_modifier(ctx.target.id, MOD_RESOURCE_BOOST, True)
    return EffectOutcome(
        message=f"{ctx.target.name} production doubled next turn",
        data={"planet_id": ctx.target.id},
        notifications=[_changed(ctx.target, modifiers={MOD_RESOURCE_BOOST: True})],
    )


def _warp_jump_check(ctx: EffectContext) -> str | None:
    if not ctx.graph.ships_of(ctx.faction_id):
        return "You have no fleet to jump"
    return None


@stratagem_effect("warp_jump", check=_warp_jump_check)
def _warp_jump(ctx: EffectContext) -> EffectOutcome:
    ship = ctx.graph.ships_of(ctx.faction_id)[0]
    origin = ship.planet_id
    ctx.graph.relocate_ship(ship.id, ctx.target.id)
    return EffectOutcome(
        message=f"{ship.name} jumped to {ctx.target.name}",
        data={"ship": ship.to_dict()},
        notifications=[notifications.ship_moved(ship.id, origin, ctx.target.id)],
    )


@stratagem_effect("psychic_scream")
def _psychic_scream(ctx: EffectContext) -> EffectOutcome:
    sector = ctx.state.sector_for_planet(ctx.target.id)
    planet_ids = sector.planet_ids if sector else [ctx.target.id]
    hit = []
    for pid in planet_ids:
        planet = ctx.state.get_planet(pid)
        if planet is None or planet.owner == ctx.faction_id:
            continue
        if ctx.state.get_modifier(pid, MOD_ORBITAL_SHIELD):
            continue
        planet.adjust_value_two(-1)
        hit.append(planet)
    where = sector.name if sector else ctx.target.name
    return EffectOutcome(
        message=f"Psychic Scream hits {len(hit)} planets in {where}",
        data={"planet_ids": [p.id for p in hit]},
        notifications=[_changed(p, value_two=p.value_two) for p in hit],
    )


@stratagem_effect("establish_cult")
def _establish_cult(ctx: EffectContext) -> EffectOutcome:
    planet = ctx.target
    planet.set_battle_status(BATTLE_STATUS_SKIRMISH)
    ctx.state.set_modifier(planet.id, MOD_CULT, ctx.faction_id)
    return EffectOutcome(
        message=f"Cult established on {planet.name}",
        data={"planet_id": planet.id},
        notifications=[_changed(planet, battle_status=planet.battle_status, modifiers={MOD_CULT: ctx.faction_id})],
    )
