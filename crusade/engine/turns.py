"""
Per-turn orchestration.

advance_turn() runs, in order:
1. tick timed events (expired ones are removed)
2. decrement stratagem cooldowns, dropping the ones that reach 0
3. harvest every owned planet into its owner's wallet, then consume one-shot modifiers
   and credit the GM allocation (selected custom mode or manual) when auto-distribution is enabled
4. advance the galactic order; a completed or expired order surfaces its reward
5. increment the turn counter
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from crusade.config import CampaignConfig
from crusade.engine import OperationGuard
from crusade.engine import events as notifications
from crusade.engine.campaign_events import CampaignEvent, EventRegistry
from crusade.engine.definitions import CampaignDefinitions
from crusade.engine.effects import (
    MOD_ELITE_TRAINING,
    MOD_MINING_UPGRADE,
    MOD_RESOURCE_BOOST,
    MOD_RESOURCE_SABOTAGE,
    MOD_TRADE_HUB,
    ONE_SHOT_MODIFIERS,
)
from crusade.engine.events import GameEvent
from crusade.engine.orders import GalacticOrders
from crusade.engine.state import CampaignState, GalacticOrder, Planet
from crusade.engine.wallet import Wallet

logger = logging.getLogger(__name__)


def _scale(amount: int, multiplier: float) -> int:
    """Multiply and round half away from zero, so a x1.5 hub lifts a yield of 1 to 2."""
    return int(math.copysign(math.floor(abs(amount) * multiplier + 0.5), amount))


def planet_harvest(
    planet: Planet,
    state: CampaignState,
    definitions: CampaignDefinitions,
    config: CampaignConfig,
) -> dict[str, int]:
    """
    Resources one planet yields this turn. Deterministic; entries may be negative.

    Base table is the planet's own resources map (seeded from its type), falling back to the
    type's harvest_yield. Modifiers apply in a fixed order:
    mining_upgrade (+level on every entry), trade_hub (x1.5, rounded half away from zero),
    elite_training (x2), then the one-shot resource_boost (x2). resource_sabotage zeroes everything.
    """
    mods = state.planet_modifiers.get(planet.id, {})
    if mods.get(MOD_RESOURCE_SABOTAGE):
        return {}
    base = planet.resources
    if not base:
        type_def = definitions.planet_types.get(planet.type)
        base = type_def.harvest_yield if type_def else {}

    mining = int(mods.get(MOD_MINING_UPGRADE) or 0)
    out = {}
    for resource_id, amount in base.items():
        amount += mining
        if mods.get(MOD_TRADE_HUB):
            amount = _scale(amount, config.trade_hub_multiplier)
        if mods.get(MOD_ELITE_TRAINING):
            amount *= config.elite_training_multiplier
        if mods.get(MOD_RESOURCE_BOOST):
            amount *= config.resource_boost_multiplier
        if amount:
            out[resource_id] = amount
    return out


@dataclass
class TurnSummary:
    """What one advance_turn() did. finished_order is set when the order completed or expired."""
    turn: int
    expired_events: list[CampaignEvent] = field(default_factory=list)
    finished_order: GalacticOrder | None = None
    reward: dict[str, int] = field(default_factory=dict)
    harvest: dict[str, dict[str, int]] = field(default_factory=dict)
    cooldowns_ready: list[tuple[str, str]] = field(default_factory=list)
    events: list[GameEvent] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "turn": self.turn,
            "expired_events": [e.to_dict() for e in self.expired_events],
            "finished_order": self.finished_order.to_dict() if self.finished_order else None,
            "reward": dict(self.reward),
            "harvest": {f: dict(income) for f, income in self.harvest.items()},
            "cooldowns_ready": [{"faction": f, "stratagem_id": s} for f, s in self.cooldowns_ready],
            "events": [e.to_dict() for e in self.events],
        }


class TurnOrchestrator:
    def __init__(
        self,
        state: CampaignState,
        definitions: CampaignDefinitions,
        wallet: Wallet,
        registry: EventRegistry,
        orders: GalacticOrders,
        config: CampaignConfig | None = None,
        guard: OperationGuard | None = None,
    ):
        self._state = state
        self._defs = definitions
        self._wallet = wallet
        self._registry = registry
        self._orders = orders
        self._config = config or CampaignConfig()
        self._guard = guard or OperationGuard()

    def advance_turn(self) -> TurnSummary:
        with self._guard("advance_turn"):
            old_turn = self._state.turn_number
            summary = TurnSummary(turn=old_turn)

            summary.expired_events = self._registry.advance_turn()
            for event in summary.expired_events:
                summary.events.append(notifications.campaign_event_expired(event.id, event.type, event.planet_id))

            summary.cooldowns_ready = self._tick_cooldowns()
            for faction_id, stratagem_id in summary.cooldowns_ready:
                summary.events.append(notifications.cooldown_ready(faction_id, stratagem_id))

            summary.harvest = self._harvest(summary.events)
            self._consume_one_shot_modifiers()
            self._distribute_allocation(summary.events)

            finished = self._orders.advance(summary.harvest)
            if finished is not None:
                summary.finished_order = finished
                summary.reward = dict(finished.reward)
                summary.events.append(notifications.order_finished(
                    finished.id, finished.type, finished.completed, summary.reward,
                ))
                if self._config.distribute_order_rewards:
                    self._distribute_reward(summary.reward, summary.events)

            self._state.turn_number = old_turn + 1
            summary.turn = self._state.turn_number
            summary.events.append(notifications.turn_advanced(old_turn, summary.turn))
            logger.info(
                "Turn %s -> %s: %s events expired, %s factions harvested",
                old_turn, summary.turn, len(summary.expired_events), len(summary.harvest),
            )
            return summary

    def _tick_cooldowns(self) -> list[tuple[str, str]]:
        ready = []
        for faction_id in list(self._state.stratagem_cooldowns):
            cooldowns = self._state.stratagem_cooldowns[faction_id]
            for stratagem_id in list(cooldowns):
                cooldowns[stratagem_id] -= 1
                if cooldowns[stratagem_id] <= 0:
                    del cooldowns[stratagem_id]
                    ready.append((faction_id, stratagem_id))
            if not cooldowns:
                del self._state.stratagem_cooldowns[faction_id]
        return ready

    def _harvest(self, out_events: list[GameEvent]) -> dict[str, dict[str, int]]:
        totals: dict[str, dict[str, int]] = {}
        sources: dict[str, list[str]] = {}
        for planet in self._state.planets.values():
            if planet.owner is None:
                continue
            income = planet_harvest(planet, self._state, self._defs, self._config)
            logger.debug("Harvest %s (%s) for %s: %s", planet.id, planet.type, planet.owner, income)
            faction_total = totals.setdefault(planet.owner, {})
            for resource_id, amount in income.items():
                faction_total[resource_id] = faction_total.get(resource_id, 0) + amount
            sources.setdefault(planet.owner, []).append(planet.id)

        for faction_id, income in totals.items():
            self._wallet.credit_all(faction_id, income)
            out_events.append(notifications.harvest_collected(faction_id, dict(income), sources[faction_id]))
        return totals

    def _consume_one_shot_modifiers(self) -> None:
        for planet_id in list(self._state.planet_modifiers):
            for key in ONE_SHOT_MODIFIERS:
                self._state.clear_modifier(planet_id, key)

    def _distribute_allocation(self, out_events: list[GameEvent]) -> None:
        """Credit the selected custom mode's allocation, or the manual allocation when none is selected."""
        settings = self._state.auto_distribution
        if not settings.get("enabled"):
            return
        custom_modes = settings.get("custom_modes", {})
        mode = settings.get("mode")
        if mode in custom_modes:
            allocations, source = custom_modes[mode], f"auto_distribution:{mode}"
        else:
            allocations, source = settings.get("manual_allocation", {}), "auto_distribution"
        for faction_id, allocation in allocations.items():
            if not allocation:
                continue
            self._wallet.credit_all(faction_id, allocation)
            out_events.append(notifications.resources_changed(faction_id, dict(allocation), source))

    def _distribute_reward(self, reward: dict[str, int], out_events: list[GameEvent]) -> None:
        faction_ids = list(self._defs.factions) or list(self._state.faction_resources)
        for faction_id in faction_ids:
            self._wallet.credit_all(faction_id, reward)
            out_events.append(notifications.resources_changed(faction_id, dict(reward), "galactic_order"))
