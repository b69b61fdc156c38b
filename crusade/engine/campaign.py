"""
Campaign facade: wires Wallet, EventRegistry, ConnectivityGraph, TransactionEngine,
GalacticOrders and TurnOrchestrator over a single CampaignState.

All components share the state's containers, so after any call the state is ready to save.
Saving is the caller's job.
"""

import logging
import random
from typing import Any

from crusade.config import CampaignConfig
from crusade.engine import OperationGuard
from crusade.engine.campaign_events import CampaignEvent, EventRegistry
from crusade.engine.connectivity import ConnectivityGraph
from crusade.engine.definitions import CampaignDefinitions, load_starting_setup, load_static_definitions
from crusade.engine.orders import GalacticOrders
from crusade.engine.state import DISTRIBUTION_MODE_MANUAL, CampaignState, GalacticOrder, Planet, Ship
from crusade.engine.transactions import TransactionEngine, TransactionResult
from crusade.engine.turns import TurnOrchestrator, TurnSummary
from crusade.engine.utils import initialize_campaign_state
from crusade.engine.wallet import Wallet

logger = logging.getLogger(__name__)


def _allocation(value: dict[str, dict[str, int]]) -> dict[str, dict[str, int]]:
    return {str(faction_id): {str(rid): int(v) for rid, v in amounts.items()} for faction_id, amounts in value.items()}


class Campaign:
    def __init__(self, state: CampaignState, definitions: CampaignDefinitions, config: CampaignConfig | None = None):
        self.state = state
        self.definitions = definitions
        self.config = config or CampaignConfig()
        guard = OperationGuard()
        self.wallet = Wallet(state.faction_resources)
        self.events = EventRegistry(
            state.events,
            definitions.event_types,
            id_factory=state.generate_id,
            default_duration=self.config.default_event_duration,
        )
        self.graph = ConnectivityGraph(state, self.events)
        self.orders = GalacticOrders(state, definitions, self.config)
        self.transactions = TransactionEngine(
            state, definitions, self.wallet, self.events, self.graph, self.config, guard,
        )
        self.turns = TurnOrchestrator(
            state, definitions, self.wallet, self.events, self.orders, self.config, guard,
        )

    @classmethod
    def new(cls, setup_id: str | None = None, config: CampaignConfig | None = None, name: str = "Crusade Campaign") -> "Campaign":
        """Fresh campaign from a bundled setup (default setup when setup_id is None)."""
        definitions = load_static_definitions(setup_id=setup_id)
        starting_setup = load_starting_setup(setup_id=setup_id)
        state = initialize_campaign_state(definitions, starting_setup, config, name=name)
        return cls(state, definitions, config)

    def _require_planet(self, planet_id: str) -> Planet:
        planet = self.state.get_planet(planet_id)
        if planet is None:
            raise ValueError(f"Unknown planet: {planet_id}")
        return planet

    # ===== Timed events =====

    def add_event(
        self,
        event_type: str,
        planet_id: str,
        duration: int | None = None,
        start_turn: int = 0,
        target_planet_id: str | None = None,
        **details: Any,
    ) -> CampaignEvent:
        """GM command. details: name, description, effect, custom_data (CUSTOM events)."""
        self._require_planet(planet_id)
        if target_planet_id is not None:
            self._require_planet(target_planet_id)
        return self.events.add(event_type, planet_id, duration, start_turn, target_planet_id, **details)

    def add_random_event(self, rng: random.Random | None = None) -> CampaignEvent:
        return self.events.add_random(list(self.state.planets), rng)

    def remove_event(self, event_id: str) -> bool:
        return self.events.remove(event_id)

    # ===== Map =====

    def toggle_connection(self, planet_a: str, planet_b: str) -> str:
        return self.graph.toggle_connection(planet_a, planet_b)

    def valid_move_targets(self, planet_id: str) -> set[str]:
        return self.graph.valid_move_targets(planet_id)

    def move_ship(self, ship_id: str, target_planet_id: str) -> Ship:
        return self.graph.move_ship(ship_id, target_planet_id)

    def set_planet_owner(self, planet_id: str, faction_id: str | None) -> Planet:
        """GM command: record a conquest (or clear the owner)."""
        if faction_id is not None and self.definitions.factions and faction_id not in self.definitions.factions:
            raise ValueError(f"Unknown faction: {faction_id}")
        planet = self._require_planet(planet_id)
        planet.set_owner(faction_id, self.state.turn_number)
        logger.info("Planet %s now owned by %s", planet_id, faction_id)
        return planet

    def set_battle_status(self, planet_id: str, status: str) -> Planet:
        planet = self._require_planet(planet_id)
        planet.set_battle_status(status)
        return planet

    # ===== Economy =====

    def purchase(self, faction_id: str, item_id: str, target_planet_id: str | None = None) -> TransactionResult:
        return self.transactions.purchase(faction_id, item_id, target_planet_id)

    def complete_two_planet_purchase(
        self, faction_id: str, item_id: str, first_planet_id: str, second_planet_id: str,
    ) -> TransactionResult:
        return self.transactions.complete_two_planet_purchase(faction_id, item_id, first_planet_id, second_planet_id)

    def cancel_two_planet_purchase(self, faction_id: str) -> TransactionResult:
        return self.transactions.cancel_two_planet_purchase(faction_id)

    def use_stratagem(self, faction_id: str, stratagem_id: str, target_planet_id: str | None = None) -> TransactionResult:
        return self.transactions.use_stratagem(faction_id, stratagem_id, target_planet_id)

    def set_auto_distribution(
        self,
        enabled: bool,
        manual_allocation: dict[str, dict[str, int]] | None = None,
        mode: str | None = None,
    ) -> dict:
        """
        Enable/disable the per-turn GM allocation; allocation replaces the previous one when given.
        mode selects a saved custom mode by name, or DISTRIBUTION_MODE_MANUAL for the manual allocation.
        """
        settings = self.state.auto_distribution
        if mode is not None and mode != DISTRIBUTION_MODE_MANUAL and mode not in settings["custom_modes"]:
            raise ValueError(f"Unknown distribution mode: {mode}")
        settings["enabled"] = bool(enabled)
        if mode is not None:
            settings["mode"] = mode
        if manual_allocation is not None:
            settings["manual_allocation"] = _allocation(manual_allocation)
        return settings

    def save_distribution_mode(self, name: str, allocation: dict[str, dict[str, int]]) -> dict:
        """Create or replace a named allocation. Amounts may be negative (upkeep)."""
        if not name or name == DISTRIBUTION_MODE_MANUAL:
            raise ValueError(f"Invalid distribution mode name: {name!r}")
        self.state.auto_distribution["custom_modes"][name] = _allocation(allocation)
        logger.info("Distribution mode %s saved", name)
        return self.state.auto_distribution

    def delete_distribution_mode(self, name: str) -> dict:
        """Remove a named allocation; if it was selected, fall back to the manual allocation."""
        settings = self.state.auto_distribution
        if name not in settings["custom_modes"]:
            raise ValueError(f"Unknown distribution mode: {name}")
        del settings["custom_modes"][name]
        if settings["mode"] == name:
            settings["mode"] = DISTRIBUTION_MODE_MANUAL
        logger.info("Distribution mode %s deleted", name)
        return settings

    # ===== Galactic orders =====

    def generate_order(self, order_type: str | None = None, rng: random.Random | None = None) -> GalacticOrder:
        if order_type is None:
            return self.orders.generate_order(rng)
        return self.orders.generate_specific_order(order_type, rng)

    def delete_current_order(self) -> bool:
        return self.orders.delete_current_order()

    def track_order_progress(self, amount: int = 1, key: str | None = None) -> GalacticOrder:
        return self.orders.track_progress(amount, key)

    # ===== Turn =====

    def advance_turn(self) -> TurnSummary:
        return self.turns.advance_turn()
