"""
Galactic Orders: one faction-wide objective at a time.

Progress is mostly reported by the GM (track_progress); RESOURCE_GATHER and DEFENSE
also advance on their own each turn. The orchestrator calls advance() once per turn.
"""

import logging
import random

from crusade.config import CampaignConfig
from crusade.engine.definitions import CampaignDefinitions
from crusade.engine.state import CampaignState, GalacticOrder

logger = logging.getLogger(__name__)

ORDER_RESOURCE_GATHER = "RESOURCE_GATHER"
ORDER_DEFENSE = "DEFENSE"


class _Placeholders(dict):
    """str.format_map mapping that leaves unknown placeholders untouched."""

    def __missing__(self, key):
        return "{" + key + "}"


class GalacticOrders:
    def __init__(self, state: CampaignState, definitions: CampaignDefinitions, config: CampaignConfig | None = None):
        self._state = state
        self._defs = definitions
        self._config = config or CampaignConfig()

    @property
    def current(self) -> GalacticOrder | None:
        return self._state.current_order

    def available_order_types(self) -> list[str]:
        return list(self._defs.order_templates.keys())

    def generate_order(self, rng: random.Random | None = None) -> GalacticOrder:
        """Roll a new order, choosing the template by weight. Replaces any current order."""
        rng = rng or random.Random()
        templates = list(self._defs.order_templates.values())
        if not templates:
            raise ValueError("No galactic order templates defined")
        template = rng.choices(templates, weights=[max(t.weight, 0) or 1 for t in templates], k=1)[0]
        return self.generate_specific_order(template.id, rng)

    def generate_specific_order(self, order_type: str, rng: random.Random | None = None) -> GalacticOrder:
        rng = rng or random.Random()
        template = self._defs.order_templates.get(order_type)
        if template is None:
            raise ValueError(f"Unknown order type: {order_type}")

        turns = rng.randint(*self._config.order_turns_range)
        target = rng.randint(*self._config.order_target_range)
        sector = rng.choice(self._state.sectors) if self._state.sectors else None
        resource_ids = list(self._defs.resources.keys())
        resource = rng.choice(resource_ids) if resource_ids else None
        amount = rng.randint(*self._config.order_amount_range)
        planets_to_hold = target
        if order_type == ORDER_RESOURCE_GATHER:
            target = amount
        elif order_type == ORDER_DEFENSE:
            # Progress counts turns held; amount keeps the number of planets to hold
            target = turns
            amount = planets_to_hold

        resource_def = self._defs.resources.get(resource) if resource else None
        description = template.description.format_map(_Placeholders(
            target=planets_to_hold if order_type == ORDER_DEFENSE else target,
            sector=sector.name if sector else "any",
            turns=turns,
            amount=amount,
            resource=resource_def.display_name if resource_def else (resource or ""),
        ))
        order = GalacticOrder(
            id=self._state.generate_id("order"),
            type=order_type,
            name=template.display_name,
            description=description,
            reward=dict(template.reward),
            target=target,
            turns=turns,
            turns_remaining=turns,
            sector=sector.id if sector else None,
            resource=resource if order_type == ORDER_RESOURCE_GATHER else None,
            amount=amount if order_type in (ORDER_RESOURCE_GATHER, ORDER_DEFENSE) else None,
            created_turn=self._state.turn_number,
        )
        if self._state.current_order is not None:
            logger.info("Order %s replaced by %s", self._state.current_order.id, order.id)
        self._state.current_order = order
        self._state.order_progress = {}
        logger.info("Galactic order %s started: %s", order.id, order.description)
        return order

    def delete_current_order(self) -> bool:
        if self._state.current_order is None:
            return False
        logger.info("Galactic order %s deleted", self._state.current_order.id)
        self._state.current_order = None
        self._state.order_progress = {}
        return True

    def track_progress(self, amount: int = 1, key: str | None = None) -> GalacticOrder:
        """
        Record GM-reported progress on the current order (captured planets, alliances, ...).
        key tags the report (defaults to the order type); completion is evaluated at the next turn.
        """
        order = self._state.current_order
        if order is None or order.finished:
            raise ValueError("There is no active galactic order")
        key = key or order.type
        self._state.order_progress[key] = self._state.order_progress.get(key, 0) + amount
        order.progress = max(0, order.progress + amount)
        return order

    def advance(self, harvest: dict[str, dict[str, int]]) -> GalacticOrder | None:
        """
        Apply one turn to the current order. Returns the order if it completed or expired this turn.
        harvest: faction_id -> {resource_id -> amount} collected this turn.
        """
        order = self._state.current_order
        if order is None or order.finished:
            return None

        if order.type == ORDER_RESOURCE_GATHER and order.resource:
            gathered = sum(max(0, income.get(order.resource, 0)) for income in harvest.values())
            order.progress += gathered
        elif order.type == ORDER_DEFENSE:
            order.progress += 1

        if order.progress >= order.target:
            order.completed = True
        else:
            order.turns_remaining -= 1
            if order.turns_remaining <= 0:
                order.turns_remaining = 0
                order.expired = True

        if not order.finished:
            return None
        order.finished_turn = self._state.turn_number
        self._state.completed_orders.append(order)
        self._state.current_order = None
        self._state.order_progress = {}
        logger.info(
            "Galactic order %s %s (%s/%s)",
            order.id, "completed" if order.completed else "expired", order.progress, order.target,
        )
        return order
