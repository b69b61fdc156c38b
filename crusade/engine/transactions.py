"""
Shop purchases and stratagem activation.

Pipeline for every transaction: validate -> precheck effect -> debit -> resolve.
Nothing is mutated before the debit, so every ok=False result leaves the campaign untouched.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from crusade.config import CampaignConfig
from crusade.engine import OperationGuard
from crusade.engine import events as notifications
from crusade.engine.campaign_events import EventRegistry
from crusade.engine.connectivity import ConnectivityGraph
from crusade.engine.definitions import CampaignDefinitions, ShopItemDefinition, StratagemDefinition
from crusade.engine.effects import SHOP_EFFECTS, STRATAGEM_EFFECTS, Effect, EffectContext
from crusade.engine.events import GameEvent
from crusade.engine.state import CampaignState, Planet
from crusade.engine.wallet import Wallet

logger = logging.getLogger(__name__)


@dataclass
class TransactionResult:
    """Uniform result of purchase / use_stratagem / complete_two_planet_purchase."""
    ok: bool
    message: str
    faction_id: str | None = None
    item_id: str | None = None
    cost: dict[str, int] = field(default_factory=dict)
    requires_second_planet: bool = False
    first_planet_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    events: list[GameEvent] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out = {
            "ok": self.ok,
            "message": self.message,
            "faction_id": self.faction_id,
            "item_id": self.item_id,
            "cost": dict(self.cost),
            "data": self.data,
            "events": [e.to_dict() for e in self.events],
        }
        if self.requires_second_planet:
            out["requires_second_planet"] = True
            out["first_planet_id"] = self.first_planet_id
        return out


class TransactionEngine:
    def __init__(
        self,
        state: CampaignState,
        definitions: CampaignDefinitions,
        wallet: Wallet,
        registry: EventRegistry,
        graph: ConnectivityGraph,
        config: CampaignConfig | None = None,
        guard: OperationGuard | None = None,
    ):
        self._state = state
        self._defs = definitions
        self._wallet = wallet
        self._registry = registry
        self._graph = graph
        self._config = config or CampaignConfig()
        self._guard = guard or OperationGuard()

    # ===== Public API =====

    def purchase(self, faction_id: str, item_id: str, target_planet_id: str | None = None) -> TransactionResult:
        with self._guard("purchase"):
            item = self._defs.shop_items.get(item_id)
            if item is None:
                return self._fail(faction_id, item_id, f"Unknown item: {item_id}")
            if item.two_phase and faction_id in self._state.pending_two_phase:
                return self._fail(faction_id, item_id, "Finish the pending two-planet purchase first")
            ctx, error = self._prepare(faction_id, item, SHOP_EFFECTS, target_planet_id)
            if error:
                return self._fail(faction_id, item_id, error)

            if item.two_phase:
                self._wallet.debit_all(faction_id, item.cost)
                self._state.pending_two_phase[faction_id] = {
                    "item_id": item_id,
                    "first_planet_id": ctx.target.id,
                }
                logger.info("%s started %s at %s", faction_id, item_id, ctx.target.id)
                return TransactionResult(
                    ok=True,
                    message=f"{item.display_name}: select the second planet",
                    faction_id=faction_id,
                    item_id=item_id,
                    cost=dict(item.cost),
                    requires_second_planet=True,
                    first_planet_id=ctx.target.id,
                    events=[self._spent(faction_id, item.cost, item_id)],
                )

            result = self._apply(ctx, SHOP_EFFECTS[item_id], item.cost)
            result.events.insert(0, notifications.item_purchased(faction_id, item_id, dict(item.cost), target_planet_id))
            return result

    def complete_two_planet_purchase(
        self,
        faction_id: str,
        item_id: str,
        first_planet_id: str,
        second_planet_id: str,
    ) -> TransactionResult:
        """Finish a two-phase purchase paid for in purchase(). Fails unless a matching first step is pending."""
        with self._guard("complete_two_planet_purchase"):
            pending = self._state.pending_two_phase.get(faction_id)
            if (
                not pending
                or pending["item_id"] != item_id
                or pending["first_planet_id"] != first_planet_id
            ):
                return self._fail(faction_id, item_id, f"No pending {item_id} purchase from {first_planet_id}")
            effect = SHOP_EFFECTS.get(item_id)
            first = self._state.get_planet(first_planet_id)
            second = self._state.get_planet(second_planet_id)
            if effect is None or first is None:
                return self._fail(faction_id, item_id, f"Cannot complete {item_id}")
            if second is None:
                return self._fail(faction_id, item_id, f"Invalid planet: {second_planet_id}")
            ctx = self._context(faction_id, item_id, first, second)
            error = effect.precheck(ctx)
            if error:
                # Pending step is kept so another second planet can be chosen
                return self._fail(faction_id, item_id, error)

            outcome = effect.resolve(ctx)
            del self._state.pending_two_phase[faction_id]
            logger.info("%s completed %s: %s", faction_id, item_id, outcome.message)
            return TransactionResult(
                ok=True,
                message=outcome.message,
                faction_id=faction_id,
                item_id=item_id,
                data=outcome.data,
                events=outcome.notifications,
            )

    def cancel_two_planet_purchase(self, faction_id: str) -> TransactionResult:
        """Drop a pending two-phase purchase and refund its cost."""
        pending = self._state.pending_two_phase.pop(faction_id, None)
        if not pending:
            return self._fail(faction_id, None, "No pending two-planet purchase")
        item = self._defs.shop_items.get(pending["item_id"])
        cost = dict(item.cost) if item else {}
        self._wallet.credit_all(faction_id, cost)
        return TransactionResult(
            ok=True,
            message=f"{pending['item_id']} cancelled and refunded",
            faction_id=faction_id,
            item_id=pending["item_id"],
            cost=cost,
            events=[notifications.resources_changed(faction_id, cost, "refund")],
        )

    def use_stratagem(self, faction_id: str, stratagem_id: str, target_planet_id: str | None = None) -> TransactionResult:
        with self._guard("use_stratagem"):
            stratagem = self._defs.stratagems.get(stratagem_id)
            if stratagem is None:
                return self._fail(faction_id, stratagem_id, f"Unknown stratagem: {stratagem_id}")
            remaining = self.cooldown_remaining(faction_id, stratagem_id)
            if remaining > 0:
                return self._fail(
                    faction_id, stratagem_id,
                    f"{stratagem.display_name} is on cooldown for {remaining} more turn(s)",
                )
            ctx, error = self._prepare(faction_id, stratagem, STRATAGEM_EFFECTS, target_planet_id)
            if error:
                return self._fail(faction_id, stratagem_id, error)

            result = self._apply(ctx, STRATAGEM_EFFECTS[stratagem_id], stratagem.cost)
            if stratagem.cooldown > 0:
                self._state.stratagem_cooldowns.setdefault(faction_id, {})[stratagem_id] = stratagem.cooldown
            result.events.insert(0, notifications.stratagem_used(
                faction_id, stratagem_id, dict(stratagem.cost), target_planet_id, stratagem.cooldown,
            ))
            return result

    def cooldown_remaining(self, faction_id: str, stratagem_id: str) -> int:
        return self._state.stratagem_cooldowns.get(faction_id, {}).get(stratagem_id, 0)

    def is_on_cooldown(self, faction_id: str, stratagem_id: str) -> bool:
        return self.cooldown_remaining(faction_id, stratagem_id) > 0

    # ===== Pipeline =====

    def _prepare(
        self,
        faction_id: str,
        definition: ShopItemDefinition | StratagemDefinition,
        effects: dict[str, Effect],
        target_planet_id: str | None,
    ) -> tuple[EffectContext | None, str | None]:
        """All validation that must pass before any mutation. Returns (ctx, error)."""
        if self._defs.factions and faction_id not in self._defs.factions:
            return None, f"Unknown faction: {faction_id}"
        if not self._wallet.can_afford(faction_id, definition.cost):
            missing = self._wallet.shortfall(faction_id, definition.cost)
            needed = ", ".join(f"{amount} {rid}" for rid, amount in sorted(missing.items()))
            return None, f"Insufficient resources for {definition.display_name} (missing {needed})"

        target = None
        if target_planet_id is not None or definition.target_required:
            if not target_planet_id:
                return None, f"{definition.display_name} requires a target planet"
            target = self._state.get_planet(target_planet_id)
            if target is None:
                return None, f"Invalid planet: {target_planet_id}"
            if definition.requires_ownership and target.owner != faction_id:
                return None, f"You must own {target.name} to use {definition.display_name}"

        effect = effects.get(definition.id)
        if effect is None:
            return None, f"{definition.display_name} has no effect"
        ctx = self._context(faction_id, definition.id, target)
        error = effect.precheck(ctx)
        if error:
            return None, error
        return ctx, None

    def _context(self, faction_id: str, item_id: str, target: Planet | None, second: Planet | None = None) -> EffectContext:
        return EffectContext(
            state=self._state,
            definitions=self._defs,
            registry=self._registry,
            graph=self._graph,
            config=self._config,
            faction_id=faction_id,
            item_id=item_id,
            target=target,
            second_target=second,
        )

    def _apply(self, ctx: EffectContext, effect: Effect, cost: dict[str, int]) -> TransactionResult:
        before = dict(self._state.faction_resources.get(ctx.faction_id, {}))
        self._wallet.debit_all(ctx.faction_id, cost)
        try:
            outcome = effect.resolve(ctx)
        except Exception:
            # Resolver bug or bad data: put the wallet back before propagating
            self._state.faction_resources[ctx.faction_id] = before
            raise
        logger.info("%s used %s: %s", ctx.faction_id, ctx.item_id, outcome.message)
        logger.debug("Resolver %s data: %s", ctx.item_id, outcome.data)
        return TransactionResult(
            ok=True,
            message=outcome.message,
            faction_id=ctx.faction_id,
            item_id=ctx.item_id,
            cost=dict(cost),
            data=outcome.data,
            events=[self._spent(ctx.faction_id, cost, ctx.item_id)] + outcome.notifications,
        )

    @staticmethod
    def _spent(faction_id: str, cost: dict[str, int], reason: str) -> GameEvent:
        return notifications.resources_changed(faction_id, {rid: -amount for rid, amount in cost.items()}, reason)

    @staticmethod
    def _fail(faction_id: str, item_id: str | None, message: str) -> TransactionResult:
        logger.warning("Transaction %s for %s rejected: %s", item_id, faction_id, message)
        return TransactionResult(ok=False, message=message, faction_id=faction_id, item_id=item_id)
