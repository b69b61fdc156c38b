"""
Per-faction resource ledger over CampaignState.faction_resources.
Pure mutations: credit/debit never validate; callers check can_afford first.
"""

from typing import Mapping


class Wallet:
    def __init__(self, balances: dict[str, dict[str, int]] | None = None):
        # Shared with CampaignState.faction_resources
        self._balances = balances if balances is not None else {}

    def get(self, faction_id: str, resource_id: str) -> int:
        return self._balances.get(faction_id, {}).get(resource_id, 0)

    def balances(self, faction_id: str) -> dict[str, int]:
        return dict(self._balances.get(faction_id, {}))

    def credit(self, faction_id: str, resource_id: str, amount: int) -> int:
        pouch = self._balances.setdefault(faction_id, {})
        pouch[resource_id] = pouch.get(resource_id, 0) + amount
        return pouch[resource_id]

    def debit(self, faction_id: str, resource_id: str, amount: int) -> int:
        return self.credit(faction_id, resource_id, -amount)

    def credit_all(self, faction_id: str, amounts: Mapping[str, int]) -> None:
        for resource_id, amount in amounts.items():
            self.credit(faction_id, resource_id, amount)

    def debit_all(self, faction_id: str, cost: Mapping[str, int]) -> None:
        for resource_id, amount in cost.items():
            self.debit(faction_id, resource_id, amount)

    def can_afford(self, faction_id: str, cost: Mapping[str, int]) -> bool:
        return all(self.get(faction_id, rid) >= amount for rid, amount in cost.items())

    def shortfall(self, faction_id: str, cost: Mapping[str, int]) -> dict[str, int]:
        """Missing amount per resource for a cost (empty when affordable)."""
        return {
            rid: amount - self.get(faction_id, rid)
            for rid, amount in cost.items()
            if self.get(faction_id, rid) < amount
        }
