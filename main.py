"""
Main entry point for the Crusade campaign simulation core.
Demonstrates core functionality with a short scripted campaign.
"""

import random

from crusade.config import configure_logging
from crusade.engine.campaign import Campaign
from crusade.engine.queries import faction_stats, stratagem_status
from crusade.engine.utils import print_campaign_state


def show(result) -> None:
    status = "OK" if result.ok else "FAILED"
    print(f"  [{status}] {result.message}")


def main():
    configure_logging()
    print("Crusade Campaign Simulation Core")
    print("=" * 60)

    campaign = Campaign.new(name="Demo Crusade")
    rng = random.Random(42)

    print("\n[INITIAL STATE]")
    print_campaign_state(campaign.state, campaign.definitions)

    # ===== SCENARIO 1: Warp storm blocks travel =====
    print("\n[SCENARIO 1: Warp Storm on Armageddon]")
    storm = campaign.add_event("WARP_STORM", "armageddon", duration=3)
    print(f"  Event {storm.id} status={storm.status}")
    print(f"  Cadia move targets: {sorted(campaign.valid_move_targets('cadia'))}")

    # ===== SCENARIO 2: Wormhole shortcut =====
    print("\n[SCENARIO 2: Wormhole Cadia <-> Colchis]")
    campaign.add_event("WORMHOLE", "cadia", target_planet_id="colchis")
    print(f"  Cadia move targets: {sorted(campaign.valid_move_targets('cadia'))}")

    # ===== SCENARIO 3: Shop purchases =====
    print("\n[SCENARIO 3: Imperium goes shopping]")
    print(f"  Imperium wallet: {campaign.wallet.balances('imperium')}")
    show(campaign.purchase("imperium", "deploy_ship", "cadia"))
    show(campaign.purchase("imperium", "deploy_ship", "cadia"))  # cannot afford twice
    show(campaign.purchase("orks", "warp_beacon", "macragge"))
    show(campaign.purchase("chaos", "sabotage", "armageddon"))

    # ===== SCENARIO 4: Stratagems =====
    print("\n[SCENARIO 4: Stratagems]")
    show(campaign.use_stratagem("eldar", "orbital_shield", "nocturne"))
    show(campaign.use_stratagem("eldar", "orbital_shield", "nocturne"))  # on cooldown
    print(f"  Eldar stratagems ready: "
          f"{[s for s, info in stratagem_status(campaign.state, campaign.definitions, 'eldar').items() if info['usable']]}")

    # ===== SCENARIO 5: Galactic order and turns =====
    print("\n[SCENARIO 5: Galactic Order + 4 turns]")
    order = campaign.generate_order("RESOURCE_GATHER", rng)
    print(f"  {order.name}: {order.description}")
    for _ in range(4):
        summary = campaign.advance_turn()
        expired = ", ".join(e.type for e in summary.expired_events) or "none"
        print(f"  Turn {summary.turn}: expired events: {expired}; harvest: {summary.harvest}")
        if summary.finished_order:
            outcome = "completed" if summary.finished_order.completed else "expired"
            print(f"  Order {outcome}, reward {summary.reward} to every faction")

    print("\n[FINAL STATE]")
    print_campaign_state(campaign.state, campaign.definitions, verbose=True)
    for faction_id, stats in faction_stats(campaign.state, campaign.definitions).items():
        if stats["planet_count"]:
            print(f"  {stats['display_name']}: {stats['planet_count']} planets, {stats['fleets']} fleets")


if __name__ == "__main__":
    main()
