"""
Utility functions for the campaign engine.
"""

from collections import Counter

from crusade.config import CampaignConfig
from crusade.engine.definitions import CampaignDefinitions, load_starting_setup
from crusade.engine.state import CampaignState, Planet, Sector


def new_planet(
    planet_id: str,
    name: str,
    planet_type: str,
    definitions: CampaignDefinitions,
    owner: str | None = None,
    connections: list[str] | None = None,
) -> Planet:
    """Planet with values and resources seeded from its type definition."""
    type_def = definitions.planet_types.get(planet_type)
    if type_def is None:
        raise ValueError(f"Unknown planet type: {planet_type}")
    return Planet(
        id=planet_id,
        name=name,
        type=planet_type,
        owner=owner,
        value_one=type_def.base_value_one,
        value_two=type_def.base_value_two,
        resources=dict(type_def.harvest_yield),
        connections=list(connections or []),
    )


def initialize_campaign_state(
    definitions: CampaignDefinitions,
    starting_setup: dict | None = None,
    config: CampaignConfig | None = None,
    name: str = "Crusade Campaign",
) -> CampaignState:
    """
    Create an initial campaign state from a starting setup.

    Args:
        definitions: Static definitions (planet types seed planet values and yields)
        starting_setup: Optional configuration:
            {
                "sectors": [{"id", "name", "planet_ids"}, ...],
                "planets": [{"id", "name", "type", "owner", "connections",
                             optional "value_one", "value_two"}, ...],
                "faction_resources": {"faction_id": {"resource_id": amount}}
            }
            If not provided, the default setup is loaded.
        config: Campaign configuration (starting turn)
    """
    config = config or CampaignConfig()
    if starting_setup is None:
        starting_setup = load_starting_setup()

    planets: dict[str, Planet] = {}
    for entry in starting_setup.get("planets", []):
        planet = new_planet(
            entry["id"],
            entry.get("name", entry["id"]),
            entry["type"],
            definitions,
            owner=entry.get("owner"),
            connections=entry.get("connections"),
        )
        if "value_one" in entry:
            planet.value_one = max(0, int(entry["value_one"]))
        if "value_two" in entry:
            planet.value_two = max(0, int(entry["value_two"]))
        planets[planet.id] = planet

    # Static edges are undirected: mirror any one-sided connection and drop unknown ids
    for planet in planets.values():
        for other_id in list(planet.connections):
            other = planets.get(other_id)
            if other is None or other_id == planet.id:
                planet.remove_connection(other_id)
            else:
                other.add_connection(planet.id)

    sectors = [
        Sector(id=s["id"], name=s.get("name", s["id"]), planet_ids=[p for p in s.get("planet_ids", []) if p in planets])
        for s in starting_setup.get("sectors", [])
    ]

    # Every faction in the catalog gets a wallet, even with nothing in it
    faction_resources: dict[str, dict[str, int]] = {faction_id: {} for faction_id in definitions.factions}
    for faction_id, resources in starting_setup.get("faction_resources", {}).items():
        faction_resources.setdefault(faction_id, {}).update({rid: int(v) for rid, v in resources.items()})

    return CampaignState(
        turn_number=config.starting_turn,
        planets=planets,
        name=name,
        sectors=sectors,
        faction_resources=faction_resources,
    )


def print_campaign_state(state: CampaignState, definitions: CampaignDefinitions | None = None, verbose: bool = False):
    """
    Pretty-print the current campaign state.

    Args:
        state: Current campaign state
        definitions: Optional definitions for display names
        verbose: If True, also list connections and planet modifiers
    """
    print(f"\n{'='*60}")
    print(f"{state.name} | Turn {state.turn_number}")
    print(f"{'='*60}")

    fleets = Counter(ship.planet_id for ship in state.ships)
    for planet in state.planets.values():
        owner_str = planet.owner or "unclaimed"
        if definitions and planet.owner in definitions.factions:
            owner_str = definitions.factions[planet.owner].display_name
        print(f"\n{planet.name} [{planet.type}] (Owner: {owner_str}) "
              f"V1={planet.value_one} V2={planet.value_two} status={planet.battle_status}")
        if fleets[planet.id]:
            print(f"  - fleets: {fleets[planet.id]}")
        if verbose:
            print(f"  - connections: {', '.join(planet.connections) or 'none'}")
            mods = state.planet_modifiers.get(planet.id)
            if mods:
                print(f"  - modifiers: {mods}")

    if state.events:
        print(f"\n{'Events':.<40}")
        for event in state.events:
            target = f" -> {event.target_planet_id}" if event.target_planet_id else ""
            remaining = "inf" if event.is_infinite else event.turns_remaining
            print(f"  {event.id} {event.type} @ {event.planet_id}{target} [{event.status}] "
                  f"start_in={event.start_turn} remaining={remaining}")

    if state.current_order:
        order = state.current_order
        print(f"\n{'Galactic Order':.<40}")
        print(f"  {order.name}: {order.description} ({order.progress}/{order.target}, "
              f"{order.turns_remaining} turns left)")

    # Print resources
    print(f"\n{'Resources':.<40}")
    for faction_id, resources in state.faction_resources.items():
        resource_str = ", ".join(f"{k}: {v}" for k, v in sorted(resources.items()))
        print(f"  {faction_id}: {resource_str}")
    print()
