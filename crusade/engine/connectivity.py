"""
Planet connectivity and fleet movement.

The static edge set lives on the planets themselves (Planet.connections, kept symmetric here).
Wormholes and blockades are never written into it; they are read from the EventRegistry at query time.
Movement is one hop only: no pathfinding.
"""

import logging

from crusade.engine.campaign_events import EventRegistry
from crusade.engine.state import CampaignState, Ship

logger = logging.getLogger(__name__)

CONNECTION_ADDED = "added"
CONNECTION_REMOVED = "removed"


class ConnectivityGraph:
    def __init__(self, state: CampaignState, registry: EventRegistry):
        self._state = state
        self._registry = registry

    def _require_pair(self, planet_a: str, planet_b: str):
        if planet_a == planet_b:
            raise ValueError(f"Cannot connect planet {planet_a} to itself")
        a = self._state.get_planet(planet_a)
        b = self._state.get_planet(planet_b)
        if a is None:
            raise ValueError(f"Unknown planet: {planet_a}")
        if b is None:
            raise ValueError(f"Unknown planet: {planet_b}")
        return a, b

    def is_connected(self, planet_a: str, planet_b: str) -> bool:
        """Static edge only (ignores events)."""
        planet = self._state.get_planet(planet_a)
        return planet is not None and planet.has_connection(planet_b)

    def add_connection(self, planet_a: str, planet_b: str) -> bool:
        """Add the undirected edge. Returns False if it already existed."""
        a, b = self._require_pair(planet_a, planet_b)
        existed = a.has_connection(planet_b) and b.has_connection(planet_a)
        a.add_connection(planet_b)
        b.add_connection(planet_a)
        if not existed:
            logger.info("Connection %s <-> %s added", planet_a, planet_b)
        return not existed

    def remove_connection(self, planet_a: str, planet_b: str) -> bool:
        """Remove the undirected edge. Returns False if there was none."""
        a, b = self._require_pair(planet_a, planet_b)
        existed = a.has_connection(planet_b) or b.has_connection(planet_a)
        a.remove_connection(planet_b)
        b.remove_connection(planet_a)
        if existed:
            logger.info("Connection %s <-> %s removed", planet_a, planet_b)
        return existed

    def toggle_connection(self, planet_a: str, planet_b: str) -> str:
        if self.is_connected(planet_a, planet_b):
            self.remove_connection(planet_a, planet_b)
            return CONNECTION_REMOVED
        self.add_connection(planet_a, planet_b)
        return CONNECTION_ADDED

    def edges(self) -> set[tuple[str, str]]:
        """Static edge set as sorted pairs."""
        out = set()
        for planet in self._state.planets.values():
            for other in planet.connections:
                out.add(tuple(sorted((planet.id, other))))
        return out

    def valid_move_targets(self, from_planet_id: str) -> set[str]:
        """
        One-hop neighbours: unblocked static edges plus active wormhole exits.

        A static edge is usable only when neither endpoint carries an active blockade.
        Wormhole exits are not filtered by blockades.
        """
        planet = self._state.get_planet(from_planet_id)
        if planet is None:
            return set()
        targets = {
            other for other in planet.connections
            if other in self._state.planets and not self._registry.is_route_blocked(from_planet_id, other)
        }
        targets |= {p for p in self._registry.wormhole_exits(from_planet_id) if p in self._state.planets}
        targets.discard(from_planet_id)
        return targets

    # ===== Fleets =====

    def add_ship(self, faction_id: str, planet_id: str, name: str | None = None) -> Ship:
        if self._state.get_planet(planet_id) is None:
            raise ValueError(f"Unknown planet: {planet_id}")
        ship = Ship(
            id=self._state.generate_id("ship"),
            faction_id=faction_id,
            planet_id=planet_id,
            name=name or "Fleet",
            created_turn=self._state.turn_number,
        )
        self._state.ships.append(ship)
        logger.info("Fleet %s of %s deployed at %s", ship.id, faction_id, planet_id)
        return ship

    def ships_at(self, planet_id: str) -> list[Ship]:
        return [s for s in self._state.ships if s.planet_id == planet_id]

    def ships_of(self, faction_id: str) -> list[Ship]:
        return [s for s in self._state.ships if s.faction_id == faction_id]

    def move_ship(self, ship_id: str, target_planet_id: str) -> Ship:
        """Move a fleet one hop. Raises ValueError when the target is not a valid move target."""
        ship = self._state.get_ship(ship_id)
        if ship is None:
            raise ValueError(f"Unknown ship: {ship_id}")
        if target_planet_id not in self.valid_move_targets(ship.planet_id):
            raise ValueError(f"{target_planet_id} is not reachable from {ship.planet_id}")
        logger.info("Fleet %s moved %s -> %s", ship.id, ship.planet_id, target_planet_id)
        ship.planet_id = target_planet_id
        return ship

    def relocate_ship(self, ship_id: str, target_planet_id: str) -> Ship:
        """Place a fleet on any planet, ignoring connectivity (warp jump)."""
        ship = self._state.get_ship(ship_id)
        if ship is None:
            raise ValueError(f"Unknown ship: {ship_id}")
        if self._state.get_planet(target_planet_id) is None:
            raise ValueError(f"Unknown planet: {target_planet_id}")
        ship.planet_id = target_planet_id
        return ship
