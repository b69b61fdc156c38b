"""
Timed campaign events (warp storms, wormholes, bonuses) and the registry that ticks them.

Lifecycle of an event:
- waiting: start_turn > 0 (counts down one per turn, duration untouched)
- active:  start_turn == 0 and turns_remaining > 0, or turns_remaining == INFINITE_DURATION
- expired: turns_remaining == 0, only reachable from active; expired events are dropped from the registry

An event with start_turn = s and finite duration d expires after exactly s + d calls to advance_turn().
"""

import logging
import random
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from crusade.engine import INFINITE_DURATION, InvariantViolation
from crusade.engine.definitions import EventTypeDefinition

logger = logging.getLogger(__name__)

# ===== Effect Tags =====

EFFECT_BLOCKS_TRAVEL = "blocks_travel"
EFFECT_CREATES_ROUTE = "creates_route"
EFFECT_BONUS_RESOURCES = "bonus_resources"
EFFECT_DEBUFF = "debuff"
EFFECT_DESTROY_PLANET = "destroy_planet"
EFFECT_ATTACK_BONUS = "attack_bonus"
EFFECT_BONUS_TECH = "bonus_tech"
EFFECT_ORK_INVASION = "ork_invasion"
EFFECT_NONE = "none"

EVENT_EFFECTS = frozenset({
    EFFECT_BLOCKS_TRAVEL,
    EFFECT_CREATES_ROUTE,
    EFFECT_BONUS_RESOURCES,
    EFFECT_DEBUFF,
    EFFECT_DESTROY_PLANET,
    EFFECT_ATTACK_BONUS,
    EFFECT_BONUS_TECH,
    EFFECT_ORK_INVASION,
    EFFECT_NONE,
})

STATUS_WAITING = "waiting"
STATUS_ACTIVE = "active"
STATUS_EXPIRED = "expired"


@dataclass
class CampaignEvent:
    """A timed event anchored on a planet (wormholes also carry a target planet)."""
    id: str
    type: str
    planet_id: str
    effect: str
    duration: int
    turns_remaining: int
    start_turn: int = 0  # turns until activation; 0 = active now
    target_planet_id: str | None = None
    name: str = ""
    description: str = ""
    custom_data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.check_invariants()

    def check_invariants(self) -> None:
        if self.start_turn < 0:
            raise InvariantViolation(f"Event {self.id}: negative start_turn {self.start_turn}")
        if self.turns_remaining < INFINITE_DURATION:
            raise InvariantViolation(f"Event {self.id}: invalid turns_remaining {self.turns_remaining}")
        if self.start_turn > 0 and self.turns_remaining == 0:
            raise InvariantViolation(f"Event {self.id}: waiting and expired at the same time")
        if self.effect not in EVENT_EFFECTS:
            raise InvariantViolation(f"Event {self.id}: unknown effect {self.effect!r}")

    @property
    def is_infinite(self) -> bool:
        return self.turns_remaining == INFINITE_DURATION

    @property
    def is_waiting(self) -> bool:
        return self.start_turn > 0

    @property
    def is_expired(self) -> bool:
        return self.turns_remaining == 0

    @property
    def is_active(self) -> bool:
        return self.start_turn == 0 and not self.is_expired

    @property
    def status(self) -> str:
        if self.is_waiting:
            return STATUS_WAITING
        if self.is_expired:
            return STATUS_EXPIRED
        return STATUS_ACTIVE

    def tick(self) -> bool:
        """Advance one turn. Returns True if the event expired on this tick."""
        if self.is_expired:
            raise InvariantViolation(f"Event {self.id} ticked after expiring")
        if self.start_turn > 0:
            self.start_turn -= 1
            return False
        if self.turns_remaining == INFINITE_DURATION:
            return False
        self.turns_remaining -= 1
        return self.turns_remaining <= 0

    def connects(self, planet_a: str, planet_b: str) -> bool:
        return (
            (self.planet_id == planet_a and self.target_planet_id == planet_b)
            or (self.planet_id == planet_b and self.target_planet_id == planet_a)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "planet_id": self.planet_id,
            "target_planet_id": self.target_planet_id,
            "effect": self.effect,
            "duration": self.duration,
            "start_turn": self.start_turn,
            "turns_remaining": self.turns_remaining,
            "custom_data": dict(self.custom_data),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CampaignEvent":
        """
        Tolerant loader. Unknown effects load as EFFECT_NONE, a non-positive finite duration
        becomes 1, and a waiting event with no turns left restarts its full duration. An active
        entry saved with turns_remaining 0 loads as expired; CampaignState.from_dict drops it.
        """
        def _int(v: Any, d: int) -> int:
            try:
                return int(v) if v is not None else d
            except (TypeError, ValueError):
                return d
        duration = _int(data.get("duration"), 1)
        if duration != INFINITE_DURATION and duration < 1:
            duration = 1
        start_turn = max(0, _int(data.get("start_turn"), 0))
        turns_remaining = _int(data.get("turns_remaining"), duration)
        if turns_remaining < INFINITE_DURATION or (start_turn > 0 and turns_remaining == 0):
            turns_remaining = duration
        effect = str(data.get("effect") or EFFECT_NONE)
        if effect not in EVENT_EFFECTS:
            logger.warning("Event %s: unknown effect %r loaded as %r", data.get("id"), effect, EFFECT_NONE)
            effect = EFFECT_NONE
        custom = data.get("custom_data")
        return cls(
            id=str(data.get("id") or ""),
            type=str(data.get("type") or "CUSTOM"),
            planet_id=str(data.get("planet_id") or ""),
            target_planet_id=data.get("target_planet_id"),
            effect=effect,
            duration=duration,
            turns_remaining=turns_remaining,
            start_turn=start_turn,
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            custom_data=dict(custom) if isinstance(custom, dict) else {},
        )


def _uuid_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


class EventRegistry:
    """
    Owns all CampaignEvents of a campaign.

    The event list is shared with CampaignState.events and mutated in place,
    so a registry built over a loaded state needs no separate save step.
    """

    def __init__(
        self,
        events: list[CampaignEvent] | None = None,
        event_types: dict[str, EventTypeDefinition] | None = None,
        id_factory: Callable[[str], str] | None = None,
        default_duration: int = 1,
    ):
        self._events = events if events is not None else []
        self._event_types = event_types or {}
        self._id_factory = id_factory or _uuid_id
        self._default_duration = default_duration

    def add(
        self,
        type: str,
        planet_id: str,
        duration: int | None = None,
        start_turn: int = 0,
        target_planet_id: str | None = None,
        name: str | None = None,
        description: str | None = None,
        effect: str | None = None,
        custom_data: dict[str, Any] | None = None,
    ) -> CampaignEvent:
        """
        Create and store an event.

        duration=None uses the event type's default; INFINITE_DURATION (-1) never expires.
        effect overrides the type's effect (used by CUSTOM events).
        """
        type_def = self._event_types.get(type)
        if self._event_types and type_def is None:
            raise ValueError(f"Unknown event type: {type}")
        if duration is None:
            duration = type_def.duration if type_def else self._default_duration
        if duration != INFINITE_DURATION and duration < 1:
            raise ValueError(f"Event duration must be positive or {INFINITE_DURATION}, got {duration}")
        if start_turn < 0:
            raise ValueError(f"start_turn must be >= 0, got {start_turn}")
        effect = effect or (type_def.effect if type_def else EFFECT_NONE)
        if effect not in EVENT_EFFECTS:
            raise ValueError(f"Unknown event effect: {effect}")
        if effect == EFFECT_CREATES_ROUTE and (not target_planet_id or target_planet_id == planet_id):
            raise ValueError("A route-creating event needs a target planet distinct from its anchor")

        event = CampaignEvent(
            id=self._id_factory("event"),
            type=type,
            planet_id=planet_id,
            target_planet_id=target_planet_id,
            effect=effect,
            duration=duration,
            turns_remaining=duration,
            start_turn=start_turn,
            name=name or (type_def.display_name if type_def else type),
            description=description if description is not None else (type_def.description if type_def else ""),
            custom_data=dict(custom_data or {}),
        )
        self._events.append(event)
        logger.info("Event %s (%s) added on %s, duration=%s start_in=%s",
                    event.id, type, planet_id, duration, start_turn)
        return event

    def add_random(self, planet_ids: list[str], rng: random.Random | None = None) -> CampaignEvent:
        """Add an event of a random (non-custom) type on a random planet; wormholes get a distinct target."""
        rng = rng or random.Random()
        if not planet_ids:
            raise ValueError("Cannot generate an event without planets")
        candidates = [t for t, d in self._event_types.items() if d.random]
        if not candidates:
            raise ValueError("No event types available for random generation")
        type_id = rng.choice(candidates)
        planet_id = rng.choice(planet_ids)
        target = None
        if self._event_types[type_id].effect == EFFECT_CREATES_ROUTE:
            others = [p for p in planet_ids if p != planet_id]
            if not others:
                # A lone planet cannot anchor a wormhole; fall back to another type
                candidates = [t for t in candidates if self._event_types[t].effect != EFFECT_CREATES_ROUTE]
                if not candidates:
                    raise ValueError("No event type can be generated for a single planet")
                type_id = rng.choice(candidates)
            else:
                target = rng.choice(others)
        return self.add(type_id, planet_id, target_planet_id=target)

    def remove(self, event_id: str) -> bool:
        for i, event in enumerate(self._events):
            if event.id == event_id:
                del self._events[i]
                return True
        return False

    def remove_for_planet(self, planet_id: str) -> list[CampaignEvent]:
        """Drop every event anchored on or targeting a planet (used when a planet leaves the map)."""
        removed = [e for e in self._events if planet_id in (e.planet_id, e.target_planet_id)]
        self._events[:] = [e for e in self._events if e not in removed]
        return removed

    def clear(self) -> None:
        self._events.clear()

    def get(self, event_id: str) -> CampaignEvent | None:
        for event in self._events:
            if event.id == event_id:
                return event
        return None

    def get_all(self) -> list[CampaignEvent]:
        return list(self._events)

    def get_by_planet(self, planet_id: str) -> list[CampaignEvent]:
        return [e for e in self._events if e.planet_id == planet_id]

    def get_by_effect(self, effect: str) -> list[CampaignEvent]:
        return [e for e in self._events if e.effect == effect]

    def active_by_effect(self, effect: str) -> Iterable[CampaignEvent]:
        return (e for e in self._events if e.effect == effect and e.is_active)

    def advance_turn(self) -> list[CampaignEvent]:
        """Tick every event once; remove and return the ones that expired."""
        expired = []
        remaining = []
        for event in self._events:
            if event.tick():
                expired.append(event)
            else:
                remaining.append(event)
        self._events[:] = remaining
        for event in expired:
            logger.info("Event %s (%s) on %s expired", event.id, event.type, event.planet_id)
        return expired

    def is_route_blocked(self, planet_a: str, planet_b: str) -> bool:
        """True iff an active travel-blocking event sits on either endpoint."""
        return any(
            e.planet_id in (planet_a, planet_b)
            for e in self.active_by_effect(EFFECT_BLOCKS_TRAVEL)
        )

    def has_wormhole(self, planet_a: str, planet_b: str) -> bool:
        """True iff an active route-creating event joins the two planets (either direction)."""
        return any(e.connects(planet_a, planet_b) for e in self.active_by_effect(EFFECT_CREATES_ROUTE))

    def wormhole_exits(self, planet_id: str) -> set[str]:
        """Planets joined to planet_id by an active wormhole anchored at either end."""
        exits = set()
        for e in self.active_by_effect(EFFECT_CREATES_ROUTE):
            if e.planet_id == planet_id and e.target_planet_id:
                exits.add(e.target_planet_id)
            elif e.target_planet_id == planet_id:
                exits.add(e.planet_id)
        return exits
