"""
Warhammer-style Crusade Campaign Simulation Core
Timed campaign events, planet connectivity, faction economy and per-turn orchestration.
"""

# turns_remaining sentinel for events that never expire
INFINITE_DURATION = -1

BATTLE_STATUS_NONE = "none"
BATTLE_STATUS_SKIRMISH = "skirmish"
BATTLE_STATUS_MAJOR = "major_battle"
BATTLE_STATUS_SIEGE = "siege"
BATTLE_STATUSES = (
    BATTLE_STATUS_NONE,
    BATTLE_STATUS_SKIRMISH,
    BATTLE_STATUS_MAJOR,
    BATTLE_STATUS_SIEGE,
)

DESTROYED_PLANET_TYPE = "DESTROYED"
RESURRECTED_PLANET_TYPE = "DEAD"


class InvariantViolation(RuntimeError):
    """Raised when the core detects a state that only a programming error can produce."""


class OperationGuard:
    """
    Serializes mutating core operations (advance_turn, purchase, use_stratagem).
    Entering while another guarded operation is running raises InvariantViolation.
    """

    def __init__(self):
        self.running: str | None = None

    def __call__(self, operation: str) -> "OperationGuard":
        if self.running is not None:
            raise InvariantViolation(f"{operation} called while {self.running} is still running")
        self.running = operation
        return self

    def __enter__(self) -> "OperationGuard":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.running = None
