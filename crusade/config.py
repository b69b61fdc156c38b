"""
Single place for default campaign configuration.
Change DEFAULT_SETUP_ID to switch which setup is used when creating a new campaign (when no setup_id is provided).
"""

import logging
import os
from dataclasses import asdict, dataclass, fields

# Setup id from data/setups/<id>/. This is the default for new campaigns.
DEFAULT_SETUP_ID = "crusade_default"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class CampaignConfig:
    """Tuning knobs for the simulation core. Every recognized field is listed here with its default."""
    starting_turn: int = 1
    # Duration used when an event type does not define one
    default_event_duration: int = 1
    # Credit a finished galactic order's reward to every faction in the catalog
    distribute_order_rewards: bool = True
    # Harvest modifiers, applied in order: flat add, multiply, double
    trade_hub_multiplier: float = 1.5
    elite_training_multiplier: int = 2
    resource_boost_multiplier: int = 2
    spy_network_duration: int = 3
    # Inclusive ranges used when rolling a random galactic order
    order_turns_range: tuple[int, int] = (3, 7)
    order_target_range: tuple[int, int] = (2, 6)
    order_amount_range: tuple[int, int] = (5, 14)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "CampaignConfig":
        """Default config with log_level taken from CRUSADE_LOG_LEVEL when set."""
        return cls(log_level=os.environ.get("CRUSADE_LOG_LEVEL", "INFO").upper())

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict | None) -> "CampaignConfig":
        """Unknown keys are ignored; list values for the range fields become tuples."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in (data or {}).items():
            if key not in known:
                continue
            values[key] = tuple(value) if isinstance(value, list) else value
        return cls(**values)


def configure_logging(level: str | None = None) -> None:
    """Install a stream handler on the root logger (no-op if one exists) and set the level."""
    level = level or CampaignConfig.from_env().log_level
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
