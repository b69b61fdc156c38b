"""
Static definitions for resources, factions, planet types, events, shop items, stratagems and galactic orders.
All setup data lives under data/setups/<setup_id>/: resources.json, factions.json, planet_types.json,
event_types.json, shop_items.json, stratagems.json, order_templates.json, starting_setup.json,
and optional manifest.json (display_name, description).
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

DATA_DIR = Path(__file__).parent.parent / "data"
SETUPS_DIR = DATA_DIR / "setups"


def _default_setup_id() -> str:
    """Single place for default: crusade.config.DEFAULT_SETUP_ID."""
    from crusade.config import DEFAULT_SETUP_ID
    return DEFAULT_SETUP_ID


def _setup_dir(setup_id: str) -> Path:
    return SETUPS_DIR / setup_id


def list_setups() -> list[dict]:
    """Return [{ id, display_name, description }, ...] for all setups (subdirs of data/setups/ with starting_setup.json)."""
    out = []
    if not SETUPS_DIR.exists():
        return out
    for d in sorted(SETUPS_DIR.iterdir()):
        if not d.is_dir():
            continue
        setup_id = d.name
        if not (d / "starting_setup.json").exists():
            continue
        manifest_path = d / "manifest.json"
        if manifest_path.exists():
            try:
                with open(manifest_path, "r") as f:
                    m = json.load(f)
                out.append({
                    "id": m.get("id", setup_id),
                    "display_name": m.get("display_name", setup_id),
                    "description": m.get("description", ""),
                })
            except (json.JSONDecodeError, OSError):
                out.append({"id": setup_id, "display_name": setup_id, "description": ""})
        else:
            out.append({"id": setup_id, "display_name": setup_id, "description": ""})
    return out


def load_setup(setup_id: str) -> dict:
    """Load setup by id. Returns { id, display_name, description, starting_setup }."""
    setup_dir = _setup_dir(setup_id)
    if not setup_dir.exists() or not setup_dir.is_dir():
        raise FileNotFoundError(f"Setup not found: {setup_id}")
    starting_path = setup_dir / "starting_setup.json"
    if not starting_path.exists():
        raise FileNotFoundError(f"starting_setup.json not found in setup: {setup_id}")
    with open(starting_path, "r") as f:
        starting_setup = json.load(f)
    result = {
        "id": setup_id,
        "display_name": setup_id,
        "description": "",
        "starting_setup": starting_setup,
    }
    manifest_path = setup_dir / "manifest.json"
    if manifest_path.exists():
        try:
            with open(manifest_path, "r") as f:
                m = json.load(f)
            result["id"] = m.get("id", setup_id)
            result["display_name"] = m.get("display_name", setup_id)
            result["description"] = m.get("description", "")
        except (json.JSONDecodeError, OSError):
            pass
    return result


@dataclass
class ResourceDefinition:
    """A resource a faction wallet can hold."""
    id: str
    display_name: str
    icon: Optional[str] = None


@dataclass
class FactionDefinition:
    """Defines immutable properties of a faction."""
    id: str
    display_name: str
    color: str
    symbol: Optional[str] = None


@dataclass
class PlanetTypeDefinition:
    """Planet type with base values and the per-turn harvest yield (entries may be negative)."""
    id: str
    display_name: str
    base_value_one: int
    base_value_two: int
    harvest_yield: dict[str, int]


@dataclass
class EventTypeDefinition:
    """Defaults for a campaign event type."""
    id: str
    display_name: str
    description: str
    duration: int
    effect: str
    # CUSTOM is never picked by the random generator
    random: bool = True


@dataclass
class ShopItemDefinition:
    """One-time purchase. Target must be owned by the buyer unless requires_ownership is False."""
    id: str
    display_name: str
    description: str
    cost: dict[str, int]
    category: str
    target_required: bool = False
    requires_ownership: bool = True
    # Needs a second planet selection (completed via complete_two_planet_purchase)
    two_phase: bool = False


@dataclass
class StratagemDefinition:
    """Cooldown-gated special action."""
    id: str
    display_name: str
    description: str
    cost: dict[str, int]
    cooldown: int
    category: str
    target_required: bool = False
    requires_ownership: bool = True


@dataclass
class OrderTemplateDefinition:
    """Galactic order template. Description placeholders: {target} {sector} {turns} {amount} {resource}."""
    id: str
    display_name: str
    description: str
    reward: dict[str, int]
    weight: int


@dataclass
class CampaignDefinitions:
    """Everything static a campaign needs, keyed by id."""
    resources: dict[str, ResourceDefinition] = field(default_factory=dict)
    factions: dict[str, FactionDefinition] = field(default_factory=dict)
    planet_types: dict[str, PlanetTypeDefinition] = field(default_factory=dict)
    event_types: dict[str, EventTypeDefinition] = field(default_factory=dict)
    shop_items: dict[str, ShopItemDefinition] = field(default_factory=dict)
    stratagems: dict[str, StratagemDefinition] = field(default_factory=dict)
    order_templates: dict[str, OrderTemplateDefinition] = field(default_factory=dict)

    def to_snapshot(self) -> dict[str, Any]:
        """JSON-serializable snapshot, inverse of definitions_from_snapshot."""
        return {
            "resources": {k: asdict(v) for k, v in self.resources.items()},
            "factions": {k: asdict(v) for k, v in self.factions.items()},
            "planet_types": {k: asdict(v) for k, v in self.planet_types.items()},
            "event_types": {k: asdict(v) for k, v in self.event_types.items()},
            "shop_items": {k: asdict(v) for k, v in self.shop_items.items()},
            "stratagems": {k: asdict(v) for k, v in self.stratagems.items()},
            "order_templates": {k: asdict(v) for k, v in self.order_templates.items()},
        }


def _build_resources(data: dict) -> dict[str, ResourceDefinition]:
    return {
        rid: ResourceDefinition(id=d["id"], display_name=d["display_name"], icon=d.get("icon"))
        for rid, d in data.items()
    }


def _build_factions(data: dict) -> dict[str, FactionDefinition]:
    return {
        fid: FactionDefinition(
            id=d["id"],
            display_name=d["display_name"],
            color=d.get("color", "#ffffff"),
            symbol=d.get("symbol"),
        )
        for fid, d in data.items()
    }


def _build_planet_types(data: dict) -> dict[str, PlanetTypeDefinition]:
    return {
        tid: PlanetTypeDefinition(
            id=d["id"],
            display_name=d["display_name"],
            base_value_one=d.get("base_value_one", 0),
            base_value_two=d.get("base_value_two", 0),
            harvest_yield=dict(d.get("harvest_yield", {})),
        )
        for tid, d in data.items()
    }


def _build_event_types(data: dict) -> dict[str, EventTypeDefinition]:
    return {
        eid: EventTypeDefinition(
            id=d["id"],
            display_name=d["display_name"],
            description=d.get("description", ""),
            duration=d.get("duration", 1),
            effect=d.get("effect", "none"),
            random=d.get("random", True),
        )
        for eid, d in data.items()
    }


def _build_shop_items(data: dict) -> dict[str, ShopItemDefinition]:
    return {
        iid: ShopItemDefinition(
            id=d["id"],
            display_name=d["display_name"],
            description=d.get("description", ""),
            cost=dict(d["cost"]),
            category=d.get("category", ""),
            target_required=d.get("target_required", False),
            requires_ownership=d.get("requires_ownership", True),
            two_phase=d.get("two_phase", False),
        )
        for iid, d in data.items()
    }


def _build_stratagems(data: dict) -> dict[str, StratagemDefinition]:
    return {
        sid: StratagemDefinition(
            id=d["id"],
            display_name=d["display_name"],
            description=d.get("description", ""),
            cost=dict(d["cost"]),
            cooldown=d["cooldown"],
            category=d.get("category", ""),
            target_required=d.get("target_required", False),
            requires_ownership=d.get("requires_ownership", True),
        )
        for sid, d in data.items()
    }


def _build_order_templates(data: dict) -> dict[str, OrderTemplateDefinition]:
    return {
        oid: OrderTemplateDefinition(
            id=d["id"],
            display_name=d["display_name"],
            description=d.get("description", ""),
            reward=dict(d.get("reward", {})),
            weight=d.get("weight", 1),
        )
        for oid, d in data.items()
    }


_FILES = {
    "resources": ("resources.json", _build_resources),
    "factions": ("factions.json", _build_factions),
    "planet_types": ("planet_types.json", _build_planet_types),
    "event_types": ("event_types.json", _build_event_types),
    "shop_items": ("shop_items.json", _build_shop_items),
    "stratagems": ("stratagems.json", _build_stratagems),
    "order_templates": ("order_templates.json", _build_order_templates),
}


def load_static_definitions(
    data_dir: Path | str | None = None,
    setup_id: str | None = None,
) -> CampaignDefinitions:
    """
    Load static definitions for a setup.

    Args:
        data_dir: Path to directory containing the definition JSON files.
        setup_id: If set, use data/setups/<setup_id>/ (ignored if data_dir is set).
            With neither, the default setup is used.
    """
    if data_dir is not None:
        data_dir = Path(data_dir)
    else:
        data_dir = _setup_dir(setup_id if setup_id is not None else _default_setup_id())

    loaded = {}
    for key, (filename, build) in _FILES.items():
        path = data_dir / filename
        if not path.exists():
            loaded[key] = {}
            continue
        with open(path, "r") as f:
            loaded[key] = build(json.load(f))
    return CampaignDefinitions(**loaded)


def definitions_from_snapshot(snapshot: dict) -> CampaignDefinitions:
    """
    Build definitions from a snapshot (e.g. stored in campaign config).
    Used so a campaign always uses the definitions it was created with.
    """
    return CampaignDefinitions(**{
        key: build(snapshot.get(key) or {})
        for key, (_, build) in _FILES.items()
    })


def load_starting_setup(data_dir: Path | str | None = None, setup_id: str | None = None) -> dict:
    """
    Load starting_setup.json. Give data_dir, or setup_id, or neither to use default setup.

    Returns: Starting setup dict with sectors, planets and faction_resources
    """
    if data_dir is not None:
        path = Path(data_dir) / "starting_setup.json"
    elif setup_id is not None:
        path = _setup_dir(setup_id) / "starting_setup.json"
    else:
        return load_setup(_default_setup_id())["starting_setup"]
    with open(path, "r") as f:
        return json.load(f)
