"""
FastAPI backend for the Crusade campaign tracker.
Provides REST API endpoints for campaign state management and GM/faction actions.
Every mutating endpoint saves the campaign state after the engine call returns.
"""

import json
import logging
import os
import random
import uuid
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .database import get_db, init_db
from .models import Campaign as CampaignModel

from crusade.config import DEFAULT_SETUP_ID, CampaignConfig, configure_logging
from crusade.engine.campaign import Campaign
from crusade.engine.definitions import (
    definitions_from_snapshot,
    list_setups,
    load_setup,
    load_static_definitions,
)
from crusade.engine.queries import affordable_items, faction_stats, projected_income, stratagem_status
from crusade.engine.state import CampaignState
from crusade.engine.transactions import TransactionResult
from crusade.engine.utils import initialize_campaign_state

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Crusade Campaign API",
    description="Backend API for a tabletop crusade campaign tracker",
    version="1.0.0",
)

# CORS configuration for frontend
_DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://localhost:3000"
CORS_ORIGINS = [o.strip() for o in os.environ.get("CRUSADE_CORS_ORIGINS", _DEFAULT_CORS_ORIGINS).split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request, call_next):
    """Log method and path so 500s can be traced to the failing endpoint."""
    method = getattr(request, "method", "?")
    url = getattr(request, "url", None)
    path = url.path if url else "?"
    try:
        response = await call_next(request)
        if response.status_code >= 500:
            logger.error("[500] %s %s", method, path)
        return response
    except Exception:
        logger.exception("[500] %s %s (exception)", method, path)
        raise


@app.exception_handler(ValueError)
async def value_error_handler(request, exc):
    """Bad GM commands (unknown planet, event type, ...) are client errors."""
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# ===== Pydantic Models =====

class CreateCampaignRequest(BaseModel):
    name: str
    """Setup id from GET /setups. Omitted = crusade.config.DEFAULT_SETUP_ID."""
    setup_id: str | None = None
    """Overrides for CampaignConfig fields."""
    config: dict[str, Any] | None = None


class AddEventRequest(BaseModel):
    type: str
    planet_id: str
    duration: int | None = None
    start_turn: int = 0
    target_planet_id: str | None = None
    name: str | None = None
    description: str | None = None
    effect: str | None = None
    custom_data: dict[str, Any] | None = None


class RandomEventRequest(BaseModel):
    seed: int | None = None


class ConnectionRequest(BaseModel):
    planet_a: str
    planet_b: str


class MoveShipRequest(BaseModel):
    target_planet_id: str


class PlanetOwnerRequest(BaseModel):
    faction_id: str | None = None


class BattleStatusRequest(BaseModel):
    status: str


class PurchaseRequest(BaseModel):
    faction_id: str
    item_id: str
    target_planet_id: str | None = None


class CompletePurchaseRequest(BaseModel):
    faction_id: str
    item_id: str
    first_planet_id: str
    second_planet_id: str


class CancelPurchaseRequest(BaseModel):
    faction_id: str


class StratagemRequest(BaseModel):
    faction_id: str
    stratagem_id: str
    target_planet_id: str | None = None


class GenerateOrderRequest(BaseModel):
    order_type: str | None = None
    seed: int | None = None


class OrderProgressRequest(BaseModel):
    amount: int = 1
    key: str | None = None


class AutoDistributionRequest(BaseModel):
    enabled: bool
    manual_allocation: dict[str, dict[str, int]] | None = None
    mode: str | None = None


class DistributionModeRequest(BaseModel):
    allocation: dict[str, dict[str, int]]


# ===== Helper Functions =====

def _get_row(campaign_id: str, db: Session) -> CampaignModel:
    row = db.query(CampaignModel).filter(CampaignModel.id == campaign_id).first()
    if not row:
        raise HTTPException(status_code=404, detail=f"Campaign {campaign_id} not found")
    return row


def load_campaign(campaign_id: str, db: Session) -> Campaign:
    """Rebuild the engine facade from the stored state and definitions snapshot; 404 if missing."""
    row = _get_row(campaign_id, db)
    try:
        stored = json.loads(row.config) if row.config else {}
        definitions = definitions_from_snapshot(stored.get("definitions") or {})
        config = CampaignConfig.from_dict(stored.get("campaign_config"))
        state = CampaignState.from_json(row.campaign_state)
    except (TypeError, ValueError) as e:
        logger.error("Campaign %s could not be loaded: %s", campaign_id, e)
        raise HTTPException(status_code=404, detail=f"Campaign {campaign_id} not found")
    return Campaign(state, definitions, config)


def save_campaign(campaign_id: str, campaign: Campaign, db: Session) -> None:
    """Persist campaign state to DB."""
    row = _get_row(campaign_id, db)
    row.campaign_state = campaign.state.to_json(indent=None)
    db.commit()


def state_for_response(campaign: Campaign) -> dict[str, Any]:
    """State dict including computed faction_stats for the UI."""
    out = campaign.state.to_dict()
    out["faction_stats"] = faction_stats(campaign.state, campaign.definitions)
    return out


def _transaction_response(
    campaign_id: str, campaign: Campaign, result: TransactionResult, db: Session,
) -> dict[str, Any]:
    """Save and return on success; 400 with the message on a rejected transaction (nothing changed)."""
    if not result.ok:
        raise HTTPException(status_code=400, detail=result.message)
    save_campaign(campaign_id, campaign, db)
    return {"result": result.to_dict(), "state": state_for_response(campaign)}


@app.on_event("startup")
def on_startup():
    configure_logging()
    init_db()


# ===== API Endpoints =====

@app.get("/")
def root():
    return {"message": "Crusade Campaign API", "version": "1.0.0"}


@app.get("/setups")
def get_setups():
    """List available campaign setups (id, display_name, description)."""
    return {"setups": list_setups()}


@app.get("/definitions")
def get_definitions(setup_id: str | None = None):
    """Static definitions of a bundled setup."""
    try:
        return load_static_definitions(setup_id=setup_id or DEFAULT_SETUP_ID).to_snapshot()
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ----- Campaigns -----

@app.post("/campaigns")
def create_campaign(request: CreateCampaignRequest, db: Session = Depends(get_db)):
    setup_id = request.setup_id or DEFAULT_SETUP_ID
    try:
        setup = load_setup(setup_id)
        definitions = load_static_definitions(setup_id=setup_id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))
    config = CampaignConfig.from_dict(request.config)
    state = initialize_campaign_state(definitions, setup["starting_setup"], config, name=request.name)

    campaign_id = str(uuid.uuid4())
    row = CampaignModel(
        id=campaign_id,
        name=request.name,
        setup_id=setup_id,
        campaign_state=state.to_json(indent=None),
        config=json.dumps({
            "definitions": definitions.to_snapshot(),
            "campaign_config": config.to_dict(),
        }),
    )
    db.add(row)
    db.commit()
    logger.info("Campaign %s created from setup %s", campaign_id, setup_id)
    campaign = Campaign(state, definitions, config)
    return {"campaign_id": campaign_id, "state": state_for_response(campaign)}


@app.get("/campaigns")
def list_campaigns(db: Session = Depends(get_db)):
    rows = db.query(CampaignModel).order_by(CampaignModel.created_at.desc()).all()
    return {"campaigns": [
        {
            "id": row.id,
            "name": row.name,
            "setup_id": row.setup_id,
            "created_at": row.created_at.isoformat() if row.created_at else None,
        }
        for row in rows
    ]}


@app.get("/campaigns/{campaign_id}")
def get_campaign(campaign_id: str, db: Session = Depends(get_db)):
    """Current campaign state plus this campaign's definitions snapshot."""
    campaign = load_campaign(campaign_id, db)
    return {
        "campaign_id": campaign_id,
        "state": state_for_response(campaign),
        "definitions": campaign.definitions.to_snapshot(),
    }


@app.delete("/campaigns/{campaign_id}")
def delete_campaign(campaign_id: str, db: Session = Depends(get_db)):
    row = _get_row(campaign_id, db)
    db.delete(row)
    db.commit()
    return {"deleted": campaign_id}


# ----- Timed events -----

@app.post("/campaigns/{campaign_id}/events")
def add_event(campaign_id: str, request: AddEventRequest, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    details = {
        k: v for k, v in {
            "name": request.name,
            "description": request.description,
            "effect": request.effect,
            "custom_data": request.custom_data,
        }.items() if v is not None
    }
    event = campaign.add_event(
        request.type,
        request.planet_id,
        duration=request.duration,
        start_turn=request.start_turn,
        target_planet_id=request.target_planet_id,
        **details,
    )
    save_campaign(campaign_id, campaign, db)
    return {"event": event.to_dict(), "state": state_for_response(campaign)}


@app.post("/campaigns/{campaign_id}/events/random")
def add_random_event(campaign_id: str, request: RandomEventRequest, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    event = campaign.add_random_event(random.Random(request.seed))
    save_campaign(campaign_id, campaign, db)
    return {"event": event.to_dict(), "state": state_for_response(campaign)}


@app.delete("/campaigns/{campaign_id}/events/{event_id}")
def remove_event(campaign_id: str, event_id: str, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    if not campaign.remove_event(event_id):
        raise HTTPException(status_code=404, detail=f"Event {event_id} not found")
    save_campaign(campaign_id, campaign, db)
    return {"removed": event_id, "state": state_for_response(campaign)}


# ----- Map -----

@app.post("/campaigns/{campaign_id}/connections/toggle")
def toggle_connection(campaign_id: str, request: ConnectionRequest, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    change = campaign.toggle_connection(request.planet_a, request.planet_b)
    save_campaign(campaign_id, campaign, db)
    return {"change": change, "state": state_for_response(campaign)}


@app.get("/campaigns/{campaign_id}/planets/{planet_id}/move-targets")
def get_move_targets(campaign_id: str, planet_id: str, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    if campaign.state.get_planet(planet_id) is None:
        raise HTTPException(status_code=404, detail=f"Planet {planet_id} not found")
    return {"planet_id": planet_id, "targets": sorted(campaign.valid_move_targets(planet_id))}


@app.post("/campaigns/{campaign_id}/ships/{ship_id}/move")
def move_ship(campaign_id: str, ship_id: str, request: MoveShipRequest, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    ship = campaign.move_ship(ship_id, request.target_planet_id)
    save_campaign(campaign_id, campaign, db)
    return {"ship": ship.to_dict(), "state": state_for_response(campaign)}


@app.post("/campaigns/{campaign_id}/planets/{planet_id}/owner")
def set_planet_owner(campaign_id: str, planet_id: str, request: PlanetOwnerRequest, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    planet = campaign.set_planet_owner(planet_id, request.faction_id)
    save_campaign(campaign_id, campaign, db)
    return {"planet": planet.to_dict(), "state": state_for_response(campaign)}


@app.post("/campaigns/{campaign_id}/planets/{planet_id}/battle-status")
def set_battle_status(campaign_id: str, planet_id: str, request: BattleStatusRequest, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    planet = campaign.set_battle_status(planet_id, request.status)
    save_campaign(campaign_id, campaign, db)
    return {"planet": planet.to_dict(), "state": state_for_response(campaign)}


# ----- Economy -----

@app.post("/campaigns/{campaign_id}/purchase")
def do_purchase(campaign_id: str, request: PurchaseRequest, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    result = campaign.purchase(request.faction_id, request.item_id, request.target_planet_id)
    return _transaction_response(campaign_id, campaign, result, db)


@app.post("/campaigns/{campaign_id}/purchase/complete")
def do_complete_purchase(campaign_id: str, request: CompletePurchaseRequest, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    result = campaign.complete_two_planet_purchase(
        request.faction_id, request.item_id, request.first_planet_id, request.second_planet_id,
    )
    return _transaction_response(campaign_id, campaign, result, db)


@app.post("/campaigns/{campaign_id}/purchase/cancel")
def do_cancel_purchase(campaign_id: str, request: CancelPurchaseRequest, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    result = campaign.cancel_two_planet_purchase(request.faction_id)
    return _transaction_response(campaign_id, campaign, result, db)


@app.post("/campaigns/{campaign_id}/stratagems")
def do_use_stratagem(campaign_id: str, request: StratagemRequest, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    result = campaign.use_stratagem(request.faction_id, request.stratagem_id, request.target_planet_id)
    return _transaction_response(campaign_id, campaign, result, db)


@app.get("/campaigns/{campaign_id}/factions/{faction_id}")
def get_faction_status(campaign_id: str, faction_id: str, db: Session = Depends(get_db)):
    """Wallet, affordable shop items, stratagem readiness and projected income for one faction."""
    campaign = load_campaign(campaign_id, db)
    state, defs = campaign.state, campaign.definitions
    return {
        "faction_id": faction_id,
        "resources": campaign.wallet.balances(faction_id),
        "affordable_items": affordable_items(state, defs, faction_id),
        "stratagems": stratagem_status(state, defs, faction_id),
        "projected_income": projected_income(state, defs, faction_id, campaign.config),
        "pending_purchase": state.pending_two_phase.get(faction_id),
    }


@app.put("/campaigns/{campaign_id}/auto-distribution")
def set_auto_distribution(campaign_id: str, request: AutoDistributionRequest, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    settings = campaign.set_auto_distribution(request.enabled, request.manual_allocation, request.mode)
    save_campaign(campaign_id, campaign, db)
    return {"auto_distribution": settings}


@app.put("/campaigns/{campaign_id}/distribution-modes/{name}")
def save_distribution_mode(campaign_id: str, name: str, request: DistributionModeRequest, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    settings = campaign.save_distribution_mode(name, request.allocation)
    save_campaign(campaign_id, campaign, db)
    return {"auto_distribution": settings}


@app.delete("/campaigns/{campaign_id}/distribution-modes/{name}")
def delete_distribution_mode(campaign_id: str, name: str, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    if name not in campaign.state.auto_distribution["custom_modes"]:
        raise HTTPException(status_code=404, detail=f"Distribution mode {name} not found")
    settings = campaign.delete_distribution_mode(name)
    save_campaign(campaign_id, campaign, db)
    return {"auto_distribution": settings}


# ----- Turn -----

@app.post("/campaigns/{campaign_id}/advance-turn")
def advance_turn(campaign_id: str, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    summary = campaign.advance_turn()
    save_campaign(campaign_id, campaign, db)
    return {"summary": summary.to_dict(), "state": state_for_response(campaign)}


# ----- Galactic orders -----

@app.post("/campaigns/{campaign_id}/orders")
def generate_order(campaign_id: str, request: GenerateOrderRequest, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    order = campaign.generate_order(request.order_type, random.Random(request.seed))
    save_campaign(campaign_id, campaign, db)
    return {"order": order.to_dict()}


@app.delete("/campaigns/{campaign_id}/orders/current")
def delete_order(campaign_id: str, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    if not campaign.delete_current_order():
        raise HTTPException(status_code=404, detail="No current galactic order")
    save_campaign(campaign_id, campaign, db)
    return {"deleted": True}


@app.post("/campaigns/{campaign_id}/orders/progress")
def track_order_progress(campaign_id: str, request: OrderProgressRequest, db: Session = Depends(get_db)):
    campaign = load_campaign(campaign_id, db)
    order = campaign.track_order_progress(request.amount, request.key)
    save_campaign(campaign_id, campaign, db)
    return {"order": order.to_dict(), "order_progress": dict(campaign.state.order_progress)}
