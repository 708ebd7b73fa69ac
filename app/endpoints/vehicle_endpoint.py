from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder

from app.core.context import FleetContext
from app.endpoints.dependencies import get_context
from app.models.audit import HistoryFilter, NoteCreate
from app.models.vehicle import RegisterVehicle, StatusUpdate
from app.services.vehicle_service import (
    add_note_service,
    delete_vehicle_service,
    fleet_stats_service,
    get_vehicle_service,
    history_service,
    register_vehicle_service,
    search_vehicle_service,
    update_status_service,
)
from app.services.verification_service import completion_service
from app.utiles.decoratores import handle_exceptions
from app.utiles.logger import get_logger

# Initialize logger
logger = get_logger(__name__)

# APIRouter for vehicle management
router = APIRouter(prefix="/vehicles", tags=["Vehicle Management"])

# ======================================================
# Vehicle Routes
# Status, history and fleet-level reads
# ======================================================

# ---------------- Register Vehicle ----------------
@router.post("/register_vehicle", response_model=dict)
@handle_exceptions
async def register_vehicle(vehicle: RegisterVehicle, ctx: FleetContext = Depends(get_context)):
    """
    Endpoint: Commission a new vehicle (Admin).
    Calls service layer → register_vehicle_service.
    """
    logger.info("API Request → Register Vehicle: call_sign=%s", vehicle.call_sign)
    result = await register_vehicle_service(ctx, vehicle)
    return result.model_dump(mode="json")


# ---------------- Search Vehicle ----------------
@router.get("/search_vehicle", response_model=dict)
@handle_exceptions
async def search_vehicle(q: Optional[str] = None, ctx: FleetContext = Depends(get_context)):
    """
    Endpoint: List vehicles, optionally filtered on call sign or type.
    """
    logger.info("API Request → Search Vehicle (q=%s)", q)
    response = await search_vehicle_service(ctx, q)
    logger.info("API Response → Search completed, found=%s vehicles", len(response["vehicles"]))
    return jsonable_encoder(response)


# ---------------- Fleet Stats ----------------
@router.get("/fleet_stats", response_model=dict)
@handle_exceptions
async def get_fleet_stats(ctx: FleetContext = Depends(get_context)):
    stats = await fleet_stats_service(ctx)
    return stats.model_dump()


# ---------------- Vehicle Details ----------------
@router.get("/{vehicle_id}", response_model=dict)
@handle_exceptions
async def get_vehicle(vehicle_id: str, ctx: FleetContext = Depends(get_context)):
    response = await get_vehicle_service(ctx, vehicle_id)
    return jsonable_encoder(response)


# ---------------- Delete Vehicle ----------------
@router.delete("/{vehicle_id}", response_model=dict)
@handle_exceptions
async def delete_vehicle(vehicle_id: str, ctx: FleetContext = Depends(get_context)):
    """
    Endpoint: Delete a vehicle with its equipment and history (Admin).
    """
    logger.info("API Request → Delete Vehicle: id=%s", vehicle_id)
    return await delete_vehicle_service(ctx, vehicle_id)


# ---------------- Update Status ----------------
@router.put("/{vehicle_id}/status", response_model=dict)
@handle_exceptions
async def update_status(vehicle_id: str, update: StatusUpdate, ctx: FleetContext = Depends(get_context)):
    """
    Endpoint: Change operational status (Admin).
    Calls service layer → update_status_service.
    """
    logger.info("API Request → Update Status: id=%s, status=%s", vehicle_id, update.status.value)
    result = await update_status_service(ctx, vehicle_id, update.status)
    return result.model_dump(mode="json")


# ---------------- Completion ----------------
@router.get("/{vehicle_id}/completion", response_model=dict)
@handle_exceptions
async def get_completion(vehicle_id: str, ctx: FleetContext = Depends(get_context)):
    return await completion_service(ctx, vehicle_id)


# ---------------- History ----------------
@router.get("/{vehicle_id}/history", response_model=dict)
@handle_exceptions
async def get_history(
    vehicle_id: str,
    category: HistoryFilter = HistoryFilter.ALL,
    ctx: FleetContext = Depends(get_context),
):
    """
    Endpoint: Audit trail, newest first.
    `category` is one of all | anomaly | verification | other.
    """
    entries = await history_service(ctx, vehicle_id, category)
    return {"vehicle_id": vehicle_id, "category": category.value, "entries": jsonable_encoder(entries)}


@router.post("/{vehicle_id}/history/notes", response_model=dict)
@handle_exceptions
async def add_note(vehicle_id: str, note: NoteCreate, ctx: FleetContext = Depends(get_context)):
    logger.info("API Request → Add Note: vehicle=%s", vehicle_id)
    result = await add_note_service(ctx, vehicle_id, note)
    return result.model_dump(mode="json")
