from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder

from app.core.context import FleetContext
from app.endpoints.dependencies import get_context
from app.models.equipment import AddEquipment, AnomalyReport, EquipmentDetailsUpdate
from app.services.anomaly_service import quick_resolve_service, report_anomaly_service
from app.services.equipment_service import (
    add_equipment_service,
    list_equipment_service,
    remove_equipment_service,
    update_equipment_details_service,
)
from app.services.verification_service import verify_item_service
from app.utiles.decoratores import handle_exceptions
from app.utiles.logger import get_logger

logger = get_logger(__name__)

# Create API router for on-board equipment
router = APIRouter(prefix="/vehicles/{vehicle_id}/equipment", tags=["Equipment Inspection"])


@router.get("", response_model=dict)
@handle_exceptions
async def list_equipment(
    vehicle_id: str,
    search: Optional[str] = None,
    location: Optional[str] = None,
    ctx: FleetContext = Depends(get_context),
):
    """
    Endpoint: Items of a vehicle, items to inspect today first.

    Args:
        search: substring matched on name, category and location.
        location: exact bin label; omitted means all locations.
    """
    response = await list_equipment_service(ctx, vehicle_id, search=search, location=location)
    return jsonable_encoder(response)


@router.post("", response_model=dict)
@handle_exceptions
async def add_equipment(vehicle_id: str, payload: AddEquipment, ctx: FleetContext = Depends(get_context)):
    logger.info("API Request → Add Equipment: vehicle=%s, name=%s", vehicle_id, payload.name)
    result = await add_equipment_service(ctx, vehicle_id, payload)
    return result.model_dump(mode="json")


@router.delete("/{item_id}", response_model=dict)
@handle_exceptions
async def remove_equipment(vehicle_id: str, item_id: str, ctx: FleetContext = Depends(get_context)):
    logger.info("API Request → Remove Equipment: vehicle=%s, item=%s", vehicle_id, item_id)
    result = await remove_equipment_service(ctx, vehicle_id, item_id)
    return result.model_dump(mode="json")


@router.put("/{item_id}/verify", response_model=dict)
@handle_exceptions
async def verify_item(vehicle_id: str, item_id: str, ctx: FleetContext = Depends(get_context)):
    """
    Endpoint: Mark an item inspected today.

    Returns:
        dict: MutationResult; `entries` holds the completion entry when this
        call finished the vehicle's inspection.
    """
    logger.info("API Request → Verify Item: vehicle=%s, item=%s", vehicle_id, item_id)
    result = await verify_item_service(ctx, vehicle_id, item_id)
    return result.model_dump(mode="json")


@router.put("/{item_id}/anomaly", response_model=dict)
@handle_exceptions
async def report_anomaly(
    vehicle_id: str, item_id: str, report: AnomalyReport, ctx: FleetContext = Depends(get_context)
):
    """
    Endpoint: Report an anomaly. An empty form (no tags, no description)
    resolves the current one instead.
    """
    logger.info("API Request → Report Anomaly: vehicle=%s, item=%s", vehicle_id, item_id)
    result = await report_anomaly_service(ctx, vehicle_id, item_id, report)
    return result.model_dump(mode="json")


@router.put("/{item_id}/quick_resolve", response_model=dict)
@handle_exceptions
async def quick_resolve(vehicle_id: str, item_id: str, ctx: FleetContext = Depends(get_context)):
    logger.info("API Request → Quick Resolve: vehicle=%s, item=%s", vehicle_id, item_id)
    result = await quick_resolve_service(ctx, vehicle_id, item_id)
    return result.model_dump(mode="json")


@router.put("/{item_id}/details", response_model=dict)
@handle_exceptions
async def update_details(
    vehicle_id: str, item_id: str, update: EquipmentDetailsUpdate, ctx: FleetContext = Depends(get_context)
):
    result = await update_equipment_details_service(ctx, vehicle_id, item_id, update)
    return result.model_dump(mode="json")
