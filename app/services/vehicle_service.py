from typing import List, Optional

from app.core.context import FleetContext
from app.core.errors import InvariantViolation, ValidationError
from app.core.identity import Operation, require_permission
from app.models.audit import AuditEntry, HistoryFilter, NoteCreate
from app.models.result import MutationResult
from app.models.vehicle import FleetStats, RegisterVehicle, Vehicle, VehicleStatus
from app.services.audit_service import AuditEvent, derive_entry
from app.services.commit import commit_mutation
from app.services.helpers import load_vehicle
from app.services.query_service import filter_history, fleet_stats, search_vehicles
from app.services.verification_service import completion_ratio
from app.utiles.custom_helpers import _gen_vehicle_id, _normalize_text
from app.utiles.logger import get_logger

logger = get_logger(__name__)


# ---------------- Service: Register Vehicle ----------------
async def register_vehicle_service(ctx: FleetContext, payload: RegisterVehicle) -> MutationResult:
    """
    Commission a new vehicle.
    - Status starts as Available
    - The "commissioned" history entry is written in the same commit
    """
    actor = require_permission(ctx.identity, Operation.REGISTER_VEHICLE)
    if not _normalize_text(payload.call_sign):
        raise ValidationError("call_sign is required")
    if not _normalize_text(payload.type):
        raise ValidationError("type is required")

    logger.info("Attempting to register vehicle → call_sign=%s, type=%s", payload.call_sign, payload.type)
    now = ctx.clock.now()
    vehicle = Vehicle(id=_gen_vehicle_id(), status=VehicleStatus.AVAILABLE, **payload.model_dump())
    entry = derive_entry(
        AuditEvent.VEHICLE_COMMISSIONED,
        {"call_sign": vehicle.call_sign, "type": vehicle.type, "location": vehicle.location or "no station"},
        vehicle_id=vehicle.id,
        actor=actor,
        now=now,
    )

    async def apply():
        await ctx.store.create_vehicle(vehicle)

    async def rollback():
        await ctx.store.delete_vehicle(vehicle.id)

    await commit_mutation(ctx.store, vehicle.id, apply, [entry], rollback)
    logger.info("Vehicle registered successfully: id=%s, call_sign=%s", vehicle.id, vehicle.call_sign)
    return MutationResult(
        applied=True, vehicle_id=vehicle.id, status=vehicle.status, entries=[entry], completion=100
    )


# ---------------- Service: Update Status ----------------
async def update_status_service(ctx: FleetContext, vehicle_id: str, status: VehicleStatus) -> MutationResult:
    actor = require_permission(ctx.identity, Operation.CHANGE_STATUS)
    try:
        status = VehicleStatus(status)
    except ValueError:
        raise ValidationError(f"Invalid status. Allowed: {[s.value for s in VehicleStatus]}")

    logger.info("Updating vehicle status → vehicle=%s, status=%s, actor=%s", vehicle_id, status.value, actor)
    async with ctx.store.vehicle_lock(vehicle_id):
        vehicle = await load_vehicle(ctx.store, vehicle_id)
        if vehicle.status == status:
            logger.warning("Status update ignored: vehicle %s already %s", vehicle_id, status.value)
            return MutationResult.noop(InvariantViolation.STATUS_UNCHANGED, status=status)

        previous = vehicle.status
        entry = derive_entry(
            AuditEvent.STATUS_CHANGED,
            {"status": status},
            vehicle_id=vehicle_id,
            actor=actor,
            now=ctx.clock.now(),
        )

        async def apply():
            await ctx.store.update_vehicle_status(vehicle_id, status)

        async def rollback():
            await ctx.store.update_vehicle_status(vehicle_id, previous)

        await commit_mutation(ctx.store, vehicle_id, apply, [entry], rollback)

    logger.info("Vehicle %s status %s → %s", vehicle_id, previous.value, status.value)
    return MutationResult(applied=True, status=status, entries=[entry])


# ---------------- Service: Delete Vehicle ----------------
async def delete_vehicle_service(ctx: FleetContext, vehicle_id: str) -> dict:
    """Remove a vehicle together with its equipment and history."""
    actor = require_permission(ctx.identity, Operation.DELETE_VEHICLE)
    async with ctx.store.vehicle_lock(vehicle_id):
        vehicle = await load_vehicle(ctx.store, vehicle_id)
        await ctx.store.delete_vehicle(vehicle_id)
    logger.info("Vehicle deleted → id=%s, call_sign=%s, items=%s, by=%s",
                vehicle_id, vehicle.call_sign, len(vehicle.equipment), actor)
    return {"message": f"Vehicle {vehicle.call_sign} deleted successfully"}


# ---------------- Service: Free-text Note ----------------
async def add_note_service(ctx: FleetContext, vehicle_id: str, note: NoteCreate) -> MutationResult:
    actor = require_permission(ctx.identity, Operation.ADD_NOTE)
    if not note.text or not note.text.strip():
        raise ValidationError("Note text cannot be empty")

    vehicle = await load_vehicle(ctx.store, vehicle_id)
    if note.equipment_id and vehicle.find_item(note.equipment_id) is None:
        raise ValidationError(f"Equipment '{note.equipment_id}' is not on vehicle {vehicle_id}")

    entry = derive_entry(
        AuditEvent.NOTE,
        {"text": note.text},
        vehicle_id=vehicle_id,
        actor=actor,
        now=ctx.clock.now(),
        equipment_id=note.equipment_id or None,
    )

    async def nothing():
        # a note has no state of its own; the entry is the whole mutation
        return None

    await commit_mutation(ctx.store, vehicle_id, nothing, [entry], rollback=nothing)
    logger.info("Note added to vehicle %s by %s", vehicle_id, actor)
    return MutationResult(applied=True, entries=[entry])


# ---------------- Reads ----------------
async def get_vehicle_service(ctx: FleetContext, vehicle_id: str) -> dict:
    require_permission(ctx.identity, Operation.READ)
    vehicle = await load_vehicle(ctx.store, vehicle_id)
    return {
        "vehicle": vehicle,
        "completion": completion_ratio(vehicle.equipment, ctx.clock.today()),
    }


async def search_vehicle_service(ctx: FleetContext, query: Optional[str] = None) -> dict:
    """List the fleet, optionally narrowed by call sign or type."""
    require_permission(ctx.identity, Operation.READ)
    logger.debug("Searching vehicles → query=%s", query)
    vehicles = await ctx.store.list_vehicles_with_relations()
    found = search_vehicles(vehicles, query)
    today = ctx.clock.today()
    logger.info("Search completed. Found %s vehicles", len(found))
    return {
        "vehicles": [
            {"vehicle": v, "completion": completion_ratio(v.equipment, today)}
            for v in found
        ]
    }


async def fleet_stats_service(ctx: FleetContext) -> FleetStats:
    require_permission(ctx.identity, Operation.READ)
    vehicles = await ctx.store.list_vehicles_with_relations()
    return fleet_stats(vehicles)


async def history_service(ctx: FleetContext, vehicle_id: str, kind: HistoryFilter = HistoryFilter.ALL) -> List[AuditEntry]:
    require_permission(ctx.identity, Operation.READ)
    vehicle = await load_vehicle(ctx.store, vehicle_id)
    entries = filter_history(vehicle.history, kind)
    logger.info("History for %s (%s): %s entries", vehicle_id, HistoryFilter(kind).value, len(entries))
    return entries
