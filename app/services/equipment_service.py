# app/services/equipment_service.py
from typing import List, Optional

from app.core.context import FleetContext
from app.core.errors import InvariantViolation, ValidationError
from app.core.identity import Operation, require_permission
from app.models.audit import AuditEntry
from app.models.equipment import (
    AddEquipment,
    Condition,
    EquipmentDetailsUpdate,
    EquipmentDocument,
    EquipmentItem,
    MANUAL_CONDITIONS,
)
from app.models.result import MutationResult
from app.services.audit_service import AuditEvent, derive_entry
from app.services.commit import commit_mutation
from app.services.helpers import commit_item_update, load_vehicle
from app.services.query_service import existing_categories, list_items, location_facets
from app.services.verification_service import completion_ratio
from app.utiles.custom_helpers import _gen_document_id, _gen_equipment_id, _normalize_text
from app.utiles.logger import get_logger

logger = get_logger(__name__)


# --------------------------
# Validation
# --------------------------
def _validate_new_equipment(payload: AddEquipment):
    if not _normalize_text(payload.name):
        raise ValidationError("Equipment name is required")
    if not _normalize_text(payload.category):
        raise ValidationError("Equipment category is required")
    if payload.quantity < 0:
        raise ValidationError("Quantity cannot be negative")
    if payload.condition not in MANUAL_CONDITIONS:
        raise ValidationError("A new item cannot start as NeedsReplacement; report an anomaly instead")


def _with_document_ids(documents: List[EquipmentDocument]) -> List[EquipmentDocument]:
    return [d if d.id else d.model_copy(update={"id": _gen_document_id()}) for d in documents]


# --------------------------
# Add / remove
# --------------------------
async def add_equipment_service(ctx: FleetContext, vehicle_id: str, payload: AddEquipment) -> MutationResult:
    """Attach a new item to a vehicle and log the addition."""
    actor = require_permission(ctx.identity, Operation.ADD_EQUIPMENT)
    _validate_new_equipment(payload)
    logger.info("Add equipment → vehicle=%s, name=%s, qty=%s, actor=%s",
                vehicle_id, payload.name, payload.quantity, actor)

    async with ctx.store.vehicle_lock(vehicle_id):
        vehicle = await load_vehicle(ctx.store, vehicle_id)
        now = ctx.clock.now()

        item = EquipmentItem(
            id=_gen_equipment_id(),
            vehicle_id=vehicle_id,
            name=_normalize_text(payload.name),
            category=_normalize_text(payload.category),
            location=_normalize_text(payload.location),
            quantity=payload.quantity,
            condition=payload.condition,
            notes=payload.notes,
            thumbnail_url=payload.thumbnail_url,
            video_url=payload.video_url,
            documents=_with_document_ids(payload.documents),
        )
        entry = derive_entry(
            AuditEvent.EQUIPMENT_ADDED,
            {"name": item.name, "qty": item.quantity, "location": item.location or "unassigned location"},
            vehicle_id=vehicle_id,
            actor=actor,
            now=now,
            equipment_id=item.id,
        )

        async def apply():
            await ctx.store.create_equipment(vehicle_id, item)

        async def rollback():
            await ctx.store.delete_equipment(item.id)

        await commit_mutation(ctx.store, vehicle_id, apply, [entry], rollback)

    logger.info("Equipment %s added to vehicle %s", item.id, vehicle_id)
    return MutationResult(
        applied=True,
        item=item,
        entries=[entry],
        completion=completion_ratio(vehicle.equipment + [item], now.date()),
    )


async def remove_equipment_service(ctx: FleetContext, vehicle_id: str, item_id: str) -> MutationResult:
    actor = require_permission(ctx.identity, Operation.REMOVE_EQUIPMENT)
    logger.info("Remove equipment → vehicle=%s, item=%s, actor=%s", vehicle_id, item_id, actor)

    async with ctx.store.vehicle_lock(vehicle_id):
        vehicle = await load_vehicle(ctx.store, vehicle_id)
        now = ctx.clock.now()
        item = vehicle.find_item(item_id)
        if item is None:
            logger.warning("Remove ignored: item %s not on vehicle %s", item_id, vehicle_id)
            return MutationResult.noop(InvariantViolation.ITEM_NOT_FOUND)

        entry = derive_entry(
            AuditEvent.EQUIPMENT_REMOVED,
            {"name": item.name},
            vehicle_id=vehicle_id,
            actor=actor,
            now=now,
            equipment_id=item.id,
        )

        async def apply():
            await ctx.store.delete_equipment(item.id)

        async def rollback():
            await ctx.store.create_equipment(vehicle_id, item)

        await commit_mutation(ctx.store, vehicle_id, apply, [entry], rollback)

    remaining = [i for i in vehicle.equipment if i.id != item.id]
    return MutationResult(
        applied=True,
        item=item,
        entries=[entry],
        completion=completion_ratio(remaining, now.date()),
    )


# --------------------------
# Notes / manual condition
# --------------------------
async def update_equipment_details_service(
    ctx: FleetContext, vehicle_id: str, item_id: str, update: EquipmentDetailsUpdate
) -> MutationResult:
    """Edit an item's notes and/or its hand-picked condition."""
    actor = require_permission(ctx.identity, Operation.UPDATE_DETAILS)
    if update.notes is None and update.condition is None:
        raise ValidationError("Nothing to update: provide notes or condition")

    async with ctx.store.vehicle_lock(vehicle_id):
        vehicle = await load_vehicle(ctx.store, vehicle_id)
        now = ctx.clock.now()
        item = vehicle.find_item(item_id)
        if item is None:
            logger.warning("Details update ignored: item %s not on vehicle %s", item_id, vehicle_id)
            return MutationResult.noop(InvariantViolation.ITEM_NOT_FOUND)

        changes = {}
        event: Optional[AuditEvent] = None
        payload = {"name": item.name}

        if update.condition is not None and update.condition != item.condition:
            if item.has_open_anomaly:
                raise ValidationError("Condition follows the open anomaly; resolve it first")
            if update.condition == Condition.NEEDS_REPLACEMENT:
                raise ValidationError("NeedsReplacement is set by reporting an anomaly")
            changes["condition"] = update.condition
            event = AuditEvent.CONDITION_CHANGED
            payload["condition"] = update.condition

        if update.notes is not None and update.notes.strip() != item.notes:
            changes["notes"] = update.notes.strip()
            # a condition change already explains the edit
            event = event or AuditEvent.NOTES_UPDATED

        if not changes:
            logger.info("Details update for item %s changes nothing", item_id)
            return MutationResult(applied=True, item=item, completion=completion_ratio(vehicle.equipment, now.date()))

        updated = item.model_copy(update=changes)
        entries: List[AuditEntry] = [
            derive_entry(event, payload, vehicle_id=vehicle_id, actor=actor, now=now, equipment_id=item.id)
        ]
        await commit_item_update(ctx.store, vehicle_id, item, updated, changes.keys(), entries)

    logger.info("Item %s details updated by %s (%s)", item_id, actor, ", ".join(changes))
    return MutationResult(
        applied=True,
        item=updated,
        entries=entries,
        completion=completion_ratio(vehicle.equipment, now.date()),
    )


# --------------------------
# Reads
# --------------------------
async def list_equipment_service(
    ctx: FleetContext, vehicle_id: str, search: Optional[str] = None, location: Optional[str] = None
) -> dict:
    require_permission(ctx.identity, Operation.READ)
    vehicle = await load_vehicle(ctx.store, vehicle_id)
    today = ctx.clock.today()
    items = list_items(vehicle.equipment, today, search=search, location=location)
    logger.info("Equipment listing for %s: %s of %s items", vehicle_id, len(items), len(vehicle.equipment))
    return {
        "vehicle_id": vehicle_id,
        "items": items,
        "locations": location_facets(vehicle.equipment),
        "categories": existing_categories(vehicle.equipment),
        "completion": completion_ratio(vehicle.equipment, today),
    }
