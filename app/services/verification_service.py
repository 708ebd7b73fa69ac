# app/services/verification_service.py
"""
Verification Tracker: daily inspection of equipment items and the
per-vehicle completion ratio.
"""
from datetime import date, datetime
from typing import List, Optional, Sequence

from app.core.context import FleetContext
from app.core.errors import InvariantViolation
from app.core.identity import Operation, require_permission
from app.models.audit import AuditEntry
from app.models.equipment import EquipmentItem
from app.models.result import MutationResult
from app.services.audit_service import AuditEvent, derive_entry
from app.services.helpers import commit_item_update, load_vehicle, replace_item
from app.utiles.logger import get_logger

logger = get_logger(__name__)


def verified_count(items: Sequence[EquipmentItem], today: date) -> int:
    return sum(1 for item in items if item.verified_on(today))


def completion_ratio(items: Sequence[EquipmentItem], today: date) -> int:
    """Percent of items verified today, rounded half up. No items counts as 100."""
    total = len(items)
    if total == 0:
        return 100
    return (200 * verified_count(items, today) + total) // (2 * total)


def completes_inspection(before: Sequence[EquipmentItem], after: Sequence[EquipmentItem], today: date) -> bool:
    """True only on the change from "some item unverified" to "all verified"."""
    if not after:
        return False
    was_complete = verified_count(before, today) == len(before)
    return not was_complete and verified_count(after, today) == len(after)


def apply_verification(item: EquipmentItem, today: date) -> EquipmentItem:
    return item.model_copy(update={"last_verified": today})


def completion_entry(
    vehicle_id: str,
    before: Sequence[EquipmentItem],
    after: Sequence[EquipmentItem],
    today: date,
    actor: str,
    now: datetime,
) -> Optional[AuditEntry]:
    if not completes_inspection(before, after, today):
        return None
    logger.info("Inspection completed for vehicle %s", vehicle_id)
    return derive_entry(AuditEvent.INSPECTION_COMPLETE, {}, vehicle_id=vehicle_id, actor=actor, now=now)


async def verify_item_service(ctx: FleetContext, vehicle_id: str, item_id: str) -> MutationResult:
    """Mark an item checked today; may emit the 100% completion entry."""
    actor = require_permission(ctx.identity, Operation.VERIFY)
    logger.info("Verify item → vehicle=%s, item=%s, actor=%s", vehicle_id, item_id, actor)

    # held from read to commit so the before-count is current
    async with ctx.store.vehicle_lock(vehicle_id):
        vehicle = await load_vehicle(ctx.store, vehicle_id)
        now = ctx.clock.now()
        today = now.date()

        item = vehicle.find_item(item_id)
        if item is None:
            logger.warning("Verify ignored: item %s not on vehicle %s", item_id, vehicle_id)
            return MutationResult.noop(
                InvariantViolation.ITEM_NOT_FOUND,
                completion=completion_ratio(vehicle.equipment, today),
            )

        if item.verified_on(today):
            logger.info("Item %s already verified today; nothing to write", item_id)
            return MutationResult(applied=True, item=item, completion=completion_ratio(vehicle.equipment, today))

        updated = apply_verification(item, today)
        items_after = replace_item(vehicle.equipment, updated)
        entries: List[AuditEntry] = []
        synthetic = completion_entry(vehicle_id, vehicle.equipment, items_after, today, actor, now)
        if synthetic is not None:
            entries.append(synthetic)

        await commit_item_update(ctx.store, vehicle_id, item, updated, ["last_verified"], entries)

    return MutationResult(
        applied=True,
        item=updated,
        entries=entries,
        completion=completion_ratio(items_after, today),
    )


async def completion_service(ctx: FleetContext, vehicle_id: str) -> dict:
    require_permission(ctx.identity, Operation.READ)
    vehicle = await load_vehicle(ctx.store, vehicle_id)
    today = ctx.clock.today()
    return {
        "vehicle_id": vehicle_id,
        "date": today.isoformat(),
        "verified": verified_count(vehicle.equipment, today),
        "total": len(vehicle.equipment),
        "completion": completion_ratio(vehicle.equipment, today),
    }
