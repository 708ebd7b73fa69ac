# app/services/anomaly_service.py
"""
Anomaly lifecycle on equipment items: report, resolve, quick-resolve.

The pure part (apply_anomaly_report / apply_resolution) computes the next item
state; the async services add authorization, audit entries and the commit.
"""
from collections import namedtuple
from datetime import date
from typing import Iterable, List, Optional

from app.core.context import FleetContext
from app.core.errors import InvariantViolation, ValidationError
from app.core.identity import Operation, require_permission
from app.models.audit import AuditEntry
from app.models.equipment import AnomalyRecord, AnomalyReport, AnomalyTag, Condition, EquipmentItem
from app.models.result import MutationResult
from app.services.audit_service import AuditEvent, derive_entry
from app.services.helpers import commit_item_update, load_vehicle, replace_item
from app.services.verification_service import completion_entry, completion_ratio
from app.utiles.logger import get_logger

logger = get_logger(__name__)

# item: next state, event: what to log, changed: fields to write
AnomalyOutcome = namedtuple("AnomalyOutcome", ["item", "event", "changed"])


def parse_tags(tags: Iterable) -> List[AnomalyTag]:
    parsed = []
    for tag in tags or []:
        try:
            tag = AnomalyTag(tag)
        except ValueError:
            allowed = ", ".join(t.value for t in AnomalyTag)
            raise ValidationError(f"Unknown anomaly tag '{tag}'. Allowed: {allowed}")
        if tag not in parsed:
            parsed.append(tag)
    return parsed


def clamp_missing_quantity(tags: List[AnomalyTag], missing_quantity, quantity: int) -> Optional[int]:
    """Missing count kept only with the Missing tag, clamped to [0, quantity]."""
    if missing_quantity is None:
        return None
    if isinstance(missing_quantity, bool) or not isinstance(missing_quantity, int):
        raise ValidationError("missing_quantity must be a whole number")
    if missing_quantity < 0:
        raise ValidationError("missing_quantity cannot be negative")
    if AnomalyTag.MISSING not in tags:
        return None
    return min(missing_quantity, quantity)


def apply_resolution(item: EquipmentItem, event: AuditEvent = AuditEvent.ANOMALY_RESOLVED) -> Optional[AnomalyOutcome]:
    """Clear the anomaly; None when there is nothing open to clear."""
    if not item.has_open_anomaly:
        return None
    resolved = item.model_copy(update={"anomaly": None, "condition": Condition.GOOD})
    return AnomalyOutcome(resolved, event, ["anomaly", "condition"])


def apply_anomaly_report(
    item: EquipmentItem,
    tags: Iterable,
    description: str,
    missing_quantity,
    reporter: str,
    today: date,
) -> Optional[AnomalyOutcome]:
    """
    Next state of `item` after a report.

    Empty tags and blank description mean "resolve". Anything else opens (or
    replaces) the anomaly, flags the item NeedsReplacement and counts as an
    inspection for today.
    """
    tags = parse_tags(tags)
    description = (description or "").strip()
    missing = clamp_missing_quantity(tags, missing_quantity, item.quantity)

    if not tags and not description:
        return apply_resolution(item)

    record = AnomalyRecord(
        description=description,
        tags=tags,
        missing_quantity=missing,
        reported_by=reporter,
        reported_on=today,
    )
    reported = item.model_copy(update={
        "anomaly": record,
        "condition": Condition.NEEDS_REPLACEMENT,
        "last_verified": today,
    })
    return AnomalyOutcome(reported, AuditEvent.ANOMALY_REPORTED, ["anomaly", "condition", "last_verified"])


def _event_payload(outcome: AnomalyOutcome) -> dict:
    payload = {"name": outcome.item.name}
    if outcome.event == AuditEvent.ANOMALY_REPORTED:
        anomaly = outcome.item.anomaly
        payload.update({
            "tags": anomaly.tags,
            "missing_quantity": anomaly.missing_quantity,
            "description": anomaly.description,
        })
    return payload


async def _commit_outcome(ctx: FleetContext, vehicle, item: EquipmentItem, outcome: AnomalyOutcome, actor: str) -> MutationResult:
    """Write `outcome` and its entries. The caller holds the vehicle lock."""
    now = ctx.clock.now()
    today = now.date()
    items_after = replace_item(vehicle.equipment, outcome.item)

    entries: List[AuditEntry] = [
        derive_entry(
            outcome.event,
            _event_payload(outcome),
            vehicle_id=vehicle.id,
            actor=actor,
            now=now,
            equipment_id=item.id,
        )
    ]
    # a report touches last_verified, so it can finish today's inspection
    synthetic = completion_entry(vehicle.id, vehicle.equipment, items_after, today, actor, now)
    if synthetic is not None:
        entries.append(synthetic)

    await commit_item_update(ctx.store, vehicle.id, item, outcome.item, outcome.changed, entries)
    return MutationResult(
        applied=True,
        item=outcome.item,
        entries=entries,
        completion=completion_ratio(items_after, today),
    )


async def report_anomaly_service(ctx: FleetContext, vehicle_id: str, item_id: str, report: AnomalyReport) -> MutationResult:
    """Report (or, with an empty form, resolve) an anomaly on one item."""
    resolving = not report.tags and not report.description.strip()
    operation = Operation.RESOLVE_ANOMALY if resolving else Operation.REPORT_ANOMALY
    actor = require_permission(ctx.identity, operation)
    logger.info("Anomaly form → vehicle=%s, item=%s, tags=%s, actor=%s",
                vehicle_id, item_id, [t.value for t in report.tags], actor)

    async with ctx.store.vehicle_lock(vehicle_id):
        vehicle = await load_vehicle(ctx.store, vehicle_id)
        today = ctx.clock.today()
        item = vehicle.find_item(item_id)
        if item is None:
            logger.warning("Anomaly form ignored: item %s not on vehicle %s", item_id, vehicle_id)
            return MutationResult.noop(InvariantViolation.ITEM_NOT_FOUND)

        outcome = apply_anomaly_report(item, report.tags, report.description, report.missing_quantity, actor, today)
        if outcome is None:
            logger.warning("Resolution ignored: item %s has no open anomaly", item_id)
            return MutationResult.noop(
                InvariantViolation.ALREADY_RESOLVED,
                item=item,
                completion=completion_ratio(vehicle.equipment, today),
            )

        return await _commit_outcome(ctx, vehicle, item, outcome, actor)


async def quick_resolve_service(ctx: FleetContext, vehicle_id: str, item_id: str) -> MutationResult:
    """Close the incident on an item without going through the report form."""
    actor = require_permission(ctx.identity, Operation.RESOLVE_ANOMALY)
    logger.info("Quick resolve → vehicle=%s, item=%s, actor=%s", vehicle_id, item_id, actor)

    async with ctx.store.vehicle_lock(vehicle_id):
        vehicle = await load_vehicle(ctx.store, vehicle_id)
        item = vehicle.find_item(item_id)
        if item is None:
            logger.warning("Quick resolve ignored: item %s not on vehicle %s", item_id, vehicle_id)
            return MutationResult.noop(InvariantViolation.ITEM_NOT_FOUND)

        outcome = apply_resolution(item, AuditEvent.ANOMALY_QUICK_RESOLVED)
        if outcome is None:
            logger.warning("Quick resolve ignored: item %s has no open anomaly", item_id)
            return MutationResult.noop(InvariantViolation.ALREADY_RESOLVED, item=item)

        return await _commit_outcome(ctx, vehicle, item, outcome, actor)
