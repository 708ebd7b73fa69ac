# app/services/audit_service.py
"""
Audit Trail Generator.

Every mutation in the service layer turns into history through derive_entry().
Message wording and severity classification live only here.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from app.models.audit import AuditCategory, AuditEntry, Severity
from app.models.equipment import AnomalyTag
from app.models.vehicle import VehicleStatus
from app.utiles.custom_helpers import _format_date, _format_time, _gen_entry_id, _next_sequence


class AuditEvent(str, Enum):
    VEHICLE_COMMISSIONED = "vehicle_commissioned"
    STATUS_CHANGED = "status_changed"
    EQUIPMENT_ADDED = "equipment_added"
    EQUIPMENT_REMOVED = "equipment_removed"
    ANOMALY_REPORTED = "anomaly_reported"
    ANOMALY_RESOLVED = "anomaly_resolved"
    ANOMALY_QUICK_RESOLVED = "anomaly_quick_resolved"
    INSPECTION_COMPLETE = "inspection_complete"
    NOTE = "note"
    NOTES_UPDATED = "notes_updated"
    CONDITION_CHANGED = "condition_changed"


STATUS_SEVERITY: Dict[VehicleStatus, Severity] = {
    VehicleStatus.AVAILABLE: Severity.SUCCESS,
    VehicleStatus.OUT_ON_CALL: Severity.INFO,
    VehicleStatus.MAINTENANCE: Severity.WARNING,
    VehicleStatus.OUT_OF_SERVICE: Severity.DANGER,
}

_unmapped = set(VehicleStatus) - set(STATUS_SEVERITY)
if _unmapped:
    raise RuntimeError(f"No audit severity defined for statuses: {sorted(s.value for s in _unmapped)}")


def status_severity(status: VehicleStatus) -> Severity:
    return STATUS_SEVERITY[VehicleStatus(status)]


def format_tags(tags: Iterable[AnomalyTag]) -> str:
    return ", ".join(AnomalyTag(t).value for t in tags) or "Unclassified"


def format_missing(tags: Iterable[AnomalyTag], missing_quantity: Optional[int]) -> str:
    if AnomalyTag.MISSING in [AnomalyTag(t) for t in tags] and missing_quantity is not None:
        return f" (Qty: {missing_quantity})"
    return ""


# event -> (category, fixed severity or None when derived, template)
_TEMPLATES = {
    AuditEvent.VEHICLE_COMMISSIONED: (
        AuditCategory.STATUS_CHANGE, Severity.INFO,
        "Vehicle commissioned: {call_sign} ({type}) assigned to {location}.",
    ),
    AuditEvent.STATUS_CHANGED: (
        AuditCategory.STATUS_CHANGE, None,
        "Status updated to: {status}.",
    ),
    AuditEvent.EQUIPMENT_ADDED: (
        AuditCategory.EQUIPMENT_EVENT, Severity.INFO,
        "Inventory addition: {name} (x{qty}) added at {location}.",
    ),
    AuditEvent.EQUIPMENT_REMOVED: (
        AuditCategory.EQUIPMENT_EVENT, Severity.INFO,
        "Inventory removal: {name} removed from vehicle.",
    ),
    AuditEvent.ANOMALY_REPORTED: (
        AuditCategory.EQUIPMENT_EVENT, Severity.WARNING,
        "Anomaly reported — {name}: {tags}{qty_annotation}.{description_suffix}",
    ),
    AuditEvent.ANOMALY_RESOLVED: (
        AuditCategory.MAINTENANCE, Severity.SUCCESS,
        "Resolution — {name}: returned to normal (anomaly cleared).",
    ),
    AuditEvent.ANOMALY_QUICK_RESOLVED: (
        AuditCategory.MAINTENANCE, Severity.SUCCESS,
        "Quick resolution — {name}: incident closed.",
    ),
    AuditEvent.INSPECTION_COMPLETE: (
        AuditCategory.STATUS_CHANGE, Severity.SUCCESS,
        "Full verification — inventory validated at 100%.",
    ),
    AuditEvent.NOTE: (
        AuditCategory.NOTE, Severity.INFO,
        "{text}",
    ),
    AuditEvent.NOTES_UPDATED: (
        AuditCategory.EQUIPMENT_EVENT, Severity.INFO,
        "Notes updated — {name}.",
    ),
    AuditEvent.CONDITION_CHANGED: (
        AuditCategory.MAINTENANCE, Severity.INFO,
        "Condition — {name}: set to {condition}.",
    ),
}


def render_message(event: AuditEvent, payload: Dict[str, Any]) -> str:
    _, _, template = _TEMPLATES[event]
    if event == AuditEvent.NOTE:
        # verbatim, never run through str.format
        return payload["text"]
    values = dict(payload)
    if event == AuditEvent.STATUS_CHANGED:
        values["status"] = VehicleStatus(payload["status"]).value
    if event == AuditEvent.ANOMALY_REPORTED:
        tags = payload.get("tags") or []
        values["tags"] = format_tags(tags)
        values["qty_annotation"] = format_missing(tags, payload.get("missing_quantity"))
        description = (payload.get("description") or "").strip()
        values["description_suffix"] = f" {description}" if description else ""
    if event == AuditEvent.CONDITION_CHANGED:
        values["condition"] = getattr(payload["condition"], "value", payload["condition"])
    return template.format(**values)


def derive_entry(
    event: AuditEvent,
    payload: Dict[str, Any],
    *,
    vehicle_id: str,
    actor: str,
    now: datetime,
    equipment_id: Optional[str] = None,
    entry_id: Optional[str] = None,
) -> AuditEntry:
    """Build the audit entry for `event`.

    `actor` and `now` come from the identity provider and the clock of the
    calling service, so an entry can never carry a client-chosen author or time.
    """
    category, severity, _ = _TEMPLATES[event]
    if severity is None:
        severity = status_severity(payload["status"])
    return AuditEntry(
        id=entry_id or _gen_entry_id(),
        vehicle_id=vehicle_id,
        date=_format_date(now.date()),
        time=_format_time(now),
        category=category,
        severity=severity,
        description=render_message(event, payload),
        performed_by=actor,
        equipment_id=equipment_id,
        sequence=_next_sequence(),
    )


def newest_first(entries: Iterable[AuditEntry]) -> List[AuditEntry]:
    """Sort by (date, time, sequence) descending, whatever the input order."""
    return sorted(entries, key=lambda e: (e.date, e.time, e.sequence), reverse=True)
