# app/services/query_service.py
"""
Read-side helpers: item search / facets / ordering, history filtering and
fleet-level lookups. Everything here is pure.
"""
from datetime import date
from typing import Iterable, List, Optional, Sequence

from app.models.audit import AuditCategory, AuditEntry, HistoryFilter, Severity
from app.models.equipment import EquipmentItem
from app.models.vehicle import FleetStats, Vehicle, VehicleStatus
from app.services.audit_service import newest_first

_ALERT_SEVERITIES = (Severity.WARNING, Severity.DANGER)


# --------------------------
# Equipment
# --------------------------
def search_items(items: Iterable[EquipmentItem], query: Optional[str]) -> List[EquipmentItem]:
    """Case-insensitive substring match on name, category and location."""
    items = list(items)
    needle = (query or "").strip().casefold()
    if not needle:
        return items
    return [
        item for item in items
        if needle in item.name.casefold()
        or needle in item.category.casefold()
        or needle in item.location.casefold()
    ]


def filter_by_location(items: Iterable[EquipmentItem], location: Optional[str]) -> List[EquipmentItem]:
    if location is None:
        return list(items)
    return [item for item in items if item.location == location]


def sort_items(items: Iterable[EquipmentItem], today: date) -> List[EquipmentItem]:
    """Items still to inspect today first, then alphabetical."""
    by_name = sorted(items, key=lambda item: item.name.casefold())
    return sorted(by_name, key=lambda item: item.verified_on(today))


def location_facets(items: Iterable[EquipmentItem]) -> List[str]:
    return sorted({item.location for item in items if item.location})


def existing_categories(items: Iterable[EquipmentItem]) -> List[str]:
    return sorted({item.category for item in items if item.category})


def list_items(
    items: Iterable[EquipmentItem],
    today: date,
    search: Optional[str] = None,
    location: Optional[str] = None,
) -> List[EquipmentItem]:
    return sort_items(filter_by_location(search_items(items, search), location), today)


# --------------------------
# History
# --------------------------
def is_anomaly_entry(entry: AuditEntry) -> bool:
    return entry.severity in _ALERT_SEVERITIES or entry.category in (
        AuditCategory.EQUIPMENT_EVENT,
        AuditCategory.MAINTENANCE,
    )


def is_verification_entry(entry: AuditEntry) -> bool:
    return entry.category == AuditCategory.STATUS_CHANGE and entry.severity not in _ALERT_SEVERITIES


def is_other_entry(entry: AuditEntry) -> bool:
    return entry.category == AuditCategory.NOTE


_HISTORY_PREDICATES = {
    HistoryFilter.ANOMALY: is_anomaly_entry,
    HistoryFilter.VERIFICATION: is_verification_entry,
    HistoryFilter.OTHER: is_other_entry,
}


def filter_history(entries: Iterable[AuditEntry], kind: HistoryFilter = HistoryFilter.ALL) -> List[AuditEntry]:
    kind = HistoryFilter(kind)
    if kind == HistoryFilter.ALL:
        return newest_first(entries)
    predicate = _HISTORY_PREDICATES[kind]
    return newest_first(e for e in entries if predicate(e))


# --------------------------
# Fleet
# --------------------------
def search_vehicles(vehicles: Iterable[Vehicle], query: Optional[str]) -> List[Vehicle]:
    vehicles = list(vehicles)
    needle = (query or "").strip().casefold()
    if not needle:
        return vehicles
    return [v for v in vehicles if needle in v.call_sign.casefold() or needle in v.type.casefold()]


def fleet_stats(vehicles: Sequence[Vehicle]) -> FleetStats:
    def count(status):
        return sum(1 for v in vehicles if v.status == status)

    return FleetStats(
        total=len(vehicles),
        available=count(VehicleStatus.AVAILABLE),
        out_on_call=count(VehicleStatus.OUT_ON_CALL),
        maintenance=count(VehicleStatus.MAINTENANCE),
        out_of_service=count(VehicleStatus.OUT_OF_SERVICE),
    )
