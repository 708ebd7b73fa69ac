# app/db/store.py
"""
Persistence Store contract used by the service layer.

Each call either succeeds or raises PersistenceError; nothing here spans more
than one call. Ordering of several calls is the commit helper's job.
"""
import asyncio
from collections import defaultdict
from typing import Any, Dict, List, Optional

from app.models.audit import AuditEntry
from app.models.equipment import EquipmentItem
from app.models.vehicle import Vehicle, VehicleStatus


class PersistenceStore:

    def __init__(self):
        # vehicle_id -> lock held by a service from read to commit
        self._vehicle_locks = defaultdict(asyncio.Lock)

    def vehicle_lock(self, vehicle_id: str) -> asyncio.Lock:
        """Serializes read-modify-write sequences on one vehicle within this process."""
        return self._vehicle_locks[vehicle_id]

    async def create_vehicle(self, vehicle: Vehicle) -> None:
        raise NotImplementedError

    async def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        """Vehicle with its equipment (in order) and history (newest first)."""
        raise NotImplementedError

    async def delete_vehicle(self, vehicle_id: str) -> None:
        """Delete the vehicle and cascade to its equipment and history."""
        raise NotImplementedError

    async def list_vehicles_with_relations(self) -> List[Vehicle]:
        raise NotImplementedError

    async def create_equipment(self, vehicle_id: str, item: EquipmentItem) -> None:
        raise NotImplementedError

    async def update_equipment(self, item_id: str, fields: Dict[str, Any]) -> None:
        """Field-level overwrite; `fields` are JSON-ready values."""
        raise NotImplementedError

    async def delete_equipment(self, item_id: str) -> None:
        raise NotImplementedError

    async def update_vehicle_status(self, vehicle_id: str, status: VehicleStatus) -> None:
        raise NotImplementedError

    async def append_audit_entry(self, vehicle_id: str, entry: AuditEntry) -> None:
        raise NotImplementedError
