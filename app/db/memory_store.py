# app/db/memory_store.py
"""
In-process PersistenceStore. Records are kept as JSON-ready dicts so callers
never share mutable state with the store.
"""
import asyncio
from typing import Any, Dict, List, Optional

from app.core.errors import PersistenceError
from app.db.store import PersistenceStore
from app.models.audit import AuditEntry
from app.models.equipment import EquipmentItem
from app.models.vehicle import Vehicle, VehicleStatus
from app.utiles.logger import get_logger

logger = get_logger(__name__)


class MemoryStore(PersistenceStore):

    def __init__(self):
        super().__init__()
        self.vehicles: Dict[str, Dict[str, Any]] = {}
        self.equipment: Dict[str, Dict[str, Any]] = {}
        # vehicle_id -> entries, newest first
        self.history: Dict[str, List[Dict[str, Any]]] = {}

    async def _yield(self):
        # every call is a suspension point, like a real network round trip
        await asyncio.sleep(0)

    def _require_vehicle(self, vehicle_id: str):
        if vehicle_id not in self.vehicles:
            raise PersistenceError(f"Vehicle '{vehicle_id}' does not exist in store")

    def _assemble(self, vehicle_id: str) -> Vehicle:
        doc = dict(self.vehicles[vehicle_id])
        doc["equipment"] = [dict(e) for e in self.equipment.values() if e["vehicle_id"] == vehicle_id]
        doc["history"] = [dict(h) for h in self.history.get(vehicle_id, [])]
        return Vehicle.model_validate(doc)

    async def create_vehicle(self, vehicle: Vehicle) -> None:
        await self._yield()
        if vehicle.id in self.vehicles:
            raise PersistenceError(f"Vehicle '{vehicle.id}' already exists")
        self.vehicles[vehicle.id] = vehicle.model_dump(mode="json", exclude={"equipment", "history"})
        self.history[vehicle.id] = []
        for item in vehicle.equipment:
            self.equipment[item.id] = item.model_dump(mode="json")

    async def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        await self._yield()
        if vehicle_id not in self.vehicles:
            return None
        return self._assemble(vehicle_id)

    async def delete_vehicle(self, vehicle_id: str) -> None:
        await self._yield()
        self._require_vehicle(vehicle_id)
        del self.vehicles[vehicle_id]
        self.history.pop(vehicle_id, None)
        for item_id in [k for k, e in self.equipment.items() if e["vehicle_id"] == vehicle_id]:
            del self.equipment[item_id]

    async def list_vehicles_with_relations(self) -> List[Vehicle]:
        await self._yield()
        return [self._assemble(vehicle_id) for vehicle_id in self.vehicles]

    async def create_equipment(self, vehicle_id: str, item: EquipmentItem) -> None:
        await self._yield()
        self._require_vehicle(vehicle_id)
        if item.id in self.equipment:
            raise PersistenceError(f"Equipment '{item.id}' already exists")
        doc = item.model_dump(mode="json")
        doc["vehicle_id"] = vehicle_id
        self.equipment[item.id] = doc

    async def update_equipment(self, item_id: str, fields: Dict[str, Any]) -> None:
        await self._yield()
        if item_id not in self.equipment:
            raise PersistenceError(f"Equipment '{item_id}' does not exist in store")
        updated = {**self.equipment[item_id], **fields}
        # re-validate so a bad partial update never lands
        self.equipment[item_id] = EquipmentItem.model_validate(updated).model_dump(mode="json")

    async def delete_equipment(self, item_id: str) -> None:
        await self._yield()
        if self.equipment.pop(item_id, None) is None:
            raise PersistenceError(f"Equipment '{item_id}' does not exist in store")

    async def update_vehicle_status(self, vehicle_id: str, status: VehicleStatus) -> None:
        await self._yield()
        self._require_vehicle(vehicle_id)
        self.vehicles[vehicle_id]["status"] = VehicleStatus(status).value

    async def append_audit_entry(self, vehicle_id: str, entry: AuditEntry) -> None:
        await self._yield()
        self._require_vehicle(vehicle_id)
        self.history[vehicle_id].insert(0, entry.model_dump(mode="json"))
        logger.debug("Audit entry %s appended to vehicle %s", entry.id, vehicle_id)
