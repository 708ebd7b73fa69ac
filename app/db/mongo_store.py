# app/db/mongo_store.py
"""
PersistenceStore backed by MongoDB (Motor).

Vehicles, equipment and history live in separate collections and are joined
with $lookup when a vehicle is read with its relations.
"""
from typing import Any, Dict, List, Optional

from pymongo.errors import DuplicateKeyError, PyMongoError

from app.core.config import COLLECTION_VEHICLES, COLLECTION_EQUIPMENT, COLLECTION_HISTORY
from app.core.errors import PersistenceError
from app.db.store import PersistenceStore
from app.models.audit import AuditEntry
from app.models.equipment import EquipmentItem
from app.models.vehicle import Vehicle, VehicleStatus
from app.utiles.custom_helpers import _now_utc
from app.utiles.logger import get_logger

logger = get_logger(__name__)


def _relations_pipeline(match: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [
        {"$match": match},
        {"$lookup": {
            "from": COLLECTION_EQUIPMENT,
            "let": {"vid": "$id"},
            "pipeline": [
                {"$match": {"$expr": {"$eq": ["$vehicle_id", "$$vid"]}}},
                {"$sort": {"position": 1}},
                {"$project": {"_id": 0, "position": 0}},
            ],
            "as": "equipment",
        }},
        {"$lookup": {
            "from": COLLECTION_HISTORY,
            "let": {"vid": "$id"},
            "pipeline": [
                {"$match": {"$expr": {"$eq": ["$vehicle_id", "$$vid"]}}},
                {"$sort": {"date": -1, "time": -1, "sequence": -1}},
                {"$project": {"_id": 0}},
            ],
            "as": "history",
        }},
        {"$project": {"_id": 0, "created_at": 0, "updated_at": 0}},
    ]


class MongoStore(PersistenceStore):

    def __init__(self, database):
        super().__init__()
        self.db = database

    async def create_vehicle(self, vehicle: Vehicle) -> None:
        doc = vehicle.model_dump(mode="json", exclude={"equipment", "history"})
        doc["created_at"] = _now_utc()
        doc["updated_at"] = doc["created_at"]
        try:
            await self.db[COLLECTION_VEHICLES].insert_one(doc)
        except DuplicateKeyError:
            logger.warning("Vehicle insert rejected: duplicate id %s", vehicle.id)
            raise PersistenceError(f"Vehicle '{vehicle.id}' already exists")
        except PyMongoError as e:
            logger.exception("create_vehicle failed for %s", vehicle.id)
            raise PersistenceError(f"Could not create vehicle: {e}") from e

    async def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        try:
            docs = await self.db[COLLECTION_VEHICLES].aggregate(_relations_pipeline({"id": vehicle_id})).to_list(length=1)
        except PyMongoError as e:
            logger.exception("get_vehicle failed for %s", vehicle_id)
            raise PersistenceError(f"Could not load vehicle: {e}") from e
        if not docs:
            return None
        return Vehicle.model_validate(docs[0])

    async def delete_vehicle(self, vehicle_id: str) -> None:
        try:
            result = await self.db[COLLECTION_VEHICLES].delete_one({"id": vehicle_id})
            if result.deleted_count == 0:
                raise PersistenceError(f"Vehicle '{vehicle_id}' does not exist in store")
            await self.db[COLLECTION_EQUIPMENT].delete_many({"vehicle_id": vehicle_id})
            await self.db[COLLECTION_HISTORY].delete_many({"vehicle_id": vehicle_id})
        except PyMongoError as e:
            logger.exception("delete_vehicle failed for %s", vehicle_id)
            raise PersistenceError(f"Could not delete vehicle: {e}") from e

    async def list_vehicles_with_relations(self) -> List[Vehicle]:
        try:
            docs = await self.db[COLLECTION_VEHICLES].aggregate(_relations_pipeline({})).to_list(length=None)
        except PyMongoError as e:
            logger.exception("list_vehicles_with_relations failed")
            raise PersistenceError(f"Could not list vehicles: {e}") from e
        return [Vehicle.model_validate(doc) for doc in docs]

    async def _next_position(self, vehicle_id: str) -> int:
        """One past the highest position in use; removals leave gaps, never duplicates."""
        last = await self.db[COLLECTION_EQUIPMENT].find_one(
            {"vehicle_id": vehicle_id},
            projection={"position": 1},
            sort=[("position", -1)],
        )
        if not last or last.get("position") is None:
            return 0
        return last["position"] + 1

    async def create_equipment(self, vehicle_id: str, item: EquipmentItem) -> None:
        doc = item.model_dump(mode="json", exclude={"available_quantity"})
        doc["vehicle_id"] = vehicle_id
        try:
            doc["position"] = await self._next_position(vehicle_id)
            await self.db[COLLECTION_EQUIPMENT].insert_one(doc)
        except PyMongoError as e:
            logger.exception("create_equipment failed for %s", item.id)
            raise PersistenceError(f"Could not create equipment: {e}") from e

    async def update_equipment(self, item_id: str, fields: Dict[str, Any]) -> None:
        try:
            result = await self.db[COLLECTION_EQUIPMENT].update_one({"id": item_id}, {"$set": fields})
        except PyMongoError as e:
            logger.exception("update_equipment failed for %s", item_id)
            raise PersistenceError(f"Could not update equipment: {e}") from e
        if result.matched_count == 0:
            raise PersistenceError(f"Equipment '{item_id}' does not exist in store")

    async def delete_equipment(self, item_id: str) -> None:
        try:
            result = await self.db[COLLECTION_EQUIPMENT].delete_one({"id": item_id})
        except PyMongoError as e:
            logger.exception("delete_equipment failed for %s", item_id)
            raise PersistenceError(f"Could not delete equipment: {e}") from e
        if result.deleted_count == 0:
            raise PersistenceError(f"Equipment '{item_id}' does not exist in store")

    async def update_vehicle_status(self, vehicle_id: str, status: VehicleStatus) -> None:
        try:
            result = await self.db[COLLECTION_VEHICLES].update_one(
                {"id": vehicle_id},
                {"$set": {"status": VehicleStatus(status).value, "updated_at": _now_utc()}},
            )
        except PyMongoError as e:
            logger.exception("update_vehicle_status failed for %s", vehicle_id)
            raise PersistenceError(f"Could not update vehicle status: {e}") from e
        if result.matched_count == 0:
            raise PersistenceError(f"Vehicle '{vehicle_id}' does not exist in store")

    async def append_audit_entry(self, vehicle_id: str, entry: AuditEntry) -> None:
        doc = entry.model_dump(mode="json")
        doc["vehicle_id"] = vehicle_id
        try:
            await self.db[COLLECTION_HISTORY].insert_one(doc)
        except PyMongoError as e:
            logger.exception("append_audit_entry failed for vehicle %s", vehicle_id)
            raise PersistenceError(f"Could not append audit entry: {e}") from e
