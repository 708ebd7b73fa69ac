# app/services/helpers.py
from typing import Iterable, List

from app.core.errors import NotFoundError
from app.db.store import PersistenceStore
from app.models.audit import AuditEntry
from app.models.equipment import EquipmentItem
from app.models.vehicle import Vehicle
from app.services.commit import commit_mutation
from app.utiles.logger import get_logger

logger = get_logger(__name__)


async def load_vehicle(store: PersistenceStore, vehicle_id: str) -> Vehicle:
    vehicle = await store.get_vehicle(vehicle_id)
    if vehicle is None:
        logger.error("Vehicle not found → vehicle_id=%s", vehicle_id)
        raise NotFoundError(f"Vehicle '{vehicle_id}' not found")
    return vehicle


def item_fields(item: EquipmentItem, names: Iterable[str]) -> dict:
    """JSON-ready subset of an item, as handed to update_equipment()."""
    return item.model_dump(mode="json", include=set(names))


def replace_item(items: List[EquipmentItem], updated: EquipmentItem) -> List[EquipmentItem]:
    return [updated if i.id == updated.id else i for i in items]


async def commit_item_update(
    store: PersistenceStore,
    vehicle_id: str,
    before: EquipmentItem,
    after: EquipmentItem,
    changed: Iterable[str],
    entries: List[AuditEntry],
) -> None:
    """
    Overwrite `changed` on the item, log `entries`, restore `before` on failure.

    The caller holds `store.vehicle_lock(vehicle_id)`, so `before` is still the
    stored state when a rollback runs.
    """
    changed = list(changed)

    async def apply():
        await store.update_equipment(after.id, item_fields(after, changed))

    async def rollback():
        await store.update_equipment(before.id, item_fields(before, changed))

    await commit_mutation(store, vehicle_id, apply, entries, rollback)
