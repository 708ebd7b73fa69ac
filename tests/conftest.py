from datetime import datetime, timedelta, timezone

import pytest

from app.core.clock import FixedClock
from app.core.context import FleetContext
from app.core.errors import PersistenceError
from app.core.identity import Role, StaticIdentityProvider
from app.db.memory_store import MemoryStore
from app.models.equipment import EquipmentItem
from app.models.vehicle import Vehicle

NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)
TODAY = NOW.date()
YESTERDAY = TODAY - timedelta(days=1)


class FlakyStore(MemoryStore):
    """MemoryStore whose calls can be made to fail by method name."""

    def __init__(self):
        super().__init__()
        self.failing = set()
        self.calls = []

    def _maybe_fail(self, name):
        self.calls.append(name)
        if name in self.failing:
            raise PersistenceError(f"simulated {name} failure")

    async def update_equipment(self, item_id, fields):
        self._maybe_fail("update_equipment")
        await super().update_equipment(item_id, fields)

    async def update_vehicle_status(self, vehicle_id, status):
        self._maybe_fail("update_vehicle_status")
        await super().update_vehicle_status(vehicle_id, status)

    async def create_equipment(self, vehicle_id, item):
        self._maybe_fail("create_equipment")
        await super().create_equipment(vehicle_id, item)

    async def delete_equipment(self, item_id):
        self._maybe_fail("delete_equipment")
        await super().delete_equipment(item_id)

    async def append_audit_entry(self, vehicle_id, entry):
        self._maybe_fail("append_audit_entry")
        await super().append_audit_entry(vehicle_id, entry)


def make_item(item_id, name="Item", quantity=1, location="Cab", category="Tools", last_verified=None, **extra):
    return EquipmentItem(
        id=item_id,
        vehicle_id="veh-1",
        name=name,
        category=category,
        location=location,
        quantity=quantity,
        last_verified=last_verified,
        **extra,
    )


def make_vehicle(items=(), vehicle_id="veh-1", **extra):
    fields = {"call_sign": "Engine 42", "type": "Pumper", "location": "Central Station", "crew_capacity": 6}
    fields.update(extra)
    return Vehicle(id=vehicle_id, equipment=[i.model_copy(update={"vehicle_id": vehicle_id}) for i in items], **fields)


def make_ctx(store, name="Lt. Miller", role=Role.ADMIN, clock=None):
    return FleetContext(
        store=store,
        identity=StaticIdentityProvider(name, role),
        clock=clock or FixedClock(NOW),
    )


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def flaky_store():
    return FlakyStore()
