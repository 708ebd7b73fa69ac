import asyncio
from datetime import timedelta

import pytest

from app.core.errors import AuthorizationError, InvariantViolation
from app.core.identity import Role
from app.models.audit import AuditCategory, Severity
from app.services.verification_service import (
    completes_inspection,
    completion_ratio,
    completion_service,
    verify_item_service,
)

from conftest import TODAY, YESTERDAY, make_ctx, make_item, make_vehicle

COMPLETE = "Full verification — inventory validated at 100%."


def test_completion_of_empty_vehicle_is_100():
    assert completion_ratio([], TODAY) == 100


@pytest.mark.parametrize("verified, total, expected", [
    (0, 3, 0),
    (1, 3, 33),
    (2, 3, 67),
    (3, 3, 100),
    (1, 8, 13),  # 12.5 rounds half up
    (1, 200, 1),  # 0.5 rounds half up
])
def test_completion_ratio_rounding(verified, total, expected):
    items = [make_item(f"eq-{i}", last_verified=TODAY if i < verified else None) for i in range(total)]
    ratio = completion_ratio(items, TODAY)

    assert ratio == expected
    assert 0 <= ratio <= 100


def test_only_today_counts():
    items = [make_item("eq-1", last_verified=YESTERDAY), make_item("eq-2", last_verified=TODAY)]
    assert completion_ratio(items, TODAY) == 50


def test_completes_inspection_only_on_the_edge():
    pending = [make_item("eq-1", last_verified=TODAY), make_item("eq-2")]
    done = [make_item("eq-1", last_verified=TODAY), make_item("eq-2", last_verified=TODAY)]

    assert completes_inspection(pending, done, TODAY)
    assert not completes_inspection(done, done, TODAY)
    assert not completes_inspection(pending, pending, TODAY)
    assert not completes_inspection([], [], TODAY)


@pytest.mark.asyncio
async def test_three_item_inspection_scenario(store):
    await store.create_vehicle(make_vehicle([
        make_item("eq-1", name="Axe"),
        make_item("eq-2", name="Bar"),
        make_item("eq-3", name="Cutter"),
    ]))
    ctx = make_ctx(store, role=Role.OPERATOR)

    first = await verify_item_service(ctx, "veh-1", "eq-1")
    second = await verify_item_service(ctx, "veh-1", "eq-2")
    assert first.entries == []
    assert second.entries == []
    assert second.completion == 67
    assert (await store.get_vehicle("veh-1")).history == []

    third = await verify_item_service(ctx, "veh-1", "eq-3")
    assert third.completion == 100
    assert len(third.entries) == 1
    entry = third.entries[0]
    assert entry.severity == Severity.SUCCESS
    assert entry.category == AuditCategory.STATUS_CHANGE
    assert entry.description == COMPLETE

    again = await verify_item_service(ctx, "veh-1", "eq-1")
    assert again.applied
    assert again.entries == []
    assert again.completion == 100

    history = (await store.get_vehicle("veh-1")).history
    assert [e.description for e in history] == [COMPLETE]


@pytest.mark.asyncio
async def test_verification_in_complete_vehicle_emits_nothing(store):
    await store.create_vehicle(make_vehicle([make_item("eq-1", last_verified=TODAY)]))
    ctx = make_ctx(store, role=Role.OPERATOR)

    result = await verify_item_service(ctx, "veh-1", "eq-1")

    assert result.applied
    assert result.entries == []
    assert result.completion == 100


@pytest.mark.asyncio
async def test_next_day_starts_a_new_inspection(store, clock):
    await store.create_vehicle(make_vehicle([make_item("eq-1", last_verified=TODAY)]))
    clock.advance(timedelta(days=1))
    ctx = make_ctx(store, role=Role.OPERATOR, clock=clock)

    assert (await completion_service(ctx, "veh-1"))["completion"] == 0
    result = await verify_item_service(ctx, "veh-1", "eq-1")

    assert result.item.last_verified == TODAY + timedelta(days=1)
    assert [e.description for e in result.entries] == [COMPLETE]


@pytest.mark.asyncio
async def test_simultaneous_verification_of_last_two_items_logs_completion_once(store):
    await store.create_vehicle(make_vehicle([make_item("eq-1", name="Axe"), make_item("eq-2", name="Halligan")]))
    miller = make_ctx(store, name="Lt. Miller", role=Role.OPERATOR)
    rogers = make_ctx(store, name="Cpt. Rogers", role=Role.OPERATOR)

    first, second = await asyncio.gather(
        verify_item_service(miller, "veh-1", "eq-1"),
        verify_item_service(rogers, "veh-1", "eq-2"),
    )

    assert sorted([first.completion, second.completion]) == [50, 100]
    assert [e.description for e in first.entries + second.entries] == [COMPLETE]
    vehicle = await store.get_vehicle("veh-1")
    assert completion_ratio(vehicle.equipment, TODAY) == 100
    assert [e.description for e in vehicle.history] == [COMPLETE]
    assert vehicle.history[0].performed_by == "Cpt. Rogers"


@pytest.mark.asyncio
async def test_verify_unknown_item_is_signalled(store):
    await store.create_vehicle(make_vehicle([make_item("eq-1")]))
    ctx = make_ctx(store, role=Role.OPERATOR)

    result = await verify_item_service(ctx, "veh-1", "nope")

    assert not result.applied
    assert result.violation == InvariantViolation.ITEM_NOT_FOUND
    assert result.completion == 0


@pytest.mark.asyncio
async def test_reader_cannot_verify(store):
    await store.create_vehicle(make_vehicle([make_item("eq-1")]))

    with pytest.raises(AuthorizationError):
        await verify_item_service(make_ctx(store, role=Role.READER), "veh-1", "eq-1")

    assert (await store.get_vehicle("veh-1")).find_item("eq-1").last_verified is None


@pytest.mark.asyncio
async def test_completion_service_counts(store):
    await store.create_vehicle(make_vehicle([
        make_item("eq-1", last_verified=TODAY),
        make_item("eq-2", last_verified=YESTERDAY),
    ]))

    summary = await completion_service(make_ctx(store, role=Role.READER), "veh-1")

    assert summary == {
        "vehicle_id": "veh-1",
        "date": TODAY.isoformat(),
        "verified": 1,
        "total": 2,
        "completion": 50,
    }
