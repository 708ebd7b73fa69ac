import pytest

from app.core.errors import AuthorizationError, InvariantViolation, ValidationError
from app.core.identity import Role
from app.models.audit import AuditCategory, Severity
from app.models.equipment import AnomalyRecord, AnomalyReport, AnomalyTag, Condition
from app.services.anomaly_service import (
    apply_anomaly_report,
    clamp_missing_quantity,
    quick_resolve_service,
    report_anomaly_service,
)
from app.services.audit_service import AuditEvent

from conftest import TODAY, YESTERDAY, make_ctx, make_item, make_vehicle


def _open_anomaly():
    return AnomalyRecord(description="dented", tags=[AnomalyTag.DAMAGED], reported_by="Lt. Miller", reported_on=YESTERDAY)


async def _seed(store, *items):
    await store.create_vehicle(make_vehicle(items))


# --------------------------
# Pure state transitions
# --------------------------
def test_report_sets_record_condition_and_verification_date():
    item = make_item("eq-1", name="Harness", quantity=5)

    outcome = apply_anomaly_report(item, ["Missing"], "torn strap", 2, "Lt. Miller", TODAY)

    assert outcome.event == AuditEvent.ANOMALY_REPORTED
    assert outcome.item.condition == Condition.NEEDS_REPLACEMENT
    assert outcome.item.last_verified == TODAY
    assert outcome.item.anomaly.tags == [AnomalyTag.MISSING]
    assert outcome.item.anomaly.missing_quantity == 2
    assert outcome.item.anomaly.description == "torn strap"
    assert outcome.item.anomaly.reported_by == "Lt. Miller"
    assert outcome.item.anomaly.reported_on == TODAY
    assert outcome.item.available_quantity == 3
    # the input item is left alone
    assert item.anomaly is None


@pytest.mark.parametrize("requested, stored", [(0, 0), (3, 3), (5, 5), (9, 5)])
def test_missing_quantity_is_clamped_to_item_quantity(requested, stored):
    assert clamp_missing_quantity([AnomalyTag.MISSING], requested, 5) == stored


def test_missing_quantity_ignored_without_missing_tag():
    assert clamp_missing_quantity([AnomalyTag.DIRTY], 3, 5) is None


@pytest.mark.parametrize("bad", [-1, 1.5, "2", True])
def test_bad_missing_quantity_is_rejected(bad):
    with pytest.raises(ValidationError):
        clamp_missing_quantity([AnomalyTag.MISSING], bad, 5)


def test_unknown_tag_is_rejected():
    item = make_item("eq-1")
    with pytest.raises(ValidationError):
        apply_anomaly_report(item, ["Rusty"], "", None, "Lt. Miller", TODAY)


def test_duplicate_tags_are_collapsed():
    item = make_item("eq-1")
    outcome = apply_anomaly_report(item, ["Dirty", "Dirty", "Damaged"], "", None, "Lt. Miller", TODAY)
    assert outcome.item.anomaly.tags == [AnomalyTag.DIRTY, AnomalyTag.DAMAGED]


def test_empty_report_on_clean_item_is_nothing_to_do():
    item = make_item("eq-1")
    assert apply_anomaly_report(item, [], "   ", None, "Lt. Miller", TODAY) is None


def test_empty_report_clears_open_anomaly():
    item = make_item("eq-1", anomaly=_open_anomaly(), condition=Condition.NEEDS_REPLACEMENT)

    outcome = apply_anomaly_report(item, [], "", None, "Lt. Miller", TODAY)

    assert outcome.event == AuditEvent.ANOMALY_RESOLVED
    assert outcome.item.anomaly is None
    assert outcome.item.condition == Condition.GOOD


# --------------------------
# Services
# --------------------------
@pytest.mark.asyncio
async def test_report_missing_end_to_end(store):
    await _seed(store, make_item("eq-1", name="Harness", quantity=5))
    ctx = make_ctx(store, role=Role.OPERATOR)

    result = await report_anomaly_service(
        ctx, "veh-1", "eq-1",
        AnomalyReport(tags=["Missing"], missing_quantity=2, description="torn strap"),
    )

    assert result.applied
    stored = (await store.get_vehicle("veh-1")).find_item("eq-1")
    assert stored.condition == Condition.NEEDS_REPLACEMENT
    assert stored.anomaly.tags == [AnomalyTag.MISSING]
    assert stored.anomaly.missing_quantity == 2
    assert stored.anomaly.description == "torn strap"
    assert stored.quantity == 5

    history = (await store.get_vehicle("veh-1")).history
    # reporting the only item also completes today's inspection
    warnings = [e for e in history if e.severity == Severity.WARNING]
    assert len(warnings) == 1
    assert "Missing" in warnings[0].description
    assert "(Qty: 2)" in warnings[0].description
    assert "torn strap" in warnings[0].description
    assert warnings[0].equipment_id == "eq-1"
    assert warnings[0].performed_by == "Lt. Miller"


@pytest.mark.asyncio
async def test_report_clamps_missing_quantity_in_message(store):
    await _seed(store, make_item("eq-1", name="Gloves", quantity=4))
    ctx = make_ctx(store, role=Role.OPERATOR)

    result = await report_anomaly_service(ctx, "veh-1", "eq-1", AnomalyReport(tags=["Missing"], missing_quantity=10))

    assert result.item.anomaly.missing_quantity == 4
    assert "(Qty: 4)" in result.entries[0].description


@pytest.mark.asyncio
async def test_report_that_completes_inspection_adds_completion_entry(store):
    await _seed(
        store,
        make_item("eq-1", name="Axe", last_verified=TODAY),
        make_item("eq-2", name="Bar", last_verified=YESTERDAY),
    )
    ctx = make_ctx(store, role=Role.OPERATOR)

    result = await report_anomaly_service(ctx, "veh-1", "eq-2", AnomalyReport(tags=["Dirty"]))

    assert [e.severity for e in result.entries] == [Severity.WARNING, Severity.SUCCESS]
    assert result.completion == 100


@pytest.mark.asyncio
async def test_empty_report_on_clean_item_writes_nothing(store):
    await _seed(store, make_item("eq-1"))
    ctx = make_ctx(store, role=Role.OPERATOR)

    result = await report_anomaly_service(ctx, "veh-1", "eq-1", AnomalyReport())

    assert not result.applied
    assert result.violation == InvariantViolation.ALREADY_RESOLVED
    assert (await store.get_vehicle("veh-1")).history == []


@pytest.mark.asyncio
async def test_resolution_emits_one_success_entry_and_is_idempotent(store):
    await _seed(store, make_item("eq-1", name="Axe", anomaly=_open_anomaly(), condition=Condition.NEEDS_REPLACEMENT))
    ctx = make_ctx(store, role=Role.OPERATOR)

    first = await report_anomaly_service(ctx, "veh-1", "eq-1", AnomalyReport())
    second = await report_anomaly_service(ctx, "veh-1", "eq-1", AnomalyReport())

    assert first.applied
    assert len(first.entries) == 1
    assert first.entries[0].severity == Severity.SUCCESS
    assert first.entries[0].category == AuditCategory.MAINTENANCE
    assert first.entries[0].description == "Resolution — Axe: returned to normal (anomaly cleared)."
    assert not second.applied
    assert second.violation == InvariantViolation.ALREADY_RESOLVED

    vehicle = await store.get_vehicle("veh-1")
    assert len(vehicle.history) == 1
    assert vehicle.find_item("eq-1").anomaly is None
    assert vehicle.find_item("eq-1").condition == Condition.GOOD


@pytest.mark.asyncio
async def test_quick_resolve(store):
    await _seed(store, make_item("eq-1", name="Axe", anomaly=_open_anomaly(), condition=Condition.NEEDS_REPLACEMENT))
    ctx = make_ctx(store, role=Role.OPERATOR)

    result = await quick_resolve_service(ctx, "veh-1", "eq-1")
    again = await quick_resolve_service(ctx, "veh-1", "eq-1")

    assert result.applied
    assert result.entries[0].description == "Quick resolution — Axe: incident closed."
    assert result.entries[0].severity == Severity.SUCCESS
    assert again.violation == InvariantViolation.ALREADY_RESOLVED
    assert len((await store.get_vehicle("veh-1")).history) == 1


@pytest.mark.asyncio
async def test_report_on_unknown_item_is_signalled(store):
    await _seed(store, make_item("eq-1"))
    ctx = make_ctx(store, role=Role.OPERATOR)

    result = await report_anomaly_service(ctx, "veh-1", "eq-404", AnomalyReport(tags=["Dirty"]))

    assert not result.applied
    assert result.violation == InvariantViolation.ITEM_NOT_FOUND


@pytest.mark.asyncio
async def test_reader_cannot_report(store):
    await _seed(store, make_item("eq-1"))
    ctx = make_ctx(store, role=Role.READER)

    with pytest.raises(AuthorizationError):
        await report_anomaly_service(ctx, "veh-1", "eq-1", AnomalyReport(tags=["Dirty"]))

    vehicle = await store.get_vehicle("veh-1")
    assert vehicle.find_item("eq-1").anomaly is None
    assert vehicle.history == []


@pytest.mark.asyncio
async def test_negative_missing_quantity_touches_nothing(store):
    await _seed(store, make_item("eq-1", quantity=3))
    ctx = make_ctx(store, role=Role.OPERATOR)

    with pytest.raises(ValidationError):
        await report_anomaly_service(ctx, "veh-1", "eq-1", AnomalyReport(tags=["Missing"], missing_quantity=-2))

    vehicle = await store.get_vehicle("veh-1")
    assert vehicle.find_item("eq-1").anomaly is None
    assert vehicle.history == []
