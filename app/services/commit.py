# app/services/commit.py
"""
Write path shared by every mutating service: state first, then its audit
entries. A failed append is never swallowed.
"""
from typing import Awaitable, Callable, List, Optional

from app.core.errors import AuditCommitError, PersistenceError
from app.db.store import PersistenceStore
from app.models.audit import AuditEntry
from app.utiles.logger import get_logger

logger = get_logger(__name__)


async def commit_mutation(
    store: PersistenceStore,
    vehicle_id: str,
    apply: Callable[[], Awaitable[None]],
    entries: List[AuditEntry],
    rollback: Optional[Callable[[], Awaitable[None]]] = None,
) -> None:
    """
    Apply one state change and append its entries.

    - If `apply` fails nothing was written and the PersistenceError propagates.
    - If an append fails, `rollback` restores the previous state when no entry
      got through, then AuditCommitError is raised. `rolled_back` tells the
      caller whether the store is back to its prior state.
    """
    try:
        await apply()
    except PersistenceError:
        logger.error("State update failed for vehicle %s; no audit entry written", vehicle_id)
        raise

    committed = 0
    try:
        for entry in entries:
            await store.append_audit_entry(vehicle_id, entry)
            committed += 1
    except PersistenceError as e:
        rolled_back = False
        if committed == 0 and rollback is not None:
            try:
                await rollback()
                rolled_back = True
            except PersistenceError:
                logger.exception("Rollback failed for vehicle %s; state and history diverge", vehicle_id)
        logger.error(
            "Audit append failed for vehicle %s (entries committed=%s, rolled_back=%s)",
            vehicle_id, committed, rolled_back,
        )
        raise AuditCommitError(
            f"Audit trail could not be written: {e.message}",
            rolled_back=rolled_back,
            entries_committed=committed,
        ) from e

    logger.info("Committed mutation on vehicle %s with %s audit entr%s",
                vehicle_id, committed, "y" if committed == 1 else "ies")
