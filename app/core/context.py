# app/core/context.py
from dataclasses import dataclass, field

from app.core.clock import Clock, SystemClock
from app.core.identity import IdentityProvider
from app.db.store import PersistenceStore


@dataclass
class FleetContext:
    """Collaborators a service call runs against."""

    store: PersistenceStore
    identity: IdentityProvider
    clock: Clock = field(default_factory=SystemClock)
