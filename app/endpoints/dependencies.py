# app/endpoints/dependencies.py
from fastapi import Depends, Header, HTTPException

from app.core.clock import Clock, SystemClock
from app.core.config import STORE_BACKEND
from app.core.context import FleetContext
from app.core.identity import IdentityProvider, Role, StaticIdentityProvider
from app.db.memory_store import MemoryStore
from app.db.mongo_store import MongoStore
from app.db.mongodb import db
from app.db.store import PersistenceStore
from app.utiles.logger import get_logger

logger = get_logger(__name__)

_store = None


def get_store() -> PersistenceStore:
    global _store
    if _store is None:
        if STORE_BACKEND == "memory":
            logger.warning("Using in-memory store; data is lost on restart")
            _store = MemoryStore()
        else:
            _store = MongoStore(db)
    return _store


def get_identity(
    x_actor_name: str = Header(..., description="Display name of the authenticated actor"),
    x_actor_role: Role = Header(Role.READER, description="Admin | Operator | Reader"),
) -> IdentityProvider:
    name = x_actor_name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="X-Actor-Name cannot be blank")
    return StaticIdentityProvider(name, x_actor_role)


def get_clock() -> Clock:
    return SystemClock()


def get_context(
    store: PersistenceStore = Depends(get_store),
    identity: IdentityProvider = Depends(get_identity),
    clock: Clock = Depends(get_clock),
) -> FleetContext:
    return FleetContext(store=store, identity=identity, clock=clock)
