import time
from datetime import datetime, timezone, date
from uuid import uuid4

_last_sequence = 0
# ----------------------------
# Helpers
# ----------------------------
def _now_utc() -> datetime:
    return datetime.now(timezone.utc)

def _format_date(d: date) -> str:
    return d.isoformat()

def _format_time(dt: datetime) -> str:
    return dt.strftime("%H:%M")

def _normalize_text(s: str) -> str:
    return (s or "").strip()

def _gen_vehicle_id() -> str:
    return f"veh-{uuid4().hex}"

def _gen_equipment_id() -> str:
    return f"eq-{uuid4().hex}"

def _gen_entry_id() -> str:
    return f"log-{uuid4().hex}"

def _gen_document_id() -> str:
    return f"doc-{uuid4().hex}"

def _next_sequence() -> int:
    """Strictly increasing within the process, roughly wall-clock across restarts."""
    global _last_sequence
    _last_sequence = max(_last_sequence + 1, time.time_ns())
    return _last_sequence
