# app/core/config.py
import os
from dotenv import load_dotenv

load_dotenv()

# ---------------- MongoDB ----------------
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "fleet_inspection")

COLLECTION_VEHICLES = os.getenv("COLLECTION_VEHICLES", "vehicles")
COLLECTION_EQUIPMENT = os.getenv("COLLECTION_EQUIPMENT", "equipment")
COLLECTION_HISTORY = os.getenv("COLLECTION_HISTORY", "history")

# "mongo" for the Motor-backed store, "memory" for a throwaway in-process store
STORE_BACKEND = os.getenv("STORE_BACKEND", "mongo").strip().lower()

# ---------------- Logging ----------------
LOG_FILE = os.getenv("LOG_FILE", "fleet_inspection_fastapi.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "10000000"))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "10"))
