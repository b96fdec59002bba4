"""
Persistence for uploaded datasets and city selection records.

``MemoryStore`` keeps everything in the process; ``MongoStore`` writes to the
same two collections the dashboard has always used.
"""
import logging
import re
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, MongoClient

log = logging.getLogger(__name__)

DATASETS_COLLECTION = "aqidatas"
SELECTIONS_COLLECTION = "cityselections"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Store:
    def put_dataset(self, data: List[Dict[str, Any]], user_id: Optional[str] = None) -> str:
        raise NotImplementedError

    def get_dataset(self, dataset_id: str) -> Optional[List[Dict[str, Any]]]:
        raise NotImplementedError

    def put_selection(self, city: str, details: Optional[Dict[str, Any]] = None) -> str:
        raise NotImplementedError

    def recent_selections(self, city: str, limit: int = 7) -> List[Dict[str, Any]]:
        raise NotImplementedError


class MemoryStore(Store):
    def __init__(self, clock=_now) -> None:
        self._clock = clock
        self._datasets: Dict[str, Dict[str, Any]] = {}
        self._selections: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def put_dataset(self, data, user_id=None):
        dataset_id = uuid.uuid4().hex
        with self._lock:
            self._datasets[dataset_id] = {
                "user_id": user_id,
                "data": list(data),
                "uploaded_at": self._clock(),
            }
        log.info(f"🔹 [Store] Dataset {dataset_id} stored ({len(data)} rows)")
        return dataset_id

    def get_dataset(self, dataset_id):
        with self._lock:
            doc = self._datasets.get(dataset_id)
        return list(doc["data"]) if doc else None

    def put_selection(self, city, details=None):
        selection_id = uuid.uuid4().hex
        with self._lock:
            self._selections.append({
                "id": selection_id,
                "city": city,
                "details": details,
                "selected_at": self._clock(),
            })
        return selection_id

    def recent_selections(self, city, limit=7):
        wanted = city.lower()
        with self._lock:
            matches = [s for s in self._selections if str(s["city"]).lower() == wanted]
        # newest first; equal timestamps keep the later insert first
        matches = list(reversed(matches))
        matches.sort(key=lambda s: s["selected_at"], reverse=True)
        return [dict(s) for s in matches[:limit]]


class MongoStore(Store):
    def __init__(self, uri: str, database: str, client: Optional[MongoClient] = None) -> None:
        self.client = client if client is not None else MongoClient(uri, serverSelectionTimeoutMS=15000)
        self.db = self.client[database]
        self.datasets = self.db[DATASETS_COLLECTION]
        self.selections = self.db[SELECTIONS_COLLECTION]

    def put_dataset(self, data, user_id=None):
        res = self.datasets.insert_one({"userId": user_id, "data": list(data), "uploadedAt": _now()})
        log.info(f"🔹 [Store] Dataset {res.inserted_id} stored ({len(data)} rows)")
        return str(res.inserted_id)

    def get_dataset(self, dataset_id):
        # ObjectId(None) would mint a fresh id
        if not isinstance(dataset_id, str):
            return None
        try:
            oid = ObjectId(dataset_id)
        except (InvalidId, TypeError):
            return None
        doc = self.datasets.find_one({"_id": oid})
        return doc["data"] if doc else None

    def put_selection(self, city, details=None):
        res = self.selections.insert_one({"city": city, "details": details, "selectedAt": _now()})
        return str(res.inserted_id)

    def recent_selections(self, city, limit=7):
        query = {"city": re.compile(f"^{re.escape(city)}$", re.IGNORECASE)}
        cursor = self.selections.find(query).sort("selectedAt", DESCENDING).limit(limit)
        return [
            {
                "id": str(doc["_id"]),
                "city": doc.get("city"),
                "details": doc.get("details"),
                "selected_at": doc.get("selectedAt"),
            }
            for doc in cursor
        ]


def make_store(uri: str = "", database: str = "aqi_dashboard") -> Store:
    if uri:
        log.info("🔹 [Store] Using MongoDB store")
        return MongoStore(uri, database)
    log.info("🔹 [Store] MONGODB_URI not set, using in-memory store")
    return MemoryStore()
