"""
Destination Store
In-memory, thread-safe registry of configured delivery targets.
"""
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from delivery.config import Destination, DestinationConfig, DestinationRequest, DestinationType

logger = logging.getLogger(__name__)

DEFAULT_DESTINATION_ID = "default-file"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DestinationStore:
    """Keeps destinations by id; records are immutable and replaced on update"""

    def __init__(self):
        self._lock = threading.RLock()
        self._destinations: Dict[str, Destination] = {}

    def seed_default(self, file_path: str) -> Destination:
        """Add the local file destination when the store is empty"""
        with self._lock:
            if self._destinations:
                return self._destinations.get(DEFAULT_DESTINATION_ID)
            now = _now()
            destination = Destination(
                id=DEFAULT_DESTINATION_ID,
                name="Local File Output",
                type=DestinationType.FILE,
                description="Default file output destination",
                config=DestinationConfig(file_path=file_path, max_size_mb=100, rotate_keep=5),
                created_at=now,
                updated_at=now,
            )
            self._destinations[destination.id] = destination
            logger.info("Seeded default file destination at %s", file_path)
            return destination

    def get(self, destination_id: str) -> Optional[Destination]:
        with self._lock:
            return self._destinations.get(destination_id)

    def list(self) -> List[Destination]:
        with self._lock:
            return list(self._destinations.values())

    def create(self, request: DestinationRequest) -> Destination:
        now = _now()
        destination = Destination(
            id=str(uuid.uuid4()),
            name=request.name,
            type=request.type,
            description=request.description,
            config=request.config,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._destinations[destination.id] = destination
        return destination

    def update(self, destination_id: str, request: DestinationRequest) -> Optional[Destination]:
        with self._lock:
            existing = self._destinations.get(destination_id)
            if existing is None:
                return None
            destination = existing.model_copy(update={
                "name": request.name,
                "type": request.type,
                "description": request.description,
                "config": request.config,
                "updated_at": _now(),
            })
            self._destinations[destination_id] = destination
            return destination

    def delete(self, destination_id: str) -> bool:
        with self._lock:
            return self._destinations.pop(destination_id, None) is not None

    def record_usage(self, destination_id: str, events_sent: int) -> None:
        """Bump the sent counter and last-used time after a delivery run"""
        with self._lock:
            existing = self._destinations.get(destination_id)
            if existing is None:
                return
            self._destinations[destination_id] = existing.model_copy(update={
                "events_sent": existing.events_sent + events_sent,
                "last_used": _now(),
            })
