"""
Event storage.

EventRepository upserts normalized events into a persistent collection
keyed by provider event id. UserEventCache keeps the batch each user last
fetched so the reminder command can look events up by name.
"""

import asyncio
import json
import logging
import os
import tempfile
import time
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import StorageError
from .models import Event

logger = logging.getLogger(__name__)


class EventCollection(ABC):
    """Key-value document collection."""

    @abstractmethod
    def upsert(self, key: str, document: Dict[str, Any]) -> None:
        """Insert or replace the document stored under ``key``."""
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def all(self) -> List[Dict[str, Any]]:
        pass


class JsonEventCollection(EventCollection):
    """Collection persisted as a single JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()
        self._documents: Optional[Dict[str, Dict[str, Any]]] = None

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if self._documents is not None:
            return self._documents
        self._documents = {}
        if self.path.exists():
            try:
                with open(self.path, "r") as f:
                    data = json.load(f)
                self._documents = dict(data.get("documents", {}))
            except (OSError, ValueError, AttributeError) as e:
                logger.warning(f"Could not load events from {self.path}: {e}")
        return self._documents

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "last_updated": datetime.now().isoformat(),
            "documents": self._documents,
        }
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def upsert(self, key: str, document: Dict[str, Any]) -> None:
        documents = self._load()
        previous = documents.get(key)
        documents[key] = dict(document)
        try:
            self._save()
        except (OSError, TypeError, ValueError):
            # Keep memory consistent with disk
            if previous is None:
                documents.pop(key, None)
            else:
                documents[key] = previous
            raise

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        document = self._load().get(key)
        return dict(document) if document is not None else None

    def all(self) -> List[Dict[str, Any]]:
        return [dict(d) for d in self._load().values()]


class EventRepository:
    """Replace-by-key storage of normalized events. Last write wins."""

    def __init__(self, collection: EventCollection):
        self.collection = collection
        self._lock = asyncio.Lock()

    async def upsert(self, event: Event) -> None:
        """
        Store one event.

        Raises:
            StorageError: If the collection rejects the write
        """
        async with self._lock:
            try:
                await asyncio.to_thread(
                    self.collection.upsert, event.event_id, event.to_document()
                )
            except (OSError, TypeError, ValueError) as e:
                raise StorageError(f"Failed to store event {event.event_id}: {e}") from e

    async def upsert_all(self, events: Iterable[Event]) -> int:
        """Store each event independently; failures are logged and skipped."""
        stored = 0
        for event in events:
            try:
                await self.upsert(event)
                stored += 1
            except StorageError as e:
                logger.error(f"Error storing event in database: {e}")
        return stored

    def get(self, event_id: str) -> Optional[Event]:
        document = self.collection.get(event_id)
        return Event.from_document(document) if document else None


class UserEventCache:
    """
    Events each user last fetched, keyed by user id.

    An entry is replaced on the user's next successful fetch and expires
    after ``max_age`` seconds.
    """

    def __init__(self, max_age: float = 10 * 24 * 60 * 60):
        self.max_age = max_age
        self._entries: Dict[str, Tuple[float, List[Event]]] = {}

    def replace(self, user_id: str, events: List[Event]) -> None:
        self._entries[str(user_id)] = (time.monotonic(), list(events))

    def get(self, user_id: str) -> List[Event]:
        entry = self._entries.get(str(user_id))
        if entry is None:
            return []
        stored_at, events = entry
        if time.monotonic() - stored_at > self.max_age:
            del self._entries[str(user_id)]
            return []
        return list(events)

    def find(self, user_id: str, name: str) -> Optional[Event]:
        """Find an event by full summary or course id, case-insensitively."""
        wanted = name.strip().lower()
        events = self.get(user_id)
        for event in events:
            if event.summary.strip().lower() == wanted:
                return event
        for event in events:
            if event.course_id.lower() == wanted:
                return event
        return None

    def clear(self, user_id: str) -> None:
        self._entries.pop(str(user_id), None)
