"""
Save-state cache for scraped forms.

A scrape stores its save state here under its form_id so that a later
injection can reference the form by id instead of echoing the whole bundle.
"""

from typing import Dict, Optional
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass
import logging
import threading

from datafact.pipeline.forms.types import FormSaveState

logger = logging.getLogger(__name__)


@dataclass
class CachedSaveState:
    save_state: FormSaveState
    form_url: str
    created_at: datetime

class SaveStateStore:
    """
    Thread-safe in-memory storage with expiry.

    Entries live for `timeout` after creation; expired entries are dropped on
    access and whenever a new entry is added.
    """

    def __init__(self, timeout_minutes: int = 60):
        self._entries: Dict[str, CachedSaveState] = {}
        self._lock = threading.Lock()
        self.timeout = timedelta(minutes=timeout_minutes)

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def put(self, save_state: FormSaveState, form_url: str = "") -> str:
        now = self._now()
        entry = CachedSaveState(save_state=save_state, form_url=form_url, created_at=now)
        with self._lock:
            self._cleanup_expired()
            self._entries[save_state.form_id] = entry
        return save_state.form_id

    def get_entry(self, form_id: str) -> Optional[CachedSaveState]:
        with self._lock:
            entry = self._entries.get(form_id)
            if entry is None:
                return None
            if self._now() - entry.created_at > self.timeout:
                del self._entries[form_id]
                return None
            return entry

    def _cleanup_expired(self):
        """Remove expired entries (called with lock held)."""
        now = self._now()
        expired = [fid for fid, entry in self._entries.items() if now - entry.created_at > self.timeout]
        for fid in expired:
            del self._entries[fid]
        if expired:
            logger.info(f"Dropped {len(expired)} expired save states")

    def get_stats(self) -> Dict[str, float]:
        with self._lock:
            return {
                "cached_forms": len(self._entries),
                "timeout_minutes": self.timeout.total_seconds() / 60,
            }

# Global save-state store instance
save_state_store = SaveStateStore()

def get_save_state_store() -> SaveStateStore:
    """FastAPI dependency to get the save-state store."""
    return save_state_store
