import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from livenotifier.errors import StatePersistError
from livenotifier.platforms.models import PlatformID
from livenotifier.publishing.job import Job, job_key
from .backends import StateBackend

log = logging.getLogger(__name__)


@dataclass
class State:
    change_cursor: Dict[str, str] = field(default_factory=dict)
    published_ids: List[str] = field(default_factory=list)
    current_live: Dict[str, Optional[Job]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        # current_live is advisory and starts out unknown after every restart
        return {
            "change_cursor": dict(self.change_cursor),
            "published_ids": list(self.published_ids),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "State":
        if not isinstance(data, dict):
            raise ValueError("state record is not an object")
        cursors = data.get("change_cursor") or {}
        published = data.get("published_ids") or []
        if not isinstance(cursors, dict) or not all(isinstance(v, str) for v in cursors.values()):
            raise ValueError("change_cursor must map platform names to strings")
        if not isinstance(published, list) or not all(isinstance(v, str) for v in published):
            raise ValueError("published_ids must be a list of strings")
        # drop duplicates while keeping the oldest-first order
        return cls(change_cursor=dict(cursors), published_ids=list(dict.fromkeys(published)))


class StateStore:
    """Lock-guarded owner of the shared State.

    Every read-modify-write sequence (dedup check, arbitration scan, marking a
    job as published, cursor updates) must run under ``lock``. ``dump`` is
    called after each mutation of persisted fields and raises
    ``StatePersistError`` when the backend fails.
    """

    def __init__(self, backend: StateBackend, max_published: int = 0):
        self.backend = backend
        self.max_published = max_published
        self.state = State()
        self.lock = asyncio.Lock()
        self._published = set()

    async def load(self) -> State:
        try:
            raw = await self.backend.read()
        except Exception as e:
            log.warning("Unable to load state, starting fresh: %s", e)
            raw = None
        state = State()
        if raw is None:
            log.info("No persisted state found, starting fresh")
        else:
            try:
                state = State.from_dict(json.loads(raw))
            except ValueError as e:
                log.warning("Persisted state is unreadable, starting fresh: %s", e)
        self.state = state
        self._published = set(state.published_ids)
        log.info("State loaded published=%s cursors=%s", len(state.published_ids), len(state.change_cursor))
        return state

    async def dump(self) -> None:
        try:
            payload = json.dumps(self.state.to_dict(), ensure_ascii=False).encode("utf-8")
            await self.backend.write(payload)
        except Exception as e:
            raise StatePersistError(f"unable to persist state: {e}") from e

    def is_published(self, platform: PlatformID, external_id: str) -> bool:
        return job_key(platform.value, external_id) in self._published

    def mark_published(self, platform: PlatformID, external_id: str) -> None:
        key = job_key(platform.value, external_id)
        if key in self._published:
            return
        self._published.add(key)
        self.state.published_ids.append(key)
        if self.max_published > 0:
            overflow = len(self.state.published_ids) - self.max_published
            if overflow > 0:
                for dropped in self.state.published_ids[:overflow]:
                    self._published.discard(dropped)
                del self.state.published_ids[:overflow]

    def cursor(self, platform: PlatformID) -> str:
        return self.state.change_cursor.get(platform.value, "")

    def set_cursor(self, platform: PlatformID, cursor: str) -> bool:
        """Store the cursor, returning True when it changed."""
        if self.state.change_cursor.get(platform.value, "") == cursor:
            return False
        self.state.change_cursor[platform.value] = cursor
        return True

    def current_live(self, platform: PlatformID) -> Optional[Job]:
        return self.state.current_live.get(platform.value)

    def set_current_live(self, platform: PlatformID, job: Optional[Job]) -> None:
        self.state.current_live[platform.value] = job
