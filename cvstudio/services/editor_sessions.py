"""
Editor Session Registry
In-process editing sessions, one owner per session
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from cvstudio.config import settings
from cvstudio.errors import NotFoundError
from cvstudio.schemas.template import CustomTemplate
from cvstudio.services.layout_editor import LayoutEditor

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class EditorSession:
    id: str
    owner_id: str
    editor: LayoutEditor
    opened_at: datetime = field(default_factory=utc_now)
    last_used_at: datetime = field(default_factory=utc_now)


class EditorSessionRegistry:
    """
    Keeps live editors between pointer events

    Sessions idle for longer than ttl are dropped, and an owner keeps at most
    max_per_owner sessions; opening one more evicts the least recently used.
    """

    def __init__(
        self,
        ttl: Optional[timedelta] = None,
        max_per_owner: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._sessions: Dict[str, EditorSession] = {}
        self.ttl = ttl or timedelta(minutes=settings.EDITOR_SESSION_TTL_MINUTES)
        self.max_per_owner = max_per_owner or settings.EDITOR_MAX_SESSIONS_PER_OWNER
        self.clock = clock

    def open(self, owner_id: str, template: Optional[CustomTemplate] = None) -> EditorSession:
        now = self.clock()
        self._evict_expired(now)

        owned = sorted(
            (s for s in self._sessions.values() if s.owner_id == owner_id),
            key=lambda s: s.last_used_at,
        )
        for stale in owned[:max(0, len(owned) - self.max_per_owner + 1)]:
            logger.info("Editor session %s evicted, owner %s is at the limit", stale.id, owner_id)
            del self._sessions[stale.id]

        session = EditorSession(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            editor=LayoutEditor(template),
            opened_at=now,
            last_used_at=now,
        )
        self._sessions[session.id] = session
        logger.info("Editor session %s opened for owner %s", session.id, owner_id)
        return session

    def get(self, session_id: str, owner_id: str) -> EditorSession:
        now = self.clock()
        self._evict_expired(now)
        session = self._sessions.get(session_id)
        if session is None or session.owner_id != owner_id or session.editor.closed:
            raise NotFoundError("Editor session not found")
        session.last_used_at = now
        return session

    def close(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is not None:
            logger.info("Editor session %s closed", session_id)

    def _evict_expired(self, now: datetime) -> None:
        expired = [s.id for s in self._sessions.values() if now - s.last_used_at > self.ttl]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info("Dropped %d idle editor sessions", len(expired))

    def __len__(self) -> int:
        return len(self._sessions)


# Create singleton instance
editor_sessions = EditorSessionRegistry()
