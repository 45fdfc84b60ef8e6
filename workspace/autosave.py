"""Coalesced snapshot persistence."""

import asyncio
import logging
from typing import Any, Optional

from config.exceptions import ComicStudioError, SessionNotFoundError
from models.project import Session
from workspace.session_store import SessionStore

logger = logging.getLogger(__name__)


class AutosaveScheduler:
    """Delays snapshot writes and merges the ones that arrive in between.

    Pending fields for the same session merge, later values win, and a
    write happens `delay` seconds after the most recent change. flush()
    writes everything pending immediately. A failed timed write is logged
    and its fields stay pending, so the next flush() retries and raises.
    """

    def __init__(self, store: SessionStore, delay: float = 1.0):
        self.store = store
        self.delay = delay
        self._pending: dict[tuple[str, str], dict[str, Any]] = {}
        self._handles: dict[tuple[str, str], asyncio.TimerHandle] = {}

    @property
    def pending(self) -> bool:
        return bool(self._pending)

    def schedule(self, user_id: str, session_id: str, partial: dict[str, Any]) -> None:
        """Queue fields for a session. Must be called from a running event loop."""
        key = (user_id, session_id)
        self._pending.setdefault(key, {}).update(partial)
        handle = self._handles.pop(key, None)
        if handle is not None:
            handle.cancel()
        loop = asyncio.get_running_loop()
        self._handles[key] = loop.call_later(self.delay, self._on_timer, key)

    def _write(self, key: tuple[str, str]) -> Optional[Session]:
        self._handles.pop(key, None)
        partial = self._pending.pop(key, None)
        if not partial:
            return None
        user_id, session_id = key
        logger.debug("Autosave %s/%s: %s", user_id, session_id, ", ".join(sorted(partial)))
        try:
            return self.store.mutate_snapshot(user_id, session_id, partial)
        except SessionNotFoundError:
            # Nothing left to write into
            logger.warning("Autosave dropped changes for deleted session %s/%s", user_id, session_id)
            raise
        except ComicStudioError:
            # Keep the fields for the next attempt; anything queued meanwhile is newer
            self._pending[key] = {**partial, **self._pending.get(key, {})}
            raise

    def _on_timer(self, key: tuple[str, str]) -> None:
        try:
            self._write(key)
        except ComicStudioError:
            logger.exception("Autosave of %s/%s failed", *key)

    def flush(self) -> list[Session]:
        """Write all pending changes now.

        Raises the first write error; fields that were not written stay pending.
        """
        written = []
        for key in list(self._pending):
            handle = self._handles.pop(key, None)
            if handle is not None:
                handle.cancel()
            session = self._write(key)
            if session is not None:
                written.append(session)
        return written

    def cancel(self) -> None:
        """Drop pending changes without writing them."""
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        self._pending.clear()
