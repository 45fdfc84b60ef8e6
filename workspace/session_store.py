"""Per-user workspace sessions persisted in a key-value store.

Key layout::

    <prefix>:sessions:<user_id>        JSON list of sessions
    <prefix>:active_session:<user_id>  id of the active session

Every method takes the user id explicitly; nothing is read from ambient
state. Each write persists the user's full session list.
"""

import dataclasses
import json
import logging
import uuid
from typing import Any, Callable, Optional

from config.exceptions import (
    LastSessionError,
    SessionNotFoundError,
    StorageError,
    ValidationError,
)
from config.settings import Settings
from models.catalog import default_series
from models.kv_store import KeyValueStore
from models.project import SNAPSHOT_FIELDS, ProjectState, Session, now_ms
from workspace.documents import parse_session_document, session_document

logger = logging.getLogger(__name__)

DEFAULT_SESSION_NAME = "Chronicle 1"


def new_session_id() -> str:
    return f"session_{uuid.uuid4().hex[:12]}"


class SessionStore:
    """Create, switch, rename, delete, import and export a user's sessions."""

    def __init__(
        self,
        kv: KeyValueStore,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.kv = kv
        self.settings = settings or Settings()
        self.clock = clock or now_ms

    # ---- Keys ----

    def _sessions_key(self, user_id: str) -> str:
        return f"{self.settings.storage_prefix}:sessions:{user_id}"

    def _active_key(self, user_id: str) -> str:
        return f"{self.settings.storage_prefix}:active_session:{user_id}"

    # ---- Raw persistence ----

    def _read(self, user_id: str) -> list[Session]:
        raw = self.kv.get(self._sessions_key(user_id))
        if raw is None:
            return []
        try:
            return [Session.from_dict(item) for item in json.loads(raw)]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise StorageError(
                f"Stored sessions are unreadable: {e}", {"user_id": user_id}
            ) from e

    def _write(self, user_id: str, sessions: list[Session]) -> None:
        payload = json.dumps([s.to_dict() for s in sessions], ensure_ascii=False)
        self.kv.set(self._sessions_key(user_id), payload)

    def _set_active(self, user_id: str, session_id: str) -> None:
        self.kv.set(self._active_key(user_id), session_id)

    def _find(self, sessions: list[Session], user_id: str, session_id: str) -> Session:
        for session in sessions:
            if session.id == session_id:
                return session
        raise SessionNotFoundError(user_id, session_id)

    def _stamp(self, previous: int) -> int:
        return max(self.clock(), previous)

    # ---- Snapshots ----

    def fresh_snapshot(self) -> ProjectState:
        """A new workspace seeded with the built-in series catalogue."""
        now = self.clock()
        profiles = default_series(self.settings.default_panel_count)
        snapshot = ProjectState(
            series_profiles=profiles,
            active_series_id=profiles[0].id if profiles else None,
            global_background_color=self.settings.default_background_color,
            version=self.settings.workspace_version,
            timestamp=now,
        )
        self._ensure_volumes(snapshot, now)
        return snapshot

    def _ensure_volumes(self, snapshot: ProjectState, created_at: int) -> bool:
        added = snapshot.ensure_volumes(
            created_at=created_at,
            width=self.settings.default_page_width,
            height=self.settings.default_page_height,
        )
        for volume in added:
            logger.debug("Synthesized default volume for series %s", volume.id)
        return bool(added)

    def _new_session(self, user_id: str, name: str, snapshot: ProjectState) -> Session:
        return Session(
            id=new_session_id(),
            owner_id=user_id,
            name=name,
            last_modified=self.clock(),
            snapshot=snapshot,
        )

    # ---- Public API ----

    def load(self, user_id: str) -> list[Session]:
        """Load a user's sessions, seeding one default session if none exist.

        Series without a volume get a default empty one, so the volume list
        always covers every series.
        """
        sessions = self._read(user_id)
        changed = False
        if not sessions:
            sessions = [self._new_session(user_id, DEFAULT_SESSION_NAME, self.fresh_snapshot())]
            changed = True
            logger.info("Seeded default session for user %s", user_id)
        now = self.clock()
        for session in sessions:
            changed = self._ensure_volumes(session.snapshot, now) or changed
        if changed:
            self._write(user_id, sessions)

        active_id = self.kv.get(self._active_key(user_id))
        if active_id not in {s.id for s in sessions}:
            self._set_active(user_id, sessions[0].id)
        return sessions

    def active_session(self, user_id: str) -> Session:
        sessions = self.load(user_id)
        return self._find(sessions, user_id, self.kv.get(self._active_key(user_id)))

    def get(self, user_id: str, session_id: str) -> Session:
        return self._find(self.load(user_id), user_id, session_id)

    def switch_active(self, user_id: str, session_id: str) -> Session:
        session = self.get(user_id, session_id)
        self._set_active(user_id, session_id)
        logger.info("User %s switched to session %s", user_id, session_id)
        return session

    def mutate_snapshot(self, user_id: str, session_id: str, partial: dict[str, Any]) -> Session:
        """Shallow-merge snapshot fields into a session and persist.

        `partial` maps ProjectState field names to replacement values.
        """
        unknown = set(partial) - set(SNAPSHOT_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unknown snapshot fields: {', '.join(sorted(unknown))}",
                {"fields": sorted(unknown)},
            )
        sessions = self.load(user_id)
        session = self._find(sessions, user_id, session_id)
        session.snapshot = dataclasses.replace(session.snapshot, **partial)
        session.last_modified = self._stamp(session.last_modified)
        self._write(user_id, sessions)
        return session

    def create(self, user_id: str, name: Optional[str] = None) -> Session:
        """Add a session with a fresh snapshot and make it active."""
        sessions = self.load(user_id)
        session = self._new_session(
            user_id, name or f"Chronicle {len(sessions) + 1}", self.fresh_snapshot()
        )
        sessions.append(session)
        self._write(user_id, sessions)
        self._set_active(user_id, session.id)
        logger.info("Created session %s for user %s", session.id, user_id)
        return session

    def rename(self, user_id: str, session_id: str, name: str) -> Session:
        name = name.strip()
        if not name:
            raise ValidationError("Session name must not be empty")
        sessions = self.load(user_id)
        session = self._find(sessions, user_id, session_id)
        session.name = name
        session.last_modified = self._stamp(session.last_modified)
        self._write(user_id, sessions)
        return session

    def delete(self, user_id: str, session_id: str) -> None:
        """Delete a session; the user's last session cannot be deleted.

        Deleting the active session activates the first remaining one.
        """
        sessions = self.load(user_id)
        self._find(sessions, user_id, session_id)
        if len(sessions) == 1:
            raise LastSessionError(user_id)
        remaining = [s for s in sessions if s.id != session_id]
        self._write(user_id, remaining)
        if self.kv.get(self._active_key(user_id)) == session_id:
            self._set_active(user_id, remaining[0].id)
        logger.info("Deleted session %s for user %s", session_id, user_id)

    def export_session(self, session: Session) -> str:
        return session_document(session)

    def import_session(self, user_id: str, document: Any) -> Session:
        """Store a validated session document as a new session for this user.

        The embedded snapshot is kept as-is. A malformed document raises
        DocumentError and leaves stored sessions untouched.
        """
        data = parse_session_document(document)
        snapshot = ProjectState.from_dict(data["snapshot"])
        sessions = self.load(user_id)
        session = self._new_session(user_id, data["name"], snapshot)
        sessions.append(session)
        self._write(user_id, sessions)
        self._set_active(user_id, session.id)
        logger.info("Imported session %s as %s for user %s", data["id"], session.id, user_id)
        return session
