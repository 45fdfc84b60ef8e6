"""Workspace package — sessions, import/export documents, and the workspace facade."""

from workspace.documents import parse_session_document, session_document
from workspace.session_store import SessionStore
from workspace.autosave import AutosaveScheduler
from workspace.workspace import Workspace

__all__ = [
    "parse_session_document",
    "session_document",
    "SessionStore",
    "AutosaveScheduler",
    "Workspace",
]
