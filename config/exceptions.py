"""Custom exception hierarchy for the comic studio."""

from typing import Optional


class ComicStudioError(Exception):
    """Base exception for all comic studio errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# ---- AI Service Errors ----

class AIServiceError(ComicStudioError):
    """Base exception for script/image service errors."""


class AITransportError(AIServiceError):
    """The AI service call failed before a usable response arrived."""


class AITimeoutError(AITransportError):
    """The AI service call timed out."""

    def __init__(self, message: str = "AI service request timed out", timeout: Optional[float] = None):
        details = {}
        if timeout is not None:
            details["timeout"] = timeout
        super().__init__(message, details)
        self.timeout = timeout


class AIResponseParseError(AIServiceError):
    """AI response did not match the expected shape (script or image)."""

    def __init__(self, message: str = "Failed to parse AI response", raw_response: str = ""):
        details = {"raw_response": raw_response[:200]} if raw_response else {}
        super().__init__(message, details)
        self.raw_response = raw_response


# ---- Pipeline Errors ----

class PipelineError(ComicStudioError):
    """Base exception for generation pipeline errors."""


class PipelineBusyError(PipelineError):
    """An action was started while another one is still in flight."""

    def __init__(self, action: str, running: str):
        super().__init__(
            f"Cannot start '{action}' while '{running}' is in progress",
            {"action": action, "running": running},
        )
        self.action = action
        self.running = running


class PipelineStateError(PipelineError):
    """Action is not allowed from the pipeline's current stage."""

    def __init__(self, action: str, stage: str):
        super().__init__(
            f"Cannot '{action}' from stage '{stage}'",
            {"action": action, "stage": stage},
        )
        self.action = action
        self.stage = stage


class GenerationStageError(PipelineError):
    """A pipeline stage failed; the pipeline rolled back to its last stable stage."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage} failed: {message}", {"stage": stage})
        self.stage = stage


# ---- Asset Store Errors ----

class AssetStoreError(ComicStudioError):
    """Base exception for asset store errors."""


class DuplicateAssetError(AssetStoreError):
    """A strip with the same id is already stored."""

    def __init__(self, strip_id: str):
        super().__init__(f"Strip already stored: {strip_id}", {"strip_id": strip_id})
        self.strip_id = strip_id


# ---- Storage / Session Errors ----

class StorageError(ComicStudioError):
    """Key-value storage failed or holds unreadable data."""


class SessionError(ComicStudioError):
    """Base exception for workspace session errors."""


class SessionNotFoundError(SessionError):
    """No session with the given id exists for the user."""

    def __init__(self, user_id: str, session_id: str):
        super().__init__(
            f"Session not found: {session_id}",
            {"user_id": user_id, "session_id": session_id},
        )


class LastSessionError(SessionError):
    """Deleting the user's only remaining session is forbidden."""

    def __init__(self, user_id: str):
        super().__init__("Cannot delete the last remaining session", {"user_id": user_id})


class DocumentError(ComicStudioError):
    """An imported workspace document is malformed."""

    def __init__(self, message: str, errors: Optional[list] = None):
        details = {"errors": len(errors)} if errors else {}
        super().__init__(message, details)
        self.errors = errors or []


# ---- Export Errors ----

class ExportError(ComicStudioError):
    """A volume export could not be assembled; no output was written."""

    def __init__(self, message: str, failures: Optional[list[str]] = None):
        details = {"failures": len(failures)} if failures else {}
        super().__init__(message, details)
        self.failures = failures or []


# ---- Validation Errors ----

class ValidationError(ComicStudioError):
    """Input validation failed."""


class InvalidConfigError(ValidationError):
    """Configuration value is invalid."""


class InvalidVolumeSettingsError(ValidationError):
    """Volume settings value is out of range."""

    def __init__(self, field_name: str, value):
        super().__init__(
            f"Invalid volume setting {field_name}={value!r}",
            {"field": field_name, "value": value},
        )
