"""Configuration package — settings, logging, and exceptions."""

from config.exceptions import (
    ComicStudioError,
    AIServiceError,
    AITransportError,
    AITimeoutError,
    AIResponseParseError,
    PipelineError,
    PipelineBusyError,
    PipelineStateError,
    GenerationStageError,
    AssetStoreError,
    DuplicateAssetError,
    StorageError,
    SessionError,
    SessionNotFoundError,
    LastSessionError,
    DocumentError,
    ExportError,
    ValidationError,
    InvalidConfigError,
    InvalidVolumeSettingsError,
)
from config.logging_config import setup_logging
from config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "setup_logging",
    "ComicStudioError",
    "AIServiceError",
    "AITransportError",
    "AITimeoutError",
    "AIResponseParseError",
    "PipelineError",
    "PipelineBusyError",
    "PipelineStateError",
    "GenerationStageError",
    "AssetStoreError",
    "DuplicateAssetError",
    "StorageError",
    "SessionError",
    "SessionNotFoundError",
    "LastSessionError",
    "DocumentError",
    "ExportError",
    "ValidationError",
    "InvalidConfigError",
    "InvalidVolumeSettingsError",
]
