"""Models package — domain records, asset store, and key-value storage."""

from models.asset_store import AssetStore
from models.catalog import default_series
from models.kv_store import KeyValueStore, InMemoryKeyValueStore, SqliteKeyValueStore
from models.project import ProjectState, Session
from models.series import SeriesProfile, CharacterRef, EnvironmentRef
from models.strip import Strip, Panel, DialogueLine
from models.volume import Volume, ResolvedPage
from models.enums import (
    PipelineStage,
    RenderMode,
    PageNumberPosition,
    Orientation,
    PageKind,
)

__all__ = [
    "AssetStore",
    "default_series",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SqliteKeyValueStore",
    "ProjectState",
    "Session",
    "SeriesProfile",
    "CharacterRef",
    "EnvironmentRef",
    "Strip",
    "Panel",
    "DialogueLine",
    "Volume",
    "ResolvedPage",
    "PipelineStage",
    "RenderMode",
    "PageNumberPosition",
    "Orientation",
    "PageKind",
]
