"""Workspace snapshot and session data models."""

import time
from dataclasses import dataclass, field
from typing import Optional

from models.asset_store import AssetStore
from models.series import SeriesProfile
from models.strip import Strip
from models.volume import Volume


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


# Snapshot fields that may be replaced through a partial update
SNAPSHOT_FIELDS = (
    "series_profiles",
    "strips",
    "volumes",
    "active_series_id",
    "global_background_color",
    "version",
    "timestamp",
)


@dataclass
class ProjectState:
    """One complete workspace: series, saved strips, volumes, active pointer."""
    series_profiles: list[SeriesProfile] = field(default_factory=list)
    strips: list[Strip] = field(default_factory=list)     # newest first
    volumes: list[Volume] = field(default_factory=list)
    active_series_id: Optional[str] = None
    global_background_color: str = "#dbdac8"
    version: str = "3.1.3"
    timestamp: int = 0

    def asset_store(self) -> AssetStore:
        return AssetStore(self.strips)

    def get_series(self, series_id: str) -> Optional[SeriesProfile]:
        for profile in self.series_profiles:
            if profile.id == series_id:
                return profile
        return None

    def get_volume(self, volume_id: str) -> Optional[Volume]:
        for volume in self.volumes:
            if volume.id == volume_id:
                return volume
        return None

    def ensure_volumes(self, created_at: int = 0, width: int = 1920, height: int = 1080) -> list[Volume]:
        """Add a default empty volume for every series lacking one.

        Returns the volumes that were added.
        """
        existing = {v.id for v in self.volumes}
        added = [
            Volume.default_for(p, created_at=created_at, width=width, height=height)
            for p in self.series_profiles
            if p.id not in existing
        ]
        self.volumes.extend(added)
        return added

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "seriesProfiles": [p.to_dict() for p in self.series_profiles],
            "strips": [s.to_dict() for s in self.strips],
            "volumes": [v.to_dict() for v in self.volumes],
            "activeSeriesId": self.active_series_id,
            "globalBackgroundColor": self.global_background_color,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectState":
        return cls(
            series_profiles=[SeriesProfile.from_dict(p) for p in data.get("seriesProfiles", [])],
            strips=[Strip.from_dict(s) for s in data.get("strips", [])],
            volumes=[Volume.from_dict(v) for v in data.get("volumes", [])],
            active_series_id=data.get("activeSeriesId"),
            global_background_color=data.get("globalBackgroundColor", "#dbdac8"),
            version=data.get("version", "3.1.3"),
            timestamp=data.get("timestamp", 0),
        )


@dataclass
class Session:
    """A user's named, persisted workspace ("chronicle")."""
    id: str
    owner_id: str
    name: str
    last_modified: int
    snapshot: ProjectState

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "name": self.name,
            "lastModified": self.last_modified,
            "snapshot": self.snapshot.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        return cls(
            id=data["id"],
            owner_id=data["ownerId"],
            name=data["name"],
            last_modified=data["lastModified"],
            snapshot=ProjectState.from_dict(data["snapshot"]),
        )
