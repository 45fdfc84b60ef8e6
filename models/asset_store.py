"""Append-only store of saved strips."""

import logging
from typing import Optional

from config.exceptions import DuplicateAssetError
from models.strip import Strip

logger = logging.getLogger(__name__)


class AssetStore:
    """Append-only log of strips, newest first.

    Wraps the snapshot's strip list in place, so appends are visible to
    whoever owns that list. The series id of a strip is not checked.
    """

    def __init__(self, strips: Optional[list[Strip]] = None):
        self.strips = strips if strips is not None else []

    def __len__(self) -> int:
        return len(self.strips)

    def append(self, strip: Strip) -> None:
        if self.get(strip.id) is not None:
            raise DuplicateAssetError(strip.id)
        self.strips.insert(0, strip)
        logger.info("Strip %s saved for series %s", strip.id, strip.series_id)

    def get(self, strip_id: str) -> Optional[Strip]:
        for strip in self.strips:
            if strip.id == strip_id:
                return strip
        return None

    def list_by_series(self, series_id: str) -> list[Strip]:
        return [s for s in self.strips if s.series_id == series_id]

    def attach_export(self, strip_id: str, image: str) -> None:
        """Attach a baked export image; unknown ids are ignored."""
        strip = self.get(strip_id)
        if strip is None:
            logger.debug("attach_export: unknown strip %s", strip_id)
            return
        strip.export_image = image
