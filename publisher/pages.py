"""Page planning shared by the PDF and bundle exports."""

import re
from dataclasses import dataclass
from typing import Optional

from models.asset_store import AssetStore
from models.enums import PageKind, RenderMode
from models.strip import Strip
from models.volume import Volume


@dataclass
class PageSlot:
    """One page of an export before any image is loaded."""
    kind: PageKind
    strip: Optional[Strip] = None
    source: Optional[str] = None  # cover image or external URL

    def image(self, mode: RenderMode) -> str:
        """Image to render for this page in the given mode.

        Strips fall back to the master image when no export image exists;
        covers and external pages ignore the mode.
        """
        if self.strip is not None:
            return self.strip.image_for(prefer_export=mode == RenderMode.EXPORT)
        return self.source

    def variants(self) -> list[tuple[str, str]]:
        """(variant, image) pairs for the flat bundle."""
        if self.strip is None:
            return [(self.kind.value, self.source)]
        pairs = [("master", self.strip.master_image)]
        if self.strip.export_image:
            pairs.append(("export", self.strip.export_image))
        return pairs


def plan_pages(volume: Volume, asset_store: AssetStore) -> list[PageSlot]:
    """Cover (if any), resolved strips in order, then external pages."""
    slots = []
    if volume.cover_image:
        slots.append(PageSlot(kind=PageKind.COVER, source=volume.cover_image))
    for page in volume.resolve_pages(asset_store):
        if page.kind == PageKind.STRIP:
            slots.append(PageSlot(kind=PageKind.STRIP, strip=page.strip))
        else:
            slots.append(PageSlot(kind=PageKind.EXTERNAL, source=page.external_url))
    return slots


def safe_filename(title: str, fallback: str = "volume") -> str:
    name = re.sub(r"\s+", "_", title.strip())
    name = re.sub(r'[\\/:*?"<>|]', "", name)
    return name or fallback
