"""Volume (book) data model and page-list operations."""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from config.exceptions import InvalidVolumeSettingsError
from models.enums import Orientation, PageKind, PageNumberPosition

if TYPE_CHECKING:
    from models.asset_store import AssetStore
    from models.series import SeriesProfile
    from models.strip import Strip

logger = logging.getLogger(__name__)

DEFAULT_PAGE_WIDTH = 1920
DEFAULT_PAGE_HEIGHT = 1080


@dataclass
class ResolvedPage:
    """A page after resolving a volume reference: a strip or an external URL."""
    kind: PageKind
    strip: Optional["Strip"] = None
    external_url: Optional[str] = None


@dataclass
class Volume:
    """An ordered assembly of pages exportable as one document.

    `id` equals the owning series id (one volume per series).
    """
    id: str
    title: str
    description: str = ""
    cover_image: Optional[str] = None
    page_order: list[str] = field(default_factory=list)
    external_pages: list[str] = field(default_factory=list)
    width: int = DEFAULT_PAGE_WIDTH
    height: int = DEFAULT_PAGE_HEIGHT
    logo_image: Optional[str] = None
    show_page_numbers: bool = True
    page_number_position: PageNumberPosition = PageNumberPosition.BOTTOM
    created_at: int = 0

    @classmethod
    def default_for(
        cls,
        profile: "SeriesProfile",
        created_at: int = 0,
        width: int = DEFAULT_PAGE_WIDTH,
        height: int = DEFAULT_PAGE_HEIGHT,
    ) -> "Volume":
        """Empty volume synthesized for a series that has none."""
        return cls(
            id=profile.id,
            title=profile.name,
            description=f"Production notes for {profile.name}",
            width=width,
            height=height,
            created_at=created_at,
        )

    @property
    def orientation(self) -> Orientation:
        return Orientation.LANDSCAPE if self.width > self.height else Orientation.PORTRAIT

    # ---- Page list ----

    def add_page(self, strip_id: str) -> None:
        """Append a strip reference; no-op if already bound."""
        if strip_id in self.page_order:
            return
        self.page_order.append(strip_id)

    def remove_page(self, strip_id: str) -> None:
        self.page_order = [p for p in self.page_order if p != strip_id]

    def reorder(self, from_index: int, to_index: int) -> None:
        """Move one page, keeping the relative order of all others."""
        count = len(self.page_order)
        for index in (from_index, to_index):
            if not 0 <= index < count:
                raise IndexError(f"Page index {index} out of range (0..{count - 1})")
        if from_index == to_index:
            return
        item = self.page_order.pop(from_index)
        self.page_order.insert(to_index, item)

    def resolve_pages(self, asset_store: "AssetStore") -> list[ResolvedPage]:
        """Resolve strip references then external URLs, in page order.

        References to strips missing from the store are skipped.
        """
        pages = []
        for strip_id in self.page_order:
            strip = asset_store.get(strip_id)
            if strip is None:
                logger.debug("Volume %s: skipping dangling page %s", self.id, strip_id)
                continue
            pages.append(ResolvedPage(kind=PageKind.STRIP, strip=strip))
        for url in self.external_pages:
            pages.append(ResolvedPage(kind=PageKind.EXTERNAL, external_url=url))
        return pages

    # ---- Settings ----

    def update_settings(
        self,
        title: Optional[str] = None,
        description: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        show_page_numbers: Optional[bool] = None,
        page_number_position: Optional[PageNumberPosition | str] = None,
        external_pages: Optional[list[str]] = None,
        logo_image: Optional[str] = None,
    ) -> None:
        """Apply the given settings; an empty logo_image clears the logo."""
        for name, value in (("width", width), ("height", height)):
            if value is not None and value < 1:
                raise InvalidVolumeSettingsError(name, value)
        if page_number_position is not None:
            try:
                page_number_position = PageNumberPosition(page_number_position)
            except ValueError:
                raise InvalidVolumeSettingsError("page_number_position", page_number_position) from None
        if title is not None:
            self.title = title
        if description is not None:
            self.description = description
        if width is not None:
            self.width = width
        if height is not None:
            self.height = height
        if show_page_numbers is not None:
            self.show_page_numbers = show_page_numbers
        if page_number_position is not None:
            self.page_number_position = page_number_position
        if external_pages is not None:
            self.external_pages = [url.strip() for url in external_pages if url.strip()]
        if logo_image is not None:
            self.logo_image = logo_image or None

    # ---- Serialization ----

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "pageOrder": list(self.page_order),
            "externalPages": list(self.external_pages),
            "width": self.width,
            "height": self.height,
            "showPageNumbers": self.show_page_numbers,
            "pageNumberPosition": self.page_number_position.value,
            "createdAt": self.created_at,
        }
        if self.cover_image is not None:
            data["coverImage"] = self.cover_image
        if self.logo_image is not None:
            data["logoImage"] = self.logo_image
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Volume":
        return cls(
            id=data["id"],
            title=data["title"],
            description=data.get("description", ""),
            cover_image=data.get("coverImage"),
            page_order=list(data.get("pageOrder", [])),
            external_pages=list(data.get("externalPages", [])),
            width=data.get("width", DEFAULT_PAGE_WIDTH),
            height=data.get("height", DEFAULT_PAGE_HEIGHT),
            logo_image=data.get("logoImage"),
            show_page_numbers=data.get("showPageNumbers", True),
            page_number_position=PageNumberPosition(data.get("pageNumberPosition", "bottom")),
            created_at=data.get("createdAt", 0),
        )
