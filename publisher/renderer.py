"""Volume export: composes pages onto the volume canvas and writes a PDF.

Every image is loaded and decoded before anything is composed, so a
failing page aborts the export with one ExportError listing all failures
and no file is written.
"""

import io
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from config.exceptions import ExportError
from config.settings import Settings
from models.asset_store import AssetStore
from models.enums import Orientation, PageKind, PageNumberPosition, RenderMode
from models.volume import Volume
from publisher.loader import ImageLoader, ImageLoadError
from publisher.pages import PageSlot, plan_pages, safe_filename
from tools.image_utils import open_image, stretch_to_canvas

logger = logging.getLogger(__name__)

LOGO_SIZE = 40
LOGO_OFFSET = (20, 20)
PAGE_NUMBER_MARGIN_X = 20
PAGE_NUMBER_INSET_Y = 30
FONT_CANDIDATES = ("DejaVuSans.ttf", "Arial.ttf", "LiberationSans-Regular.ttf")


@dataclass
class RenderedPage:
    kind: PageKind
    image: Image.Image
    label: Optional[str] = None  # page number text, content pages only


@dataclass
class RenderedVolume:
    volume_id: str
    title: str
    mode: RenderMode
    orientation: Orientation
    pages: list[RenderedPage] = field(default_factory=list)

    @property
    def content_pages(self) -> list[RenderedPage]:
        return [p for p in self.pages if p.kind != PageKind.COVER]


def load_font(size: int) -> ImageFont.ImageFont:
    for name in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default()


def page_number_font(volume: Volume) -> ImageFont.ImageFont:
    return load_font(max(12, volume.height // 60))


def page_number_origin(draw: ImageDraw.ImageDraw, volume: Volume, label: str, font) -> tuple[int, int]:
    """Where to draw a page label so its right edge sits PAGE_NUMBER_MARGIN_X inside the canvas."""
    if volume.page_number_position == PageNumberPosition.TOP:
        baseline = PAGE_NUMBER_INSET_Y
    else:
        baseline = volume.height - PAGE_NUMBER_INSET_Y
    _, _, right, bottom = draw.textbbox((0, 0), label, font=font)
    return volume.width - PAGE_NUMBER_MARGIN_X - right, baseline - bottom


def check_exportable(volume: Volume) -> None:
    if not volume.page_order and not volume.external_pages:
        raise ExportError("Add some pages to export", [])


def plan_export(volume: Volume, asset_store: AssetStore) -> list[PageSlot]:
    """Plan the pages of an exportable volume.

    Dangling strip pages are skipped; a volume left with nothing to show
    is rejected.
    """
    check_exportable(volume)
    slots = plan_pages(volume, asset_store)
    if not slots:
        raise ExportError("None of the volume's pages could be found", [])
    return slots


def load_slots(
    slots: list[tuple[str, str]],
    loader: ImageLoader,
) -> list[tuple[str, bytes]]:
    """Load (label, source) pairs, collecting every failure before raising."""
    loaded, failures = [], []
    for label, source in slots:
        try:
            loaded.append(loader.load(source))
        except ImageLoadError as e:
            failures.append(f"{label}: {e}")
    if failures:
        raise ExportError(f"{len(failures)} page(s) could not be loaded", failures)
    return loaded


class VolumeRenderer:
    """Deterministic page compositor for volume exports."""

    def __init__(self, settings: Optional[Settings] = None, loader: Optional[ImageLoader] = None):
        self.settings = settings or Settings()
        self.loader = loader

    def _loader(self) -> ImageLoader:
        return self.loader or ImageLoader(timeout=self.settings.external_fetch_timeout_seconds)

    def _decode(self, volume: Volume, slots: list[PageSlot], mode: RenderMode) -> list[Image.Image]:
        labelled = [(_slot_label(i, s), s.image(mode)) for i, s in enumerate(slots)]
        with self._loader() as loader:
            loaded = load_slots(labelled, loader)

        images, failures = [], []
        for (label, _), (_, data) in zip(labelled, loaded):
            try:
                images.append(stretch_to_canvas(open_image(data), volume.width, volume.height))
            except ValueError as e:
                failures.append(f"{label}: {e}")
        if failures:
            raise ExportError(f"{len(failures)} page(s) could not be decoded", failures)
        return images

    def _logo(self, volume: Volume) -> Optional[Image.Image]:
        if not volume.logo_image:
            return None
        with self._loader() as loader:
            (_, data), = load_slots([("logo", volume.logo_image)], loader)
        try:
            return stretch_to_canvas(open_image(data), LOGO_SIZE, LOGO_SIZE)
        except ValueError as e:
            raise ExportError("Logo could not be decoded", [f"logo: {e}"]) from e

    def render(self, volume: Volume, asset_store: AssetStore, mode: RenderMode) -> RenderedVolume:
        """Compose every page of the volume in memory."""
        mode = RenderMode(mode)
        slots = plan_export(volume, asset_store)
        images = self._decode(volume, slots, mode)
        logo = self._logo(volume)

        orientation = volume.orientation
        result = RenderedVolume(volume.id, volume.title, mode, orientation)
        total = sum(1 for s in slots if s.kind != PageKind.COVER)
        font = page_number_font(volume)
        number = 0
        for slot, image in zip(slots, images):
            if slot.kind == PageKind.COVER:
                result.pages.append(RenderedPage(PageKind.COVER, image))
                continue
            number += 1
            label = None
            draw = ImageDraw.Draw(image)
            if logo is not None:
                image.paste(logo, LOGO_OFFSET)
            if volume.show_page_numbers:
                label = f"Page {number} of {total}"
                self._draw_page_number(draw, volume, label, font)
            result.pages.append(RenderedPage(slot.kind, image, label))

        logger.info(
            "Rendered volume %s (%s, %s): %d pages",
            volume.id, mode.value, orientation.value, len(result.pages),
        )
        return result

    @staticmethod
    def _draw_page_number(draw: ImageDraw.ImageDraw, volume: Volume, label: str, font) -> None:
        draw.text(page_number_origin(draw, volume, label, font), label, fill=(0, 0, 0), font=font)

    def to_pdf(self, rendered: RenderedVolume, created_at: int = 0) -> bytes:
        """Serialize rendered pages into one PDF, one image per page at 72 dpi."""
        first, *rest = [p.image for p in rendered.pages]
        stamp = time.gmtime(created_at // 1000)
        buffer = io.BytesIO()
        first.save(
            buffer,
            format="PDF",
            save_all=True,
            append_images=rest,
            resolution=72.0,
            title=rendered.title,
            subject=f"{rendered.mode.value} export",
            creator="comicstudio",
            creationDate=stamp,
            modDate=stamp,
        )
        return buffer.getvalue()

    def export_pdf(
        self,
        volume: Volume,
        asset_store: AssetStore,
        mode: RenderMode = RenderMode.MASTER,
        out_dir: Optional[Path] = None,
    ) -> Path:
        """Render and write `<Title>_<mode>.pdf`; returns the written path."""
        mode = RenderMode(mode)
        rendered = self.render(volume, asset_store, mode)
        data = self.to_pdf(rendered, volume.created_at)
        out_dir = Path(out_dir or self.settings.export_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / f"{safe_filename(volume.title)}_{mode.value}.pdf"
        path.write_bytes(data)
        logger.info("Wrote %s (%d bytes)", path, len(data))
        return path


def _slot_label(index: int, slot: PageSlot) -> str:
    if slot.strip is not None:
        return f"page {index} ({slot.strip.id})"
    return f"page {index} ({slot.kind.value})"
