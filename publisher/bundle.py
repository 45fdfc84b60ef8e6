"""Flat ZIP exports: volume bundles and per-session asset archives."""

import io
import logging
import zipfile
from pathlib import Path
from typing import Optional

from config.exceptions import ExportError
from config.settings import Settings
from models.asset_store import AssetStore
from models.volume import Volume
from publisher.loader import ImageLoader
from publisher.pages import safe_filename
from publisher.renderer import load_slots, plan_export
from tools.image_utils import extension_for

logger = logging.getLogger(__name__)

# Fixed entry timestamp keeps archives reproducible
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


def _write_entries(entries: list[tuple[str, bytes]]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries:
            info = zipfile.ZipInfo(name, date_time=ZIP_EPOCH)
            info.compress_type = zipfile.ZIP_DEFLATED
            zf.writestr(info, data)
    return buffer.getvalue()


def bundle_entries(
    volume: Volume,
    asset_store: AssetStore,
    loader: ImageLoader,
) -> list[tuple[str, bytes]]:
    """Entries in page order; strips contribute one entry per image variant.

    Image bytes are stored as loaded, without re-encoding.
    """
    sources, names = [], []
    for index, slot in enumerate(plan_export(volume, asset_store)):
        stem = f"{index:03d}_{slot.kind.value}"
        if slot.strip is not None:
            stem = f"{index:03d}_{safe_filename(slot.strip.name, slot.strip.id)}"
        for variant, image in slot.variants():
            suffix = f"_{variant}" if slot.strip is not None else ""
            names.append(f"{stem}{suffix}")
            sources.append((f"page {index} {variant}", image))

    loaded = load_slots(sources, loader)
    return [
        (f"{name}.{extension_for(mime_type)}", data)
        for name, (mime_type, data) in zip(names, loaded)
    ]


def export_bundle(
    volume: Volume,
    asset_store: AssetStore,
    settings: Optional[Settings] = None,
    out_dir: Optional[Path] = None,
    loader: Optional[ImageLoader] = None,
) -> Path:
    """Write `<Title>_bundle.zip` for the volume; returns the written path."""
    settings = settings or Settings()
    loader = loader or ImageLoader(timeout=settings.external_fetch_timeout_seconds)
    with loader:
        entries = bundle_entries(volume, asset_store, loader)
    data = _write_entries(entries)
    out_dir = Path(out_dir or settings.export_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"{safe_filename(volume.title)}_bundle.zip"
    path.write_bytes(data)
    logger.info("Wrote bundle %s (%d entries)", path, len(entries))
    return path


def export_session_assets(
    assets: list[tuple[str, str]],
    out_path: Path,
) -> Path:
    """Archive the (name, image) pairs produced during one pipeline session."""
    if not assets:
        raise ExportError("No assets generated in this session", [])
    with ImageLoader() as loader:
        loaded = load_slots(assets, loader)
    entries, seen = [], {}
    for (name, _), (mime_type, data) in zip(assets, loaded):
        stem = safe_filename(name, "asset")
        # Repeated names get a counter suffix
        count = seen.get(stem, 0)
        seen[stem] = count + 1
        if count:
            stem = f"{stem}_{count + 1}"
        entries.append((f"{stem}.{extension_for(mime_type)}", data))
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(_write_entries(entries))
    logger.info("Wrote session assets %s (%d entries)", out_path, len(entries))
    return out_path
