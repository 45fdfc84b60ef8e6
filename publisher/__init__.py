"""Publisher package — volume PDF export, ZIP bundles, and dialogue sheets."""

from publisher.loader import ImageLoader, ImageLoadError
from publisher.pages import PageSlot, plan_pages, safe_filename
from publisher.renderer import RenderedPage, RenderedVolume, VolumeRenderer
from publisher.bundle import export_bundle, export_session_assets
from publisher.csv_export import dialogue_csv, export_dialogue_csv

__all__ = [
    "ImageLoader",
    "ImageLoadError",
    "PageSlot",
    "plan_pages",
    "safe_filename",
    "RenderedPage",
    "RenderedVolume",
    "VolumeRenderer",
    "export_bundle",
    "export_session_assets",
    "dialogue_csv",
    "export_dialogue_csv",
]
