"""Workspace: the single owner of one user's active session state.

Every mutation goes through here and is persisted, either immediately or
through an AutosaveScheduler.
"""

import logging
import uuid
from pathlib import Path
from typing import Any, Optional

from config.exceptions import ValidationError
from config.settings import Settings
from models.asset_store import AssetStore
from models.enums import RenderMode
from models.kv_store import KeyValueStore, SqliteKeyValueStore
from models.project import ProjectState, Session
from models.series import CharacterRef, EnvironmentRef, SeriesProfile
from models.strip import Strip
from models.volume import ResolvedPage, Volume
from publisher.bundle import export_bundle
from publisher.renderer import VolumeRenderer
from workspace.autosave import AutosaveScheduler
from workspace.session_store import SessionStore

logger = logging.getLogger(__name__)


def _ref_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


class Workspace:
    """One user's view of their sessions and active snapshot."""

    def __init__(
        self,
        store: SessionStore,
        user_id: str,
        autosave: Optional[AutosaveScheduler] = None,
    ):
        if not user_id:
            raise ValidationError("user_id is required")
        self.store = store
        self.user_id = user_id
        self.autosave = autosave
        self._session: Optional[Session] = None

    @classmethod
    def open(
        cls,
        user_id: str,
        settings: Optional[Settings] = None,
        kv: Optional[KeyValueStore] = None,
        autosave: bool = False,
    ) -> "Workspace":
        """Open a workspace on the configured SQLite store (or the given kv).

        With autosave, writes are coalesced for autosave_delay_seconds and
        need a running event loop.
        """
        settings = settings or Settings()
        kv = kv if kv is not None else SqliteKeyValueStore(settings.storage_path)
        store = SessionStore(kv, settings)
        scheduler = AutosaveScheduler(store, settings.autosave_delay_seconds) if autosave else None
        return cls(store, user_id, autosave=scheduler)

    # ---- Session state ----

    @property
    def session(self) -> Session:
        if self._session is None:
            self._session = self.store.active_session(self.user_id)
        return self._session

    @property
    def snapshot(self) -> ProjectState:
        return self.session.snapshot

    def reload(self) -> Session:
        self.flush()
        self._session = None
        return self.session

    def _persist(self, *fields: str) -> None:
        partial = {name: getattr(self.snapshot, name) for name in fields}
        if self.autosave is not None:
            self.autosave.schedule(self.user_id, self.session.id, partial)
            return
        saved = self.store.mutate_snapshot(self.user_id, self.session.id, partial)
        self.session.last_modified = saved.last_modified

    def flush(self) -> None:
        if self.autosave is not None:
            self.autosave.flush()

    # ---- Sessions ----

    def list_sessions(self) -> list[Session]:
        return self.store.load(self.user_id)

    def new_session(self, name: Optional[str] = None) -> Session:
        self.flush()
        self._session = self.store.create(self.user_id, name)
        return self._session

    def switch_session(self, session_id: str) -> Session:
        self.flush()
        self._session = self.store.switch_active(self.user_id, session_id)
        return self._session

    def rename_session(self, session_id: str, name: str) -> Session:
        self.flush()
        session = self.store.rename(self.user_id, session_id, name)
        if self._session is not None and self._session.id == session_id:
            self._session = session
        return session

    def delete_session(self, session_id: str) -> None:
        self.flush()
        self.store.delete(self.user_id, session_id)
        self._session = None

    def export_session(self, session_id: Optional[str] = None) -> str:
        self.flush()
        session = self.store.get(self.user_id, session_id) if session_id else self.session
        return self.store.export_session(session)

    def import_session(self, document: Any) -> Session:
        self.flush()
        self._session = self.store.import_session(self.user_id, document)
        return self._session

    # ---- Series ----

    def series(self, series_id: Optional[str] = None) -> SeriesProfile:
        """The given series, or the active one when no id is passed."""
        series_id = series_id or self.snapshot.active_series_id
        profile = self.snapshot.get_series(series_id) if series_id else None
        if profile is None:
            raise ValidationError(f"Unknown series: {series_id}", {"series_id": series_id})
        return profile

    def set_active_series(self, series_id: str) -> SeriesProfile:
        profile = self.series(series_id)
        self.snapshot.active_series_id = profile.id
        self._persist("active_series_id")
        return profile

    def add_character(
        self,
        series_id: str,
        name: str,
        description: str = "",
        reference_image: Optional[str] = None,
    ) -> CharacterRef:
        profile = self.series(series_id)
        ref = CharacterRef(_ref_id("char"), name, description, reference_image)
        profile.characters.append(ref)
        self._persist("series_profiles")
        return ref

    def add_environment(
        self,
        series_id: str,
        name: str,
        description: str = "",
        reference_image: Optional[str] = None,
    ) -> EnvironmentRef:
        profile = self.series(series_id)
        ref = EnvironmentRef(_ref_id("env"), name, description, reference_image)
        profile.environments.append(ref)
        self._persist("series_profiles")
        return ref

    def update_series(
        self,
        series_id: str,
        art_style_directive: Optional[str] = None,
        background_color: Optional[str] = None,
        default_panel_count: Optional[int] = None,
        style_reference_image: Optional[str] = None,
    ) -> SeriesProfile:
        profile = self.series(series_id)
        max_panels = self.store.settings.max_panel_count
        if default_panel_count is not None and not 1 <= default_panel_count <= max_panels:
            raise ValidationError(
                f"default_panel_count must be between 1 and {max_panels}",
                {"default_panel_count": default_panel_count},
            )
        if art_style_directive is not None:
            profile.art_style_directive = art_style_directive
        if background_color is not None:
            profile.background_color = background_color
        if default_panel_count is not None:
            profile.default_panel_count = default_panel_count
        if style_reference_image is not None:
            profile.style_reference_image = style_reference_image or None
        self._persist("series_profiles")
        return profile

    def set_background_color(self, color: str) -> None:
        self.snapshot.global_background_color = color
        self._persist("global_background_color")

    # ---- Strips ----

    def asset_store(self) -> AssetStore:
        return self.snapshot.asset_store()

    def strips(self, series_id: Optional[str] = None) -> list[Strip]:
        if series_id is None:
            return list(self.snapshot.strips)
        return self.asset_store().list_by_series(series_id)

    def strip(self, strip_id: str) -> Strip:
        strip = self.asset_store().get(strip_id)
        if strip is None:
            raise ValidationError(f"Unknown strip: {strip_id}", {"strip_id": strip_id})
        return strip

    def save_strip(self, pipeline, name: Optional[str] = None) -> Strip:
        """Commit the pipeline's current result into this workspace."""
        strip = pipeline.commit(self.asset_store(), name)
        self._persist("strips")
        logger.info("Saved strip %s to session %s", strip.id, self.session.id)
        return strip

    def attach_export(self, strip_id: str, image: str) -> None:
        self.asset_store().attach_export(strip_id, image)
        self._persist("strips")

    def reopen_strip(self, pipeline, strip_id: str) -> Strip:
        """Load a saved strip into a pipeline built for the strip's series."""
        strip = self.strip(strip_id)
        if pipeline.profile.id != strip.series_id:
            raise ValidationError(
                f"Strip {strip_id} belongs to series {strip.series_id}, not {pipeline.profile.id}",
                {"strip_id": strip_id},
            )
        pipeline.load_strip(strip)
        return strip

    async def bake_strip(self, pipeline, strip_id: str) -> Strip:
        """Bake the export image of a saved strip and attach it in place."""
        self.reopen_strip(pipeline, strip_id)
        state = await pipeline.bake()
        self.attach_export(strip_id, state.export_image)
        logger.info("Baked export image for strip %s", strip_id)
        return self.strip(strip_id)

    async def regenerate_strip(
        self,
        pipeline,
        strip_id: str,
        name: Optional[str] = None,
        bake: bool = False,
    ) -> Strip:
        """Re-render a saved strip from its script and save the result as a new strip.

        The original strip and any volume pages pointing at it are left as they are.
        """
        self.reopen_strip(pipeline, strip_id)
        await pipeline.regenerate()
        if bake:
            await pipeline.bake()
        return self.save_strip(pipeline, name)

    # ---- Volumes ----

    def volume(self, series_id: Optional[str] = None) -> Volume:
        profile = self.series(series_id)
        volume = self.snapshot.get_volume(profile.id)
        if volume is None:
            settings = self.store.settings
            self.snapshot.ensure_volumes(
                created_at=self.store.clock(),
                width=settings.default_page_width,
                height=settings.default_page_height,
            )
            self._persist("volumes")
            volume = self.snapshot.get_volume(profile.id)
        return volume

    def add_page(self, series_id: str, strip_id: str) -> Volume:
        self.strip(strip_id)
        volume = self.volume(series_id)
        volume.add_page(strip_id)
        self._persist("volumes")
        return volume

    def remove_page(self, series_id: str, strip_id: str) -> Volume:
        volume = self.volume(series_id)
        volume.remove_page(strip_id)
        self._persist("volumes")
        return volume

    def move_page(self, series_id: str, from_index: int, to_index: int) -> Volume:
        volume = self.volume(series_id)
        volume.reorder(from_index, to_index)
        self._persist("volumes")
        return volume

    def update_volume(self, series_id: str, **settings) -> Volume:
        volume = self.volume(series_id)
        volume.update_settings(**settings)
        self._persist("volumes")
        return volume

    def set_cover(self, series_id: str, image: Optional[str]) -> Volume:
        volume = self.volume(series_id)
        volume.cover_image = image
        self._persist("volumes")
        return volume

    async def generate_cover(
        self,
        series_id: str,
        generator,
        prompt: Optional[str] = None,
        model: Optional[str] = None,
    ) -> Volume:
        """Render a cover with a CoverGenerator and persist the volume."""
        profile = self.series(series_id)
        volume = self.volume(profile.id)
        await generator.generate(profile, volume, prompt, model=model)
        self._persist("volumes")
        return volume

    def reader_pages(self, series_id: str) -> list[ResolvedPage]:
        """Resolved pages for in-app reading; an empty volume cannot be read."""
        volume = self.volume(series_id)
        if not volume.page_order and not volume.external_pages:
            raise ValidationError("Volume has no pages to read", {"series_id": series_id})
        return volume.resolve_pages(self.asset_store())

    # ---- Exports ----

    def export_pdf(
        self,
        series_id: str,
        mode: RenderMode = RenderMode.MASTER,
        out_dir: Optional[Path] = None,
        renderer=None,
    ) -> Path:
        renderer = renderer or VolumeRenderer(self.store.settings)
        return renderer.export_pdf(self.volume(series_id), self.asset_store(), mode, out_dir)

    def export_bundle(self, series_id: str, out_dir: Optional[Path] = None, loader=None) -> Path:
        return export_bundle(
            self.volume(series_id), self.asset_store(), self.store.settings, out_dir, loader
        )
