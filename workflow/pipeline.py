"""Generation pipeline: prompt → script → master image → export image → saved strip.

Stage machine (stable stages in capitals)::

    IDLE --script--> scripting --> SCRIPTED --render--> rendering --> FINISHED
    FINISHED|EXPORTED --render--> rendering --> FINISHED   (regeneration)
    FINISHED|EXPORTED --bake--> baking --> EXPORTED

One pipeline instance owns one strip-in-progress and runs one action at a
time. A failed stage restores the last stable state and raises
GenerationStageError naming the stage.
"""

import logging
import secrets
import uuid
from typing import Callable, Optional

from agents.art_agent import ArtAgent
from agents.script_agent import ScriptAgent
from config.exceptions import (
    AIServiceError,
    GenerationStageError,
    PipelineBusyError,
    PipelineStateError,
    ValidationError,
)
from config.settings import Settings
from models.asset_store import AssetStore
from models.enums import PipelineStage
from models.project import now_ms
from models.series import SeriesProfile
from models.strip import Strip
from workflow.callbacks import LoggingCallback, PipelineCallback
from workflow.state import ALLOWED_FROM, PipelineState

logger = logging.getLogger(__name__)

AR_TARGET_PREFIX = "DIAL"
# No 0/O or 1/I
AR_TARGET_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def new_ar_target_id() -> str:
    """Mint a scannable sync code like DIAL-7KQ2-MX9P."""
    def segment() -> str:
        return "".join(secrets.choice(AR_TARGET_ALPHABET) for _ in range(4))
    return f"{AR_TARGET_PREFIX}-{segment()}-{segment()}"


def new_strip_id(timestamp: int) -> str:
    return f"strip_{timestamp}_{uuid.uuid4().hex[:8]}"


class GenerationPipeline:
    """Drives one strip from prompt to export-ready artwork."""

    def __init__(
        self,
        profile: SeriesProfile,
        script_agent: Optional[ScriptAgent] = None,
        art_agent: Optional[ArtAgent] = None,
        settings: Optional[Settings] = None,
        callback: Optional[PipelineCallback] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.settings = settings or Settings()
        self.profile = profile
        self.script_agent = script_agent or ScriptAgent(settings=self.settings)
        self.art_agent = art_agent or ArtAgent(settings=self.settings)
        self.callback = callback or LoggingCallback()
        self.clock = clock
        self.art_model: Optional[str] = None
        self.state = PipelineState(panel_count=profile.default_panel_count)
        # (name, master image) of strips committed by this pipeline
        self.session_assets: list[tuple[str, str]] = []
        self._running: Optional[str] = None

    @property
    def stage(self) -> PipelineStage:
        return self.state.stage

    @property
    def busy(self) -> bool:
        return self._running is not None

    # ---- Guards ----

    def _check(self, action: str) -> None:
        if self._running is not None:
            raise PipelineBusyError(action, self._running)
        if self.state.stage not in ALLOWED_FROM[action]:
            raise PipelineStateError(action, self.state.stage.value)

    async def _run_stage(self, transient: PipelineStage, rollback: PipelineState, call):
        """Run one AI call under a transient stage, restoring `rollback` on failure."""
        self.state.stage = transient
        self.callback.on_stage_enter(transient.value)
        try:
            return await call()
        except AIServiceError as e:
            self.state = rollback
            self.callback.on_error(transient.value, e.message)
            raise GenerationStageError(transient.value, e.message) from e
        except Exception as e:
            self.state = rollback
            self.callback.on_error(transient.value, str(e))
            raise

    def _settle(self, stage: PipelineStage) -> None:
        self.state.stage = stage
        self.callback.on_stage_complete(stage.value)

    # ---- Stages ----

    async def _script(self, prompt: str, panel_count: int, randomize: bool) -> None:
        if not 1 <= panel_count <= self.settings.max_panel_count:
            raise ValidationError(
                f"panel_count must be between 1 and {self.settings.max_panel_count}",
                {"panel_count": panel_count},
            )
        # A new script invalidates everything derived from the old one
        self.state = PipelineState(
            prompt=prompt,
            panel_count=panel_count,
            randomize=randomize,
            name=self.state.name,
        )
        rollback = self.state.snapshot()
        script = await self._run_stage(
            PipelineStage.SCRIPTING,
            rollback,
            lambda: self.script_agent.write_script(self.profile, prompt, panel_count, randomize),
        )
        self.state.script = script
        self._settle(PipelineStage.SCRIPTED)

    async def _render(self) -> None:
        rollback = self.state.snapshot()
        image = await self._run_stage(
            PipelineStage.RENDERING,
            rollback,
            lambda: self.art_agent.render_strip(self.profile, self.state.script, model=self.art_model),
        )
        self.state.master_image = image
        # The export copy must always derive from the current master
        self.state.export_image = None
        self._settle(PipelineStage.FINISHED)

    # ---- Actions ----

    def _panel_count(self, panel_count: Optional[int]) -> int:
        return self.profile.default_panel_count if panel_count is None else panel_count

    async def write_script(
        self,
        prompt: str,
        panel_count: Optional[int] = None,
        randomize: bool = False,
    ) -> PipelineState:
        """Script only. On failure the pipeline is back at IDLE."""
        self._check("script")
        self._running = "script"
        try:
            await self._script(prompt, self._panel_count(panel_count), randomize)
        finally:
            self._running = None
        return self.state

    async def generate(
        self,
        prompt: str,
        panel_count: Optional[int] = None,
        randomize: bool = False,
    ) -> PipelineState:
        """Script then render in one action.

        A render failure leaves the pipeline at SCRIPTED so render() can be
        retried without re-scripting.
        """
        self._check("script")
        self._running = "generate"
        try:
            await self._script(prompt, self._panel_count(panel_count), randomize)
            await self._render()
        finally:
            self._running = None
        return self.state

    async def render(self) -> PipelineState:
        """Render the current script (first render or regeneration)."""
        self._check("render")
        self._running = "render"
        try:
            await self._render()
        finally:
            self._running = None
        return self.state

    async def regenerate(self) -> PipelineState:
        """Re-render from the same script; discards any baked export image."""
        if self._running is not None:
            raise PipelineBusyError("regenerate", self._running)
        if self.state.stage not in (PipelineStage.FINISHED, PipelineStage.EXPORTED):
            raise PipelineStateError("regenerate", self.state.stage.value)
        return await self.render()

    async def bake(self) -> PipelineState:
        """Derive the text-free export image from the master image."""
        self._check("bake")
        self._running = "bake"
        try:
            rollback = self.state.snapshot()
            master = self.state.master_image
            image = await self._run_stage(
                PipelineStage.BAKING,
                rollback,
                lambda: self.art_agent.remove_text(master, model=self.art_model),
            )
            self.state.export_image = image
            self._settle(PipelineStage.EXPORTED)
        finally:
            self._running = None
        return self.state

    def commit(self, asset_store: AssetStore, name: Optional[str] = None) -> Strip:
        """Save the current result as a new strip.

        Every call mints a new id and sync code, so saving twice stores two
        strips.
        """
        self._check("commit")
        if name:
            self.state.name = name
        created_at = self.clock()
        strip = Strip(
            id=new_strip_id(created_at),
            ar_target_id=new_ar_target_id(),
            series_id=self.profile.id,
            name=self.state.name,
            prompt=self.state.prompt,
            panel_script=list(self.state.script),
            master_image=self.state.master_image,
            export_image=self.state.export_image,
            panel_count=len(self.state.script),
            created_at=created_at,
        )
        asset_store.append(strip)
        self.session_assets.append((f"{strip.name}_master", strip.master_image))
        logger.info("Committed strip %s (%s)", strip.id, strip.ar_target_id)
        return strip

    def load_strip(self, strip: Strip) -> PipelineState:
        """Reopen a saved strip for regeneration or baking."""
        if self._running is not None:
            raise PipelineBusyError("load", self._running)
        self.state = PipelineState(
            stage=PipelineStage.EXPORTED if strip.export_image else PipelineStage.FINISHED,
            prompt=strip.prompt,
            panel_count=strip.panel_count or len(strip.panel_script),
            name=strip.name,
            script=list(strip.panel_script),
            master_image=strip.master_image,
            export_image=strip.export_image,
        )
        return self.state

    def usage_summary(self) -> dict:
        """AI calls made through this pipeline's agents so far."""
        return {
            "script_calls": self.script_agent.llm.get_usage_summary()["total_calls"],
            "image_calls": self.art_agent.images.get_usage_summary()["total_calls"],
        }
