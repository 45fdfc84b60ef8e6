"""One-shot cover rendering for a volume."""

import logging
from typing import Optional

from agents.art_agent import ArtAgent
from config.exceptions import AIServiceError, GenerationStageError, PipelineBusyError
from config.settings import Settings
from models.series import SeriesProfile
from models.volume import Volume
from workflow.callbacks import LoggingCallback, PipelineCallback

logger = logging.getLogger(__name__)

COVER_STAGE = "cover"


class CoverGenerator:
    """Renders a single synthetic cover panel and stores it on the volume.

    Same request shape as a strip render; no script stage, no export
    variant, and nothing is added to the asset store.
    """

    def __init__(
        self,
        art_agent: Optional[ArtAgent] = None,
        settings: Optional[Settings] = None,
        callback: Optional[PipelineCallback] = None,
    ):
        self.settings = settings or Settings()
        self.art_agent = art_agent or ArtAgent(settings=self.settings)
        self.callback = callback or LoggingCallback()
        self._running = False

    async def generate(
        self,
        profile: SeriesProfile,
        volume: Volume,
        prompt: Optional[str] = None,
        model: Optional[str] = None,
    ) -> str:
        """Render a cover and replace volume.cover_image with it.

        On failure the volume is left untouched.
        """
        if self._running:
            raise PipelineBusyError(COVER_STAGE, COVER_STAGE)
        self._running = True
        self.callback.on_stage_enter(COVER_STAGE)
        try:
            image = await self.art_agent.render_cover(profile, volume, prompt, model=model)
        except AIServiceError as e:
            self.callback.on_error(COVER_STAGE, e.message)
            raise GenerationStageError(COVER_STAGE, e.message) from e
        finally:
            self._running = False
        volume.cover_image = image
        self.callback.on_stage_complete(COVER_STAGE)
        logger.info("Cover set for volume %s", volume.id)
        return image
