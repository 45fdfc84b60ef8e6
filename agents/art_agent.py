"""Art Agent: composite strip renders, covers, and text removal."""

import logging
from typing import Optional

from agents.base_agent import BaseAgent
from config.settings import Settings
from models.series import SeriesProfile
from models.strip import Panel
from models.volume import Volume
from tools.agent_sdk_client import AgentSDKClient
from tools.image_client import GeminiImageClient

logger = logging.getLogger(__name__)


def describe_panels(script: list[Panel]) -> str:
    return "\n".join(f"Panel {p.panel_number}: {p.visual_description}" for p in script)


def describe_dialogue(script: list[Panel]) -> str:
    lines = []
    for p in script:
        spoken = ", ".join(f'{d.character} says "{d.text}"' for d in p.dialogue)
        lines.append(f"Panel {p.panel_number} Dialogue: {spoken}")
    return "\n".join(lines)


class ArtAgent(BaseAgent):
    """Drives the image service for strips, covers and export copies."""

    template_name = "art_director"
    required_sections = ("Strip Render", "Cover Description", "Text Removal")

    def __init__(
        self,
        image_client: Optional[GeminiImageClient] = None,
        llm_client: Optional[AgentSDKClient] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(llm_client, settings)
        self.images = image_client or GeminiImageClient(self.settings)

    def build_render_prompt(self, profile: SeriesProfile, script: list[Panel]) -> str:
        return self.prompts.render(
            "Strip Render",
            panel_count=len(script),
            art_style=profile.art_style_directive,
            panels=describe_panels(script),
            dialogue=describe_dialogue(script),
        )

    @staticmethod
    def reference_images(profile: SeriesProfile) -> list[tuple[str, str]]:
        return [(c.name, c.reference_image) for c in profile.characters if c.reference_image]

    async def render_strip(
        self,
        profile: SeriesProfile,
        script: list[Panel],
        model: Optional[str] = None,
    ) -> str:
        """Render the whole script as one wide strip; returns a data URL."""
        prompt = self.build_render_prompt(profile, script)
        references = self.reference_images(profile)
        logger.info(
            "Rendering %d-panel strip for series %s (%d reference images)",
            len(script), profile.id, len(references),
        )
        return await self.images.generate_image(prompt, references=references, model=model)

    def cover_panel(self, profile: SeriesProfile, volume: Volume, prompt: Optional[str] = None) -> Panel:
        """Synthetic single panel describing a volume cover."""
        description = self.prompts.render(
            "Cover Description",
            volume_title=volume.title,
            prompt=prompt or f"Grand cover illustration for the series: {profile.name}",
            series_name=profile.name,
        )
        return Panel(panel_number=1, visual_description=description, dialogue=[])

    async def render_cover(
        self,
        profile: SeriesProfile,
        volume: Volume,
        prompt: Optional[str] = None,
        model: Optional[str] = None,
    ) -> str:
        return await self.render_strip(profile, [self.cover_panel(profile, volume, prompt)], model=model)

    async def remove_text(self, image: str, model: Optional[str] = None) -> str:
        """Return a copy of the image with all speech-bubble text blanked."""
        instruction = self.prompts.section("Text Removal")
        logger.info("Baking text-free export copy")
        return await self.images.edit_image(image, instruction, model=model)
