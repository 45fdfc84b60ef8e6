"""Script Agent: turns a prompt plus series context into a panel script."""

import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from agents.base_agent import BaseAgent
from config.exceptions import AIResponseParseError
from models.series import SeriesProfile
from models.strip import DialogueLine, Panel

logger = logging.getLogger(__name__)

RANDOM_TASK = "Random funny situation"


class _DialogueSchema(BaseModel):
    model_config = ConfigDict(strict=True)

    character: str
    text: str


class _PanelSchema(BaseModel):
    model_config = ConfigDict(strict=True)

    panelNumber: int
    visualDescription: str
    dialogue: list[_DialogueSchema] = Field(default_factory=list)


def validate_script(raw: list, panel_count: int) -> list[Panel]:
    """Validate a raw panel array against the script schema.

    Panel numbers must run 1..panel_count without gaps.

    Raises:
        AIResponseParseError: On any schema or numbering violation.
    """
    try:
        parsed = [_PanelSchema.model_validate(item) for item in raw]
    except PydanticValidationError as e:
        raise AIResponseParseError(f"Script does not match panel schema: {e.error_count()} error(s)",
                                   raw_response=str(raw)) from e

    numbers = [p.panelNumber for p in parsed]
    if numbers != list(range(1, panel_count + 1)):
        raise AIResponseParseError(
            f"Expected panels 1..{panel_count}, got {numbers}",
            raw_response=str(raw),
        )
    return [
        Panel(
            panel_number=p.panelNumber,
            visual_description=p.visualDescription,
            dialogue=[DialogueLine(d.character, d.text) for d in p.dialogue],
        )
        for p in parsed
    ]


class ScriptAgent(BaseAgent):
    """Writes panel scripts and location descriptions for a series."""

    template_name = "script_writer"
    required_sections = ("System Prompt", "Output Format", "Script Task", "Environment Task")

    def build_script_prompt(
        self,
        profile: SeriesProfile,
        prompt: str,
        panel_count: int,
        randomize: bool = False,
    ) -> str:
        """Build the user prompt; series context is embedded verbatim."""
        return self.prompts.render(
            "Script Task",
            panel_count=panel_count,
            series_name=profile.name,
            art_style=profile.art_style_directive,
            environments=profile.environment_context(),
            characters=profile.character_context(),
            task=RANDOM_TASK if randomize else f"Plot: {prompt}",
        )

    async def write_script(
        self,
        profile: SeriesProfile,
        prompt: str,
        panel_count: int,
        randomize: bool = False,
    ) -> list[Panel]:
        """Generate and validate a panel script.

        Args:
            profile: Series whose style and cast steer the script.
            prompt: Free-text plot; ignored when randomize is set.
            panel_count: Exact number of panels required.
            randomize: Ask for a random situation instead of the prompt.

        Returns:
            Panels numbered 1..panel_count.

        Raises:
            AIResponseParseError: If the response is not a valid script.
            AITransportError: If the call fails.
        """
        system_prompt = self.prompts.section("System Prompt")
        system_prompt += "\n\n" + self.prompts.render("Output Format")
        user_prompt = self.build_script_prompt(profile, prompt, panel_count, randomize)

        logger.info("Scripting %d panels for series %s", panel_count, profile.id)
        raw = await self.llm.chat_json_array(
            system_prompt,
            user_prompt,
            model=self.settings.llm_model_script,
        )
        panels = validate_script(raw, panel_count)
        logger.info("Script ready: %d panels", len(panels))
        return panels

    async def describe_environment(self, theme: str) -> str:
        """Write a short visual description of a location for the series editor."""
        system_prompt = self.prompts.section("System Prompt")
        user_prompt = self.prompts.render("Environment Task", theme=theme)
        text = await self.llm.chat(
            system_prompt,
            user_prompt,
            model=self.settings.llm_model_description,
        )
        return text.strip()
