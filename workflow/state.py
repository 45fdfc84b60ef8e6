"""Generation pipeline state."""

from dataclasses import dataclass, field, replace
from typing import Optional

from models.enums import PipelineStage
from models.strip import Panel

# Stable stages each action may start from
ALLOWED_FROM: dict[str, tuple[PipelineStage, ...]] = {
    "script": (PipelineStage.IDLE, PipelineStage.SCRIPTED, PipelineStage.FINISHED, PipelineStage.EXPORTED),
    "render": (PipelineStage.SCRIPTED, PipelineStage.FINISHED, PipelineStage.EXPORTED),
    "bake": (PipelineStage.FINISHED, PipelineStage.EXPORTED),
    "commit": (PipelineStage.FINISHED, PipelineStage.EXPORTED),
}


@dataclass
class PipelineState:
    """Everything one strip-in-progress carries between stages.

    Fields are grouped logically:
    - Control: stage
    - Inputs: prompt, panel_count, randomize, name
    - Derived: script, master_image, export_image
    """

    stage: PipelineStage = PipelineStage.IDLE

    prompt: str = ""
    panel_count: int = 3
    randomize: bool = False
    name: str = "New Episode"

    script: list[Panel] = field(default_factory=list)
    master_image: Optional[str] = None
    export_image: Optional[str] = None

    def snapshot(self) -> "PipelineState":
        """Shallow copy used to roll back a failed stage."""
        return replace(self, script=list(self.script))
