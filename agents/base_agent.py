"""Shared plumbing for the script and art agents: clients and prompt templates.

Prompt templates live in config/prompts/ as markdown, one `## Section`
per prompt. A template is parsed once and every section an agent needs
is checked when the agent is built, so a broken prompt file fails fast
instead of sending an empty prompt to the model.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from config.exceptions import InvalidConfigError
from config.settings import Settings
from tools.agent_sdk_client import AgentSDKClient

logger = logging.getLogger(__name__)

_PROMPTS_DIR = Path(__file__).parent.parent / "config" / "prompts"
_HEADER = "## "


class PromptTemplate:
    """Named prompt sections parsed from one markdown file."""

    def __init__(self, name: str, sections: dict[str, str]):
        self.name = name
        self.sections = sections

    @classmethod
    def parse(cls, name: str, text: str) -> "PromptTemplate":
        sections: dict[str, list[str]] = {}
        current: Optional[list[str]] = None
        for line in text.splitlines():
            stripped = line.strip()
            if stripped.startswith(_HEADER):
                current = sections.setdefault(stripped[len(_HEADER):].strip(), [])
            elif current is not None:
                current.append(line)
        return cls(name, {title: "\n".join(body).strip() for title, body in sections.items()})

    def require(self, *titles: str) -> None:
        missing = [t for t in titles if not self.sections.get(t)]
        if missing:
            raise InvalidConfigError(
                f"Prompt template '{self.name}' is missing section(s): {', '.join(missing)}",
                {"template": self.name, "missing": missing},
            )

    def section(self, title: str) -> str:
        self.require(title)
        return self.sections[title]

    def render(self, title: str, **fields) -> str:
        """Fill a section's {placeholders}; an unknown placeholder is a config error."""
        try:
            return self.section(title).format(**fields)
        except (KeyError, IndexError) as e:
            raise InvalidConfigError(
                f"Prompt section '{self.name}/{title}' uses unknown placeholder {e}",
                {"template": self.name, "section": title},
            ) from e


@lru_cache(maxsize=32)
def load_template(name: str, prompts_dir: Path = _PROMPTS_DIR) -> PromptTemplate:
    """Load and cache config/prompts/<name>.md."""
    path = prompts_dir / f"{name}.md"
    if not path.exists():
        raise InvalidConfigError(f"Prompt template not found: {path}", {"template": name})
    template = PromptTemplate.parse(name, path.read_text(encoding="utf-8"))
    logger.debug("Loaded prompt template %s (%s)", name, ", ".join(template.sections))
    return template


class BaseAgent:
    """Base class for the script and art agents.

    Subclasses name their template and the sections they use; both are
    checked on construction.
    """

    template_name: str = ""
    required_sections: tuple[str, ...] = ()

    def __init__(
        self,
        llm_client: Optional[AgentSDKClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings()
        self.llm = llm_client or AgentSDKClient(self.settings)
        self.prompts = load_template(self.template_name, _PROMPTS_DIR)
        self.prompts.require(*self.required_sections)
