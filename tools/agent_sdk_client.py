"""Claude Agent SDK wrapper used for script and description writing."""

import asyncio
import logging
import os
from typing import Optional

from claude_agent_sdk import (
    query,
    ClaudeAgentOptions,
    ResultMessage,
    AssistantMessage,
)

from config.settings import Settings
from tools.llm_client import parse_json_array
from config.exceptions import AITimeoutError, AITransportError, AIResponseParseError

logger = logging.getLogger(__name__)

# Allow launching Agent SDK even when running inside a Claude Code session.
# The SDK checks for this env var and refuses to start if set.
os.environ.pop("CLAUDECODE", None)


class AgentSDKClient:
    """Text LLM client over claude_agent_sdk.query().

    Authentication is handled automatically by Claude Code CLI.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.total_calls = 0

    async def chat(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
    ) -> str:
        """Send a single-turn request and return the text result.

        Args:
            system_prompt: System message guiding the model's behavior.
            user_prompt: User message content.
            model: Model name override. Defaults to the script model.

        Returns:
            The model's text response.

        Raises:
            AITimeoutError: If the call exceeds ai_timeout_seconds.
            AITransportError: If the query fails.
        """
        model = model or self.settings.llm_model_script
        self.total_calls += 1
        logger.debug("AgentSDK call: model=%s", model)

        try:
            return await asyncio.wait_for(
                self._collect(system_prompt, user_prompt, model),
                timeout=self.settings.ai_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise AITimeoutError(timeout=self.settings.ai_timeout_seconds) from e
        except AITransportError:
            raise
        except Exception as e:
            raise AITransportError(f"Agent SDK query failed: {e}") from e

    async def _collect(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
    ) -> str:
        result_text = ""
        # Do NOT break out of the async for loop early: query() uses anyio
        # cancel scopes internally and must be exhausted.
        async for message in query(
            prompt=user_prompt,
            options=ClaudeAgentOptions(system_prompt=system_prompt, model=model, max_turns=1),
        ):
            if isinstance(message, ResultMessage):
                result_text = message.result or result_text
                logger.debug(
                    "AgentSDK result: %d chars, cost=$%s",
                    len(result_text),
                    message.total_cost_usd,
                )
            elif isinstance(message, AssistantMessage):
                for block in message.content:
                    text = getattr(block, "text", None)
                    if not text:
                        continue
                    if not result_text:
                        result_text += text

        if not result_text:
            logger.warning("AgentSDK returned no content")
        return result_text

    async def chat_json_array(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
    ) -> list:
        """Send a request and parse the response as a JSON array.

        Raises:
            AIResponseParseError: If response cannot be parsed as a JSON array.
        """
        text = await self.chat(system_prompt, user_prompt, model)
        try:
            return parse_json_array(text)
        except ValueError as e:
            raise AIResponseParseError(str(e), raw_response=text) from e

    def get_usage_summary(self) -> dict:
        """Return call count statistics."""
        return {"total_calls": self.total_calls}
