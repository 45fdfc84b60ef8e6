"""Tools package — AI clients, JSON parsing, and image helpers."""

from tools.agent_sdk_client import AgentSDKClient
from tools.image_client import GeminiImageClient
from tools.llm_client import parse_json_response, parse_json_array
from tools.image_utils import (
    is_data_url,
    to_data_url,
    decode_data_url,
    open_image,
    stretch_to_canvas,
)

__all__ = [
    "AgentSDKClient",
    "GeminiImageClient",
    "parse_json_response",
    "parse_json_array",
    "is_data_url",
    "to_data_url",
    "decode_data_url",
    "open_image",
    "stretch_to_canvas",
]
