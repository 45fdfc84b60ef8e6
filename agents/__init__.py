"""Agents package — script and art agents."""

from agents.base_agent import BaseAgent
from agents.script_agent import ScriptAgent, validate_script
from agents.art_agent import ArtAgent

__all__ = [
    "BaseAgent",
    "ScriptAgent",
    "ArtAgent",
    "validate_script",
]
