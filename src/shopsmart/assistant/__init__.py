"""Grocery assistant: prompt construction and the streaming model client."""

from .client import Assistant, AssistantClient
from .prompt import create_instruction, create_prompt

__all__ = ["Assistant", "AssistantClient", "create_instruction", "create_prompt"]
