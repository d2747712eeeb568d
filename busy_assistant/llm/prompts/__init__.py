"""
Prompts module - LLM prompt templates.

Prompts are stored as separate Python files so prompt changes show up
clearly in version control.
"""
from busy_assistant.llm.prompts.memory_prompts import (
    MEMORY_SYSTEM_PROMPT,
    RETRIEVE_MEMORIES_DESCRIPTION,
    STEP_LIMIT_REPLY,
    STORE_MEMORY_DESCRIPTION,
    get_memory_system_prompt,
)

__all__ = [
    "MEMORY_SYSTEM_PROMPT",
    "RETRIEVE_MEMORIES_DESCRIPTION",
    "STEP_LIMIT_REPLY",
    "STORE_MEMORY_DESCRIPTION",
    "get_memory_system_prompt",
]
