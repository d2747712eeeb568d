"""
Tool-calling loop.

invoke model -> run requested tools -> append results -> invoke again,
until the model answers without tool calls. The number of model calls
is bounded by ``max_steps``.
"""
from typing import Any, Dict, List

from busy_assistant.agent.tools import MemoryToolkit
from busy_assistant.core.logging_config import get_logger
from busy_assistant.llm.prompts import STEP_LIMIT_REPLY, get_memory_system_prompt

logger = get_logger(__name__)


def with_system_prompt(messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Prepend the memory system prompt unless the history already has one."""
    if any(m.get("role") == "system" for m in messages):
        return list(messages)
    return [{"role": "system", "content": get_memory_system_prompt()}] + list(messages)


def execute_tool_calls(toolkit: MemoryToolkit, assistant_message: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Run every tool call of an assistant message, one tool message each."""
    results = []
    for call in assistant_message.get("tool_calls") or []:
        function = call.get("function") or {}
        name = function.get("name", "")
        output = toolkit.execute(name, function.get("arguments"))
        results.append({
            "role": "tool",
            "tool_call_id": call.get("id"),
            "name": name,
            "content": output,
        })
    return results


def run_tool_loop(
    llm: Any,
    toolkit: MemoryToolkit,
    messages: List[Dict[str, Any]],
    max_steps: int = 8,
) -> str:
    """
    Run the agent until it produces an answer without tool calls.

    Args:
        llm: Object with ``complete(messages, tools) -> dict``
        toolkit: Tools available to the model
        messages: Conversation history ({role, content})
        max_steps: Maximum number of model invocations

    Returns:
        The final assistant answer, or STEP_LIMIT_REPLY when the bound is hit
    """
    conversation = with_system_prompt(messages)
    tools = toolkit.schemas()

    for step in range(1, max_steps + 1):
        reply = llm.complete(conversation, tools)
        tool_calls = reply.get("tool_calls") or []

        if not tool_calls:
            logger.info(f"Tool loop finished after {step} step(s)")
            return reply.get("content") or ""

        logger.debug(f"Step {step}: model requested {len(tool_calls)} tool call(s)")
        conversation.append(reply)
        conversation.extend(execute_tool_calls(toolkit, reply))

    logger.warning(f"Tool loop hit the step limit ({max_steps}) without a final answer")
    return STEP_LIMIT_REPLY
