"""
Agent module - Memory-enabled chat agents.

- tools.py     : store_memory / retrieve_memories bound to a user
- tool_loop.py : explicit, step-bounded tool-calling loop
- graph.py     : the same loop expressed as a LangGraph state graph
"""
from busy_assistant.agent.tools import MemoryToolkit
from busy_assistant.agent.tool_loop import run_tool_loop
from busy_assistant.agent.graph import AgentState, build_memory_graph, run_graph_agent

__all__ = [
    "MemoryToolkit",
    "run_tool_loop",
    "AgentState",
    "build_memory_graph",
    "run_graph_agent",
]
