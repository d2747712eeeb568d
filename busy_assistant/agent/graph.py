"""
LangGraph memory agent.

    START -> agent --(tool calls)--> tools -> agent
                   --(no tool calls)--> END
                   --(step limit)--> give_up -> END
"""
import operator
from typing import Annotated, Any, Dict, List, TypedDict

from langgraph.graph import END, START, StateGraph

from busy_assistant.agent.tool_loop import execute_tool_calls, with_system_prompt
from busy_assistant.agent.tools import MemoryToolkit
from busy_assistant.core.logging_config import get_logger
from busy_assistant.llm.prompts import STEP_LIMIT_REPLY

logger = get_logger(__name__)


class AgentState(TypedDict, total=False):
    # appended to by every node
    messages: Annotated[List[Dict[str, Any]], operator.add]
    # model invocations so far
    steps: int


def build_memory_graph(llm: Any, toolkit: MemoryToolkit, max_steps: int = 8):
    """
    Compile the agent graph for one user's toolkit.

    Args:
        llm: Object with ``complete(messages, tools) -> dict``
        toolkit: Memory tools bound to the user
        max_steps: Maximum number of model invocations

    Returns:
        A compiled LangGraph runnable
    """
    tools = toolkit.schemas()

    def call_model(state: AgentState) -> AgentState:
        reply = llm.complete(with_system_prompt(state["messages"]), tools)
        return {"messages": [reply], "steps": state.get("steps", 0) + 1}

    def call_tools(state: AgentState) -> AgentState:
        return {"messages": execute_tool_calls(toolkit, state["messages"][-1])}

    def give_up(state: AgentState) -> AgentState:
        logger.warning(f"Graph agent hit the step limit ({max_steps}) without a final answer")
        return {"messages": [{"role": "assistant", "content": STEP_LIMIT_REPLY}]}

    def should_continue(state: AgentState) -> str:
        last = state["messages"][-1]
        if not last.get("tool_calls"):
            return END
        if state.get("steps", 0) >= max_steps:
            return "give_up"
        return "tools"

    graph = StateGraph(AgentState)

    graph.add_node("agent", call_model)
    graph.add_node("tools", call_tools)
    graph.add_node("give_up", give_up)

    graph.add_edge(START, "agent")
    graph.add_conditional_edges(
        "agent",
        should_continue,
        {"tools": "tools", "give_up": "give_up", END: END},
    )
    graph.add_edge("tools", "agent")
    graph.add_edge("give_up", END)

    return graph.compile()


def run_graph_agent(
    llm: Any,
    toolkit: MemoryToolkit,
    messages: List[Dict[str, Any]],
    max_steps: int = 8,
) -> str:
    """
    Run the graph agent over a conversation and return the final answer.

    Args:
        llm: Object with ``complete(messages, tools) -> dict``
        toolkit: Memory tools bound to the user
        messages: Conversation history ({role, content})
        max_steps: Maximum number of model invocations

    Returns:
        Content of the last assistant message
    """
    agent = build_memory_graph(llm, toolkit, max_steps)

    # agent + tools per step, plus give_up and slack
    result = agent.invoke(
        {"messages": list(messages), "steps": 0},
        config={"recursion_limit": 2 * max_steps + 5},
    )

    final = result["messages"][-1]
    logger.info(f"Graph agent finished after {result.get('steps', 0)} model call(s)")
    return final.get("content") or ""
