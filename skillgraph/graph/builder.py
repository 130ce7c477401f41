"""LangGraph graph builder for the agent turn loop.

The graph is the framework-managed equivalent of ``TurnLoopEngine``:

```
START -> agent --(tool calls)--> tools
           ^                       |
           +-----------------------+
         agent --(no tool calls)--> END
```

Routing, skill-prompt injection and tool dispatch are the same functions
the engine uses; LangGraph adds compilation and per-thread checkpointing.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage as LCHumanMessage
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import MemorySaver
from langgraph.errors import GraphRecursionError
from langgraph.graph import END, START, StateGraph

from skillgraph.engine.model import ChatModelClient
from skillgraph.engine.nodes import dispatch_tool_calls, needs_skill_prompt, should_continue
from skillgraph.errors import IterationLimitError, ModelInvocationError, TurnTimeoutError
from skillgraph.graph.state import GraphState
from skillgraph.messages import (
    AssistantMessage,
    Message,
    SystemMessage,
    from_langchain,
    from_langchain_messages,
    to_langchain,
)
from skillgraph.skills.parser import SkillDescriptor
from skillgraph.skills.render import render_skills_prompt
from skillgraph.tools.registry import ToolRegistry


logger = logging.getLogger(__name__)

DEFAULT_RECURSION_LIMIT = 100


def route_after_agent(state: GraphState) -> str:
    """Conditional edge after the agent node: "tools" or "end"."""
    messages = state.get("messages", [])
    return should_continue(from_langchain_messages(messages[-1:]))


def create_agent_graph(
    llm: BaseChatModel,
    registry: ToolRegistry,
    skills: Optional[Sequence[SkillDescriptor]] = None,
    checkpointer: Optional[BaseCheckpointSaver] = None,
):
    """Create the LangGraph state machine for the agent.

    Args:
        llm: LangChain chat model (any model supporting bind_tools)
        registry: Tool registry the model may call into
        skills: Skills advertised in the first-turn system prompt; None
            disables the prompt
        checkpointer: Checkpoint saver (defaults to an in-memory MemorySaver)

    Returns:
        Compiled LangGraph graph with checkpointing
    """
    client = ChatModelClient(llm)
    skill_list = tuple(skills) if skills is not None else None

    async def agent_node(state: GraphState) -> Dict[str, Any]:
        transcript: List[Message] = from_langchain_messages(state.get("messages", []))
        update: Dict[str, Any] = {}

        system_prompt = state.get("system_prompt")
        if system_prompt is None and skill_list is not None and needs_skill_prompt(transcript):
            system_prompt = render_skills_prompt(skill_list, registry.names())
            update["system_prompt"] = system_prompt

        if system_prompt is not None:
            transcript.insert(0, SystemMessage(text=system_prompt))

        try:
            reply = await client.invoke(transcript, list(registry))
        except Exception as e:
            raise ModelInvocationError(f"Model invocation failed: {e}") from e
        update["messages"] = [to_langchain(reply)]
        return update

    async def tools_node(state: GraphState) -> Dict[str, Any]:
        last_message = from_langchain(state["messages"][-1])
        if not isinstance(last_message, AssistantMessage):
            return {"messages": []}
        results = await dispatch_tool_calls(registry, last_message.tool_calls)
        return {"messages": [to_langchain(result) for result in results]}

    workflow = StateGraph(GraphState)

    workflow.add_node("agent", agent_node)
    workflow.add_node("tools", tools_node)

    workflow.add_edge(START, "agent")
    workflow.add_conditional_edges(
        "agent",
        route_after_agent,
        {
            "tools": "tools",
            "end": END,
        },
    )
    workflow.add_edge("tools", "agent")

    return workflow.compile(checkpointer=checkpointer or MemorySaver())


def graph_transcript(state: Dict[str, Any]) -> List[Message]:
    """Convert graph state into a transcript, system prompt first."""
    transcript = from_langchain_messages(state.get("messages", []))
    system_prompt = state.get("system_prompt")
    if system_prompt is not None:
        transcript.insert(0, SystemMessage(text=system_prompt))
    return transcript


def _restore_thread(graph, thread_id: str, before) -> None:
    """Put a thread back to the state captured in ``before``."""
    config = {"configurable": {"thread_id": thread_id}}
    graph.checkpointer.delete_thread(thread_id)
    if before.values.get("messages"):
        # The restored thread ends in a final reply, so the next run starts at START.
        graph.update_state(config, before.values, as_node="agent")


async def send_to_graph(
    graph,
    thread_id: str,
    text: str,
    recursion_limit: int = DEFAULT_RECURSION_LIMIT,
    timeout: Optional[float] = None,
) -> List[Message]:
    """Run one user turn through a compiled agent graph.

    A turn that fails or times out leaves the thread exactly as it was
    before the call.

    Args:
        graph: Graph from ``create_agent_graph``
        thread_id: Checkpoint thread to continue
        text: User input
        recursion_limit: Maximum graph steps for the turn
        timeout: Seconds before the turn is abandoned (None waits forever)

    Returns:
        The thread's full transcript after the turn

    Raises:
        ModelInvocationError: If the model call fails
        IterationLimitError: If the turn exceeds the recursion limit
        TurnTimeoutError: If the timeout expires
    """
    config = {"configurable": {"thread_id": thread_id}, "recursion_limit": recursion_limit}
    before = graph.get_state(config)

    try:
        result = await asyncio.wait_for(
            graph.ainvoke({"messages": [LCHumanMessage(content=text)]}, config=config),
            timeout,
        )
    except asyncio.TimeoutError as e:
        logger.warning("Turn for thread %s timed out after %ss", thread_id, timeout)
        _restore_thread(graph, thread_id, before)
        raise TurnTimeoutError(f"Turn for thread '{thread_id}' timed out after {timeout}s") from e
    except GraphRecursionError as e:
        _restore_thread(graph, thread_id, before)
        raise IterationLimitError(
            f"Turn exceeded {recursion_limit} graph step(s) without a final answer"
        ) from e
    except BaseException:
        _restore_thread(graph, thread_id, before)
        raise

    return graph_transcript(result)
