"""Routing, skill-prompt injection and tool dispatch for the turn loop.

These functions are shared by the hand-written TurnLoopEngine and the
LangGraph adapter in ``skillgraph.graph``.
"""
from __future__ import annotations

import asyncio
import logging
from typing import List, Sequence

from skillgraph.messages import (
    AssistantMessage,
    HumanMessage,
    Message,
    SystemMessage,
    ToolCall,
    ToolResultMessage,
)
from skillgraph.tools.registry import ToolRegistry


logger = logging.getLogger(__name__)


def should_continue(transcript: Sequence[Message]) -> str:
    """Determine the next step from the most recent message only.

    Returns:
        "tools" if the last message is an assistant message with at least
        one tool call, otherwise "end" (an empty tool-call list included)
    """
    if not transcript:
        return "end"

    last_message = transcript[-1]
    if isinstance(last_message, AssistantMessage) and last_message.tool_calls:
        return "tools"
    return "end"


def needs_skill_prompt(transcript: Sequence[Message]) -> bool:
    """True before the first model call of a session.

    That is: exactly one human message, no assistant message yet, and no
    caller-supplied system message at the head of the transcript.
    """
    if transcript and isinstance(transcript[0], SystemMessage):
        return False
    human_count = sum(isinstance(m, HumanMessage) for m in transcript)
    has_assistant = any(isinstance(m, AssistantMessage) for m in transcript)
    return human_count == 1 and not has_assistant


async def execute_tool_call(registry: ToolRegistry, call: ToolCall) -> ToolResultMessage:
    """Run one tool call, folding every failure into the result text."""
    if call.error:
        logger.warning("Model sent unparseable arguments for %r (call id %s)", call.tool_name, call.id)
        return ToolResultMessage(
            tool_call_id=call.id,
            text=f"Error: could not parse arguments for tool '{call.tool_name}': {call.error}",
            tool_name=call.tool_name,
        )

    if call.tool_name not in registry:
        logger.warning("Model requested unknown tool %r (call id %s)", call.tool_name, call.id)
        return ToolResultMessage(
            tool_call_id=call.id,
            text=f"Error: unknown tool '{call.tool_name}'",
            tool_name=call.tool_name,
        )

    try:
        text = await registry.invoke(call.tool_name, call.arguments)
    except Exception as e:
        logger.info("Tool %s failed (call id %s): %s", call.tool_name, call.id, e)
        text = f"Error executing {call.tool_name}: {e}"

    return ToolResultMessage(tool_call_id=call.id, text=text, tool_name=call.tool_name)


async def dispatch_tool_calls(registry: ToolRegistry, calls: Sequence[ToolCall]) -> List[ToolResultMessage]:
    """Run tool calls concurrently; results come back in call order."""
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Dispatching %d tool call(s): %s",
            len(calls),
            [call.tool_name for call in calls],
        )
    results = await asyncio.gather(*(execute_tool_call(registry, call) for call in calls))
    return list(results)


def summarize_transcript(transcript: Sequence[Message]) -> str:
    counts = {"system": 0, "human": 0, "assistant": 0, "tool": 0}
    for message in transcript:
        if isinstance(message, SystemMessage):
            counts["system"] += 1
        elif isinstance(message, HumanMessage):
            counts["human"] += 1
        elif isinstance(message, AssistantMessage):
            counts["assistant"] += 1
        elif isinstance(message, ToolResultMessage):
            counts["tool"] += 1
    return " ".join(f"{kind}={count}" for kind, count in counts.items())
