"""Transcript message types and conversion to/from LangChain messages.

The transcript is a closed union of four frozen dataclasses. LangChain
message objects only appear at the model boundary and in the LangGraph
adapter; everything else matches on these types explicitly.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple, Union

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage as LCHumanMessage,
    SystemMessage as LCSystemMessage,
    ToolMessage,
)


@dataclass(frozen=True)
class ToolCall:
    id: str
    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    # Set when the model's arguments could not be parsed.
    error: str = ""


@dataclass(frozen=True)
class SystemMessage:
    text: str


@dataclass(frozen=True)
class HumanMessage:
    text: str


@dataclass(frozen=True)
class AssistantMessage:
    text: str
    tool_calls: Tuple[ToolCall, ...] = ()


@dataclass(frozen=True)
class ToolResultMessage:
    tool_call_id: str
    text: str
    tool_name: str = ""


Message = Union[SystemMessage, HumanMessage, AssistantMessage, ToolResultMessage]


def content_text(content: Any) -> str:
    """Flatten LangChain message content (str or list of parts) into text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return "" if content is None else str(content)


def to_langchain(message: Message) -> BaseMessage:
    if isinstance(message, SystemMessage):
        return LCSystemMessage(content=message.text)
    if isinstance(message, HumanMessage):
        return LCHumanMessage(content=message.text)
    if isinstance(message, AssistantMessage):
        return AIMessage(
            content=message.text,
            tool_calls=[
                {"name": call.tool_name, "args": dict(call.arguments), "id": call.id, "type": "tool_call"}
                for call in message.tool_calls
                if not call.error
            ],
            invalid_tool_calls=[
                {
                    "name": call.tool_name,
                    "args": None,
                    "id": call.id,
                    "error": call.error,
                    "type": "invalid_tool_call",
                }
                for call in message.tool_calls
                if call.error
            ],
        )
    if isinstance(message, ToolResultMessage):
        return ToolMessage(
            content=message.text,
            tool_call_id=message.tool_call_id,
            name=message.tool_name or None,
        )
    raise TypeError(f"Not a transcript message: {type(message).__name__}")


def from_langchain(message: BaseMessage) -> Message:
    """Convert a LangChain message into the transcript union.

    Raises:
        TypeError: For message kinds the transcript has no variant for.
    """
    if isinstance(message, AIMessage):
        calls = tuple(
            ToolCall(
                id=str(call.get("id") or ""),
                tool_name=call["name"],
                arguments=dict(call.get("args") or {}),
            )
            for call in (message.tool_calls or [])
        ) + tuple(
            ToolCall(
                id=str(call.get("id") or ""),
                tool_name=call.get("name") or "",
                error=call.get("error") or "invalid arguments",
            )
            for call in (message.invalid_tool_calls or [])
        )
        return AssistantMessage(text=content_text(message.content), tool_calls=calls)
    if isinstance(message, ToolMessage):
        return ToolResultMessage(
            tool_call_id=message.tool_call_id,
            text=content_text(message.content),
            tool_name=message.name or "",
        )
    if isinstance(message, LCSystemMessage):
        return SystemMessage(text=content_text(message.content))
    if isinstance(message, LCHumanMessage):
        return HumanMessage(text=content_text(message.content))
    raise TypeError(f"Unsupported LangChain message: {type(message).__name__}")


def to_langchain_messages(transcript: Sequence[Message]) -> List[BaseMessage]:
    return [to_langchain(m) for m in transcript]


def from_langchain_messages(messages: Sequence[BaseMessage]) -> List[Message]:
    return [from_langchain(m) for m in messages]
