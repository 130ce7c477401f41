"""Model client contract and the LangChain chat-model adapter."""
from __future__ import annotations

import logging
from typing import Any, Dict, Protocol, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage

from skillgraph.messages import AssistantMessage, Message, from_langchain, to_langchain_messages
from skillgraph.tools.registry import ToolSpec


logger = logging.getLogger(__name__)


class ModelClient(Protocol):
    async def invoke(self, transcript: Sequence[Message], tools: Sequence[ToolSpec]) -> AssistantMessage:
        """Return exactly one assistant message for the transcript so far."""


class ChatModelClient:
    """Adapts a LangChain chat model to the ModelClient contract.

    Example:
        ```python
        from langchain_openai import ChatOpenAI

        client = ChatModelClient(ChatOpenAI(model="gpt-4o", temperature=0))
        ```
    """

    def __init__(self, llm: BaseChatModel):
        self.llm = llm
        self._bound: Dict[tuple, Any] = {}

    def _with_tools(self, tools: Sequence[ToolSpec]) -> Any:
        if not tools:
            return self.llm
        key = tuple(spec.name for spec in tools)
        bound = self._bound.get(key)
        if bound is None:
            bound = self.llm.bind_tools([spec.to_openai_tool() for spec in tools])
            self._bound[key] = bound
        return bound

    async def invoke(self, transcript: Sequence[Message], tools: Sequence[ToolSpec]) -> AssistantMessage:
        llm = self._with_tools(tools)
        response = await llm.ainvoke(to_langchain_messages(transcript))

        if not isinstance(response, AIMessage):
            raise TypeError(f"Chat model returned {type(response).__name__}, expected AIMessage")

        if response.invalid_tool_calls:
            logger.warning(
                "Model produced %d unparseable tool call(s); reporting them back as errors",
                len(response.invalid_tool_calls),
            )

        # AIMessage always maps to AssistantMessage
        return from_langchain(response)
