"""State definition for the LangGraph rendering of the turn loop."""
from typing import Annotated, List, Optional, TypedDict
import operator

from langchain_core.messages import BaseMessage


class GraphState(TypedDict, total=False):
    """State schema for the agent graph.

    Attributes:
        messages: Conversation history (LangChain messages), append-only
        system_prompt: Skills prompt, written once per thread on the first
            model call and prepended to every later call
    """
    messages: Annotated[List[BaseMessage], operator.add]
    system_prompt: Optional[str]
