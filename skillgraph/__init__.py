"""skillgraph: tool-calling agents with SKILL.md skill discovery.

Skills are directories holding a SKILL.md file with a small header. Their
names and descriptions are advertised to the model once per conversation;
the model reads full instructions on demand through the file tools.

Two ways to drive a conversation:
1. TurnLoopEngine: explicit async state machine with pluggable session storage
2. create_agent_graph: the same loop compiled as a LangGraph graph
"""

from skillgraph.agent import Agent
from skillgraph.config import Settings
from skillgraph.engine import ChatModelClient, InMemorySessionStore, Session, TurnLoopEngine, TurnState
from skillgraph.errors import (
    ConfigurationError,
    IterationLimitError,
    ModelInvocationError,
    SecurityError,
    SkillGraphError,
    SkillParseError,
    ToolError,
    ToolInputError,
    TurnTimeoutError,
    UnknownToolError,
)
from skillgraph.graph import create_agent_graph, graph_transcript
from skillgraph.messages import AssistantMessage, HumanMessage, Message, SystemMessage, ToolCall, ToolResultMessage
from skillgraph.skills import SkillDescriptor, create_skill, load_skills, render_skills_prompt
from skillgraph.tools import BUILTIN_TOOLS, FieldSpec, ToolRegistry, ToolSpec, default_registry

__version__ = "0.1.0"
__all__ = [
    "Agent",
    "Settings",
    # Engine
    "ChatModelClient",
    "InMemorySessionStore",
    "Session",
    "TurnLoopEngine",
    "TurnState",
    # Graph
    "create_agent_graph",
    "graph_transcript",
    # Messages
    "AssistantMessage",
    "HumanMessage",
    "Message",
    "SystemMessage",
    "ToolCall",
    "ToolResultMessage",
    # Skills
    "SkillDescriptor",
    "create_skill",
    "load_skills",
    "render_skills_prompt",
    # Tools
    "BUILTIN_TOOLS",
    "FieldSpec",
    "ToolRegistry",
    "ToolSpec",
    "default_registry",
    # Errors
    "SkillGraphError",
    "ConfigurationError",
    "IterationLimitError",
    "ModelInvocationError",
    "SecurityError",
    "SkillParseError",
    "ToolError",
    "ToolInputError",
    "TurnTimeoutError",
    "UnknownToolError",
]
