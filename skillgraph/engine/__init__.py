"""Turn-loop engine: explicit model/tool state machine with session storage."""

from skillgraph.engine.model import ChatModelClient, ModelClient
from skillgraph.engine.nodes import dispatch_tool_calls, execute_tool_call, needs_skill_prompt, should_continue
from skillgraph.engine.session import InMemorySessionStore, Session, SessionStore
from skillgraph.engine.turn_loop import TurnLoopEngine, TurnOutcome, TurnState

__all__ = [
    "ChatModelClient",
    "ModelClient",
    "dispatch_tool_calls",
    "execute_tool_call",
    "needs_skill_prompt",
    "should_continue",
    "InMemorySessionStore",
    "Session",
    "SessionStore",
    "TurnLoopEngine",
    "TurnOutcome",
    "TurnState",
]
