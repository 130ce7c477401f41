"""LangGraph rendering of the agent turn loop."""

from skillgraph.graph.state import GraphState
from skillgraph.graph.builder import (
    create_agent_graph,
    graph_transcript,
    route_after_agent,
    send_to_graph,
)

__all__ = [
    "GraphState",
    "create_agent_graph",
    "graph_transcript",
    "route_after_agent",
    "send_to_graph",
]
