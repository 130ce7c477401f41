"""Tool registry and built-in tools."""

from skillgraph.tools.registry import FieldSpec, ToolRegistry, ToolSpec
from skillgraph.tools.builtin import BUILTIN_TOOLS, default_registry

__all__ = [
    "FieldSpec",
    "ToolSpec",
    "ToolRegistry",
    "BUILTIN_TOOLS",
    "default_registry",
]
