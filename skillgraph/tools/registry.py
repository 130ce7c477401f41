"""Tool registry: tool name -> (input schema, handler).

Tools are plain data. Dispatch is a dictionary lookup followed by schema
validation and a call to the handler. LangChain tools (``@tool`` functions
and other ``BaseTool``s) are adapted into ``ToolSpec``s on registration.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from langchain_core.tools import BaseTool

from skillgraph.errors import ToolInputError, UnknownToolError


logger = logging.getLogger(__name__)


JSON_TYPES = ("string", "integer", "number", "boolean", "array", "object", "any")


def _matches_type(value: Any, json_type: str) -> bool:
    if json_type == "any":
        return True
    if json_type == "string":
        return isinstance(value, str)
    if json_type == "boolean":
        return isinstance(value, bool)
    if json_type == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if json_type == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if json_type == "array":
        return isinstance(value, (list, tuple))
    if json_type == "object":
        return isinstance(value, dict)
    return False


@dataclass(frozen=True)
class FieldSpec:
    type: str = "any"
    required: bool = True
    description: str = ""

    def __post_init__(self) -> None:
        if self.type not in JSON_TYPES:
            raise ValueError(f"Unsupported field type: {self.type!r}")


def _property_type(prop: Mapping[str, Any]) -> str:
    json_type = prop.get("type")
    if json_type is None and "anyOf" in prop:
        # Optional[X] becomes anyOf [X, null]
        for option in prop["anyOf"]:
            if option.get("type") not in (None, "null"):
                json_type = option["type"]
                break
    return json_type if json_type in JSON_TYPES else "any"


@dataclass(frozen=True)
class ToolSpec:
    """A named tool with a declared input schema.

    ``handler`` is called with the validated arguments as keyword
    arguments. It may be a plain function or a coroutine function and
    should return text; other return values are converted with ``str()``.
    """

    name: str
    description: str
    input_schema: Mapping[str, FieldSpec]
    handler: Callable[..., Any]
    json_schema: Optional[Dict[str, Any]] = field(default=None, compare=False)

    @classmethod
    def from_langchain(cls, tool: BaseTool) -> "ToolSpec":
        """Adapt a LangChain tool, keeping its JSON schema for model binding."""
        schema = tool.get_input_schema().model_json_schema()
        properties = schema.get("properties", {})
        required = set(schema.get("required", []))

        input_schema = {
            name: FieldSpec(
                type=_property_type(prop),
                required=name in required,
                description=prop.get("description", ""),
            )
            for name, prop in properties.items()
        }

        async def handler(**arguments: Any) -> Any:
            return await tool.ainvoke(arguments)

        return cls(
            name=tool.name,
            description=tool.description,
            input_schema=input_schema,
            handler=handler,
            json_schema={
                "type": "object",
                "properties": properties,
                "required": sorted(required),
            },
        )

    def parameters(self) -> Dict[str, Any]:
        """JSON schema of the tool's arguments."""
        if self.json_schema is not None:
            return self.json_schema

        properties: Dict[str, Any] = {}
        for name, spec in self.input_schema.items():
            prop: Dict[str, Any] = {}
            if spec.type != "any":
                prop["type"] = spec.type
            if spec.description:
                prop["description"] = spec.description
            properties[name] = prop

        return {
            "type": "object",
            "properties": properties,
            "required": [name for name, spec in self.input_schema.items() if spec.required],
        }

    def to_openai_tool(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters(),
            },
        }

    def validate(self, arguments: Mapping[str, Any]) -> Dict[str, Any]:
        """Check arguments against the input schema.

        Raises:
            ToolInputError: On missing, unexpected or mistyped arguments
        """
        if not isinstance(arguments, Mapping):
            raise ToolInputError("arguments must be an object")

        problems: List[str] = []
        for name, spec in self.input_schema.items():
            if name not in arguments:
                if spec.required:
                    problems.append(f"missing required argument '{name}'")
                continue
            value = arguments[name]
            if value is None and not spec.required:
                continue
            if not _matches_type(value, spec.type):
                problems.append(
                    f"argument '{name}' must be {spec.type}, got {type(value).__name__}"
                )

        unexpected = sorted(set(arguments) - set(self.input_schema))
        if unexpected:
            problems.append(f"unexpected argument(s): {', '.join(unexpected)}")

        if problems:
            raise ToolInputError("; ".join(problems))
        return dict(arguments)


class ToolRegistry:
    """Maps tool names to ToolSpecs.

    Registration is guarded by a lock; lookups and invocations are safe to
    share between concurrently running sessions.
    """

    def __init__(self, tools: Iterable[Union[ToolSpec, BaseTool]] = ()) -> None:
        self._tools: Dict[str, ToolSpec] = {}
        self._lock = RLock()
        for tool in tools:
            self.register(tool)

    def register(self, tool: Union[ToolSpec, BaseTool]) -> ToolSpec:
        """Register a tool.

        Raises:
            ValueError: If the name is empty or already registered
        """
        spec = ToolSpec.from_langchain(tool) if isinstance(tool, BaseTool) else tool
        if not spec.name or not isinstance(spec.name, str):
            raise ValueError("Tool must have a valid string name.")

        with self._lock:
            if spec.name in self._tools:
                raise ValueError(f"Tool '{spec.name}' is already registered.")
            self._tools[spec.name] = spec

        logger.info("Tool registered: %s (total=%d)", spec.name, len(self._tools))
        return spec

    def get(self, name: str) -> ToolSpec:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def names(self) -> List[str]:
        return list(self._tools)

    def to_openai_tools(self) -> List[Dict[str, Any]]:
        return [spec.to_openai_tool() for spec in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(list(self._tools.values()))

    def __len__(self) -> int:
        return len(self._tools)

    async def invoke(self, name: str, arguments: Mapping[str, Any]) -> str:
        """Validate arguments and run the tool.

        Synchronous handlers run in a worker thread so that several tools
        can be awaited together.

        Raises:
            UnknownToolError: If the name is not registered
            ToolInputError: If the arguments fail validation
            Exception: Whatever the handler raises
        """
        spec = self.get(name)
        validated = spec.validate(arguments)

        if inspect.iscoroutinefunction(spec.handler):
            result = await spec.handler(**validated)
        else:
            result = await asyncio.to_thread(spec.handler, **validated)
            if inspect.isawaitable(result):
                result = await result

        if result is None:
            return ""
        return result if isinstance(result, str) else str(result)
