from __future__ import annotations

import asyncio

import pytest
from langchain_core.tools import tool

from skillgraph.errors import ToolInputError, UnknownToolError
from skillgraph.tools import FieldSpec, ToolRegistry, ToolSpec


def _echo_spec() -> ToolSpec:
    return ToolSpec(
        name="echo",
        description="Echo text back",
        input_schema={"text": FieldSpec(type="string"), "times": FieldSpec(type="integer", required=False)},
        handler=lambda text, times=1: text * times,
    )


@tool
def shout(text: str) -> str:
    """Upper-case the given text."""
    return text.upper()


def test_register_and_lookup() -> None:
    registry = ToolRegistry([_echo_spec()])

    assert "echo" in registry
    assert registry.names() == ["echo"]
    assert len(registry) == 1
    assert registry.get("echo").description == "Echo text back"

    with pytest.raises(UnknownToolError) as excinfo:
        registry.get("missing")
    assert str(excinfo.value) == "unknown tool 'missing'"


def test_duplicate_registration_is_rejected() -> None:
    registry = ToolRegistry([_echo_spec()])

    with pytest.raises(ValueError):
        registry.register(_echo_spec())


def test_validate_reports_every_problem() -> None:
    spec = _echo_spec()

    with pytest.raises(ToolInputError) as excinfo:
        spec.validate({"times": "3", "extra": 1})

    message = str(excinfo.value)
    assert "missing required argument 'text'" in message
    assert "argument 'times' must be integer, got str" in message
    assert "unexpected argument(s): extra" in message


def test_booleans_are_not_integers() -> None:
    with pytest.raises(ToolInputError):
        _echo_spec().validate({"text": "a", "times": True})


def test_invoke_sync_handler() -> None:
    registry = ToolRegistry([_echo_spec()])

    assert asyncio.run(registry.invoke("echo", {"text": "ab", "times": 2})) == "abab"


def test_invoke_async_handler_and_non_string_result() -> None:
    async def add(a, b):
        await asyncio.sleep(0)
        return a + b

    registry = ToolRegistry()
    registry.register(
        ToolSpec(
            name="add",
            description="Add two numbers",
            input_schema={"a": FieldSpec(type="number"), "b": FieldSpec(type="number")},
            handler=add,
        )
    )

    assert asyncio.run(registry.invoke("add", {"a": 2, "b": 3.5})) == "5.5"


def test_langchain_tool_is_adapted() -> None:
    registry = ToolRegistry([shout])
    spec = registry.get("shout")

    assert spec.input_schema["text"].type == "string"
    assert spec.input_schema["text"].required
    assert registry.to_openai_tools()[0]["function"]["name"] == "shout"
    assert registry.to_openai_tools()[0]["function"]["parameters"]["required"] == ["text"]
    assert asyncio.run(registry.invoke("shout", {"text": "hi"})) == "HI"

    with pytest.raises(ToolInputError):
        asyncio.run(registry.invoke("shout", {}))


def test_parameters_built_from_field_specs() -> None:
    params = _echo_spec().parameters()

    assert params["properties"]["text"] == {"type": "string"}
    assert params["required"] == ["text"]
