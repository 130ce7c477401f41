from __future__ import annotations

from pathlib import Path

import pytest
from langchain_core.messages import AIMessage

from skillgraph import Agent
import skillgraph.cli as cli
from skillgraph.cli import main
from skillgraph.messages import AssistantMessage, HumanMessage, SystemMessage
from skillgraph.tools import FieldSpec, ToolSpec


class FakeLLM:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def bind_tools(self, _tools):
        return self

    async def ainvoke(self, messages):
        self.calls.append(list(messages))
        return self.responses.pop(0)


def _write_skill(skill_dir: Path, *, name: str, description: str, body: str) -> None:
    skill_dir.mkdir(parents=True, exist_ok=True)
    (skill_dir / "SKILL.md").write_text(
        "---\n" + f"name: {name}\n" + f"description: {description!r}\n" + "---\n\n" + body + "\n",
        encoding="utf-8",
    )


def _tools():
    return [
        ToolSpec(
            name="add",
            description="Add two integers",
            input_schema={"a": FieldSpec(type="integer"), "b": FieldSpec(type="integer")},
            handler=lambda a, b: a + b,
        )
    ]


@pytest.mark.parametrize("use_graph", [False, True])
def test_agent_runs_tool_loop_and_keeps_history(tmp_path: Path, use_graph: bool) -> None:
    skills_root = tmp_path / "skills"
    _write_skill(skills_root / "math", name="math", description="Arithmetic helper", body="Use add.")

    llm = FakeLLM(
        [
            AIMessage(
                content="",
                tool_calls=[{"name": "add", "args": {"a": 2, "b": 3}, "id": "c1", "type": "tool_call"}],
            ),
            AIMessage(content="2 + 3 = 5"),
            AIMessage(content="Still 5."),
        ]
    )
    agent = Agent(llm=llm, skills_dir=str(skills_root), tools=_tools(), use_graph=use_graph)

    try:
        assert agent.run("What is 2 + 3?") == "2 + 3 = 5"
        assert agent.run("Are you sure?") == "Still 5."
    finally:
        agent.close()

    transcript = agent.get_transcript()
    assert isinstance(transcript[0], SystemMessage)
    assert "**math**: Arithmetic helper" in transcript[0].text
    assert transcript[1] == HumanMessage(text="What is 2 + 3?")
    assert transcript[3].text == "5"
    assert transcript[-1] == AssistantMessage(text="Still 5.")
    assert sum(isinstance(m, SystemMessage) for m in transcript) == 1


def test_agent_reset_starts_new_conversation(tmp_path: Path) -> None:
    llm = FakeLLM([AIMessage(content="one"), AIMessage(content="two")])
    agent = Agent(llm=llm, skills_dir=str(tmp_path), tools=_tools())

    try:
        agent.run("first")
        agent.reset()
        agent.run("second")
    finally:
        agent.close()

    transcript = agent.get_transcript()
    assert [m for m in transcript if isinstance(m, HumanMessage)] == [HumanMessage(text="second")]


def test_agent_lists_skills(tmp_path: Path) -> None:
    _write_skill(tmp_path / "pdf", name="pdf", description="Work with PDFs", body="...")
    agent = Agent(llm=FakeLLM([]), skills_dir=str(tmp_path), tools=_tools())

    assert agent.list_skills() == [
        {"name": "pdf", "description": "Work with PDFs", "path": str(tmp_path / "pdf" / "SKILL.md")}
    ]


def test_agent_rejects_missing_skills_dir(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        Agent(llm=FakeLLM([]), skills_dir=str(tmp_path / "nope"))


def test_cli_skills_new_and_list(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    skills_root = tmp_path / "skills"

    assert main(["--skills-dir", str(skills_root), "skills", "new", "notes", "--description", "Take notes"]) == 0
    assert main(["--skills-dir", str(skills_root), "skills", "list"]) == 0

    out = capsys.readouterr().out
    assert "Created" in out
    assert "notes: Take notes" in out

    assert main(["--skills-dir", str(skills_root), "skills", "new", "notes", "--description", "Again"]) == 1


def test_cli_ask_without_api_key_fails(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    (tmp_path / "skills").mkdir()

    assert main(["--skills-dir", str(tmp_path / "skills"), "ask", "hello"]) == 1
    assert "OPENAI_API_KEY" in capsys.readouterr().err


class RecordingAgent:
    def __init__(self):
        self.events = []

    def interactive(self):
        self.events.append("interactive")

    def run(self, query):
        self.events.append(f"run:{query}")
        return "answer"

    def close(self):
        self.events.append("close")


@pytest.mark.parametrize(
    "argv, expected",
    [(["chat"], ["interactive", "close"]), (["ask", "hi"], ["run:hi", "close"])],
)
def test_cli_closes_agent_after_session(tmp_path: Path, monkeypatch, argv, expected) -> None:
    monkeypatch.chdir(tmp_path)
    agent = RecordingAgent()
    monkeypatch.setattr(cli, "_build_agent", lambda args, settings, skills_dir: agent)

    assert main(["--skills-dir", str(tmp_path), *argv]) == 0
    assert agent.events == expected


def test_agent_reset_and_run_share_one_event_loop(tmp_path: Path) -> None:
    agent = Agent(llm=FakeLLM([AIMessage(content="one")]), skills_dir=str(tmp_path), tools=_tools())

    try:
        agent.run("first")
        loop = agent._loop
        agent.reset()
        assert agent._loop is loop
        assert agent.get_transcript() == []
    finally:
        agent.close()
