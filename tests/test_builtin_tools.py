from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from skillgraph.errors import SecurityError, ToolError
from skillgraph.tools import builtin
from skillgraph.tools.builtin import (
    bash_command,
    default_registry,
    edit_file,
    format_arxiv_feed,
    glob_files,
    grep_search,
    read_file,
    web_fetch,
    write_file,
)


ARXIV_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <entry>
    <id>http://arxiv.org/abs/1706.03762v7</id>
    <published>2017-06-12T17:57:34Z</published>
    <title>Attention Is All
      You Need</title>
    <summary>  The dominant sequence transduction models are based on
      recurrent networks.  </summary>
    <author><name>Ashish Vaswani</name></author>
    <author><name>Noam Shazeer</name></author>
  </entry>
</feed>
"""


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.setenv("SKILLGRAPH_FILE_ROOT", str(tmp_path))
    return tmp_path


def test_read_file_numbers_lines_and_honors_offset(workspace: Path) -> None:
    (workspace / "notes.txt").write_text("alpha\nbeta\ngamma", encoding="utf-8")

    assert read_file.invoke({"file_path": "notes.txt"}) == "1→alpha\n2→beta\n3→gamma"
    assert read_file.invoke({"file_path": "notes.txt", "offset": 1, "limit": 1}) == "2→beta"
    assert read_file.invoke({"file_path": "missing.txt"}).startswith("Error: File not found")


def test_paths_outside_root_are_rejected(workspace: Path) -> None:
    with pytest.raises(SecurityError):
        read_file.invoke({"file_path": "../outside.txt"})
    with pytest.raises(SecurityError):
        write_file.invoke({"file_path": "/etc/skillgraph-test", "content": "x"})


def test_write_then_edit(workspace: Path) -> None:
    assert write_file.invoke({"file_path": "sub/a.txt", "content": "one two two"}) == "File written: sub/a.txt"

    assert edit_file.invoke(
        {"file_path": "sub/a.txt", "old_string": "two", "new_string": "2"}
    ).startswith("Error: old_string found in 2 places")
    assert edit_file.invoke(
        {"file_path": "sub/a.txt", "old_string": "one", "new_string": "1"}
    ) == "File edited: sub/a.txt"
    assert edit_file.invoke(
        {"file_path": "sub/a.txt", "old_string": "two", "new_string": "2", "replace_all": True}
    ) == "Replaced 2 occurrence(s): sub/a.txt"
    assert edit_file.invoke(
        {"file_path": "sub/a.txt", "old_string": "zzz", "new_string": "y"}
    ) == "Error: old_string not found"
    assert edit_file.invoke(
        {"file_path": "sub/a.txt", "old_string": "1", "new_string": "1"}
    ) == "Error: old_string and new_string are the same"

    assert (workspace / "sub" / "a.txt").read_text(encoding="utf-8") == "1 2 2"


def test_glob_and_grep(workspace: Path) -> None:
    (workspace / "pkg").mkdir()
    (workspace / "pkg" / "mod.py").write_text("import os\nTODO = 1\n", encoding="utf-8")
    (workspace / "readme.md").write_text("todo list\n", encoding="utf-8")

    assert glob_files.invoke({"pattern": "**/*.py"}) == str(workspace.resolve() / "pkg" / "mod.py")
    assert glob_files.invoke({"pattern": "*.rs"}) == "No matching files found"

    assert grep_search.invoke({"pattern": "TODO", "glob_pattern": "*.py"}) == "pkg/mod.py:2:TODO = 1"
    matches = grep_search.invoke({"pattern": "todo", "case_insensitive": True}).splitlines()
    assert sorted(matches) == ["pkg/mod.py:2:TODO = 1", "readme.md:1:todo list"]
    assert grep_search.invoke({"pattern": "nothing-here"}) == "No matches"
    assert grep_search.invoke({"pattern": "("}).startswith("Error: invalid regex")


def test_bash_command_runs_in_root(workspace: Path) -> None:
    assert bash_command.invoke({"command": "pwd"}).strip() == str(workspace.resolve())
    assert bash_command.invoke({"command": "true"}) == "Command completed successfully (no output)"

    with pytest.raises(ToolError) as excinfo:
        bash_command.invoke({"command": "echo oops >&2; exit 3"})
    assert "exit code 3" in str(excinfo.value)
    assert "oops" in str(excinfo.value)


def test_web_fetch_upgrades_to_https_and_truncates(monkeypatch) -> None:
    response = MagicMock(ok=True, text="x" * 20)
    get = MagicMock(return_value=response)
    monkeypatch.setattr(builtin.requests, "get", get)

    result = web_fetch.invoke({"url": "http://example.com/page", "max_length": 5})

    assert get.call_args[0][0] == "https://example.com/page"
    assert result.startswith("xxxxx\n\n[... Content truncated. Original length: 20 characters")


def test_web_fetch_reports_http_and_network_errors(monkeypatch) -> None:
    monkeypatch.setattr(
        builtin.requests, "get", MagicMock(return_value=MagicMock(ok=False, status_code=404, reason="Not Found"))
    )
    assert web_fetch.invoke({"url": "https://example.com"}) == "Error: HTTP 404 Not Found"

    monkeypatch.setattr(builtin.requests, "get", MagicMock(side_effect=requests.ConnectionError("down")))
    assert web_fetch.invoke({"url": "https://example.com"}).startswith("Error fetching URL: down")


def test_format_arxiv_feed() -> None:
    assert format_arxiv_feed(ARXIV_FEED) == (
        "Published: 2017-06-12\n"
        "Title: Attention Is All You Need\n"
        "Authors: Ashish Vaswani, Noam Shazeer\n"
        "URL: http://arxiv.org/abs/1706.03762v7\n"
        "Summary: The dominant sequence transduction models are based on recurrent networks."
    )


def test_arxiv_search_queries_api(monkeypatch) -> None:
    response = MagicMock(text=ARXIV_FEED)
    get = MagicMock(return_value=response)
    monkeypatch.setattr(builtin.requests, "get", get)

    result = builtin.arxiv_search.invoke({"query": "attention", "max_papers": 3})

    assert "Title: Attention Is All You Need" in result
    assert get.call_args.kwargs["params"] == {"search_query": "all:attention", "start": 0, "max_results": 3}
    assert result.count("Published:") == 1


def test_arxiv_search_failures_raise_tool_error(monkeypatch) -> None:
    monkeypatch.setattr(builtin.requests, "get", MagicMock(side_effect=requests.Timeout("slow")))
    with pytest.raises(ToolError):
        builtin.arxiv_search.invoke({"query": "x"})

    monkeypatch.setattr(builtin.requests, "get", MagicMock(return_value=MagicMock(text="<not xml")))
    with pytest.raises(ToolError):
        builtin.arxiv_search.invoke({"query": "x"})


def test_arxiv_search_without_results(monkeypatch) -> None:
    empty = '<feed xmlns="http://www.w3.org/2005/Atom"></feed>'
    monkeypatch.setattr(builtin.requests, "get", MagicMock(return_value=MagicMock(text=empty)))

    assert builtin.arxiv_search.invoke({"query": "zzz"}) == "No papers found for query: zzz"


def test_default_registry_selects_by_category() -> None:
    assert len(default_registry()) == len(builtin.BUILTIN_TOOLS)
    assert default_registry(["web"]).names() == ["web_fetch", "arxiv_search"]
    assert default_registry(["exec", "read_file"]).names() == ["bash_command", "read_file"]
