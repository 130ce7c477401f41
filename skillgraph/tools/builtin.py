"""Built-in tools available to the agent.

Available tools:
- read_file: Read a file with numbered lines
- write_file: Create or overwrite a file
- edit_file: Exact string replacement inside a file
- glob_files: Find files by glob pattern
- grep_search: Search file contents with a regex
- bash_command: Run a bash command
- web_fetch: Fetch a URL as text
- arxiv_search: Search the arXiv preprint repository

File and shell tools are confined to the directory returned by
``skillgraph.config.file_root()`` (SKILLGRAPH_FILE_ROOT or the CWD).
"""
from __future__ import annotations

import fnmatch
import re
import subprocess
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import requests
from langchain_core.tools import BaseTool, tool

from skillgraph.config import file_root
from skillgraph.errors import SecurityError, ToolError
from skillgraph.tools.registry import ToolRegistry


MAX_FILE_BYTES = 1024 * 1024
MAX_COMMAND_OUTPUT = 30_000
MAX_GREP_MATCHES = 200
USER_AGENT = "Mozilla/5.0 (compatible; skillgraph/0.1)"
ARXIV_API_URL = "https://export.arxiv.org/api/query"
ATOM_NS = {"atom": "http://www.w3.org/2005/Atom"}


def _resolve_path_in_root(user_path: str) -> Path:
    """Resolve a user-provided path and ensure it stays within file_root()."""
    root = file_root()
    candidate = Path(user_path).expanduser()
    if not candidate.is_absolute():
        candidate = root / candidate

    candidate = candidate.resolve()

    try:
        candidate.relative_to(root)
    except ValueError as e:
        raise SecurityError(
            f"Access denied: '{user_path}' is outside allowed root '{root}'"
        ) from e

    return candidate


def _truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return (
        f"{text[:max_length]}\n\n[... Content truncated. Original length: {len(text)} "
        f"characters, showing first {max_length} characters ...]"
    )


# =============================================================================
# File Operations
# =============================================================================

@tool
def read_file(file_path: str, offset: int = 0, limit: int = 2000) -> str:
    """Read a file. Use this to read SKILL.md files for detailed instructions.

    Args:
        file_path: Path to the file, relative to the workspace root or absolute
        offset: Line number to start reading from (0-based)
        limit: Maximum number of lines to return

    Returns:
        File lines prefixed with their 1-based line number, or an error message
    """
    path = _resolve_path_in_root(file_path)
    if not path.exists():
        return f"Error: File not found: {file_path}"
    if not path.is_file():
        return f"Error: Not a file: {file_path}"
    if path.stat().st_size > MAX_FILE_BYTES:
        return f"Error: File too large (max 1MB): {file_path}"

    try:
        lines = path.read_text(encoding="utf-8").split("\n")
    except UnicodeDecodeError:
        return f"Error: Not a UTF-8 text file: {file_path}"

    start = max(offset, 0)
    end = start + max(limit, 0)
    return "\n".join(
        f"{start + idx + 1}→{line}" for idx, line in enumerate(lines[start:end])
    )


@tool
def write_file(file_path: str, content: str) -> str:
    """Write content to a file. Existing files are overwritten.

    Args:
        file_path: Path to the file to write
        content: Content to write
    """
    path = _resolve_path_in_root(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return f"File written: {file_path}"


@tool
def edit_file(file_path: str, old_string: str, new_string: str, replace_all: bool = False) -> str:
    """Perform an exact string replacement in a file.

    old_string must match the file content exactly and, unless replace_all
    is set, occur exactly once.

    Args:
        file_path: Path to the file to edit
        old_string: Text to replace
        new_string: Replacement text (must differ from old_string)
        replace_all: Replace every occurrence
    """
    if old_string == new_string:
        return "Error: old_string and new_string are the same"

    path = _resolve_path_in_root(file_path)
    if not path.is_file():
        return f"Error: File not found: {file_path}"

    content = path.read_text(encoding="utf-8")
    occurrences = content.count(old_string) if old_string else 0

    if occurrences == 0:
        return "Error: old_string not found"

    if replace_all:
        path.write_text(content.replace(old_string, new_string), encoding="utf-8")
        return f"Replaced {occurrences} occurrence(s): {file_path}"

    if occurrences > 1:
        return (
            f"Error: old_string found in {occurrences} places. Must be unique. "
            "Include more context or use replace_all=true."
        )

    path.write_text(content.replace(old_string, new_string, 1), encoding="utf-8")
    return f"File edited: {file_path}"


@tool
def glob_files(pattern: str, search_path: Optional[str] = None) -> str:
    """Find files matching a glob pattern (e.g. **/*.py). Newest first.

    Args:
        pattern: Glob pattern relative to the search directory
        search_path: Directory to search. Defaults to the workspace root
    """
    base = _resolve_path_in_root(search_path) if search_path else file_root()
    if not base.is_dir():
        return f"Error: Not a directory: {search_path}"

    files = [p for p in base.glob(pattern) if p.is_file()]
    files.sort(key=lambda p: p.stat().st_mtime, reverse=True)

    if not files:
        return "No matching files found"
    return "\n".join(str(p) for p in files)


def _iter_search_files(base: Path, glob_pattern: Optional[str]) -> Iterator[Path]:
    if base.is_file():
        yield base
        return
    for path in sorted(base.rglob("*")):
        if not path.is_file():
            continue
        if glob_pattern:
            relative = path.relative_to(base).as_posix()
            if not (fnmatch.fnmatch(path.name, glob_pattern) or fnmatch.fnmatch(relative, glob_pattern)):
                continue
        yield path


@tool
def grep_search(
    pattern: str,
    search_path: Optional[str] = None,
    glob_pattern: Optional[str] = None,
    case_insensitive: bool = False,
) -> str:
    """Search file contents with a regular expression.

    Args:
        pattern: Regex pattern to search for
        search_path: File or directory to search. Defaults to the workspace root
        glob_pattern: File filter (e.g. *.py)
        case_insensitive: Case insensitive search

    Returns:
        Matches as path:line:text, or "No matches"
    """
    try:
        regex = re.compile(pattern, re.IGNORECASE if case_insensitive else 0)
    except re.error as e:
        return f"Error: invalid regex: {e}"

    root = file_root()
    base = _resolve_path_in_root(search_path) if search_path else root
    if not base.exists():
        return f"Error: Path not found: {search_path}"

    matches: List[str] = []
    for path in _iter_search_files(base, glob_pattern):
        if path.stat().st_size > MAX_FILE_BYTES:
            continue
        try:
            text = path.read_text(encoding="utf-8")
        except (UnicodeDecodeError, OSError):
            continue
        display = path.relative_to(root).as_posix()
        for lineno, line in enumerate(text.splitlines(), start=1):
            if regex.search(line):
                matches.append(f"{display}:{lineno}:{line}")
                if len(matches) >= MAX_GREP_MATCHES:
                    matches.append("...<more matches truncated>...")
                    return "\n".join(matches)

    return "\n".join(matches) if matches else "No matches"


# =============================================================================
# Command Execution
# =============================================================================

@tool
def bash_command(command: str, timeout: int = 120000) -> str:
    """Execute a bash command in the workspace root.

    Use for git, package managers and scripts referenced by skills. Prefer
    the dedicated file tools for reading, writing and searching files.

    Args:
        command: Bash command to execute. Quote paths with spaces
        timeout: Timeout in milliseconds (max 600000)
    """
    timeout_s = min(max(int(timeout), 1), 600000) / 1000
    try:
        result = subprocess.run(
            ["/bin/bash", "-c", command],
            cwd=str(file_root()),
            capture_output=True,
            text=True,
            timeout=timeout_s,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise ToolError(f"Command timed out after {timeout_s:g}s") from e
    except FileNotFoundError as e:
        raise ToolError(f"bash not available: {e}") from e

    stdout = result.stdout or ""
    stderr = result.stderr or ""

    if result.returncode != 0:
        raise ToolError(
            f"Error (exit code {result.returncode}):\n"
            f"STDERR: {_truncate(stderr, MAX_COMMAND_OUTPUT)}\n"
            f"STDOUT: {_truncate(stdout, MAX_COMMAND_OUTPUT)}"
        )

    return _truncate(stdout, MAX_COMMAND_OUTPUT) or "Command completed successfully (no output)"


# =============================================================================
# Web Tools
# =============================================================================

@tool
def web_fetch(url: str, max_length: int = 50000) -> str:
    """Fetch content from a URL and return it as text.

    HTTP is upgraded to HTTPS. Large responses are truncated to prevent
    context overflow. Cannot be used with authenticated URLs.

    Args:
        url: Fully qualified URL to fetch
        max_length: Maximum character count (default: 50000)
    """
    fetch_url = re.sub(r"^http:", "https:", url)
    try:
        response = requests.get(fetch_url, headers={"User-Agent": USER_AGENT}, timeout=30)
    except requests.RequestException as e:
        return f"Error fetching URL: {e}"

    if not response.ok:
        return f"Error: HTTP {response.status_code} {response.reason}"

    return _truncate(response.text, max_length)


def format_arxiv_feed(feed_xml: str) -> str:
    """Format an arXiv Atom feed as readable paper summaries."""
    root = ET.fromstring(feed_xml)
    papers = []
    for entry in root.findall("atom:entry", ATOM_NS):
        title = " ".join((entry.findtext("atom:title", "", ATOM_NS)).split())
        summary = " ".join((entry.findtext("atom:summary", "", ATOM_NS)).split())
        published = (entry.findtext("atom:published", "", ATOM_NS))[:10]
        link = entry.findtext("atom:id", "", ATOM_NS).strip()
        authors = ", ".join(
            name.strip()
            for name in (a.findtext("atom:name", "", ATOM_NS) for a in entry.findall("atom:author", ATOM_NS))
            if name.strip()
        )
        papers.append(
            f"Published: {published}\nTitle: {title}\nAuthors: {authors}\nURL: {link}\nSummary: {summary}"
        )
    return "\n\n".join(papers)


@tool
def arxiv_search(query: str, max_papers: int = 10) -> str:
    """Search the arXiv preprint repository for papers in physics,
    mathematics, computer science, quantitative biology and related fields.

    Args:
        query: The search query string
        max_papers: Maximum number of papers to retrieve (default: 10)
    """
    try:
        response = requests.get(
            ARXIV_API_URL,
            params={"search_query": f"all:{query}", "start": 0, "max_results": max_papers},
            headers={"User-Agent": USER_AGENT},
            timeout=30,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        raise ToolError(f"arXiv request failed: {e}") from e

    try:
        formatted = format_arxiv_feed(response.text)
    except ET.ParseError as e:
        raise ToolError(f"Could not parse arXiv response: {e}") from e

    return formatted or f"No papers found for query: {query}"


# =============================================================================
# Tool Registry
# =============================================================================

BUILTIN_TOOLS: Dict[str, BaseTool] = {
    "read_file": read_file,
    "write_file": write_file,
    "edit_file": edit_file,
    "glob_files": glob_files,
    "grep_search": grep_search,
    "bash_command": bash_command,
    "web_fetch": web_fetch,
    "arxiv_search": arxiv_search,
}

TOOL_CATEGORIES = {
    "file": ["read_file", "write_file", "edit_file", "glob_files", "grep_search"],
    "exec": ["bash_command"],
    "web": ["web_fetch", "arxiv_search"],
}


def get_tools_by_names(names: List[str]) -> List[BaseTool]:
    """Get built-in tools by name, skipping unknown names."""
    return [BUILTIN_TOOLS[name] for name in names if name in BUILTIN_TOOLS]


def default_registry(names: Optional[List[str]] = None) -> ToolRegistry:
    """Build a registry holding the built-in tools.

    Args:
        names: Subset of tool names or category names; all tools if None
    """
    if names is None:
        return ToolRegistry(BUILTIN_TOOLS.values())

    selected: List[str] = []
    for name in names:
        for tool_name in TOOL_CATEGORIES.get(name, [name]):
            if tool_name not in selected:
                selected.append(tool_name)
    return ToolRegistry(get_tools_by_names(selected))
