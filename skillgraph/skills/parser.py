"""Skill parser for SKILL.md files.

A SKILL.md starts with a header block delimited by lines of exactly ``---``
holding ``key: value`` lines, followed by free-form instructions::

    ---
    name: arxiv-search
    description: Search arXiv for papers
    ---
    Run the arxiv_search tool with the user's query.

Only ``name`` and ``description`` are required. Keys are case-sensitive and
the first occurrence of a key wins. The header is deliberately not parsed
as YAML, so values such as ``description: Search: papers`` stay valid.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple

from skillgraph.errors import SkillParseError


SKILL_FILE_NAME = "SKILL.md"
HEADER_DELIMITER = "---"
REQUIRED_KEYS = ("name", "description")


@dataclass(frozen=True)
class SkillDescriptor:
    name: str
    description: str
    source_path: str
    instructions: str


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def split_header(text: str) -> Tuple[List[str], str]:
    """Split SKILL.md text into header lines and body.

    Returns:
        Tuple of (header_lines, body). The body starts right after the
        newline that ends the closing delimiter line; a blank line there is
        kept.

    Raises:
        SkillParseError: If the opening or closing delimiter is missing
    """
    if text.startswith("\ufeff"):
        text = text[1:]

    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip("\r\n") != HEADER_DELIMITER:
        raise SkillParseError("missing opening '---' header delimiter")

    for index in range(1, len(lines)):
        if lines[index].rstrip("\r\n") == HEADER_DELIMITER:
            header = [line.rstrip("\r\n") for line in lines[1:index]]
            body = "".join(lines[index + 1:])
            return header, body

    raise SkillParseError("missing closing '---' header delimiter")


def parse_header(lines: List[str]) -> Dict[str, str]:
    """Parse ``key: value`` lines. The first occurrence of a key wins."""
    fields: Dict[str, str] = {}
    for line in lines:
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        if not key:
            continue
        fields.setdefault(key, _strip_quotes(value.strip()))
    return fields


def parse_skill_text(text: str, source_path: str) -> SkillDescriptor:
    """Parse the contents of a SKILL.md file.

    Args:
        text: Full file contents
        source_path: Path recorded on the descriptor

    Returns:
        SkillDescriptor with the body as ``instructions``

    Raises:
        SkillParseError: If the header is malformed or a required key is
            missing or empty
    """
    header, body = split_header(text)
    fields = parse_header(header)

    missing = [key for key in REQUIRED_KEYS if not fields.get(key)]
    if missing:
        raise SkillParseError(f"missing required header key(s): {', '.join(missing)}")

    return SkillDescriptor(
        name=fields["name"],
        description=fields["description"],
        source_path=source_path,
        instructions=body,
    )


def parse_skill_file(skill_file: Path) -> SkillDescriptor:
    """Read and parse a SKILL.md file.

    Raises:
        OSError: If the file cannot be read
        UnicodeDecodeError: If the file is not UTF-8
        SkillParseError: If the header is malformed
    """
    text = skill_file.read_text(encoding="utf-8")
    return parse_skill_text(text, str(skill_file))
