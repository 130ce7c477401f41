"""Render loaded skills into the one-time system prompt."""
from __future__ import annotations

import re
from typing import Iterable, List, Sequence

from skillgraph.skills.parser import SkillDescriptor


READ_TOOL = "read_file"
SHELL_TOOL = "bash_command"

_SKILL_LINE = re.compile(r"^\*\*(?P<name>.+?)\*\*: ", re.MULTILINE)


def _skill_entry(skill: SkillDescriptor, can_read: bool) -> str:
    entry = f"**{skill.name}**: {skill.description}\n"
    if can_read:
        entry += f"   - Full instructions: Read {skill.source_path} using the {READ_TOOL} tool"
    else:
        entry += f"   - Full instructions: {skill.source_path}"
    return entry


def render_skills_prompt(skills: Sequence[SkillDescriptor], tool_names: Iterable[str]) -> str:
    """Build the system prompt listing skills and available tools.

    Only skill metadata (name, description, path) is rendered; the model
    reads full instructions on demand through the file tool.

    Args:
        skills: Loaded skill descriptors
        tool_names: Names registered in the tool registry

    Returns:
        Prompt text for a single System message
    """
    names = sorted(set(tool_names))
    can_read = READ_TOOL in names

    prompt = ""
    if skills:
        prompt += "You have access to the following skills:\n\n"
        prompt += "\n\n".join(_skill_entry(skill, can_read) for skill in skills)
        prompt += "\n\n"
        prompt += "When a user asks you to use a skill:\n"
        if can_read:
            prompt += f"1. Use the {READ_TOOL} tool to read the SKILL.md file\n"
        else:
            prompt += "1. Recall the skill's SKILL.md instructions\n"
        prompt += "2. Follow the instructions in the SKILL.md file exactly\n"
        if SHELL_TOOL in names:
            prompt += f"3. Use the {SHELL_TOOL} tool if the instructions require running a command\n"
    else:
        prompt += "No skills are installed.\n"

    if names:
        prompt += "\nAvailable tools:\n"
        prompt += "\n".join(f"- {name}" for name in names)
        prompt += "\n"

    return prompt


def parse_rendered_skill_names(prompt: str) -> List[str]:
    """Recover skill names from a prompt built by render_skills_prompt()."""
    return [match.group("name") for match in _SKILL_LINE.finditer(prompt)]
