"""Skills package: SKILL.md loading, prompt rendering and authoring."""

from skillgraph.skills.parser import (
    SKILL_FILE_NAME,
    SkillDescriptor,
    parse_skill_file,
    parse_skill_text,
)
from skillgraph.skills.loader import load_skills
from skillgraph.skills.render import parse_rendered_skill_names, render_skills_prompt
from skillgraph.skills.authoring import create_skill

__all__ = [
    "SKILL_FILE_NAME",
    "SkillDescriptor",
    "parse_skill_file",
    "parse_skill_text",
    "load_skills",
    "render_skills_prompt",
    "parse_rendered_skill_names",
    "create_skill",
]
