"""Create new skill folders with a SKILL.md scaffold.

Writing goes through `python-frontmatter` (import name: `frontmatter`), which
emits the ``---`` delimited header the loader expects.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import frontmatter

from skillgraph.skills.parser import SKILL_FILE_NAME


logger = logging.getLogger(__name__)


def create_skill(
    root: Union[str, Path],
    name: str,
    description: str,
    instructions: str = "",
) -> Path:
    """Write ``<root>/<name>/SKILL.md``.

    Args:
        root: Skills directory
        name: Skill name, also used as the folder name
        description: One-line description shown to the model
        instructions: Markdown body

    Returns:
        Path to the new SKILL.md

    Raises:
        ValueError: If name/description are empty or span several lines
        FileExistsError: If the skill already has a SKILL.md
    """
    for key, value in (("name", name), ("description", description)):
        if not value or not value.strip():
            raise ValueError(f"Skill {key} must not be empty")
        if "\n" in value:
            raise ValueError(f"Skill {key} must be a single line")

    if "/" in name or "\\" in name or name in (".", ".."):
        raise ValueError(f"Invalid skill name for a folder: {name!r}")

    skill_dir = Path(root) / name
    skill_file = skill_dir / SKILL_FILE_NAME
    if skill_file.exists():
        raise FileExistsError(f"Skill already exists: {skill_file}")

    post = frontmatter.Post("", name=name, description=description)
    # One header line per key: the loader does not read folded YAML values.
    header = frontmatter.dumps(post, sort_keys=False, width=1_000_000).rstrip()

    skill_dir.mkdir(parents=True, exist_ok=True)
    # The body follows the closing delimiter line directly.
    skill_file.write_text(f"{header}\n{instructions}", encoding="utf-8")

    logger.info("Created skill %r at %s", name, skill_file)
    return skill_file
