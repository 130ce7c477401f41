"""Skill loader: turn a skills directory into SkillDescriptors."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Union

from skillgraph.errors import SkillParseError
from skillgraph.skills.parser import SKILL_FILE_NAME, SkillDescriptor, parse_skill_file


logger = logging.getLogger(__name__)


def load_skills(root: Union[str, Path]) -> List[SkillDescriptor]:
    """Load every skill found in the immediate subdirectories of ``root``.

    Subdirectories without a SKILL.md are skipped silently. A SKILL.md that
    cannot be read or lacks a valid header is skipped with a warning; one
    bad skill never aborts loading of the rest.

    The result follows the platform's directory enumeration order, which is
    not guaranteed to be stable. Use it for display only.

    Args:
        root: Directory holding one subdirectory per skill

    Returns:
        List of skill descriptors (possibly empty)
    """
    skills_root = Path(root)
    if not skills_root.is_dir():
        logger.warning("Skills directory not found: %s", skills_root)
        return []

    skills: List[SkillDescriptor] = []
    with os.scandir(skills_root) as entries:
        for entry in entries:
            if not entry.is_dir():
                continue

            skill_file = Path(entry.path) / SKILL_FILE_NAME
            if not skill_file.is_file():
                continue

            try:
                skill = parse_skill_file(skill_file)
            except SkillParseError as e:
                logger.warning("Skipping skill at %s: %s", skill_file, e)
                continue
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Could not load skill from %s: %s", skill_file, e)
                continue

            logger.debug("Loaded skill %r from %s", skill.name, skill_file)
            skills.append(skill)

    logger.info("Loaded %d skill(s) from %s", len(skills), skills_root)
    return skills
