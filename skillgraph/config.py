"""Environment-driven settings.

Values come from the process environment, optionally seeded from a ``.env``
file via python-dotenv.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from skillgraph.errors import ConfigurationError


ENV_PREFIX = "SKILLGRAPH_"

DEFAULT_MODEL = "gpt-4o"
DEFAULT_SKILLS_DIR = "./skills"
DEFAULT_MAX_ITERATIONS = 25


def file_root() -> Path:
    """Return the root directory that file and shell tools may access.

    Default is the current working directory. Override with
    SKILLGRAPH_FILE_ROOT.
    """
    root = os.environ.get(f"{ENV_PREFIX}FILE_ROOT")
    base = Path(root).expanduser() if root else Path.cwd()
    return base.resolve()


def _optional_float(env: Mapping[str, str], key: str) -> Optional[float]:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{key} must be positive, got {raw!r}")
    return value


def _positive_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from e
    if value < 1:
        raise ConfigurationError(f"{key} must be at least 1, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    model: str = DEFAULT_MODEL
    api_key: Optional[str] = None
    skills_dir: str = DEFAULT_SKILLS_DIR
    turn_timeout: Optional[float] = None
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> "Settings":
        """Build settings from environment variables.

        Args:
            env: Mapping to read instead of ``os.environ`` (tests)
            dotenv: Load a ``.env`` file into ``os.environ`` first

        Raises:
            ConfigurationError: If a numeric variable is malformed
        """
        if env is None:
            if dotenv:
                load_dotenv()
            env = os.environ

        log_level = env.get(f"{ENV_PREFIX}LOG_LEVEL", "WARNING").strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigurationError(f"Unknown log level: {log_level!r}")

        return cls(
            model=env.get(f"{ENV_PREFIX}MODEL") or DEFAULT_MODEL,
            api_key=env.get("OPENAI_API_KEY") or None,
            skills_dir=env.get(f"{ENV_PREFIX}SKILLS_DIR") or DEFAULT_SKILLS_DIR,
            turn_timeout=_optional_float(env, f"{ENV_PREFIX}TURN_TIMEOUT"),
            max_iterations=_positive_int(env, f"{ENV_PREFIX}MAX_ITERATIONS", DEFAULT_MAX_ITERATIONS),
            log_level=log_level,
        )


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
