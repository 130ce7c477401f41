"""Command-line entry point (``skillgraph``)."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from langchain_openai import ChatOpenAI

from skillgraph.agent import Agent
from skillgraph.config import Settings, configure_logging
from skillgraph.errors import ConfigurationError, SkillGraphError
from skillgraph.skills.authoring import create_skill
from skillgraph.skills.loader import load_skills


logger = logging.getLogger(__name__)


def build_chat_model(settings: Settings) -> ChatOpenAI:
    """Create the default chat model from settings.

    Raises:
        ConfigurationError: If no OpenAI API key is configured
    """
    if not settings.api_key:
        raise ConfigurationError("OPENAI_API_KEY is not set")
    logger.info("Creating chat model: %s", settings.model)
    return ChatOpenAI(model=settings.model, api_key=settings.api_key, temperature=0)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skillgraph",
        description="Tool-calling agent with SKILL.md skills",
    )
    parser.add_argument("--skills-dir", help="Skills root directory (default: SKILLGRAPH_SKILLS_DIR or ./skills)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    ask = subparsers.add_parser("ask", help="Run a single query and print the answer")
    ask.add_argument("query")
    ask.add_argument("--graph", action="store_true", help="Run through the LangGraph graph")
    ask.add_argument("--thread-id", default="default")

    chat = subparsers.add_parser("chat", help="Interactive chat session")
    chat.add_argument("--graph", action="store_true", help="Run through the LangGraph graph")
    chat.add_argument("--thread-id", default="default")

    skills = subparsers.add_parser("skills", help="Manage installed skills")
    skills_sub = skills.add_subparsers(dest="skills_command", required=True)
    skills_sub.add_parser("list", help="List installed skills")
    new = skills_sub.add_parser("new", help="Create a new skill")
    new.add_argument("name")
    new.add_argument("--description", required=True)
    new.add_argument("--instructions", default="")

    return parser


def _build_agent(args: argparse.Namespace, settings: Settings, skills_dir: str) -> Agent:
    return Agent(
        llm=build_chat_model(settings),
        skills_dir=skills_dir,
        thread_id=args.thread_id,
        use_graph=args.graph,
        max_iterations=settings.max_iterations,
        turn_timeout=settings.turn_timeout,
    )


def _skills_command(args: argparse.Namespace, skills_dir: str) -> int:
    if args.skills_command == "new":
        path = create_skill(skills_dir, args.name, args.description, args.instructions)
        print(f"Created {path}")
        return 0

    skills = load_skills(skills_dir)
    if not skills:
        print("No skills installed")
        return 0
    for skill in skills:
        print(f"{skill.name}: {skill.description}")
        print(f"    {skill.source_path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
        configure_logging("DEBUG" if args.verbose else settings.log_level)
        skills_dir = args.skills_dir or settings.skills_dir

        if args.command == "skills":
            return _skills_command(args, skills_dir)

        agent = _build_agent(args, settings, skills_dir)
        try:
            if args.command == "chat":
                agent.interactive()
            else:
                print(agent.run(args.query))
        finally:
            agent.close()
        return 0

    except (SkillGraphError, ValueError, FileExistsError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
