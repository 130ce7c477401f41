"""Main Agent class for the skillgraph library."""
import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from langchain_core.language_models import BaseChatModel
from langchain_core.tools import BaseTool

from skillgraph.config import DEFAULT_MAX_ITERATIONS
from skillgraph.engine.model import ChatModelClient
from skillgraph.engine.turn_loop import TurnLoopEngine
from skillgraph.graph.builder import create_agent_graph, graph_transcript, send_to_graph
from skillgraph.messages import AssistantMessage, Message
from skillgraph.skills.loader import load_skills
from skillgraph.tools.builtin import default_registry
from skillgraph.tools.registry import ToolRegistry, ToolSpec


logger = logging.getLogger(__name__)


class Agent:
    """AI agent that advertises SKILL.md skills and calls tools until done.

    By default turns are driven by ``TurnLoopEngine``. With ``use_graph=True``
    the same loop runs as a compiled LangGraph graph with a MemorySaver
    checkpointer.

    Example:
        ```python
        from skillgraph import Agent
        from langchain_openai import ChatOpenAI

        llm = ChatOpenAI(model="gpt-4o", temperature=0)
        agent = Agent(llm=llm, skills_dir="./skills")

        response = agent.run("Find recent papers on retrieval augmentation")
        print(response)

        # Continue conversation
        response = agent.run("Summarize the second one")
        ```
    """

    def __init__(
        self,
        llm: BaseChatModel,
        skills_dir: str = "./skills",
        tools: Optional[Union[ToolRegistry, Iterable[Union[ToolSpec, BaseTool]]]] = None,
        thread_id: str = "default",
        use_graph: bool = False,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        turn_timeout: Optional[float] = None,
    ):
        """Initialize agent with LLM, skills and tools.

        Args:
            llm: LangChain chat model instance (pre-configured)
                 Examples:
                 - ChatOpenAI(model="gpt-4o")
                 - ChatOpenAI(base_url="http://localhost:11434/v1", model="llama3.1")
            skills_dir: Directory whose subdirectories hold SKILL.md files
            tools: Registry or iterable of tools (all built-in tools if None)
            thread_id: Conversation identifier (default: "default")
            use_graph: Run turns through the LangGraph graph instead of the engine
            max_iterations: Maximum model calls per turn
            turn_timeout: Seconds before a turn is abandoned (None waits forever)

        Raises:
            ValueError: If skills_dir does not exist or is not a directory
        """
        skills_path = Path(skills_dir)
        if not skills_path.exists():
            raise ValueError(f"Skills directory not found: {skills_dir}")
        if not skills_path.is_dir():
            raise ValueError(f"Skills path is not a directory: {skills_dir}")

        self.llm = llm
        self.skills_dir = skills_dir
        self.thread_id = thread_id
        self.use_graph = use_graph
        self.max_iterations = max_iterations
        self.turn_timeout = turn_timeout
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        if tools is None:
            self.registry = default_registry()
        elif isinstance(tools, ToolRegistry):
            self.registry = tools
        else:
            self.registry = ToolRegistry(tools)

        self.skills = load_skills(skills_dir)

        self.engine: Optional[TurnLoopEngine] = None
        self.graph = None
        if use_graph:
            self.graph = create_agent_graph(llm=llm, registry=self.registry, skills=self.skills)
        else:
            self.engine = TurnLoopEngine(
                model=ChatModelClient(llm),
                registry=self.registry,
                skills=self.skills,
                max_iterations=max_iterations,
                turn_timeout=turn_timeout,
            )

    async def arun(self, user_input: str) -> str:
        """Run one turn asynchronously and return the final assistant text.

        State is preserved across calls for the agent's thread id.
        """
        if self.engine is not None:
            session = await self.engine.send(self.thread_id, user_input)
            transcript = list(session.transcript)
        else:
            transcript = await send_to_graph(
                self.graph,
                self.thread_id,
                user_input,
                recursion_limit=2 * self.max_iterations + 1,
                timeout=self.turn_timeout,
            )

        last_message = transcript[-1] if transcript else None
        if isinstance(last_message, AssistantMessage):
            return last_message.text
        return ""

    def run(self, user_input: str) -> str:
        """Run agent with user input and return response.

        Args:
            user_input: User's message/query

        Returns:
            Agent's response as string
        """
        return self._run_sync(self.arun(user_input))

    def _run_sync(self, coro):
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.new_event_loop()
        return self._loop.run_until_complete(coro)

    def close(self):
        """Close the event loop used by run()."""
        if self._loop is not None and not self._loop.is_closed():
            self._loop.close()
        self._loop = None

    def get_transcript(self) -> List[Message]:
        """Return the current thread's transcript, system prompt first."""
        if self.engine is not None:
            return list(self.engine.get_session(self.thread_id).transcript)

        config = {"configurable": {"thread_id": self.thread_id}}
        snapshot = self.graph.get_state(config)
        return graph_transcript(snapshot.values) if snapshot else []

    def reset(self):
        """Start a new conversation.

        The engine forgets the thread's session; the graph switches to a
        fresh thread id since checkpoints are append-only.
        """
        if self.engine is not None:
            self._run_sync(self.engine.reset(self.thread_id))
        else:
            self.thread_id = f"thread_{int(time.time() * 1000)}"
        logger.info("Conversation reset (thread %s)", self.thread_id)

    def list_skills(self) -> List[Dict[str, str]]:
        """List all loaded skills.

        Returns:
            List of dictionaries with 'name', 'description' and 'path' keys
        """
        return [
            {
                "name": skill.name,
                "description": skill.description,
                "path": str(skill.source_path),
            }
            for skill in self.skills
        ]

    def interactive(self):
        """Start an interactive chat session with the agent.

        Type 'exit', 'quit', or press Ctrl+C to stop.
        Type 'skills' to list available skills.
        Type 'reset' to start a new conversation.
        """
        print("skillgraph interactive mode")
        print("=" * 60)
        print("Commands: 'skills', 'reset', 'exit'")
        print("=" * 60)
        print()

        while True:
            try:
                user_input = input("You: ").strip()

                if not user_input:
                    continue

                if user_input.lower() in ["exit", "quit"]:
                    print("\nGoodbye!")
                    break

                if user_input.lower() == "skills":
                    skills = self.list_skills()
                    if skills:
                        print("\nAvailable Skills:")
                        for skill in skills:
                            print(f"  - {skill['name']}: {skill['description']}")
                    else:
                        print("\nNo skills installed")
                    print()
                    continue

                if user_input.lower() == "reset":
                    self.reset()
                    print("\nConversation reset\n")
                    continue

                print("\nAgent: ", end="", flush=True)
                response = self.run(user_input)
                print(response)
                print()

            except EOFError:
                print("\n\nGoodbye!")
                break
            except KeyboardInterrupt:
                print("\n\nInterrupted. Goodbye!")
                break
            except Exception as e:
                print(f"\nError: {e}")
                if os.environ.get("DEBUG"):
                    logger.exception("Turn failed")
                print()
