"""The turn-loop engine: model -> (tools -> model)* -> done.

```
            +--------------------+
  start --> |   AWAITING_MODEL   | --(no tool calls)--> DONE
            +--------------------+
               ^            |
               |       (tool calls)
               |            v
            +--------------------+
            |   AWAITING_TOOLS   |
            +--------------------+
```
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Dict, List, Optional, Sequence, Tuple

from skillgraph.config import DEFAULT_MAX_ITERATIONS
from skillgraph.engine.model import ModelClient
from skillgraph.engine.nodes import (
    dispatch_tool_calls,
    needs_skill_prompt,
    should_continue,
    summarize_transcript,
)
from skillgraph.engine.session import InMemorySessionStore, Session, SessionStore
from skillgraph.errors import (
    ConfigurationError,
    IterationLimitError,
    ModelInvocationError,
    TurnTimeoutError,
)
from skillgraph.messages import AssistantMessage, HumanMessage, Message, SystemMessage
from skillgraph.skills.parser import SkillDescriptor
from skillgraph.skills.render import render_skills_prompt
from skillgraph.tools.registry import ToolRegistry


logger = logging.getLogger(__name__)


class TurnState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    AWAITING_TOOLS = "awaiting_tools"
    DONE = "done"


@dataclass(frozen=True)
class TurnOutcome:
    transcript: Tuple[Message, ...]
    state: TurnState
    model_calls: int

    @property
    def final_text(self) -> str:
        for message in reversed(self.transcript):
            if isinstance(message, AssistantMessage):
                return message.text
        return ""


class TurnLoopEngine:
    """Drives conversations turn by turn until the model stops calling tools.

    Tool failures become tool-result text the model can react to. Model
    failures, timeouts and iteration overruns propagate; in those cases the
    stored session is left exactly as it was before the turn.

    Example:
        ```python
        engine = TurnLoopEngine(
            model=ChatModelClient(ChatOpenAI(model="gpt-4o")),
            registry=default_registry(),
            skills=load_skills("./skills"),
        )
        session = await engine.send("thread-1", "Search arXiv for transformers")
        print(session.transcript[-1].text)
        ```
    """

    def __init__(
        self,
        model: Optional[ModelClient],
        registry: Optional[ToolRegistry],
        skills: Optional[Sequence[SkillDescriptor]] = None,
        store: Optional[SessionStore] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        turn_timeout: Optional[float] = None,
    ):
        """Initialize the engine.

        Args:
            model: Model client producing assistant messages
            registry: Tool registry used for dispatch
            skills: Skills to advertise in the first-turn system prompt.
                None disables the injection entirely.
            store: Session store (in-memory by default)
            max_iterations: Maximum model calls within one turn
            turn_timeout: Default timeout in seconds for send()

        Raises:
            ConfigurationError: If model or registry is missing
        """
        if model is None:
            raise ConfigurationError("No model configured for the turn-loop engine")
        if registry is None:
            raise ConfigurationError("No tool registry configured for the turn-loop engine")
        if max_iterations < 1:
            raise ConfigurationError("max_iterations must be at least 1")

        self.model = model
        self.registry = registry
        self.skills = tuple(skills) if skills is not None else None
        self.store = store if store is not None else InMemorySessionStore()
        self.max_iterations = max_iterations
        self.turn_timeout = turn_timeout
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _thread_lock(self, thread_id: str) -> AsyncIterator[None]:
        # A thread's lock lives only while some coroutine holds or awaits it.
        lock = self._locks.setdefault(thread_id, asyncio.Lock())
        self._lock_users[thread_id] = self._lock_users.get(thread_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[thread_id] -= 1
            if not self._lock_users[thread_id]:
                del self._lock_users[thread_id]
                del self._locks[thread_id]

    def skills_prompt(self) -> Optional[str]:
        if self.skills is None:
            return None
        return render_skills_prompt(self.skills, self.registry.names())

    async def _invoke_model(self, transcript: List[Message]) -> AssistantMessage:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Invoking model: %s", summarize_transcript(transcript))

        try:
            reply = await self.model.invoke(tuple(transcript), list(self.registry))
        except Exception as e:
            raise ModelInvocationError(f"Model invocation failed: {e}") from e

        if not isinstance(reply, AssistantMessage):
            raise ModelInvocationError(
                f"Model returned {type(reply).__name__}, expected AssistantMessage"
            )
        return reply

    async def run(self, transcript: Sequence[Message]) -> TurnOutcome:
        """Drive a transcript to the DONE state.

        The caller's sequence is never mutated; the returned outcome holds
        the extended transcript. A transcript that already ends in a
        final assistant message is returned as is.

        Raises:
            ValueError: If the transcript is empty
            ModelInvocationError: If the model call fails
            IterationLimitError: If more than max_iterations model calls are needed
        """
        if not transcript:
            raise ValueError("Cannot run a turn on an empty transcript")

        working: List[Message] = list(transcript)

        prompt = self.skills_prompt()
        if prompt is not None and needs_skill_prompt(working):
            working.insert(0, SystemMessage(text=prompt))
            logger.debug("Injected skills prompt (%d skill(s))", len(self.skills or ()))

        last_message = working[-1]
        if isinstance(last_message, AssistantMessage):
            state = TurnState.AWAITING_TOOLS if last_message.tool_calls else TurnState.DONE
        else:
            state = TurnState.AWAITING_MODEL
        model_calls = 0

        while state is not TurnState.DONE:
            if state is TurnState.AWAITING_MODEL:
                if model_calls >= self.max_iterations:
                    raise IterationLimitError(
                        f"Turn exceeded {self.max_iterations} model call(s) without a final answer"
                    )
                reply = await self._invoke_model(working)
                model_calls += 1
                working.append(reply)
                state = TurnState.AWAITING_TOOLS if should_continue(working) == "tools" else TurnState.DONE

            else:
                calls = working[-1].tool_calls
                working.extend(await dispatch_tool_calls(self.registry, calls))
                state = TurnState.AWAITING_MODEL

        return TurnOutcome(transcript=tuple(working), state=state, model_calls=model_calls)

    async def send(self, thread_id: str, text: str, timeout: Optional[float] = None) -> Session:
        """Append a user message to a session and run the turn to completion.

        Turns for the same thread id are serialized. The session is only
        written back once the turn reaches DONE.

        Args:
            thread_id: Opaque conversation identifier
            text: User input
            timeout: Seconds before the turn is abandoned (engine default if None)

        Returns:
            The updated session

        Raises:
            TurnTimeoutError: If the timeout expires; the session is unchanged
        """
        async with self._thread_lock(thread_id):
            session = self.store.load(thread_id)
            transcript = session.transcript + (HumanMessage(text=text),)
            timeout = timeout if timeout is not None else self.turn_timeout

            try:
                outcome = await asyncio.wait_for(self.run(transcript), timeout)
            except asyncio.TimeoutError as e:
                logger.warning("Turn for thread %s timed out after %ss", thread_id, timeout)
                raise TurnTimeoutError(f"Turn for thread '{thread_id}' timed out after {timeout}s") from e

            updated = Session(
                thread_id=thread_id,
                transcript=outcome.transcript,
                turn_count=session.turn_count + outcome.model_calls,
            )
            self.store.save(updated)

        logger.info(
            "Thread %s finished turn: %s",
            thread_id,
            summarize_transcript(updated.transcript),
        )
        return updated

    def get_session(self, thread_id: str) -> Session:
        return self.store.load(thread_id)

    async def reset(self, thread_id: str) -> None:
        """Forget a session once any in-flight turn for it has finished."""
        async with self._thread_lock(thread_id):
            self.store.delete(thread_id)
        logger.info("Thread %s reset", thread_id)
