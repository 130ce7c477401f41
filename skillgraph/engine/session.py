"""Conversation sessions and the store that keeps them between turns."""
from __future__ import annotations

from dataclasses import dataclass, field
from threading import RLock
from typing import Dict, List, Protocol, Tuple

from skillgraph.messages import Message


@dataclass(frozen=True)
class Session:
    """One conversation: its transcript and the number of model calls so far."""

    thread_id: str
    transcript: Tuple[Message, ...] = ()
    turn_count: int = 0


class SessionStore(Protocol):
    def load(self, thread_id: str) -> Session:
        """Return the stored session, or a fresh empty one."""

    def save(self, session: Session) -> None:
        ...

    def delete(self, thread_id: str) -> None:
        ...


@dataclass
class InMemorySessionStore:
    """Process-lifetime session store keyed by thread id."""

    _sessions: Dict[str, Session] = field(default_factory=dict)
    _lock: RLock = field(default_factory=RLock, repr=False)

    def load(self, thread_id: str) -> Session:
        with self._lock:
            return self._sessions.get(thread_id, Session(thread_id=thread_id))

    def save(self, session: Session) -> None:
        with self._lock:
            self._sessions[session.thread_id] = session

    def delete(self, thread_id: str) -> None:
        with self._lock:
            self._sessions.pop(thread_id, None)

    def thread_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)
