"""Simple in-memory store of wizard sessions.

Sessions live only as long as the process; nothing is persisted.
"""

from __future__ import annotations

import uuid
from typing import Callable, Dict

from .orchestrator import StepOrchestrator


class SessionMemory:
    """Map session ids to the orchestrator that owns their state."""

    def __init__(self) -> None:
        self._store: Dict[str, StepOrchestrator] = {}

    def create(self, factory: Callable[[], StepOrchestrator]) -> tuple[str, StepOrchestrator]:
        """Start a new session and return its id with its orchestrator."""

        session_id = uuid.uuid4().hex
        orchestrator = factory()
        self._store[session_id] = orchestrator
        return session_id, orchestrator

    def get(self, session_id: str) -> StepOrchestrator | None:
        return self._store.get(session_id)

    def discard(self, session_id: str) -> bool:
        """Forget a session; returns False when it was unknown."""

        return self._store.pop(session_id, None) is not None
