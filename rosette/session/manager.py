"""
Session Registry - Room codes to sessions.

Codes are 4 characters from an alphabet without look-alike glyphs (no I,
O, 0 or 1) and are case-insensitive on lookup. Registration is atomic: a
generated code is retried until an unused one is inserted.

Sessions are EPHEMERAL: nothing is persisted, and a session is removed as
soon as it finishes.
"""

from __future__ import annotations
import secrets
import threading
from typing import Callable, Iterator, Optional, TYPE_CHECKING

import structlog

from .room import Session

if TYPE_CHECKING:
    from ..engine_core.rules import RuleSet

logger = structlog.get_logger()

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 4
MAX_CODE_ATTEMPTS = 10_000


def generate_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


class SessionRegistry:
    """
    Thread-safe mapping of room codes to sessions.

    Usage:
        registry = SessionRegistry()
        session = registry.create(FINKEL, "Ann", "conn-1")
        registry.get(session.code.lower())   # same session
        registry.remove(session.code)
    """

    def __init__(self, code_generator: Callable[[], str] = generate_code, **session_options):
        self.code_generator = code_generator
        self.session_options = session_options
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(
        self,
        ruleset: RuleSet,
        host_name: str,
        host_connection_id: str,
        **overrides,
    ) -> Session:
        """Create and register a session under a fresh code."""
        options = {**self.session_options, **overrides}
        for _ in range(MAX_CODE_ATTEMPTS):
            code = self.code_generator().upper()
            with self._lock:
                if code in self._sessions:
                    continue
                session = Session(code, ruleset, host_name, host_connection_id, **options)
                self._sessions[code] = session
            logger.info("session created", code=code, ruleset=ruleset.name)
            return session
        raise RuntimeError("could not find a free room code")

    def get(self, code: str) -> Optional[Session]:
        if not code:
            return None
        with self._lock:
            return self._sessions.get(code.strip().upper())

    def remove(self, code: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(code.strip().upper(), None)
        if removed is not None:
            logger.info("session removed", code=removed.code)
        return removed is not None

    def codes(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        with self._lock:
            return iter(list(self._sessions.values()))

    def __contains__(self, code: str) -> bool:
        return self.get(code) is not None
