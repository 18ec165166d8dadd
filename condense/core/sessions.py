"""Registry of dialog sessions keyed by session id."""

import logging

from ..config import EngineConfig
from ..llm.providers.base import LLMProvider
from ..memory.tokens import TokenEstimator
from .session import DialogSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Creates sessions on first use; all of them share one provider and config.

    Sessions never share history or locks with each other.
    """

    def __init__(
        self,
        provider: LLMProvider,
        config: EngineConfig | None = None,
        estimator: TokenEstimator | None = None,
    ):
        self.provider = provider
        self.config = config or EngineConfig()
        self.estimator = estimator
        self._sessions: dict[str, DialogSession] = {}

    def get(self, session_id: str) -> DialogSession:
        session = self._sessions.get(session_id)
        if session is None:
            session = DialogSession(
                self.provider,
                self.config,
                estimator=self.estimator,
                session_id=session_id,
            )
            self._sessions[session_id] = session
            logger.debug("Created session %s", session_id)
        return session

    def drop(self, session_id: str) -> bool:
        """Forget a session. Returns False if it did not exist."""
        return self._sessions.pop(session_id, None) is not None

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
