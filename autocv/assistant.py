"""Conversational assistant over the user's saved applications."""
from __future__ import annotations

from typing import Callable, Sequence

from autocv import prompts
from autocv.llm import ChatClient, ChatSession
from autocv.log import get_logger
from autocv.models import ApplicationRecord

log = get_logger(__name__)

GREETING = "Hey! Ask me about your applications or for any files you need!"
OFFLINE_REPLY = "Oops, my brain is offline. Try again later."
EMPTY_REPLY = "Sorry, I slipped on a peel and couldn't think of an answer."


def _default_client() -> ChatClient:
    from autocv.config import chat_model
    from autocv.llm import OpenAIChatClient

    return OpenAIChatClient(model=chat_model())


class AssistantSession:
    """
    Lazily opened chat seeded with every stored application.

    The session is opened once, on the first ``open`` call; later calls are
    no-ops, so records saved afterwards are not visible to it. A failed
    exchange returns ``OFFLINE_REPLY`` and leaves the session usable.
    """

    def __init__(self, client_factory: Callable[[], ChatClient] | None = None) -> None:
        self._client_factory = client_factory or _default_client
        self._session: ChatSession | None = None

    @property
    def is_open(self) -> bool:
        return self._session is not None

    def open(self, records: Sequence[ApplicationRecord]) -> None:
        if self._session is not None:
            return
        client = self._client_factory()
        self._session = client.start_session(prompts.assistant_instruction(list(records)))
        log.info("Assistant session opened with %d application(s)", len(records))

    def try_open(self, records: Sequence[ApplicationRecord]) -> bool:
        """``open`` that logs a failure instead of raising; returns ``is_open``."""
        try:
            self.open(records)
        except Exception as exc:
            log.error("Assistant unavailable: %s", exc)
        return self.is_open

    def ask(self, message: str) -> str:
        if self._session is None:
            raise RuntimeError("Assistant session is not open")
        try:
            reply = self._session.send(message)
        except Exception as exc:
            log.error("Assistant exchange failed: %s", exc)
            return OFFLINE_REPLY
        return reply or EMPTY_REPLY
