"""Multi-turn chat sessions over an OpenAI-compatible endpoint.

Generation defaults to Gemini through its OpenAI-compatible API, so the
``openai`` SDK is the only client dependency. History lives client-side in
each ``ChatSession``; a turn is appended only after the reply arrives, so a
failed exchange leaves the session exactly as it was.
"""
from __future__ import annotations

import base64
import json
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from autocv import config
from autocv.log import get_logger

log = get_logger(__name__)

IMAGE_TYPES: frozenset[str] = frozenset(
    {"image/png", "image/jpeg", "image/webp"}
)


@dataclass(frozen=True)
class JobPostingImage:
    """Raw bytes of a job-posting screenshot plus its MIME type."""

    data: bytes
    mime_type: str

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class ImageReadError(OSError):
    """The screenshot could not be read or is not an image."""


def load_image(path: Path | str) -> JobPostingImage:
    path = Path(path)
    mime_type, _ = mimetypes.guess_type(path.name)
    if mime_type not in IMAGE_TYPES:
        raise ImageReadError(f"Unsupported image type for {path.name}: {mime_type}")
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ImageReadError(f"Cannot read {path}: {exc}") from exc
    if not data:
        raise ImageReadError(f"{path.name} is empty")
    return JobPostingImage(data=data, mime_type=mime_type)


@runtime_checkable
class ChatSession(Protocol):
    """One conversation; each ``send`` sees every earlier turn."""

    def send(
        self,
        message: str,
        *,
        image: JobPostingImage | None = None,
        response_format: dict[str, Any] | None = None,
    ) -> str:
        ...


@runtime_checkable
class ChatClient(Protocol):
    def start_session(self, system_instruction: str) -> ChatSession:
        ...


class OpenAIChatSession:
    def __init__(self, client: Any, model: str, system_instruction: str) -> None:
        self._client = client
        self._model = model
        self._history: list[dict[str, Any]] = [
            {"role": "system", "content": system_instruction},
        ]

    @property
    def history(self) -> list[dict[str, Any]]:
        return list(self._history)

    def send(
        self,
        message: str,
        *,
        image: JobPostingImage | None = None,
        response_format: dict[str, Any] | None = None,
    ) -> str:
        if image is not None:
            content: Any = [
                {"type": "image_url", "image_url": {"url": image.to_data_url()}},
                {"type": "text", "text": message},
            ]
        else:
            content = message
        user_turn = {"role": "user", "content": content}

        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": self._history + [user_turn],
        }
        if response_format is not None:
            kwargs["response_format"] = response_format

        log.debug("Sending turn %d (%d chars)", len(self._history), len(message))
        r = self._client.chat.completions.create(**kwargs)
        reply = (r.choices[0].message.content or "").strip()
        log.debug("Reply received (%d chars)", len(reply))

        self._history.append(user_turn)
        self._history.append({"role": "assistant", "content": reply})
        return reply


class OpenAIChatClient:
    """Implements ``ChatClient`` with the ``openai`` SDK.

    ``max_retries=0``: every exchange is exactly one attempt.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ) -> None:
        from openai import OpenAI

        self._model = model or config.generation_model()
        self._client = OpenAI(
            api_key=api_key or config.api_key(),
            base_url=base_url or config.base_url(),
            max_retries=0,
        )

    def start_session(self, system_instruction: str) -> OpenAIChatSession:
        return OpenAIChatSession(self._client, self._model, system_instruction)


def json_mode() -> dict[str, Any]:
    return {"type": "json_object"}


def schema_mode(name: str, schema: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {"name": name, "strict": True, "schema": schema},
    }


def parse_json_object(raw: str) -> dict[str, Any]:
    """Best-effort parse of a JSON object out of a model reply.

    Tolerates code fences or prose around the object. Returns ``{}`` when
    nothing usable is found so callers can fall back field by field.
    """
    start = raw.find("{")
    end = raw.rfind("}") + 1
    if start == -1 or end == 0:
        return {}
    try:
        data = json.loads(raw[start:end])
    except json.JSONDecodeError as exc:
        log.warning("Reply was not valid JSON (%s)", exc)
        return {}
    return data if isinstance(data, dict) else {}
