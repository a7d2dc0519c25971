"""Chat request shapes and message normalization."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List

from logger import LOGGER_NAME

log = logging.getLogger(LOGGER_NAME)

EXAMPLE_MESSAGES_PAYLOAD: Dict[str, Any] = {
    "messages": [
        {"role": "system", "content": "You are a helpful assistant"},
        {"role": "user", "content": "Hello!"},
    ],
}

EXAMPLE_PROMPT_PAYLOAD: Dict[str, Any] = {
    "prompt": "Hello!",
    "system": "You are a helpful assistant",
}


@dataclass
class ChatMessage:
    """A single chat turn."""

    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


class RequestShapeError(ValueError):
    """Request body carries neither a `messages` array nor a `prompt` string."""

    message = "Request must include either 'messages' array or 'prompt' string"

    def __init__(self) -> None:
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        """Error body with examples of both accepted request shapes."""
        return {
            "error": self.message,
            "example": EXAMPLE_MESSAGES_PAYLOAD,
            "simpleExample": EXAMPLE_PROMPT_PAYLOAD,
        }


def normalize_messages(body: Any) -> List[Dict[str, Any]]:
    """
    Convert either accepted request shape into one ordered message list.

    - {"messages": [...]}: returned as-is (same entries, same order).
    - {"prompt": "...", "system": "..."?}: optional system message, then the user message.

    An empty `messages` array counts as absent.
    """
    if not isinstance(body, dict):
        raise RequestShapeError()

    messages = body.get("messages")
    if isinstance(messages, list) and messages:
        return messages

    prompt = body.get("prompt")
    if isinstance(prompt, str) and prompt:
        out: List[Dict[str, Any]] = []
        system = body.get("system")
        if isinstance(system, str) and system:
            out.append(ChatMessage(role="system", content=system).to_dict())
        out.append(ChatMessage(role="user", content=prompt).to_dict())
        return out

    log.debug("Request body has neither messages nor prompt: keys=%s", sorted(body.keys()))
    raise RequestShapeError()
