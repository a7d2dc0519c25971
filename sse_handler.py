"""Event-stream to plain-text conversion for streaming responses."""

from __future__ import annotations

import codecs
import contextlib
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, List, Optional, Union

from logger import LOGGER_NAME

log = logging.getLogger(LOGGER_NAME)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
COMMENT_PREFIX = ":"


@dataclass(frozen=True)
class TextDelta:
    """A fragment of generated text."""

    text: str


@dataclass(frozen=True)
class Done:
    """End-of-stream sentinel."""


@dataclass(frozen=True)
class Unparseable:
    """A data line whose payload is not valid JSON."""

    reason: str


UpstreamEvent = Union[TextDelta, Done, Unparseable]


def extract_text(obj: Any, *, allow_choices: bool = True) -> str:
    """
    Extract generated text from one decoded event payload.

    Workers AI sends {"response": "..."}; OpenAI-style chunks carry
    choices[0].delta.content. The `response` field wins when both are present.
    """
    if not isinstance(obj, dict):
        return ""

    response = obj.get("response")
    if isinstance(response, str) and response:
        return response

    if not allow_choices:
        return ""

    choices = obj.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return ""
    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return ""


def parse_event_line(line: str, *, allow_choices: bool = True) -> Optional[UpstreamEvent]:
    """
    Decode one event-stream line.

    Returns None for blank lines, comments, non-data fields and payloads that
    carry no text.
    """
    trimmed = line.strip()
    if not trimmed or trimmed.startswith(COMMENT_PREFIX):
        return None
    if not trimmed.startswith(DATA_PREFIX):
        return None

    payload = trimmed[len(DATA_PREFIX):]
    if payload == DONE_SENTINEL:
        return Done()

    try:
        obj = json.loads(payload)
    except (ValueError, RecursionError) as e:
        return Unparseable(reason=str(e) or e.__class__.__name__)

    text = extract_text(obj, allow_choices=allow_choices)
    if text:
        return TextDelta(text=text)
    return None


class TextStreamTransformer:
    """Incremental converter from upstream event-stream bytes to plain UTF-8 text.

    Input chunk boundaries are arbitrary: a line may be split across chunks and
    a multi-byte character may be split across chunks. Only the unterminated
    tail of the current line is kept between calls.

    One instance handles exactly one stream.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._finished = False
        self._flushed = False
        self.lines_seen = 0
        self.chunks_emitted = 0
        self.bytes_emitted = 0

    @property
    def finished(self) -> bool:
        """True once the [DONE] sentinel has been seen."""
        return self._finished

    def feed(self, chunk: bytes) -> List[bytes]:
        """Consume one upstream chunk and return the text chunks it completes."""
        if self._finished or self._flushed:
            return []

        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        out: List[bytes] = []
        for line in lines:
            self.lines_seen += 1
            event = parse_event_line(line)
            if isinstance(event, Done):
                self._finish()
                break
            self._collect(event, line, out)
        return out

    def flush(self) -> List[bytes]:
        """
        Resolve the residual buffer at end of stream.

        Only the `response` field is honoured here; choices[0].delta.content is
        extracted mid-stream only.
        """
        if self._finished or self._flushed:
            return []
        self._flushed = True

        self._buffer += self._decoder.decode(b"", final=True)
        tail, self._buffer = self._buffer, ""
        if not tail.strip():
            return []

        self.lines_seen += 1
        out: List[bytes] = []
        event = parse_event_line(tail, allow_choices=False)
        if isinstance(event, Done):
            self._finish()
            return out
        self._collect(event, tail, out)
        return out

    def _finish(self) -> None:
        self._finished = True
        self._buffer = ""
        log.debug("Upstream stream reached %s after %d lines", DONE_SENTINEL, self.lines_seen)

    def _collect(self, event: Optional[UpstreamEvent], line: str, out: List[bytes]) -> None:
        if isinstance(event, TextDelta):
            data = event.text.encode("utf-8")
            out.append(data)
            self.chunks_emitted += 1
            self.bytes_emitted += len(data)
        elif isinstance(event, Unparseable):
            log.debug("Skipping malformed data line (%s): %r", event.reason, line[:200])


async def transform_text_stream(chunks: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    """Pipe an upstream byte stream through a fresh TextStreamTransformer."""
    transformer = TextStreamTransformer()
    upstream = aiter(chunks)
    closing = contextlib.aclosing(upstream) if hasattr(upstream, "aclose") else contextlib.nullcontext()
    async with closing:
        async for chunk in upstream:
            for out in transformer.feed(chunk):
                yield out
            if transformer.finished:
                break
        else:
            for out in transformer.flush():
                yield out

    log.debug(
        "Text stream closed lines=%d chunks=%d bytes=%d done=%s",
        transformer.lines_seen,
        transformer.chunks_emitted,
        transformer.bytes_emitted,
        transformer.finished,
    )
