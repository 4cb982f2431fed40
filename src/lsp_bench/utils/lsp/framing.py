"""Content-Length framing for JSON-RPC messages on a byte stream."""

import json
import logging
from typing import Any

from .errors import FramingError

logger = logging.getLogger(__name__)

HEADER_TERMINATOR = b"\r\n\r\n"


def encode_message(message: dict[str, Any]) -> bytes:
    """Encode a message according to LSP protocol.

    The Content-Length counts bytes of the UTF-8 body, not characters.
    """
    content = json.dumps(message, ensure_ascii=False).encode("utf-8")
    header = f"Content-Length: {len(content)}\r\n\r\n".encode("ascii")
    return header + content


def _parse_content_length(header: bytes) -> int:
    # Lines may end in a bare LF when stray output precedes the header, and
    # the last Content-Length field wins so such a prefix is skipped over.
    value = None
    for line in header.split(b"\n"):
        name, sep, field = line.strip().partition(b":")
        if sep and name.strip().lower() == b"content-length":
            value = field.strip()
    if value is None:
        raise FramingError(f"No Content-Length in header {header!r}")
    try:
        length = int(value)
    except ValueError as e:
        raise FramingError(f"Unparsable Content-Length: {value!r}") from e
    if length < 0:
        raise FramingError(f"Negative Content-Length: {length}")
    return length


class FrameCodec:
    """Incremental decoder for `Content-Length` framed messages.

    Bytes are appended with :meth:`feed`; every complete message in the
    buffer is returned and any partial trailing frame stays buffered until
    more data arrives. Broken headers and undecodable bodies are logged and
    dropped so stray output on the stream never stops the reader.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending_bytes(self) -> int:
        return len(self._buffer)

    def feed(self, data: bytes) -> list[dict[str, Any]]:
        self._buffer.extend(data)
        messages: list[dict[str, Any]] = []

        while True:
            header_end = self._buffer.find(HEADER_TERMINATOR)
            if header_end == -1:
                break

            header = bytes(self._buffer[:header_end])
            body_start = header_end + len(HEADER_TERMINATOR)
            try:
                content_length = _parse_content_length(header)
            except FramingError as e:
                logger.warning(f"Dropping malformed frame header: {e}")
                del self._buffer[:body_start]
                continue

            body_end = body_start + content_length
            if len(self._buffer) < body_end:
                break

            body = bytes(self._buffer[body_start:body_end])
            del self._buffer[:body_end]

            try:
                message = json.loads(body.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                logger.error(f"Dropping undecodable message body: {e}")
                continue
            if not isinstance(message, dict):
                logger.error(f"Dropping non-object message: {message!r}")
                continue
            messages.append(message)

        return messages
