"""Request/response correlation over a message transport."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import BaseModel

from .errors import DecodeError, RequestTimeout, TransportExit
from .types import Notification, Request, Response, ResponseError, parse_message

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30.0
METHOD_NOT_FOUND = -32601

RequestHandler = Callable[[Request], Awaitable[Any]]
NotificationHandler = Callable[[Any], Awaitable[None]]


class MessageWriter(Protocol):
    """Anything that can put one JSON-RPC message on the wire."""

    async def write_message(self, message: dict[str, Any]) -> None: ...


def _format_lsp_message(prefix: str, msg: dict[str, Any]) -> str:
    """Format LSP message for readable logging."""
    if "method" in msg:
        if "id" in msg:
            return f"{prefix} [{msg['id']}] {msg['method']}"
        return f"{prefix} {msg['method']}"
    elif "error" in msg:
        return f"{prefix} error [{msg.get('id')}] = {json.dumps(msg['error'])}"
    elif "id" in msg:
        return f"{prefix} response [{msg['id']}]"
    return f"{prefix} unknown message: {json.dumps(msg)}"


def _dump_params(params: BaseModel | dict[str, Any] | None) -> Any:
    if isinstance(params, BaseModel):
        return params.model_dump(exclude_none=True)
    return params


@dataclass
class PendingRequest:
    method: str
    future: asyncio.Future[Response]
    deadline: float
    timer: asyncio.TimerHandle


class RequestCorrelator:
    """Matches responses to outstanding requests by id.

    Ids start at 1 and are never reused. Each request gets its own timer;
    whichever of response or timeout comes first settles the waiter and
    removes the entry from the pending table, and the loser is dropped.
    Responses may arrive in any order.

    All state is owned by the event loop driving this instance, so the
    pending table needs no locking.
    """

    def __init__(self, writer: MessageWriter, timeout: float = DEFAULT_REQUEST_TIMEOUT) -> None:
        self._writer = writer
        self.timeout = timeout
        self._next_id = 0
        self._pending: dict[int, PendingRequest] = {}
        self._closed: TransportExit | None = None
        self.request_handler: RequestHandler | None = None
        self.notification_handlers: dict[str, NotificationHandler] = {}

    @property
    def pending_ids(self) -> list[int]:
        return list(self._pending)

    @property
    def is_closed(self) -> bool:
        return self._closed is not None

    def _get_next_id(self) -> int:
        self._next_id += 1
        return self._next_id

    async def _send(self, msg: dict[str, Any]) -> None:
        logger.debug(_format_lsp_message("SEND", msg))
        await self._writer.write_message(msg)

    async def send_request(
        self,
        method: str,
        params: BaseModel | dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Response:
        """Send a request and wait for its response.

        Error responses are returned like any other response; only timeouts
        and transport failures raise.
        """
        if self._closed is not None:
            raise self._closed

        timeout = self.timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        request_id = self._get_next_id()
        future: asyncio.Future[Response] = loop.create_future()
        timer = loop.call_later(timeout, self._expire, request_id, timeout)
        self._pending[request_id] = PendingRequest(
            method=method,
            future=future,
            deadline=loop.time() + timeout,
            timer=timer,
        )

        request = Request(id=request_id, method=method, params=_dump_params(params))
        try:
            await self._send(request.to_wire())
            return await future
        finally:
            entry = self._pending.pop(request_id, None)
            if entry is not None:
                entry.timer.cancel()

    async def send_notification(
        self, method: str, params: BaseModel | dict[str, Any] | None = None
    ) -> None:
        """Fire-and-forget: no id, no tracking."""
        if self._closed is not None:
            raise self._closed
        notification = Notification(method=method, params=_dump_params(params))
        await self._send(notification.to_wire())

    def _expire(self, request_id: int, timeout: float) -> None:
        entry = self._pending.pop(request_id, None)
        if entry is None or entry.future.done():
            return
        logger.error(f"Timeout waiting for response to {entry.method} [{request_id}]")
        entry.future.set_exception(RequestTimeout(entry.method, request_id, timeout))

    async def handle_message(self, raw: dict[str, Any]) -> None:
        """Dispatch one decoded message coming from the server."""
        logger.debug(_format_lsp_message("RECV", raw))
        try:
            message = parse_message(raw)
        except DecodeError as e:
            logger.error(f"Dropping message: {e}")
            return

        if isinstance(message, Response):
            self._handle_response(message)
        elif isinstance(message, Request):
            await self._handle_server_request(message)
        else:
            await self._handle_notification(message)

    def _handle_response(self, response: Response) -> None:
        # A str id never equals an int key, so type mismatches fall through here.
        entry = self._pending.pop(response.id, None) if isinstance(response.id, int) else None
        if entry is None:
            logger.debug(f"Dropping unmatched response [{response.id!r}]")
            return
        entry.timer.cancel()
        if not entry.future.done():
            entry.future.set_result(response)

    async def _handle_server_request(self, request: Request) -> None:
        if self.request_handler is None:
            response = Response(
                id=request.id,
                error=ResponseError(code=METHOD_NOT_FOUND, message=f"Unhandled method {request.method}"),
            )
        else:
            try:
                response = Response(id=request.id, result=await self.request_handler(request))
            except LookupError as e:
                response = Response(
                    id=request.id,
                    error=ResponseError(code=METHOD_NOT_FOUND, message=str(e)),
                )
        if self._closed is None:
            await self._send(response.to_wire())

    async def _handle_notification(self, notification: Notification) -> None:
        handler = self.notification_handlers.get(notification.method)
        if handler:
            await handler(notification.params)

    def close(self, cause: TransportExit) -> None:
        """Fail every outstanding request and refuse new ones."""
        if self._closed is None:
            self._closed = cause
        pending, self._pending = self._pending, {}
        if pending:
            logger.warning(f"Failing {len(pending)} pending request(s): {cause}")
        for entry in pending.values():
            entry.timer.cancel()
            if not entry.future.done():
                entry.future.set_exception(cause)
