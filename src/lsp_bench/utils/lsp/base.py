"""Base LSP server handle: process lifecycle plus the request plumbing."""

import logging
import os
from collections.abc import Mapping, Sequence
from types import TracebackType
from typing import Any

from .correlator import DEFAULT_REQUEST_TIMEOUT, RequestCorrelator
from .errors import TransportExit
from .operations import DEFAULT_SETTLE_DELAY, DEFAULT_SHUTDOWN_TIMEOUT, LSPOperations
from .transport import ProcessTransport
from .types import Request

logger = logging.getLogger(__name__)

DEFAULT_EXIT_GRACE_PERIOD = 1.0

# Server->client requests that only need an empty acknowledgement.
_ACKNOWLEDGED_METHODS = {
    "client/registerCapability",
    "client/unregisterCapability",
    "window/workDoneProgress/create",
    "workspace/semanticTokens/refresh",
    "workspace/inlayHint/refresh",
    "workspace/codeLens/refresh",
    "workspace/diagnostic/refresh",
}


class LSPServer:
    """A spawned language server and the client talking to it.

    Use as an async context manager: on exit the server is asked to shut
    down and is then killed no matter how the handshake went.
    """

    def __init__(
        self,
        command: Sequence[str],
        *,
        label: str | None = None,
        env: Mapping[str, str] | None = None,
        cwd: str | os.PathLike[str] | None = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
        exit_grace_period: float = DEFAULT_EXIT_GRACE_PERIOD,
    ) -> None:
        self.command = list(command)
        self.label = label or os.path.basename(self.command[0])
        self.exit_grace_period = exit_grace_period
        self.transport = ProcessTransport(self.command, env=env, cwd=cwd)
        self.correlator = RequestCorrelator(self.transport, timeout=request_timeout)
        self.correlator.request_handler = self._handle_server_request
        self.correlator.notification_handlers["window/logMessage"] = self._handle_log_message
        self.lsp = LSPOperations(
            self.correlator, settle_delay=settle_delay, shutdown_timeout=shutdown_timeout
        )

    async def start(self) -> None:
        await self.transport.start(self.correlator.handle_message, self.correlator.close)

    async def stop(self) -> None:
        """Shut the server down gracefully if possible, then kill it."""
        try:
            if self.transport.is_running and not self.correlator.is_closed:
                await self.lsp.shutdown()
        finally:
            await self.transport.close(grace_period=self.exit_grace_period)
            self.correlator.close(TransportExit("Server closed by client", self.transport.returncode))
            logger.info(f"[{self.label}] server shutdown complete")

    async def __aenter__(self) -> "LSPServer":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()

    async def _handle_server_request(self, request: Request) -> Any:
        if request.method == "workspace/configuration":
            items = (request.params or {}).get("items", [])
            return [None] * len(items)
        if request.method in _ACKNOWLEDGED_METHODS:
            return None
        raise LookupError(f"Unhandled server request {request.method}")

    async def _handle_log_message(self, params: Any) -> None:
        params = params or {}
        level = params.get("type", 3)
        message = params.get("message", "")
        if level == 1:  # Error
            logger.error(f"[{self.label}] Server: {message}")
        elif level == 2:  # Warning
            logger.warning(f"[{self.label}] Server: {message}")
        elif level == 3:  # Info
            logger.info(f"[{self.label}] Server: {message}")
        else:  # Log
            logger.debug(f"[{self.label}] Server: {message}")
