"""Error types raised by the LSP client stack."""

from typing import Any


class LSPError(Exception):
    """Base class for all client-side LSP failures."""


class FramingError(LSPError):
    """A header block without a usable Content-Length."""


class DecodeError(LSPError):
    """A well-framed body that is not a valid JSON-RPC message."""


class ServerStartError(LSPError):
    """The server executable could not be spawned."""


class RequestTimeout(LSPError, TimeoutError):
    def __init__(self, method: str, request_id: int, timeout: float) -> None:
        super().__init__(f"Request {method} [{request_id}] timed out after {timeout}s")
        self.method = method
        self.request_id = request_id
        self.timeout = timeout


class TransportExit(LSPError):
    """The server process went away; the client cannot be used any more."""

    def __init__(
        self,
        reason: str,
        returncode: int | None = None,
        stderr_tail: list[str] | None = None,
    ) -> None:
        message = reason
        if returncode is not None:
            message += f" (exit code {returncode})"
        super().__init__(message)
        self.returncode = returncode
        self.stderr_tail = stderr_tail or []


class LSPResponseError(LSPError):
    """The server answered a request with a JSON-RPC error object."""

    def __init__(self, method: str, code: int, message: str, data: Any = None) -> None:
        super().__init__(f"LSP error for {method}: [{code}] {message}")
        self.method = method
        self.code = code
        self.data = data
