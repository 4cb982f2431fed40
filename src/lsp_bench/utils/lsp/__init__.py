"""LSP client implementation package."""

from .base import LSPServer
from .correlator import RequestCorrelator
from .errors import (
    LSPError,
    LSPResponseError,
    RequestTimeout,
    ServerStartError,
    TransportExit,
)
from .framing import FrameCodec, encode_message
from .operations import LSPOperations
from .transport import ProcessTransport

__all__ = [
    "FrameCodec",
    "LSPError",
    "LSPOperations",
    "LSPResponseError",
    "LSPServer",
    "ProcessTransport",
    "RequestCorrelator",
    "RequestTimeout",
    "ServerStartError",
    "TransportExit",
    "encode_message",
]
