"""High-level LSP operations."""

import asyncio
import logging
import os
from typing import Any, Protocol

from pydantic import BaseModel

from .errors import LSPError, LSPResponseError
from .types import (
    ClientInfo,
    DefinitionParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DocumentSymbolParams,
    HoverParams,
    InitializeParams,
    Position,
    ReferenceContext,
    ReferenceParams,
    Response,
    SemanticTokensParams,
    TextDocumentIdentifier,
    TextDocumentItem,
)

logger = logging.getLogger(__name__)

# Pause after didOpen so the server can start indexing. This is a heuristic:
# LSP has no acknowledgement for didOpen, so nothing guarantees the server is
# done (or has even started) when the delay ends.
DEFAULT_SETTLE_DELAY = 0.1
DEFAULT_SHUTDOWN_TIMEOUT = 5.0


class LSPRequester(Protocol):
    """Protocol for LSP request functionality."""

    async def send_request(
        self,
        method: str,
        params: BaseModel | dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Response: ...
    async def send_notification(
        self, method: str, params: BaseModel | dict[str, Any] | None = None
    ) -> None: ...


class LSPOperations:
    """Typed wrappers for the LSP methods the benchmarks exercise."""

    def __init__(
        self,
        server: LSPRequester,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
    ):
        self._server = server
        self.settle_delay = settle_delay
        self.shutdown_timeout = shutdown_timeout
        self.server_capabilities: dict[str, Any] = {}
        self._init_result: Any = None
        self._is_initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    async def _request(
        self,
        method: str,
        params: BaseModel | None,
        timeout: float | None = None,
    ) -> Any:
        response = await self._server.send_request(method, params, timeout=timeout)
        if response.error is not None:
            raise LSPResponseError(
                method, response.error.code, response.error.message, response.error.data
            )
        return response.result

    async def initialize(self, root_uri: str | None) -> Any:
        """Run the initialize handshake.

        `initialized` goes out exactly once, only after the initialize
        response has arrived.
        """
        if self._is_initialized:
            return self._init_result

        result = await self._request(
            "initialize",
            InitializeParams(
                processId=os.getpid(),
                clientInfo=ClientInfo(name="lsp-bench"),
                rootUri=root_uri,
            ),
        )
        if isinstance(result, dict):
            self.server_capabilities = result.get("capabilities") or {}
        logger.info(f"Server initialized with capabilities: {sorted(self.server_capabilities)}")

        await self._server.send_notification("initialized", {})
        self._init_result = result
        self._is_initialized = True
        return result

    async def open_document(self, uri: str, content: str, language_id: str = "typescript") -> None:
        """Notify the server that a document was opened, then wait `settle_delay`."""
        await self._server.send_notification(
            "textDocument/didOpen",
            DidOpenTextDocumentParams(
                textDocument=TextDocumentItem(uri=uri, languageId=language_id, version=1, text=content)
            ),
        )
        if self.settle_delay > 0:
            await asyncio.sleep(self.settle_delay)

    async def close_document(self, uri: str) -> None:
        await self._server.send_notification(
            "textDocument/didClose",
            DidCloseTextDocumentParams(textDocument=TextDocumentIdentifier(uri=uri)),
        )

    async def hover(self, uri: str, line: int, character: int) -> Any:
        return await self._request(
            "textDocument/hover",
            HoverParams(
                textDocument=TextDocumentIdentifier(uri=uri),
                position=Position(line=line, character=character),
            ),
        )

    async def definition(self, uri: str, line: int, character: int) -> Any:
        return await self._request(
            "textDocument/definition",
            DefinitionParams(
                textDocument=TextDocumentIdentifier(uri=uri),
                position=Position(line=line, character=character),
            ),
        )

    async def references(
        self, uri: str, line: int, character: int, include_declaration: bool = True
    ) -> Any:
        return await self._request(
            "textDocument/references",
            ReferenceParams(
                textDocument=TextDocumentIdentifier(uri=uri),
                position=Position(line=line, character=character),
                context=ReferenceContext(includeDeclaration=include_declaration),
            ),
        )

    async def document_symbols(self, uri: str) -> Any:
        return await self._request(
            "textDocument/documentSymbol",
            DocumentSymbolParams(textDocument=TextDocumentIdentifier(uri=uri)),
        )

    async def semantic_tokens(self, uri: str) -> Any:
        return await self._request(
            "textDocument/semanticTokens/full",
            SemanticTokensParams(textDocument=TextDocumentIdentifier(uri=uri)),
        )

    async def shutdown(self) -> None:
        """Best-effort shutdown/exit; errors are logged, never raised."""
        try:
            logger.info("Sending shutdown request...")
            await self._request("shutdown", None, timeout=self.shutdown_timeout)
        except LSPError as e:
            logger.warning(f"Shutdown request failed: {e}")
        try:
            logger.info("Sending exit notification...")
            await self._server.send_notification("exit")
        except LSPError as e:
            logger.warning(f"Exit notification failed: {e}")
        finally:
            self._is_initialized = False
