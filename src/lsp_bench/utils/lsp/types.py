"""LSP type definitions according to the Language Server Protocol specification.

Based on LSP 3.17 specification:
https://microsoft.github.io/language-server-protocol/specifications/lsp/3.17/specification/

Only the shapes the benchmark harness sends are modeled. Results coming back
from the server are kept as raw JSON.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, StrictInt, StrictStr, ValidationError

from .errors import DecodeError

# Base LSP types
Uri = str  # LSP uses strings for URIs
RequestId = StrictInt | StrictStr


# JSON-RPC 2.0 envelopes


class Request(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId
    method: str
    params: Any = None

    def to_wire(self) -> dict[str, Any]:
        msg: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id, "method": self.method}
        if self.params is not None:
            msg["params"] = self.params
        return msg


class Notification(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: Any = None

    def to_wire(self) -> dict[str, Any]:
        msg: dict[str, Any] = {"jsonrpc": self.jsonrpc, "method": self.method}
        if self.params is not None:
            msg["params"] = self.params
        return msg


class ResponseError(BaseModel):
    code: int
    message: str
    data: Any = None


class Response(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    # Strict: a string "1" never matches the integer id 1 we sent.
    id: RequestId | None
    result: Any = None
    error: ResponseError | None = None

    def to_wire(self) -> dict[str, Any]:
        msg: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            msg["error"] = self.error.model_dump(exclude_none=True)
        else:
            msg["result"] = self.result
        return msg


Message = Request | Notification | Response


def parse_message(obj: Any) -> Message:
    """Classify a decoded JSON object as a request, notification or response."""
    if not isinstance(obj, dict):
        raise DecodeError(f"Expected a JSON object, got {type(obj).__name__}")
    try:
        if "method" in obj:
            if "id" in obj:
                return Request.model_validate(obj)
            return Notification.model_validate(obj)
        if "id" in obj:
            return Response.model_validate(obj)
    except ValidationError as e:
        raise DecodeError(f"Invalid JSON-RPC message: {e}") from e
    raise DecodeError("Message has neither a method nor an id")


# Text documents


class Position(BaseModel):
    """Position in a text document expressed as zero-based line and character offset."""

    line: int = Field(ge=0)  # Zero-based line position
    character: int = Field(ge=0)  # Zero-based character offset


class TextDocumentIdentifier(BaseModel):
    """Text document identifier using URI."""

    uri: Uri


class TextDocumentItem(BaseModel):
    """An item to transfer a text document."""

    uri: Uri
    languageId: str  # noqa N815
    version: int
    text: str


class DidOpenTextDocumentParams(BaseModel):
    textDocument: TextDocumentItem  # noqa N815


class DidCloseTextDocumentParams(BaseModel):
    textDocument: TextDocumentIdentifier  # noqa N815


class TextDocumentPositionParams(BaseModel):
    """Parameters for requests that operate on a text document and a position."""

    textDocument: TextDocumentIdentifier  # noqa N815
    position: Position


class HoverParams(TextDocumentPositionParams):
    """Parameters for hover requests."""

    pass


class DefinitionParams(TextDocumentPositionParams):
    pass


class ReferenceContext(BaseModel):
    """Context for finding references."""

    includeDeclaration: bool  # noqa N815


class ReferenceParams(TextDocumentPositionParams):
    """Parameters for reference requests."""

    context: ReferenceContext


class DocumentSymbolParams(BaseModel):
    textDocument: TextDocumentIdentifier  # noqa N815


class SemanticTokensParams(BaseModel):
    textDocument: TextDocumentIdentifier  # noqa N815


# Client capabilities advertised during initialize

SEMANTIC_TOKEN_TYPES = [
    "namespace",
    "type",
    "class",
    "enum",
    "interface",
    "struct",
    "typeParameter",
    "parameter",
    "variable",
    "property",
    "enumMember",
    "event",
    "function",
    "method",
    "macro",
    "keyword",
    "modifier",
    "comment",
    "string",
    "number",
    "regexp",
    "operator",
]
SEMANTIC_TOKEN_MODIFIERS: list[str] = []


class HoverClientCapabilities(BaseModel):
    contentFormat: list[Literal["markdown", "plaintext"]] = ["markdown", "plaintext"]  # noqa N815


class CompletionItemCapabilities(BaseModel):
    snippetSupport: bool = True  # noqa N815


class CompletionClientCapabilities(BaseModel):
    completionItem: CompletionItemCapabilities = Field(default_factory=CompletionItemCapabilities)  # noqa N815


class DefinitionClientCapabilities(BaseModel):
    linkSupport: bool = True  # noqa N815


class ReferenceClientCapabilities(BaseModel):
    pass


class DocumentSymbolClientCapabilities(BaseModel):
    hierarchicalDocumentSymbolSupport: bool = True  # noqa N815


class SemanticTokensRequests(BaseModel):
    full: bool = True


class SemanticTokensClientCapabilities(BaseModel):
    requests: SemanticTokensRequests = Field(default_factory=SemanticTokensRequests)
    tokenTypes: list[str] = Field(default_factory=lambda: list(SEMANTIC_TOKEN_TYPES))  # noqa N815
    tokenModifiers: list[str] = Field(default_factory=lambda: list(SEMANTIC_TOKEN_MODIFIERS))  # noqa N815


class TextDocumentClientCapabilities(BaseModel):
    hover: HoverClientCapabilities = Field(default_factory=HoverClientCapabilities)
    completion: CompletionClientCapabilities = Field(default_factory=CompletionClientCapabilities)
    definition: DefinitionClientCapabilities = Field(default_factory=DefinitionClientCapabilities)
    references: ReferenceClientCapabilities = Field(default_factory=ReferenceClientCapabilities)
    documentSymbol: DocumentSymbolClientCapabilities = Field(default_factory=DocumentSymbolClientCapabilities)  # noqa N815
    semanticTokens: SemanticTokensClientCapabilities = Field(default_factory=SemanticTokensClientCapabilities)  # noqa N815


class ClientCapabilities(BaseModel):
    textDocument: TextDocumentClientCapabilities = Field(default_factory=TextDocumentClientCapabilities)  # noqa N815


class ClientInfo(BaseModel):
    name: str
    version: str | None = None


class InitializeParams(BaseModel):
    processId: int | None  # noqa N815
    clientInfo: ClientInfo | None = None  # noqa N815
    rootUri: Uri | None  # noqa N815
    capabilities: ClientCapabilities = Field(default_factory=ClientCapabilities)
