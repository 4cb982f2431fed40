import json
import logging

import pytest
from lsp_bench.utils.lsp.framing import FrameCodec, encode_message


def _frame(obj: dict) -> bytes:
    body = json.dumps(obj).encode("utf-8")
    return f"Content-Length: {len(body)}\r\n\r\n".encode() + body


MESSAGES = [
    {"jsonrpc": "2.0", "id": 1, "result": {"capabilities": {}}},
    {"jsonrpc": "2.0", "method": "window/logMessage", "params": {"type": 3, "message": "héllo ✓"}},
    {"jsonrpc": "2.0", "id": 2, "result": [{"name": "createUser", "kind": 12}]},
]
STREAM = b"".join(_frame(m) for m in MESSAGES)


def test_encode_message_counts_utf8_bytes():
    msg = {"jsonrpc": "2.0", "method": "x", "params": {"text": "ü€"}}
    encoded = encode_message(msg)
    header, _, body = encoded.partition(b"\r\n\r\n")
    assert header == f"Content-Length: {len(body)}".encode()
    # More bytes than characters once non-ASCII text is involved.
    assert len(body) > len(body.decode("utf-8"))
    assert json.loads(body) == msg


def test_feed_whole_stream():
    codec = FrameCodec()
    assert codec.feed(STREAM) == MESSAGES
    assert codec.pending_bytes == 0


def test_encoded_message_decodes():
    codec = FrameCodec()
    msg = {"jsonrpc": "2.0", "id": 7, "method": "textDocument/hover", "params": {"x": "ö"}}
    assert codec.feed(encode_message(msg)) == [msg]


@pytest.mark.parametrize("chunk_size", [1, 2, 3, 7, 16, 64, len(STREAM)])
def test_chunk_boundaries_do_not_matter(chunk_size: int):
    codec = FrameCodec()
    decoded = []
    for i in range(0, len(STREAM), chunk_size):
        decoded.extend(codec.feed(STREAM[i : i + chunk_size]))
    assert decoded == MESSAGES


def test_every_two_way_split_yields_same_messages():
    for split in range(len(STREAM) + 1):
        codec = FrameCodec()
        decoded = codec.feed(STREAM[:split]) + codec.feed(STREAM[split:])
        assert decoded == MESSAGES, f"split at {split}"


def test_partial_body_waits_for_more_data():
    frame = _frame(MESSAGES[0])
    codec = FrameCodec()
    assert codec.feed(frame[:-1]) == []
    assert codec.pending_bytes == len(frame) - 1
    assert codec.feed(frame[-1:]) == [MESSAGES[0]]


def test_header_name_is_case_insensitive():
    body = json.dumps(MESSAGES[0]).encode()
    data = f"content-length: {len(body)}\r\nContent-Type: application/vscode-jsonrpc; charset=utf-8\r\n\r\n".encode() + body
    assert FrameCodec().feed(data) == [MESSAGES[0]]


def test_malformed_header_is_dropped(caplog: pytest.LogCaptureFixture):
    codec = FrameCodec()
    with caplog.at_level(logging.WARNING):
        out = codec.feed(b"starting server...\r\n\r\n" + _frame(MESSAGES[2]))
    assert out == [MESSAGES[2]]
    assert "malformed" in caplog.text


def test_unparsable_content_length_is_dropped():
    codec = FrameCodec()
    assert codec.feed(b"Content-Length: abc\r\n\r\n" + _frame(MESSAGES[0])) == [MESSAGES[0]]


def test_invalid_json_body_is_skipped(caplog: pytest.LogCaptureFixture):
    bad = b"{not json"
    data = f"Content-Length: {len(bad)}\r\n\r\n".encode() + bad + _frame(MESSAGES[1])
    with caplog.at_level(logging.ERROR):
        assert FrameCodec().feed(data) == [MESSAGES[1]]
    assert "undecodable" in caplog.text


def test_non_object_body_is_skipped():
    assert FrameCodec().feed(_frame([1, 2, 3]) + _frame(MESSAGES[0])) == [MESSAGES[0]]  # type: ignore[arg-type]


def test_stdout_chatter_before_first_header_is_skipped():
    data = b"Server starting...\n" + STREAM
    assert FrameCodec().feed(data) == MESSAGES


def test_chatter_with_colons_and_split_delivery():
    data = b"info: listening on stdio\nready\n" + STREAM
    codec = FrameCodec()
    decoded = []
    for i in range(0, len(data), 5):
        decoded.extend(codec.feed(data[i : i + 5]))
    assert decoded == MESSAGES
