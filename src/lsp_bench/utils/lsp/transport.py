"""Child-process stdio transport for a language server."""

import asyncio
import logging
import os
from collections import deque
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from .errors import ServerStartError, TransportExit
from .framing import FrameCodec, encode_message

logger = logging.getLogger(__name__)

MessageHandler = Callable[[dict[str, Any]], Awaitable[None]]
ExitHandler = Callable[[TransportExit], None]

READ_CHUNK_SIZE = 64 * 1024
STDERR_TAIL_LINES = 50
MAX_STDERR_LINE = 4096


class ProcessTransport:
    """Owns a server process and its three pipes.

    Stdout bytes are pushed through a private :class:`FrameCodec` as soon as
    they are read; stderr is only logged. When stdout reaches EOF the exit
    handler is called once with a :class:`TransportExit` describing why.
    """

    def __init__(
        self,
        command: Sequence[str],
        env: Mapping[str, str] | None = None,
        cwd: str | os.PathLike[str] | None = None,
    ) -> None:
        self.command = list(command)
        self.env = dict(env) if env else None
        self.cwd = cwd
        self._process: asyncio.subprocess.Process | None = None
        self._codec = FrameCodec()
        self._on_message: MessageHandler | None = None
        self._on_exit: ExitHandler | None = None
        self._stdout_task: asyncio.Task[None] | None = None
        self._stderr_task: asyncio.Task[None] | None = None
        self._closing = False
        self.stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process else None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self, on_message: MessageHandler, on_exit: ExitHandler) -> None:
        """Spawn the server process and start pumping its output."""
        if self._process is not None:
            raise RuntimeError("Transport already started")

        self._on_message = on_message
        self._on_exit = on_exit

        env = None
        if self.env:
            env = {**os.environ, **self.env}

        logger.info(f"Starting LSP server: {' '.join(self.command)}")
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                cwd=self.cwd,
            )
        except OSError as e:
            raise ServerStartError(f"Failed to start {self.command[0]}: {e}") from e

        self._stdout_task = asyncio.create_task(self._read_stdout())
        self._stderr_task = asyncio.create_task(self._read_stderr())

    async def write_message(self, message: dict[str, Any]) -> None:
        """Write a single LSP message to the server's stdin."""
        if self._process is None or self._process.stdin is None:
            raise TransportExit("Server not started")
        if self._closing or self._process.returncode is not None:
            raise TransportExit("Server is not running", self._process.returncode)

        stdin = self._process.stdin
        try:
            stdin.write(encode_message(message))
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise TransportExit(f"Write to server failed: {e}", self._process.returncode) from e

    async def _read_stdout(self) -> None:
        assert self._process is not None and self._process.stdout is not None
        stdout = self._process.stdout
        while True:
            data = await stdout.read(READ_CHUNK_SIZE)
            if not data:
                break
            for message in self._codec.feed(data):
                assert self._on_message is not None
                try:
                    await self._on_message(message)
                except Exception:
                    logger.exception("Error handling message from server")

        returncode = await self._process.wait()
        if self._codec.pending_bytes:
            logger.debug(f"Discarding {self._codec.pending_bytes} buffered bytes at EOF")
        reason = "Server closed by client" if self._closing else "Server exited unexpectedly"
        if not self._closing:
            logger.error(f"{reason} (exit code {returncode})")
        if self._on_exit is not None:
            self._on_exit(TransportExit(reason, returncode, list(self.stderr_tail)))

    async def _read_stderr(self) -> None:
        # Chunked reads: a single huge line must never stop the pipe draining.
        assert self._process is not None and self._process.stderr is not None
        partial = b""
        while True:
            data = await self._process.stderr.read(READ_CHUNK_SIZE)
            if not data:
                break
            *lines, partial = (partial + data).split(b"\n")
            for line in lines:
                self._record_stderr(line)
            if len(partial) > MAX_STDERR_LINE:
                self._record_stderr(partial)
                partial = b""
        if partial:
            self._record_stderr(partial)

    def _record_stderr(self, line: bytes) -> None:
        text = line[:MAX_STDERR_LINE].decode("utf-8", errors="replace").rstrip()
        self.stderr_tail.append(text)
        logger.debug(f"LSP stderr: {text}")

    async def close(self, grace_period: float = 0.0) -> None:
        """Make sure the server process is gone.

        The process gets ``grace_period`` seconds to exit on its own (after an
        ``exit`` notification, say); whatever is still running is killed.
        """
        if self._process is None:
            return
        self._closing = True
        process = self._process

        if process.returncode is None and grace_period > 0:
            try:
                await asyncio.wait_for(process.wait(), timeout=grace_period)
            except asyncio.TimeoutError:
                logger.info("Server still running, killing it...")

        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()

        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()

        for task in (self._stdout_task, self._stderr_task):
            if task is None:
                continue
            try:
                await asyncio.wait_for(task, timeout=1.0)
            except asyncio.TimeoutError:
                task.cancel()
            except Exception:
                logger.exception("Server output reader failed")
        logger.info(f"Server process {process.pid} terminated (exit code {process.returncode})")
