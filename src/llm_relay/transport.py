"""
Transports that carry dispatcher requests.

The wire format is newline-delimited JSON: one request object per line from
client to server, one response envelope per line back. stdout is reserved for
the protocol, so the server logs to stderr only.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
import os
import sys
from contextlib import AsyncExitStack
from types import TracebackType
from typing import Any, Optional, Protocol, TextIO, Type

from llm_relay.config import Settings
from llm_relay.dispatcher import INVALID_REQUEST, PARSE_ERROR, RequestDispatcher, failure

__all__ = [
    "Transport",
    "StdioServer",
    "StdioClientTransport",
    "InProcessTransport",
    "open_stdin_reader",
]

logger = logging.getLogger(__name__)

# Resources travel base64-encoded inside one line, so allow long lines.
LINE_LIMIT = 16 * 1024 * 1024


class Transport(Protocol):
    async def request(self, method: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Send one request and return its response envelope."""
        ...


async def open_stdin_reader(limit: int = LINE_LIMIT) -> asyncio.StreamReader:
    """Wrap the process's stdin in an ``asyncio.StreamReader``."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


class StdioServer:
    """Serves a dispatcher over a line-oriented stream pair.

    Requests are handled one at a time, in arrival order, so responses come
    back in the same order.
    """

    def __init__(self, dispatcher: RequestDispatcher, *, logger: Optional[logging.Logger] = None) -> None:
        self.dispatcher = dispatcher
        self.logger = logger or logging.getLogger(__name__)

    async def handle_line(self, line: bytes | str) -> Optional[dict[str, Any]]:
        """Decode and dispatch one line. Blank lines produce no response."""
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        line = line.strip()
        if not line:
            return None
        try:
            request = json.loads(line)
        except json.JSONDecodeError as exc:
            self.logger.warning("Discarding unparseable request: %s", exc)
            return failure(None, PARSE_ERROR, f"Parse error: {exc.msg}")
        return await self.dispatcher.handle(request)

    async def serve(self, reader: asyncio.StreamReader, writer: TextIO) -> None:
        """Answer requests from ``reader`` until EOF, writing envelopes to ``writer``."""
        self.logger.info("Stdio server ready (methods: %s)", ", ".join(self.dispatcher.methods))
        while True:
            try:
                line = await reader.readline()
            except ValueError:
                # readline() has already dropped the oversized line.
                self.logger.warning("Discarding request line over the reader limit")
                response = failure(None, INVALID_REQUEST, "Request line exceeds the size limit")
                writer.write(json.dumps(response) + "\n")
                writer.flush()
                continue
            if not line:
                break
            response = await self.handle_line(line)
            if response is None:
                continue
            writer.write(json.dumps(response, default=str) + "\n")
            writer.flush()
        self.logger.info("Stdin closed, stdio server stopping")

    async def serve_stdio(self) -> None:
        await self.serve(await open_stdin_reader(), sys.stdout)


class InProcessTransport:
    """Hands requests straight to a dispatcher in the same event loop."""

    def __init__(self, dispatcher: RequestDispatcher) -> None:
        self.dispatcher = dispatcher
        self._ids = itertools.count(1)

    async def request(self, method: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        return await self.dispatcher.handle(
            {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or {}}
        )


class StdioClientTransport:
    """Spawns a relay server subprocess and talks to it over its stdin/stdout.

    Use as an async context manager::

        async with StdioClientTransport(sys.executable, ["-m", "llm_relay"]) as transport:
            envelope = await transport.request("generate", {"prompt": "hi"})

    Several requests may be in flight at once; responses are matched to
    callers by ``id``.
    """

    def __init__(
        self,
        command: str,
        args: Optional[list[str]] = None,
        env: Optional[dict[str, str]] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Args:
            command: The command to run the server.
            args: List of arguments for the command.
            env: Extra environment variables, layered over the current environment.
            logger: Optional logger; defaults to this module's logger.
        """
        self.command = command
        self.args = list(args or [])
        self.env = env
        self.logger = logger or logging.getLogger(__name__)
        self._process: Optional[asyncio.subprocess.Process] = None
        self._reader_task: Optional[asyncio.Task[None]] = None
        self._pending: dict[int, asyncio.Future[dict[str, Any]]] = {}
        self._ids = itertools.count(1)
        self._write_lock = asyncio.Lock()
        self._exit_stack = AsyncExitStack()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        env: Optional[dict[str, str]] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> "StdioClientTransport":
        """Spawn the server configured by ``RELAY_SERVER_COMMAND`` and ``RELAY_SERVER_ARGS``."""
        return cls(settings.server_command, settings.server_args, env, logger=logger)

    async def __aenter__(self) -> "StdioClientTransport":
        env = {**os.environ, **self.env} if self.env else None
        self.logger.debug("Starting relay server: %s %s", self.command, " ".join(self.args))
        self._process = await asyncio.create_subprocess_exec(
            self.command,
            *self.args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            env=env,
            limit=LINE_LIMIT,
        )
        self._exit_stack.push_async_callback(self._shutdown)
        self._reader_task = asyncio.create_task(self._read_responses())
        self.logger.info("Relay server started (pid %s)", self._process.pid)
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        await self._exit_stack.aclose()

    async def request(self, method: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        if self._process is None or self._process.stdin is None:
            raise RuntimeError("Relay server is not running. Use 'async with'.")

        request_id = next(self._ids)
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        payload = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params or {}}
        try:
            async with self._write_lock:
                self._process.stdin.write((json.dumps(payload) + "\n").encode("utf-8"))
                await self._process.stdin.drain()
            return await future
        finally:
            self._pending.pop(request_id, None)

    async def _read_responses(self) -> None:
        assert self._process is not None and self._process.stdout is not None
        stdout = self._process.stdout
        while True:
            line = await stdout.readline()
            if not line:
                break
            try:
                envelope = json.loads(line)
            except json.JSONDecodeError:
                self.logger.warning("Ignoring non-JSON output from relay server: %r", line[:200])
                continue
            future = self._pending.get(envelope.get("id")) if isinstance(envelope, dict) else None
            if future is None:
                self.logger.warning("Ignoring response with unknown id: %s", line[:200])
                continue
            if not future.done():
                future.set_result(envelope)
        self._fail_pending(ConnectionError("Relay server closed its output"))

    def _fail_pending(self, exc: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(exc)

    async def _shutdown(self) -> None:
        process, self._process = self._process, None
        if process is None:
            return
        self.logger.debug("Stopping relay server...")
        if process.stdin is not None:
            process.stdin.close()
        try:
            await asyncio.wait_for(process.wait(), timeout=5)
        except asyncio.TimeoutError:
            self.logger.warning("Relay server did not exit, terminating")
            process.terminate()
            await process.wait()
        if self._reader_task is not None:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None
        self._fail_pending(ConnectionError("Relay transport closed"))
        self.logger.info("Relay server stopped.")
