"""
cwinner.daemon.server — Unix-Socket Event Server
=================================================

Accepts one-shot connections on a per-user local socket, reads one
newline-terminated message and dispatches it:

    1. A hook connects and writes one JSON line  (async world).
    2. The line is validated into a command or an event.
    3. Events go through ``EventProcessor.process`` on a worker thread via
       :func:`asyncio.to_thread`; this is the one critical section, holding the
       state lock for in-memory work plus the state-file write.
    4. The connection is closed; the caller never waits for effects.
    5. Non-Off celebrations are handed to a background task that runs
       :func:`~cwinner.services.render.celebrate` on another worker thread.

Commands (``status`` / ``stats``) are answered before the connection closes.
A connection that never completes its line is cut off by a read timeout,
and no single bad connection can take the server down.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from pathlib import Path

from cwinner.config import CelebrationConfig
from cwinner.constants import RENDER_SETTLE_SECONDS, socket_path
from cwinner.daemon.protocol import (
    DaemonResponse,
    EventMessage,
    ProtocolError,
    StatsCommand,
    StatusCommand,
    parse_message,
)
from cwinner.engine.celebration import Intensity
from cwinner.engine.events import Event
from cwinner.services.event_service import EventProcessor
from cwinner.services.render import RenderCoordinator, celebrate

logger = logging.getLogger(__name__)

READ_TIMEOUT_SECONDS = 2.0
MAX_MESSAGE_BYTES = 64 * 1024
SHUTDOWN_GRACE_SECONDS = 5.0


class DaemonServer:
    """Owns the listening socket and the background celebration tasks."""

    def __init__(
        self,
        processor: EventProcessor,
        cfg: CelebrationConfig,
        *,
        path: str | Path | None = None,
        coordinator: RenderCoordinator | None = None,
        read_timeout: float = READ_TIMEOUT_SECONDS,
        settle: float = RENDER_SETTLE_SECONDS,
    ) -> None:
        self.processor = processor
        self.cfg = cfg
        self.path = Path(path) if path is not None else socket_path()
        self.coordinator = coordinator if coordinator is not None else RenderCoordinator()
        self.read_timeout = read_timeout
        self.settle = settle
        self._server: asyncio.AbstractServer | None = None
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> None:
        """Bind the socket.  Raises ``OSError`` if binding fails."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.exists() or self.path.is_symlink():
            logger.info("Removing stale socket %s", self.path)
            self.path.unlink()

        self._server = await asyncio.start_unix_server(
            self._handle_connection, path=str(self.path), limit=MAX_MESSAGE_BYTES,
        )
        os.chmod(self.path, 0o600)
        logger.info("cwinner daemon listening on %s", self.path)

    async def close(self) -> None:
        """Stop accepting, let running celebrations finish, remove the socket."""
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

        if self._tasks:
            _, pending = await asyncio.wait(set(self._tasks), timeout=SHUTDOWN_GRACE_SECONDS)
            for task in pending:
                task.cancel()

        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        logger.info("cwinner daemon stopped")

    async def run_until_signalled(self) -> None:
        """Start, then serve until SIGINT/SIGTERM."""
        await self.start()
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)
        try:
            await stop.wait()
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            await self.close()

    @property
    def pending_celebrations(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------
    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
    ) -> None:
        try:
            line = await self._read_line(reader)
            if line is None:
                return

            try:
                message = parse_message(line)
            except ProtocolError as exc:
                logger.debug("Discarding malformed message: %s", exc)
                return

            if isinstance(message, EventMessage):
                await self._handle_event(message.to_event())
            else:
                response = await self._handle_command(message)
                writer.write(response.to_line())
                await writer.drain()
        except Exception:
            logger.exception("Connection handler failed")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass

    async def _read_line(self, reader: asyncio.StreamReader) -> bytes | None:
        """One line (or the bytes before EOF), or None to drop the connection."""
        try:
            line = await asyncio.wait_for(reader.readline(), timeout=self.read_timeout)
        except TimeoutError:
            logger.debug("Connection timed out before a full message arrived")
            return None
        except (ValueError, ConnectionError) as exc:
            logger.debug("Connection dropped while reading: %s", exc)
            return None
        line = line.strip()
        return line or None

    async def _handle_event(self, event: Event) -> None:
        outcome = await asyncio.to_thread(self.processor.process, event)
        if outcome.intensity == Intensity.OFF:
            return
        task = asyncio.create_task(
            asyncio.to_thread(
                celebrate, outcome, self.cfg, self.coordinator, settle=self.settle,
            ),
            name=f"celebrate-{outcome.intensity.label}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle_command(self, command: StatusCommand | StatsCommand) -> DaemonResponse:
        try:
            if isinstance(command, StatusCommand):
                data = await asyncio.to_thread(self.processor.status)
            else:
                data = await asyncio.to_thread(self.processor.stats)
        except Exception as exc:
            logger.exception("Command %s failed", command.cmd)
            return DaemonResponse(ok=False, data={"error": str(exc)})
        return DaemonResponse(ok=True, data=data)
