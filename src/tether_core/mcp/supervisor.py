"""Process supervision for stdio MCP proxies.

One ProxyProcess per connected server: it owns the child process, its
frame decoder and its request correlator.
"""

import asyncio
import os
import signal
from collections.abc import Awaitable, Callable
from typing import Any

from tether_core.errors import create_error
from tether_core.logging.logger import ServerLogger, TetherLogger
from tether_core.types import LogLevel, StderrKind

from .correlator import DEFAULT_REQUEST_TIMEOUT, RequestCorrelator
from .protocol import FrameDecoder, read_frames
from .types import LaunchDescriptor, Tool

# Substrings in proxy stderr, checked in order
OAUTH_FLOW_MARKERS = ("Opening browser", "authorization")
AUTH_SUCCESS_MARKERS = ("authenticated", "success")

# How long the exit watcher lets the output pipes drain before failing pending requests
STREAM_DRAIN_TIMEOUT = 1.0

_POSIX = os.name == "posix"

ExitCallback = Callable[["ProxyProcess", int | None], Awaitable[None]]


def classify_stderr(line: str) -> StderrKind:
    """Classify a stderr line for logging only."""
    if any(marker in line for marker in OAUTH_FLOW_MARKERS):
        return StderrKind.OAUTH_FLOW
    if any(marker in line for marker in AUTH_SUCCESS_MARKERS):
        return StderrKind.AUTH_SUCCESS
    return StderrKind.DIAGNOSTIC


class ProxyProcess:
    """A running proxy process and its JSON-RPC plumbing."""

    def __init__(
        self,
        server_id: str,
        name: str,
        launch: LaunchDescriptor,
        process: asyncio.subprocess.Process,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        logger: TetherLogger | None = None,
        on_exit: ExitCallback | None = None,
    ):
        self.server_id = server_id
        self.name = name
        self.launch = launch
        self.url = launch.url
        self.pid: int = process.pid
        self.tools: list[Tool] = []
        self.returncode: int | None = None
        self.decoder = FrameDecoder(server_id)
        self.correlator = RequestCorrelator(server_id, process.stdin, request_timeout, logger)

        self._process = process
        self._logger = logger
        self._events: ServerLogger | None = logger.server(server_id, name) if logger else None
        self._on_exit = on_exit
        self._stdout_task: asyncio.Task[None] | None = None
        self._stderr_task: asyncio.Task[None] | None = None
        self._exit_task: asyncio.Task[None] | None = None
        self._exited = asyncio.Event()

    def _log(self, level: LogLevel, message: str, **kwargs: Any) -> None:
        if self._logger:
            self._logger._log(level, f"process.{self.server_id}", message, kwargs or None)

    def start(self) -> None:
        """Attach the stream listeners and the exit watcher."""
        self._stdout_task = asyncio.create_task(self._pump_stdout())
        self._stderr_task = asyncio.create_task(self._pump_stderr())
        self._exit_task = asyncio.create_task(self._watch_exit())

    @property
    def exited(self) -> bool:
        return self._exited.is_set()

    def is_alive(self) -> bool:
        """Non-destructive liveness probe (signal 0)."""
        if self._process.returncode is not None or self._exited.is_set():
            return False
        try:
            os.kill(self.pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # Exists but owned by someone else
            return True
        except OSError:
            return False
        return True

    def kill(self) -> None:
        """Best-effort termination. Idempotent, never raises."""
        if self._process.returncode is not None:
            return
        self._signal(signal.SIGTERM)

    async def terminate(self, timeout: float = 5.0) -> None:
        """Kill the process and wait for the exit watcher to finish.

        Escalates to SIGKILL if the process outlives ``timeout``.
        """
        self.kill()
        try:
            await asyncio.wait_for(self._exited.wait(), timeout)
            return
        except TimeoutError:
            self._log(LogLevel.WARN, f"Process {self.pid} ignored SIGTERM, sending SIGKILL")

        self._signal(signal.SIGKILL)
        try:
            await asyncio.wait_for(self._exited.wait(), timeout)
        except TimeoutError:
            self._log(LogLevel.ERROR, f"Process {self.pid} did not exit after SIGKILL")

    def _signal(self, sig: int) -> None:
        try:
            if _POSIX:
                # The proxy runs in its own session so its children die too
                os.killpg(self.pid, sig)
            elif sig == signal.SIGTERM:
                self._process.terminate()
            else:
                self._process.kill()
        except (ProcessLookupError, PermissionError):
            pass
        except OSError as e:
            self._log(LogLevel.DEBUG, f"Signal {sig} to {self.pid} failed: {e}")

    async def _pump_stdout(self) -> None:
        stdout = self._process.stdout
        if stdout is None:
            return
        async for frame in read_frames(stdout, self.decoder):
            self._dispatch(frame)

    def _dispatch(self, frame: dict[str, Any]) -> None:
        if "method" in frame:
            # Server-initiated notification or request; not consumed
            self._log(LogLevel.DEBUG, f"Ignoring server message {frame['method']}")
            return
        if "id" in frame and frame["id"] is not None:
            self.correlator.resolve(frame)
            return
        self._log(LogLevel.DEBUG, "Ignoring frame without id")

    async def _pump_stderr(self) -> None:
        stderr = self._process.stderr
        if stderr is None:
            return
        while True:
            try:
                raw = await stderr.readline()
            except ValueError:
                # Line longer than the stream limit; the reader dropped it
                continue
            if not raw:
                break
            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                continue
            kind = classify_stderr(line)
            if self._events:
                self._events.stderr(kind, line)

    async def _watch_exit(self) -> None:
        returncode = await self._process.wait()
        self.returncode = returncode

        # Let responses already written reach the correlator
        pumps = {t for t in (self._stdout_task, self._stderr_task) if t and not t.done()}
        if pumps:
            await asyncio.wait(pumps, timeout=STREAM_DRAIN_TIMEOUT)
        for task in (self._stdout_task, self._stderr_task):
            if task and not task.done():
                task.cancel()

        if self._events:
            self._events.exited(returncode)

        self.correlator.fail_all(create_error("CONNECTION_CLOSED", server_id=self.server_id))

        try:
            if self._on_exit:
                await self._on_exit(self, returncode)
        finally:
            self._exited.set()


class ProcessSupervisor:
    """Spawns proxy processes and wires their streams."""

    def __init__(
        self,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        inherit_env: bool = True,
        logger: TetherLogger | None = None,
    ):
        """Initialize supervisor.

        Args:
            request_timeout: Default per-request timeout for spawned processes
            inherit_env: Start children with the parent environment
            logger: Optional logger
        """
        self.request_timeout = request_timeout
        self.inherit_env = inherit_env
        self._logger = logger

    def _environment(self, launch: LaunchDescriptor) -> dict[str, str]:
        env = dict(os.environ) if self.inherit_env else {}
        env.update(launch.env)
        return env

    async def spawn(
        self,
        server_id: str,
        name: str,
        launch: LaunchDescriptor,
        on_exit: ExitCallback | None = None,
    ) -> ProxyProcess:
        """Spawn a proxy and start listening to it.

        Args:
            server_id: Server identifier
            name: Display name
            launch: Command, arguments and URL to run
            on_exit: Awaited once after the process exits

        Returns:
            Started ProxyProcess

        Raises:
            TetherError(SPAWN_FAILED): If the OS could not create the process
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *launch.argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._environment(launch),
                start_new_session=_POSIX,
            )
        except OSError as e:
            raise create_error(
                "SPAWN_FAILED",
                server_id=server_id,
                detail=f"{launch.command}: {e}",
            ) from e

        if not process.pid:
            raise create_error("SPAWN_FAILED", server_id=server_id)

        proxy = ProxyProcess(
            server_id=server_id,
            name=name,
            launch=launch,
            process=process,
            request_timeout=self.request_timeout,
            logger=self._logger,
            on_exit=on_exit,
        )
        # Listeners are attached before any request can be written
        proxy.start()

        if self._logger:
            self._logger.server(server_id, name).spawned(proxy.pid, launch.argv)
        return proxy
