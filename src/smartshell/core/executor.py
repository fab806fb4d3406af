"""Background execution with progress feedback and cancellation.

The provider call runs as its own asyncio task. The foreground loop wakes on
every tick to redraw a spinner and returns as soon as either the worker
finishes or the cancel event fires, whichever happens first.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from typing import Awaitable, Callable, Iterator, Optional, TextIO

from loguru import logger
from rich.console import Console
from rich.live import Live
from rich.spinner import Spinner

from ..models.result import Result
from ..utils.sanitize import sanitize_error

TaskFactory = Callable[[], Awaitable[Result]]

TTY_PATH = "/dev/tty"


class ProgressIndicator:
    """Spinner drawn on the controlling terminal, never on stdout."""

    def __init__(self, console: Console, spinner: str = "dots"):
        self.console = console
        self.spinner = Spinner(spinner, style="cyan")
        self.ticks = 0
        self._live: Optional[Live] = None

    def start(self) -> None:
        self._live = Live(
            self.spinner,
            console=self.console,
            auto_refresh=False,
            transient=True,
            redirect_stdout=False,
            redirect_stderr=False,
        )
        self._live.start()

    def tick(self) -> None:
        self.ticks += 1
        if self._live is not None:
            self._live.refresh()

    def stop(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None


@contextlib.contextmanager
def terminal_progress(path: str = TTY_PATH) -> Iterator[Optional[ProgressIndicator]]:
    """Yield a spinner bound to the terminal, or None when there is no terminal."""
    tty: Optional[TextIO]
    try:
        tty = open(path, "w", encoding="utf-8")
    except OSError:
        tty = None

    if tty is None:
        yield None
        return
    with tty:
        yield ProgressIndicator(Console(file=tty, stderr=False))


@contextlib.contextmanager
def cancel_on_sigint(cancel_event: asyncio.Event) -> Iterator[None]:
    """Route SIGINT to the cancel event while the block runs."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except (NotImplementedError, RuntimeError):
        # No loop signal support on this platform; Ctrl-C raises KeyboardInterrupt instead.
        yield
        return
    try:
        yield
    finally:
        loop.remove_signal_handler(signal.SIGINT)


class ExecutionController:
    """Run one dispatch off the foreground and relay its terminal value."""

    def __init__(self, progress: Optional[ProgressIndicator] = None, tick: float = 0.1):
        self.progress = progress
        self.tick = tick

    async def run(
        self,
        task_factory: TaskFactory,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Result:
        cancel_event = cancel_event or asyncio.Event()
        worker = asyncio.ensure_future(task_factory())
        cancel_waiter = asyncio.ensure_future(cancel_event.wait())

        if self.progress is not None:
            self.progress.start()
        try:
            while True:
                done, _ = await asyncio.wait(
                    {worker, cancel_waiter},
                    timeout=self.tick,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if worker in done:
                    return self._collect(worker)
                if cancel_waiter in done:
                    logger.debug("Cancelled before the provider call completed")
                    worker.cancel()
                    return Result.cancelled()
                if self.progress is not None:
                    self.progress.tick()
        finally:
            cancel_waiter.cancel()
            if not worker.done():
                worker.cancel()
            if self.progress is not None:
                self.progress.stop()

    @staticmethod
    def _collect(worker: "asyncio.Future[Result]") -> Result:
        exc = worker.exception()
        if exc is not None:
            logger.debug("Worker raised {}", type(exc).__name__)
            message = str(exc) or type(exc).__name__
            return Result.failed(
                sanitize_error(f"Background task failed: {message}"),
                error_kind=type(exc).__name__,
            )
        return worker.result()
