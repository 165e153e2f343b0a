"""
Defines the `ErrorWatcher` class.

`ErrorWatcher` collects exceptions raised by background work (discovery
session tasks, RPC handlers) so that they can be surfaced centrally. The
process entry point blocks on `run_until_exception()` and exits once a
fatal error has been seen.
"""

import asyncio
import logging
import threading
from typing import Any, List


class ErrorWatcher:
    """
    Tracks and surfaces exceptions from background tasks.

    `on_exception_seen` may be called from any thread. The async methods
    must be used from a single event loop.
    """

    def __init__(self) -> None:
        self.__barrier = asyncio.Event()
        self.__exceptions_lock = threading.Lock()  # Protects __exceptions
        self.__exceptions: List[Exception] = []
        self.__event_loop: asyncio.AbstractEventLoop | None = None

    def on_exception_seen(self, e: Exception) -> None:
        """
        Records `e` and wakes any caller of `run_until_exception`.

        Args:
            e: The exception that was caught.
        """
        logging.error("Background error reported: %r", e)
        with self.__exceptions_lock:
            self.__exceptions.append(e)
            loop = self.__event_loop

        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self.__barrier.set)
        else:
            self.__barrier.set()

    def watch_task(self, task: "asyncio.Task[Any]") -> None:
        """Reports the exception of `task`, if it ends with one."""
        task.add_done_callback(self.__on_task_done)

    def __on_task_done(self, task: "asyncio.Task[Any]") -> None:
        if task.cancelled():
            return
        e = task.exception()
        if e is None:
            return
        if isinstance(e, Exception):
            self.on_exception_seen(e)

    def check_for_exception(self) -> None:
        """
        Raises the first caught exception, if any. Non-blocking.
        """
        with self.__exceptions_lock:
            if self.__exceptions:
                raise self.__exceptions[0]

    async def run_until_exception(self) -> None:
        """
        Waits until an exception has been seen, then raises it.

        Raises:
            Exception: First exception caught by the watcher.
        """
        with self.__exceptions_lock:
            self.__event_loop = asyncio.get_running_loop()

        while True:
            await self.__barrier.wait()
            with self.__exceptions_lock:
                if not self.__exceptions:
                    self.__barrier.clear()
                    continue

                raise self.__exceptions[0]
