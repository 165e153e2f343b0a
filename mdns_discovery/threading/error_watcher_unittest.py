import asyncio
import threading

import pytest

from mdns_discovery.threading.error_watcher import ErrorWatcher


class TestErrorWatcher:
    def setup_method(self) -> None:
        self.watcher = ErrorWatcher()

    def test_check_for_exception_without_errors(self) -> None:
        self.watcher.check_for_exception()

    def test_check_for_exception_raises_first(self) -> None:
        first = ValueError("first")
        self.watcher.on_exception_seen(first)
        self.watcher.on_exception_seen(KeyError("second"))

        with pytest.raises(ValueError, match="first"):
            self.watcher.check_for_exception()

    @pytest.mark.asyncio
    async def test_run_until_exception_wakes_on_error(self) -> None:
        waiter = asyncio.create_task(self.watcher.run_until_exception())
        await asyncio.sleep(0)
        assert not waiter.done()

        self.watcher.on_exception_seen(RuntimeError("boom"))
        with pytest.raises(RuntimeError, match="boom"):
            await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.asyncio
    async def test_run_until_exception_from_other_thread(self) -> None:
        waiter = asyncio.create_task(self.watcher.run_until_exception())
        await asyncio.sleep(0)

        thread = threading.Thread(
            target=self.watcher.on_exception_seen, args=(OSError("io"),)
        )
        thread.start()
        thread.join()

        with pytest.raises(OSError):
            await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.asyncio
    async def test_watch_task_reports_failures_only(self) -> None:
        async def fail() -> None:
            raise ValueError("task failed")

        async def succeed() -> None:
            return None

        async def hang() -> None:
            await asyncio.Event().wait()

        tasks = [
            asyncio.create_task(fail()),
            asyncio.create_task(succeed()),
            asyncio.create_task(hang()),
        ]
        for task in tasks:
            self.watcher.watch_task(task)
        tasks[2].cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await asyncio.sleep(0)

        with pytest.raises(ValueError, match="task failed"):
            self.watcher.check_for_exception()
