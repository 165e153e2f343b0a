"""Defines RegistrationSignal, used to request re-registration with the agent."""

import asyncio


class RegistrationSignal:
    """Fire-and-forget requests to re-register this handler with the agent.

    Discovery sessions call `notify()` when they lose their consumer. The
    registration client awaits `wait()` and re-registers on each request.
    """

    def __init__(self, capacity: int = 1) -> None:
        self.__requests: asyncio.Queue[None] = asyncio.Queue(maxsize=capacity)

    async def notify(self) -> None:
        """Requests re-registration, waiting if a request is still pending."""
        await self.__requests.put(None)

    async def wait(self) -> None:
        """Waits until re-registration has been requested."""
        await self.__requests.get()

    def pending(self) -> int:
        """Returns the number of requests not yet consumed."""
        return self.__requests.qsize()
