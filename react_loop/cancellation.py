import asyncio

from react_loop.exceptions import RunCancelled


class CancellationToken:
    """Cooperative cancellation signal for a single run.

    The agent polls it at the top of every iteration and before every tool
    call. It never interrupts a model or tool call already in flight;
    collaborators that want to stop early can ``await token.wait()`` or
    check ``token.cancelled`` themselves.
    """

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunCancelled()
