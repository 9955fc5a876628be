import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

class Scheduler(ABC):
    """Source of delayed callbacks for the feed controller."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Any:
        ...

class AsyncioScheduler(Scheduler):
    """Runs callbacks on an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        loop = self.loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback, *args)
