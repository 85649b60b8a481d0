from __future__ import annotations

import asyncio
from typing import Protocol


class ClockPort(Protocol):
    async def sleep(self, seconds: float) -> None:
        """Suspend the current task for the given seconds."""


class SystemClock:
    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
