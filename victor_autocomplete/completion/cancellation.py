# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""One-shot cancellation signal shared by the manager and adapters."""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationSignal:
    """Externally triggered, terminal cancellation flag.

    Once ``cancel()`` has been called the signal stays cancelled; there is
    no reset. Awaiting ``wait()`` suspends until cancellation.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Fire the signal. Later calls are no-ops."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        logger.debug(f"Cancellation requested: {reason}")

    async def wait(self) -> None:
        await self._event.wait()

    def __repr__(self) -> str:
        return f"CancellationSignal(cancelled={self.is_cancelled})"


async def race_cancellation(
    awaitable: Awaitable[T],
    signal: CancellationSignal,
    timeout: Optional[float] = None,
) -> tuple[bool, Optional[T]]:
    """Run ``awaitable`` until it finishes, the signal fires, or time runs out.

    The losing side is cancelled. Exceptions raised by the awaitable
    propagate to the caller.

    Returns:
        ``(True, result)`` when the awaitable finished, ``(False, None)``
        when it was aborted by cancellation or timeout.
    """
    work = asyncio.ensure_future(awaitable)
    if signal.is_cancelled:
        work.cancel()
        return False, None

    waiter = asyncio.ensure_future(signal.wait())
    try:
        done, _ = await asyncio.wait(
            {work, waiter}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for fut in (work, waiter):
            if not fut.done():
                fut.cancel()

    if work in done:
        return True, work.result()

    # Let the aborted work observe its CancelledError before returning
    await asyncio.gather(work, return_exceptions=True)
    return False, None
