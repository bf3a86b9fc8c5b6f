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

"""Fire-and-forget autocomplete telemetry.

Transport and authentication belong to the host; the engine only sees a
``TelemetrySink``. Events are delivered on background tasks so a slow
or failing sink never affects completion latency or results.
"""

import asyncio
import inspect
import logging
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol, Union, runtime_checkable

from victor_autocomplete.completion.protocol import TrackingRecord

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    GENERATED = "autocomplete_generated"
    ACCEPTED = "autocomplete_accepted"


@dataclass(frozen=True)
class AutocompleteEvent:
    """Telemetry payload for a generated or accepted completion."""

    kind: EventKind
    completion_id: str
    model_id: str
    provider: str
    language: str
    filepath: str
    lines: int
    characters: int
    latency_ms: Optional[float] = None  # generated events only
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def from_record(
        cls,
        kind: EventKind,
        record: TrackingRecord,
        latency_ms: Optional[float] = None,
    ) -> "AutocompleteEvent":
        return cls(
            kind=kind,
            completion_id=record.completion_id,
            model_id=record.model_id,
            provider=record.provider_name,
            language=record.language,
            filepath=record.filepath,
            lines=record.line_count,
            characters=record.char_count,
            latency_ms=latency_ms if kind is EventKind.GENERATED else None,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


@runtime_checkable
class TelemetrySink(Protocol):
    """Host-provided telemetry transport."""

    def track(self, event: AutocompleteEvent) -> Union[None, Any]:
        """Deliver one event (may be a coroutine function)."""
        ...

    def is_authenticated(self) -> bool:
        """Whether events may be sent for the current session."""
        ...


class TelemetryEmitter:
    """Schedules sink calls on background tasks and swallows their failures."""

    def __init__(self, sink: Optional[TelemetrySink] = None):
        self._sink = sink
        self._tasks: set[asyncio.Task] = set()

    @property
    def sink(self) -> Optional[TelemetrySink]:
        return self._sink

    def set_sink(self, sink: Optional[TelemetrySink]) -> None:
        self._sink = sink

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def emit(self, event: AutocompleteEvent) -> None:
        """Queue ``event`` for delivery without waiting for it."""
        if self._sink is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, dropping {event.kind.value} event")
            return
        task = loop.create_task(self._deliver(self._sink, event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, sink: TelemetrySink, event: AutocompleteEvent) -> None:
        try:
            if not sink.is_authenticated():
                logger.debug(f"Telemetry sink not authenticated, skipping {event.kind.value}")
                return
            result = sink.track(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Failed to track {event.kind.value} event: {e}")

    async def drain(self) -> None:
        """Wait for all queued deliveries to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
