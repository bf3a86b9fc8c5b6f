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

"""Unit tests for the tracking store and telemetry emitter."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from victor_autocomplete.completion.protocol import TrackingRecord, UsageStats
from victor_autocomplete.completion.telemetry import (
    AutocompleteEvent,
    EventKind,
    TelemetryEmitter,
    TelemetrySink,
)
from victor_autocomplete.completion.tracking import CompletionTrackingStore
from victor_autocomplete.errors import DuplicateCompletionIdError


def record(completion_id="completion-1", filepath="a.ts", text=None):
    return TrackingRecord(
        completion_id=completion_id,
        model_id="codestral",
        provider_name="mistral",
        language="typescript",
        filepath=filepath,
        completion_text=text,
    )


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestCompletionTrackingStore:
    """Test suite for the bounded tracking store."""

    def test_add_and_get(self):
        store = CompletionTrackingStore()
        store.add(record())

        assert store.get("completion-1").model_id == "codestral"
        assert "completion-1" in store
        assert len(store) == 1

    def test_duplicate_id_rejected(self):
        """Test at most one record exists per completion id."""
        store = CompletionTrackingStore()
        store.add(record())

        with pytest.raises(DuplicateCompletionIdError):
            store.add(record())

    def test_records_expire_after_ttl(self):
        clock = FakeClock()
        store = CompletionTrackingStore(ttl=10, timer=clock)
        store.add(record())

        clock.now = 11
        assert store.get("completion-1") is None
        assert len(store) == 0

    def test_attach_completion_restarts_ttl(self):
        clock = FakeClock()
        store = CompletionTrackingStore(ttl=10, timer=clock)
        store.add(record())

        clock.now = 8
        assert store.attach_completion("completion-1", "foo(bar)") is True
        clock.now = 15

        assert store.get("completion-1").completion_text == "foo(bar)"

    def test_attach_to_evicted_record(self):
        store = CompletionTrackingStore()

        assert store.attach_completion("missing", "text") is False

    def test_bounded_by_maxsize(self):
        store = CompletionTrackingStore(maxsize=2)
        for i in range(3):
            store.add(record(f"completion-{i}"))

        assert len(store) == 2
        assert "completion-0" not in store

    def test_records_for_file_only_with_text(self):
        store = CompletionTrackingStore()
        store.add(record("c1", "a.ts", text="one()"))
        store.add(record("c2", "a.ts"))
        store.add(record("c3", "b.ts", text="two()"))

        assert [r.completion_id for r in store.records_for_file("a.ts")] == ["c1"]

    def test_pop_and_discard(self):
        store = CompletionTrackingStore()
        store.add(record("c1"))
        store.add(record("c2"))

        assert store.pop("c1").completion_id == "c1"
        assert store.pop("c1") is None
        store.discard("c2")
        store.discard("c2")
        assert len(store) == 0

    def test_resize_keeps_live_records(self):
        store = CompletionTrackingStore(ttl=10, maxsize=5)
        store.add(record("c1", text="one()"))

        store.resize(ttl=60, maxsize=3)

        assert store.ttl == 60
        assert store.maxsize == 3
        assert store.get("c1").completion_text == "one()"

    def test_resize_shrink_keeps_newest(self):
        store = CompletionTrackingStore(maxsize=5)
        for i in range(4):
            store.add(record(f"c{i}"))

        store.resize(ttl=60, maxsize=2)

        assert len(store) == 2
        assert "c2" in store and "c3" in store

    def test_resize_drops_expired(self):
        clock = FakeClock()
        store = CompletionTrackingStore(ttl=5, timer=clock)
        store.add(record("c1"))

        clock.now = 6
        store.resize(ttl=60, maxsize=10)

        assert "c1" not in store

    def test_expire_counts_evictions(self):
        clock = FakeClock()
        store = CompletionTrackingStore(ttl=5, timer=clock)
        store.add(record("c1"))
        store.add(record("c2"))

        clock.now = 6
        assert store.expire() == 2


class TestUsageStats:
    """Test suite for usage counters."""

    def test_rates(self):
        stats = UsageStats(total_requests=4, successful_completions=2, accepted_completions=1)

        assert stats.success_rate == 0.5
        assert stats.acceptance_rate == 0.5

    def test_rates_without_data(self):
        assert UsageStats().success_rate == 0.0
        assert UsageStats().acceptance_rate == 0.0


class TestTelemetry:
    """Test suite for fire-and-forget telemetry."""

    def _event(self, kind=EventKind.GENERATED):
        return AutocompleteEvent.from_record(kind, record(text="foo(bar)\nbaz()"), latency_ms=12.5)

    def test_event_from_record(self):
        event = self._event()

        assert event.lines == 2
        assert event.characters == len("foo(bar)\nbaz()")
        assert event.provider == "mistral"
        assert event.latency_ms == 12.5
        assert event.to_dict()["kind"] == "autocomplete_generated"

    def test_accepted_event_has_no_latency(self):
        assert self._event(EventKind.ACCEPTED).latency_ms is None

    @pytest.mark.asyncio
    async def test_delivers_when_authenticated(self):
        sink = MagicMock(spec=TelemetrySink)
        sink.is_authenticated.return_value = True
        emitter = TelemetryEmitter(sink)

        emitter.emit(self._event())
        await emitter.drain()

        sink.track.assert_called_once()
        assert emitter.pending == 0

    @pytest.mark.asyncio
    async def test_skips_when_not_authenticated(self):
        sink = MagicMock(spec=TelemetrySink)
        sink.is_authenticated.return_value = False
        emitter = TelemetryEmitter(sink)

        emitter.emit(self._event())
        await emitter.drain()

        sink.track.assert_not_called()

    @pytest.mark.asyncio
    async def test_awaits_async_sink(self):
        sink = MagicMock()
        sink.is_authenticated.return_value = True
        sink.track = AsyncMock()
        emitter = TelemetryEmitter(sink)

        emitter.emit(self._event())
        await emitter.drain()

        sink.track.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sink_failure_swallowed(self):
        sink = MagicMock()
        sink.is_authenticated.return_value = True
        sink.track.side_effect = RuntimeError("network down")
        emitter = TelemetryEmitter(sink)

        emitter.emit(self._event())
        await emitter.drain()

        sink.track.assert_called_once()

    def test_emit_without_event_loop_is_dropped(self):
        sink = MagicMock()
        emitter = TelemetryEmitter(sink)

        emitter.emit(self._event())

        sink.track.assert_not_called()
        assert emitter.pending == 0
