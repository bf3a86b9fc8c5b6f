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

"""Autocomplete manager orchestrating inline completion requests.

Provides a high-level API for editor integration following the
Facade pattern. One call to ``provide_inline_completion`` runs the whole
request lifecycle:

    guards -> tracking record -> provider readiness -> context
    -> provider dispatch -> result + telemetry

Every internal failure is turned into a tagged ``InlineCompletionResult``;
nothing raised by a provider or a context source reaches the caller.
"""

import logging
import threading
import time
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Callable, Mapping, Optional, Union

from victor_autocomplete.completion.cancellation import CancellationSignal, race_cancellation
from victor_autocomplete.completion.protocol import (
    CompletionRequest,
    CompletionStatus,
    InlineCompletionResult,
    InlineTriggerKind,
    Position,
    TrackingRecord,
    UsageStats,
)
from victor_autocomplete.completion.provider import AutocompleteProvider
from victor_autocomplete.completion.registry import (
    ProviderRegistry,
    get_provider_registry,
    provider_name_for_model,
)
from victor_autocomplete.completion.telemetry import (
    AutocompleteEvent,
    EventKind,
    TelemetryEmitter,
    TelemetrySink,
)
from victor_autocomplete.completion.tracking import CompletionTrackingStore
from victor_autocomplete.config import AutocompleteSettings, configure_logging_levels
from victor_autocomplete.context.formatter import ContextFormatter
from victor_autocomplete.context.retrieval import ContextRetrievalService
from victor_autocomplete.languages import detect_language, get_comment_style

logger = logging.getLogger(__name__)

# Comment openers checked for every language, on top of the language's own
ALWAYS_COMMENT_STARTERS = ("//", "/*")

ConflictDetector = Callable[[], bool]
UsageStatsCallback = Callable[[UsageStats], None]


def looks_like_comment(line_prefix: str, language: str) -> bool:
    """Cheap check whether the cursor line is a comment.

    Args:
        line_prefix: Text between the start of the line and the cursor
        language: Language identifier

    Returns:
        True if the stripped line starts with a comment opener
    """
    stripped = line_prefix.strip()
    if not stripped:
        return False
    starters = ALWAYS_COMMENT_STARTERS + get_comment_style(language).starters()
    return stripped.startswith(starters)


def split_at_cursor(content: str, line: int, character: int) -> tuple[str, str]:
    """Split a buffer into the text before and after a cursor position."""
    lines = content.split("\n")
    prefix_lines = lines[:line]
    suffix_lines = lines[line + 1 :] if line + 1 < len(lines) else []

    current_line = lines[line] if 0 <= line < len(lines) else ""
    prefix = "\n".join(prefix_lines)
    if prefix:
        prefix += "\n"
    prefix += current_line[:character]

    suffix = current_line[character:]
    if suffix_lines:
        suffix += "\n" + "\n".join(suffix_lines)
    return prefix, suffix


class AutocompleteManager:
    """High-level manager for inline code completion.

    Owns the enablement state, the active model, the model-id to
    provider mapping, the tracking store, and the usage counters. Handles:
    - Guard checks (disabled, competing tools, comments, cancellation)
    - Context retrieval with a no-context fallback
    - Provider dispatch and result tagging
    - Generation and acceptance telemetry
    """

    def __init__(
        self,
        settings: Optional[AutocompleteSettings] = None,
        registry: Optional[ProviderRegistry] = None,
        context_service: Optional[ContextRetrievalService] = None,
        formatter: Optional[ContextFormatter] = None,
        telemetry_sink: Optional[TelemetrySink] = None,
        conflict_detector: Optional[ConflictDetector] = None,
        tracking_store: Optional[CompletionTrackingStore] = None,
    ):
        """Initialize the autocomplete manager.

        Args:
            settings: Engine settings (loaded from the environment if omitted)
            registry: Provider registry (uses global if not provided)
            context_service: Context retrieval pipeline
            formatter: Context ranker and renderer
            telemetry_sink: Host telemetry transport
            conflict_detector: Returns True while a competing completion
                tool is active
            tracking_store: Store for dispatched completions
        """
        self._settings = settings or AutocompleteSettings()
        self._registry = registry or get_provider_registry()
        self._enabled = self._settings.enabled
        self._model = self._settings.model
        self._budget = self._settings.context.to_budget()
        configure_logging_levels(self._settings.log_level)

        # Injected collaborators are left alone by configure()
        self._owns_context_service = context_service is None
        self._owns_tracking = tracking_store is None
        self._context_service = context_service or ContextRetrievalService(
            workspace_root=self._settings.context.workspace_root,
            source_timeout=self._settings.context.source_timeout,
        )
        self._formatter = formatter or ContextFormatter(self._budget)
        self._telemetry = TelemetryEmitter(telemetry_sink)
        self._conflict_detector = conflict_detector
        self._tracking = tracking_store or CompletionTrackingStore(
            ttl=self._settings.tracking_ttl_seconds,
            maxsize=self._settings.tracking_max_entries,
        )

        self._providers: Mapping[str, AutocompleteProvider] = self._registry.build(
            self._settings
        )
        self._retired_providers: list[AutocompleteProvider] = []

        self._stats = UsageStats()
        self._stats_lock = threading.Lock()
        self._stats_callback: Optional[UsageStatsCallback] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    @property
    def model(self) -> str:
        return self._model

    def set_model(self, model_id: str) -> None:
        """Switch the active model; takes effect on the next request."""
        if model_id not in self._providers:
            logger.warning(f"No provider configured for model {model_id}")
        self._model = model_id

    @property
    def settings(self) -> AutocompleteSettings:
        return self._settings

    @property
    def context_service(self) -> ContextRetrievalService:
        """Context pipeline, exposed so the host can feed edit and visit events."""
        return self._context_service

    @property
    def tracking(self) -> CompletionTrackingStore:
        return self._tracking

    @property
    def telemetry(self) -> TelemetryEmitter:
        return self._telemetry

    def configure(self, settings: AutocompleteSettings) -> None:
        """Apply new settings and rebuild the provider mapping.

        The new mapping is built completely before it replaces the old
        one, so concurrent requests see either the old or the new
        providers. Replaced providers are closed by ``aclose``.

        A context service or tracking store created by the manager is
        rebuilt for the new workspace root, source timeout, and tracking
        bounds. Edit and visit history, the clipboard reader, and live
        tracking records are kept.
        """
        providers = self._registry.build(settings)
        retired = list(self._providers.values())

        self._settings = settings
        self._enabled = settings.enabled
        self._model = settings.model
        self._budget = settings.context.to_budget()
        self._formatter = ContextFormatter(self._budget)
        if self._owns_context_service:
            self._context_service = self._context_service.reconfigured(
                workspace_root=settings.context.workspace_root,
                source_timeout=settings.context.source_timeout,
            )
        if self._owns_tracking:
            self._tracking.resize(settings.tracking_ttl_seconds, settings.tracking_max_entries)
        configure_logging_levels(settings.log_level)
        self._providers = providers
        self._retired_providers.extend(retired)
        logger.info(f"Autocomplete reconfigured: model={self._model}, enabled={self._enabled}")

    def get_current_provider(self) -> Optional[AutocompleteProvider]:
        return self._providers.get(self._model)

    def get_available_providers(self) -> dict[str, AutocompleteProvider]:
        """Configured providers keyed by model id."""
        return dict(self._providers)

    # ------------------------------------------------------------------
    # Usage statistics
    # ------------------------------------------------------------------

    @property
    def usage_stats(self) -> UsageStats:
        """Snapshot copy of the usage counters."""
        with self._stats_lock:
            return replace(self._stats)

    def reset_usage_stats(self) -> None:
        with self._stats_lock:
            self._stats = UsageStats()
        self._notify_usage_stats_changed()

    def set_usage_stats_callback(self, callback: Optional[UsageStatsCallback]) -> None:
        self._stats_callback = callback

    def _increment(self, counter: str) -> None:
        with self._stats_lock:
            setattr(self._stats, counter, getattr(self._stats, counter) + 1)
        self._notify_usage_stats_changed()

    def _notify_usage_stats_changed(self) -> None:
        if self._stats_callback is None:
            return
        try:
            self._stats_callback(self.usage_stats)
        except Exception as e:
            logger.warning(f"Usage stats callback failed: {e}")

    # ------------------------------------------------------------------
    # Request lifecycle
    # ------------------------------------------------------------------

    def _skip_reason(
        self, request: CompletionRequest, signal: CancellationSignal
    ) -> Optional[CompletionStatus]:
        if not self._enabled:
            return CompletionStatus.SKIPPED
        if (
            self._conflict_detector is not None
            and not self._settings.allow_with_competitors
            and self._conflict_detector()
        ):
            logger.debug("Competing completion provider active, skipping")
            return CompletionStatus.SKIPPED
        if looks_like_comment(request.current_line_prefix, request.language):
            return CompletionStatus.SKIPPED
        if signal.is_cancelled:
            return CompletionStatus.CANCELLED
        return None

    async def provide_inline_completion(
        self,
        request: CompletionRequest,
        cancel_signal: Optional[CancellationSignal] = None,
        trigger_kind: InlineTriggerKind = InlineTriggerKind.AUTOMATIC,
    ) -> InlineCompletionResult:
        """Produce zero or one inline completion for a document snapshot.

        Args:
            request: Snapshot of the document around the cursor
            cancel_signal: Fired by the host when the request is outdated
            trigger_kind: Whether the user typed or explicitly invoked

        Returns:
            Tagged result; ``text`` and ``completion_id`` are set only
            when the status is SUGGESTED
        """
        signal = cancel_signal or CancellationSignal()
        skip = self._skip_reason(request, signal)
        if skip is not None:
            return InlineCompletionResult.nothing(skip)

        model_id = self._model
        providers = self._providers
        start = time.perf_counter()

        completion_id = f"completion-{uuid.uuid4().hex}"
        self._tracking.add(
            TrackingRecord(
                completion_id=completion_id,
                model_id=model_id,
                provider_name=provider_name_for_model(model_id),
                language=request.language,
                filepath=request.filepath,
            )
        )
        self._increment("total_requests")
        logger.debug(
            f"Dispatching {completion_id} ({trigger_kind.name.lower()}) "
            f"model={model_id} language={request.language}"
        )

        try:
            status, text = await self._run(request, signal, model_id, providers)
        except Exception as e:
            logger.error(f"Inline completion failed: {e}")
            status, text = CompletionStatus.FAILED, None

        latency_ms = (time.perf_counter() - start) * 1000
        if status is not CompletionStatus.SUGGESTED or not text:
            self._tracking.discard(completion_id)
            return InlineCompletionResult(status=status, model_id=model_id, latency_ms=latency_ms)

        self._increment("successful_completions")
        self._tracking.attach_completion(completion_id, text)
        record = self._tracking.get(completion_id)
        if record is not None:
            self._telemetry.emit(
                AutocompleteEvent.from_record(EventKind.GENERATED, record, latency_ms)
            )

        return InlineCompletionResult(
            status=CompletionStatus.SUGGESTED,
            text=text,
            completion_id=completion_id,
            model_id=model_id,
            latency_ms=latency_ms,
        )

    async def _run(
        self,
        request: CompletionRequest,
        signal: CancellationSignal,
        model_id: str,
        providers: Mapping[str, AutocompleteProvider],
    ) -> tuple[CompletionStatus, Optional[str]]:
        provider = providers.get(model_id)
        if provider is None:
            logger.warning(f"No provider available for model: {model_id}")
            return CompletionStatus.UNAVAILABLE, None
        finished, available = await race_cancellation(
            provider.is_available(), signal, timeout=self._settings.availability_timeout
        )
        if not finished:
            if signal.is_cancelled:
                return CompletionStatus.CANCELLED, None
            logger.warning(f"Provider {provider.display_name} readiness check timed out")
            return CompletionStatus.UNAVAILABLE, None
        if not available:
            logger.warning(f"Provider {provider.display_name} is not available")
            return CompletionStatus.UNAVAILABLE, None

        prefix = await self._build_prefix(request, signal)
        if signal.is_cancelled:
            return CompletionStatus.CANCELLED, None

        result = await provider.get_completion(
            prefix, request.suffix, request.filepath, request.language, signal
        )
        if result is None:
            if signal.is_cancelled:
                return CompletionStatus.CANCELLED, None
            return CompletionStatus.NO_RESPONSE, None
        if not result:
            return CompletionStatus.EMPTY, None
        return CompletionStatus.SUGGESTED, result

    async def _build_prefix(self, request: CompletionRequest, signal: CancellationSignal) -> str:
        """Prefix with context prepended, or the plain prefix if context fails."""
        try:
            payload = await self._context_service.get_context(request, self._budget, signal)
            return self._formatter.build_prefix(
                payload, request.prefix, request.filepath, request.language, self._budget
            )
        except Exception as e:
            logger.warning(f"Context retrieval failed, completing without context: {e}")
            return request.prefix

    async def complete_inline(
        self,
        file_path: Union[str, Path],
        line: int,
        character: int,
        file_content: Optional[str] = None,
        language: Optional[str] = None,
        cancel_signal: Optional[CancellationSignal] = None,
        trigger_kind: InlineTriggerKind = InlineTriggerKind.INVOKED,
    ) -> InlineCompletionResult:
        """Get an inline completion for a cursor position in a buffer.

        Args:
            file_path: Path to the file
            line: Line number (0-indexed)
            character: Character position (0-indexed)
            file_content: Full file content (reads file if not provided)
            language: Language identifier (auto-detects if not provided)
            cancel_signal: Fired when the request is outdated
            trigger_kind: How completion was triggered

        Returns:
            Tagged inline completion result
        """
        path = Path(file_path)
        if file_content is None:
            if path.exists():
                file_content = path.read_text(encoding="utf-8", errors="replace")
            else:
                file_content = ""

        if language is None:
            language = detect_language(str(path), file_content)

        prefix, suffix = split_at_cursor(file_content, line, character)
        request = CompletionRequest(
            filepath=str(path),
            language=language,
            prefix=prefix,
            suffix=suffix,
            cursor=Position(line=line, character=character),
        )
        return await self.provide_inline_completion(request, cancel_signal, trigger_kind)

    # ------------------------------------------------------------------
    # Acceptance tracking
    # ------------------------------------------------------------------

    def track_acceptance(self, completion_id: str) -> bool:
        """Record that a returned completion was accepted.

        Returns:
            False if the completion is unknown or already evicted
        """
        record = self._tracking.pop(completion_id)
        if record is None or record.completion_text is None:
            return False

        self._increment("accepted_completions")
        self._telemetry.emit(AutocompleteEvent.from_record(EventKind.ACCEPTED, record))
        logger.debug(f"Tracked acceptance: {record.model_id}, {record.line_count} lines")
        return True

    def track_potential_acceptance(self, inserted_text: str, filepath: str) -> bool:
        """Infer an acceptance from text inserted into a document.

        A live completion for the same file matches when its text is a
        prefix of the inserted text or the inserted text is a prefix of
        it. At most one completion is counted per insertion.

        Args:
            inserted_text: Text the editor reported as inserted
            filepath: File the insertion happened in

        Returns:
            True if an acceptance was recorded
        """
        if not inserted_text:
            return False

        for record in self._tracking.records_for_file(filepath):
            completion = record.completion_text or ""
            if completion.startswith(inserted_text) or inserted_text.startswith(completion):
                if self.track_acceptance(record.completion_id):
                    logger.debug(f"Detected acceptance via document change: {record.model_id}")
                    return True
        return False

    def sweep_tracking(self) -> int:
        """Evict aged-out tracking records."""
        return self._tracking.expire()

    async def aclose(self) -> None:
        """Wait for pending telemetry and close all provider clients."""
        await self._telemetry.drain()
        for provider in [*self._providers.values(), *self._retired_providers]:
            close = getattr(provider, "aclose", None)
            if close is None:
                continue
            try:
                await close()
            except Exception as e:
                logger.debug(f"Failed to close provider {provider!r}: {e}")
        self._retired_providers.clear()


# Global manager singleton
_autocomplete_manager: Optional[AutocompleteManager] = None


def get_autocomplete_manager() -> AutocompleteManager:
    """Get the global autocomplete manager.

    Returns:
        The singleton manager instance
    """
    global _autocomplete_manager
    if _autocomplete_manager is None:
        _autocomplete_manager = AutocompleteManager()
    return _autocomplete_manager


def reset_autocomplete_manager() -> None:
    """Reset the global autocomplete manager.

    Useful for testing.
    """
    global _autocomplete_manager
    _autocomplete_manager = None
