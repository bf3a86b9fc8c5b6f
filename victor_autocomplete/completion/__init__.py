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

"""Inline completion providers and request bookkeeping.

Backends:
- Codestral via the Mistral FIM API
- Mercury Coder Small via Inception Labs
- Qwen 2.5 Coder via a local Ollama server

Example usage:
    from victor_autocomplete.completion import (
        CancellationSignal,
        MistralAutocompleteProvider,
    )

    provider = MistralAutocompleteProvider(api_key="...")
    signal = CancellationSignal()

    completion = await provider.get_completion(
        prefix="def hello():\n    ",
        suffix="",
        filepath="main.py",
        language="python",
        cancel_signal=signal,
    )
"""

from victor_autocomplete.completion.protocol import (
    CompletionRequest,
    CompletionStatus,
    InlineCompletionResult,
    InlineTriggerKind,
    Position,
    TrackingRecord,
    UsageStats,
)
from victor_autocomplete.completion.cancellation import CancellationSignal, race_cancellation
from victor_autocomplete.completion.fim import (
    FIM_TEMPLATES,
    FIMOrder,
    FIMTemplate,
    get_fim_template,
    postprocess_completion,
    template_for_model,
)
from victor_autocomplete.completion.provider import (
    AutocompleteProvider,
    BaseAutocompleteProvider,
    ProviderConfig,
)
from victor_autocomplete.completion.providers import (
    InceptionLabsProvider,
    MistralAutocompleteProvider,
    OllamaAutocompleteProvider,
)
from victor_autocomplete.completion.registry import (
    ProviderRegistry,
    get_provider_registry,
    provider_name_for_model,
    reset_provider_registry,
)
from victor_autocomplete.completion.tracking import CompletionTrackingStore
from victor_autocomplete.completion.telemetry import (
    AutocompleteEvent,
    EventKind,
    TelemetryEmitter,
    TelemetrySink,
)

__all__ = [
    # Protocol types
    "CompletionRequest",
    "CompletionStatus",
    "InlineCompletionResult",
    "InlineTriggerKind",
    "Position",
    "TrackingRecord",
    "UsageStats",
    # Cancellation
    "CancellationSignal",
    "race_cancellation",
    # FIM templates
    "FIM_TEMPLATES",
    "FIMOrder",
    "FIMTemplate",
    "get_fim_template",
    "postprocess_completion",
    "template_for_model",
    # Provider classes
    "AutocompleteProvider",
    "BaseAutocompleteProvider",
    "ProviderConfig",
    "InceptionLabsProvider",
    "MistralAutocompleteProvider",
    "OllamaAutocompleteProvider",
    # Registry
    "ProviderRegistry",
    "get_provider_registry",
    "provider_name_for_model",
    "reset_provider_registry",
    # Tracking and telemetry
    "CompletionTrackingStore",
    "AutocompleteEvent",
    "EventKind",
    "TelemetryEmitter",
    "TelemetrySink",
]
