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

"""Inline Autocomplete Package.

Victor's inline (ghost text) completion engine, providing:
- Fill-in-the-middle completion against Codestral, Mercury Coder, and
  a local Qwen 2.5 Coder
- Context retrieval from imports, recent edits, the workspace, and the
  clipboard
- Request lifecycle with cancellation, fallback, and acceptance tracking

Package Structure:
    config.py                 - Settings (environment, .env, YAML)
    errors.py                 - Exception hierarchy
    languages.py              - Language detection and comment styles
    manager.py                - AutocompleteManager facade
    completion/               - Provider adapters, FIM templates, tracking
    context/                  - Context sources, ranking, and rendering

Usage:
    from victor_autocomplete import AutocompleteManager, AutocompleteSettings

    manager = AutocompleteManager(
        AutocompleteSettings(enabled=True, model="qwen-coder")
    )

    result = await manager.complete_inline(
        file_path="main.py",
        line=1,
        character=4,
        file_content="def hello():\n    ",
    )
    if result:
        print(result.text)
"""

from victor_autocomplete.completion import (
    CancellationSignal,
    CompletionRequest,
    CompletionStatus,
    InlineCompletionResult,
    InlineTriggerKind,
    Position,
    UsageStats,
)
from victor_autocomplete.config import (
    AutocompleteSettings,
    ContextSettings,
    configure_logging_levels,
)
from victor_autocomplete.errors import (
    AutocompleteError,
    ConfigurationAbsentError,
    ContextPipelineError,
    DuplicateCompletionIdError,
    ProviderTransportError,
)
from victor_autocomplete.manager import (
    AutocompleteManager,
    get_autocomplete_manager,
    reset_autocomplete_manager,
)

__all__ = [
    # Manager
    "AutocompleteManager",
    "get_autocomplete_manager",
    "reset_autocomplete_manager",
    # Request and result types
    "CancellationSignal",
    "CompletionRequest",
    "CompletionStatus",
    "InlineCompletionResult",
    "InlineTriggerKind",
    "Position",
    "UsageStats",
    # Configuration
    "AutocompleteSettings",
    "ContextSettings",
    "configure_logging_levels",
    # Errors
    "AutocompleteError",
    "ConfigurationAbsentError",
    "ContextPipelineError",
    "DuplicateCompletionIdError",
    "ProviderTransportError",
]
