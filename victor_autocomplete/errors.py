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

"""Exception hierarchy for the autocomplete engine.

None of these exceptions reach the caller of
``AutocompleteManager.provide_inline_completion``: adapters and context
sources raise them internally and the manager converts them into a
tagged "no suggestion" result. ``DuplicateCompletionIdError`` is the
exception: it signals a programming error and propagates.
"""

from typing import Any, Optional


class AutocompleteError(Exception):
    """Base exception for autocomplete errors.

    Attributes:
        message: Human-readable error description
        recoverable: Whether a later request may succeed
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        *,
        recoverable: bool = True,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConfigurationAbsentError(AutocompleteError):
    """No credentials or model configured for a backend."""

    def __init__(self, message: str, *, provider: Optional[str] = None) -> None:
        super().__init__(message, recoverable=False, details={"provider": provider})
        self.provider = provider


class ProviderTransportError(AutocompleteError):
    """Network or HTTP failure talking to a completion backend.

    Attributes:
        provider: Name of the provider that failed
        status_code: HTTP status code if a response was received
    """

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, details={"provider": provider, "status_code": status_code})
        self.provider = provider
        self.status_code = status_code

    def __str__(self) -> str:
        if self.provider and self.status_code:
            return f"[{self.provider}] {self.message} (status: {self.status_code})"
        if self.provider:
            return f"[{self.provider}] {self.message}"
        return self.message


class ContextPipelineError(AutocompleteError):
    """Context aggregation failed as a whole (not a single source)."""


class DuplicateCompletionIdError(AutocompleteError):
    """A completion id was registered twice."""

    def __init__(self, completion_id: str) -> None:
        super().__init__(
            f"Completion id already tracked: {completion_id}",
            recoverable=False,
            details={"completion_id": completion_id},
        )
        self.completion_id = completion_id
