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

"""Inline completion protocol types.

Data types exchanged between the host editor, the autocomplete manager
and the provider adapters. The host hands over an immutable
``CompletionRequest`` snapshot and gets back an ``InlineCompletionResult``
tagged with a ``CompletionStatus``.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional


@dataclass(frozen=True)
class Position:
    """Zero-based cursor position in a document."""

    line: int
    character: int


class InlineTriggerKind(IntEnum):
    """How the inline completion was triggered."""

    AUTOMATIC = 0  # Triggered while typing
    INVOKED = 1  # Explicitly requested by the user


@dataclass(frozen=True)
class CompletionRequest:
    """Point-in-time snapshot of the document around the cursor."""

    filepath: str
    language: str
    prefix: str  # All text before cursor
    suffix: str  # All text after cursor
    cursor: Position = Position(0, 0)

    @property
    def current_line_prefix(self) -> str:
        """Text between the start of the cursor line and the cursor."""
        return self.prefix.rsplit("\n", 1)[-1]


class CompletionStatus(str, Enum):
    """Outcome of one inline completion request."""

    SUGGESTED = "suggested"  # Non-empty completion returned
    EMPTY = "empty"  # Backend answered, output was degenerate
    NO_RESPONSE = "no_response"  # Backend never produced a response
    UNAVAILABLE = "unavailable"  # No adapter for the model, or not ready
    SKIPPED = "skipped"  # Guard check short-circuited the request
    CANCELLED = "cancelled"
    FAILED = "failed"  # Unexpected internal error, logged and swallowed


@dataclass(frozen=True)
class InlineCompletionResult:
    """Zero-or-one completion plus the id used for acceptance tracking."""

    status: CompletionStatus
    text: Optional[str] = None
    completion_id: Optional[str] = None
    model_id: Optional[str] = None
    latency_ms: float = 0.0

    def __bool__(self) -> bool:
        return self.status is CompletionStatus.SUGGESTED and bool(self.text)

    @classmethod
    def nothing(cls, status: CompletionStatus) -> "InlineCompletionResult":
        return cls(status=status)


@dataclass
class TrackingRecord:
    """Bookkeeping for one dispatched completion.

    Created on dispatch, ``completion_text`` is attached once on success,
    removed on failure, acceptance, or age-based eviction.
    """

    completion_id: str
    model_id: str
    provider_name: str
    language: str
    filepath: str
    start_timestamp: float = field(default_factory=time.time)
    completion_text: Optional[str] = None

    @property
    def line_count(self) -> int:
        return len(self.completion_text.split("\n")) if self.completion_text else 0

    @property
    def char_count(self) -> int:
        return len(self.completion_text) if self.completion_text else 0


@dataclass
class UsageStats:
    """Monotonic usage counters."""

    total_requests: int = 0
    successful_completions: int = 0
    accepted_completions: int = 0

    @property
    def success_rate(self) -> float:
        """Share of requests that produced a suggestion."""
        if self.total_requests == 0:
            return 0.0
        return self.successful_completions / self.total_requests

    @property
    def acceptance_rate(self) -> float:
        """Share of suggestions that were accepted."""
        if self.successful_completions == 0:
            return 0.0
        return self.accepted_completions / self.successful_completions
