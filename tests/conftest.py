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

"""Shared fixtures for autocomplete tests."""

import os

# Must be set before victor_autocomplete.config is imported
os.environ["VICTOR_AUTOCOMPLETE_SKIP_ENV_FILE"] = "1"

from typing import Optional  # noqa: E402

import pytest  # noqa: E402

from victor_autocomplete.completion.cancellation import CancellationSignal  # noqa: E402
from victor_autocomplete.completion.registry import reset_provider_registry  # noqa: E402
from victor_autocomplete.manager import reset_autocomplete_manager  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Strip autocomplete settings from the environment and reset singletons."""
    for key in list(os.environ):
        if key.startswith("VICTOR_AUTOCOMPLETE_") and key != "VICTOR_AUTOCOMPLETE_SKIP_ENV_FILE":
            monkeypatch.delenv(key, raising=False)
    reset_provider_registry()
    reset_autocomplete_manager()
    yield
    reset_provider_registry()
    reset_autocomplete_manager()


class StubProvider:
    """In-memory provider recording the calls it receives."""

    def __init__(
        self,
        result: Optional[str] = "return x",
        available: bool = True,
        model: str = "stub-model",
        error: Optional[Exception] = None,
    ):
        self.result = result
        self.available = available
        self.model = model
        self.error = error
        self.calls: list[dict] = []

    @property
    def display_name(self) -> str:
        return "Stub"

    @property
    def model_id(self) -> str:
        return self.model

    async def get_completion(
        self,
        prefix: str,
        suffix: str,
        filepath: str,
        language: str,
        cancel_signal: Optional[CancellationSignal] = None,
    ) -> Optional[str]:
        self.calls.append(
            {"prefix": prefix, "suffix": suffix, "filepath": filepath, "language": language}
        )
        if self.error is not None:
            raise self.error
        return self.result

    async def is_available(self) -> bool:
        return self.available


@pytest.fixture
def make_provider():
    """Factory for ``StubProvider`` instances."""
    return StubProvider
