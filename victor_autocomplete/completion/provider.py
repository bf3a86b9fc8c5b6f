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

"""Autocomplete provider interface and base implementation.

Every backend implements the same small capability interface and is
selected by model id from the registry. ``BaseAutocompleteProvider``
holds the shared request pipeline; a backend only supplies its
endpoint, request body, and response extraction.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Optional, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, Field

from victor_autocomplete.completion.cancellation import CancellationSignal, race_cancellation
from victor_autocomplete.completion.fim import (
    FIMTemplate,
    postprocess_completion,
    truncate_prefix,
    truncate_suffix,
)
from victor_autocomplete.errors import ConfigurationAbsentError, ProviderTransportError

logger = logging.getLogger(__name__)

USER_AGENT = "victor-autocomplete"


@runtime_checkable
class AutocompleteProvider(Protocol):
    """Protocol for inline completion backends."""

    @property
    def display_name(self) -> str:
        """Human-readable backend name."""
        ...

    @property
    def model_id(self) -> str:
        """Model identifier sent to the backend."""
        ...

    async def get_completion(
        self,
        prefix: str,
        suffix: str,
        filepath: str,
        language: str,
        cancel_signal: Optional[CancellationSignal] = None,
    ) -> Optional[str]:
        """Complete the text between ``prefix`` and ``suffix``.

        Never raises for missing configuration, transport failures, or
        cancellation.

        Args:
            prefix: Text before the cursor (possibly with context prepended)
            suffix: Text after the cursor
            filepath: File being edited
            language: Language identifier
            cancel_signal: Aborts the request when fired

        Returns:
            Cleaned completion, ``""`` for degenerate output, or None when
            no response was obtained
        """
        ...

    async def is_available(self) -> bool:
        """Cheap, side-effect-free readiness check."""
        ...


class ProviderConfig(BaseModel):
    """Per-backend settings."""

    api_key: Optional[str] = Field(None, repr=False, description="API key, if the backend needs one")
    base_url: str = Field(..., description="Backend base URL")
    model: str = Field(..., description="Model identifier sent to the backend")
    temperature: float = Field(0.01, ge=0.0, le=2.0)
    max_tokens: int = Field(256, gt=0, description="Maximum tokens to generate")
    timeout: float = Field(5.0, gt=0, description="Per-request timeout in seconds")
    max_prefix_tokens: int = Field(1500, gt=0)
    max_suffix_tokens: int = Field(500, gt=0)


class BaseAutocompleteProvider(ABC):
    """Shared pipeline for FIM completion backends.

    ``get_completion`` truncates the prefix and suffix, renders the FIM
    prompt, and races one HTTP call against the timeout and the caller's
    cancellation signal. It then strips leaked stop tokens from the output.
    Subclasses implement ``_build_request`` and ``_extract_text`` and may
    override ``_ensure_ready`` and ``_finalize``.
    """

    provider_name: ClassVar[str] = "base"
    template: FIMTemplate

    def __init__(
        self,
        config: ProviderConfig,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the provider.

        Args:
            config: Backend settings
            client: HTTP client to use; one is created lazily if omitted
        """
        self._config = config
        self._client = client
        self._owns_client = client is None

    @property
    def name(self) -> str:
        return self.provider_name

    @property
    @abstractmethod
    def display_name(self) -> str:
        ...

    @property
    def model_id(self) -> str:
        return self._config.model

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                headers=self._default_headers(),
                timeout=self._config.timeout,
            )
        return self._client

    def _default_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        return headers

    def build_prompt(self, prefix: str, suffix: str) -> str:
        """Truncate to the token budget and wrap with FIM sentinels."""
        return self.template.render(
            truncate_prefix(prefix, self._config.max_prefix_tokens),
            truncate_suffix(suffix, self._config.max_suffix_tokens),
        )

    async def get_completion(
        self,
        prefix: str,
        suffix: str,
        filepath: str,
        language: str,
        cancel_signal: Optional[CancellationSignal] = None,
    ) -> Optional[str]:
        signal = cancel_signal or CancellationSignal()
        if signal.is_cancelled:
            logger.debug(f"{self.name}: cancelled before dispatch")
            return None

        try:
            finished, raw = await race_cancellation(
                self._complete(prefix, suffix), signal, timeout=self._config.timeout
            )
        except ConfigurationAbsentError as e:
            logger.debug(f"{self.name}: {e}")
            return None
        except ProviderTransportError as e:
            logger.warning(f"Completion request failed: {e}")
            return None

        if not finished:
            reason = "cancelled" if signal.is_cancelled else f"timed out after {self._config.timeout}s"
            logger.debug(f"{self.name}: request {reason}")
            return None
        if raw is None:
            return None
        return self._finalize(raw)

    async def _complete(self, prefix: str, suffix: str) -> Optional[str]:
        await self._ensure_ready()
        return await self._dispatch(self.build_prompt(prefix, suffix))

    async def _ensure_ready(self) -> None:
        """Raise ConfigurationAbsentError if the backend cannot be called."""
        if not self._config.api_key:
            raise ConfigurationAbsentError(
                f"{self.display_name} API key not configured", provider=self.name
            )

    async def _dispatch(self, prompt: str) -> Optional[str]:
        path, body = self._build_request(prompt)
        data = await self._post_json(path, body)
        text = self._extract_text(data)
        if text is not None and not isinstance(text, str):
            raise ProviderTransportError(
                f"Unexpected completion type: {type(text).__name__}", provider=self.name
            )
        return text

    async def _post_json(self, path: str, body: dict[str, Any]) -> Any:
        try:
            response = await self.client.post(path, json=body)
        except httpx.HTTPError as e:
            raise ProviderTransportError(
                f"{type(e).__name__}: {e}", provider=self.name
            ) from e

        if not response.is_success:
            raise ProviderTransportError(
                f"API error: {response.text[:200]}",
                provider=self.name,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderTransportError("Invalid JSON response", provider=self.name) from e

    @abstractmethod
    def _build_request(self, prompt: str) -> tuple[str, dict[str, Any]]:
        """Return the endpoint path and JSON body for one completion call."""
        ...

    @abstractmethod
    def _extract_text(self, data: Any) -> Optional[str]:
        """Pull the generated text out of a decoded response body.

        Returns None when the body does not have the expected shape.
        """
        ...

    @staticmethod
    def _first_choice(data: Any) -> Optional[dict[str, Any]]:
        """First entry of an OpenAI-style ``choices`` list, if well formed."""
        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            return None
        choice = choices[0]
        return choice if isinstance(choice, dict) else None

    def _finalize(self, raw: str) -> str:
        return postprocess_completion(raw, self.template.stop_tokens)

    async def is_available(self) -> bool:
        return bool(self._config.api_key)

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, model={self.model_id!r})"
