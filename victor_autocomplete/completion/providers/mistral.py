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

"""Mistral Codestral completion provider.

Uses the ``/fim/completions`` endpoint. Codestral's FIM layout puts the
suffix first: ``[SUFFIX]{suffix}[PREFIX]{prefix}``.
"""

import logging
from typing import Any, Optional

import httpx

from victor_autocomplete.completion.fim import FIM_TEMPLATES
from victor_autocomplete.completion.provider import BaseAutocompleteProvider, ProviderConfig

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.mistral.ai/v1"
DEFAULT_MODEL = "codestral-latest"
DEFAULT_TIMEOUT = 5.0


class MistralAutocompleteProvider(BaseAutocompleteProvider):
    """Codestral via the Mistral API."""

    provider_name = "mistral"
    template = FIM_TEMPLATES["codestral"]

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.01,
        max_tokens: int = 256,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
        **kwargs: Any,
    ):
        config = ProviderConfig(
            api_key=api_key,
            base_url=base_url,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            **kwargs,
        )
        super().__init__(config, client=client)

    @property
    def display_name(self) -> str:
        return "Codestral (Mistral AI)"

    def _build_request(self, prompt: str) -> tuple[str, dict[str, Any]]:
        return "/fim/completions", {
            "model": self._config.model,
            "prompt": prompt,
            "temperature": self._config.temperature,
            "max_tokens": self._config.max_tokens,
            "stop": list(self.template.stop_tokens),
            "stream": False,
        }

    def _extract_text(self, data: Any) -> Optional[str]:
        choice = self._first_choice(data)
        if choice is None:
            return None
        text = choice.get("text")
        if not text:
            message = choice.get("message")
            text = message.get("content") if isinstance(message, dict) else None
        return text or None

    async def test_connection(self) -> bool:
        """Check the API key against ``GET /models``."""
        if not self._config.api_key:
            return False
        try:
            response = await self.client.get("/models")
            return response.is_success
        except httpx.HTTPError as e:
            logger.warning(f"Mistral connection test failed: {e}")
            return False
