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

"""Inception Labs Mercury Coder completion provider."""

import logging
from typing import Any, Optional

import httpx

from victor_autocomplete.completion.fim import FIM_TEMPLATES
from victor_autocomplete.completion.provider import BaseAutocompleteProvider, ProviderConfig

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.inceptionlabs.ai/v1"
DEFAULT_MODEL = "mercury-coder-small"
DEFAULT_TIMEOUT = 3.0
MAX_COMPLETION_LINES = 10


class InceptionLabsProvider(BaseAutocompleteProvider):
    """Mercury Coder Small, a low-latency diffusion code model.

    Mercury tends to run long, so completions are capped at
    ``MAX_COMPLETION_LINES`` lines.
    """

    provider_name = "inception-labs"
    template = FIM_TEMPLATES["mercury"]

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
        return "Mercury Coder Small (Inception Labs)"

    def _build_request(self, prompt: str) -> tuple[str, dict[str, Any]]:
        return "/completions", {
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
        return choice.get("text") or None

    def _finalize(self, raw: str) -> str:
        processed = super()._finalize(raw)
        lines = processed.split("\n")
        if len(lines) > MAX_COMPLETION_LINES:
            processed = "\n".join(lines[:MAX_COMPLETION_LINES])
        return processed

    async def test_connection(self) -> bool:
        """Send a one-token completion to verify the API key."""
        if not self._config.api_key:
            return False
        try:
            response = await self.client.post(
                "/completions",
                json={
                    "model": self._config.model,
                    "prompt": "def hello():",
                    "max_tokens": 1,
                    "temperature": 0,
                },
            )
            return response.is_success
        except httpx.HTTPError as e:
            logger.warning(f"Inception Labs connection test failed: {e}")
            return False

    async def get_model_info(self) -> Optional[dict[str, Any]]:
        """Model metadata from ``GET /models/{model}``, or None."""
        try:
            response = await self.client.get(f"/models/{self._config.model}")
            if response.is_success:
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to get Mercury Coder model info: {e}")
        return None
