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

"""Ollama completion provider, Qwen 2.5 Coder by default.

Runs against a local Ollama server, so no API key is involved. Readiness
is two separate questions answered from one tag listing: is the server
reachable, and is the configured model pulled.

Setup:
    ollama serve
    ollama pull qwen2.5-coder:1.5b
"""

import logging
from typing import Any, Optional

import httpx
from cachetools import TTLCache

from victor_autocomplete.completion.fim import template_for_model
from victor_autocomplete.completion.provider import BaseAutocompleteProvider, ProviderConfig
from victor_autocomplete.errors import ProviderTransportError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "qwen2.5-coder:1.5b"
DEFAULT_TIMEOUT = 10.0
TAGS_TIMEOUT = 2.0
# A successful tag listing is reused for this long
TAGS_TTL = 5.0

_TAGS_KEY = "tags"


class OllamaAutocompleteProvider(BaseAutocompleteProvider):
    """Coder model served by a local Ollama instance, Qwen 2.5 Coder by default.

    The FIM template follows the configured model name, so pulling a
    StarCoder, CodeLlama, or DeepSeek coder model works without code changes.
    """

    provider_name = "ollama"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.01,
        max_tokens: int = 256,
        timeout: float = DEFAULT_TIMEOUT,
        tags_timeout: float = TAGS_TIMEOUT,
        tags_ttl: float = TAGS_TTL,
        client: Optional[httpx.AsyncClient] = None,
        **kwargs: Any,
    ):
        config = ProviderConfig(
            base_url=base_url,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            **kwargs,
        )
        super().__init__(config, client=client)
        self.template = template_for_model(model)
        self._tags_timeout = tags_timeout
        self._tags: TTLCache = TTLCache(maxsize=1, ttl=tags_ttl)

    @property
    def display_name(self) -> str:
        return f"{self._config.model} (Ollama)"

    async def _fetch_tags(self) -> Optional[list[str]]:
        """Names of the pulled models, or None if the server is unreachable."""
        cached = self._tags.get(_TAGS_KEY)
        if cached is not None:
            return cached

        try:
            response = await self.client.get("/api/tags", timeout=self._tags_timeout)
            if not response.is_success:
                return None
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Ollama tag listing failed: {e}")
            return None

        models = data.get("models") if isinstance(data, dict) else None
        names = [
            entry["name"]
            for entry in models or []
            if isinstance(entry, dict) and isinstance(entry.get("name"), str)
        ]
        self._tags[_TAGS_KEY] = names
        return names

    def _has_model(self, names: list[str]) -> bool:
        """True if the configured model, or another tag of its family, is pulled."""
        family = self._config.model.split(":", 1)[0]
        return any(
            name == self._config.model or name.split(":", 1)[0] == family for name in names
        )

    async def is_running(self) -> bool:
        """Quick reachability check against ``/api/tags``."""
        return await self._fetch_tags() is not None

    async def is_model_available(self) -> bool:
        names = await self._fetch_tags()
        return names is not None and self._has_model(names)

    async def is_available(self) -> bool:
        """Server reachable and model pulled, from a single tag listing."""
        return await self.is_model_available()

    async def _ensure_ready(self) -> None:
        if not await self.is_running():
            raise ProviderTransportError(
                f"Ollama is not reachable at {self._config.base_url}", provider=self.name
            )

    def invalidate_tags(self) -> None:
        """Forget the cached tag listing, e.g. after pulling a model."""
        self._tags.clear()

    def _build_request(self, prompt: str) -> tuple[str, dict[str, Any]]:
        return "/api/generate", {
            "model": self._config.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self._config.temperature,
                "num_predict": self._config.max_tokens,
                "stop": list(self.template.stop_tokens),
            },
        }

    def _extract_text(self, data: Any) -> Optional[str]:
        if not isinstance(data, dict):
            return None
        return data.get("response") or None

    async def pull_model(self) -> bool:
        """Ask Ollama to pull the configured model."""
        try:
            response = await self.client.post(
                "/api/pull", json={"name": self._config.model, "stream": False}, timeout=None
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to pull {self._config.model}: {e}")
            return False
        self.invalidate_tags()
        return response.is_success

    async def get_model_info(self) -> Optional[dict[str, Any]]:
        """Model metadata from ``POST /api/show``, or None."""
        try:
            response = await self.client.post("/api/show", json={"name": self._config.model})
            if response.is_success:
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to get {self._config.model} info: {e}")
        return None

    async def test_connection(self) -> bool:
        return await self.is_available()
