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

"""Autocomplete provider registry.

Maps model ids to provider factories following the Factory pattern.
``build()`` turns settings into a complete, read-only model-id to
provider mapping; the manager swaps that mapping as a whole on
reconfiguration.
"""

import logging
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from victor_autocomplete.completion.provider import AutocompleteProvider
from victor_autocomplete.completion.providers import (
    InceptionLabsProvider,
    MistralAutocompleteProvider,
    OllamaAutocompleteProvider,
)
from victor_autocomplete.config import AutocompleteSettings

logger = logging.getLogger(__name__)

# Model id -> provider name reported in tracking and telemetry
PROVIDER_NAMES: dict[str, str] = {
    "codestral": "mistral",
    "mercury-coder": "inception-labs",
    "qwen-coder": "ollama",
}
UNKNOWN_PROVIDER = "unknown"

ProviderFactory = Callable[[AutocompleteSettings], Optional[AutocompleteProvider]]


def provider_name_for_model(model_id: str) -> str:
    return PROVIDER_NAMES.get(model_id, UNKNOWN_PROVIDER)


def _create_mistral(settings: AutocompleteSettings) -> Optional[AutocompleteProvider]:
    if not settings.mistral_api_key:
        return None
    return MistralAutocompleteProvider(
        api_key=settings.mistral_api_key,
        base_url=settings.mistral_base_url,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        max_prefix_tokens=settings.max_prefix_tokens,
        max_suffix_tokens=settings.max_suffix_tokens,
    )


def _create_inception(settings: AutocompleteSettings) -> Optional[AutocompleteProvider]:
    if not settings.inception_api_key:
        return None
    return InceptionLabsProvider(
        api_key=settings.inception_api_key,
        base_url=settings.inception_base_url,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        max_prefix_tokens=settings.max_prefix_tokens,
        max_suffix_tokens=settings.max_suffix_tokens,
    )


def _create_ollama(settings: AutocompleteSettings) -> Optional[AutocompleteProvider]:
    return OllamaAutocompleteProvider(
        base_url=settings.ollama_base_url,
        model=settings.ollama_model,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        max_prefix_tokens=settings.max_prefix_tokens,
        max_suffix_tokens=settings.max_suffix_tokens,
    )


class ProviderRegistry:
    """Registry of provider factories keyed by model id.

    A factory returns None when its backend is not configured (for
    example, no API key); such models are simply left out of the built
    mapping.
    """

    def __init__(self) -> None:
        self._factories: dict[str, ProviderFactory] = {}

    def register_factory(self, model_id: str, factory: ProviderFactory) -> None:
        """Register a factory for a model id.

        Args:
            model_id: Model id selected in settings (e.g. ``codestral``)
            factory: Callable building the provider from settings
        """
        if model_id in self._factories:
            logger.warning(f"Overwriting existing provider factory: {model_id}")
        self._factories[model_id] = factory
        logger.debug(f"Registered provider factory: {model_id}")

    def unregister(self, model_id: str) -> bool:
        return self._factories.pop(model_id, None) is not None

    def list_models(self) -> list[str]:
        return list(self._factories)

    def register_builtin_factories(self) -> None:
        """Register the Codestral, Mercury Coder, and Qwen Coder factories."""
        self.register_factory("codestral", _create_mistral)
        self.register_factory("mercury-coder", _create_inception)
        self.register_factory("qwen-coder", _create_ollama)

    def build(self, settings: AutocompleteSettings) -> Mapping[str, AutocompleteProvider]:
        """Instantiate every configured provider.

        Args:
            settings: Current autocomplete settings

        Returns:
            Read-only mapping of model id to provider
        """
        providers: dict[str, AutocompleteProvider] = {}
        for model_id, factory in self._factories.items():
            try:
                provider = factory(settings)
            except Exception as e:
                logger.error(f"Factory failed for {model_id}: {e}")
                continue
            if provider is None:
                logger.debug(f"Provider for {model_id} not configured, skipping")
                continue
            providers[model_id] = provider

        logger.info(f"Autocomplete providers available: {', '.join(providers) or 'none'}")
        return MappingProxyType(providers)

    def clear(self) -> None:
        self._factories.clear()


# Global registry singleton
_provider_registry: Optional[ProviderRegistry] = None


def get_provider_registry() -> ProviderRegistry:
    """Get the global provider registry, with built-in factories registered."""
    global _provider_registry
    if _provider_registry is None:
        _provider_registry = ProviderRegistry()
        _provider_registry.register_builtin_factories()
    return _provider_registry


def reset_provider_registry() -> None:
    """Reset the global provider registry.

    Useful for testing.
    """
    global _provider_registry
    _provider_registry = None
