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

"""Unit tests for settings and the provider registry."""

import logging
from types import MappingProxyType

import pytest
from pydantic import ValidationError

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
from victor_autocomplete.config import (
    AutocompleteSettings,
    ContextSettings,
    configure_logging_levels,
)
from victor_autocomplete.context.types import ALL_SOURCES, SnippetKind


class TestAutocompleteSettings:
    """Test suite for settings loading."""

    def test_defaults(self):
        settings = AutocompleteSettings()

        assert settings.enabled is False
        assert settings.model == "codestral"
        assert settings.allow_with_competitors is False
        assert settings.temperature == pytest.approx(0.01)
        assert settings.max_prefix_tokens == 1500
        assert settings.max_suffix_tokens == 500
        assert settings.context.max_snippets == 5

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("VICTOR_AUTOCOMPLETE_ENABLED", "true")
        monkeypatch.setenv("VICTOR_AUTOCOMPLETE_MODEL", "qwen-coder")
        monkeypatch.setenv("VICTOR_AUTOCOMPLETE_MISTRAL_API_KEY", "env-key")

        settings = AutocompleteSettings()

        assert settings.enabled is True
        assert settings.model == "qwen-coder"
        assert settings.mistral_api_key == "env-key"

    def test_nested_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("VICTOR_AUTOCOMPLETE_CONTEXT__MAX_SNIPPETS", "8")
        monkeypatch.setenv("VICTOR_AUTOCOMPLETE_CONTEXT__USE_CLIPBOARD", "false")

        settings = AutocompleteSettings()

        assert settings.context.max_snippets == 8
        assert SnippetKind.CLIPBOARD not in settings.context.enabled_sources()

    def test_from_yaml_section(self, tmp_path):
        path = tmp_path / "autocomplete.yaml"
        path.write_text(
            "autocomplete:\n"
            "  enabled: true\n"
            "  model: mercury-coder\n"
            "  inception_api_key: yaml-key\n"
            "  context:\n"
            "    max_snippets: 3\n"
            "    use_workspace: false\n"
        )

        settings = AutocompleteSettings.from_yaml(path, temperature=0.2)

        assert settings.enabled is True
        assert settings.model == "mercury-coder"
        assert settings.inception_api_key == "yaml-key"
        assert settings.temperature == pytest.approx(0.2)
        assert settings.context.max_snippets == 3
        assert settings.context.use_workspace is False

    def test_from_yaml_top_level_keys(self, tmp_path):
        path = tmp_path / "flat.yaml"
        path.write_text("model: qwen-coder\n")

        assert AutocompleteSettings.from_yaml(path).model == "qwen-coder"

    def test_from_yaml_rejects_non_mapping(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError):
            AutocompleteSettings.from_yaml(path)

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            AutocompleteSettings(temperature=3.0)
        with pytest.raises(ValidationError):
            AutocompleteSettings(model="   ")
        with pytest.raises(ValidationError):
            AutocompleteSettings(log_level="chatty")

    def test_log_level_normalized(self):
        assert AutocompleteSettings(log_level="debug").log_level == "DEBUG"


class TestContextSettings:
    """Test suite for the context budget settings."""

    def test_budget_from_settings(self):
        budget = ContextSettings(max_snippets=7, max_tokens_per_snippet=100).to_budget()

        assert budget.max_snippets == 7
        assert budget.max_chars_per_snippet == 400
        assert budget.enabled_sources == ALL_SOURCES

    def test_disabled_sources(self):
        settings = ContextSettings(use_imports=False, use_recently_visited=False)

        assert settings.enabled_sources() == frozenset(
            {SnippetKind.RECENTLY_EDITED, SnippetKind.WORKSPACE, SnippetKind.CLIPBOARD}
        )


class TestLogging:
    """Test suite for logging configuration."""

    def test_configure_logging_levels(self):
        configure_logging_levels("DEBUG")

        assert logging.getLogger("victor_autocomplete").level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING


class TestProviderRegistry:
    """Test suite for model id to provider mapping."""

    def test_provider_names(self):
        assert provider_name_for_model("codestral") == "mistral"
        assert provider_name_for_model("mercury-coder") == "inception-labs"
        assert provider_name_for_model("qwen-coder") == "ollama"
        assert provider_name_for_model("gpt-99") == "unknown"

    def test_cloud_providers_need_keys(self):
        providers = get_provider_registry().build(AutocompleteSettings())

        assert list(providers) == ["qwen-coder"]
        assert isinstance(providers["qwen-coder"], OllamaAutocompleteProvider)

    def test_all_providers_with_keys(self):
        settings = AutocompleteSettings(mistral_api_key="m", inception_api_key="i")

        providers = get_provider_registry().build(settings)

        assert isinstance(providers["codestral"], MistralAutocompleteProvider)
        assert isinstance(providers["mercury-coder"], InceptionLabsProvider)
        assert providers["codestral"].config.api_key == "m"

    def test_build_is_read_only(self):
        providers = get_provider_registry().build(AutocompleteSettings())

        assert isinstance(providers, MappingProxyType)
        with pytest.raises(TypeError):
            providers["new"] = object()

    def test_failing_factory_skipped(self):
        registry = ProviderRegistry()
        registry.register_builtin_factories()

        def broken(settings):
            raise RuntimeError("bad config")

        registry.register_factory("broken", broken)

        assert "broken" not in registry.build(AutocompleteSettings())

    def test_unregister(self):
        registry = ProviderRegistry()
        registry.register_builtin_factories()

        assert registry.unregister("qwen-coder") is True
        assert registry.unregister("qwen-coder") is False
        assert registry.list_models() == ["codestral", "mercury-coder"]

    def test_singleton_reset(self):
        first = get_provider_registry()
        reset_provider_registry()

        assert get_provider_registry() is not first
