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

"""Configuration management for the autocomplete engine.

Settings come from (highest priority first) constructor arguments,
``VICTOR_AUTOCOMPLETE_*`` environment variables, a ``.env`` file, and
the defaults below. Nested context settings use ``__`` as delimiter:

    VICTOR_AUTOCOMPLETE_CONTEXT__MAX_SNIPPETS=8

A YAML file with the same keys can be loaded with
``AutocompleteSettings.from_yaml``.
"""

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from victor_autocomplete.context.types import ContextBudget, SnippetKind

NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "asyncio",
    "urllib3",
]


class ContextSettings(BaseModel):
    """Context retrieval budget and source switches."""

    max_snippets: int = Field(5, gt=0, description="Snippets admitted into the prompt")
    max_tokens_per_snippet: int = Field(200, gt=0, description="Approximate tokens per snippet")
    max_candidates_per_source: int = Field(
        15, gt=0, description="Candidates kept per source before ranking"
    )
    source_timeout: float = Field(0.5, gt=0, description="Per-source timeout in seconds")
    use_imports: bool = True
    use_recently_edited: bool = True
    use_recently_visited: bool = True
    use_workspace: bool = True
    use_clipboard: bool = True
    workspace_root: Optional[Path] = Field(
        None, description="Project root for import and workspace search"
    )

    def enabled_sources(self) -> "frozenset[SnippetKind]":
        from victor_autocomplete.context.types import SnippetKind

        flags = {
            SnippetKind.IMPORT: self.use_imports,
            SnippetKind.RECENTLY_EDITED: self.use_recently_edited,
            SnippetKind.RECENTLY_VISITED: self.use_recently_visited,
            SnippetKind.WORKSPACE: self.use_workspace,
            SnippetKind.CLIPBOARD: self.use_clipboard,
        }
        return frozenset(kind for kind, on in flags.items() if on)

    def to_budget(self) -> "ContextBudget":
        from victor_autocomplete.context.types import ContextBudget

        return ContextBudget(
            max_snippets=self.max_snippets,
            max_tokens_per_snippet=self.max_tokens_per_snippet,
            enabled_sources=self.enabled_sources(),
            max_candidates_per_source=self.max_candidates_per_source,
        )


class AutocompleteSettings(BaseSettings):
    """Main autocomplete settings."""

    model_config = SettingsConfigDict(
        env_prefix="VICTOR_AUTOCOMPLETE_",
        env_nested_delimiter="__",
        env_file=".env" if not os.getenv("VICTOR_AUTOCOMPLETE_SKIP_ENV_FILE") else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    enabled: bool = False
    model: str = "codestral"
    # Coexist with competing inline completion tools (e.g. Copilot)
    allow_with_competitors: bool = False

    # Backend credentials and endpoints
    mistral_api_key: Optional[str] = None
    mistral_base_url: str = "https://api.mistral.ai/v1"
    inception_api_key: Optional[str] = None
    inception_base_url: str = "https://api.inceptionlabs.ai/v1"
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "qwen2.5-coder:1.5b"

    # Generation parameters
    temperature: float = Field(0.01, ge=0.0, le=2.0)
    max_tokens: int = Field(256, gt=0)
    max_prefix_tokens: int = Field(1500, gt=0)
    max_suffix_tokens: int = Field(500, gt=0)
    # Upper bound on a provider readiness check before dispatch
    availability_timeout: float = Field(2.5, gt=0)

    context: ContextSettings = Field(default_factory=ContextSettings)

    # Tracking record eviction
    tracking_ttl_seconds: float = Field(300.0, gt=0)
    tracking_max_entries: int = Field(500, gt=0)

    log_level: str = "INFO"

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("model must not be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_yaml(cls, path: Union[str, Path], **overrides: Any) -> "AutocompleteSettings":
        """Load settings from a YAML file.

        Args:
            path: YAML file with an ``autocomplete`` section or top-level keys
            **overrides: Values that win over the file

        Returns:
            Parsed settings
        """
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping in {path}, got {type(data).__name__}")
        section = dict(data.get("autocomplete", data) or {})
        section.update(overrides)
        return cls(**section)


def configure_logging_levels(log_level: str = "INFO") -> None:
    """Set the package log level and silence noisy third-party loggers."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.getLogger("victor_autocomplete").setLevel(level)
    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
