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

"""Fill-In-the-Middle (FIM) templates and prompt text helpers.

Each template declares its sentinel tokens, the order in which prefix and
suffix are laid out, and the stop tokens that end generation. Token
budgets use a flat 4-characters-per-token approximation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

CHARS_PER_TOKEN = 4
MIN_COMPLETION_CHARS = 2


class FIMOrder(str, Enum):
    """Sentinel layout of a FIM prompt."""

    PREFIX_FIRST = "prefix_first"  # PRE prefix SUF suffix MID
    SUFFIX_FIRST = "suffix_first"  # SUF suffix PRE prefix MID


@dataclass(frozen=True)
class FIMTemplate:
    """Sentinel layout for one model family."""

    name: str
    prefix: str
    suffix: str
    middle: str
    stop_tokens: tuple[str, ...] = ()
    order: FIMOrder = FIMOrder.PREFIX_FIRST

    def render(self, prefix: str, suffix: str) -> str:
        """Wrap prefix and suffix with this template's sentinels."""
        if self.order is FIMOrder.SUFFIX_FIRST:
            return f"{self.suffix}{suffix}{self.prefix}{prefix}{self.middle}"
        return f"{self.prefix}{prefix}{self.suffix}{suffix}{self.middle}"


_QWEN_SENTINELS = ("<|fim_prefix|>", "<|fim_suffix|>", "<|fim_middle|>")

FIM_TEMPLATES: dict[str, FIMTemplate] = {
    "codestral": FIMTemplate(
        name="codestral",
        prefix="[PREFIX]",
        suffix="[SUFFIX]",
        middle="",
        stop_tokens=("[PREFIX]", "[SUFFIX]"),
        order=FIMOrder.SUFFIX_FIRST,
    ),
    "qwen": FIMTemplate(
        name="qwen",
        prefix=_QWEN_SENTINELS[0],
        suffix=_QWEN_SENTINELS[1],
        middle=_QWEN_SENTINELS[2],
        stop_tokens=(
            "<|endoftext|>",
            "<|fim_prefix|>",
            "<|fim_middle|>",
            "<|fim_suffix|>",
            "<|fim_pad|>",
            "<|repo_name|>",
            "<|file_sep|>",
            "<|im_start|>",
            "<|im_end|>",
        ),
    ),
    "mercury": FIMTemplate(
        name="mercury",
        prefix=_QWEN_SENTINELS[0],
        suffix=_QWEN_SENTINELS[1],
        middle=_QWEN_SENTINELS[2],
        stop_tokens=(*_QWEN_SENTINELS, "<|endoftext|>"),
    ),
    "starcoder": FIMTemplate(
        name="starcoder",
        prefix="<fim_prefix>",
        suffix="<fim_suffix>",
        middle="<fim_middle>",
        stop_tokens=("<fim_prefix>", "<fim_suffix>", "<fim_middle>", "<file_sep>", "<|endoftext|>"),
    ),
    "codellama": FIMTemplate(
        name="codellama",
        prefix="<PRE> ",
        suffix=" <SUF>",
        middle=" <MID>",
        stop_tokens=("<PRE>", "<SUF>", "<MID>", "<EOT>", "</s>"),
    ),
    "deepseek": FIMTemplate(
        name="deepseek",
        prefix="<｜fim▁begin｜>",
        suffix="<｜fim▁hole｜>",
        middle="<｜fim▁end｜>",
        stop_tokens=("<｜fim▁begin｜>", "<｜fim▁hole｜>", "<｜fim▁end｜>", "<|EOT|>"),
    ),
}


def get_fim_template(name: str) -> FIMTemplate:
    """Look up a template by name.

    Raises:
        KeyError: If no template is registered under ``name``
    """
    return FIM_TEMPLATES[name]


def template_for_model(model: str, default: str = "qwen") -> FIMTemplate:
    """Pick a template from a model name such as ``qwen2.5-coder:1.5b``."""
    model_lower = model.lower()
    if "codestral" in model_lower:
        return FIM_TEMPLATES["codestral"]
    if "codellama" in model_lower:
        return FIM_TEMPLATES["codellama"]
    if "starcoder" in model_lower:
        return FIM_TEMPLATES["starcoder"]
    if "deepseek" in model_lower:
        return FIM_TEMPLATES["deepseek"]
    if "mercury" in model_lower:
        return FIM_TEMPLATES["mercury"]
    if "qwen" in model_lower:
        return FIM_TEMPLATES["qwen"]
    return FIM_TEMPLATES[default]


def estimate_tokens(text: str) -> int:
    """Approximate token count (4 chars per token, rounded up)."""
    return -(-len(text) // CHARS_PER_TOKEN)


def truncate_prefix(prefix: str, max_tokens: int) -> str:
    """Keep the trailing ``max_tokens`` worth of the prefix."""
    max_chars = max_tokens * CHARS_PER_TOKEN
    if len(prefix) <= max_chars:
        return prefix
    return prefix[len(prefix) - max_chars :]


def truncate_suffix(suffix: str, max_tokens: int) -> str:
    """Keep the leading ``max_tokens`` worth of the suffix."""
    max_chars = max_tokens * CHARS_PER_TOKEN
    return suffix[:max_chars]


def strip_stop_tokens(text: str, stop_tokens: Iterable[str]) -> str:
    """Cut ``text`` at the first occurrence of any stop token."""
    cut = len(text)
    for token in stop_tokens:
        if not token:
            continue
        idx = text.find(token)
        if idx != -1 and idx < cut:
            cut = idx
    return text[:cut]


def postprocess_completion(raw: str, stop_tokens: Iterable[str]) -> str:
    """Clean raw model output.

    Leaked stop tokens and everything after them are removed and the
    result is trimmed. Degenerate output (empty, whitespace, or shorter
    than two characters) becomes ``""``.
    """
    processed = strip_stop_tokens(raw, stop_tokens).strip()
    if len(processed) < MIN_COMPLETION_CHARS:
        return ""
    return processed
