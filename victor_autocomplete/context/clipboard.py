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

"""Clipboard context source."""

import inspect
import re
from typing import Awaitable, Callable, Optional, Union

from victor_autocomplete.completion.protocol import CompletionRequest
from victor_autocomplete.context.types import (
    CLIPBOARD_FILEPATH,
    CodeSnippet,
    ContextBudget,
    SnippetKind,
)

MIN_LENGTH = 10
MAX_LENGTH = 1000

ClipboardReader = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]

_CODE_INDICATORS = [
    re.compile(r"[{}();]"),
    re.compile(r"\b(?:function|class|const|let|var|def|if|for|while|return|import|export)\b"),
    re.compile(r"[=<>!]+"),
    re.compile(r"\w+\.\w+"),
]


def looks_like_code(text: str) -> bool:
    return any(p.search(text) for p in _CODE_INDICATORS)


class ClipboardSource:
    """Offers the clipboard text as a snippet when it looks like code.

    The host supplies ``reader``, a sync or async callable returning the
    current clipboard text.
    """

    kind = SnippetKind.CLIPBOARD

    def __init__(self, reader: Optional[ClipboardReader] = None):
        self._reader = reader

    def set_reader(self, reader: Optional[ClipboardReader]) -> None:
        self._reader = reader

    async def fetch(
        self,
        request: CompletionRequest,
        symbols: list[str],
        budget: ContextBudget,
    ) -> list[CodeSnippet]:
        if self._reader is None:
            return []

        text = self._reader()
        if inspect.isawaitable(text):
            text = await text
        if not text or not (MIN_LENGTH <= len(text) <= MAX_LENGTH):
            return []
        if not looks_like_code(text):
            return []
        return [CodeSnippet(filepath=CLIPBOARD_FILEPATH, content=text, kind=SnippetKind.CLIPBOARD)]
