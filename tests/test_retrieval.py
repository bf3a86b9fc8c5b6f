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

"""Unit tests for the context sources and the retrieval pipeline."""

import asyncio
from pathlib import Path

import pytest

from victor_autocomplete.completion.cancellation import CancellationSignal
from victor_autocomplete.completion.protocol import CompletionRequest
from victor_autocomplete.context.clipboard import ClipboardSource, looks_like_code
from victor_autocomplete.context.ignore import should_ignore_path
from victor_autocomplete.context.imports import ImportDefinitionsService
from victor_autocomplete.context.recent import RecentlyEditedTracker, RecentlyVisitedTracker
from victor_autocomplete.context.retrieval import (
    ContextRetrievalService,
    limit_snippets,
    symbols_near_cursor,
    truncate_to_token_limit,
)
from victor_autocomplete.context.symbols import (
    extract_imports,
    filter_relevant_symbols,
    get_symbols_from_text,
)
from victor_autocomplete.context.types import (
    CLIPBOARD_FILEPATH,
    CodeSnippet,
    ContextBudget,
    SnippetKind,
)
from victor_autocomplete.context.workspace import WorkspaceContextService
from victor_autocomplete.errors import ContextPipelineError


def make_request(filepath="/p/main.py", prefix="", suffix="", language="python"):
    return CompletionRequest(filepath=filepath, language=language, prefix=prefix, suffix=suffix)


class FakeSource:
    """Context source with scripted behavior."""

    def __init__(self, kind, snippets=None, delay=0.0, error=None):
        self.kind = kind
        self._snippets = snippets if snippets is not None else []
        self._delay = delay
        self._error = error
        self.calls = 0

    async def fetch(self, request, symbols, budget):
        self.calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return self._snippets


class TestSymbols:
    """Test suite for regex symbol extraction."""

    def test_extracts_calls_and_assignments(self):
        symbols = get_symbols_from_text("total = compute_total(items)\nobj.refresh()", "python")

        assert "total" in symbols
        assert "compute_total" in symbols
        assert "refresh" in symbols

    def test_filters_keywords_and_builtins(self):
        symbols = filter_relevant_symbols(["print", "self", "Len", "x", "parse_config"], "python")

        assert symbols == ["parse_config"]

    def test_python_imports(self):
        text = "from .models import User, Order as O\nimport os.path\n"

        assert extract_imports(text, "python") == [
            (".models", "User"),
            (".models", "Order"),
            ("os.path", "path"),
        ]

    def test_typescript_imports(self):
        text = (
            "import { a, b as c } from './lib';\n"
            "import React from 'react';\n"
            "const x = require('./x');"
        )

        assert extract_imports(text, "typescript") == [
            ("./lib", "a"),
            ("./lib", "b"),
            ("react", "React"),
            ("./x", "x"),
        ]

    def test_java_imports(self):
        text = "import com.acme.util.Strings;\nimport java.util.*;\n"

        assert extract_imports(text, "java") == [("com.acme.util.Strings", "Strings")]

    def test_symbols_near_cursor(self):
        prefix = "\n".join(f"line_{i} = {i}" for i in range(20)) + "\nvalue = fetch_data("
        symbols = symbols_near_cursor(make_request(prefix=prefix))

        assert "fetch_data" in symbols
        assert "line_0" not in symbols


class TestRecentlyEditedTracker:
    """Test suite for the recently edited log."""

    DOC = "\n".join(f"line {i}" for i in range(30))

    def test_ignores_single_character_edits(self):
        tracker = RecentlyEditedTracker()

        assert tracker.record_edit("/p/a.py", self.DOC, 5, 5, 1, 0) is None
        assert len(tracker) == 0

    def test_pads_range_by_two_lines(self):
        tracker = RecentlyEditedTracker()

        entry = tracker.record_edit("/p/a.py", self.DOC, 10, 11, 12, 0)

        assert (entry.line_range.start, entry.line_range.end) == (8, 13)
        assert entry.content.splitlines()[0] == "line 8"

    def test_padding_clamped_to_document(self):
        entry = RecentlyEditedTracker().record_edit("/p/a.py", self.DOC, 0, 29, 40, 0)

        assert (entry.line_range.start, entry.line_range.end) == (0, 29)

    def test_overlapping_range_replaced(self):
        tracker = RecentlyEditedTracker()
        tracker.record_edit("/p/a.py", self.DOC, 10, 10, 5, 0)
        tracker.record_edit("/p/a.py", self.DOC, 12, 12, 5, 0)
        tracker.record_edit("/p/b.py", self.DOC, 12, 12, 5, 0)

        ranges = tracker.ranges_for_file("/p/a.py")
        assert len(ranges) == 1
        assert ranges[0].line_range.start == 10
        assert len(tracker) == 2

    def test_keeps_at_most_max_ranges(self):
        tracker = RecentlyEditedTracker(max_ranges=3)
        for i in range(5):
            tracker.record_edit(f"/p/f{i}.py", self.DOC, 1, 1, 5, 0)

        snippets = tracker.get_snippets()
        assert [s.filepath for s in snippets] == ["/p/f4.py", "/p/f3.py", "/p/f2.py"]

    def test_old_ranges_expire(self):
        now = [1000.0]
        tracker = RecentlyEditedTracker(max_age_seconds=60, clock=lambda: now[0])
        tracker.record_edit("/p/a.py", self.DOC, 1, 1, 5, 0)
        now[0] += 61

        assert tracker.get_snippets() == []

    def test_excludes_current_file_and_non_code(self):
        tracker = RecentlyEditedTracker()
        tracker.record_edit("/p/a.py", self.DOC, 1, 1, 5, 0)
        tracker.record_edit("/p/b.py", self.DOC, 1, 1, 5, 0)
        assert tracker.record_edit("/p/notes.txt", self.DOC, 1, 1, 5, 0) is None

        snippets = tracker.get_snippets("/p/a.py")

        assert [s.filepath for s in snippets] == ["/p/b.py"]
        assert snippets[0].kind is SnippetKind.RECENTLY_EDITED

    @pytest.mark.asyncio
    async def test_visited_tracker_kind(self):
        tracker = RecentlyVisitedTracker()
        tracker.record_visit("/p/a.py", self.DOC, 3, 4)

        snippets = await tracker.fetch(make_request("/p/main.py"), [], ContextBudget())

        assert len(snippets) == 1
        assert snippets[0].kind is SnippetKind.RECENTLY_VISITED


class TestClipboardSource:
    """Test suite for the clipboard source."""

    @pytest.mark.asyncio
    async def test_code_from_sync_reader(self):
        source = ClipboardSource(lambda: "const total = items.reduce(sum);")

        (snippet,) = await source.fetch(make_request(), [], ContextBudget())

        assert snippet.filepath == CLIPBOARD_FILEPATH
        assert snippet.kind is SnippetKind.CLIPBOARD

    @pytest.mark.asyncio
    async def test_async_reader(self):
        async def reader():
            return "def handler(event): return event"

        assert len(await ClipboardSource(reader).fetch(make_request(), [], ContextBudget())) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [None, "", "x = 1", "a" * 1001, "just some plain words here"])
    async def test_rejected_text(self, text):
        source = ClipboardSource(lambda: text)

        assert await source.fetch(make_request(), [], ContextBudget()) == []

    @pytest.mark.asyncio
    async def test_no_reader(self):
        assert await ClipboardSource().fetch(make_request(), [], ContextBudget()) == []

    def test_looks_like_code(self):
        assert looks_like_code("foo(bar);")
        assert not looks_like_code("hello world")


class TestImportDefinitionsService:
    """Test suite for import definition lookup."""

    @pytest.mark.asyncio
    async def test_resolves_python_import(self, tmp_path):
        (tmp_path / "utils.py").write_text(
            "import math\n\n\ndef compute_total(items):\n    return sum(items)\n"
        )
        request = make_request(
            filepath=str(tmp_path / "main.py"),
            prefix="from utils import compute_total\n\nresult = compute_total(",
        )
        service = ImportDefinitionsService(tmp_path)

        snippets = await service.fetch(request, ["compute_total"], ContextBudget())

        assert len(snippets) == 1
        assert snippets[0].kind is SnippetKind.IMPORT
        assert snippets[0].filepath == str(tmp_path / "utils.py")
        assert "def compute_total(items):" in snippets[0].content
        assert snippets[0].line_range.start == 1

    @pytest.mark.asyncio
    async def test_resolves_relative_typescript_import(self, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        (src / "math.ts").write_text("export function addAll(xs: number[]) {\n  return 0;\n}\n")
        request = make_request(
            filepath=str(src / "app.ts"),
            prefix="import { addAll } from './math';\nconst n = addAll(",
            language="typescript",
        )

        snippets = await ImportDefinitionsService(tmp_path).fetch(
            request, ["addAll"], ContextBudget()
        )

        assert [s.filepath for s in snippets] == [str(src / "math.ts")]

    @pytest.mark.asyncio
    async def test_ignores_node_modules(self, tmp_path):
        pkg = tmp_path / "node_modules" / "lib"
        pkg.mkdir(parents=True)
        (pkg / "index.ts").write_text("export function helper() {}\n")
        request = make_request(
            filepath=str(tmp_path / "app.ts"),
            prefix="import { helper } from './node_modules/lib';\nhelper(",
            language="typescript",
        )

        snippets = await ImportDefinitionsService(tmp_path).fetch(
            request, ["helper"], ContextBudget()
        )

        assert snippets == []

    @pytest.mark.asyncio
    async def test_nothing_without_workspace(self):
        service = ImportDefinitionsService()
        request = make_request(prefix="from utils import compute_total\n")

        assert await service.fetch(request, ["compute_total"], ContextBudget()) == []

    def test_find_definitions_without_workspace(self):
        """Test direct lookups without a project root resolve nothing."""
        service = ImportDefinitionsService()
        request = make_request(prefix="from utils import compute_total\n")

        assert service.find_definitions(request, ["compute_total"]) == []


class TestWorkspaceContextService:
    """Test suite for the workspace search."""

    @pytest.mark.asyncio
    async def test_finds_symbol_usage_in_other_files(self, tmp_path):
        (tmp_path / "main.py").write_text("compute_total(items)\n")
        (tmp_path / "helpers.py").write_text(
            "# compute_total is defined below\ndef compute_total(items):\n    return sum(items)\n"
        )
        request = make_request(filepath=str(tmp_path / "main.py"))
        service = WorkspaceContextService(tmp_path)

        snippets = await service.fetch(request, ["compute_total"], ContextBudget(max_snippets=8))

        assert len(snippets) == 1
        assert snippets[0].filepath == str(tmp_path / "helpers.py")
        assert snippets[0].line_range.start == 0
        assert snippets[0].kind is SnippetKind.WORKSPACE

    @pytest.mark.asyncio
    async def test_snippet_cap_is_quarter_of_budget(self, tmp_path):
        for i in range(5):
            (tmp_path / f"mod{i}.py").write_text("run_job()\n")
        request = make_request(filepath=str(tmp_path / "main.py"))

        service = WorkspaceContextService(tmp_path)
        assert await service.fetch(request, ["run_job"], ContextBudget(max_snippets=3)) == []
        snippets = await service.fetch(request, ["run_job"], ContextBudget(max_snippets=8))
        assert len(snippets) == 2

    def test_same_directory_first(self, tmp_path):
        (tmp_path / "pkg").mkdir()
        (tmp_path / "other").mkdir()
        (tmp_path / "pkg" / "main.py").write_text("")
        (tmp_path / "pkg" / "zzz.py").write_text("")
        (tmp_path / "other" / "main_utils.py").write_text("")

        service = WorkspaceContextService(tmp_path)
        files = service.relevant_files(str(tmp_path / "pkg" / "main.py"), "python")

        assert [f.name for f in files] == ["zzz.py", "main_utils.py"]

    def test_skips_ignored_directories(self):
        assert should_ignore_path(Path("node_modules/x/index.js"))
        assert not should_ignore_path(Path("src/main.py"))


class TestLimitSnippets:
    """Test suite for per-source limiting."""

    def _snippet(self, name, content="x = 1", symbols=()):
        return CodeSnippet(
            filepath=f"/p/{name}.py", content=content, kind=SnippetKind.WORKSPACE, symbols=symbols
        )

    def test_orders_by_symbol_count(self):
        snippets = [
            self._snippet("few", symbols=("a",)),
            self._snippet("many", symbols=("a", "b", "c")),
            self._snippet("none"),
        ]

        limited = limit_snippets(snippets, ContextBudget())

        assert [s.filepath for s in limited] == ["/p/many.py", "/p/few.py", "/p/none.py"]

    def test_caps_candidate_count(self):
        snippets = [self._snippet(f"s{i}") for i in range(10)]

        assert len(limit_snippets(snippets, ContextBudget(max_candidates_per_source=4))) == 4

    def test_truncates_on_line_boundaries(self):
        content = "\n".join("abcdefg" for _ in range(10))
        budget = ContextBudget(max_tokens_per_snippet=5)

        (limited,) = limit_snippets([self._snippet("long", content)], budget)

        assert limited.content == "abcdefg\nabcdefg"

    def test_truncate_to_token_limit_short_text(self):
        assert truncate_to_token_limit("short", 10) == "short"


class TestContextRetrievalService:
    """Test suite for the aggregation pipeline."""

    @pytest.mark.asyncio
    async def test_source_failures_are_isolated(self):
        """Test a failing and a slow source do not affect the others."""
        good = FakeSource(
            SnippetKind.RECENTLY_EDITED,
            [CodeSnippet("/p/a.py", "alpha()", SnippetKind.RECENTLY_EDITED)],
        )
        broken = FakeSource(SnippetKind.IMPORT, error=RuntimeError("boom"))
        slow = FakeSource(SnippetKind.WORKSPACE, delay=5.0)
        service = ContextRetrievalService([good, broken, slow], source_timeout=0.05)

        payload = await service.get_context(make_request(), ContextBudget())

        assert [s.content for s in payload.get(SnippetKind.RECENTLY_EDITED)] == ["alpha()"]
        assert payload.get(SnippetKind.IMPORT) == []
        assert payload.get(SnippetKind.WORKSPACE) == []

    @pytest.mark.asyncio
    async def test_disabled_sources_not_called(self):
        clipboard = FakeSource(SnippetKind.CLIPBOARD)
        edited = FakeSource(SnippetKind.RECENTLY_EDITED)
        service = ContextRetrievalService([clipboard, edited])
        budget = ContextBudget(enabled_sources=frozenset({SnippetKind.RECENTLY_EDITED}))

        await service.get_context(make_request(), budget)

        assert clipboard.calls == 0
        assert edited.calls == 1

    @pytest.mark.asyncio
    async def test_cancelled_returns_empty_payload(self):
        source = FakeSource(
            SnippetKind.CLIPBOARD,
            [CodeSnippet(CLIPBOARD_FILEPATH, "foo(bar);", SnippetKind.CLIPBOARD)],
        )
        signal = CancellationSignal()
        signal.cancel()

        payload = await ContextRetrievalService([source]).get_context(
            make_request(), ContextBudget(), signal
        )

        assert payload.is_empty()

    @pytest.mark.asyncio
    async def test_aggregation_failure_raises_pipeline_error(self):
        class BadSource(FakeSource):
            async def fetch(self, request, symbols, budget):
                return None

        service = ContextRetrievalService([BadSource(SnippetKind.WORKSPACE)])

        with pytest.raises(ContextPipelineError):
            await service.get_context(make_request(), ContextBudget())

    def test_reconfigured_rebuilds_workspace_sources(self, tmp_path):
        """Test a new root reaches import and workspace search only."""
        service = ContextRetrievalService()
        custom = FakeSource(SnippetKind.CLIPBOARD)
        with_custom = ContextRetrievalService(
            [service.get_source(SnippetKind.IMPORT), service.recently_edited, custom]
        )

        updated = with_custom.reconfigured(workspace_root=tmp_path, source_timeout=1.5)

        assert updated.source_timeout == 1.5
        assert updated.get_source(SnippetKind.IMPORT).workspace_root == tmp_path
        assert updated.recently_edited is service.recently_edited
        assert updated.get_source(SnippetKind.CLIPBOARD) is custom
        assert updated.get_source(SnippetKind.WORKSPACE) is None

    def test_default_sources(self):
        service = ContextRetrievalService()

        assert service.recently_edited is not None
        assert service.recently_visited is not None
        assert service.clipboard is not None
        assert service.get_source(SnippetKind.IMPORT) is not None
        assert service.get_source(SnippetKind.WORKSPACE) is not None
