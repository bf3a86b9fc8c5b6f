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

"""Ignore rules for workspace scans.

Shared by the import resolver and the workspace search so both agree on
what counts as project code:
- Hidden directories (starting with '.') are excluded by convention
- Dependency, build, and cache directories are explicitly listed
"""

import os
from pathlib import Path
from typing import Iterable, Iterator, Optional, Set

# Hidden directories are excluded automatically by should_ignore_path()
DEFAULT_SKIP_DIRS: Set[str] = {
    # Python
    "__pycache__",
    "venv",
    "env",
    # Node.js
    "node_modules",
    # Build outputs
    "build",
    "dist",
    "target",
    "out",
    # Coverage
    "coverage",
    "htmlcov",
    # Third party / vendor
    "vendor",
    "third_party",
}


def is_hidden_path(path: Path) -> bool:
    """Check if any component of the path is hidden ('.' and '..' excluded)."""
    for part in path.parts:
        if part.startswith(".") and part not in (".", ".."):
            return True
    return False


def should_ignore_path(
    path: Path,
    skip_dirs: Optional[Set[str]] = None,
    extra_skip_dirs: Optional[Iterable[str]] = None,
) -> bool:
    """Check if a path should be left out of context.

    Args:
        path: Path to check, ideally relative to the workspace root
        skip_dirs: Directory names to skip. Defaults to DEFAULT_SKIP_DIRS.
        extra_skip_dirs: Additional directory names to skip

    Returns:
        True if the path should be ignored

    Example:
        >>> should_ignore_path(Path("src/main.py"))
        False
        >>> should_ignore_path(Path("node_modules/lodash/index.js"))
        True
    """
    if is_hidden_path(path):
        return True

    effective_skip_dirs = skip_dirs if skip_dirs is not None else DEFAULT_SKIP_DIRS
    if extra_skip_dirs:
        effective_skip_dirs = effective_skip_dirs | set(extra_skip_dirs)

    return any(part in effective_skip_dirs for part in path.parts)


def is_within_workspace(path: Path, root: Path) -> bool:
    """True if ``path`` lives under ``root`` and is not in an ignored directory."""
    try:
        relative = path.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return not should_ignore_path(relative.parent)


def iter_workspace_files(
    root: Path,
    extensions: Iterable[str],
    max_files: int,
    max_file_size: Optional[int] = None,
    start: Optional[Path] = None,
) -> Iterator[Path]:
    """Walk ``root`` yielding source files with one of ``extensions``.

    Ignored directories are pruned before descending. Files larger than
    ``max_file_size`` bytes are skipped. At most ``max_files`` paths are
    yielded, in sorted directory order.

    Args:
        root: Workspace root
        extensions: Accepted file suffixes, e.g. ``(".py",)``
        max_files: Upper bound on yielded files
        max_file_size: Optional per-file size limit in bytes
        start: Directory to walk instead of ``root`` (must be inside it)
    """
    suffixes = {ext.lower() for ext in extensions}
    count = 0
    for dirpath, dirnames, filenames in os.walk(start or root):
        dirnames[:] = sorted(
            d for d in dirnames if not d.startswith(".") and d not in DEFAULT_SKIP_DIRS
        )
        for name in sorted(filenames):
            if count >= max_files:
                return
            path = Path(dirpath) / name
            if path.suffix.lower() not in suffixes:
                continue
            if max_file_size is not None:
                try:
                    if path.stat().st_size > max_file_size:
                        continue
                except OSError:
                    continue
            count += 1
            yield path
