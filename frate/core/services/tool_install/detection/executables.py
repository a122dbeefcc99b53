"""
L3 Detection — Executables in an extracted tree.

Read-only scan; the ranking itself lives in domain/binary_detection.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from frate.core.services.tool_install.domain.binary_detection import (
    SCORE_STRIPPED,
    BinaryChoice,
    choose_binary,
    rank_candidates,
)

logger = logging.getLogger(__name__)

_WINDOWS_EXE = (".exe", ".cmd", ".bat")


def _regular_files(root: Path) -> list[str]:
    files: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for fname in sorted(filenames):
            path = Path(dirpath) / fname
            if path.is_symlink() or not path.is_file():
                continue
            files.append(path.relative_to(root).as_posix())
    return files


def is_executable(path: Path) -> bool:
    if sys.platform == "win32":
        return path.suffix.lower() in _WINDOWS_EXE
    return bool(path.stat().st_mode & 0o111)


def find_executables(root: Path) -> list[str]:
    """Relative POSIX paths of executable regular files under ``root``."""
    return [rel for rel in _regular_files(root) if is_executable(root / rel)]


def detect_binary(root: Path, tool: str) -> BinaryChoice | None:
    """Choose the primary executable of an extracted archive.

    Archives built without permission bits (typically zips made on
    Windows) have no executable files; then a file whose name matches
    the tool is accepted instead.
    """
    choice = choose_binary(tool, find_executables(root))
    if choice is not None:
        if choice.ambiguous:
            logger.warning(
                "Several executables match '%s'; using %s (others: %s)",
                tool, choice.binary, ", ".join(choice.candidates[1:4]),
            )
        return choice

    named = [p for score, p in rank_candidates(tool, _regular_files(root)) if score <= SCORE_STRIPPED]
    if not named:
        return None
    logger.info("No executable bits in archive for '%s'; using %s", tool, named[0])
    return choose_binary(tool, named)
