"""
L1 Domain — Primary binary ranking (pure).

An extracted release archive often holds several executables
(the tool, helper scripts, completions generators).  Candidates are
ranked by a fixed score so the choice never depends on filesystem
enumeration order:

    0  exact name match (case-insensitive, ``.exe`` ignored)
    1  match after stripping common prefixes / suffixes
       (``rust-just`` ↔ ``just``, ``foo-cli`` ↔ ``foo``)
    2  versioned / platform-suffixed name (``just-1.42.1-x86_64``)
    3  tool name appears as a word in the file name
    4  any other executable

Ties break on path depth, then lexicographically.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath

_STRIP_PREFIXES = ("rust-", "go-", "python-", "py-", "node-", "cargo-", "git-", "lib")
_STRIP_SUFFIXES = ("-cli", "-bin", "-rs", "-go", "-tool")
_EXE_SUFFIXES = (".exe", ".cmd", ".bat")

# Executable bits are common on these, but they are never the tool.
_NON_BINARY_SUFFIXES = (
    ".so", ".dylib", ".dll", ".a", ".lib", ".txt", ".md", ".rst", ".html",
    ".json", ".toml", ".yml", ".yaml", ".1", ".gz", ".zip",
)

SCORE_EXACT = 0
SCORE_STRIPPED = 1
SCORE_PREFIXED = 2
SCORE_RELATED = 3
SCORE_OTHER = 4


@dataclass
class BinaryChoice:
    """The selected primary executable and how it was picked."""

    binary: str
    candidates: list[str] = field(default_factory=list)
    ambiguous: bool = False
    score: int = SCORE_OTHER


def _stem(filename: str) -> str:
    name = filename.lower()
    for suffix in _EXE_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def normalize_tool_name(name: str) -> str:
    """Lowercase and strip one common prefix and one common suffix."""
    n = name.lower()
    for prefix in _STRIP_PREFIXES:
        if n.startswith(prefix) and len(n) > len(prefix):
            n = n[len(prefix):]
            break
    for suffix in _STRIP_SUFFIXES:
        if n.endswith(suffix) and len(n) > len(suffix):
            n = n[: -len(suffix)]
            break
    return n


def looks_like_binary(filename: str) -> bool:
    """False for shared libraries, docs, and data files."""
    name = filename.lower()
    if ".so." in name:
        return False
    return not name.endswith(_NON_BINARY_SUFFIXES)


def score_candidate(tool: str, rel_path: str) -> int:
    """Score one executable path (lower is better)."""
    stem = _stem(PurePosixPath(rel_path).name)
    wanted = tool.lower()

    if stem == wanted:
        return SCORE_EXACT
    if normalize_tool_name(stem) == normalize_tool_name(wanted):
        return SCORE_STRIPPED
    for base in {wanted, normalize_tool_name(wanted)}:
        if stem.startswith(base + "-") or stem.startswith(base + "_"):
            return SCORE_PREFIXED
    if re.search(rf"\b{re.escape(wanted)}", stem):
        return SCORE_RELATED
    return SCORE_OTHER


def rank_candidates(tool: str, rel_paths: list[str]) -> list[tuple[int, str]]:
    """Return ``(score, path)`` pairs, best first, deterministically."""
    scored = [(score_candidate(tool, p), p) for p in rel_paths if looks_like_binary(p)]
    scored.sort(key=lambda sp: (sp[0], len(PurePosixPath(sp[1]).parts), sp[1].lower(), sp[1]))
    return scored


def choose_binary(tool: str, rel_paths: list[str]) -> BinaryChoice | None:
    """Pick the primary executable for ``tool`` among ``rel_paths``.

    Returns None if no path qualifies.
    """
    ranked = rank_candidates(tool, rel_paths)
    if not ranked:
        return None
    best_score, best = ranked[0]
    ties = sum(1 for score, _ in ranked if score == best_score)
    return BinaryChoice(
        binary=best,
        candidates=[p for _, p in ranked],
        ambiguous=ties > 1,
        score=best_score,
    )
