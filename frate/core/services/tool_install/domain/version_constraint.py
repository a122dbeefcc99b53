"""
L1 Domain — Semantic versions and version requirements (pure).

Parses SemVer 2.0 versions and Cargo-style requirement strings
(``1.42.1``, ``^1.40``, ``~0.9``, ``>=1.2, <2``, ``1.*``) and checks
one against the other.  No I/O.

A bare version is an exact requirement.  Prereleases only satisfy a
requirement that itself names a prerelease of the same
major.minor.patch.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering

_VERSION_RE = re.compile(
    r"^v?(\d+)\.(\d+)\.(\d+)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

_PARTIAL_RE = re.compile(
    r"^v?(?P<major>\d+|[xX*])"
    r"(?:\.(?P<minor>\d+|[xX*])"
    r"(?:\.(?P<patch>\d+|[xX*])"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r")?)?$"
)

_COMPARATOR_RE = re.compile(r"\s*(==|>=|<=|=|>|<|~|\^)?\s*([^\s,<>=~^]+)")

_ANY = {"", "*", "x", "X", "latest"}
_WILDCARDS = {"*", "x", "X"}


class VersionError(ValueError):
    """Raised for an unparsable version or requirement string."""


def _parse_pre(pre: str | None) -> tuple[int | str, ...]:
    if not pre:
        return ()
    return tuple(int(p) if p.isdigit() else p for p in pre.split("."))


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A SemVer 2.0 version.  Build metadata does not affect precedence."""

    major: int
    minor: int
    patch: int
    pre: tuple[int | str, ...] = ()
    build: str = ""

    @classmethod
    def parse(cls, text: str) -> Version:
        m = _VERSION_RE.match(text.strip())
        if not m:
            raise VersionError(f"Invalid version: {text!r}")
        major, minor, patch, pre, build = m.groups()
        return cls(int(major), int(minor), int(patch), _parse_pre(pre), build or "")

    @property
    def is_prerelease(self) -> bool:
        return bool(self.pre)

    @property
    def release(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def _key(self) -> tuple:
        # Numeric identifiers sort below alphanumeric ones; a release
        # sorts above all of its prereleases.
        pre_key = tuple((0, p, "") if isinstance(p, int) else (1, 0, p) for p in self.pre)
        return (self.major, self.minor, self.patch, 0 if self.pre else 1, pre_key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        s = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            s += "-" + ".".join(str(p) for p in self.pre)
        if self.build:
            s += "+" + self.build
        return s


def try_parse_version(text: str) -> Version | None:
    """Parse a version, returning None instead of raising."""
    try:
        return Version.parse(text)
    except VersionError:
        return None


@dataclass(frozen=True)
class Comparator:
    """One ``op version`` term.  Missing components are wildcards."""

    op: str
    major: int | None = None
    minor: int | None = None
    patch: int | None = None
    pre: tuple[int | str, ...] = ()

    @property
    def has_prerelease(self) -> bool:
        return bool(self.pre)

    def bounds(self) -> tuple[Version | None, bool, Version | None, bool]:
        """Return ``(lower, lower_inclusive, upper, upper_inclusive)``."""
        M, m, p = self.major, self.minor, self.patch
        if M is None:
            return (None, True, None, False)

        full = m is not None and p is not None
        if full:
            exact = Version(M, m, p, self.pre)

        op = self.op
        if op == "=":
            if full:
                return (exact, True, exact, True)
            if m is not None:
                return (Version(M, m, 0), True, Version(M, m + 1, 0), False)
            return (Version(M, 0, 0), True, Version(M + 1, 0, 0), False)

        if op == ">":
            if full:
                return (exact, False, None, False)
            if m is not None:
                return (Version(M, m + 1, 0), True, None, False)
            return (Version(M + 1, 0, 0), True, None, False)

        if op == ">=":
            if full:
                return (exact, True, None, False)
            return (Version(M, m or 0, 0), True, None, False)

        if op == "<":
            if full:
                return (None, True, exact, False)
            return (None, True, Version(M, m or 0, 0), False)

        if op == "<=":
            if full:
                return (None, True, exact, True)
            if m is not None:
                return (None, True, Version(M, m + 1, 0), False)
            return (None, True, Version(M + 1, 0, 0), False)

        if op == "~":
            if m is None:
                return (Version(M, 0, 0), True, Version(M + 1, 0, 0), False)
            lower = exact if full else Version(M, m, 0)
            return (lower, True, Version(M, m + 1, 0), False)

        if op == "^":
            lower = exact if full else Version(M, m or 0, 0)
            if M > 0 or m is None:
                upper = Version(M + 1, 0, 0)
            elif m > 0 or p is None:
                upper = Version(0, m + 1, 0)
            else:
                upper = Version(0, 0, p + 1)
            return (lower, True, upper, False)

        raise VersionError(f"Unknown operator: {op!r}")

    def matches(self, version: Version) -> bool:
        lower, lower_inc, upper, upper_inc = self.bounds()
        if lower is not None:
            if version < lower or (version == lower and not lower_inc):
                return False
        if upper is not None:
            if version > upper or (version == upper and not upper_inc):
                return False
        return True

    def __str__(self) -> str:
        if self.major is None:
            return "*"
        parts = [str(self.major)]
        for c in (self.minor, self.patch):
            if c is None:
                parts.append("*")
                break
            parts.append(str(c))
        s = ".".join(parts)
        if self.pre:
            s += "-" + ".".join(str(p) for p in self.pre)
        return f"{self.op}{s}"


def _parse_comparator(op: str | None, text: str) -> Comparator:
    m = _PARTIAL_RE.match(text)
    if not m:
        raise VersionError(f"Invalid version in requirement: {text!r}")

    components: list[int | None] = []
    for name in ("major", "minor", "patch"):
        raw = m.group(name)
        if raw is None or raw in _WILDCARDS or (components and components[-1] is None):
            components.append(None)
        else:
            components.append(int(raw))

    pre = _parse_pre(m.group("pre")) if components[2] is not None else ()
    op = {"==": "=", None: "="}.get(op, op)
    return Comparator(op, components[0], components[1], components[2], pre)


@dataclass(frozen=True)
class VersionReq:
    """A conjunction of comparators, e.g. ``>=1.2, <2``."""

    text: str
    comparators: tuple[Comparator, ...] = ()

    @classmethod
    def parse(cls, text: str) -> VersionReq:
        stripped = text.strip()
        if stripped in _ANY:
            return cls(stripped or "*", ())

        comparators: list[Comparator] = []
        consumed = 0
        for match in _COMPARATOR_RE.finditer(stripped):
            gap = stripped[consumed:match.start()]
            if gap.strip(" ,"):
                raise VersionError(f"Invalid requirement: {text!r}")
            comparators.append(_parse_comparator(match.group(1), match.group(2)))
            consumed = match.end()
        if stripped[consumed:].strip(" ,") or not comparators:
            raise VersionError(f"Invalid requirement: {text!r}")
        return cls(stripped, tuple(comparators))

    @property
    def is_exact(self) -> bool:
        """True for a single fully-specified ``=`` comparator."""
        if len(self.comparators) != 1:
            return False
        c = self.comparators[0]
        return c.op == "=" and c.minor is not None and c.patch is not None

    def matches(self, version: Version) -> bool:
        if not all(c.matches(version) for c in self.comparators):
            return False
        if not version.is_prerelease:
            return True
        return any(
            c.has_prerelease and (c.major, c.minor, c.patch) == version.release
            for c in self.comparators
        )

    def __str__(self) -> str:
        return self.text


def validate_requirement(text: str) -> str | None:
    """Return an error message for an invalid requirement, else None."""
    try:
        VersionReq.parse(text)
    except VersionError as e:
        return str(e)
    return None
