"""
Lockfile persistence — atomic, deterministic read/write of frate.lock.

The lockfile is always regenerated whole.  Serialization sorts tools
by name and writes entry keys in a fixed order, so syncing an
unchanged manifest twice yields byte-identical files.  Writes are
atomic (write to temp file, then rename) so a crash never leaves a
half-written lockfile.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from frate.core.models.lockfile import LOCKFILE_SCHEMA_VERSION, LockedEntry, Lockfile

logger = logging.getLogger(__name__)

LOCKFILE_HEADER = (
    "# This file is generated by frate. Do not edit it by hand.\n"
    "# Run 'frate sync' to regenerate it from frate.yml.\n"
)

_ENTRY_KEYS = ("resolved_version", "download_url", "checksum", "platform")


class LockfileFormatError(ValueError):
    """Raised when lockfile text cannot be parsed."""


def dump_lockfile(lockfile: Lockfile) -> str:
    """Serialize a lockfile deterministically."""
    tools: dict[str, dict[str, str]] = {}
    for name in sorted(lockfile.tools):
        entry = lockfile.tools[name]
        tools[name] = {key: getattr(entry, key) for key in _ENTRY_KEYS}

    data: dict[str, Any] = {"version": lockfile.version, "tools": tools}
    body = yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)
    return LOCKFILE_HEADER + body


def parse_lockfile(raw: str) -> Lockfile:
    """Parse lockfile text.

    Raises:
        LockfileFormatError: On invalid YAML or schema.
    """
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise LockfileFormatError(f"Invalid YAML: {e}") from e

    if data is None:
        return Lockfile()
    if not isinstance(data, dict):
        raise LockfileFormatError(f"Expected a YAML mapping, got {type(data).__name__}")

    raw_tools = data.get("tools") or {}
    if not isinstance(raw_tools, dict):
        raise LockfileFormatError("'tools' must be a mapping")

    try:
        tools = {
            str(name): LockedEntry.model_validate(
                {**{k: str(v) for k, v in (fields or {}).items()}, "name": str(name)}
            )
            for name, fields in raw_tools.items()
        }
        return Lockfile(version=data.get("version", LOCKFILE_SCHEMA_VERSION), tools=tools)
    except (ValidationError, AttributeError) as e:
        raise LockfileFormatError(f"Invalid lockfile entry: {e}") from e


def load_lockfile(path: Path) -> Lockfile | None:
    """Load a lockfile.

    Returns:
        The Lockfile, or None if it does not exist or cannot be parsed
        (a corrupt lockfile is regenerated by the next sync).
    """
    if not path.is_file():
        logger.info("No lockfile at %s", path)
        return None

    try:
        raw = path.read_text(encoding="utf-8")
        lockfile = parse_lockfile(raw)
        logger.debug("Loaded lockfile %s (%d tools)", path, len(lockfile.tools))
        return lockfile
    except LockfileFormatError as e:
        logger.warning("Corrupt lockfile %s: %s — ignoring it", path, e)
        return None
    except OSError as e:
        logger.warning("Cannot read lockfile %s: %s — ignoring it", path, e)
        return None


def save_lockfile(lockfile: Lockfile, path: Path) -> None:
    """Save a lockfile (atomic write).

    Args:
        lockfile: The lockfile to save.
        path: Target path for frate.lock.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    content = dump_lockfile(lockfile)

    try:
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".frate_lock_", suffix=".tmp")
        tmp = Path(tmp_path)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(content)
            os.replace(tmp, path)
            logger.debug("Lockfile saved to %s", path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
    except Exception as e:
        logger.error("Failed to save lockfile to %s: %s", path, e)
        raise
