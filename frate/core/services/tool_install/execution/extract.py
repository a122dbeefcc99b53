"""
L4 Execution — Safe archive extraction.

Extracts zip and tar.gz archives into a scratch directory next to the
target, then renames the scratch directory into place.  Either the
complete tree appears at the target or nothing does.

Entries are rejected (``UnsafeArchiveEntry``) when they would land
outside the target: absolute paths, drive letters, ``..`` components,
and symlinks or hardlinks whose destination escapes.  Device nodes
and FIFOs are rejected outright.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import stat
import tarfile
import tempfile
import zipfile
import zlib
from collections.abc import Callable
from pathlib import Path, PurePosixPath

from frate.core.errors import CacheIOError, UnsafeArchiveEntry
from frate.core.services.tool_install.domain.download_helpers import ArchiveFormat

logger = logging.getLogger(__name__)

_DRIVE_RE = re.compile(r"^[A-Za-z]:")

# Unix host id in a zip's create_system field
_ZIP_UNIX = 3


def member_relpath(name: str) -> PurePosixPath | None:
    """Validate an archive member name and normalise it.

    Returns:
        The relative path, or None for entries naming the root itself
        (``./``, empty).

    Raises:
        UnsafeArchiveEntry: Absolute, drive-qualified, or ``..`` paths.
    """
    cleaned = name.replace("\\", "/")
    if cleaned.startswith("/") or _DRIVE_RE.match(cleaned):
        raise UnsafeArchiveEntry(name, "absolute path")
    parts = [p for p in cleaned.split("/") if p not in ("", ".")]
    if ".." in parts:
        raise UnsafeArchiveEntry(name, "parent directory reference")
    if not parts:
        return None
    return PurePosixPath(*parts)


def _inside(root: Path, candidate: Path) -> bool:
    try:
        candidate.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


def _destination(root: Path, name: str) -> Path | None:
    rel = member_relpath(name)
    if rel is None:
        return None
    dest = root.joinpath(*rel.parts)
    # Parent may already contain a symlink extracted earlier
    if not _inside(root, dest.parent):
        raise UnsafeArchiveEntry(name, "path escapes the extraction directory")
    return dest


def _check_link(root: Path, dest: Path, name: str, target: str) -> None:
    if not target:
        raise UnsafeArchiveEntry(name, "empty link target")
    norm = target.replace("\\", "/")
    if norm.startswith("/") or _DRIVE_RE.match(norm):
        raise UnsafeArchiveEntry(name, f"link to absolute path {target}")
    if not _inside(root, dest.parent / norm):
        raise UnsafeArchiveEntry(name, f"link target {target} escapes the extraction directory")


def _file_mode(mode: int) -> int:
    """Keep executable bits, drop setuid/setgid/sticky."""
    return 0o755 if mode & 0o111 else 0o644


# ── tar.gz ──────────────────────────────────────────────────────


def _extract_tar(archive: Path, root: Path) -> int:
    count = 0
    with tarfile.open(archive, "r:gz") as tf:
        members = tf.getmembers()
        for member in members:
            member_relpath(member.name)

        for member in members:
            dest = _destination(root, member.name)
            if dest is None:
                continue

            if member.isdir():
                dest.mkdir(parents=True, exist_ok=True)
            elif member.issym():
                _check_link(root, dest, member.name, member.linkname)
                dest.parent.mkdir(parents=True, exist_ok=True)
                os.symlink(member.linkname, dest)
            elif member.islnk():
                link_rel = member_relpath(member.linkname)
                source = root.joinpath(*link_rel.parts) if link_rel else None
                if source is None or not _inside(root, source):
                    raise UnsafeArchiveEntry(member.name, f"hardlink to {member.linkname}")
                if not source.is_file():
                    raise UnsafeArchiveEntry(
                        member.name, f"hardlink to missing member {member.linkname}"
                    )
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, dest)
                count += 1
            elif member.isfile():
                dest.parent.mkdir(parents=True, exist_ok=True)
                src = tf.extractfile(member)
                if src is None:
                    raise UnsafeArchiveEntry(member.name, "unreadable file entry")
                with src, open(dest, "wb") as out:
                    shutil.copyfileobj(src, out)
                os.chmod(dest, _file_mode(member.mode))
                count += 1
            else:
                raise UnsafeArchiveEntry(member.name, "special file")
    return count


# ── zip ─────────────────────────────────────────────────────────


def _extract_zip(archive: Path, root: Path) -> int:
    count = 0
    with zipfile.ZipFile(archive) as zf:
        infos = zf.infolist()
        for info in infos:
            member_relpath(info.filename)

        for info in infos:
            dest = _destination(root, info.filename)
            if dest is None:
                continue

            unix_mode = (info.external_attr >> 16) if info.create_system == _ZIP_UNIX else 0

            if info.is_dir():
                dest.mkdir(parents=True, exist_ok=True)
            elif unix_mode and stat.S_ISLNK(unix_mode):
                target = zf.read(info).decode("utf-8")
                _check_link(root, dest, info.filename, target)
                dest.parent.mkdir(parents=True, exist_ok=True)
                os.symlink(target, dest)
            else:
                dest.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(dest, "wb") as out:
                    shutil.copyfileobj(src, out)
                os.chmod(dest, _file_mode(unix_mode))
                count += 1
    return count


_EXTRACTORS: dict[ArchiveFormat, Callable[[Path, Path], int]] = {
    ArchiveFormat.TAR_GZ: _extract_tar,
    ArchiveFormat.ZIP: _extract_zip,
}


def extract_archive(archive: Path, fmt: ArchiveFormat, target: Path) -> int:
    """Extract ``archive`` so that its contents appear at ``target``.

    ``target`` must not exist yet.

    Returns:
        Number of regular files extracted.

    Raises:
        UnsafeArchiveEntry: A member would escape ``target``.
        CacheIOError: The archive is unreadable or the filesystem failed.
    """
    if target.exists():
        raise CacheIOError(f"Extraction target already exists: {target}")

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        scratch = Path(tempfile.mkdtemp(prefix=".extract-", dir=target.parent))
    except OSError as e:
        raise CacheIOError(f"Cannot prepare extraction into {target}: {e}") from e

    try:
        count = _EXTRACTORS[fmt](archive, scratch)
        os.replace(scratch, target)
    except UnsafeArchiveEntry:
        shutil.rmtree(scratch, ignore_errors=True)
        raise
    except (tarfile.TarError, zipfile.BadZipFile, zlib.error, EOFError, UnicodeDecodeError) as e:
        shutil.rmtree(scratch, ignore_errors=True)
        raise CacheIOError(f"Corrupt archive {archive.name}: {e}") from e
    except OSError as e:
        shutil.rmtree(scratch, ignore_errors=True)
        raise CacheIOError(f"Extraction of {archive.name} failed: {e}") from e
    except BaseException:
        shutil.rmtree(scratch, ignore_errors=True)
        raise

    logger.debug("Extracted %d file(s) from %s into %s", count, archive.name, target)
    return count
