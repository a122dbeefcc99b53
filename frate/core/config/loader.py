"""
Manifest loader — reads frate.yml into the Manifest model.

This is the primary entry point for loading a project's declared
tools.  It reads YAML, validates against the Pydantic schema, checks
every requirement string, and returns a typed Manifest.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

import yaml
from pydantic import ValidationError

from frate.core.errors import ManifestParseError
from frate.core.models.manifest import Manifest, ProjectInfo
from frate.core.services.tool_install.domain.version_constraint import validate_requirement

logger = logging.getLogger(__name__)

# Default manifest / lockfile filenames
MANIFEST_FILE = "frate.yml"
LOCKFILE_FILE = "frate.lock"


class _DuplicateKey(yaml.constructor.ConstructorError):
    def __init__(self, key: object, node: yaml.Node, key_node: yaml.Node):
        self.key = key
        super().__init__(
            "while constructing a mapping", node.start_mark,
            f"found duplicate key {key!r}", key_node.start_mark,
        )


class _ManifestLoader(yaml.SafeLoader):
    """SafeLoader that keeps numeric-looking scalars as strings.

    ``just: 1.40`` must stay ``"1.40"``, not become the float ``1.4``.
    A key repeated within one mapping is an error, not last-one-wins.
    """

    def construct_mapping(self, node, deep=False):
        if isinstance(node, yaml.MappingNode):
            seen: set = set()
            for key_node, _ in node.value:
                if key_node.tag == "tag:yaml.org,2002:merge":
                    continue
                key = self.construct_object(key_node, deep=True)
                try:
                    if key in seen:
                        raise _DuplicateKey(key, node, key_node)
                    seen.add(key)
                except TypeError:
                    continue  # unhashable; the base loader reports it
        return super().construct_mapping(node, deep=deep)


_ManifestLoader.yaml_implicit_resolvers = {
    first: [
        (tag, regexp)
        for tag, regexp in resolvers
        if tag not in ("tag:yaml.org,2002:int", "tag:yaml.org,2002:float")
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def find_manifest_file(start_dir: Path | None = None) -> Path | None:
    """Search for frate.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to frate.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / MANIFEST_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def lockfile_path_for(manifest_path: Path) -> Path:
    """The lockfile that sits next to a manifest."""
    return manifest_path.parent / LOCKFILE_FILE


def parse_manifest(raw: str, *, source: str = MANIFEST_FILE, default_name: str = "") -> Manifest:
    """Parse manifest text.

    Raises:
        ManifestParseError: On invalid YAML, schema, or requirements.
    """
    try:
        data = yaml.load(raw, Loader=_ManifestLoader)  # noqa: S506 (SafeLoader subclass)
    except _DuplicateKey as e:
        raise ManifestParseError(f"Duplicate entry '{e.key}' in {source}") from e
    except yaml.YAMLError as e:
        raise ManifestParseError(f"Invalid YAML in {source}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ManifestParseError(f"Expected a YAML mapping in {source}, got {type(data).__name__}")

    project = data.get("project") or {"name": default_name or "project"}
    dependencies = data.get("dependencies") or {}

    if not isinstance(dependencies, dict):
        raise ManifestParseError(f"'dependencies' in {source} must be a mapping of tool → requirement")

    for name, requirement in dependencies.items():
        if not isinstance(name, str) or not name.strip():
            raise ManifestParseError(f"Invalid tool name {name!r} in {source}")
        if requirement is None:
            requirement = "*"
            dependencies[name] = requirement
        if not isinstance(requirement, str):
            raise ManifestParseError(f"Requirement for '{name}' in {source} must be a string")
        error = validate_requirement(requirement)
        if error:
            raise ManifestParseError(f"Invalid requirement for '{name}' in {source}: {error}")

    try:
        return Manifest.model_validate({"project": project, "dependencies": dependencies})
    except ValidationError as e:
        raise ManifestParseError(f"Invalid manifest {source}: {e}") from e


def load_manifest(path: Path | None = None) -> Manifest:
    """Load and validate a project manifest.

    Args:
        path: Explicit path to frate.yml. If None, searches upward.

    Returns:
        Validated Manifest model.

    Raises:
        ManifestParseError: If the file is missing or invalid.
    """
    if path is None:
        path = find_manifest_file()

    if path is None:
        raise ManifestParseError(
            f"No {MANIFEST_FILE} found. Run 'frate init' to create one."
        )

    if not path.is_file():
        raise ManifestParseError(f"Manifest not found: {path}")

    logger.debug("Loading manifest from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestParseError(f"Cannot read {path}: {e}") from e

    manifest = parse_manifest(raw, source=str(path), default_name=path.parent.name)
    logger.info(
        "Loaded manifest '%s' with %d tools", manifest.project.name, len(manifest.dependencies),
    )
    return manifest


def dump_manifest(manifest: Manifest) -> str:
    """Serialize a manifest, keeping dependency order."""
    data = {
        "project": manifest.project.model_dump(),
        "dependencies": dict(manifest.dependencies),
    }
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)


def save_manifest(manifest: Manifest, path: Path) -> None:
    """Write a manifest (atomic write: temp file, then rename)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    content = dump_manifest(manifest)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".frate_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, path)
        logger.debug("Manifest saved to %s", path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def init_manifest(project_dir: Path, name: str | None = None) -> Path:
    """Create a default frate.yml in ``project_dir``.

    Raises:
        ManifestParseError: If a manifest already exists there.
    """
    path = project_dir / MANIFEST_FILE
    if path.exists():
        raise ManifestParseError(f"{path} already exists")
    manifest = Manifest(project=ProjectInfo(name=name or project_dir.resolve().name))
    save_manifest(manifest, path)
    logger.info("Created %s", path)
    return path
