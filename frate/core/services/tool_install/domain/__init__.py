"""
L1 Domain — ``__init__.py`` re-exports all pure domain functions.

These functions have NO subprocess calls, NO filesystem access,
NO network calls. Pure input→output.
"""

from frate.core.services.tool_install.domain.binary_detection import (  # noqa: F401
    BinaryChoice,
    choose_binary,
    rank_candidates,
    score_candidate,
)
from frate.core.services.tool_install.domain.download_helpers import (  # noqa: F401
    ArchiveFormat,
    _fmt_size,
    archive_filename,
    archive_format_for,
    parse_checksum,
)
from frate.core.services.tool_install.domain.platform_match import (  # noqa: F401
    candidate_platforms,
    normalize_arch,
    select_asset,
    target_triple,
)
from frate.core.services.tool_install.domain.version_constraint import (  # noqa: F401
    Comparator,
    Version,
    VersionError,
    VersionReq,
    validate_requirement,
)
