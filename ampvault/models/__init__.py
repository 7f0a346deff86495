"""ampvault data models — all Pydantic v2, all frozen (immutable)."""

from ampvault.models.records import (
    AddResult,
    Artifact,
    ArtifactSummary,
    ArtifactVersion,
    Item,
    ItemKind,
    Project,
    VersionCheck,
)
from ampvault.models.selectors import (
    LATEST,
    Latest,
    VersionNumber,
    VersionSelector,
    parse_version_selector,
)

__all__ = [
    # records
    "Project",
    "Item",
    "ItemKind",
    "Artifact",
    "ArtifactVersion",
    "ArtifactSummary",
    "AddResult",
    "VersionCheck",
    # selectors
    "Latest",
    "VersionNumber",
    "VersionSelector",
    "LATEST",
    "parse_version_selector",
]
