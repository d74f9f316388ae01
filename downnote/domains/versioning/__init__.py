from downnote.domains.versioning.errors import (
    VersioningError, NotFoundError, StoreUnavailableError, ValidationError,
    ConcurrentModificationError, RestoreFailedError
)
from downnote.domains.versioning.policy import VersionDecision, VersionDecisionPolicy, VersionReason, decide
from downnote.domains.versioning.stats import ContentStats, content_stats

__all__ = [
    "VersioningError", "NotFoundError", "StoreUnavailableError", "ValidationError",
    "ConcurrentModificationError", "RestoreFailedError",
    "VersionDecision", "VersionDecisionPolicy", "VersionReason", "decide",
    "ContentStats", "content_stats"
]
