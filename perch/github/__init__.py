"""GitHub API access: client, domain values and error taxonomy."""

from __future__ import annotations

from .client import GitHubClientConfig, GitHubRestClient, RepositoryAPI, TokenProvider
from .errors import (
    ErrorKind,
    GitHubAPIError,
    GitHubConfigError,
    GitHubError,
    GitHubResponseShapeError,
    error_kind,
    user_facing_message,
)
from .models import (
    ActivityEvent,
    ActivityScope,
    CommitList,
    CommitSummary,
    HeatmapCell,
    HeatmapRange,
    Repository,
    UserIdentity,
)

__all__ = [
    "ActivityEvent",
    "ActivityScope",
    "CommitList",
    "CommitSummary",
    "ErrorKind",
    "GitHubAPIError",
    "GitHubClientConfig",
    "GitHubConfigError",
    "GitHubError",
    "GitHubResponseShapeError",
    "GitHubRestClient",
    "HeatmapCell",
    "HeatmapRange",
    "Repository",
    "RepositoryAPI",
    "TokenProvider",
    "UserIdentity",
    "error_kind",
    "user_facing_message",
]
