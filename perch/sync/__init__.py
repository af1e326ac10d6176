"""Refresh engine internals: query pipeline, hydration, merging and scheduling."""

from __future__ import annotations

from .activity import merge_activity, repository_events
from .detail import DetailAggregator, DetailSection, RepositoryDetail
from .heatmap import HeatmapSpan, cells_in_range, heatmap_range
from .hydrator import RepositoryHydrator
from .observability import SyncEventLogger, SyncEventType
from .orchestrator import FetchOrchestrator
from .pipeline import apply, sort_repositories
from .query import OnlyWith, RepositoryQuery, RepositoryScope, SortKey
from .scheduler import RefreshScheduler, SchedulerNotConfiguredError
from .session import (
    Account,
    InvalidAccountTransitionError,
    LoggedIn,
    LoggedOut,
    LoggingIn,
    SessionState,
    SessionStore,
)

__all__ = [
    "Account",
    "DetailAggregator",
    "DetailSection",
    "FetchOrchestrator",
    "HeatmapSpan",
    "InvalidAccountTransitionError",
    "LoggedIn",
    "LoggedOut",
    "LoggingIn",
    "OnlyWith",
    "RefreshScheduler",
    "RepositoryDetail",
    "RepositoryHydrator",
    "RepositoryQuery",
    "RepositoryScope",
    "SchedulerNotConfiguredError",
    "SessionState",
    "SessionStore",
    "SortKey",
    "SyncEventLogger",
    "SyncEventType",
    "apply",
    "cells_in_range",
    "heatmap_range",
    "merge_activity",
    "repository_events",
    "sort_repositories",
]
