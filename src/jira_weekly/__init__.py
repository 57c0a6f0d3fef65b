"""Jira Weekly - Weekly per-issue/per-day grid of your Jira worklogs."""

__version__ = "0.1.0"

from .errors import WorklogError, AuthError, FetchError, WriteError, ValidationError
from .models import Issue, WorklogEntry, TimeWindow, Session
from .config import Config
from .session import SessionManager, SessionState
from .issues import resolve_issues
from .worklogs import fetch_filtered_worklogs
from .matrix import AggregationMatrix, build_matrix, format_duration
from .writer import create_worklog
from .scheduler import RefreshScheduler, WeeklyReport

__all__ = [
    "WorklogError",
    "AuthError",
    "FetchError",
    "WriteError",
    "ValidationError",
    "Issue",
    "WorklogEntry",
    "TimeWindow",
    "Session",
    "Config",
    "SessionManager",
    "SessionState",
    "resolve_issues",
    "fetch_filtered_worklogs",
    "AggregationMatrix",
    "build_matrix",
    "format_duration",
    "create_worklog",
    "RefreshScheduler",
    "WeeklyReport",
]
