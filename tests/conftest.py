"""Pytest configuration and fixtures."""

import pytest
from datetime import datetime, timezone
from typing import Optional
from unittest.mock import MagicMock, patch

from jira_weekly.config import Config
from jira_weekly.models import Issue, WorklogEntry


class MemoryCredentialStore:
    """In-memory credential store used instead of the system keyring."""

    def __init__(self):
        self.secrets: dict[tuple[str, str], str] = {}

    def save(self, service: str, account: str, secret: str) -> None:
        self.secrets[(service, account)] = secret

    def read(self, service: str, account: str) -> Optional[str]:
        return self.secrets.get((service, account))

    def delete(self, service: str, account: str) -> None:
        self.secrets.pop((service, account), None)


@pytest.fixture
def temp_config_dir(tmp_path, monkeypatch):
    """Redirect the config file into a temporary directory."""
    config_dir = tmp_path / ".jira-weekly"
    monkeypatch.setattr("jira_weekly.config.CONFIG_DIR", config_dir)
    monkeypatch.setattr("jira_weekly.config.CONFIG_FILE", config_dir / "config.json")
    return config_dir


@pytest.fixture
def memory_store():
    """Empty in-memory credential store."""
    return MemoryCredentialStore()


@pytest.fixture
def sample_config():
    """Configuration pointing at a test Jira."""
    return Config(jira_url="https://jira.example.com", jira_username="alice")


@pytest.fixture
def make_response():
    """Factory for mocked requests responses."""
    def _make(status_code=200, json_data=None, json_error=False):
        response = MagicMock()
        response.status_code = status_code
        if json_error:
            response.json.side_effect = ValueError("No JSON object could be decoded")
        else:
            response.json.return_value = json_data
        return response
    return _make


@pytest.fixture
def worklog_record():
    """Factory for raw Jira worklog records."""
    def _make(worklog_id="10001", author="Alice", started="2025-01-13T09:00:00.000+0000",
              seconds=3600):
        return {
            "id": worklog_id,
            "author": {"name": author.lower(), "displayName": author},
            "started": started,
            "timeSpentSeconds": seconds,
        }
    return _make


@pytest.fixture
def make_entry():
    """Factory for parsed worklog entries."""
    def _make(issue_key="PROJ-1", started=None, seconds=3600, author="Alice", worklog_id="1"):
        return WorklogEntry(
            id=worklog_id,
            issue_key=issue_key,
            issue_summary=f"Summary of {issue_key}",
            author_name=author,
            started=started or datetime(2025, 1, 13, 9, 0, tzinfo=timezone.utc),
            time_spent_seconds=seconds,
        )
    return _make


@pytest.fixture
def sample_issues():
    """Three resolved issues."""
    return [
        Issue(key="PROJ-1", summary="First issue"),
        Issue(key="PROJ-2", summary="Second issue"),
        Issue(key="PROJ-3", summary="Third issue"),
    ]


@pytest.fixture
def mock_myself_response():
    """Mock Jira /myself response."""
    return {
        "name": "alice",
        "key": "JIRAUSER10000",
        "displayName": "Alice",
        "emailAddress": "alice@example.com",
    }


@pytest.fixture
def mock_requests_session():
    """Mock requests session for API testing."""
    with patch("requests.Session") as mock_session:
        mock_instance = MagicMock()
        mock_session.return_value = mock_instance
        yield mock_instance
