"""Tests for worklogs module."""

import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from jira_weekly.errors import FetchError
from jira_weekly.models import Issue, TimeWindow
from jira_weekly.worklogs import (
    WorklogCollector, fetch_filtered_worklogs, parse_started, parse_worklog
)

WEEK = TimeWindow(
    start=datetime(2025, 1, 13, tzinfo=timezone.utc),
    end=datetime(2025, 1, 20, tzinfo=timezone.utc),
)


def _client(responses):
    """Mock client whose get_worklogs answers from a {issue_key: payload_or_exception} map."""
    client = MagicMock()

    def get_worklogs(issue_key):
        result = responses[issue_key]
        if isinstance(result, Exception):
            raise result
        return result

    client.get_worklogs.side_effect = get_worklogs
    return client


class TestParseStarted:
    """Tests for timestamp parsing."""

    def test_fractional_seconds(self):
        """Test the Jira format with milliseconds and offset."""
        started = parse_started("2025-01-13T09:30:00.000+0200")

        assert started == datetime(2025, 1, 13, 7, 30, tzinfo=timezone.utc)

    def test_without_fraction(self):
        """Test that timestamps without milliseconds are accepted."""
        assert parse_started("2025-01-13T09:30:00+0000") is not None

    def test_invalid(self):
        """Test that garbage returns None."""
        assert parse_started("yesterday") is None
        assert parse_started("2025-01-13") is None


class TestParseWorklog:
    """Tests for single record parsing."""

    def test_valid_record(self, worklog_record):
        """Test that a complete record is parsed."""
        issue = Issue("PROJ-1", "Summary")

        entry = parse_worklog(worklog_record(worklog_id="42", seconds=1800), issue)

        assert entry.id == "42"
        assert entry.issue_key == "PROJ-1"
        assert entry.issue_summary == "Summary"
        assert entry.author_name == "Alice"
        assert entry.time_spent_seconds == 1800

    @pytest.mark.parametrize("mutate", [
        lambda r: r.pop("author"),
        lambda r: r["author"].pop("displayName"),
        lambda r: r.update(started="13/01/2025"),
        lambda r: r.update(timeSpentSeconds="3600"),
        lambda r: r.update(timeSpentSeconds=-1),
        lambda r: r.pop("id"),
    ])
    def test_malformed_record(self, worklog_record, mutate):
        """Test that records with missing or invalid fields are rejected."""
        record = worklog_record()
        mutate(record)

        assert parse_worklog(record, Issue("PROJ-1", "Summary")) is None


class TestFetchFilteredWorklogs:
    """Tests for fetch_filtered_worklogs."""

    def test_filters_author_and_window(self, worklog_record):
        """Test that only the current user's entries inside the window are kept."""
        client = _client({
            "PROJ-1": {"worklogs": [
                worklog_record("1", "Alice", "2025-01-13T09:00:00.000+0000", 3600),
                worklog_record("2", "Bob", "2025-01-13T10:00:00.000+0000", 3600),
                worklog_record("3", "Alice", "2025-01-06T09:00:00.000+0000", 3600),
            ]},
        })

        entries = fetch_filtered_worklogs(client, [Issue("PROJ-1", "S")], WEEK, "Alice")

        assert [e.id for e in entries] == ["1"]

    def test_window_bounds_inclusive(self, worklog_record):
        """Test that entries exactly on start and end are kept."""
        client = _client({
            "PROJ-1": {"worklogs": [
                worklog_record("start", started="2025-01-13T00:00:00.000+0000"),
                worklog_record("end", started="2025-01-20T00:00:00.000+0000"),
                worklog_record("after", started="2025-01-20T00:00:01.000+0000"),
                worklog_record("before", started="2025-01-12T23:59:59.999+0000"),
            ]},
        })

        entries = fetch_filtered_worklogs(client, [Issue("PROJ-1", "S")], WEEK, "Alice")

        assert sorted(e.id for e in entries) == ["end", "start"]

    def test_malformed_entries_skipped(self, worklog_record):
        """Test that bad records do not fail the fetch."""
        broken = worklog_record("2")
        broken["started"] = "not a date"
        client = _client({
            "PROJ-1": {"worklogs": [worklog_record("1"), broken, "junk"]},
        })

        entries = fetch_filtered_worklogs(client, [Issue("PROJ-1", "S")], WEEK, "Alice")

        assert [e.id for e in entries] == ["1"]

    def test_unparseable_response_yields_nothing(self, worklog_record, sample_issues):
        """Test that an issue with an unparseable body contributes no entries."""
        client = _client({
            "PROJ-1": None,
            "PROJ-2": {"unexpected": True},
            "PROJ-3": {"worklogs": [worklog_record("3")]},
        })

        entries = fetch_filtered_worklogs(client, sample_issues, WEEK, "Alice")

        assert [(e.issue_key, e.id) for e in entries] == [("PROJ-3", "3")]

    def test_merges_all_issues(self, worklog_record, sample_issues):
        """Test that results from every issue are merged and sorted by start time."""
        client = _client({
            "PROJ-1": {"worklogs": [worklog_record("1", started="2025-01-15T09:00:00.000+0000")]},
            "PROJ-2": {"worklogs": [worklog_record("2", started="2025-01-13T09:00:00.000+0000")]},
            "PROJ-3": {"worklogs": [worklog_record("3", started="2025-01-14T09:00:00.000+0000")]},
        })

        entries = fetch_filtered_worklogs(client, sample_issues, WEEK, "Alice")

        assert [e.issue_key for e in entries] == ["PROJ-2", "PROJ-3", "PROJ-1"]
        assert entries[0].issue_summary == "Second issue"

    def test_one_failure_fails_batch(self, worklog_record, sample_issues):
        """Test that one failed request discards the results of the others."""
        client = _client({
            "PROJ-1": {"worklogs": [worklog_record("1")]},
            "PROJ-2": FetchError("PROJ-2: 取得 worklog 失敗: connection reset"),
            "PROJ-3": {"worklogs": [worklog_record("3")]},
        })

        with pytest.raises(FetchError) as exc_info:
            fetch_filtered_worklogs(client, sample_issues, WEEK, "Alice")

        assert "PROJ-2" in str(exc_info.value)
        assert client.get_worklogs.call_count == 3

    def test_requests_run_concurrently(self, worklog_record, sample_issues):
        """Test that every issue is requested at the same time."""
        barrier = threading.Barrier(len(sample_issues), timeout=5)
        client = MagicMock()

        def get_worklogs(issue_key):
            barrier.wait()
            return {"worklogs": [worklog_record(issue_key)]}

        client.get_worklogs.side_effect = get_worklogs

        entries = fetch_filtered_worklogs(client, sample_issues, WEEK, "Alice")

        assert len(entries) == 3

    def test_no_issues(self):
        """Test that an empty issue set makes no requests."""
        client = MagicMock()

        assert fetch_filtered_worklogs(client, [], WEEK, "Alice") == []
        client.get_worklogs.assert_not_called()


class TestWorklogCollector:
    """Tests for WorklogCollector."""

    def test_keeps_first_error(self):
        """Test that later errors do not replace the first one."""
        collector = WorklogCollector()
        first = FetchError("first")

        collector.fail(first)
        collector.fail(FetchError("second"))

        assert collector.first_error is first

    def test_concurrent_adds(self, make_entry):
        """Test that concurrent writers do not lose entries."""
        collector = WorklogCollector()
        base = datetime(2025, 1, 13, tzinfo=timezone.utc)

        def worker(n):
            collector.add([
                make_entry(worklog_id=f"{n}-{i}", started=base + timedelta(minutes=i))
                for i in range(50)
            ])

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(collector.entries()) == 400
