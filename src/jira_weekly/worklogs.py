"""
Worklog 抓取

對每個 issue 同時發出一個請求（不限制並行數），全部完成後才合併結果。
任何一個請求失敗時整批視為失敗，已取得的資料全部丟棄。
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Optional

from .errors import FetchError
from .jira_api import JiraClient
from .models import Issue, TimeWindow, WorklogEntry

logger = logging.getLogger(__name__)

# Jira 回傳格式: 2024-05-13T09:00:00.000+0200
STARTED_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
)


def parse_started(value: str) -> Optional[datetime]:
    """解析 worklog 的 started 欄位，失敗回傳 None"""
    for fmt in STARTED_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def parse_worklog(raw: dict, issue: Issue) -> Optional[WorklogEntry]:
    """
    解析單筆 worklog

    欄位缺漏、型別不符或時間格式錯誤時回傳 None
    """
    author = raw.get("author")
    author_name = author.get("displayName") if isinstance(author, dict) else None
    started_str = raw.get("started")
    seconds = raw.get("timeSpentSeconds")
    worklog_id = raw.get("id")

    if not isinstance(author_name, str) or not isinstance(started_str, str):
        return None
    if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds < 0:
        return None
    if isinstance(worklog_id, bool) or not isinstance(worklog_id, (str, int)):
        return None

    started = parse_started(started_str)
    if started is None:
        return None

    return WorklogEntry(
        id=str(worklog_id),
        issue_key=issue.key,
        issue_summary=issue.summary,
        author_name=author_name,
        started=started,
        time_spent_seconds=seconds,
    )


class WorklogCollector:
    """多個執行緒共用的結果收集器（以 lock 保護）"""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: list[WorklogEntry] = []
        self._first_error: Optional[FetchError] = None

    def add(self, entries: list[WorklogEntry]):
        with self._lock:
            self._entries.extend(entries)

    def fail(self, error: FetchError):
        with self._lock:
            if self._first_error is None:
                self._first_error = error

    @property
    def first_error(self) -> Optional[FetchError]:
        with self._lock:
            return self._first_error

    def entries(self) -> list[WorklogEntry]:
        with self._lock:
            return sorted(self._entries, key=lambda e: (e.started, e.issue_key, e.id))


def _fetch_issue_worklogs(
    client: JiraClient,
    issue: Issue,
    window: TimeWindow,
    current_user: str,
    collector: WorklogCollector,
):
    """抓取並過濾單一 issue 的 worklog，結果交給 collector"""
    try:
        data = client.get_worklogs(issue.key)
    except FetchError as e:
        logger.warning(f"Worklog fetch failed for {issue.key}: {e}")
        collector.fail(e)
        return

    if data is None:
        return
    raw_worklogs = data.get("worklogs")
    if not isinstance(raw_worklogs, list):
        logger.warning(f"Worklog response for {issue.key} has no worklogs list")
        return

    kept = []
    for raw in raw_worklogs:
        if not isinstance(raw, dict):
            continue
        entry = parse_worklog(raw, issue)
        if entry is None:
            logger.debug(f"Skipping malformed worklog in {issue.key}: {raw.get('id')!r}")
            continue
        if entry.author_name != current_user:
            continue
        if window.contains(entry.started):
            kept.append(entry)

    collector.add(kept)


def fetch_filtered_worklogs(
    client: JiraClient,
    issues: list[Issue],
    window: TimeWindow,
    current_user: str,
) -> list[WorklogEntry]:
    """
    同時抓取多個 issue 的 worklog，只保留 current_user 在 window 內的項目

    Args:
        client: 已認證的 JiraClient
        issues: 要查詢的 issue
        window: 時間區間（兩端皆包含）
        current_user: 登入者的 displayName

    Returns:
        依開始時間排序的 worklog

    Raises:
        FetchError: 任一 issue 的請求失敗（整批丟棄）
    """
    if not issues:
        return []

    collector = WorklogCollector()
    # with 區塊結束時會等待所有工作完成
    with ThreadPoolExecutor(max_workers=len(issues), thread_name_prefix="worklog-fetch") as executor:
        futures = [
            executor.submit(_fetch_issue_worklogs, client, issue, window, current_user, collector)
            for issue in issues
        ]
    for future in futures:
        future.result()

    error = collector.first_error
    if error is not None:
        raise error

    entries = collector.entries()
    logger.info(f"Fetched {len(entries)} worklogs from {len(issues)} issues "
                f"({window.start:%Y-%m-%d} ~ {window.end:%Y-%m-%d})")
    return entries
