"""
定時重新整理

每個週期: resolve_issues -> 本週 / 上週 worklog 同時抓取 -> 各自建立矩陣。
週期可以重疊；每個週期有自己的 generation，較舊的結果會被丟棄，
不會覆蓋較新的資料。
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Callable, Optional

from .config import DEFAULT_JQL
from .errors import WorklogError
from .issues import resolve_issues
from .jira_api import JiraClient
from .matrix import AggregationMatrix, build_matrix
from .models import Issue
from .weeks import week_window
from .worklogs import fetch_filtered_worklogs

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 300


@dataclass(frozen=True)
class WeeklyReport:
    """一次重新整理的結果"""
    generation: int
    refreshed_at: datetime
    current_week: AggregationMatrix
    previous_week: AggregationMatrix
    issues: list[Issue] = field(default_factory=list)


class RefreshScheduler:
    """定時與手動觸發的重新整理"""

    def __init__(
        self,
        client: JiraClient,
        current_user: str,
        jql: str = DEFAULT_JQL,
        interval: float = DEFAULT_REFRESH_INTERVAL,
        week_start: int = 0,
        tz: Optional[tzinfo] = None,
        on_update: Optional[Callable[[WeeklyReport], None]] = None,
        on_error: Optional[Callable[[WorklogError], None]] = None,
        clock: Callable[[], datetime] = lambda: datetime.now().astimezone(),
    ):
        """
        Args:
            client: 已認證的 JiraClient
            current_user: 登入者 displayName，用來過濾 worklog
            jql: issue 搜尋條件
            interval: 自動重新整理間隔（秒）
            week_start: 每週第一天（0 = 週一）
            tz: 矩陣判斷日期用的時區
            on_update: 成功時的回調
            on_error: 失敗時的回調
            clock: 取得目前時間（測試時可替換）
        """
        self.client = client
        self.current_user = current_user
        self.jql = jql
        self.interval = interval
        self.week_start = week_start
        self.tz = tz
        self.on_update = on_update
        self.on_error = on_error
        self.clock = clock

        self._lock = threading.Lock()
        self._generation = 0
        self._latest: Optional[WeeklyReport] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def latest(self) -> Optional[WeeklyReport]:
        with self._lock:
            return self._latest

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def _next_generation(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def _is_superseded(self, generation: int) -> bool:
        """呼叫端需持有 _lock"""
        return generation != self._generation

    def refresh(self) -> Optional[WeeklyReport]:
        """
        執行一次完整的重新整理（同步）

        Returns:
            新的 WeeklyReport；若在完成前已有較新的週期開始則回傳 None

        Raises:
            WorklogError: 任一步驟失敗（已被較新週期取代的失敗不會拋出）
        """
        generation = self._next_generation()
        now = self.clock()
        current_window = week_window(now, weeks_back=0, week_start=self.week_start, tz=self.tz)
        previous_window = week_window(now, weeks_back=1, week_start=self.week_start, tz=self.tz)

        logger.info(f"Refresh #{generation} started")
        try:
            issues = resolve_issues(self.client, self.jql)

            with ThreadPoolExecutor(max_workers=2, thread_name_prefix="week-fetch") as executor:
                current_future = executor.submit(
                    fetch_filtered_worklogs, self.client, issues, current_window, self.current_user)
                previous_future = executor.submit(
                    fetch_filtered_worklogs, self.client, issues, previous_window, self.current_user)
            current_entries = current_future.result()
            previous_entries = previous_future.result()
        except WorklogError as e:
            with self._lock:
                if self._is_superseded(generation):
                    logger.debug(f"Dropping error from refresh #{generation}, "
                                 f"superseded by #{self._generation}: {e}")
                    return None
            raise

        report = WeeklyReport(
            generation=generation,
            refreshed_at=now,
            current_week=build_matrix(current_entries, self.week_start, self.tz),
            previous_week=build_matrix(previous_entries, self.week_start, self.tz),
            issues=issues,
        )

        with self._lock:
            if self._is_superseded(generation):
                logger.debug(f"Discarding refresh #{generation}, superseded by #{self._generation}")
                return None
            self._latest = report

        logger.info(f"Refresh #{generation} finished: "
                    f"{report.current_week.grand_total}s this week, "
                    f"{report.previous_week.grand_total}s last week")
        if self.on_update:
            self.on_update(report)
        return report

    def _run_cycle(self):
        """背景執行一次週期，錯誤交給 on_error"""
        try:
            self.refresh()
        except WorklogError as e:
            logger.warning(f"Refresh failed: {e}")
            if self.on_error:
                self.on_error(e)

    def request_refresh(self) -> threading.Thread:
        """在背景立即觸發一次重新整理（不等待完成）"""
        thread = threading.Thread(target=self._run_cycle, name="refresh-on-demand", daemon=True)
        thread.start()
        return thread

    def _loop(self):
        self._run_cycle()
        while not self._stop.wait(self.interval):
            self._run_cycle()

    def start(self):
        """啟動定時重新整理（立即執行第一次）"""
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="refresh-timer", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None):
        """停止定時重新整理"""
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
