"""
週工時矩陣

把一串 worklog 彙整成「issue x 7 天」的表格，並計算列、欄與總計。
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta, tzinfo
from typing import Iterable, Optional

from .models import WorklogEntry
from .weeks import start_of_week

DAYS_PER_WEEK = 7


@dataclass(frozen=True)
class AggregationMatrix:
    """彙整結果（唯讀，每次載入重新計算）"""
    days: tuple[date, ...] = ()
    issues: tuple[str, ...] = ()
    cells: dict[str, dict[date, int]] = field(default_factory=dict)   # issue_key -> day -> seconds
    row_totals: dict[str, int] = field(default_factory=dict)          # issue_key -> seconds
    column_totals: dict[date, int] = field(default_factory=dict)      # day -> seconds
    grand_total: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.days

    def cell(self, issue_key: str, day: date) -> int:
        return self.cells.get(issue_key, {}).get(day, 0)


def _local_day(entry: WorklogEntry, tz: Optional[tzinfo]) -> date:
    return entry.started.astimezone(tz).date()


def build_matrix(entries: Iterable[WorklogEntry], week_start: int = 0,
                 tz: Optional[tzinfo] = None) -> AggregationMatrix:
    """
    建立週工時矩陣

    以「最早一筆 worklog」所在的那一週為準，落在這 7 天以外的項目
    （例如時區差造成跨週）會被忽略。

    Args:
        entries: worklog 列表
        week_start: 每週第一天（0 = 週一）
        tz: 判斷日期用的時區，None 表示系統時區

    Returns:
        AggregationMatrix；沒有資料時回傳空矩陣
    """
    entries = list(entries)
    if not entries:
        return AggregationMatrix()

    earliest = min(entries, key=lambda e: e.started)
    first_day = start_of_week(_local_day(earliest, tz), week_start)
    days = tuple(first_day + timedelta(days=i) for i in range(DAYS_PER_WEEK))
    day_set = set(days)

    cells: dict[str, dict[date, int]] = defaultdict(lambda: defaultdict(int))
    for entry in entries:
        day = _local_day(entry, tz)
        if day not in day_set:
            continue
        cells[entry.issue_key][day] += entry.time_spent_seconds

    issues = tuple(sorted(cells))
    row_totals = {issue: sum(cells[issue].values()) for issue in issues}
    column_totals = {day: sum(cells[issue].get(day, 0) for issue in issues) for day in days}

    return AggregationMatrix(
        days=days,
        issues=issues,
        cells={issue: dict(cells[issue]) for issue in issues},
        row_totals=row_totals,
        column_totals=column_totals,
        grand_total=sum(row_totals.values()),
    )


def format_duration(seconds: int) -> str:
    """
    顯示用的時間格式

    0 -> "-"，整點 -> "2"，時分 -> "2: 30"，只有分鐘 -> "0:45"
    """
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if hours > 0 and minutes > 0:
        return f"{hours}: {minutes}"
    if hours > 0:
        return f"{hours}"
    if minutes > 0:
        return f"0:{minutes}"
    return "-"
