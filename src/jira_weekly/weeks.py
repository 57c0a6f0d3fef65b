"""週區間計算"""

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional

from .models import TimeWindow


def start_of_week(day: date, week_start: int = 0) -> date:
    """取得 day 所在週的第一天（week_start: 0 = 週一 ... 6 = 週日）"""
    return day - timedelta(days=(day.weekday() - week_start) % 7)


def local_midnight(day: date, tz: Optional[tzinfo] = None) -> datetime:
    """
    day 當天的午夜

    tz 為 None 時使用系統時區，offset 依當天日期決定（會跟著夏令時間變動）。
    """
    if tz is None:
        return datetime.combine(day, time.min).astimezone()
    return datetime.combine(day, time.min, tzinfo=tz)


def week_window(reference: Optional[datetime] = None, weeks_back: int = 0,
                week_start: int = 0, tz: Optional[tzinfo] = None) -> TimeWindow:
    """
    取得 reference 所在週（或往前 weeks_back 週）的查詢區間

    start 為當週第一天的當地午夜，end 為下週第一天的當地午夜，兩端皆包含。
    兩端各自換算 offset，跨越夏令時間切換時仍對齊當地日曆週。

    Args:
        reference: 基準時間，預設為現在；沒有時區的時間視為本地時間
        weeks_back: 往前幾週（0 = 本週）
        week_start: 每週第一天（0 = 週一）
        tz: 區間使用的時區，None 表示系統時區
    """
    if reference is None:
        reference = datetime.now().astimezone()
    elif reference.tzinfo is None:
        reference = reference.astimezone()

    local_reference = reference.astimezone(tz)
    first_day = start_of_week(local_reference.date(), week_start) - timedelta(weeks=weeks_back)
    return TimeWindow(
        start=local_midnight(first_day, tz),
        end=local_midnight(first_day + timedelta(days=7), tz),
    )
