"""
資料模型
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Issue:
    """Jira issue（僅保留 key 與摘要）"""
    key: str                # e.g., "PROJ-123"
    summary: str


@dataclass(frozen=True)
class WorklogEntry:
    """從 Jira 解析出的一筆 worklog"""
    id: str
    issue_key: str
    issue_summary: str
    author_name: str
    started: datetime       # 含時區
    time_spent_seconds: int


@dataclass(frozen=True)
class TimeWindow:
    """查詢時間區間，start 與 end 皆包含在內"""
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass
class Session:
    """登入狀態，只由 SessionManager 修改"""
    base_url: str
    username: str
    secret: str = field(repr=False)
    display_name: Optional[str] = None
    authenticated: bool = False
