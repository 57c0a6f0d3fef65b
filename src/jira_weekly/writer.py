"""新增 worklog"""

import logging
import math
from datetime import datetime, timezone
from typing import Optional

from .errors import ValidationError
from .jira_api import JiraClient

logger = logging.getLogger(__name__)


def parse_hours(text: str) -> float:
    """
    解析使用者輸入的時數

    Raises:
        ValidationError: 非數字、負數、NaN 或無限大
    """
    try:
        hours = float(str(text).strip())
    except ValueError:
        raise ValidationError(f"Invalid hours: {text!r}") from None
    if math.isnan(hours) or math.isinf(hours) or hours < 0:
        raise ValidationError(f"Invalid hours: {text!r}")
    return hours


def format_started(started: datetime) -> str:
    """
    格式化為 Jira 寫入格式（固定 UTC）

    e.g., 2025-01-15T08:30:00.000+0000；沒有時區的時間視為本地時間
    """
    utc = started.astimezone(timezone.utc)
    return f"{utc:%Y-%m-%dT%H:%M:%S}.{utc.microsecond // 1000:03d}+0000"


def build_worklog_payload(hours: float, started: datetime, comment: Optional[str] = None) -> dict:
    """建立 POST /issue/{key}/worklog 的 body，秒數無條件捨去"""
    payload = {
        "timeSpentSeconds": int(hours * 3600),
        "started": format_started(started),
    }
    if comment:
        payload["comment"] = comment
    return payload


def create_worklog(
    client: JiraClient,
    issue_key: str,
    hours: float,
    started: Optional[datetime] = None,
    comment: Optional[str] = None,
):
    """
    在 issue 上新增一筆 worklog

    Args:
        client: 已認證的 JiraClient
        issue_key: e.g., "PROJ-123"
        hours: 時數（>= 0）
        started: 開始時間，預設為現在
        comment: 說明，空字串時不送出

    Raises:
        ValidationError: issue key 或時數無效
        WriteError: Jira 回傳非 2xx 或連線失敗
    """
    issue_key = (issue_key or "").strip()
    if not issue_key:
        raise ValidationError("Issue key is required")
    if isinstance(hours, bool) or math.isnan(hours) or math.isinf(hours) or hours < 0:
        raise ValidationError(f"Invalid hours: {hours!r}")

    payload = build_worklog_payload(hours, started or datetime.now().astimezone(), comment)
    client.add_worklog(issue_key, payload)
    logger.info(f"Logged {payload['timeSpentSeconds']}s on {issue_key}")
