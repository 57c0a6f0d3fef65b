"""Issue 解析：以 JQL 取得候選 issue 清單"""

import logging

from .errors import FetchError
from .jira_api import JiraClient
from .models import Issue

logger = logging.getLogger(__name__)

# 只取一頁，超過的部分直接忽略（不做分頁）
SEARCH_PAGE_SIZE = 100
SEARCH_FIELDS = "key,summary"


def resolve_issues(client: JiraClient, jql: str) -> list[Issue]:
    """
    執行 JQL 搜尋並回傳 issue 清單

    Args:
        client: 已認證的 JiraClient
        jql: 搜尋條件

    Returns:
        最多 SEARCH_PAGE_SIZE 個 issue；格式不完整的項目會被略過

    Raises:
        FetchError: 請求失敗或回應缺少 issues
    """
    data = client.search_issues(jql, fields=SEARCH_FIELDS, max_results=SEARCH_PAGE_SIZE)

    raw_issues = data.get("issues")
    if not isinstance(raw_issues, list):
        raise FetchError("搜尋回應缺少 issue 資料")

    issues = []
    for item in raw_issues[:SEARCH_PAGE_SIZE]:
        if not isinstance(item, dict):
            continue
        key = item.get("key")
        fields = item.get("fields")
        summary = fields.get("summary") if isinstance(fields, dict) else None
        if not isinstance(key, str) or not isinstance(summary, str):
            logger.debug(f"Skipping malformed issue record: {item!r}")
            continue
        issues.append(Issue(key=key, summary=summary))

    total = data.get("total")
    if isinstance(total, int) and total > SEARCH_PAGE_SIZE:
        logger.info(f"Search matched {total} issues, only the first {SEARCH_PAGE_SIZE} are used")

    logger.info(f"Resolved {len(issues)} issues")
    return issues
