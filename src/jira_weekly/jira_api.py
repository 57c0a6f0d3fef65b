"""
Jira REST API 整合模組

支援:
- Jira Basic Auth (username:password 或 username:API token)
- /myself, /search, /issue/{key}/worklog (GET / POST)

這裡只負責 HTTP 與狀態碼判斷，回應內容的解析交給各元件。
"""

import base64
import logging
from typing import Any, Optional

import requests

from .errors import AuthError, FetchError, WriteError

logger = logging.getLogger(__name__)

# 網路請求預設 timeout（秒）
DEFAULT_TIMEOUT = 30

API_PREFIX = "/rest/api/2"


def _is_success(resp) -> bool:
    return 200 <= resp.status_code < 300


def _safe_json(resp) -> Any:
    """解析 JSON，失敗回傳 None"""
    try:
        return resp.json()
    except ValueError:
        return None


def server_error_message(resp) -> Optional[str]:
    """
    取出 Jira 錯誤回應中的第一則訊息

    Jira 錯誤格式:
    {"errorMessages": ["..."], "errors": {"field": "message"}}
    """
    data = _safe_json(resp)
    if not isinstance(data, dict):
        return None

    messages = data.get("errorMessages")
    if isinstance(messages, list):
        for message in messages:
            if message:
                return str(message)

    errors = data.get("errors")
    if isinstance(errors, dict):
        for field_name, message in errors.items():
            return f"{field_name}: {message}"

    return None


class JiraClient:
    """Jira REST API 客戶端"""

    def __init__(self, base_url: str, username: str, password: str,
                 timeout: float = DEFAULT_TIMEOUT):
        """
        初始化 Jira 客戶端

        Args:
            base_url: Jira URL (e.g., https://jira.example.com)
            username: Jira 帳號
            password: 密碼或 API Token
            timeout: 每個請求的 timeout（秒）
        """
        self.base_url = base_url.strip().rstrip('/')
        self.username = username
        self.timeout = timeout
        self.session = requests.Session()

        auth_string = base64.b64encode(f"{username}:{password}".encode()).decode()
        self.session.headers.update({
            "Authorization": f"Basic {auth_string}",
            "Accept": "application/json",
        })

    def _url(self, path: str) -> str:
        return f"{self.base_url}{API_PREFIX}{path}"

    def get_myself(self) -> dict:
        """
        取得目前登入者資訊（同時用來驗證帳密）

        Raises:
            AuthError: 連線失敗、非 200 或回應中沒有 displayName
        """
        try:
            resp = self.session.get(self._url("/myself"), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise AuthError(f"無法連線到 {self.base_url}: {e}") from e

        if resp.status_code != 200:
            raise AuthError(f"認證失敗：HTTP {resp.status_code}", status_code=resp.status_code)

        data = _safe_json(resp)
        if not isinstance(data, dict) or not isinstance(data.get("displayName"), str):
            raise AuthError("無法解析使用者資訊", status_code=resp.status_code)
        return data

    def search_issues(self, jql: str, fields: str, max_results: int) -> dict:
        """
        以 JQL 搜尋 issue（只取第一頁）

        Raises:
            FetchError: 連線失敗、非 200 或回應不是 JSON 物件
        """
        params = {
            "jql": jql,
            "maxResults": max_results,
            "fields": fields,
        }
        try:
            resp = self.session.get(self._url("/search"), params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise FetchError(f"搜尋 issue 失敗: {e}") from e

        if resp.status_code != 200:
            message = server_error_message(resp) or f"搜尋 issue 失敗：HTTP {resp.status_code}"
            raise FetchError(message, status_code=resp.status_code)

        data = _safe_json(resp)
        if not isinstance(data, dict):
            raise FetchError("搜尋回應無法解析", status_code=resp.status_code)
        return data

    def get_worklogs(self, issue_key: str) -> Optional[dict]:
        """
        取得單一 issue 的所有 worklog

        Returns:
            回應 JSON；內容無法解析時回傳 None

        Raises:
            FetchError: 連線失敗或非 2xx
        """
        try:
            resp = self.session.get(self._url(f"/issue/{issue_key}/worklog"), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise FetchError(f"{issue_key}: 取得 worklog 失敗: {e}") from e

        if not _is_success(resp):
            raise FetchError(
                f"{issue_key}: 取得 worklog 失敗：HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        data = _safe_json(resp)
        if not isinstance(data, dict):
            logger.warning(f"Unparseable worklog response for {issue_key}")
            return None
        return data

    def add_worklog(self, issue_key: str, payload: dict) -> None:
        """
        新增 worklog 到 Jira issue

        Raises:
            WriteError: 連線失敗或非 2xx（帶伺服器的錯誤訊息）
        """
        try:
            resp = self.session.post(
                self._url(f"/issue/{issue_key}/worklog"),
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise WriteError(f"{issue_key}: 新增 worklog 失敗: {e}") from e

        if not _is_success(resp):
            message = server_error_message(resp) or f"Failed to create worklog (HTTP {resp.status_code})"
            raise WriteError(message, status_code=resp.status_code)
