"""
錯誤分類

所有對外的失敗都以「訊息 + 粗略分類」回報，不做自動重試。
"""

from typing import Optional


class WorklogError(Exception):
    """所有 Jira Weekly 錯誤的基底類別"""

    category = "error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class AuthError(WorklogError):
    """認證失敗：帳密錯誤或 /myself 未回傳 200"""

    category = "auth"


class FetchError(WorklogError):
    """讀取失敗：連線錯誤、非 200 狀態或無法解析的回應"""

    category = "fetch"


class WriteError(WorklogError):
    """新增 worklog 失敗"""

    category = "write"


class ValidationError(WorklogError):
    """輸入驗證失敗（在任何網路請求之前）"""

    category = "validation"
