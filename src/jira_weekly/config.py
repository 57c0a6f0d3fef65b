"""
配置管理模組
"""

import json
import logging
from pathlib import Path
from dataclasses import dataclass, asdict

logger = logging.getLogger(__name__)


CONFIG_DIR = Path.home() / ".jira-weekly"
CONFIG_FILE = CONFIG_DIR / "config.json"

# 預設查詢：本週與上週自己記錄過工時的 issue
DEFAULT_JQL = (
    "worklogAuthor = currentUser() AND worklogDate >= startOfWeek(-1) "
    "AND worklogDate <= endOfWeek()"
)


@dataclass
class Config:
    """應用程式配置（密碼不存在這裡，存在 credential store）"""
    jira_url: str = ""                    # e.g., https://jira.example.com
    jira_username: str = ""               # Basic auth 帳號
    jql: str = DEFAULT_JQL                # issue 搜尋條件
    refresh_interval: int = 300           # 自動重新整理間隔（秒）
    week_start: int = 0                   # 每週第一天，0 = 週一（同 datetime.weekday）
    request_timeout: int = 30             # 網路請求 timeout（秒）

    @classmethod
    def load(cls) -> "Config":
        """載入配置"""
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = json.load(f)
                return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
            except (OSError, ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Ignoring unreadable config {CONFIG_FILE}: {e}")
        return cls()

    def save(self):
        """儲存配置"""
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, 'w') as f:
            json.dump(asdict(self), f, indent=2)
        # 設定檔案權限為僅擁有者可讀寫
        CONFIG_FILE.chmod(0o600)

    def is_configured(self) -> bool:
        """檢查是否已配置必要項目"""
        return bool(self.jira_url and self.jira_username)
