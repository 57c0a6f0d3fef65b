"""
Credential store

以 (service, account) 為 key 存取密碼。正式環境使用系統 keyring
（macOS Keychain、Windows Credential Locker、Secret Service）。
"""

import logging
from typing import Optional, Protocol

import keyring
from keyring.errors import PasswordDeleteError

logger = logging.getLogger(__name__)

SERVICE_NAME = "JiraWorklogApp"


class CredentialStore(Protocol):
    """Session Manager 需要的最小介面"""

    def save(self, service: str, account: str, secret: str) -> None: ...

    def read(self, service: str, account: str) -> Optional[str]: ...

    def delete(self, service: str, account: str) -> None: ...


class KeyringCredentialStore:
    """使用 keyring 套件的 credential store（後寫入者為準）"""

    def save(self, service: str, account: str, secret: str) -> None:
        keyring.set_password(service, account, secret)

    def read(self, service: str, account: str) -> Optional[str]:
        return keyring.get_password(service, account)

    def delete(self, service: str, account: str) -> None:
        try:
            keyring.delete_password(service, account)
        except PasswordDeleteError:
            # 本來就不存在，視為已刪除
            logger.debug(f"No stored secret for {account} in {service}")
