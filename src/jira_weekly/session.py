"""
Session 管理

狀態機: UNAUTHENTICATED -> AUTHENTICATING -> AUTHENTICATED
登出、invalidate 或重新認證失敗都會回到 UNAUTHENTICATED。
本模組不做自動重試，何時重新登入由呼叫端決定。
"""

import logging
import threading
from dataclasses import replace
from enum import Enum
from typing import Callable, Optional

from .config import Config
from .credentials import SERVICE_NAME, CredentialStore, KeyringCredentialStore
from .errors import AuthError
from .jira_api import JiraClient
from .models import Session

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class SessionManager:
    """擁有 Jira URL、使用者身分與認證狀態"""

    def __init__(
        self,
        config: Optional[Config] = None,
        credential_store: Optional[CredentialStore] = None,
        client_factory: Callable[..., JiraClient] = JiraClient,
    ):
        """
        Args:
            config: 應用程式配置，預設從設定檔載入
            credential_store: 密碼存放處，預設使用 keyring
            client_factory: 建立 JiraClient 的函式（測試時可替換）
        """
        self.config = config or Config.load()
        self.credential_store = credential_store or KeyringCredentialStore()
        self._client_factory = client_factory
        self._lock = threading.Lock()
        self._state = SessionState.UNAUTHENTICATED
        self._session: Optional[Session] = None
        self._client: Optional[JiraClient] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[Session]:
        """目前的 session（複本，呼叫端修改不影響內部狀態）"""
        if self._session is None:
            return None
        return replace(self._session)

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    @property
    def display_name(self) -> Optional[str]:
        return self._session.display_name if self._session else None

    @property
    def client(self) -> JiraClient:
        """已認證的 JiraClient"""
        if not self.is_authenticated or self._client is None:
            raise AuthError("尚未登入 Jira")
        return self._client

    def login(self, base_url: str, username: str, secret: str) -> Session:
        """
        以 /myself 驗證帳密並建立 session

        Raises:
            AuthError: 驗證失敗，狀態維持未登入
        """
        base_url = base_url.strip()
        with self._lock:
            self._state = SessionState.AUTHENTICATING
            self._session = None
            self._client = None

            client = self._client_factory(base_url, username, secret,
                                          timeout=self.config.request_timeout)
            try:
                myself = client.get_myself()
            except AuthError:
                self._state = SessionState.UNAUTHENTICATED
                logger.warning(f"Login failed for {username} at {base_url}")
                raise

            session = Session(
                base_url=base_url,
                username=username,
                secret=secret,
                display_name=myself["displayName"],
                authenticated=True,
            )
            self._session = session
            self._client = client
            self._state = SessionState.AUTHENTICATED

        logger.info(f"Logged in to {base_url} as {session.display_name}")
        return replace(session)

    def try_auto_login(self, credential_store: Optional[CredentialStore] = None) -> Optional[Session]:
        """
        使用先前儲存的帳密自動登入

        沒有儲存的帳密或登入失敗都回傳 None，不拋出例外。
        """
        store = credential_store or self.credential_store
        base_url = self.config.jira_url
        username = self.config.jira_username
        if not base_url or not username:
            return None

        secret = store.read(SERVICE_NAME, username)
        if not secret:
            return None

        try:
            return self.login(base_url, username, secret)
        except AuthError as e:
            logger.warning(f"Auto login failed: {e}")
            return None

    def logout(self):
        """清除記憶體中的 session，不刪除已儲存的密碼"""
        with self._lock:
            self._session = None
            self._client = None
            self._state = SessionState.UNAUTHENTICATED
        logger.info("Logged out")

    def invalidate(self):
        """其他元件發現認證失效時呼叫"""
        if self.is_authenticated:
            logger.warning("Session invalidated, re-authentication required")
        self.logout()

    def remember_credentials(self):
        """登入成功後儲存 URL、帳號（設定檔）與密碼（credential store）"""
        if not self.is_authenticated or self._session is None:
            raise AuthError("尚未登入 Jira")
        self.config.jira_url = self._session.base_url
        self.config.jira_username = self._session.username
        self.config.save()
        self.credential_store.save(SERVICE_NAME, self._session.username, self._session.secret)

    def forget_credentials(self):
        """刪除已儲存的密碼"""
        if self.config.jira_username:
            self.credential_store.delete(SERVICE_NAME, self.config.jira_username)
