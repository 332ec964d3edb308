#!/usr/bin/env python3
"""
Syllable - Identity Providers
認証プロバイダの抽象化とアダプタを提供するモジュール
"""

import threading
import time
from abc import ABC, abstractmethod

import requests

from syllable.domain import BackendSettings

from .errors import BackendError

SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"


class IdentityProvider(ABC):
    """
    認証プロバイダの抽象基底クラス

    現在のユーザーIDと、ストアへのリクエストに付与するIDトークンを提供する。
    """

    @abstractmethod
    def current_user_id(self) -> str | None:
        """
        サインイン中のユーザーIDを返す

        Returns:
            str | None: ユーザーID（未サインインの場合はNone）
        """
        pass

    @abstractmethod
    def id_token(self) -> str | None:
        """
        リクエストに付与するIDトークンを返す

        Returns:
            str | None: IDトークン（不要・未サインインの場合はNone）
        """
        pass

    @abstractmethod
    def sign_out(self) -> None:
        """サインアウト"""
        pass


class StaticIdentityProvider(IdentityProvider):
    """
    固定ユーザーの認証プロバイダ

    memoryバックエンドやテストで使用する。
    """

    def __init__(self, user_id: str | None, token: str | None = None) -> None:
        self._user_id = user_id
        self._token = token

    def current_user_id(self) -> str | None:
        return self._user_id

    def id_token(self) -> str | None:
        return self._token if self._user_id else None

    def sign_out(self) -> None:
        self._user_id = None
        self._token = None


class FirebaseIdentityProvider(IdentityProvider):
    """
    Firebase Authのリフレッシュトークンによる認証プロバイダ

    責務:
    - リフレッシュトークンからIDトークンとユーザーIDを取得
    - 有効期限が近づいたIDトークンの更新
    - サインアウト時のトークン破棄

    Note: ブロッキングI/Oを行うため、非同期コードからはワーカースレッドで呼び出す
    """

    def __init__(
        self, settings: BackendSettings, session: requests.Session | None = None
    ) -> None:
        """
        Args:
            settings: バックエンド設定（APIキー、リフレッシュトークン）
            session: HTTPセッション（Noneの場合は新規作成）
        """
        self.settings = settings
        self._session = session or requests.Session()
        self._lock = threading.Lock()
        self._refresh_token = settings.refresh_token
        self._id_token: str | None = None
        self._user_id: str | None = None
        self._expires_at = 0.0

    def current_user_id(self) -> str | None:
        with self._lock:
            self._ensure_fresh()
            return self._user_id

    def id_token(self) -> str | None:
        with self._lock:
            self._ensure_fresh()
            return self._id_token

    def sign_out(self) -> None:
        with self._lock:
            self._refresh_token = None
            self._id_token = None
            self._user_id = None
            self._expires_at = 0.0

    def _ensure_fresh(self) -> None:
        """必要であればIDトークンを更新（ロック保持中に呼ぶ）"""
        if not self._refresh_token:
            return
        if self._id_token and time.time() < self._expires_at:
            return
        self._exchange_refresh_token()

    def _exchange_refresh_token(self) -> None:
        """
        セキュアトークンAPIでリフレッシュトークンをIDトークンに交換

        Raises:
            BackendError: 通信失敗またはトークン失効
        """
        try:
            response = self._session.post(
                SECURE_TOKEN_URL,
                params={"key": self.settings.api_key},
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": self._refresh_token,
                },
                timeout=self.settings.request_timeout_sec,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise BackendError(f"Token refresh failed: {e}") from e

        self._id_token = payload["id_token"]
        self._user_id = payload["user_id"]
        self._refresh_token = payload.get("refresh_token", self._refresh_token)
        expires_in = float(payload.get("expires_in", 3600))
        self._expires_at = (
            time.time() + expires_in - self.settings.token_refresh_margin_sec
        )
