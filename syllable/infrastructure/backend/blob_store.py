#!/usr/bin/env python3
"""
Syllable - Blob Stores
オブジェクトストレージの抽象化とアダプタを提供するモジュール
"""

import asyncio
from abc import ABC, abstractmethod
from urllib.parse import quote

import requests

from syllable.domain import BackendSettings

from .errors import BackendError, BlobNotFoundError, BlobTooLargeError
from .identity import IdentityProvider

STORAGE_API_URL = "https://firebasestorage.googleapis.com/v0/b/{bucket}/o"
_DOWNLOAD_CHUNK_BYTES = 64 * 1024


class BlobStore(ABC):
    """
    Blobストアの抽象基底クラス

    取得には上限サイズを指定し、超過したBlobは部分的に返さず取得失敗とする。
    """

    @abstractmethod
    async def get(self, path: str, max_bytes: int) -> bytes:
        """
        Blobを取得

        Args:
            path: Blobのパス
            max_bytes: 最大サイズ（バイト）

        Returns:
            bytes: Blobの内容

        Raises:
            BlobNotFoundError: Blobが存在しない
            BlobTooLargeError: max_bytesを超過
            BackendError: その他の取得失敗
        """
        pass

    @abstractmethod
    async def put(self, path: str, data: bytes, content_type: str) -> None:
        """
        Blobをアップロード

        Raises:
            BackendError: アップロード失敗
        """
        pass


class InMemoryBlobStore(BlobStore):
    """プロセス内メモリ上のBlobストア（オフライン確認・テスト用）"""

    def __init__(self, blobs: dict[str, bytes] | None = None) -> None:
        self.blobs: dict[str, bytes] = dict(blobs or {})
        self.content_types: dict[str, str] = {}

    async def get(self, path: str, max_bytes: int) -> bytes:
        if path not in self.blobs:
            raise BlobNotFoundError(f"No blob at '{path}'")
        data = self.blobs[path]
        if len(data) > max_bytes:
            raise BlobTooLargeError(path, max_bytes)
        return data

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        self.blobs[path] = bytes(data)
        self.content_types[path] = content_type


class FirebaseBlobStore(BlobStore):
    """
    Firebase Storage REST APIクライアント

    責務:
    - 上限サイズ付きのストリーミングダウンロード
    - Content-Type付きアップロード
    - 通信エラーのBackendErrorへの変換
    """

    def __init__(
        self,
        settings: BackendSettings,
        identity: IdentityProvider,
        session: requests.Session | None = None,
    ) -> None:
        """
        Args:
            settings: バックエンド設定（バケット名、タイムアウト）
            identity: IDトークンの取得元
            session: HTTPセッション（Noneの場合は新規作成）
        """
        assert settings.storage_bucket is not None
        self.settings = settings
        self.identity = identity
        self._base_url = STORAGE_API_URL.format(bucket=settings.storage_bucket)
        self._session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        token = self.identity.id_token()
        return {"Authorization": f"Firebase {token}"} if token else {}

    def _download(self, path: str, max_bytes: int) -> bytes:
        """上限サイズを確認しながらダウンロード（ワーカースレッドで実行）"""
        url = f"{self._base_url}/{quote(path, safe='')}"
        try:
            with self._session.get(
                url,
                params={"alt": "media"},
                headers=self._headers(),
                stream=True,
                timeout=self.settings.request_timeout_sec,
            ) as response:
                if response.status_code == 404:
                    raise BlobNotFoundError(f"No blob at '{path}'")
                response.raise_for_status()

                declared = response.headers.get("Content-Length")
                if declared is not None and int(declared) > max_bytes:
                    raise BlobTooLargeError(path, max_bytes)

                buffer = bytearray()
                for chunk in response.iter_content(chunk_size=_DOWNLOAD_CHUNK_BYTES):
                    buffer.extend(chunk)
                    if len(buffer) > max_bytes:
                        raise BlobTooLargeError(path, max_bytes)
                return bytes(buffer)
        except (requests.RequestException, ValueError) as e:
            raise BackendError(f"Download of '{path}' failed: {e}") from e

    def _upload(self, path: str, data: bytes, content_type: str) -> None:
        """アップロード（ワーカースレッドで実行）"""
        headers = {**self._headers(), "Content-Type": content_type}
        try:
            response = self._session.post(
                self._base_url,
                params={"uploadType": "media", "name": path},
                headers=headers,
                data=data,
                timeout=self.settings.request_timeout_sec,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise BackendError(f"Upload of '{path}' failed: {e}") from e

    async def get(self, path: str, max_bytes: int) -> bytes:
        return await asyncio.to_thread(self._download, path, max_bytes)

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        await asyncio.to_thread(self._upload, path, data, content_type)
