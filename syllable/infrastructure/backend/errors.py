#!/usr/bin/env python3
"""
Syllable - Backend Errors
バックエンドアダプタが送出する例外
"""


class BackendError(Exception):
    """リモートストア・Blobストア・認証の失敗"""


class BlobNotFoundError(BackendError):
    """指定パスにBlobが存在しない"""


class BlobTooLargeError(BackendError):
    """Blobが取得上限サイズを超えている"""

    def __init__(self, path: str, max_bytes: int) -> None:
        super().__init__(f"Blob at '{path}' exceeds {max_bytes} bytes")
        self.path = path
        self.max_bytes = max_bytes


class NotSignedInError(BackendError):
    """サインイン済みのユーザーが存在しない"""
