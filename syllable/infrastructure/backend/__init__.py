#!/usr/bin/env python3
"""
Syllable - Backend Infrastructure
ホスティングバックエンド（レコードストア・Blobストア・認証）のアダプタ層
"""

# 例外
from .errors import (
    BackendError,
    BlobNotFoundError,
    BlobTooLargeError,
    NotSignedInError,
)

# 認証
from .identity import (
    FirebaseIdentityProvider,
    IdentityProvider,
    StaticIdentityProvider,
)

# レコードストア
from .record_store import FirebaseRecordStore, InMemoryRecordStore, RecordStore

# Blobストア
from .blob_store import BlobStore, FirebaseBlobStore, InMemoryBlobStore

# ファクトリ
from .factory import Backend, create_backend

__all__ = [
    # 例外
    "BackendError",
    "BlobNotFoundError",
    "BlobTooLargeError",
    "NotSignedInError",
    # 認証
    "FirebaseIdentityProvider",
    "IdentityProvider",
    "StaticIdentityProvider",
    # レコードストア
    "FirebaseRecordStore",
    "InMemoryRecordStore",
    "RecordStore",
    # Blobストア
    "BlobStore",
    "FirebaseBlobStore",
    "InMemoryBlobStore",
    # ファクトリ
    "Backend",
    "create_backend",
]
