#!/usr/bin/env python3
"""
Syllable - Backend Factory
設定に基づいてバックエンドアダプタ一式を生成するモジュール
"""

from dataclasses import dataclass

import requests

from syllable.domain import BackendKind, BackendSettings

from .blob_store import BlobStore, FirebaseBlobStore, InMemoryBlobStore
from .identity import FirebaseIdentityProvider, IdentityProvider, StaticIdentityProvider
from .record_store import FirebaseRecordStore, InMemoryRecordStore, RecordStore


@dataclass(frozen=True)
class Backend:
    """バックエンドアダプタ一式"""

    records: RecordStore
    blobs: BlobStore
    identity: IdentityProvider


def create_backend(settings: BackendSettings) -> Backend:
    """
    設定に基づいてバックエンドを生成

    Args:
        settings: バックエンド設定

    Returns:
        Backend: 設定された種別のアダプタ一式

    Raises:
        ValueError: バックエンド種別が無効な場合（Pydantic検証済みのため通常は到達しない）
    """
    match settings.kind:
        case BackendKind.FIREBASE:
            session = requests.Session()
            identity = FirebaseIdentityProvider(settings=settings, session=session)
            return Backend(
                records=FirebaseRecordStore(
                    settings=settings, identity=identity, session=session
                ),
                blobs=FirebaseBlobStore(
                    settings=settings, identity=identity, session=session
                ),
                identity=identity,
            )
        case BackendKind.MEMORY:
            return Backend(
                records=InMemoryRecordStore(),
                blobs=InMemoryBlobStore(),
                identity=StaticIdentityProvider(user_id=settings.memory_user_id),
            )
        case _:
            raise ValueError(
                f"Invalid backend.kind: '{settings.kind}'. "
                f"Must be '{BackendKind.FIREBASE}' or '{BackendKind.MEMORY}'"
            )
