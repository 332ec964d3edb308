#!/usr/bin/env python3
"""
Syllable - Roster Loader Module
ユーザー一覧の購読とロスタースナップショットの組み立てを行うモジュール
"""

import asyncio
import dataclasses
from collections.abc import Mapping
from typing import Any

from syllable.domain import (
    MessageLevel,
    RosterSnapshot,
    RosterUpdatedEvent,
    Status,
    StorageSettings,
    UserRecord,
    ViewerContext,
    ViewerRecordResolvedEvent,
    post_message,
    roster_updated,
    viewer_record_resolved,
)
from syllable.domain.constants import (
    PROFILE_PICTURE_PATH,
    STATUS_PATH,
    STATUSES_PATH,
    USER_PATH,
    USERS_PATH,
)
from syllable.infrastructure.backend import (
    BackendError,
    BlobNotFoundError,
    BlobStore,
    RecordStore,
)


class RosterLoader:
    """
    ロスターローダー

    責務:
    - `users` の購読（変更通知のたびにロスターを作り直す）
    - `statuses/{viewerId}` の購読（変化したレコードだけを差し替える）
    - ユーザーごとのステータスと画像の並行取得
    - 全件の組み立て完了後に一度だけroster_updatedを発行
    - 閲覧者自身のレコードをviewer_record_resolvedで通知

    読み込みの失敗はレコード単位で既定値（画像なし・ステータスNONE）に置き換え、
    ロスター全体は失敗させない。
    """

    def __init__(
        self,
        record_store: RecordStore,
        blob_store: BlobStore,
        viewer: ViewerContext,
        storage_settings: StorageSettings,
    ) -> None:
        self.record_store = record_store
        self.blob_store = blob_store
        self.viewer = viewer
        self.storage_settings = storage_settings
        self.snapshot = RosterSnapshot.empty()

    # ========================================
    # レコード単位の取得
    # ========================================
    async def _fetch_status(self, subject_id: str) -> Status:
        path = STATUS_PATH.format(viewer_id=self.viewer.user_id, subject_id=subject_id)
        try:
            value = await self.record_store.get(path)
        except BackendError as e:
            post_message(f"Status of {subject_id} unavailable: {e}", MessageLevel.WARNING)
            return Status.NONE
        return Status.from_remote(value)

    async def _fetch_picture(self, user_id: str) -> bytes | None:
        path = PROFILE_PICTURE_PATH.format(user_id=user_id)
        try:
            return await self.blob_store.get(
                path, self.storage_settings.profile_picture_max_bytes
            )
        except BlobNotFoundError:
            # 画像未設定は正常
            return None
        except BackendError as e:
            post_message(f"Picture of {user_id} unavailable: {e}", MessageLevel.WARNING)
            return None

    async def _assemble(self, user_id: str, fields: Any) -> UserRecord:
        """基本項目・ステータス・画像を1レコードにまとめる"""
        status, picture = await asyncio.gather(
            self._fetch_status(user_id), self._fetch_picture(user_id)
        )
        return UserRecord.from_fields(
            user_id,
            fields if isinstance(fields, Mapping) else {},
            profile_picture=picture,
            status=status,
        )

    # ========================================
    # スナップショット
    # ========================================
    async def build_snapshot(self, users: Mapping[str, Any] | None) -> RosterSnapshot:
        """
        変更通知の内容からスナップショットを組み立てる

        全ユーザーの取得をgatherで待ち合わせるため、返るスナップショットは
        常に宣言件数分のレコードを持つ。

        Args:
            users: ユーザーID → フィールドマッピング（Noneは0件）

        Returns:
            RosterSnapshot: 姓の昇順に並んだスナップショット
        """
        entries = dict(users or {})
        records = await asyncio.gather(
            *(self._assemble(user_id, fields) for user_id, fields in entries.items())
        )
        return RosterSnapshot(records, declared_total=len(entries))

    async def handle_change(self, users: Mapping[str, Any] | None) -> RosterSnapshot:
        """
        変更通知を1件処理し、スナップショットを発行

        Returns:
            RosterSnapshot: 発行したスナップショット
        """
        snapshot = await self.build_snapshot(users)
        self.snapshot = snapshot

        own_record = snapshot.get(self.viewer.user_id)
        if own_record is not None:
            viewer_record_resolved.send(
                self, event=ViewerRecordResolvedEvent(record=own_record)
            )
        roster_updated.send(self, event=RosterUpdatedEvent(snapshot=snapshot))
        return snapshot

    def handle_statuses(self, statuses: Mapping[str, Any] | None) -> list[str]:
        """
        ステータス一覧の変更通知を1件処理し、変化したレコードを差し替える

        他の端末・セッションでの書き込みもここで反映される。
        1件以上差し替えた場合のみroster_updatedを発行する。

        Args:
            statuses: 対象ユーザーID → リモートのステータス値（Noneは全件未設定）

        Returns:
            list[str]: 差し替えたユーザーID
        """
        values = statuses if isinstance(statuses, Mapping) else {}
        refreshed: list[str] = []
        for record in list(self.snapshot):
            status = Status.from_remote(values.get(record.id))
            if status != record.status:
                self.snapshot.replace(dataclasses.replace(record, status=status))
                refreshed.append(record.id)

        if refreshed:
            roster_updated.send(self, event=RosterUpdatedEvent(snapshot=self.snapshot))
        return refreshed

    async def _watch_users(self) -> None:
        try:
            async for users in self.record_store.subscribe(USERS_PATH):
                await self.handle_change(users)
        except BackendError as e:
            post_message(f"Roster subscription ended: {e}", MessageLevel.ERROR)

    async def _watch_statuses(self) -> None:
        path = STATUSES_PATH.format(viewer_id=self.viewer.user_id)
        try:
            async for statuses in self.record_store.subscribe(path):
                self.handle_statuses(statuses)
        except BackendError as e:
            post_message(f"Status subscription ended: {e}", MessageLevel.ERROR)

    async def run(self) -> None:
        """
        `users` と `statuses/{viewerId}` を購読し、ロスターを最新に保つ

        `users` の変更ではロスター全体を作り直し、ステータスの変更では
        該当レコードだけを差し替える。タスクのキャンセルで購読を終了する。
        どちらかの購読が中断された場合はERRORを通知し、もう一方も止めて戻る。
        """
        watchers = [
            asyncio.create_task(self._watch_users()),
            asyncio.create_task(self._watch_statuses()),
        ]
        try:
            done, _ = await asyncio.wait(
                watchers, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in watchers:
                task.cancel()
            await asyncio.gather(*watchers, return_exceptions=True)

        for task in done:
            task.result()

    async def fetch_user(self, user_id: str) -> UserRecord | None:
        """
        1ユーザー分のレコードを1回だけ取得（ステータスはNONE）

        Returns:
            UserRecord | None: レコード（存在しない・取得失敗時はNone）
        """
        try:
            fields = await self.record_store.get(USER_PATH.format(user_id=user_id))
        except BackendError as e:
            post_message(f"Profile of {user_id} unavailable: {e}", MessageLevel.WARNING)
            return None
        if not isinstance(fields, Mapping):
            return None
        picture = await self._fetch_picture(user_id)
        return UserRecord.from_fields(user_id, fields, profile_picture=picture)
