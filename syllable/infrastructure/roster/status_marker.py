#!/usr/bin/env python3
"""
Syllable - Status Marker Module
閲覧者から見た学習ステータスの更新
"""

from syllable.domain import (
    MessageLevel,
    Status,
    StatusChangedEvent,
    UserRecord,
    ViewerContext,
    post_message,
    status_changed,
)
from syllable.domain.constants import STATUS_PATH
from syllable.infrastructure.backend import BackendError, RecordStore


class StatusMarker:
    """
    学習ステータスの書き込み

    リモートへの書き込みが成功した場合のみレコードを更新してイベントを発行する。
    NONEへの変更はノードの削除として書き込む。
    """

    def __init__(self, record_store: RecordStore, viewer: ViewerContext) -> None:
        self.record_store = record_store
        self.viewer = viewer

    async def mark(self, record: UserRecord, status: Status) -> bool:
        """
        ステータスを変更

        Args:
            record: 対象ユーザーのレコード（成功時にその場で更新）
            status: 新しいステータス

        Returns:
            bool: リモートに書き込んだかどうか
        """
        if record.status == status:
            post_message(f"{record.full_name} is already marked '{status.value}'")
            return False

        path = STATUS_PATH.format(viewer_id=self.viewer.user_id, subject_id=record.id)
        try:
            if status == Status.NONE:
                await self.record_store.delete(path)
            else:
                await self.record_store.write(path, status.value)
        except BackendError as e:
            post_message(f"Cannot update status: {e}", MessageLevel.ERROR)
            return False

        record.set_status(status)
        status_changed.send(
            self, event=StatusChangedEvent(subject_id=record.id, status=status)
        )
        return True
