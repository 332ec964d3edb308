#!/usr/bin/env python3
"""
Syllable - Core Application
プレゼンテーション層：SyllableAppコアロジック（セッション単位の配線）
"""

import asyncio

from syllable.domain import (
    RosterFilter,
    RosterSnapshot,
    RosterUpdatedEvent,
    Settings,
    Status,
    StatusChangedEvent,
    UserRecord,
    ViewerContext,
    ViewerRecordResolvedEvent,
    roster_updated,
    status_changed,
    viewer_record_resolved,
)
from syllable.domain.constants import USERS_PATH
from syllable.infrastructure.audio import (
    AudioPlayer,
    AudioRecorder,
    PlaybackController,
    PracticeRecorder,
)
from syllable.infrastructure.backend import Backend, NotSignedInError
from syllable.infrastructure.persistence import LocalAudioStore
from syllable.infrastructure.profile import OnboardingAssembler
from syllable.infrastructure.roster import RosterLoader, StatusMarker


class SyllableApp:
    """
    Syllableコアアプリケーション

    責務:
    - セッション開始時に閲覧者（ViewerContext）を一度だけ解決
    - コンポーネントの初期化と依存性注入
    - イベントサブスクリプションの設定（Pub/Sub）
    - セッション操作（ロスター購読、プロフィール取得、サインアウト）

    Note:
    - 各コンポーネントはイベントバス経由で疎結合に連携（blinker使用）
    - UI層は各Signalを直接subscribeして表示を行う
    """

    def __init__(
        self,
        settings: Settings,
        backend: Backend,
        player: AudioPlayer,
        recorder: AudioRecorder,
    ):
        """
        SyllableAppの初期化

        Args:
            settings: アプリケーション設定
            backend: レコードストア・Blobストア・認証の組
            player: 音声出力
            recorder: マイク録音

        Raises:
            NotSignedInError: サインインしていない
            BackendError: 認証情報の取得に失敗
        """
        self.settings = settings
        self.backend = backend
        self.recorder = recorder

        # 1. 閲覧者の解決
        user_id = backend.identity.current_user_id()
        if not user_id:
            raise NotSignedInError("Not signed in")
        self.viewer = ViewerContext(user_id=user_id)

        # 2. ローカル保存先
        self.local_store = LocalAudioStore(settings.audio.local_audio_dir)

        # 3. ロスター
        self.roster_loader = RosterLoader(
            record_store=backend.records,
            blob_store=backend.blobs,
            viewer=self.viewer,
            storage_settings=settings.storage,
        )
        self.roster_filter = RosterFilter()
        self.status_marker = StatusMarker(
            record_store=backend.records, viewer=self.viewer
        )

        # 4. 再生
        self.playback = PlaybackController(
            blob_store=backend.blobs,
            player=player,
            local_store=self.local_store,
            storage_settings=settings.storage,
            audio_settings=settings.audio,
        )

        self.viewer_record: UserRecord | None = None
        self._roster_task: asyncio.Task[None] | None = None

        # 5. イベントサブスクリプション設定
        self._setup_event_subscriptions()

    # ========== イベントサブスクリプション設定 ==========

    def _setup_event_subscriptions(self) -> None:
        """イベントサブスクリプションを設定（Pub/Sub）"""
        roster_updated.connect(self._on_roster_updated)
        viewer_record_resolved.connect(self._on_viewer_record_resolved)
        status_changed.connect(self._on_status_changed)

    def _teardown_event_subscriptions(self) -> None:
        roster_updated.disconnect(self._on_roster_updated)
        viewer_record_resolved.disconnect(self._on_viewer_record_resolved)
        status_changed.disconnect(self._on_status_changed)

    # ========== イベントハンドラ（Pub/Sub） ==========

    def _on_roster_updated(self, _sender: object, event: RosterUpdatedEvent) -> None:
        """新しいスナップショットを基準にフィルタを再計算"""
        self.roster_filter.set_snapshot(event.snapshot)

    def _on_viewer_record_resolved(
        self, _sender: object, event: ViewerRecordResolvedEvent
    ) -> None:
        """閲覧者自身のレコードをキャッシュ"""
        if self.viewer.is_self(event.record.id):
            self.viewer_record = event.record

    def _on_status_changed(self, _sender: object, event: StatusChangedEvent) -> None:
        """ステータス別フィルタの結果が変わるため再計算"""
        self.roster_filter.refresh()

    # ========== ロスター ==========

    async def load_roster(self) -> RosterSnapshot:
        """
        ロスターを1回だけ読み込む

        Returns:
            RosterSnapshot: 発行したスナップショット
        """
        users = await self.backend.records.get(USERS_PATH)
        return await self.roster_loader.handle_change(users)

    def watch_roster(self) -> asyncio.Task[None]:
        """ロスターの購読を開始（既に購読中の場合は同じタスクを返す）"""
        if self._roster_task is None or self._roster_task.done():
            self._roster_task = asyncio.create_task(self.roster_loader.run())
        return self._roster_task

    async def stop_roster(self) -> None:
        """ロスターの購読を終了"""
        task, self._roster_task = self._roster_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def mark(self, subject_id: str, status: Status) -> bool:
        """
        ロスター内のユーザーのステータスを変更

        Returns:
            bool: 書き込んだかどうか

        Raises:
            KeyError: ロスターにユーザーが存在しない
        """
        record = self.roster_filter.snapshot.get(subject_id)
        if record is None:
            raise KeyError(subject_id)
        return await self.status_marker.mark(record, status)

    # ========== プロフィール ==========

    async def load_viewer_profile(self) -> UserRecord | None:
        """
        閲覧者自身のレコードを取得（ロスターで解決済みならキャッシュを返す）
        """
        if self.viewer_record is None:
            self.viewer_record = await self.roster_loader.fetch_user(
                self.viewer.user_id
            )
        return self.viewer_record

    def onboarding(self) -> OnboardingAssembler:
        """閲覧者のオンボーディングを開始"""
        return OnboardingAssembler(
            viewer=self.viewer,
            record_store=self.backend.records,
            blob_store=self.backend.blobs,
            storage_settings=self.settings.storage,
            onboarding_settings=self.settings.onboarding,
        )

    # ========== 練習 ==========

    def practice(self, subject_id: str) -> PracticeRecorder:
        """
        対象ユーザーの練習カードを作成

        Raises:
            ValueError: 閲覧者自身を指定した場合
        """
        return PracticeRecorder(
            subject_id=subject_id,
            viewer=self.viewer,
            recorder=self.recorder,
            playback=self.playback,
            blob_store=self.backend.blobs,
            record_store=self.backend.records,
            local_store=self.local_store,
            storage_settings=self.settings.storage,
        )

    # ========== セッション管理 ==========

    def sign_out(self) -> None:
        """サインアウトしてセッションを終了"""
        self.backend.identity.sign_out()
        self.viewer_record = None
        self.shutdown()

    def shutdown(self) -> None:
        """再生・録音を止めてイベント購読を解除"""
        self.playback.stop()
        if self.recorder.is_recording:
            self.recorder.stop()
        self._teardown_event_subscriptions()
