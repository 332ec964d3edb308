#!/usr/bin/env python3
"""
Syllable - Practice Recorder Module
練習クリップの録音・破棄・評価依頼を管理するモジュール
"""

import asyncio
from datetime import datetime, timezone

from syllable.domain import (
    MessageLevel,
    PlaybackOutcome,
    PracticeMode,
    PracticeModeChangedEvent,
    PracticeSubmission,
    PracticeSubmittedEvent,
    StorageSettings,
    ViewerContext,
    post_message,
    practice_mode_changed,
    practice_submitted,
)
from syllable.domain.constants import PRACTICE_PATH, PRACTICE_RECORDING_PATH
from syllable.infrastructure.backend import BackendError, BlobStore, RecordStore
from syllable.infrastructure.persistence import LocalAudioStore

from .errors import AudioDeviceError
from .playback_controller import PlaybackController
from .practice_state_machine import (
    PracticeAction,
    PracticeStateMachine,
    PracticeTrigger,
)
from .recorder import AudioRecorder


class PracticeRecorder:
    """
    1人の対象ユーザーに対する練習カード

    責務:
    - 長押し録音の開始・終了（録音中の再入は無視）
    - 録音済みクリップの再生・破棄
    - 評価依頼（クリップのアップロード成功後にのみ提出記録を書き込む）
    - PracticeStateMachineの遷移結果をpractice_mode_changedとして発行

    ローカルクリップのパスは (閲覧者ID, 対象ユーザーID) で決まり、
    再録音すると同じパスが上書きされる。
    """

    def __init__(
        self,
        subject_id: str,
        viewer: ViewerContext,
        recorder: AudioRecorder,
        playback: PlaybackController,
        blob_store: BlobStore,
        record_store: RecordStore,
        local_store: LocalAudioStore,
        storage_settings: StorageSettings,
    ) -> None:
        """
        Args:
            subject_id: 練習対象のユーザーID
            viewer: 閲覧者（録音者・評価依頼者）

        Raises:
            ValueError: 閲覧者自身のレコードに対して生成した場合
        """
        if viewer.is_self(subject_id):
            raise ValueError("Practice is not available for your own record")

        self.subject_id = subject_id
        self.viewer = viewer
        self.recorder = recorder
        self.playback = playback
        self.blob_store = blob_store
        self.record_store = record_store
        self.local_store = local_store
        self.storage_settings = storage_settings
        self.state_machine = PracticeStateMachine()
        self.clip_path = local_store.practice_clip_path(viewer.user_id, subject_id)

    @property
    def mode(self) -> PracticeMode:
        return self.state_machine.mode

    def _delete_clip(self) -> None:
        """ローカルクリップを削除（失敗はWARNINGで通知し、状態遷移は続ける）"""
        try:
            self.local_store.discard_practice_clip(self.viewer.user_id, self.subject_id)
        except OSError as e:
            post_message(f"Cannot delete practice clip: {e}", MessageLevel.WARNING)

    def _apply(self, trigger: PracticeTrigger) -> PracticeAction:
        """状態遷移を実行し、モードが変わった場合はイベントを発行"""
        action = self.state_machine.process(trigger)
        if action != PracticeAction.NONE:
            practice_mode_changed.send(
                self,
                event=PracticeModeChangedEvent(
                    subject_id=self.subject_id,
                    mode=self.state_machine.mode,
                    controls_enabled=self.state_machine.controls_enabled,
                ),
            )
        return action

    # ========================================
    # 録音
    # ========================================
    def begin_hold(self) -> bool:
        """
        長押し開始：録音を開始

        Returns:
            bool: 録音を開始したかどうか（RECORDモード以外・録音中は何もしない）
        """
        if self.mode != PracticeMode.RECORD or self.recorder.is_recording:
            return False
        try:
            self.recorder.start(self.clip_path)
        except AudioDeviceError as e:
            post_message(f"Recording failed: {e}", MessageLevel.ERROR)
            self._apply(PracticeTrigger.RECORDING_FAILED)
            return False
        return True

    def end_hold(self, success: bool = True) -> PracticeMode:
        """
        長押し終了：録音を停止

        Args:
            success: 長押しが正常に完了したか（Falseの場合は録音を捨てる）

        Returns:
            PracticeMode: 遷移後のモード
        """
        if not self.recorder.is_recording:
            return self.mode
        try:
            path = self.recorder.stop()
        except AudioDeviceError as e:
            post_message(f"Recording failed: {e}", MessageLevel.ERROR)
            self._apply(PracticeTrigger.RECORDING_FAILED)
            return self.mode

        if success and path is not None:
            self._apply(PracticeTrigger.RECORDING_SUCCEEDED)
        else:
            self._delete_clip()
            self._apply(PracticeTrigger.RECORDING_FAILED)
        return self.mode

    # ========================================
    # 録音済みクリップ
    # ========================================
    async def play_clip(self) -> PlaybackOutcome | None:
        """
        録音済みクリップを再生（PLAYモードのみ）

        Returns:
            PlaybackOutcome | None: 再生結果（PLAYモード以外はNone）
        """
        if self.mode != PracticeMode.PLAY:
            return None
        return await self.playback.play_file(self.clip_path)

    def discard(self) -> bool:
        """
        録音済みクリップを破棄してRECORDモードへ戻る

        Returns:
            bool: 破棄したかどうか（PLAYモード以外は何もしない）
        """
        if self.mode != PracticeMode.PLAY:
            return False
        self._delete_clip()
        self._apply(PracticeTrigger.DISCARDED)
        return True

    async def request_evaluation(self) -> PracticeSubmission | None:
        """
        クリップをアップロードして評価を依頼

        アップロードに失敗した場合はPLAYモードのままクリップを残し、何も書き込まない。
        成功した場合はRECORDモードへ戻ってから提出タイムスタンプを書き込む。

        Returns:
            PracticeSubmission | None: 提出記録（アップロードまたは書き込みの失敗時はNone）
        """
        if self.mode != PracticeMode.PLAY:
            return None

        evaluator_id = self.viewer.user_id
        blob_path = PRACTICE_RECORDING_PATH.format(
            evaluator_id=evaluator_id, subject_id=self.subject_id
        )
        try:
            data = await asyncio.to_thread(self.clip_path.read_bytes)
            await self.blob_store.put(
                blob_path, data, self.storage_settings.audio_content_type
            )
        except (OSError, BackendError) as e:
            post_message(
                f"Upload of practice recording failed, try again: {e}",
                MessageLevel.ERROR,
            )
            return None

        self._apply(PracticeTrigger.EVALUATION_UPLOADED)

        submission = PracticeSubmission(
            subject_id=self.subject_id,
            evaluator_id=evaluator_id,
            submitted_at=datetime.now(timezone.utc),
        )
        try:
            await self.record_store.write(
                PRACTICE_PATH.format(
                    subject_id=self.subject_id, evaluator_id=evaluator_id
                ),
                submission.timestamp,
            )
        except BackendError as e:
            post_message(
                f"Upload of practice timestamp failed: {e}", MessageLevel.ERROR
            )
            return None

        practice_submitted.send(self, event=PracticeSubmittedEvent(submission))
        post_message("Practice recording sent for evaluation", MessageLevel.SUCCESS)
        return submission
