#!/usr/bin/env python3
"""
Syllable - Playback Controller Module
発音録音の取得・デコード・再生を管理するモジュール
"""

import asyncio
from pathlib import Path

import numpy as np

from syllable.domain import (
    AudioSettings,
    MessageLevel,
    PlaybackFinishedEvent,
    PlaybackOutcome,
    PlaybackProgressEvent,
    StorageSettings,
    playback_finished,
    playback_progressed,
    post_message,
)
from syllable.domain.constants import RECORDING_PATH
from syllable.infrastructure.backend import BackendError, BlobStore
from syllable.infrastructure.persistence import LocalAudioStore

from .errors import AudioDecodeError, AudioDeviceError
from .player import AudioPlayer, decode_audio


class PlaybackHandle:
    """1回の再生要求"""

    def __init__(self, key: str) -> None:
        self.key = key
        self.superseded = False

    def supersede(self) -> None:
        """新しい再生要求に置き換えられたことを記録"""
        self.superseded = True


class PlaybackSlot:
    """
    「再生中」を表す単一スロット

    acquire() は保持中のハンドルを置き換え済みにしてから新しいハンドルを保持するため、
    有効な再生要求は常に高々1つになる。
    """

    def __init__(self) -> None:
        self._current: PlaybackHandle | None = None

    @property
    def current(self) -> PlaybackHandle | None:
        return self._current

    def acquire(self, key: str) -> PlaybackHandle:
        """新しい再生要求でスロットを取得（既存の要求は置き換え）"""
        if self._current is not None:
            self._current.supersede()
        self._current = PlaybackHandle(key)
        return self._current

    def release(self, handle: PlaybackHandle) -> None:
        """ハンドルがスロットを保持していれば解放"""
        if self._current is handle:
            self._current = None


class PlaybackController:
    """
    発音録音の再生コントローラー

    責務:
    - 上限サイズ付きでBlobを取得してデコード
    - 単一スロットによる排他再生（新しい要求が古い要求を置き換える）
    - 再生進捗と終了イベントの発行（終了イベントは要求ごとに1回）

    取得・デコードの失敗は例外にせず、FAILEDの終了イベントとWARNINGメッセージで通知する。
    """

    def __init__(
        self,
        blob_store: BlobStore,
        player: AudioPlayer,
        local_store: LocalAudioStore,
        storage_settings: StorageSettings,
        audio_settings: AudioSettings,
    ) -> None:
        self.blob_store = blob_store
        self.player = player
        self.local_store = local_store
        self.storage_settings = storage_settings
        self.audio_settings = audio_settings
        self.slot = PlaybackSlot()

    @property
    def now_playing(self) -> str | None:
        """再生中（または取得中）の音声キー"""
        current = self.slot.current
        return current.key if current else None

    async def _fetch_recording(self, user_id: str) -> bytes:
        return await self.blob_store.get(
            RECORDING_PATH.format(user_id=user_id),
            self.storage_settings.recording_max_bytes,
        )

    async def play(self, user_id: str) -> PlaybackOutcome:
        """
        ユーザーの発音録音を再生し、終了まで待機

        Args:
            user_id: 対象ユーザーID

        Returns:
            PlaybackOutcome: 再生結果
        """
        handle = self._begin(user_id)
        try:
            data = await self._fetch_recording(user_id)
            audio, sample_rate = decode_audio(data)
        except (BackendError, AudioDecodeError) as e:
            # 取得中に置き換えられた要求の失敗は通知しない
            if handle.superseded:
                return self._finish(handle, PlaybackOutcome.SUPERSEDED)
            return self._finish(
                handle, PlaybackOutcome.FAILED, f"Cannot play recording: {e}"
            )
        return await self._play_audio(handle, audio, sample_rate)

    async def play_file(self, path: Path, key: str | None = None) -> PlaybackOutcome:
        """
        ローカルの音声ファイルを同じスロットで再生

        Args:
            path: 音声ファイル
            key: イベントに載せるキー（Noneの場合はファイル名）
        """
        handle = self._begin(key or path.name)
        try:
            data = await asyncio.to_thread(path.read_bytes)
            audio, sample_rate = decode_audio(data)
        except (OSError, AudioDecodeError) as e:
            if handle.superseded:
                return self._finish(handle, PlaybackOutcome.SUPERSEDED)
            return self._finish(
                handle, PlaybackOutcome.FAILED, f"Cannot play {path.name}: {e}"
            )
        return await self._play_audio(handle, audio, sample_rate)

    def stop(self) -> None:
        """再生中の要求を止める（終了イベントはSUPERSEDED）"""
        current = self.slot.current
        if current is None:
            return
        current.supersede()
        self.slot.release(current)
        self.player.stop()

    async def download(self, user_id: str) -> Path | None:
        """
        ユーザーの発音録音をローカルに保存

        Returns:
            Path | None: 保存先（取得・保存に失敗した場合はNone）
        """
        try:
            data = await self._fetch_recording(user_id)
            path = await asyncio.to_thread(
                self.local_store.save_recording, user_id, data
            )
        except (BackendError, OSError) as e:
            post_message(f"Download failed: {e}", MessageLevel.WARNING)
            return None
        post_message(f"Saved recording to {path}", MessageLevel.SUCCESS)
        return path

    # ========================================
    # Internal
    # ========================================
    def _begin(self, key: str) -> PlaybackHandle:
        """スロットを取得し、前の再生を止める"""
        handle = self.slot.acquire(key)
        self.player.stop()
        return handle

    async def _play_audio(
        self, handle: PlaybackHandle, audio: np.ndarray, sample_rate: int
    ) -> PlaybackOutcome:
        # 取得中に置き換えられた場合は再生しない
        if handle.superseded:
            return self._finish(handle, PlaybackOutcome.SUPERSEDED)

        try:
            self.player.start(audio, sample_rate)
        except AudioDeviceError as e:
            return self._finish(handle, PlaybackOutcome.FAILED, str(e))

        duration = len(audio) / sample_rate
        while self.player.is_active and not handle.superseded:
            playback_progressed.send(
                self,
                event=PlaybackProgressEvent(
                    key=handle.key,
                    position_sec=min(self.player.position_sec, duration),
                    duration_sec=duration,
                ),
            )
            await asyncio.sleep(self.audio_settings.progress_interval_sec)

        if handle.superseded:
            return self._finish(handle, PlaybackOutcome.SUPERSEDED)
        return self._finish(handle, PlaybackOutcome.COMPLETED)

    def _finish(
        self,
        handle: PlaybackHandle,
        outcome: PlaybackOutcome,
        message: str | None = None,
    ) -> PlaybackOutcome:
        """スロットを解放し、終了イベントを1回だけ発行"""
        self.slot.release(handle)
        if message:
            post_message(message, MessageLevel.WARNING)
        playback_finished.send(
            self, event=PlaybackFinishedEvent(key=handle.key, outcome=outcome)
        )
        return outcome
