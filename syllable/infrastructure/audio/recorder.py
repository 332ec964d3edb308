#!/usr/bin/env python3
"""
Syllable - Audio Recorder Module
マイク録音の抽象化とsounddeviceアダプタを提供するモジュール
"""

from __future__ import annotations

import queue
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
import sounddevice as sd  # type: ignore[import-untyped]
import soundfile as sf  # type: ignore[import-untyped]

from syllable.domain import AudioSettings, MessageLevel, post_message

from .errors import AudioDeviceError


@dataclass(frozen=True)
class AudioDevice:
    """オーディオデバイス情報"""

    id: int
    name: str
    max_input_channels: int
    max_output_channels: int
    is_default_input: bool = False
    is_default_output: bool = False


def list_devices() -> list[AudioDevice]:
    """
    利用可能なオーディオデバイス一覧を取得する

    Returns:
        list[AudioDevice]: 入力または出力が可能なデバイスのリスト
    """
    raw_devices = sd.query_devices()

    # デバイスが存在しない場合
    if not isinstance(raw_devices, sd.DeviceList) or len(raw_devices) == 0:
        return []

    default_input_id, default_output_id = sd.default.device

    return [
        AudioDevice(
            id=device_id,
            name=device_info["name"],
            max_input_channels=device_info["max_input_channels"],
            max_output_channels=device_info["max_output_channels"],
            is_default_input=(device_id == default_input_id),
            is_default_output=(device_id == default_output_id),
        )
        for device_id, device_info in enumerate(raw_devices)
        if device_info["max_input_channels"] > 0
        or device_info["max_output_channels"] > 0
    ]


class AudioRecorder(ABC):
    """
    録音の抽象基底クラス

    start() から stop() までの音声を1つの音声ファイルとして書き出す。
    """

    @abstractmethod
    def start(self, path: Path) -> None:
        """
        録音を開始（ノンブロッキング）

        Args:
            path: 書き出し先のファイルパス

        Raises:
            AudioDeviceError: 入力デバイスを開けない
        """
        pass

    @abstractmethod
    def stop(self) -> Path | None:
        """
        録音を停止してファイルを書き出す

        Returns:
            Path | None: 書き出したファイル（録音していない・音声がない場合はNone）

        Raises:
            AudioDeviceError: デバイスの停止またはファイルの書き出しに失敗
        """
        pass

    @property
    @abstractmethod
    def is_recording(self) -> bool:
        """録音中かどうか"""
        pass


class SoundDeviceRecorder(AudioRecorder):
    """
    sounddeviceによるマイク録音

    InputStreamのコールバックで受け取ったブロックをキューに貯め、
    停止時に設定されたコンテナ形式でファイルへ書き出す。
    """

    def __init__(self, audio_settings: AudioSettings, device_id: int | None = None):
        """
        Args:
            audio_settings: オーディオ設定（サンプルレート、チャンネル数、コンテナ形式）
            device_id: 入力デバイスのID（Noneの場合はデフォルトデバイス）
        """
        self.audio_settings = audio_settings
        self._device_id = device_id
        self._queue: queue.Queue[np.ndarray] = queue.Queue()
        self._stream: sd.InputStream | None = None
        self._path: Path | None = None

    def _audio_callback(
        self,
        indata: np.ndarray,
        _frames: int,
        _time_info: Any,
        status: sd.CallbackFlags,
    ) -> None:
        """sounddeviceコールバック（オーディオスレッド）"""
        if status:
            post_message(f"Audio input: {status}", MessageLevel.WARNING)
        self._queue.put(indata.copy())

    def start(self, path: Path) -> None:
        if self._stream is not None:
            return

        # 前回の残りを捨てる
        while not self._queue.empty():
            self._queue.get_nowait()

        blocksize = int(self.audio_settings.sample_rate * self.audio_settings.block_sec)
        try:
            stream = sd.InputStream(
                samplerate=self.audio_settings.sample_rate,
                channels=self.audio_settings.channels,
                dtype="float32",
                blocksize=blocksize,
                device=self._device_id,
                callback=self._audio_callback,
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as e:
            raise AudioDeviceError(f"Cannot open input device: {e}") from e
        self._stream = stream
        self._path = path

    def stop(self) -> Path | None:
        if self._stream is None:
            return None

        stream, self._stream = self._stream, None
        path, self._path = self._path, None
        try:
            stream.stop()
            stream.close()
        except sd.PortAudioError as e:
            raise AudioDeviceError(f"Cannot stop input device: {e}") from e

        blocks: list[np.ndarray] = []
        while not self._queue.empty():
            blocks.append(self._queue.get_nowait())
        if not blocks or path is None:
            return None

        try:
            sf.write(
                path,
                np.concatenate(blocks),
                self.audio_settings.sample_rate,
                format=self.audio_settings.container_format,
            )
        except (sf.SoundFileError, RuntimeError, TypeError) as e:
            raise AudioDeviceError(f"Cannot write recording to {path}: {e}") from e
        return path

    @property
    def is_recording(self) -> bool:
        return self._stream is not None
