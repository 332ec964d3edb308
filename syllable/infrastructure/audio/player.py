#!/usr/bin/env python3
"""
Syllable - Audio Player Module
音声出力の抽象化とsounddeviceアダプタを提供するモジュール
"""

from __future__ import annotations

import io
import threading
from abc import ABC, abstractmethod
from typing import Any

import numpy as np
import sounddevice as sd  # type: ignore[import-untyped]
import soundfile as sf  # type: ignore[import-untyped]

from .errors import AudioDecodeError, AudioDeviceError


def decode_audio(data: bytes) -> tuple[np.ndarray, int]:
    """
    音声ファイルのバイト列をデコード

    コンテナ形式はヘッダから判定する。

    Args:
        data: 音声ファイルの内容

    Returns:
        tuple[np.ndarray, int]: (frames x channels のfloat32配列, サンプルレート)

    Raises:
        AudioDecodeError: 対応していない形式・破損したデータ
    """
    if not data:
        raise AudioDecodeError("Audio data is empty")
    try:
        audio, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except (sf.SoundFileError, RuntimeError, TypeError) as e:
        raise AudioDecodeError(f"Cannot decode audio: {e}") from e
    if len(audio) == 0:
        raise AudioDecodeError("Audio data has no frames")
    return audio, int(sample_rate)


class AudioPlayer(ABC):
    """
    音声出力の抽象基底クラス

    同時に1つの音声のみを再生する。start() は再生中の音声を止めてから開始する。
    """

    @abstractmethod
    def start(self, audio: np.ndarray, sample_rate: int) -> None:
        """
        再生を開始（ノンブロッキング）

        Args:
            audio: frames x channels のfloat32配列
            sample_rate: サンプルレート

        Raises:
            AudioDeviceError: 出力デバイスを開けない
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """再生を停止（再生していない場合は何もしない）"""
        pass

    @property
    @abstractmethod
    def is_active(self) -> bool:
        """再生中かどうか"""
        pass

    @property
    @abstractmethod
    def position_sec(self) -> float:
        """再生位置（秒）"""
        pass


class SoundDevicePlayer(AudioPlayer):
    """
    sounddeviceによる音声出力

    OutputStreamのコールバックで配列を順に書き出し、末尾に達したら
    CallbackStopで自然終了させる。
    """

    def __init__(self, device_id: int | None = None) -> None:
        """
        Args:
            device_id: 出力デバイスのID（Noneの場合はデフォルトデバイス）
        """
        self._device_id = device_id
        self._lock = threading.Lock()
        self._stream: sd.OutputStream | None = None
        self._audio: np.ndarray = np.zeros((0, 1), dtype=np.float32)
        self._frame = 0
        self._sample_rate = 1

    def _audio_callback(
        self,
        outdata: np.ndarray,
        frames: int,
        _time_info: Any,
        _status: sd.CallbackFlags,
    ) -> None:
        """sounddeviceコールバック（オーディオスレッド）"""
        with self._lock:
            chunk = self._audio[self._frame : self._frame + frames]
            self._frame += len(chunk)
        outdata[: len(chunk)] = chunk
        if len(chunk) < frames:
            outdata[len(chunk) :] = 0
            raise sd.CallbackStop

    def start(self, audio: np.ndarray, sample_rate: int) -> None:
        self.stop()
        frames = audio.reshape(-1, 1) if audio.ndim == 1 else audio
        with self._lock:
            self._audio = frames.astype(np.float32, copy=False)
            self._frame = 0
            self._sample_rate = sample_rate

        try:
            stream = sd.OutputStream(
                samplerate=sample_rate,
                channels=frames.shape[1],
                dtype="float32",
                device=self._device_id,
                callback=self._audio_callback,
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as e:
            raise AudioDeviceError(f"Cannot open output device: {e}") from e
        self._stream = stream

    def stop(self) -> None:
        if self._stream is None:
            return
        stream, self._stream = self._stream, None
        stream.stop()
        stream.close()

    @property
    def is_active(self) -> bool:
        return self._stream is not None and bool(self._stream.active)

    @property
    def position_sec(self) -> float:
        with self._lock:
            return self._frame / self._sample_rate
