#!/usr/bin/env python3
"""
Syllable - Audio Infrastructure
オーディオ関連：録音・再生デバイス、再生コントローラー、練習カード
"""

from .errors import AudioDecodeError, AudioDeviceError
from .playback_controller import PlaybackController, PlaybackHandle, PlaybackSlot
from .player import AudioPlayer, SoundDevicePlayer, decode_audio
from .practice_recorder import PracticeRecorder
from .practice_state_machine import (
    PracticeAction,
    PracticeStateMachine,
    PracticeTrigger,
)
from .recorder import AudioDevice, AudioRecorder, SoundDeviceRecorder, list_devices

__all__ = [
    # 例外
    "AudioDecodeError",
    "AudioDeviceError",
    # デバイス
    "AudioDevice",
    "AudioPlayer",
    "AudioRecorder",
    "SoundDevicePlayer",
    "SoundDeviceRecorder",
    "decode_audio",
    "list_devices",
    # 再生
    "PlaybackController",
    "PlaybackHandle",
    "PlaybackSlot",
    # 練習カード
    "PracticeAction",
    "PracticeRecorder",
    "PracticeStateMachine",
    "PracticeTrigger",
]
