#!/usr/bin/env python3
"""
Syllable - Audio Errors
録音・再生デバイスとデコードの例外
"""


class AudioDeviceError(Exception):
    """録音・再生デバイスの初期化・操作の失敗"""


class AudioDecodeError(Exception):
    """音声データをデコードできない"""
