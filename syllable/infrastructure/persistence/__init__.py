#!/usr/bin/env python3
"""
Syllable - Persistence Infrastructure
永続化層のインフラストラクチャ（ローカル音声ファイル）
"""

# ローカル音声ファイル
from .local_audio import LocalAudioStore

__all__ = [
    # ローカル音声ファイル
    "LocalAudioStore",
]
