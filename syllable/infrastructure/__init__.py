#!/usr/bin/env python3
"""
Syllable - Infrastructure Layer
インフラストラクチャ層: バックエンド、オーディオ、画像処理、ローカル保存、設定読み込み
"""

from .config import load_settings

__all__ = [
    "load_settings",
]
