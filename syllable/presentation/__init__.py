#!/usr/bin/env python3
"""
Syllable - Presentation Layer
プレゼンテーション層：UI、アプリケーションロジック
"""

# コアアプリケーション
from .app import SyllableApp

__all__ = [
    # コアアプリケーション
    "SyllableApp",
]
