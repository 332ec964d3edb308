#!/usr/bin/env python3
"""
Syllable - Imaging
画像処理：プロフィール画像のリサイズ
"""

from .resizer import ImageResizeError, resize_to_jpeg

__all__ = [
    "ImageResizeError",
    "resize_to_jpeg",
]
