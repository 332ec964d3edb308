#!/usr/bin/env python3
"""
Syllable - Image Resizer
プロフィール画像をバイト上限に収まるJPEGへ変換するモジュール
"""

import io

from PIL import Image, ImageOps, UnidentifiedImageError

from syllable.domain import OnboardingSettings

# 品質を下げても収まらない場合に1回ごとに縮小する比率
_SHRINK_RATIO = 0.75
_MIN_DIMENSION = 32


class ImageResizeError(Exception):
    """画像を読み込めない、または上限サイズに収められない"""


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


def resize_to_jpeg(data: bytes, settings: OnboardingSettings) -> bytes:
    """
    画像をJPEGに変換し、最大バイト数以下に収める

    処理:
    1. EXIFの向きを反映し、長辺をpicture_max_dimensionまで縮小
    2. jpeg_qualitiesの順に品質を下げて再エンコード
    3. それでも超過する場合は解像度を下げて2を繰り返す

    Args:
        data: 元画像（Pillowが読める任意の形式）
        settings: オンボーディング設定

    Returns:
        bytes: picture_max_bytes以下のJPEGデータ

    Raises:
        ImageResizeError: 画像として読めない、または最小解像度でも収まらない
    """
    try:
        with Image.open(io.BytesIO(data)) as opened:
            image = ImageOps.exif_transpose(opened)
            image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageResizeError(f"Cannot read picture: {e}") from e

    # JPEGはアルファチャンネルを持てない
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    limit = settings.picture_max_dimension
    image.thumbnail((limit, limit))

    while True:
        for quality in settings.jpeg_qualities:
            encoded = _encode_jpeg(image, quality)
            if len(encoded) <= settings.picture_max_bytes:
                return encoded

        width, height = image.size
        if min(width, height) <= _MIN_DIMENSION:
            raise ImageResizeError(
                f"Cannot fit picture into {settings.picture_max_bytes} bytes"
            )
        image = image.resize(
            (
                max(_MIN_DIMENSION, int(width * _SHRINK_RATIO)),
                max(_MIN_DIMENSION, int(height * _SHRINK_RATIO)),
            )
        )
