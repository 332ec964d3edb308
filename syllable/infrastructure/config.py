#!/usr/bin/env python3
"""
Syllable - Configuration Loader
設定の読み込み（TOML）
"""

import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from syllable.domain import Settings

CONFIG_FILE_NAME = "config.toml"
LOCAL_CONFIG_FILE_NAME = "config.local.toml"


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    2つの辞書を深くマージする（overrideが優先）

    Args:
        base: ベースとなる辞書
        override: 上書きする辞書

    Returns:
        マージされた辞書
    """
    result = base.copy()
    for key, value in override.items():
        if (
            key in result
            and isinstance(result[key], Mapping)
            and isinstance(value, Mapping)
        ):
            result[key] = _deep_merge(dict(result[key]), dict(value))
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> dict[str, Any]:
    """TOMLファイルを読み込む（存在しない場合は空辞書）"""
    if not path.exists():
        return {}
    with path.open("rb") as f:
        return tomllib.load(f)


def load_settings(config_dir: Path | None = None) -> Settings:
    """
    TOMLファイルから設定を読み込む

    読み込み順序（後勝ち）:
    1. デフォルト値（domain/settings.py内）
    2. {config_dir}/config.toml（存在する場合）
    3. {config_dir}/config.local.toml（存在する場合）

    Args:
        config_dir: 設定ファイルの置き場所（Noneの場合はカレントディレクトリ）

    Returns:
        Settingsインスタンス
    """
    config_dir = config_dir or Path.cwd()

    config_data = _deep_merge(
        _read_toml(config_dir / CONFIG_FILE_NAME),
        _read_toml(config_dir / LOCAL_CONFIG_FILE_NAME),
    )

    return Settings(**config_data) if config_data else Settings()
