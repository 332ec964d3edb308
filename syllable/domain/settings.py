#!/usr/bin/env python3
"""
Syllable - Settings Schema
設定のスキーマ定義（Pydanticモデル）
"""

from enum import StrEnum
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


# ========================================
# Helper Functions
# ========================================
def _default_local_audio_dir() -> Path:
    """ローカル音声ディレクトリのデフォルト値"""
    return Path.home() / ".cache" / "syllable" / "audio"


# ========================================
# Backend Configuration
# ========================================
class BackendKind(StrEnum):
    """バックエンドの種類"""

    FIREBASE = "firebase"
    MEMORY = "memory"


class BackendSettings(BaseSettings):
    """ホスティングバックエンド設定（リアルタイムDB・Blobストア・認証）"""

    model_config = SettingsConfigDict(env_prefix="SYLLABLE_BACKEND_")

    kind: BackendKind = Field(
        default=BackendKind.MEMORY,
        description="バックエンド種別 - firebase または memory（オフライン確認用）",
    )
    database_url: str | None = Field(
        default=None,
        description="Realtime DatabaseのURL（例: https://example-default-rtdb.firebaseio.com）",
    )
    storage_bucket: str | None = Field(
        default=None,
        description="Storageバケット名（例: example.appspot.com）",
    )
    api_key: str | None = Field(
        default=None,
        description="Web APIキー - トークン更新に使用",
    )
    refresh_token: str | None = Field(
        default=None,
        description="サインイン済みセッションのリフレッシュトークン",
    )
    memory_user_id: str = Field(
        default="local-user",
        description="memoryバックエンドで使用する閲覧者ID",
    )
    request_timeout_sec: float = Field(
        default=10.0,
        description="HTTPリクエストタイムアウト（秒）",
    )
    token_refresh_margin_sec: float = Field(
        default=60.0,
        description="IDトークン有効期限の何秒前に更新するか",
    )

    @model_validator(mode="after")
    def validate_backend_config(self) -> Self:
        """バックエンド固有の必須設定を検証"""
        if self.kind == BackendKind.FIREBASE:
            missing = [
                name
                for name in ("database_url", "storage_bucket", "api_key")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(
                    f"backend.{', backend.'.join(missing)} required when kind='firebase'"
                )
        return self


# ========================================
# Storage Configuration
# ========================================
class StorageSettings(BaseSettings):
    """Blob取得・アップロード設定"""

    model_config = SettingsConfigDict(env_prefix="SYLLABLE_STORAGE_")

    profile_picture_max_bytes: int = Field(
        default=3 * 1024 * 1024,
        description="プロフィール画像の最大取得サイズ（バイト）",
    )
    recording_max_bytes: int = Field(
        default=1 * 1024 * 1024,
        description="発音録音の最大取得サイズ（バイト） - 超過時は取得失敗",
    )
    picture_content_type: str = Field(
        default="image/jpg",
        description="プロフィール画像のContent-Type",
    )
    audio_content_type: str = Field(
        default="audio/m4a",
        description="練習録音のContent-Type",
    )


# ========================================
# Audio Configuration
# ========================================
class AudioSettings(BaseSettings):
    """録音・再生設定"""

    model_config = SettingsConfigDict(env_prefix="SYLLABLE_AUDIO_")

    sample_rate: int = Field(
        default=12000,
        description="録音サンプルレート（Hz）",
    )
    channels: int = Field(
        default=1,
        description="録音チャンネル数",
    )
    container_format: str = Field(
        default="WAV",
        description="録音コンテナ形式（libsndfileの形式名: WAV/FLAC/OGG）",
    )
    block_sec: float = Field(
        default=0.1,
        description="sounddeviceのブロックサイズ（秒）",
    )
    progress_interval_sec: float = Field(
        default=0.1,
        description="再生進捗イベントの発行間隔（秒）",
    )
    local_audio_dir: Path = Field(
        default_factory=_default_local_audio_dir,
        description="ダウンロード済み録音・練習クリップの保存先",
    )


# ========================================
# Onboarding Configuration
# ========================================
class OnboardingSettings(BaseSettings):
    """オンボーディング設定"""

    model_config = SettingsConfigDict(env_prefix="SYLLABLE_ONBOARDING_")

    picture_max_bytes: int = Field(
        default=300000,
        description="アップロード前のプロフィール画像の最大サイズ（バイト）",
    )
    picture_max_dimension: int = Field(
        default=1024,
        description="リサイズ後の画像の長辺の最大ピクセル数",
    )
    jpeg_qualities: list[int] = Field(
        default=[95, 85, 75, 65, 50, 35],
        description="サイズ上限に収まるまで順に試すJPEG品質",
    )


# ========================================
# Application Configuration
# ========================================
class AppSettings(BaseSettings):
    """アプリケーション全体設定"""

    model_config = SettingsConfigDict(env_prefix="SYLLABLE_APP_")

    name_column_width: int = Field(
        default=32,
        description="ロスター表示の氏名カラム幅（表示幅）",
    )
    max_error_detail_length: int = Field(
        default=200,
        description="エラー詳細の最大表示文字数",
    )


# ========================================
# Main Settings Class
# ========================================
class Settings(BaseSettings):
    """
    Syllable全体設定

    設定の読み込み優先順位（後勝ち）:
    1. デフォルト値（各Settingsクラス内）
    2. 環境変数（SYLLABLE_<SECTION>_<FIELD>、セクションがTOMLにない場合）
    3. config.toml / config.local.toml（セクション単位で上書き）
    """

    backend: BackendSettings = Field(default_factory=BackendSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    onboarding: OnboardingSettings = Field(default_factory=OnboardingSettings)
    app: AppSettings = Field(default_factory=AppSettings)
