#!/usr/bin/env python3
"""
Syllable - Onboarding Assembler Module
プロフィール下書きの入力・検証・送信を管理するモジュール
"""

import asyncio
from dataclasses import dataclass

from syllable.domain import (
    Country,
    MessageLevel,
    OnboardingDraftUpdatedEvent,
    OnboardingSettings,
    ProfileDraft,
    StorageSettings,
    ViewerContext,
    onboarding_draft_updated,
    post_message,
)
from syllable.domain.constants import PROFILE_PICTURE_PATH, USER_PATH
from syllable.infrastructure.backend import BackendError, BlobStore, RecordStore
from syllable.infrastructure.imaging import ImageResizeError, resize_to_jpeg


@dataclass(frozen=True)
class OnboardingResult:
    """送信結果"""

    base_written: bool  # users/{id} への基本項目の書き込み
    picture_uploaded: bool  # プロフィール画像のアップロード（画像なしの場合はFalse）

    @property
    def can_continue(self) -> bool:
        """次の画面へ進めるか（画像の失敗は妨げない）"""
        return self.base_written


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class OnboardingAssembler:
    """
    オンボーディングの下書き管理

    責務:
    - 入力のたびに完了判定を行いonboarding_draft_updatedを発行
    - 基本項目の書き込み → 画像のリサイズとアップロードの順で送信

    画像のアップロードはベストエフォートで、失敗しても送信自体は成功として扱う。
    """

    def __init__(
        self,
        viewer: ViewerContext,
        record_store: RecordStore,
        blob_store: BlobStore,
        storage_settings: StorageSettings,
        onboarding_settings: OnboardingSettings,
    ) -> None:
        self.viewer = viewer
        self.record_store = record_store
        self.blob_store = blob_store
        self.storage_settings = storage_settings
        self.onboarding_settings = onboarding_settings
        self.draft = ProfileDraft(viewer.user_id)

    @property
    def is_complete(self) -> bool:
        return self.draft.is_complete()

    def _updated(self) -> None:
        onboarding_draft_updated.send(
            self,
            event=OnboardingDraftUpdatedEvent(
                user_id=self.draft.user_id, is_complete=self.draft.is_complete()
            ),
        )

    # ========================================
    # 入力
    # ========================================
    def set_first_name(self, value: str | None) -> None:
        self.draft.first_name = _clean(value)
        self._updated()

    def set_middle_name(self, value: str | None) -> None:
        self.draft.middle_name = _clean(value)
        self._updated()

    def set_last_name(self, value: str | None) -> None:
        self.draft.last_name = _clean(value)
        self._updated()

    def set_country(self, country: Country | None) -> None:
        """出身国を設定（Noneで解除）"""
        self.draft.country = country
        self._updated()

    def set_picture(self, data: bytes | None) -> None:
        """プロフィール画像を設定（Noneで解除）"""
        self.draft.profile_picture = data or None
        self._updated()

    # ========================================
    # 送信
    # ========================================
    async def submit(self) -> OnboardingResult:
        """
        下書きを送信

        Returns:
            OnboardingResult: 基本項目と画像それぞれの結果
        """
        if not self.draft.is_complete():
            post_message("First and last name are required", MessageLevel.WARNING)
            return OnboardingResult(base_written=False, picture_uploaded=False)

        try:
            await self.record_store.write(
                USER_PATH.format(user_id=self.draft.user_id), self.draft.to_fields()
            )
        except BackendError as e:
            post_message(f"Cannot save profile: {e}", MessageLevel.ERROR)
            return OnboardingResult(base_written=False, picture_uploaded=False)

        picture_uploaded = await self._upload_picture()
        post_message("Profile saved", MessageLevel.SUCCESS)
        return OnboardingResult(base_written=True, picture_uploaded=picture_uploaded)

    async def _upload_picture(self) -> bool:
        """画像をリサイズしてアップロード（画像なし・失敗時はFalse）"""
        picture = self.draft.profile_picture
        if picture is None:
            return False
        try:
            resized = await asyncio.to_thread(
                resize_to_jpeg, picture, self.onboarding_settings
            )
            await self.blob_store.put(
                PROFILE_PICTURE_PATH.format(user_id=self.draft.user_id),
                resized,
                self.storage_settings.picture_content_type,
            )
        except (ImageResizeError, BackendError) as e:
            post_message(f"Profile picture not uploaded: {e}", MessageLevel.WARNING)
            return False
        return True
