#!/usr/bin/env python3
"""
Syllable - Domain Layer
ドメイン層：ビジネスロジック、エンティティ、設定
"""

# モデルとデータ構造
from .models import (
    Country,
    PracticeMode,
    PracticeSubmission,
    ProfileDraft,
    RosterSnapshot,
    Status,
    UserRecord,
    ViewerContext,
)

# フィルタ
from .filters import (
    FilterKind,
    FilterState,
    RosterFilter,
    apply_filter,
)

# イベント（Pub/Sub）
from .events import (
    MessageLevel,
    MessagePostedEvent,
    OnboardingDraftUpdatedEvent,
    PlaybackFinishedEvent,
    PlaybackOutcome,
    PlaybackProgressEvent,
    PracticeModeChangedEvent,
    PracticeSubmittedEvent,
    RosterUpdatedEvent,
    StatusChangedEvent,
    ViewerRecordResolvedEvent,
    message_posted,
    onboarding_draft_updated,
    playback_finished,
    playback_progressed,
    post_message,
    practice_mode_changed,
    practice_submitted,
    roster_updated,
    status_changed,
    viewer_record_resolved,
)

# 設定スキーマ（Pydantic）
from .settings import (
    AppSettings,
    AudioSettings,
    BackendKind,
    BackendSettings,
    OnboardingSettings,
    Settings,
    StorageSettings,
)

__all__ = [
    # モデル
    "Country",
    "PracticeMode",
    "PracticeSubmission",
    "ProfileDraft",
    "RosterSnapshot",
    "Status",
    "UserRecord",
    "ViewerContext",
    # フィルタ
    "FilterKind",
    "FilterState",
    "RosterFilter",
    "apply_filter",
    # イベント
    "MessageLevel",
    "MessagePostedEvent",
    "OnboardingDraftUpdatedEvent",
    "PlaybackFinishedEvent",
    "PlaybackOutcome",
    "PlaybackProgressEvent",
    "PracticeModeChangedEvent",
    "PracticeSubmittedEvent",
    "RosterUpdatedEvent",
    "StatusChangedEvent",
    "ViewerRecordResolvedEvent",
    "message_posted",
    "onboarding_draft_updated",
    "playback_finished",
    "playback_progressed",
    "post_message",
    "practice_mode_changed",
    "practice_submitted",
    "roster_updated",
    "status_changed",
    "viewer_record_resolved",
    # 設定
    "AppSettings",
    "AudioSettings",
    "BackendKind",
    "BackendSettings",
    "OnboardingSettings",
    "Settings",
    "StorageSettings",
]
