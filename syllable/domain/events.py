#!/usr/bin/env python3
"""
Syllable - Events (Pub/Sub)
ドメイン層: イベント駆動アーキテクチャの中核
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from blinker import Signal

from .models import PracticeMode, PracticeSubmission, RosterSnapshot, Status, UserRecord

# ========================================
# イベント名定数
# ========================================
EVENT_ROSTER_UPDATED = "roster_updated"
EVENT_VIEWER_RECORD_RESOLVED = "viewer_record_resolved"
EVENT_STATUS_CHANGED = "status_changed"
EVENT_PLAYBACK_PROGRESSED = "playback_progressed"
EVENT_PLAYBACK_FINISHED = "playback_finished"
EVENT_PRACTICE_MODE_CHANGED = "practice_mode_changed"
EVENT_PRACTICE_SUBMITTED = "practice_submitted"
EVENT_ONBOARDING_DRAFT_UPDATED = "onboarding_draft_updated"
EVENT_MESSAGE_POSTED = "message_posted"


# ========================================
# イベント型定義
# ========================================


class MessageLevel(str, Enum):
    """メッセージレベル"""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class PlaybackOutcome(str, Enum):
    """再生の終了理由"""

    COMPLETED = "completed"  # 最後まで再生
    SUPERSEDED = "superseded"  # 新しい再生に置き換えられた
    FAILED = "failed"  # 取得・デコード・デバイスのエラー


@dataclass(frozen=True)
class RosterUpdatedEvent:
    """
    ロスター更新イベント

    変更通知1回につき、宣言された全件の組み立てが完了した後に一度だけ発行される。
    """

    snapshot: RosterSnapshot


@dataclass(frozen=True)
class ViewerRecordResolvedEvent:
    """
    閲覧者自身のレコード解決イベント

    ロスター内に閲覧者自身が含まれていた場合に発行される（プロフィールヘッダー等で再利用）。
    """

    record: UserRecord


@dataclass(frozen=True)
class StatusChangedEvent:
    """ステータス変更イベント（リモート書き込み成功後のみ発行）"""

    subject_id: str
    status: Status


@dataclass(frozen=True)
class PlaybackProgressEvent:
    """再生進捗イベント"""

    key: str  # 再生中の音声キー（ユーザーIDまたはファイル名）
    position_sec: float
    duration_sec: float


@dataclass(frozen=True)
class PlaybackFinishedEvent:
    """
    再生終了イベント

    再生要求1回につき必ず1度だけ発行される。UI側はこれを受けて再生中表示を戻す。
    """

    key: str
    outcome: PlaybackOutcome


@dataclass(frozen=True)
class PracticeModeChangedEvent:
    """練習モード変更イベント"""

    subject_id: str
    mode: PracticeMode
    controls_enabled: bool  # 提出・破棄ボタンの有効/無効


@dataclass(frozen=True)
class PracticeSubmittedEvent:
    """評価依頼の提出完了イベント"""

    submission: PracticeSubmission


@dataclass(frozen=True)
class OnboardingDraftUpdatedEvent:
    """オンボーディング下書き更新イベント（「続ける」ボタンの有効/無効）"""

    user_id: str
    is_complete: bool


@dataclass(frozen=True)
class MessagePostedEvent:
    """
    メッセージ投稿イベント

    システム状態の変化やユーザーへの通知メッセージを表示する際に発行される。
    timestampは省略時に自動的に現在時刻が設定される。
    """

    message: str  # 表示するメッセージ
    level: MessageLevel  # メッセージレベル（INFO/SUCCESS/WARNING/ERROR）
    timestamp: datetime = field(
        default_factory=datetime.now
    )  # メッセージタイムスタンプ（省略時は自動設定）


# イベント型のユニオン（型チェック用）
Event = (
    RosterUpdatedEvent
    | ViewerRecordResolvedEvent
    | StatusChangedEvent
    | PlaybackProgressEvent
    | PlaybackFinishedEvent
    | PracticeModeChangedEvent
    | PracticeSubmittedEvent
    | OnboardingDraftUpdatedEvent
    | MessagePostedEvent
)


# ========================================
# グローバルシグナル定義
# ========================================

# 各イベントに対応するシグナル
roster_updated = Signal(EVENT_ROSTER_UPDATED)  # RosterUpdatedEvent
viewer_record_resolved = Signal(EVENT_VIEWER_RECORD_RESOLVED)  # ViewerRecordResolvedEvent
status_changed = Signal(EVENT_STATUS_CHANGED)  # StatusChangedEvent
playback_progressed = Signal(EVENT_PLAYBACK_PROGRESSED)  # PlaybackProgressEvent
playback_finished = Signal(EVENT_PLAYBACK_FINISHED)  # PlaybackFinishedEvent
practice_mode_changed = Signal(EVENT_PRACTICE_MODE_CHANGED)  # PracticeModeChangedEvent
practice_submitted = Signal(EVENT_PRACTICE_SUBMITTED)  # PracticeSubmittedEvent
onboarding_draft_updated = Signal(
    EVENT_ONBOARDING_DRAFT_UPDATED
)  # OnboardingDraftUpdatedEvent
message_posted = Signal(EVENT_MESSAGE_POSTED)  # MessagePostedEvent


def post_message(message: str, level: MessageLevel = MessageLevel.INFO) -> None:
    """message_postedシグナルにメッセージを送信するショートカット"""
    message_posted.send(None, event=MessagePostedEvent(message=message, level=level))
