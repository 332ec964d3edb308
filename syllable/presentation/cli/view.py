#!/usr/bin/env python3
"""
Syllable - CLI View
CLIのView層：Signal購読とコンソール表示の統合管理
"""

import re
import sys
import threading

import wcwidth  # type: ignore[import-untyped]
from colorama import Fore, Style  # type: ignore[import-untyped]

from syllable import __version__
from syllable.domain import (
    FilterState,
    MessageLevel,
    MessagePostedEvent,
    OnboardingDraftUpdatedEvent,
    PlaybackFinishedEvent,
    PlaybackOutcome,
    PlaybackProgressEvent,
    PracticeMode,
    PracticeModeChangedEvent,
    PracticeSubmittedEvent,
    Settings,
    Status,
    StatusChangedEvent,
    UserRecord,
    message_posted,
    onboarding_draft_updated,
    playback_finished,
    playback_progressed,
    practice_mode_changed,
    practice_submitted,
    status_changed,
)
from syllable.domain.filters import STATUS_LABELS
from syllable.infrastructure.audio import AudioDevice

# ステータスの表示色
_STATUS_COLORS = {
    Status.NONE: Fore.WHITE,
    Status.LEARNED: Fore.GREEN,
    Status.NEED_PRACTICE: Fore.YELLOW,
}


class CLIView:
    """
    CLI View層

    責務:
    - Signalサブスクリプションとイベント駆動表示
    - ロスター・プロフィールのフォーマッティング
    - 再生進捗バーの更新
    - スレッドセーフな表示管理（録音コールバックからのメッセージ）
    """

    # ANSIエスケープコード削除用パターン（コンパイル済み）
    _ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m")

    def __init__(self, settings: Settings) -> None:
        """
        CLIViewの初期化とSignalサブスクリプション設定

        Args:
            settings: アプリケーション設定
        """
        self.settings = settings
        self.lock = threading.Lock()  # スレッド間の同期用ロック
        self._progress_visible = False

        # Signalサブスクリプション設定
        message_posted.connect(self._on_message_posted)
        playback_progressed.connect(self._on_playback_progressed)
        playback_finished.connect(self._on_playback_finished)
        status_changed.connect(self._on_status_changed)
        practice_mode_changed.connect(self._on_practice_mode_changed)
        practice_submitted.connect(self._on_practice_submitted)
        onboarding_draft_updated.connect(self._on_onboarding_draft_updated)

    # ========== Signalハンドラ ==========

    def _on_message_posted(self, _sender: object, event: MessagePostedEvent) -> None:
        """ステータスメッセージ表示ハンドラ"""
        self._show_message(event)

    def _on_playback_progressed(
        self, _sender: object, event: PlaybackProgressEvent
    ) -> None:
        """再生進捗バー表示ハンドラ"""
        self._update_progress_bar(event)

    def _on_playback_finished(
        self, _sender: object, event: PlaybackFinishedEvent
    ) -> None:
        """再生終了表示ハンドラ（進捗バーを消して結果を表示）"""
        color = {
            PlaybackOutcome.COMPLETED: Fore.GREEN,
            PlaybackOutcome.SUPERSEDED: Fore.CYAN,
            PlaybackOutcome.FAILED: Fore.RED,
        }[event.outcome]
        self._write_line(f"{color}■ {event.key}: {event.outcome.value}{Style.RESET_ALL}")

    def _on_status_changed(self, _sender: object, event: StatusChangedEvent) -> None:
        label = STATUS_LABELS[event.status]
        color = _STATUS_COLORS[event.status]
        self._write_line(
            f"{Fore.GREEN}Marked {event.subject_id} as {color}{label}{Style.RESET_ALL}"
        )

    def _on_practice_mode_changed(
        self, _sender: object, event: PracticeModeChangedEvent
    ) -> None:
        if event.mode == PracticeMode.PLAY:
            self._write_line(
                f"{Fore.MAGENTA}🎧 Clip ready{Style.RESET_ALL} "
                "[p] play  [s] send for evaluation  [d] discard  [q] quit"
            )
        else:
            self._write_line(
                f"{Fore.CYAN}🎙️  Ready to record{Style.RESET_ALL} "
                "[Enter] hold to record  [q] quit"
            )

    def _on_practice_submitted(
        self, _sender: object, event: PracticeSubmittedEvent
    ) -> None:
        submitted_at = event.submission.submitted_at.astimezone().strftime("%H:%M:%S")
        self._write_line(
            f"{Fore.GREEN}[{submitted_at}] Sent to {event.submission.subject_id}"
            f"{Style.RESET_ALL}"
        )

    def _on_onboarding_draft_updated(
        self, _sender: object, event: OnboardingDraftUpdatedEvent
    ) -> None:
        if event.is_complete:
            self._write_line(f"{Fore.GREEN}✓ Ready to continue{Style.RESET_ALL}")

    # ========== ライフサイクル制御 ==========

    def stop(self) -> None:
        """Signal購読を解除して表示をクリア"""
        message_posted.disconnect(self._on_message_posted)
        playback_progressed.disconnect(self._on_playback_progressed)
        playback_finished.disconnect(self._on_playback_finished)
        status_changed.disconnect(self._on_status_changed)
        practice_mode_changed.disconnect(self._on_practice_mode_changed)
        practice_submitted.disconnect(self._on_practice_submitted)
        onboarding_draft_updated.disconnect(self._on_onboarding_draft_updated)

        with self.lock:
            if self._progress_visible:
                sys.stdout.write("\r\033[K")
                self._progress_visible = False
            sys.stdout.flush()

    # ========== 表示メソッド ==========

    def _write_line(self, text: str) -> None:
        """進捗バーを消してから1行表示"""
        with self.lock:
            sys.stdout.write("\r\033[K")
            self._progress_visible = False
            sys.stdout.write(f"{text}\n")
            sys.stdout.flush()

    def _show_message(self, event: MessagePostedEvent) -> None:
        """メッセージを表示"""
        # メッセージレベルに応じた色を選択
        color_map = {
            MessageLevel.INFO: Fore.CYAN,
            MessageLevel.SUCCESS: Fore.GREEN,
            MessageLevel.WARNING: Fore.YELLOW,
            MessageLevel.ERROR: Fore.RED,
        }
        color = color_map.get(event.level, Fore.WHITE)

        message = event.message
        limit = self.settings.app.max_error_detail_length
        if event.level == MessageLevel.ERROR and len(message) > limit:
            message = message[:limit] + "..."
        self._write_line(f"{color}{message}{Style.RESET_ALL}")

    def _update_progress_bar(self, event: PlaybackProgressEvent) -> None:
        """再生進捗バーを更新"""
        # ロックが取得できない場合はスキップ（メッセージ表示中）
        if not self.lock.acquire(blocking=False):
            return

        try:
            bar_width = 20
            ratio = (
                event.position_sec / event.duration_sec if event.duration_sec else 0.0
            )
            filled = int(min(1.0, ratio) * bar_width)
            bar = "|" * filled + "." * (bar_width - filled)
            sys.stdout.write(
                f"\r\033[K{Fore.MAGENTA}▶ {event.key} [{bar}] "
                f"{event.position_sec:.1f}s / {event.duration_sec:.1f}s{Style.RESET_ALL}"
            )
            sys.stdout.flush()
            self._progress_visible = True
        finally:
            self.lock.release()

    def show_banner(self, backend_name: str) -> None:
        """
        起動バナーを表示

        Args:
            backend_name: 接続先バックエンドの表示名
        """
        # バージョン文字列の表示：.dev以降をカット
        version_display = (
            __version__.split(".dev")[0] if ".dev" in __version__ else __version__
        )

        banner = f"""
{Fore.CYAN}╔══════════════════════════════════════════╗
║       Syllable v{version_display:<23}  ║
║  Learn how your classmates say their name║
╚══════════════════════════════════════════╝{Style.RESET_ALL}
  - Backend: {backend_name}
  - Audio: {self.settings.audio.sample_rate} Hz, {self.settings.audio.container_format}

"""
        sys.stdout.write(banner)
        sys.stdout.flush()

    def show_roster(self, records: list[UserRecord], state: FilterState) -> None:
        """
        ロスターを表示

        Args:
            records: 表示するレコード（フィルタ適用済み）
            state: 適用中のフィルタ
        """
        width = self.settings.app.name_column_width
        lines = [
            f"\n{Fore.CYAN}{state.label} ({len(records)}){Style.RESET_ALL}",
            f"{Fore.CYAN}{'─' * 50}{Style.RESET_ALL}",
        ]
        for record in records:
            name = self._pad_text(self._truncate_text(record.full_name, width), width)
            status = (
                f"{_STATUS_COLORS[record.status]}{STATUS_LABELS[record.status]:<10}"
                f"{Style.RESET_ALL}"
            )
            lines.append(f"  {name}  {status}{record.secondary_label}  ({record.id})")
        with self.lock:
            sys.stdout.write("\r\033[K" + "\n".join(lines) + "\n\n")
            sys.stdout.flush()
            self._progress_visible = False

    def show_profile(self, record: UserRecord) -> None:
        """プロフィール（設定画面のヘッダー相当）を表示"""
        country = record.country.name if record.country else "-"
        picture = (
            f"{len(record.profile_picture)} bytes" if record.profile_picture else "-"
        )
        lines = [
            f"\n{Fore.CYAN}{record.full_name or record.id}{Style.RESET_ALL}",
            f"  {record.secondary_label}",
            f"  Country: {country}",
            f"  Picture: {picture}",
        ]
        if record.bio_text:
            lines.append(f"  {record.bio_text}")
        with self.lock:
            sys.stdout.write("\r\033[K" + "\n".join(lines) + "\n\n")
            sys.stdout.flush()
            self._progress_visible = False

    @staticmethod
    def show_devices(devices: list[AudioDevice]) -> None:
        """利用可能なオーディオデバイス一覧を表示する"""
        print(f"\n{Fore.CYAN}Available audio devices:{Style.RESET_ALL}\n")
        for device in devices:
            markers = []
            if device.is_default_input:
                markers.append("default input")
            if device.is_default_output:
                markers.append("default output")
            marker = (
                f" {Fore.GREEN}({', '.join(markers)}){Style.RESET_ALL}" if markers else ""
            )
            print(
                f"  [{device.id}] {device.name} "
                f"(in: {device.max_input_channels}, out: {device.max_output_channels})"
                f"{marker}"
            )
        print()

    # ========== フォーマッティングメソッド ==========

    def _get_display_width(self, text: str) -> int:
        """ANSIエスケープコードを除いた実際の表示幅を取得"""
        plain_text = self._ANSI_ESCAPE_PATTERN.sub("", text)
        return max(0, int(wcwidth.wcswidth(plain_text)))

    def _pad_text(self, text: str, width: int) -> str:
        """表示幅がwidthになるよう右側を空白で埋める"""
        return text + " " * max(0, width - self._get_display_width(text))

    def _truncate_text(self, text: str, max_width: int) -> str:
        """テキストを指定された表示幅に切り詰める（全角文字を考慮）"""
        if self._get_display_width(text) <= max_width:
            return text

        width = 0
        for i, char in enumerate(text):
            char_width = max(0, wcwidth.wcwidth(char))
            if width + char_width > max_width - 1:
                return text[:i] + "…"
            width += char_width
        return text
