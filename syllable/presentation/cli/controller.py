#!/usr/bin/env python3
"""
Syllable - CLI Controller
CLIアプリケーションのコントローラー層：アプリケーションのライフサイクル管理
"""

import argparse
import asyncio
import sys
import traceback
from pathlib import Path

from syllable.domain import (
    BackendKind,
    Country,
    FilterState,
    MessageLevel,
    PracticeMode,
    RosterUpdatedEvent,
    Status,
    apply_filter,
    post_message,
    roster_updated,
)
from syllable.infrastructure.audio import (
    PracticeRecorder,
    SoundDevicePlayer,
    SoundDeviceRecorder,
)
from syllable.infrastructure.backend import BackendError, create_backend
from syllable.infrastructure.config import load_settings
from syllable.presentation.app import SyllableApp

from .view import CLIView


class CLIController:
    """
    CLIコントローラー

    責務:
    - 設定読み込みとバックエンド・オーディオデバイスの生成
    - App/View初期化と配線
    - サブコマンドの実行（asyncio）
    - 終了シグナル処理
    """

    def __init__(self, args: argparse.Namespace):
        """
        CLIControllerの初期化

        Args:
            args: 解析済みのCLI引数
        """
        self.args = args
        self.settings = load_settings(args.config_dir)

        self.app: SyllableApp | None = None
        self.view: CLIView | None = None

    def run(self) -> None:
        """
        アプリケーションを実行

        Raises:
            SystemExit: エラー発生時
        """
        # 1. CLIView作成（Signal受信準備）
        self.view = CLIView(settings=self.settings)
        self.view.show_banner(self.settings.backend.kind.value)

        # 2. SyllableApp作成（閲覧者の解決）
        try:
            self.app = SyllableApp(
                settings=self.settings,
                backend=create_backend(self.settings.backend),
                player=SoundDevicePlayer(device_id=self.args.output_device),
                recorder=SoundDeviceRecorder(
                    audio_settings=self.settings.audio, device_id=self.args.device
                ),
            )
        except BackendError as e:
            post_message(f"Cannot start session: {e}", MessageLevel.ERROR)
            self.view.stop()
            sys.exit(1)

        # 3. サブコマンド実行
        try:
            asyncio.run(self._dispatch(self.app))
        except KeyboardInterrupt:
            # Ctrl-C: 正常終了
            post_message("\nGoodbye!", MessageLevel.SUCCESS)
        except EOFError:
            # Ctrl-D: 入力待ちの終了
            post_message("\nExit (Ctrl-D)", MessageLevel.WARNING)
        except Exception as e:
            # エラー時は即座に終了
            post_message(f"\nError: {e}", MessageLevel.ERROR)
            traceback.print_exc()
            self._shutdown()
            sys.exit(1)
        self._shutdown()

    async def _dispatch(self, app: SyllableApp) -> None:
        """サブコマンドを実行"""
        args = self.args
        match args.command:
            case "roster":
                await self._run_roster(app)
            case "play":
                if args.download:
                    await app.playback.download(args.user_id)
                else:
                    await app.playback.play(args.user_id)
            case "mark":
                await app.load_roster()
                try:
                    await app.mark(args.user_id, Status(args.status))
                except KeyError:
                    post_message(f"No user '{args.user_id}'", MessageLevel.ERROR)
            case "practice":
                await self._run_practice(app)
            case "onboard":
                await self._run_onboarding(app)
            case "profile":
                await self._run_profile(app)
            case "logout":
                app.sign_out()
                post_message(*self._sign_out_notice())

    def _sign_out_notice(self) -> tuple[str, MessageLevel]:
        """
        サインアウト後の案内

        sign_out() はメモリ上のトークンだけを破棄するため、設定に残った
        リフレッシュトークンは次回起動時に再びサインインに使われる。
        """
        backend = self.settings.backend
        if backend.kind == BackendKind.FIREBASE and backend.refresh_token:
            return (
                "Session ended. Remove backend.refresh_token from config.local.toml "
                "(or unset SYLLABLE_BACKEND_REFRESH_TOKEN) to stay signed out",
                MessageLevel.WARNING,
            )
        return "Session ended", MessageLevel.SUCCESS

    # ========== サブコマンド ==========

    def _filter_state(self) -> FilterState:
        if self.args.status is not None:
            return FilterState.bucket(Status(self.args.status))
        if self.args.search:
            return FilterState.search(self.args.search)
        return FilterState.unfiltered()

    async def _run_roster(self, app: SyllableApp) -> None:
        """ロスターを表示（--watchの場合は変更のたびに再表示）"""
        assert self.view is not None
        view = self.view
        state = self._filter_state()
        app.roster_filter.activate(state)

        if not self.args.watch:
            await app.load_roster()
            view.show_roster(app.roster_filter.visible, state)
            return

        def on_roster_updated(_sender: object, event: RosterUpdatedEvent) -> None:
            view.show_roster(apply_filter(state, event.snapshot), state)

        with roster_updated.connected_to(on_roster_updated):
            post_message("Watching roster... (Ctrl+C to stop)", MessageLevel.SUCCESS)
            try:
                await app.watch_roster()
            finally:
                await app.stop_roster()

    async def _run_practice(self, app: SyllableApp) -> None:
        """練習カードの対話ループ"""
        try:
            practice = app.practice(self.args.user_id)
        except ValueError as e:
            post_message(
                f"{e}. To edit your own pronunciation, use 'syllable profile'.",
                MessageLevel.WARNING,
            )
            return

        post_message(
            "🎙️  Ready to record [Enter] hold to record  [q] quit", MessageLevel.INFO
        )
        while True:
            command = (await self._prompt()).strip().lower()
            if command == "q":
                break
            if practice.mode == PracticeMode.RECORD:
                await self._hold_to_record(practice)
            elif command == "p":
                await practice.play_clip()
            elif command == "s":
                await practice.request_evaluation()
            elif command == "d":
                practice.discard()

    async def _hold_to_record(self, practice: PracticeRecorder) -> None:
        """Enterで録音開始、もう一度Enterで終了"""
        if not practice.begin_hold():
            return
        post_message("● REC (press Enter to stop)", MessageLevel.WARNING)
        completed = False
        try:
            await self._prompt()
            completed = True
        finally:
            practice.end_hold(success=completed)

    async def _run_onboarding(self, app: SyllableApp) -> None:
        """オンボーディング（引数で指定された項目を送信）"""
        args = self.args
        assembler = app.onboarding()
        assembler.set_first_name(args.first_name)
        assembler.set_middle_name(args.middle_name)
        assembler.set_last_name(args.last_name)
        if args.country_code:
            assembler.set_country(
                Country(code=args.country_code, name=args.country_name or args.country_code)
            )
        if args.picture:
            try:
                assembler.set_picture(await asyncio.to_thread(Path(args.picture).read_bytes))
            except OSError as e:
                post_message(f"Cannot read picture: {e}", MessageLevel.ERROR)
                return

        result = await assembler.submit()
        if not result.can_continue:
            post_message("Profile not saved, try again", MessageLevel.WARNING)

    async def _run_profile(self, app: SyllableApp) -> None:
        assert self.view is not None
        record = await app.load_viewer_profile()
        if record is None:
            post_message(
                "No profile yet. Create one with 'syllable onboard'.",
                MessageLevel.WARNING,
            )
            return
        self.view.show_profile(record)

    @staticmethod
    async def _prompt() -> str:
        """標準入力から1行読む（Ctrl-DでEOFError）"""
        line = await asyncio.to_thread(sys.stdin.readline)
        if not line:
            raise EOFError
        return line

    def _shutdown(self) -> None:
        """アプリケーションの終了処理"""
        if self.app:
            self.app.shutdown()

        if self.view:
            self.view.stop()
