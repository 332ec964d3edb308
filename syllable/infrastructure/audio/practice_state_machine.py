#!/usr/bin/env python3
"""
Syllable - Practice State Machine Module
練習カード（録音 / 再生）の状態遷移ロジックを管理するモジュール
"""

from enum import Enum, auto

from syllable.domain import PracticeMode


class PracticeTrigger(Enum):
    """練習カードへの入力"""

    RECORDING_SUCCEEDED = auto()  # 長押し録音が正常に終了
    RECORDING_FAILED = auto()  # 録音デバイスのエラー
    DISCARDED = auto()  # 録音済みクリップの破棄
    EVALUATION_UPLOADED = auto()  # 評価依頼のアップロード成功


class PracticeAction(Enum):
    """状態遷移によって発生するアクション"""

    NONE = auto()
    ENABLE_CONTROLS = auto()  # 提出・破棄ボタンを有効化
    DISABLE_CONTROLS = auto()  # 提出・破棄ボタンを無効化


class PracticeStateMachine:
    """
    練習カードの2状態ステートマシン

    遷移:
    - RECORD --(録音成功)--> PLAY
    - PLAY --(破棄)--> RECORD
    - PLAY --(評価依頼のアップロード成功)--> RECORD
    - 録音失敗は常にRECORDへ戻す

    上記以外の入力は状態を変えない。
    """

    def __init__(self) -> None:
        self.mode = PracticeMode.RECORD

    @property
    def controls_enabled(self) -> bool:
        """提出・破棄ボタンが有効かどうか"""
        return self.mode == PracticeMode.PLAY

    def process(self, trigger: PracticeTrigger) -> PracticeAction:
        """
        入力を処理し、状態遷移に基づくアクションを返す

        Args:
            trigger: 練習カードへの入力

        Returns:
            PracticeAction: 実行すべきアクション
        """
        if trigger == PracticeTrigger.RECORDING_SUCCEEDED:
            if self.mode == PracticeMode.RECORD:
                return self._enter(PracticeMode.PLAY)
            return PracticeAction.NONE

        if trigger == PracticeTrigger.RECORDING_FAILED:
            return self._enter(PracticeMode.RECORD)

        # DISCARDED / EVALUATION_UPLOADED はPLAYからのみ有効
        if self.mode == PracticeMode.PLAY:
            return self._enter(PracticeMode.RECORD)
        return PracticeAction.NONE

    def _enter(self, mode: PracticeMode) -> PracticeAction:
        """モードを切り替え、ボタン状態のアクションを返す"""
        if self.mode == mode:
            return PracticeAction.NONE
        self.mode = mode
        if mode == PracticeMode.PLAY:
            return PracticeAction.ENABLE_CONTROLS
        return PracticeAction.DISABLE_CONTROLS
