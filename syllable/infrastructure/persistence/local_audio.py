#!/usr/bin/env python3
"""
Syllable - Local Audio Store
インフラ層：ダウンロード済み録音と練習クリップのローカル保存
"""

from pathlib import Path

from syllable.domain.constants import PRACTICE_CLIP_NAME, RECORDING_PATH


class LocalAudioStore:
    """
    ローカルディスク上の音声ファイル管理

    責務:
    - 練習クリップのパス決定（録音者ID×対象ユーザーID）
    - ダウンロードした発音録音の保存
    - 練習クリップの破棄
    """

    def __init__(self, root: Path) -> None:
        """
        Args:
            root: 保存先ディレクトリ（存在しない場合は作成）
        """
        self.root = root

    def _ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def practice_clip_path(self, evaluator_id: str, subject_id: str) -> Path:
        """練習クリップのローカルパス"""
        name = PRACTICE_CLIP_NAME.format(
            evaluator_id=evaluator_id, subject_id=subject_id
        )
        return self._ensure_root() / name

    def recording_path(self, user_id: str) -> Path:
        """ダウンロードした発音録音のローカルパス"""
        return self._ensure_root() / Path(RECORDING_PATH.format(user_id=user_id)).name

    def save_recording(self, user_id: str, data: bytes) -> Path:
        """
        発音録音を保存

        Returns:
            Path: 保存先パス
        """
        path = self.recording_path(user_id)
        path.write_bytes(data)
        return path

    def discard_practice_clip(self, evaluator_id: str, subject_id: str) -> bool:
        """
        練習クリップを削除

        Returns:
            bool: ファイルが存在して削除されたかどうか
        """
        path = self.practice_clip_path(evaluator_id, subject_id)
        if not path.exists():
            return False
        path.unlink()
        return True
