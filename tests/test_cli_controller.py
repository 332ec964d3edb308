"""CLIControllerのテスト"""

import argparse
from pathlib import Path

import pytest

from syllable.domain import MessageLevel
from syllable.presentation.cli import CLIController

FIREBASE_CONFIG = """
[backend]
kind = "firebase"
database_url = "https://example-default-rtdb.firebaseio.com"
storage_bucket = "example.appspot.com"
api_key = "api-key"
"""


def make_controller(config_dir: Path) -> CLIController:
    return CLIController(argparse.Namespace(config_dir=config_dir))


class TestSignOutNotice:
    """サインアウト後の案内のテスト"""

    @pytest.fixture(autouse=True)
    def _no_token_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SYLLABLE_BACKEND_REFRESH_TOKEN", raising=False)

    def test_saved_refresh_token_must_be_removed(self, tmp_path: Path) -> None:
        """設定に残ったリフレッシュトークンは次回起動時に再利用される"""
        (tmp_path / "config.toml").write_text(FIREBASE_CONFIG)
        (tmp_path / "config.local.toml").write_text(
            '[backend]\nrefresh_token = "refresh-1"\n'
        )

        message, level = make_controller(tmp_path)._sign_out_notice()

        assert level == MessageLevel.WARNING
        assert "Signed out" not in message
        assert "refresh_token" in message
        assert "config.local.toml" in message

    def test_without_saved_token(self, tmp_path: Path) -> None:
        (tmp_path / "config.toml").write_text(FIREBASE_CONFIG)

        message, level = make_controller(tmp_path)._sign_out_notice()

        assert (message, level) == ("Session ended", MessageLevel.SUCCESS)

    def test_memory_backend(self, tmp_path: Path) -> None:
        message, level = make_controller(tmp_path)._sign_out_notice()

        assert (message, level) == ("Session ended", MessageLevel.SUCCESS)
