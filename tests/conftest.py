"""テスト共通設定"""

import sys
from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest

# sounddevice が利用できない環境（Linux CI等）ではモックする
if "sounddevice" not in sys.modules:
    sys.modules["sounddevice"] = MagicMock()

from syllable.domain import MessagePostedEvent, message_posted  # noqa: E402


@pytest.fixture
def messages() -> Iterator[list[MessagePostedEvent]]:
    """テスト中に投稿されたメッセージを記録"""
    received: list[MessagePostedEvent] = []

    def receiver(_sender: object, event: MessagePostedEvent) -> None:
        received.append(event)

    with message_posted.connected_to(receiver):
        yield received
