#!/usr/bin/env python3
"""
Syllable - Record Stores
リアルタイム構造化レコードストアの抽象化とアダプタを提供するモジュール
"""

import asyncio
import copy
import json
import threading
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable, Iterator
from typing import Any

import requests

from syllable.domain import BackendSettings

from .errors import BackendError
from .identity import IdentityProvider
from .tree import get_node, merge_node, paths_overlap, set_node, split_path

# ストリームスレッドからイベントループへ渡すメッセージ種別
_STREAM_VALUE = "value"
_STREAM_ERROR = "error"


class RecordStore(ABC):
    """
    レコードストアの抽象基底クラス

    スラッシュ区切りのパスでJSON互換の値を読み書きし、
    パス配下の変更を「値全体のスナップショット」として購読できる。
    """

    @abstractmethod
    async def get(self, path: str) -> Any:
        """
        パスの現在値を1度だけ取得

        Returns:
            Any: 値（存在しない場合はNone）

        Raises:
            BackendError: 取得失敗
        """
        pass

    @abstractmethod
    async def write(self, path: str, value: Any) -> None:
        """
        パスに値を書き込む（Noneはノード削除）

        Raises:
            BackendError: 書き込み失敗
        """
        pass

    async def delete(self, path: str) -> None:
        """パスのノードを削除"""
        await self.write(path, None)

    @abstractmethod
    def subscribe(self, path: str) -> AsyncIterator[Any]:
        """
        パスの値を購読する

        購読開始時に現在値を1回、以降は変更のたびに値全体を yield する。

        Yields:
            Any: パスの値全体（存在しない場合はNone）

        Raises:
            BackendError: 購読が中断された場合
        """
        pass


class InMemoryRecordStore(RecordStore):
    """
    プロセス内メモリ上のレコードストア

    オフラインでの動作確認やテストで使用する。
    書き込みは同期的に反映され、重なるパスの購読者に通知される。
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._tree: Any = copy.deepcopy(initial) if initial else None
        self._subscribers: list[tuple[str, asyncio.Queue[Any]]] = []

    async def get(self, path: str) -> Any:
        return get_node(self._tree, path)

    async def write(self, path: str, value: Any) -> None:
        self._tree = set_node(self._tree, path, value)
        self._notify(path)

    async def subscribe(self, path: str) -> AsyncIterator[Any]:
        queue: asyncio.Queue[Any] = asyncio.Queue()
        entry = (path, queue)
        self._subscribers.append(entry)
        try:
            yield get_node(self._tree, path)
            while True:
                yield await queue.get()
        finally:
            self._subscribers.remove(entry)

    def _notify(self, changed_path: str) -> None:
        """変更パスと重なる購読者に最新値を送る"""
        for path, queue in list(self._subscribers):
            if paths_overlap(path, changed_path):
                queue.put_nowait(get_node(self._tree, path))


def iter_sse_events(lines: Iterable[str]) -> Iterator[tuple[str, str]]:
    """
    Server-Sent Eventsの行ストリームを (event, data) に変換

    Args:
        lines: デコード済みの行（改行なし）

    Yields:
        tuple[str, str]: イベント名とdataフィールド
    """
    event = "message"
    data: list[str] = []
    for line in lines:
        if not line:
            if data:
                yield event, "\n".join(data)
            event, data = "message", []
        elif line.startswith(":"):
            continue
        elif line.startswith("event:"):
            event = line[len("event:") :].strip()
        elif line.startswith("data:"):
            data.append(line[len("data:") :].strip())
    if data:
        yield event, "\n".join(data)


def apply_stream_event(tree: Any, event: str, raw_data: str) -> Any:
    """
    Realtime Databaseのストリーミングイベントをローカルツリーに適用

    Args:
        tree: 現在のツリー
        event: "put" または "patch"
        raw_data: {"path": ..., "data": ...} 形式のJSON文字列

    Returns:
        Any: 更新後のツリー
    """
    payload = json.loads(raw_data)
    path = payload.get("path", "/")
    data = payload.get("data")
    if event == "patch" and isinstance(data, dict):
        return merge_node(tree, path, data)
    return set_node(tree, path, data)


class FirebaseRecordStore(RecordStore):
    """
    Firebase Realtime Database REST APIクライアント

    責務:
    - REST（GET/PUT/DELETE）による読み書き
    - Server-Sent Eventsによる購読（ワーカースレッド → asyncio.Queue）
    - 通信エラーのBackendErrorへの変換

    ブロッキングI/Oはすべてワーカースレッドで実行し、イベントループを止めない。
    """

    def __init__(
        self,
        settings: BackendSettings,
        identity: IdentityProvider,
        session: requests.Session | None = None,
    ) -> None:
        """
        Args:
            settings: バックエンド設定（データベースURL、タイムアウト）
            identity: IDトークンの取得元
            session: HTTPセッション（Noneの場合は新規作成）
        """
        assert settings.database_url is not None
        self.settings = settings
        self.identity = identity
        self._base_url = settings.database_url.rstrip("/")
        self._session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{'/'.join(split_path(path))}.json"

    def _params(self) -> dict[str, str]:
        token = self.identity.id_token()
        return {"auth": token} if token else {}

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """
        REST APIを同期的に呼び出す（ワーカースレッドで実行）

        Raises:
            BackendError: 通信失敗・HTTPエラー・不正なレスポンス
        """
        try:
            response = self._session.request(
                method,
                self._url(path),
                params=self._params(),
                timeout=self.settings.request_timeout_sec,
                **kwargs,
            )
            response.raise_for_status()
            return response.json() if response.content else None
        except (requests.RequestException, ValueError) as e:
            raise BackendError(f"{method} '{path}' failed: {e}") from e

    async def get(self, path: str) -> Any:
        return await asyncio.to_thread(self._request, "GET", path)

    async def write(self, path: str, value: Any) -> None:
        if value is None:
            await asyncio.to_thread(self._request, "DELETE", path)
        else:
            await asyncio.to_thread(self._request, "PUT", path, json=value)

    async def subscribe(self, path: str) -> AsyncIterator[Any]:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()
        stop = threading.Event()

        thread = threading.Thread(
            target=self._stream_loop,
            args=(path, loop, queue, stop),
            daemon=True,
            name="RecordStoreStreamThread",
        )
        thread.start()

        try:
            while True:
                kind, payload = await queue.get()
                if kind == _STREAM_ERROR:
                    raise payload
                yield payload
        finally:
            stop.set()

    def _stream_loop(
        self,
        path: str,
        loop: asyncio.AbstractEventLoop,
        queue: asyncio.Queue[tuple[str, Any]],
        stop: threading.Event,
    ) -> None:
        """ストリーミング受信ループ（別スレッドで実行）"""

        def emit(kind: str, payload: Any) -> None:
            if not stop.is_set() and not loop.is_closed():
                loop.call_soon_threadsafe(queue.put_nowait, (kind, payload))

        tree: Any = None
        try:
            with self._session.get(
                self._url(path),
                params=self._params(),
                headers={"Accept": "text/event-stream"},
                stream=True,
                timeout=(self.settings.request_timeout_sec, None),
            ) as response:
                response.raise_for_status()
                for event, data in iter_sse_events(
                    response.iter_lines(decode_unicode=True)
                ):
                    if stop.is_set():
                        return
                    if event in ("put", "patch"):
                        tree = apply_stream_event(tree, event, data)
                        emit(_STREAM_VALUE, tree)
                    elif event in ("cancel", "auth_revoked"):
                        emit(
                            _STREAM_ERROR,
                            BackendError(f"Subscription to '{path}' ended: {event}"),
                        )
                        return
                    # keep-alive は無視
        except (requests.RequestException, BackendError, ValueError) as e:
            emit(_STREAM_ERROR, BackendError(f"Subscription to '{path}' failed: {e}"))
            return

        emit(_STREAM_ERROR, BackendError(f"Subscription to '{path}' closed"))
