"""Firebaseアダプタのテスト（HTTPセッションはモック）"""

import asyncio
import json
from unittest.mock import MagicMock

import pytest
import requests

from syllable.domain import (
    BackendKind,
    BackendSettings,
    MessageLevel,
    MessagePostedEvent,
    StorageSettings,
    ViewerContext,
)
from syllable.infrastructure.backend import (
    BackendError,
    BlobNotFoundError,
    BlobTooLargeError,
    FirebaseBlobStore,
    FirebaseIdentityProvider,
    FirebaseRecordStore,
    InMemoryBlobStore,
    StaticIdentityProvider,
)
from syllable.infrastructure.roster import RosterLoader

SETTINGS = BackendSettings(
    kind=BackendKind.FIREBASE,
    database_url="https://example-default-rtdb.firebaseio.com/",
    storage_bucket="example.appspot.com",
    api_key="api-key",
    refresh_token="refresh-1",
)


def streaming_session(
    chunks: list[bytes], status_code: int = 200, content_length: int | None = None
) -> MagicMock:
    """ストリーミングGETを返すセッションのモック"""
    response = MagicMock()
    response.status_code = status_code
    response.headers = (
        {"Content-Length": str(content_length)} if content_length is not None else {}
    )
    response.iter_content.return_value = iter(chunks)
    session = MagicMock()
    session.get.return_value.__enter__.return_value = response
    return session


def blob_store(session: MagicMock) -> FirebaseBlobStore:
    return FirebaseBlobStore(
        SETTINGS, StaticIdentityProvider("me", token="id-token"), session=session
    )


class TestInMemoryBlobStore:
    """InMemoryBlobStoreのテスト"""

    @pytest.mark.asyncio
    async def test_missing_blob(self) -> None:
        with pytest.raises(BlobNotFoundError):
            await InMemoryBlobStore().get("profile-pictures/a.jpg", 10)

    @pytest.mark.asyncio
    async def test_oversized_blob(self) -> None:
        store = InMemoryBlobStore({"audio-recordings/a.m4a": b"x" * 11})
        with pytest.raises(BlobTooLargeError):
            await store.get("audio-recordings/a.m4a", 10)

    @pytest.mark.asyncio
    async def test_put_records_content_type(self) -> None:
        store = InMemoryBlobStore()
        await store.put("profile-pictures/a.jpg", b"jpeg", "image/jpg")
        assert await store.get("profile-pictures/a.jpg", 10) == b"jpeg"
        assert store.content_types["profile-pictures/a.jpg"] == "image/jpg"


class TestFirebaseBlobStore:
    """FirebaseBlobStoreのテスト"""

    @pytest.mark.asyncio
    async def test_download(self) -> None:
        session = streaming_session([b"ab", b"cd"], content_length=4)
        data = await blob_store(session).get("audio-recordings/a.m4a", 10)

        assert data == b"abcd"
        url = session.get.call_args.args[0]
        assert url == (
            "https://firebasestorage.googleapis.com/v0/b/example.appspot.com/o/"
            "audio-recordings%2Fa.m4a"
        )
        kwargs = session.get.call_args.kwargs
        assert kwargs["params"] == {"alt": "media"}
        assert kwargs["headers"] == {"Authorization": "Firebase id-token"}

    @pytest.mark.asyncio
    async def test_declared_size_over_cap(self) -> None:
        session = streaming_session([b"x" * 20], content_length=20)
        with pytest.raises(BlobTooLargeError):
            await blob_store(session).get("audio-recordings/a.m4a", 10)

    @pytest.mark.asyncio
    async def test_streamed_size_over_cap(self) -> None:
        """Content-Lengthがなくても受信量で上限を判定する"""
        session = streaming_session([b"x" * 6, b"x" * 6])
        with pytest.raises(BlobTooLargeError):
            await blob_store(session).get("audio-recordings/a.m4a", 10)

    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        session = streaming_session([], status_code=404)
        with pytest.raises(BlobNotFoundError):
            await blob_store(session).get("profile-pictures/a.jpg", 10)

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("offline")
        with pytest.raises(BackendError):
            await blob_store(session).get("profile-pictures/a.jpg", 10)

    @pytest.mark.asyncio
    async def test_upload(self) -> None:
        session = MagicMock()
        await blob_store(session).put("profile-pictures/me.jpg", b"jpeg", "image/jpg")

        kwargs = session.post.call_args.kwargs
        assert kwargs["params"] == {
            "uploadType": "media",
            "name": "profile-pictures/me.jpg",
        }
        assert kwargs["headers"]["Content-Type"] == "image/jpg"
        assert kwargs["data"] == b"jpeg"

    @pytest.mark.asyncio
    async def test_upload_http_error(self) -> None:
        session = MagicMock()
        session.post.return_value.raise_for_status.side_effect = requests.HTTPError(
            "403"
        )
        with pytest.raises(BackendError):
            await blob_store(session).put("profile-pictures/me.jpg", b"", "image/jpg")


class TestFirebaseRecordStore:
    """FirebaseRecordStoreのテスト"""

    def make_store(self, session: MagicMock) -> FirebaseRecordStore:
        return FirebaseRecordStore(
            SETTINGS, StaticIdentityProvider("me", token="id-token"), session=session
        )

    @pytest.mark.asyncio
    async def test_get(self) -> None:
        session = MagicMock()
        session.request.return_value.content = b'"learned"'
        session.request.return_value.json.return_value = "learned"

        value = await self.make_store(session).get("statuses/me/a")

        assert value == "learned"
        args, kwargs = session.request.call_args
        assert args == (
            "GET",
            "https://example-default-rtdb.firebaseio.com/statuses/me/a.json",
        )
        assert kwargs["params"] == {"auth": "id-token"}

    @pytest.mark.asyncio
    async def test_write_none_deletes(self) -> None:
        session = MagicMock()
        session.request.return_value.content = b"null"
        session.request.return_value.json.return_value = None

        await self.make_store(session).write("statuses/me/a", None)

        assert session.request.call_args.args[0] == "DELETE"

    @pytest.mark.asyncio
    async def test_write_puts_json(self) -> None:
        session = MagicMock()
        session.request.return_value.content = b"1.5"
        session.request.return_value.json.return_value = 1.5

        await self.make_store(session).write("practices/a/me", 1.5)

        assert session.request.call_args.args[0] == "PUT"
        assert session.request.call_args.kwargs["json"] == 1.5

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        session = MagicMock()
        session.request.return_value.raise_for_status.side_effect = (
            requests.HTTPError("401")
        )
        with pytest.raises(BackendError):
            await self.make_store(session).get("users")


class TestFirebaseIdentityProvider:
    """FirebaseIdentityProviderのテスト"""

    def token_session(self) -> MagicMock:
        session = MagicMock()
        session.post.return_value.json.return_value = {
            "id_token": "id-1",
            "user_id": "me",
            "refresh_token": "refresh-2",
            "expires_in": "3600",
        }
        return session

    def test_exchanges_refresh_token_once(self) -> None:
        session = self.token_session()
        identity = FirebaseIdentityProvider(SETTINGS, session=session)

        assert identity.current_user_id() == "me"
        assert identity.id_token() == "id-1"
        assert session.post.call_count == 1
        assert session.post.call_args.kwargs["data"] == {
            "grant_type": "refresh_token",
            "refresh_token": "refresh-1",
        }

    def test_sign_out_clears_session(self) -> None:
        identity = FirebaseIdentityProvider(SETTINGS, session=self.token_session())
        identity.current_user_id()
        identity.sign_out()

        assert identity.current_user_id() is None
        assert identity.id_token() is None

    def test_refresh_failure(self) -> None:
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("offline")
        identity = FirebaseIdentityProvider(SETTINGS, session=session)

        with pytest.raises(BackendError):
            identity.current_user_id()


def sse_session(lines: list[str]) -> MagicMock:
    """Server-Sent Eventsを返すセッションのモック（呼び出しごとに同じ行を流す）"""
    response = MagicMock()
    response.iter_lines.side_effect = lambda *args, **kwargs: iter(lines)
    session = MagicMock()
    session.get.return_value.__enter__.return_value = response
    return session


def sse_event(event: str, path: str, data: object) -> list[str]:
    payload = json.dumps({"path": path, "data": data})
    return [f"event: {event}", f"data: {payload}", ""]


class TestFirebaseSubscription:
    """FirebaseRecordStoreの購読（ストリームスレッド → イベントループ）のテスト"""

    def make_store(self, session: MagicMock) -> FirebaseRecordStore:
        return FirebaseRecordStore(
            SETTINGS, StaticIdentityProvider("me", token="id-token"), session=session
        )

    @pytest.mark.asyncio
    async def test_put_and_patch_yield_merged_tree(self) -> None:
        lines = [
            *sse_event("put", "/", {"A": {"firstName": "Ann"}}),
            ": comment",
            "event: keep-alive",
            "data: null",
            "",
            *sse_event("patch", "/B", {"lastName": "Ames"}),
            *sse_event("put", "/A/firstName", "Anne"),
        ]
        session = sse_session(lines)
        stream = self.make_store(session).subscribe("users")

        first = await asyncio.wait_for(anext(stream), timeout=5)
        second = await asyncio.wait_for(anext(stream), timeout=5)
        third = await asyncio.wait_for(anext(stream), timeout=5)

        assert first == {"A": {"firstName": "Ann"}}
        assert second == {"A": {"firstName": "Ann"}, "B": {"lastName": "Ames"}}
        assert third == {"A": {"firstName": "Anne"}, "B": {"lastName": "Ames"}}

        # ストリームが閉じたら購読は失敗として終わる
        with pytest.raises(BackendError, match="closed"):
            await asyncio.wait_for(anext(stream), timeout=5)

        args, kwargs = session.get.call_args
        assert args == ("https://example-default-rtdb.firebaseio.com/users.json",)
        assert kwargs["params"] == {"auth": "id-token"}
        assert kwargs["headers"] == {"Accept": "text/event-stream"}
        assert kwargs["stream"] is True

    @pytest.mark.asyncio
    async def test_cancel_event_raises(self) -> None:
        session = sse_session(["event: cancel", "data: null", ""])
        stream = self.make_store(session).subscribe("users")

        with pytest.raises(BackendError, match="cancel"):
            await asyncio.wait_for(anext(stream), timeout=5)

    @pytest.mark.asyncio
    async def test_auth_revoked_raises_after_values(self) -> None:
        lines = [
            *sse_event("put", "/", "learned"),
            "event: auth_revoked",
            "data: credential is no longer valid",
            "",
        ]
        stream = self.make_store(sse_session(lines)).subscribe("statuses/me/a")

        assert await asyncio.wait_for(anext(stream), timeout=5) == "learned"
        with pytest.raises(BackendError, match="auth_revoked"):
            await asyncio.wait_for(anext(stream), timeout=5)

    @pytest.mark.asyncio
    async def test_connection_error_raises(self) -> None:
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("offline")
        stream = self.make_store(session).subscribe("users")

        with pytest.raises(BackendError, match="offline"):
            await asyncio.wait_for(anext(stream), timeout=5)

    @pytest.mark.asyncio
    async def test_roster_loader_reports_ended_subscription(
        self, messages: list[MessagePostedEvent]
    ) -> None:
        """購読の中断はERRORとして通知され、run() は戻る"""
        session = sse_session(["event: cancel", "data: null", ""])
        loader = RosterLoader(
            record_store=self.make_store(session),
            blob_store=InMemoryBlobStore(),
            viewer=ViewerContext(user_id="me"),
            storage_settings=StorageSettings(),
        )

        await asyncio.wait_for(loader.run(), timeout=5)

        errors = [m for m in messages if m.level == MessageLevel.ERROR]
        assert errors
        assert all("subscription ended" in m.message for m in errors)
        assert len(loader.snapshot) == 0
