"""RosterLoaderのテスト"""

import asyncio

import pytest
from fakes import ScriptedBlobStore, ScriptedRecordStore, capture, user_fields

from syllable.domain import (
    MessageLevel,
    MessagePostedEvent,
    Status,
    StorageSettings,
    ViewerContext,
    roster_updated,
    viewer_record_resolved,
)
from syllable.infrastructure.backend import InMemoryRecordStore
from syllable.infrastructure.roster import RosterLoader

VIEWER = ViewerContext(user_id="viewer")


def make_loader(
    records: InMemoryRecordStore | None = None,
    blobs: ScriptedBlobStore | None = None,
) -> RosterLoader:
    return RosterLoader(
        record_store=records or ScriptedRecordStore(),
        blob_store=blobs or ScriptedBlobStore(),
        viewer=VIEWER,
        storage_settings=StorageSettings(),
    )


class TestBuildSnapshot:
    """スナップショット組み立てのテスト"""

    @pytest.mark.asyncio
    async def test_orders_by_last_name_and_redraws_once(self) -> None:
        """Zeta/Amesの2人は [B, A] の順で、再描画は1回だけ"""
        # Aの取得の方が遅く完了する
        records = ScriptedRecordStore(
            {"statuses": {"viewer": {"A": "learned"}}},
            delays={"statuses/viewer/A": 0.02},
        )
        blobs = ScriptedBlobStore(
            {"profile-pictures/A.jpg": b"a-jpeg", "profile-pictures/B.jpg": b"b-jpeg"},
            delays={"profile-pictures/A.jpg": 0.01},
        )
        loader = make_loader(records, blobs)

        with capture(roster_updated) as events:
            await loader.handle_change(
                {"A": user_fields("Ann", "Zeta"), "B": user_fields("Bea", "Ames")}
            )

        assert len(events) == 1
        snapshot = events[0].snapshot
        assert snapshot.ids == ["B", "A"]
        assert snapshot.is_complete
        assert snapshot.declared_total == 2
        a = snapshot.get("A")
        assert a is not None
        assert a.status == Status.LEARNED
        assert a.profile_picture == b"a-jpeg"

    @pytest.mark.asyncio
    async def test_completion_order_does_not_matter(self) -> None:
        """取得完了順が逆でも同じスナップショットになる"""
        users = {
            "A": user_fields("Ann", "Zeta"),
            "B": user_fields("Bea", "Ames"),
            "C": user_fields("Cal", "Moss"),
        }
        fast = make_loader()
        slow = make_loader(
            ScriptedRecordStore(delays={"statuses/viewer/B": 0.02}),
            ScriptedBlobStore(delays={"profile-pictures/C.jpg": 0.01}),
        )

        first = await fast.build_snapshot(users)
        second = await slow.build_snapshot(users)

        assert first.ids == second.ids == ["B", "C", "A"]

    @pytest.mark.asyncio
    async def test_fetches_run_concurrently(self) -> None:
        """ユーザーごとの取得は並行に実行される"""
        users = {f"u{i}": user_fields("X", f"Last{i}") for i in range(5)}
        delays = {f"statuses/viewer/u{i}": 0.05 for i in range(5)}
        loader = make_loader(ScriptedRecordStore(delays=delays))

        loop = asyncio.get_running_loop()
        started = loop.time()
        snapshot = await loader.build_snapshot(users)

        assert len(snapshot) == 5
        assert loop.time() - started < 0.2

    @pytest.mark.asyncio
    async def test_empty_roster(self) -> None:
        snapshot = await make_loader().build_snapshot(None)
        assert len(snapshot) == 0
        assert snapshot.is_complete

    @pytest.mark.asyncio
    async def test_unknown_status_is_none(self) -> None:
        records = ScriptedRecordStore({"statuses": {"viewer": {"A": "mastered"}}})
        snapshot = await make_loader(records).build_snapshot(
            {"A": user_fields("Ann", "Zeta")}
        )
        record = snapshot.get("A")
        assert record is not None
        assert record.status == Status.NONE


class TestFailureDefaults:
    """取得失敗時の既定値のテスト"""

    @pytest.mark.asyncio
    async def test_picture_failure_gives_no_picture(
        self, messages: list[MessagePostedEvent]
    ) -> None:
        """画像の取得失敗はレコードを失敗させない"""
        blobs = ScriptedBlobStore(fail_prefixes=("profile-pictures/A",))
        records = ScriptedRecordStore({"statuses": {"viewer": {"A": "needPractice"}}})
        snapshot = await make_loader(records, blobs).build_snapshot(
            {"A": user_fields("Ann", "Zeta")}
        )

        record = snapshot.get("A")
        assert record is not None
        assert record.profile_picture is None
        assert record.status == Status.NEED_PRACTICE
        assert [m.level for m in messages] == [MessageLevel.WARNING]

    @pytest.mark.asyncio
    async def test_missing_picture_is_silent(
        self, messages: list[MessagePostedEvent]
    ) -> None:
        """画像が未設定なのは正常"""
        snapshot = await make_loader().build_snapshot({"A": user_fields("Ann", "Zeta")})
        record = snapshot.get("A")
        assert record is not None
        assert record.profile_picture is None
        assert messages == []

    @pytest.mark.asyncio
    async def test_oversized_picture_gives_no_picture(self) -> None:
        blobs = ScriptedBlobStore({"profile-pictures/A.jpg": b"x" * 16})
        loader = RosterLoader(
            record_store=ScriptedRecordStore(),
            blob_store=blobs,
            viewer=VIEWER,
            storage_settings=StorageSettings(profile_picture_max_bytes=8),
        )
        snapshot = await loader.build_snapshot({"A": user_fields("Ann", "Zeta")})
        record = snapshot.get("A")
        assert record is not None
        assert record.profile_picture is None

    @pytest.mark.asyncio
    async def test_status_failure_gives_none(
        self, messages: list[MessagePostedEvent]
    ) -> None:
        records = ScriptedRecordStore(fail_get_prefixes=("statuses/",))
        snapshot = await make_loader(records).build_snapshot(
            {"A": user_fields("Ann", "Zeta"), "B": user_fields("Bea", "Ames")}
        )

        assert snapshot.is_complete
        assert all(record.status == Status.NONE for record in snapshot)
        assert all(m.level == MessageLevel.WARNING for m in messages)


class TestViewerRecord:
    """閲覧者自身のレコードのテスト"""

    @pytest.mark.asyncio
    async def test_publishes_own_record(self) -> None:
        loader = make_loader()
        with capture(viewer_record_resolved) as events:
            await loader.handle_change(
                {"viewer": user_fields("Vi", "Ewer"), "A": user_fields("Ann", "Zeta")}
            )
        assert [event.record.id for event in events] == ["viewer"]

    @pytest.mark.asyncio
    async def test_no_event_without_own_record(self) -> None:
        loader = make_loader()
        with capture(viewer_record_resolved) as events:
            await loader.handle_change({"A": user_fields("Ann", "Zeta")})
        assert events == []


class TestSubscription:
    """購読のテスト"""

    @pytest.mark.asyncio
    async def test_rebuilds_on_every_change(self) -> None:
        """変更のたびにロスター全体を作り直す"""
        records = ScriptedRecordStore({"users": {"A": user_fields("Ann", "Zeta")}})
        loader = make_loader(records)

        with capture(roster_updated) as events:
            task = asyncio.create_task(loader.run())
            while len(events) < 1:
                await asyncio.sleep(0)

            await records.write("users/B", user_fields("Bea", "Ames"))
            while len(events) < 2:
                await asyncio.sleep(0)

            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert events[0].snapshot.ids == ["A"]
        assert events[1].snapshot.ids == ["B", "A"]
        assert loader.snapshot is events[1].snapshot

    @pytest.mark.asyncio
    async def test_remote_status_change_refreshes_record(self) -> None:
        """他のセッションで書かれたステータスは該当レコードだけ差し替える"""
        records = ScriptedRecordStore(
            {
                "users": {
                    "A": user_fields("Ann", "Zeta"),
                    "B": user_fields("Bea", "Ames"),
                }
            }
        )
        loader = make_loader(records)

        with capture(roster_updated) as events:
            task = asyncio.create_task(loader.run())
            while len(events) < 1:
                await asyncio.sleep(0)
            first_a = events[0].snapshot.get("A")

            await records.write("statuses/viewer/A", "learned")
            while len(events) < 2:
                await asyncio.sleep(0)

            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        snapshot = events[1].snapshot
        assert snapshot is events[0].snapshot
        assert snapshot.ids == ["B", "A"]
        assert snapshot.get("A").status == Status.LEARNED
        assert snapshot.get("A") is not first_a
        assert snapshot.get("B").status == Status.NONE
        assert len(events) == 2

    @pytest.mark.asyncio
    async def test_status_change_only_publishes_on_difference(self) -> None:
        loader = make_loader()
        await loader.handle_change(
            {"A": user_fields("Ann", "Zeta"), "B": user_fields("Bea", "Ames")}
        )

        with capture(roster_updated) as events:
            assert loader.handle_statuses({}) == []
            assert loader.handle_statuses({"B": "needPractice"}) == ["B"]
            assert loader.handle_statuses({"B": "needPractice"}) == []

        assert len(events) == 1
        assert loader.snapshot.get("B").status == Status.NEED_PRACTICE

    @pytest.mark.asyncio
    async def test_removed_status_resets_to_none(self) -> None:
        records = ScriptedRecordStore(
            {
                "users": {"A": user_fields("Ann", "Zeta")},
                "statuses": {"viewer": {"A": "learned"}},
            }
        )
        loader = make_loader(records)
        await loader.handle_change(await records.get("users"))
        assert loader.snapshot.get("A").status == Status.LEARNED

        assert loader.handle_statuses(None) == ["A"]
        assert loader.snapshot.get("A").status == Status.NONE

    @pytest.mark.asyncio
    async def test_fetch_user(self) -> None:
        records = ScriptedRecordStore(
            {"users": {"viewer": user_fields("Vi", "Ewer", program="MBA")}}
        )
        blobs = ScriptedBlobStore({"profile-pictures/viewer.jpg": b"jpeg"})
        record = await make_loader(records, blobs).fetch_user("viewer")

        assert record is not None
        assert record.full_name == "Vi Ewer"
        assert record.program == "MBA"
        assert record.profile_picture == b"jpeg"
        assert record.status == Status.NONE

    @pytest.mark.asyncio
    async def test_fetch_missing_user(self) -> None:
        assert await make_loader().fetch_user("nobody") is None
