"""PracticeRecorderのテスト"""

from pathlib import Path

import pytest
from fakes import (
    FakePlayer,
    FakeRecorder,
    ScriptedBlobStore,
    ScriptedRecordStore,
    capture,
)

from syllable.domain import (
    AudioSettings,
    MessageLevel,
    MessagePostedEvent,
    PlaybackOutcome,
    PracticeMode,
    StorageSettings,
    ViewerContext,
    practice_mode_changed,
    practice_submitted,
)
from syllable.infrastructure.audio import PlaybackController, PracticeRecorder
from syllable.infrastructure.persistence import LocalAudioStore

VIEWER = ViewerContext(user_id="me")
CLIP_BLOB = "practice-audio-recordings/practice-me-A.m4a"


class Harness:
    """PracticeRecorderと依存オブジェクト一式"""

    def __init__(
        self,
        tmp_path: Path,
        recorder: FakeRecorder | None = None,
        blobs: ScriptedBlobStore | None = None,
        records: ScriptedRecordStore | None = None,
    ) -> None:
        self.recorder = recorder or FakeRecorder()
        self.blobs = blobs or ScriptedBlobStore()
        self.records = records or ScriptedRecordStore()
        self.player = FakePlayer()
        local_store = LocalAudioStore(tmp_path)
        playback = PlaybackController(
            blob_store=self.blobs,
            player=self.player,
            local_store=local_store,
            storage_settings=StorageSettings(),
            audio_settings=AudioSettings(progress_interval_sec=0.0),
        )
        self.practice = PracticeRecorder(
            subject_id="A",
            viewer=VIEWER,
            recorder=self.recorder,
            playback=playback,
            blob_store=self.blobs,
            record_store=self.records,
            local_store=local_store,
            storage_settings=StorageSettings(),
        )

    def record_clip(self) -> None:
        assert self.practice.begin_hold()
        assert self.practice.end_hold(success=True) == PracticeMode.PLAY


class TestRecording:
    """長押し録音のテスト"""

    def test_hold_records_clip(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path)
        with capture(practice_mode_changed) as events:
            harness.record_clip()

        assert harness.practice.clip_path == tmp_path / "practice-me-A.m4a"
        assert harness.practice.clip_path.exists()
        assert [(e.mode, e.controls_enabled) for e in events] == [
            (PracticeMode.PLAY, True)
        ]

    def test_second_hold_while_recording_is_noop(self, tmp_path: Path) -> None:
        """録音中の再入は無視される"""
        harness = Harness(tmp_path)
        assert harness.practice.begin_hold()
        assert not harness.practice.begin_hold()
        assert harness.recorder.start_count == 1

    def test_hold_ignored_in_play_mode(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path)
        harness.record_clip()
        assert not harness.practice.begin_hold()
        assert harness.recorder.start_count == 1

    def test_recorder_start_failure_stays_in_record(
        self, tmp_path: Path, messages: list[MessagePostedEvent]
    ) -> None:
        harness = Harness(tmp_path, recorder=FakeRecorder(fail_on_start=True))
        assert not harness.practice.begin_hold()
        assert harness.practice.mode == PracticeMode.RECORD
        assert [m.level for m in messages] == [MessageLevel.ERROR]

    def test_recorder_stop_failure_reverts_to_record(
        self, tmp_path: Path, messages: list[MessagePostedEvent]
    ) -> None:
        harness = Harness(tmp_path, recorder=FakeRecorder(fail_on_stop=True))
        harness.practice.begin_hold()
        assert harness.practice.end_hold() == PracticeMode.RECORD
        assert not harness.recorder.is_recording
        assert [m.level for m in messages] == [MessageLevel.ERROR]

    def test_cancelled_hold_discards_clip(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path)
        harness.practice.begin_hold()
        assert harness.practice.end_hold(success=False) == PracticeMode.RECORD
        assert not harness.practice.clip_path.exists()

    def test_cancelled_hold_survives_delete_failure(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        messages: list[MessagePostedEvent],
    ) -> None:
        """クリップ削除に失敗しても例外を出さずRECORDへ戻る"""
        harness = Harness(tmp_path)

        def fail_delete(evaluator_id: str, subject_id: str) -> bool:
            raise PermissionError("read-only volume")

        monkeypatch.setattr(
            harness.practice.local_store, "discard_practice_clip", fail_delete
        )
        harness.practice.begin_hold()

        assert harness.practice.end_hold(success=False) == PracticeMode.RECORD
        assert not harness.recorder.is_recording
        assert [m.level for m in messages] == [MessageLevel.WARNING]
        assert harness.practice.begin_hold()

    def test_not_available_for_own_record(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            PracticeRecorder(
                subject_id="me",
                viewer=VIEWER,
                recorder=FakeRecorder(),
                playback=Harness(tmp_path).practice.playback,
                blob_store=ScriptedBlobStore(),
                record_store=ScriptedRecordStore(),
                local_store=LocalAudioStore(tmp_path),
                storage_settings=StorageSettings(),
            )


class TestDiscard:
    """破棄のテスト"""

    def test_discard_returns_to_record_without_submission(
        self, tmp_path: Path
    ) -> None:
        """record → play → 破棄 → record で提出記録は書き込まれない"""
        harness = Harness(tmp_path)
        harness.record_clip()

        with capture(practice_submitted) as submitted:
            assert harness.practice.discard()

        assert harness.practice.mode == PracticeMode.RECORD
        assert not harness.practice.clip_path.exists()
        assert harness.records.writes == []
        assert harness.blobs.blobs == {}
        assert submitted == []

    def test_discard_ignored_in_record_mode(self, tmp_path: Path) -> None:
        assert not Harness(tmp_path).practice.discard()


class TestRequestEvaluation:
    """評価依頼のテスト"""

    @pytest.mark.asyncio
    async def test_upload_then_timestamp(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path)
        harness.record_clip()

        with capture(practice_submitted) as submitted:
            submission = await harness.practice.request_evaluation()

        assert submission is not None
        assert harness.practice.mode == PracticeMode.RECORD
        assert harness.blobs.blobs[CLIP_BLOB] == harness.practice.clip_path.read_bytes()
        assert harness.blobs.content_types[CLIP_BLOB] == "audio/m4a"
        assert harness.records.writes == [
            ("practices/A/me", submission.timestamp)
        ]
        assert [event.submission for event in submitted] == [submission]

    @pytest.mark.asyncio
    async def test_upload_failure_stays_in_play(
        self, tmp_path: Path, messages: list[MessagePostedEvent]
    ) -> None:
        """アップロード失敗時はPLAYのまま、クリップを残し、何も書き込まない"""
        harness = Harness(
            tmp_path,
            blobs=ScriptedBlobStore(fail_prefixes=("practice-audio-recordings/",)),
        )
        harness.record_clip()

        assert await harness.practice.request_evaluation() is None

        assert harness.practice.mode == PracticeMode.PLAY
        assert harness.practice.clip_path.exists()
        assert harness.records.writes == []
        assert [m.level for m in messages] == [MessageLevel.ERROR]

    @pytest.mark.asyncio
    async def test_retry_after_upload_failure(self, tmp_path: Path) -> None:
        blobs = ScriptedBlobStore(fail_prefixes=("practice-audio-recordings/",))
        harness = Harness(tmp_path, blobs=blobs)
        harness.record_clip()
        assert await harness.practice.request_evaluation() is None

        blobs.fail_prefixes = ()
        assert await harness.practice.request_evaluation() is not None
        assert harness.practice.mode == PracticeMode.RECORD

    @pytest.mark.asyncio
    async def test_timestamp_failure_is_reported(
        self, tmp_path: Path, messages: list[MessagePostedEvent]
    ) -> None:
        harness = Harness(
            tmp_path, records=ScriptedRecordStore(fail_write_prefixes=("practices/",))
        )
        harness.record_clip()

        with capture(practice_submitted) as submitted:
            assert await harness.practice.request_evaluation() is None

        assert CLIP_BLOB in harness.blobs.blobs
        assert harness.practice.mode == PracticeMode.RECORD
        assert submitted == []
        assert [m.level for m in messages] == [MessageLevel.ERROR]

    @pytest.mark.asyncio
    async def test_ignored_in_record_mode(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path)
        assert await harness.practice.request_evaluation() is None
        assert harness.blobs.blobs == {}


class TestPlayClip:
    """録音済みクリップ再生のテスト"""

    @pytest.mark.asyncio
    async def test_plays_local_clip(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path)
        harness.record_clip()

        outcome = await harness.practice.play_clip()

        assert outcome == PlaybackOutcome.COMPLETED
        assert len(harness.player.started) == 1

    @pytest.mark.asyncio
    async def test_no_clip_in_record_mode(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path)
        assert await harness.practice.play_clip() is None
        assert harness.player.started == []
