"""Unit tests for SessionController."""

import pytest
import threading
import time

from pubsub import pub

from sessioncap.errors import AlreadyRunningError, NotRunningError, SessionStoreError
from sessioncap.models.session import SessionState
from sessioncap.services.session_controller import SESSION_TOPIC, SessionController
from sessioncap.upload.coordinator import UploadCoordinator


@pytest.mark.unit
class TestSessionControllerLifecycle:
    """Test cases for the start/stop state machine."""

    def test_initial_state(self, controller):
        assert controller.state == SessionState.IDLE
        assert controller.session is None
        assert controller.get_status() == {"state": "idle"}

    def test_start_creates_running_session(self, controller, temp_storage_root):
        """Test that start() creates the folder and enters RUNNING."""
        session = controller.start([0, 1], 2, "bot-1")

        assert controller.state == SessionState.RUNNING
        assert session.state == SessionState.RUNNING
        assert session.storage_root.parent == temp_storage_root
        assert session.storage_root.name == f"session_{session.session_id}"
        assert session.selected_sources == [0, 1]
        assert session.warnings == []
        assert controller.store.audio_path.exists()

    def test_stop_uploads_and_reaches_stopped(self, controller, collector):
        """Test the full transition chain and the upload on stop."""
        session = controller.start([0, 1], 2, "bot-1")
        time.sleep(0.35)

        stopped = controller.stop()

        assert stopped is session
        assert controller.state == SessionState.STOPPED
        assert session.stopped_at is not None
        assert controller.store.is_sealed
        assert session.snapshot_stats.snapshots_written >= 4
        assert session.audio_stats.bytes_written > 0
        assert session.upload_report.succeeded
        assert collector.image_calls[0]["bot_id"] == "bot-1"
        assert len(collector.image_calls[0]["files"]) == session.snapshot_stats.snapshots_written
        assert collector.audio_calls[0]["max_speakers"] == 2

    def test_start_while_running(self, controller):
        """Test that a second start is rejected and the first session is untouched."""
        first = controller.start([0], 1, "bot-1")

        with pytest.raises(AlreadyRunningError):
            controller.start([1], 1, "bot-2")

        assert controller.session is first
        assert controller.state == SessionState.RUNNING

    def test_stop_while_idle(self, controller):
        with pytest.raises(NotRunningError):
            controller.stop()

    def test_stop_twice(self, controller, collector):
        """Test that the second stop is rejected and nothing is uploaded again."""
        controller.start([0], 1, "bot-1")
        controller.stop()

        with pytest.raises(NotRunningError):
            controller.stop()
        assert len(collector.image_calls) == 1

    def test_restart_after_stop(self, controller):
        """Test that a new session can start after the previous one stopped."""
        first = controller.start([0], 1, "bot-1")
        controller.stop()

        second = controller.start([0], 1, "bot-1")

        assert second is not first
        assert second.session_id != first.session_id
        assert controller.state == SessionState.RUNNING

    def test_start_rejected_during_upload(self, test_config, capture_source, encoder, audio_source, collector):
        """Test that start() during UPLOADING is rejected instead of waiting."""
        upload_started = threading.Event()
        release_upload = threading.Event()

        class SlowCoordinator(UploadCoordinator):
            def upload_session(self, session, store):
                upload_started.set()
                release_upload.wait(5)
                return super().upload_session(session, store)

        controller = SessionController(
            test_config,
            capture_source=capture_source,
            encoder=encoder,
            audio_source=audio_source,
            uploader=SlowCoordinator(collector),
        )
        controller.start([0], 1, "bot-1")
        stopper = threading.Thread(target=controller.stop)
        stopper.start()
        try:
            assert upload_started.wait(5)
            assert controller.state == SessionState.UPLOADING
            with pytest.raises(AlreadyRunningError):
                controller.start([0], 1, "bot-2")
            with pytest.raises(NotRunningError):
                controller.stop()
        finally:
            release_upload.set()
            stopper.join(5)

        assert controller.state == SessionState.STOPPED

    def test_concurrent_starts(self, controller):
        """Test that exactly one of several simultaneous starts succeeds."""
        results = []
        barrier = threading.Barrier(4)

        def attempt():
            barrier.wait()
            try:
                controller.start([0], 1, "bot-1")
                results.append("ok")
            except AlreadyRunningError:
                results.append("rejected")

        threads = [threading.Thread(target=attempt) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(results) == ["ok", "rejected", "rejected", "rejected"]

    def test_invalid_speakers(self, controller):
        with pytest.raises(ValueError):
            controller.start([0], 0, "bot-1")
        assert controller.state == SessionState.IDLE


@pytest.mark.unit
class TestSessionControllerFailures:
    """Test cases for degraded sessions."""

    def test_unavailable_source_is_warned_and_kept(self, controller, caplog):
        """Test that an index beyond the enumeration does not block start."""
        session = controller.start([0, 5], 1, "bot-1")

        assert session.selected_sources == [0, 5]
        assert session.warnings == ["Monitor 6 is not available (2 sources enumerated)"]
        assert "SourceUnavailable" in caplog.text

    def test_storage_failure_is_fatal(self, controller, test_config, temp_storage_root):
        """Test that start() fails without leaving a running session."""
        blocker = temp_storage_root / "blocked"
        blocker.write_text("file")
        test_config.set('storage.root_directory', str(blocker))

        with pytest.raises(SessionStoreError):
            controller.start([0], 1, "bot-1")
        assert controller.state == SessionState.IDLE

    def test_audio_failure_is_not_fatal(self, controller, audio_source, collector):
        """Test that the session continues with snapshots when audio fails."""
        audio_source.fail_after = 0
        session = controller.start([0], 1, "bot-1")
        time.sleep(0.25)

        controller.stop()

        assert session.audio_stats.stream_failed
        assert session.snapshot_stats.snapshots_written >= 1
        assert len(collector.image_calls) == 1
        assert collector.audio_calls == []
        assert controller.state == SessionState.STOPPED

    def test_upload_failure_still_stops(self, controller, collector):
        """Test that upload failures are reported but the session reaches STOPPED."""
        collector.fail_images = True
        collector.fail_audio = True
        session = controller.start([0], 1, "bot-1")
        time.sleep(0.15)

        controller.stop()

        assert controller.state == SessionState.STOPPED
        assert not session.upload_report.succeeded
        assert session.storage_root.is_dir()

    def test_no_writes_after_stop(self, controller):
        """Test that the folder does not change once stop() returned."""
        session = controller.start([0, 1], 1, "bot-1")
        time.sleep(0.25)
        controller.stop()

        before = sorted((p.name, p.stat().st_size) for p in session.storage_root.iterdir())
        time.sleep(0.3)
        after = sorted((p.name, p.stat().st_size) for p in session.storage_root.iterdir())

        assert before == after


@pytest.mark.unit
class TestSessionControllerEvents:
    """Test cases for lifecycle notifications."""

    def test_lifecycle_events_in_order(self, controller):
        events = []

        def listener(event):
            events.append(event)

        pub.subscribe(listener, SESSION_TOPIC)
        session = controller.start([0], 1, "bot-1")
        controller.stop()

        assert [e.event_type for e in events] == ["started", "stopping", "uploading", "stopped"]
        assert {e.metadata["session_id"] for e in events} == {session.session_id}
        assert events[-1].metadata["state"] == "stopped"

    def test_shutdown_stops_running_session(self, controller, collector):
        controller.start([0], 1, "bot-1")

        session = controller.shutdown()

        assert session is not None
        assert controller.state == SessionState.STOPPED
        assert len(collector.image_calls) == 1
        assert controller.shutdown() is None

    def test_status_while_running(self, controller):
        controller.start([1], 2, "bot-9")
        time.sleep(0.15)

        status = controller.get_status()

        assert status["state"] == "running"
        assert status["bot_id"] == "bot-9"
        assert status["monitors"] == [2]
        assert status["snapshots_written"] >= 1
        assert status["audio_bytes"] > 0
