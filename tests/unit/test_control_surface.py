"""Unit tests for ControlSurface and StartSessionRequest."""

import pytest
import time
from pydantic import ValidationError

from sessioncap.models.control import StartSessionRequest
from sessioncap.services.control_surface import ControlSurface


@pytest.mark.unit
class TestStartSessionRequest:
    """Test cases for start request validation."""

    def test_defaults(self):
        request = StartSessionRequest(bot_id="bot-1")

        assert request.sources == "all"
        assert request.speakers == 1
        assert request.resolve_sources(3) == [0, 1, 2]

    def test_all_is_case_insensitive(self):
        assert StartSessionRequest(sources=" ALL ", bot_id="b").sources == "all"

    def test_explicit_sources(self):
        """Test 1-based input mapped to zero-based indices without duplicates."""
        request = StartSessionRequest(sources="2, 1,2", bot_id="b")

        assert request.resolve_sources(2) == [1, 0]

    def test_out_of_range_sources_kept(self):
        request = StartSessionRequest(sources="1,7", bot_id="b")

        assert request.resolve_sources(2) == [0, 6]

    @pytest.mark.parametrize("sources", ["", "one", "1,,2", "1.5", "²", "1,٣"])
    def test_invalid_sources(self, sources):
        with pytest.raises(ValidationError):
            StartSessionRequest(sources=sources, bot_id="b")

    @pytest.mark.parametrize("speakers", [0, -2])
    def test_invalid_speakers(self, speakers):
        with pytest.raises(ValidationError):
            StartSessionRequest(speakers=speakers, bot_id="b")

    def test_blank_bot_id(self):
        with pytest.raises(ValidationError):
            StartSessionRequest(bot_id="   ")

    def test_bot_id_stripped(self):
        assert StartSessionRequest(bot_id="  bot-1 ").bot_id == "bot-1"


@pytest.mark.unit
class TestControlSurface:
    """Test cases for the dict-returning command API."""

    def test_list_sources(self, controller):
        sources = ControlSurface(controller).list_sources()

        assert sources == [
            {"number": 1, "name": "Fake 1", "width": 64, "height": 48},
            {"number": 2, "name": "Fake 2", "width": 32, "height": 24},
        ]

    def test_list_sources_enumeration_failure(self, controller, capture_source):
        capture_source.enumerate_error = RuntimeError("no display")

        assert ControlSurface(controller).list_sources() == []

    def test_start_and_stop(self, controller, collector):
        """Test a full session through the control surface."""
        control = ControlSurface(controller)

        started = control.start_session("all", 2, "bot-1")
        time.sleep(0.15)
        stopped = control.stop_session()

        assert started["success"]
        assert started["selected_sources"] == [1, 2]
        assert started["warnings"] == []
        assert stopped["success"]
        assert stopped["session_id"] == started["session_id"]
        assert stopped["state"] == "stopped"
        assert stopped["snapshots_written"] >= 2
        assert stopped["upload"]["succeeded"]
        assert stopped["upload"]["images"]["file_count"] == stopped["snapshots_written"]
        assert collector.audio_calls[0]["max_speakers"] == 2

    def test_start_with_missing_monitor(self, controller):
        result = ControlSurface(controller).start_session("3", 1, "bot-1")

        assert result["success"]
        assert result["selected_sources"] == [3]
        assert "Monitor 3" in result["warnings"][0]

    def test_start_validation_error(self, controller):
        result = ControlSurface(controller).start_session("all", 0, "bot-1")

        assert not result["success"]
        assert "greater than or equal to 1" in result["error"]
        assert controller.session is None

    def test_start_all_without_displays(self, controller, capture_source, collector):
        """Test that "all" with no displays starts an audio-only session."""
        capture_source.sizes = []
        control = ControlSurface(controller)

        result = control.start_session("all", 1, "bot-1")
        time.sleep(0.15)
        stopped = control.stop_session()

        assert result["success"]
        assert result["selected_sources"] == []
        assert "audio only" in result["warnings"][0]
        assert stopped["success"]
        assert stopped["snapshots_written"] == 0
        assert stopped["audio_bytes"] > 0
        assert len(collector.audio_calls) == 1

    def test_start_all_when_enumeration_fails(self, controller, capture_source, caplog):
        """Test that an enumeration error at start does not reject the session."""
        capture_source.enumerate_error = RuntimeError("display server gone")

        result = ControlSurface(controller).start_session("all", 1, "bot-1")

        assert result["success"]
        assert controller.state.value == "running"
        assert controller.get_status()["monitors"] == []
        assert "SourceUnavailable" in caplog.text

    def test_start_with_non_ascii_digit(self, controller):
        """Test that Unicode digits are reported as a validation error."""
        result = ControlSurface(controller).start_session("²", 1, "bot-1")

        assert not result["success"]
        assert "invalid monitor number" in result["error"]
        assert controller.session is None

    def test_start_twice(self, controller):
        control = ControlSurface(controller)
        control.start_session("1", 1, "bot-1")

        result = control.start_session("1", 1, "bot-1")

        assert not result["success"]
        assert "stop it first" in result["error"]

    def test_stop_without_session(self, controller):
        result = ControlSurface(controller).stop_session()

        assert not result["success"]
        assert "No running session" in result["error"]
