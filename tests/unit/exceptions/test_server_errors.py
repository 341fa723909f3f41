"""Tests for server error exceptions."""

from mission_engine.exceptions import (
    BackendError,
    ConfigurationError,
    MissionEngineError,
    ServerError,
)


class TestServerError:
    def test_error_code(self):
        assert ServerError("failure").error_code == "SERVER_ERROR"


class TestBackendError:
    def test_error_code(self):
        assert BackendError("backend down").error_code == "BACKEND_ERROR"

    def test_command_attribute_and_context(self):
        error = BackendError("backend down", command="add_mission_item")
        assert error.command == "add_mission_item"
        assert error.context["command"] == "add_mission_item"

    def test_without_command(self):
        error = BackendError("backend down")
        assert error.command is None
        assert error.context == {}

    def test_hierarchy(self):
        error = BackendError("backend down")
        assert isinstance(error, ServerError)
        assert isinstance(error, MissionEngineError)


class TestConfigurationError:
    def test_error_code(self):
        assert ConfigurationError("bad config").error_code == "CONFIGURATION_ERROR"
