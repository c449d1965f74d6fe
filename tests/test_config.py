"""
Tests for configuration and logging utilities
"""

from agentcore.utils import Logger, LogLevel
from agentcore.utils.config import get_config, reset_config
from agentcore.utils.logger import parse_log_level


class TestConfig:
    """Test environment-driven configuration"""

    def test_defaults(self):
        config = get_config()

        assert config.openai.api_key is None
        assert config.openai.model == "gpt-4o-mini"
        assert config.transport.timeout_seconds == 30.0
        assert config.transport.follow_redirects is True
        assert config.agent.max_tool_iterations == 10
        assert config.agent.system_prompt == ""
        assert config.workflow.max_iterations == 3
        assert config.workflow.improvement_threshold == 0.8
        assert config.shell.timeout_seconds == 30
        assert config.shell.max_output_chars == 20000

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("OPENAI_MODEL", "gpt-custom")
        monkeypatch.setenv("TRANSPORT_FOLLOW_REDIRECTS", "false")
        monkeypatch.setenv("AGENT_SYSTEM_PROMPT", "Be kind.")
        monkeypatch.setenv("WORKFLOW_IMPROVEMENT_THRESHOLD", "0.5")

        config = get_config()

        assert config.openai.model == "gpt-custom"
        assert config.transport.follow_redirects is False
        assert config.agent.system_prompt == "Be kind."
        assert config.workflow.improvement_threshold == 0.5

    def test_invalid_numbers_fall_back(self, monkeypatch):
        monkeypatch.setenv("AGENT_MAX_TOOL_ITERATIONS", "lots")
        monkeypatch.setenv("TRANSPORT_TIMEOUT_SECONDS", "soon")

        config = get_config()

        assert config.agent.max_tool_iterations == 10
        assert config.transport.timeout_seconds == 30.0

    def test_singleton_and_reset(self, monkeypatch):
        first = get_config()
        assert get_config() is first

        monkeypatch.setenv("OPENAI_MODEL", "gpt-after-reset")
        assert get_config().openai.model == "gpt-4o-mini"

        reset_config()
        assert get_config().openai.model == "gpt-after-reset"


class TestLogger:
    """Test the Logger utility"""

    def test_level_filtering(self, capsys, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        logger = Logger("Test", LogLevel.WARNING)

        logger.info("hidden")
        logger.warning("shown", {"key": "value"})
        logger.error("failed", ValueError("bad"))

        captured = capsys.readouterr()
        assert "hidden" not in captured.out
        assert "[WARN] [Test] shown" in captured.out
        assert '"key": "value"' in captured.out
        assert "[ERROR] [Test] failed" in captured.err
        assert '"error_type": "ValueError"' in captured.err

    def test_child_context(self, capsys, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        child = Logger("Workflow", LogLevel.DEBUG).child("Evaluate")

        child.debug("parsing")

        assert "[Workflow:Evaluate] parsing" in capsys.readouterr().out
        assert child.level is LogLevel.DEBUG

    def test_parse_log_level(self):
        assert parse_log_level("debug") is LogLevel.DEBUG
        assert parse_log_level("WARN") is LogLevel.WARNING
        assert parse_log_level("verbose") is LogLevel.INFO
        assert parse_log_level(None, LogLevel.ERROR) is LogLevel.ERROR

    def test_set_level(self):
        logger = Logger("Test", LogLevel.INFO)
        logger.set_level("error")
        assert not logger.is_enabled_for(LogLevel.WARNING)
        assert logger.is_enabled_for(LogLevel.ERROR)
