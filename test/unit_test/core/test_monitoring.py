"""
Unit tests for the Logfire monitoring module.

This test suite covers:
- Environment variable parsing
- Disabled-by-default behaviour
- Instrumentation when enabled
- The per-execution span helper
"""

import importlib
import os
import sys
import types
from unittest.mock import MagicMock, patch

import pytest


def _reload_monitoring():
    import codemode_runtime.core.monitoring as monitoring_module

    return importlib.reload(monitoring_module)


@pytest.fixture(autouse=True)
def _restore_monitoring():
    yield
    with patch.dict(os.environ, {}, clear=True):
        _reload_monitoring()


class TestLogfireEnvironmentConfiguration:
    """Test environment variable configuration for Logfire."""

    def test_logfire_disabled_by_default(self):
        with patch.dict(os.environ, {}, clear=True):
            monitoring_module = _reload_monitoring()

            assert monitoring_module.LOGFIRE_ENABLED is False
            assert monitoring_module.LOGFIRE_SERVICE_NAME == "codemode-runtime"

    @pytest.mark.parametrize("value", ["true", "1", "yes", "TRUE"])
    def test_logfire_enabled_values(self, value):
        with patch.dict(os.environ, {"LOGFIRE_ENABLED": value}):
            assert _reload_monitoring().LOGFIRE_ENABLED is True

    def test_feature_flags_can_be_turned_off(self):
        with patch.dict(os.environ, {"LOGFIRE_TRACE_HTTPX": "false"}):
            monitoring_module = _reload_monitoring()

            assert monitoring_module.LOGFIRE_TRACE_HTTPX is False
            assert monitoring_module.LOGFIRE_TRACE_PYDANTIC_AI is True


class TestInitializeLogfire:
    def test_returns_false_when_disabled(self):
        with patch.dict(os.environ, {}, clear=True):
            monitoring_module = _reload_monitoring()

            assert monitoring_module.initialize_logfire() is False

    def test_returns_false_without_token(self):
        with patch.dict(os.environ, {"LOGFIRE_ENABLED": "true"}, clear=True):
            monitoring_module = _reload_monitoring()

            assert monitoring_module.initialize_logfire() is False

    def test_configures_and_instruments_when_enabled(self):
        fake_logfire = types.ModuleType("logfire")
        fake_logfire.configure = MagicMock()
        fake_logfire.instrument_pydantic_ai = MagicMock()
        fake_logfire.instrument_httpx = MagicMock()
        fake_logfire.instrument_fastapi = MagicMock(side_effect=RuntimeError("no app support"))

        env = {"LOGFIRE_ENABLED": "true", "LOGFIRE_TOKEN": "tok", "LOGFIRE_ENVIRONMENT": "test"}
        with patch.dict(os.environ, env, clear=True), patch.dict(sys.modules, {"logfire": fake_logfire}):
            monitoring_module = _reload_monitoring()
            app = object()

            assert monitoring_module.initialize_logfire(app) is True

        fake_logfire.configure.assert_called_once()
        assert fake_logfire.configure.call_args.kwargs["environment"] == "test"
        fake_logfire.instrument_pydantic_ai.assert_called_once_with()
        fake_logfire.instrument_httpx.assert_called_once_with()
        fake_logfire.instrument_fastapi.assert_called_once_with(app=app)


class TestExecutionSpan:
    def test_is_a_no_op_when_not_initialized(self):
        with patch.dict(os.environ, {}, clear=True):
            monitoring_module = _reload_monitoring()

            with monitoring_module.execution_span("code-1", timeout=1.0):
                pass

    def test_opens_a_span_when_initialized(self):
        fake_logfire = types.ModuleType("logfire")
        fake_logfire.span = MagicMock()

        with patch.dict(os.environ, {}, clear=True), patch.dict(sys.modules, {"logfire": fake_logfire}):
            monitoring_module = _reload_monitoring()
            monitoring_module._initialized = True

            with monitoring_module.execution_span("code-1", timeout=2.0):
                pass

        fake_logfire.span.assert_called_once()
        assert fake_logfire.span.call_args.kwargs == {"execution_id": "code-1", "timeout": 2.0}
