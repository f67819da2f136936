"""
Tests for the logging configuration helpers.
"""

import logging
import os
import subprocess
import sys
import textwrap
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from pgcrud.logging_config import (
    ContextFilter,
    get_log_format,
    get_log_level,
    get_logger,
    get_logging_config,
    log_performance,
)


class TestLoggingConfig:
    """Environment-driven configuration."""

    def test_default_level(self, monkeypatch):
        monkeypatch.delenv("PGCRUD_LOG_LEVEL", raising=False)

        assert get_log_level() == "INFO"

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("PGCRUD_LOG_LEVEL", "debug")

        assert get_log_level() == "DEBUG"
        assert get_logging_config()["loggers"]["pgcrud"]["level"] == "DEBUG"

    def test_production_format_includes_location(self, monkeypatch):
        monkeypatch.setenv("PGCRUD_ENV", "production")

        assert "%(pathname)s:%(lineno)d" in get_log_format()

    def test_file_handler(self, monkeypatch, tmp_path):
        log_file = tmp_path / "pgcrud.log"
        monkeypatch.setenv("PGCRUD_LOG_FILE", str(log_file))

        config = get_logging_config()

        assert config["handlers"]["file"]["filename"] == str(log_file)
        assert "file" in config["loggers"]["pgcrud"]["handlers"]

    def test_no_file_handler_by_default(self, monkeypatch):
        monkeypatch.delenv("PGCRUD_LOG_FILE", raising=False)

        assert "file" not in get_logging_config()["handlers"]

    def test_root_logger_is_not_configured(self):
        config = get_logging_config()

        assert "root" not in config
        for name in ("asyncpg", "botocore", "boto3"):
            assert config["loggers"][name] == {"level": "WARNING"}

    def test_dependencies_left_alone_on_request(self):
        assert set(get_logging_config(quiet_dependencies=False)["loggers"]) == {"pgcrud"}


PROJECT_ROOT = str(Path(__file__).resolve().parents[2])


def _run_python(code: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-c", textwrap.dedent(code)],
        capture_output=True,
        text=True,
        cwd=PROJECT_ROOT,
        env={key: value for key, value in os.environ.items() if not key.startswith("PGCRUD_")},
        timeout=60,
        check=True,
    )


class TestHostApplicationLogging:
    """Importing pgcrud leaves the host application's logging setup to the host."""

    def test_host_basic_config_still_applies(self):
        result = _run_python(
            """
            import logging
            import pgcrud

            logging.basicConfig(level=logging.DEBUG, format="HOST %(message)s")
            logging.getLogger("myapp").info("hello")
            logging.getLogger("pgcrud.database").info("from library")
            """
        )

        assert "HOST hello" in result.stderr
        assert "HOST from library" in result.stderr
        assert result.stdout == ""

    def test_import_adds_only_a_null_handler(self):
        result = _run_python(
            """
            import logging
            import pgcrud

            print(len(logging.getLogger().handlers))
            print([type(h).__name__ for h in logging.getLogger("pgcrud").handlers])
            """
        )

        assert result.stdout.splitlines() == ["0", "['NullHandler']"]

    def test_setup_logging_is_opt_in(self):
        result = _run_python(
            """
            import logging
            from pgcrud.logging_config import get_logger, setup_logging

            setup_logging()
            get_logger("pgcrud.database").warning("pool exhausted")
            print(len(logging.getLogger().handlers))
            """
        )

        lines = result.stdout.splitlines()
        assert any("pool exhausted" in line for line in lines[:-1])
        assert lines[-1] == "0"


class TestGetLogger:
    """Logger naming and context."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("pgcrud.database", "pgcrud.database"),
            ("myapp.users", "pgcrud.myapp.users"),
            ("__main__", "pgcrud.main"),
        ],
    )
    def test_names_are_namespaced(self, name, expected):
        assert get_logger(name).name == expected

    def test_context_filter(self):
        record = logging.LogRecord("pgcrud", logging.INFO, __file__, 1, "msg", None, None)

        assert ContextFilter({"request_id": "abc"}).filter(record)
        assert record.request_id == "abc"


class TestLogPerformance:
    """Timing decorator."""

    def test_sync_function(self):
        logger = MagicMock()

        @log_performance(logger, "adding")
        def add(a, b):
            return a + b

        assert add(1, 2) == 3
        assert "adding" in logger.debug.call_args.args

    def test_sync_failure_is_logged_and_reraised(self):
        logger = MagicMock()

        @log_performance(logger, "failing")
        def fail():
            raise KeyError("boom")

        with pytest.raises(KeyError):
            fail()
        logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_async_function(self):
        logger = MagicMock()

        @log_performance(logger, "fetching")
        async def fetch():
            return "rows"

        assert await fetch() == "rows"
        assert "fetching" in logger.debug.call_args.args

    @pytest.mark.asyncio
    async def test_async_failure_is_logged_and_reraised(self):
        logger = MagicMock()

        @log_performance(logger, "failing")
        async def fail():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await fail()
        logger.error.assert_called_once()
