# tests/common/test_logger.py
"""
Unit тесты для модуля логирования (duckshop/common/logger.py).
"""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest

from duckshop.common.constants import TypeMsg
from duckshop.common.logger import (
    ColoredFormatter,
    JsonFormatter,
    _get_caller_info,
    get_logger,
    log_debug,
    log_error,
    log_info,
    log_warning,
)


def _record(level: int = logging.INFO, msg: str = "Test message") -> logging.LogRecord:
    record = logging.LogRecord(
        name="test_logger",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    record.module = "test_module"
    record.funcName = "test_function"
    return record


class TestJsonFormatter:
    """Тесты для JsonFormatter."""

    def test_format_basic_record(self) -> None:
        """Базовая запись сериализуется в JSON."""
        result = json.loads(JsonFormatter().format(_record()))

        assert result["level"] == "INFO"
        assert result["message"] == "Test message"
        assert result["module"] == "test_module"
        assert result["function"] == "test_function"
        assert result["line"] == 10
        assert result["timestamp"].endswith("Z")

    def test_format_with_extra_data(self) -> None:
        """extra_data попадает в поле extra."""
        record = _record(logging.WARNING)
        record.extra_data = {"product_id": 7}

        result = json.loads(JsonFormatter().format(record))

        assert result["extra"] == {"product_id": 7}

    def test_format_keeps_cyrillic(self) -> None:
        result = JsonFormatter().format(_record(msg="Остаток обновлён"))
        assert "Остаток обновлён" in result


class TestColoredFormatter:
    """Тесты для ColoredFormatter."""

    def test_contains_level_and_message(self) -> None:
        result = ColoredFormatter().format(_record(logging.ERROR, "Boom"))

        assert "[ERROR]" in result
        assert "Boom" in result

    def test_includes_caller_info(self) -> None:
        record = _record()
        record.extra_data = {
            "caller_function": "set_stock",
            "caller_module": "duckshop.core.catalog.service",
            "caller_file": "service.py",
            "caller_line": 42,
        }

        result = ColoredFormatter().format(record)

        assert "duckshop.core.catalog.service.set_stock()" in result
        assert "service.py:42" in result


class TestGetLogger:
    """Тесты для get_logger."""

    def test_returns_cached_logger(self) -> None:
        assert get_logger("duck_test_cache") is get_logger("duck_test_cache")

    def test_does_not_propagate(self) -> None:
        logger = get_logger("duck_test_propagate")
        assert logger.propagate is False
        assert len(logger.handlers) == 1


class TestCallerInfo:
    """Тесты для _get_caller_info."""

    def test_reports_calling_function(self) -> None:
        info = _get_caller_info()

        assert info["caller_function"] == "test_reports_calling_function"
        assert info["caller_file"] == "test_logger.py"


class TestLogFunctions:
    """Тесты для log_* функций."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "type_msg,method",
        [
            (TypeMsg.DEBUG, "debug"),
            (TypeMsg.INFO, "info"),
            (TypeMsg.WARNING, "warning"),
            (TypeMsg.ERROR, "error"),
            (TypeMsg.CRITICAL, "critical"),
        ],
    )
    async def test_log_info_dispatches_by_type(self, type_msg: TypeMsg, method: str) -> None:
        """type_msg выбирает уровень логгера."""
        mock_logger = MagicMock()
        with patch("duckshop.common.logger.get_logger", return_value=mock_logger):
            await log_info("msg", type_msg=type_msg)

        getattr(mock_logger, method).assert_called_once()

    @pytest.mark.asyncio
    async def test_log_info_merges_extra(self) -> None:
        mock_logger = MagicMock()
        with patch("duckshop.common.logger.get_logger", return_value=mock_logger):
            await log_info("msg", extra={"cart": "100500"})

        extra = mock_logger.info.call_args.kwargs["extra"]["extra_data"]
        assert extra["cart"] == "100500"
        assert extra["caller_function"] == "test_log_info_merges_extra"

    @pytest.mark.asyncio
    async def test_log_debug_and_warning(self) -> None:
        mock_logger = MagicMock()
        with patch("duckshop.common.logger.get_logger", return_value=mock_logger):
            await log_debug("d")
            await log_warning("w")

        mock_logger.debug.assert_called_once()
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_log_error_passes_exc_info(self) -> None:
        mock_logger = MagicMock()
        with patch("duckshop.common.logger.get_logger", return_value=mock_logger):
            await log_error("failed", exc_info=True)

        assert mock_logger.error.call_args.kwargs["exc_info"] is True
