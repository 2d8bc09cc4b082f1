from unittest.mock import patch

import pytest

import idfgen.logging
from idfgen.logging import LoggerType, LogLevel
from idfgen.logging.ilogger import DEFAULT_LOG_FILE
from idfgen.logging.logging_decorators import standard_log_decorator
from idfgen.logging.logurulogger import LoguruLogger
from idfgen.logging.nulllogger import NullLogger
from idfgen.logging.pythonlogger import PythonLogger


def test_logging_no_configuration():
    # Arrange.
    logger = idfgen.logging.logger

    # Assert.
    assert isinstance(logger.instance, NullLogger)


@pytest.mark.parametrize(
    ("logger_type", "logger_class"),
    [
        (LoggerType.NULL, idfgen.logging.config.NullLogger),
        (LoggerType.PYTHON, idfgen.logging.config.PythonLogger),
        (LoggerType.LOGURU, idfgen.logging.config.LoguruLogger),
    ],
)
def test_logging_configure_logger(logger_type, logger_class):
    # Arrange.
    idfgen.logging.configure(logger_type)
    logger = idfgen.logging.logger

    # Assert.
    assert isinstance(logger.instance, logger_class)


def test_logging_change_logger_during_runtime():
    def test_method(logger=idfgen.logging.logger):
        assert isinstance(logger.instance, LoguruLogger)

    # Arrange.
    idfgen.logging.configure(LoggerType.PYTHON)
    assert isinstance(idfgen.logging.logger.instance, PythonLogger)

    # Act.
    idfgen.logging.configure(LoggerType.LOGURU)

    # Assert
    test_method()
    assert isinstance(idfgen.logging.logger.instance, LoguruLogger)


@pytest.mark.parametrize(
    ("logger_type", "patched_logger"),
    [
        (LoggerType.PYTHON, "idfgen.logging.config.PythonLogger"),
        (LoggerType.LOGURU, "idfgen.logging.config.LoguruLogger"),
    ],
)
def test_logging_calls_forwarded_to_loggers(logger_type, patched_logger):
    with patch(patched_logger) as MockClass:
        # Arrange.
        idfgen.logging.configure(logger_type)
        logger = idfgen.logging.logger

        # Act.
        logger.debug("debug message")
        logger.info("info message")
        logger.warning("warning message")
        logger.error("error message")
        logger.critical("critical message")

        # Assert.
        logger_instance = MockClass.return_value
        logger_instance.debug.assert_called_with("debug message", 0)
        logger_instance.info.assert_called_with("info message", 0)
        logger_instance.warning.assert_called_with("warning message", 0)
        logger_instance.error.assert_called_with("error message", 0)
        logger_instance.critical.assert_called_with("critical message", 0)


@pytest.mark.parametrize(
    "logger_level",
    [
        LogLevel.DEBUG,
        LogLevel.INFO,
        LogLevel.WARNING,
        LogLevel.ERROR,
        LogLevel.CRITICAL,
    ],
)
@pytest.mark.parametrize("add_default_stream_handler", [True, False])
@pytest.mark.parametrize("add_default_file_handler", [True, False])
@pytest.mark.parametrize(
    ("logger_type", "patched_logger"),
    [
        (LoggerType.PYTHON, "idfgen.logging.config.PythonLogger"),
        (LoggerType.LOGURU, "idfgen.logging.config.LoguruLogger"),
    ],
)
def test_logging_configure_param_forwarded_to_loggers(
    logger_type,
    patched_logger,
    logger_level,
    add_default_stream_handler,
    add_default_file_handler,
):
    with patch(patched_logger) as MockClass:
        # Arrange/ Act.
        idfgen.logging.configure(
            logger_type,
            logger_level,
            add_default_stream_handler,
            add_default_file_handler,
        )

        # Assert.
        MockClass.assert_called_with(
            logger_level,
            add_default_stream_handler,
            add_default_file_handler,
            DEFAULT_LOG_FILE,
        )


def test_python_logger_reconfigure_does_not_duplicate_handlers():
    idfgen.logging.configure(LoggerType.PYTHON, LogLevel.INFO)
    idfgen.logging.configure(LoggerType.PYTHON, LogLevel.DEBUG)
    instance = idfgen.logging.logger.instance
    assert len(instance.logger.handlers) == 1
    assert instance.logger.level == LogLevel.DEBUG.value


def test_python_logger_output(caplog):
    idfgen.logging.configure(
        LoggerType.PYTHON, LogLevel.WARNING, add_default_stream_handler=False
    )
    with caplog.at_level("WARNING", logger="idfgen"):
        idfgen.logging.logger.info("not shown")
        idfgen.logging.logger.warning("shown")
    assert [r.message for r in caplog.records] == ["shown"]


@pytest.mark.parametrize(
    ("name", "level"),
    [("debug", LogLevel.DEBUG), ("INFO", LogLevel.INFO), ("Warning", LogLevel.WARNING)],
)
def test_loglevel_from_name(name, level):
    assert LogLevel.from_name(name) is level


def test_loglevel_from_name_invalid():
    with pytest.raises(ValueError, match="log level should be one of"):
        LogLevel.from_name("verbose")


def test_log_method_dispatches_on_level():
    with patch("idfgen.logging.config.PythonLogger") as MockClass:
        idfgen.logging.configure(LoggerType.PYTHON)
        idfgen.logging.logger.log(LogLevel.ERROR, "message", 1)
        MockClass.return_value.error.assert_called_with("message", 1)


def test_standard_log_decorator():
    class Converter:
        @standard_log_decorator()
        def convert(self, value):
            return value * 2

    with patch("idfgen.logging.config.PythonLogger") as MockClass:
        idfgen.logging.configure(LoggerType.PYTHON)
        assert Converter().convert(21) == 42

        logger_instance = MockClass.return_value
        start_message, depth = logger_instance.info.call_args[0]
        assert start_message.startswith("Beginning execution of")
        assert "for object Converter" in start_message
        assert depth == 2
        end_message, _ = logger_instance.debug.call_args[0]
        assert end_message.startswith("Finished execution of")


def test_python_logger_writes_log_file(tmp_path):
    log_file = tmp_path / "run.log"
    idfgen.logging.configure(
        LoggerType.PYTHON,
        LogLevel.INFO,
        add_default_stream_handler=False,
        add_default_file_handler=True,
        log_file=log_file,
    )
    idfgen.logging.logger.info("written to file")
    # Closes the file handler
    idfgen.logging.configure(LoggerType.PYTHON, add_default_stream_handler=False)

    content = log_file.read_text()
    assert "written to file" in content
    assert "test_logging.py" in content


def test_loguru_logger_writes_log_file(tmp_path):
    from loguru import logger as loguru_logger

    log_file = tmp_path / "run.log"
    idfgen.logging.configure(
        LoggerType.LOGURU,
        LogLevel.WARNING,
        add_default_stream_handler=False,
        add_default_file_handler=True,
        log_file=log_file,
    )
    idfgen.logging.logger.info("not written")
    idfgen.logging.logger.warning("written to file")
    loguru_logger.remove()

    content = log_file.read_text()
    assert "written to file" in content
    assert "not written" not in content
    assert "test_logging" in content


def test_null_logger_discards_messages():
    logger = NullLogger()
    assert logger.info("message") is None
    assert logger.critical("message", 3) is None
