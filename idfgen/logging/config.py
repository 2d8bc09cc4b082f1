from enum import Enum

import idfgen
from idfgen.typing import PathLike

from .ilogger import DEFAULT_LOG_FILE
from .loglevel import LogLevel
from .logurulogger import LoguruLogger
from .nulllogger import NullLogger
from .pythonlogger import PythonLogger


class LoggerType(Enum):
    """
    The available logging frameworks.
    """

    PYTHON = PythonLogger.__name__
    """
    The standard library logging framework, logger name ``"idfgen"``.
    """
    LOGURU = LoguruLogger.__name__
    NULL = NullLogger.__name__


def configure(
    logger_type: LoggerType,
    log_level: LogLevel = LogLevel.WARNING,
    add_default_stream_handler: bool = True,
    add_default_file_handler: bool = False,
    log_file: PathLike = DEFAULT_LOG_FILE,
) -> None:
    """
    Select the logging framework used by idfgen and set its log level.

    Parameters
    ----------
    logger_type : LoggerType
        The logging framework to be used. ``LoggerType.NULL`` silences idfgen.
    log_level : LogLevel
        Messages below this level are dropped.
    add_default_stream_handler : bool
        Write messages to stdout. True by default.
    add_default_file_handler : bool
        Write messages to ``log_file`` as well. False by default.
    log_file : str or Path
        File for the file handler, ``idfgen.log`` in the working directory by
        default.
    """
    match logger_type:
        case LoggerType.PYTHON:
            idfgen.logging.logger.instance = PythonLogger(
                log_level, add_default_stream_handler, add_default_file_handler, log_file
            )
        case LoggerType.LOGURU:
            idfgen.logging.logger.instance = LoguruLogger(
                log_level, add_default_stream_handler, add_default_file_handler, log_file
            )
        case _:
            idfgen.logging.logger.instance = NullLogger()
