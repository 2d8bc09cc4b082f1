import sys
from typing import Optional

from loguru import logger

from idfgen.logging.ilogger import DEFAULT_LOG_FILE, ILogger
from idfgen.logging.loglevel import LogLevel
from idfgen.typing import PathLike

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "{name}:{line} - <level>{message}</level>"
)


def _depth_level(additional_depth: Optional[int]) -> int:
    """
    Number of frames loguru has to skip to report the caller of the idfgen
    logger: this wrapper, the holder and the dispatch in ``_log``.
    """
    return 3 + (additional_depth or 0)


class LoguruLogger(ILogger):
    """
    Logs messages with loguru.

    Loguru has a single global logger, so configuring this class removes all
    handlers added before, including the stderr handler loguru installs on
    import.
    """

    def __init__(
        self,
        log_level: LogLevel,
        add_default_stream_handler: bool,
        add_default_file_handler: bool,
        log_file: PathLike = DEFAULT_LOG_FILE,
    ) -> None:
        logger.remove()
        if add_default_stream_handler:
            logger.add(sys.stdout, level=log_level.value, format=LOG_FORMAT)
        if add_default_file_handler:
            logger.add(
                str(log_file),
                level=log_level.value,
                format=LOG_FORMAT,
                colorize=False,
                encoding="utf-8",
            )

    def _log(self, level: LogLevel, message: str, additional_depth: Optional[int]):
        logger.opt(depth=_depth_level(additional_depth)).log(level.name, message)

    def debug(self, message: str, additional_depth: Optional[int] = None) -> None:
        self._log(LogLevel.DEBUG, message, additional_depth)

    def info(self, message: str, additional_depth: Optional[int] = None) -> None:
        self._log(LogLevel.INFO, message, additional_depth)

    def warning(self, message: str, additional_depth: Optional[int] = None) -> None:
        self._log(LogLevel.WARNING, message, additional_depth)

    def error(self, message: str, additional_depth: Optional[int] = None) -> None:
        self._log(LogLevel.ERROR, message, additional_depth)

    def critical(self, message: str, additional_depth: Optional[int] = None) -> None:
        self._log(LogLevel.CRITICAL, message, additional_depth)
