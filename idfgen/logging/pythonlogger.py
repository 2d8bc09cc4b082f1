import logging
import sys

from idfgen.logging.ilogger import DEFAULT_LOG_FILE, ILogger
from idfgen.logging.loglevel import LogLevel
from idfgen.typing import PathLike


def _formatter():
    return logging.Formatter(
        "%(name)s: %(asctime)s | %(levelname)s | %(filename)s:%(lineno)s >>> %(message)s"
    )


def _stack_level(additional_depth: int) -> int:
    # Skip this wrapper and the holder to report the original caller
    default_stack_level = 3
    return default_stack_level + additional_depth


class PythonLogger(ILogger):
    """
    Logs messages to the ``"idfgen"`` logger of the standard library.
    """

    def __init__(
        self,
        log_level: LogLevel,
        add_default_stream_handler: bool,
        add_default_file_handler: bool,
        log_file: PathLike = DEFAULT_LOG_FILE,
    ) -> None:
        self.logger = logging.getLogger("idfgen")
        self.logger.setLevel(log_level.value)
        # Reconfiguring should not duplicate the output
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        if add_default_stream_handler:
            self._add_handler(logging.StreamHandler(stream=sys.stdout))
        if add_default_file_handler:
            self._add_handler(logging.FileHandler(log_file, encoding="utf-8"))

    def debug(self, message: str, additional_depth: int = 0) -> None:
        self.logger.debug(message, stacklevel=_stack_level(additional_depth))

    def info(self, message: str, additional_depth: int = 0) -> None:
        self.logger.info(message, stacklevel=_stack_level(additional_depth))

    def warning(self, message: str, additional_depth: int = 0) -> None:
        self.logger.warning(message, stacklevel=_stack_level(additional_depth))

    def error(self, message: str, additional_depth: int = 0) -> None:
        self.logger.error(message, stacklevel=_stack_level(additional_depth))

    def critical(self, message: str, additional_depth: int = 0) -> None:
        self.logger.critical(message, stacklevel=_stack_level(additional_depth))

    def _add_handler(self, handler: logging.Handler) -> None:
        handler.setFormatter(_formatter())
        self.logger.addHandler(handler)
