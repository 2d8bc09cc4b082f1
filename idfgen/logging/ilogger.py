from abc import abstractmethod

from idfgen.logging.loglevel import LogLevel

DEFAULT_LOG_FILE = "idfgen.log"


class ILogger:
    """
    Interface for the logger wrappers.

    Every method accepts an ``additional_depth``, the number of extra stack
    frames between the caller and the logger. Decorators use it so the
    reported file and line number point at the decorated function.
    """

    @abstractmethod
    def debug(self, message: str, additional_depth: int = 0) -> None:
        raise NotImplementedError

    @abstractmethod
    def info(self, message: str, additional_depth: int = 0) -> None:
        raise NotImplementedError

    @abstractmethod
    def warning(self, message: str, additional_depth: int = 0) -> None:
        raise NotImplementedError

    @abstractmethod
    def error(self, message: str, additional_depth: int = 0) -> None:
        raise NotImplementedError

    @abstractmethod
    def critical(self, message: str, additional_depth: int = 0) -> None:
        raise NotImplementedError

    def log(self, loglevel: LogLevel, message: str, additional_depth: int = 0) -> None:
        """
        Log a message at the given level.
        """
        match loglevel:
            case LogLevel.DEBUG:
                self.debug(message, additional_depth)
            case LogLevel.INFO:
                self.info(message, additional_depth)
            case LogLevel.WARNING:
                self.warning(message, additional_depth)
            case LogLevel.ERROR:
                self.error(message, additional_depth)
            case LogLevel.CRITICAL:
                self.critical(message, additional_depth)
            case _:
                raise ValueError(f"Unknown logging urgency at level {loglevel}")
