from idfgen.logging.ilogger import ILogger
from idfgen.logging.nulllogger import NullLogger


class _LoggerHolder(ILogger):
    """
    Forwards all calls to the logger that is currently configured.

    Modules import :data:`idfgen.logging.logger` at import time, before the
    user had the chance to call :func:`idfgen.logging.configure`. They
    therefore hold on to this object, and :func:`configure` only replaces the
    ``instance`` it forwards to.
    """

    def __init__(self) -> None:
        self._instance = NullLogger()

    @property
    def instance(self) -> ILogger:
        """
        The logger that receives the messages.
        """
        return self._instance

    @instance.setter
    def instance(self, value: ILogger) -> None:
        self._instance = value

    def debug(self, message: str, additional_depth: int = 0) -> None:
        self.instance.debug(message, additional_depth)

    def info(self, message: str, additional_depth: int = 0) -> None:
        self.instance.info(message, additional_depth)

    def warning(self, message: str, additional_depth: int = 0) -> None:
        self.instance.warning(message, additional_depth)

    def error(self, message: str, additional_depth: int = 0) -> None:
        self.instance.error(message, additional_depth)

    def critical(self, message: str, additional_depth: int = 0) -> None:
        self.instance.critical(message, additional_depth)
