from typing import Optional

from idfgen.logging.ilogger import ILogger


class NullLogger(ILogger):
    """
    Discards every message. This is the logger in use until
    :func:`idfgen.logging.configure` is called.
    """

    def _discard(self, message: str, additional_depth: Optional[int] = None) -> None:
        pass

    debug = _discard
    info = _discard
    warning = _discard
    error = _discard
    critical = _discard
