"""
Logging support for idfgen.

By default nothing is logged. Select a logging framework with
:func:`idfgen.logging.configure`:

>>> import idfgen
>>> from idfgen.logging import LoggerType, LogLevel
>>>
>>> idfgen.logging.configure(LoggerType.LOGURU, LogLevel.INFO)

To write the log to ``idfgen.log`` as well:

>>> idfgen.logging.configure(LoggerType.PYTHON, add_default_file_handler=True)

To forward the messages into an existing python logging setup, skip the
default handlers and configure the ``"idfgen"`` logger yourself:

>>> import logging
>>> idfgen.logging.configure(
>>>     LoggerType.PYTHON, LogLevel.INFO, add_default_stream_handler=False
>>> )
>>> logging.basicConfig(level=logging.INFO, handlers=[logging.StreamHandler()])
"""

from idfgen.logging._loggerholder import _LoggerHolder
from idfgen.logging.config import LoggerType, configure
from idfgen.logging.ilogger import ILogger  # noqa: I001
from idfgen.logging.loglevel import LogLevel

logger = _LoggerHolder()
