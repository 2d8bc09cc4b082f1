from enum import Enum


class LogLevel(Enum):
    """
    Log levels, numerically equal to those of the standard library.
    """

    DEBUG = 10
    INFO = 20
    WARNING = 30
    """
    Recoverable anomalies: skipped features, unparseable attribute values,
    open edge chains.
    """
    ERROR = 40
    CRITICAL = 50

    @classmethod
    def from_name(cls, name: str) -> "LogLevel":
        try:
            return cls[name.upper()]
        except KeyError as e:
            raise ValueError(
                f"log level should be one of {[level.name for level in cls]}, got {name}"
            ) from e
