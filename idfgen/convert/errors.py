class ConversionError(Exception):
    """Fatal error that aborts a conversion run."""

    pass


class ConfigurationError(ConversionError):
    """Invalid conversion settings."""

    pass


class TopologyError(ConversionError):
    """Inconsistent geometry, for instance a cell outside of all traced polygons."""

    pass
