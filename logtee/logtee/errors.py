"""
Exceptions raised by logtee.

Nothing on the emission path raises; these surface only while a
pipeline is being configured.
"""


class LogteeError(Exception):
    """Base class for all logtee errors."""


class ConfigError(LogteeError, ValueError):
    """Raised when a pipeline configuration value is invalid.

    Attributes:
        option: Name of the offending option, if known.
    """

    def __init__(self, message: str, option: str = ""):
        self.option = option
        if option:
            message = f"{option}: {message}"
        super().__init__(message)
