"""Exception types raised by the syslog output."""


class ConfigError(ValueError):
    """A configuration value is missing or out of range."""


class InvalidAddressError(ValueError):
    """The configured address is not a usable scheme://endpoint."""


class MappingError(ValueError):
    """A metric did not carry enough information for a valid syslog message."""


class SerializationError(ValueError):
    """A syslog message could not be rendered to RFC 5424 text."""


class SendError(ConnectionError):
    """Writing a framed message to the connection failed."""


class TransientSendError(SendError):
    """The write failed but the connection is still usable; retrying may succeed."""


class PermanentSendError(SendError):
    """The write failed and the connection was closed; the next write reconnects."""
