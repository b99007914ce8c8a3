class InfluxError(Exception):
    """Base class for everything typedinflux raises on its own."""


class EncodingError(InfluxError, ValueError):
    """A row could not be turned into line protocol. Raised before any I/O."""


class TransportError(InfluxError, ConnectionError):
    """The HTTP exchange itself failed: refused connection, timeout, or a
    non-2xx response that carries no structured error."""


class InfluxException(InfluxError):
    """InfluxDB answered with a structured error message."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TypeMismatchError(InfluxError, TypeError):
    """A query response does not fit the requested row type."""
