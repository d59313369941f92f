"""Exceptions raised by the EOO/AOO engines and their transport."""


class RedlistMetricsError(Exception):
    """Base class for all errors raised by redlist_metrics."""


class InvalidParameterError(RedlistMetricsError, ValueError):
    """A numeric parameter (e.g. the AOO cell size) is non-finite or out of range."""


class TransportError(RedlistMetricsError):
    """The worker transport failed, timed out or returned a malformed response."""


class LoaderError(RedlistMetricsError):
    """An occurrence file could not be read or parsed."""
