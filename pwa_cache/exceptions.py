"""
Exceptions raised by the calculation engine.

Configuration errors are fatal and propagate to the caller that misused the API.
Out-of-phase-space conditions are not exceptions, they are signalled by an empty result.
"""


class ConfigurationError(Exception):
    """Invalid model structure or misuse of the registration API."""


class NotFoundError(ConfigurationError, KeyError):
    """A grouping, parameter or component was looked up but never registered."""

    def __str__(self):
        return Exception.__str__(self)


class IndexOutOfRange(ConfigurationError, IndexError):
    """Access to a storage or status entry that was never allocated."""


class LockedError(ConfigurationError):
    """Registration attempted after the model was locked."""


class ParameterIsFixed(ConfigurationError):
    """A value was written to a fixed parameter."""


class CalculationCancelled(Exception):
    """An integration run was stopped through its cancel event."""
