"""
Error taxonomy for the sensor event core.

Every operation either returns its full result or raises one of these.
There is no partial-success channel: a failing reader fails the whole
`select`, and nothing here is retried.
"""


class SensorEventError(Exception):
    """Base class for all errors raised by the core."""


class UnresolvedScope(SensorEventError, ValueError):
    """The identifier is not a participant, study or researcher id."""


class UnknownParticipant(SensorEventError, LookupError):
    """A participant id does not map to a storage user row."""


class StorageTransportError(SensorEventError):
    """Communication with the database failed.

    The driver exception is kept as `__cause__`.
    """


class DecodeAmbiguity(SensorEventError, ValueError):
    """An upstream health-metric type name has no sensor kind."""

    def __init__(self, type_name: str):
        super().__init__(f"No sensor kind for upstream type {type_name!r}")
        self.type_name = type_name
