class LscError(Exception):
    """Base class for errors raised by the LSC bridge."""


class EncodingError(LscError, ValueError):
    """A job request could not be turned into JSON text."""


class StoreUnavailable(LscError):
    """The shared key-value store could not be reached. Transient."""


class MalformedStatusRecord(LscError):
    """A status record exists but is not a valid status document."""
