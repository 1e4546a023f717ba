"""Error taxonomy shared by services and the HTTP layer."""


class BuffetTrackerError(Exception):
    """Base class for expected, non-fatal application errors."""


class InputError(BuffetTrackerError):
    """Caller supplied missing or invalid input; nothing was mutated."""


class UpstreamError(BuffetTrackerError):
    """A remote collaborator (recognition model, catalog sheet) failed."""


class PersistenceError(BuffetTrackerError):
    """The aggregate store could not be read or written."""
