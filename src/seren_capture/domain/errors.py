"""Error taxonomy for capture workflows."""


class CaptureError(Exception):
    """Base class for errors surfaced to callers with a readable message."""


class ValidationError(CaptureError):
    """Input has the wrong shape or value."""


class NotFoundError(CaptureError):
    """Unknown session, image or resident id."""


class PolicyError(CaptureError):
    """Operation disallowed by the session's current policy."""


class StateError(CaptureError):
    """Operation invalid for the session's lifecycle stage."""


class IntegrityError(CaptureError):
    """Stored data failed authentication or checksum verification."""


class UpstreamError(CaptureError):
    """Resident directory lookup failed."""


class StorageError(CaptureError):
    """Image encoding or persistence failed."""
