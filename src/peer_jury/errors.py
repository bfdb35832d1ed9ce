"""
Error taxonomy for the Peer Jury core.

Every failure a caller can trigger is a subclass of PeerJuryError and is
recoverable: the operation that raised it left the stored state untouched.
"""


class PeerJuryError(Exception):
    """Base class for all domain failures."""

    kind = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInput(PeerJuryError):
    """Malformed title, date, team or username."""

    kind = "invalid_input"


class NotAuthorized(PeerJuryError):
    """Caller lacks the required role or team membership."""

    kind = "not_authorized"


class NotFound(PeerJuryError):
    """Reference to a missing user, project or deliverable."""

    kind = "not_found"

    def __init__(self, entity: str, reference: object):
        self.entity = entity
        self.reference = reference
        super().__init__(f"{entity} not found: {reference}")


class NotJuror(PeerJuryError):
    """Caller is not on the jury of the deliverable."""

    kind = "not_juror"


class EditWindowClosed(PeerJuryError):
    """The grade edit window of the deliverable has elapsed."""

    kind = "edit_window_closed"


class InvalidValue(PeerJuryError):
    """Grade value is not a number in [1, 10] with at most two decimals."""

    kind = "invalid_value"

    def __init__(self, message: str, raw_value: object = None):
        self.raw_value = raw_value
        super().__init__(message)
