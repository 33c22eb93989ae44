"""Error taxonomy for talking to the Tombola game server.

Everything the transport or the store raises on purpose is a TombolaError.
GameStore actions catch this base class and turn it into the user-facing
``error`` string; anything else is a bug and propagates.
"""


class TombolaError(Exception):
    """Base class for expected client-side failures."""


class NetworkError(TombolaError):
    """The game server could not be reached at all."""


class ApiError(TombolaError):
    """The game server answered with a non-success status.

    Attributes:
        status_code: HTTP status returned by the server.
        message: Server-supplied ``error`` text, or ``"HTTP <code>"``.

    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(message)


class PreconditionError(TombolaError):
    """An operation was invoked before the state it requires."""


class DecodeError(TombolaError):
    """A response body did not match the expected shape."""
