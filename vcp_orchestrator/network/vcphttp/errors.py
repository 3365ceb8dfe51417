"""Wire error types."""

from ...credential_protocol.exceptions import BackendError


class WireFormatError(BackendError):
    """Raised when a server response does not match the expected JSON shape."""

    def __init__(self, message: str) -> None:
        super().__init__(0, message)
