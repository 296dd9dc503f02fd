"""Error types shared across Notesync components."""

from typing import Optional


class NoteSyncError(Exception):
    """Base class for all Notesync errors."""

    pass


class ValidationError(NoteSyncError):
    """Invalid input: empty passphrase, empty required field or an illegal patch."""

    pass


class DecryptionFailure(NoteSyncError):
    """Ciphertext could not be decrypted.

    Raised for both a wrong passphrase and a corrupt blob; callers cannot
    tell the two apart.
    """

    def __init__(self, message: str = "Incorrect password"):
        super().__init__(message)


class PersistenceFailure(NoteSyncError):
    """Error from the note storage API.

    Args:
        message (str): Error message
        status_code (int, optional): HTTP status code, if a response was received

    Attributes:
        message (str): Error message
        status_code (int, optional): HTTP status code
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFound(PersistenceFailure):
    """The update or delete target does not exist on the server."""

    def __init__(self, message: str = "Note not found"):
        super().__init__(message, status_code=404)


class AIServiceError(NoteSyncError):
    """Error reaching the language model backend."""

    pass
