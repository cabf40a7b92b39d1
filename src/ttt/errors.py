"""Exception types shared across ttt."""


class TTTError(Exception):
    """Base class for all ttt errors."""

    pass


class StoreIOError(TTTError):
    """Raised when reading, writing or renaming a store file fails."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class CorruptionError(TTTError):
    """Raised when a persisted day file cannot be parsed.

    The unreadable bytes have already been moved to ``backup_path``.
    """

    def __init__(self, message: str, path=None, backup_path=None):
        super().__init__(message)
        self.path = path
        self.backup_path = backup_path


class AuthError(TTTError):
    """Raised when the device flow or a token refresh fails."""

    pass


class AuthCancelledError(AuthError):
    """Raised when device-code polling is cancelled."""

    pass


class NetworkError(TTTError):
    """Raised on transport failures or non-success responses from the calendar API."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedTimestampError(TTTError):
    """Raised when a remote event time cannot be parsed."""

    pass


class NoActiveTimerError(TTTError):
    """Raised when stopping without a running timer."""

    pass


class ConfigError(TTTError):
    """Raised when the config file exists but cannot be read."""

    pass
