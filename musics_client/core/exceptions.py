"""
Exception classes for musics-client.

Every failure that crosses a module boundary is raised as one of the
classes below, never as a bare falsy return value. Stores catch these at
their mutation boundary and keep the message in an ``error`` field.

Exception Hierarchy:
    MusicsClientError (base)
        ConfigError - Configuration file issues
        StorageError - Local persistent storage issues
        NetworkError - Transport failure (DNS, connection refused, timeout)
        ServerError - Non-2xx HTTP response
        AuthError - Login/registration rejected or admin check failed
        ValidationError - Local input rules failed, nothing was sent
        PlaybackError - Audio backend refused to play
"""


class MusicsClientError(Exception):
    """
    Base exception for all musics-client errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (URLs, ids, status).

    Example:
        try:
            gateway.list_catalog()
        except MusicsClientError as e:
            logger.error(f"Catalog unavailable: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description shown to the user.
            details: Optional dictionary with additional context. Common keys:
                     - 'url': request URL involved in the error
                     - 'status': HTTP status code
                     - 'original_error': the wrapped exception as a string
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(MusicsClientError):
    """
    Raised when config.yaml or an environment override is invalid.

    This is a CRITICAL error that should stop program execution.

    Example:
        raise ConfigError(
            "'cache.catalog_ttl' must be a positive number",
            details={'field': 'cache.catalog_ttl', 'value': -1}
        )
    """
    pass


class StorageError(MusicsClientError):
    """
    Raised when the local state database cannot be opened or written.

    Common causes:
        - State directory missing or not writable
        - Database file corrupted
    """
    pass


class NetworkError(MusicsClientError):
    """
    Raised when a request never produced an HTTP response.

    Common causes:
        - DNS failure or connection refused
        - Timeout configured in api.timeout elapsed
        - TLS handshake failure

    Example:
        raise NetworkError(
            "Network error: Unable to connect to server",
            details={'url': 'https://.../musics', 'original_error': '...'}
        )
    """
    pass


class ServerError(MusicsClientError):
    """
    Raised when the backend answered with a non-2xx status.

    Attributes:
        status: The HTTP status code.
        body: Raw response text (may be empty).

    Example:
        raise ServerError(
            "Failed to add to favorites (400): musicId required",
            status=400,
            body='{"message": "musicId required"}'
        )
    """

    def __init__(
        self,
        message: str,
        status: int,
        body: str = "",
        details: dict | None = None
    ) -> None:
        """
        Initialize server error with the HTTP status.

        Args:
            message: Human-readable error description.
            status: HTTP status code of the response.
            body: Raw response body text.
            details: Optional dictionary with additional context.
        """
        merged = {"status": status, **(details or {})}
        super().__init__(message, merged)
        self.status = status
        self.body = body

    @property
    def is_not_found(self) -> bool:
        """True for 404, which collection reads treat as an empty result."""
        return self.status == 404


class AuthError(MusicsClientError):
    """
    Raised when authentication is rejected.

    Common causes:
        - Wrong email/password (server message is propagated)
        - Response without a usable user id
        - Admin area login for an account whose userType is not "Admin"

    Attributes:
        status: HTTP status code when the rejection came from the server.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        status: int | None = None
    ) -> None:
        super().__init__(message, details)
        self.status = status


class ValidationError(MusicsClientError):
    """
    Raised when local input rules fail. Never sent to the server.

    Attributes:
        field: Name of the offending input, when known.

    Example:
        raise ValidationError(
            "Password must be at least 6 characters",
            field="password"
        )
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict | None = None
    ) -> None:
        super().__init__(message, details)
        self.field = field


class PlaybackError(MusicsClientError):
    """
    Raised by an audio backend that refuses to start playback.

    Common causes:
        - Autoplay policy rejected play() without a user gesture
        - The audio source could not be decoded

    The playback engine catches it, logs it and leaves the track paused.
    """
    pass
