"""Error taxonomy shared by the fetcher, the generators and the sessions.

Failures below the bounded task pool (``RemoteError``) are absorbed into
empty or zero results. Failures above it (``ValidationError``,
``NoEligibleData``, ``SessionBusyError``) are surfaced to the caller.
"""

# HTTP status codes classified as transient (eligible for retry)
_TRANSIENT_STATUS_CODES = frozenset({429})


class ValidationError(Exception):
    """Bad or missing user input. Surfaced immediately, never retried."""


class InvalidTransition(ValidationError):
    """An operation was requested in a session state that does not allow it."""


class SessionBusyError(Exception):
    """Another fetch or build is still outstanding for this session."""

    def __init__(self) -> None:
        super().__init__("Another operation is already in progress for this session")


class NoEligibleData(Exception):
    """No (subject, period, category) slice has data for the enabled filters."""

    def __init__(
        self,
        message: str = "No data available for the selected filters. "
        "Try enabling more timeframes or media types.",
    ) -> None:
        super().__init__(message)


class RemoteError(Exception):
    """A Last.fm request failed.

    ``status_code`` is the last HTTP status observed, or ``None`` when the
    request never produced a response (DNS failure, refused connection,
    timeout).
    """

    def __init__(self, status_code: int | None, message: str | None = None) -> None:
        self.status_code = status_code
        if message is None:
            message = f"Last.fm request failed ({status_code})"
        super().__init__(message)

    @property
    def transient(self) -> bool:
        """True for 429 and any 5xx."""
        if self.status_code is None:
            return False
        return self.status_code in _TRANSIENT_STATUS_CODES or self.status_code >= 500
