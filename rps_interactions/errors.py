from __future__ import annotations


class RpsInteractionsError(Exception):
    """Base class for errors raised by this service."""


class AuthenticationFailure(RpsInteractionsError):
    """Request signature missing or not valid for the raw body."""


class ConfigurationError(RpsInteractionsError):
    """Process configuration or an internal invariant is broken."""


class UnknownSession(RpsInteractionsError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Unknown session: {session_id}")
        self.session_id = session_id


class DuplicateSessionError(ValueError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session already exists: {session_id}")
        self.session_id = session_id


class UpstreamCallFailure(RpsInteractionsError):
    """An outbound REST call to the platform failed.

    `status_code` is None for transport errors (DNS, timeouts, refused connections).
    """

    def __init__(self, *, method: str, endpoint: str, status_code: int | None, body: str) -> None:
        super().__init__(f"{method} {endpoint} failed ({status_code}): {body}")
        self.method = method
        self.endpoint = endpoint
        self.status_code = status_code
        self.body = body
