"""Exception types surfaced to callers."""


class PerfAllyError(Exception):
    """Base class for errors raised by this package."""


class AuditServiceError(PerfAllyError):
    """The PageSpeed Insights call failed.

    ``status_code`` is the upstream HTTP status, or ``None`` when the request
    never got a response (DNS, TLS, timeout) or the body was unusable.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
