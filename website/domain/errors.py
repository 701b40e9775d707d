"""
Error conditions flowing through the request pipeline.

An ErrorCondition is the normalized form of "something prevented normal
success". It is created by route code (via HttpError) or synthesized when
no route matched, and consumed exactly once by the error formatter.
No framework imports allowed.
"""

from dataclasses import dataclass
from typing import Optional


class HttpError(Exception):
    """Raised by route code to fail a request with an explicit HTTP status.

    A missing status means the failure is treated as an internal error.
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        self.message = message
        self.status = status
        super().__init__(self.message)


@dataclass
class ErrorCondition:
    """A request failure on its way to the error formatter.

    Attributes:
        message: Human-readable text shown to the client.
        status: HTTP status code, if one was assigned.
        detail: The original exception, kept for diagnostics.
    """

    message: str
    status: Optional[int] = None
    detail: Optional[BaseException] = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorCondition":
        """Build a condition from any exception.

        Reads ``status_code`` or ``status`` and ``message`` attributes when
        the exception carries them, falling back to ``str(exc)`` and then
        the exception class name for the message.
        """
        status = getattr(exc, "status_code", None)
        if status is None:
            status = getattr(exc, "status", None)
        if not isinstance(status, int) or isinstance(status, bool):
            status = None

        message = getattr(exc, "message", None)
        if not isinstance(message, str) or not message:
            message = str(exc) or type(exc).__name__
        return cls(message=message, status=status, detail=exc)
