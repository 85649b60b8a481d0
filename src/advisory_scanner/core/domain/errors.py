from __future__ import annotations

from typing import Any, Optional

from .enums import SourceErrorKind


class SourceError(Exception):
    """Failure talking to a vulnerability source.

    The kind is decided where the HTTP response (or transport exception) is
    inspected, so callers never need to look at message text. ``payload`` holds
    the decoded JSON error body when the source sent one.
    """

    def __init__(
        self,
        kind: SourceErrorKind,
        message: str,
        *,
        status_code: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.payload = payload

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


class SourceAuthorizationError(SourceError):
    """Credentials missing, invalid or not entitled for an authenticated source.

    Aborts the whole scan: the scan could not run at all.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(SourceErrorKind.AUTH, message, status_code=status_code)
