"""
Standardised error handling for vidscribe.
"""

from vidscribe.core.constants import ErrorCode, RETRYABLE_ERRORS


class PipelineError(Exception):
    """Raised when transcript acquisition hits a known error condition."""

    def __init__(self, code: str, message: str, status: int | None = None,
                 detail: str | None = None, retryable: bool | None = None):
        self.code = code
        self.message = message
        self.status = status
        self.detail = detail
        # auto-detect retryable from code if not explicitly set
        self.retryable = retryable if retryable is not None else (code in RETRYABLE_ERRORS)
        super().__init__(f"[{code}] {message}")

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "status": self.status,
            "detail": self.detail,
            "retryable": self.retryable,
        }


def is_retryable(code: str) -> bool:
    return code in RETRYABLE_ERRORS


def upstream_error(service: str, status: int | None, body: str | None = None,
                   message: str | None = None) -> PipelineError:
    """Build an UPSTREAM_SERVICE_ERROR with a trimmed response body as detail."""
    detail = body[:300] if body else None
    if message is None:
        message = (f"{service} returned {status}" if status is not None
                   else f"Could not reach {service}")
    return PipelineError(ErrorCode.UPSTREAM_SERVICE_ERROR, message,
                         status=status, detail=detail)
