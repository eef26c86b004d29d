"""
errors.py — AppError hierarchy and error code registry.

Every error returned by the GroupSplit API uses a code defined here.
Service and route code raises one of the AppError subclasses below, never a
bare string or a generic exception.

  ValidationError     400 (request shape) / 422 (business rule)
  NotFoundError       404
  AuthorizationError  403
  ConsistencyError    internal only; the balance aggregator catches it

Never conflate 401 (unauthenticated) with 403 (unauthorized).
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


class ValidationError(AppError):
    """Input or business-rule violation. Defaults to 422."""

    def __init__(
            self,
            code: str,
            message: str,
            field: str | None = None,
            http_status: int = 422,
    ) -> None:
        super().__init__(code, message, http_status, field)


class NotFoundError(AppError):

    def __init__(self, code: str, message: str, field: str | None = None) -> None:
        super().__init__(code, message, 404, field)


class AuthorizationError(AppError):
    """The caller is known but not allowed to do this."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(code or ErrorCode.FORBIDDEN, message, 403)


class ConsistencyError(AppError):
    """
    Stored data references an identity that cannot be resolved.

    Raised and caught inside the balance aggregator; it never reaches a client.
    """

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.INCONSISTENT_DATA, message, 500)


# ── Error Code Registry ────────────────────────────────────────────────────
#
# These are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT             = "INVALID_AMOUNT"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    INVALID_CATEGORY           = "INVALID_CATEGORY"
    INVALID_SPLIT_POLICY       = "INVALID_SPLIT_POLICY"
    DUPLICATE_PARTICIPANT      = "DUPLICATE_PARTICIPANT"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"
    DUPLICATE_USERNAME         = "DUPLICATE_USERNAME"
    ALREADY_MEMBER             = "ALREADY_MEMBER"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    GROUP_NOT_FOUND            = "GROUP_NOT_FOUND"
    MEMBER_NOT_FOUND           = "MEMBER_NOT_FOUND"
    EXPENSE_NOT_FOUND          = "EXPENSE_NOT_FOUND"

    # ── Business Rule Violations (422) ────────────────────────────────────
    NO_PARTICIPANTS            = "NO_PARTICIPANTS"
    PAYER_NOT_MEMBER           = "PAYER_NOT_MEMBER"
    SPLITS_DO_NOT_MATCH        = "SPLITS_DO_NOT_MATCH"
    PERCENTAGE_OUT_OF_RANGE    = "PERCENTAGE_OUT_OF_RANGE"
    PERCENTAGE_SUM_MISMATCH    = "PERCENTAGE_SUM_MISMATCH"
    SPLIT_SUM_MISMATCH         = "SPLIT_SUM_MISMATCH"
    CANNOT_REMOVE_OWNER        = "CANNOT_REMOVE_OWNER"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (unauthenticated)
    # 403 = we know who you are, but you are not allowed (unauthorized)
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    TOKEN_MISSING              = "TOKEN_MISSING"          # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 401
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 401
    FORBIDDEN                  = "FORBIDDEN"              # 403

    # ── System Errors (500) ────────────────────────────────────────────────
    INCONSISTENT_DATA          = "INCONSISTENT_DATA"
    INTERNAL_ERROR             = "INTERNAL_ERROR"
