"""
errors.py — AppError hierarchy and error code registry.

Every error raised by the ledger uses a code defined here. Service code never
raises bare strings or generic exceptions for bad input.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - All ledger errors are deterministic: the same input raises the same code
    with the same message on every call.
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
        self.field       = field  # which input field caused the error

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
    """
    Split configuration or monetary input is invalid.

    Raised before any amount is computed. Callers never receive a partial
    result alongside this error.
    """

    def __init__(self, code: str, message: str, field: str | None = None) -> None:
        super().__init__(code, message, 422, field=field)


class CurrencyMismatchError(AppError):
    """Inputs span more than one currency where a single currency was required."""

    def __init__(self, currencies, message: str | None = None) -> None:
        self.currencies = tuple(sorted(set(currencies)))
        super().__init__(
            ErrorCode.CURRENCY_MISMATCH,
            message or (
                f"Amounts in different currencies cannot be combined: "
                f"{', '.join(self.currencies)}."
            ),
            422,
            field="currency",
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
# These are the string values sent in API responses. Do not rename them.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    INVALID_CATEGORY           = "INVALID_CATEGORY"
    INVALID_SPLIT_TYPE         = "INVALID_SPLIT_TYPE"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    EXPENSE_NOT_FOUND          = "EXPENSE_NOT_FOUND"

    # ── Split / Money Rule Violations (422) ───────────────────────────────
    INVALID_AMOUNT             = "INVALID_AMOUNT"
    INVALID_CURRENCY           = "INVALID_CURRENCY"
    EMPTY_PARTICIPANTS         = "EMPTY_PARTICIPANTS"
    DUPLICATE_PARTICIPANT      = "DUPLICATE_PARTICIPANT"
    MISSING_SPLIT_VALUE        = "MISSING_SPLIT_VALUE"
    INVALID_PERCENTAGE         = "INVALID_PERCENTAGE"
    PERCENTAGE_SUM_MISMATCH    = "PERCENTAGE_SUM_MISMATCH"
    INVALID_EXACT_AMOUNT       = "INVALID_EXACT_AMOUNT"
    EXACT_SUM_MISMATCH         = "EXACT_SUM_MISMATCH"
    INVALID_SHARES             = "INVALID_SHARES"
    INVALID_PAYMENT            = "INVALID_PAYMENT"
    PAYMENT_SUM_MISMATCH       = "PAYMENT_SUM_MISMATCH"
    UNBALANCED_BALANCES        = "UNBALANCED_BALANCES"
    CURRENCY_MISMATCH          = "CURRENCY_MISMATCH"

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Warning Code Registry ──────────────────────────────────────────────────
#
# Warnings are returned alongside a 2xx response in the `warnings` array.
# They do not block the request.
# ──────────────────────────────────────────────────────────────────────────

class WarningCode:

    # Split preview whose payments do not add up to the expense total.
    # Still computed: a preview may be taken before payers are chosen.
    UNPAID_REMAINDER = "UNPAID_REMAINDER"
