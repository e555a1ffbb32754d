class BillingError(Exception):
    """Base exception for credit ledger errors."""

    error_code = "BILLING_ERROR"


class CreditRaceError(BillingError):
    """Raised when the credit balance changed between read and decrement."""

    error_code = "BILLING_CONFLICT"
