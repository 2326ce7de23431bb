"""Custom exceptions for SplitIt."""

from decimal import Decimal


class SplitItError(Exception):
    """Base exception for all SplitIt errors."""

    pass


class ConfigurationError(SplitItError):
    """Raised when configuration is invalid or missing."""

    pass


class RecordNotFoundError(SplitItError):
    """Raised when a person, group or ledger entry id does not exist."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"No {kind} with id {record_id!r}")


class InvalidBackupError(SplitItError):
    """Raised when a backup file cannot be read as a ledger state."""

    pass


# ============================================================================
# Split errors
# ============================================================================


class SplitError(SplitItError):
    """Base class for failures while splitting an amount between participants."""

    pass


class SumMismatchError(SplitError):
    """Raised when exact amounts don't add up to the entry total."""

    def __init__(self, expected: Decimal, actual: Decimal):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Sum of amounts must equal total. Currently: {actual:.2f} "
            f"(vs {expected:.2f})"
        )


class PercentOutOfRangeError(SplitError):
    """Raised when percentages don't sum to roughly 100."""

    def __init__(self, total_percent: Decimal):
        self.total_percent = total_percent
        super().__init__(
            f"Total percentage must be ~100%. Currently: {total_percent:.2f}%"
        )


class ZeroSharesError(SplitError):
    """Raised when the total share weight is not positive."""

    def __init__(self, message: str | None = None):
        super().__init__(message or "Total shares must be greater than 0.")


class NegativeInputError(SplitError):
    """Raised when an amount, percentage or weight is below zero."""

    def __init__(self, person_id: str, value: Decimal):
        self.person_id = person_id
        self.value = value
        super().__init__(f"Split input for {person_id} cannot be negative: {value}")


class EmptyParticipantsError(SplitError):
    """Raised when no participants are selected."""

    def __init__(self, message: str | None = None):
        super().__init__(message or "Select at least one participant.")


class InvalidAmountError(SplitError):
    """Raised when the total to split is not a positive amount."""

    def __init__(self, amount: Decimal):
        self.amount = amount
        super().__init__(f"Amount must be greater than 0, got {amount}")


class UnknownSplitModeError(SplitError):
    """Raised for a split mode other than equal, exact, percent or shares."""

    def __init__(self, mode: str):
        self.mode = mode
        super().__init__(f"Unknown split type: {mode!r}")
