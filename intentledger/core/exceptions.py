"""
IntentLedger Exception Hierarchy

All exceptions inherit from IntentLedgerError for easy catching.
Every rejected call raises exactly one of these and leaves no trace:
no state change, no fact emitted.
"""


class Reason:
    """
    Categorical rejection codes carried on every IntentLedgerError.

    Callers branch on the exception class first and on `reason` second.
    Message text is for humans and may change between releases.
    """
    # Authorization
    NOT_ADMIN     = "NOT_ADMIN"
    NOT_EXECUTOR  = "NOT_EXECUTOR"
    NOT_COMMITTER = "NOT_COMMITTER"

    # Validation — intents
    INVALID_AMOUNT         = "INVALID_AMOUNT"
    INVALID_RECIPIENT_HASH = "INVALID_RECIPIENT_HASH"
    INVALID_METADATA_HASH  = "INVALID_METADATA_HASH"
    INVALID_PROVIDER_REF   = "INVALID_PROVIDER_REF"
    INVALID_DEADLINE       = "INVALID_DEADLINE"
    INVALID_ATTEMPTS       = "INVALID_ATTEMPTS"
    INVALID_INTENT_ID      = "INVALID_INTENT_ID"

    # Validation — receipts
    INVALID_RECEIPT_HASH     = "INVALID_RECEIPT_HASH"
    INVALID_RECEIPT_URI_HASH = "INVALID_RECEIPT_URI_HASH"
    INVALID_RECEIPT_VERSION  = "INVALID_RECEIPT_VERSION"

    # Validation — shape
    MALFORMED_HASH   = "MALFORMED_HASH"
    INVALID_ENUM     = "INVALID_ENUM"
    INVALID_IDENTITY = "INVALID_IDENTITY"
    INVALID_CONFIG   = "INVALID_CONFIG"

    # State conflicts
    INTENT_FINALIZED       = "INTENT_FINALIZED"
    INTENT_NOT_CANCELLABLE = "INTENT_NOT_CANCELLABLE"

    # Journal
    JOURNAL_WRITE_FAILED = "JOURNAL_WRITE_FAILED"
    JOURNAL_CORRUPT      = "JOURNAL_CORRUPT"


class IntentLedgerError(Exception):
    """Base exception for all IntentLedger errors"""

    def __init__(self, message: str, reason: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.details = details or {}

    def __str__(self):
        prefix = f"[{self.reason}] " if self.reason else ""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{prefix}{self.message} ({details_str})"
        return f"{prefix}{self.message}"


class AuthorizationError(IntentLedgerError):
    """Raised when the caller does not hold the required role"""
    pass


class ValidationError(IntentLedgerError):
    """Raised when an input precondition fails"""
    pass


class StateConflictError(IntentLedgerError):
    """Raised when the intent's current status forbids the requested transition"""
    pass


class LedgerError(IntentLedgerError):
    """Raised when the fact journal cannot be written, read or verified"""
    pass
