"""
Exceptions for the Raisin SDK.
"""
from enum import Enum
from typing import Any, List, Optional


class Stage(str, Enum):
    """
    Lifecycle stages of a state-changing operation.

    An operation moves validated -> converting -> built -> submitted ->
    confirming and ends in either confirmed or failed.
    """
    VALIDATED = "validated"
    CONVERTING = "converting"
    BUILT = "built"
    SUBMITTED = "submitted"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class RaisinError(Exception):
    """Base exception for all Raisin SDK errors."""
    pass


class ValidationError(RaisinError):
    """Raised when local input validation fails before any network call."""
    pass


class InvalidAddressError(ValidationError):
    """Raised when an address string cannot be parsed."""
    pass


class InvalidAmountError(ValidationError):
    """Raised for negative, non-finite or non-numeric amounts."""
    pass


class InvalidPrecisionError(ValidationError):
    """Raised when decimals are out of range or an amount is too precise for them."""
    pass


class AmountOverflowError(ValidationError):
    """Raised when an amount does not fit in a uint256."""
    pass


class BatchLengthMismatchError(ValidationError):
    """Raised when the parallel arrays of a batch donation differ in length."""
    pass


class SchemaError(RaisinError):
    """Raised when a call does not match the contract interface."""
    pass


class ConfigurationError(RaisinError):
    """Raised when settings are missing or invalid."""
    pass


class KeystoreError(RaisinError):
    """Raised when a keystore file cannot be created or decrypted."""
    pass


class SubmissionError(RaisinError):
    """Raised when a transaction cannot be built, signed or broadcast."""
    pass


class SigningError(SubmissionError):
    """Raised when the signer fails or is missing."""
    pass


class ConfirmationError(RaisinError):
    """Raised when a broadcast transaction does not reach its confirmation depth."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class TransactionRevertedError(ConfirmationError):
    """Raised when a mined transaction has a failed status."""
    pass


class TransactionDroppedError(ConfirmationError):
    """Raised when a transaction disappears from the node before being mined."""
    pass


class ConfirmationTimeoutError(ConfirmationError):
    """Raised when the confirmation wait exceeds its timeout."""
    pass


class OperationCancelledError(ConfirmationError):
    """Raised when a confirmation wait is cancelled through its token."""
    pass


class InvalidTransactionStateError(RaisinError):
    """Raised when a transaction handle or call descriptor is reused."""
    pass


class RemoteCallError(RaisinError):
    """
    Raised when a read-only contract call fails.

    The message is the one reported by the node or contract, unchanged.
    """
    pass


class OperationError(RaisinError):
    """
    Raised by the orchestrator when a logical operation fails.

    Steps that were already confirmed are listed in ``completed_steps``; they
    are not rolled back (for example a granted allowance stays granted).
    """

    def __init__(
        self,
        operation: str,
        stage: Stage,
        cause: Exception,
        completed_steps: Optional[List[Any]] = None
    ):
        self.operation = operation
        self.stage = stage
        self.cause = cause
        self.completed_steps = list(completed_steps or [])
        super().__init__(f"{operation} failed at stage '{stage.value}': {cause}")
