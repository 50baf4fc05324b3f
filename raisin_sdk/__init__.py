"""
Raisin SDK - client for the Raisin crowdfunding contract.
"""
from .calls import CallDescriptor, ContractRef, build_call
from .client import ContractClient, Web3ContractClient
from .config import RaisinConfig
from .exceptions import (
    AmountOverflowError, BatchLengthMismatchError, ConfigurationError, ConfirmationError,
    ConfirmationTimeoutError, InvalidAddressError, InvalidAmountError, InvalidPrecisionError,
    InvalidTransactionStateError, KeystoreError, OperationCancelledError, OperationError,
    RaisinError, RemoteCallError, SchemaError, SigningError, Stage, SubmissionError,
    TransactionDroppedError, TransactionRevertedError, ValidationError
)
from .keystore import create_keystore, load_keystore
from .models import FundRecord, OperationResult, ReceiptSummary, StepResult, TokenBalance
from .orchestrator import RaisinOrchestrator
from .schema import ContractSchema
from .signer import LocalSigner, Signer
from .submitter import CancelToken, PendingTransaction, TransactionSubmitter, TxState
from .units import from_base_units, to_base_units
from .version import __version__

__all__ = [
    "RaisinOrchestrator",
    "ContractClient",
    "Web3ContractClient",
    "RaisinConfig",
    "ContractSchema",
    "ContractRef",
    "CallDescriptor",
    "build_call",
    "TransactionSubmitter",
    "PendingTransaction",
    "TxState",
    "CancelToken",
    "Signer",
    "LocalSigner",
    "create_keystore",
    "load_keystore",
    "to_base_units",
    "from_base_units",
    "ReceiptSummary",
    "StepResult",
    "OperationResult",
    "FundRecord",
    "TokenBalance",
    "Stage",
    "RaisinError",
    "ValidationError",
    "InvalidAddressError",
    "InvalidAmountError",
    "InvalidPrecisionError",
    "AmountOverflowError",
    "BatchLengthMismatchError",
    "ConfigurationError",
    "KeystoreError",
    "SchemaError",
    "SubmissionError",
    "SigningError",
    "ConfirmationError",
    "TransactionRevertedError",
    "TransactionDroppedError",
    "ConfirmationTimeoutError",
    "OperationCancelledError",
    "InvalidTransactionStateError",
    "RemoteCallError",
    "OperationError",
    "__version__",
]
