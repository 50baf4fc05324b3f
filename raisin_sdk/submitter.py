"""
Transaction submission and confirmation tracking.

The submitter signs and broadcasts call descriptors, and follows the
resulting transactions until they are buried under the requested number
of blocks. It never retries: a failed submission or confirmation is
reported to the caller, which decides what to do.
"""
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Set

from web3 import Web3
from web3.exceptions import ContractLogicError, TransactionNotFound

from .calls import CallDescriptor
from .exceptions import (
    ConfirmationError, ConfirmationTimeoutError, InvalidTransactionStateError,
    OperationCancelledError, RemoteCallError, SchemaError, SigningError,
    SubmissionError, TransactionDroppedError, TransactionRevertedError
)
from .models import ReceiptSummary
from .signer import Signer

DEFAULT_GAS = 300000
NATIVE_TRANSFER_GAS = 21000
GAS_BUFFER = 1.1


class CancelToken:
    """Cooperative cancellation for confirmation waits."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)


class TxState(str, Enum):
    SUBMITTED = "submitted"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class PendingTransaction:
    """
    Handle for a broadcast transaction.

    Moves submitted -> confirming -> confirmed or failed. Confirmed and
    failed are terminal; a terminal handle cannot be awaited again.
    """
    tx_hash: str
    descriptor: Optional[CallDescriptor] = None
    state: TxState = TxState.SUBMITTED
    confirmations: int = 0
    receipt: Optional[ReceiptSummary] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in (TxState.CONFIRMED, TxState.FAILED)


def _to_plain(value: Any) -> Any:
    """Convert web3 receipt values (HexBytes, AttributeDict) to plain types."""
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    if isinstance(value, Mapping):
        return {k: _to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_plain(v) for v in value]
    return value


class TransactionSubmitter:
    """
    Sign, broadcast and confirm transactions through a Web3 instance.

    Args:
        w3: Connected Web3 instance
        signer: Signer for state-changing calls (None for read-only use)
        gas_price: Fixed gas price in wei; the node's suggestion otherwise
        poll_interval: Seconds between receipt polls
        timeout: Default seconds to wait for the confirmation depth
        drop_after: Consecutive polls in which the node no longer knows the
            transaction before it is reported dropped
        expected_chain_id: Refuse to sign if the node reports another chain
        logger: Optional logger instance
    """

    def __init__(
        self,
        w3: Web3,
        signer: Optional[Signer] = None,
        gas_price: Optional[int] = None,
        poll_interval: float = 1.0,
        timeout: float = 900.0,
        drop_after: int = 5,
        expected_chain_id: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.w3 = w3
        self.signer = signer
        self.gas_price = gas_price
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.drop_after = drop_after
        self.expected_chain_id = expected_chain_id
        self.logger = logger or logging.getLogger(__name__)
        self._chain_id: Optional[int] = None
        self._consumed: Set[CallDescriptor] = set()

    @property
    def address(self) -> str:
        if self.signer is None:
            raise SigningError("No signer available")
        return self.signer.address

    @property
    def chain_id(self) -> int:
        """Chain id reported by the node, checked against the expected one once."""
        if self._chain_id is None:
            try:
                chain_id = self.w3.eth.chain_id
            except Exception as e:
                self.logger.error(f"Failed to query chain id: {e}")
                raise SubmissionError(f"Failed to query chain id: {e}") from e
            if self.expected_chain_id is not None and chain_id != self.expected_chain_id:
                raise SubmissionError(
                    f"Chain ID mismatch: node reports {chain_id}, expected {self.expected_chain_id}"
                )
            self._chain_id = chain_id
        return self._chain_id

    def _bound_function(self, descriptor: CallDescriptor):
        contract = self.w3.eth.contract(address=descriptor.target, abi=[descriptor.abi_entry])
        return getattr(contract.functions, descriptor.operation)(*descriptor.args)

    def call_readonly(self, descriptor: CallDescriptor) -> Any:
        """
        Execute a view call; one round trip, no signing, no confirmation.

        Raises:
            SchemaError: If the descriptor targets a state-changing function
            RemoteCallError: If the node or contract rejects the call
        """
        if not descriptor.readonly:
            raise SchemaError(f"{descriptor} changes state and cannot be called read-only")
        try:
            result = self._bound_function(descriptor).call()
        except ContractLogicError as e:
            message = e.message or str(e)
            self.logger.error(f"Call {descriptor} reverted: {message}")
            raise RemoteCallError(message) from e
        except Exception as e:
            self.logger.error(f"Call {descriptor} failed: {e}")
            raise RemoteCallError(str(e)) from e
        self.logger.debug(f"Call {descriptor} returned {result!r}")
        return result

    def _base_params(self) -> Dict[str, Any]:
        from_address = self.address
        try:
            nonce = self.w3.eth.get_transaction_count(from_address, "pending")
            gas_price = self.gas_price if self.gas_price is not None else self.w3.eth.gas_price
        except Exception as e:
            self.logger.error(f"Failed to prepare transaction: {e}")
            raise SubmissionError(f"Failed to prepare transaction: {e}") from e
        return {
            "from": from_address,
            "nonce": nonce,
            "gasPrice": gas_price,
            "chainId": self.chain_id,
        }

    def submit(self, descriptor: CallDescriptor) -> PendingTransaction:
        """
        Sign and broadcast a state-changing call.

        Each descriptor can be submitted once; resubmitting the same intent
        requires building a new descriptor.

        Raises:
            InvalidTransactionStateError: If the descriptor was already submitted
            SchemaError: If the descriptor targets a view function
            SigningError: If there is no signer or signing fails
            SubmissionError: If preparing or broadcasting the transaction fails
        """
        if descriptor.readonly:
            raise SchemaError(f"{descriptor} is read-only; use call_readonly")
        if descriptor in self._consumed:
            raise InvalidTransactionStateError(f"{descriptor} has already been submitted")
        self._consumed.add(descriptor)

        params = self._base_params()
        fn = self._bound_function(descriptor)

        try:
            gas = fn.estimate_gas({"from": params["from"]})
            params["gas"] = int(gas * GAS_BUFFER)
            self.logger.debug(f"Estimated gas for {descriptor}: {gas}")
        except ContractLogicError as e:
            message = e.message or str(e)
            self.logger.error(f"{descriptor} would revert: {message}")
            raise SubmissionError(f"Transaction would revert: {message}") from e
        except Exception as e:
            params["gas"] = DEFAULT_GAS
            self.logger.warning(f"Gas estimation failed, using default: {DEFAULT_GAS}. Error: {e}")

        try:
            tx = fn.build_transaction(params)
        except Exception as e:
            self.logger.error(f"Failed to build transaction for {descriptor}: {e}")
            raise SubmissionError(f"Failed to build transaction: {e}") from e

        return self._sign_and_send(tx, descriptor)

    def send_value(self, to: str, amount_wei: int) -> PendingTransaction:
        """Sign and broadcast a plain native-currency transfer."""
        params = self._base_params()
        params.update({"to": to, "value": amount_wei, "gas": NATIVE_TRANSFER_GAS})
        return self._sign_and_send(params, None)

    def _sign_and_send(self, tx: Dict[str, Any], descriptor: Optional[CallDescriptor]) -> PendingTransaction:
        if self.signer is None:
            raise SigningError("No signer available")
        self.logger.debug(f"Signing transaction: {tx}")
        try:
            signed_tx = self.signer.sign_transaction(tx)
        except Exception as e:
            self.logger.error(f"Transaction signing failed: {e}")
            raise SigningError(f"Failed to sign transaction: {e}") from e

        try:
            tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        except Exception as e:
            self.logger.error(f"Failed to send transaction: {e}")
            raise SubmissionError(f"Failed to send transaction: {e}") from e

        tx_hash_hex = Web3.to_hex(tx_hash) if isinstance(tx_hash, (bytes, bytearray)) else str(tx_hash)
        self.logger.info(f"Transaction sent: {tx_hash_hex}")
        return PendingTransaction(tx_hash=tx_hash_hex, descriptor=descriptor)

    def _fail(self, pending: PendingTransaction, error: ConfirmationError) -> None:
        pending.state = TxState.FAILED
        pending.error = str(error)
        self.logger.error(f"Transaction {pending.tx_hash} failed: {error}")
        raise error

    def _fetch_receipt(self, tx_hash: str) -> Optional[Mapping[str, Any]]:
        try:
            return self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None

    def _is_known(self, tx_hash: str) -> bool:
        try:
            self.w3.eth.get_transaction(tx_hash)
            return True
        except TransactionNotFound:
            return False

    def await_confirmation(
        self,
        pending: PendingTransaction,
        depth: int,
        cancel_token: Optional[CancelToken] = None,
        timeout: Optional[float] = None
    ) -> ReceiptSummary:
        """
        Block until the transaction has at least ``depth`` confirmations.

        A transaction mined in block B has ``head - B + 1`` confirmations.
        Success is returned on the first poll that observes the depth.

        Args:
            pending: Handle returned by submit or send_value
            depth: Required confirmations (at least 1)
            cancel_token: Token that aborts the wait when cancelled
            timeout: Seconds to wait; the submitter default when None

        Returns:
            Summary of the mined receipt

        Raises:
            InvalidTransactionStateError: If the handle is already terminal
            TransactionRevertedError: If the transaction was mined with status 0
            TransactionDroppedError: If the node forgot the transaction
            ConfirmationTimeoutError: If the depth is not reached in time
            OperationCancelledError: If the token was cancelled
            ConfirmationError: If the node cannot be queried
        """
        if pending.is_terminal:
            raise InvalidTransactionStateError(
                f"Transaction {pending.tx_hash} is already {pending.state.value}"
            )
        if depth < 1:
            raise ValueError(f"Confirmation depth must be at least 1, got {depth}")

        token = cancel_token or CancelToken()
        wait_for = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + wait_for
        tx_hash = pending.tx_hash
        misses = 0
        pending.state = TxState.CONFIRMING

        while True:
            if token.cancelled:
                self._fail(pending, OperationCancelledError(
                    f"Stopped waiting for {tx_hash}; it may still be mined", tx_hash
                ))

            try:
                receipt = self._fetch_receipt(tx_hash)
                if receipt is None:
                    pending.confirmations = 0
                    if self._is_known(tx_hash):
                        misses = 0
                    else:
                        misses += 1
                        self.logger.debug(f"{tx_hash} unknown to node ({misses}/{self.drop_after})")
                        if misses >= self.drop_after:
                            self._fail(pending, TransactionDroppedError(
                                f"Transaction {tx_hash} was dropped", tx_hash
                            ))
                else:
                    if receipt["status"] == 0:
                        self._fail(pending, TransactionRevertedError(
                            f"Transaction {tx_hash} reverted in block {receipt['blockNumber']}", tx_hash
                        ))
                    head = self.w3.eth.block_number
                    pending.confirmations = max(head - receipt["blockNumber"] + 1, 0)
                    self.logger.debug(f"{tx_hash}: {pending.confirmations}/{depth} confirmations")
                    if pending.confirmations >= depth:
                        summary = self._convert_receipt(receipt, pending.confirmations)
                        pending.receipt = summary
                        pending.state = TxState.CONFIRMED
                        self.logger.info(
                            f"Transaction {tx_hash} confirmed ({pending.confirmations} blocks)"
                        )
                        return summary
            except ConfirmationError:
                raise
            except Exception as e:
                self._fail(pending, ConfirmationError(
                    f"Lost track of {tx_hash} while waiting for confirmations: {e}", tx_hash
                ))

            if time.monotonic() >= deadline:
                self._fail(pending, ConfirmationTimeoutError(
                    f"Transaction {tx_hash} not confirmed after {wait_for}s "
                    f"({pending.confirmations}/{depth} confirmations)", tx_hash
                ))
            token.wait(self.poll_interval)

    def _convert_receipt(self, web3_receipt: Mapping[str, Any], confirmations: int) -> ReceiptSummary:
        receipt_dict = _to_plain(dict(web3_receipt))
        receipt_dict["confirmations"] = confirmations
        return ReceiptSummary.model_validate(receipt_dict)
