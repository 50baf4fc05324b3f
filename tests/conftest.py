"""
Pytest fixtures for the Raisin SDK tests.
"""
import pytest
from typing import Any, Dict, List, Optional, Tuple

from web3 import Web3

from raisin_sdk.calls import CallDescriptor
from raisin_sdk.client import ContractClient
from raisin_sdk.exceptions import ConfirmationError, RemoteCallError
from raisin_sdk.models import ReceiptSummary
from raisin_sdk.schema import RAISIN_SIGNATURES, TOKEN_SIGNATURES, ContractSchema
from raisin_sdk.submitter import PendingTransaction, TxState

# Constants for testing
TEST_RPC_URL = "https://rpc.example.com"
TEST_PRIV_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
RAISIN_ADDRESS = Web3.to_checksum_address("0x7e37cd627c75db9b76331f484449e5d98d5c82c5")
SIGNER_ADDRESS = "0x1234567890123456789012345678901234567890"
TOKEN_A = "0x1111111111111111111111111111111111111111"
TOKEN_B = "0x2222222222222222222222222222222222222222"
RECIPIENT = "0x3333333333333333333333333333333333333333"


class FakeContractClient(ContractClient):
    """
    In-memory ContractClient that records every interaction.

    ``calls`` holds tuples such as ("submit", "approve", target, args) and
    ("confirm", "approve", depth) in the order they happened.
    """

    def __init__(self, decimals: Optional[Dict[str, int]] = None, confirmations: int = 6):
        super().__init__(
            RAISIN_ADDRESS,
            ContractSchema.load("raisin", required=RAISIN_SIGNATURES),
            ContractSchema.load("erc20", required=TOKEN_SIGNATURES),
            confirmations=confirmations
        )
        self.calls: List[Tuple[Any, ...]] = []
        self.decimals: Dict[str, int] = dict(decimals or {TOKEN_A: 6, TOKEN_B: 18})
        self.balances: Dict[Tuple[str, str], int] = {}
        self.raisins: Dict[int, Tuple[Any, ...]] = {}
        self.submit_failures: Dict[str, Exception] = {}
        self.confirm_failures: Dict[str, Exception] = {}
        self.block = 1000
        self._tx_count = 0

    @property
    def address(self) -> str:
        return SIGNER_ADDRESS

    def operations(self, kind: str) -> List[str]:
        return [c[1] for c in self.calls if c[0] == kind]

    def call_readonly(self, descriptor: CallDescriptor) -> Any:
        self.calls.append(("call", descriptor.operation, descriptor.target, descriptor.args))
        if descriptor.operation == "decimals":
            if descriptor.target not in self.decimals:
                raise RemoteCallError("execution reverted")
            return self.decimals[descriptor.target]
        if descriptor.operation == "balanceOf":
            return self.balances.get((descriptor.target, descriptor.args[0]), 0)
        if descriptor.operation == "raisins":
            index = descriptor.args[0]
            if index not in self.raisins:
                raise RemoteCallError("execution reverted: Raisin: no fund at this index")
            return self.raisins[index]
        raise AssertionError(f"unexpected read-only call {descriptor}")

    def _new_pending(self, descriptor: Optional[CallDescriptor]) -> PendingTransaction:
        self._tx_count += 1
        return PendingTransaction(tx_hash="0x" + format(self._tx_count, "064x"), descriptor=descriptor)

    def submit(self, descriptor: CallDescriptor) -> PendingTransaction:
        self.calls.append(("submit", descriptor.operation, descriptor.target, descriptor.args))
        if descriptor.operation in self.submit_failures:
            raise self.submit_failures[descriptor.operation]
        return self._new_pending(descriptor)

    def send_value(self, to: str, amount_wei: int) -> PendingTransaction:
        self.calls.append(("submit", "transferEth", to, (amount_wei,)))
        return self._new_pending(None)

    def await_confirmation(self, pending: PendingTransaction, depth: int) -> ReceiptSummary:
        operation = pending.descriptor.operation if pending.descriptor else "transferEth"
        self.calls.append(("confirm", operation, depth))
        if operation in self.confirm_failures:
            pending.state = TxState.FAILED
            error = self.confirm_failures[operation]
            if isinstance(error, ConfirmationError):
                error.tx_hash = pending.tx_hash
            raise error
        self.block += 1
        pending.state = TxState.CONFIRMED
        pending.confirmations = depth
        return ReceiptSummary(
            transactionHash=pending.tx_hash,
            blockNumber=self.block,
            blockHash="0x" + "ab" * 32,
            status=1,
            gasUsed=50000,
            **{"from": SIGNER_ADDRESS, "to": pending.descriptor.target if pending.descriptor else None},
            confirmations=depth
        )


@pytest.fixture
def fake_client():
    return FakeContractClient()


@pytest.fixture
def status_lines():
    return []


@pytest.fixture
def orchestrator(fake_client, status_lines):
    from raisin_sdk.orchestrator import RaisinOrchestrator
    return RaisinOrchestrator(fake_client, on_status=status_lines.append)


@pytest.fixture
def raisin_schema():
    return ContractSchema.load("raisin", required=RAISIN_SIGNATURES)


@pytest.fixture
def token_schema():
    return ContractSchema.load("erc20", required=TOKEN_SIGNATURES)
