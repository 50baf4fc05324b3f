"""
ContractClient - the chain access capability used by the orchestrator.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from web3 import Web3

from .calls import CallDescriptor, ContractRef, build_call
from .config import DEFAULT_CONFIRMATIONS, RaisinConfig
from .models import ReceiptSummary
from .schema import RAISIN_SIGNATURES, TOKEN_SIGNATURES, ContractSchema
from .signer import Signer
from .submitter import CancelToken, PendingTransaction, TransactionSubmitter
from .utils import parse_address


class ContractClient(ABC):
    """
    Everything the orchestrator needs from the chain, behind one object.

    Holds the loaded interface schemas and the Raisin address so they are
    parsed once per process. Subclasses provide the transport: a Web3 node
    in production, an in-memory double in tests.

    Args:
        raisin_address: Address of the Raisin contract
        raisin_schema: Loaded Raisin interface
        token_schema: Loaded token interface
        confirmations: Confirmation depth for state-changing calls
    """

    def __init__(
        self,
        raisin_address: str,
        raisin_schema: ContractSchema,
        token_schema: ContractSchema,
        confirmations: int = DEFAULT_CONFIRMATIONS
    ):
        self.raisin = ContractRef(parse_address(raisin_address), raisin_schema)
        self.token_schema = token_schema
        self.confirmations = confirmations
        self._tokens: Dict[str, ContractRef] = {}

    def token(self, address: str) -> ContractRef:
        """Token contract reference for ``address``."""
        checksummed = parse_address(address)
        if checksummed not in self._tokens:
            self._tokens[checksummed] = ContractRef(checksummed, self.token_schema)
        return self._tokens[checksummed]

    def build_call(self, contract_ref: ContractRef, operation_name: str, args: Sequence[Any]) -> CallDescriptor:
        return build_call(contract_ref, operation_name, args)

    @property
    @abstractmethod
    def address(self) -> str:
        """Address of the signing account."""
        pass

    @abstractmethod
    def call_readonly(self, descriptor: CallDescriptor) -> Any:
        pass

    @abstractmethod
    def submit(self, descriptor: CallDescriptor) -> PendingTransaction:
        pass

    @abstractmethod
    def send_value(self, to: str, amount_wei: int) -> PendingTransaction:
        pass

    @abstractmethod
    def await_confirmation(self, pending: PendingTransaction, depth: int) -> ReceiptSummary:
        pass


def _make_session(retry_count: int) -> requests.Session:
    session = requests.Session()
    # Only connection setup is retried; a request that reached the node is
    # never replayed, so a broadcast cannot be sent twice by this layer.
    retries = Retry(
        total=retry_count,
        connect=retry_count,
        read=0,
        status=0,
        other=0,
        backoff_factor=0.5,
        allowed_methods=["GET", "POST"],
        raise_on_status=False
    )
    session.mount("http://", HTTPAdapter(max_retries=retries))
    session.mount("https://", HTTPAdapter(max_retries=retries))
    return session


class Web3ContractClient(ContractClient):
    """
    ContractClient backed by a JSON-RPC node.

    Args:
        config: Connection and transaction settings
        signer: Signer for state-changing calls; read-only use works without one
        w3: Pre-built Web3 instance (built from config.rpc_url when None)
        cancel_token: Token shared by all confirmation waits of this client
        logger: Optional logger instance
    """

    def __init__(
        self,
        config: RaisinConfig,
        signer: Optional[Signer] = None,
        w3: Optional[Web3] = None,
        cancel_token: Optional[CancelToken] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

        raisin_schema = ContractSchema.load("raisin", config.raisin_abi_path, required=RAISIN_SIGNATURES)
        token_schema = ContractSchema.load("erc20", config.token_abi_path, required=TOKEN_SIGNATURES)
        super().__init__(config.raisin_address, raisin_schema, token_schema, config.confirmations)

        if w3 is None:
            w3 = Web3(Web3.HTTPProvider(
                config.rpc_url,
                request_kwargs={"timeout": config.request_timeout},
                session=_make_session(config.retry_count)
            ))
        self.w3 = w3
        self.cancel_token = cancel_token or CancelToken()
        self.submitter = TransactionSubmitter(
            w3,
            signer=signer,
            gas_price=config.gas_price,
            poll_interval=config.poll_interval,
            timeout=config.confirmation_timeout,
            expected_chain_id=config.expected_chain_id,
            logger=self.logger
        )

    @property
    def address(self) -> str:
        return self.submitter.address

    def call_readonly(self, descriptor: CallDescriptor) -> Any:
        return self.submitter.call_readonly(descriptor)

    def submit(self, descriptor: CallDescriptor) -> PendingTransaction:
        return self.submitter.submit(descriptor)

    def send_value(self, to: str, amount_wei: int) -> PendingTransaction:
        return self.submitter.send_value(to, amount_wei)

    def await_confirmation(self, pending: PendingTransaction, depth: int) -> ReceiptSummary:
        return self.submitter.await_confirmation(pending, depth, cancel_token=self.cancel_token)
