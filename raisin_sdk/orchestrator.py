"""
Fund lifecycle operations.

RaisinOrchestrator turns user requests (decimal amounts, address strings,
fund indices) into sequences of contract calls: resolve the token's
decimals, convert the amount, build the call, submit it and wait for the
confirmation depth. Multi-step operations run strictly in order and stop
at the first failure; steps already confirmed are not undone.
"""
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Sequence, Union

from .calls import CallDescriptor, ContractRef
from .client import ContractClient
from .exceptions import (
    BatchLengthMismatchError, InvalidPrecisionError, OperationError, RaisinError,
    SchemaError, Stage, ValidationError
)
from .models import FundRecord, OperationResult, StepResult, TokenBalance
from .schema import RAISIN_RECORD_FIELDS
from .units import ETHER_DECIMALS, MAX_DECIMALS, DecimalInput, from_base_units, parse_amount, to_base_units
from .utils import parse_address, parse_fund_index

# Testnet token that exposes a public mint()
TEST_TOKEN = "0x7a56e2f6e2965a3569fe3bd9c8f65e565c0941ef"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

FundIndexInput = Union[int, str]


class _OperationRun:
    """Progress of one logical operation: current stage and confirmed steps."""

    def __init__(self, operation: str):
        self.operation = operation
        self.stage = Stage.VALIDATED
        self.steps: List[StepResult] = []

    def result(self) -> OperationResult:
        return OperationResult(operation=self.operation, stage=Stage.CONFIRMED, steps=self.steps)


class RaisinOrchestrator:
    """
    Runs Raisin operations against a ContractClient.

    Args:
        client: Chain access capability (schemas, signer, transport)
        confirmations: Depth for state-changing calls; the client's when None
        on_status: Callback receiving a human-readable line per protocol stage
        logger: Optional logger instance
    """

    def __init__(
        self,
        client: ContractClient,
        confirmations: Optional[int] = None,
        on_status: Optional[Callable[[str], None]] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.client = client
        self.confirmations = confirmations or client.confirmations
        self.on_status = on_status
        self.logger = logger or logging.getLogger(__name__)

    def _status(self, message: str) -> None:
        self.logger.info(message)
        if self.on_status:
            self.on_status(message)

    @contextmanager
    def _operation(self, name: str) -> Iterator[_OperationRun]:
        run = _OperationRun(name)
        try:
            yield run
        except RaisinError as e:
            self.logger.error(f"{name} failed at stage {run.stage.value}: {e}")
            if run.steps:
                self._status(
                    f"{len(run.steps)} step(s) of {name} were confirmed before the failure "
                    "and remain in effect: " + ", ".join(f"{s.name} ({s.tx_hash})" for s in run.steps)
                )
            raise OperationError(name, run.stage, e, run.steps) from e

    def _execute(self, run: _OperationRun, descriptor: CallDescriptor, label: str) -> StepResult:
        run.stage = Stage.BUILT
        pending = self.client.submit(descriptor)
        run.stage = Stage.SUBMITTED
        self._status(f"{label} pending ... tx {pending.tx_hash}")
        run.stage = Stage.CONFIRMING
        receipt = self.client.await_confirmation(pending, self.confirmations)
        step = StepResult(
            name=descriptor.operation,
            target=descriptor.target,
            tx_hash=pending.tx_hash,
            receipt=receipt
        )
        run.steps.append(step)
        run.stage = Stage.CONFIRMED
        self._status(f"{label} confirmed in block {receipt.block_number}")
        return step

    def _decimals(self, token_ref: ContractRef) -> int:
        decimals = self.client.call_readonly(self.client.build_call(token_ref, "decimals", []))
        if not isinstance(decimals, int) or not 0 <= decimals <= MAX_DECIMALS:
            raise InvalidPrecisionError(f"Token {token_ref.address} reports invalid decimals: {decimals!r}")
        return decimals

    def _to_base_units(self, run: _OperationRun, amount: DecimalInput, token_ref: ContractRef) -> int:
        run.stage = Stage.CONVERTING
        decimals = self._decimals(token_ref)
        return to_base_units(amount, decimals)

    def _approve(self, run: _OperationRun, token_ref: ContractRef, base_amount: int) -> StepResult:
        descriptor = self.client.build_call(token_ref, "approve", [self.client.raisin.address, base_amount])
        return self._execute(run, descriptor, f"Approval of {base_amount} units of {token_ref.address} for Raisin")

    def init_fund(self, amount: DecimalInput, token: str, recipient: str) -> OperationResult:
        """Start a fund with a goal of ``amount`` tokens, paid out to ``recipient``."""
        with self._operation("init_fund") as run:
            parse_amount(amount)
            token_ref = self.client.token(token)
            recipient_address = parse_address(recipient)

            base_amount = self._to_base_units(run, amount, token_ref)
            descriptor = self.client.build_call(
                self.client.raisin, "initFund", [base_amount, token_ref.address, recipient_address]
            )
            self._execute(
                run, descriptor,
                f"Fund with a goal of {amount} of {token_ref.address} for {recipient_address}"
            )
            return run.result()

    def donate(self, amount: DecimalInput, token: str, fund_index: FundIndexInput) -> OperationResult:
        """
        Donate to a fund: approve Raisin for the amount, then donate.

        The donation is only submitted once the approval is confirmed. If the
        donation fails, the confirmed allowance stays in place.
        """
        with self._operation("donate") as run:
            parse_amount(amount)
            token_ref = self.client.token(token)
            index = parse_fund_index(fund_index)

            base_amount = self._to_base_units(run, amount, token_ref)
            self._approve(run, token_ref, base_amount)

            descriptor = self.client.build_call(
                self.client.raisin, "donateToken", [token_ref.address, index, base_amount]
            )
            self._execute(run, descriptor, f"Donation of {amount} of {token_ref.address} to fund #{index}")
            return run.result()

    def batch_donate(
        self,
        amounts: Sequence[DecimalInput],
        tokens: Sequence[str],
        fund_indices: Sequence[FundIndexInput]
    ) -> OperationResult:
        """
        Donate to several funds in one Raisin transaction.

        Every token is approved, one at a time and each confirmed, before the
        single batchTokenDonate call is built. A failed approval ends the
        batch; earlier approvals remain as allowances.

        Each token may appear once: approve() replaces an allowance rather
        than adding to it, so a repeated token would leave Raisin approved
        for the last amount only and the batch would revert on chain.
        """
        with self._operation("batch_donate") as run:
            if not len(amounts) == len(tokens) == len(fund_indices):
                raise BatchLengthMismatchError(
                    f"Batch needs one token and one fund index per amount: got {len(amounts)} amounts, "
                    f"{len(tokens)} tokens, {len(fund_indices)} indices"
                )
            if not amounts:
                raise ValidationError("Batch donation needs at least one donation")
            for amount in amounts:
                parse_amount(amount)
            token_refs = [self.client.token(t) for t in tokens]
            seen = set()
            for ref in token_refs:
                if ref.address in seen:
                    raise ValidationError(
                        f"Token {ref.address} appears more than once in the batch; "
                        "combine its donations or send them separately"
                    )
                seen.add(ref.address)
            indices = [parse_fund_index(i) for i in fund_indices]

            base_amounts = []
            for amount, token_ref in zip(amounts, token_refs):
                base_amount = self._to_base_units(run, amount, token_ref)
                self._approve(run, token_ref, base_amount)
                base_amounts.append(base_amount)

            descriptor = self.client.build_call(
                self.client.raisin, "batchTokenDonate",
                [[ref.address for ref in token_refs], indices, base_amounts]
            )
            self._execute(run, descriptor, f"Batch of {len(base_amounts)} donations to funds {indices}")
            return run.result()

    def _fund_call(self, name: str, operation: str, fund_index: FundIndexInput, label: str) -> OperationResult:
        with self._operation(name) as run:
            index = parse_fund_index(fund_index)
            descriptor = self.client.build_call(self.client.raisin, operation, [index])
            self._execute(run, descriptor, f"{label} #{index}")
            return run.result()

    def end_fund(self, fund_index: FundIndexInput) -> OperationResult:
        return self._fund_call("end_fund", "endFund", fund_index, "Ending fund")

    def withdraw(self, fund_index: FundIndexInput) -> OperationResult:
        """Withdraw the proceeds of a successful fund."""
        return self._fund_call("withdraw", "fundWithdraw", fund_index, "Withdrawal from fund")

    def refund(self, fund_index: FundIndexInput) -> OperationResult:
        """Reclaim a donation from a fund that missed its goal."""
        return self._fund_call("refund", "refund", fund_index, "Refund from fund")

    def transfer(self, amount: DecimalInput, token: str, recipient: str) -> OperationResult:
        """Send ``amount`` tokens to ``recipient``."""
        with self._operation("transfer") as run:
            parse_amount(amount)
            token_ref = self.client.token(token)
            recipient_address = parse_address(recipient)

            base_amount = self._to_base_units(run, amount, token_ref)
            descriptor = self.client.build_call(token_ref, "transfer", [recipient_address, base_amount])
            self._execute(run, descriptor, f"Transfer of {amount} of {token_ref.address} to {recipient_address}")
            return run.result()

    def transfer_eth(self, amount: DecimalInput, to: str) -> OperationResult:
        """Send ``amount`` of the chain's native currency."""
        with self._operation("transfer_eth") as run:
            parse_amount(amount)
            recipient_address = parse_address(to)
            run.stage = Stage.CONVERTING
            amount_wei = to_base_units(amount, ETHER_DECIMALS)

            run.stage = Stage.BUILT
            pending = self.client.send_value(recipient_address, amount_wei)
            run.stage = Stage.SUBMITTED
            self._status(f"Sending {amount} ether to {recipient_address} ... tx {pending.tx_hash}")
            run.stage = Stage.CONFIRMING
            receipt = self.client.await_confirmation(pending, self.confirmations)
            run.steps.append(StepResult(
                name="transferEth", target=recipient_address, tx_hash=pending.tx_hash, receipt=receipt
            ))
            run.stage = Stage.CONFIRMED
            self._status(f"Ether transfer confirmed in block {receipt.block_number}")
            return run.result()

    def mint_test_tokens(self, token: str = TEST_TOKEN) -> OperationResult:
        """Call mint() on a testnet token that hands out free tokens."""
        with self._operation("mint_test_tokens") as run:
            token_ref = self.client.token(token)
            if not token_ref.schema.has_function("mint"):
                raise SchemaError(f"{token_ref.name} interface has no mint() function")
            descriptor = self.client.build_call(token_ref, "mint", [])
            self._execute(run, descriptor, f"Minting test tokens from {token_ref.address}")
            return run.result()

    def get_balance(self, owner: str, token: str) -> TokenBalance:
        """
        Token balance of ``owner``, in base units and as a decimal string.

        Read-only: validation and remote errors are raised as they are.
        """
        owner_address = parse_address(owner)
        token_ref = self.client.token(token)
        decimals = self._decimals(token_ref)
        amount = self.client.call_readonly(self.client.build_call(token_ref, "balanceOf", [owner_address]))
        return TokenBalance(
            owner=owner_address,
            token=token_ref.address,
            amount=amount,
            decimals=decimals,
            formatted=from_base_units(amount, decimals)
        )

    def get_raisin(self, fund_index: FundIndexInput) -> FundRecord:
        """
        Current state of a fund.

        The fund token's decimals are used to format balance and goal. A
        record whose token is the zero address has no token to ask, so it is
        formatted with 0 decimals. Remote errors (unknown index on a
        reverting contract) are raised verbatim as RemoteCallError.
        """
        index = parse_fund_index(fund_index)
        raw: Any = self.client.call_readonly(self.client.build_call(self.client.raisin, "raisins", [index]))
        if not isinstance(raw, (list, tuple)) or len(raw) != RAISIN_RECORD_FIELDS:
            raise SchemaError(f"raisins({index}) returned {raw!r}, expected {RAISIN_RECORD_FIELDS} fields")
        balance, goal, token, raiser, recipient, expiry = raw

        token_address = parse_address(token)
        decimals = 0 if token_address == ZERO_ADDRESS else self._decimals(self.client.token(token_address))
        return FundRecord(
            index=index,
            balance=balance,
            goal=goal,
            token=token_address,
            raiser=parse_address(raiser),
            recipient=parse_address(recipient),
            expiry=expiry,
            decimals=decimals,
            balance_formatted=from_base_units(balance, decimals),
            goal_formatted=from_base_units(goal, decimals)
        )
