"""
Data models for the Raisin SDK.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import Stage


class ReceiptSummary(BaseModel):
    """Mined transaction receipt, as seen once the confirmation depth was reached"""
    model_config = ConfigDict(populate_by_name=True)

    tx_hash: str = Field(..., alias="transactionHash")
    block_number: int = Field(..., alias="blockNumber")
    block_hash: str = Field(..., alias="blockHash")
    status: int
    gas_used: int = Field(..., alias="gasUsed")
    from_address: str = Field(..., alias="from")
    to_address: Optional[str] = Field(None, alias="to")
    confirmations: int = 0
    logs: List[Dict[str, Any]] = Field(default_factory=list)


class StepResult(BaseModel):
    """One confirmed transaction inside a logical operation"""
    name: str
    target: str
    tx_hash: str
    receipt: ReceiptSummary


class OperationResult(BaseModel):
    """Outcome of a state-changing orchestrator operation"""
    operation: str
    stage: Stage = Stage.CONFIRMED
    steps: List[StepResult] = Field(default_factory=list)


class TokenBalance(BaseModel):
    """Token balance of an account"""
    owner: str
    token: str
    amount: int
    decimals: int
    formatted: str


class FundRecord(BaseModel):
    """
    Read-only projection of a fund stored in the Raisin contract.

    ``balance`` and ``goal`` are in the fund token's base units; the
    ``*_formatted`` fields carry the same values as decimal strings.
    Records are fetched fresh on every query.
    """
    index: int
    balance: int
    goal: int
    token: str
    raiser: str
    recipient: str
    expiry: int
    decimals: int
    balance_formatted: str
    goal_formatted: str

    @property
    def expires_at(self) -> Optional[datetime]:
        """Expiry as a UTC datetime, or None when it lies outside the datetime range."""
        try:
            return datetime.fromtimestamp(self.expiry, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
