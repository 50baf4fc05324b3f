"""
Transaction signers.
"""
from typing import Any, Dict, Protocol

from eth_account import Account
from eth_account.signers.local import LocalAccount


class Signer(Protocol):
    """Protocol for custom signers"""
    address: str

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        """Sign transaction and return signed tx object with a ``raw_transaction`` attribute"""
        ...


class LocalSigner:
    """Signer backed by a private key held in memory for the life of the process."""

    def __init__(self, private_key: Any):
        self._account: LocalAccount = Account.from_key(private_key)

    @classmethod
    def from_account(cls, account: LocalAccount) -> "LocalSigner":
        signer = cls.__new__(cls)
        signer._account = account
        return signer

    @property
    def address(self) -> str:
        return self._account.address

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        return self._account.sign_transaction(transaction_dict)

    def __repr__(self) -> str:
        return f"LocalSigner({self.address})"
