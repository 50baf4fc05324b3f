"""
Contract interface descriptors.

A ContractSchema wraps a contract ABI loaded from a JSON descriptor file and
checks it against the function signatures the SDK relies on. Any mismatch
is fatal: the SDK refuses to talk to a contract whose interface it does
not recognise.
"""
import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .exceptions import SchemaError

logger = logging.getLogger(__name__)

# Functions of the Raisin contract used by the orchestrator, with input types
RAISIN_SIGNATURES: Dict[str, List[str]] = {
    "initFund": ["uint256", "address", "address"],
    "donateToken": ["address", "uint256", "uint256"],
    "batchTokenDonate": ["address[]", "uint256[]", "uint256[]"],
    "endFund": ["uint256"],
    "fundWithdraw": ["uint256"],
    "refund": ["uint256"],
    "raisins": ["uint256"],
}

# Standard token functions; mint() is optional and only needed for test tokens
TOKEN_SIGNATURES: Dict[str, List[str]] = {
    "decimals": [],
    "balanceOf": ["address"],
    "approve": ["address", "uint256"],
    "transfer": ["address", "uint256"],
}

RAISIN_RECORD_FIELDS = 6

_READONLY_MUTABILITY = ("view", "pure")


def abi_type(param: Mapping[str, Any]) -> str:
    """Canonical type string of an ABI parameter, expanding tuples."""
    typ = param["type"]
    if typ.startswith("tuple"):
        inner = ",".join(abi_type(c) for c in param.get("components", []))
        return f"({inner}){typ[len('tuple'):]}"
    return typ


class ContractSchema:
    """
    Interface schema of one contract.

    Args:
        name: Short name used in messages ("raisin", "erc20")
        abi: List of ABI entries
        required: Mapping of function name to the input types it must have
    """

    def __init__(
        self,
        name: str,
        abi: Sequence[Mapping[str, Any]],
        required: Optional[Mapping[str, Sequence[str]]] = None
    ):
        if not isinstance(abi, (list, tuple)):
            raise SchemaError(f"{name} ABI must be a list of entries, got {type(abi).__name__}")
        self.name = name
        self.abi = [dict(entry) for entry in abi]
        self._functions: Dict[str, List[Dict[str, Any]]] = {}
        for entry in self.abi:
            if entry.get("type", "function") != "function":
                continue
            if "name" not in entry:
                raise SchemaError(f"{name} ABI has a function entry without a name")
            self._functions.setdefault(entry["name"], []).append(entry)

        if required:
            self.validate(required)

    @classmethod
    def load(
        cls,
        name: str,
        path: Optional[Union[str, Path]] = None,
        required: Optional[Mapping[str, Sequence[str]]] = None
    ) -> "ContractSchema":
        """
        Load a schema from a JSON descriptor.

        The descriptor is either a bare ABI list or a compiler artifact with
        an ``abi`` key. Without ``path`` the descriptor packaged as
        ``raisin_sdk/abis/<name>.json`` is used.

        Raises:
            SchemaError: If the file is missing, malformed or non-conforming
        """
        try:
            if path is not None:
                with open(path, "r") as f:
                    data = json.load(f)
                source = str(path)
            else:
                resource = resources.files("raisin_sdk").joinpath("abis", f"{name}.json")
                with resource.open("r") as f:
                    data = json.load(f)
                source = f"packaged {name}.json"
        except FileNotFoundError as e:
            raise SchemaError(f"Interface descriptor not found: {e}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise SchemaError(f"Cannot read interface descriptor for {name}: {e}") from e

        if isinstance(data, dict) and "abi" in data:
            data = data["abi"]
        logger.debug(f"Loaded {name} interface from {source}")
        return cls(name, data, required=required)

    def validate(self, required: Mapping[str, Sequence[str]]) -> None:
        """
        Check that every required function exists with the expected inputs.

        Raises:
            SchemaError: On the first missing or mismatched function
        """
        for fn_name, expected in required.items():
            entries = self._functions.get(fn_name)
            if not entries:
                raise SchemaError(f"{self.name} interface is missing function '{fn_name}'")
            expected_types = list(expected)
            if not any(self.input_types(entry) == expected_types for entry in entries):
                found = ", ".join(
                    f"{fn_name}({','.join(self.input_types(e))})" for e in entries
                )
                raise SchemaError(
                    f"{self.name} interface declares {found}, "
                    f"expected {fn_name}({','.join(expected_types)})"
                )

    def has_function(self, fn_name: str) -> bool:
        return fn_name in self._functions

    def functions(self, fn_name: str) -> List[Dict[str, Any]]:
        """All ABI entries (overloads) for a function name."""
        entries = self._functions.get(fn_name)
        if not entries:
            raise SchemaError(f"Operation '{fn_name}' not found in {self.name} interface")
        return entries

    @staticmethod
    def input_types(entry: Mapping[str, Any]) -> List[str]:
        return [abi_type(p) for p in entry.get("inputs", [])]

    @staticmethod
    def output_types(entry: Mapping[str, Any]) -> List[str]:
        return [abi_type(p) for p in entry.get("outputs", [])]

    @staticmethod
    def is_readonly(entry: Mapping[str, Any]) -> bool:
        if entry.get("stateMutability") in _READONLY_MUTABILITY:
            return True
        # pre-0.6 compilers
        return bool(entry.get("constant", False))

    def __repr__(self) -> str:
        return f"ContractSchema({self.name!r}, functions={sorted(self._functions)})"
