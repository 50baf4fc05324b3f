"""
Call descriptors: what to call, where, and with which arguments.

Building a descriptor performs no network I/O. Arguments are checked
against the contract schema so that arity and type mismatches surface
before anything is signed or sent.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Sequence, Tuple

from eth_abi import is_encodable

from .exceptions import SchemaError
from .schema import ContractSchema


@dataclass(frozen=True)
class ContractRef:
    """A contract schema bound to a deployed address."""
    address: str
    schema: ContractSchema

    @property
    def name(self) -> str:
        return self.schema.name


@dataclass(frozen=True, eq=False)
class CallDescriptor:
    """
    An unsigned, immutable call against one contract function.

    Descriptors compare by identity: two calls with the same arguments are
    still two separate intents.
    """
    target: str
    contract_name: str
    operation: str
    args: Tuple[Any, ...]
    arg_types: Tuple[str, ...]
    readonly: bool
    abi_entry: Dict[str, Any] = field(repr=False)

    @property
    def signature(self) -> str:
        return f"{self.operation}({','.join(self.arg_types)})"

    def __str__(self) -> str:
        return f"{self.contract_name}@{self.target}.{self.signature}"


def _freeze(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _mismatch(entry: Dict[str, Any], args: Tuple[Any, ...]) -> str:
    """Describe why args do not fit entry, or return an empty string."""
    types = ContractSchema.input_types(entry)
    if len(types) != len(args):
        return f"expects {len(types)} argument(s), got {len(args)}"
    for position, (typ, arg) in enumerate(zip(types, args)):
        if not is_encodable(typ, arg):
            return f"argument {position} ({arg!r}) is not a valid {typ}"
    return ""


def build_call(contract_ref: ContractRef, operation_name: str, args: Sequence[Any]) -> CallDescriptor:
    """
    Build a call descriptor after checking it against the contract schema.

    Args:
        contract_ref: Target contract (schema and address)
        operation_name: Function name declared in the schema
        args: Positional arguments; sequences are used for array parameters

    Returns:
        An immutable CallDescriptor

    Raises:
        SchemaError: If the operation is unknown or the arguments don't match
    """
    entries = contract_ref.schema.functions(operation_name)
    frozen_args = tuple(_freeze(a) for a in args)

    problems = []
    for entry in entries:
        problem = _mismatch(entry, frozen_args)
        if not problem:
            return CallDescriptor(
                target=contract_ref.address,
                contract_name=contract_ref.name,
                operation=operation_name,
                args=frozen_args,
                arg_types=tuple(ContractSchema.input_types(entry)),
                readonly=ContractSchema.is_readonly(entry),
                abi_entry=entry,
            )
        problems.append(f"{operation_name}({','.join(ContractSchema.input_types(entry))}) {problem}")

    raise SchemaError(f"Arguments do not match {contract_ref.name} interface: " + "; ".join(problems))
