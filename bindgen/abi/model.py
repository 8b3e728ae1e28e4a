"""
Contract descriptor built from an Ethereum ABI.

The descriptor is immutable once built: names are already de-duplicated,
unnamed parameters already carry positional names and every selector and
topic0 is computed from the canonical signature.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple as TupleType

from .types import TypeExpr


READ_MUTABILITIES = ('view', 'pure')


@dataclass(frozen=True)
class Param:
    """A method/event/error parameter."""
    name: str
    type: TypeExpr
    indexed: bool = False
    positional: bool = False  # name was generated (arg0, output0, ...)

    @property
    def abi_type(self) -> str:
        return self.type.canonical


@dataclass(frozen=True)
class Method:
    name: str  # unique within the contract, overloads suffixed
    abi_name: str  # name as it appears in the ABI
    signature: str
    selector: bytes
    mutability: str
    inputs: TupleType[Param, ...] = ()
    outputs: TupleType[Param, ...] = ()

    @property
    def is_read(self) -> bool:
        return self.mutability in READ_MUTABILITIES


@dataclass(frozen=True)
class Event:
    name: str
    abi_name: str
    signature: str
    topic0: bytes
    inputs: TupleType[Param, ...] = ()
    anonymous: bool = False

    @property
    def indexed_inputs(self) -> List[Param]:
        return [p for p in self.inputs if p.indexed]


@dataclass(frozen=True)
class Error:
    name: str
    abi_name: str
    signature: str
    selector: bytes
    inputs: TupleType[Param, ...] = ()


@dataclass(frozen=True)
class ContractDescriptor:
    """Everything the EVM back end needs to know about one contract."""
    name: str
    methods: TupleType[Method, ...] = ()
    events: TupleType[Event, ...] = ()
    errors: TupleType[Error, ...] = ()
    abi_json: str = '[]'
    source_path: Optional[str] = None
    ignored_items: TupleType[str, ...] = ()
