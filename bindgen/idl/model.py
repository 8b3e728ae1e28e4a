"""
Program descriptor built from an Anchor IDL.

IDL type references are carried as IdlType variants:

    Primitive(name) | Defined(name) | OptionOf(inner) | VecOf(inner) | ArrayOf(inner, length)

Defined types, accounts and events all resolve to a TypeDef; accounts and
events additionally carry their 8-byte discriminator.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union


PRIMITIVES = (
    'bool',
    'u8', 'i8', 'u16', 'i16', 'u32', 'i32', 'u64', 'i64',
    'u128', 'i128', 'u256', 'i256',
    'f32', 'f64',
    'bytes', 'string', 'pubkey',
)

DISCRIMINATOR_LENGTH = 8


@dataclass(frozen=True)
class Primitive:
    name: str


@dataclass(frozen=True)
class Defined:
    name: str


@dataclass(frozen=True)
class OptionOf:
    inner: 'IdlType'


@dataclass(frozen=True)
class VecOf:
    inner: 'IdlType'


@dataclass(frozen=True)
class ArrayOf:
    inner: 'IdlType'
    length: int


IdlType = Union[Primitive, Defined, OptionOf, VecOf, ArrayOf]


def defined_references(idl_type: IdlType) -> List[str]:
    """Names of all defined types referenced by idl_type."""
    if isinstance(idl_type, Defined):
        return [idl_type.name]
    if isinstance(idl_type, (OptionOf, VecOf, ArrayOf)):
        return defined_references(idl_type.inner)
    return []


@dataclass(frozen=True)
class IdlField:
    name: str
    type: IdlType


@dataclass(frozen=True)
class EnumVariant:
    name: str
    kind: str  # 'unit', 'named', 'tuple'
    fields: Tuple[IdlField, ...] = ()


@dataclass(frozen=True)
class TypeDef:
    """A struct or enum from the IDL 'types' section."""
    name: str
    kind: str  # 'struct', 'enum'
    fields: Tuple[IdlField, ...] = ()
    tuple_fields: bool = False
    variants: Tuple[EnumVariant, ...] = ()

    def references(self) -> List[str]:
        names: List[str] = []
        for f in self.fields:
            names.extend(defined_references(f.type))
        for variant in self.variants:
            for f in variant.fields:
                names.extend(defined_references(f.type))
        return names


@dataclass(frozen=True)
class InstructionAccount:
    name: str
    writable: bool = False
    signer: bool = False
    optional: bool = False
    address: Optional[str] = None


@dataclass(frozen=True)
class Instruction:
    name: str
    discriminator: bytes
    args: Tuple[IdlField, ...] = ()
    accounts: Tuple[InstructionAccount, ...] = ()
    returns: Optional[IdlType] = None


@dataclass(frozen=True)
class AccountDef:
    name: str
    discriminator: bytes


@dataclass(frozen=True)
class EventDef:
    name: str
    discriminator: bytes


@dataclass(frozen=True)
class ErrorCode:
    code: int
    name: str
    msg: str = ''


@dataclass(frozen=True)
class Constant:
    name: str
    type: IdlType
    value: str


@dataclass(frozen=True)
class ProgramDescriptor:
    """Everything the Solana back end needs to know about one program."""
    address: str
    name: str  # metadata.name as written in the IDL
    package_name: str
    version: str
    instructions: Tuple[Instruction, ...] = ()
    accounts: Tuple[AccountDef, ...] = ()
    events: Tuple[EventDef, ...] = ()
    types: Tuple[TypeDef, ...] = ()  # dependency order
    errors: Tuple[ErrorCode, ...] = ()
    constants: Tuple[Constant, ...] = ()
    idl_json: str = '{}'
    source_path: Optional[str] = None

    @property
    def types_by_name(self) -> Dict[str, TypeDef]:
        return {t.name: t for t in self.types}
