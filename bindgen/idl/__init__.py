"""
IDL module for the bindings generator.

This module provides the program descriptor built from an Anchor IDL file.
"""

from .model import (
    ProgramDescriptor,
    TypeDef,
    EnumVariant,
    IdlField,
    IdlType,
    Primitive,
    Defined,
    OptionOf,
    VecOf,
    ArrayOf,
    Instruction,
    InstructionAccount,
    AccountDef,
    EventDef,
    ErrorCode,
    Constant,
)
from .parser import (
    IdlParser,
    parse_idl_file,
    sighash,
    instruction_discriminator,
    account_discriminator,
    event_discriminator,
)

__all__ = [
    'ProgramDescriptor',
    'TypeDef',
    'EnumVariant',
    'IdlField',
    'IdlType',
    'Primitive',
    'Defined',
    'OptionOf',
    'VecOf',
    'ArrayOf',
    'Instruction',
    'InstructionAccount',
    'AccountDef',
    'EventDef',
    'ErrorCode',
    'Constant',
    'IdlParser',
    'parse_idl_file',
    'sighash',
    'instruction_discriminator',
    'account_discriminator',
    'event_discriminator',
]
