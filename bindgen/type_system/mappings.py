"""
Type mappings and conversion expressions for generated Python code.

This module converts EVM ABI type expressions and Anchor IDL types to
Python annotations, and produces the source expressions that convert
values between the typed Python objects and the forms eth-abi and
borsh-construct work with.
"""

from typing import Optional

from ..abi import DynArray, Elementary, FixedArray, Tuple, TypeExpr
from ..idl import Defined, IdlType, OptionOf, Primitive, VecOf
from ..naming import to_pascal_case
from .registry import CompositeRegistry


# =============================================================================
# TYPE MAPPING CONSTANTS
# =============================================================================

# Elementary ABI kinds to Python annotations
EVM_TO_PYTHON_MAP = {
    'uint': 'int',
    'int': 'int',
    'bool': 'bool',
    'address': 'str',
    'string': 'str',
    'bytes': 'bytes',
    'fixed_bytes': 'bytes',
}

# IDL primitives to Python annotations
IDL_TO_PYTHON_MAP = {
    'bool': 'bool',
    'u8': 'int',
    'i8': 'int',
    'u16': 'int',
    'i16': 'int',
    'u32': 'int',
    'i32': 'int',
    'u64': 'int',
    'i64': 'int',
    'u128': 'int',
    'i128': 'int',
    'u256': 'int',
    'i256': 'int',
    'f32': 'float',
    'f64': 'float',
    'bytes': 'bytes',
    'string': 'str',
    'pubkey': 'Pubkey',
}

# IDL primitives to Borsh layout expressions
IDL_LAYOUTS = {
    'bool': 'borsh.Bool',
    'u8': 'borsh.U8',
    'i8': 'borsh.I8',
    'u16': 'borsh.U16',
    'i16': 'borsh.I16',
    'u32': 'borsh.U32',
    'i32': 'borsh.I32',
    'u64': 'borsh.U64',
    'i64': 'borsh.I64',
    'u128': 'borsh.U128',
    'i128': 'borsh.I128',
    'u256': 'solana.U256',
    'i256': 'solana.I256',
    'f32': 'borsh.F32',
    'f64': 'borsh.F64',
    'bytes': 'borsh.Bytes',
    'string': 'borsh.String',
    'pubkey': 'solana.BorshPubkey',
}


# =============================================================================
# EVM CONVERSIONS
# =============================================================================

def evm_type_to_python(expr: TypeExpr, registry: CompositeRegistry) -> str:
    """
    Convert an ABI type expression to a Python annotation.

    Args:
        expr: The type expression
        registry: Registry holding the class names of tuples

    Returns:
        The annotation source, e.g. 'List[UserData]'
    """
    if isinstance(expr, Elementary):
        return EVM_TO_PYTHON_MAP[expr.kind]
    if isinstance(expr, (FixedArray, DynArray)):
        return f'List[{evm_type_to_python(expr.elem, registry)}]'
    return registry.name_of(expr)


def evm_to_abi_expr(expr: TypeExpr, value: str, depth: int = 0) -> str:
    """Source expression converting a typed value into an eth-abi value."""
    if isinstance(expr, Elementary):
        return value
    if isinstance(expr, Tuple):
        return f'{value}.to_abi()'
    var = f'x{depth}'
    inner = evm_to_abi_expr(expr.elem, var, depth + 1)
    if inner == var:
        return f'list({value})'
    return f'[{inner} for {var} in {value}]'


def evm_from_abi_expr(expr: TypeExpr, value: str, registry: CompositeRegistry, depth: int = 0) -> str:
    """Source expression converting a decoded eth-abi value into a typed value."""
    if isinstance(expr, Elementary):
        if expr.kind == 'address':
            return f'to_checksum_address({value})'
        return value
    if isinstance(expr, Tuple):
        return f'{registry.name_of(expr)}.from_abi({value})'
    var = f'x{depth}'
    inner = evm_from_abi_expr(expr.elem, var, registry, depth + 1)
    if inner == var:
        return f'list({value})'
    return f'[{inner} for {var} in {value}]'


def evm_topic_converter(expr: TypeExpr) -> Optional[str]:
    """Lambda source converting a topic filter value, or None if not needed."""
    converted = evm_to_abi_expr(expr, 'v')
    if converted == 'v':
        return None
    return f'lambda v: {converted}'


# =============================================================================
# IDL CONVERSIONS
# =============================================================================

def idl_class_name(name: str) -> str:
    return to_pascal_case(name)


def idl_type_to_python(idl_type: IdlType) -> str:
    """Convert an IDL type to a Python annotation."""
    if isinstance(idl_type, Primitive):
        return IDL_TO_PYTHON_MAP[idl_type.name]
    if isinstance(idl_type, Defined):
        return idl_class_name(idl_type.name)
    if isinstance(idl_type, OptionOf):
        return f'Optional[{idl_type_to_python(idl_type.inner)}]'
    return f'List[{idl_type_to_python(idl_type.inner)}]'


def idl_layout(idl_type: IdlType) -> str:
    """Borsh layout expression for an IDL type."""
    if isinstance(idl_type, Primitive):
        return IDL_LAYOUTS[idl_type.name]
    if isinstance(idl_type, Defined):
        return f'{idl_class_name(idl_type.name)}.layout'
    if isinstance(idl_type, OptionOf):
        return f'borsh.Option({idl_layout(idl_type.inner)})'
    if isinstance(idl_type, VecOf):
        return f'borsh.Vec({idl_layout(idl_type.inner)})'
    return f'Array({idl_type.length}, {idl_layout(idl_type.inner)})'


def idl_from_decoded_expr(idl_type: IdlType, value: str, depth: int = 0) -> str:
    """Source expression converting a parsed construct value into a typed value."""
    if isinstance(idl_type, Primitive):
        if idl_type.name == 'bytes':
            return f'bytes({value})'
        return value
    if isinstance(idl_type, Defined):
        return f'{idl_class_name(idl_type.name)}.from_decoded({value})'
    if isinstance(idl_type, OptionOf):
        inner = idl_from_decoded_expr(idl_type.inner, value, depth)
        if inner == value:
            return value
        return f'(None if {value} is None else {inner})'
    var = f'x{depth}'
    inner = idl_from_decoded_expr(idl_type.inner, var, depth + 1)
    if inner == var:
        return f'list({value})'
    return f'[{inner} for {var} in {value}]'


def idl_to_encodable_expr(idl_type: IdlType, value: str, depth: int = 0) -> str:
    """Source expression converting a typed value into a construct build value."""
    if isinstance(idl_type, Primitive):
        return value
    if isinstance(idl_type, Defined):
        return f'{value}.to_encodable()'
    if isinstance(idl_type, OptionOf):
        inner = idl_to_encodable_expr(idl_type.inner, value, depth)
        if inner == value:
            return value
        return f'(None if {value} is None else {inner})'
    var = f'x{depth}'
    inner = idl_to_encodable_expr(idl_type.inner, var, depth + 1)
    if inner == var:
        return f'list({value})'
    return f'[{inner} for {var} in {value}]'
