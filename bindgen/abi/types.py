"""
Structural type expressions for Ethereum ABI parameters.

Every ABI parameter type is carried as a TypeExpr:

    Elementary(kind, size) | FixedArray(elem, length) | DynArray(elem) | Tuple(name, fields)

Tuples keep their field names and the struct name found in internalType so
that repeated references to the same structure resolve to one generated
class. The canonical string form (uint256, (string,bytes32)[], ...) is what
signatures are hashed over and what eth-abi encodes against.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple as TupleType, Union

from ..errors import MalformedDescriptor


_ARRAY_SUFFIX = re.compile(r'^(.*)\[(\d*)\]$')
_SIZED_INT = re.compile(r'^(u?int)(\d*)$')
_FIXED_BYTES = re.compile(r'^bytes(\d+)$')
_STRUCT_INTERNAL_TYPE = re.compile(r'^struct\s+(?:[\w$]+\.)*([\w$]+)')


@dataclass(frozen=True)
class Elementary:
    """An elementary ABI type: uint<N>, int<N>, bool, address, bytes<N>, bytes, string."""
    kind: str  # 'uint', 'int', 'bool', 'address', 'fixed_bytes', 'bytes', 'string'
    size: int = 0  # bits for integers, bytes for fixed_bytes

    @property
    def canonical(self) -> str:
        if self.kind in ('uint', 'int'):
            return f'{self.kind}{self.size}'
        if self.kind == 'fixed_bytes':
            return f'bytes{self.size}'
        return self.kind

    @property
    def is_dynamic(self) -> bool:
        return self.kind in ('bytes', 'string')


@dataclass(frozen=True)
class FixedArray:
    """T[N]"""
    elem: 'TypeExpr'
    length: int

    @property
    def canonical(self) -> str:
        return f'{self.elem.canonical}[{self.length}]'

    @property
    def is_dynamic(self) -> bool:
        return self.elem.is_dynamic


@dataclass(frozen=True)
class DynArray:
    """T[]"""
    elem: 'TypeExpr'

    @property
    def canonical(self) -> str:
        return f'{self.elem.canonical}[]'

    @property
    def is_dynamic(self) -> bool:
        return True


@dataclass(frozen=True)
class TupleField:
    """A named member of a tuple."""
    name: str
    type: 'TypeExpr'


@dataclass(frozen=True)
class Tuple:
    """
    A tuple (Solidity struct).

    name is the struct name from internalType, or '' when the ABI does not
    carry one; the type mapper invents a name in that case.
    """
    name: str
    fields: TupleType[TupleField, ...]

    @property
    def canonical(self) -> str:
        return '(' + ','.join(f.type.canonical for f in self.fields) + ')'

    @property
    def is_dynamic(self) -> bool:
        return any(f.type.is_dynamic for f in self.fields)

    @property
    def identity(self) -> str:
        """Structural identity: field names and types, recursively."""
        parts = []
        for f in self.fields:
            inner = f.type.identity if isinstance(f.type, Tuple) else type_identity(f.type)
            parts.append(f'{inner} {f.name}')
        return f'{self.name}(' + ','.join(parts) + ')'


TypeExpr = Union[Elementary, FixedArray, DynArray, Tuple]


# =============================================================================
# PREDICATES
# =============================================================================

def type_identity(expr: TypeExpr) -> str:
    """Identity string of any type expression (tuples include field names)."""
    if isinstance(expr, Tuple):
        return expr.identity
    if isinstance(expr, FixedArray):
        return f'{type_identity(expr.elem)}[{expr.length}]'
    if isinstance(expr, DynArray):
        return f'{type_identity(expr.elem)}[]'
    return expr.canonical


def is_value_type(expr: TypeExpr) -> bool:
    """True for elementary types that fit a single 32-byte word."""
    return isinstance(expr, Elementary) and not expr.is_dynamic


def is_hashed_topic_type(expr: TypeExpr) -> bool:
    """
    Whether an indexed event parameter of this type is stored as a hash.

    True iff the type is string, bytes, any array or a tuple.
    """
    return not is_value_type(expr)


def iter_tuples(expr: TypeExpr):
    """Yield every tuple reachable from expr, children before parents."""
    if isinstance(expr, (FixedArray, DynArray)):
        yield from iter_tuples(expr.elem)
    elif isinstance(expr, Tuple):
        for f in expr.fields:
            yield from iter_tuples(f.type)
        yield expr


# =============================================================================
# PARSING
# =============================================================================

def struct_name_from_internal_type(internal_type: Optional[str]) -> str:
    """
    Extract the struct name from an internalType string.

    'struct DataStorage.UserData[]' -> 'UserData'
    """
    if not isinstance(internal_type, str) or not internal_type:
        return ''
    match = _STRUCT_INTERNAL_TYPE.match(internal_type)
    if not match:
        return ''
    return match.group(1)


def parse_elementary(type_str: str, path: str = '') -> Elementary:
    """
    Parse an elementary type token.

    Args:
        type_str: Type token without array suffixes (e.g. 'uint', 'bytes32')
        path: Field path used in error messages

    Returns:
        The Elementary expression

    Raises:
        MalformedDescriptor: For unknown tokens or out-of-range sizes
    """
    if type_str in ('bool', 'address', 'string', 'bytes'):
        return Elementary(type_str)
    if type_str == 'function':
        # address (20 bytes) + selector (4 bytes)
        return Elementary('fixed_bytes', 24)

    match = _SIZED_INT.match(type_str)
    if match:
        kind, bits = match.group(1), match.group(2)
        size = int(bits) if bits else 256
        if size < 8 or size > 256 or size % 8 != 0:
            raise MalformedDescriptor(f"invalid integer size in type '{type_str}'", element=path)
        return Elementary(kind, size)

    match = _FIXED_BYTES.match(type_str)
    if match:
        size = int(match.group(1))
        if size < 1 or size > 32:
            raise MalformedDescriptor(f"invalid bytes size in type '{type_str}'", element=path)
        return Elementary('fixed_bytes', size)

    raise MalformedDescriptor(f"unknown type '{type_str}'", element=path)


def parse_type(
    type_str: str,
    components: Optional[List[Dict[str, Any]]] = None,
    internal_type: Optional[str] = None,
    path: str = '',
    field_parser=None,
) -> TypeExpr:
    """
    Parse an ABI type string into a TypeExpr.

    Array suffixes are peeled from the right so that 'uint256[2][]' becomes
    DynArray(FixedArray(uint256, 2)).

    Args:
        type_str: The 'type' value of the ABI parameter
        components: The 'components' list for tuple types
        internal_type: The 'internalType' value, used to name tuples
        path: Field path used in error messages
        field_parser: Callable(component, index, path) -> TupleField used for
            tuple members; defaults to parse_component

    Returns:
        The parsed TypeExpr
    """
    if not isinstance(type_str, str) or not type_str:
        raise MalformedDescriptor('missing type', element=path)

    match = _ARRAY_SUFFIX.match(type_str)
    if match:
        inner = parse_type(match.group(1), components, internal_type, path, field_parser)
        length = match.group(2)
        if length == '':
            return DynArray(inner)
        if int(length) == 0:
            raise MalformedDescriptor(f"zero-length array in type '{type_str}'", element=path)
        return FixedArray(inner, int(length))

    if type_str == 'tuple':
        if components is None:
            raise MalformedDescriptor("tuple type without 'components'", element=path)
        if not isinstance(components, list):
            raise MalformedDescriptor("tuple 'components' must be an array", element=path)
        parser = field_parser or parse_component
        fields = tuple(
            parser(component, i, f'{path}.components[{i}]')
            for i, component in enumerate(components)
        )
        return Tuple(struct_name_from_internal_type(internal_type), fields)

    return parse_elementary(type_str, path)


def parse_component(component: Dict[str, Any], index: int, path: str) -> TupleField:
    """Parse one tuple component without name validation."""
    name = component.get('name') or f'field{index}'
    return TupleField(
        name=name,
        type=parse_type(
            component.get('type'),
            component.get('components'),
            component.get('internalType'),
            path,
        ),
    )
