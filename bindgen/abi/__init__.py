"""
ABI module for the bindings generator.

This module provides the structural type expressions and the contract
descriptor built from an Ethereum ABI JSON file.
"""

from .types import (
    Elementary,
    FixedArray,
    DynArray,
    Tuple,
    TupleField,
    TypeExpr,
    is_value_type,
    is_hashed_topic_type,
    iter_tuples,
    type_identity,
    parse_type,
)
from .model import ContractDescriptor, Method, Event, Error, Param
from .parser import AbiParser, parse_abi_file, canonical_signature, selector_of, topic_of

__all__ = [
    'Elementary',
    'FixedArray',
    'DynArray',
    'Tuple',
    'TupleField',
    'TypeExpr',
    'is_value_type',
    'is_hashed_topic_type',
    'iter_tuples',
    'type_identity',
    'parse_type',
    'ContractDescriptor',
    'Method',
    'Event',
    'Error',
    'Param',
    'AbiParser',
    'parse_abi_file',
    'canonical_signature',
    'selector_of',
    'topic_of',
]
