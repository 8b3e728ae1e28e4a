"""
Types module for the bindings generator.

This module provides the composite type registry and type conversion
utilities for both back ends.
"""

from .registry import CompositeRegistry
from .mappings import (
    evm_type_to_python,
    evm_to_abi_expr,
    evm_from_abi_expr,
    evm_topic_converter,
    idl_class_name,
    idl_type_to_python,
    idl_layout,
    idl_from_decoded_expr,
    idl_to_encodable_expr,
    EVM_TO_PYTHON_MAP,
    IDL_TO_PYTHON_MAP,
    IDL_LAYOUTS,
)

__all__ = [
    'CompositeRegistry',
    'evm_type_to_python',
    'evm_to_abi_expr',
    'evm_from_abi_expr',
    'evm_topic_converter',
    'idl_class_name',
    'idl_type_to_python',
    'idl_layout',
    'idl_from_decoded_expr',
    'idl_to_encodable_expr',
    'EVM_TO_PYTHON_MAP',
    'IDL_TO_PYTHON_MAP',
    'IDL_LAYOUTS',
]
