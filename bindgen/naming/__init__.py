"""
Naming module for the bindings generator.

This module turns contract, program and member names into valid Python
package, class and attribute names.
"""

from .sanitizer import (
    contract_name_to_package,
    program_package_name,
    to_snake_case,
    to_pascal_case,
    to_constant_case,
    to_sighash_snake,
    member_name,
    escape_reserved,
    is_reserved,
    is_valid_identifier,
    check_member_name,
    check_field_name,
    RESERVED_MEMBER_NAMES,
)

__all__ = [
    'contract_name_to_package',
    'program_package_name',
    'to_snake_case',
    'to_pascal_case',
    'to_constant_case',
    'to_sighash_snake',
    'member_name',
    'escape_reserved',
    'is_reserved',
    'is_valid_identifier',
    'check_member_name',
    'check_field_name',
    'RESERVED_MEMBER_NAMES',
]
