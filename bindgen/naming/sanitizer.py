"""
Identifier sanitizer shared by the EVM and Solana back ends.

Converts contract and member names into Python identifiers:
- IERC20 -> ierc20 (package)
- ReserveManager -> reserve_manager (package)
- getMultipleReserves -> get_multiple_reserves (member)
- camelCaseContract -> CamelCaseContract (class)
"""

import keyword
import re
from typing import Dict, Optional

from ..errors import IllegalIdentifier


_IDENTIFIER_CHARS = re.compile(r'^[A-Za-z0-9_]+$')
_ILLEGAL_CHAR = re.compile(r'[^A-Za-z0-9_]')

# Members of every generated contract/codec class. A contract method that
# sanitizes to one of these gets the mapped name instead.
RESERVED_MEMBER_NAMES: Dict[str, str] = {
    'address': 'address_',
    'client': 'client_',
    'codec': 'codec_',
    'options': 'options_',
    'program_id': 'program_id_',
    'write_report': 'write_report_',
    'unpack_error': 'unpack_error_',
    'layout': 'layout_',
    'marshal': 'marshal_',
    'unmarshal': 'unmarshal_',
    '_call_contract': '_call_contract_',
    '_resolve_block_number': '_resolve_block_number_',
    '_write_encoded': '_write_encoded_',
    '_filter_logs': '_filter_logs_',
    '_read_account': '_read_account_',
    '_dispatch': '_dispatch_',
    '_codec': '_codec_',
}


def _is_upper(ch: str) -> bool:
    return 'A' <= ch <= 'Z'


def _is_lower(ch: str) -> bool:
    return 'a' <= ch <= 'z'


def contract_name_to_package(contract_name: str) -> str:
    """
    Convert a contract name into a package name (acronym-aware snake_case).

    An underscore is inserted before an uppercase letter when the previous
    character is not uppercase, or when it ends an acronym (previous
    uppercase, next lowercase, index > 1). Nothing is inserted at index 0.
    """
    if not contract_name:
        return ''

    result = []
    for i, ch in enumerate(contract_name):
        if _is_upper(ch):
            if i > 0:
                prev_is_upper = _is_upper(contract_name[i - 1])
                next_is_lower = i + 1 < len(contract_name) and _is_lower(contract_name[i + 1])
                if not prev_is_upper or (next_is_lower and i > 1):
                    result.append('_')
            result.append(ch.lower())
        else:
            result.append(ch)
    return ''.join(result)


def to_snake_case(name: str) -> str:
    """
    Convert a member name (method, field, event) to snake_case.

    Same word-boundary rule as package names, without doubling an
    underscore that is already present (Get_User_Data -> get_user_data).
    """
    result = []
    for i, ch in enumerate(name):
        if _is_upper(ch):
            if i > 0 and name[i - 1] != '_':
                prev_is_upper = _is_upper(name[i - 1])
                next_is_lower = i + 1 < len(name) and _is_lower(name[i + 1])
                if not prev_is_upper or (next_is_lower and i > 1):
                    result.append('_')
            result.append(ch.lower())
        else:
            result.append(ch)
    return ''.join(result)


def to_pascal_case(name: str) -> str:
    """
    Convert a name to PascalCase.

    Handles:
    - snake_case: user_data -> UserData
    - camelCase: userData -> UserData
    - Already PascalCase or acronyms: ERC20 -> ERC20
    """
    if '_' in name:
        parts = [part for part in name.split('_') if part]
        return ''.join(part[0].upper() + part[1:] for part in parts)
    if not name:
        return name
    return name[0].upper() + name[1:]


def to_constant_case(name: str) -> str:
    """Convert a name to SCREAMING_SNAKE_CASE for module constants."""
    return to_snake_case(name).upper()


def is_reserved(name: str) -> bool:
    """Check whether name is a Python keyword."""
    return keyword.iskeyword(name)


def is_valid_identifier(name: str) -> bool:
    """Check whether name is usable as a Python identifier as-is."""
    return bool(name) and name.isidentifier() and not is_reserved(name)


def escape_reserved(name: str) -> str:
    """Append a trailing underscore to Python keywords (from -> from_)."""
    if is_reserved(name):
        return f'{name}_'
    return name


def check_member_name(name: str, kind: str, where: str) -> None:
    """
    Validate the raw name of a method, event or error.

    Raises:
        IllegalIdentifier: 'illegal character' when the name contains a
            character that cannot appear in an identifier (e.g. '$').
    """
    match = _ILLEGAL_CHAR.search(name)
    if match:
        raise IllegalIdentifier(
            f"illegal character '{match.group(0)}' in {kind} name '{name}'",
            element=where,
        )
    if not name or name[0].isdigit():
        raise IllegalIdentifier(f"invalid name '{name}' for {kind}", element=where)


def check_field_name(name: str, where: str) -> None:
    """
    Validate the raw name of a parameter or struct field.

    Raises:
        IllegalIdentifier: 'invalid name' when the name cannot be an identifier.
    """
    if not _IDENTIFIER_CHARS.match(name) or name[0].isdigit():
        raise IllegalIdentifier(f"invalid name '{name}'", element=where)


def member_name(name: str, reserved: Optional[Dict[str, str]] = None) -> str:
    """Snake-case a member name and escape keywords and reserved members."""
    result = escape_reserved(to_snake_case(name))
    if reserved and result in reserved:
        return reserved[result]
    return result


def to_sighash_snake(name: str) -> str:
    """
    Snake-case a name the way Anchor does before hashing it.

    Hyphens and spaces become underscores; word boundaries follow the
    member rule above.
    """
    cleaned = re.sub(r'[\s\-]+', '_', name.strip())
    return to_snake_case(cleaned)


def program_package_name(metadata_name: str) -> str:
    """
    Derive the package name of a Solana program from IDL metadata.name.

    The name is snake-cased for sighash derivation. A reserved keyword gets
    a '_program' suffix; a result that is still not a valid identifier gets
    a 'my_' prefix.
    """
    name = to_sighash_snake(metadata_name)
    if not name:
        return name
    if is_reserved(name):
        name = f'{name}_program'
    if not is_valid_identifier(name):
        name = f'my_{name}'
    return name
