"""
Base generator class with shared utilities.

This module provides the BaseGenerator class that contains common utilities
used by the EVM, mock and Solana generators: member and field naming with
reserved-name handling, literal rendering and module scaffolding.
"""

import re
from typing import Dict, Iterable, List, Optional, Set, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .context import CodeGenerationContext

from ..errors import IllegalIdentifier
from ..naming import (
    RESERVED_MEMBER_NAMES,
    escape_reserved,
    is_valid_identifier,
    to_pascal_case,
    to_snake_case,
)
from .emitter import STDLIB, GENERATED_HEADER, Constant, Module, bytes_literal, json_literal_lines


TYPING_USAGE_IMPORTS = [
    (r'(?m)^\s*@dataclass\b', 'dataclasses', 'dataclass', STDLIB),
    (r'(?<![.\w])Any\b', 'typing', 'Any', STDLIB),
    (r'(?<![.\w])Callable\[', 'typing', 'Callable', STDLIB),
    (r'(?<![.\w])ClassVar\[', 'typing', 'ClassVar', STDLIB),
    (r'(?<![.\w])Dict\[', 'typing', 'Dict', STDLIB),
    (r'(?<![.\w])List\[', 'typing', 'List', STDLIB),
    (r'(?<![.\w])Optional\[', 'typing', 'Optional', STDLIB),
]

# Attributes of generated dataclasses that a field must not shadow
EVM_RESERVED_FIELDS: Dict[str, str] = {
    'to_abi': 'to_abi_',
    'from_abi': 'from_abi_',
}

BORSH_RESERVED_FIELDS: Dict[str, str] = {
    'layout': 'layout_',
    'marshal': 'marshal_',
    'unmarshal': 'unmarshal_',
    'from_decoded': 'from_decoded_',
    'to_encodable': 'to_encodable_',
    'discriminant': 'discriminant_',
}


def wrap(head: str, items: List[str], tail: str, open_: str = '(', close: str = ')',
         force: bool = False, width: int = 88) -> List[str]:
    """
    Render head(item, item)tail on one line, or one item per line when long.

    Args:
        head: Text before the opening bracket (e.g. 'return Foo')
        items: The comma-separated items
        tail: Text after the closing bracket
        open_: Opening bracket
        close: Closing bracket
        force: Always use the one-item-per-line form
        width: Maximum length of the single-line form

    Returns:
        Source lines relative to the current indentation
    """
    single = f'{head}{open_}{", ".join(items)}{close}{tail}'
    if not items or (not force and len(single) <= width):
        return [single]
    return [f'{head}{open_}', *[f'    {item},' for item in items], f'{close}{tail}']


class BaseGenerator:
    """
    Base class for all code generators.

    Provides shared utilities for:
    - Member and field naming
    - Literal formatting
    - Module scaffolding
    """

    def __init__(self, ctx: 'CodeGenerationContext'):
        """
        Initialize the base generator.

        Args:
            ctx: The code generation context containing all state
        """
        self._ctx = ctx

    @property
    def diagnostics(self):
        return self._ctx.diagnostics

    # =========================================================================
    # NAMING
    # =========================================================================

    def member(self, raw_name: str, reserved: Optional[Dict[str, str]] = None) -> str:
        """
        Python name of a generated method for raw_name.

        Keywords and names of built-in members are renamed (W002). Two raw
        names mapping onto the same member are an IllegalIdentifier.
        """
        if reserved is None:
            reserved = RESERVED_MEMBER_NAMES
        return self._claim_name(raw_name, to_snake_case(raw_name), reserved, self._ctx.current_members)

    def field_name(self, raw_name: str, taken: Set[str], reserved: Optional[Dict[str, str]] = None) -> str:
        """Python attribute name of a struct/parameter field, unique within taken."""
        return self._claim_name(raw_name, to_snake_case(raw_name), reserved or {}, taken)

    def class_name(self, raw_name: str) -> str:
        name = to_pascal_case(raw_name)
        if not is_valid_identifier(name):
            raise IllegalIdentifier(f"invalid name '{raw_name}'", element=self._ctx.contract_name)
        return name

    def _claim_name(self, raw_name: str, snake: str, reserved: Dict[str, str], taken: Set[str]) -> str:
        name = escape_reserved(snake)
        if name in reserved:
            name = reserved[name]
        if name != snake:
            self.diagnostics.warn_reserved_renamed(snake, name, self._ctx.current_file_path)
        if not is_valid_identifier(name):
            raise IllegalIdentifier(f"invalid name '{raw_name}'", element=self._ctx.contract_name)
        if name in taken:
            raise IllegalIdentifier(
                f"name '{raw_name}' maps to '{name}' which is already used",
                element=self._ctx.contract_name,
            )
        taken.add(name)
        return name

    # =========================================================================
    # LITERALS AND SCAFFOLDING
    # =========================================================================

    def bytes_literal(self, value: bytes) -> str:
        return bytes_literal(value)

    def json_constant(self, module: Module, name: str, source: str) -> Constant:
        """NAME = json.loads(...) holding the input document."""
        module.add_import('json')
        return Constant(name, '\n'.join(json_literal_lines(source)))

    def new_module(self, title: str) -> Module:
        """Module with the generated-code header followed by title."""
        return Module(docstring=f'{GENERATED_HEADER}\n\n{title}\n')

    def resolve_imports(self, module: Module, usages: Iterable[Tuple[str, str, str, int]]) -> str:
        """
        Add the imports a module's declarations use.

        Args:
            module: The module to complete
            usages: (pattern, module, name, group) entries; name '' means a
                plain 'import module'

        Returns:
            The rendered declarations that were scanned
        """
        source = Module(docstring='', declarations=module.declarations).render()
        for pattern, import_module, name, group in [*TYPING_USAGE_IMPORTS, *usages]:
            if re.search(pattern, source):
                if name:
                    module.add_import(import_module, name, group=group)
                else:
                    module.add_import(import_module, group=group)
        return source
