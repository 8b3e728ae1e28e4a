"""
Anchor IDL parser.

Accepts both the 0.30+ layout (root 'address', 'metadata', discriminators
in the IDL, account and event bodies in 'types') and the legacy layout
(root 'name'/'version', 'metadata.address', inline account 'type' and event
'fields', camelCase names, isMut/isSigner flags).
"""

import json
from hashlib import sha256
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from solders.pubkey import Pubkey

from ..errors import BindgenError, MalformedDescriptor
from ..naming import program_package_name, to_sighash_snake
from .model import (
    PRIMITIVES,
    DISCRIMINATOR_LENGTH,
    AccountDef,
    ArrayOf,
    Constant,
    Defined,
    EnumVariant,
    ErrorCode,
    EventDef,
    IdlField,
    IdlType,
    Instruction,
    InstructionAccount,
    OptionOf,
    Primitive,
    ProgramDescriptor,
    TypeDef,
    VecOf,
    defined_references,
)

if TYPE_CHECKING:
    from ..codegen.diagnostics import BindgenDiagnostics


PRIMITIVE_ALIASES = {
    'publicKey': 'pubkey',
}


def sighash(namespace: str, name: str) -> bytes:
    """First 8 bytes of sha256('<namespace>:<name>')."""
    return sha256(f'{namespace}:{name}'.encode()).digest()[:DISCRIMINATOR_LENGTH]


def instruction_discriminator(name: str) -> bytes:
    return sighash('global', to_sighash_snake(name))


def account_discriminator(name: str) -> bytes:
    return sighash('account', name)


def event_discriminator(name: str) -> bytes:
    return sighash('event', name)


class IdlParser:
    """
    Parser for a single Anchor IDL.

    Usage:
        parser = IdlParser(diagnostics)
        program = parser.parse_file('contracts/solana/src/idl/data_storage.json')
    """

    def __init__(self, diagnostics: Optional['BindgenDiagnostics'] = None, file_path: str = ''):
        self.diagnostics = diagnostics
        self.file_path = file_path
        self._program = ''

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    def parse_file(self, path: str) -> ProgramDescriptor:
        """Read and parse an IDL file."""
        self.file_path = self.file_path or path
        try:
            with open(path, 'r', encoding='utf-8') as f:
                source = f.read()
        except UnicodeDecodeError as e:
            raise MalformedDescriptor(f'IDL file is not valid UTF-8: {e}', element=self.file_path) from e
        return self.parse(source)

    def parse(self, source: str) -> ProgramDescriptor:
        """
        Parse IDL JSON text.

        Raises:
            MalformedDescriptor: On invalid JSON, a missing or zero address,
                unknown type tokens, undefined or recursive type references
        """
        try:
            idl = json.loads(source)
        except json.JSONDecodeError as e:
            raise MalformedDescriptor(f'invalid IDL JSON: {e}', element=self.file_path) from e
        if not isinstance(idl, dict):
            raise MalformedDescriptor('IDL must be a JSON object', element=self.file_path)

        metadata = idl.get('metadata') or {}
        if not isinstance(metadata, dict):
            raise MalformedDescriptor('metadata must be a JSON object', element=self.file_path)
        name = metadata.get('name') or idl.get('name')
        if not isinstance(name, str) or not name:
            raise MalformedDescriptor('missing metadata.name', element=self.file_path)
        self._program = name
        version = metadata.get('version') or idl.get('version') or ''
        if not isinstance(version, str):
            raise MalformedDescriptor('version must be a string', element=name)

        address = self._parse_address(idl.get('address') or metadata.get('address'))
        package_name = program_package_name(name)
        if package_name != name and self.diagnostics:
            self.diagnostics.info_program_renamed(name, package_name, self.file_path)

        types: Dict[str, TypeDef] = {}
        for i, raw in enumerate(self._objects(idl.get('types'), f'{name}.types')):
            typedef = self._parse_typedef(raw, f'{name}.types[{i}]')
            types[typedef.name] = typedef

        accounts = self._parse_accounts(self._objects(idl.get('accounts'), f'{name}.accounts'), types)
        events = self._parse_events(self._objects(idl.get('events'), f'{name}.events'), types)
        instructions = [
            self._parse_instruction(raw, f'{name}.instructions[{i}]')
            for i, raw in enumerate(self._objects(idl.get('instructions'), f'{name}.instructions'))
        ]
        errors = [
            self._parse_error(raw, f'{name}.errors[{i}]')
            for i, raw in enumerate(self._objects(idl.get('errors'), f'{name}.errors'))
        ]
        constants = [
            self._parse_constant(raw, f'{name}.constants[{i}]')
            for i, raw in enumerate(self._objects(idl.get('constants'), f'{name}.constants'))
        ]

        self._check_references(types, instructions, constants)

        return ProgramDescriptor(
            address=address,
            name=name,
            package_name=package_name,
            version=version,
            instructions=tuple(instructions),
            accounts=tuple(accounts),
            events=tuple(events),
            types=tuple(self._dependency_order(types)),
            errors=tuple(errors),
            constants=tuple(constants),
            idl_json=json.dumps(idl, separators=(',', ':'), sort_keys=True),
            source_path=self.file_path or None,
        )

    # =========================================================================
    # ROOT FIELDS
    # =========================================================================

    def _objects(self, raw: Any, path: str) -> List[Dict[str, Any]]:
        """Check that an optional IDL list holds only JSON objects."""
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise MalformedDescriptor('expected a JSON array', element=path)
        for i, item in enumerate(raw):
            if not isinstance(item, dict):
                raise MalformedDescriptor('expected a JSON object', element=f'{path}[{i}]')
        return raw

    def _parse_address(self, address: Any) -> str:
        if not isinstance(address, str) or not address:
            raise MalformedDescriptor('missing program address', element=self._program)
        try:
            pubkey = Pubkey.from_string(address)
        except ValueError as e:
            raise MalformedDescriptor(
                f"invalid program address '{address}': {e}", element=self._program
            ) from e
        if pubkey == Pubkey.default():
            raise MalformedDescriptor('program address must not be zero', element=self._program)
        return str(pubkey)

    def _discriminator(self, raw: Dict[str, Any], kind: str, name: str, derive) -> bytes:
        given = raw.get('discriminator')
        if given is None:
            if self.diagnostics:
                self.diagnostics.info_derived_discriminator(kind, name, self.file_path)
            return derive(name)
        if (
            not isinstance(given, list)
            or len(given) != DISCRIMINATOR_LENGTH
            or not all(isinstance(b, int) and 0 <= b <= 255 for b in given)
        ):
            raise MalformedDescriptor(
                f'{kind} discriminator must be {DISCRIMINATOR_LENGTH} bytes',
                element=f'{self._program}.{name}',
            )
        return bytes(given)

    # =========================================================================
    # TYPES
    # =========================================================================

    def parse_type(self, raw: Any, path: str) -> IdlType:
        """Parse an IDL type reference."""
        if isinstance(raw, str):
            name = PRIMITIVE_ALIASES.get(raw, raw)
            if name in PRIMITIVES:
                return Primitive(name)
            raise MalformedDescriptor(f"unknown type '{raw}'", element=path)
        if isinstance(raw, dict):
            if 'defined' in raw:
                defined = raw['defined']
                if isinstance(defined, dict):
                    defined = defined.get('name')
                if not isinstance(defined, str) or not defined:
                    raise MalformedDescriptor('defined type without a name', element=path)
                return Defined(defined)
            if 'option' in raw:
                return OptionOf(self.parse_type(raw['option'], path))
            if 'vec' in raw:
                return VecOf(self.parse_type(raw['vec'], path))
            if 'array' in raw:
                array = raw['array']
                if not isinstance(array, list) or len(array) != 2 or not isinstance(array[1], int):
                    raise MalformedDescriptor('array type must be [type, length]', element=path)
                return ArrayOf(self.parse_type(array[0], path), array[1])
        raise MalformedDescriptor(f'unknown type {json.dumps(raw)}', element=path)

    def _parse_fields(self, raw_fields: Any, path: str) -> Tuple[Tuple[IdlField, ...], bool]:
        """Parse named fields or tuple fields; returns (fields, is_tuple)."""
        if not isinstance(raw_fields, list):
            raise MalformedDescriptor('fields must be a JSON array', element=path)
        fields: List[IdlField] = []
        tuple_fields = False
        for i, raw in enumerate(raw_fields):
            field_path = f'{path}.fields[{i}]'
            if isinstance(raw, dict) and 'name' in raw and 'type' in raw:
                if not isinstance(raw['name'], str) or not raw['name']:
                    raise MalformedDescriptor('field name must be a string', element=field_path)
                fields.append(IdlField(raw['name'], self.parse_type(raw['type'], field_path)))
            else:
                tuple_fields = True
                fields.append(IdlField(f'field{i}', self.parse_type(raw, field_path)))
        return tuple(fields), tuple_fields

    def _parse_typedef(self, raw: Dict[str, Any], path: str) -> TypeDef:
        name = raw.get('name')
        if not isinstance(name, str) or not name:
            raise MalformedDescriptor('type definition without a name', element=path)
        body = raw.get('type') or {}
        return self._parse_typedef_body(name, body, f'{self._program}.{name}')

    def _parse_typedef_body(self, name: str, body: Any, path: str) -> TypeDef:
        if not isinstance(body, dict):
            raise MalformedDescriptor('type definition body must be a JSON object', element=path)
        kind = body.get('kind')
        if kind == 'struct':
            fields, tuple_fields = self._parse_fields(body.get('fields') or [], path)
            return TypeDef(name=name, kind='struct', fields=fields, tuple_fields=tuple_fields)
        if kind == 'enum':
            variants = []
            for i, raw in enumerate(self._objects(body.get('variants'), f'{path}.variants')):
                variant_path = f'{path}.variants[{i}]'
                variant_name = raw.get('name')
                if not isinstance(variant_name, str) or not variant_name:
                    raise MalformedDescriptor('enum variant without a name', element=variant_path)
                raw_fields = raw.get('fields')
                if not raw_fields:
                    variants.append(EnumVariant(variant_name, 'unit'))
                    continue
                fields, tuple_fields = self._parse_fields(raw_fields, variant_path)
                variants.append(EnumVariant(variant_name, 'tuple' if tuple_fields else 'named', fields))
            if len(variants) > 256:
                raise MalformedDescriptor('enum has more than 256 variants', element=path)
            return TypeDef(name=name, kind='enum', variants=tuple(variants))
        raise MalformedDescriptor(f"unsupported type definition kind '{kind}'", element=path)

    def _dependency_order(self, types: Dict[str, TypeDef]) -> List[TypeDef]:
        """Order type definitions so every type follows the types it uses."""
        ordered: List[TypeDef] = []
        state: Dict[str, str] = {}

        def visit(name: str, chain: List[str]) -> None:
            if state.get(name) == 'done':
                return
            if state.get(name) == 'visiting':
                cycle = ' -> '.join(chain + [name])
                raise MalformedDescriptor(f'recursive type definition: {cycle}', element=self._program)
            state[name] = 'visiting'
            for ref in types[name].references():
                visit(ref, chain + [name])
            state[name] = 'done'
            ordered.append(types[name])

        for name in types:
            visit(name, [])
        return ordered

    def _check_references(
        self,
        types: Dict[str, TypeDef],
        instructions: List[Instruction],
        constants: List[Constant],
    ) -> None:
        refs: List[Tuple[str, str]] = []
        for typedef in types.values():
            refs.extend((ref, typedef.name) for ref in typedef.references())
        for ix in instructions:
            for arg in ix.args:
                refs.extend((ref, ix.name) for ref in defined_references(arg.type))
            if ix.returns is not None:
                refs.extend((ref, ix.name) for ref in defined_references(ix.returns))
        for constant in constants:
            refs.extend((ref, constant.name) for ref in defined_references(constant.type))

        for ref, owner in refs:
            if ref not in types:
                raise MalformedDescriptor(
                    f"reference to undefined type '{ref}'", element=f'{self._program}.{owner}'
                )

    # =========================================================================
    # ACCOUNTS AND EVENTS
    # =========================================================================

    def _parse_accounts(self, raw_accounts: List[Dict[str, Any]], types: Dict[str, TypeDef]) -> List[AccountDef]:
        accounts = []
        for i, raw in enumerate(raw_accounts):
            name = raw.get('name')
            if not isinstance(name, str) or not name:
                raise MalformedDescriptor('account without a name', element=f'{self._program}.accounts[{i}]')
            if 'type' in raw:
                # Legacy IDL: body inline
                types[name] = self._parse_typedef_body(name, raw['type'], f'{self._program}.{name}')
            if name not in types:
                raise MalformedDescriptor(
                    f"account '{name}' has no type definition", element=self._program
                )
            accounts.append(AccountDef(name, self._discriminator(raw, 'account', name, account_discriminator)))
        return accounts

    def _parse_events(self, raw_events: List[Dict[str, Any]], types: Dict[str, TypeDef]) -> List[EventDef]:
        events = []
        for i, raw in enumerate(raw_events):
            name = raw.get('name')
            if not isinstance(name, str) or not name:
                raise MalformedDescriptor('event without a name', element=f'{self._program}.events[{i}]')
            if 'fields' in raw:
                # Legacy IDL: fields inline, 'index' flags ignored
                fields, tuple_fields = self._parse_fields(raw['fields'], f'{self._program}.{name}')
                types[name] = TypeDef(name=name, kind='struct', fields=fields, tuple_fields=tuple_fields)
            if name not in types:
                raise MalformedDescriptor(
                    f"event '{name}' has no type definition", element=self._program
                )
            events.append(EventDef(name, self._discriminator(raw, 'event', name, event_discriminator)))
        return events

    # =========================================================================
    # INSTRUCTIONS, ERRORS, CONSTANTS
    # =========================================================================

    def _parse_instruction(self, raw: Dict[str, Any], path: str) -> Instruction:
        name = raw.get('name')
        if not isinstance(name, str) or not name:
            raise MalformedDescriptor('instruction without a name', element=path)
        args = []
        for i, arg in enumerate(self._objects(raw.get('args'), f'{path}.args')):
            arg_name = arg.get('name') or f'arg{i}'
            if not isinstance(arg_name, str):
                raise MalformedDescriptor('argument name must be a string', element=f'{path}.args[{i}]')
            args.append(IdlField(arg_name, self.parse_type(arg.get('type'), f'{path}.args[{i}]')))
        returns = None
        if raw.get('returns') is not None:
            returns = self.parse_type(raw['returns'], f'{path}.returns')
        return Instruction(
            name=name,
            discriminator=self._discriminator(raw, 'instruction', name, instruction_discriminator),
            args=tuple(args),
            accounts=tuple(self._flatten_accounts(raw.get('accounts'), '', f'{path}.accounts')),
            returns=returns,
        )

    def _flatten_accounts(self, raw_accounts: Any, prefix: str, path: str) -> List[InstructionAccount]:
        """Flatten nested account groups into '<group>_<name>' entries."""
        flat: List[InstructionAccount] = []
        for i, raw in enumerate(self._objects(raw_accounts, path)):
            account_path = f'{path}[{i}]'
            raw_name = raw.get('name')
            if not isinstance(raw_name, str) or not raw_name:
                raise MalformedDescriptor('instruction account without a name', element=account_path)
            name = f'{prefix}{raw_name}'
            if 'accounts' in raw:
                flat.extend(self._flatten_accounts(raw['accounts'], f'{name}_', f'{account_path}.accounts'))
                continue
            address = raw.get('address')
            if address is not None and not isinstance(address, str):
                raise MalformedDescriptor('account address must be a string', element=account_path)
            flat.append(InstructionAccount(
                name=name,
                writable=bool(raw.get('writable', raw.get('isMut', False))),
                signer=bool(raw.get('signer', raw.get('isSigner', False))),
                optional=bool(raw.get('optional', raw.get('isOptional', False))),
                address=address,
            ))
        return flat

    def _parse_error(self, raw: Dict[str, Any], path: str) -> ErrorCode:
        code = raw.get('code')
        name = raw.get('name')
        if not isinstance(code, int) or not isinstance(name, str) or not name:
            raise MalformedDescriptor('error must have an integer code and a name', element=path)
        msg = raw.get('msg') or ''
        if not isinstance(msg, str):
            raise MalformedDescriptor('error msg must be a string', element=path)
        return ErrorCode(code=code, name=name, msg=msg)

    def _parse_constant(self, raw: Dict[str, Any], path: str) -> Constant:
        name = raw.get('name')
        if not isinstance(name, str) or not name:
            raise MalformedDescriptor('constant without a name', element=path)
        return Constant(
            name=name,
            type=self.parse_type(raw.get('type'), path),
            value=str(raw.get('value', '')),
        )


def parse_idl_file(path: str, diagnostics: Optional['BindgenDiagnostics'] = None) -> ProgramDescriptor:
    """Parse an IDL file, prefixing failures with the parse stage."""
    try:
        return IdlParser(diagnostics, path).parse_file(path)
    except BindgenError as e:
        raise e.with_context(stage='parse') from e
