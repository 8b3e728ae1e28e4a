"""
Solana program binding generation.

This module turns a ProgramDescriptor into a package of modules:

- defined_types.py: one BorshType class per IDL type (enums as a base class
  plus one dataclass per variant)
- accounts.py / events.py: discriminators and parse_account_<x> / parse_event_<x>
- instructions.py: discriminators, argument classes, encoders, account tables
- errors.py: program error classes keyed by code
- constructor.py: IDL, PROGRAM_ID, Codec, event triggers and the program client
- __init__.py: re-exports
"""

import json
import re
from typing import Any, Dict, List, Optional, Set, Tuple

from ..errors import IllegalIdentifier
from ..idl import EnumVariant, IdlField, IdlType, Primitive, ProgramDescriptor, TypeDef
from ..idl.model import defined_references
from ..naming import to_constant_case, to_pascal_case, to_snake_case
from ..type_system import idl_from_decoded_expr, idl_layout, idl_to_encodable_expr, idl_type_to_python
from .base import BORSH_RESERVED_FIELDS, BaseGenerator, wrap
from .emitter import LOCAL, THIRD_PARTY, Banner, ClassDecl, Constant, Field, Function, Raw


SOLANA_USAGE_IMPORTS = [
    (r'(?<![.\w])Pubkey\b', 'solders.pubkey', 'Pubkey', THIRD_PARTY),
    (r'(?<![.\w])Array\(', 'construct', 'Array', THIRD_PARTY),
    (r'(?<![.\w])Construct\]', 'construct', 'Construct', THIRD_PARTY),
    (r'(?<![.\w])Int8ul\b', 'construct', 'Int8ul', THIRD_PARTY),
    (r'(?<![.\w])Pass\b', 'construct', 'Pass', THIRD_PARTY),
    (r'(?<![.\w])Struct\(', 'construct', 'Struct', THIRD_PARTY),
    (r'(?<![.\w])Switch\(', 'construct', 'Switch', THIRD_PARTY),
    (r'(?<![.\w])this\.', 'construct', 'this', THIRD_PARTY),
    (r'(?<![.\w])Promise\b', 'bindgen.runtime', 'Promise', LOCAL),
    (r'(?<![.\w])Runtime\b', 'bindgen.runtime', 'Runtime', LOCAL),
    (r'(?<![.\w])solana\.', 'bindgen.runtime', 'solana', LOCAL),
]

PACKAGE_FILES = (
    'defined_types.py',
    'accounts.py',
    'events.py',
    'instructions.py',
    'errors.py',
    'constructor.py',
    '__init__.py',
)


def layout_keys(field_names: List[str]) -> List[str]:
    """
    Construct field keys for a list of Python field names.

    Leading underscores are dropped; a key that ends up empty or taken
    falls back to field<i>.
    """
    keys: List[str] = []
    for i, name in enumerate(field_names):
        key = name.lstrip('_')
        if not key or key in keys:
            key = f'field{i}'
        keys.append(key)
    return keys


def parse_function(kind: str, name: str) -> str:
    """parse_<kind>_<name> in accounts.py or events.py."""
    return f'parse_{kind}_{to_snake_case(name)}'


def encode_function(kind: str, name: str) -> str:
    return f'encode_{kind}_{to_snake_case(name)}'


def python_literal(idl_type: IdlType, value: str) -> str:
    """Source literal of an IDL constant value, or the raw text as a string."""
    if isinstance(idl_type, Primitive):
        if idl_type.name == 'bool' and value in ('true', 'false'):
            return 'True' if value == 'true' else 'False'
        if idl_type.name[0] in 'ui' and idl_type.name[1:].isdigit():
            try:
                return str(int(value.replace('_', ''), 0))
            except ValueError:
                pass
        if idl_type.name in ('f32', 'f64'):
            try:
                return repr(float(value))
            except ValueError:
                pass
        if idl_type.name == 'string':
            try:
                decoded = json.loads(value)
                if isinstance(decoded, str):
                    return repr(decoded)
            except json.JSONDecodeError:
                pass
    return repr(value)


class SolanaGenerator(BaseGenerator):
    """
    Generates the binding package of one Anchor program.

    Usage:
        files = SolanaGenerator(ctx).generate(descriptor)
        # {'defined_types.py': '...', 'constructor.py': '...', ...}
    """

    def __init__(self, ctx):
        super().__init__(ctx)
        self._classes: Dict[str, str] = {}  # class name -> owner
        self._fields: Dict[Tuple[str, str], List[str]] = {}  # (type, variant) -> python field names
        self._parsers: Dict[Tuple[str, str], str] = {}  # (kind, item) -> parse function in accounts.py/events.py
        self._descriptor: Optional[ProgramDescriptor] = None

    def generate(self, descriptor: ProgramDescriptor) -> Dict[str, str]:
        """
        Generate every file of the program package.

        Args:
            descriptor: The parsed program

        Returns:
            File name -> source, for the names in PACKAGE_FILES
        """
        self._descriptor = descriptor
        self._classes = {}
        self._fields = {}
        self._parsers = {}
        self.program_class = self._claim_class(to_pascal_case(descriptor.package_name), 'program client')
        self._claim_class('Codec', 'codec class')
        for typedef in descriptor.types:
            self._claim_class(to_pascal_case(typedef.name), f'type {typedef.name}')
        for typedef in descriptor.types:
            if typedef.kind == 'enum':
                for variant in typedef.variants:
                    self._claim_class(self._variant_class(typedef, variant), f'variant {typedef.name}.{variant.name}')
        for instruction in descriptor.instructions:
            if instruction.args:
                self._claim_class(self._instruction_class(instruction.name), f'instruction {instruction.name}')
        for event in descriptor.events:
            self._claim_class(f'{to_pascal_case(event.name)}Trigger', f'event {event.name}')

        return {
            'defined_types.py': self._defined_types(descriptor),
            'accounts.py': self._discriminated_module(descriptor, 'account'),
            'events.py': self._discriminated_module(descriptor, 'event'),
            'instructions.py': self._instructions(descriptor),
            'errors.py': self._errors(descriptor),
            'constructor.py': self._constructor(descriptor),
            '__init__.py': self._package_init(descriptor),
        }

    # =========================================================================
    # NAMES
    # =========================================================================

    def _claim_class(self, name: str, owner: str) -> str:
        if not name.isidentifier():
            raise IllegalIdentifier(f"invalid name '{name}' for {owner}", element=self._ctx.package_name)
        if name in self._classes:
            raise IllegalIdentifier(
                f"name '{name}' for {owner} clashes with {self._classes[name]}",
                element=self._ctx.package_name,
            )
        self._classes[name] = owner
        return name

    def _variant_class(self, typedef: TypeDef, variant: EnumVariant) -> str:
        return f'{to_pascal_case(typedef.name)}{to_pascal_case(variant.name)}'

    def _instruction_class(self, name: str) -> str:
        return f'{to_pascal_case(name)}Instruction'

    def _field_names(self, key: Tuple[str, str], fields: Tuple[IdlField, ...]) -> List[str]:
        if key not in self._fields:
            taken: Set[str] = set()
            self._fields[key] = [self.field_name(f.name, taken, BORSH_RESERVED_FIELDS) for f in fields]
        return self._fields[key]

    def _defined_imports(self, module, types: List[IdlType], exclude: Set[str] = frozenset()) -> None:
        names: List[str] = []
        for idl_type in types:
            names.extend(to_pascal_case(n) for n in defined_references(idl_type))
        names = sorted(set(names) - set(exclude))
        if names:
            module.add_import('.defined_types', *names, group=LOCAL)

    # =========================================================================
    # BORSH CLASSES
    # =========================================================================

    def _borsh_members(self, key: Tuple[str, str], fields: Tuple[IdlField, ...]) -> Tuple[List, List[str]]:
        """Dataclass fields and CStruct entries for a field list."""
        names = self._field_names(key, fields)
        keys = layout_keys(names)
        members = [Field(n, idl_type_to_python(f.type)) for n, f in zip(names, fields)]
        layout = [f'{k!r} / {idl_layout(f.type)}' for k, f in zip(keys, fields)]
        return members, layout

    def _converters(self, key: Tuple[str, str], fields: Tuple[IdlField, ...], source: str, target: str):
        names = self._field_names(key, fields)
        keys = layout_keys(names)
        decoded = [f'{n}={idl_from_decoded_expr(f.type, f"{source}[{k!r}]")}' for n, k, f in zip(names, keys, fields)]
        encodable = [f'{k!r}: {idl_to_encodable_expr(f.type, f"{target}.{n}")}' for n, k, f in zip(names, keys, fields)]
        return decoded, encodable

    def _struct_class(self, name: str, key: Tuple[str, str], fields: Tuple[IdlField, ...], docstring: str) -> ClassDecl:
        members, layout = self._borsh_members(key, fields)
        decoded, encodable = self._converters(key, fields, 'obj', 'self')
        members.append(Constant('layout', '\n'.join(wrap('borsh.CStruct', layout, '', force=bool(layout))),
                                annotation='ClassVar[Construct]'))
        members.append(Function('from_decoded', ['cls', 'obj: Any'], wrap('return cls', decoded, ''),
                                returns=f"'{name}'", decorators=['classmethod']))
        members.append(Function('to_encodable', ['self'], wrap('return ', encodable, '', '{', '}'),
                                returns='Dict[str, Any]'))
        return ClassDecl(name, bases=['solana.BorshType'], members=members, decorators=['dataclass'],
                         docstring=docstring)

    def _enum_classes(self, typedef: TypeDef) -> List:
        name = to_pascal_case(typedef.name)
        registry = f'{to_constant_case(typedef.name)}_VARIANTS'
        declarations: List = [ClassDecl(name, bases=['solana.BorshType'], docstring=(
            f'Enum {typedef.name}: a 1-byte discriminant followed by the variant payload.'
        ), members=[
            Field('discriminant', 'ClassVar[int]'),
            Field('layout', 'ClassVar[Construct]'),
            Function('from_decoded', ['cls', 'obj: Any'], [
                f"variant = {registry}.get(obj['discriminant'])",
                'if variant is None:',
                f"    raise ValueError(f\"unknown {typedef.name} discriminant {{obj['discriminant']}}\")",
                "return variant._from_value(obj['value'])",
            ], returns=f"'{name}'", decorators=['classmethod']),
            Function('to_encodable', ['self'], [
                "return {'discriminant': self.discriminant, 'value': self._to_value()}",
            ], returns='Dict[str, Any]'),
            Function('_from_value', ['cls', 'value: Any'], ['return cls()'], returns=f"'{name}'",
                     decorators=['classmethod']),
            Function('_to_value', ['self'], ['return None'], returns='Any'),
        ])]

        cases = []
        for index, variant in enumerate(typedef.variants):
            cls = self._variant_class(typedef, variant)
            key = (typedef.name, variant.name)
            members: List = [Constant('discriminant', str(index), annotation='ClassVar[int]')]
            if variant.fields:
                fields, layout = self._borsh_members(key, variant.fields)
                decoded, encodable = self._converters(key, variant.fields, 'value', 'self')
                members.extend(fields)
                members.append(Function('_from_value', ['cls', 'value: Any'], wrap('return cls', decoded, ''),
                                        returns=f"'{cls}'", decorators=['classmethod']))
                members.append(Function('_to_value', ['self'], wrap('return ', encodable, '', '{', '}'),
                                        returns='Dict[str, Any]'))
                cases.append(f'{index}: borsh.CStruct({", ".join(layout)}),')
            else:
                cases.append(f'{index}: Pass,')
            declarations.append(ClassDecl(cls, bases=[name], members=members, decorators=['dataclass'],
                                          docstring=f'{typedef.name}::{variant.name}'))

        declarations.append(Constant(registry, '\n'.join(wrap('', [
            f'{i}: {self._variant_class(typedef, v)}' for i, v in enumerate(typedef.variants)
        ], '', '{', '}', force=bool(typedef.variants)))))
        declarations.append(Raw([
            f'{name}.layout = Struct(',
            "    'discriminant' / Int8ul,",
            "    'value' / Switch(this.discriminant, {",
            *[f'        {case}' for case in cases],
            '    }),',
            ')',
        ]))
        return declarations

    def _defined_types(self, descriptor: ProgramDescriptor) -> str:
        module = self.new_module(f'Types defined by the {descriptor.name} program IDL.')
        for typedef in descriptor.types:
            if typedef.kind == 'enum':
                module.add(*self._enum_classes(typedef))
            else:
                kind = 'tuple struct' if typedef.tuple_fields else 'struct'
                module.add(self._struct_class(to_pascal_case(typedef.name), (typedef.name, ''), typedef.fields,
                                              f'{kind.capitalize()} {typedef.name}.'))
        self._finish(module)
        return module.render()

    def _finish(self, module) -> None:
        source = self.resolve_imports(module, SOLANA_USAGE_IMPORTS)
        if re.search(r'(?<![.\w])borsh\.', source):
            module.add_import('borsh_construct', alias='borsh', group=THIRD_PARTY)

    # =========================================================================
    # ACCOUNTS AND EVENTS
    # =========================================================================

    def _discriminated_module(self, descriptor: ProgramDescriptor, kind: str) -> str:
        items = descriptor.accounts if kind == 'account' else descriptor.events
        module = self.new_module(f'{kind.capitalize()}s of the {descriptor.name} program.')
        taken: Set[str] = set()
        for item in items:
            module.add(Constant(f'{to_constant_case(item.name)}_DISCRIMINATOR', self.bytes_literal(item.discriminator)))
        for item in items:
            cls = to_pascal_case(item.name)
            constant = f'{to_constant_case(item.name)}_DISCRIMINATOR'
            module.add_import('.defined_types', cls, group=LOCAL)
            parse = self._claim_name(item.name, parse_function(kind, item.name), {}, taken)
            encode = self._claim_name(item.name, encode_function(kind, item.name), {}, taken)
            self._parsers[(kind, item.name)] = parse
            module.add(Function(parse, ['data: bytes'], [
                f'payload = solana.strip_discriminator(data, {constant}, {item.name!r})',
                f'return {cls}.unmarshal(payload)',
            ], returns=cls, docstring=(
                f'Decode {kind} data: the 8-byte {item.name} discriminator followed by Borsh data.\n\n'
                'Raises:\n'
                '    ValueError: If the data is too short or carries another discriminator'
            )))
            module.add(Function(encode, [f'value: {cls}'], [
                f'return {constant} + value.marshal()',
            ], returns='bytes'))
        self._finish(module)
        return module.render()

    # =========================================================================
    # INSTRUCTIONS
    # =========================================================================

    def _instructions(self, descriptor: ProgramDescriptor) -> str:
        module = self.new_module(f'Instructions of the {descriptor.name} program.')
        taken: Set[str] = set()
        for ix in descriptor.instructions:
            module.add(Constant(f'{to_constant_case(ix.name)}_DISCRIMINATOR', self.bytes_literal(ix.discriminator)))
        for ix in descriptor.instructions:
            metas = [
                'solana.InstructionAccountMeta('
                f'{a.name!r}, writable={a.writable}, signer={a.signer}, optional={a.optional}'
                + (f', address={a.address!r}' if a.address else '') + ')'
                for a in ix.accounts
            ]
            module.add(Constant(
                f'{to_constant_case(ix.name)}_ACCOUNTS',
                '\n'.join(wrap('', metas, '', '[', ']', force=bool(metas))),
                annotation='List[solana.InstructionAccountMeta]',
            ))

        for ix in descriptor.instructions:
            snake = to_snake_case(ix.name)
            constant = f'{to_constant_case(ix.name)}_DISCRIMINATOR'
            encode = self._claim_name(ix.name, f'encode_{snake}_instruction', {}, taken)
            decode = self._claim_name(ix.name, f'decode_{snake}_instruction', {}, taken)
            if ix.args:
                cls = self._instruction_class(ix.name)
                self._defined_imports(module, [a.type for a in ix.args])
                module.add(self._struct_class(cls, (ix.name, '#args'), ix.args, f'Arguments of {ix.name}.'))
                module.add(Function(encode, [f'args: {cls}'], [f'return {constant} + args.marshal()'],
                                    returns='bytes', docstring=f'Instruction data for {ix.name}.'))
                module.add(Function(decode, ['data: bytes'], [
                    f'payload = solana.strip_discriminator(data, {constant}, {ix.name!r})',
                    f'return {cls}.unmarshal(payload)',
                ], returns=cls))
            else:
                module.add(Function(encode, [], [f'return {constant}'], returns='bytes',
                                    docstring=f'Instruction data for {ix.name} (no arguments).'))
                module.add(Function(decode, ['data: bytes'], [
                    f'solana.strip_discriminator(data, {constant}, {ix.name!r})',
                ], returns='None'))
        self._finish(module)
        return module.render()

    # =========================================================================
    # ERRORS
    # =========================================================================

    def _errors(self, descriptor: ProgramDescriptor) -> str:
        module = self.new_module(f'Errors of the {descriptor.name} program.')
        base = f'{to_pascal_case(descriptor.package_name)}Error'
        taken = {base}
        module.add(ClassDecl(base, bases=['Exception'], docstring=f'Base class of {descriptor.name} program errors.',
                             members=[
            Constant('code', '0', annotation='ClassVar[int]'),
            Constant('msg', "''", annotation='ClassVar[str]'),
            Function('__init__', ['self'], ["super().__init__(f'{self.code}: {self.msg}')"]),
        ]))
        classes = []
        for error in descriptor.errors:
            cls = to_pascal_case(error.name)
            if cls in taken:
                raise IllegalIdentifier(f"error name '{error.name}' clashes with another error class",
                                        element=descriptor.name)
            taken.add(cls)
            classes.append((error.code, cls))
            module.add(ClassDecl(cls, bases=[base], members=[
                Constant('code', str(error.code)),
                Constant('msg', repr(error.msg or error.name)),
            ]))
        module.add(Constant('ERRORS', '\n'.join(wrap('', [f'{code}: {cls}' for code, cls in classes], '', '{', '}',
                                                     force=bool(classes))),
                            annotation=f'Dict[int, Type[{base}]]'))
        module.add(Function('from_code', ['code: int'], [
            'cls = ERRORS.get(code)',
            'if cls is None:',
            '    return None',
            'return cls()',
        ], returns=f'Optional[{base}]', docstring='The program error with the given code, or None if unknown.'))
        module.add_import('typing', 'Type')
        self._finish(module)
        return module.render()

    # =========================================================================
    # CONSTRUCTOR
    # =========================================================================

    def _event_idl(self, descriptor: ProgramDescriptor, name: str) -> Dict[str, Any]:
        idl = json.loads(descriptor.idl_json)
        for typedef in idl.get('types') or []:
            if typedef.get('name') == name:
                return typedef
        for event in idl.get('events') or []:
            if event.get('name') == name:
                return {'name': name, 'type': {'kind': 'struct', 'fields': event.get('fields') or []}}
        return {'name': name}

    def _constructor(self, descriptor: ProgramDescriptor) -> str:
        module = self.new_module(f'Client for the {descriptor.name} program.')
        module.add(self.json_constant(module, 'IDL', descriptor.idl_json))
        module.add(Constant('PROGRAM_ID', f'Pubkey.from_string({descriptor.address!r})'))
        for constant in descriptor.constants:
            module.add(Constant(to_constant_case(constant.name), python_literal(constant.type, constant.value)))
        for event in descriptor.events:
            idl_text = json.dumps(self._event_idl(descriptor, event.name), separators=(',', ':'), sort_keys=True)
            module.add(self.json_constant(module, f'{to_constant_case(event.name)}_EVENT_IDL', idl_text))

        used_types = {to_pascal_case(t.name) for t in descriptor.types}
        if used_types:
            module.add_import('.defined_types', *sorted(used_types), group=LOCAL)
        if descriptor.accounts:
            module.add_import('.', 'accounts', group=LOCAL)
        if descriptor.events:
            module.add_import('.', 'events', group=LOCAL)

        module.add(Banner('CODEC'), self._codec_class(descriptor))
        if descriptor.events:
            module.add(Banner('TRIGGERS'))
            for event in descriptor.events:
                module.add(self._trigger_class(event.name))
        module.add(Banner('PROGRAM'), self._program_class(descriptor))
        self._finish(module)
        return module.render()

    def _codec_class(self, descriptor: ProgramDescriptor) -> ClassDecl:
        self._ctx.reset_for_class()
        members: List = []
        for typedef in descriptor.types:
            cls = to_pascal_case(typedef.name)
            name = self._claim_name(typedef.name, f'encode_{to_snake_case(typedef.name)}_struct', {},
                                    self._ctx.current_members)
            members.append(Function(name, ['self', f'value: {cls}'], ['return value.marshal()'], returns='bytes'))
        discriminated = (('accounts', 'account', descriptor.accounts), ('events', 'event', descriptor.events))
        for module_name, kind, items in discriminated:
            for item in items:
                name = self._claim_name(item.name, f'decode_{to_snake_case(item.name)}', {}, self._ctx.current_members)
                parse = self._parsers[(kind, item.name)]
                members.append(Function(name, ['self', 'data: bytes'], [f'return {module_name}.{parse}(data)'],
                                        returns=to_pascal_case(item.name)))
        return ClassDecl('Codec', members=members, docstring=(
            f'Borsh encoders for {descriptor.name} types and decoders for its accounts and events.'
        ))

    def _trigger_class(self, event_name: str) -> ClassDecl:
        cls = to_pascal_case(event_name)
        parse = self._parsers[('event', event_name)]
        return ClassDecl(f'{cls}Trigger', bases=['solana.LogTrigger'],
                         docstring=f'Log trigger delivering decoded {event_name} events.', members=[
            Function('adapt', ['self', 'log: solana.Log'], [
                f'return solana.DecodedLog(data=events.{parse}(log.data), raw_log=log)',
            ], returns=f'solana.DecodedLog[{cls}]'),
        ])

    def _program_class(self, descriptor: ProgramDescriptor) -> ClassDecl:
        self._ctx.reset_for_class()
        members: List = [
            Constant('program_id', 'PROGRAM_ID'),
            Function('__init__', ['self', 'client: solana.Client'], [
                'super().__init__(client)',
                'self.codec = Codec()',
            ]),
        ]
        for account in descriptor.accounts:
            snake = to_snake_case(account.name)
            name = self._claim_name(account.name, f'read_account_{snake}', {}, self._ctx.current_members)
            members.append(Function(name, [
                'self', 'runtime: Runtime', 'address: Pubkey', 'block_number: Optional[int] = None',
            ], [
                f'return self._read_account(runtime, address, block_number).then(self.codec.decode_{snake})',
            ], returns=f'Promise[{to_pascal_case(account.name)}]',
                docstring=f'Fetch and decode a {account.name} account; block_number is the minimum context slot.'))
        for typedef in descriptor.types:
            snake = to_snake_case(typedef.name)
            name = self._claim_name(typedef.name, f'write_report_from_{snake}', {}, self._ctx.current_members)
            members.append(Function(name, [
                'self',
                'runtime: Runtime',
                f'value: {to_pascal_case(typedef.name)}',
                'remaining_accounts: Optional[List[Pubkey]] = None',
            ], [
                f'return self._write_encoded(runtime, lambda: self.codec.encode_{snake}_struct(value), '
                'remaining_accounts)',
            ], returns='Promise[solana.WriteReportReply]', docstring=(
                'Borsh-encode value, wrap it in a ForwarderReport, have it signed by\n'
                'consensus and write it to the program.'
            )))
        for event in descriptor.events:
            snake = to_snake_case(event.name)
            cls = to_pascal_case(event.name)
            constant = to_constant_case(event.name)
            name = self._claim_name(event.name, f'log_trigger_{snake}', {}, self._ctx.current_members)
            members.append(Function(name, [
                'self',
                'chain_selector: int',
                'sub_key_path_and_value: Optional[List[solana.SubKeyPathAndValue]] = None',
            ], [
                f'paths, filters = solana.validate_sub_key_paths({cls}, sub_key_path_and_value)',
                'request = solana.FilterLogTriggerRequest(',
                '    address=self.program_id,',
                f'    event_name={event.name!r},',
                f'    event_sig=events.{constant}_DISCRIMINATOR,',
                f'    event_idl={constant}_EVENT_IDL,',
                '    sub_key_paths=paths,',
                '    sub_key_filters=filters,',
                ')',
                f'return {cls}Trigger(solana.capability_id_for(chain_selector), request)',
            ], returns=f'{cls}Trigger', docstring=(
                f'Trigger on {event.name} events, optionally filtered on up to 4 field values.\n\n'
                'Raises:\n'
                '    solana.SubKeyPathError: If a filter path or value does not match the event fields'
            )))
        return ClassDecl(self.program_class, bases=['solana.Program'], members=members,
                         docstring=f'Client for the {descriptor.name} program at {descriptor.address}.')

    # =========================================================================
    # PACKAGE
    # =========================================================================

    def _package_init(self, descriptor: ProgramDescriptor) -> str:
        module = self.new_module(f'{descriptor.name} program bindings.')
        module.add_import('.', 'accounts', 'errors', 'events', 'instructions', group=LOCAL)
        constructor_names = ['IDL', 'PROGRAM_ID', 'Codec', self.program_class]
        constructor_names.extend(f'{to_pascal_case(e.name)}Trigger' for e in descriptor.events)
        module.add_import('.constructor', *constructor_names, group=LOCAL)
        type_names = [to_pascal_case(t.name) for t in descriptor.types]
        for typedef in descriptor.types:
            type_names.extend(self._variant_class(typedef, v) for v in typedef.variants)
        if type_names:
            module.add_import('.defined_types', *type_names, group=LOCAL)
        exported = sorted([*constructor_names, *type_names, 'accounts', 'errors', 'events', 'instructions'])
        module.add(Constant('__all__', '\n'.join(wrap('', [repr(n) for n in exported], '', '[', ']', force=True))))
        return module.render()
