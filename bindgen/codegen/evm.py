"""
EVM contract binding generation.

This module turns a ContractDescriptor into the source of <Contract>.py:
ABI and selector constants, one dataclass per composite type, method
input/output records, custom errors, event records and triggers, the
<Contract>Codec encoder/decoder and the <Contract> client class.

Generated names for one contract:
- DataStorage, DataStorageCodec, DataStorageMock
- UserData (struct from internalType), GetUserDataInput, GetReservesOutput
- DataNotFound (custom error)
- DataStoredTopics, DataStoredData, DataStoredDecoded, DataStoredLog, DataStoredTrigger
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from ..abi import ContractDescriptor, Error, Event, Method, Tuple, TypeExpr, is_hashed_topic_type
from ..naming import to_constant_case, to_snake_case
from ..type_system import evm_from_abi_expr, evm_to_abi_expr, evm_topic_converter, evm_type_to_python
from .base import EVM_RESERVED_FIELDS, BaseGenerator, wrap
from .emitter import LOCAL, THIRD_PARTY, Banner, ClassDecl, Constant, Field, Function


# Exception attributes a custom-error field must not shadow
ERROR_RESERVED_FIELDS: Dict[str, str] = {
    'args': 'args_',
    'with_traceback': 'with_traceback_',
    'add_note': 'add_note_',
}

EVM_USAGE_IMPORTS = [
    (r'(?<![.\w])encode\(', 'eth_abi', 'encode', THIRD_PARTY),
    (r'(?<![.\w])decode\(', 'eth_abi', 'decode', THIRD_PARTY),
    (r'(?<![.\w])to_checksum_address\(', 'eth_utils', 'to_checksum_address', THIRD_PARTY),
    (r'(?<![.\w])Promise\b', 'bindgen.runtime', 'Promise', LOCAL),
    (r'(?<![.\w])Runtime\b', 'bindgen.runtime', 'Runtime', LOCAL),
    (r'(?<![.\w])evm\.', 'bindgen.runtime', 'evm', LOCAL),
    (r'(?<![.\w])topics\.', 'bindgen.runtime', 'topics', LOCAL),
]


@dataclass
class ContractNames:
    """Every generated name of one contract, filled in as generation proceeds."""
    contract: str
    codec: str
    mock: str
    abi_constant: str
    struct_fields: Dict[str, List[str]] = field(default_factory=dict)
    inputs: Dict[str, List[str]] = field(default_factory=dict)
    outputs: Dict[str, List[str]] = field(default_factory=dict)
    event_fields: Dict[str, List[str]] = field(default_factory=dict)
    error_fields: Dict[str, List[str]] = field(default_factory=dict)
    input_classes: Dict[str, str] = field(default_factory=dict)
    output_classes: Dict[str, str] = field(default_factory=dict)
    error_classes: Dict[str, str] = field(default_factory=dict)
    event_classes: Dict[str, str] = field(default_factory=dict)
    read_methods: Dict[str, str] = field(default_factory=dict)

    def exported(self, registry) -> List[str]:
        """Public names re-exported by the package __init__."""
        names = [name for name, _ in registry.composites]
        names.extend(self.input_classes.values())
        names.extend(self.output_classes.values())
        names.extend(self.error_classes.values())
        for base in self.event_classes.values():
            names.extend(f'{base}{suffix}' for suffix in ('Topics', 'Data', 'Decoded', 'Log', 'Trigger'))
        names.extend([self.codec, self.contract])
        return names


def selector_constant(method: Method) -> str:
    return f'{to_constant_case(method.name)}_METHOD_SELECTOR'


def topic_constant(event: Event) -> str:
    return f'{to_constant_case(event.name)}_TOPIC'


def error_constant(error: Error) -> str:
    return f'{to_constant_case(error.name)}_ERROR_SELECTOR'


def abi_types(params) -> str:
    """['address', 'uint256'] source for a parameter list."""
    return repr([p.abi_type for p in params])


class EvmGenerator(BaseGenerator):
    """
    Generates the contract module of one EVM contract.

    Usage:
        generator = EvmGenerator(ctx)
        source = generator.generate(descriptor)
        names = generator.names  # used by EvmMockGenerator
    """

    def __init__(self, ctx):
        super().__init__(ctx)
        self.names: Optional[ContractNames] = None
        self._descriptor: Optional[ContractDescriptor] = None

    @property
    def registry(self):
        return self._ctx.registry

    # =========================================================================
    # ENTRY POINT
    # =========================================================================

    def generate(self, descriptor: ContractDescriptor) -> str:
        """
        Generate <Contract>.py for a descriptor.

        Args:
            descriptor: The parsed contract

        Returns:
            The module source
        """
        self._descriptor = descriptor
        self._prepare(descriptor)
        names = self.names

        module = self.new_module(f'Bindings for the {descriptor.name} contract.')
        module.add(self.json_constant(module, names.abi_constant, descriptor.abi_json))
        for method in descriptor.methods:
            module.add(Constant(selector_constant(method), self.bytes_literal(method.selector)))
        for event in descriptor.events:
            module.add(Constant(topic_constant(event), self.bytes_literal(event.topic0)))
        for error in descriptor.errors:
            module.add(Constant(error_constant(error), self.bytes_literal(error.selector)))

        if self.registry.composites:
            module.add(Banner('STRUCTS'))
            for name, expr in self.registry.composites:
                module.add(self._struct_class(name, expr))

        records = [self._input_class(m) for m in descriptor.methods if m.name in names.input_classes]
        records += [self._output_class(m) for m in descriptor.methods if m.name in names.output_classes]
        if records:
            module.add(Banner('METHOD RECORDS'), *records)

        if descriptor.errors:
            module.add(Banner('ERRORS'), *[self._error_class(e) for e in descriptor.errors])

        if descriptor.events:
            module.add(Banner('EVENTS'))
            for event in descriptor.events:
                module.add(*self._event_classes(event))

        module.add(Banner('CODEC'), self._codec_class(descriptor))
        module.add(Banner('CONTRACT'), self._contract_class(descriptor))

        self.resolve_imports(module, EVM_USAGE_IMPORTS)
        return module.render()

    def generate_package_init(self, descriptor: ContractDescriptor) -> str:
        """__init__.py re-exporting the contract module and its mock."""
        names = self.names
        exported = names.exported(self.registry)
        module = self.new_module(f'{descriptor.name} contract bindings.')
        module.add_import(f'.{descriptor.name}', names.abi_constant, *exported, group=LOCAL)
        module.add_import(f'.{descriptor.name}_mock', names.mock, group=LOCAL)
        all_names = sorted([names.abi_constant, names.mock, *exported])
        module.add(Constant('__all__', '\n'.join(wrap('', [repr(n) for n in all_names], '', '[', ']', force=True))))
        return module.render()

    # =========================================================================
    # NAMES
    # =========================================================================

    def _prepare(self, descriptor: ContractDescriptor) -> None:
        registry = self.registry
        registry.discover_contract(descriptor)

        contract = self.class_name(descriptor.name)
        names = ContractNames(
            contract=contract,
            codec=f'{contract}Codec',
            mock=f'{contract}Mock',
            abi_constant=f'{to_constant_case(descriptor.name)}_ABI',
        )
        registry.claim(names.contract, 'contract class')
        registry.claim(names.codec, 'codec class')
        registry.claim(names.mock, 'mock class')
        registry.claim(names.abi_constant, 'ABI constant')
        for method in descriptor.methods:
            registry.claim(selector_constant(method), f'selector of {method.signature}')
        for event in descriptor.events:
            registry.claim(topic_constant(event), f'topic of {event.signature}')
        for error in descriptor.errors:
            registry.claim(error_constant(error), f'selector of error {error.signature}')

        for name, expr in registry.composites:
            taken: Set[str] = set()
            names.struct_fields[name] = [self.field_name(f.name, taken, EVM_RESERVED_FIELDS) for f in expr.fields]

        for method in descriptor.methods:
            base = self.class_name(method.name)
            if method.inputs:
                names.input_classes[method.name] = registry.claim(f'{base}Input', f'inputs of {method.abi_name}')
                names.inputs[method.name] = self._param_names(method.inputs)
            if len(method.outputs) > 1:
                names.output_classes[method.name] = registry.claim(f'{base}Output', f'outputs of {method.abi_name}')
                names.outputs[method.name] = self._param_names(method.outputs)

        for error in descriptor.errors:
            names.error_classes[error.name] = registry.claim(self.class_name(error.name), f'error {error.abi_name}')
            names.error_fields[error.name] = self._param_names(error.inputs, ERROR_RESERVED_FIELDS)

        for event in descriptor.events:
            base = self.class_name(event.name)
            for suffix in ('Topics', 'Data', 'Decoded', 'Log', 'Trigger'):
                registry.claim(f'{base}{suffix}', f'event {event.abi_name}')
            names.event_classes[event.name] = base
            names.event_fields[event.name] = self._param_names(event.inputs)

        self.names = names

    def _param_names(self, params, reserved: Optional[Dict[str, str]] = None) -> List[str]:
        taken: Set[str] = set()
        return [self.field_name(p.name, taken, reserved) for p in params]

    def _py_type(self, expr: TypeExpr) -> str:
        return evm_type_to_python(expr, self.registry)

    def _from_abi(self, expr: TypeExpr, value: str) -> str:
        return evm_from_abi_expr(expr, value, self.registry)

    # =========================================================================
    # RECORDS
    # =========================================================================

    def _struct_class(self, name: str, expr: Tuple) -> ClassDecl:
        field_names = self.names.struct_fields[name]
        members: List = [
            Field(f, self._py_type(tf.type)) for f, tf in zip(field_names, expr.fields)
        ]
        items = [evm_to_abi_expr(tf.type, f'self.{f}') for f, tf in zip(field_names, expr.fields)]
        if len(items) == 1:
            items[0] += ','
        members.append(Function(
            'to_abi', ['self'], wrap('return ', items, '', '(', ')'), returns='tuple',
            docstring='Values in the form eth-abi encodes.',
        ))
        kwargs = [f'{f}={self._from_abi(tf.type, f"value[{i}]")}' for i, (f, tf) in
                  enumerate(zip(field_names, expr.fields))]
        members.append(Function(
            'from_abi', ['cls', 'value'], wrap('return cls', kwargs, ''), returns=f"'{name}'",
            decorators=['classmethod'],
        ))
        return ClassDecl(name, members=members, decorators=['dataclass'], docstring=f'Solidity struct {expr.canonical}.')

    def _input_class(self, method: Method) -> ClassDecl:
        return self._record(self.names.input_classes[method.name], self.names.inputs[method.name], method.inputs,
                            f'Arguments of {method.signature}.')

    def _output_class(self, method: Method) -> ClassDecl:
        return self._record(self.names.output_classes[method.name], self.names.outputs[method.name], method.outputs,
                            f'Return values of {method.abi_name}.')

    def _record(self, name: str, field_names: List[str], params, docstring: str = '',
                bases: Optional[List[str]] = None, optional: bool = False) -> ClassDecl:
        members = []
        for f, p in zip(field_names, params):
            if optional:
                members.append(Field(f, f'Optional[{self._py_type(p.type)}]', 'None'))
            else:
                members.append(Field(f, self._py_type(p.type)))
        return ClassDecl(name, bases=bases or [], members=members, decorators=['dataclass'], docstring=docstring)

    def _error_class(self, error: Error) -> ClassDecl:
        return self._record(self.names.error_classes[error.name], self.names.error_fields[error.name], error.inputs,
                            f'Custom error {error.signature}.', bases=['evm.ContractError'])

    def _event_classes(self, event: Event) -> List[ClassDecl]:
        names = self.names
        base = names.event_classes[event.name]
        fields = names.event_fields[event.name]
        indexed = [(f, p) for f, p in zip(fields, event.inputs) if p.indexed]
        data = [(f, p) for f, p in zip(fields, event.inputs) if not p.indexed]

        topics_cls = self._record(f'{base}Topics', [f for f, _ in indexed], [p for _, p in indexed],
                                  f'Topic filter of {event.abi_name}; None matches any value.', optional=True)
        data_cls = self._record(f'{base}Data', [f for f, _ in data], [p for _, p in data],
                                f'Non-indexed fields of {event.abi_name}.')

        decoded_members = []
        for f, p in zip(fields, event.inputs):
            annotation = 'bytes' if p.indexed and is_hashed_topic_type(p.type) else self._py_type(p.type)
            decoded_members.append(Field(f, annotation))
        decoded_doc = f'A decoded {event.signature} event.'
        if any(p.indexed and is_hashed_topic_type(p.type) for p in event.inputs):
            decoded_doc += '\n\nIndexed dynamic fields hold the 32-byte keccak256 hash stored in the topic.'
        decoded_cls = ClassDecl(f'{base}Decoded', members=decoded_members, decorators=['dataclass'],
                                docstring=decoded_doc)

        log_cls = ClassDecl(f'{base}Log', decorators=['dataclass'], members=[
            Field('data', f'{base}Decoded'),
            Field('raw_log', 'evm.Log'),
        ])

        decode = f'decode_{to_snake_case(event.name)}'
        trigger_cls = ClassDecl(f'{base}Trigger', bases=['evm.LogTrigger'],
                                docstring=f'Log trigger delivering decoded {event.abi_name} events.', members=[
            Function('__init__', [
                'self', 'capability_id: str', 'request: evm.FilterLogTriggerRequest', f"codec: '{names.codec}'",
            ], [
                'super().__init__(capability_id, request)',
                'self.codec = codec',
            ]),
            Function('adapt', ['self', 'log: evm.Log'], [
                f'return {base}Log(data=self.codec.{decode}(log), raw_log=log)',
            ], returns=f'{base}Log'),
        ])
        return [topics_cls, data_cls, decoded_cls, log_cls, trigger_cls]

    # =========================================================================
    # CODEC
    # =========================================================================

    def _codec_class(self, descriptor: ContractDescriptor) -> ClassDecl:
        self._ctx.reset_for_class()
        members: List = []
        for method in descriptor.methods:
            members.extend(self._method_codec(method))
        for name, expr in self.registry.composites:
            members.extend(self._struct_codec(name, expr))
        for event in descriptor.events:
            members.extend(self._event_codec(event))
        for error in descriptor.errors:
            members.extend(self._error_codec(error))
        members.append(self._unpack_error(descriptor.errors))
        return ClassDecl(self.names.codec, members=members, docstring=(
            f'Encoders and decoders for {descriptor.name} calls, events and errors.\n\n'
            'Pure functions of their arguments; no chain access.'
        ))

    def _codec_member(self, raw_name: str, name: str) -> str:
        return self._claim_name(raw_name, name, {}, self._ctx.current_members)

    def _method_codec(self, method: Method) -> List[Function]:
        names = self.names
        snake = to_snake_case(method.name)
        selector = selector_constant(method)
        functions = []

        encode_name = self._codec_member(method.name, f'encode_{snake}_method_call')
        if method.inputs:
            fields = names.inputs[method.name]
            values = [evm_to_abi_expr(p.type, f'args.{f}') for f, p in zip(fields, method.inputs)]
            functions.append(Function(encode_name, ['self', f'args: {names.input_classes[method.name]}'], [
                *wrap('values = ', values, '', '[', ']'),
                f'return {selector} + encode({abi_types(method.inputs)}, values)',
            ], returns='bytes', docstring=f'Calldata for {method.signature}: selector followed by the arguments.'))

            decode_name = self._codec_member(method.name, f'decode_{snake}_method_call')
            kwargs = [f'{f}={self._from_abi(p.type, f"values[{i}]")}' for i, (f, p) in
                      enumerate(zip(fields, method.inputs))]
            functions.append(Function(decode_name, ['self', 'data: bytes'], [
                f'if bytes(data[:{len(method.selector)}]) != {selector}:',
                f"    raise ValueError('data is not a {method.abi_name} call')",
                f'values = decode({abi_types(method.inputs)}, bytes(data[{len(method.selector)}:]))',
                *wrap(f'return {names.input_classes[method.name]}', kwargs, ''),
            ], returns=names.input_classes[method.name]))
        else:
            functions.append(Function(encode_name, ['self'], [f'return {selector}'], returns='bytes',
                                      docstring=f'Calldata for {method.signature}.'))

        if not method.outputs:
            return functions

        decode_name = self._codec_member(method.name, f'decode_{snake}_method_output')
        encode_out_name = self._codec_member(method.name, f'encode_{snake}_method_output')
        types = abi_types(method.outputs)
        if len(method.outputs) == 1:
            output = method.outputs[0]
            returns = self._py_type(output.type)
            functions.append(Function(decode_name, ['self', 'data: bytes'], [
                f'values = decode({types}, bytes(data))',
                f'return {self._from_abi(output.type, "values[0]")}',
            ], returns=returns))
            functions.append(Function(encode_out_name, ['self', f'value: {returns}'], [
                f'return encode({types}, [{evm_to_abi_expr(output.type, "value")}])',
            ], returns='bytes'))
        else:
            cls = names.output_classes[method.name]
            fields = names.outputs[method.name]
            kwargs = [f'{f}={self._from_abi(p.type, f"values[{i}]")}' for i, (f, p) in
                      enumerate(zip(fields, method.outputs))]
            functions.append(Function(decode_name, ['self', 'data: bytes'], [
                f'values = decode({types}, bytes(data))',
                *wrap(f'return {cls}', kwargs, ''),
            ], returns=cls))
            values = [evm_to_abi_expr(p.type, f'value.{f}') for f, p in zip(fields, method.outputs)]
            functions.append(Function(encode_out_name, ['self', f'value: {cls}'], [
                *wrap('values = ', values, '', '[', ']'),
                f'return encode({types}, values)',
            ], returns='bytes'))
        return functions

    def _struct_codec(self, name: str, expr: Tuple) -> List[Function]:
        snake = to_snake_case(name)
        encode_name = self._codec_member(name, f'encode_{snake}_struct')
        decode_name = self._codec_member(name, f'decode_{snake}_struct')
        return [
            Function(encode_name, ['self', f'value: {name}'], [
                f'return encode([{expr.canonical!r}], [value.to_abi()])',
            ], returns='bytes', docstring=f'ABI-encode a {name} as a single tuple (report payload form).'),
            Function(decode_name, ['self', 'data: bytes'], [
                f'return {name}.from_abi(decode([{expr.canonical!r}], bytes(data))[0])',
            ], returns=name),
        ]

    def _event_codec(self, event: Event) -> List[Function]:
        names = self.names
        base = names.event_classes[event.name]
        snake = to_snake_case(event.name)
        topic = topic_constant(event)
        fields = names.event_fields[event.name]
        functions = []

        hash_name = self._codec_member(event.name, f'{snake}_log_hash')
        functions.append(Function(hash_name, ['self'], [f'return {topic}'], returns='bytes',
                                  docstring=f'keccak256 of {event.signature}.'))

        topics_name = self._codec_member(event.name, f'encode_{snake}_topics')
        slots = []
        for f, p in zip(fields, event.inputs):
            if p.indexed:
                slots.append(f'({p.abi_type!r}, [f.{f} for f in filters], {evm_topic_converter(p.type)})')
        topic0 = 'None' if event.anonymous else topic
        body = ['filters = filters or []']
        if slots:
            body.extend(wrap('slots = ', slots, '', '[', ']', force=True))
            body.append(f'return topics.encode_topics({topic0}, slots)')
        else:
            body.append(f'return topics.encode_topics({topic0}, [])')
        slot_doc = 'topic0' if not event.anonymous else 'no topic0 (anonymous event)'
        functions.append(Function(
            topics_name, ['self', f'filters: Optional[List[{base}Topics]] = None'], body,
            returns='List[List[bytes]]',
            docstring=(
                f'Topic filter for {event.abi_name}: {slot_doc}, then one slot per indexed field.\n\n'
                'Each slot lists the values set across filters (OR); unset fields are left out.'
            ),
        ))

        data_name = self._codec_member(event.name, f'decode_{snake}_data')
        data = [(f, p) for f, p in zip(fields, event.inputs) if not p.indexed]
        if data:
            kwargs = [f'{f}={self._from_abi(p.type, f"values[{i}]")}' for i, (f, p) in enumerate(data)]
            body = [
                f'values = decode({abi_types([p for _, p in data])}, bytes(data))',
                *wrap(f'return {base}Data', kwargs, ''),
            ]
        else:
            body = [f'return {base}Data()']
        functions.append(Function(data_name, ['self', 'data: bytes'], body, returns=f'{base}Data'))

        decode_name = self._codec_member(event.name, f'decode_{snake}')
        offset = 0 if event.anonymous else 1
        expected = offset + len(event.indexed_inputs)
        body = []
        if not event.anonymous:
            body.extend([
                f'if not log.topics or bytes(log.topics[0]) != {topic}:',
                f"    raise evm.EventSignatureMismatch('log is not a {event.abi_name} event')",
            ])
        body.extend([
            f'if len(log.topics) != {expected}:',
            f"    raise ValueError(f'{event.abi_name} expects {expected} topics, got {{len(log.topics)}}')",
        ])
        if data:
            body.append(f'data = self.{data_name}(log.data)')
        kwargs = []
        slot = offset
        for f, p in zip(fields, event.inputs):
            if p.indexed:
                raw = f'topics.decode_topic({p.abi_type!r}, log.topics[{slot}])'
                kwargs.append(f'{f}={raw if is_hashed_topic_type(p.type) else self._from_abi(p.type, raw)}')
                slot += 1
            else:
                kwargs.append(f'{f}=data.{f}')
        body.extend(wrap(f'return {base}Decoded', kwargs, ''))
        functions.append(Function(decode_name, ['self', 'log: evm.Log'], body, returns=f'{base}Decoded'))
        return functions

    def _error_codec(self, error: Error) -> List[Function]:
        names = self.names
        cls = names.error_classes[error.name]
        fields = names.error_fields[error.name]
        snake = to_snake_case(error.name)
        selector = error_constant(error)

        encode_name = self._codec_member(error.name, f'encode_{snake}_error')
        decode_name = self._codec_member(error.name, f'decode_{snake}_error')
        if error.inputs:
            values = [evm_to_abi_expr(p.type, f'value.{f}') for f, p in zip(fields, error.inputs)]
            encode_body = [
                *wrap('values = ', values, '', '[', ']'),
                f'return {selector} + encode({abi_types(error.inputs)}, values)',
            ]
            kwargs = [f'{f}={self._from_abi(p.type, f"values[{i}]")}' for i, (f, p) in
                      enumerate(zip(fields, error.inputs))]
            decode_tail = [
                f'values = decode({abi_types(error.inputs)}, bytes(data[{len(error.selector)}:]))',
                *wrap(f'return {cls}', kwargs, ''),
            ]
        else:
            encode_body = [f'return {selector}']
            decode_tail = [f'return {cls}()']
        return [
            Function(encode_name, ['self', f'value: {cls}'], encode_body, returns='bytes',
                     docstring=f'Revert data for {error.signature}.'),
            Function(decode_name, ['self', 'data: bytes'], [
                f'if bytes(data[:{len(error.selector)}]) != {selector}:',
                f"    raise ValueError('data is not a {error.abi_name} error')",
                *decode_tail,
            ], returns=cls),
        ]

    def _unpack_error(self, errors) -> Function:
        name = self._codec_member('unpack_error', 'unpack_error')
        body = ['selector = bytes(data[:4])']
        for error in errors:
            body.extend([
                f'if selector == {error_constant(error)}:',
                f'    return self.decode_{to_snake_case(error.name)}_error(data)',
            ])
        body.append('raise evm.UnknownErrorSelector(data)')
        return Function(name, ['self', 'data: bytes'], body, returns='evm.ContractError', docstring=(
            'Decode revert data into the custom error its selector names.\n\n'
            'Raises:\n'
            '    evm.UnknownErrorSelector: If no error of this contract has the selector'
        ))

    # =========================================================================
    # CONTRACT
    # =========================================================================

    def _contract_class(self, descriptor: ContractDescriptor) -> ClassDecl:
        names = self.names
        self._ctx.reset_for_class()
        members: List = [Function('__init__', [
            'self', 'client: evm.Client', 'address: str', 'options: Optional[evm.ContractOptions] = None',
        ], [
            'super().__init__(client, address, options)',
            f'self.codec = {names.codec}()',
        ])]

        for method in descriptor.methods:
            if method.is_read:
                members.append(self._read_method(method))
        for name, _ in self.registry.composites:
            members.append(self._write_report_method(name))
        for event in descriptor.events:
            members.extend(self._event_methods(event))

        return ClassDecl(names.contract, bases=['evm.Contract'], members=members, docstring=(
            f'Client for a deployed {descriptor.name} contract.\n\n'
            'Reads are evaluated against the latest finalized block unless\n'
            'block_number is given.'
        ))

    def _read_method(self, method: Method) -> Function:
        names = self.names
        name = self.member(method.name)
        names.read_methods[method.name] = name
        snake = to_snake_case(method.name)

        params = ['self', 'runtime: Runtime']
        if method.inputs:
            params.append(f'args: {names.input_classes[method.name]}')
            encode = f'lambda: self.codec.encode_{snake}_method_call(args)'
        else:
            encode = f'self.codec.encode_{snake}_method_call'
        params.append('block_number: Optional[int] = None')

        if not method.outputs:
            returns, decode = 'None', 'lambda _: None'
        elif len(method.outputs) == 1:
            returns, decode = self._py_type(method.outputs[0].type), f'self.codec.decode_{snake}_method_output'
        else:
            returns, decode = names.output_classes[method.name], f'self.codec.decode_{snake}_method_output'

        return Function(name, params, [
            'return (',
            f'    Promise.attempt({encode})',
            '    .then_promise(lambda data: self._call_contract(runtime, data, block_number))',
            f'    .then({decode})',
            ')',
        ], returns=f'Promise[{returns}]', docstring=f'Call {method.signature} ({method.mutability}).')

    def _write_report_method(self, struct_name: str) -> Function:
        snake = to_snake_case(struct_name)
        name = self._claim_name(struct_name, f'write_report_from_{snake}', {}, self._ctx.current_members)
        return Function(name, [
            'self', 'runtime: Runtime', f'value: {struct_name}', 'gas_config: Optional[evm.GasConfig] = None',
        ], [
            f'return self._write_encoded(runtime, lambda: self.codec.encode_{snake}_struct(value), gas_config)',
        ], returns='Promise[evm.WriteReportReply]',
            docstring='ABI-encode value, have it signed by consensus and write the report to this contract.')

    def _event_methods(self, event: Event) -> List[Function]:
        base = self.names.event_classes[event.name]
        snake = to_snake_case(event.name)
        trigger_name = self._claim_name(event.name, f'log_trigger_{snake}_log', {}, self._ctx.current_members)
        filter_name = self._claim_name(event.name, f'filter_logs_{snake}', {}, self._ctx.current_members)
        return [
            Function(trigger_name, [
                'self',
                'chain_selector: int',
                'confidence: evm.ConfidenceLevel = evm.ConfidenceLevel.FINALIZED',
                f'filters: Optional[List[{base}Topics]] = None',
            ], [
                'request = evm.FilterLogTriggerRequest(',
                '    addresses=[self.address],',
                f'    topics=self.codec.encode_{snake}_topics(filters),',
                '    confidence=confidence,',
                ')',
                f'return {base}Trigger(evm.capability_id_for(chain_selector), request, self.codec)',
            ], returns=f'{base}Trigger'),
            Function(filter_name, ['self', 'runtime: Runtime', 'options: Optional[evm.FilterOptions] = None'], [
                f'return self._filter_logs(runtime, self.codec.encode_{snake}_topics(), options)',
            ], returns='Promise[evm.FilterLogsReply]',
                docstring=f'Fetch {event.abi_name} logs of this contract; decode them with codec.decode_{snake}().'),
        ]
