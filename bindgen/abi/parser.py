"""
Ethereum ABI JSON parser.

Builds an immutable ContractDescriptor from the JSON array emitted by solc
(or forge/hardhat artifacts trimmed to their 'abi' member).
"""

import json
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from eth_utils import keccak

from ..errors import BindgenError, MalformedDescriptor
from ..naming import check_field_name, check_member_name
from .model import ContractDescriptor, Error, Event, Method, Param
from .types import TupleField, parse_type

if TYPE_CHECKING:
    from ..codegen.diagnostics import BindgenDiagnostics


IGNORED_ITEM_TYPES = ('constructor', 'fallback', 'receive')
MUTABILITIES = ('view', 'pure', 'nonpayable', 'payable')

# Non-anonymous events spend topic0 on the signature hash
EVENT_INDEXED_FIELDS = 3
ANONYMOUS_EVENT_INDEXED_FIELDS = 4


def canonical_signature(name: str, params: List[Param]) -> str:
    """name(t1,t2,...) with tuples flattened to (t1,t2)."""
    return f'{name}(' + ','.join(p.abi_type for p in params) + ')'


def selector_of(signature: str) -> bytes:
    """First 4 bytes of keccak256(signature)."""
    return keccak(text=signature)[:4]


def topic_of(signature: str) -> bytes:
    """keccak256(signature)"""
    return keccak(text=signature)


def _resolve_name_conflict(name: str, taken: Dict[str, Any]) -> str:
    """Append 0, 1, ... to name until it is not taken."""
    if name not in taken:
        return name
    index = 0
    while f'{name}{index}' in taken:
        index += 1
    return f'{name}{index}'


class AbiParser:
    """
    Parser for a single contract ABI.

    Usage:
        parser = AbiParser('IERC20', diagnostics)
        descriptor = parser.parse_file('contracts/evm/src/abi/IERC20.abi')
    """

    def __init__(
        self,
        contract_name: str,
        diagnostics: Optional['BindgenDiagnostics'] = None,
        file_path: str = '',
    ):
        self.contract_name = contract_name
        self.diagnostics = diagnostics
        self.file_path = file_path

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    def parse_file(self, path: str) -> ContractDescriptor:
        """Read and parse an ABI file."""
        self.file_path = self.file_path or path
        try:
            with open(path, 'r', encoding='utf-8') as f:
                source = f.read()
        except UnicodeDecodeError as e:
            raise MalformedDescriptor(f'ABI file is not valid UTF-8: {e}', element=self.contract_name) from e
        return self.parse(source)

    def parse(self, source: str) -> ContractDescriptor:
        """
        Parse ABI JSON text.

        Raises:
            MalformedDescriptor: On invalid JSON, unknown item kinds or types,
                duplicate selectors or too many indexed event fields
            IllegalIdentifier: On names that cannot become identifiers
        """
        try:
            items = json.loads(source)
        except json.JSONDecodeError as e:
            raise MalformedDescriptor(f'invalid ABI JSON: {e}', element=self.contract_name) from e

        # Hardhat/forge artifacts wrap the array in an object
        if isinstance(items, dict) and isinstance(items.get('abi'), list):
            items = items['abi']
        if not isinstance(items, list):
            raise MalformedDescriptor('ABI must be a JSON array', element=self.contract_name)

        methods: Dict[str, Method] = {}
        events: Dict[str, Event] = {}
        errors: Dict[str, Error] = {}
        ignored: List[str] = []

        for index, item in enumerate(items):
            if not isinstance(item, dict):
                raise MalformedDescriptor(
                    'ABI item must be an object', element=f'{self.contract_name}[{index}]'
                )
            kind = item.get('type', 'function')
            if kind in IGNORED_ITEM_TYPES:
                ignored.append(kind)
                if self.diagnostics:
                    self.diagnostics.warn_item_ignored(kind, self.file_path)
                continue
            if kind == 'function':
                method = self._parse_method(item, methods)
                methods[method.name] = method
            elif kind == 'event':
                event = self._parse_event(item, events)
                events[event.name] = event
            elif kind == 'error':
                error = self._parse_error(item, errors)
                errors[error.name] = error
            else:
                raise MalformedDescriptor(
                    f"unknown ABI item type '{kind}'", element=f'{self.contract_name}[{index}]'
                )

        self._check_unique_selectors(methods.values(), 'function')
        self._check_unique_selectors(errors.values(), 'error')

        return ContractDescriptor(
            name=self.contract_name,
            methods=tuple(methods.values()),
            events=tuple(events.values()),
            errors=tuple(errors.values()),
            abi_json=json.dumps(items, separators=(',', ':'), sort_keys=True),
            source_path=self.file_path or None,
            ignored_items=tuple(ignored),
        )

    # =========================================================================
    # ITEMS
    # =========================================================================

    def _item_name(self, item: Dict[str, Any], kind: str) -> str:
        name = item.get('name')
        if not isinstance(name, str) or not name:
            raise MalformedDescriptor(f'{kind} without a name', element=self.contract_name)
        check_member_name(name, kind, f'{self.contract_name}.{name}')
        return name

    def _unique_name(self, abi_name: str, taken: Dict[str, Any]) -> str:
        name = _resolve_name_conflict(abi_name, taken)
        if name != abi_name and self.diagnostics:
            self.diagnostics.warn_overload_renamed(abi_name, name, self.file_path)
        return name

    def _parse_method(self, item: Dict[str, Any], taken: Dict[str, Method]) -> Method:
        abi_name = self._item_name(item, 'function')
        where = f'{self.contract_name}.{abi_name}'
        inputs = self._parse_params(item.get('inputs', []), f'{where}.inputs', 'arg')
        outputs = self._parse_params(item.get('outputs', []), f'{where}.outputs', 'output')
        signature = canonical_signature(abi_name, inputs)
        return Method(
            name=self._unique_name(abi_name, taken),
            abi_name=abi_name,
            signature=signature,
            selector=selector_of(signature),
            mutability=self._mutability(item, where),
            inputs=tuple(inputs),
            outputs=tuple(outputs),
        )

    def _parse_event(self, item: Dict[str, Any], taken: Dict[str, Event]) -> Event:
        abi_name = self._item_name(item, 'event')
        where = f'{self.contract_name}.{abi_name}'
        inputs = self._parse_params(item.get('inputs', []), f'{where}.inputs', 'arg', allow_indexed=True)
        anonymous = bool(item.get('anonymous', False))

        limit = ANONYMOUS_EVENT_INDEXED_FIELDS if anonymous else EVENT_INDEXED_FIELDS
        indexed = sum(1 for p in inputs if p.indexed)
        if indexed > limit:
            raise MalformedDescriptor(
                f'event has {indexed} indexed fields, at most {limit} allowed', element=where
            )

        signature = canonical_signature(abi_name, inputs)
        return Event(
            name=self._unique_name(abi_name, taken),
            abi_name=abi_name,
            signature=signature,
            topic0=topic_of(signature),
            inputs=tuple(inputs),
            anonymous=anonymous,
        )

    def _parse_error(self, item: Dict[str, Any], taken: Dict[str, Error]) -> Error:
        abi_name = self._item_name(item, 'error')
        where = f'{self.contract_name}.{abi_name}'
        inputs = self._parse_params(item.get('inputs', []), f'{where}.inputs', 'arg')
        signature = canonical_signature(abi_name, inputs)
        return Error(
            name=self._unique_name(abi_name, taken),
            abi_name=abi_name,
            signature=signature,
            selector=selector_of(signature),
            inputs=tuple(inputs),
        )

    def _mutability(self, item: Dict[str, Any], where: str) -> str:
        mutability = item.get('stateMutability')
        if mutability is None:
            # Pre-0.4.16 ABIs
            if item.get('constant'):
                return 'view'
            if item.get('payable'):
                return 'payable'
            return 'nonpayable'
        if mutability not in MUTABILITIES:
            raise MalformedDescriptor(f"unknown stateMutability '{mutability}'", element=where)
        return mutability

    # =========================================================================
    # PARAMETERS
    # =========================================================================

    def _parse_params(
        self,
        raw_params: Any,
        path: str,
        positional_prefix: str,
        allow_indexed: bool = False,
    ) -> List[Param]:
        if not isinstance(raw_params, list):
            raise MalformedDescriptor('parameter list must be an array', element=path)

        params: List[Param] = []
        for i, raw in enumerate(raw_params):
            param_path = f'{path}[{i}]'
            if not isinstance(raw, dict):
                raise MalformedDescriptor('parameter must be an object', element=param_path)
            name = raw.get('name') or ''
            if not isinstance(name, str):
                raise MalformedDescriptor('parameter name must be a string', element=param_path)
            positional = False
            if name:
                check_field_name(name, param_path)
            else:
                # A single unnamed output keeps the element type as return value
                name = f'{positional_prefix}{i}'
                positional = True
                if self.diagnostics and not (positional_prefix == 'output' and len(raw_params) == 1):
                    self.diagnostics.warn_unnamed_parameter(param_path, name, self.file_path)
            params.append(Param(
                name=name,
                type=self._parse_param_type(raw, param_path),
                indexed=bool(raw.get('indexed', False)) if allow_indexed else False,
                positional=positional,
            ))

        seen = set()
        for param in params:
            if param.name in seen:
                raise MalformedDescriptor(f"duplicate parameter name '{param.name}'", element=path)
            seen.add(param.name)
        return params

    def _parse_param_type(self, raw: Dict[str, Any], path: str):
        return parse_type(
            raw.get('type'),
            raw.get('components'),
            raw.get('internalType'),
            path,
            field_parser=self._parse_component,
        )

    def _parse_component(self, component: Dict[str, Any], index: int, path: str) -> TupleField:
        if not isinstance(component, dict):
            raise MalformedDescriptor('component must be an object', element=path)
        name = component.get('name') or ''
        if not isinstance(name, str):
            raise MalformedDescriptor('component name must be a string', element=path)
        if name:
            check_field_name(name, path)
        else:
            name = f'field{index}'
            if self.diagnostics:
                self.diagnostics.warn_unnamed_parameter(path, name, self.file_path)
        return TupleField(name=name, type=self._parse_param_type(component, path))

    def _check_unique_selectors(self, items, kind: str) -> None:
        seen: Dict[bytes, str] = {}
        for item in items:
            if item.selector in seen:
                raise MalformedDescriptor(
                    f'duplicate {kind} selector 0x{item.selector.hex()} '
                    f'({seen[item.selector]} and {item.signature})',
                    element=self.contract_name,
                )
            seen[item.selector] = item.signature


def parse_abi_file(
    path: str,
    contract_name: str,
    diagnostics: Optional['BindgenDiagnostics'] = None,
) -> ContractDescriptor:
    """Parse an ABI file, prefixing failures with the parse stage."""
    try:
        return AbiParser(contract_name, diagnostics, path).parse_file(path)
    except BindgenError as e:
        raise e.with_context(stage='parse') from e
