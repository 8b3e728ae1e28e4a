"""
Mock generation for EVM contract bindings.

<Contract>_mock.py holds <Contract>Mock: an in-memory stand-in for a
deployed contract that answers call_contract requests routed through
runtime.testing.EvmClientCapabilityMock. Each read method is an optional
callable attribute; calls are dispatched on the 4-byte selector.
"""

import re
from typing import List

from ..abi import ContractDescriptor, Method
from ..naming import to_snake_case
from ..type_system import evm_type_to_python
from .base import BaseGenerator
from .emitter import LOCAL, ClassDecl, Function
from .evm import ContractNames, selector_constant


class EvmMockGenerator(BaseGenerator):
    """
    Generates <Contract>_mock.py.

    Must run after EvmGenerator.generate() for the same contract: the mock
    reuses the names the contract module was generated with.
    """

    def generate(self, descriptor: ContractDescriptor, names: ContractNames) -> str:
        module = self.new_module(f'In-memory mock of the {descriptor.name} contract for tests.')
        reads = [m for m in descriptor.methods if m.is_read]
        generated = {name for name, _ in self._ctx.registry.composites}
        generated.update(names.input_classes.values())
        generated.update(names.output_classes.values())

        init_body = [
            'self.address = address',
            f'self._codec = {names.codec}()',
        ]
        dispatch_body = ['selector = bytes(data[:4])']
        used = {names.codec}
        for method in reads:
            callable_type = self._callable_type(method, names)
            used.add(selector_constant(method))
            used.update(n for n in re.findall(r'\w+', callable_type) if n in generated)
            init_body.append(f'self.{names.read_methods[method.name]}: {callable_type} = None')
            dispatch_body.extend(self._dispatch_branch(method, names))
        init_body.append('client_mock.add_contract_mock(address, self._dispatch)')
        dispatch_body.append("raise ValueError(f'unknown selector 0x{selector.hex()}')")

        module.add_import(f'.{descriptor.name}', *sorted(used), group=LOCAL)
        module.add_import('bindgen.runtime.testing', 'EvmClientCapabilityMock', group=LOCAL)
        module.add(ClassDecl(names.mock, docstring=(
            f'Mock {descriptor.name} deployed at address.\n\n'
            'Assign a callable to a read method attribute to answer calls to it;\n'
            'calling an unassigned method raises NotImplementedError.'
        ), members=[
            Function('__init__', ['self', 'address: str', 'client_mock: EvmClientCapabilityMock'], init_body),
            Function('_dispatch', ['self', 'data: bytes'], dispatch_body, returns='bytes'),
        ]))
        self.resolve_imports(module, [])
        return module.render()

    def _callable_type(self, method: Method, names: ContractNames) -> str:
        args = f'[{names.input_classes[method.name]}]' if method.inputs else '[]'
        if not method.outputs:
            result = 'None'
        elif len(method.outputs) == 1:
            result = evm_type_to_python(method.outputs[0].type, self._ctx.registry)
        else:
            result = names.output_classes[method.name]
        return f'Optional[Callable[{args}, {result}]]'

    def _dispatch_branch(self, method: Method, names: ContractNames) -> List[str]:
        attr = names.read_methods[method.name]
        snake = to_snake_case(method.name)
        lines = [
            f'if selector == {selector_constant(method)}:',
            f'    if self.{attr} is None:',
            f"        raise NotImplementedError('{method.abi_name} method not mocked')",
        ]
        if method.inputs:
            lines.append(f'    result = self.{attr}(self._codec.decode_{snake}_method_call(data))')
        else:
            lines.append(f'    result = self.{attr}()')
        if method.outputs:
            lines.append(f'    return self._codec.encode_{snake}_method_output(result)')
        else:
            lines.append("    return b''")
        return lines
