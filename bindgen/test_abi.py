#!/usr/bin/env python3
"""
Unit tests for the ABI parser and the composite type registry.

Run with: python3 -m pytest bindgen/test_abi.py
   or: cd .. && python3 bindgen/test_abi.py
"""

import sys
import os
# Add parent directory to path for proper imports - MUST be before other imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import json
import tempfile
import unittest
from bindgen.abi import (
    AbiParser,
    DynArray,
    Elementary,
    FixedArray,
    Tuple,
    is_hashed_topic_type,
    parse_abi_file,
    parse_type,
)
from bindgen.codegen.diagnostics import BindgenDiagnostics
from bindgen.errors import IllegalIdentifier, MalformedDescriptor
from bindgen.type_system import CompositeRegistry


TESTDATA = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'testdata')


def function(name, inputs=(), outputs=(), mutability='view'):
    return {
        'type': 'function',
        'name': name,
        'inputs': list(inputs),
        'outputs': list(outputs),
        'stateMutability': mutability,
    }


def param(name, type_, **extra):
    return dict(name=name, type=type_, **extra)


def parse(items, name='Token', diagnostics=None):
    return AbiParser(name, diagnostics).parse(json.dumps(items))


class TestTypeParsing(unittest.TestCase):
    """Test ABI type strings to type expressions."""

    def test_elementary_types(self):
        """Test integer defaults and fixed bytes."""
        self.assertEqual(parse_type('uint'), Elementary('uint', 256))
        self.assertEqual(parse_type('int8'), Elementary('int', 8))
        self.assertEqual(parse_type('bytes32'), Elementary('fixed_bytes', 32))
        self.assertEqual(parse_type('address').canonical, 'address')

    def test_nested_arrays(self):
        """Test that array suffixes are peeled from the right."""
        expr = parse_type('uint256[2][]')
        self.assertIsInstance(expr, DynArray)
        self.assertIsInstance(expr.elem, FixedArray)
        self.assertEqual(expr.elem.length, 2)
        self.assertEqual(expr.canonical, 'uint256[2][]')

    def test_tuple_name_from_internal_type(self):
        """Test that the struct name is taken from internalType."""
        expr = parse_type(
            'tuple[]',
            [param('key', 'string'), param('value', 'string')],
            'struct DataStorage.UserData[]',
        )
        self.assertIsInstance(expr.elem, Tuple)
        self.assertEqual(expr.elem.name, 'UserData')
        self.assertEqual(expr.canonical, '(string,string)[]')

    def test_unknown_type(self):
        """Test that an unknown type token is malformed."""
        with self.assertRaises(MalformedDescriptor) as ctx:
            parse_type('foo', path='Token.f.inputs[0]')
        self.assertIn("unknown type 'foo'", str(ctx.exception))

    def test_invalid_integer_size(self):
        """Test that uint7 is rejected."""
        with self.assertRaises(MalformedDescriptor):
            parse_type('uint7')

    def test_hashed_topic_types(self):
        """Test which indexed types are stored as hashes."""
        self.assertFalse(is_hashed_topic_type(parse_type('address')))
        self.assertFalse(is_hashed_topic_type(parse_type('bytes32')))
        self.assertTrue(is_hashed_topic_type(parse_type('string')))
        self.assertTrue(is_hashed_topic_type(parse_type('bytes[]')))
        self.assertTrue(is_hashed_topic_type(parse_type('tuple', [param('a', 'uint8')])))


class TestAbiParser(unittest.TestCase):
    """Test ContractDescriptor construction."""

    def test_transfer_selector(self):
        """Test the well-known ERC20 transfer selector."""
        descriptor = parse([
            function('transfer', [param('to', 'address'), param('value', 'uint256')],
                     [param('', 'bool')], 'nonpayable'),
        ])
        method = descriptor.methods[0]
        self.assertEqual(method.signature, 'transfer(address,uint256)')
        self.assertEqual(method.selector.hex(), 'a9059cbb')
        self.assertFalse(method.is_read)

    def test_transfer_event_topic(self):
        """Test the well-known ERC20 Transfer topic0."""
        descriptor = parse_abi_file(os.path.join(TESTDATA, 'IERC20.abi'), 'IERC20')
        event = descriptor.events[0]
        self.assertEqual(event.signature, 'Transfer(address,address,uint256)')
        self.assertEqual(
            event.topic0.hex(),
            'ddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef',
        )
        self.assertEqual([p.name for p in event.indexed_inputs], ['from', 'to'])

    def test_dollar_in_function_name(self):
        """Test that a '$' in a function name is rejected."""
        with self.assertRaises(IllegalIdentifier) as ctx:
            parse([function('get$Value')])
        self.assertIn('illegal character', str(ctx.exception))

    def test_overload_renamed(self):
        """Test that the second overload gets a numeric suffix."""
        diagnostics = BindgenDiagnostics()
        descriptor = parse([
            function('transfer', [param('to', 'address'), param('value', 'uint256')]),
            function('transfer', [param('to', 'address')]),
        ], diagnostics=diagnostics)
        self.assertEqual([m.name for m in descriptor.methods], ['transfer', 'transfer0'])
        self.assertEqual([m.abi_name for m in descriptor.methods], ['transfer', 'transfer'])
        self.assertEqual([d.code for d in diagnostics.warnings], ['W004'])

    def test_constructor_ignored(self):
        """Test that constructor, fallback and receive produce no methods."""
        diagnostics = BindgenDiagnostics()
        descriptor = parse([
            {'type': 'constructor', 'inputs': []},
            {'type': 'fallback'},
            {'type': 'receive', 'stateMutability': 'payable'},
            function('getValue', outputs=[param('', 'uint256')]),
        ], diagnostics=diagnostics)
        self.assertEqual([m.name for m in descriptor.methods], ['getValue'])
        self.assertEqual(descriptor.ignored_items, ('constructor', 'fallback', 'receive'))
        self.assertEqual([d.code for d in diagnostics.warnings], ['W001', 'W001', 'W001'])

    def test_unnamed_parameters(self):
        """Test positional names for unnamed inputs and outputs."""
        descriptor = parse([
            function('pair', [param('', 'uint256')], [param('', 'uint256'), param('', 'bool')]),
        ])
        method = descriptor.methods[0]
        self.assertEqual([p.name for p in method.inputs], ['arg0'])
        self.assertEqual([p.name for p in method.outputs], ['output0', 'output1'])
        self.assertTrue(all(p.positional for p in method.outputs))

    def test_malformed_json(self):
        """Test that invalid JSON is a malformed descriptor."""
        with self.assertRaises(MalformedDescriptor) as ctx:
            AbiParser('Token').parse('[{"type": "function",')
        self.assertIn('invalid ABI JSON', str(ctx.exception))

    def test_artifact_wrapper(self):
        """Test that a forge/hardhat artifact object is accepted."""
        descriptor = AbiParser('Token').parse(json.dumps({'abi': [function('getValue')]}))
        self.assertEqual(len(descriptor.methods), 1)

    def test_unknown_item_type(self):
        """Test that an unknown item kind is rejected."""
        with self.assertRaises(MalformedDescriptor) as ctx:
            parse([{'type': 'modifier', 'name': 'onlyOwner'}])
        self.assertIn("unknown ABI item type 'modifier'", str(ctx.exception))

    def test_too_many_indexed_fields(self):
        """Test that a non-anonymous event may index at most three fields."""
        event = {
            'type': 'event',
            'name': 'Big',
            'anonymous': False,
            'inputs': [param(f'a{i}', 'uint256', indexed=True) for i in range(4)],
        }
        with self.assertRaises(MalformedDescriptor) as ctx:
            parse([event])
        self.assertIn('at most 3 allowed', str(ctx.exception))

        event['anonymous'] = True
        descriptor = parse([event])
        self.assertTrue(descriptor.events[0].anonymous)

    def test_duplicate_parameter_names(self):
        """Test that two inputs with the same name are rejected."""
        with self.assertRaises(MalformedDescriptor):
            parse([function('f', [param('a', 'uint256'), param('a', 'bool')])])

    def test_legacy_mutability(self):
        """Test pre-stateMutability ABIs."""
        descriptor = parse([
            {'type': 'function', 'name': 'get', 'inputs': [], 'outputs': [], 'constant': True},
            {'type': 'function', 'name': 'pay', 'inputs': [], 'outputs': [], 'payable': True},
        ])
        self.assertEqual([m.mutability for m in descriptor.methods], ['view', 'payable'])

    def test_parameter_name_not_string(self):
        """Test that a numeric parameter name is malformed, not a crash."""
        with self.assertRaises(MalformedDescriptor) as ctx:
            parse([function('f', [param(5, 'uint256')])])
        self.assertEqual(ctx.exception.element, 'Token.f.inputs[0]')

    def test_component_name_not_string(self):
        """Test that a tuple component with a list name is malformed."""
        tuple_param = param('data', 'tuple', components=[param(['x'], 'uint256')])
        with self.assertRaises(MalformedDescriptor) as ctx:
            parse([function('f', [tuple_param])])
        self.assertEqual(ctx.exception.element, 'Token.f.inputs[0].components[0]')

    def test_components_not_array(self):
        """Test that tuple components must be an array."""
        tuple_param = param('data', 'tuple', components={'x': 'uint256'})
        with self.assertRaises(MalformedDescriptor) as ctx:
            parse([function('f', [tuple_param])])
        self.assertIn("'components' must be an array", str(ctx.exception))

    def test_non_utf8_file(self):
        """Test that an ABI file that is not UTF-8 is malformed and staged."""
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'Bad.abi')
            with open(path, 'wb') as f:
                f.write(b'\xff\xfe')
            with self.assertRaises(MalformedDescriptor) as ctx:
                parse_abi_file(path, 'Bad')
        self.assertIn('not valid UTF-8', str(ctx.exception))
        self.assertEqual(ctx.exception.stage, 'parse')

    def test_parse_file_prefixes_stage(self):
        """Test that parse_abi_file reports the parse stage."""
        path = os.path.join(TESTDATA, 'data_storage.json')
        with self.assertRaises(MalformedDescriptor) as ctx:
            parse_abi_file(path, 'data_storage')
        self.assertTrue(str(ctx.exception).startswith('parse: '))

    def test_data_storage_fixture(self):
        """Test the DataStorage fixture end to end."""
        descriptor = parse_abi_file(os.path.join(TESTDATA, 'DataStorage.abi'), 'DataStorage')
        self.assertEqual(
            [m.name for m in descriptor.methods],
            ['getValue', 'getUserData', 'getReserves', 'storeData', 'onReport'],
        )
        self.assertEqual([e.name for e in descriptor.events], ['DataStored', 'DynamicEvent'])
        self.assertEqual([e.name for e in descriptor.errors], ['DataNotFound', 'Unauthorized'])
        self.assertEqual(descriptor.errors[1].signature, 'Unauthorized()')


class TestCompositeRegistry(unittest.TestCase):
    """Test struct discovery and naming."""

    def test_struct_shared_between_items(self):
        """Test that one structure referenced twice yields one class."""
        descriptor = parse_abi_file(os.path.join(TESTDATA, 'DataStorage.abi'), 'DataStorage')
        registry = CompositeRegistry('DataStorage')
        registry.discover_contract(descriptor)
        self.assertEqual([name for name, _ in registry.composites], ['UserData'])

    def test_anonymous_tuple_hint(self):
        """Test naming of a tuple without internalType."""
        descriptor = parse([
            function('getPair', outputs=[param('', 'tuple', components=[param('a', 'uint8')])]),
        ])
        registry = CompositeRegistry('Token')
        registry.discover_contract(descriptor)
        self.assertEqual([name for name, _ in registry.composites], ['GetPairOutput'])

    def test_same_name_different_structure(self):
        """Test that distinct structs with one name get a numeric suffix."""
        first = param('a', 'tuple', internalType='struct A.Info', components=[param('x', 'uint8')])
        second = param('b', 'tuple', internalType='struct B.Info', components=[param('y', 'uint8')])
        descriptor = parse([function('f', [first, second])])
        registry = CompositeRegistry('Token')
        registry.discover_contract(descriptor)
        self.assertEqual([name for name, _ in registry.composites], ['Info', 'Info1'])

    def test_claim_clash(self):
        """Test that a class name cannot be claimed twice."""
        registry = CompositeRegistry('Token')
        registry.claim('TransferLog', 'event Transfer')
        with self.assertRaises(IllegalIdentifier):
            registry.claim('TransferLog', 'struct TransferLog')


if __name__ == '__main__':
    # Run tests with verbosity
    unittest.main(verbosity=2)
