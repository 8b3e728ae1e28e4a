#!/usr/bin/env python3
"""
Unit tests for source emission.

Run with: python3 -m pytest bindgen/test_emitter.py
   or: cd .. && python3 bindgen/test_emitter.py
"""

import sys
import os
# Add parent directory to path for proper imports - MUST be before other imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import json
import unittest
from bindgen.codegen.emitter import (
    LOCAL,
    STDLIB,
    THIRD_PARTY,
    Banner,
    ClassDecl,
    Constant,
    Field,
    Function,
    Import,
    Module,
    SourceWriter,
    bytes_literal,
    json_literal_lines,
    render_imports,
)


class TestImports(unittest.TestCase):
    """Test import grouping and ordering."""

    def test_groups_and_merge(self):
        """Test that imports are grouped and from-imports merged."""
        lines = render_imports([
            Import('typing', ('List',)),
            Import('eth_abi', ('encode',), group=THIRD_PARTY),
            Import('typing', ('Dict',)),
            Import('json'),
            Import('bindgen.runtime', ('evm',), group=LOCAL),
            Import('eth_abi', ('decode',), group=THIRD_PARTY),
        ])
        self.assertEqual(lines, [
            'import json',
            'from typing import Dict, List',
            '',
            'from eth_abi import decode, encode',
            '',
            'from bindgen.runtime import evm',
        ])

    def test_relative_imports_last(self):
        """Test that relative imports follow absolute ones."""
        lines = render_imports([
            Import('.events', ('DataStored',), group=LOCAL),
            Import('bindgen.runtime', ('solana',), group=LOCAL),
        ])
        self.assertEqual(lines, ['from bindgen.runtime import solana', 'from .events import DataStored'])

    def test_alias(self):
        """Test an aliased plain import."""
        self.assertEqual(Import('borsh_construct', alias='borsh').render(), 'import borsh_construct as borsh')

    def test_long_from_import_wraps(self):
        """Test that a long from-import is parenthesized."""
        names = tuple(f'Name{i:02d}' for i in range(20))
        rendered = Import('module', names).render()
        self.assertTrue(rendered.startswith('from module import (\n'))
        self.assertTrue(rendered.endswith('\n)'))


class TestSourceWriter(unittest.TestCase):
    """Test indentation and blank line handling."""

    def test_block(self):
        """Test nested blocks."""
        w = SourceWriter()
        with w.block('class Foo:'):
            with w.block('def bar(self):'):
                w.line('return 1')
        self.assertEqual(w.render(), 'class Foo:\n    def bar(self):\n        return 1\n')

    def test_blank_collapses(self):
        """Test that blank lines do not accumulate."""
        w = SourceWriter()
        w.line('a = 1')
        w.blank(2)
        w.blank(2)
        w.line('b = 2')
        self.assertEqual(w.render(), 'a = 1\n\n\nb = 2\n')

    def test_docstring(self):
        """Test one-line and multi-line docstrings."""
        w = SourceWriter()
        w.docstring('One line.')
        w.docstring('First.\n\nSecond.')
        self.assertEqual(w.lines, ['"""One line."""', '"""', 'First.', '', 'Second.', '"""'])


class TestDeclarations(unittest.TestCase):
    """Test rendering of module declarations."""

    def test_module_layout(self):
        """Test constants grouping, banners and class spacing."""
        module = Module(docstring='Generated.')
        module.add_import('typing', 'ClassVar')
        module.add(
            Constant('A', '1'),
            Constant('B', '2'),
            Banner('TYPES'),
            ClassDecl('Foo', ['Base'], [
                Field('x', 'int'),
                Field('y', 'ClassVar[int]', '0'),
                Function('double', ['self'], ['return self.x * 2'], returns='int'),
            ], decorators=['dataclass']),
        )
        source = module.render()
        self.assertEqual(source, '\n'.join([
            '"""Generated."""',
            '',
            'from typing import ClassVar',
            '',
            '',
            'A = 1',
            'B = 2',
            '',
            '',
            '# ' + '=' * 77,
            '# TYPES',
            '# ' + '=' * 77,
            '',
            '@dataclass',
            'class Foo(Base):',
            '    x: int',
            '    y: ClassVar[int] = 0',
            '',
            '    def double(self) -> int:',
            '        return self.x * 2',
            '',
        ]))

    def test_empty_class_and_function(self):
        """Test that empty bodies get 'pass'."""
        w = SourceWriter()
        ClassDecl('Empty', ['Exception']).write(w)
        Function('noop').write(w)
        self.assertEqual(w.lines, ['class Empty(Exception):', '    pass', 'def noop():', '    pass'])

    def test_long_signature_wraps(self):
        """Test one parameter per line for long signatures."""
        w = SourceWriter()
        params = [f'parameter_number_{i}: int' for i in range(6)]
        Function('configure', params).write(w)
        self.assertEqual(w.lines[0], 'def configure(')
        self.assertEqual(w.lines[1], '    parameter_number_0: int,')
        self.assertEqual(w.lines[7], '):')

    def test_stdlib_default_group(self):
        """Test that add_import defaults to the stdlib group and deduplicates."""
        module = Module(docstring='x')
        module.add_import('json')
        module.add_import('json')
        self.assertEqual(module.imports, [Import('json', group=STDLIB)])


class TestLiterals(unittest.TestCase):
    """Test literal rendering."""

    def test_bytes_literal(self):
        """Test hex bytes literal."""
        self.assertEqual(bytes_literal(bytes.fromhex('a9059cbb')), "bytes.fromhex('a9059cbb')")

    def test_json_literal_is_canonical(self):
        """Test that formatting of the input JSON does not matter."""
        pretty = json.dumps({'b': [1, 2], 'a': 'x'}, indent=4)
        compact = '{"a":"x","b":[1,2]}'
        self.assertEqual(json_literal_lines(pretty), json_literal_lines(compact))
        self.assertEqual(json_literal_lines(compact), ['json.loads(', "    '{\"a\":\"x\",\"b\":[1,2]}'", ')'])

    def test_json_literal_round_trips(self):
        """Test that the emitted chunks concatenate to the document."""
        document = {'key': 'v' * 200, 'n': list(range(30))}
        lines = json_literal_lines(json.dumps(document))
        source = '\n'.join(lines)
        self.assertEqual(eval(source, {'json': json}), document)


if __name__ == '__main__':
    # Run tests with verbosity
    unittest.main(verbosity=2)
