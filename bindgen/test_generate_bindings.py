#!/usr/bin/env python3
"""
Unit tests for the generate-bindings driver.

Run with: python3 -m pytest bindgen/test_generate_bindings.py
   or: cd .. && python3 bindgen/test_generate_bindings.py
"""

import sys
import os
# Add parent directory to path for proper imports - MUST be before other imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import io
import shutil
import tempfile
import threading
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from types import SimpleNamespace

from bindgen.codegen import GENERATED_HEADER
from bindgen.errors import (
    BindgenError,
    EmptyInput,
    GenerationCancelled,
    InputNotFound,
    MalformedDescriptor,
    PackageCollision,
    PostProcessFailure,
    UnsupportedLanguage,
)
from bindgen.generate_bindings import (
    CommandPostProcessor,
    PostProcessor,
    generate_bindings,
    main,
    resolve_inputs,
    write_file_atomic,
)


TESTDATA = Path(os.path.dirname(os.path.abspath(__file__))) / 'testdata'

COLLISION_MESSAGE = (
    "package name collision: multiple contracts would generate the same package name "
    "'test_contract' (contracts are converted to snake_case for package names). "
    "Please rename one of your contract files to avoid this conflict"
)


class RecordingPostProcessor(PostProcessor):
    def __init__(self):
        self.calls = []

    def run(self, inputs):
        self.calls.append(inputs)


class DriverTestCase(unittest.TestCase):
    """Creates a project root with the conventional contracts layout."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.abi_dir = self.root / 'contracts' / 'evm' / 'src' / 'abi'
        self.idl_dir = self.root / 'contracts' / 'solana' / 'src' / 'idl'
        self.abi_dir.mkdir(parents=True)
        self.idl_dir.mkdir(parents=True)

    def tearDown(self):
        self._tmp.cleanup()

    def add_abi(self, filename, source='IERC20.abi'):
        shutil.copy(TESTDATA / source, self.abi_dir / filename)

    def add_idl(self, filename='data_storage.json'):
        shutil.copy(TESTDATA / 'data_storage.json', self.idl_dir / filename)

    def generate(self, chain_family='evm', **kwargs):
        kwargs.setdefault('skip_post_process', True)
        with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()):
            return generate_bindings(chain_family, project_root=str(self.root), **kwargs)


class TestResolveInputs(DriverTestCase):
    """Test input resolution and its error texts."""

    def test_defaults(self):
        """Test the conventional input and output directories."""
        inputs = resolve_inputs('evm', str(self.root))
        self.assertEqual(inputs.input_path, self.abi_dir)
        self.assertEqual(inputs.out_path, self.root / 'contracts' / 'evm' / 'src' / 'generated')
        self.assertEqual(inputs.label, 'ABI')

        inputs = resolve_inputs('solana', str(self.root))
        self.assertEqual(inputs.input_path, self.idl_dir)
        self.assertEqual(inputs.extension, '.json')

    def test_missing_contracts_folder(self):
        """Test the error for a project without contracts/."""
        with tempfile.TemporaryDirectory() as empty:
            with self.assertRaises(InputNotFound) as ctx:
                resolve_inputs('evm', empty)
        self.assertIn('contracts folder not found in project root', str(ctx.exception))

    def test_missing_abi_path(self):
        """Test the error for a missing ABI path."""
        with self.assertRaises(InputNotFound) as ctx:
            resolve_inputs('evm', str(self.root), input_path=str(self.root / 'nope'))
        self.assertIn('ABI path does not exist', str(ctx.exception))

    def test_missing_idl_path(self):
        """Test the error for a missing IDL path."""
        shutil.rmtree(self.idl_dir)
        with self.assertRaises(InputNotFound) as ctx:
            resolve_inputs('solana', str(self.root))
        self.assertIn('IDL path does not exist', str(ctx.exception))

    def test_unsupported_language(self):
        """Test that only python bindings are supported."""
        with self.assertRaises(UnsupportedLanguage) as ctx:
            resolve_inputs('evm', str(self.root), language='rust')
        self.assertEqual(str(ctx.exception), 'unsupported language: rust')

    def test_empty_directory(self):
        """Test the error for an input directory without ABI files."""
        with self.assertRaises(EmptyInput) as ctx:
            self.generate()
        self.assertIn('no .abi files found in directory', str(ctx.exception))


class TestEvmGeneration(DriverTestCase):
    """Test EVM package generation."""

    def test_package_layout(self):
        """Test that one package with three files is written per ABI."""
        self.add_abi('IERC20.abi')
        written = self.generate()
        package = self.root / 'contracts' / 'evm' / 'src' / 'generated' / 'ierc20'
        self.assertEqual(
            sorted(p.name for p in written),
            ['IERC20.py', 'IERC20_mock.py', '__init__.py'],
        )
        self.assertTrue(all(p.parent == package for p in written))
        source = (package / 'IERC20.py').read_text()
        self.assertTrue(source.startswith(f'"""\n{GENERATED_HEADER}\n'))
        self.assertIn("TRANSFER_METHOD_SELECTOR = bytes.fromhex('a9059cbb')", source)
        self.assertEqual(os.stat(package / 'IERC20.py').st_mode & 0o777, 0o644)

    def test_single_file_input(self):
        """Test generating from one ABI file into a custom output directory."""
        out = self.root / 'out'
        self.generate(input_path=str(TESTDATA / 'DataStorage.abi'), out_path=str(out))
        self.assertTrue((out / 'data_storage' / 'DataStorage.py').is_file())
        self.assertTrue((out / 'data_storage' / 'DataStorage_mock.py').is_file())

    def test_package_collision(self):
        """Test that two ABIs with the same package name are rejected."""
        self.add_abi('TestContract.abi')
        self.add_abi('test_contract.abi')
        with self.assertRaises(PackageCollision) as ctx:
            self.generate()
        self.assertEqual(str(ctx.exception), COLLISION_MESSAGE)
        self.assertFalse((self.root / 'contracts' / 'evm' / 'src' / 'generated').exists())

    def test_deterministic_output(self):
        """Test that two runs produce byte-identical files."""
        self.add_abi('IERC20.abi')
        self.add_abi('DataStorage.abi', 'DataStorage.abi')
        first = {p: p.read_bytes() for p in self.generate()}
        second = {p: p.read_bytes() for p in self.generate()}
        self.assertEqual(first, second)

    def test_parse_failure_names_file(self):
        """Test that a failure is prefixed with the contract it belongs to."""
        (self.abi_dir / 'Broken.abi').write_text('[{"type": "function", "name": "f", "inputs": [{"type": "uint7"}]}]')
        with self.assertRaises(MalformedDescriptor) as ctx:
            self.generate()
        message = str(ctx.exception)
        self.assertTrue(message.startswith('failed to generate bindings for Broken: parse: '))
        self.assertIn("invalid integer size in type 'uint7'", message)

    def test_continue_on_error(self):
        """Test that good files are written when others fail."""
        self.add_abi('IERC20.abi')
        (self.abi_dir / 'Broken.abi').write_text('not json')
        (self.abi_dir / 'Worse.abi').write_text('{}')
        with self.assertRaises(BindgenError) as ctx:
            self.generate(continue_on_error=True)
        self.assertIn('2 of 3 files failed', str(ctx.exception))
        generated = self.root / 'contracts' / 'evm' / 'src' / 'generated'
        self.assertTrue((generated / 'ierc20' / 'IERC20.py').is_file())

    def test_continue_on_error_single_failure(self):
        """Test that a single failure is re-raised as-is."""
        self.add_abi('IERC20.abi')
        (self.abi_dir / 'Broken.abi').write_text('not json')
        with self.assertRaises(MalformedDescriptor):
            self.generate(continue_on_error=True)

    def test_cancellation(self):
        """Test that a set cancel event stops before the next file."""
        self.add_abi('IERC20.abi')
        self.add_abi('DataStorage.abi', 'DataStorage.abi')
        cancel = threading.Event()
        cancel.set()
        with self.assertRaises(GenerationCancelled) as ctx:
            self.generate(cancel_event=cancel)
        self.assertIn('2 file(s) not processed', str(ctx.exception))

    def test_post_processor_runs_once(self):
        """Test that the post-processor runs after all files."""
        self.add_abi('IERC20.abi')
        self.add_abi('DataStorage.abi', 'DataStorage.abi')
        post = RecordingPostProcessor()
        self.generate(skip_post_process=False, post_processor=post)
        self.assertEqual(len(post.calls), 1)
        self.assertEqual(post.calls[0].project_root, self.root)

    def test_skip_post_process(self):
        """Test that skip_post_process wins over a given post-processor."""
        self.add_abi('IERC20.abi')
        post = RecordingPostProcessor()
        self.generate(skip_post_process=True, post_processor=post)
        self.assertEqual(post.calls, [])


class TestSolanaGeneration(DriverTestCase):
    """Test Solana package generation."""

    def test_package_layout(self):
        """Test the files of a program package."""
        self.add_idl()
        written = self.generate('solana')
        package = self.root / 'contracts' / 'solana' / 'src' / 'generated' / 'data_storage'
        self.assertEqual(
            sorted(p.name for p in written),
            ['__init__.py', 'accounts.py', 'constructor.py', 'defined_types.py',
             'errors.py', 'events.py', 'instructions.py'],
        )
        self.assertTrue(all(p.parent == package for p in written))

    def test_package_collision(self):
        """Test that two IDLs for one program name collide."""
        self.add_idl('data_storage.json')
        self.add_idl('data_storage_copy.json')
        with self.assertRaises(PackageCollision) as ctx:
            self.generate('solana')
        self.assertIn("'data_storage'", str(ctx.exception))

    def test_invalid_idl(self):
        """Test that a broken IDL names the file that failed."""
        (self.idl_dir / 'broken.json').write_text('{"metadata": {"name": "broken"}}')
        with self.assertRaises(MalformedDescriptor) as ctx:
            self.generate('solana')
        self.assertIn('failed to generate bindings for broken', str(ctx.exception))
        self.assertIn('missing program address', str(ctx.exception))


class TestPostProcessing(DriverTestCase):
    """Test the pip-based post-processor."""

    def test_command(self):
        """Test the pip command pins the runtime release."""
        from bindgen import __version__
        command = CommandPostProcessor().command()
        self.assertEqual(command[1:5], ['-m', 'pip', 'install', '--quiet'])
        self.assertEqual(command[-1], f'cre-bindgen=={__version__}')

    def test_success(self):
        """Test a successful run in the project root."""
        calls = []

        def runner(command, **kwargs):
            calls.append((command, kwargs))
            return SimpleNamespace(returncode=0, stdout='', stderr='')

        inputs = resolve_inputs('evm', str(self.root))
        CommandPostProcessor(runner=runner).run(inputs)
        self.assertEqual(calls[0][1]['cwd'], str(self.root))

    def test_failure_status(self):
        """Test that a nonzero exit status is a PostProcessFailure."""
        def runner(command, **kwargs):
            return SimpleNamespace(returncode=1, stdout='', stderr='no matching distribution')

        inputs = resolve_inputs('evm', str(self.root))
        with self.assertRaises(PostProcessFailure) as ctx:
            CommandPostProcessor(runner=runner).run(inputs)
        self.assertIn('exited with status 1: no matching distribution', str(ctx.exception))

    def test_missing_executable(self):
        """Test that an OSError from the runner is a PostProcessFailure."""
        def runner(command, **kwargs):
            raise FileNotFoundError('pip')

        inputs = resolve_inputs('evm', str(self.root))
        with self.assertRaises(PostProcessFailure):
            CommandPostProcessor(runner=runner).run(inputs)


class TestWriteFileAtomic(unittest.TestCase):
    """Test atomic file writes."""

    def test_replaces_content(self):
        """Test that the file holds exactly the new content."""
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'module.py'
            path.write_text('old content that is longer')
            write_file_atomic(path, 'new\n')
            self.assertEqual(path.read_text(), 'new\n')
            self.assertEqual(sorted(os.listdir(tmp)), ['module.py'])


class TestMain(DriverTestCase):
    """Test the command line entry point."""

    def run_main(self, argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(argv)
        return code, out.getvalue(), err.getvalue()

    def test_success(self):
        """Test exit code 0 and progress output."""
        self.add_abi('IERC20.abi')
        code, out, _ = self.run_main(['evm', '--project-root', str(self.root), '--skip-post-process'])
        self.assertEqual(code, 0)
        self.assertIn('Processing ABI file:', out)
        self.assertIn('Written:', out)

    def test_collision_exit_code(self):
        """Test that a collision exits with status 1 and the exact message."""
        self.add_abi('TestContract.abi')
        self.add_abi('test_contract.abi')
        code, _, err = self.run_main(['evm', '--project-root', str(self.root), '--skip-post-process'])
        self.assertEqual(code, 1)
        self.assertIn(f'Error: {COLLISION_MESSAGE}', err)

    def test_non_utf8_abi_exit_code(self):
        """Test that an undecodable ABI file is reported on one line with status 1."""
        (self.abi_dir / 'Bad.abi').write_bytes(b'\xff\xfe')
        code, _, err = self.run_main(['evm', '--project-root', str(self.root), '--skip-post-process'])
        self.assertEqual(code, 1)
        self.assertIn('Error: ', err)
        self.assertIn('not valid UTF-8', err)
        self.assertNotIn('Traceback', err)

    def test_misshaped_idl_exit_code(self):
        """Test that a non-object type entry in an IDL exits with status 1."""
        (self.idl_dir / 'bad.json').write_text(
            '{"address": "ECL8142j2YQAvs9R9geSsRnkVH2wLEi7soJCRyJ74cfL", '
            '"metadata": {"name": "bad"}, "types": ["oops"]}'
        )
        code, _, err = self.run_main(['solana', '--project-root', str(self.root), '--skip-post-process'])
        self.assertEqual(code, 1)
        self.assertIn('Error: ', err)
        self.assertIn('bad.types[0]', err)

    def test_solana_idl_flag(self):
        """Test the solana subcommand with an explicit IDL and output path."""
        out_dir = self.root / 'gen'
        code, _, _ = self.run_main([
            'solana', '--project-root', str(self.root), '--skip-post-process',
            '--idl', str(TESTDATA / 'data_storage.json'), '--out', str(out_dir),
        ])
        self.assertEqual(code, 0)
        self.assertTrue((out_dir / 'data_storage' / 'constructor.py').is_file())

    def test_missing_subcommand(self):
        """Test that the chain family is required."""
        with redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                main([])


if __name__ == '__main__':
    # Run tests with verbosity
    unittest.main(verbosity=2)
