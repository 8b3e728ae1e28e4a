#!/usr/bin/env python3
"""
Typed binding generator for EVM contracts and Solana programs.

Reads EVM ABI files or Anchor IDL files from a project's conventional
layout and writes one importable Python package per contract or program:

    <project_root>/contracts/evm/src/abi/*.abi      ->  .../src/generated/<package>/
    <project_root>/contracts/solana/src/idl/*.json  ->  .../src/generated/<package>/

Usage:
    generate-bindings evm --project-root .
    generate-bindings solana --idl path/to/data_storage.json --out gen/

The package layout:
- naming: identifier sanitizing (package names, members, reserved words)
- abi / idl: descriptor models and parsers
- type_system: composite registry and type/conversion mappings
- codegen: module emission for both back ends
- runtime: the library generated code imports at run time
"""

import os
import subprocess
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from . import __version__
from .abi import ContractDescriptor, parse_abi_file
from .codegen import (
    BindgenDiagnostics,
    CodeGenerationContext,
    EvmGenerator,
    EvmMockGenerator,
    SolanaGenerator,
)
from .errors import (
    BindgenError,
    EmissionFailure,
    EmptyInput,
    GenerationCancelled,
    InputNotFound,
    PackageCollision,
    PostProcessFailure,
    UnsupportedLanguage,
)
from .idl import ProgramDescriptor, parse_idl_file
from .naming import contract_name_to_package


SUPPORTED_LANGUAGES = ('python',)

CHAIN_FAMILIES = {
    # family: (input directory, input extension, label)
    'evm': ('abi', '.abi', 'ABI'),
    'solana': ('idl', '.json', 'IDL'),
}

RUNTIME_REQUIREMENT = f'cre-bindgen=={__version__}'

DIR_MODE = 0o755


# =============================================================================
# INPUTS
# =============================================================================

@dataclass
class Inputs:
    """Resolved driver inputs."""
    chain_family: str
    project_root: Path
    language: str
    input_path: Path
    out_path: Path

    @property
    def label(self) -> str:
        return CHAIN_FAMILIES[self.chain_family][2]

    @property
    def extension(self) -> str:
        return CHAIN_FAMILIES[self.chain_family][1]


def resolve_inputs(
    chain_family: str,
    project_root: Optional[str] = None,
    language: str = 'python',
    input_path: Optional[str] = None,
    out_path: Optional[str] = None,
) -> Inputs:
    """
    Resolve and validate the driver inputs.

    Args:
        chain_family: 'evm' or 'solana'
        project_root: Project directory; defaults to the current directory
        language: Host language of the bindings; only 'python' is supported
        input_path: ABI/IDL file or directory; defaults to
            <root>/contracts/<family>/src/{abi|idl}
        out_path: Output directory; defaults to <root>/contracts/<family>/src/generated

    Returns:
        The resolved Inputs

    Raises:
        UnsupportedLanguage: If language is not supported
        InputNotFound: If the contracts folder or the input path is missing
    """
    if chain_family not in CHAIN_FAMILIES:
        raise BindgenError(f'unsupported chain family: {chain_family}')
    if language not in SUPPORTED_LANGUAGES:
        raise UnsupportedLanguage(language)

    root = Path(project_root) if project_root else Path.cwd()
    contracts = root / 'contracts'
    if not contracts.is_dir():
        raise InputNotFound(f'contracts folder not found in project root: {contracts}')

    input_dir, _, label = CHAIN_FAMILIES[chain_family]
    source_dir = contracts / chain_family / 'src'
    resolved_input = Path(input_path) if input_path else source_dir / input_dir
    if not resolved_input.exists():
        raise InputNotFound(f'{label} path does not exist: {resolved_input}')
    resolved_out = Path(out_path) if out_path else source_dir / 'generated'

    return Inputs(
        chain_family=chain_family,
        project_root=root,
        language=language,
        input_path=resolved_input,
        out_path=resolved_out,
    )


def discover_files(inputs: Inputs) -> List[Path]:
    """Input files in name order: the input itself, or every *.abi / *.json in it."""
    if inputs.input_path.is_file():
        return [inputs.input_path]
    files = sorted(p for p in inputs.input_path.glob(f'*{inputs.extension}') if p.is_file())
    if not files:
        raise EmptyInput(f'no {inputs.extension} files found in directory: {inputs.input_path}')
    return files


def check_collisions(package_names: List[Tuple[str, str]]) -> None:
    """
    Fail on two distinct inputs mapping to the same package.

    Args:
        package_names: (contract name, package name) pairs in input order
    """
    seen: Dict[str, str] = {}
    for contract_name, package_name in package_names:
        if package_name in seen and seen[package_name] != contract_name:
            raise PackageCollision(package_name)
        seen[package_name] = contract_name


# =============================================================================
# OUTPUT
# =============================================================================

def write_file_atomic(path: Path, content: str) -> None:
    """Write content to path in its entirety or not at all."""
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f'.{path.name}.', suffix='.tmp')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8', newline='\n') as f:
            f.write(content)
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


class PostProcessor:
    """Step run once after all packages were written."""

    def run(self, inputs: Inputs) -> None:
        raise NotImplementedError


class CommandPostProcessor(PostProcessor):
    """
    Pins the runtime library in the project's environment with pip.

    Generated packages import bindgen.runtime, so the project must have the
    matching generator release installed.
    """

    def __init__(self, requirement: str = RUNTIME_REQUIREMENT, runner: Callable = subprocess.run):
        self.requirement = requirement
        self._runner = runner

    def command(self) -> List[str]:
        return [sys.executable, '-m', 'pip', 'install', '--quiet', self.requirement]

    def run(self, inputs: Inputs) -> None:
        command = self.command()
        try:
            result = self._runner(command, cwd=str(inputs.project_root), capture_output=True, text=True)
        except OSError as e:
            raise PostProcessFailure(f'failed to run {" ".join(command)}: {e}') from e
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or '').strip()
            raise PostProcessFailure(f'{" ".join(command)} exited with status {result.returncode}: {detail}')


# =============================================================================
# GENERATOR
# =============================================================================

class BindingsGenerator:
    """Main driver class that orchestrates parsing, generation and writing."""

    def __init__(
        self,
        inputs: Inputs,
        diagnostics: Optional[BindgenDiagnostics] = None,
        post_processor: Optional[PostProcessor] = None,
        continue_on_error: bool = False,
        cancel_event=None,
    ):
        self.inputs = inputs
        self.diagnostics = diagnostics or BindgenDiagnostics()
        self.post_processor = post_processor
        self.continue_on_error = continue_on_error
        self.cancel_event = cancel_event
        self.written: List[Path] = []

    def run(self) -> List[Path]:
        """
        Generate bindings for every input file.

        Returns:
            Paths of all written files

        Raises:
            BindgenError: The first failure, or an aggregate of all failures
                when continue_on_error is set
        """
        files = discover_files(self.inputs)
        if self.inputs.chain_family == 'evm':
            jobs = self._evm_jobs(files)
        else:
            jobs = self._solana_jobs(files)

        failures: List[BindgenError] = []
        for index, (name, generate) in enumerate(jobs):
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise GenerationCancelled(len(jobs) - index)
            try:
                package_name, files_by_name = generate()
                self.write_package(package_name, files_by_name)
            except BindgenError as e:
                wrapped = e.with_context(element=f'failed to generate bindings for {name}')
                if not self.continue_on_error:
                    raise wrapped from e
                print(f'Error: {wrapped}', file=sys.stderr)
                failures.append(wrapped)

        if failures:
            if len(failures) == 1:
                raise failures[0]
            raise BindgenError(
                f'{len(failures)} of {len(jobs)} files failed: ' + '; '.join(str(f) for f in failures)
            )

        if self.post_processor is not None:
            self.post_processor.run(self.inputs)
        return self.written

    # =========================================================================
    # EVM
    # =========================================================================

    def _evm_jobs(self, files: List[Path]) -> List[Tuple[str, Callable]]:
        names = [(path.stem, contract_name_to_package(path.stem)) for path in files]
        check_collisions(names)
        return [
            (contract_name, lambda p=path, c=contract_name, k=package: self.generate_evm(p, c, k))
            for path, (contract_name, package) in zip(files, names)
        ]

    def generate_evm(self, path: Path, contract_name: str, package_name: str) -> Tuple[str, Dict[str, str]]:
        """Generate <Contract>.py, <Contract>_mock.py and __init__.py for one ABI file."""
        print(f'Processing ABI file: {path}')
        descriptor = parse_abi_file(str(path), contract_name, self.diagnostics)
        return package_name, self.render_evm(descriptor, package_name, str(path))

    def render_evm(self, descriptor: ContractDescriptor, package_name: str, file_path: str = '') -> Dict[str, str]:
        ctx = CodeGenerationContext(_diagnostics=self.diagnostics)
        ctx.reset_for_contract(descriptor.name, package_name, file_path)
        try:
            generator = EvmGenerator(ctx)
            contract_source = generator.generate(descriptor)
            mock_source = EvmMockGenerator(ctx).generate(descriptor, generator.names)
            init_source = generator.generate_package_init(descriptor)
        except BindgenError as e:
            raise e.with_context(stage='emit') from e
        return {
            f'{descriptor.name}.py': contract_source,
            f'{descriptor.name}_mock.py': mock_source,
            '__init__.py': init_source,
        }

    # =========================================================================
    # SOLANA
    # =========================================================================

    def _solana_jobs(self, files: List[Path]) -> List[Tuple[str, Callable]]:
        # Package names come from metadata.name, so every IDL is parsed up front
        descriptors: List[ProgramDescriptor] = []
        for path in files:
            print(f'Processing IDL file: {path}')
            try:
                descriptors.append(parse_idl_file(str(path), self.diagnostics))
            except BindgenError as e:
                raise e.with_context(element=f'failed to generate bindings for {path.stem}') from e
        check_collisions([(str(path), d.package_name) for path, d in zip(files, descriptors)])
        return [
            (descriptor.name, lambda d=descriptor: (d.package_name, self.render_solana(d)))
            for descriptor in descriptors
        ]

    def render_solana(self, descriptor: ProgramDescriptor) -> Dict[str, str]:
        ctx = CodeGenerationContext(_diagnostics=self.diagnostics)
        ctx.reset_for_contract(descriptor.name, descriptor.package_name, descriptor.source_path or '')
        try:
            return SolanaGenerator(ctx).generate(descriptor)
        except BindgenError as e:
            raise e.with_context(stage='emit') from e

    # =========================================================================
    # WRITING
    # =========================================================================

    def write_package(self, package_name: str, files: Dict[str, str]) -> None:
        """Write one generated package below the output directory."""
        package_dir = self.inputs.out_path / package_name
        try:
            package_dir.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
            for filename in sorted(files):
                path = package_dir / filename
                write_file_atomic(path, files[filename])
                self.written.append(path)
                print(f'Written: {path}')
        except OSError as e:
            raise EmissionFailure(f'cannot write {package_dir}: {e}', stage='emit') from e


def generate_bindings(
    chain_family: str,
    project_root: Optional[str] = None,
    language: str = 'python',
    input_path: Optional[str] = None,
    out_path: Optional[str] = None,
    skip_post_process: bool = False,
    continue_on_error: bool = False,
    cancel_event=None,
    diagnostics: Optional[BindgenDiagnostics] = None,
    post_processor: Optional[PostProcessor] = None,
) -> List[Path]:
    """
    Resolve inputs and generate bindings for a project.

    Returns:
        Paths of all written files
    """
    inputs = resolve_inputs(chain_family, project_root, language, input_path, out_path)
    if skip_post_process:
        post_processor = None
    elif post_processor is None:
        post_processor = CommandPostProcessor()
    generator = BindingsGenerator(
        inputs,
        diagnostics=diagnostics,
        post_processor=post_processor,
        continue_on_error=continue_on_error,
        cancel_event=cancel_event,
    )
    return generator.run()


# =============================================================================
# CLI INTERFACE
# =============================================================================

def build_parser():
    import argparse

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--project-root', default=None,
                        help='Project directory containing contracts/ (default: current directory)')
    common.add_argument('--language', default='python', help='Language of the bindings (default: python)')
    common.add_argument('--out', default=None,
                        help='Output directory (default: contracts/<family>/src/generated)')
    common.add_argument('--skip-post-process', action='store_true',
                        help='Do not pin the runtime library with pip after generation')
    common.add_argument('--continue-on-error', action='store_true',
                        help='Keep going after a file fails and report all failures at the end')
    common.add_argument('-v', '--verbose', action='store_true', help='Print info-level diagnostics too')

    parser = argparse.ArgumentParser(
        prog='generate-bindings',
        description='Generate typed Python bindings for EVM contracts and Solana programs',
    )
    subparsers = parser.add_subparsers(dest='chain_family', required=True)
    evm = subparsers.add_parser('evm', parents=[common], help='Bindings from EVM ABI files')
    evm.add_argument('--abi', default=None, help='ABI file or directory (default: contracts/evm/src/abi)')
    solana = subparsers.add_parser('solana', parents=[common], help='Bindings from Anchor IDL files')
    solana.add_argument('--idl', default=None, help='IDL file or directory (default: contracts/solana/src/idl)')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    input_path = args.abi if args.chain_family == 'evm' else args.idl
    diagnostics = BindgenDiagnostics(verbose=args.verbose)

    try:
        generate_bindings(
            args.chain_family,
            project_root=args.project_root,
            language=args.language,
            input_path=input_path,
            out_path=args.out,
            skip_post_process=args.skip_post_process,
            continue_on_error=args.continue_on_error,
            diagnostics=diagnostics,
        )
    except BindgenError as e:
        diagnostics.print_summary()
        print(f'Error: {e}', file=sys.stderr)
        return 1

    diagnostics.print_summary()
    return 0


if __name__ == '__main__':
    sys.exit(main())
