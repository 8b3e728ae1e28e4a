"""
Typed binding generator for EVM contracts and Solana programs

This package generates Python client bindings from EVM ABI files and
Anchor IDL files, and ships the runtime library the generated code uses.

Module Structure:
- naming/: Identifier sanitizing (package names, members, reserved words)
- abi/: EVM ABI model and parser (ContractDescriptor, parse_abi_file)
- idl/: Anchor IDL model and parser (ProgramDescriptor, parse_idl_file)
- type_system/: Composite registry and type conversion utilities
- codegen/: Code generation (EvmGenerator, EvmMockGenerator, SolanaGenerator)
- runtime/: Promise, runtime, client capabilities and test mocks
- generate_bindings.py: Driver and command line interface

Usage:
    from bindgen import generate_bindings
    generate_bindings('evm', project_root='.', skip_post_process=True)
"""

__version__ = '0.1.0'

# Re-export main entry points for convenience
from .errors import BindgenError
from .generate_bindings import (
    BindingsGenerator,
    Inputs,
    generate_bindings,
    resolve_inputs,
)

__all__ = [
    '__version__',
    'BindgenError',
    'BindingsGenerator',
    'Inputs',
    'generate_bindings',
    'resolve_inputs',
]
