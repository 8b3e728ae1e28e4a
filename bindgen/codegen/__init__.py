"""
Code generation module for the bindings generator.

This module provides Python source generation from contract and program
descriptors.
"""

from .emitter import (
    GENERATED_HEADER,
    Import,
    SourceWriter,
    Constant,
    Field,
    Function,
    Raw,
    ClassDecl,
    Banner,
    Module,
)
from .context import CodeGenerationContext
from .base import BaseGenerator
from .evm import EvmGenerator, ContractNames
from .evm_mock import EvmMockGenerator
from .solana import SolanaGenerator
from .diagnostics import BindgenDiagnostics, Diagnostic, DiagnosticSeverity

__all__ = [
    'GENERATED_HEADER',
    'Import',
    'SourceWriter',
    'Constant',
    'Field',
    'Function',
    'Raw',
    'ClassDecl',
    'Banner',
    'Module',
    'CodeGenerationContext',
    'BaseGenerator',
    'EvmGenerator',
    'ContractNames',
    'EvmMockGenerator',
    'SolanaGenerator',
    'BindgenDiagnostics',
    'Diagnostic',
    'DiagnosticSeverity',
]
