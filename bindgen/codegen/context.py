"""
Code generation context for the bindings generator.

This module provides a context class that holds all state needed while
generating the files of one contract or program, separating state
management from the generation logic.
"""

from dataclasses import dataclass, field
from typing import Optional, Set

from ..type_system import CompositeRegistry
from .diagnostics import BindgenDiagnostics


@dataclass
class CodeGenerationContext:
    """
    Holds all state needed during generation of one contract or program.

    A context is reset between input files; nothing generated for one file
    leaks into the next.
    """

    # File context
    current_file_path: str = ''

    # Contract context
    contract_name: str = ''
    package_name: str = ''

    # Member names already taken on the class being generated
    current_members: Set[str] = field(default_factory=set)

    # Composite type registry of the current contract (EVM)
    _registry: Optional[CompositeRegistry] = None

    # Diagnostics collector
    _diagnostics: Optional[BindgenDiagnostics] = None

    @property
    def diagnostics(self) -> BindgenDiagnostics:
        """Get the diagnostics collector, creating one if needed."""
        if self._diagnostics is None:
            self._diagnostics = BindgenDiagnostics()
        return self._diagnostics

    @property
    def registry(self) -> CompositeRegistry:
        if self._registry is None:
            self._registry = CompositeRegistry(self.contract_name)
        return self._registry

    def reset_for_contract(self, contract_name: str, package_name: str, file_path: str = '') -> None:
        """Reset state for a new contract or program."""
        self.contract_name = contract_name
        self.package_name = package_name
        self.current_file_path = file_path
        self.current_members = set()
        self._registry = CompositeRegistry(contract_name)

    def reset_for_class(self) -> None:
        """Reset member tracking for a new generated class."""
        self.current_members = set()

