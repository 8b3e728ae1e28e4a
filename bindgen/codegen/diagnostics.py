"""
Diagnostic/warning system for the bindings generator.

Collects and reports warnings about ABI/IDL items that were skipped, renamed
or completed during generation. Helps developers understand why a generated
name differs from the one in their contract.
"""

import sys
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List


class DiagnosticSeverity(Enum):
    """Severity levels for generator diagnostics."""
    WARNING = 'warning'
    INFO = 'info'


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    severity: DiagnosticSeverity
    code: str
    message: str
    file_path: str = ''
    construct: str = ''  # e.g., 'overload', 'unnamed parameter', 'discriminator'

    def __str__(self) -> str:
        if self.file_path:
            return f'[{self.severity.value}] {self.file_path}: {self.message} ({self.code})'
        return f'[{self.severity.value}] {self.message} ({self.code})'


class BindgenDiagnostics:
    """
    Collects generator warnings/diagnostics during binding generation.

    Usage:
        diag = BindgenDiagnostics()
        diag.warn_overload_renamed("transfer", "transfer0", "IERC20.abi")
        # ... after generation ...
        diag.print_summary()
    """

    def __init__(self, verbose: bool = False):
        self._diagnostics: List[Diagnostic] = []
        self._verbose = verbose

    @property
    def diagnostics(self) -> List[Diagnostic]:
        """Get all collected diagnostics."""
        return list(self._diagnostics)

    @property
    def warnings(self) -> List[Diagnostic]:
        """Get only warning-level diagnostics."""
        return [d for d in self._diagnostics if d.severity == DiagnosticSeverity.WARNING]

    @property
    def count(self) -> int:
        """Get total diagnostic count."""
        return len(self._diagnostics)

    def clear(self) -> None:
        """Clear all diagnostics."""
        self._diagnostics.clear()

    # =========================================================================
    # SPECIFIC WARNING METHODS
    # =========================================================================

    def warn_item_ignored(self, kind: str, file_path: str = '') -> None:
        """Warn that an ABI item (constructor, fallback, receive) was skipped."""
        self._diagnostics.append(Diagnostic(
            severity=DiagnosticSeverity.WARNING,
            code='W001',
            message=f'{kind} item was ignored (no binding generated).',
            file_path=file_path,
            construct=kind,
        ))

    def warn_reserved_renamed(self, name: str, renamed: str, file_path: str = '') -> None:
        """Warn that a name clashing with a keyword or generated member was renamed."""
        self._diagnostics.append(Diagnostic(
            severity=DiagnosticSeverity.WARNING,
            code='W002',
            message=f'"{name}" is reserved and was renamed to "{renamed}".',
            file_path=file_path,
            construct='reserved identifier',
        ))

    def warn_unnamed_parameter(self, where: str, assigned: str, file_path: str = '') -> None:
        """Warn that an unnamed parameter received a positional name."""
        self._diagnostics.append(Diagnostic(
            severity=DiagnosticSeverity.WARNING,
            code='W003',
            message=f'Unnamed parameter {where} was named "{assigned}".',
            file_path=file_path,
            construct='unnamed parameter',
        ))

    def warn_overload_renamed(self, name: str, renamed: str, file_path: str = '') -> None:
        """Warn that an overloaded function or event was given a numeric suffix."""
        self._diagnostics.append(Diagnostic(
            severity=DiagnosticSeverity.WARNING,
            code='W004',
            message=f'Overload of "{name}" was renamed to "{renamed}".',
            file_path=file_path,
            construct='overload',
        ))

    def info_derived_discriminator(self, kind: str, name: str, file_path: str = '') -> None:
        """Info that a discriminator was derived from the sighash preimage."""
        self._diagnostics.append(Diagnostic(
            severity=DiagnosticSeverity.INFO,
            code='I001',
            message=f'Derived {kind} discriminator for "{name}".',
            file_path=file_path,
            construct='discriminator',
        ))

    def info_program_renamed(self, name: str, renamed: str, file_path: str = '') -> None:
        """Info that the program package name differs from metadata.name."""
        self._diagnostics.append(Diagnostic(
            severity=DiagnosticSeverity.INFO,
            code='I002',
            message=f'Program "{name}" is generated as package "{renamed}".',
            file_path=file_path,
            construct='program name',
        ))

    # =========================================================================
    # REPORTING
    # =========================================================================

    def print_summary(self, file=None) -> None:
        """Print a summary of all diagnostics to stderr (or specified file)."""
        if file is None:
            file = sys.stderr

        if not self._diagnostics:
            return

        warnings = self.warnings
        infos = [d for d in self._diagnostics if d.severity == DiagnosticSeverity.INFO]

        if warnings:
            print(f'\nBindgen warnings ({len(warnings)}):', file=file)
            by_construct: Dict[str, List[Diagnostic]] = {}
            for w in warnings:
                by_construct.setdefault(w.construct or 'other', []).append(w)

            for construct, diags in sorted(by_construct.items()):
                print(f'  {construct}: {len(diags)} occurrence(s)', file=file)
                if self._verbose:
                    for d in diags:
                        print(f'    {d}', file=file)

        if infos and self._verbose:
            print(f'\nBindgen info ({len(infos)}):', file=file)
            for d in infos:
                print(f'  {d}', file=file)
