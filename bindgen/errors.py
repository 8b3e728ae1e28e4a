"""
Error kinds raised by the bindings generator.

Every failure surfaced by the generator is a BindgenError subclass. The
message carries a prefix naming the stage (parse, sanitize, emit, ...) and
the offending element (file, contract, field path) so that the driver can
print a single human-readable line.
"""

from typing import Optional


class BindgenError(Exception):
    """Base class for all generator errors."""

    def __init__(self, message: str, stage: str = '', element: str = ''):
        self.message = message
        self.stage = stage
        self.element = element
        super().__init__(self._format())

    def _format(self) -> str:
        prefix = ''
        if self.stage:
            prefix = f'{self.stage}: '
        if self.element:
            prefix = f'{prefix}{self.element}: '
        return f'{prefix}{self.message}'

    def with_context(self, stage: str = '', element: str = '') -> 'BindgenError':
        """Return a copy of this error with an outer stage/element prefix."""
        wrapped = type(self).__new__(type(self))
        wrapped.__dict__.update(self.__dict__)
        wrapped.message = str(self)
        wrapped.stage = stage
        wrapped.element = element
        Exception.__init__(wrapped, wrapped._format())
        return wrapped


class InputNotFound(BindgenError):
    """A required path (contracts root, abi/idl directory, file) does not exist."""


class EmptyInput(BindgenError):
    """An input directory contains no .abi/.json files."""


class MalformedDescriptor(BindgenError):
    """JSON parse failure, missing required field or unknown type token."""


class IllegalIdentifier(BindgenError):
    """A name cannot be turned into a valid Python identifier."""


class PackageCollision(BindgenError):
    """Two inputs sanitize to the same package name."""

    def __init__(self, package_name: str):
        self.package_name = package_name
        super().__init__(
            f"package name collision: multiple contracts would generate the same "
            f"package name '{package_name}' (contracts are converted to snake_case "
            f"for package names). Please rename one of your contract files to avoid "
            f"this conflict"
        )


class UnsupportedLanguage(BindgenError):
    """The requested host language is not supported."""

    def __init__(self, language: str):
        self.language = language
        super().__init__(f'unsupported language: {language}')


class EmissionFailure(BindgenError):
    """Rendering or writing an output file failed."""


class PostProcessFailure(BindgenError):
    """The dependency-reconciliation step failed."""


class GenerationCancelled(BindgenError):
    """The invoker requested cancellation between two files."""

    def __init__(self, remaining: Optional[int] = None):
        message = 'generation cancelled'
        if remaining:
            message = f'{message} ({remaining} file(s) not processed)'
        super().__init__(message)
