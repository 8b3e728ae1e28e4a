"""
Source emission for generated Python modules.

Generators describe a module as data: a docstring, a set of imports and a
list of declarations (constants, classes, functions). A thin SourceWriter
renders them to text. The emitter owns formatting concerns only:
indentation, import grouping and ordering, literal rendering. Output is a
pure function of its input so repeated runs produce identical files.
"""

import json
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Tuple


GENERATED_HEADER = 'Code generated by generate-bindings. DO NOT EDIT.'

MAX_LINE_LENGTH = 100

# Import groups, rendered in this order separated by a blank line
STDLIB = 0
THIRD_PARTY = 1
LOCAL = 2


@dataclass(frozen=True)
class Import:
    """One import statement of a generated module."""
    module: str
    names: Tuple[str, ...] = ()
    alias: str = ''
    group: int = STDLIB

    def render(self) -> str:
        if self.names:
            single = f'from {self.module} import {", ".join(self.names)}'
            if len(single) <= MAX_LINE_LENGTH:
                return single
            return '\n'.join([f'from {self.module} import (', *[f'    {n},' for n in self.names], ')'])
        if self.alias:
            return f'import {self.module} as {self.alias}'
        return f'import {self.module}'


def render_imports(imports: Iterable[Import]) -> List[str]:
    """
    Merge, sort and group imports.

    'from x import a' and 'from x import b' become 'from x import a, b'.
    Within a group plain imports come before from-imports, each sorted by
    module name, relative modules last.
    """
    plain: Dict[int, set] = {}
    from_names: Dict[Tuple[int, str], set] = {}
    for imp in imports:
        if imp.names:
            from_names.setdefault((imp.group, imp.module), set()).update(imp.names)
        else:
            plain.setdefault(imp.group, set()).add(imp)

    lines: List[str] = []
    for group in (STDLIB, THIRD_PARTY, LOCAL):
        group_lines = [i.render() for i in sorted(plain.get(group, ()), key=lambda i: (i.module, i.alias))]
        # Relative imports come after absolute ones
        ordered = sorted(from_names.items(), key=lambda item: (item[0][1].startswith('.'), item[0][1]))
        for (g, module), names in ordered:
            if g == group:
                group_lines.append(Import(module, tuple(sorted(names)), group=g).render())
        if group_lines:
            if lines:
                lines.append('')
            lines.extend(group_lines)
    return lines


class SourceWriter:
    """
    Line-oriented writer with indentation state.

    Usage:
        w = SourceWriter()
        with w.block('class Foo:'):
            w.line('x: int')
        source = w.render()
    """

    def __init__(self, indent_str: str = '    '):
        self.indent_str = indent_str
        self.indent_level = 0
        self.lines: List[str] = []

    def indent(self) -> str:
        """Return the current indentation string."""
        return self.indent_str * self.indent_level

    def line(self, text: str = '') -> None:
        if text:
            self.lines.append(f'{self.indent()}{text}')
        else:
            self.lines.append('')

    def extend(self, lines: Iterable[str]) -> None:
        for text in lines:
            self.line(text)

    def blank(self, count: int = 1) -> None:
        # Never more than `count` blank lines in a row
        trailing = 0
        for text in reversed(self.lines):
            if text:
                break
            trailing += 1
        for _ in range(count - trailing):
            self.lines.append('')

    @contextmanager
    def indented(self) -> Iterator[None]:
        self.indent_level += 1
        try:
            yield
        finally:
            self.indent_level -= 1

    @contextmanager
    def block(self, header: str) -> Iterator[None]:
        """Write header (a line ending with ':') and indent its body."""
        self.line(header)
        with self.indented():
            yield

    def docstring(self, text: str) -> None:
        text_lines = text.strip('\n').split('\n')
        if len(text_lines) == 1:
            self.line(f'"""{text_lines[0]}"""')
            return
        self.line('"""')
        self.extend(text_lines)
        self.line('"""')

    def banner(self, title: str) -> None:
        """Section separator used between groups of declarations."""
        rule = '# ' + '=' * (77 - len(self.indent()))
        self.line(rule)
        self.line(f'# {title}')
        self.line(rule)
        self.blank()

    def render(self) -> str:
        while self.lines and not self.lines[-1]:
            self.lines.pop()
        return '\n'.join(self.lines) + '\n'


# =============================================================================
# DECLARATIONS
# =============================================================================

@dataclass
class Constant:
    """NAME = value (value may span lines)."""
    name: str
    value: str
    annotation: str = ''

    def write(self, w: SourceWriter) -> None:
        target = f'{self.name}: {self.annotation}' if self.annotation else self.name
        value_lines = self.value.split('\n')
        w.line(f'{target} = {value_lines[0]}')
        w.extend(value_lines[1:])


@dataclass
class Field:
    """A class-level annotated attribute, with an optional default."""
    name: str
    annotation: str
    default: str = ''

    def write(self, w: SourceWriter) -> None:
        if self.default:
            w.line(f'{self.name}: {self.annotation} = {self.default}')
        else:
            w.line(f'{self.name}: {self.annotation}')


@dataclass
class Function:
    name: str
    params: List[str] = field(default_factory=list)
    body: List[str] = field(default_factory=list)
    returns: str = ''
    decorators: List[str] = field(default_factory=list)
    docstring: str = ''

    def write(self, w: SourceWriter) -> None:
        for decorator in self.decorators:
            w.line(f'@{decorator}')
        returns = f' -> {self.returns}' if self.returns else ''
        signature = f'def {self.name}({", ".join(self.params)}){returns}:'
        if len(w.indent()) + len(signature) <= MAX_LINE_LENGTH or not self.params:
            w.line(signature)
        else:
            w.line(f'def {self.name}(')
            with w.indented():
                w.extend(f'{param},' for param in self.params)
            w.line(f'){returns}:')
        with w.indented():
            if self.docstring:
                w.docstring(self.docstring)
            w.extend(self.body or ['pass'])


@dataclass
class Raw:
    """Verbatim lines, indented at the point of use."""
    lines: List[str] = field(default_factory=list)

    def write(self, w: SourceWriter) -> None:
        w.extend(self.lines)


@dataclass
class ClassDecl:
    name: str
    bases: List[str] = field(default_factory=list)
    members: List[Any] = field(default_factory=list)
    decorators: List[str] = field(default_factory=list)
    docstring: str = ''

    def write(self, w: SourceWriter) -> None:
        for decorator in self.decorators:
            w.line(f'@{decorator}')
        bases = f'({", ".join(self.bases)})' if self.bases else ''
        with w.block(f'class {self.name}{bases}:'):
            if self.docstring:
                w.docstring(self.docstring)
            if not self.members and not self.docstring:
                w.line('pass')
            previous = None
            for member in self.members:
                # Attributes stay together; everything else is set apart
                if previous is not None and not (
                    isinstance(member, (Field, Constant)) and isinstance(previous, (Field, Constant))
                ):
                    w.blank()
                elif previous is None and self.docstring and not isinstance(member, (Field, Constant)):
                    w.blank()
                member.write(w)
                previous = member


@dataclass
class Banner:
    """Section separator between groups of top-level declarations."""
    title: str

    def write(self, w: SourceWriter) -> None:
        w.banner(self.title)


@dataclass
class Module:
    """
    A generated module: docstring, imports and a list of declarations.

    Consecutive top-level Constants are kept together; every other
    declaration is separated by two blank lines.
    """
    docstring: str
    imports: List[Import] = field(default_factory=list)
    declarations: List[Any] = field(default_factory=list)

    def add_import(self, module: str, *names: str, alias: str = '', group: int = STDLIB) -> None:
        imp = Import(module, tuple(names), alias, group)
        if imp not in self.imports:
            self.imports.append(imp)

    def add(self, *declarations: Any) -> None:
        self.declarations.extend(declarations)

    def render(self) -> str:
        w = SourceWriter()
        w.docstring(self.docstring)
        import_lines = render_imports(self.imports)
        if import_lines:
            w.blank()
            w.extend(import_lines)
        previous = None
        for decl in self.declarations:
            if isinstance(decl, Constant) and isinstance(previous, Constant):
                pass
            elif isinstance(previous, Banner):
                pass
            else:
                w.blank(2)
            decl.write(w)
            previous = decl
        return w.render()


# =============================================================================
# LITERALS
# =============================================================================

def bytes_literal(value: bytes) -> str:
    """bytes.fromhex('a9059cbb')"""
    return f"bytes.fromhex('{value.hex()}')"


def json_literal_lines(source: str, width: int = 72) -> List[str]:
    """
    Render a JSON document as a json.loads(...) call spread over lines.

    The document is re-serialized compactly with sorted keys so that the
    generated constant does not depend on the input's formatting.
    """
    compact = json.dumps(json.loads(source), separators=(',', ':'), sort_keys=True)
    chunks = [compact[i:i + width] for i in range(0, len(compact), width)] or ['']
    lines = ['json.loads(']
    lines.extend(f'    {chunk!r}' for chunk in chunks)
    lines.append(')')
    return lines
