"""
Composite type registry for one contract.

The CompositeRegistry performs a first pass over a ContractDescriptor to
discover every tuple type before code generation. Each distinct structure
is registered once, children before parents, under a deterministic class
name, and every generated class name in the contract module is claimed
through the registry so that clashes are reported instead of silently
shadowing a definition.
"""

from typing import Dict, List, Optional, Tuple as TupleType

from ..abi import ContractDescriptor, DynArray, FixedArray, Tuple, TypeExpr
from ..errors import IllegalIdentifier
from ..naming import is_valid_identifier, to_pascal_case


class CompositeRegistry:
    """
    Registry of tuple types referenced by a contract.

    Naming policy, in order:
    - the struct name found in internalType
    - <Parent><Field> for anonymous tuples nested in a named context
    - <Method>Output for a bare anonymous return tuple
    Distinct structures that end up with the same name get a numeric suffix.
    """

    def __init__(self, contract_name: str = ''):
        self.contract_name = contract_name
        self._names: Dict[str, str] = {}  # structural identity -> class name
        self._composites: List[TupleType[str, Tuple]] = []
        self._claimed: Dict[str, str] = {}  # class name -> owner description

    # =========================================================================
    # DISCOVERY
    # =========================================================================

    def discover_contract(self, descriptor: ContractDescriptor) -> None:
        """Register all tuples of a contract in deterministic order."""
        for method in sorted(descriptor.methods, key=lambda m: m.name):
            owner = to_pascal_case(method.name)
            for param in method.inputs:
                self.register(param.type, f'{owner}{to_pascal_case(param.name)}')
            if len(method.outputs) == 1 and method.outputs[0].positional:
                self.register(method.outputs[0].type, f'{owner}Output')
            else:
                for param in method.outputs:
                    self.register(param.type, f'{owner}{to_pascal_case(param.name)}')
        for event in sorted(descriptor.events, key=lambda e: e.name):
            owner = to_pascal_case(event.name)
            for param in event.inputs:
                self.register(param.type, f'{owner}{to_pascal_case(param.name)}')
        for error in sorted(descriptor.errors, key=lambda e: e.name):
            owner = to_pascal_case(error.name)
            for param in error.inputs:
                self.register(param.type, f'{owner}{to_pascal_case(param.name)}')

    def register(self, expr: TypeExpr, hint: str) -> Optional[str]:
        """
        Register every tuple inside expr, children first.

        Args:
            expr: The type expression to walk
            hint: Name to use when the outermost tuple has no struct name

        Returns:
            The class name of the outermost tuple, or None if expr holds none
        """
        if isinstance(expr, (FixedArray, DynArray)):
            return self.register(expr.elem, hint)
        if not isinstance(expr, Tuple):
            return None

        identity = expr.identity
        if identity in self._names:
            return self._names[identity]

        base = to_pascal_case(expr.name) if expr.name else hint
        for f in expr.fields:
            self.register(f.type, f'{base}{to_pascal_case(f.name)}')

        name = self._unique(base)
        self._names[identity] = name
        self._claimed[name] = f'struct {identity}'
        self._composites.append((name, expr))
        return name

    def _unique(self, base: str) -> str:
        if not is_valid_identifier(base):
            raise IllegalIdentifier(f"invalid name '{base}' for struct", element=self.contract_name)
        if base not in self._claimed:
            return base
        index = 1
        while f'{base}{index}' in self._claimed:
            index += 1
        return f'{base}{index}'

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def name_of(self, expr: Tuple) -> str:
        """Class name of a registered tuple."""
        try:
            return self._names[expr.identity]
        except KeyError:
            raise KeyError(f'tuple {expr.canonical} was not registered') from None

    @property
    def composites(self) -> List[TupleType[str, Tuple]]:
        """(class name, tuple) pairs in registration order (children first)."""
        return list(self._composites)

    def claim(self, name: str, owner: str) -> str:
        """
        Reserve a generated class name.

        Raises:
            IllegalIdentifier: If the name is taken by another declaration
        """
        if not is_valid_identifier(name):
            raise IllegalIdentifier(f"invalid name '{name}' for {owner}", element=self.contract_name)
        if name in self._claimed:
            raise IllegalIdentifier(
                f"name '{name}' for {owner} clashes with {self._claimed[name]}",
                element=self.contract_name,
            )
        self._claimed[name] = owner
        return name
