"""Object model for the compiled type metadata of a module."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class TypeReference:
    """A reference to a type, e.g. the declared type of a property.

    full_name follows the reflection convention: `Ns.Outer/Inner` for nested
    types and `Ns.Name`1<Arg>` for generic instantiations.
    """

    full_name: str
    name: str
    namespace: str = ""
    is_nested: bool = False
    generic_arguments: Tuple[TypeReference, ...] = ()


@dataclass(frozen=True)
class FieldDefinition:
    """A declared field; constant fields carry their literal value."""

    name: str
    constant: Optional[int] = None
    has_constant: bool = False


@dataclass(frozen=True)
class PropertyDefinition:
    name: str
    property_type: TypeReference


@dataclass
class TypeDefinition:
    """A type declared in a module, with its members and nested types."""

    name: str
    namespace: str = ""
    base_type: Optional[TypeReference] = None
    fields: List[FieldDefinition] = field(default_factory=list)
    properties: List[PropertyDefinition] = field(default_factory=list)
    nested_types: List[TypeDefinition] = field(default_factory=list)
    declaring_type: Optional[TypeDefinition] = field(default=None, repr=False, compare=False)

    @property
    def full_name(self) -> str:
        if self.declaring_type is not None:
            return f"{self.declaring_type.full_name}/{self.name}"
        if self.namespace:
            return f"{self.namespace}.{self.name}"
        return self.name

    @property
    def is_nested(self) -> bool:
        return self.declaring_type is not None

    def find_property(self, name: str) -> Optional[PropertyDefinition]:
        """Return the declared property with exactly this name, if any."""
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


@dataclass
class ModuleDefinition:
    """A loaded module: its top-level types in declaration order."""

    name: str
    types: List[TypeDefinition] = field(default_factory=list)

    def get_types(self) -> Iterator[TypeDefinition]:
        """Yield every type, each nested type right after its declaring type."""
        stack = list(reversed(self.types))
        while stack:
            type_def = stack.pop()
            yield type_def
            stack.extend(reversed(type_def.nested_types))

    def get_type(self, full_name: str) -> Optional[TypeDefinition]:
        for type_def in self.get_types():
            if type_def.full_name == full_name:
                return type_def
        return None
