from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Tuple


class FieldShape(Enum):
    SCALAR = auto()
    MESSAGE = auto()
    REPEATED = auto()
    MAP = auto()
    ENUM_MEMBER = auto()


@dataclass(frozen=True)
class TypeName:
    """A resolved proto type name; is_import marks a schema-namespace type."""

    name: str
    is_import: bool = False


@dataclass(frozen=True)
class SchemaField:
    types: Tuple[TypeName, ...]
    property_name: str
    number: int
    shape: FieldShape = FieldShape.SCALAR

    @property
    def is_repeated(self) -> bool:
        return self.shape is FieldShape.REPEATED

    @property
    def is_map(self) -> bool:
        return self.shape is FieldShape.MAP


@dataclass(frozen=True)
class EnumEntry:
    name: str
    value: int


@dataclass(frozen=True)
class EnumNode:
    name: str
    entries: Tuple[EnumEntry, ...] = ()


@dataclass(frozen=True)
class UnionEntry:
    type_name: str
    name: str
    number: int
    is_import: bool = False


@dataclass(frozen=True)
class UnionGroup:
    """A oneof: a discriminator enum plus one property per member."""

    name: str
    entries: Tuple[UnionEntry, ...] = ()


@dataclass(frozen=True)
class SchemaNode:
    """A reconstructed message (or enum, when is_enum is set)."""

    name: str
    cmd_id: int = 0
    fields: Tuple[SchemaField, ...] = ()
    enums: Tuple[EnumNode, ...] = ()
    nested: Tuple[SchemaNode, ...] = ()
    oneofs: Tuple[UnionGroup, ...] = ()
    is_nested: bool = False
    is_enum: bool = False
