"""Rebuild proto schema nodes from compiled protobuf classes.

Generated message classes keep enough of their source schema to recover it:

  - every field number survives as a constant `<Property>FieldNumber`;
  - the property's declared type gives the field type, with repeated and map
    fields recognizable by their collection container type;
  - a oneof compiles to a `<Name>OneofCase` enum with one constant per member;
  - nested enums and messages live in a synthetic `Types` class.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import List, Optional, Set, Tuple

from proto_dumper.config import ReconstructionConfig
from proto_dumper.metadata.model import (
    FieldDefinition,
    ModuleDefinition,
    PropertyDefinition,
    TypeDefinition,
    TypeReference,
)
from proto_dumper.models import (
    EnumEntry,
    EnumNode,
    FieldShape,
    SchemaField,
    SchemaNode,
    TypeName,
    UnionEntry,
    UnionGroup,
)
from proto_dumper.type_mapper import TypeMapper

logger = logging.getLogger(__name__)


class UnionMemberMissing(Exception):
    """Raised when a oneof case has no property of the same name."""


def classify_property_type(type_ref: TypeReference, config: ReconstructionConfig) -> FieldShape:
    """Decide the container shape of a property type from its full name.

    Containers whose generic arity does not fit fall through to a plain field.
    """
    full_name = type_ref.full_name
    arity = len(type_ref.generic_arguments)
    if arity == 1 and any(full_name.startswith(c) for c in config.repeated_containers):
        return FieldShape.REPEATED
    if arity == 2 and any(full_name.startswith(c) for c in config.map_containers):
        return FieldShape.MAP
    return FieldShape.SCALAR


class ProtoReconstructor:
    """Derive SchemaNode trees from type metadata."""

    def __init__(self, config: Optional[ReconstructionConfig] = None, mapper: Optional[TypeMapper] = None):
        self.config = config or ReconstructionConfig()
        self.mapper = mapper or TypeMapper(self.config.schema_namespace, self.config.scalar_types)

    # -- public API --

    def reconstruct_module(self, module: ModuleDefinition) -> List[SchemaNode]:
        """Reconstruct every schema-namespace type of the module, in order."""
        return [
            self.reconstruct_type(type_def)
            for type_def in module.get_types()
            if type_def.namespace == self.config.schema_namespace
        ]

    def reconstruct_type(self, type_def: TypeDefinition, nested: bool = False) -> SchemaNode:
        cfg = self.config
        cmd_id = 0
        enums: List[EnumNode] = []
        nested_nodes: List[SchemaNode] = []
        oneofs: List[UnionGroup] = []
        excluded: Set[str] = set()

        # Oneofs first: their member properties must not become plain fields.
        for nested_type in type_def.nested_types:
            if nested_type.name.endswith(cfg.oneof_suffix):
                oneof = self._reconstruct_oneof(type_def, nested_type)
                excluded.update(entry.name for entry in oneof.entries)
                oneofs.append(oneof)
            elif nested_type.name == cfg.types_container:
                for inner in nested_type.nested_types:
                    if self._is_enum(inner):
                        enum_node, enum_cmd_id = self._reconstruct_enum(inner)
                        if enum_cmd_id is not None:
                            cmd_id = enum_cmd_id
                        enums.append(enum_node)
                    else:
                        nested_nodes.append(self.reconstruct_type(inner, nested=True))

        is_enum = self._is_enum(type_def)
        if is_enum:
            fields = self._enum_members(type_def)
        else:
            fields = self._message_fields(type_def, excluded)
            self._warn_duplicate_numbers(type_def, fields, oneofs)

        return SchemaNode(
            name=type_def.name,
            cmd_id=cmd_id,
            fields=tuple(fields),
            enums=tuple(enums),
            nested=tuple(nested_nodes),
            oneofs=tuple(oneofs),
            is_nested=nested,
            is_enum=is_enum,
        )

    # -- nested types --

    def _is_enum(self, type_def: TypeDefinition) -> bool:
        base = type_def.base_type
        return base is not None and base.full_name == self.config.enum_base_type

    def _enum_constants(self, type_def: TypeDefinition) -> List[FieldDefinition]:
        return [
            f for f in type_def.fields
            if f.has_constant and f.name not in self.config.enum_sentinels
        ]

    def _reconstruct_enum(self, enum_type: TypeDefinition) -> Tuple[EnumNode, Optional[int]]:
        """Return the enum node and, if it declares one, the command id."""
        cmd_id: Optional[int] = None
        entries: List[EnumEntry] = []
        for f in self._enum_constants(enum_type):
            value = int(f.constant)
            if f.name == self.config.cmd_id_name:
                cmd_id = value
            entries.append(EnumEntry(name=f.name, value=value))
        return EnumNode(name=enum_type.name, entries=tuple(entries)), cmd_id

    def _reconstruct_oneof(self, owner: TypeDefinition, case_enum: TypeDefinition) -> UnionGroup:
        entries: List[UnionEntry] = []
        for f in self._enum_constants(case_enum):
            number = int(f.constant)
            if number == 0:
                continue
            prop = owner.find_property(f.name)
            if prop is None:
                raise UnionMemberMissing(
                    f"Oneof case '{f.name}' of '{case_enum.full_name}' has no "
                    f"matching property on '{owner.full_name}'. "
                    f"Available properties: {[p.name for p in owner.properties]}"
                )
            entries.append(
                UnionEntry(
                    type_name=self.mapper.map_type(prop.property_type),
                    name=f.name,
                    number=number,
                    is_import=self.mapper.is_local(prop.property_type),
                )
            )
        name = case_enum.name[: -len(self.config.oneof_suffix)]
        return UnionGroup(name=name, entries=tuple(entries))

    # -- fields --

    def _enum_members(self, type_def: TypeDefinition) -> List[SchemaField]:
        # Only the storage field is dropped here; `None` is a real member.
        return [
            SchemaField(
                types=(TypeName(f.name),),
                property_name="",
                number=int(f.constant),
                shape=FieldShape.ENUM_MEMBER,
            )
            for f in type_def.fields
            if f.has_constant and f.name != self.config.enum_value_field
        ]

    def _message_fields(self, type_def: TypeDefinition, excluded: Set[str]) -> List[SchemaField]:
        suffix = self.config.field_number_suffix
        fields: List[SchemaField] = []

        for f in type_def.fields:
            if not (f.has_constant and f.name.endswith(suffix)):
                continue
            property_name = f.name[: -len(suffix)]
            prop = type_def.find_property(property_name)
            if prop is None:
                logger.debug(
                    "Skipping %s.%s: no property named '%s'",
                    type_def.full_name, f.name, property_name,
                )
                continue
            if prop.name in excluded:
                continue
            fields.append(self._build_field(type_def, prop, int(f.constant)))

        return fields

    def _build_field(self, owner: TypeDefinition, prop: PropertyDefinition, number: int) -> SchemaField:
        override = self.config.field_overrides.get((owner.name, prop.name))
        if override is not None:
            return SchemaField(
                types=(TypeName(override),),
                property_name=prop.name,
                number=number,
                shape=FieldShape.SCALAR,
            )

        prop_type = prop.property_type
        shape = classify_property_type(prop_type, self.config)
        if shape in (FieldShape.REPEATED, FieldShape.MAP):
            types = tuple(self._type_name(arg) for arg in prop_type.generic_arguments)
        else:
            types = (self._type_name(prop_type),)
            if self.mapper.is_local(prop_type) or prop_type.is_nested:
                shape = FieldShape.MESSAGE

        return SchemaField(types=types, property_name=prop.name, number=number, shape=shape)

    def _type_name(self, type_ref: TypeReference) -> TypeName:
        return TypeName(self.mapper.map_type(type_ref), self.mapper.is_local(type_ref))

    def _warn_duplicate_numbers(
        self, type_def: TypeDefinition, fields: List[SchemaField], oneofs: List[UnionGroup]
    ) -> None:
        """Oneof members share the message's tag space with its plain fields."""
        counts = Counter(f.number for f in fields)
        counts.update(entry.number for oneof in oneofs for entry in oneof.entries)
        for number, count in counts.items():
            if count > 1:
                logger.warning(
                    "%s: field number %d is used by %d fields",
                    type_def.full_name, number, count,
                )
