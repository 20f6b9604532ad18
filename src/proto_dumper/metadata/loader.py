"""Load a module's type metadata from a JSON dump.

The dump is produced by an external reflection tool and looks like:

    {
      "name": "Assembly-CSharp",
      "types": [
        {
          "name": "PlayerLoginReq",
          "namespace": "Proto",
          "base_type": "System.Object",
          "fields": [{"name": "TokenFieldNumber", "constant": 1}],
          "properties": [{"name": "Token", "type": "System.String"}],
          "nested_types": []
        }
      ]
    }

A type reference is either a full-name string (`Ns.Outer/Inner`,
`Ns.Generic`1<Arg>`) or an object with `full_name` plus optional `name`,
`namespace`, `is_nested` and `generic_arguments` overriding what the full
name implies.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .model import (
    FieldDefinition,
    ModuleDefinition,
    PropertyDefinition,
    TypeDefinition,
    TypeReference,
)


class MetadataError(Exception):
    """Raised when a metadata dump cannot be read into the object model."""


def load_module(file_path: str) -> ModuleDefinition:
    """Read a JSON metadata dump from disk."""
    try:
        data = json.loads(Path(file_path).read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MetadataError(f"{file_path}: not a UTF-8 JSON document: {e}") from e
    module = module_from_dict(data, default_name=Path(file_path).stem)
    return module


def module_from_dict(data: Dict[str, Any], default_name: str = "") -> ModuleDefinition:
    if not isinstance(data, dict):
        raise MetadataError("Metadata dump must be a JSON object")
    types = data.get("types", [])
    if not isinstance(types, list):
        raise MetadataError("'types' must be a list")
    return ModuleDefinition(
        name=data.get("name", default_name),
        types=[_parse_type(t, declaring_type=None) for t in types],
    )


def parse_type_name(full_name: str) -> TypeReference:
    """Build a TypeReference from a reflection-style full name."""
    full_name = full_name.strip()
    base, args = _split_generic(full_name)

    if "/" in base:
        name = base.rsplit("/", 1)[1]
        namespace = ""
        is_nested = True
    else:
        namespace, _, name = base.rpartition(".")
        is_nested = False

    return TypeReference(
        full_name=full_name,
        name=name,
        namespace=namespace,
        is_nested=is_nested,
        generic_arguments=tuple(parse_type_name(a) for a in args),
    )


def _split_generic(full_name: str) -> Tuple[str, List[str]]:
    """Split `Base<A,B<C>>` into ("Base", ["A", "B<C>"])."""
    open_pos = full_name.find("<")
    if open_pos == -1:
        return full_name, []
    if not full_name.endswith(">"):
        raise MetadataError(f"Malformed generic type name: {full_name!r}")

    inner = full_name[open_pos + 1:-1]
    args: List[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(inner):
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
            if depth < 0:
                raise MetadataError(f"Malformed generic type name: {full_name!r}")
        elif ch == "," and depth == 0:
            args.append(inner[start:i].strip())
            start = i + 1
    if depth != 0:
        raise MetadataError(f"Malformed generic type name: {full_name!r}")
    args.append(inner[start:].strip())
    return full_name[:open_pos], [a for a in args if a]


def _parse_type_ref(value: Any) -> TypeReference:
    if isinstance(value, str):
        return parse_type_name(value)
    if not isinstance(value, dict) or "full_name" not in value:
        raise MetadataError(f"Invalid type reference: {value!r}")

    ref = parse_type_name(value["full_name"])
    generic_arguments = ref.generic_arguments
    if "generic_arguments" in value:
        generic_arguments = tuple(_parse_type_ref(a) for a in value["generic_arguments"])

    return TypeReference(
        full_name=ref.full_name,
        name=value.get("name", ref.name),
        namespace=value.get("namespace", ref.namespace),
        is_nested=bool(value.get("is_nested", ref.is_nested)),
        generic_arguments=generic_arguments,
    )


def _parse_field(value: Dict[str, Any]) -> FieldDefinition:
    if "constant" not in value:
        return FieldDefinition(name=value["name"])
    constant = value["constant"]
    # bool is an int subclass but never a valid literal here
    if not isinstance(constant, int) or isinstance(constant, bool):
        raise MetadataError(
            f"Field '{value['name']}' has a non-integer constant: {constant!r}"
        )
    return FieldDefinition(name=value["name"], constant=constant, has_constant=True)


def _parse_property(value: Dict[str, Any]) -> PropertyDefinition:
    return PropertyDefinition(
        name=value["name"],
        property_type=_parse_type_ref(value["type"]),
    )


def _parse_type(value: Dict[str, Any], declaring_type: Optional[TypeDefinition]) -> TypeDefinition:
    try:
        base_type = value.get("base_type")
        type_def = TypeDefinition(
            name=value["name"],
            namespace=value.get("namespace", ""),
            base_type=_parse_type_ref(base_type) if base_type is not None else None,
            fields=[_parse_field(f) for f in value.get("fields", [])],
            properties=[_parse_property(p) for p in value.get("properties", [])],
            declaring_type=declaring_type,
        )
        # Children need the parent object to build their full names.
        type_def.nested_types = [
            _parse_type(n, declaring_type=type_def) for n in value.get("nested_types", [])
        ]
    except (KeyError, TypeError, AttributeError) as e:
        raise MetadataError(f"Invalid type definition {value!r}: {e}") from e
    return type_def
