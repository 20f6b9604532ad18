from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Dict, List, Set

from jinja2 import Environment, FileSystemLoader

from proto_dumper.models import SchemaField, SchemaNode


def to_snake(name: str) -> str:
    """Convert PascalCase/camelCase accessor names to proto snake_case.

    AbilityNameHash -> ability_name_hash, HTTPInfo -> http_info.
    """
    s = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    s = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s)
    return s.lower()


def _field_decl(field: SchemaField) -> str:
    """Render everything left of `= N;` for a message field."""
    name = to_snake(field.property_name)
    type_names = [t.name for t in field.types]
    if field.is_map:
        return f"map<{type_names[0]}, {type_names[1]}> {name}"
    if field.is_repeated:
        return f"repeated {type_names[0]} {name}"
    return f"{type_names[0]} {name}"


def _node_context(node: SchemaNode) -> Dict:
    if node.is_enum:
        fields = [{"name": f.types[0].name, "number": f.number} for f in node.fields]
    else:
        fields = [{"decl": _field_decl(f), "number": f.number} for f in node.fields]

    return {
        "name": node.name,
        "cmd_id": node.cmd_id,
        "is_enum": node.is_enum,
        "fields": fields,
        "enums": node.enums,
        "nested": [_node_context(child) for child in node.nested],
        "oneofs": [
            {
                "name": to_snake(oneof.name),
                "entries": [
                    {
                        "type_name": entry.type_name,
                        "name": to_snake(entry.name),
                        "number": entry.number,
                    }
                    for entry in oneof.entries
                ],
            }
            for oneof in node.oneofs
        ],
    }


def collect_imports(node: SchemaNode) -> List[str]:
    """Names of schema types referenced anywhere in the node tree.

    The node's own name is left out; the result is sorted for stable output.
    """
    found: Set[str] = set()

    def visit(n: SchemaNode) -> None:
        for f in n.fields:
            found.update(t.name for t in f.types if t.is_import)
        for oneof in n.oneofs:
            found.update(e.type_name for e in oneof.entries if e.is_import)
        for child in n.nested:
            visit(child)

    visit(node)
    found.discard(node.name)
    return sorted(found)


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent.parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def generate_proto(node: SchemaNode) -> str:
    """Generate proto3 source for one top-level schema node."""
    env = _get_template_env()
    template = env.get_template("message.proto.j2")
    return template.render(
        node=_node_context(node),
        imports=collect_imports(node),
    )


def generate_protos(nodes: List[SchemaNode], output_dir: str) -> List[str]:
    """Write one <Name>.proto per node into output_dir.

    Returns list of generated file paths.
    """
    os.makedirs(output_dir, exist_ok=True)

    generated: List[str] = []
    for node in nodes:
        source = generate_proto(node)
        file_path = os.path.join(output_dir, f"{node.name}.proto")
        Path(file_path).write_text(source)
        generated.append(file_path)

    return generated
