from __future__ import annotations

import logging
from typing import Dict, Optional

from proto_dumper.config import DEFAULT_SCALAR_TYPES
from proto_dumper.metadata.model import TypeReference

logger = logging.getLogger(__name__)

# Placeholder prefix for types missing from the scalar table; grep for it in
# generated output.
UNKNOWN_TYPE_PREFIX = "UNK_"


class TypeMapper:
    """Map type references to proto scalar or message names."""

    def __init__(self, schema_namespace: str = "Proto", scalar_types: Optional[Dict[str, str]] = None):
        self.schema_namespace = schema_namespace
        self.scalar_types = dict(DEFAULT_SCALAR_TYPES if scalar_types is None else scalar_types)

    def is_local(self, type_ref: TypeReference) -> bool:
        """Whether the type is defined in the schema namespace."""
        return type_ref.namespace == self.schema_namespace

    def map_type(self, type_ref: TypeReference) -> str:
        """Return the proto name for `type_ref`.

        Schema and nested types are cross-references and keep their simple
        name. Unknown types log a warning and map to an UNK_ placeholder so
        that one gap in the table does not abort the whole dump.
        """
        if self.is_local(type_ref) or type_ref.is_nested:
            return type_ref.name

        proto_type = self.scalar_types.get(type_ref.full_name)
        if proto_type is not None:
            return proto_type

        logger.warning('Unknown type "%s" found!', type_ref.full_name)
        return f"{UNKNOWN_TYPE_PREFIX}{type_ref.full_name}"
