"""Tables and naming conventions that drive schema reconstruction.

Everything protocol-specific lives here so that another compiled protocol can
be handled by swapping the configuration instead of touching the engine.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

# Platform scalar type -> proto scalar type
DEFAULT_SCALAR_TYPES: Dict[str, str] = {
    "System.UInt32": "uint32",
    "System.UInt64": "uint64",
    "System.Boolean": "bool",
    "System.Int32": "int32",
    "System.Int64": "int64",
    "System.String": "string",
    "System.Single": "float",
    "System.Double": "double",
    "Google.Protobuf.ByteString": "bytes",
}

# Fields known to be fixed32 on the wire although they compile to uint32.
DEFAULT_FIELD_OVERRIDES: Dict[Tuple[str, str], str] = {
    ("HomeVerifyData", "Timestamp"): "fixed32",
    ("HomePlantSubFieldData", "EndTime"): "fixed32",
    ("AbilityEmbryo", "AbilityNameHash"): "fixed32",
    ("AbilityEmbryo", "AbilityOverrideNameHash"): "fixed32",
    ("HomeResource", "NextRefreshTime"): "fixed32",
    ("HomePriorCheckNotify", "EndTime"): "fixed32",
    ("FurnitureMakeBeHelpedData", "Time"): "fixed32",
    ("HomeLimitedShopInfo", "NextOpenTime"): "fixed32",
    ("HomeLimitedShopInfo", "NextGuestOpenTime"): "fixed32",
    ("HomeLimitedShopInfo", "NextCloseTime"): "fixed32",
    ("FurnitureMakeData", "BeginTime"): "fixed32",
    ("FurnitureMakeData", "AccelerateTime"): "fixed32",
}

REPEATED_PRIMITIVE_FIELD = "Google.Protobuf.Collections.RepeatedPrimitiveField`1"
REPEATED_FIELD = "Google.Protobuf.Collections.RepeatedField`1"
MAP_FIELD = "Google.Protobuf.Collections.MapField`2"
MESSAGE_MAP_FIELD = "Google.Protobuf.Collections.MessageMapField`2"


class ConfigError(Exception):
    """Raised when a configuration file is malformed."""


@dataclass(frozen=True)
class ReconstructionConfig:
    schema_namespace: str = "Proto"
    marker_type: str = "Google.Protobuf.IMessage"
    enum_base_type: str = "System.Enum"
    repeated_containers: Tuple[str, ...] = (REPEATED_PRIMITIVE_FIELD, REPEATED_FIELD)
    map_containers: Tuple[str, ...] = (MAP_FIELD, MESSAGE_MAP_FIELD)
    field_number_suffix: str = "FieldNumber"
    oneof_suffix: str = "OneofCase"
    types_container: str = "Types"
    cmd_id_name: str = "CmdId"
    enum_value_field: str = "value__"
    enum_sentinels: Tuple[str, ...] = ("value__", "None")
    scalar_types: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SCALAR_TYPES))
    field_overrides: Dict[Tuple[str, str], str] = field(
        default_factory=lambda: dict(DEFAULT_FIELD_OVERRIDES)
    )

    def with_repeated_container(self, container: str) -> ReconstructionConfig:
        """Return a copy that also treats `container` as a repeated field type."""
        if container in self.repeated_containers:
            return self
        return replace(self, repeated_containers=self.repeated_containers + (container,))


def _is_name(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _parse_overrides(value: Any) -> Dict[Tuple[str, str], str]:
    """Parse {"TypeName.PropertyName": "fixed32"} into the override table."""
    if not isinstance(value, dict):
        raise ConfigError("'field_overrides' must be an object")
    overrides: Dict[Tuple[str, str], str] = {}
    for key, proto_type in value.items():
        type_name, sep, property_name = key.rpartition(".")
        if not sep or not type_name or not property_name:
            raise ConfigError(
                f"Invalid override key '{key}', expected 'TypeName.PropertyName'"
            )
        if not _is_name(proto_type):
            raise ConfigError(f"Override '{key}' must name a proto type")
        overrides[(type_name, property_name)] = proto_type
    return overrides


def config_from_dict(data: Dict[str, Any], base: Optional[ReconstructionConfig] = None) -> ReconstructionConfig:
    """Apply the keys of `data` on top of `base` (or the defaults)."""
    base = base or ReconstructionConfig()
    known = {f.name for f in fields(ReconstructionConfig)}
    changes: Dict[str, Any] = {}

    for key, value in data.items():
        if key not in known:
            raise ConfigError(f"Unknown configuration key '{key}'")
        if key == "field_overrides":
            changes[key] = _parse_overrides(value)
        elif key == "scalar_types":
            if not isinstance(value, dict) or not all(_is_name(v) for v in value.values()):
                raise ConfigError("'scalar_types' must map type names to proto types")
            # Partial tables extend the defaults.
            changes[key] = {**base.scalar_types, **value}
        elif isinstance(getattr(base, key), tuple):
            if not isinstance(value, list) or not all(_is_name(v) for v in value):
                raise ConfigError(f"'{key}' must be a list of non-empty strings")
            changes[key] = tuple(value)
        else:
            if not _is_name(value):
                raise ConfigError(f"'{key}' must be a non-empty string")
            changes[key] = value

    return replace(base, **changes)


def load_config(file_path: str) -> ReconstructionConfig:
    try:
        data = json.loads(Path(file_path).read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"{file_path}: not a UTF-8 JSON document: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{file_path}: configuration must be a JSON object")
    return config_from_dict(data)
