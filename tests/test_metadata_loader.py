import json
import os
import tempfile

import pytest

from proto_dumper.metadata.loader import (
    MetadataError,
    load_module,
    module_from_dict,
    parse_type_name,
)

DUMP = {
    "name": "Assembly-CSharp",
    "types": [
        {
            "name": "PlayerLoginReq",
            "namespace": "Proto",
            "base_type": "System.Object",
            "fields": [
                {"name": "_parser"},
                {"name": "TokenFieldNumber", "constant": 1},
            ],
            "properties": [
                {"name": "Token", "type": "System.String"},
                {
                    "name": "Items",
                    "type": "Google.Protobuf.Collections.RepeatedField`1<Proto.Item>",
                },
            ],
            "nested_types": [
                {
                    "name": "Types",
                    "nested_types": [
                        {
                            "name": "CmdId",
                            "base_type": "System.Enum",
                            "fields": [{"name": "value__"}, {"name": "CmdId", "constant": 112}],
                        }
                    ],
                }
            ],
        },
        {"name": "Item", "namespace": "Proto", "base_type": "System.Object"},
    ],
}


def _write_temp_json(content) -> str:
    fd, path = tempfile.mkstemp(suffix=".json")
    os.write(fd, json.dumps(content).encode())
    os.close(fd)
    return path


class TestParseTypeName:
    def test_simple(self):
        ref = parse_type_name("System.String")
        assert ref.full_name == "System.String"
        assert ref.name == "String"
        assert ref.namespace == "System"
        assert ref.is_nested is False
        assert ref.generic_arguments == ()

    def test_no_namespace(self):
        ref = parse_type_name("Global")
        assert ref.name == "Global"
        assert ref.namespace == ""

    def test_nested(self):
        ref = parse_type_name("Proto.Outer/Types/Inner")
        assert ref.name == "Inner"
        assert ref.namespace == ""
        assert ref.is_nested is True

    def test_generic_arguments(self):
        ref = parse_type_name(
            "Google.Protobuf.Collections.MapField`2<System.String,Google.Protobuf.Collections.RepeatedField`1<Proto.Item>>"
        )
        assert ref.name == "MapField`2"
        assert ref.namespace == "Google.Protobuf.Collections"
        assert len(ref.generic_arguments) == 2
        assert ref.generic_arguments[0].full_name == "System.String"
        inner = ref.generic_arguments[1]
        assert inner.name == "RepeatedField`1"
        assert inner.generic_arguments[0].name == "Item"
        assert inner.generic_arguments[0].namespace == "Proto"

    def test_unbalanced_generic(self):
        with pytest.raises(MetadataError):
            parse_type_name("Foo`1<Bar")
        with pytest.raises(MetadataError):
            parse_type_name("Foo`1<Bar>>")


class TestModuleFromDict:
    def test_types_and_members(self):
        module = module_from_dict(DUMP)
        assert module.name == "Assembly-CSharp"
        assert [t.name for t in module.types] == ["PlayerLoginReq", "Item"]

        req = module.types[0]
        assert req.full_name == "Proto.PlayerLoginReq"
        assert req.fields[0].has_constant is False
        assert req.fields[1].has_constant is True
        assert req.fields[1].constant == 1
        assert req.find_property("Token").property_type.full_name == "System.String"
        assert req.find_property("Missing") is None
        items = req.find_property("Items").property_type
        assert items.generic_arguments[0].name == "Item"

    def test_nested_full_names(self):
        module = module_from_dict(DUMP)
        cmd_id = module.types[0].nested_types[0].nested_types[0]
        assert cmd_id.full_name == "Proto.PlayerLoginReq/Types/CmdId"
        assert cmd_id.namespace == ""
        assert cmd_id.is_nested is True
        assert cmd_id.base_type.full_name == "System.Enum"

    def test_get_types_order(self):
        module = module_from_dict(DUMP)
        assert [t.name for t in module.get_types()] == ["PlayerLoginReq", "Types", "CmdId", "Item"]

    def test_get_type(self):
        module = module_from_dict(DUMP)
        assert module.get_type("Proto.Item").name == "Item"
        assert module.get_type("Proto.PlayerLoginReq/Types/CmdId").name == "CmdId"
        assert module.get_type("Proto.Nope") is None

    def test_object_type_reference(self):
        module = module_from_dict({
            "types": [{
                "name": "Holder",
                "namespace": "Proto",
                "properties": [{
                    "name": "Values",
                    "type": {
                        "full_name": "Custom.List`1",
                        "generic_arguments": [{"full_name": "Other.Thing", "namespace": "Proto"}],
                    },
                }],
            }],
        })
        ref = module.types[0].properties[0].property_type
        assert ref.name == "List`1"
        assert ref.generic_arguments[0].namespace == "Proto"

    def test_missing_name_raises(self):
        with pytest.raises(MetadataError):
            module_from_dict({"types": [{"namespace": "Proto"}]})

    def test_bad_property_raises(self):
        with pytest.raises(MetadataError):
            module_from_dict({"types": [{"name": "X", "properties": [{"name": "P", "type": 5}]}]})

    def test_not_an_object(self):
        with pytest.raises(MetadataError):
            module_from_dict([])

    def test_null_constant_raises(self):
        with pytest.raises(MetadataError, match="TokenFieldNumber"):
            module_from_dict({"types": [{
                "name": "X",
                "fields": [{"name": "TokenFieldNumber", "constant": None}],
            }]})

    def test_non_integer_constant_raises(self):
        for constant in ("one", 1.5, True):
            with pytest.raises(MetadataError):
                module_from_dict({"types": [{
                    "name": "X",
                    "fields": [{"name": "TokenFieldNumber", "constant": constant}],
                }]})


class TestLoadModule:
    def test_load_from_file(self):
        path = _write_temp_json(DUMP)
        try:
            module = load_module(path)
            assert module.name == "Assembly-CSharp"
            assert len(module.types) == 2
        finally:
            os.unlink(path)

    def test_default_name_from_file(self):
        path = _write_temp_json({"types": []})
        try:
            module = load_module(path)
            assert module.name == os.path.splitext(os.path.basename(path))[0]
        finally:
            os.unlink(path)

    def test_invalid_json(self):
        fd, path = tempfile.mkstemp(suffix=".json")
        os.write(fd, b"{not json")
        os.close(fd)
        try:
            with pytest.raises(MetadataError):
                load_module(path)
        finally:
            os.unlink(path)

    def test_not_utf8(self):
        fd, path = tempfile.mkstemp(suffix=".json")
        os.write(fd, b'{"name": "\xff"}')
        os.close(fd)
        try:
            with pytest.raises(MetadataError):
                load_module(path)
        finally:
            os.unlink(path)
