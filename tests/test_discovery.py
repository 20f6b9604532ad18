import pytest

from proto_dumper.discovery import RootTypeMissing, find_marker_type
from proto_dumper.metadata.model import ModuleDefinition, TypeDefinition

MARKER = "Google.Protobuf.IMessage"


def _module(name: str, *type_names: str) -> ModuleDefinition:
    types = []
    for full_name in type_names:
        namespace, _, simple = full_name.rpartition(".")
        types.append(TypeDefinition(name=simple, namespace=namespace))
    return ModuleDefinition(name=name, types=types)


class TestFindMarkerType:
    def test_found_in_primary(self):
        primary = _module("Assembly-CSharp", "Proto.Ping", MARKER)

        def fail():
            raise AssertionError("firstpass should not be loaded")

        marker = find_marker_type(primary, MARKER, fail)
        assert marker.full_name == MARKER

    def test_found_in_firstpass(self):
        primary = _module("Assembly-CSharp", "Proto.Ping")
        firstpass = _module("Assembly-CSharp-firstpass", MARKER)
        marker = find_marker_type(primary, MARKER, lambda: firstpass)
        assert marker.full_name == MARKER

    def test_missing_everywhere(self):
        primary = _module("Assembly-CSharp", "Proto.Ping")
        firstpass = _module("Assembly-CSharp-firstpass", "Other.Type")
        with pytest.raises(RootTypeMissing, match="firstpass module 'Assembly-CSharp-firstpass'"):
            find_marker_type(primary, MARKER, lambda: firstpass)

    def test_missing_without_firstpass(self):
        primary = _module("Assembly-CSharp", "Proto.Ping")
        with pytest.raises(RootTypeMissing, match="no firstpass module"):
            find_marker_type(primary, MARKER)
