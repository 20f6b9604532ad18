from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from proto_dumper.config import ConfigError, ReconstructionConfig, load_config
from proto_dumper.discovery import RootTypeMissing, find_marker_type
from proto_dumper.generator.proto_generator import generate_protos
from proto_dumper.metadata.loader import MetadataError, load_module
from proto_dumper.reconstructor import ProtoReconstructor, UnionMemberMissing


def _build_config(
    config_path: Optional[str],
    marker_type: Optional[str],
    repeated_message_field: Optional[str],
    schema_namespace: Optional[str],
) -> ReconstructionConfig:
    """Load the config file (if any) and apply command-line overrides."""
    config = load_config(config_path) if config_path else ReconstructionConfig()
    if marker_type:
        config = replace(config, marker_type=marker_type)
    if schema_namespace:
        config = replace(config, schema_namespace=schema_namespace)
    if repeated_message_field:
        config = config.with_repeated_container(repeated_message_field)
    return config


def run(
    assembly_path: str,
    output_dir: str,
    firstpass_path: Optional[str] = None,
    marker_type: Optional[str] = None,
    repeated_message_field: Optional[str] = None,
    schema_namespace: Optional[str] = None,
    config_path: Optional[str] = None,
) -> List[str]:
    """Main pipeline: load, discover, reconstruct, generate."""
    # 1. Configuration and metadata
    try:
        config = _build_config(config_path, marker_type, repeated_message_field, schema_namespace)
        module = load_module(assembly_path)
    except (ConfigError, MetadataError, OSError) as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Loaded {assembly_path}: {len(module.types)} top-level type(s)")

    # 2. Find the proto base class, falling back to the firstpass module
    load_fallback = (lambda: load_module(firstpass_path)) if firstpass_path else None
    try:
        find_marker_type(module, config.marker_type, load_fallback)
    except (RootTypeMissing, MetadataError, OSError) as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)

    # 3. Reconstruct
    reconstructor = ProtoReconstructor(config)
    try:
        nodes = reconstructor.reconstruct_module(module)
    except UnionMemberMissing as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)

    if not nodes:
        print(f"No types found in namespace '{config.schema_namespace}'.")
        return []

    print(f"Reconstructed {len(nodes)} proto(s)")

    # 4. Generate
    generated = generate_protos(nodes, output_dir)
    for f in generated:
        print(f"  Generated: {f}")

    print("Done!")
    return generated


def main():
    parser = argparse.ArgumentParser(
        description="Reconstruct .proto definitions from compiled protobuf class metadata",
    )
    parser.add_argument(
        "--assembly",
        required=True,
        help="Metadata dump (JSON) of the module containing the generated proto classes",
    )
    parser.add_argument(
        "--out",
        required=True,
        help="Output directory for generated .proto files",
    )
    parser.add_argument(
        "--firstpass",
        help="Metadata dump of the firstpass module, searched when the base class is not in --assembly",
    )
    parser.add_argument(
        "--marker-type",
        help="Full name of the proto base class (default: Google.Protobuf.IMessage)",
    )
    parser.add_argument(
        "--repeated-message-field",
        help="Full name of the repeated message container, e.g. Google.Protobuf.Collections.RepeatedMessageField`1",
    )
    parser.add_argument(
        "--schema-namespace",
        help="Namespace holding the generated proto classes (default: Proto)",
    )
    parser.add_argument(
        "--config",
        help="JSON file with scalar type and field override tables",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log skipped fields and other debug details",
    )

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    run(
        args.assembly,
        args.out,
        firstpass_path=args.firstpass,
        marker_type=args.marker_type,
        repeated_message_field=args.repeated_message_field,
        schema_namespace=args.schema_namespace,
        config_path=args.config,
    )


if __name__ == "__main__":
    main()
