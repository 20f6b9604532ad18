from __future__ import annotations

import logging
from typing import Callable, Optional

from proto_dumper.metadata.model import ModuleDefinition, TypeDefinition

logger = logging.getLogger(__name__)


class RootTypeMissing(Exception):
    """Raised when the protobuf marker type is in neither module."""


def find_marker_type(
    primary: ModuleDefinition,
    marker_name: str,
    load_fallback: Optional[Callable[[], ModuleDefinition]] = None,
) -> TypeDefinition:
    """Locate the marker type, trying the first-pass module second.

    The first-pass module is only loaded when the primary one lacks the
    marker. Raises RootTypeMissing if it cannot be found.
    """
    marker = primary.get_type(marker_name)
    if marker is not None:
        return marker

    logger.info("Could not find proto base class '%s', trying firstpass", marker_name)
    if load_fallback is None:
        raise RootTypeMissing(
            f"Proto base class '{marker_name}' not found in '{primary.name}' "
            f"and no firstpass module was specified"
        )

    fallback = load_fallback()
    marker = fallback.get_type(marker_name)
    if marker is None:
        raise RootTypeMissing(
            f"Proto base class '{marker_name}' not found in '{primary.name}' "
            f"or firstpass module '{fallback.name}'"
        )

    logger.info("Proto base class found in firstpass module '%s'", fallback.name)
    return marker
