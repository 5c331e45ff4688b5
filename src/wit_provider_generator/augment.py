"""Extend structs with wire serialization capability."""

from __future__ import annotations

import logging

from wit_provider_generator import helper
from wit_provider_generator.rust_types import SERDE_DESERIALIZE, SERDE_SERIALIZE
from wit_provider_generator.syntax import StructItem

logger = logging.getLogger(__name__)

SERDE_DERIVES = (SERDE_SERIALIZE, SERDE_DESERIALIZE)


def add_serde_derives(struct: StructItem) -> bool:
    """Add serde's Serialize and Deserialize to the derive group of a struct.

    Only an existing derive group is extended; a struct without one is left as is. A capability
    that is already derived (under any path ending in the same name, e.g. `Serialize` or
    `serde::Serialize`) is not added again, so augmenting a struct twice changes nothing.

    Args:
        struct (StructItem): The struct to extend, in place.

    Returns:
        bool: Whether the struct was changed.
    """
    derive_groups = struct.derive_groups
    if not derive_groups:
        logger.debug("struct %s has no derive group, not adding serde derives", struct.name)
        return False

    derived = {helper.last_path_segment(path) for group in derive_groups for path in group.arguments or []}
    missing = [path for path in SERDE_DERIVES if helper.last_path_segment(path) not in derived]
    if not missing:
        return False

    target = derive_groups[0]
    assert target.arguments is not None
    target.arguments.extend(missing)

    logger.debug("detected & appended %s to derive for: %s", ", ".join(missing), struct.name)
    return True
