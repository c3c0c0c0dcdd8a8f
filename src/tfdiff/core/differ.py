#!/usr/bin/env python3
"""
TFDIFF STRUCTURAL DIFFER
------------------------
Compares two Collections and reports which Declaration names changed.

Comparison is whole-subtree: a difference anywhere below a Declaration marks
that Declaration's name as changed, with no field-level detail. The result is
symmetric: a removal in one direction is an addition in the other.

Author: tfdiff Team
Date: 2026-10-18
"""

import logging
from enum import Enum
from typing import Dict, Mapping, Set

from tfdiff.core.models import Block, Collection, Declaration, value_maps_equal

logger = logging.getLogger("tfdiff.differ")


class ChangeType(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


def blocks_equal(left: Block, right: Block) -> bool:
    """Recursively compares attributes and nested blocks."""
    if not value_maps_equal(left.attributes, right.attributes):
        return False
    return block_maps_equal(left.blocks, right.blocks)


def block_maps_equal(left: Mapping[str, Block], right: Mapping[str, Block]) -> bool:
    if left.keys() != right.keys():
        return False
    return all(blocks_equal(left[key], right[key]) for key in left)


def declarations_equal(left: Declaration, right: Declaration) -> bool:
    # Location and kind are diagnostics only; kind is implied by the name anyway.
    if not value_maps_equal(left.attributes, right.attributes):
        return False
    return block_maps_equal(left.blocks, right.blocks)


class StructuralDiffer:
    """Computes the changed-name set between a base and a target Collection."""

    def classify(self, base: Collection, target: Collection) -> Dict[str, ChangeType]:
        """
        Labels every changed name as added, removed or modified.
        Names present and structurally equal on both sides are omitted.
        """
        changes: Dict[str, ChangeType] = {}

        for name in base:
            if name not in target:
                changes[name] = ChangeType.REMOVED
            elif not declarations_equal(base[name], target[name]):
                changes[name] = ChangeType.MODIFIED

        for name in target:
            if name not in base:
                changes[name] = ChangeType.ADDED

        logger.debug(
            "Compared %d base and %d target declarations: %d changed",
            len(base), len(target), len(changes)
        )
        return changes

    def diff(self, base: Collection, target: Collection) -> Set[str]:
        """Returns the set of Declaration names that differ between the collections."""
        return set(self.classify(base, target))
