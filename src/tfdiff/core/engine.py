#!/usr/bin/env python3
"""
TFDIFF ENGINE - The Orchestrator
--------------------------------
DiffEngine runs one comparison end to end:

    1. fetch base documents      (SourceError aborts)
    2. fetch target documents    (SourceError aborts)
    3. parse base, parse target  (ParseError aborts)
    4. classify changed names

Both sides are fetched before either is parsed, so a broken revision is
reported before any parse work is done. The two parses share nothing.

Author: tfdiff Team
Date: 2026-10-18
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from tfdiff.core.differ import ChangeType, StructuralDiffer
from tfdiff.parsing.pipeline import DocumentParser
from tfdiff.sources.revision import RevisionSource

logger = logging.getLogger("tfdiff.engine")


@dataclass
class DiffReport:
    """Outcome of one comparison."""
    changes: Dict[str, ChangeType] = field(default_factory=dict)
    base_count: int = 0
    target_count: int = 0
    base_label: str = ""
    target_label: str = ""

    @property
    def changed(self) -> Set[str]:
        return set(self.changes)

    def names(self, change_type: Optional[ChangeType] = None) -> List[str]:
        """Changed names in lexical order, optionally of one change type."""
        return sorted(
            name for name, kind in self.changes.items()
            if change_type is None or kind is change_type
        )

    def summary(self) -> Dict[str, int]:
        return {
            "base_declarations": self.base_count,
            "target_declarations": self.target_count,
            "added": len(self.names(ChangeType.ADDED)),
            "removed": len(self.names(ChangeType.REMOVED)),
            "modified": len(self.names(ChangeType.MODIFIED)),
        }

    def render(self, formatter) -> str:
        """The targeting line for this report, as produced by `formatter`."""
        return formatter.render(self.changed)


class DiffEngine:
    """Coordinates revision sources, the document parser and the differ."""

    def __init__(self, parser: Optional[DocumentParser] = None,
                 differ: Optional[StructuralDiffer] = None):
        self.parser = parser or DocumentParser()
        self.differ = differ or StructuralDiffer()

    def run(self, base_source: RevisionSource, target_source: RevisionSource) -> DiffReport:
        logger.info("Comparing %s with %s", base_source.describe(), target_source.describe())

        base_documents = base_source.documents()
        target_documents = target_source.documents()

        base = self.parser.parse_documents(base_documents)
        target = self.parser.parse_documents(target_documents)

        changes = self.differ.classify(base, target)
        for name in sorted(changes):
            logger.debug("%s: %s", name, changes[name].value)

        return DiffReport(
            changes=changes,
            base_count=len(base),
            target_count=len(target),
            base_label=base_source.describe(),
            target_label=target_source.describe(),
        )
