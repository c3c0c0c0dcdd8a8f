#!/usr/bin/env python3
"""
TFDIFF DECODER - Syntax Blocks to Declarations
----------------------------------------------
Walks the top-level blocks of a parsed Body and builds Declarations for the
two recognized kinds:

    resource "<type>" "<name>"   ->  "<type>.<name>"
    module "<name>"              ->  "module.<name>"

Every other top-level block type (variable, output, provider, locals, ...)
is skipped without looking inside. Within a body, repeated nested blocks of
the same type collapse to the last one in source order, and repeated
declaration names in a document collapse the same way.

Author: tfdiff Team
Date: 2026-10-18
"""

import logging
from types import MappingProxyType
from typing import Dict, Optional, Tuple

from tfdiff.core.errors import ParseError
from tfdiff.core.models import Block, Declaration, DeclarationKind, Location, Value
from tfdiff.parsing.evaluator import Evaluator
from tfdiff.parsing.syntax import Body, SyntaxBlock

logger = logging.getLogger("tfdiff.decoder")

# Block type -> number of labels its header must carry.
_LABEL_COUNTS = {
    DeclarationKind.RESOURCE: 2,
    DeclarationKind.MODULE: 1,
}


class DeclarationDecoder:
    """Decodes the syntax tree of one document into named Declarations."""

    def __init__(self, evaluator: Optional[Evaluator] = None):
        self.evaluator = evaluator or Evaluator()

    def decode(self, body: Body, source: str) -> Dict[str, Declaration]:
        declarations: Dict[str, Declaration] = {}

        for block in body.blocks:
            try:
                kind = DeclarationKind(block.type)
            except ValueError:
                logger.debug("%s:%s: skipping %r block", source, block.line, block.type)
                continue

            name = self._name(block, kind, source)
            attributes, blocks = self._decode_body(block.body)
            if name in declarations:
                logger.debug("%s:%s: %s redeclared, keeping the later one", source, block.line, name)
            declarations[name] = Declaration(
                name=name,
                kind=kind,
                attributes=attributes,
                blocks=blocks,
                location=Location(source, block.line),
            )

        return declarations

    def _name(self, block: SyntaxBlock, kind: DeclarationKind, source: str) -> str:
        expected = _LABEL_COUNTS[kind]
        if len(block.labels) != expected:
            raise ParseError(
                f'Invalid {kind.value} block header: expected {expected} label(s), got {len(block.labels)}',
                source, block.line
            )
        if kind is DeclarationKind.MODULE:
            return f"module.{block.labels[0]}"
        return ".".join(block.labels)

    def _decode_body(self, body: Body) -> Tuple[MappingProxyType, MappingProxyType]:
        attributes: Dict[str, Value] = {}
        for attribute in body.attributes:
            attributes[attribute.name] = self.evaluator.evaluate(attribute.expression)

        blocks: Dict[str, Block] = {}
        for nested in body.blocks:
            nested_attributes, nested_blocks = self._decode_body(nested.body)
            blocks[nested.type] = Block(nested_attributes, nested_blocks)

        return MappingProxyType(attributes), MappingProxyType(blocks)
