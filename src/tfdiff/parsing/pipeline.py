#!/usr/bin/env python3
"""
TFDIFF PARSING PIPELINE - Bytes to Collection
---------------------------------------------
Runs one document through the parsing stages in a fixed order:

    decode (UTF-8, BOM tolerated) -> parse (lark) -> decode declarations

Parsing is atomic: a document either yields a complete Collection or raises
ParseError. Several documents are parsed independently and merged by name,
later documents overriding earlier ones.

Author: tfdiff Team
Date: 2026-10-18
"""

import logging
from typing import Dict, Iterable

from tfdiff.core.errors import ParseError
from tfdiff.core.models import Collection, Declaration, Document
from tfdiff.parsing.decoder import DeclarationDecoder
from tfdiff.parsing.evaluator import Evaluator
from tfdiff.parsing.transformer import parse_body

logger = logging.getLogger("tfdiff.pipeline")


class DocumentParser:
    """
    Entry point of the parsing stack. Holds no state between calls, so one
    instance can parse the base and the target side.
    """

    def __init__(self, track_references: bool = False):
        self.decoder = DeclarationDecoder(Evaluator(track_references=track_references))

    def _declarations(self, content: bytes, source: str) -> Dict[str, Declaration]:
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ParseError(f"Invalid UTF-8 at byte {e.start}", source) from None

        body = parse_body(text, source)
        return self.decoder.decode(body, source)

    def parse(self, content: bytes, source: str = "<document>") -> Collection:
        """Parses one document into a Collection."""
        declarations = self._declarations(content, source)
        logger.debug("%s: %d declaration(s)", source, len(declarations))
        return Collection(declarations, sources=[source])

    def parse_documents(self, documents: Iterable[Document]) -> Collection:
        """
        Parses documents in the given order and merges their declarations.
        The first failing document aborts the whole call.
        """
        merged: Dict[str, Declaration] = {}
        sources = []
        for document in documents:
            declarations = self._declarations(document.content, document.name)
            for name, declaration in declarations.items():
                if name in merged:
                    logger.debug(
                        "%s overrides %s from %s",
                        declaration.location, name, merged[name].location
                    )
                merged[name] = declaration
            sources.append(document.name)

        logger.info("Parsed %d document(s) into %d declaration(s)", len(sources), len(merged))
        return Collection(merged, sources=sources)
