"""
Lark-based parser for HCL native syntax.

The grammar lives in hcl.lark. Parsing happens in two steps: lark builds a
parse tree, then HclTransformer turns it into the syntax nodes defined in
tfdiff.parsing.syntax. Quoted templates are part of the grammar. Heredocs
are lexed as single tokens; their template sequences are scanned here and
each `${...}` interpolation is parsed again as a standalone expression.
"""

import logging
import os
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple

from lark import Lark, Token, Transformer, UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, v_args
from lark.exceptions import UnexpectedToken, VisitError
from lark.lark import PostLex

from tfdiff.core.errors import ParseError
from tfdiff.core.models import Value
from tfdiff.parsing.syntax import (
    Attribute,
    BinaryOp,
    Body,
    Conditional,
    Expression,
    ForExpr,
    FunctionCall,
    GetAttr,
    Index,
    Literal,
    ObjectExpr,
    Splat,
    SyntaxBlock,
    TemplateExpr,
    TupleExpr,
    UnaryOp,
    Variable,
)

logger = logging.getLogger("tfdiff.parser")

# ---- Grammar loading ----

_GRAMMAR_FILE = os.path.join(os.path.dirname(__file__), "hcl.lark")

with open(_GRAMMAR_FILE, encoding="utf-8") as _f:
    _GRAMMAR = _f.read()


class NewlineFilter(PostLex):
    """
    Drops newlines nested in parentheses, brackets or template sequences and
    collapses runs of newlines (split by comments) into one _NL token.
    Newlines inside braces are kept: they separate both body items and object
    elements.
    """

    always_accept = ("_NL",)

    # opener -> whether newlines inside it are significant
    _OPENERS = {
        "_LPAR": False,
        "_LSQB": False,
        "_LBRACE": True,
        "INTERP_OPEN": False,
        "DIRECTIVE_OPEN": False,
    }
    _CLOSERS = {"_RPAR", "_RSQB", "_RBRACE"}

    def process(self, stream):
        keeps_newlines: List[bool] = []
        after_newline = True

        for token in stream:
            kind = token.type
            if kind == "_NL":
                if keeps_newlines and not keeps_newlines[-1]:
                    continue
                if after_newline:
                    continue
                after_newline = True
                yield token
                continue

            if kind in self._OPENERS:
                keeps_newlines.append(self._OPENERS[kind])
            elif kind in self._CLOSERS and keeps_newlines:
                keeps_newlines.pop()

            after_newline = False
            yield token


_lark_parser = Lark(
    _GRAMMAR,
    parser="lalr",
    lexer="contextual",
    postlex=NewlineFilter(),
    start=["start", "expression"],
    propagate_positions=True,
    maybe_placeholders=False,
)


# ---- Helper dataclasses (internal to transformer) ----


@dataclass
class _Arguments:
    expressions: List[Expression]
    expand_final: bool


@dataclass
class _ForIntro:
    key_var: Optional[str]
    value_var: str
    collection: Expression


@dataclass
class _ForCondition:
    condition: Expression


@dataclass
class _Sequence:
    """One `${...}` or `%{...}` template sequence; directives carry no expression."""
    expression: Optional[Expression]
    strip_before: bool
    strip_after: bool


_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", '"': '"', "\\": "\\"}


def _find_sequence_end(raw: str, start: int) -> int:
    """Index of the `}` closing a template sequence opened just before `start`, or -1."""
    depth = 0
    in_string = False
    i = start
    while i < len(raw):
        ch = raw[i]
        if in_string:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            if depth == 0:
                return i
            depth -= 1
        i += 1
    return -1


# ---- Transformer ----


@v_args(meta=True)
class HclTransformer(Transformer):
    """
    Transforms a lark parse tree into syntax nodes. Each method corresponds to
    one rule or alias of hcl.lark.
    """

    def __init__(self, text: str, source: str, line_offset: int = 0):
        super().__init__()
        self.text = text
        self.source = source
        self.line_offset = line_offset

    # ---- Position helpers ----

    def _line(self, meta) -> Optional[int]:
        if getattr(meta, "empty", True):
            return None
        return meta.line + self.line_offset

    def _node(self, node: Expression, meta) -> Expression:
        """Attach the normalized source text and line to an expression node."""
        if not getattr(meta, "empty", True):
            node.source = " ".join(self.text[meta.start_pos:meta.end_pos].split())
        node.line = self._line(meta)
        return node

    def _error(self, message: str, line: Optional[int]) -> ParseError:
        return ParseError(message, self.source, line)

    # ---- Structure ----

    def start(self, meta, children):
        return children[0]

    def body(self, meta, children):
        body = Body()
        seen = {}
        for item in children:
            if isinstance(item, Attribute):
                if item.name in seen:
                    raise self._error(
                        f'Attribute redefined: "{item.name}" was already defined at line {seen[item.name]}',
                        item.line
                    )
                seen[item.name] = item.line
                body.attributes.append(item)
            else:
                body.blocks.append(item)
        return body

    def attribute(self, meta, children):
        name, expression = children
        return Attribute(name, expression, self._line(meta))

    def block(self, meta, children):
        block_type, *labels, body = children
        return SyntaxBlock(block_type, labels, body, self._line(meta))

    def ident_label(self, meta, children):
        return children[0]

    def string_label(self, meta, children):
        template = children[0]
        if template.has_directives or any(isinstance(p, Expression) for p in template.parts):
            raise self._error("Invalid block label: template sequences are not allowed", self._line(meta))
        return "".join(template.parts)

    def name(self, meta, children):
        return str(children[0])

    # ---- Operators ----

    def conditional(self, meta, children):
        condition, true_result, false_result = children
        return self._node(Conditional(condition, true_result, false_result), meta)

    def binary_op(self, meta, children):
        left, operator, right = children
        return self._node(BinaryOp(str(operator), left, right), meta)

    def unary_op(self, meta, children):
        operator, operand = children
        return self._node(UnaryOp(str(operator), operand), meta)

    # ---- Traversals ----

    def _traverse(self, target: Expression, make, meta, attribute_step: bool) -> Expression:
        """
        Applies one traversal step. Steps after a splat are folded into the
        splat's per-element traversal; an attribute-only splat absorbs
        attribute steps only.
        """
        if isinstance(target, Splat) and (attribute_step or not target.attribute_only):
            target.each = make(target.each)
            return self._node(target, meta)
        return self._node(make(target), meta)

    def get_attr(self, meta, children):
        target, attr_name = children
        return self._traverse(target, lambda t: GetAttr(t, attr_name), meta, True)

    def index(self, meta, children):
        target, key = children
        return self._traverse(target, lambda t: Index(t, key), meta, False)

    def legacy_index(self, meta, children):
        # `a.0.1` lexes its tail as the number "0.1"
        target, number = children
        for part in str(number).split("."):
            key = Literal(Value.number(Decimal(part)))
            target = self._traverse(target, lambda t, key=key: Index(t, key), meta, False)
        return target

    def attr_splat(self, meta, children):
        return self._node(Splat(children[0], True), meta)

    def full_splat(self, meta, children):
        return self._node(Splat(children[0], False), meta)

    # ---- Literals ----

    def number(self, meta, children):
        return self._node(Literal(Value.number(Decimal(str(children[0])))), meta)

    def true(self, meta, children):
        return self._node(Literal(Value.boolean(True)), meta)

    def false(self, meta, children):
        return self._node(Literal(Value.boolean(False)), meta)

    def null(self, meta, children):
        return self._node(Literal(Value.null()), meta)

    def variable(self, meta, children):
        return self._node(Variable(str(children[0])), meta)

    def paren(self, meta, children):
        return children[0]

    def heredoc(self, meta, children):
        header, _, rest = str(children[0]).partition("\n")
        lines = rest.split("\n")
        lines.pop()  # closing marker
        lines = [line[:-1] if line.endswith("\r") else line for line in lines]

        if header.startswith("<<-"):
            indents = [len(line) - len(line.lstrip(" \t")) for line in lines if line.strip()]
            trim = min(indents, default=0)
            lines = [line[trim:] for line in lines]

        content = "".join(line + "\n" for line in lines)
        return self._node(self._heredoc_template(content, self._line(meta)), meta)

    # ---- Collections & calls ----

    def tuple(self, meta, children):
        return self._node(TupleExpr(list(children)), meta)

    def object(self, meta, children):
        return self._node(ObjectExpr(list(children)), meta)

    def object_elem(self, meta, children):
        key, value = children
        if isinstance(key, Variable):
            # A bare identifier key is a literal string, not a reference.
            literal = Literal(Value.string(key.name))
            literal.source, literal.line = key.source, key.line
            key = literal
        return key, value

    def arguments(self, meta, children):
        expand = bool(children) and isinstance(children[-1], Token) and children[-1].type == "ELLIPSIS"
        expressions = [c for c in children if not isinstance(c, Token)]
        return _Arguments(expressions, expand)

    def function_call(self, meta, children):
        names = [str(c) for c in children if isinstance(c, Token)]
        arguments = next((c for c in children if isinstance(c, _Arguments)), _Arguments([], False))
        call = FunctionCall("::".join(names), arguments.expressions, arguments.expand_final)
        return self._node(call, meta)

    # ---- For expressions ----

    def for_intro(self, meta, children):
        names = [str(c) for c in children if isinstance(c, Token) and c.type == "NAME"]
        collection = children[-1]
        if len(names) == 2:
            return _ForIntro(names[0], names[1], collection)
        return _ForIntro(None, names[0], collection)

    def for_cond(self, meta, children):
        return _ForCondition(children[-1])

    def _for_condition(self, children) -> Optional[Expression]:
        found = next((c for c in children if isinstance(c, _ForCondition)), None)
        return found.condition if found else None

    def for_tuple(self, meta, children):
        intro, value_expr = children[0], children[1]
        node = ForExpr(
            intro.key_var, intro.value_var, intro.collection, value_expr,
            condition=self._for_condition(children)
        )
        return self._node(node, meta)

    def for_object(self, meta, children):
        intro, key_expr, value_expr = children[0], children[1], children[2]
        grouping = any(isinstance(c, Token) and c.type == "ELLIPSIS" for c in children)
        node = ForExpr(
            intro.key_var, intro.value_var, intro.collection, value_expr,
            key_expr=key_expr, condition=self._for_condition(children), grouping=grouping
        )
        return self._node(node, meta)

    # ---- Templates ----

    def template(self, meta, children):
        items: list = []
        for child in children:
            if isinstance(child, Token):
                items.append(self._decode(str(child), child.line + self.line_offset))
            else:
                items.append(child)
        return self._node(self._assemble(items), meta)

    def interpolation(self, meta, children):
        opener, expression, *closing = children
        return _Sequence(expression, str(opener).endswith("~"), bool(closing))

    def directive(self, meta, children):
        strip_after = any(isinstance(c, Token) and c.type == "TILDE" for c in children)
        return _Sequence(None, str(children[0]).endswith("~"), strip_after)

    def _decode(self, raw: str, line: Optional[int]) -> str:
        """Decodes backslash escapes and the `$${` / `%%{` escapes of quoted template text."""
        decoded: List[str] = []
        i = 0
        while i < len(raw):
            if raw[i] == "\\":
                text, i = self._escape(raw, i, line)
                decoded.append(text)
            elif raw.startswith("$${", i) or raw.startswith("%%{", i):
                decoded.append(raw[i + 1:i + 3])
                i += 3
            else:
                decoded.append(raw[i])
                i += 1
        return "".join(decoded)

    def _escape(self, raw: str, i: int, line: Optional[int]) -> Tuple[str, int]:
        """Decodes the backslash escape starting at raw[i]; returns (text, next index)."""
        code = raw[i + 1:i + 2]
        if code in _ESCAPES:
            return _ESCAPES[code], i + 2
        width = {"u": 4, "U": 8}.get(code)
        if width:
            digits = raw[i + 2:i + 2 + width]
            try:
                if len(digits) != width:
                    raise ValueError(digits)
                return chr(int(digits, 16)), i + 2 + width
            except ValueError:
                raise self._error(f"Invalid unicode escape sequence '\\{code}{digits}'", line)
        raise self._error(f"Invalid escape sequence '\\{code}'", line)

    @staticmethod
    def _flush_literal(parts: list, literal: List[str], strip_leading: bool, strip_trailing: bool):
        text = "".join(literal)
        literal.clear()
        if strip_leading:
            text = text.lstrip()
        if strip_trailing:
            text = text.rstrip()
        if text:
            parts.append(text)

    def _assemble(self, items: list) -> TemplateExpr:
        """
        Joins literal text and template sequences into a TemplateExpr,
        applying `~` strip markers to the neighbouring literals. Directives
        (`%{...}`) are recognized but not modelled.
        """
        parts: list = []
        literal: List[str] = []
        strip_leading = False
        has_directives = False

        for item in items:
            if isinstance(item, str):
                literal.append(item)
                continue
            self._flush_literal(parts, literal, strip_leading, item.strip_before)
            if item.expression is None:
                has_directives = True
            else:
                parts.append(item.expression)
            strip_leading = item.strip_after

        self._flush_literal(parts, literal, strip_leading, False)
        return TemplateExpr(parts, has_directives)

    def _heredoc_template(self, raw: str, line: Optional[int]) -> TemplateExpr:
        """
        Splits heredoc text into literals and template sequences. Heredocs
        have no backslash escapes; `$${` and `%%{` escape a sequence opener.
        """
        items: list = []
        literal: List[str] = []
        i = 0

        while i < len(raw):
            if raw.startswith("$${", i) or raw.startswith("%%{", i):
                literal.append(raw[i + 1:i + 3])
                i += 3
                continue
            if raw.startswith("${", i) or raw.startswith("%{", i):
                end = _find_sequence_end(raw, i + 2)
                if end < 0:
                    raise self._error("Unterminated template sequence", line)
                inner = raw[i + 2:end]
                strip_before = inner.startswith("~")
                strip_after = inner.endswith("~")
                inner = inner[1 if strip_before else 0:len(inner) - (1 if strip_after else 0)]

                items.append("".join(literal))
                literal.clear()
                expression = self._interpolation(inner, line) if raw[i] == "$" else None
                items.append(_Sequence(expression, strip_before, strip_after))
                i = end + 1
                continue
            literal.append(raw[i])
            i += 1

        items.append("".join(literal))
        return self._assemble(items)

    def _interpolation(self, inner: str, line: Optional[int]) -> Expression:
        try:
            return parse_expression(inner, self.source, line)
        except ParseError as e:
            raise self._error(f"Invalid template interpolation: {e.message}", line) from None


# ---- Error handling ----


def _location(e: UnexpectedInput) -> Tuple[Optional[int], Optional[int]]:
    line = getattr(e, "line", None)
    column = getattr(e, "column", None)
    if not isinstance(line, int) or line < 1:
        return None, None
    return line, column if isinstance(column, int) and column > 0 else None


def _convert_lark_error(e: UnexpectedInput, source: str, line_offset: int = 0) -> ParseError:
    """Convert a lark parse error to a ParseError."""
    line, column = _location(e)
    if line is not None:
        line += line_offset

    if isinstance(e, UnexpectedEOF):
        return ParseError("Unexpected end of input", source, line, column)

    if isinstance(e, UnexpectedCharacters):
        return ParseError(f"Invalid character {e.char!r}", source, line, column)

    if isinstance(e, UnexpectedToken):
        token = e.token
        if token.type == "$END":
            return ParseError("Unexpected end of input, unclosed block or expression", source, line, column)
        if token.type == "_NL":
            return ParseError("Unexpected newline", source, line, column)
        return ParseError(f"Unexpected token {str(token)!r}", source, line, column)

    return ParseError(f"Parse error: {e}", source, line, column)


# ---- Parse entry points ----


def _run(text: str, source: str, start: str, line_offset: int = 0):
    try:
        tree = _lark_parser.parse(text, start=start)
    except UnexpectedInput as e:
        raise _convert_lark_error(e, source, line_offset) from e

    try:
        return HclTransformer(text, source, line_offset).transform(tree)
    except VisitError as e:
        # Lark wraps exceptions from transformer methods in VisitError.
        if isinstance(e.orig_exc, ParseError):
            raise e.orig_exc from None
        raise


def parse_body(text: str, source: str) -> Body:
    """Parses a whole configuration file into its top-level Body."""
    if not text.strip():
        return Body()
    return _run(text + "\n", source, "start")


def parse_expression(text: str, source: str, line: Optional[int] = None) -> Expression:
    """
    Parses one standalone expression, such as the inside of an interpolation.
    The text is wrapped in parentheses so that newlines in it are ignored.
    """
    offset = (line - 1) if line else 0
    return _run("(" + text + "\n)", source, "expression", offset)
