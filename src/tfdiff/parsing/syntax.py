#!/usr/bin/env python3
"""
TFDIFF SYNTAX TREE
------------------
Plain node classes produced by the HCL transformer. A document becomes a
Body of ordered Attributes and SyntaxBlocks; attribute values stay as
unevaluated Expression trees until the evaluator visits them.

Every Expression keeps the source text it was parsed from, so unknown values
can remember what they were computed from.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from tfdiff.core.models import Value


@dataclass
class Expression:
    source: str = field(default="", init=False, repr=False)
    line: Optional[int] = field(default=None, init=False, repr=False)


@dataclass
class Literal(Expression):
    value: Value


@dataclass
class TemplateExpr(Expression):
    parts: List[Union[str, Expression]]
    has_directives: bool = False

    @property
    def is_wrap(self) -> bool:
        """A template made of exactly one interpolation and nothing else."""
        return len(self.parts) == 1 and isinstance(self.parts[0], Expression)


@dataclass
class Variable(Expression):
    name: str


@dataclass
class GetAttr(Expression):
    target: Expression
    name: str


@dataclass
class Index(Expression):
    target: Expression
    key: Expression


@dataclass
class SplatItem(Expression):
    """Placeholder standing for the current element inside a splat traversal."""


@dataclass
class Splat(Expression):
    """
    `target.*` (attribute-only) or `target[*]`. `each` is the traversal that
    follows the splat, rooted at a SplatItem, applied to every element.
    """
    target: Expression
    attribute_only: bool
    each: Expression = field(default_factory=SplatItem)


@dataclass
class FunctionCall(Expression):
    name: str
    arguments: List[Expression]
    expand_final: bool = False


@dataclass
class TupleExpr(Expression):
    items: List[Expression]


@dataclass
class ObjectExpr(Expression):
    items: List[Tuple[Expression, Expression]]


@dataclass
class UnaryOp(Expression):
    operator: str
    operand: Expression


@dataclass
class BinaryOp(Expression):
    operator: str
    left: Expression
    right: Expression


@dataclass
class Conditional(Expression):
    condition: Expression
    true_result: Expression
    false_result: Expression


@dataclass
class ForExpr(Expression):
    key_var: Optional[str]
    value_var: str
    collection: Expression
    value_expr: Expression
    key_expr: Optional[Expression] = None
    condition: Optional[Expression] = None
    grouping: bool = False

    @property
    def is_object(self) -> bool:
        return self.key_expr is not None


# --- Structural nodes ---

@dataclass
class Attribute:
    name: str
    expression: Expression
    line: Optional[int] = None


@dataclass
class SyntaxBlock:
    type: str
    labels: List[str]
    body: "Body"
    line: Optional[int] = None


@dataclass
class Body:
    attributes: List[Attribute] = field(default_factory=list)
    blocks: List[SyntaxBlock] = field(default_factory=list)
