#!/usr/bin/env python3
"""
TFDIFF EVALUATOR - Empty-Context Expression Evaluation
------------------------------------------------------
Evaluates attribute expressions without any variables or functions in scope.
Anything that needs outside context (a reference, a function call, a template
directive) cannot be resolved and degrades to the unknown Value. Failures are
contained at the sub-expression that caused them: a tuple holding one
reference is a list with one unknown element, not an unknown list.

Unknown operands propagate: arithmetic, comparison, logic, conditionals and
templates over an unknown produce an unknown.

Author: tfdiff Team
Date: 2026-10-18
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Tuple

from tfdiff.core.models import Value, ValueKind, values_equal
from tfdiff.parsing.syntax import (
    BinaryOp,
    Conditional,
    Expression,
    ForExpr,
    FunctionCall,
    GetAttr,
    Index,
    Literal,
    ObjectExpr,
    Splat,
    SplatItem,
    TemplateExpr,
    TupleExpr,
    UnaryOp,
    Variable,
)

logger = logging.getLogger("tfdiff.evaluator")

# Scope key for the element currently visited by a splat traversal.
_SPLAT_ITEM = object()

# Numbers whose decimal text would run past this many digits stay unformatted.
_MAX_NUMBER_DIGITS = 100000


class EvaluationError(Exception):
    """An expression could not be evaluated in the empty context."""


class _Unknown(Exception):
    """Internal: an operand is unknown, so the whole operation is."""


def format_number(number: Decimal) -> str:
    """
    Canonical text form of a number, as used in string interpolation. The
    text is exact: no rounding to the decimal context.
    """
    if number.is_zero():
        return "0"
    text = format(number, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _require_known(*values: Value):
    if any(v.is_unknown for v in values):
        raise _Unknown()


def _to_number(value: Value) -> Decimal:
    if value.kind is ValueKind.NUMBER:
        return value.data
    if value.kind is ValueKind.STRING:
        try:
            number = Decimal(value.data.strip())
        except InvalidOperation:
            number = None
        if number is not None and number.is_finite():
            return number
        raise EvaluationError(f"a number is required, got string {value.data!r}")
    raise EvaluationError(f"a number is required, got {value.kind.value}")


def _to_bool(value: Value) -> bool:
    if value.kind is ValueKind.BOOL:
        return value.data
    if value.kind is ValueKind.STRING and value.data in ("true", "false"):
        return value.data == "true"
    raise EvaluationError(f"a bool is required, got {value.kind.value}")


def _to_string(value: Value) -> str:
    if value.kind is ValueKind.STRING:
        return value.data
    if value.kind is ValueKind.NUMBER:
        if abs(value.data.adjusted()) > _MAX_NUMBER_DIGITS:
            raise EvaluationError(f"number {value.data} is too large to convert to a string")
        return format_number(value.data)
    if value.kind is ValueKind.BOOL:
        return "true" if value.data else "false"
    raise EvaluationError(f"a string is required, got {value.kind.value}")


def _arithmetic(operator: str, left: Decimal, right: Decimal) -> Decimal:
    try:
        if operator == "+":
            return left + right
        if operator == "-":
            return left - right
        if operator == "*":
            return left * right
        if operator == "/":
            return left / right
        return left % right
    except ArithmeticError as e:
        raise EvaluationError(f"invalid arithmetic: {left} {operator} {right}") from e


_COMPARISONS = {
    "<": lambda a, b: a < b,
    ">": lambda a, b: a > b,
    "<=": lambda a, b: a <= b,
    ">=": lambda a, b: a >= b,
}


class Evaluator:
    """
    Evaluates syntax expressions into Values.

    With `track_references` enabled, unknown values remember the normalized
    source text of the expression that produced them, so two unknowns only
    compare equal when they were written the same way.
    """

    def __init__(self, track_references: bool = False):
        self.track_references = track_references
        self._handlers = {
            Literal: self._literal,
            TemplateExpr: self._template,
            Variable: self._variable,
            SplatItem: self._splat_item,
            GetAttr: self._get_attr,
            Index: self._index,
            Splat: self._splat,
            FunctionCall: self._function_call,
            TupleExpr: self._tuple,
            ObjectExpr: self._object,
            UnaryOp: self._unary,
            BinaryOp: self._binary,
            Conditional: self._conditional,
            ForExpr: self._for,
        }

    def evaluate(self, expression: Expression) -> Value:
        """Evaluates an attribute expression. Never raises for evaluation failures."""
        return self._eval(expression, {})

    # ---- Dispatch ----

    def _unknown(self, expression: Expression) -> Value:
        return Value.unknown(expression.source if self.track_references else None)

    def _eval(self, expression: Expression, scope: Dict[Any, Value]) -> Value:
        handler = self._handlers[type(expression)]
        try:
            return handler(expression, scope)
        except _Unknown:
            return self._unknown(expression)
        except EvaluationError as e:
            logger.debug("Line %s: %r evaluates to unknown: %s", expression.line, expression.source, e)
            return self._unknown(expression)

    # ---- Leaves ----

    def _literal(self, expr: Literal, scope) -> Value:
        return expr.value

    def _variable(self, expr: Variable, scope) -> Value:
        if expr.name in scope:
            return scope[expr.name]
        raise EvaluationError(f'Variables not allowed: "{expr.name}"')

    def _splat_item(self, expr: SplatItem, scope) -> Value:
        return scope[_SPLAT_ITEM]

    def _function_call(self, expr: FunctionCall, scope) -> Value:
        raise EvaluationError(f'Function calls not allowed: "{expr.name}"')

    # ---- Templates ----

    def _template(self, expr: TemplateExpr, scope) -> Value:
        if expr.has_directives:
            raise EvaluationError("template directives require an evaluation context")
        if expr.is_wrap:
            return self._eval(expr.parts[0], scope)

        chunks: List[str] = []
        for part in expr.parts:
            if isinstance(part, str):
                chunks.append(part)
                continue
            value = self._eval(part, scope)
            _require_known(value)
            chunks.append(_to_string(value))
        return Value.string("".join(chunks))

    # ---- Traversals ----

    def _get_attr(self, expr: GetAttr, scope) -> Value:
        target = self._eval(expr.target, scope)
        _require_known(target)
        if target.kind is ValueKind.MAP and expr.name in target.data:
            return target.data[expr.name]
        raise EvaluationError(f'Unsupported attribute "{expr.name}" on {target.kind.value}')

    def _index(self, expr: Index, scope) -> Value:
        target = self._eval(expr.target, scope)
        key = self._eval(expr.key, scope)
        _require_known(target, key)

        if target.kind is ValueKind.LIST:
            position = _to_number(key)
            if position != position.to_integral_value() or not 0 <= position < len(target.data):
                raise EvaluationError(f"Invalid index {position}")
            return target.data[int(position)]
        if target.kind is ValueKind.MAP:
            name = _to_string(key)
            if name in target.data:
                return target.data[name]
            raise EvaluationError(f'Invalid index "{name}"')
        raise EvaluationError(f"Cannot index a {target.kind.value}")

    def _splat(self, expr: Splat, scope) -> Value:
        target = self._eval(expr.target, scope)
        _require_known(target)

        if target.kind is ValueKind.NULL:
            return Value.list([])
        elements = target.data if target.kind is ValueKind.LIST else (target,)
        results = []
        for element in elements:
            results.append(self._eval(expr.each, {**scope, _SPLAT_ITEM: element}))
        return Value.list(results)

    # ---- Collections ----

    def _tuple(self, expr: TupleExpr, scope) -> Value:
        return Value.list(self._eval(item, scope) for item in expr.items)

    def _object(self, expr: ObjectExpr, scope) -> Value:
        items: Dict[str, Value] = {}
        for key_expr, value_expr in expr.items:
            key = self._eval(key_expr, scope)
            _require_known(key)
            items[_to_string(key)] = self._eval(value_expr, scope)
        return Value.map(items)

    # ---- Operators ----

    def _unary(self, expr: UnaryOp, scope) -> Value:
        operand = self._eval(expr.operand, scope)
        _require_known(operand)
        if expr.operator == "-":
            return Value.number(-_to_number(operand))
        return Value.boolean(not _to_bool(operand))

    def _binary(self, expr: BinaryOp, scope) -> Value:
        left = self._eval(expr.left, scope)
        right = self._eval(expr.right, scope)
        _require_known(left, right)
        operator = expr.operator

        if operator == "==":
            return Value.boolean(values_equal(left, right))
        if operator == "!=":
            return Value.boolean(not values_equal(left, right))
        if operator == "&&":
            return Value.boolean(_to_bool(left) and _to_bool(right))
        if operator == "||":
            return Value.boolean(_to_bool(left) or _to_bool(right))
        if operator in _COMPARISONS:
            return Value.boolean(_COMPARISONS[operator](_to_number(left), _to_number(right)))
        return Value.number(_arithmetic(operator, _to_number(left), _to_number(right)))

    def _conditional(self, expr: Conditional, scope) -> Value:
        condition = self._eval(expr.condition, scope)
        _require_known(condition)
        if _to_bool(condition):
            return self._eval(expr.true_result, scope)
        return self._eval(expr.false_result, scope)

    # ---- For expressions ----

    def _iterate(self, collection: Value) -> List[Tuple[Value, Value]]:
        if collection.kind is ValueKind.LIST:
            return [(Value.number(i), item) for i, item in enumerate(collection.data)]
        if collection.kind is ValueKind.MAP:
            return [(Value.string(key), collection.data[key]) for key in sorted(collection.data)]
        raise EvaluationError(f"Cannot iterate over {collection.kind.value}")

    def _for(self, expr: ForExpr, scope) -> Value:
        collection = self._eval(expr.collection, scope)
        _require_known(collection)

        values: List[Value] = []
        entries: Dict[str, Any] = {}
        for key, value in self._iterate(collection):
            local = dict(scope)
            local[expr.value_var] = value
            if expr.key_var:
                local[expr.key_var] = key

            if expr.condition is not None:
                keep = self._eval(expr.condition, local)
                _require_known(keep)
                if not _to_bool(keep):
                    continue

            result = self._eval(expr.value_expr, local)
            if not expr.is_object:
                values.append(result)
                continue

            name_value = self._eval(expr.key_expr, local)
            _require_known(name_value)
            name = _to_string(name_value)
            if expr.grouping:
                entries.setdefault(name, []).append(result)
            elif name in entries:
                raise EvaluationError(f'Duplicate object key "{name}" in for expression')
            else:
                entries[name] = result

        if not expr.is_object:
            return Value.list(values)
        if expr.grouping:
            return Value.map({name: Value.list(group) for name, group in entries.items()})
        return Value.map(entries)
