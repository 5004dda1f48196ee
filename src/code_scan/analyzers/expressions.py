"""Expression helpers for the trivial-operation and self-assignment rules.

Structural equality is purely syntactic: two operands are "the same value"
only when they are literally identical expressions. Parentheses and
whitespace are already gone from the ``ast``. Calls, awaits, yields and
walrus expressions may differ between evaluations, so they never compare
equal; no alias or type reasoning is attempted.
"""

from __future__ import annotations

import ast
import operator
from typing import Any, Callable

_MISSING = object()


def same_expression(left: ast.AST | None, right: ast.AST | None) -> bool:
    """Return True if *left* and *right* are structurally identical."""
    if left is None or right is None:
        return left is None and right is None
    if type(left) is not type(right):
        return False

    if isinstance(left, ast.Name):
        return left.id == right.id
    if isinstance(left, ast.Constant):
        return type(left.value) is type(right.value) and left.value == right.value
    if isinstance(left, ast.Attribute):
        return left.attr == right.attr and same_expression(left.value, right.value)
    if isinstance(left, ast.Subscript):
        return same_expression(left.value, right.value) and same_expression(
            left.slice, right.slice
        )
    if isinstance(left, ast.Slice):
        return (
            same_expression(left.lower, right.lower)
            and same_expression(left.upper, right.upper)
            and same_expression(left.step, right.step)
        )
    if isinstance(left, ast.UnaryOp):
        return type(left.op) is type(right.op) and same_expression(
            left.operand, right.operand
        )
    if isinstance(left, ast.BinOp):
        return (
            type(left.op) is type(right.op)
            and same_expression(left.left, right.left)
            and same_expression(left.right, right.right)
        )
    if isinstance(left, ast.BoolOp):
        return type(left.op) is type(right.op) and _same_sequence(
            left.values, right.values
        )
    if isinstance(left, ast.Compare):
        return (
            [type(op) for op in left.ops] == [type(op) for op in right.ops]
            and same_expression(left.left, right.left)
            and _same_sequence(left.comparators, right.comparators)
        )
    if isinstance(left, (ast.Tuple, ast.List)):
        return _same_sequence(left.elts, right.elts)
    if isinstance(left, ast.Starred):
        return same_expression(left.value, right.value)
    return False


def _same_sequence(left: list[ast.expr], right: list[ast.expr]) -> bool:
    return len(left) == len(right) and all(
        same_expression(a, b) for a, b in zip(left, right)
    )


# ── literals ────────────────────────────────────────────────────────

_LITERAL_TYPES = (int, float, complex, str, bytes, bool, type(None))


def literal_value(node: ast.AST) -> Any:
    """Return the literal value of *node*, or ``_MISSING`` if not a literal.

    Handles constants and signed numeric constants (``-1``, ``+2.5``).
    """
    if isinstance(node, ast.Constant) and isinstance(node.value, _LITERAL_TYPES):
        return node.value
    if (
        isinstance(node, ast.UnaryOp)
        and isinstance(node.op, (ast.USub, ast.UAdd))
        and isinstance(node.operand, ast.Constant)
        and isinstance(node.operand.value, (int, float, complex))
        and not isinstance(node.operand.value, bool)
    ):
        value = node.operand.value
        return -value if isinstance(node.op, ast.USub) else +value
    return _MISSING


def is_literal(node: ast.AST) -> bool:
    return literal_value(node) is not _MISSING


def int_literal(node: ast.AST) -> int | None:
    """Return the value of an integer literal (bools excluded), else None."""
    value = literal_value(node)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def number_literal(node: ast.AST) -> int | float | None:
    value = literal_value(node)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


_COMPARATORS: dict[type, Callable[[Any, Any], Any]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}


def compare_literals(op: ast.cmpop, left: ast.AST, right: ast.AST) -> bool | None:
    """Statically evaluate ``left <op> right`` for two literals.

    Returns None when either side is not a literal, the operator is not
    supported or the comparison is not defined for the operand types.
    """
    compare = _COMPARATORS.get(type(op))
    if compare is None:
        return None
    lhs = literal_value(left)
    rhs = literal_value(right)
    if lhs is _MISSING or rhs is _MISSING:
        return None
    try:
        return bool(compare(lhs, rhs))
    except TypeError:
        return None
