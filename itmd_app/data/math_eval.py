"""
Arithmetic evaluator for ``{...}`` groups in price lines.

Expressions are parsed with Python's ``ast`` module and only numeric
literals, ``+ - * / ^`` and parentheses are accepted. ``^`` is exponentiation.
Evaluation is done in floating point; results that are not finite (division
by zero, overflow, complex powers) are returned as ``nan``/``inf`` so the
caller can tell "bad value" apart from "bad syntax".
"""

import ast
import math
import operator
from decimal import Decimal

from ..errors import MathEvaluationError

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


def _evaluate(node: ast.AST, expression: str) -> float:
    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise MathEvaluationError(f"Unsupported literal {node.value!r}", expression=expression)
        try:
            return float(node.value)
        except OverflowError:
            return math.inf

    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left = _evaluate(node.left, expression)
        right = _evaluate(node.right, expression)
        try:
            result = _BINARY_OPS[type(node.op)](left, right)
        except ZeroDivisionError:
            return math.nan
        except OverflowError:
            return math.inf
        if isinstance(result, complex):
            return math.nan
        return result

    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_evaluate(node.operand, expression))

    raise MathEvaluationError(f"Unsupported expression element {type(node).__name__}", expression=expression)


def evaluate_expression(expression: str) -> float:
    """
    Evaluate an arithmetic expression.

    Args:
        expression: Text between the braces, e.g. ``"25*4"`` or ``"2^10 / 4"``

    Returns:
        Result as float, possibly ``nan`` or ``inf``

    Raises:
        MathEvaluationError: If the expression is empty, not plain arithmetic or
            too deeply nested to walk
    """
    source = expression.strip()
    if not source:
        raise MathEvaluationError("Empty expression", expression=expression)
    if "**" in source:
        raise MathEvaluationError("Use ^ for exponentiation", expression=expression)

    try:
        tree = ast.parse(source.replace("^", "**"), mode="eval")
    except SyntaxError as e:
        raise MathEvaluationError(f"Invalid expression {expression!r}: {e.msg}", expression=expression)
    except (RecursionError, MemoryError):
        raise MathEvaluationError("Expression is nested too deeply", expression=expression)

    try:
        return _evaluate(tree.body, expression)
    except RecursionError:
        raise MathEvaluationError("Expression is nested too deeply", expression=expression)


def format_number(value: float) -> str:
    """Render a finite float without exponent notation or a spurious ``.0``."""
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")
