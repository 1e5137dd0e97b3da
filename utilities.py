"""
Utilities module for the Canon interpreter
Contains common helper functions to reduce code duplication
"""

from typing import Any, Dict, Optional, Callable

from error_handling import (
  TypeMismatch,
  ArityError,
  UnsupportedOperation,
)
from values import (
  describe_value,
  is_real,
  is_boolean,
  to_fraction,
  make_boolean,
)


# ==================== ERROR MESSAGE BUILDERS ====================

def type_mismatch_error(
  name: str,
  type_text: str,
  actual: Dict
) -> TypeMismatch:
  """
  Generate type mismatch error

  Args:
    name: Symbol or parameter name
    type_text: Rendered declared set
    actual: Offending value

  Returns:
    TypeMismatch with formatted message
  """
  return TypeMismatch(
    f"{describe_value(actual)} is not in type '{type_text}' of '{name}'"
  )


def arity_error(func_name: str, expected: int, got: int) -> ArityError:
  """
  Generate arity mismatch error

  Args:
    func_name: Function name
    expected: Expected number of arguments
    got: Actual number of arguments

  Returns:
    ArityError with formatted message
  """
  return ArityError(
    f"{func_name} takes {expected} arguments, got {got}"
  )


def operation_error(
  op: str,
  left: Dict,
  right: Optional[Dict] = None
) -> UnsupportedOperation:
  """
  Generate unsupported operation error

  Args:
    op: Operator symbol
    left: Left (or only) operand
    right: Right operand for binary operators

  Returns:
    UnsupportedOperation with formatted message
  """
  if right is None:
    return UnsupportedOperation(
      f"Cannot apply unary operator '{op}' to {left['type']}"
    )
  return UnsupportedOperation(
    f"Cannot apply binary operator '{op}' to {left['type']} and {right['type']}"
  )


# ==================== BINARY OPERATION FACTORIES ====================

def binary_comparison_op(
  op: Callable[[Any, Any], bool],
  op_name: str
) -> Callable[[Dict, Dict], Dict]:
  """
  Factory for ordering comparisons over real numbers

  Args:
    op: Python operator function (e.g., operator.lt)
    op_name: Operator symbol for error messages

  Returns:
    Function that performs the comparison

  Examples:
    canon_lt = binary_comparison_op(operator.lt, "<")
    result = canon_lt(make_integer(1), make_rational(3, 2))
  """
  def comparison(x: Dict, y: Dict) -> Dict:
    if not (is_real(x) and is_real(y)):
      raise operation_error(op_name, x, y)
    return make_boolean(op(to_fraction(x), to_fraction(y)))

  return comparison


def binary_logic_op(
  op: Callable[[bool, bool], bool],
  op_name: str
) -> Callable[[Dict, Dict], Dict]:
  """
  Factory for Boolean connectives

  Args:
    op: Function combining two Python bools
    op_name: Operator symbol for error messages

  Returns:
    Function that performs the connective on Boolean values
  """
  def logic(x: Dict, y: Dict) -> Dict:
    if not (is_boolean(x) and is_boolean(y)):
      raise operation_error(op_name, x, y)
    return make_boolean(op(x['value'], y['value']))

  return logic
