"""
Canon Standard Library
Operator implementations over runtime values: arithmetic across the numeric
tower, comparison, Boolean logic and set algebra
"""

from typing import Dict, Callable, Tuple
from fractions import Fraction
import math
import operator

from error_handling import UnsupportedOperation, NotYetImplemented, TypeMismatch
from utilities import (
  binary_comparison_op,
  binary_logic_op,
  operation_error,
)
from values import (
  INTEGER,
  RATIONAL,
  COMPLEX,
  BOOLEAN,
  ComplexRational,
  make_value,
  make_integer,
  make_boolean,
  make_text,
  make_set_value,
  is_number,
  is_text,
  is_set,
  is_boolean,
  promote,
  wider_kind,
  to_complex,
  render_value,
  values_equal,
  describe_value,
)
from sets import (
  UNION,
  INTERSECT,
  SYMDIFF,
  EXCLUSION,
  COMPLEMENT,
  NATURALS,
  make_combinator,
  make_infinite_set,
  canonicalize,
  set_contains,
  is_subset,
  sets_equal,
)


# Exponentiation refuses exponents wider than 32 bits, and results whose
# estimated size exceeds this many bits
MAX_EXPONENT = (1 << 32) - 1
MAX_RESULT_BITS = 1 << 28

# Gaussian units 1, i, -1, -i: powers cycle with period 4
COMPLEX_UNITS = (
    ComplexRational(Fraction(1), Fraction(0)),
    ComplexRational(Fraction(0), Fraction(1)),
    ComplexRational(Fraction(-1), Fraction(0)),
    ComplexRational(Fraction(0), Fraction(-1)),
)


# ============================================================================
# HELPERS
# ============================================================================

def _numeric_binary(op: Callable, x: Dict, y: Dict, minimum_kind: str = INTEGER) -> Dict:
  """Promote both operands to their common kind and combine them"""
  kind = wider_kind(x, y)
  if minimum_kind == RATIONAL and kind == INTEGER:
    kind = RATIONAL
  return make_value(op(promote(x, kind), promote(y, kind)), kind)


def _is_zero(x: Dict) -> bool:
  return to_complex(x).is_zero()


def _require_numbers(op_name: str, x: Dict, y: Dict) -> None:
  if not (is_number(x) and is_number(y)):
    raise operation_error(op_name, x, y)


# ============================================================================
# ARITHMETIC
# ============================================================================

def canon_neg(x: Dict) -> Dict:
  """Negation; a Boolean negates to itself"""
  kind = x['type']
  if kind == BOOLEAN:
    return x
  elif kind in (INTEGER, RATIONAL, COMPLEX):
    return make_value(-x['value'], kind)
  raise operation_error('-', x)


def canon_pos(x: Dict) -> Dict:
  if not is_number(x):
    raise operation_error('+', x)
  return x


def canon_add(x: Dict, y: Dict) -> Dict:
  """Addition; a Text operand on either side concatenates the rendered other side"""
  if is_text(x):
    return make_text(x['value'] + render_value(y))
  if is_text(y):
    return make_text(render_value(x) + y['value'])
  _require_numbers('+', x, y)
  if is_boolean(x) and is_boolean(y):
    return make_boolean(x['value'] != y['value'])
  return _numeric_binary(operator.add, x, y)


def canon_sub(x: Dict, y: Dict) -> Dict:
  """Subtraction, defined as addition of the negation"""
  if is_text(x):
    raise UnsupportedOperation("Cannot subtract from a string")
  if is_text(y):
    raise UnsupportedOperation("Cannot subtract a string")
  _require_numbers('-', x, y)
  return canon_add(x, canon_neg(y))


def canon_mul(x: Dict, y: Dict) -> Dict:
  if is_text(x) or is_text(y):
    raise UnsupportedOperation("Cannot multiply by a string")
  _require_numbers('*', x, y)
  if is_boolean(x) and is_boolean(y):
    return make_boolean(x['value'] and y['value'])
  return _numeric_binary(operator.mul, x, y)


def canon_div(x: Dict, y: Dict) -> Dict:
  """Division; Integer / Integer yields a Rational"""
  if is_text(x) or is_text(y):
    raise UnsupportedOperation("Cannot apply binary operator '/' to text")
  _require_numbers('/', x, y)
  if is_boolean(y):
    raise UnsupportedOperation("Cannot divide by a boolean")
  if is_boolean(x):
    raise UnsupportedOperation("Cannot use division with booleans")
  if _is_zero(y):
    raise UnsupportedOperation(f"Cannot divide {render_value(x)} by zero")
  return _numeric_binary(operator.truediv, x, y, minimum_kind=RATIONAL)


# ============================================================================
# EXPONENTIATION
# ============================================================================

def _integer_exponent(y: Dict) -> int:
  """Exponent as a Python int; Rational and Complex exponents are unfinished"""
  kind = y['type']
  if kind == RATIONAL:
    raise NotYetImplemented("exponentiation with a rational exponent")
  if kind == COMPLEX:
    raise NotYetImplemented("exponentiation with a complex exponent")
  return int(y['value'])


def _estimated_bits(parts: Tuple[Fraction, ...], exponent: int) -> float:
  """Upper bound on log2 of the result's numerator or denominator"""
  largest = max(max(abs(part.numerator), part.denominator) for part in parts)
  return abs(exponent) * (math.log2(largest) + len(parts) - 1)


def _check_magnitude(parts: Tuple[Fraction, ...], exponent: int) -> None:
  if abs(exponent) > MAX_EXPONENT or _estimated_bits(parts, exponent) > MAX_RESULT_BITS:
    raise UnsupportedOperation("Exponent is too large to compute")


def _complex_power(base: ComplexRational, exponent: int) -> Dict:
  if base in COMPLEX_UNITS:
    index = COMPLEX_UNITS.index(base)
    return make_value(COMPLEX_UNITS[(index * exponent) % 4], COMPLEX)
  if base.is_zero() and exponent < 0:
    raise UnsupportedOperation("Base of negative exponent cannot be '0'")
  _check_magnitude((base.real, base.imag), exponent)

  result = ComplexRational(Fraction(1), Fraction(0))
  square = base
  remaining = abs(exponent)
  while remaining:
    if remaining & 1:
      result = result * square
    square = square * square
    remaining >>= 1
  if exponent < 0:
    result = result.reciprocal()
  return make_value(result, COMPLEX)


def canon_pow(x: Dict, y: Dict) -> Dict:
  """Exponentiation by an integral exponent

  0^0 and 0^-n are errors, x^0 is 1, a negative exponent takes the
  reciprocal, and -1 alternates between 1 and -1 by parity.
  """
  if is_set(x):
    if not set_contains(make_infinite_set(NATURALS), y):
      raise TypeMismatch(f"{describe_value(y)} is not in 'Nat'")
    raise NotYetImplemented("cartesian power of a set")
  if is_text(x) or is_text(y):
    raise UnsupportedOperation("Cannot apply binary operator '^' to text")
  _require_numbers('^', x, y)
  if is_boolean(x):
    raise UnsupportedOperation("Cannot raise a boolean to a power")

  exponent = _integer_exponent(y)
  if exponent == 0:
    if _is_zero(x):
      raise UnsupportedOperation("Cannot raise '0' to the power of '0'")
    return make_integer(1)

  if x['type'] == COMPLEX:
    return _complex_power(x['value'], exponent)

  base = x['value']
  if base == -1:
    return make_integer(1 if exponent % 2 == 0 else -1)
  if base == 1:
    return make_value(base, x['type'])
  if base == 0:
    if exponent < 0:
      raise UnsupportedOperation("Base of negative exponent cannot be '0'")
    return make_value(base, x['type'])

  fraction = Fraction(base)
  _check_magnitude((fraction,), exponent)
  if exponent > 0:
    return make_value(base ** exponent, x['type'])
  return make_value(fraction ** exponent, RATIONAL)


# ============================================================================
# COMPARISON AND LOGIC
# ============================================================================

def canon_eq(x: Dict, y: Dict) -> Dict:
  return make_boolean(values_equal(x, y))


def canon_ne(x: Dict, y: Dict) -> Dict:
  return make_boolean(not values_equal(x, y))


canon_lt = binary_comparison_op(operator.lt, '<')
canon_gt = binary_comparison_op(operator.gt, '>')
canon_le = binary_comparison_op(operator.le, '<=')
canon_ge = binary_comparison_op(operator.ge, '>=')

canon_and = binary_logic_op(lambda a, b: a and b, '&&')
canon_or = binary_logic_op(lambda a, b: a or b, '||')


def canon_not(x: Dict) -> Dict:
  if not is_boolean(x):
    raise operation_error('!', x)
  return make_boolean(not x['value'])


# ============================================================================
# SET ALGEBRA
# ============================================================================

def set_combinator_op(kind: str, op_name: str) -> Callable[[Dict, Dict], Dict]:
  """Factory for binary set operators building a canonical combinator"""
  def combine(x: Dict, y: Dict) -> Dict:
    if not (is_set(x) and is_set(y)):
      raise operation_error(op_name, x, y)
    return make_set_value(canonicalize(make_combinator(kind, x['value'], y['value'])))

  return combine


canon_union = set_combinator_op(UNION, '|')
canon_intersect = set_combinator_op(INTERSECT, '&')
canon_symdiff = set_combinator_op(SYMDIFF, '~')
canon_exclusion = set_combinator_op(EXCLUSION, '\\')


def canon_complement(x: Dict) -> Dict:
  if not is_set(x):
    raise operation_error('~', x)
  return make_set_value(canonicalize(make_combinator(COMPLEMENT, x['value'])))


def set_comparison_op(test: Callable[[Dict, Dict], bool], op_name: str) -> Callable[[Dict, Dict], Dict]:
  """Factory for set comparisons (=: <: >: <=: >=:)"""
  def compare(x: Dict, y: Dict) -> Dict:
    if not (is_set(x) and is_set(y)):
      raise operation_error(op_name, x, y)
    return make_boolean(test(x['value'], y['value']))

  return compare


canon_set_eq = set_comparison_op(sets_equal, '=:')
canon_subset = set_comparison_op(is_subset, '<=:')
canon_superset = set_comparison_op(lambda a, b: is_subset(b, a), '>=:')
canon_proper_subset = set_comparison_op(
    lambda a, b: is_subset(a, b) and not is_subset(b, a), '<:')
canon_proper_superset = set_comparison_op(
    lambda a, b: is_subset(b, a) and not is_subset(a, b), '>:')


# ============================================================================
# OPERATOR TABLES
# ============================================================================

BUILTIN_OPERATORS: Dict[str, Callable[[Dict, Dict], Dict]] = {
    '+': canon_add,
    '-': canon_sub,
    '*': canon_mul,
    '/': canon_div,
    '^': canon_pow,
    '==': canon_eq,
    '!=': canon_ne,
    '<': canon_lt,
    '>': canon_gt,
    '<=': canon_le,
    '>=': canon_ge,
    '&&': canon_and,
    '||': canon_or,
    '|': canon_union,
    '&': canon_intersect,
    '~': canon_symdiff,
    '\\': canon_exclusion,
    '=:': canon_set_eq,
    '<=:': canon_subset,
    '>=:': canon_superset,
    '<:': canon_proper_subset,
    '>:': canon_proper_superset,
}

UNARY_OPERATORS: Dict[str, Callable[[Dict], Dict]] = {
    '-': canon_neg,
    '+': canon_pos,
    '!': canon_not,
    '~': canon_complement,
}


def apply_binary(op: str, x: Dict, y: Dict) -> Dict:
  if op not in BUILTIN_OPERATORS:
    raise NotYetImplemented(f"binary operator '{op}'")
  return BUILTIN_OPERATORS[op](x, y)


def apply_unary(op: str, x: Dict) -> Dict:
  if op not in UNARY_OPERATORS:
    raise NotYetImplemented(f"unary operator '{op}'")
  return UNARY_OPERATORS[op](x)
