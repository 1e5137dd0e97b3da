"""
Canon runtime values
Values are immutable dictionaries tagged with their kind, in the same
shape the rest of the interpreter passes around: {'value': ..., 'type': ...}
"""

from typing import Any, Dict, List, Tuple
from dataclasses import dataclass
from fractions import Fraction

from error_handling import CanonInternalError


# ============================================================================
# VALUE KINDS
# ============================================================================

INTEGER = "Integer"
RATIONAL = "Rational"
COMPLEX = "Complex"
BOOLEAN = "Boolean"
TEXT = "Text"
TUPLE = "Tuple"
SET = "Set"
FUNCTION = "Function"

NUMBER_KINDS = (INTEGER, RATIONAL, COMPLEX, BOOLEAN)

# Promotion order of the numeric tower
NUMBER_TOWER = (BOOLEAN, INTEGER, RATIONAL, COMPLEX)


@dataclass(frozen=True)
class ComplexRational:
  """Exact complex number with rational parts"""
  real: Fraction
  imag: Fraction

  def __add__(self, other: 'ComplexRational') -> 'ComplexRational':
    return ComplexRational(self.real + other.real, self.imag + other.imag)

  def __neg__(self) -> 'ComplexRational':
    return ComplexRational(-self.real, -self.imag)

  def __sub__(self, other: 'ComplexRational') -> 'ComplexRational':
    return self + (-other)

  def __mul__(self, other: 'ComplexRational') -> 'ComplexRational':
    return ComplexRational(
        self.real * other.real - self.imag * other.imag,
        self.real * other.imag + self.imag * other.real
    )

  def __truediv__(self, other: 'ComplexRational') -> 'ComplexRational':
    denominator = other.real * other.real + other.imag * other.imag
    if denominator == 0:
      raise ZeroDivisionError("complex division by zero")
    numerator = self * other.conjugate()
    return ComplexRational(numerator.real / denominator, numerator.imag / denominator)

  def conjugate(self) -> 'ComplexRational':
    return ComplexRational(self.real, -self.imag)

  def reciprocal(self) -> 'ComplexRational':
    return ComplexRational(Fraction(1), Fraction(0)) / self

  def is_zero(self) -> bool:
    return self.real == 0 and self.imag == 0

  def __str__(self) -> str:
    sign = '-' if self.imag < 0 else '+'
    return f"{self.real}{sign}{abs(self.imag)}i"


# ============================================================================
# CONSTRUCTORS
# ============================================================================

def make_value(value: Any, type_name: str) -> Dict:
  """Create an immutable runtime value"""
  return {
      'value': value,
      'type': type_name
  }


def make_integer(n: int) -> Dict:
  return make_value(int(n), INTEGER)


def make_rational(numerator: Any, denominator: Any = 1) -> Dict:
  return make_value(Fraction(numerator, denominator), RATIONAL)


def make_complex(real: Any, imag: Any = 0) -> Dict:
  return make_value(ComplexRational(Fraction(real), Fraction(imag)), COMPLEX)


def make_boolean(flag: bool) -> Dict:
  return make_value(bool(flag), BOOLEAN)


def make_text(text: str) -> Dict:
  return make_value(text, TEXT)


def make_tuple(items: List[Dict]) -> Dict:
  return make_value(tuple(items), TUPLE)


def make_set_value(canon_set: Dict) -> Dict:
  return make_value(canon_set, SET)


def make_function_value(closure: Dict) -> Dict:
  return make_value(closure, FUNCTION)


# ============================================================================
# KIND PREDICATES
# ============================================================================

def is_number(val: Dict) -> bool:
  """Numbers include Booleans, which count as {0, 1}"""
  return val['type'] in NUMBER_KINDS


def is_real(val: Dict) -> bool:
  if val['type'] == COMPLEX:
    return val['value'].imag == 0
  return is_number(val)


def is_text(val: Dict) -> bool:
  return val['type'] == TEXT


def is_tuple(val: Dict) -> bool:
  return val['type'] == TUPLE


def is_set(val: Dict) -> bool:
  return val['type'] == SET


def is_function(val: Dict) -> bool:
  return val['type'] == FUNCTION


def is_boolean(val: Dict) -> bool:
  return val['type'] == BOOLEAN


# ============================================================================
# NUMERIC PROMOTION
# ============================================================================

def to_fraction(val: Dict) -> Fraction:
  """Promote a real number to a Fraction"""
  kind = val['type']
  if kind == BOOLEAN:
    return Fraction(int(val['value']))
  if kind in (INTEGER, RATIONAL):
    return Fraction(val['value'])
  if kind == COMPLEX and val['value'].imag == 0:
    return val['value'].real
  raise CanonInternalError(f"Cannot view {kind} as a real number")


def to_complex(val: Dict) -> ComplexRational:
  """Promote any number to its complex form"""
  if val['type'] == COMPLEX:
    return val['value']
  return ComplexRational(to_fraction(val), Fraction(0))


def promote(val: Dict, kind: str) -> Any:
  """Raw payload of `val` promoted to the numeric `kind`"""
  if kind == INTEGER:
    return int(val['value'])
  if kind == RATIONAL:
    return to_fraction(val)
  if kind == COMPLEX:
    return to_complex(val)
  raise CanonInternalError(f"Cannot promote to {kind}")


def wider_kind(left: Dict, right: Dict) -> str:
  """Widest numeric kind of two operands, Booleans counting as Integers"""
  rank = max(NUMBER_TOWER.index(left['type']), NUMBER_TOWER.index(right['type']), 1)
  return NUMBER_TOWER[rank]


def is_integral(val: Dict) -> bool:
  """True for numbers with no fractional or imaginary part"""
  if not is_number(val):
    return False
  number = to_complex(val)
  return number.imag == 0 and number.real.denominator == 1


# ============================================================================
# EQUALITY AND HASHING
# ============================================================================

def value_key(val: Dict) -> Tuple:
  """Hashable structural key; two values are equal iff their keys are equal

  Numbers are keyed by their complex form, so 2, 4/2 and 2+0i share a key.
  """
  kind = val['type']
  if kind in (INTEGER, RATIONAL, COMPLEX):
    number = to_complex(val)
    return ('Number', number.real, number.imag)
  elif kind == BOOLEAN:
    return ('Boolean', val['value'])
  elif kind == TEXT:
    return ('Text', val['value'])
  elif kind == TUPLE:
    return ('Tuple', tuple(value_key(item) for item in val['value']))
  elif kind == SET:
    return ('Set', val['value']['key'])
  elif kind == FUNCTION:
    return ('Function', id(val['value']))
  raise CanonInternalError(f"Unknown value kind: {kind}")


def values_equal(left: Dict, right: Dict) -> bool:
  if left['type'] == SET and right['type'] == SET and left['value'] is right['value']:
    return True
  return value_key(left) == value_key(right)


def hash_value(val: Dict) -> int:
  return hash(value_key(val))


def clone_value(val: Dict) -> Dict:
  """Values are never mutated, so a shallow copy of the wrapper is a full clone"""
  return dict(val)


# ============================================================================
# RENDERING
# ============================================================================

def render_value(val: Dict) -> str:
  """Human-readable text of a value, as printed by bare expression statements"""
  kind = val['type']
  if kind == INTEGER:
    return str(val['value'])
  elif kind == RATIONAL:
    return str(val['value'])
  elif kind == COMPLEX:
    return str(val['value'])
  elif kind == BOOLEAN:
    return "true" if val['value'] else "false"
  elif kind == TEXT:
    return val['value']
  elif kind == TUPLE:
    return "[" + ", ".join(render_value(item) for item in val['value']) + "]"
  elif kind == SET:
    from sets import render_set
    return render_set(val['value'])
  elif kind == FUNCTION:
    from semantics import render_expr
    closure = val['value']
    return f"({', '.join(closure['params'])}) -> {render_expr(closure['body'])}"
  raise CanonInternalError(f"Unknown value kind: {kind}")


def describe_value(val: Dict) -> str:
  """Rendered value with its kind, for error messages"""
  return f"'{render_value(val)}' ({val['type']})"
