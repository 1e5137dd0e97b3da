"""
Canon Set/Type Engine
Types are sets. A canonical set is an immutable dictionary describing either a
finite collection of values, a named infinite primitive, or a set-algebra
combinator over other canonical sets. Structurally identical sets are
interned in a pool so that identity can stand in for deep equality.
"""

from typing import Dict, Iterable, List, Optional

from error_handling import NotYetImplemented, CanonInternalError
from values import (
  value_key,
  render_value,
  is_number,
  is_real,
  is_text,
  is_integral,
  to_complex,
)


# ============================================================================
# SET VARIANTS
# ============================================================================

FINITE = "FINITE"
INFINITE = "INFINITE"
UNION = "UNION"
INTERSECT = "INTERSECT"
SYMDIFF = "SYMDIFF"
EXCLUSION = "EXCLUSION"
COMPLEMENT = "COMPLEMENT"

# Infinite primitives, named as they are spelled in source code
UNIVERSE = "Univ"
EMPTY = "Empty"
NATURALS = "Nat"
INTEGERS = "Int"
REALS = "Real"
COMPLEXES = "Complex"
STRINGS = "Str"

BUILTIN_SET_NAMES = (UNIVERSE, EMPTY, NATURALS, INTEGERS, REALS, COMPLEXES, STRINGS)

COMBINATOR_SYMBOLS = {
    UNION: '|',
    INTERSECT: '&',
    SYMDIFF: '~',
    EXCLUSION: '\\',
}

COMMUTATIVE = (UNION, INTERSECT, SYMDIFF)


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_finite_set(elements: Iterable[Dict]) -> Dict:
  """Finite set of values; duplicates collapse by value equality"""
  members = {}
  for element in elements:
    members.setdefault(value_key(element), element)
  return {
      'kind': FINITE,
      'name': None,
      'members': members,
      'children': (),
      'key': (FINITE, frozenset(members))
  }


def make_infinite_set(name: str) -> Dict:
  if name not in BUILTIN_SET_NAMES:
    raise CanonInternalError(f"Unknown infinite set: {name}")
  return {
      'kind': INFINITE,
      'name': name,
      'members': {},
      'children': (),
      'key': (INFINITE, name)
  }


def make_combinator(kind: str, *children: Dict) -> Dict:
  """Union/Intersect/SymDiff/Exclusion over two sets, Complement over one"""
  expected = 1 if kind == COMPLEMENT else 2
  if len(children) != expected:
    raise CanonInternalError(f"{kind} takes {expected} operand sets, got {len(children)}")
  return {
      'kind': kind,
      'name': None,
      'members': {},
      'children': tuple(children),
      'key': (kind, tuple(child['key'] for child in children))
  }


def make_set_pool() -> Dict:
  """Intern pool owned by one interpreter instance"""
  return {'sets': {}}


# ============================================================================
# INTERNING AND CANONICALIZATION
# ============================================================================

def intern_set(pool: Dict, canon_set: Dict) -> Dict:
  """Return the pooled instance structurally equal to `canon_set`"""
  children = tuple(intern_set(pool, child) for child in canon_set['children'])
  if children:
    canon_set = {**canon_set, 'children': children}
  return pool['sets'].setdefault(canon_set['key'], canon_set)


def pool_size(pool: Dict) -> int:
  return len(pool['sets'])


def _ordered(children: Iterable[Dict]) -> List[Dict]:
  return sorted(children, key=lambda child: repr(child['key']))


def canonicalize(canon_set: Dict) -> Dict:
  """Rewrite a set expression into its normal form

  Combinators over two finite sets are evaluated to a finite set, identity
  and absorbing elements are dropped, double complements cancel and the
  operands of commutative combinators are put in a fixed order. The empty
  finite set becomes the `Empty` primitive. Children are assumed to be
  canonical already.
  """
  kind = canon_set['kind']
  if kind == FINITE:
    return make_infinite_set(EMPTY) if not canon_set['members'] else canon_set
  if kind == INFINITE:
    return canon_set

  children = canon_set['children']

  if kind == COMPLEMENT:
    inner = children[0]
    if inner['kind'] == COMPLEMENT:
      return inner['children'][0]
    if _is_named(inner, UNIVERSE):
      return make_infinite_set(EMPTY)
    if _is_empty(inner):
      return make_infinite_set(UNIVERSE)
    return canon_set

  left, right = children
  if left['kind'] == FINITE and right['kind'] == FINITE:
    return canonicalize(_fold_finite(kind, left, right))

  if kind in (UNION, SYMDIFF):
    if kind == UNION and (_is_named(left, UNIVERSE) or _is_named(right, UNIVERSE)):
      return make_infinite_set(UNIVERSE)
    if _is_empty(left):
      return canonicalize(right)
    if _is_empty(right):
      return canonicalize(left)
  elif kind == INTERSECT:
    if _is_empty(left) or _is_empty(right):
      return make_infinite_set(EMPTY)
    if _is_named(left, UNIVERSE):
      return right
    if _is_named(right, UNIVERSE):
      return left
  elif kind == EXCLUSION:
    if _is_empty(left) or _is_named(right, UNIVERSE):
      return make_infinite_set(EMPTY)
    if _is_empty(right):
      return left

  if kind in (UNION, INTERSECT) and left['key'] == right['key']:
    return left

  if kind in COMMUTATIVE:
    return make_combinator(kind, *_ordered(children))
  return canon_set


def _is_named(canon_set: Dict, name: str) -> bool:
  return canon_set['kind'] == INFINITE and canon_set['name'] == name


def _is_empty(canon_set: Dict) -> bool:
  if canon_set['kind'] == FINITE:
    return not canon_set['members']
  return _is_named(canon_set, EMPTY)


def _fold_finite(kind: str, left: Dict, right: Dict) -> Dict:
  left_members = left['members']
  right_members = right['members']
  if kind == UNION:
    return make_finite_set(list(left_members.values()) + list(right_members.values()))
  elif kind == INTERSECT:
    return make_finite_set(v for k, v in left_members.items() if k in right_members)
  elif kind == SYMDIFF:
    return make_finite_set(
        [v for k, v in left_members.items() if k not in right_members] +
        [v for k, v in right_members.items() if k not in left_members]
    )
  elif kind == EXCLUSION:
    return make_finite_set(v for k, v in left_members.items() if k not in right_members)
  raise CanonInternalError(f"Cannot fold {kind}")


# ============================================================================
# QUERIES
# ============================================================================

def set_contains(canon_set: Dict, val: Dict) -> bool:
  """Membership test"""
  kind = canon_set['kind']
  if kind == FINITE:
    return value_key(val) in canon_set['members']
  elif kind == INFINITE:
    return _infinite_contains(canon_set['name'], val)
  elif kind == COMPLEMENT:
    return not set_contains(canon_set['children'][0], val)

  left, right = canon_set['children']
  if kind == UNION:
    return set_contains(left, val) or set_contains(right, val)
  elif kind == INTERSECT:
    return set_contains(left, val) and set_contains(right, val)
  elif kind == SYMDIFF:
    return set_contains(left, val) != set_contains(right, val)
  elif kind == EXCLUSION:
    return set_contains(left, val) and not set_contains(right, val)
  raise CanonInternalError(f"Unknown set kind: {kind}")


def _infinite_contains(name: str, val: Dict) -> bool:
  if name == UNIVERSE:
    return True
  elif name == EMPTY:
    return False
  elif name == NATURALS:
    return is_integral(val) and to_complex(val).real >= 0
  elif name == INTEGERS:
    return is_integral(val)
  elif name == REALS:
    return is_real(val)
  elif name == COMPLEXES:
    return is_number(val)
  elif name == STRINGS:
    return is_text(val)
  raise CanonInternalError(f"Unknown infinite set: {name}")


def _is_enumerated(canon_set: Dict) -> bool:
  return canon_set['kind'] == FINITE or _is_named(canon_set, EMPTY)


def is_subset(left: Dict, right: Dict) -> bool:
  """`left` ⊆ `right`, decided only between finite sets"""
  if _is_enumerated(left) and _is_enumerated(right):
    return all(key in right['members'] for key in left['members'])
  raise NotYetImplemented(f"subset test between {render_set(left)} and {render_set(right)}")


def sets_equal(left: Dict, right: Dict) -> bool:
  """Set equality; structurally identical canonical forms are always equal"""
  if left is right or left['key'] == right['key']:
    return True
  if _is_enumerated(left) and _is_enumerated(right):
    return left['members'].keys() == right['members'].keys()
  raise NotYetImplemented(f"equality test between {render_set(left)} and {render_set(right)}")


def is_finite(canon_set: Dict) -> bool:
  kind = canon_set['kind']
  if kind == FINITE:
    return True
  elif kind == INFINITE:
    return canon_set['name'] == EMPTY
  elif kind == COMPLEMENT:
    return False

  left, right = canon_set['children']
  if kind in (UNION, SYMDIFF):
    return is_finite(left) and is_finite(right)
  elif kind == INTERSECT:
    return is_finite(left) or is_finite(right)
  elif kind == EXCLUSION:
    return is_finite(left)
  raise CanonInternalError(f"Unknown set kind: {kind}")


def is_countable(canon_set: Dict) -> bool:
  kind = canon_set['kind']
  if kind == FINITE:
    return True
  elif kind == INFINITE:
    return canon_set['name'] in (EMPTY, NATURALS, INTEGERS, STRINGS)
  elif kind == COMPLEMENT:
    return False

  left, right = canon_set['children']
  if kind in (UNION, SYMDIFF):
    return is_countable(left) and is_countable(right)
  elif kind == INTERSECT:
    return is_countable(left) or is_countable(right)
  elif kind == EXCLUSION:
    return is_countable(left)
  raise CanonInternalError(f"Unknown set kind: {kind}")


def set_size(canon_set: Dict) -> Optional[int]:
  """Number of elements of a finite set, None otherwise"""
  if canon_set['kind'] == FINITE:
    return len(canon_set['members'])
  return None


# ============================================================================
# RENDERING
# ============================================================================

def render_set(canon_set: Dict) -> str:
  kind = canon_set['kind']
  if kind == FINITE:
    return "{" + ", ".join(render_value(v) for v in canon_set['members'].values()) + "}"
  elif kind == INFINITE:
    return canon_set['name']
  elif kind == COMPLEMENT:
    return f"~{_render_operand(canon_set['children'][0])}"

  left, right = canon_set['children']
  return f"{_render_operand(left)} {COMBINATOR_SYMBOLS[kind]} {_render_operand(right)}"


def _render_operand(canon_set: Dict) -> str:
  if canon_set['kind'] in COMBINATOR_SYMBOLS:
    return f"({render_set(canon_set)})"
  return render_set(canon_set)
