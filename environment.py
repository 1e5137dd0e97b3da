"""
Canon Environment
A chain of scopes. Each scope maps names to a symbol entry: an assigned
value, a declared type constraint, or a declared function signature.
Scopes are shared by reference between closures, so insertion mutates the
current scope in place.
"""

from typing import Dict, List, Optional

from values import is_set, make_set_value
from sets import intern_set


# ============================================================================
# SYMBOL ENTRIES
# ============================================================================

VALUE_ENTRY = "Value"
TYPE_CONSTRAINT_ENTRY = "TypeConstraint"
FUNCTION_SIGNATURE_ENTRY = "FunctionSignature"


def make_value_entry(value: Dict) -> Dict:
  return {'kind': VALUE_ENTRY, 'value': value}


def make_type_constraint_entry(canon_set: Dict) -> Dict:
  return {'kind': TYPE_CONSTRAINT_ENTRY, 'set': canon_set}


def make_function_signature_entry(params: List[Dict], codomain: Dict) -> Dict:
  return {'kind': FUNCTION_SIGNATURE_ENTRY, 'params': list(params), 'codomain': codomain}


# ============================================================================
# SCOPES
# ============================================================================

def make_scope(parent: Optional[Dict] = None, symbols: Optional[Dict] = None) -> Dict:
  """Create a scope whose lookups fall through to `parent`"""
  return {
      'parent': parent,
      'symbols': symbols or {}
  }


def env_child(env: Dict) -> Dict:
  return make_scope(env)


def env_clone(env: Dict) -> Dict:
  """Copy of the current scope's table sharing the same parent"""
  return make_scope(env['parent'], dict(env['symbols']))


def env_get(env: Optional[Dict], name: str) -> Optional[Dict]:
  """Look up a name in the scope chain, innermost first"""
  while env is not None:
    if name in env['symbols']:
      return env['symbols'][name]
    env = env['parent']
  return None


def env_get_local(env: Dict, name: str) -> Optional[Dict]:
  return env['symbols'].get(name)


def env_is_assigned(env: Dict, name: str) -> bool:
  """True if the name holds a value anywhere in the visible chain"""
  scope = env
  while scope is not None:
    entry = scope['symbols'].get(name)
    if entry is not None and entry['kind'] == VALUE_ENTRY:
      return True
    scope = scope['parent']
  return False


def env_lookup_value(env: Dict, name: str) -> Optional[Dict]:
  """Value bound to a name, or None when unassigned or only declared"""
  entry = env_get(env, name)
  if entry is not None and entry['kind'] == VALUE_ENTRY:
    return entry['value']
  return None


def env_type_constraint(env: Dict, name: str) -> Optional[Dict]:
  """Declared type of a name, or None"""
  entry = env_get(env, name)
  if entry is not None and entry['kind'] == TYPE_CONSTRAINT_ENTRY:
    return entry['set']
  return None


def env_function_signature(env: Dict, name: str) -> Optional[Dict]:
  entry = env_get(env, name)
  if entry is not None and entry['kind'] == FUNCTION_SIGNATURE_ENTRY:
    return entry
  return None


# ============================================================================
# INSERTION (always into the current scope)
# ============================================================================

def env_insert_value(env: Dict, pool: Dict, name: str, value: Dict) -> Dict:
  """Bind a value, interning it first when it is a set; returns the stored value"""
  if is_set(value):
    value = make_set_value(intern_set(pool, value['value']))
  env['symbols'][name] = make_value_entry(value)
  return value


def env_insert_type_constraint(env: Dict, pool: Dict, name: str, canon_set: Dict) -> Dict:
  canon_set = intern_set(pool, canon_set)
  env['symbols'][name] = make_type_constraint_entry(canon_set)
  return canon_set


def env_insert_function_signature(env: Dict, pool: Dict, name: str,
                                  params: List[Dict], codomain: Dict) -> Dict:
  entry = make_function_signature_entry(
      [intern_set(pool, param) for param in params],
      intern_set(pool, codomain)
  )
  env['symbols'][name] = entry
  return entry


def env_user_bindings(env: Dict) -> Dict[str, Dict]:
  """Entries of the current scope, for the REPL :env command"""
  return dict(env['symbols'])
