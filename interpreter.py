"""
Canon Interpreter - Pure Functional Style
Walks the expression/statement tree: statement execution, expression
evaluation, closures with partial application, and operator lifting
"""

from typing import Dict, List, Optional, Set

from error_handling import (
  CanonRuntimeError,
  CanonInternalError,
  UndefinedSymbol,
  ReassignmentError,
  TypeMismatch,
  NotASet,
  NotCallable,
  ArityError,
  NotYetImplemented,
)
from utilities import type_mismatch_error, arity_error
from values import (
  NUMBER_KINDS,
  TEXT,
  TUPLE,
  SET,
  FUNCTION,
  make_tuple,
  make_set_value,
  make_function_value,
  is_set,
  is_function,
  render_value,
  describe_value,
)
from sets import (
  UNIVERSE,
  BUILTIN_SET_NAMES,
  make_finite_set,
  canonicalize,
  make_infinite_set,
  make_set_pool,
  intern_set,
  set_contains,
  render_set,
)
from environment import (
  VALUE_ENTRY,
  make_scope,
  env_child,
  env_clone,
  env_get,
  env_is_assigned,
  env_lookup_value,
  env_type_constraint,
  env_function_signature,
  env_insert_value,
  env_insert_type_constraint,
  env_insert_function_signature,
)
from stdlib import apply_binary, apply_unary
from semantics import (
  make_ast_node,
  make_literal,
  make_group,
  make_unary,
  make_binary,
  make_function_expr,
  make_call_expr,
  call_parts,
  function_params,
  function_body,
  create_analyzer,
)
from parsing import create_parser


LITERAL_KINDS = NUMBER_KINDS + (TEXT, TUPLE, SET, FUNCTION)


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_interpreter_state(debug: bool = False) -> Dict:
  """Interpreter instance state: set pool, global scope, and the output log"""
  pool = make_set_pool()
  return {
      'pool': pool,
      'env': create_global_env(pool),
      'outputs': [],
      'debug': debug
  }


def create_global_env(pool: Dict) -> Dict:
  """Global scope with the builtin sets bound by name"""
  env = make_scope()
  for name in BUILTIN_SET_NAMES:
    env_insert_value(env, pool, name, make_set_value(make_infinite_set(name)))
  return env


def make_closure(params: List[str], body: Dict, env: Dict, codomain: Dict) -> Dict:
  return {
      'params': list(params),
      'body': body,
      'env': env,
      'codomain': codomain
  }


def universe_set(state: Dict) -> Dict:
  return intern_set(state['pool'], make_infinite_set(UNIVERSE))


def make_function(params: List[str], body: Dict, env: Dict, state: Dict) -> Dict:
  """New function value capturing `env`

  Parameters live in a fresh child scope, each starting with a Univ type
  constraint until an assignment attaches a declared signature.
  """
  universe = universe_set(state)
  function_env = env_child(env)
  for param in params:
    env_insert_type_constraint(function_env, state['pool'], param, universe)
  return make_function_value(make_closure(params, body, function_env, universe))


def clone_closure_with_env(closure: Dict, env: Dict, codomain: Optional[Dict] = None) -> Dict:
  """Independent closure sharing the same body"""
  return make_closure(
      closure['params'],
      closure['body'],
      env,
      codomain if codomain is not None else closure['codomain']
  )


def intern_value(value: Dict, state: Dict) -> Dict:
  """Replace a set value by its pooled instance"""
  if is_set(value):
    return make_set_value(intern_set(state['pool'], value['value']))
  return value


def require_set(value: Dict, span=None) -> Dict:
  if not is_set(value):
    raise NotASet(f"{describe_value(value)} is not a set", span)
  return value['value']


# ============================================================================
# EXPRESSION EVALUATION
# ============================================================================

def eval_ast(ast_node: Dict, env: Dict, state: Dict) -> Dict:
  """Evaluate an expression node in `env` and return its value"""
  if state['debug']:
    print(f"Evaluating: {ast_node['type']}")

  node_type = ast_node['type']

  if node_type == "LITERAL":
    return eval_literal(ast_node, env, state)
  elif node_type == "SYMBOL":
    return eval_symbol(ast_node, env, state)
  elif node_type == "GROUP":
    return eval_ast(ast_node['children'][0], env, state)
  elif node_type == "UNARY":
    return eval_unary(ast_node, env, state)
  elif node_type == "BINARY":
    return eval_binary(ast_node, env, state)
  elif node_type == "TUPLE":
    return make_tuple([eval_ast(child, env, state) for child in ast_node['children']])
  elif node_type == "SET":
    return eval_set(ast_node, env, state)
  elif node_type == "FUNCTION":
    return make_function(function_params(ast_node), function_body(ast_node), env, state)
  elif node_type == "CALL":
    return eval_call(ast_node, env, state)
  raise CanonInternalError(f"Unknown node type: {node_type}")


def eval_literal(ast_node: Dict, env: Dict, state: Dict) -> Dict:
  value = ast_node['value']
  if value['type'] not in LITERAL_KINDS:
    raise CanonInternalError(f"Unknown literal kind: {value['type']}")
  return value


def eval_symbol(ast_node: Dict, env: Dict, state: Dict) -> Dict:
  name = ast_node['value']
  value = env_lookup_value(env, name)
  if value is None:
    raise UndefinedSymbol(f"Variable '{name}' is not defined", ast_node['span'])
  return value


def eval_set(ast_node: Dict, env: Dict, state: Dict) -> Dict:
  """Set literal: a Finite set of the evaluated elements, canonical and interned"""
  elements = [eval_ast(child, env, state) for child in ast_node['children']]
  return make_set_value(intern_set(state['pool'], canonicalize(make_finite_set(elements))))


def eval_unary(ast_node: Dict, env: Dict, state: Dict) -> Dict:
  op = ast_node['value']
  operand = eval_ast(ast_node['children'][0], env, state)

  if is_function(operand):
    return lift_unary(op, operand['value'], state)

  return intern_value(apply_unary(op, operand), state)


def eval_binary(ast_node: Dict, env: Dict, state: Dict) -> Dict:
  op = ast_node['value']
  left = eval_ast(ast_node['children'][0], env, state)
  right = eval_ast(ast_node['children'][1], env, state)

  if is_function(left) and is_function(right):
    return compose_functions(op, left['value'], right['value'], state)
  elif is_function(left):
    return lift_binary_left(op, left['value'], right, state)
  elif is_function(right):
    return lift_binary_right(op, left, right['value'], state)

  return intern_value(apply_binary(op, left, right), state)


def eval_call(ast_node: Dict, env: Dict, state: Dict) -> Dict:
  callee_node, arg_nodes = call_parts(ast_node)
  callee = eval_ast(callee_node, env, state)
  if not is_function(callee):
    raise NotCallable(f"'{render_value(callee)}' is not callable", ast_node['span'])

  args = [None if arg is None else eval_ast(arg, env, state) for arg in arg_nodes]
  return call_function(callee, args, state)


# ============================================================================
# FUNCTION CALLS AND PARTIAL APPLICATION
# ============================================================================

def call_function(function: Dict, args: List[Optional[Dict]], state: Dict) -> Dict:
  """Apply a function value to argument slots; `None` slots are elided

  When every parameter is filled the body is evaluated in a fresh call
  scope. Otherwise the result is a new function over the unfilled
  parameters whose body has the filled ones frozen in as literals.
  """
  closure = function['value']
  params = closure['params']
  if len(args) > len(params):
    raise arity_error(render_value(function), len(params), len(args))

  call_env = env_child(closure['env'])
  unfilled = []
  for index, param in enumerate(params):
    arg = args[index] if index < len(args) else None
    if arg is None:
      unfilled.append(param)
      continue
    constraint = env_type_constraint(closure['env'], param)
    if constraint is not None and not set_contains(constraint, arg):
      raise type_mismatch_error(param, render_set(constraint), arg)
    env_insert_value(call_env, state['pool'], param, arg)

  if unfilled:
    if state['debug']:
      print(f"Partial application, remaining parameters: {', '.join(unfilled)}")
    body = curry_expr(closure['body'], set(unfilled), call_env, state)
    return make_function_value(make_closure(unfilled, body, call_env, closure['codomain']))

  return intern_value(eval_ast(closure['body'], call_env, state), state)


def curry_expr(ast_node: Dict, retained: Set[str], env: Dict, state: Dict) -> Dict:
  """Copy of an expression with every non-retained symbol replaced by its value

  Symbols that only carry a type constraint (unbound parameters) stay as
  symbols. Parameters of nested function literals shadow outer names and
  are never replaced inside that literal.
  """
  node_type = ast_node['type']
  span = ast_node['span']

  if node_type == "LITERAL":
    return ast_node
  elif node_type == "SYMBOL":
    name = ast_node['value']
    if name in retained:
      return ast_node
    entry = env_get(env, name)
    if entry is None:
      raise UndefinedSymbol(f"Variable '{name}' is not defined", span)
    if entry['kind'] == VALUE_ENTRY:
      return make_literal(entry['value'], span)
    return ast_node
  elif node_type in ("GROUP", "UNARY", "BINARY", "TUPLE", "SET"):
    return make_ast_node(
        node_type,
        ast_node['value'],
        [curry_expr(child, retained, env, state) for child in ast_node['children']],
        span
    )
  elif node_type == "FUNCTION":
    params = function_params(ast_node)
    body = curry_expr(function_body(ast_node), retained | set(params), env, state)
    return make_function_expr(params, body, span)
  elif node_type == "CALL":
    callee, args = call_parts(ast_node)
    return make_call_expr(
        curry_expr(callee, retained, env, state),
        [None if arg is None else curry_expr(arg, retained, env, state) for arg in args],
        span
    )
  raise CanonInternalError(f"Cannot curry node type: {node_type}")


def substitute_symbols(ast_node: Dict, renames: Dict[str, str]) -> Dict:
  """Copy of an expression with symbols renamed per `renames`

  Nested function literals drop the renames their own parameters shadow.
  """
  node_type = ast_node['type']
  span = ast_node['span']

  if node_type == "LITERAL":
    return ast_node
  elif node_type == "SYMBOL":
    name = ast_node['value']
    if name in renames:
      return make_ast_node("SYMBOL", renames[name], [], span)
    return ast_node
  elif node_type in ("GROUP", "UNARY", "BINARY", "TUPLE"):
    return make_ast_node(
        node_type,
        ast_node['value'],
        [substitute_symbols(child, renames) for child in ast_node['children']],
        span
    )
  elif node_type == "FUNCTION":
    params = function_params(ast_node)
    inner = {name: new for name, new in renames.items() if name not in params}
    return make_function_expr(params, substitute_symbols(function_body(ast_node), inner), span)
  elif node_type == "CALL":
    callee, args = call_parts(ast_node)
    return make_call_expr(
        substitute_symbols(callee, renames),
        [None if arg is None else substitute_symbols(arg, renames) for arg in args],
        span
    )
  elif node_type == "SET":
    raise NotYetImplemented("renaming symbols inside a set literal")
  raise CanonInternalError(f"Cannot substitute in node type: {node_type}")


# ============================================================================
# OPERATOR LIFTING
# ============================================================================

def lift_unary(op: str, closure: Dict, state: Dict) -> Dict:
  """`-f` is the function x -> -(f body)"""
  body = make_unary(op, make_group(closure['body']))
  return make_function_value(make_closure(closure['params'], body, closure['env'], universe_set(state)))


def lift_binary_left(op: str, closure: Dict, right: Dict, state: Dict) -> Dict:
  body = make_binary(make_group(closure['body']), op, make_literal(right))
  return make_function_value(make_closure(closure['params'], body, closure['env'], universe_set(state)))


def lift_binary_right(op: str, left: Dict, closure: Dict, state: Dict) -> Dict:
  body = make_binary(make_literal(left), op, make_group(closure['body']))
  return make_function_value(make_closure(closure['params'], body, closure['env'], universe_set(state)))


def compose_functions(op: str, left: Dict, right: Dict, state: Dict) -> Dict:
  """`f op g` over equal arities: one function applying `op` to both bodies

  The right body has its free variables frozen from its own scope, then its
  parameters renamed to the left function's, so both bodies share one
  parameter list and evaluate in the left function's scope.
  """
  left_params = left['params']
  right_params = right['params']
  if len(left_params) != len(right_params):
    raise ArityError(
        f"Cannot combine functions of {len(left_params)} and {len(right_params)} arguments"
    )

  right_body = curry_expr(right['body'], set(right_params), right['env'], state)
  right_body = substitute_symbols(right_body, dict(zip(right_params, left_params)))
  body = make_binary(make_group(left['body']), op, make_group(right_body))
  return make_function_value(make_closure(left_params, body, left['env'], universe_set(state)))


# ============================================================================
# STATEMENT EXECUTION
# ============================================================================

def check_unassigned(env: Dict, name: str, span=None) -> None:
  if env_is_assigned(env, name):
    raise ReassignmentError(f"Variable '{name}' cannot be reassigned", span)


def execute_assign(expr: Dict, env: Dict, state: Dict) -> Dict:
  """`name = expr`, honoring a prior type or function-signature declaration"""
  name = expr['value']['name']
  span = expr['span']
  check_unassigned(env, name, span)

  value = eval_ast(expr['children'][0], env, state)
  signature = env_function_signature(env, name)

  if is_function(value) and signature is not None:
    closure = value['value']
    if len(closure['params']) != len(signature['params']):
      raise ArityError(
          f"Function '{name}' was declared with {len(signature['params'])} arguments, "
          f"but is defined with {len(closure['params'])}",
          span
      )
    typed_env = env_clone(closure['env'])
    for param, param_set in zip(closure['params'], signature['params']):
      env_insert_type_constraint(typed_env, state['pool'], param, param_set)
    value = make_function_value(clone_closure_with_env(closure, typed_env, signature['codomain']))
  else:
    constraint = env_type_constraint(env, name)
    if constraint is not None and not set_contains(constraint, value):
      raise TypeMismatch(
          f"'{name}' is in '{render_set(constraint)}' which does not contain {describe_value(value)}",
          span
      )

  stored = env_insert_value(env, state['pool'], name, value)
  if state['debug']:
    print(f"Bound {name} = {render_value(stored)}")
  return stored


def execute_typed_assign(expr: Dict, env: Dict, state: Dict) -> Dict:
  """`name : T = expr`"""
  name = expr['value']['name']
  span = expr['span']
  type_node, value_node = expr['children']
  check_unassigned(env, name, span)

  canon_set = require_set(eval_ast(type_node, env, state), span)
  value = eval_ast(value_node, env, state)
  if not set_contains(canon_set, value):
    raise TypeMismatch(
        f"Incompatible types: {describe_value(value)} is not in '{render_set(canon_set)}'",
        span
    )

  stored = env_insert_value(env, state['pool'], name, value)
  if state['debug']:
    print(f"Bound {name} : {render_set(canon_set)} = {render_value(stored)}")
  return stored


def execute_type_expr(expr: Dict, env: Dict, state: Dict) -> None:
  """`x : T` declares the type of an unassigned symbol; anything else is a cast"""
  target, type_node = expr['children']
  span = expr['span']

  if target['type'] != "SYMBOL" or env_is_assigned(env, target['value']):
    raise NotYetImplemented("type cast")

  canon_set = require_set(eval_ast(type_node, env, state), span)
  stored = env_insert_type_constraint(env, state['pool'], target['value'], canon_set)
  if state['debug']:
    print(f"Declared {target['value']} : {render_set(stored)}")


def execute_func_type(expr: Dict, env: Dict, state: Dict) -> None:
  """`f : T1, T2 -> R` records a function signature for `f`"""
  name = expr['value']['name']
  span = expr['span']
  check_unassigned(env, name, span)

  sets = [require_set(eval_ast(child, env, state), span) for child in expr['children']]
  entry = env_insert_function_signature(env, state['pool'], name, sets[:-1], sets[-1])
  if state['debug']:
    params = ", ".join(render_set(param) for param in entry['params'])
    print(f"Declared {name} : {params} -> {render_set(entry['codomain'])}")


def execute_statement(stmt: Dict, state: Dict, env: Optional[Dict] = None) -> Optional[Dict]:
  """Execute one expression statement

  Bare expressions append their rendered value to the output log.
  """
  env = env if env is not None else state['env']
  expr = stmt['children'][0]
  expr_type = expr['type']

  try:
    if expr_type == "ASSIGN":
      return execute_assign(expr, env, state)
    elif expr_type == "TYPED_ASSIGN":
      return execute_typed_assign(expr, env, state)
    elif expr_type == "TYPE_EXPR":
      return execute_type_expr(expr, env, state)
    elif expr_type == "FUNC_TYPE_EXPR":
      return execute_func_type(expr, env, state)

    value = eval_ast(expr, env, state)
    state['outputs'].append(render_value(value))
    return value
  except CanonRuntimeError as e:
    if e.span is None:
      e.span = stmt['span']
    raise


# ============================================================================
# PROGRAM EVALUATION
# ============================================================================

def eval_program(ast_nodes: List[Dict], state: Dict) -> List[str]:
  """Execute statements in order, stopping at the first error

  Returns the lines rendered by this program's bare expressions.
  """
  start = len(state['outputs'])
  for ast_node in ast_nodes:
    execute_statement(ast_node, state)
  return state['outputs'][start:]


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_interpreter(debug: bool = False):
  """Factory function returning an interpreter with its own set pool and scope"""
  state = make_interpreter_state(debug)
  parser = create_parser(debug)
  analyzer = create_analyzer(debug)

  def interpret(source: str, filename: str = "<input>") -> List[str]:
    ast_nodes = analyzer.analyze(parser.parse_string(source, filename))
    return eval_program(ast_nodes, state)

  def evaluate(source: str) -> Dict:
    ast_node = analyzer.analyze_expression(parser.parse_expression(source))
    return eval_ast(ast_node, state['env'], state)

  return type('Interpreter', (), {
      'state': state,
      'env': state['env'],
      'pool': state['pool'],
      'outputs': state['outputs'],
      'interpret': lambda self, source, filename="<input>": interpret(source, filename),
      'interpret_program': lambda self, ast_nodes: eval_program(ast_nodes, state),
      'execute': lambda self, ast_node: execute_statement(ast_node, state),
      'evaluate': lambda self, source: evaluate(source),
      'lookup': lambda self, name: env_lookup_value(state['env'], name),
  })()


def create_debug_interpreter():
  """Factory function returning a debug interpreter"""
  return create_interpreter(debug=True)
