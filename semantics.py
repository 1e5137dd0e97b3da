"""
Canon Semantics Analysis - Pure Functional Style
Turns the CST into the expression/statement tree the interpreter walks
"""

from typing import Any, Dict, List, Optional
from fractions import Fraction

from parsing import CSTNode, SourceSpan, RESERVED_WORDS
from error_handling import CanonSemanticsError
from values import (
  make_integer,
  make_value,
  make_complex,
  make_boolean,
  make_text,
  render_value,
  is_text,
  RATIONAL,
)


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_ast_node(node_type: str, value: Any, children: Optional[List[Dict]] = None,
                  span: Optional[SourceSpan] = None) -> Dict:
  """Create an immutable AST node dictionary"""
  return {
      'type': node_type,
      'value': value,
      'children': children or [],
      'span': span
  }


def make_literal(value: Dict, span: Optional[SourceSpan] = None) -> Dict:
  return make_ast_node("LITERAL", value, [], span)


def make_symbol(name: str, span: Optional[SourceSpan] = None) -> Dict:
  return make_ast_node("SYMBOL", name, [], span)


def make_group(inner: Dict, span: Optional[SourceSpan] = None) -> Dict:
  return make_ast_node("GROUP", None, [inner], span)


def make_unary(op: str, operand: Dict, span: Optional[SourceSpan] = None) -> Dict:
  return make_ast_node("UNARY", op, [operand], span)


def make_binary(left: Dict, op: str, right: Dict, span: Optional[SourceSpan] = None) -> Dict:
  return make_ast_node("BINARY", op, [left, right], span)


def make_function_expr(params: List[str], body: Dict, span: Optional[SourceSpan] = None) -> Dict:
  return make_ast_node("FUNCTION", {'params': list(params)}, [body], span)


def make_call_expr(callee: Dict, args: List[Optional[Dict]], span: Optional[SourceSpan] = None) -> Dict:
  """Call node; `None` in `args` marks an elided argument"""
  return make_ast_node(
      "CALL",
      {'callee': callee, 'args': list(args)},
      [callee] + [arg for arg in args if arg is not None],
      span
  )


def call_parts(node: Dict):
  return node['value']['callee'], node['value']['args']


def function_params(node: Dict) -> List[str]:
  return node['value']['params']


def function_body(node: Dict) -> Dict:
  return node['children'][0]


# ============================================================================
# LITERALS
# ============================================================================

def number_literal(text: str) -> Dict:
  """`12` is an Integer, `12.5` a Rational, a trailing `i` makes it imaginary"""
  if text.endswith('i'):
    return make_complex(0, Fraction(text[:-1]))
  if '.' in text:
    return make_value(Fraction(text), RATIONAL)
  return make_integer(int(text))


def analyze_literal(cst_node: CSTNode) -> Dict:
  kind = cst_node.type
  if kind == "NUMBER":
    value = number_literal(cst_node.value)
  elif kind in ("STRING", "CHAR"):
    value = make_text(cst_node.value)
  elif kind == "BOOLEAN":
    value = make_boolean(cst_node.value)
  elif kind == "IMAGINARY_UNIT":
    value = make_complex(0, 1)
  else:
    raise CanonSemanticsError(f"Unknown literal: {kind}", cst_node.span)
  return make_literal(value, cst_node.span)


# ============================================================================
# EXPRESSION ANALYSIS
# ============================================================================

LITERAL_NODES = ("NUMBER", "STRING", "CHAR", "BOOLEAN", "IMAGINARY_UNIT")


def analyze_expression(cst_node: CSTNode, debug: bool = False) -> Dict:
  """Analyze an expression CST node and return its AST node"""
  kind = cst_node.type
  span = cst_node.span
  children = cst_node.children

  if kind in LITERAL_NODES:
    return analyze_literal(cst_node)
  elif kind == "IDENTIFIER":
    return make_symbol(cst_node.value, span)
  elif kind == "GROUP":
    return make_group(analyze_expression(children[0], debug), span)
  elif kind == "UNARY":
    return make_unary(cst_node.value, analyze_expression(children[0], debug), span)
  elif kind == "BINARY":
    return make_binary(
        analyze_expression(children[0], debug),
        cst_node.value,
        analyze_expression(children[1], debug),
        span
    )
  elif kind == "TUPLE":
    return make_ast_node("TUPLE", None, [analyze_expression(c, debug) for c in children], span)
  elif kind == "SET":
    return make_ast_node("SET", None, [analyze_expression(c, debug) for c in children], span)
  elif kind == "FUNCTION":
    params = list(cst_node.value)
    check_parameter_names(params, span)
    return make_function_expr(params, analyze_expression(children[0], debug), span)
  elif kind == "CALL":
    callee = analyze_expression(children[0], debug)
    args = [None if c.type == "ELIDED" else analyze_expression(c, debug) for c in children[1:]]
    return make_call_expr(callee, args, span)
  elif kind == "ELIDED":
    raise CanonSemanticsError("Elided argument outside of a call", span)
  raise CanonSemanticsError(f"Unknown expression: {kind}", span)


def check_parameter_names(params: List[str], span: Optional[SourceSpan]) -> None:
  seen = set()
  for param in params:
    if param in RESERVED_WORDS:
      raise CanonSemanticsError(f"'{param}' cannot be used as a parameter name", span)
    if param in seen:
      raise CanonSemanticsError(f"Duplicate parameter '{param}'", span)
    seen.add(param)


# ============================================================================
# STATEMENT ANALYSIS
# ============================================================================

def analyze_assign(cst_node: CSTNode, debug: bool = False) -> Dict:
  """`name = expr`, or `f(x, y) = expr` desugared to a function literal"""
  target, value_cst = cst_node.children
  span = cst_node.span
  value = analyze_expression(value_cst, debug)

  if target.type == "IDENTIFIER":
    return make_ast_node("ASSIGN", {'name': target.value}, [value], span)

  if target.type == "CALL" and target.children[0].type == "IDENTIFIER":
    params = []
    for arg in target.children[1:]:
      if arg.type != "IDENTIFIER":
        raise CanonSemanticsError("Function parameters must be plain names", span)
      params.append(arg.value)
    check_parameter_names(params, span)
    if debug:
      print(f"Desugared definition of {target.children[0].value}({', '.join(params)})")
    function = make_function_expr(params, value, span)
    return make_ast_node("ASSIGN", {'name': target.children[0].value}, [function], span)

  raise CanonSemanticsError("Invalid assignment target", span)


def analyze_statement(cst_node: CSTNode, debug: bool = False) -> Dict:
  """Analyze a statement; every statement is an expression statement"""
  kind = cst_node.type
  span = cst_node.span
  children = cst_node.children

  if kind == "ASSIGN":
    expr = analyze_assign(cst_node, debug)
  elif kind == "TYPED_ASSIGN":
    expr = make_ast_node(
        "TYPED_ASSIGN",
        {'name': cst_node.value},
        [analyze_expression(children[0], debug), analyze_expression(children[1], debug)],
        span
    )
  elif kind == "TYPE_EXPR":
    expr = make_ast_node(
        "TYPE_EXPR",
        None,
        [analyze_expression(children[0], debug), analyze_expression(children[1], debug)],
        span
    )
  elif kind == "FUNC_TYPE":
    expr = make_ast_node(
        "FUNC_TYPE_EXPR",
        {'name': cst_node.value},
        [analyze_expression(child, debug) for child in children],
        span
    )
  elif kind == "EXPRESSION":
    expr = analyze_expression(children[0], debug)
  else:
    raise CanonSemanticsError(f"Unknown statement: {kind}", span)

  if debug:
    print(f"Analyzed statement: {expr['type']}")
  return make_ast_node("EXPR_STMT", None, [expr], span)


def analyze_program(cst_nodes: List[CSTNode], debug: bool = False) -> List[Dict]:
  """Analyze a program (list of statement CST nodes)"""
  return [analyze_statement(cst_node, debug) for cst_node in cst_nodes]


# ============================================================================
# RENDERING
# ============================================================================

def render_expr(node: Dict) -> str:
  """Print an expression tree back as source text"""
  kind = node['type']
  children = node['children']

  if kind == "LITERAL":
    value = node['value']
    return f'"{value["value"]}"' if is_text(value) else render_value(value)
  elif kind == "SYMBOL":
    return node['value']
  elif kind == "GROUP":
    return f"({render_expr(children[0])})"
  elif kind == "UNARY":
    return f"{node['value']}{render_expr(children[0])}"
  elif kind == "BINARY":
    return f"{render_expr(children[0])} {node['value']} {render_expr(children[1])}"
  elif kind == "TUPLE":
    return "[" + ", ".join(render_expr(child) for child in children) + "]"
  elif kind == "SET":
    return "{" + ", ".join(render_expr(child) for child in children) + "}"
  elif kind == "FUNCTION":
    return f"({', '.join(function_params(node))}) -> {render_expr(function_body(node))}"
  elif kind == "CALL":
    callee, args = call_parts(node)
    rendered = ", ".join("" if arg is None else render_expr(arg) for arg in args)
    return f"{render_expr(callee)}({rendered})"
  elif kind == "ASSIGN":
    return f"{node['value']['name']} = {render_expr(children[0])}"
  elif kind == "TYPED_ASSIGN":
    return f"{node['value']['name']} : {render_expr(children[0])} = {render_expr(children[1])}"
  elif kind == "TYPE_EXPR":
    return f"{render_expr(children[0])} : {render_expr(children[1])}"
  elif kind == "FUNC_TYPE_EXPR":
    params = ", ".join(render_expr(child) for child in children[:-1])
    return f"{node['value']['name']} : {params} -> {render_expr(children[-1])}"
  elif kind == "EXPR_STMT":
    return render_expr(children[0])
  return f"<{kind}>"


def pretty_print_ast(node: Dict, indent: int = 0) -> str:
  """Pretty print an AST node for debugging"""
  kind = node['type']
  result = "  " * indent + kind
  if kind == "LITERAL":
    result += f"({node['value']['type']} {render_value(node['value'])})"
  elif kind == "FUNCTION":
    result += f"({', '.join(function_params(node))})"
  elif kind == "CALL":
    result += f"(elided={sum(1 for arg in call_parts(node)[1] if arg is None)})"
  elif isinstance(node['value'], str):
    result += f"({node['value']!r})"
  elif isinstance(node['value'], dict) and 'name' in node['value']:
    result += f"({node['value']['name']!r})"
  result += "\n"
  for child in node['children']:
    result += pretty_print_ast(child, indent + 1)
  return result


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_analyzer(debug: bool = False):
  """Factory function returning an analyzer"""
  return type('Analyzer', (), {
      'debug': debug,
      'analyze': lambda self, cst_nodes: analyze_program(cst_nodes, debug),
      'analyze_statement': lambda self, cst_node: analyze_statement(cst_node, debug),
      'analyze_expression': lambda self, cst_node: analyze_expression(cst_node, debug),
  })()


def create_debug_analyzer():
  """Factory function returning a debug analyzer"""
  return create_analyzer(debug=True)
