"""
Basic parsing tests for the Canon language
Tests the tokenizer, grammar and CST construction
"""

import warnings
import pytest
from parsing import (
  CanonGrammar,
  CanonTokenizer,
  create_parser,
  find_nodes_by_type,
  strip_comments,
  split_statements,
)
from error_handling import CanonParseError, CanonTokenizerError


class TestTokenizer:
  """Tokens carry a kind and a line number"""

  @pytest.fixture
  def tokenizer(self):
    return CanonTokenizer("<test>")

  def test_token_kinds(self, tokenizer):
    tokens = tokenizer.tokenize('f(x) = x ^ 2 + "hi"')
    kinds = [token.type for token in tokens]
    assert kinds == [
        "IDENTIFIER", "DELIMITER", "IDENTIFIER", "DELIMITER", "OPERATOR",
        "IDENTIFIER", "OPERATOR", "NUMBER", "OPERATOR", "STRING", "EOL", "EOF"
    ]

  def test_longest_operator_wins(self, tokenizer):
    tokens = tokenizer.tokenize("a <=: b -> c")
    operators = [token.value for token in tokens if token.type == "OPERATOR"]
    assert operators == ["<=:", "->"]

  def test_line_numbers(self, tokenizer):
    tokens = tokenizer.tokenize("x = 1\ny = 2")
    assert [token.line for token in tokens if token.type == "IDENTIFIER"] == [1, 2]
    assert tokens[-1].type == "EOF"

  def test_number_separators_removed(self, tokenizer):
    tokens = tokenizer.tokenize("1_000.5")
    assert tokens[0].type == "NUMBER"
    assert tokens[0].value == "1000.5"

  def test_string_escapes(self, tokenizer):
    tokens = tokenizer.tokenize(r'"a\"b" ' + r"'\n'")
    assert tokens[0].value == 'a"b'
    assert tokens[1].type == "CHAR"
    assert tokens[1].value == "\n"

  def test_comments_skipped(self, tokenizer):
    tokens = tokenizer.tokenize("x // comment\n/* a /* nested */ b */ y")
    assert [token.value for token in tokens if token.type == "IDENTIFIER"] == ["x", "y"]

  def test_unknown_character(self, tokenizer):
    with pytest.raises(CanonTokenizerError):
      tokenizer.tokenize("x = $")

  @pytest.mark.parametrize("source", ["x # y", "a . b"])
  def test_unused_punctuation_rejected(self, tokenizer, source):
    with pytest.raises(CanonTokenizerError):
      tokenizer.tokenize(source)

  def test_fat_arrow_is_two_operators(self, tokenizer):
    tokens = tokenizer.tokenize("a => b")
    assert [token.value for token in tokens if token.type == "OPERATOR"] == ["=", ">"]

  def test_unterminated_string(self, tokenizer):
    with pytest.raises(CanonTokenizerError):
      tokenizer.tokenize('"open')


class TestPreprocessing:

  def test_comment_markers_inside_strings_kept(self):
    assert strip_comments('"a // b" // c') == '"a // b" '

  def test_block_comment_keeps_newlines(self):
    assert strip_comments("a /* 1\n2 */ b") == "a \n b"

  def test_split_statements(self):
    assert split_statements('x = 2; y = ";"; x') == [(1, "x = 2"), (8, 'y = ";"'), (17, "x")]


class TestExpressionParsing:
  """Expression shapes and precedence"""

  @pytest.fixture
  def grammar(self):
    """Provide a fresh grammar instance for each test"""
    return CanonGrammar()

  def test_identifier(self, grammar):
    assert grammar.parse_expression("myVar").type == "IDENTIFIER"

  def test_number_forms(self, grammar):
    assert grammar.parse_expression("12").value == "12"
    assert grammar.parse_expression("1_000").value == "1000"
    assert grammar.parse_expression("12.5").value == "12.5"
    assert grammar.parse_expression("3i").value == "3i"
    assert grammar.parse_expression("i").type == "IMAGINARY_UNIT"

  def test_booleans_are_not_identifiers(self, grammar):
    node = grammar.parse_expression("true")
    assert node.type == "BOOLEAN"
    assert node.value is True

  def test_multiplication_binds_tighter(self, grammar):
    node = grammar.parse_expression("1 + 2 * 3")
    assert node.type == "BINARY"
    assert node.value == "+"
    assert node.children[1].value == "*"

  def test_subtraction_is_left_associative(self, grammar):
    node = grammar.parse_expression("1 - 2 - 3")
    assert node.value == "-"
    assert node.children[0].value == "-"
    assert node.children[1].value == "3"

  def test_power_is_right_associative(self, grammar):
    node = grammar.parse_expression("2 ^ 3 ^ 2")
    assert node.value == "^"
    assert node.children[0].value == "2"
    assert node.children[1].value == "^"

  def test_unary_minus_binds_looser_than_power(self, grammar):
    node = grammar.parse_expression("-2 ^ 2")
    assert node.type == "UNARY"
    assert node.children[0].value == "^"

  def test_set_operators_bind_looser_than_arithmetic(self, grammar):
    node = grammar.parse_expression("a | b + c")
    assert node.value == "|"
    assert node.children[1].value == "+"

  def test_complement_prefix(self, grammar):
    node = grammar.parse_expression("~Nat")
    assert node.type == "UNARY"
    assert node.value == "~"

  def test_comparisons(self, grammar):
    assert grammar.parse_expression("a <= b").value == "<="
    assert grammar.parse_expression("a <=: b").value == "<=:"
    assert grammar.parse_expression("a == b && b != c").value == "&&"

  def test_tuple_and_set_literals(self, grammar):
    assert grammar.parse_expression("[1, 2, 3]").type == "TUPLE"
    node = grammar.parse_expression("{1, 2}")
    assert node.type == "SET"
    assert len(node.children) == 2
    assert grammar.parse_expression("{}").children == []

  def test_function_literal(self, grammar):
    node = grammar.parse_expression("(x, y) -> x + y")
    assert node.type == "FUNCTION"
    assert node.value == ["x", "y"]
    assert grammar.parse_expression("x -> x").value == ["x"]

  def test_call_with_elided_argument(self, grammar):
    node = grammar.parse_expression("f(1, , 3)")
    assert node.type == "CALL"
    assert [child.type for child in node.children] == ["IDENTIFIER", "NUMBER", "ELIDED", "NUMBER"]

  def test_call_without_arguments(self, grammar):
    node = grammar.parse_expression("f()")
    assert node.type == "CALL"
    assert len(node.children) == 1

  def test_trailing_elided_argument(self, grammar):
    node = grammar.parse_expression("f(1, )")
    assert [child.type for child in node.children] == ["IDENTIFIER", "NUMBER", "ELIDED"]

  def test_chained_calls(self, grammar):
    node = grammar.parse_expression("f(1)(2)")
    assert node.type == "CALL"
    assert node.children[0].type == "CALL"


class TestStatementParsing:
  """Statement forms"""

  @pytest.fixture
  def parser(self):
    return create_parser()

  def test_grammar_uses_current_pyparsing_api(self):
    with warnings.catch_warnings():
      warnings.simplefilter("error", DeprecationWarning)
      parser = create_parser()
      parser.parse_string('f(x, y) = [x, y]; g : Nat -> Nat; {1, 2} | "s"')
      parser.parse_expression("a(1, , 3)")

  def test_statement_kinds(self, parser):
    source = "\n".join([
        "x = 5",
        "f(x) = x ^ 2",
        "y : Nat = 3",
        "z : {1, 2}",
        "g : Int, Int -> Int",
        "f(3)",
    ])
    kinds = [node.type for node in parser.parse_string(source)]
    assert kinds == ["ASSIGN", "ASSIGN", "TYPED_ASSIGN", "TYPE_EXPR", "FUNC_TYPE", "EXPRESSION"]

  def test_semicolons_separate_statements(self, parser):
    nodes = parser.parse_string("x = 2; y = 3; x + y")
    assert len(nodes) == 3
    assert nodes[2].span.start_col == 15

  def test_equality_is_not_assignment(self, parser):
    assert parser.parse_string("x == 1")[0].type == "EXPRESSION"

  def test_function_signature_parts(self, parser):
    node = parser.parse_string("g : Int, Real -> Complex")[0]
    assert node.value == "g"
    assert [child.value for child in node.children] == ["Int", "Real", "Complex"]

  def test_blank_lines_and_comments(self, parser):
    nodes = parser.parse_string("// header\n\nx = 1 /* trailing */\n")
    assert len(nodes) == 1
    assert nodes[0].span.start_line == 3

  def test_find_nodes_by_type(self, parser):
    node = parser.parse_string("f(x) = x + x * 2")[0]
    assert len(find_nodes_by_type(node, "BINARY")) == 2

  def test_parse_error_reports_line(self, parser):
    with pytest.raises(CanonParseError) as info:
      parser.parse_string("x = 1\ny = (2 +")
    assert info.value.span.start_line == 2

  def test_missing_operand(self, parser):
    with pytest.raises(CanonParseError):
      parser.parse_string("1 +")
