"""
Canon Programming Language Parser
Tokenizer and pyparsing grammar producing a CST with source spans
"""

from typing import List, Dict, Any, Tuple, Optional
from dataclasses import dataclass, field
import re

# Import pyparsing with error handling
try:
    from pyparsing import (
        Regex, QuotedString, Keyword, Literal, Forward, Group, Suppress, Empty,
        ZeroOrMore, Opt as PyParsingOptional, StringEnd, ParseException,
        ParserElement, DelimitedList
    )
    # Enable packrat parsing for performance
    ParserElement.enable_packrat()
except ImportError:
    raise ImportError("pyparsing library not found. Install with: pip install pyparsing")

from error_handling import CanonParseError, CanonTokenizerError, parse_error_from_exception


@dataclass(frozen=True)
class SourceSpan:
    """Source location information for preserving CST"""
    filename: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    text: str = ""

    def __str__(self) -> str:
        if self.start_line == self.end_line:
            return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_col}"
        return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


@dataclass(frozen=True)
class Token:
    """Canon token with source information"""
    type: str
    value: Any
    span: SourceSpan

    @property
    def line(self) -> int:
        return self.span.start_line

    def __str__(self) -> str:
        return f"{self.type}({self.value})"


@dataclass(frozen=True)
class CSTNode:
    """Concrete Syntax Tree node preserving all source information"""
    type: str
    value: Any
    children: List['CSTNode'] = field(default_factory=list)
    span: Optional[SourceSpan] = None

    def __str__(self) -> str:
        if self.children:
            children_str = ", ".join(str(child) for child in self.children)
            return f"{self.type}({self.value}, [{children_str}])"
        return f"{self.type}({self.value})"


RESERVED_WORDS = ('true', 'false', 'i')


# ============================================================================
# SOURCE PREPROCESSING
# ============================================================================

def strip_comments(text: str) -> str:
    """Blank out `//` line comments and nestable `/* */` block comments

    Newlines inside comments are kept so line numbers stay valid, and comment
    markers inside string literals are left alone.
    """
    result = []
    depth = 0
    in_string = False
    pos = 0
    while pos < len(text):
        char = text[pos]
        pair = text[pos:pos + 2]
        if depth == 0 and in_string:
            result.append(char)
            if char == '\\' and pos + 1 < len(text):
                result.append(text[pos + 1])
                pos += 1
            elif char == '"':
                in_string = False
        elif pair == '/*':
            depth += 1
            pos += 1
        elif depth > 0 and pair == '*/':
            depth -= 1
            pos += 1
        elif depth > 0:
            if char == '\n':
                result.append(char)
        elif pair == '//':
            while pos < len(text) and text[pos] != '\n':
                pos += 1
            continue
        else:
            if char == '"':
                in_string = True
            result.append(char)
        pos += 1
    return ''.join(result)


def split_statements(line: str) -> List[Tuple[int, str]]:
    """Split one source line on `;` outside string literals

    Returns (1-based start column, statement text) for each non-blank statement.
    """
    statements = []
    start = 0
    in_string = False
    pos = 0
    while pos < len(line):
        char = line[pos]
        if in_string:
            if char == '\\':
                pos += 1
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == ';':
            statements.append((start, line[start:pos]))
            start = pos + 1
        pos += 1
    statements.append((start, line[start:]))

    result = []
    for offset, text in statements:
        if text.strip():
            leading = len(text) - len(text.lstrip())
            result.append((offset + leading + 1, text.strip()))
    return result


# ============================================================================
# TOKENIZER
# ============================================================================

class CanonTokenizer:
    """Canon tokenizer using a priority-based approach"""

    def __init__(self, filename: str = "<input>"):
        self.filename = filename
        self._setup_token_patterns()

    def _setup_token_patterns(self):
        """Setup all token patterns for Canon"""

        # String literals with escape sequences
        self.string_pattern = re.compile(r'"(?:[^"\\]|\\.)*"')

        # Character literals
        self.char_pattern = re.compile(r"'(?:[^'\\]|\\.)'")

        # Numbers with `_` digit separators and an optional fraction
        self.number_pattern = re.compile(r'\d[\d_]*(?:\.\d[\d_]*)?')

        self.identifier_pattern = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')

        self.operators = {
            '+', '-', '*', '/', '^', '=', '!', '~', '|', '&', '\\', '<', '>',
            '==', '!=', '<=', '>=', '&&', '||', '=:', '<:', '>:', '<=:', '>=:',
            '->',
        }

        self.delimiters = {'(', ')', '[', ']', '{', '}', ',', ';', ':'}

        # Longest operators first
        operators_sorted = sorted(self.operators, key=len, reverse=True)
        self.operator_pattern = re.compile('|'.join(re.escape(op) for op in operators_sorted))

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize Canon source code; every line ends with EOL, the stream with EOF"""
        tokens = []
        lines = strip_comments(text).split('\n')

        for line_num, line in enumerate(lines, 1):
            pos = 0
            while pos < len(line):
                if line[pos].isspace():
                    pos += 1
                    continue

                token = self._match_token_at_position(line, pos, line_num)
                if token is None:
                    char = line[pos]
                    span = SourceSpan(self.filename, line_num, pos + 1, line_num, pos + 2, char)
                    raise CanonTokenizerError(f"Unknown character '{char}' at {span}")
                tokens.append(token)
                pos += len(token.span.text)

            end = len(line) + 1
            tokens.append(Token("EOL", None, SourceSpan(self.filename, line_num, end, line_num, end, "")))

        last_line = len(lines)
        tokens.append(Token("EOF", None, SourceSpan(self.filename, last_line, 1, last_line, 1, "")))
        return tokens

    def _make_token(self, kind: str, value: Any, text: str, line_num: int, pos: int) -> Token:
        span = SourceSpan(self.filename, line_num, pos + 1, line_num, pos + len(text) + 1, text)
        return Token(kind, value, span)

    def _match_token_at_position(self, line: str, pos: int, line_num: int) -> Optional[Token]:
        """Match a token at a specific position using priority order"""

        # Priority 1: String literals
        if line[pos] == '"':
            string_match = self.string_pattern.match(line, pos)
            if not string_match:
                raise CanonTokenizerError(f"Unterminated string at {self.filename}:{line_num}:{pos + 1}")
            text = string_match.group(0)
            return self._make_token("STRING", self._process_escapes(text[1:-1]), text, line_num, pos)

        # Priority 2: Character literals
        if line[pos] == "'":
            char_match = self.char_pattern.match(line, pos)
            if not char_match:
                raise CanonTokenizerError(f"Invalid character literal at {self.filename}:{line_num}:{pos + 1}")
            text = char_match.group(0)
            return self._make_token("CHAR", self._process_escapes(text[1:-1]), text, line_num, pos)

        # Priority 3: Numbers
        if line[pos].isdigit():
            text = self.number_pattern.match(line, pos).group(0)
            return self._make_token("NUMBER", text.replace('_', ''), text, line_num, pos)

        # Priority 4: Operators (longest match first)
        op_match = self.operator_pattern.match(line, pos)
        if op_match:
            text = op_match.group(0)
            return self._make_token("OPERATOR", text, text, line_num, pos)

        # Priority 5: Punctuation
        if line[pos] in self.delimiters:
            return self._make_token("DELIMITER", line[pos], line[pos], line_num, pos)

        # Priority 6: Identifiers
        id_match = self.identifier_pattern.match(line, pos)
        if id_match:
            text = id_match.group(0)
            return self._make_token("IDENTIFIER", text, text, line_num, pos)

        return None

    @staticmethod
    def _process_escapes(s: str) -> str:
        """Process escape sequences in string and character literals"""
        escape_map = {
            'n': '\n', 't': '\t', 'r': '\r', '\\': '\\', '"': '"', "'": "'", '0': '\0'
        }
        result = []
        i = 0
        while i < len(s):
            if s[i] == '\\' and i + 1 < len(s):
                result.append(escape_map.get(s[i + 1], s[i + 1]))
                i += 2
            else:
                result.append(s[i])
                i += 1
        return ''.join(result)


# ============================================================================
# GRAMMAR
# ============================================================================

ELIDED = ("ELIDED", None, [])


def make_binary_chain(tokens):
    """Fold `a op b op c` into left-associative BINARY nodes"""
    result = tokens[0]
    for i in range(1, len(tokens), 2):
        result = ("BINARY", tokens[i], [result, tokens[i + 1]])
    return result


def make_power(tokens):
    if len(tokens) == 1:
        return tokens[0]
    return ("BINARY", "^", [tokens[0], tokens[1]])


def make_call(tokens):
    """`f(a)(b)` becomes nested CALL nodes; `f()` has no arguments"""
    result = tokens[0]
    for args in tokens[1:]:
        items = list(args)
        if items == [ELIDED]:
            items = []
        result = ("CALL", None, [result] + items)
    return result


class CanonGrammar:
    """Canon grammar definition using pyparsing"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._setup_grammar()

    def _setup_grammar(self):
        """Setup the grammar, loosest binding first in the precedence chain"""

        expression = Forward()
        unary = Forward()

        # Literals
        number = Regex(r'\d[\d_]*(?:\.\d[\d_]*)?(?:i(?![A-Za-z0-9_]))?').set_parse_action(
            lambda t: ("NUMBER", t[0].replace('_', ''), [])
        )
        string_literal = QuotedString('"', esc_char='\\').set_parse_action(lambda t: ("STRING", t[0], []))
        char_literal = Regex(r"'(?:[^'\\]|\\.)'").set_parse_action(
            lambda t: ("CHAR", CanonTokenizer._process_escapes(t[0][1:-1]), [])
        )
        boolean = (Keyword("true") | Keyword("false")).set_parse_action(
            lambda t: ("BOOLEAN", t[0] == "true", [])
        )
        imaginary_unit = Keyword("i").set_parse_action(lambda t: ("IMAGINARY_UNIT", "i", []))

        reserved = Keyword("true") | Keyword("false") | Keyword("i")
        name = ~reserved + Regex(r'[A-Za-z_][A-Za-z0-9_]*')
        identifier = name.copy().set_parse_action(lambda t: ("IDENTIFIER", t[0], []))

        # Compound primaries
        group = (Suppress("(") + expression + Suppress(")")).set_parse_action(
            lambda t: ("GROUP", None, [t[0]])
        )
        tuple_literal = (
            Suppress("[") + PyParsingOptional(DelimitedList(expression, ",")) + Suppress("]")
        ).set_parse_action(lambda t: ("TUPLE", None, list(t)))
        set_literal = (
            Suppress("{") + PyParsingOptional(DelimitedList(expression, ",")) + Suppress("}")
        ).set_parse_action(lambda t: ("SET", None, list(t)))

        primary = (
            number | string_literal | char_literal | boolean | imaginary_unit |
            identifier | group | tuple_literal | set_literal
        )

        # Calls, with empty slots for elided arguments: f(1, , 3)
        elided = Empty().set_parse_action(lambda t: ELIDED)
        argument = expression | elided
        arguments = Group(
            Suppress("(") + argument + ZeroOrMore(Suppress(",") + argument) + Suppress(")")
        )
        call = (primary + ZeroOrMore(arguments)).set_parse_action(make_call)

        # Exponentiation is right-associative and binds tighter than unary minus
        power = (call + PyParsingOptional(Suppress("^") + unary)).set_parse_action(make_power)

        unary_op = Regex(r'-(?!>)|\+|!(?!=)|~')
        unary <<= (unary_op + unary).set_parse_action(lambda t: ("UNARY", t[0], [t[1]])) | power

        def left_assoc(operand, op_pattern):
            return (operand + ZeroOrMore(op_pattern + operand)).set_parse_action(make_binary_chain)

        factor = left_assoc(unary, Regex(r'[*/]'))
        term = left_assoc(factor, Regex(r'\+|-(?!>)'))
        set_operation = left_assoc(term, Regex(r'\|(?!\|)|&(?!&)|\\|~'))
        set_comparison = left_assoc(set_operation, Regex(r'<=:|>=:|=:|<:|>:'))
        comparison = left_assoc(
            set_comparison, Regex(r'==|!=|<=(?!:)|>=(?!:)|<(?![=:])|>(?![=:])')
        )
        conjunction = left_assoc(comparison, Literal("&&"))
        disjunction = left_assoc(conjunction, Literal("||"))

        # Function literals: (x, y) -> body, x -> body
        parameters = (
            Group(Suppress("(") + PyParsingOptional(DelimitedList(name, ",")) + Suppress(")")) |
            Group(name)
        )
        function_literal = (parameters + Suppress("->") + expression).set_parse_action(
            lambda t: ("FUNCTION", list(t[0]), [t[1]])
        )

        expression <<= function_literal | disjunction

        # Statements
        assign_op = Suppress(Regex(r'=(?![=:])'))
        colon = Suppress(Regex(r':(?!=)'))
        end = StringEnd()

        function_type = (
            name + colon + Group(DelimitedList(disjunction, ",")) + Suppress("->") + disjunction + end
        ).set_parse_action(lambda t: ("FUNC_TYPE", t[0], list(t[1]) + [t[2]]))

        typed_assign = (
            name + colon + disjunction + assign_op + expression + end
        ).set_parse_action(lambda t: ("TYPED_ASSIGN", t[0], [t[1], t[2]]))

        type_expr = (disjunction + colon + disjunction + end).set_parse_action(
            lambda t: ("TYPE_EXPR", None, [t[0], t[1]])
        )

        assignment = (disjunction + assign_op + expression + end).set_parse_action(
            lambda t: ("ASSIGN", None, [t[0], t[1]])
        )

        bare_expression = (expression + end).set_parse_action(lambda t: ("EXPRESSION", None, [t[0]]))

        statement = function_type | typed_assign | type_expr | assignment | bare_expression

        # Store the main parsers
        self.statement = statement
        self.expression = expression
        self.primary = primary
        self.call = call
        self.function_literal = function_literal

    def parse_program(self, text: str, filename: str = "<input>") -> List[CSTNode]:
        """Parse a complete Canon program, one statement per line or `;` segment"""
        nodes = []
        lines = self._preprocess_text(text).split('\n')
        for line_num, line in enumerate(lines, 1):
            for column, statement_text in split_statements(line):
                span = SourceSpan(
                    filename, line_num, column, line_num, column + len(statement_text), statement_text
                )
                nodes.append(self.parse_statement(statement_text, span, line_num - 1))
        if self.debug:
            print(f"Parsed {len(nodes)} statements")
        return nodes

    def parse_statement(self, text: str, span: Optional[SourceSpan] = None,
                        line_offset: int = 0) -> CSTNode:
        """Parse one statement"""
        span = span or SourceSpan("<input>", 1, 1, 1, len(text) + 1, text)
        try:
            result = self.statement.parse_string(text, parse_all=True)
        except ParseException as e:
            raise parse_error_from_exception(e, text, span, line_offset)
        return self._convert_to_cst(result[0], span)

    def parse_expression(self, text: str, filename: str = "<input>") -> CSTNode:
        """Parse a single Canon expression"""
        span = SourceSpan(filename, 1, 1, 1, len(text) + 1, text)
        try:
            result = self.expression.parse_string(text.strip(), parse_all=True)
        except ParseException as e:
            raise parse_error_from_exception(e, text, span)
        return self._convert_to_cst(result[0], span)

    def _preprocess_text(self, text: str) -> str:
        """Remove comments while keeping line structure"""
        return strip_comments(text)

    def _convert_to_cst(self, item: Any, span: Optional[SourceSpan]) -> CSTNode:
        """Convert tagged parse tuples (tag, value, children) to CST nodes"""
        if isinstance(item, tuple) and len(item) == 3:
            node_type, value, children = item
            return CSTNode(node_type, value, [self._convert_to_cst(child, span) for child in children], span)
        return CSTNode("UNKNOWN", item, [], span)


class CanonParser:
    """Main Canon parser combining tokenizer and grammar"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.grammar = CanonGrammar(debug)

    def parse_file(self, filepath: str) -> List[CSTNode]:
        """Parse a Canon source file"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise CanonParseError(f"File not found: {filepath}")
        except UnicodeDecodeError as e:
            raise CanonParseError(f"Cannot decode file {filepath}: {e}")
        return self.grammar.parse_program(content, filepath)

    def parse_string(self, text: str, filename: str = "<input>") -> List[CSTNode]:
        """Parse Canon source code from string"""
        return self.grammar.parse_program(text, filename)

    def parse_expression(self, text: str, filename: str = "<input>") -> CSTNode:
        """Parse a single Canon expression"""
        return self.grammar.parse_expression(text, filename)

    def tokenize(self, text: str, filename: str = "<input>") -> List[Token]:
        """Tokenize Canon source code"""
        tokenizer = CanonTokenizer(filename)
        return tokenizer.tokenize(text)


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> CanonParser:
    """Create a Canon parser"""
    return CanonParser(debug=debug)


def create_debug_parser() -> CanonParser:
    """Create a Canon parser with debug enabled"""
    return CanonParser(debug=True)


# Utility functions for working with CST
def find_nodes_by_type(cst: CSTNode, node_type: str) -> List[CSTNode]:
    """Find all nodes of a specific type in CST"""
    result = []

    def search(node: CSTNode):
        if node.type == node_type:
            result.append(node)
        for child in node.children:
            search(child)

    search(cst)
    return result


def pretty_print_cst(cst: CSTNode, indent: int = 0) -> str:
    """Pretty print a CST node for debugging"""
    result = "  " * indent + f"{cst.type}"
    if cst.value is not None:
        result += f"({repr(cst.value)})"
    result += "\n"

    for child in cst.children:
        result += pretty_print_cst(child, indent + 1)

    return result


def format_tokens(tokens: List[Token]) -> str:
    """One token per line, prefixed with its line number"""
    return '\n'.join(f"{token.line:4d}: {token}" for token in tokens)
