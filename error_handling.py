"""
Error handling for the Canon interpreter
Parse error enrichment plus the runtime error taxonomy
"""

from typing import List, Optional, Dict, Any
from pyparsing import ParseException
import re


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_parse_error(
    message: str,
    location: int,
    line: int,
    column: int,
    expected: Optional[List[str]] = None,
    got: Optional[str] = None,
    context: Optional[str] = None,
    suggestions: Optional[List[str]] = None
) -> Dict:
    """Create an immutable parse error structure"""
    return {
        'message': message,
        'location': location,
        'line': line,
        'column': column,
        'expected': expected or [],
        'got': got,
        'context': context,
        'suggestions': suggestions or []
    }


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2) -> str:
    """Get context lines around the error"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:
            context_parts.append(f"{'':6}{' ' * (col_num - 1)}^ Error here")

    return '\n'.join(context_parts)


def extract_expected(exc: ParseException) -> List[str]:
    """Extract expected tokens from exception"""
    msg = str(exc)
    expected_match = re.search(r"Expected\s+(.+?)(?:,\s+found|\s+\(at|$)", msg)
    if expected_match:
        return [expected_match.group(1)]
    return ["valid syntax"]


def extract_got(source_text: str, line_num: int, col_num: int) -> str:
    """Extract what was actually found at the error location"""
    lines = source_text.split('\n')

    if 0 < line_num <= len(lines):
        error_line = lines[line_num - 1]
        if col_num <= len(error_line):
            start = max(0, col_num - 1)
            end = min(len(error_line), col_num + 10)
            got_text = error_line[start:end].strip()
            if got_text:
                return f"'{got_text}'"
        return "end of line"
    return "unknown"


def generate_suggestions(got: str, source_line: str) -> List[str]:
    """Generate hints for the common mistakes"""
    suggestions = []

    if source_line.count('(') != source_line.count(')'):
        suggestions.append("Unbalanced parentheses")

    if source_line.count('{') != source_line.count('}'):
        suggestions.append("Unbalanced braces in set literal")

    if source_line.count('[') != source_line.count(']'):
        suggestions.append("Unbalanced brackets in tuple literal")

    if '=>' in got:
        suggestions.append("Function literals use '->', e.g. (x) -> x + 1")

    if source_line.rstrip().endswith(':'):
        suggestions.append("A type declaration needs a set after ':', e.g. x : Nat")

    if re.search(r"\d\.(?!\d)", source_line):
        suggestions.append("Decimal numbers need digits after the point, e.g. 1.0")

    return suggestions


def enhance_parse_exception_dict(exc: ParseException, source_text: str, line_offset: int = 0) -> Dict:
    """Convert pyparsing exception to enhanced Canon error dict

    `line_offset` shifts the exception's line number when `source_text` is a
    fragment of a larger file.
    """
    line_num = exc.lineno + line_offset
    col_num = exc.column
    lines = source_text.split('\n')
    full_text = '\n'.join([''] * line_offset + lines)
    source_line = lines[exc.lineno - 1] if exc.lineno <= len(lines) else ""

    got = extract_got(full_text, line_num, col_num)
    return make_parse_error(
        message=str(exc),
        location=exc.loc,
        line=line_num,
        column=col_num,
        expected=extract_expected(exc),
        got=got,
        context=get_context_lines(full_text, line_num, col_num, context_lines=0),
        suggestions=generate_suggestions(got, source_line)
    )


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================

class CanonParseError(Exception):
    """Canon parsing error with detailed context"""
    def __init__(self, message: str, span: Any = None, context: str = "",
                 suggestions: Optional[List[str]] = None):
        self.message = message
        self.span = span
        self.context = context
        self.suggestions = suggestions or []
        super().__init__(self._format_error())

    def _format_error(self) -> str:
        result = f"Parse error at {self.span}: {self.message}" if self.span else f"Parse error: {self.message}"
        if self.context:
            result += f"\n{self.context}"
        for suggestion in self.suggestions:
            result += f"\n  Hint: {suggestion}"
        return result


def parse_error_from_exception(exc: ParseException, source_text: str, span: Any = None,
                               line_offset: int = 0) -> CanonParseError:
    """Build a CanonParseError from a pyparsing exception"""
    error_dict = enhance_parse_exception_dict(exc, source_text, line_offset)
    return CanonParseError(
        f"{error_dict['message']} (expected {', '.join(error_dict['expected'])}, got {error_dict['got']})",
        span,
        error_dict['context'],
        error_dict['suggestions']
    )


class CanonTokenizerError(Exception):
    """Canon tokenization error"""
    pass


class CanonSemanticsError(Exception):
    """Malformed syntax tree (e.g. invalid assignment target)"""

    def __init__(self, message: str, span: Any = None):
        self.message = message
        self.span = span
        super().__init__(self._format_error())

    def _format_error(self) -> str:
        if self.span:
            return f"Semantics error at {self.span}: {self.message}"
        return f"Semantics error: {self.message}"


class CanonRuntimeError(Exception):
    """Base class of every user-facing evaluation error"""
    kind = "RuntimeError"

    def __init__(self, message: str, span: Any = None):
        self.message = message
        self.span = span
        super().__init__(message)

    def __str__(self) -> str:
        if self.span:
            return f"{self.kind} at {self.span}: {self.message}"
        return f"{self.kind}: {self.message}"


class UndefinedSymbol(CanonRuntimeError):
    """Symbol referenced before it holds a value"""
    kind = "UndefinedSymbol"


class ReassignmentError(CanonRuntimeError):
    """Name already holds a value somewhere in the scope chain"""
    kind = "ReassignmentError"


class TypeMismatch(CanonRuntimeError):
    """Value is not a member of its declared set"""
    kind = "TypeMismatch"


class NotASet(CanonRuntimeError):
    """Type-position expression did not evaluate to a set"""
    kind = "NotASet"


class NotCallable(CanonRuntimeError):
    """Call target is not a function"""
    kind = "NotCallable"


class ArityError(CanonRuntimeError):
    """Too many arguments, or mismatched arity when combining functions"""
    kind = "ArityError"


class UnsupportedOperation(CanonRuntimeError):
    """Operator has no rule for the operand kinds"""
    kind = "UnsupportedOperation"


class NotYetImplemented(NotImplementedError):
    """Semantics the language deliberately leaves unfinished

    Kept outside the CanonRuntimeError hierarchy so that it is never
    mistaken for an error in the user's program.
    """

    def __init__(self, feature: str):
        self.feature = feature
        super().__init__(f"not yet implemented: {feature}")


class CanonInternalError(Exception):
    """Interpreter bug: a tree or value shape the evaluator does not know"""
    pass
