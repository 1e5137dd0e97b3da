"""
Interpreter tests: statement execution, evaluation, closures and currying
"""

import pytest
from fractions import Fraction

from error_handling import (
  CanonRuntimeError,
  CanonSemanticsError,
  UndefinedSymbol,
  ReassignmentError,
  TypeMismatch,
  NotASet,
  NotCallable,
  ArityError,
  UnsupportedOperation,
  NotYetImplemented,
)
from values import RATIONAL, COMPLEX, FUNCTION, make_integer, values_equal
from sets import pool_size


class TestEndToEnd:

  def test_sum_of_assigned_names(self, run):
    assert run("x = 2; y = 3; x + y") == ["5"]

  def test_function_definition_and_call(self, run):
    assert run("f(x) = x^2; f(3)") == ["9"]

  def test_outputs_accumulate(self, interp):
    interp.interpret("1 + 1")
    interp.interpret("2 * 3")
    assert interp.outputs == ["2", "6"]

  def test_multiline_program(self, run):
    source = "\n".join([
        "// squares",
        "sq(n) = n * n",
        "a = sq(4)",
        "a",
        "a / 3",
    ])
    assert run(source) == ["16", "16/3"]

  def test_rendering(self, run):
    assert run('[1, 1/2, true, "s"]') == ["[1, 1/2, true, s]"]
    assert run("f(x) = x^2; f") == ["(x) -> x ^ 2"]
    assert run("{1, 2} | {3}") == ["{1, 2, 3}"]

  def test_expressions_and_declarations_render_nothing(self, run):
    assert run("x : Nat; x = 4; g : Int -> Int") == []


class TestArithmeticTower:

  def test_mixed_arithmetic(self, interp):
    result = interp.evaluate("1 + 1/2")
    assert result['type'] == RATIONAL
    assert result['value'] == Fraction(3, 2)

  def test_rational_plus_complex(self, interp):
    result = interp.evaluate("(1/2) + (1+0i)")
    assert result['type'] == COMPLEX
    assert values_equal(result, interp.evaluate("3/2"))

  def test_decimal_literal_is_exact(self, interp):
    result = interp.evaluate("12.34")
    assert result['type'] == RATIONAL
    assert result['value'] == Fraction(1234, 100)

  def test_power_edge_cases(self, run):
    assert run("2^0; (-1)^2; (-1)^3; 2^-1") == ["1", "1", "-1", "1/2"]

  def test_zero_to_zero(self, run):
    with pytest.raises(UnsupportedOperation):
      run("0^0")

  def test_exponent_from_division_is_unfinished(self, run):
    with pytest.raises(NotYetImplemented):
      run("2^(4/2)")

  def test_imaginary_unit(self, run):
    assert run("i * i") == ["-1+0i"]
    assert run("i^2 == -1") == ["true"]

  def test_text_concatenation(self, run):
    assert run('"n = " + 3/4') == ["n = 3/4"]

  def test_text_subtraction_fails(self, run):
    with pytest.raises(UnsupportedOperation):
      run('"a" - 1')


class TestSingleAssignment:

  def test_reassignment_fails_and_keeps_value(self, interp):
    interp.interpret("x = 5")
    with pytest.raises(ReassignmentError):
      interp.interpret("x = 6")
    assert interp.lookup("x") == make_integer(5)

  def test_typed_reassignment_fails(self, run):
    with pytest.raises(ReassignmentError):
      run("x = 5; x : Nat = 3")

  def test_builtin_sets_cannot_be_reassigned(self, run):
    with pytest.raises(ReassignmentError):
      run("Nat = 3")

  def test_signature_after_assignment_fails(self, run):
    with pytest.raises(ReassignmentError):
      run("f(x) = x; f : Int -> Int")

  def test_undefined_symbol(self, run):
    with pytest.raises(UndefinedSymbol):
      run("y + 1")

  def test_declared_but_unassigned_symbol_is_undefined(self, run):
    with pytest.raises(UndefinedSymbol):
      run("y : Nat; y")

  def test_error_carries_statement_location(self, interp):
    with pytest.raises(UndefinedSymbol) as info:
      interp.interpret("x = 1\nx + y", "prog.canon")
    assert info.value.span.start_line == 2

  def test_program_stops_at_first_error(self, interp):
    with pytest.raises(UndefinedSymbol):
      interp.interpret("1; nope; 2")
    assert interp.outputs == ["1"]


class TestTypes:

  def test_declared_type_accepts_member(self, interp):
    interp.interpret("x : {1, 2, 3}; x = 2")
    assert interp.lookup("x") == make_integer(2)

  def test_declared_type_rejects_non_member(self, interp):
    with pytest.raises(TypeMismatch):
      interp.interpret("y : {1, 2, 3}; y = 5")
    assert interp.lookup("y") is None

  def test_typed_assignment(self, interp):
    interp.interpret("n : Nat = 4")
    assert interp.lookup("n") == make_integer(4)

  def test_typed_assignment_mismatch_creates_no_binding(self, interp):
    with pytest.raises(TypeMismatch):
      interp.interpret("x : Nat = -1")
    assert interp.lookup("x") is None

  def test_type_position_must_be_a_set(self, run):
    with pytest.raises(NotASet):
      run("x : 3 = 3")
    with pytest.raises(NotASet):
      run("y : 5")

  def test_type_cast_is_unfinished(self, run):
    with pytest.raises(NotYetImplemented):
      run("x = 1; x : Real")
    with pytest.raises(NotYetImplemented):
      run("(1 + 2) : Nat")

  def test_set_combinators_as_types(self, interp):
    interp.interpret("a : Nat | {-1} = -1")
    interp.interpret("b : Int \\ Nat = -3")
    with pytest.raises(TypeMismatch):
      interp.interpret("c : ~Real = 2")

  def test_set_comparisons(self, run):
    assert run("{1} <=: {1, 2}; {1, 2} <: {1, 2}; {2, 1} =: {1, 2}") == ["true", "false", "true"]

  def test_subset_against_infinite_is_unfinished(self, run):
    with pytest.raises(NotYetImplemented):
      run("{1} <=: Nat")


class TestSetInterning:

  def test_equal_literals_share_instance(self, interp):
    interp.interpret("a = {1, 2, 3}; b = {3, 2, 1}")
    assert interp.lookup("a")['value'] is interp.lookup("b")['value']

  def test_set_literals_compare_equal(self, run):
    assert run("{1, 2, 3} == {3, 2, 1}") == ["true"]

  def test_pool_grows_once_per_distinct_set(self, interp):
    before = pool_size(interp.pool)
    interp.interpret("{1, 2}; {2, 1}; {1, 2}")
    assert pool_size(interp.pool) == before + 1

  def test_duplicates_collapse(self, run):
    assert run("{1, 1, 2/2}") == ["{1}"]


class TestFunctions:

  def test_function_literal(self, run):
    assert run("sq = x -> x * x; sq(5)") == ["25"]

  def test_closure_captures_environment(self, run):
    assert run("k = 10; add_k(x) = x + k; add_k(1)") == ["11"]

  def test_zero_argument_function(self, run):
    assert run("five() = 5; five()") == ["5"]

  def test_not_callable(self, run):
    with pytest.raises(NotCallable):
      run("x = 3; x(1)")

  def test_too_many_arguments(self, run):
    with pytest.raises(ArityError):
      run("f(x) = x; f(1, 2)")

  def test_parameter_defaults_to_universe(self, run):
    assert run('id(x) = x; id("s"); id({1})') == ["s", "{1}"]

  def test_function_signature_constrains_parameters(self, run):
    assert run("f : Nat -> Nat; f(x) = x + 1; f(2)") == ["3"]
    with pytest.raises(TypeMismatch):
      run("g : Nat -> Nat; g(x) = x + 1; g(-2)")

  def test_function_signature_arity_mismatch(self, run):
    with pytest.raises(ArityError):
      run("f : Nat, Nat -> Nat; f(x) = x")

  def test_body_arithmetic_is_exact(self, run):
    assert run("sum_to(n) = n * (n + 1) / 2; sum_to(100)") == ["5050"]

  def test_nested_function_literal(self, run):
    assert run("adder(a) = (b) -> a + b; adder(2)(3)") == ["5"]

  def test_invalid_definition_target(self, run):
    with pytest.raises(CanonSemanticsError):
      run("f(1) = 2")


class TestCurrying:

  def test_elided_argument_returns_function(self, interp):
    interp.interpret("f(x, y) = x + y; g = f(1, )")
    g = interp.lookup("g")
    assert g['type'] == FUNCTION
    assert g['value']['params'] == ["y"]
    assert interp.interpret("g(2); f(1, 2)") == ["3", "3"]

  def test_fewer_arguments_than_parameters(self, run):
    assert run("f(x, y, z) = x * 100 + y * 10 + z; g = f(1); g(2, 3)") == ["123"]

  def test_leading_elision(self, run):
    assert run("f(x, y) = x - y; g = f(, 1); g(5)") == ["4"]

  def test_repeated_partial_application(self, run):
    source = "f(x, y, z) = [x, y, z]; g = f(1, , ); h = g(, 3); h(2)"
    assert run(source) == ["[1, 2, 3]"]

  def test_curried_body_renders_frozen_values(self, run):
    assert run("f(x, y) = x + y; f(1, )") == ["(y) -> 1 + y"]

  def test_curry_respects_nested_shadowing(self, run):
    source = "f(x, y) = ((x) -> x * 10)(y) + x; g = f(1, ); g(2)"
    assert run(source) == ["21"]

  def test_partial_application_checks_supplied_types(self, run):
    with pytest.raises(TypeMismatch):
      run("f : Nat, Nat -> Nat; f(x, y) = x + y; f(-1, )")

  def test_curried_function_keeps_remaining_types(self, run):
    with pytest.raises(TypeMismatch):
      run("f : Nat, Nat -> Nat; f(x, y) = x + y; g = f(1, ); g(-1)")


class TestLifting:

  def test_unary_lifting(self, run):
    assert run("f(x) = x + 1; g = -f; g(2)") == ["-3"]

  def test_function_with_value(self, run):
    assert run("f(x) = x * 2; g = f + 1; g(5)") == ["11"]
    assert run("k(x) = x * 2; m = 1 - k; m(5)") == ["-9"]

  def test_function_with_function(self, run):
    assert run("f(x) = x * 2; g(y) = y + 3; h = f * g; h(2)") == ["20"]

  def test_lifted_function_renders(self, run):
    assert run("f(x) = x * 2; f + 1") == ["(x) -> (x * 2) + 1"]

  def test_composition_freezes_right_free_variables(self, run):
    source = "add(a, b) = a + b; inc = add(1, ); dbl(x) = x * 2; h = dbl + inc; h(4)"
    assert run(source) == ["13"]

  def test_mismatched_arity(self, run):
    with pytest.raises(ArityError):
      run("f(x) = x; g(x, y) = x; f + g")

  def test_lifting_comparisons(self, run):
    assert run("f(x) = x * x; big = f > 10; big(4); big(3)") == ["true", "false"]

  def test_renaming_inside_set_literal_is_unfinished(self, run):
    with pytest.raises(NotYetImplemented):
      run("f(x) = x; g(y) = {y}; f + g")


class TestErrorTaxonomy:

  def test_runtime_errors_share_a_base(self):
    for error in (UndefinedSymbol, ReassignmentError, TypeMismatch, NotASet,
                  NotCallable, ArityError, UnsupportedOperation):
      assert issubclass(error, CanonRuntimeError)

  def test_unfinished_features_are_distinct(self):
    assert not issubclass(NotYetImplemented, CanonRuntimeError)
    assert issubclass(NotYetImplemented, NotImplementedError)

  def test_error_kind_in_message(self, run):
    with pytest.raises(ReassignmentError) as info:
      run("x = 1; x = 2")
    assert str(info.value).startswith("ReassignmentError")


class TestEmptySet:

  def test_literal_equals_builtin(self, run):
    assert run("{} == Empty; {} =: Empty") == ["true", "true"]

  def test_literal_is_the_builtin_instance(self, interp):
    interp.interpret("e = {}")
    assert interp.lookup("e")['value'] is interp.lookup("Empty")['value']

  def test_disjoint_intersection_is_empty(self, run):
    assert run("{1} & {2}; ({1} & {2}) == Empty; {} <=: {1}") == ["Empty", "true", "true"]

  def test_empty_as_type(self, run):
    with pytest.raises(TypeMismatch):
      run("x : {} = 1")
