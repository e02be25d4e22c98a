"""
Tests for the expression parser, evaluator and function library.

Verifies:
- Tokenization and operator precedence
- Library functions and constants
- Free variables, token counts and boolean detection
- Parse errors and per-sample evaluation failures
"""
import math

import pytest

from grapher.core import EvaluationFailure, ParseError
from grapher.expressions.base import FunctionLibrary, LibraryFunction
from grapher.expressions.parser import AstNode, parse_expression, tokenize


def _eval(text, library, **params):
    return parse_expression(text, library).evaluate(params)


# ══════════════════════════════════════════════════════════════════════════
# Tokenizer & Grammar
# ══════════════════════════════════════════════════════════════════════════

class TestGrammar:

    def test_tokenize(self):
        assert tokenize("2*x^2 <= y") == ["2", "*", "x", "^", "2", "<=", "y"]
        assert tokenize("a&&b||!c") == ["a", "&&", "b", "||", "!", "c"]
        assert tokenize("1.5e3 + .5") == ["1.5e3", "+", ".5"]

    def test_ast(self, library):
        expr = parse_expression("x + 1", library)
        assert expr.ast == AstNode("+", [AstNode("x", []), 1.0])

    @pytest.mark.parametrize("text, expected", [
        ("1 + 2 * 3", 7),
        ("(1 + 2) * 3", 9),
        ("10 - 4 - 3", 3),
        ("2^3^2", 512),
        ("2**3", 8),
        ("-2^2", -4),
        ("2^-1", 0.5),
        ("7 % 3", 1),
        ("8 / 2 / 2", 2),
        ("--3", 3),
        ("+4", 4),
    ])
    def test_precedence(self, library, text, expected):
        assert _eval(text, library) == expected

    @pytest.mark.parametrize("text, expected", [
        ("1 < 2 && 2 < 1", False),
        ("1 < 2 || 2 < 1", True),
        ("!(1 > 2)", True),
        ("1 + 1 == 2", True),
        ("3 != 3", False),
        ("2 >= 2 && 1 <= 0 || 1", True),
    ])
    def test_boolean_operators(self, library, text, expected):
        assert _eval(text, library) == expected

    def test_comparisons_do_not_chain(self, library):
        with pytest.raises(ParseError):
            parse_expression("1 < 2 < 3", library)


# ══════════════════════════════════════════════════════════════════════════
# Library
# ══════════════════════════════════════════════════════════════════════════

class TestLibrary:

    @pytest.mark.parametrize("text, expected", [
        ("sqrt(16)", 4),
        ("abs(-2.5)", 2.5),
        ("atan2(1, 1)", math.pi / 4),
        ("ln(e)", 1),
        ("log(1000)", 3),
        ("cos(pi)", -1),
        ("tau / pi", 2),
        ("phi^2 - phi", 1),
        ("floor(2.7) + ceil(2.1)", 5),
    ])
    def test_functions_and_constants(self, library, text, expected):
        assert _eval(text, library) == pytest.approx(expected)

    def test_tables_are_read_only(self, library):
        with pytest.raises(TypeError):
            library.constants["pi"] = 3
        with pytest.raises(TypeError):
            library.functions["sin"] = LibraryFunction(math.cos)

    def test_with_constants_returns_new_library(self, library):
        extended = library.with_constants(g=9.81)
        assert "g" not in library.constants
        assert _eval("g * x", extended, x=2) == pytest.approx(19.62)

    def test_with_functions(self, library):
        extended = library.with_functions(double=LibraryFunction(lambda v: 2 * v))
        assert _eval("double(x)", extended, x=4) == 8
        with pytest.raises(ParseError):
            parse_expression("double(x)", library)

    def test_name_clash_rejected(self):
        with pytest.raises(ValueError):
            FunctionLibrary({"e": LibraryFunction(math.exp)}, {"e": math.e})


# ══════════════════════════════════════════════════════════════════════════
# Expression Metadata
# ══════════════════════════════════════════════════════════════════════════

class TestExpressionInfo:

    def test_variables_and_token_count(self, library):
        expr = parse_expression("x^2 + pi", library)
        assert expr.variables == {"x", "pi"}
        assert expr.token_count == 5

    def test_function_names_are_not_variables(self, library):
        expr = parse_expression("sin(theta) * r", library)
        assert expr.variables == {"theta", "r"}

    def test_bare_identifier(self, library):
        expr = parse_expression(" y ", library)
        assert expr.token_count == 1
        assert expr.variables == {"y"}

    @pytest.mark.parametrize("text, returns_bool", [
        ("x < 1", True),
        ("x < 1 && y > 2", True),
        ("!x", True),
        ("x + 1", False),
        ("-(x < 1)", False),
        ("sin(x)", False),
    ])
    def test_returns_bool(self, library, text, returns_bool):
        assert parse_expression(text, library).returns_bool is returns_bool


# ══════════════════════════════════════════════════════════════════════════
# Errors
# ══════════════════════════════════════════════════════════════════════════

class TestErrors:

    @pytest.mark.parametrize("text", [
        "", "   ", "1 +", "(1 + 2", "1 2", "x $ 2", "foo(1)", "sin(1, 2)", "atan2(1)", "sin 1", ")",
    ])
    def test_parse_errors(self, library, text):
        with pytest.raises(ParseError):
            parse_expression(text, library)

    @pytest.mark.parametrize("text, params", [
        ("sqrt(x)", {"x": -1.0}),
        ("1 / x", {"x": 0.0}),
        ("ln(x)", {"x": 0.0}),
        ("exp(x)", {"x": 1000.0}),
        ("x % 0", {"x": 1.0}),
        ("x + y", {"x": 1.0}),
    ])
    def test_evaluation_failures(self, library, text, params):
        with pytest.raises(EvaluationFailure):
            parse_expression(text, library).evaluate(params)

    def test_failure_does_not_poison_later_samples(self, library):
        expr = parse_expression("sqrt(x)", library)
        with pytest.raises(EvaluationFailure):
            expr.evaluate({"x": -4.0})
        assert expr.evaluate({"x": 4.0}) == 2

    def test_deep_nesting_is_a_parse_error(self, library):
        with pytest.raises(ParseError):
            parse_expression("+".join(["x"] * 5000), library)
        with pytest.raises(ParseError):
            parse_expression("(" * 5000 + "x" + ")" * 5000, library)

    def test_long_chain_evaluates(self, library):
        assert _eval("+".join(["x"] * 200), library, x=0.5) == 100
