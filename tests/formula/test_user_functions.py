"""Tests for user-defined functions."""

import threading

import pytest

from formula import (
    Formula, FormulaFunctionCall, FormulaFunctionDefinition, FormulaFunctionRegistry, FormulaParseError,
    FormulaUnknownVariableError
)


@pytest.fixture
def formula_with_functions(formula):
    """Engine with a set of registered functions."""
    for definition in (
        "cube(x)=x^3",
        "mycot(x)=1/tan(x)",
        "pythagoras(a,b)=sqrt(a^2+b^2)",
        "sumup(x)=sum(v,1,x,v)",
        "polygon(x)=3*x^4-2*x^3+x^2-3*x+5",
    ):
        formula.define(definition)

    return formula


class TestUserFunctionEvaluation:
    """Test calling user-defined functions."""

    @pytest.mark.parametrize("expression,expected", [
        ("cube(3)", "27"),
        ("cube(3*x)", "216"),
        ("mycot(0.5)", "1.83"),
        ("pythagoras(3,4)==5", "true"),
        ("sumup(10)", "55"),
        ("polygon(-3)", "320"),
        ("cube(cube(x))", "512"),
        ("pythagoras(x,cube(x)-2)+1", "7.325"),
        ("cube(1+1i)", "-2+2i"),
    ])
    def test_calls(self, formula_with_functions, helpers, expression, expected):
        """Test user-defined function results, with x = 2."""
        helpers.assert_evaluates_to(formula_with_functions, expression, expected, {'x': 2})

    def test_function_using_earlier_function(self, formula_with_functions, helpers):
        """Test that a body may call functions registered before it."""
        formula_with_functions.define("hypercube(x)=cube(x)*x")
        helpers.assert_evaluates_to(formula_with_functions, "hypercube(2)", "16")

    def test_body_sees_only_parameters(self, formula, helpers):
        """Test that caller variables are not visible in a function body."""
        formula.define("twice(y)=2*y")
        helpers.assert_evaluates_to(formula, "twice(y)", "10", {'y': 5})
        helpers.assert_evaluates_to(formula, "twice(x)", "6", {'x': 3, 'y': 100})

    def test_argument_errors_propagate(self, formula_with_functions):
        """Test that errors evaluating arguments propagate."""
        with pytest.raises(FormulaUnknownVariableError):
            formula_with_functions.evaluate("cube(z)")

    def test_call_tree(self, formula_with_functions):
        """Test that calls carry their definition."""
        tree = formula_with_functions.parse("cube(2)")
        assert isinstance(tree, FormulaFunctionCall)
        assert not tree.is_builtin()
        assert tree.definition.name == "cube"
        assert tree.definition.parameters == ("x",)


class TestUserFunctionParsing:
    """Test parsing calls and definitions."""

    def test_definition_fields(self, formula):
        """Test the parsed definition."""
        definition = formula.define_function("pythagoras(a, b) = sqrt(a^2 + b^2)")
        assert definition.name == "pythagoras"
        assert definition.parameters == ("a", "b")
        assert definition.arity() == 2
        assert definition.describe() == "pythagoras(a,b)=sqrt(a^2+b^2)"

    def test_define_function_does_not_register(self, formula):
        """Test that define_function only parses."""
        definition = formula.define_function("cube(x)=x^3")
        assert formula.functions() == []
        formula.register(definition)
        assert formula.functions() == [definition]

    def test_parameterless_function(self, formula, helpers):
        """Test a function without parameters."""
        formula.define("answer()=6*7")
        helpers.assert_evaluates_to(formula, "answer()+0", "42")

    @pytest.mark.parametrize("expression,match", [
        ("cube(1,2)", "takes 1 arguments, got 2"),
        ("cube()", "takes 1 arguments, got 0"),
        ("pythagoras(3)", "takes 2 arguments, got 1"),
        ("cube", "bracketed argument list"),
        ("cube(2)3", "bracketed argument list"),
    ])
    def test_call_errors(self, formula_with_functions, expression, match):
        """Test malformed calls of user-defined functions."""
        with pytest.raises(FormulaParseError, match=match):
            formula_with_functions.parse(expression)

    @pytest.mark.parametrize("definition,match", [
        ("cube(x)", "needs a signature, '=' and a body"),
        ("cube(x)=", "needs a signature, '=' and a body"),
        ("Cube(x)=x^3", "Invalid function signature"),
        ("cube x=x^3", "Invalid function signature"),
        ("sine(x)=x", "hidden by a builtin or constant"),
        ("if(x)=x", "hidden by a builtin or constant"),
        ("pi(x)=x", "hidden by a builtin or constant"),
        ("f(sin)=1", "Invalid parameter name"),
        ("f(x1)=1", "Invalid parameter name"),
        ("f(x,x)=x", "Duplicate parameter names"),
        ("f(x)=x+y", "not parameters: y"),
        ("f(x)=x+", "Missing operand"),
    ])
    def test_definition_errors(self, formula, definition, match):
        """Test malformed definitions."""
        with pytest.raises(FormulaParseError, match=match):
            formula.define(definition)

        assert formula.functions() == []

    def test_duplicate_name(self, formula_with_functions):
        """Test that a name can only be registered once."""
        with pytest.raises(FormulaParseError, match="'cube' is already defined"):
            formula_with_functions.define("cube(y)=y*y*y")

    def test_loop_variable_in_body_is_bound(self, formula):
        """Test that a sum loop variable does not count as unbound."""
        definition = formula.define("tri(n)=sum(k,1,n,k)")
        assert definition.parameters == ("n",)


class TestRegistryBehaviour:
    """Test registry lookup and ownership."""

    def test_registration_order_decides_prefix_match(self, formula):
        """Test that the first registered name that prefixes a call wins."""
        formula.define("sq(x)=x^2")
        formula.define("sqr(x)=x*x")
        with pytest.raises(FormulaParseError, match="bracketed argument list"):
            formula.parse("sqr(3)")

    def test_longer_name_registered_first(self, formula, helpers):
        """Test the same names registered in the other order."""
        formula.define("sqr(x)=x*x")
        formula.define("sq(x)=x^2")
        helpers.assert_evaluates_to(formula, "sqr(3)+sq(2)", "13")

    def test_prefix_of_registered_name(self, formula_with_functions):
        """Test a longer function name whose prefix is already registered."""
        formula_with_functions.define("pythagorasddd(a,b,c)=sqrt(a^2+b^2+c^2)")
        with pytest.raises(FormulaParseError):
            formula_with_functions.parse("pythagorasddd(3,4,5)")

    def test_engines_do_not_share_functions(self, formula_with_functions):
        """Test that every engine owns its registry."""
        other = Formula()
        with pytest.raises(FormulaParseError, match="Unknown token"):
            other.parse("cube(3)")

        assert len(formula_with_functions.functions()) == 5

    def test_registry_directly(self, formula):
        """Test registry lookup by prefix and by exact name."""
        registry = FormulaFunctionRegistry()
        definition = FormulaFunctionDefinition("cube", ("x",), formula.parse("x^3"), "x^3")
        registry.register(definition)
        assert registry.lookup("cube(2)") is definition
        assert registry.lookup("cub(2)") is None
        assert registry.get("cube") is definition
        assert registry.get("cubes") is None
        assert registry.names() == ["cube"]
        assert len(registry) == 1

    def test_concurrent_registration(self, formula):
        """Test registering from several threads."""
        def define(index):
            name = "f" + "x" * index
            formula.define(f"{name}(a)=a+{index}")

        threads = [threading.Thread(target=define, args=(i,)) for i in range(1, 11)]
        for thread in threads:
            thread.start()

        for thread in threads:
            thread.join()

        assert sorted(len(name) for name in formula.registry.names()) == list(range(2, 12))
