"""Tests for formula evaluation."""

import math
import random
from concurrent.futures import ThreadPoolExecutor

import pytest

from formula import (
    Formula, FormulaCalcError, FormulaComplex, FormulaDivisionByZeroError, FormulaEnvironment, FormulaEvaluator,
    FormulaOperationNotSupportedError, FormulaParser, FormulaReal, FormulaUnaryFunc, FormulaUnaryKind,
    FormulaUndefinedError, FormulaUnknownVariableError
)


class TestRealFormulas:
    """Test formulas over real values, with x = 2."""

    @pytest.mark.parametrize("expression,expected", [
        # Arithmetic
        ("(15-2+4^2*3+8+x^2+sin(1)^tan(x))/(-5)", "-14.892"),
        ("x^3+2*x^2+3*x-5", "17"),
        ("28/3/5", "1.867"),
        ("17*4*8*12", "6528"),
        ("17-3-2-1", "11"),
        ("5^5", "3125"),
        ("sqrt(3^2+4^2)", "5"),
        ("x", "2"),

        # Unary builtins
        ("neg(99)", "-99"),
        ("int(6.725)", "6"),
        ("sgn(x)", "1"),
        ("exp(pi)", "23.141"),
        ("ln(exp(pi))", "3.142"),
        ("ln(2)", "0.693"),
        ("log(1000)", "3"),
        ("log10(1000)", "3"),

        # Trigonometric and hyperbolic functions
        ("sin(pi/4)", "0.707"),
        ("cos(pi*3/8)", "0.383"),
        ("tan(0.5)", "0.546"),
        ("cot(5)", "-0.296"),
        ("sec(4)", "-1.53"),
        ("csc(4.2)", "-1.147"),
        ("sinh(pi/4)", "0.869"),
        ("cosh(8)", "1490.479"),
        ("tanh(0.5)", "0.462"),
        ("coth(1.234)", "1.185"),
        ("sech(0.9)", "0.698"),
        ("csch(1.45)", "0.496"),
        ("arcsin(sqrt(2.0)/2)", "0.785"),
        ("arccos(0.75)", "0.723"),
        ("arctan(100)", "1.561"),
        ("arccot(0.23)", "1.345"),
        ("arcsec(23.5)", "1.528"),
        ("arccsc(1.6)", "0.675"),
        ("arcsinh(12)", "3.18"),
        ("arccosh(1.3)", "0.756"),
        ("arctanh(0.3)", "0.31"),
        ("arccoth(3)", "0.347"),
        ("arcsech(0.7)", "0.896"),
        ("arccsch(3.5)", "0.282"),
        ("sin(pi)", "0"),
        ("cos(pi)", "-1"),

        # Comparisons and logic
        ("17==4", "false"),
        ("x==2", "true"),
        ("x!=3", "true"),
        ("x>=2", "true"),
        ("x>2", "false"),
        ("x<=2", "true"),
        ("x<2", "false"),
        ("(x>1)&&(x<3)", "true"),
        ("(x>3)&&(x<5)", "false"),
        ("(x<0)||(x<3)", "true"),
        ("(x==2)||(x==5)", "true"),
        ("(x==2)##(x==5)", "true"),
    ])
    def test_formula(self, formula, helpers, expression, expected):
        """Test formula results."""
        helpers.assert_evaluates_to(formula, expression, expected, {'x': 2})

    def test_sin_pi_is_close_to_zero(self, formula):
        """Test that sin(pi) is zero within floating point precision."""
        assert abs(formula.evaluate("sin(pi)").to_python()) < 1e-15

    def test_result_types(self, formula):
        """Test that results are formula values convertible to Python."""
        assert formula.evaluate("2+3") == FormulaReal(5.0)
        assert formula.evaluate("2+3").to_python() == 5.0
        assert formula.evaluate("1<2").to_python() is True
        assert formula.evaluate("1+2i").to_python() == complex(1.0, 2.0)


class TestComplexFormulas:
    """Test formulas over complex values, with x = 2+1i."""

    @pytest.mark.parametrize("expression,expected", [
        ("sqrt(-1+0i)", "0+1i"),
        ("abs(3+4i)", "5"),
        ("(1+1i)*(1-1i)", "2"),
        ("5+3i+7-2i-3-1i", "9"),
        ("x==2+1i", "true"),
        ("x==2+2i", "false"),
        ("x!=5", "true"),
        ("x!=2+1i", "false"),
        ("(5+3i)/x", "2.6+0.2i"),
        ("x*(8-3i)", "19+2i"),
        ("x-5i", "2-4i"),
        ("5^x", "-0.966+24.981i"),
        ("exp(x)", "3.992+6.218i"),
        ("ln(x)", "0.805+0.464i"),
        ("log(x)", "0.349+0.201i"),
        ("sqrt(x)", "1.455+0.344i"),
        ("sin(x)", "1.403-0.489i"),
        ("cos(x)", "-0.642-1.069i"),
        ("tan(x)", "-0.243+1.167i"),
        ("cot(x)", "-0.171-0.821i"),
        ("sec(x)", "-0.413+0.688i"),
        ("csc(x)", "0.635+0.222i"),
        ("sinh(x)", "1.96+3.166i"),
        ("cosh(x)", "2.033+3.052i"),
        ("tanh(x)", "1.015+0.034i"),
        ("arcsin(x)", "1.063+1.469i"),
        ("arccos(x)", "0.507-1.469i"),
        ("arctan(x)", "1.178+0.173i"),
        ("arccot(x)", "0.393-0.173i"),
        ("arcsinh(x)", "1.529+0.427i"),
        ("arctanh(x)", "0.402+1.339i"),
    ])
    def test_formula(self, formula, helpers, expression, expected):
        """Test complex formula results."""
        helpers.assert_evaluates_to(formula, expression, expected, {'x': complex(2.0, 1.0)})

    def test_real_domain_needs_complex_argument(self, formula, helpers):
        """Test that real domain violations are undefined but work with complex arguments."""
        with pytest.raises(FormulaUndefinedError):
            formula.evaluate("sqrt(-4)")

        helpers.assert_evaluates_to(formula, "sqrt(-4+0i)", "0+2i")
        helpers.assert_evaluates_to(formula, "(-8+0i)^(1/3)", "1+1.732i")


class TestEvaluationErrors:
    """Test errors raised during evaluation."""

    @pytest.mark.parametrize("expression,error", [
        ("5/0", FormulaDivisionByZeroError),
        ("(1+0i)/(0+0i)", FormulaDivisionByZeroError),
        ("x/(x-2)", FormulaDivisionByZeroError),
        ("0^(-1)", FormulaDivisionByZeroError),
        ("ln(0)", FormulaUndefinedError),
        ("log(-1)", FormulaUndefinedError),
        ("sqrt(-1)", FormulaUndefinedError),
        ("arcsin(2)", FormulaUndefinedError),
        ("(-8)^(1/3)", FormulaUndefinedError),
        ("y+1", FormulaUnknownVariableError),
    ])
    def test_errors(self, formula, expression, error):
        """Test that evaluation errors propagate to the caller."""
        with pytest.raises(error):
            formula.evaluate(expression, {'x': 2})

    def test_errors_are_calc_errors(self, formula):
        """Test that all evaluation errors share a base class."""
        for expression in ("5/0", "ln(0)", "y", "true+1"):
            with pytest.raises(FormulaCalcError):
                formula.evaluate(expression)

    def test_error_inside_function_argument(self, formula):
        """Test that an error deep in the tree aborts the whole evaluation."""
        with pytest.raises(FormulaDivisionByZeroError):
            formula.evaluate("sin(1+sqrt(4)/(x-x))", {'x': 1})

    def test_unknown_variable_suggestion(self, formula):
        """Test that unknown variables suggest similar bound names."""
        with pytest.raises(FormulaUnknownVariableError, match="Unknown variable: 'radis'") as exc_info:
            formula.evaluate("radis*2", {'radius': 3})

        assert exc_info.value.suggestion == "Did you mean radius?"
        assert "radius" in exc_info.value.context

    def test_deep_tree_is_a_calc_error(self, formula):
        """Test that a tree too deep for the interpreter stack fails with a calc error."""
        tree = formula.parse("1")
        for _ in range(20000):
            tree = FormulaUnaryFunc(FormulaUnaryKind.NEG, tree)

        with pytest.raises(FormulaCalcError, match="too deeply nested"):
            formula.evaluate(tree)

    @pytest.mark.parametrize("expression,variables", [
        ("sin(exp(1000))", None),
        ("cos(x)", {'x': math.inf}),
        ("tan(x)", {'x': -math.inf}),
        ("sin(x)", {'x': complex(math.inf, 1.0)}),
        ("(1+1i)^x", {'x': math.inf}),
    ])
    def test_infinite_arguments_are_undefined(self, formula, expression, variables):
        """Test that functions without a value at infinity raise a calc error."""
        with pytest.raises(FormulaUndefinedError, match="undefined"):
            formula.evaluate(expression, variables)


class TestConditional:
    """Test the if() builtin."""

    @pytest.mark.parametrize("expression,expected", [
        ("if(x<5,if(x>2,1,2),3)", "2"),
        ("if(x>2,1,0)", "0"),
        ("if(x==2,10,20)", "10"),
        ("if(x>2,1)", "0"),
        ("if(true,1+1i,0)", "1+1i"),
        ("if(false,1,x<3)", "true"),
    ])
    def test_if(self, formula, helpers, expression, expected):
        """Test branch selection."""
        helpers.assert_evaluates_to(formula, expression, expected, {'x': 2})

    def test_only_chosen_branch_is_evaluated(self, formula, helpers):
        """Test that if() is lazy in its branches."""
        helpers.assert_evaluates_to(formula, "if(true,1,1/0)", "1")
        helpers.assert_evaluates_to(formula, "if(false,1/0,2)", "2")
        helpers.assert_evaluates_to(formula, "if(x!=0,1/x,0)", "0", {'x': 0})

    @pytest.mark.parametrize("expression", ["if(1,2,3)", "if(1+1i,2,3)"])
    def test_condition_must_be_boolean(self, formula, expression):
        """Test that a numeric condition is rejected."""
        with pytest.raises(FormulaOperationNotSupportedError, match="Condition of 'if' must be a boolean"):
            formula.evaluate(expression)


class TestSeries:
    """Test the sum() and prod() builtins."""

    @pytest.mark.parametrize("expression,expected", [
        ("prod(x,1,10,x)", "3628800"),
        ("sum(x,1,10,x)", "55"),
        ("sum(x,1,10,sin(x))", "1.411"),
        ("abs(sum(x,-10,-1,x))", "55"),
        ("sum(k,1,10,k^2)", "385"),
        ("prod(k,1,5,k)", "120"),
        ("sum(k,5,1,k)", "0"),
        ("prod(k,5,1,k)", "1"),
        ("sum(k,1,3,k*i)", "0+6i"),
        ("sum(k,0.5,2.5,k)", "4.5"),
        ("sum(k,1,3,sum(j,1,k,j))", "10"),
        ("sum(k,1,n,k)", "15"),
        ("sum(k,1,3,k*n)", "30"),
    ])
    def test_series(self, formula, helpers, expression, expected):
        """Test sums and products."""
        helpers.assert_evaluates_to(formula, expression, expected, {'x': 2, 'n': 5})

    def test_loop_variable_shadows_outer_binding(self, formula, helpers):
        """Test that the loop variable hides an outer variable of the same name only inside the term."""
        helpers.assert_evaluates_to(formula, "sum(x,1,3,x)+x", "106", {'x': 100})

    def test_boolean_terms_are_rejected(self, formula):
        """Test that boolean terms are not counted as numbers."""
        with pytest.raises(FormulaOperationNotSupportedError):
            formula.evaluate("sum(x,1,10,x<5)")

    def test_bounds_must_be_real(self, formula):
        """Test that complex or boolean bounds are rejected."""
        with pytest.raises(FormulaOperationNotSupportedError, match="must be real"):
            formula.evaluate("sum(k,1,2i,k)")

        with pytest.raises(FormulaOperationNotSupportedError, match="must be real"):
            formula.evaluate("prod(k,true,2,k)")

    def test_range_limit(self):
        """Test that too many terms are rejected before iterating."""
        evaluator = FormulaEvaluator(max_series_terms=100)
        tree = FormulaParser().parse("sum(k,1,1000,k)")
        with pytest.raises(FormulaCalcError, match="too large"):
            evaluator.evaluate(tree)

        assert evaluator.evaluate(FormulaParser().parse("sum(k,1,100,k)")) == FormulaReal(5050.0)

    def test_bounds_beyond_float_integer_precision(self, formula, helpers):
        """Test ranges above 2^53, where adding 1 to a float changes nothing."""
        helpers.assert_evaluates_to(formula, "sum(k,10^17,10^17+10,1)", "17")
        helpers.assert_evaluates_to(formula, "prod(k,2^60,2^60+2,1)", "1")

    def test_bounds_must_be_finite(self, formula):
        """Test that infinite bounds are rejected."""
        with pytest.raises(FormulaUndefinedError, match="must be finite"):
            formula.evaluate("sum(k,1,exp(1000),k)")

        with pytest.raises(FormulaUndefinedError, match="must be finite"):
            formula.evaluate("prod(k,x,3,k)", {'x': -math.inf})


class TestRandom:
    """Test the rand() builtin."""

    def test_rand_range(self, formula, helpers):
        """Test that rand(n) lies in [0, n)."""
        for _ in range(50):
            value = formula.evaluate("rand(5)").to_python()
            assert 0.0 <= value < 5.0

        helpers.assert_evaluates_to(formula, "rand(5)<=5", "true")

    def test_rand_is_reproducible_with_seed(self, formula_custom):
        """Test that a seeded random source gives reproducible results."""
        first = formula_custom(seed=42).evaluate("rand(10)")
        second = formula_custom(seed=42).evaluate("rand(10)")
        assert first == second
        assert first == FormulaReal(random.Random(42).random() * 10.0)

    def test_rand_of_complex_limit(self):
        """Test that rand() scales complex limits."""
        formula = Formula(random_source=random.Random(1))
        result = formula.evaluate("rand(2i)")
        assert isinstance(result, FormulaComplex)
        assert result.real == 0.0


class TestVariables:
    """Test variable bindings."""

    def test_python_values(self, formula, helpers):
        """Test bindings from Python values."""
        helpers.assert_evaluates_to(formula, "x*2", "6", {'x': 3})
        helpers.assert_evaluates_to(formula, "z*i", "-2+1i", {'z': complex(1.0, 2.0)})
        helpers.assert_evaluates_to(formula, "if(flag,1,2)", "1", {'flag': True})

    def test_formula_values(self, formula, helpers):
        """Test bindings from formula values."""
        helpers.assert_evaluates_to(formula, "x+1", "3.5", {'x': FormulaReal(2.5)})

    def test_environment(self, formula, helpers):
        """Test passing an environment directly."""
        env = FormulaEnvironment().define('x', FormulaReal(4.0))
        helpers.assert_evaluates_to(formula, "sqrt(x)", "2", env)

    def test_unsupported_python_value(self, formula):
        """Test that values without a formula equivalent are rejected."""
        with pytest.raises(FormulaOperationNotSupportedError, match="Cannot convert str"):
            formula.evaluate("x", {'x': "text"})

    def test_parsed_tree_is_reusable(self, formula):
        """Test that one tree evaluates against many environments."""
        tree = formula.parse("x^2-1")
        results = [formula.evaluate(tree, {'x': x}).to_python() for x in range(5)]
        assert results == [-1.0, 0.0, 3.0, 8.0, 15.0]

    def test_concurrent_evaluation(self, formula):
        """Test evaluating one optimized tree from several threads."""
        tree = formula.optimize(formula.parse("x*(2+3)+sum(k,1,4,k)"))

        def evaluate(x):
            return formula.evaluate(tree, {'x': x}).to_python()

        with ThreadPoolExecutor(max_workers=4) as executor:
            results = list(executor.map(evaluate, range(20)))

        assert results == [x * 5.0 + 10.0 for x in range(20)]
