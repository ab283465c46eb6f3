"""Tests for the formula_calc command-line tool."""

import importlib.util
from pathlib import Path

import pytest

from formula import FormulaBoolean, FormulaComplex, FormulaNumberFormat, FormulaParseError, FormulaReal


TOOL_PATH = Path(__file__).parent.parent.parent / 'tools' / 'formula_calc' / 'formula_calc.py'


@pytest.fixture(scope="module")
def formula_calc():
    """Load the command-line tool as a module."""
    spec = importlib.util.spec_from_file_location("formula_calc", TOOL_PATH)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestFormulaCalcMain:
    """Test running the tool."""

    @pytest.mark.parametrize("argv,expected", [
        (["2+3*4"], "14"),
        (["x^3+2*x^2+3*x-5", "-v", "x=-2.5"], "-15.625"),
        (["x*y", "-v", "x=3", "--var", "y=4"], "12"),
        (["z*i", "-v", "z=1+2i"], "-2+1i"),
        (["if(flag,1,2)", "-v", "flag=false"], "2"),
        (["-d", "pythagoras(a,b)=sqrt(a^2+b^2)", "pythagoras(3,4)"], "5"),
        (["-d", "sq(x)=x^2", "-d", "sumsq(a,b)=sq(a)+sq(b)", "sumsq(1,2)"], "5"),
        (["x*(2+3)", "--optimize", "--render"], "x*5"),
        (["x*(2+3)", "--render"], "x*(2+3)"),
        (["x*(2+3)", "--optimize", "-v", "x=2"], "10"),
        (["x^3-x", "--derive", "x"], "3*x^2-1"),
        (["x", "--integrate", "x"], "x^2/2"),
        (["sum(k;1;4;k*0,5)", "--decimal-separator", ","], "5"),
        (["x/4", "-v", "x=2,5", "--decimal-separator", ","], "0,625"),
    ])
    def test_output(self, formula_calc, capsys, argv, expected):
        """Test successful runs."""
        assert formula_calc.main(argv) == 0
        captured = capsys.readouterr()
        assert captured.out == expected + "\n"
        assert captured.err == ""

    @pytest.mark.parametrize("argv,message", [
        (["1/0"], "Error: Division by zero"),
        (["2+"], "Error: Missing operand"),
        (["x+1"], "Error: Unknown variable: 'x'"),
        (["x", "-v", "x"], "Invalid variable binding 'x'"),
        (["x", "-v", "x=abc"], "Cannot parse number: abc"),
        (["x+1", "--derive", "x"], "Derivative of operator '+' is not implemented"),
        (["x", "--derive", "x", "--integrate", "x"], "Cannot use both --derive and --integrate"),
        (["1", "--decimal-separator", "5"], "Invalid decimal separator"),
        (["-d", "sine(x)=x", "1"], "hidden by a builtin or constant"),
    ])
    def test_errors(self, formula_calc, capsys, argv, message):
        """Test that failures are reported on stderr with exit code 1."""
        assert formula_calc.main(argv) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert message in captured.err


class TestParseBinding:
    """Test variable binding parsing."""

    @pytest.mark.parametrize("text,name,value", [
        ("x=2.5", "x", FormulaReal(2.5)),
        (" x = -1 ", "x", FormulaReal(-1.0)),
        ("z=1+2i", "z", FormulaComplex(1.0, 2.0)),
        ("z=-3i", "z", FormulaComplex(0.0, -3.0)),
        ("flag=true", "flag", FormulaBoolean(True)),
    ])
    def test_bindings(self, formula_calc, us_format, text, name, value):
        """Test the supported value kinds."""
        assert formula_calc.parse_binding(text, us_format) == (name, value)

    def test_decimal_comma(self, formula_calc, german_format):
        """Test values with a decimal comma."""
        assert formula_calc.parse_binding("x=0,5", german_format) == ("x", FormulaReal(0.5))

    @pytest.mark.parametrize("text", ["x", "=2", "x="])
    def test_malformed(self, formula_calc, text):
        """Test bindings that are not name=value."""
        with pytest.raises(ValueError, match="expected name=value"):
            formula_calc.parse_binding(text, FormulaNumberFormat())

    def test_bad_number(self, formula_calc, us_format):
        """Test a value that is not a number."""
        with pytest.raises(FormulaParseError):
            formula_calc.parse_binding("x=1.2.3", us_format)
