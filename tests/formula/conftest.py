"""Shared fixtures and utilities for formula tests."""

import cmath
import random
from typing import Any

import pytest

from formula import Formula, FormulaNumberFormat


@pytest.fixture
def formula():
    """Create a fresh formula engine for each test."""
    return Formula()


@pytest.fixture
def formula_custom():
    """Factory for formula engines with custom configuration."""
    def _create_formula(
        number_format: FormulaNumberFormat | None = None,
        max_depth: int = 100,
        seed: int | None = None
    ) -> Formula:
        random_source = random.Random(seed) if seed is not None else None
        return Formula(number_format=number_format, max_depth=max_depth, random_source=random_source)
    return _create_formula


@pytest.fixture
def us_format():
    """US-style number format: decimal point, comma argument separator."""
    return FormulaNumberFormat()


@pytest.fixture
def german_format():
    """German-style number format: decimal comma, semicolon argument separator."""
    return FormulaNumberFormat.german()


class FormulaTestHelpers:
    """Helper utilities for formula testing."""

    @staticmethod
    def assert_evaluates_to(formula: Formula, expression: str, expected: str, variables: Any = None) -> None:
        """Assert that an expression evaluates to the expected display text."""
        result = formula.evaluate_and_format(expression, variables)
        assert result == expected, f"Expected '{expected}' for '{expression}', got '{result}'"

    @staticmethod
    def assert_close(formula: Formula, expression: str, expected: float, variables: Any = None) -> None:
        """Assert that an expression evaluates to a real value close to the expected one."""
        result = formula.evaluate(expression, variables).to_python()
        assert result == pytest.approx(expected, abs=1e-9), f"Expected {expected} for '{expression}', got {result}"

    @staticmethod
    def assert_complex_close(actual: complex, expected: complex, tolerance: float = 1e-9) -> None:
        """Assert that two complex numbers differ by less than the tolerance."""
        assert cmath.isclose(actual, expected, abs_tol=tolerance), f"Expected {expected}, got {actual}"

    @staticmethod
    def assert_round_trip(formula: Formula, expression: str, variables: Any = None) -> None:
        """Assert that rendering and re-parsing a formula keeps its value."""
        tree = formula.parse(expression)
        rendered = formula.render(tree)
        original = formula.evaluate(tree, variables)
        reparsed = formula.evaluate(formula.parse(rendered), variables)
        assert reparsed == original, f"'{expression}' rendered as '{rendered}' evaluates to {reparsed}, not {original}"

    @staticmethod
    def build_nested_expression(depth: int, base_value: str = "1") -> str:
        """Build a bracket-nested expression for depth testing."""
        if depth <= 0:
            return base_value

        return f"({FormulaTestHelpers.build_nested_expression(depth - 1, base_value)}+1)"


@pytest.fixture
def helpers():
    """Provide test helper utilities."""
    return FormulaTestHelpers
