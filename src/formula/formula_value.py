"""Formula value hierarchy - immutable values produced by evaluation."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from formula.formula_error import FormulaOperationNotSupportedError
from formula.formula_number_format import FormulaNumberFormat


class FormulaValueKind(IntEnum):
    """
    The closed set of value kinds.

    The numeric kinds are ordered by width: a REAL widens to a COMPLEX.  BOOLEAN
    sits outside the numeric tower and never converts.
    """
    BOOLEAN = 0
    REAL = 1
    COMPLEX = 2


class FormulaValue(ABC):
    """
    Abstract base class for all formula values.

    All formula values are immutable.
    """

    @abstractmethod
    def kind(self) -> FormulaValueKind:
        """Return the value kind used for promotion and dispatch."""

    @abstractmethod
    def to_python(self) -> Any:
        """Convert to the equivalent Python value."""

    @abstractmethod
    def type_name(self) -> str:
        """Return type name for error messages."""

    @abstractmethod
    def describe(self, number_format: FormulaNumberFormat | None = None) -> str:
        """
        Render the value for display.

        Args:
            number_format: Format used for numeric parts (US-style default if None)

        Returns:
            Display text, e.g. "1.83", "2-4i" or "true"
        """

    @staticmethod
    def from_python(value: Any) -> 'FormulaValue':
        """
        Convert a Python value into a formula value.

        Args:
            value: A bool, int, float, complex or existing FormulaValue

        Returns:
            The equivalent formula value

        Raises:
            FormulaOperationNotSupportedError: If the value has no formula equivalent
        """
        # Imported here as the numeric kinds depend on this module
        from formula.formula_real import FormulaReal  # pylint: disable=import-outside-toplevel
        from formula.formula_complex import FormulaComplex  # pylint: disable=import-outside-toplevel

        if isinstance(value, FormulaValue):
            return value

        # bool is a subclass of int so it has to be checked first
        if isinstance(value, bool):
            return FormulaBoolean(value)

        if isinstance(value, (int, float)):
            return FormulaReal(float(value))

        if isinstance(value, complex):
            return FormulaComplex(value.real, value.imag)

        raise FormulaOperationNotSupportedError(
            message=f"Cannot convert {type(value).__name__} to a formula value",
            received=f"Value: {value!r}",
            expected="bool, int, float or complex"
        )


@dataclass(frozen=True)
class FormulaBoolean(FormulaValue):
    """Represents boolean values.  Only logic and comparison against other booleans apply."""
    value: bool

    def kind(self) -> FormulaValueKind:
        return FormulaValueKind.BOOLEAN

    def to_python(self) -> bool:
        return self.value

    def type_name(self) -> str:
        return "boolean"

    def describe(self, number_format: FormulaNumberFormat | None = None) -> str:
        return "true" if self.value else "false"

    def logical_and(self, other: 'FormulaBoolean') -> 'FormulaBoolean':
        return FormulaBoolean(self.value and other.value)

    def logical_or(self, other: 'FormulaBoolean') -> 'FormulaBoolean':
        return FormulaBoolean(self.value or other.value)

    def logical_xor(self, other: 'FormulaBoolean') -> 'FormulaBoolean':
        return FormulaBoolean(self.value != other.value)

    def logical_not(self) -> 'FormulaBoolean':
        return FormulaBoolean(not self.value)

    def equals(self, other: 'FormulaBoolean') -> bool:
        return self.value == other.value

    def compare(self, other: 'FormulaBoolean') -> int:
        """Order booleans with false before true."""
        return int(self.value) - int(other.value)

    def __str__(self) -> str:
        return self.describe()
