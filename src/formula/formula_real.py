"""Real (double precision) formula values."""

import math
from dataclasses import dataclass
from typing import NoReturn

from formula.formula_complex import FormulaComplex
from formula.formula_error import FormulaDivisionByZeroError, FormulaUndefinedError
from formula.formula_number_format import FormulaNumberFormat
from formula.formula_value import FormulaValue, FormulaValueKind


_DEFAULT_FORMAT = FormulaNumberFormat()


@dataclass(frozen=True)
class FormulaReal(FormulaValue):
    """
    Represents real values.

    Every operation is pure and returns a new value.  Domain violations raise
    FormulaUndefinedError and zero divisors raise FormulaDivisionByZeroError, so
    a NaN is never produced from a finite input.
    """
    value: float

    def kind(self) -> FormulaValueKind:
        return FormulaValueKind.REAL

    def to_python(self) -> float:
        return self.value

    def type_name(self) -> str:
        return "real"

    def describe(self, number_format: FormulaNumberFormat | None = None) -> str:
        return (number_format or _DEFAULT_FORMAT).format(self.value)

    def __str__(self) -> str:
        return self.describe()

    def to_complex(self) -> FormulaComplex:
        """Widen to a complex value with zero imaginary part."""
        return FormulaComplex(self.value, 0.0)

    def _undefined(self, operation: str, expected: str) -> NoReturn:
        raise FormulaUndefinedError(
            message=f"{operation} is undefined for {self.describe()}",
            received=f"Argument: {self.value!r}",
            expected=expected,
            suggestion=f"Use a complex argument, e.g. {operation}({self.describe()}+0i), if a complex result is wanted"
        )

    # Arithmetic

    def add(self, other: 'FormulaReal') -> 'FormulaReal':
        return FormulaReal(self.value + other.value)

    def sub(self, other: 'FormulaReal') -> 'FormulaReal':
        return FormulaReal(self.value - other.value)

    def mul(self, other: 'FormulaReal') -> 'FormulaReal':
        return FormulaReal(self.value * other.value)

    def div(self, other: 'FormulaReal') -> 'FormulaReal':
        if other.value == 0.0:
            raise FormulaDivisionByZeroError(
                message="Division by zero",
                received=f"Dividend: {self.describe()}, divisor: 0",
                suggestion="Check the divisor, e.g. with if(y!=0,x/y,0)"
            )

        return FormulaReal(self.value / other.value)

    def pow(self, other: 'FormulaReal') -> 'FormulaReal':
        """
        Raise to a real power.

        Raises:
            FormulaDivisionByZeroError: For zero raised to a negative power
            FormulaUndefinedError: For a negative base with a non-integer exponent
        """
        base = self.value
        exponent = other.value
        if base == 0.0 and exponent < 0.0:
            raise FormulaDivisionByZeroError(
                message="Zero cannot be raised to a negative power",
                received=f"Exponent: {other.describe()}"
            )

        try:
            return FormulaReal(math.pow(base, exponent))

        except ValueError:
            raise FormulaUndefinedError(
                message=f"{self.describe()}^{other.describe()} is undefined for real numbers",
                received=f"Base: {base!r}, exponent: {exponent!r}",
                expected="A non-negative base or an integer exponent",
                suggestion="Use a complex base, e.g. (-8+0i)^(1/3)"
            ) from None

        except OverflowError:
            negative = base < 0.0 and exponent.is_integer() and int(exponent) % 2 == 1
            return FormulaReal(-math.inf if negative else math.inf)

    def neg(self) -> 'FormulaReal':
        return FormulaReal(-self.value)

    def abs(self) -> 'FormulaReal':
        return FormulaReal(abs(self.value))

    def sgn(self) -> 'FormulaReal':
        if self.value < 0.0:
            return FormulaReal(-1.0)

        if self.value > 0.0:
            return FormulaReal(1.0)

        return FormulaReal(0.0)

    def int(self) -> 'FormulaReal':
        """Integer part, truncated towards zero."""
        if math.isinf(self.value) or math.isnan(self.value):
            return self

        return FormulaReal(float(math.trunc(self.value)))

    def sqrt(self) -> 'FormulaReal':
        if self.value < 0.0:
            self._undefined("sqrt", "A non-negative argument")

        return FormulaReal(math.sqrt(self.value))

    def exp(self) -> 'FormulaReal':
        try:
            return FormulaReal(math.exp(self.value))

        except OverflowError:
            return FormulaReal(math.inf)

    def ln(self) -> 'FormulaReal':
        if self.value <= 0.0:
            self._undefined("ln", "A positive argument")

        return FormulaReal(math.log(self.value))

    def log10(self) -> 'FormulaReal':
        if self.value <= 0.0:
            self._undefined("log10", "A positive argument")

        return FormulaReal(math.log10(self.value))

    # Comparison

    def equals(self, other: 'FormulaReal') -> bool:
        return self.value == other.value

    def compare(self, other: 'FormulaReal') -> int:
        if self.value < other.value:
            return -1

        if self.value > other.value:
            return 1

        return 0

    # Trigonometric functions

    def sin(self) -> 'FormulaReal':
        return FormulaReal(math.sin(self.value))

    def cos(self) -> 'FormulaReal':
        return FormulaReal(math.cos(self.value))

    def tan(self) -> 'FormulaReal':
        return FormulaReal(math.tan(self.value))

    def cot(self) -> 'FormulaReal':
        sin = math.sin(self.value)
        if sin == 0.0:
            self._undefined("cot", "An argument that is not a multiple of pi")

        return FormulaReal(math.cos(self.value) / sin)

    def sec(self) -> 'FormulaReal':
        cos = math.cos(self.value)
        if cos == 0.0:
            self._undefined("sec", "An argument whose cosine is not zero")

        return FormulaReal(1.0 / cos)

    def csc(self) -> 'FormulaReal':
        sin = math.sin(self.value)
        if sin == 0.0:
            self._undefined("csc", "An argument that is not a multiple of pi")

        return FormulaReal(1.0 / sin)

    def arcsin(self) -> 'FormulaReal':
        if not -1.0 <= self.value <= 1.0:
            self._undefined("arcsin", "An argument in [-1, 1]")

        return FormulaReal(math.asin(self.value))

    def arccos(self) -> 'FormulaReal':
        if not -1.0 <= self.value <= 1.0:
            self._undefined("arccos", "An argument in [-1, 1]")

        return FormulaReal(math.acos(self.value))

    def arctan(self) -> 'FormulaReal':
        return FormulaReal(math.atan(self.value))

    def arccot(self) -> 'FormulaReal':
        """Arc cotangent with range (0, pi)."""
        if self.value == 0.0:
            self._undefined("arccot", "A non-zero argument")

        result = math.atan(1.0 / self.value)
        if self.value < 0.0:
            result += math.pi

        return FormulaReal(result)

    def arcsec(self) -> 'FormulaReal':
        if -1.0 < self.value < 1.0:
            self._undefined("arcsec", "An argument with absolute value of at least 1")

        return FormulaReal(math.acos(1.0 / self.value))

    def arccsc(self) -> 'FormulaReal':
        if -1.0 < self.value < 1.0:
            self._undefined("arccsc", "An argument with absolute value of at least 1")

        return FormulaReal(math.asin(1.0 / self.value))

    # Hyperbolic functions

    def sinh(self) -> 'FormulaReal':
        try:
            return FormulaReal(math.sinh(self.value))

        except OverflowError:
            return FormulaReal(math.copysign(math.inf, self.value))

    def cosh(self) -> 'FormulaReal':
        try:
            return FormulaReal(math.cosh(self.value))

        except OverflowError:
            return FormulaReal(math.inf)

    def tanh(self) -> 'FormulaReal':
        return FormulaReal(math.tanh(self.value))

    def coth(self) -> 'FormulaReal':
        if self.value == 0.0:
            self._undefined("coth", "A non-zero argument")

        return FormulaReal(1.0 / math.tanh(self.value))

    def sech(self) -> 'FormulaReal':
        return FormulaReal(1.0 / self.cosh().value)

    def csch(self) -> 'FormulaReal':
        if self.value == 0.0:
            self._undefined("csch", "A non-zero argument")

        return FormulaReal(1.0 / self.sinh().value)

    def arcsinh(self) -> 'FormulaReal':
        return FormulaReal(math.asinh(self.value))

    def arccosh(self) -> 'FormulaReal':
        if self.value < 1.0:
            self._undefined("arccosh", "An argument of at least 1")

        return FormulaReal(math.acosh(self.value))

    def arctanh(self) -> 'FormulaReal':
        if not -1.0 < self.value < 1.0:
            self._undefined("arctanh", "An argument in (-1, 1)")

        return FormulaReal(math.atanh(self.value))

    def arccoth(self) -> 'FormulaReal':
        if -1.0 <= self.value <= 1.0:
            self._undefined("arccoth", "An argument with absolute value greater than 1")

        return FormulaReal(0.5 * math.log((self.value + 1.0) / (self.value - 1.0)))

    def arcsech(self) -> 'FormulaReal':
        if not 0.0 < self.value <= 1.0:
            self._undefined("arcsech", "An argument in (0, 1]")

        return FormulaReal(math.log((1.0 + math.sqrt(1.0 - self.value * self.value)) / self.value))

    def arccsch(self) -> 'FormulaReal':
        if self.value == 0.0:
            self._undefined("arccsch", "A non-zero argument")

        root = math.sqrt(1.0 + self.value * self.value)
        if self.value > 0.0:
            return FormulaReal(math.log((1.0 + root) / self.value))

        return FormulaReal(math.log((1.0 - root) / self.value))
