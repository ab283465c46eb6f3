"""Complex formula values."""

import math
from dataclasses import dataclass
from typing import Callable, NoReturn

from formula.formula_error import FormulaDivisionByZeroError, FormulaParseError, FormulaUndefinedError
from formula.formula_number_format import FormulaNumberFormat
from formula.formula_value import FormulaValue, FormulaValueKind


_DEFAULT_FORMAT = FormulaNumberFormat()


@dataclass(frozen=True)
class FormulaComplex(FormulaValue):
    """
    Represents complex values as a pair of doubles.

    Powers are computed as exp(b * ln(a)) on the principal branch, and the inverse
    trigonometric and hyperbolic functions are built from ln and sqrt, so all of
    them share the principal branch cut of ln.

    Equality requires both components to match exactly, while ordering compares
    magnitudes.
    """
    real: float
    imag: float = 0.0

    def kind(self) -> FormulaValueKind:
        return FormulaValueKind.COMPLEX

    def to_python(self) -> complex:
        return complex(self.real, self.imag)

    def type_name(self) -> str:
        return "complex"

    def describe(self, number_format: FormulaNumberFormat | None = None) -> str:
        """
        Render as "re+imi" or "re-imi", omitting the imaginary term when it is zero.

        Args:
            number_format: Format used for both components

        Returns:
            Display text, e.g. "2-4i" or "9"
        """
        fmt = number_format or _DEFAULT_FORMAT
        text = fmt.format(self.real)
        if self.imag == 0.0:
            return text

        imag_text = fmt.format(self.imag)
        if not imag_text.startswith('-'):
            imag_text = '+' + imag_text

        return f"{text}{imag_text}i"

    def __str__(self) -> str:
        return self.describe()

    @classmethod
    def parse(cls, text: str, number_format: FormulaNumberFormat | None = None) -> 'FormulaComplex':
        """
        Parse complex text such as "2+1i", "-3.5i", "i" or "4".

        Args:
            text: Text to parse
            number_format: Format of the numeric parts

        Returns:
            The parsed complex value

        Raises:
            FormulaParseError: If either component is malformed
        """
        fmt = number_format or _DEFAULT_FORMAT
        stripped = "".join(text.split())
        if not stripped:
            raise FormulaParseError(
                message="Cannot parse an empty complex number",
                expected="Complex number in the form re+imi",
                example="2+1i"
            )

        if not stripped.endswith('i'):
            return cls(fmt.parse(stripped), 0.0)

        body = stripped[:-1]
        split = max(body.rfind('+'), body.rfind('-'))
        real_text = body[:split] if split > 0 else ""
        imag_text = body[split:] if split > 0 else body

        if imag_text in ("", "+"):
            imag = 1.0

        elif imag_text == "-":
            imag = -1.0

        else:
            imag = fmt.parse(imag_text)

        real = fmt.parse(real_text) if real_text else 0.0
        return cls(real, imag)

    # Helpers

    def magnitude(self) -> float:
        return math.hypot(self.real, self.imag)

    def is_zero(self) -> bool:
        return self.real == 0.0 and self.imag == 0.0

    def _undefined(self, operation: str, expected: str) -> NoReturn:
        raise FormulaUndefinedError(
            message=f"{operation} is undefined for {self.describe()}",
            received=f"Argument: {self.to_python()!r}",
            expected=expected
        )

    def _at_pole(self, operation: str, compute: Callable[[], 'FormulaComplex']) -> 'FormulaComplex':
        """Evaluate a composite formula, reporting an internal zero divisor as a pole."""
        try:
            return compute()

        except FormulaDivisionByZeroError:
            self._undefined(operation, "An argument away from the function's poles")

    def _reciprocal(self, operation: str, real: float, imag: float, divisor: float) -> 'FormulaComplex':
        if divisor == 0.0:
            self._undefined(operation, "An argument away from the function's poles")

        return FormulaComplex(real / divisor, imag / divisor)

    # Arithmetic

    def add(self, other: 'FormulaComplex') -> 'FormulaComplex':
        return FormulaComplex(self.real + other.real, self.imag + other.imag)

    def sub(self, other: 'FormulaComplex') -> 'FormulaComplex':
        return FormulaComplex(self.real - other.real, self.imag - other.imag)

    def mul(self, other: 'FormulaComplex') -> 'FormulaComplex':
        return FormulaComplex(
            self.real * other.real - self.imag * other.imag,
            self.real * other.imag + self.imag * other.real
        )

    def div(self, other: 'FormulaComplex') -> 'FormulaComplex':
        divisor = other.real * other.real + other.imag * other.imag
        if divisor == 0.0:
            raise FormulaDivisionByZeroError(
                message="Division by a complex number of zero magnitude",
                received=f"Dividend: {self.describe()}, divisor: {other.describe()}"
            )

        return FormulaComplex(
            (self.real * other.real + self.imag * other.imag) / divisor,
            (self.imag * other.real - self.real * other.imag) / divisor
        )

    def pow(self, other: 'FormulaComplex') -> 'FormulaComplex':
        """
        Raise to a complex power: exp(other * ln(self)).

        Raises:
            FormulaDivisionByZeroError: For zero raised to a power with non-positive real part
        """
        if self.is_zero():
            if other.is_zero():
                return FormulaComplex(1.0, 0.0)

            if other.real > 0.0:
                return FormulaComplex(0.0, 0.0)

            raise FormulaDivisionByZeroError(
                message="Zero cannot be raised to a power with non-positive real part",
                received=f"Exponent: {other.describe()}"
            )

        return other.mul(self.ln()).exp()

    def neg(self) -> 'FormulaComplex':
        return FormulaComplex(-self.real, -self.imag)

    def abs(self) -> 'FormulaComplex':
        """Magnitude, as a complex value with zero imaginary part."""
        return FormulaComplex(self.magnitude(), 0.0)

    def sgn(self) -> 'FormulaComplex':
        """Sign of the real part."""
        if self.real > 0.0:
            return FormulaComplex(1.0, 0.0)

        if self.real < 0.0:
            return FormulaComplex(-1.0, 0.0)

        return FormulaComplex(0.0, 0.0)

    def int(self) -> 'FormulaComplex':
        """Integer part of both components, truncated towards zero."""
        return FormulaComplex(
            float(math.trunc(self.real)) if math.isfinite(self.real) else self.real,
            float(math.trunc(self.imag)) if math.isfinite(self.imag) else self.imag
        )

    def sqrt(self) -> 'FormulaComplex':
        if self.is_zero():
            return FormulaComplex(0.0, 0.0)

        return self.pow(FormulaComplex(0.5, 0.0))

    def exp(self) -> 'FormulaComplex':
        scale = math.exp(self.real)
        return FormulaComplex(scale * math.cos(self.imag), scale * math.sin(self.imag))

    def ln(self) -> 'FormulaComplex':
        if self.is_zero():
            self._undefined("ln", "A non-zero argument")

        return FormulaComplex(math.log(self.magnitude()), math.atan2(self.imag, self.real))

    def log10(self) -> 'FormulaComplex':
        natural = self.ln()
        scale = math.log(10.0)
        return FormulaComplex(natural.real / scale, natural.imag / scale)

    # Comparison

    def equals(self, other: 'FormulaComplex') -> bool:
        return self.real == other.real and self.imag == other.imag

    def compare(self, other: 'FormulaComplex') -> int:
        """Compare magnitudes."""
        mine = self.magnitude()
        theirs = other.magnitude()
        if mine < theirs:
            return -1

        if mine > theirs:
            return 1

        return 0

    # Trigonometric functions

    def sin(self) -> 'FormulaComplex':
        a, b = self.real, self.imag
        return FormulaComplex(math.sin(a) * math.cosh(b), math.cos(a) * math.sinh(b))

    def cos(self) -> 'FormulaComplex':
        a, b = self.real, self.imag
        return FormulaComplex(math.cos(a) * math.cosh(b), -math.sin(a) * math.sinh(b))

    def tan(self) -> 'FormulaComplex':
        a, b = self.real, self.imag
        divisor = math.cos(2.0 * a) + math.cosh(2.0 * b)
        return self._reciprocal("tan", math.sin(2.0 * a), math.sinh(2.0 * b), divisor)

    def cot(self) -> 'FormulaComplex':
        a, b = self.real, self.imag
        divisor = math.cosh(2.0 * b) - math.cos(2.0 * a)
        return self._reciprocal("cot", math.sin(2.0 * a), -math.sinh(2.0 * b), divisor)

    def sec(self) -> 'FormulaComplex':
        a, b = self.real, self.imag
        cos_a, sin_a = math.cos(a), math.sin(a)
        cosh_b, sinh_b = math.cosh(b), math.sinh(b)
        divisor = (cos_a * cosh_b) ** 2 + (sin_a * sinh_b) ** 2
        return self._reciprocal("sec", cos_a * cosh_b, sin_a * sinh_b, divisor)

    def csc(self) -> 'FormulaComplex':
        a, b = self.real, self.imag
        cos_a, sin_a = math.cos(a), math.sin(a)
        cosh_b, sinh_b = math.cosh(b), math.sinh(b)
        divisor = (sin_a * cosh_b) ** 2 + (cos_a * sinh_b) ** 2
        return self._reciprocal("csc", sin_a * cosh_b, -cos_a * sinh_b, divisor)

    def arcsin(self) -> 'FormulaComplex':
        """arcsin(z) = ln(iz + sqrt(1 - z^2)) / i"""
        return self._at_pole(
            "arcsin", lambda: _I.mul(self).add(_ONE.sub(self.mul(self)).sqrt()).ln().div(_I)
        )

    def arccos(self) -> 'FormulaComplex':
        """arccos(z) = ln(z + sqrt(z^2 - 1)) / i"""
        return self._at_pole(
            "arccos", lambda: self.add(self.mul(self).sub(_ONE).sqrt()).ln().div(_I)
        )

    def arctan(self) -> 'FormulaComplex':
        """arctan(z) = ln((i - z) / (i + z)) / 2i"""
        return self._at_pole(
            "arctan", lambda: _I.sub(self).div(_I.add(self)).ln().div(_TWO_I)
        )

    def arccot(self) -> 'FormulaComplex':
        """arccot(z) = ln((z + i) / (z - i)) / 2i"""
        return self._at_pole(
            "arccot", lambda: self.add(_I).div(self.sub(_I)).ln().div(_TWO_I)
        )

    def arcsec(self) -> 'FormulaComplex':
        """arcsec(z) = ln((1 + sqrt(1 - z^2)) / z) / i"""
        return self._at_pole(
            "arcsec", lambda: _ONE.add(_ONE.sub(self.mul(self)).sqrt()).div(self).ln().div(_I)
        )

    def arccsc(self) -> 'FormulaComplex':
        """arccsc(z) = ln((i + sqrt(z^2 - 1)) / z) / i"""
        return self._at_pole(
            "arccsc", lambda: _I.add(self.mul(self).sub(_ONE).sqrt()).div(self).ln().div(_I)
        )

    # Hyperbolic functions

    def sinh(self) -> 'FormulaComplex':
        a, b = self.real, self.imag
        return FormulaComplex(math.sinh(a) * math.cos(b), math.cosh(a) * math.sin(b))

    def cosh(self) -> 'FormulaComplex':
        a, b = self.real, self.imag
        return FormulaComplex(math.cosh(a) * math.cos(b), math.sinh(a) * math.sin(b))

    def tanh(self) -> 'FormulaComplex':
        a, b = self.real, self.imag
        divisor = math.cosh(2.0 * a) + math.cos(2.0 * b)
        return self._reciprocal("tanh", math.sinh(2.0 * a), math.sin(2.0 * b), divisor)

    def coth(self) -> 'FormulaComplex':
        a, b = self.real, self.imag
        divisor = math.cosh(2.0 * a) - math.cos(2.0 * b)
        return self._reciprocal("coth", math.sinh(2.0 * a), -math.sin(2.0 * b), divisor)

    def sech(self) -> 'FormulaComplex':
        a, b = self.real, self.imag
        cosh_a, sinh_a = math.cosh(a), math.sinh(a)
        cos_b, sin_b = math.cos(b), math.sin(b)
        divisor = (cosh_a * cos_b) ** 2 + (sinh_a * sin_b) ** 2
        return self._reciprocal("sech", cosh_a * cos_b, -sinh_a * sin_b, divisor)

    def csch(self) -> 'FormulaComplex':
        a, b = self.real, self.imag
        cosh_a, sinh_a = math.cosh(a), math.sinh(a)
        cos_b, sin_b = math.cos(b), math.sin(b)
        divisor = (sinh_a * cos_b) ** 2 + (cosh_a * sin_b) ** 2
        return self._reciprocal("csch", sinh_a * cos_b, -cosh_a * sin_b, divisor)

    def arcsinh(self) -> 'FormulaComplex':
        """arcsinh(z) = ln(sqrt(z^2 + 1) + z)"""
        return self._at_pole("arcsinh", lambda: self.mul(self).add(_ONE).sqrt().add(self).ln())

    def arccosh(self) -> 'FormulaComplex':
        """arccosh(z) = ln(sqrt(z^2 - 1) + z)"""
        return self._at_pole("arccosh", lambda: self.mul(self).sub(_ONE).sqrt().add(self).ln())

    def arctanh(self) -> 'FormulaComplex':
        """arctanh(z) = ln((z + 1) / (1 - z)) / 2"""
        return self._at_pole("arctanh", lambda: self.add(_ONE).div(_ONE.sub(self)).ln().div(_TWO))

    def arccoth(self) -> 'FormulaComplex':
        """arccoth(z) = ln((z + 1) / (z - 1)) / 2"""
        return self._at_pole("arccoth", lambda: self.add(_ONE).div(self.sub(_ONE)).ln().div(_TWO))

    def arcsech(self) -> 'FormulaComplex':
        """arcsech(z) = ln((sqrt(1 - z^2) + 1) / z)"""
        return self._at_pole("arcsech", lambda: _ONE.sub(self.mul(self)).sqrt().add(_ONE).div(self).ln())

    def arccsch(self) -> 'FormulaComplex':
        """arccsch(z) = ln((sqrt(z^2 + 1) + 1) / z)"""
        return self._at_pole("arccsch", lambda: self.mul(self).add(_ONE).sqrt().add(_ONE).div(self).ln())


_ONE = FormulaComplex(1.0, 0.0)
_TWO = FormulaComplex(2.0, 0.0)
_I = FormulaComplex(0.0, 1.0)
_TWO_I = FormulaComplex(0.0, 2.0)
