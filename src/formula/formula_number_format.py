"""Locale-style number formatting and parsing for formula literals and results."""

import locale
import math
import re
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN, Context, localcontext
from functools import cached_property

from formula.formula_error import FormulaParseError


@dataclass(frozen=True)
class FormulaNumberFormat:
    """
    Number formatting configuration used when parsing literals and rendering values.

    Display formatting rounds half-even to `max_fraction_digits` and drops trailing
    zeros.  Parsing is strict: the whole token has to be a number in this format.
    """
    decimal_separator: str = "."
    grouping_separator: str = ","
    grouping_used: bool = False
    max_fraction_digits: int = 3
    argument_separator: str = ""

    def __post_init__(self) -> None:
        if len(self.decimal_separator) != 1 or self.decimal_separator.isdigit():
            raise ValueError(f"Invalid decimal separator: {self.decimal_separator!r}")

        if len(self.grouping_separator) != 1 or self.grouping_separator.isdigit():
            raise ValueError(f"Invalid grouping separator: {self.grouping_separator!r}")

        if self.grouping_used and self.grouping_separator == self.decimal_separator:
            raise ValueError("Grouping separator must differ from the decimal separator")

        if self.max_fraction_digits < 0:
            raise ValueError(f"max_fraction_digits must not be negative, got {self.max_fraction_digits}")

        # The argument separator is ',' unless that is taken by the number format itself
        if not self.argument_separator:
            comma_taken = self.decimal_separator == ',' or (self.grouping_used and self.grouping_separator == ',')
            object.__setattr__(self, 'argument_separator', ';' if comma_taken else ',')

        if self.argument_separator == self.decimal_separator:
            raise ValueError("Argument separator must differ from the decimal separator")

        if self.grouping_used and self.argument_separator == self.grouping_separator:
            raise ValueError("Argument separator must differ from the grouping separator")

    @classmethod
    def from_locale(cls) -> 'FormulaNumberFormat':
        """
        Build a number format from the current process locale.

        Returns:
            Number format using the locale's decimal point and thousands separator
        """
        conventions = locale.localeconv()
        decimal_point = str(conventions.get('decimal_point') or '.')
        thousands = str(conventions.get('thousands_sep') or '')
        if len(thousands) != 1 or thousands == decimal_point:
            thousands = '.' if decimal_point == ',' else ','

        return cls(decimal_separator=decimal_point, grouping_separator=thousands)

    @classmethod
    def german(cls) -> 'FormulaNumberFormat':
        """Number format with a decimal comma and point grouping."""
        return cls(decimal_separator=',', grouping_separator='.')

    @cached_property
    def _number_pattern(self) -> 're.Pattern[str]':
        decimal = re.escape(self.decimal_separator)
        integer = r'\d+'
        if self.grouping_used:
            integer = r'(?:\d{1,3}(?:' + re.escape(self.grouping_separator) + r'\d{3})+|\d+)'

        return re.compile(rf'[+-]?(?:{integer}(?:{decimal}\d*)?|{decimal}\d+)')

    def parse(self, text: str) -> float:
        """
        Parse a real number literal.

        Args:
            text: Literal text, e.g. "1,234.5" for a US format with grouping

        Returns:
            The parsed value

        Raises:
            FormulaParseError: If the text is not a number in this format
        """
        if not self._number_pattern.fullmatch(text):
            raise FormulaParseError(
                message=f"Cannot parse number: {text}",
                received=f"Token: {text}",
                expected=f"A number using '{self.decimal_separator}' as decimal separator",
                example=f"42 or 3{self.decimal_separator}14",
                suggestion="Check the spelling of function and variable names (lowercase letters only)"
            )

        normalized = text
        if self.grouping_used:
            normalized = normalized.replace(self.grouping_separator, '')

        return float(normalized.replace(self.decimal_separator, '.'))

    def format(self, value: float) -> str:
        """
        Format a real value for display.

        Args:
            value: Value to format

        Returns:
            Rounded text, e.g. "-14.892" or "3628800"
        """
        if math.isnan(value):
            return "nan"

        if math.isinf(value):
            return "inf" if value > 0 else "-inf"

        # Enough precision to quantize any double without losing digits
        with localcontext(Context(prec=1200)):
            quantum = Decimal(1).scaleb(-self.max_fraction_digits)
            rounded = Decimal(value).quantize(quantum, rounding=ROUND_HALF_EVEN)

        if rounded.is_zero():
            rounded = Decimal(0)

        text = format(rounded, 'f')
        sign = ''
        if text.startswith('-'):
            sign = '-'
            text = text[1:]

        int_part, _, frac_part = text.partition('.')
        frac_part = frac_part.rstrip('0')
        if self.grouping_used:
            int_part = self._group_digits(int_part)

        if frac_part:
            return f"{sign}{int_part}{self.decimal_separator}{frac_part}"

        return f"{sign}{int_part}"

    def format_exact(self, value: float) -> str:
        """
        Format a real value with all significant digits, for re-parsable formula text.

        Args:
            value: Value to format

        Returns:
            Shortest text that parses back to the same value (no grouping)
        """
        if math.isnan(value):
            return "nan"

        if math.isinf(value):
            return "inf" if value > 0 else "-inf"

        text = format(Decimal(repr(value)), 'f')
        if '.' in text:
            text = text.rstrip('0').rstrip('.')

        return text.replace('.', self.decimal_separator)

    def _group_digits(self, digits: str) -> str:
        groups = []
        while len(digits) > 3:
            groups.insert(0, digits[-3:])
            digits = digits[:-3]

        groups.insert(0, digits)
        return self.grouping_separator.join(groups)
