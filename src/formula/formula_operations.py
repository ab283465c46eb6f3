"""Operator dispatch over formula values.

Every operation first widens both operands to a common kind using the promotion
table, then applies one homogeneous operation of that kind.  Booleans never
take part in promotion: mixing a boolean with a number is an error, as is any
arithmetic on booleans.
"""

from typing import Callable, Dict, Tuple

from formula.formula_error import FormulaOperationNotSupportedError, FormulaUndefinedError
from formula.formula_node import FormulaBinaryKind, FormulaUnaryKind
from formula.formula_real import FormulaReal
from formula.formula_value import FormulaBoolean, FormulaValue, FormulaValueKind


# Result kind for each pair of operand kinds that can be combined
PROMOTION_TABLE: Dict[Tuple[FormulaValueKind, FormulaValueKind], FormulaValueKind] = {
    (FormulaValueKind.BOOLEAN, FormulaValueKind.BOOLEAN): FormulaValueKind.BOOLEAN,
    (FormulaValueKind.REAL, FormulaValueKind.REAL): FormulaValueKind.REAL,
    (FormulaValueKind.REAL, FormulaValueKind.COMPLEX): FormulaValueKind.COMPLEX,
    (FormulaValueKind.COMPLEX, FormulaValueKind.REAL): FormulaValueKind.COMPLEX,
    (FormulaValueKind.COMPLEX, FormulaValueKind.COMPLEX): FormulaValueKind.COMPLEX,
}


class FormulaOperations:
    """Applies binary and unary operators to formula values."""

    def __init__(self) -> None:
        # Jump tables keyed by operator kind
        self._binary_table: Dict[FormulaBinaryKind, Callable[[FormulaValue, FormulaValue], FormulaValue]] = {
            FormulaBinaryKind.ADD: self._arithmetic('add'),
            FormulaBinaryKind.SUB: self._arithmetic('sub'),
            FormulaBinaryKind.MUL: self._arithmetic('mul'),
            FormulaBinaryKind.DIV: self._arithmetic('div'),
            FormulaBinaryKind.POW: self._arithmetic('pow'),
            FormulaBinaryKind.EQUALS: self._equals,
            FormulaBinaryKind.NOT_EQUALS: self._not_equals,
            FormulaBinaryKind.GREATER: self._ordering(lambda order: order > 0),
            FormulaBinaryKind.LESS: self._ordering(lambda order: order < 0),
            FormulaBinaryKind.GREATER_EQUALS: self._ordering(lambda order: order >= 0),
            FormulaBinaryKind.LESS_EQUALS: self._ordering(lambda order: order <= 0),
            FormulaBinaryKind.AND: self._logic('logical_and'),
            FormulaBinaryKind.OR: self._logic('logical_or'),
            FormulaBinaryKind.XOR: self._logic('logical_xor'),
        }

    def promote(self, left: FormulaValue, right: FormulaValue, operator: str) -> Tuple[FormulaValue, FormulaValue]:
        """
        Widen two operands to their common kind.

        Args:
            left: Left operand
            right: Right operand
            operator: Operator symbol for error messages

        Returns:
            Both operands, now of the same kind

        Raises:
            FormulaOperationNotSupportedError: If the kinds cannot be combined
        """
        target = PROMOTION_TABLE.get((left.kind(), right.kind()))
        if target is None:
            raise FormulaOperationNotSupportedError(
                message=f"Operator '{operator}' cannot combine {left.type_name()} and {right.type_name()}",
                received=f"Operands: {left.describe()}, {right.describe()}",
                expected="Two booleans, or two numbers (real or complex)",
                suggestion="Booleans are never converted to numbers; use if(cond,1,0) to get a number"
            )

        return self._widen(left, target), self._widen(right, target)

    def _widen(self, value: FormulaValue, target: FormulaValueKind) -> FormulaValue:
        if value.kind() == target:
            return value

        assert isinstance(value, FormulaReal)
        return value.to_complex()

    def apply_binary(self, kind: FormulaBinaryKind, left: FormulaValue, right: FormulaValue) -> FormulaValue:
        """
        Apply a binary operator.

        Args:
            kind: Operator to apply
            left: Evaluated left operand
            right: Evaluated right operand

        Returns:
            The result value

        Raises:
            FormulaCalcError: If the operation fails or is not supported for the operands
        """
        try:
            return self._binary_table[kind](left, right)

        except OverflowError as e:
            raise FormulaUndefinedError(
                message=f"Result of '{kind.symbol}' is too large to represent",
                received=f"Operands: {left.describe()}, {right.describe()}"
            ) from e

        except ValueError as e:
            raise FormulaUndefinedError(
                message=f"Result of '{kind.symbol}' is undefined for these operands",
                received=f"Operands: {left.describe()}, {right.describe()}",
                expected="Finite operands"
            ) from e

    def apply_unary(self, kind: FormulaUnaryKind, operand: FormulaValue) -> FormulaValue:
        """
        Apply a unary function or prefix operator.

        Args:
            kind: Function to apply
            operand: Evaluated operand

        Returns:
            The result value

        Raises:
            FormulaCalcError: If the function fails or is not supported for the operand
        """
        if kind is FormulaUnaryKind.NOT:
            if not isinstance(operand, FormulaBoolean):
                raise FormulaOperationNotSupportedError(
                    message=f"Operator '!' requires a boolean, got {operand.type_name()}",
                    received=f"Operand: {operand.describe()}",
                    expected="A boolean, e.g. !(x>2)"
                )

            return operand.logical_not()

        if isinstance(operand, FormulaBoolean):
            raise FormulaOperationNotSupportedError(
                message=f"Function '{kind.function_name}' is not supported for booleans",
                received=f"Argument: {operand.describe()}",
                expected="A real or complex number"
            )

        try:
            result: FormulaValue = getattr(operand, kind.method)()
            return result

        except OverflowError as e:
            raise FormulaUndefinedError(
                message=f"Result of {kind.function_name}({operand.describe()}) is too large to represent",
                received=f"Argument: {operand.describe()}"
            ) from e

        except ValueError as e:
            raise FormulaUndefinedError(
                message=f"{kind.function_name}({operand.describe()}) is undefined",
                received=f"Argument: {operand.describe()}",
                expected="A finite argument"
            ) from e

    def _arithmetic(self, method: str) -> Callable[[FormulaValue, FormulaValue], FormulaValue]:
        def apply(left: FormulaValue, right: FormulaValue) -> FormulaValue:
            symbol = _SYMBOLS[method]
            for operand in (left, right):
                if isinstance(operand, FormulaBoolean):
                    raise FormulaOperationNotSupportedError(
                        message=f"Operator '{symbol}' is not supported for booleans",
                        received=f"Operands: {left.describe()}, {right.describe()}",
                        expected="Real or complex operands",
                        suggestion="Use &&, || or ## to combine booleans"
                    )

            a, b = self.promote(left, right, symbol)
            result: FormulaValue = getattr(a, method)(b)
            return result

        return apply

    def _equals(self, left: FormulaValue, right: FormulaValue) -> FormulaValue:
        a, b = self.promote(left, right, "==")
        return FormulaBoolean(a.equals(b))  # type: ignore[attr-defined]

    def _not_equals(self, left: FormulaValue, right: FormulaValue) -> FormulaValue:
        a, b = self.promote(left, right, "!=")
        return FormulaBoolean(not a.equals(b))  # type: ignore[attr-defined]

    def _ordering(self, test: Callable[[int], bool]) -> Callable[[FormulaValue, FormulaValue], FormulaValue]:
        def apply(left: FormulaValue, right: FormulaValue) -> FormulaValue:
            a, b = self.promote(left, right, "comparison")
            return FormulaBoolean(test(a.compare(b)))  # type: ignore[attr-defined]

        return apply

    def _logic(self, method: str) -> Callable[[FormulaValue, FormulaValue], FormulaValue]:
        def apply(left: FormulaValue, right: FormulaValue) -> FormulaValue:
            if not isinstance(left, FormulaBoolean) or not isinstance(right, FormulaBoolean):
                symbol = _SYMBOLS[method]
                raise FormulaOperationNotSupportedError(
                    message=f"Operator '{symbol}' requires booleans, got {left.type_name()} and {right.type_name()}",
                    received=f"Operands: {left.describe()}, {right.describe()}",
                    expected="Two booleans",
                    example="(x>1)&&(x<5)"
                )

            result: FormulaBoolean = getattr(left, method)(right)
            return result

        return apply


_SYMBOLS = {
    'add': "+",
    'sub': "-",
    'mul': "*",
    'div': "/",
    'pow': "^",
    'logical_and': "&&",
    'logical_or': "||",
    'logical_xor': "##",
}

