"""
Partial symbolic differentiation and integration of formula expression trees.

Only a fixed set of rules exists.  Derivation covers constants, variables,
subtraction, division, powers with a variable-free exponent, tan and sum;
integration covers constants, variables, subtraction and sum.  Any other node
raises FormulaDerivativeError rather than producing a guessed result.

Results are new trees; the input tree is never changed or shared.
"""

import logging
from typing import Callable, Dict

from formula.formula_error import FormulaCalcError, FormulaDerivativeError
from formula.formula_evaluator import FormulaEvaluator
from formula.formula_node import (
    FormulaBinaryKind, FormulaBinaryOp, FormulaConstant, FormulaFunctionCall, FormulaNode,
    FormulaUnaryFunc, FormulaUnaryKind, FormulaVariable, free_variables
)
from formula.formula_real import FormulaReal


def _constant(value: float) -> FormulaConstant:
    return FormulaConstant(FormulaReal(value))


class FormulaDifferentiator:
    """Builds derivative and antiderivative trees with respect to one variable."""

    def __init__(self, evaluator: FormulaEvaluator | None = None) -> None:
        """
        Initialize differentiator.

        Args:
            evaluator: Evaluator used to simplify variable-free inner derivatives
        """
        self.evaluator = evaluator or FormulaEvaluator()
        self._logger = logging.getLogger("FormulaDifferentiator")

        self._derive_binary: Dict[FormulaBinaryKind, Callable[[FormulaBinaryOp, str], FormulaNode]] = {
            FormulaBinaryKind.SUB: self._derive_sub,
            FormulaBinaryKind.DIV: self._derive_div,
            FormulaBinaryKind.POW: self._derive_pow,
        }
        self._derive_unary: Dict[FormulaUnaryKind, Callable[[FormulaUnaryFunc, str], FormulaNode]] = {
            FormulaUnaryKind.TAN: self._derive_tan,
        }

    def derive(self, node: FormulaNode, variable: str) -> FormulaNode:
        """
        Derive a tree with respect to a variable.

        Args:
            node: Tree to derive (left unchanged)
            variable: Name of the variable to derive by

        Returns:
            New tree for the derivative

        Raises:
            FormulaDerivativeError: If no rule exists for a node in the tree
        """
        self._logger.debug("Deriving by %s", variable)
        return self._derive(node, variable)

    def integrate(self, node: FormulaNode, variable: str) -> FormulaNode:
        """
        Build an antiderivative (without integration constant) with respect to a variable.

        Args:
            node: Tree to integrate (left unchanged)
            variable: Name of the variable to integrate by

        Returns:
            New tree for the antiderivative

        Raises:
            FormulaDerivativeError: If no rule exists for a node in the tree
        """
        self._logger.debug("Integrating by %s", variable)
        return self._integrate(node, variable)

    def _derive(self, node: FormulaNode, variable: str) -> FormulaNode:
        if isinstance(node, FormulaConstant):
            return _constant(0.0)

        if isinstance(node, FormulaVariable):
            return _constant(1.0 if node.name == variable else 0.0)

        if isinstance(node, FormulaBinaryOp) and node.kind in self._derive_binary:
            return self._derive_binary[node.kind](node, variable)

        if isinstance(node, FormulaUnaryFunc) and node.kind in self._derive_unary:
            return self._derive_unary[node.kind](node, variable)

        if isinstance(node, FormulaFunctionCall) and node.is_builtin() and node.name == 'sum':
            return self._series_termwise(node, variable, self._derive, "derivative")

        raise self._no_rule("Derivative", node, variable)

    def _derive_sub(self, node: FormulaBinaryOp, variable: str) -> FormulaNode:
        return FormulaBinaryOp(
            FormulaBinaryKind.SUB, self._derive(node.left, variable), self._derive(node.right, variable)
        )

    def _derive_div(self, node: FormulaBinaryOp, variable: str) -> FormulaNode:
        """(f/g)' = (f'*g - f*g') / g^2"""
        numerator = FormulaBinaryOp(
            FormulaBinaryKind.SUB,
            FormulaBinaryOp(FormulaBinaryKind.MUL, self._derive(node.left, variable), node.right.copy()),
            FormulaBinaryOp(FormulaBinaryKind.MUL, node.left.copy(), self._derive(node.right, variable))
        )
        denominator = FormulaBinaryOp(FormulaBinaryKind.POW, node.right.copy(), _constant(2.0))
        return FormulaBinaryOp(FormulaBinaryKind.DIV, numerator, denominator)

    def _derive_pow(self, node: FormulaBinaryOp, variable: str) -> FormulaNode:
        """(u^n)' = n*u^(n-1) * u' for an exponent n without variables."""
        if free_variables(node.right):
            raise FormulaDerivativeError(
                message="Derivative of a power is only implemented for exponents without variables",
                received=f"Exponent contains: {', '.join(sorted(free_variables(node.right)))}",
                suggestion="Rewrite the power with a constant exponent"
            )

        exponent = node.right
        reduced: FormulaNode
        if isinstance(exponent, FormulaConstant) and isinstance(exponent.value, FormulaReal):
            reduced = _constant(exponent.value.value - 1.0)

        else:
            reduced = FormulaBinaryOp(FormulaBinaryKind.SUB, exponent.copy(), _constant(1.0))

        outer = FormulaBinaryOp(
            FormulaBinaryKind.MUL,
            exponent.copy(),
            FormulaBinaryOp(FormulaBinaryKind.POW, node.left.copy(), reduced)
        )
        return self._chain(outer, self._derive(node.left, variable))

    def _derive_tan(self, node: FormulaUnaryFunc, variable: str) -> FormulaNode:
        """tan(u)' = sec(u)^2 * u'"""
        outer = FormulaBinaryOp(
            FormulaBinaryKind.POW, FormulaUnaryFunc(FormulaUnaryKind.SEC, node.operand.copy()), _constant(2.0)
        )
        inner = self._derive(node.operand, variable)
        if self._is_one(inner):
            return outer

        return FormulaBinaryOp(FormulaBinaryKind.MUL, inner, outer)

    def _chain(self, outer: FormulaNode, inner: FormulaNode) -> FormulaNode:
        """Multiply an outer derivative by the inner one, unless the inner one is 1."""
        if self._is_one(inner):
            return outer

        return FormulaBinaryOp(FormulaBinaryKind.MUL, outer, inner)

    def _is_one(self, node: FormulaNode) -> bool:
        """Check whether a variable-free tree evaluates to exactly 1."""
        if free_variables(node):
            return False

        try:
            return self.evaluator.evaluate(node) == FormulaReal(1.0)

        except FormulaCalcError as e:
            raise FormulaDerivativeError(
                message="Error simplifying inner derivative",
                received=f"Error: {e.message}"
            ) from e

    def _integrate(self, node: FormulaNode, variable: str) -> FormulaNode:
        if isinstance(node, FormulaConstant):
            return FormulaBinaryOp(FormulaBinaryKind.MUL, node.copy(), FormulaVariable(variable))

        if isinstance(node, FormulaVariable):
            if node.name == variable:
                return FormulaBinaryOp(
                    FormulaBinaryKind.DIV,
                    FormulaBinaryOp(FormulaBinaryKind.POW, FormulaVariable(variable), _constant(2.0)),
                    _constant(2.0)
                )

            return FormulaBinaryOp(FormulaBinaryKind.MUL, node.copy(), FormulaVariable(variable))

        if isinstance(node, FormulaBinaryOp) and node.kind is FormulaBinaryKind.SUB:
            return FormulaBinaryOp(
                FormulaBinaryKind.SUB, self._integrate(node.left, variable), self._integrate(node.right, variable)
            )

        if isinstance(node, FormulaFunctionCall) and node.is_builtin() and node.name == 'sum':
            return self._series_termwise(node, variable, self._integrate, "antiderivative")

        raise self._no_rule("Antiderivative", node, variable)

    def _series_termwise(
        self,
        node: FormulaFunctionCall,
        variable: str,
        transform: Callable[[FormulaNode, str], FormulaNode],
        what: str
    ) -> FormulaNode:
        """Apply a transform to the term of sum(var, start, end, term)."""
        loop_variable = node.args[0]
        assert isinstance(loop_variable, FormulaVariable)
        if loop_variable.name == variable:
            raise FormulaDerivativeError(
                message=f"Cannot build the {what} of sum by its own loop variable '{variable}'",
                received=f"Loop variable: {loop_variable.name}",
                suggestion="Rename the loop variable of sum"
            )

        bound_names = free_variables(node.args[1]) | free_variables(node.args[2])
        if variable in bound_names:
            raise FormulaDerivativeError(
                message=f"Cannot build the {what} of sum when its range depends on '{variable}'",
                received=f"Range uses: {', '.join(sorted(bound_names))}"
            )

        return FormulaFunctionCall(
            'sum',
            [loop_variable.copy(), node.args[1].copy(), node.args[2].copy(), transform(node.args[3], variable)]
        )

    def _no_rule(self, what: str, node: FormulaNode, variable: str) -> FormulaDerivativeError:
        description = type(node).__name__
        if isinstance(node, FormulaBinaryOp):
            description = f"operator '{node.kind.symbol}'"

        elif isinstance(node, FormulaUnaryFunc):
            description = f"function '{node.kind.function_name}'"

        elif isinstance(node, FormulaFunctionCall):
            description = f"function '{node.name}'"

        return FormulaDerivativeError(
            message=f"{what} of {description} is not implemented",
            context=f"Variable: {variable}",
            suggestion="Supported: constants, variables, '-', '/', '^' with a constant exponent, tan and sum"
            if what == "Derivative" else "Supported: constants, variables, '-' and sum"
        )
