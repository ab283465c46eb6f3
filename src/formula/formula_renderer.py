"""Render formula expression trees back into formula text."""

from typing import Callable, Dict, Type

from formula.formula_complex import FormulaComplex
from formula.formula_node import (
    FormulaBinaryOp, FormulaConstant, FormulaFunctionCall, FormulaLevel, FormulaNode,
    FormulaUnaryFunc, FormulaUnaryKind, FormulaVariable
)
from formula.formula_number_format import FormulaNumberFormat
from formula.formula_real import FormulaReal
from formula.formula_value import FormulaValue


class FormulaRenderer:
    """
    Renders expression trees as formula text that parses back to an equivalent tree.

    Brackets are added from precedence levels only: a left operand is bracketed
    when it binds more loosely than its operator, a right operand also when it
    binds equally loosely, since all operators fold left to right.  Numbers are
    written with every significant digit; negative and complex constants are
    bracketed so they stay a single operand.
    """

    def __init__(self, number_format: FormulaNumberFormat | None = None) -> None:
        self.number_format = number_format or FormulaNumberFormat()
        self._renderers: Dict[Type[FormulaNode], Callable[[FormulaNode], str]] = {
            FormulaBinaryOp: self._render_binary,
            FormulaUnaryFunc: self._render_unary,
            FormulaConstant: self._render_constant,
            FormulaVariable: self._render_variable,
            FormulaFunctionCall: self._render_call,
        }

    def render(self, node: FormulaNode) -> str:
        """
        Render a tree as formula text.

        Args:
            node: Root of the tree

        Returns:
            Formula text, e.g. "(x+1)*sin(x)^2"
        """
        return self._renderers[type(node)](node)

    def render_value(self, value: FormulaValue) -> str:
        """Render a value as a formula operand."""
        if isinstance(value, FormulaReal):
            text = self.number_format.format_exact(value.value)
            return f"({text})" if text.startswith('-') else text

        if isinstance(value, FormulaComplex):
            real_text = self.number_format.format_exact(value.real)
            imag_text = self.number_format.format_exact(value.imag)
            if not imag_text.startswith('-'):
                imag_text = '+' + imag_text

            return f"({real_text}{imag_text}i)"

        return value.describe(self.number_format)

    def _bracket(self, node: FormulaNode, needed: bool) -> str:
        text = self.render(node)
        return f"({text})" if needed else text

    def _render_binary(self, node: FormulaNode) -> str:
        assert isinstance(node, FormulaBinaryOp)
        level = node.level()
        left = self._bracket(node.left, node.left.level() < level)
        right = self._bracket(node.right, node.right.level() <= level)
        return f"{left}{node.kind.symbol}{right}"

    def _render_unary(self, node: FormulaNode) -> str:
        assert isinstance(node, FormulaUnaryFunc)
        if node.kind is FormulaUnaryKind.NEG:
            return "-" + self._bracket(node.operand, node.operand.level() <= FormulaLevel.ADDITION)

        if node.kind is FormulaUnaryKind.NOT:
            return "!" + self._bracket(node.operand, node.operand.level() <= FormulaLevel.LOGIC)

        return f"{node.kind.function_name}({self.render(node.operand)})"

    def _render_constant(self, node: FormulaNode) -> str:
        assert isinstance(node, FormulaConstant)
        return self.render_value(node.value)

    def _render_variable(self, node: FormulaNode) -> str:
        assert isinstance(node, FormulaVariable)
        return node.name

    def _render_call(self, node: FormulaNode) -> str:
        assert isinstance(node, FormulaFunctionCall)
        args = self.number_format.argument_separator.join(self.render(arg) for arg in node.args)
        return f"{node.name}({args})"
