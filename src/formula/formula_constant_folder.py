"""
Constant folding for formula expression trees.

A subtree is foldable when it has no free variables and calls nothing
nondeterministic (rand, directly or through a user-defined function).  Each
maximal foldable subtree is evaluated once with an empty environment and
replaced by a constant holding the result.

Examples:
    2+3*4       -> 14
    x*(2+3)     -> x*5
    sum(k,1,4,k)*x -> 10*x
    rand(6)+1   -> unchanged
"""

import logging
import math
from typing import Dict, Set, Tuple

from formula.formula_builtin_registry import FormulaBuiltinRegistry
from formula.formula_complex import FormulaComplex
from formula.formula_error import FormulaCalcError
from formula.formula_evaluator import FormulaEvaluator
from formula.formula_node import (
    BINDING_BUILTINS, FormulaConstant, FormulaFunctionCall, FormulaNode, FormulaVariable
)
from formula.formula_optimization_pass import FormulaOptimizationPass
from formula.formula_real import FormulaReal
from formula.formula_value import FormulaValue


def _is_finite(value: FormulaValue) -> bool:
    """Check that a value renders as a number literal (no inf or nan component)."""
    if isinstance(value, FormulaReal):
        return math.isfinite(value.value)

    if isinstance(value, FormulaComplex):
        return math.isfinite(value.real) and math.isfinite(value.imag)

    return True


class FormulaConstantFolder(FormulaOptimizationPass):
    """
    Fold variable-free deterministic subtrees into constants.

    Folding errors propagate, except inside branches of if() and terms of
    sum()/prod(): those may never be evaluated, so a failing subtree there is
    left in place for evaluation to report if it is ever reached.  Subtrees
    whose value is infinite or nan are not folded either, as no number literal
    renders them.
    """

    def __init__(self, evaluator: FormulaEvaluator | None = None, builtins: FormulaBuiltinRegistry | None = None) -> None:
        self.evaluator = evaluator or FormulaEvaluator()
        self.builtins = builtins or FormulaBuiltinRegistry()
        self.folded_count = 0
        self._logger = logging.getLogger("FormulaConstantFolder")

    def optimize(self, node: FormulaNode) -> FormulaNode:
        """
        Fold all foldable subtrees.

        Args:
            node: Root of the tree, changed in place

        Returns:
            Root of the folded tree; `folded_count` holds the number of subtrees replaced
        """
        self.folded_count = 0
        foldable: Dict[int, bool] = {}
        self._analyze(node, foldable)
        result = self._fold(node, foldable, False)
        self._logger.debug("Folded %d subtrees", self.folded_count)
        return result

    def is_foldable(self, node: FormulaNode) -> bool:
        """Check whether a subtree has no free variables and is deterministic."""
        foldable: Dict[int, bool] = {}
        self._analyze(node, foldable)
        return foldable[id(node)]

    def _analyze(self, node: FormulaNode, foldable: Dict[int, bool]) -> Tuple[Set[str], bool]:
        """
        Record foldability for every node of a tree, bottom-up.

        Args:
            node: Subtree root
            foldable: Map from node id to foldability, filled in by this call

        Returns:
            The free variable names of the subtree and whether it is deterministic
        """
        if isinstance(node, FormulaVariable):
            foldable[id(node)] = False
            return {node.name}, True

        results = [self._analyze(child, foldable) for child in node.children()]
        names: Set[str] = set()
        deterministic = True
        for child_names, child_deterministic in results:
            names |= child_names
            deterministic = deterministic and child_deterministic

        if isinstance(node, FormulaFunctionCall):
            if node.definition is not None:
                deterministic = deterministic and self._is_deterministic(node.definition.body)

            elif self.builtins.is_nondeterministic(node.name):
                deterministic = False

            elif node.name in BINDING_BUILTINS:
                loop_variable = node.args[0]
                assert isinstance(loop_variable, FormulaVariable)
                names = results[1][0] | results[2][0] | (results[3][0] - {loop_variable.name})

        foldable[id(node)] = not names and deterministic
        return names, deterministic

    def _is_deterministic(self, body: FormulaNode) -> bool:
        for node in body.walk():
            if not isinstance(node, FormulaFunctionCall):
                continue

            if node.definition is not None:
                if not self._is_deterministic(node.definition.body):
                    return False

            elif self.builtins.is_nondeterministic(node.name):
                return False

        return True

    def _fold(self, node: FormulaNode, foldable: Dict[int, bool], conditional: bool) -> FormulaNode:
        # Constants are never re-folded, so a second pass replaces nothing
        if isinstance(node, FormulaConstant):
            return node

        if foldable.get(id(node), False):
            try:
                value = self.evaluator.evaluate(node)
                if _is_finite(value):
                    self.folded_count += 1
                    return FormulaConstant(value)

            except FormulaCalcError:
                if not conditional:
                    raise

        for index, child in enumerate(node.children()):
            folded = self._fold(child, foldable, conditional or self._is_conditional(node, index))
            if folded is not child:
                node.replace_child(child, folded)

        return node

    def _is_conditional(self, node: FormulaNode, index: int) -> bool:
        """Check whether a child is only evaluated depending on runtime values."""
        if not isinstance(node, FormulaFunctionCall) or node.definition is not None:
            return False

        if node.name == 'if':
            return index >= 1

        return node.name in BINDING_BUILTINS and index == 3
