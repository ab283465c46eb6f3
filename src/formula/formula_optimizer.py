"""
Formula optimizer - runs optimization passes over parsed expression trees.

Passes rewrite a tree in place, replacing whole subtrees, and must preserve
what the tree evaluates to in every environment.  A tree has to be optimized
before it is shared between threads; after that it is only read.
"""

import logging
from typing import List

from formula.formula_builtin_registry import FormulaBuiltinRegistry
from formula.formula_constant_folder import FormulaConstantFolder
from formula.formula_evaluator import FormulaEvaluator
from formula.formula_node import FormulaNode
from formula.formula_optimization_pass import FormulaOptimizationPass


class FormulaOptimizer:
    """Orchestrates expression tree optimization passes."""

    def __init__(
        self,
        enable_passes: List[str] | None = None,
        evaluator: FormulaEvaluator | None = None,
        builtins: FormulaBuiltinRegistry | None = None
    ):
        """
        Initialize with optional pass selection.

        Args:
            enable_passes: List of pass names to enable, or None for all passes
            evaluator: Evaluator used to compute folded values
            builtins: Builtin table, used to recognise nondeterministic functions
        """
        self._logger = logging.getLogger("FormulaOptimizer")
        all_passes: dict[str, FormulaOptimizationPass] = {
            'constant_folding': FormulaConstantFolder(evaluator, builtins),
        }

        if enable_passes is None:
            self.passes = list(all_passes.values())

        else:
            self.passes = [all_passes[name] for name in enable_passes if name in all_passes]

    def optimize(self, node: FormulaNode) -> FormulaNode:
        """
        Run all enabled optimization passes in sequence.

        Args:
            node: Root of the tree, changed in place

        Returns:
            Root of the optimized tree, which is a new node if the whole tree was folded

        Raises:
            FormulaCalcError: If folding a subtree that is always evaluated fails
        """
        optimized = node
        for pass_instance in self.passes:
            optimized = pass_instance.optimize(optimized)
            self._logger.debug("Ran %s", type(pass_instance).__name__)

        return optimized
