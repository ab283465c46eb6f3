"""
Formula expression tree optimization pass
"""

from formula.formula_node import FormulaNode


class FormulaOptimizationPass:
    """Base class for expression tree optimization passes."""

    def optimize(self, node: FormulaNode) -> FormulaNode:
        """
        Transform a tree in place, returning its (possibly replaced) root.

        Args:
            node: Root of the tree

        Returns:
            Root of the optimized tree
        """
        raise NotImplementedError
