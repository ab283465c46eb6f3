"""Tree-walking evaluator for formula expression trees."""

import math
import random
from typing import Callable, Dict, Type

from formula.formula_environment import FormulaEnvironment
from formula.formula_error import FormulaCalcError, FormulaOperationNotSupportedError, FormulaUndefinedError
from formula.formula_node import (
    FormulaBinaryKind, FormulaBinaryOp, FormulaConstant, FormulaFunctionCall, FormulaNode,
    FormulaUnaryFunc, FormulaVariable
)
from formula.formula_operations import FormulaOperations
from formula.formula_real import FormulaReal
from formula.formula_value import FormulaBoolean, FormulaValue


class FormulaEvaluator:
    """
    Evaluates expression trees against a variable environment.

    Both operands of every binary operator are evaluated, including && and ||,
    so an error in either operand always surfaces.  Only if() is lazy: it
    evaluates the condition and then just the chosen branch.
    """

    def __init__(
        self,
        operations: FormulaOperations | None = None,
        random_source: random.Random | None = None,
        max_series_terms: int = 1_000_000
    ):
        """
        Initialize evaluator.

        Args:
            operations: Operator dispatch used for all value operations
            random_source: Random number generator used by rand()
            max_series_terms: Maximum number of terms a single sum() or prod() may iterate
        """
        self.operations = operations or FormulaOperations()
        self.random = random_source or random.Random()
        self.max_series_terms = max_series_terms

        # Jump tables for node types and multi-argument builtins
        self._node_handlers: Dict[Type[FormulaNode], Callable[[FormulaNode, FormulaEnvironment], FormulaValue]] = {
            FormulaConstant: self._evaluate_constant,
            FormulaVariable: self._evaluate_variable,
            FormulaBinaryOp: self._evaluate_binary,
            FormulaUnaryFunc: self._evaluate_unary,
            FormulaFunctionCall: self._evaluate_call,
        }
        self._builtin_calls: Dict[str, Callable[[FormulaFunctionCall, FormulaEnvironment], FormulaValue]] = {
            'if': self._call_if,
            'sum': self._call_sum,
            'prod': self._call_prod,
            'rand': self._call_rand,
        }

    def evaluate(self, node: FormulaNode, env: FormulaEnvironment | None = None) -> FormulaValue:
        """
        Evaluate a tree.

        Args:
            node: Root of the tree
            env: Variable bindings (empty if None)

        Returns:
            The resulting value

        Raises:
            FormulaCalcError: If evaluation fails
        """
        if env is None:
            env = FormulaEnvironment()

        try:
            return self._evaluate(node, env)

        except RecursionError:
            raise FormulaCalcError(
                message="Formula too deeply nested to evaluate",
                suggestion="Split the formula into smaller user-defined functions"
            ) from None

    def _evaluate(self, node: FormulaNode, env: FormulaEnvironment) -> FormulaValue:
        handler = self._node_handlers.get(type(node))
        if handler is None:
            raise FormulaCalcError(f"Cannot evaluate node of type {type(node).__name__}")

        return handler(node, env)

    def _evaluate_constant(self, node: FormulaNode, _env: FormulaEnvironment) -> FormulaValue:
        assert isinstance(node, FormulaConstant)
        return node.value

    def _evaluate_variable(self, node: FormulaNode, env: FormulaEnvironment) -> FormulaValue:
        assert isinstance(node, FormulaVariable)
        return env.lookup(node.name)

    def _evaluate_binary(self, node: FormulaNode, env: FormulaEnvironment) -> FormulaValue:
        assert isinstance(node, FormulaBinaryOp)
        left = self._evaluate(node.left, env)
        right = self._evaluate(node.right, env)
        return self.operations.apply_binary(node.kind, left, right)

    def _evaluate_unary(self, node: FormulaNode, env: FormulaEnvironment) -> FormulaValue:
        assert isinstance(node, FormulaUnaryFunc)
        return self.operations.apply_unary(node.kind, self._evaluate(node.operand, env))

    def _evaluate_call(self, node: FormulaNode, env: FormulaEnvironment) -> FormulaValue:
        assert isinstance(node, FormulaFunctionCall)
        if node.definition is not None:
            return self._call_user_function(node, env)

        handler = self._builtin_calls.get(node.name)
        if handler is None:
            raise FormulaCalcError(f"Unknown builtin function: '{node.name}'")

        return handler(node, env)

    def _call_user_function(self, node: FormulaFunctionCall, env: FormulaEnvironment) -> FormulaValue:
        """Evaluate the arguments, then the body in a scope holding only the parameters."""
        definition = node.definition
        assert definition is not None
        values = [self._evaluate(arg, env) for arg in node.args]
        scope = FormulaEnvironment(dict(zip(definition.parameters, values)), None, definition.name)
        return self._evaluate(definition.body, scope)

    def _call_if(self, node: FormulaFunctionCall, env: FormulaEnvironment) -> FormulaValue:
        condition = self._evaluate(node.args[0], env)
        if not isinstance(condition, FormulaBoolean):
            raise FormulaOperationNotSupportedError(
                message=f"Condition of 'if' must be a boolean, got {condition.type_name()}",
                received=f"Condition: {condition.describe()}",
                expected="A comparison or logic expression",
                example="if(x>2,1,0)"
            )

        if condition.value:
            return self._evaluate(node.args[1], env)

        if len(node.args) > 2:
            return self._evaluate(node.args[2], env)

        return FormulaReal(0.0)

    def _call_sum(self, node: FormulaFunctionCall, env: FormulaEnvironment) -> FormulaValue:
        return self._evaluate_series(node, env, FormulaBinaryKind.ADD, FormulaReal(0.0))

    def _call_prod(self, node: FormulaFunctionCall, env: FormulaEnvironment) -> FormulaValue:
        return self._evaluate_series(node, env, FormulaBinaryKind.MUL, FormulaReal(1.0))

    def _evaluate_series(
        self,
        node: FormulaFunctionCall,
        env: FormulaEnvironment,
        combine: FormulaBinaryKind,
        initial: FormulaValue
    ) -> FormulaValue:
        """
        Combine the term for var = start, start+1, ... while var <= end.

        Args:
            node: sum/prod call with (variable, start, end, term) arguments
            env: Enclosing environment
            combine: Operator folding the terms together
            initial: Neutral element, also the result for an empty range

        Returns:
            The combined value
        """
        variable = node.args[0]
        assert isinstance(variable, FormulaVariable)
        start = self._evaluate(node.args[1], env)
        end = self._evaluate(node.args[2], env)
        for bound in (start, end):
            if not isinstance(bound, FormulaReal):
                raise FormulaOperationNotSupportedError(
                    message=f"Range bounds of '{node.name}' must be real, got {bound.type_name()}",
                    received=f"Bounds: {start.describe()}, {end.describe()}",
                    example=f"{node.name}(k,1,10,k)"
                )

        assert isinstance(start, FormulaReal) and isinstance(end, FormulaReal)
        if not (math.isfinite(start.value) and math.isfinite(end.value)):
            raise FormulaUndefinedError(
                message=f"Range bounds of '{node.name}' must be finite",
                received=f"Bounds: {start.describe()}, {end.describe()}",
                example=f"{node.name}(k,1,10,k)"
            )

        span = end.value - start.value
        if span >= self.max_series_terms:
            raise FormulaCalcError(
                message=f"Range of '{node.name}' is too large",
                received=f"Bounds: {start.describe()}, {end.describe()}",
                expected=f"At most {self.max_series_terms} terms"
            )

        # Count terms up front; above 2^53 adding 1.0 would not move the loop variable
        count = int(math.floor(span)) + 1 if span >= 0.0 else 0
        scope = env.child(node.name)
        result = initial
        for step in range(count):
            current = FormulaReal(start.value + step)
            term = self._evaluate(node.args[3], scope.define(variable.name, current))
            result = self.operations.apply_binary(combine, result, term)

        return result

    def _call_rand(self, node: FormulaFunctionCall, env: FormulaEnvironment) -> FormulaValue:
        limit = self._evaluate(node.args[0], env)
        return self.operations.apply_binary(FormulaBinaryKind.MUL, FormulaReal(self.random.random()), limit)
