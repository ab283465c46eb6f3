"""Main formula engine class."""

from typing import Any, List, Mapping
import random

from formula.formula_builtin_registry import FormulaBuiltinRegistry
from formula.formula_differentiator import FormulaDifferentiator
from formula.formula_environment import FormulaEnvironment
from formula.formula_evaluator import FormulaEvaluator
from formula.formula_function_registry import FormulaFunctionDefinition, FormulaFunctionRegistry
from formula.formula_node import FormulaNode
from formula.formula_number_format import FormulaNumberFormat
from formula.formula_optimizer import FormulaOptimizer
from formula.formula_parser import FormulaParser
from formula.formula_renderer import FormulaRenderer
from formula.formula_value import FormulaValue


class Formula:
    """
    Formula engine: parses, evaluates, optimizes, renders and derives formulas.

    Each engine owns its user-defined function registry, so functions defined on
    one engine are invisible to every other engine.  All errors are raised as
    subclasses of FormulaError with detailed context:

    - FormulaParseError for malformed formulas and function definitions
    - FormulaCalcError (and subclasses) for evaluation failures
    - FormulaDerivativeError for derivatives and antiderivatives without a rule
    """

    def __init__(
        self,
        number_format: FormulaNumberFormat | None = None,
        max_depth: int = 100,
        random_source: random.Random | None = None
    ):
        """
        Initialize formula engine.

        Args:
            number_format: Format for numeric literals, results and argument separators
            max_depth: Maximum bracket and function nesting depth of a formula
            random_source: Random number generator used by rand()
        """
        self.number_format = number_format or FormulaNumberFormat()
        self.max_depth = max_depth
        self.registry = FormulaFunctionRegistry()
        self.builtins = FormulaBuiltinRegistry()
        self.parser = FormulaParser(self.registry, self.number_format, self.builtins, max_depth)
        self.evaluator = FormulaEvaluator(random_source=random_source)
        self.renderer = FormulaRenderer(self.number_format)
        self.differentiator = FormulaDifferentiator(self.evaluator)

    def parse(self, text: str) -> FormulaNode:
        """
        Parse formula text into an expression tree.

        Args:
            text: Formula text, e.g. "sqrt(3^2+4^2)"

        Returns:
            Root node of the tree

        Raises:
            FormulaParseError: If the text is not a valid formula
        """
        return self.parser.parse(text)

    def evaluate(
        self,
        formula: str | FormulaNode,
        variables: FormulaEnvironment | Mapping[str, Any] | None = None
    ) -> FormulaValue:
        """
        Evaluate a formula.

        Args:
            formula: Formula text or a parsed tree
            variables: Environment, or mapping of names to Python or formula values

        Returns:
            The resulting value

        Raises:
            FormulaParseError: If formula text cannot be parsed
            FormulaCalcError: If evaluation fails
        """
        node = self.parse(formula) if isinstance(formula, str) else formula
        env = variables if isinstance(variables, FormulaEnvironment) else FormulaEnvironment.from_mapping(variables)
        return self.evaluator.evaluate(node, env)

    def evaluate_and_format(
        self,
        formula: str | FormulaNode,
        variables: FormulaEnvironment | Mapping[str, Any] | None = None
    ) -> str:
        """
        Evaluate a formula and format the result with the engine's number format.

        Args:
            formula: Formula text or a parsed tree
            variables: Environment, or mapping of names to Python or formula values

        Returns:
            Display text of the result, e.g. "-14.892", "2-4i" or "true"
        """
        return self.evaluate(formula, variables).describe(self.number_format)

    def optimize(self, node: FormulaNode) -> FormulaNode:
        """
        Fold constant subtrees of a tree in place.

        Args:
            node: Root of the tree; must not be shared with other threads yet

        Returns:
            Root of the optimized tree (a new constant if the whole tree folded)

        Raises:
            FormulaCalcError: If folding an always-evaluated subtree fails
        """
        return FormulaOptimizer(evaluator=self.evaluator, builtins=self.builtins).optimize(node)

    def render(self, node: FormulaNode) -> str:
        """Render a tree back into formula text."""
        return self.renderer.render(node)

    def derive(self, formula: str | FormulaNode, variable: str) -> FormulaNode:
        """
        Build the derivative of a formula.

        Args:
            formula: Formula text or a parsed tree (left unchanged)
            variable: Variable to derive by

        Returns:
            New tree for the derivative

        Raises:
            FormulaDerivativeError: If no rule exists for part of the formula
        """
        node = self.parse(formula) if isinstance(formula, str) else formula
        return self.differentiator.derive(node, variable)

    def integrate(self, formula: str | FormulaNode, variable: str) -> FormulaNode:
        """
        Build an antiderivative of a formula, without integration constant.

        Args:
            formula: Formula text or a parsed tree (left unchanged)
            variable: Variable to integrate by

        Returns:
            New tree for the antiderivative

        Raises:
            FormulaDerivativeError: If no rule exists for part of the formula
        """
        node = self.parse(formula) if isinstance(formula, str) else formula
        return self.differentiator.integrate(node, variable)

    def define_function(self, text: str) -> FormulaFunctionDefinition:
        """
        Parse a function definition such as "cube(x)=x^3" without registering it.

        Raises:
            FormulaParseError: If the definition is malformed
        """
        return self.parser.parse_definition(text)

    def register(self, definition: FormulaFunctionDefinition) -> None:
        """
        Make a function definition visible to formulas parsed from now on.

        Raises:
            FormulaParseError: If a function with the same name is already registered
        """
        self.registry.register(definition)

    def define(self, text: str) -> FormulaFunctionDefinition:
        """
        Parse and register a function definition.

        Args:
            text: Definition text, e.g. "pythagoras(a,b)=sqrt(a^2+b^2)"

        Returns:
            The registered definition

        Raises:
            FormulaParseError: If the definition is malformed or the name is taken
        """
        definition = self.define_function(text)
        self.register(definition)
        return definition

    def functions(self) -> List[FormulaFunctionDefinition]:
        """Return the registered function definitions in registration order."""
        return self.registry.definitions()
