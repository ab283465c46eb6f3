"""Formula engine package: parse, evaluate, optimize, render and derive formulas."""

# Main API
from formula.formula import Formula

# Exceptions
from formula.formula_error import (
    FormulaError, FormulaParseError, FormulaCalcError, FormulaDivisionByZeroError, FormulaUndefinedError,
    FormulaUnknownVariableError, FormulaOperationNotSupportedError, FormulaDerivativeError,
    FormulaErrorMessageBuilder
)

# Configuration
from formula.formula_number_format import FormulaNumberFormat

# Value types
from formula.formula_value import FormulaValue, FormulaValueKind, FormulaBoolean
from formula.formula_real import FormulaReal
from formula.formula_complex import FormulaComplex

# Expression trees
from formula.formula_node import (
    FormulaNode, FormulaBinaryOp, FormulaUnaryFunc, FormulaConstant, FormulaVariable, FormulaFunctionCall,
    FormulaBinaryKind, FormulaUnaryKind, FormulaLevel, free_variables
)

# Lower-level components (for advanced usage)
from formula.formula_environment import FormulaEnvironment
from formula.formula_builtin_registry import FormulaBuiltinRegistry
from formula.formula_function_registry import FormulaFunctionDefinition, FormulaFunctionRegistry
from formula.formula_parser import FormulaParser
from formula.formula_evaluator import FormulaEvaluator
from formula.formula_operations import FormulaOperations
from formula.formula_optimizer import FormulaOptimizer
from formula.formula_constant_folder import FormulaConstantFolder
from formula.formula_differentiator import FormulaDifferentiator
from formula.formula_renderer import FormulaRenderer


__all__ = [
    # Main API
    "Formula",

    # Exceptions
    "FormulaError", "FormulaParseError", "FormulaCalcError", "FormulaDivisionByZeroError", "FormulaUndefinedError",
    "FormulaUnknownVariableError", "FormulaOperationNotSupportedError", "FormulaDerivativeError",
    "FormulaErrorMessageBuilder",

    # Configuration
    "FormulaNumberFormat",

    # Value types
    "FormulaValue", "FormulaValueKind", "FormulaBoolean", "FormulaReal", "FormulaComplex",

    # Expression trees
    "FormulaNode", "FormulaBinaryOp", "FormulaUnaryFunc", "FormulaConstant", "FormulaVariable",
    "FormulaFunctionCall", "FormulaBinaryKind", "FormulaUnaryKind", "FormulaLevel", "free_variables",

    # Lower-level components
    "FormulaEnvironment", "FormulaBuiltinRegistry", "FormulaFunctionDefinition", "FormulaFunctionRegistry",
    "FormulaParser", "FormulaEvaluator", "FormulaOperations", "FormulaOptimizer", "FormulaConstantFolder",
    "FormulaDifferentiator", "FormulaRenderer"
]
