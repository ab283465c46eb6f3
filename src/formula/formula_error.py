"""Exception classes for the formula engine with detailed context."""

from typing import List, Optional
import difflib


class FormulaError(Exception):
    """
    Root of all formula engine errors.

    Besides the one-line message, an error can say where in the formula it
    happened and what would have been valid there.  `str(error)` lists the
    message first, then every detail that is set, one per line.
    """

    # Detail attributes in the order they are reported, with their labels
    DETAIL_LABELS = (
        ('position', "Position"),
        ('received', "Received"),
        ('expected', "Expected"),
        ('context', "Context"),
        ('suggestion', "Suggestion"),
        ('example', "Example"),
    )

    def __init__(
        self,
        message: str,
        context: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
        suggestion: Optional[str] = None,
        example: Optional[str] = None,
        position: Optional[int] = None
    ):
        """
        Args:
            message: What went wrong, e.g. "Division by zero"
            context: Surrounding state, e.g. the variables that are bound
            expected: What the formula should have contained
            received: The offending token, operands or call
            suggestion: How to fix the formula
            example: A formula that is written correctly
            position: Offset into the formula with whitespace removed
        """
        self.message = message
        self.context = context
        self.expected = expected
        self.received = received
        self.suggestion = suggestion
        self.example = example
        self.position = position

        super().__init__(self._format_detailed_message())

    def _format_detailed_message(self) -> str:
        lines = [f"Error: {self.message}"]
        for attribute, label in self.DETAIL_LABELS:
            value = getattr(self, attribute)

            # Position 0 is a real position, empty strings are not details
            if value is None or value == "":
                continue

            lines.append(f"{label}: {value}")

        return "\n".join(lines)


class FormulaParseError(FormulaError):
    """Formula text could not be turned into a node tree."""


class FormulaCalcError(FormulaError):
    """Evaluation of a node tree failed."""


class FormulaDivisionByZeroError(FormulaCalcError):
    """Division by a zero (or zero-magnitude) divisor."""


class FormulaUndefinedError(FormulaCalcError):
    """Operation applied outside its mathematical domain."""


class FormulaUnknownVariableError(FormulaCalcError):
    """Variable is not bound in the evaluation environment."""


class FormulaOperationNotSupportedError(FormulaCalcError):
    """Operation is not defined for the kind(s) of value it was given."""


class FormulaDerivativeError(FormulaError):
    """No derivation or integration rule exists for a node kind."""


class FormulaErrorMessageBuilder:
    """Helper class for building detailed error messages."""

    @staticmethod
    def suggest_similar_names(target: str, available_names: List[str], max_suggestions: int = 3) -> List[str]:
        """Suggest similar names using fuzzy matching."""
        if not target or not available_names:
            return []

        return difflib.get_close_matches(target, available_names, n=max_suggestions, cutoff=0.6)

    @staticmethod
    def create_function_example(func_name: str) -> str:
        """Create usage example for builtin functions."""
        examples = {
            'if': "if(x>2,1,0)",
            'sum': "sum(k,1,10,k^2)",
            'prod': "prod(k,1,5,k)",
            'rand': "rand(10)",
            'sqrt': "sqrt(16)",
            'abs': "abs(3+4i)",
            'ln': "ln(e)",
            'log': "log(1000)",
            'log10': "log10(1000)",
            'neg': "neg(5)",
            'int': "int(6.725)",
            'sin': "sin(pi/2)",
            'tan': "tan(0.5)",
        }

        return examples.get(func_name, f"{func_name}(x)")
