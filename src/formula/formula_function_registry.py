"""Registry of user-defined formula functions."""

import logging
import threading
from dataclasses import dataclass
from typing import List, Tuple

from formula.formula_error import FormulaParseError
from formula.formula_node import FormulaNode


@dataclass(frozen=True)
class FormulaFunctionDefinition:
    """
    A user-defined function: name, ordered parameter names and parsed body.

    The body tree is owned by the definition and only ever evaluated, never
    optimized in place.
    """
    name: str
    parameters: Tuple[str, ...]
    body: FormulaNode
    body_text: str = ""

    def arity(self) -> int:
        return len(self.parameters)

    def describe(self, argument_separator: str = ",") -> str:
        """Render the definition as "name(p1,p2)=body"."""
        return f"{self.name}({argument_separator.join(self.parameters)})={self.body_text}"


class FormulaFunctionRegistry:
    """
    Append-only table of user-defined functions owned by one formula engine.

    Lookups match a definition's name as a prefix of the candidate text and
    scan definitions in registration order, so the first registered match wins.
    Access is serialised by a lock so engines can be shared between threads.
    """

    def __init__(self) -> None:
        self._definitions: List[FormulaFunctionDefinition] = []
        self._lock = threading.Lock()
        self._logger = logging.getLogger("FormulaFunctionRegistry")

    def register(self, definition: FormulaFunctionDefinition) -> None:
        """
        Append a definition to the registry.

        Args:
            definition: Parsed function definition

        Raises:
            FormulaParseError: If a function with the same name is already registered
        """
        with self._lock:
            for existing in self._definitions:
                if existing.name == definition.name:
                    raise FormulaParseError(
                        message=f"Function '{definition.name}' is already defined",
                        received=f"Definition: {definition.describe()}",
                        context=f"Existing definition: {existing.describe()}",
                        suggestion="Choose a different function name"
                    )

            self._definitions.append(definition)

        self._logger.debug("Registered function %s", definition.describe())

    def lookup(self, text: str) -> FormulaFunctionDefinition | None:
        """
        Find the first registered function whose name is a prefix of the text.

        Args:
            text: Candidate atom text, e.g. "cube(3*x)"

        Returns:
            The matching definition, or None
        """
        with self._lock:
            for definition in self._definitions:
                if text.startswith(definition.name):
                    return definition

        return None

    def get(self, name: str) -> FormulaFunctionDefinition | None:
        """Return the definition with exactly this name, or None."""
        with self._lock:
            for definition in self._definitions:
                if definition.name == name:
                    return definition

        return None

    def definitions(self) -> List[FormulaFunctionDefinition]:
        """Return a snapshot of all definitions in registration order."""
        with self._lock:
            return list(self._definitions)

    def names(self) -> List[str]:
        return [definition.name for definition in self.definitions()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._definitions)
