"""Environment management for formula variable scoping."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from formula.formula_error import FormulaErrorMessageBuilder, FormulaUnknownVariableError
from formula.formula_value import FormulaValue


@dataclass(frozen=True)
class FormulaEnvironment:
    """
    Immutable variable bindings with nested scopes.

    Inner environments (for sum/prod loop variables) can see outer bindings but
    not vice versa.  An environment is never changed during an evaluation;
    `define` returns a new one.
    """
    bindings: Dict[str, FormulaValue] = field(default_factory=dict)
    parent: 'FormulaEnvironment | None' = None
    name: str = "global"

    @classmethod
    def from_mapping(cls, variables: Mapping[str, Any] | None, name: str = "global") -> 'FormulaEnvironment':
        """
        Build an environment from Python values or formula values.

        Args:
            variables: Mapping of variable names to bool/int/float/complex or FormulaValue
            name: Scope name for debugging

        Returns:
            New environment holding the converted bindings
        """
        if variables is None:
            return cls(name=name)

        return cls({key: FormulaValue.from_python(value) for key, value in variables.items()}, None, name)

    def define(self, name: str, value: FormulaValue) -> 'FormulaEnvironment':
        """
        Return new environment with a variable defined.

        Args:
            name: Variable name
            value: Variable value

        Returns:
            New environment with the binding added
        """
        new_bindings = {**self.bindings, name: value}
        return FormulaEnvironment(new_bindings, self.parent, self.name)

    def child(self, name: str) -> 'FormulaEnvironment':
        """Return an empty scope nested inside this one."""
        return FormulaEnvironment({}, self, name)

    def lookup(self, name: str) -> FormulaValue:
        """
        Look up a variable in this environment or parent environments.

        Args:
            name: Variable name to look up

        Returns:
            Variable value

        Raises:
            FormulaUnknownVariableError: If variable is not found
        """
        if name in self.bindings:
            return self.bindings[name]

        if self.parent is not None:
            return self.parent.lookup(name)

        available = sorted(set(self.get_available_bindings()))
        similar = FormulaErrorMessageBuilder.suggest_similar_names(name, available)
        suggestion = f"Did you mean {', '.join(similar)}?" if similar else "Bind the variable before evaluating"
        raise FormulaUnknownVariableError(
            message=f"Unknown variable: '{name}'",
            received=f"Variable: {name}",
            context=f"Available variables: {', '.join(available)}" if available else "No variables are bound",
            suggestion=suggestion
        )

    def has_binding(self, name: str) -> bool:
        if name in self.bindings:
            return True

        if self.parent is not None:
            return self.parent.has_binding(name)

        return False

    def get_available_bindings(self) -> List[str]:
        """Get all available binding names in this environment chain."""
        available = list(self.bindings.keys())

        if self.parent is not None:
            available.extend(self.parent.get_available_bindings())

        return available

    def __repr__(self) -> str:
        """String representation for debugging."""
        local_bindings = list(self.bindings.keys())
        parent_info = f" (parent: {self.parent.name})" if self.parent else ""
        return f"FormulaEnvironment({self.name}: {local_bindings}{parent_info})"
