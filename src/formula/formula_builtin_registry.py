"""
Builtin function table for formulas.

Unary builtins are recognised by name prefix, so the order in which names are
tried matters: a longer name is always tried before any shorter name that is a
prefix of it (`arcsinh` before `arcsin` before `sinh` before `sin`).
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from formula.formula_node import FormulaUnaryKind


@dataclass(frozen=True)
class FormulaBuiltinSpec:
    """Arity limits of a multi-argument builtin."""
    name: str
    min_args: int
    max_args: int
    description: str


class FormulaBuiltinRegistry:
    """Registry of builtin function names, unary and multi-argument."""

    # Multi-argument builtins, matched only when the name is directly followed by '('
    MULTI_ARG_TABLE = [
        FormulaBuiltinSpec('if', 2, 3, "if(condition, then[, else])"),
        FormulaBuiltinSpec('sum', 4, 4, "sum(variable, start, end, term)"),
        FormulaBuiltinSpec('prod', 4, 4, "prod(variable, start, end, factor)"),
        FormulaBuiltinSpec('rand', 1, 1, "rand(limit)"),
    ]

    # Builtins whose result differs between evaluations
    NONDETERMINISTIC = frozenset({'rand'})

    def __init__(self) -> None:
        self._unary_order: List[Tuple[str, FormulaUnaryKind]] = self._build_unary_order()
        self._multi_arg: Dict[str, FormulaBuiltinSpec] = {spec.name: spec for spec in self.MULTI_ARG_TABLE}

    def _build_unary_order(self) -> List[Tuple[str, FormulaUnaryKind]]:
        """
        Build the prefix check order for unary builtins.

        Returns:
            (name, kind) pairs, longest name first
        """
        named = [(kind.function_name, kind) for kind in FormulaUnaryKind if kind is not FormulaUnaryKind.NOT]

        # Stable sort keeps the declaration order among names of equal length
        return sorted(named, key=lambda entry: -len(entry[0]))

    def unary_names(self) -> List[str]:
        """Return the unary builtin names in the order they are checked."""
        return [name for name, _ in self._unary_order]

    def multi_arg_names(self) -> List[str]:
        return list(self._multi_arg.keys())

    def all_names(self) -> List[str]:
        return self.unary_names() + self.multi_arg_names()

    def match_unary(self, text: str) -> Tuple[FormulaUnaryKind, str] | None:
        """
        Find the unary builtin whose name starts the text.

        Args:
            text: Atom text, e.g. "arcsinh(0.5)"

        Returns:
            The function kind and the remaining text after the name, or None
        """
        for name, kind in self._unary_order:
            if text.startswith(name):
                return kind, text[len(name):]

        return None

    def match_multi_arg(self, text: str) -> FormulaBuiltinSpec | None:
        """
        Find the multi-argument builtin called by the text.

        Args:
            text: Atom text, e.g. "sum(k,1,10,k)"

        Returns:
            The builtin's arity spec, or None if the text is not such a call
        """
        for name, spec in self._multi_arg.items():
            if text.startswith(name + "("):
                return spec

        return None

    def get_multi_arg(self, name: str) -> FormulaBuiltinSpec | None:
        return self._multi_arg.get(name)

    def is_nondeterministic(self, name: str) -> bool:
        return name in self.NONDETERMINISTIC
