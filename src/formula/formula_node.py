"""Formula expression tree nodes.

Nodes are created by the parser and own their children exclusively, so a tree
never shares a subtree and never contains a cycle.  The optimizer is the only
component that changes a tree after construction, by replacing whole subtrees
through `replace_child`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Set

from formula.formula_value import FormulaValue

if TYPE_CHECKING:
    from formula.formula_function_registry import FormulaFunctionDefinition


class FormulaLevel:
    """Precedence levels, lowest binding first."""
    LOGIC = 1
    ADDITION = 2
    MULTIPLICATION = 3
    EXPONENTIAL = 4
    FUNCTION_CONST = 5


class FormulaBinaryKind(Enum):
    """Binary operators with their formula symbol and precedence level."""
    EQUALS = ("==", FormulaLevel.LOGIC)
    NOT_EQUALS = ("!=", FormulaLevel.LOGIC)
    GREATER_EQUALS = (">=", FormulaLevel.LOGIC)
    LESS_EQUALS = ("<=", FormulaLevel.LOGIC)
    GREATER = (">", FormulaLevel.LOGIC)
    LESS = ("<", FormulaLevel.LOGIC)
    AND = ("&&", FormulaLevel.LOGIC)
    OR = ("||", FormulaLevel.LOGIC)
    XOR = ("##", FormulaLevel.LOGIC)
    ADD = ("+", FormulaLevel.ADDITION)
    SUB = ("-", FormulaLevel.ADDITION)
    MUL = ("*", FormulaLevel.MULTIPLICATION)
    DIV = ("/", FormulaLevel.MULTIPLICATION)
    POW = ("^", FormulaLevel.EXPONENTIAL)

    def __init__(self, symbol: str, level: int) -> None:
        self.symbol = symbol
        self.level = level

    @classmethod
    def from_symbol(cls, symbol: str) -> 'FormulaBinaryKind':
        for kind in cls:
            if kind.symbol == symbol:
                return kind

        raise KeyError(symbol)


class FormulaUnaryKind(Enum):
    """Unary functions with their formula name and the value method implementing them."""
    ARCSINH = ("arcsinh", "arcsinh")
    ARCCOSH = ("arccosh", "arccosh")
    ARCTANH = ("arctanh", "arctanh")
    ARCCOTH = ("arccoth", "arccoth")
    ARCSECH = ("arcsech", "arcsech")
    ARCCSCH = ("arccsch", "arccsch")
    ARCSIN = ("arcsin", "arcsin")
    ARCCOS = ("arccos", "arccos")
    ARCTAN = ("arctan", "arctan")
    ARCCOT = ("arccot", "arccot")
    ARCSEC = ("arcsec", "arcsec")
    ARCCSC = ("arccsc", "arccsc")
    LOG10 = ("log10", "log10")
    SINH = ("sinh", "sinh")
    COSH = ("cosh", "cosh")
    TANH = ("tanh", "tanh")
    COTH = ("coth", "coth")
    SECH = ("sech", "sech")
    CSCH = ("csch", "csch")
    SQRT = ("sqrt", "sqrt")
    SIN = ("sin", "sin")
    COS = ("cos", "cos")
    TAN = ("tan", "tan")
    COT = ("cot", "cot")
    SEC = ("sec", "sec")
    CSC = ("csc", "csc")
    ABS = ("abs", "abs")
    SGN = ("sgn", "sgn")
    EXP = ("exp", "exp")
    LOG = ("log", "log10")
    NEG = ("neg", "neg")
    INT = ("int", "int")
    LN = ("ln", "ln")
    NOT = ("!", "logical_not")

    def __init__(self, function_name: str, method: str) -> None:
        self.function_name = function_name
        self.method = method

    @property
    def level(self) -> int:
        # Negation renders as a prefix minus and not as a prefix '!'
        if self is FormulaUnaryKind.NEG:
            return FormulaLevel.ADDITION

        if self is FormulaUnaryKind.NOT:
            return FormulaLevel.LOGIC

        return FormulaLevel.FUNCTION_CONST


class FormulaNode(ABC):
    """Abstract base class for all expression tree nodes."""

    @abstractmethod
    def children(self) -> List['FormulaNode']:
        """Return the direct children, left to right."""

    @abstractmethod
    def copy(self) -> 'FormulaNode':
        """Return a deep copy that shares no node with this tree."""

    @abstractmethod
    def level(self) -> int:
        """Return the precedence level used for rendering."""

    def replace_child(self, old: 'FormulaNode', new: 'FormulaNode') -> None:
        """
        Replace a direct child, matched by identity.

        Args:
            old: The child to replace
            new: The replacement subtree

        Raises:
            ValueError: If `old` is not a direct child of this node
        """
        raise ValueError(f"{type(self).__name__} has no child to replace")

    def walk(self) -> List['FormulaNode']:
        """Return this node and all of its descendants in pre-order."""
        nodes: List[FormulaNode] = [self]
        for child in self.children():
            nodes.extend(child.walk())

        return nodes


@dataclass
class FormulaBinaryOp(FormulaNode):
    """Binary operator applied to two subtrees."""
    kind: FormulaBinaryKind
    left: FormulaNode
    right: FormulaNode

    def children(self) -> List[FormulaNode]:
        return [self.left, self.right]

    def copy(self) -> 'FormulaBinaryOp':
        return FormulaBinaryOp(self.kind, self.left.copy(), self.right.copy())

    def level(self) -> int:
        return self.kind.level

    def replace_child(self, old: FormulaNode, new: FormulaNode) -> None:
        if self.left is old:
            self.left = new
            return

        if self.right is old:
            self.right = new
            return

        super().replace_child(old, new)


@dataclass
class FormulaUnaryFunc(FormulaNode):
    """Unary builtin function (or prefix operator) applied to one subtree."""
    kind: FormulaUnaryKind
    operand: FormulaNode

    def children(self) -> List[FormulaNode]:
        return [self.operand]

    def copy(self) -> 'FormulaUnaryFunc':
        return FormulaUnaryFunc(self.kind, self.operand.copy())

    def level(self) -> int:
        return self.kind.level

    def replace_child(self, old: FormulaNode, new: FormulaNode) -> None:
        if self.operand is old:
            self.operand = new
            return

        super().replace_child(old, new)


@dataclass
class FormulaConstant(FormulaNode):
    """Literal or folded value."""
    value: FormulaValue

    def children(self) -> List[FormulaNode]:
        return []

    def copy(self) -> 'FormulaConstant':
        # Values are immutable so they can be shared
        return FormulaConstant(self.value)

    def level(self) -> int:
        return FormulaLevel.FUNCTION_CONST


@dataclass
class FormulaVariable(FormulaNode):
    """Reference to a variable bound in the evaluation environment."""
    name: str

    def children(self) -> List[FormulaNode]:
        return []

    def copy(self) -> 'FormulaVariable':
        return FormulaVariable(self.name)

    def level(self) -> int:
        return FormulaLevel.FUNCTION_CONST


@dataclass
class FormulaFunctionCall(FormulaNode):
    """
    Call of a multi-argument builtin (if, sum, prod, rand) or a user-defined function.

    `definition` is set for user-defined functions and None for builtins.
    """
    name: str
    args: List[FormulaNode]
    definition: 'FormulaFunctionDefinition | None' = field(default=None, compare=False)

    def children(self) -> List[FormulaNode]:
        return list(self.args)

    def copy(self) -> 'FormulaFunctionCall':
        return FormulaFunctionCall(self.name, [arg.copy() for arg in self.args], self.definition)

    def level(self) -> int:
        return FormulaLevel.FUNCTION_CONST

    def is_builtin(self) -> bool:
        return self.definition is None

    def replace_child(self, old: FormulaNode, new: FormulaNode) -> None:
        for i, arg in enumerate(self.args):
            if arg is old:
                self.args[i] = new
                return

        super().replace_child(old, new)


# Builtins that bind their first argument as a loop variable over their last argument
BINDING_BUILTINS = frozenset({'sum', 'prod'})


def free_variables(node: FormulaNode) -> Set[str]:
    """
    Collect the names of variables that must be bound to evaluate a tree.

    Loop variables of sum/prod are bound inside their term and are only free if
    they also appear in the range bounds or elsewhere.  The body of a user
    function is evaluated in its own scope, so only the call arguments count.

    Args:
        node: Root of the tree

    Returns:
        Set of free variable names
    """
    if isinstance(node, FormulaVariable):
        return {node.name}

    if (
        isinstance(node, FormulaFunctionCall) and node.is_builtin() and node.name in BINDING_BUILTINS
        and len(node.args) == 4 and isinstance(node.args[0], FormulaVariable)
    ):
        loop_variable = node.args[0].name
        names = free_variables(node.args[1]) | free_variables(node.args[2])
        return names | (free_variables(node.args[3]) - {loop_variable})

    names: Set[str] = set()
    for child in node.children():
        names |= free_variables(child)

    return names
