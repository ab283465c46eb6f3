"""Parser turning formula text into expression trees, with detailed error messages.

Parsing runs five cascading passes.  Each pass splits its text at its own
operators wherever no bracket is open, folds the pieces left to right, and hands
every piece to the next pass:

    1. logic and comparison   == != >= <= > < && || ## and prefix !
    2. additive               + - (a leading - negates the first term)
    3. multiplicative         * /
    4. power                  ^ (so a^b^c is (a^b)^c)
    5. atoms                  brackets, functions, constants, variables, numbers

Whitespace is ignored everywhere; error positions refer to the formula with
whitespace removed.
"""

import math
import re
from dataclasses import dataclass
from typing import Callable, List, Tuple

from formula.formula_builtin_registry import FormulaBuiltinRegistry, FormulaBuiltinSpec
from formula.formula_complex import FormulaComplex
from formula.formula_error import FormulaErrorMessageBuilder, FormulaParseError
from formula.formula_function_registry import FormulaFunctionDefinition, FormulaFunctionRegistry
from formula.formula_node import (
    BINDING_BUILTINS, FormulaBinaryKind, FormulaBinaryOp, FormulaConstant, FormulaFunctionCall,
    FormulaNode, FormulaUnaryFunc, FormulaUnaryKind, FormulaVariable, free_variables
)
from formula.formula_number_format import FormulaNumberFormat
from formula.formula_real import FormulaReal
from formula.formula_value import FormulaBoolean


OPEN_BRACKETS = {'(': ')', '[': ']', '{': '}'}
CLOSE_BRACKETS = {')': '(', ']': '[', '}': '{'}

# Operator sets per pass, longest operators first so that '>=' wins over '>'
LOGIC_OPERATORS = ("==", "!=", ">=", "<=", "&&", "||", "##", ">", "<")
ADDITIVE_OPERATORS = ("+", "-")
MULTIPLICATIVE_OPERATORS = ("*", "/")
POWER_OPERATORS = ("^",)

# Characters that are only operators when doubled
DOUBLED_ONLY = "=&|#"

CONSTANTS = {
    'e': FormulaReal(math.e),
    'pi': FormulaReal(math.pi),
    'i': FormulaComplex(0.0, 1.0),
    'true': FormulaBoolean(True),
    'false': FormulaBoolean(False),
}

_NAME_PATTERN = re.compile(r'[a-z]+')
_SIGNATURE_PATTERN = re.compile(r'([a-z]+)\((.*)\)')


@dataclass
class FormulaSegment:
    """A piece of formula text and its offset in the whole formula."""
    text: str
    offset: int

    def slice(self, start: int, end: int | None = None) -> 'FormulaSegment':
        stop = len(self.text) if end is None else end
        return FormulaSegment(self.text[start:stop], self.offset + start)


class FormulaParser:
    """
    Parses formula text into expression trees.

    Function names are resolved while parsing: unary builtins by longest-name-first
    prefix, then the multi-argument builtins, then user-defined functions from the
    registry in registration order.
    """

    def __init__(
        self,
        registry: FormulaFunctionRegistry | None = None,
        number_format: FormulaNumberFormat | None = None,
        builtins: FormulaBuiltinRegistry | None = None,
        max_depth: int = 100
    ):
        """
        Initialize parser.

        Args:
            registry: User-defined functions visible to formulas
            number_format: Format of numeric literals and argument separator
            builtins: Builtin function table
            max_depth: Maximum bracket and function nesting depth
        """
        self.registry = registry if registry is not None else FormulaFunctionRegistry()
        self.number_format = number_format or FormulaNumberFormat()
        self.builtins = builtins or FormulaBuiltinRegistry()
        self.max_depth = max_depth

    def parse(self, text: str) -> FormulaNode:
        """
        Parse formula text into an expression tree.

        Args:
            text: Formula text, e.g. "x^3+2*x^2+3*x-5"

        Returns:
            Root node of the new tree

        Raises:
            FormulaParseError: If the text is not a valid formula
        """
        compact = "".join(text.split())
        if not compact:
            raise FormulaParseError(
                message="Empty formula",
                expected="A formula",
                example="2+3*4",
                suggestion="Provide a formula to parse"
            )

        return self._parse_logic(FormulaSegment(compact, 0), 0)

    def parse_definition(self, text: str) -> FormulaFunctionDefinition:
        """
        Parse a user function definition of the form "name(p1,p2)=body".

        The body is parsed against the current registry, so it may call
        functions that were registered earlier.

        Args:
            text: Definition text, e.g. "pythagoras(a,b)=sqrt(a^2+b^2)"

        Returns:
            The parsed definition (not yet registered)

        Raises:
            FormulaParseError: If the definition is malformed
        """
        compact = "".join(text.split())
        signature, equals, body_text = compact.partition("=")
        example = f"cube(x)=x^3 or pythagoras(a{self.number_format.argument_separator}b)=sqrt(a^2+b^2)"
        if not equals or not body_text:
            raise FormulaParseError(
                message="Function definition needs a signature, '=' and a body",
                received=f"Definition: {text}",
                expected="name(parameters)=body",
                example=example
            )

        match = _SIGNATURE_PATTERN.fullmatch(signature)
        if match is None:
            raise FormulaParseError(
                message=f"Invalid function signature: {signature}",
                received=f"Signature: {signature}",
                expected="A lowercase name followed by bracketed parameter names",
                example=example
            )

        name = match.group(1)
        parameter_text = match.group(2)
        parameters = parameter_text.split(self.number_format.argument_separator) if parameter_text else []

        if self._is_reserved(name):
            raise FormulaParseError(
                message=f"Function name '{name}' is hidden by a builtin or constant",
                received=f"Name: {name}",
                suggestion="Choose a name that does not start with a builtin function name",
                example=example
            )

        for parameter in parameters:
            if not _NAME_PATTERN.fullmatch(parameter) or self._is_reserved(parameter):
                raise FormulaParseError(
                    message=f"Invalid parameter name: '{parameter}'",
                    received=f"Parameters: {parameter_text}",
                    expected="Lowercase names that are not builtin function or constant names",
                    example=example
                )

        if len(set(parameters)) != len(parameters):
            raise FormulaParseError(
                message=f"Duplicate parameter names in '{signature}'",
                received=f"Parameters: {parameter_text}",
                expected="Each parameter name used once"
            )

        body = self.parse(body_text)
        unbound = sorted(free_variables(body) - set(parameters))
        if unbound:
            raise FormulaParseError(
                message=f"Function body uses variables that are not parameters: {', '.join(unbound)}",
                received=f"Definition: {compact}",
                context="A function body can only see its own parameters",
                suggestion=f"Add {', '.join(unbound)} to the parameter list"
            )

        return FormulaFunctionDefinition(name, tuple(parameters), body, body_text)

    def _is_reserved(self, name: str) -> bool:
        """Check whether a name would be resolved as something else while parsing."""
        return (
            name in CONSTANTS
            or self.builtins.match_unary(name) is not None
            or self.builtins.get_multi_arg(name) is not None
        )

    # Pass 1: logic and comparison

    def _parse_logic(self, segment: FormulaSegment, depth: int) -> FormulaNode:
        if depth > self.max_depth:
            raise FormulaParseError(
                message=f"Formula too deeply nested (max depth: {self.max_depth})",
                position=segment.offset,
                suggestion="Reduce nesting depth or increase max_depth limit"
            )

        parts, operators = self._split(segment, LOGIC_OPERATORS, DOUBLED_ONLY)
        return self._fold(parts, operators, lambda part: self._parse_negation(part, depth))

    def _parse_negation(self, segment: FormulaSegment, depth: int) -> FormulaNode:
        """Parse a logic operand, applying any leading '!' prefixes."""
        if segment.text.startswith('!'):
            return FormulaUnaryFunc(FormulaUnaryKind.NOT, self._parse_negation(segment.slice(1), depth))

        return self._parse_additive(segment, depth)

    # Pass 2: addition and subtraction

    def _parse_additive(self, segment: FormulaSegment, depth: int) -> FormulaNode:
        parts, operators = self._split(segment, ADDITIVE_OPERATORS)

        # A leading '-' splits off an empty first part and negates the term after it
        if operators and operators[0] == '-' and not parts[0].text:
            first = FormulaUnaryFunc(FormulaUnaryKind.NEG, self._parse_multiplicative(parts[1], depth))
            return self._fold(
                parts[2:], operators[1:], lambda part: self._parse_multiplicative(part, depth), first
            )

        return self._fold(parts, operators, lambda part: self._parse_multiplicative(part, depth))

    # Pass 3: multiplication and division

    def _parse_multiplicative(self, segment: FormulaSegment, depth: int) -> FormulaNode:
        parts, operators = self._split(segment, MULTIPLICATIVE_OPERATORS)
        return self._fold(parts, operators, lambda part: self._parse_power(part, depth))

    # Pass 4: power

    def _parse_power(self, segment: FormulaSegment, depth: int) -> FormulaNode:
        parts, operators = self._split(segment, POWER_OPERATORS)
        return self._fold(parts, operators, lambda part: self._parse_atom(part, depth))

    def _fold(
        self,
        parts: List[FormulaSegment],
        operators: List[str],
        parse_next: Callable[[FormulaSegment], FormulaNode],
        first: FormulaNode | None = None
    ) -> FormulaNode:
        """
        Fold operands left to right: ((p0 op1 p1) op2 p2) ...

        Args:
            parts: Operand segments
            operators: Operators between consecutive operands
            parse_next: Parser for the next lower pass
            first: Already parsed first operand, if any

        Returns:
            Root of the folded tree
        """
        if first is None:
            node = parse_next(parts[0])
            parts = parts[1:]

        else:
            node = first

        for operator, part in zip(operators, parts):
            node = FormulaBinaryOp(FormulaBinaryKind.from_symbol(operator), node, parse_next(part))

        return node

    def _split(
        self,
        segment: FormulaSegment,
        operators: Tuple[str, ...],
        doubled_only: str = ""
    ) -> Tuple[List[FormulaSegment], List[str]]:
        """
        Split a segment at operators that appear outside any bracket.

        Args:
            segment: Text to split
            operators: Operators to split at, longest first
            doubled_only: Characters that are an error when they appear alone

        Returns:
            The segments between operators, and the operators found

        Raises:
            FormulaParseError: For mismatched, unmatched or unterminated brackets
        """
        text = segment.text
        parts: List[FormulaSegment] = []
        found: List[str] = []
        open_stack: List[Tuple[str, int]] = []
        start = 0
        i = 0

        while i < len(text):
            char = text[i]
            if char in OPEN_BRACKETS:
                open_stack.append((char, i))
                i += 1
                continue

            if char in CLOSE_BRACKETS:
                self._close_bracket(segment, open_stack, i)
                i += 1
                continue

            if not open_stack:
                operator = self._operator_at(text, i, operators)
                if operator is not None:
                    parts.append(segment.slice(start, i))
                    found.append(operator)
                    i += len(operator)
                    start = i
                    continue

                if char in doubled_only:
                    raise FormulaParseError(
                        message=f"Incomplete operator '{char}'",
                        position=segment.offset + i,
                        received=f"Text: {text}",
                        expected=f"'{char}{char}'" if char != '=' else "'==', '!=', '>=' or '<='",
                        example="x==2 or (x>1)&&(x<5)",
                        suggestion="Logic operators are written with two characters"
                    )

            i += 1

        if open_stack:
            bracket, opened_at = open_stack[-1]
            raise FormulaParseError(
                message=f"Unterminated bracket '{bracket}'",
                position=segment.offset + opened_at,
                received=f"Text: {text}",
                expected=f"Closing '{OPEN_BRACKETS[bracket]}'",
                suggestion=f"Add '{OPEN_BRACKETS[bracket]}' to close the bracket"
            )

        parts.append(segment.slice(start))

        # Every operand except a negated first term must have text
        for index, part in enumerate(parts):
            if part.text:
                continue

            if index == 0 and found and found[0] == '-':
                continue

            raise FormulaParseError(
                message="Missing operand",
                position=part.offset,
                received=f"Text: {text}",
                expected="An operand on both sides of every operator",
                example="2+3*4"
            )

        return parts, found

    def _close_bracket(self, segment: FormulaSegment, open_stack: List[Tuple[str, int]], index: int) -> None:
        char = segment.text[index]
        if not open_stack:
            raise FormulaParseError(
                message=f"Unexpected closing bracket '{char}'",
                position=segment.offset + index,
                received=f"Text: {segment.text}",
                suggestion=f"Remove the '{char}' or add a matching '{CLOSE_BRACKETS[char]}'"
            )

        bracket, opened_at = open_stack.pop()
        if OPEN_BRACKETS[bracket] != char:
            raise FormulaParseError(
                message=f"Bracket '{bracket}' cannot be closed with '{char}'",
                position=segment.offset + index,
                received=f"Text: {segment.text}",
                expected=f"'{OPEN_BRACKETS[bracket]}' to close the '{bracket}' at position {segment.offset + opened_at}",
                suggestion="Brackets must be closed in the reverse order they were opened"
            )

    def _operator_at(self, text: str, index: int, operators: Tuple[str, ...]) -> str | None:
        for operator in operators:
            if text.startswith(operator, index):
                return operator

        return None

    def _closing_index(self, text: str) -> int:
        """Return the index of the bracket closing the one at index 0 (brackets are balanced)."""
        depth = 0
        for i, char in enumerate(text):
            if char in OPEN_BRACKETS:
                depth += 1

            elif char in CLOSE_BRACKETS:
                depth -= 1
                if depth == 0:
                    return i

        return -1

    # Pass 5: atoms

    def _parse_atom(self, segment: FormulaSegment, depth: int) -> FormulaNode:
        text = segment.text

        if text[0] in OPEN_BRACKETS and self._closing_index(text) == len(text) - 1:
            return self._parse_logic(segment.slice(1, len(text) - 1), depth + 1)

        unary = self.builtins.match_unary(text)
        if unary is not None:
            kind, rest = unary
            if not rest:
                raise FormulaParseError(
                    message=f"Function '{kind.function_name}' is missing its argument",
                    position=segment.offset,
                    received=f"Text: {text}",
                    example=FormulaErrorMessageBuilder.create_function_example(kind.function_name)
                )

            operand = self._parse_logic(segment.slice(len(kind.function_name)), depth + 1)
            return FormulaUnaryFunc(kind, operand)

        spec = self.builtins.match_multi_arg(text)
        if spec is not None:
            return self._parse_builtin_call(spec, segment, depth)

        definition = self.registry.lookup(text)
        if definition is not None:
            return self._parse_user_call(definition, segment, depth)

        if text in CONSTANTS:
            return FormulaConstant(CONSTANTS[text])

        if _NAME_PATTERN.fullmatch(text):
            return FormulaVariable(text)

        return FormulaConstant(self._parse_number(segment))

    def _parse_arguments(self, segment: FormulaSegment, name: str, depth: int) -> List[FormulaNode]:
        """
        Parse the bracketed argument list that follows a function name.

        Args:
            segment: Call text, starting with the function name
            name: Function name
            depth: Current nesting depth

        Returns:
            Parsed arguments
        """
        rest = segment.slice(len(name))
        separator = self.number_format.argument_separator
        if not rest.text.startswith('(') or self._closing_index(rest.text) != len(rest.text) - 1:
            raise FormulaParseError(
                message=f"Call of '{name}' must be followed by a bracketed argument list",
                position=rest.offset,
                received=f"Text: {segment.text}",
                expected=f"{name}(arguments separated by '{separator}')",
                example=FormulaErrorMessageBuilder.create_function_example(name)
            )

        inner = rest.slice(1, len(rest.text) - 1)
        if not inner.text:
            return []

        parts, _ = self._split(inner, (separator,))
        return [self._parse_logic(part, depth + 1) for part in parts]

    def _parse_builtin_call(self, spec: FormulaBuiltinSpec, segment: FormulaSegment, depth: int) -> FormulaNode:
        args = self._parse_arguments(segment, spec.name, depth)
        if not spec.min_args <= len(args) <= spec.max_args:
            expected = str(spec.min_args) if spec.min_args == spec.max_args else f"{spec.min_args} to {spec.max_args}"
            raise FormulaParseError(
                message=f"Function '{spec.name}' takes {expected} arguments, got {len(args)}",
                position=segment.offset,
                received=f"Call: {segment.text}",
                expected=spec.description,
                example=FormulaErrorMessageBuilder.create_function_example(spec.name)
            )

        if spec.name in BINDING_BUILTINS and not isinstance(args[0], FormulaVariable):
            raise FormulaParseError(
                message=f"First argument of '{spec.name}' must be a variable name",
                position=segment.offset,
                received=f"Call: {segment.text}",
                expected=spec.description,
                example=FormulaErrorMessageBuilder.create_function_example(spec.name)
            )

        return FormulaFunctionCall(spec.name, args)

    def _parse_user_call(self, definition: FormulaFunctionDefinition, segment: FormulaSegment, depth: int) -> FormulaNode:
        args = self._parse_arguments(segment, definition.name, depth)
        if len(args) != definition.arity():
            raise FormulaParseError(
                message=f"Function '{definition.name}' takes {definition.arity()} arguments, got {len(args)}",
                position=segment.offset,
                received=f"Call: {segment.text}",
                expected=definition.describe(self.number_format.argument_separator)
            )

        return FormulaFunctionCall(definition.name, args, definition)

    def _parse_number(self, segment: FormulaSegment) -> FormulaReal | FormulaComplex:
        text = segment.text
        try:
            if text.endswith('i'):
                return FormulaComplex(0.0, self.number_format.parse(text[:-1]))

            return FormulaReal(self.number_format.parse(text))

        except FormulaParseError:
            word = re.match(r'[A-Za-z]+', text)
            suggestion = "Names of functions and variables use lowercase letters only"
            if word is not None:
                known = self.builtins.all_names() + self.registry.names()
                similar = FormulaErrorMessageBuilder.suggest_similar_names(word.group(0).lower(), known)
                if similar:
                    suggestion = f"Did you mean {', '.join(similar)}?"

            raise FormulaParseError(
                message=f"Unknown token: {text}",
                position=segment.offset,
                received=f"Token: {text}",
                expected="A number, variable, constant or function call",
                example=f"3{self.number_format.decimal_separator}5, 2i, x, pi, sin(x)",
                suggestion=suggestion
            ) from None
