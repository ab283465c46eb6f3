#!/usr/bin/env python3
"""Command-line tool for evaluating, rendering and deriving formulas."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'src'))

from formula import (  # pylint: disable=wrong-import-position
    Formula, FormulaBoolean, FormulaComplex, FormulaError, FormulaNumberFormat, FormulaReal, FormulaValue
)


def parse_binding(text: str, number_format: FormulaNumberFormat) -> tuple[str, FormulaValue]:
    """
    Parse a "name=value" variable binding.

    Args:
        text: Binding text, e.g. "x=2.5", "z=1+2i" or "flag=true"
        number_format: Format of the numeric value

    Returns:
        Variable name and value

    Raises:
        ValueError: If the binding is not of the form name=value
        FormulaParseError: If the value is not a number in the given format
    """
    name, equals, value_text = text.partition('=')
    name = name.strip()
    value_text = value_text.strip()
    if not equals or not name or not value_text:
        raise ValueError(f"Invalid variable binding '{text}', expected name=value")

    if value_text in ('true', 'false'):
        return name, FormulaBoolean(value_text == 'true')

    if value_text.endswith('i'):
        return name, FormulaComplex.parse(value_text, number_format)

    return name, FormulaReal(number_format.parse(value_text))


def main(argv: List[str] | None = None) -> int:
    """Main entry point for the formula calculator CLI."""
    parser = argparse.ArgumentParser(
        description='Evaluate, optimize, render and derive formulas',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Evaluate a formula
  formula_calc "2+3*4"

  # Evaluate with variables
  formula_calc "x^3+2*x^2+3*x-5" -v x=-2.5

  # Use a function definition
  formula_calc -d "pythagoras(a,b)=sqrt(a^2+b^2)" "pythagoras(3,4)"

  # Fold constants and print the resulting formula
  formula_calc "x*(2+3)" --optimize --render

  # Print a derivative
  formula_calc "x^3-x" --derive x

  # Use a decimal comma (arguments are then separated by ';')
  formula_calc "sum(k;1;4;k*0,5)" --decimal-separator ,
"""
    )
    parser.add_argument(
        'formula',
        help='Formula to process'
    )
    parser.add_argument(
        '-v', '--var',
        action='append',
        default=[],
        metavar='NAME=VALUE',
        help='Bind a variable (real, complex re+imi, true or false); may be repeated'
    )
    parser.add_argument(
        '-d', '--define',
        action='append',
        default=[],
        metavar='DEFINITION',
        help='Define a function, e.g. "cube(x)=x^3"; may be repeated'
    )
    parser.add_argument(
        '--optimize',
        action='store_true',
        help='Fold constant subtrees before evaluating or rendering'
    )
    parser.add_argument(
        '--render',
        action='store_true',
        help='Print the parsed formula instead of evaluating it'
    )
    parser.add_argument(
        '--derive',
        metavar='VAR',
        help='Print the derivative with respect to VAR'
    )
    parser.add_argument(
        '--integrate',
        metavar='VAR',
        help='Print an antiderivative with respect to VAR'
    )
    parser.add_argument(
        '--decimal-separator',
        default='.',
        help='Decimal separator for numbers (default: ".")'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Log debug output to stderr'
    )
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(name)s: %(message)s')

    if args.derive and args.integrate:
        print("Error: Cannot use both --derive and --integrate", file=sys.stderr)
        return 1

    try:
        grouping = '.' if args.decimal_separator == ',' else ','
        number_format = FormulaNumberFormat(decimal_separator=args.decimal_separator, grouping_separator=grouping)

    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    formula = Formula(number_format=number_format)

    try:
        for definition in args.define:
            formula.define(definition)

        variables: Dict[str, FormulaValue] = {}
        for binding in args.var:
            name, value = parse_binding(binding, number_format)
            variables[name] = value

        tree = formula.parse(args.formula)
        if args.derive:
            tree = formula.derive(tree, args.derive)

        elif args.integrate:
            tree = formula.integrate(tree, args.integrate)

        if args.optimize:
            tree = formula.optimize(tree)

        if args.render or args.derive or args.integrate:
            print(formula.render(tree))

        else:
            print(formula.evaluate_and_format(tree, variables))

    except (FormulaError, ValueError) as e:
        print(str(e), file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
