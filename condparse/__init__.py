# condparse/__init__.py
"""Human-friendly search condition notation parser.

    >>> from condparse import parse
    >>> res = parse('category:books and price:lt:20 cheap paperbacks')
    >>> [n.expression.key for n in res.parsed]
    ['category', 'price']
    >>> res.unparsed
    'cheap paperbacks'

This package provides:
- Condition tree dataclasses (ConditionNode / Expression / Meta / ParseResult)
- The recursive-descent parser with free-text recovery
- A 4-line diagnostic formatter for positions in the input

`parsed` follows the condition-builder dump shape: every node's `operator`
is the join to its next sibling. `dump()` gives the plain dict/list form.
"""

from .ast import (
    AND, OR, AND_NOT, OR_NOT, JOIN_OPERATORS,
    ConditionDump, ConditionNode, Expression, Meta, ParseResult, dump,
)
from .parser import (
    ConditionParser, ParserOptions, parse,
    format_diagnostic, format_error,
    ConditionSyntaxError, ExpectedColon, UnterminatedQuote, UnterminatedParenValue,
    ParenthesizedOperatorNotAllowed, ParenLevelMismatch, ExpectedClosingParen,
    NestingTooDeep,
)
