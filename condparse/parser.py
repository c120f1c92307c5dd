# condparse/parser.py
"""condparse parser

Human-friendly search condition notation, e.g.

    folder:inbox and (from:"John Doe" or date:gt:2024-01-01) free text

Grammar (recursive descent, one cursor, backtracking by cursor save/restore):

    condition  := term ( join? term )*
    term       := group | expression
    group      := '(' condition ')'
    expression := literal ':' value ( ':' value )?
    join       := ('and' | 'or') ('not')?          (case-insensitive)
    literal    := quoted | unquoted
    value      := quoted | unquoted | '(' ... ')'

- A missing join between two terms is an implicit 'and'.
- `key:op:value` vs `key:value`: the second ':' decides whether the first
  literal was an operator. A parenthesized literal may only be a value.
- Parsing never fails to the caller. The first grammar failure stops the
  parse; everything committed so far is kept and the rest of the input is
  returned as the unparsed tail (free text).
"""

from __future__ import annotations
import regex as re
import sys
from dataclasses import dataclass, replace
from typing import Any, Callable, List, Optional, Tuple

from .ast import (
    AND, OR, AND_NOT, OR_NOT,
    ConditionDump, ConditionNode, Expression, Meta, ParseResult,
)

_WS_RE   = re.compile(r"\s+")
_JOIN_RE = re.compile(r"(and|or)\s+(?:(not)\s+)?", re.IGNORECASE)

_QUOTES          = ("'", '"')
_UNQUOTED_STOPS  = (":", "(", ")")

_JOINS = {
    ("and", False): AND,
    ("and", True):  AND_NOT,
    ("or",  False): OR,
    ("or",  True):  OR_NOT,
}

Transform  = Callable[[Expression], Expression]
PreAddHook = Callable[[Expression], Optional[Expression]]


def _eprint(*args, **kw) -> None:
    print(*args, file=sys.stderr, **kw)


# ---------- errors ----------

class ConditionSyntaxError(SyntaxError):
    """Grammar failure at `position`. Always recovered by `parse`."""
    def __init__(self, message: str, position: int = 0, reason: Optional[str] = None):
        super().__init__(message)
        self.position = position
        self.reason = reason if reason is not None else message

class ExpectedColon(ConditionSyntaxError):
    pass

class UnterminatedQuote(ConditionSyntaxError):
    pass

class UnterminatedParenValue(ConditionSyntaxError):
    pass

class ParenthesizedOperatorNotAllowed(ConditionSyntaxError):
    pass

class ParenLevelMismatch(ConditionSyntaxError):
    pass

class ExpectedClosingParen(ConditionSyntaxError):
    pass

class NestingTooDeep(ConditionSyntaxError):
    pass


# ---------- error handling utils ----------

_CONTEXT_PREFIX = 'Context: "'

def format_diagnostic(text: str, position: int, message: str, context_radius: int = 20) -> str:
    """
    Four line diagnostic:

        <message>
        Position: <position>
        Context: "<text clipped to context_radius around position>"
                  ^

    Out-of-range positions are clamped for the window; the Position line
    reports `position` as given.
    """
    at = min(max(position, 0), len(text))
    radius = max(context_radius, 0)
    start = max(0, at - radius)
    end = min(len(text), at + radius)
    # one char per char, so the caret stays aligned and the block stays 4 lines
    snippet = text[start:end].replace("\r", " ").replace("\n", " ").replace("\t", " ")
    caret = " " * (len(_CONTEXT_PREFIX) + at - start) + "^"
    return "\n".join([
        message,
        f"Position: {position}",
        f'{_CONTEXT_PREFIX}{snippet}"',
        caret,
    ])

def format_error(text: str, position: int, message: str, context_radius: int = 20,
                 kind: type = ConditionSyntaxError) -> ConditionSyntaxError:
    """Same as `format_diagnostic`, wrapped in an exception of class `kind`."""
    return kind(format_diagnostic(text, position, message, context_radius),
                position=position, reason=message)


# ---------- options ----------

@dataclass
class ParserOptions:
    """
    Per-call configuration.
    - default_operator: operator for `key:value`; None -> ConditionParser.DEFAULT_OPERATOR
    - debug           : trace to stderr (also on when ConditionParser.DEBUG is set)
    - transform       : applied to every parsed leaf; its result is emitted
    - pre_add_hook    : applied after transform; a falsy result emits the
                        placeholder leaf 1:<default>:1 instead (the node is kept)
    - max_depth       : maximum parenthesized group nesting
    """
    default_operator: Optional[str] = None
    debug: bool = False
    transform: Optional[Transform] = None
    pre_add_hook: Optional[PreAddHook] = None
    max_depth: int = 128


# ---------- metadata ----------

def _add_unique(seq: List[Any], item: Any) -> None:
    if item not in seq:
        seq.append(item)

class _MetaCollector:
    """Unique keys/operators/values/expressions in order of first occurrence."""
    def __init__(self) -> None:
        self.keys: List[str] = []
        self.operators: List[str] = []
        self.values: List[Any] = []
        self.expressions: List[Tuple[str, str, Any]] = []

    def add(self, e: Expression) -> None:
        _add_unique(self.keys, e.key)
        _add_unique(self.operators, e.operator)
        _add_unique(self.values, e.value)
        _add_unique(self.expressions, e.as_tuple())

    def mark(self) -> Tuple[int, int, int, int]:
        return (len(self.keys), len(self.operators), len(self.values), len(self.expressions))

    def rollback(self, mark: Tuple[int, int, int, int]) -> None:
        """Forget everything first seen after `mark`."""
        k, o, v, e = mark
        del self.keys[k:]
        del self.operators[o:]
        del self.values[v:]
        del self.expressions[e:]

    def freeze(self) -> Meta:
        return Meta(
            keys=list(self.keys),
            operators=list(self.operators),
            values=list(self.values),
            expressions=[Expression(k, o, v) for (k, o, v) in self.expressions],
        )


# ---------- parser ----------

class ConditionParser:
    """
    One instance per parse call (use `ConditionParser.parse` / `parse`).

    Layers, top to bottom:
      _parse_condition  terms joined by and/or/and not/or not (+ implicit and)
      _parse_term       decides group vs expression on the next char
      _parse_group      '(' condition ')', recursing into _parse_condition
      _parse_expression key:value / key:op:value leaf
      _parse_quoted / _parse_unquoted / _parse_parenthesized   literals
    """

    # fallback defaults, used when ParserOptions leaves them unset
    DEFAULT_OPERATOR: str = "eq"
    DEBUG: bool = False

    def __init__(self, text: str, options: Optional[ParserOptions] = None):
        opts = options if options is not None else ParserOptions()
        self._text = f"{text}".strip()
        self._n = len(self._text)
        self._pos = 0
        self._depth = -1
        self._default_operator = (opts.default_operator
                                  if opts.default_operator is not None
                                  else self.DEFAULT_OPERATOR)
        self._debug_enabled = bool(opts.debug)
        self._transform = opts.transform
        self._pre_add_hook = opts.pre_add_hook
        self._max_depth = opts.max_depth
        self._meta = _MetaCollector()

        self._debug(f"[ {self._text} ]", self._default_operator)

    # ---- entry points ----
    @classmethod
    def parse(cls, text: str, options: Optional[ParserOptions] = None, **overrides) -> ParseResult:
        """
        Parse `text` into a condition tree plus the unparsed (free text) tail.

        `overrides` are ParserOptions fields applied on top of `options`:

            ConditionParser.parse("FOO:bar", default_operator="contains")
        """
        opts = options if options is not None else ParserOptions()
        if overrides:
            opts = replace(opts, **overrides)
        return cls(text, opts).run()

    def run(self) -> ParseResult:
        parsed: ConditionDump = []
        error: Optional[ConditionSyntaxError] = None

        if self._n:
            opening_level = self._count_run("(")
            try:
                self._parse_condition(parsed, AND, opening_level)
            except ConditionSyntaxError as e:
                error = e
                self._debug(str(e))

        # whatever the cursor did not reach is free text
        unparsed = self._text[self._pos:]
        return ParseResult(parsed=parsed, unparsed=unparsed, meta=self._meta.freeze(), error=error)

    # ---- debug / errors ----
    def _debug(self, *args) -> None:
        if self.DEBUG or self._debug_enabled:
            if self._depth > 0:
                args = ("->" * self._depth,) + args
            _eprint("[DEBUG] [ConditionParser]", *args)

    def _error(self, kind: type, message: str) -> ConditionSyntaxError:
        return format_error(self._text, self._pos, message, kind=kind)

    # ---- cursor ----
    def _peek(self, offset: int = 0) -> str:
        at = self._pos + offset
        return self._text[at] if 0 <= at < self._n else ""

    def _consume(self) -> str:
        if self._pos < self._n:
            ch = self._text[self._pos]
            self._pos += 1
            return ch
        return ""

    def _skip_ws(self) -> None:
        m = _WS_RE.match(self._text, self._pos)
        if m:
            self._pos = m.end()

    def _at_eof(self) -> bool:
        return self._pos >= self._n

    def _count_run(self, char: str) -> int:
        """How many `char` follow the cursor (whitespace between them allowed). Cursor is not moved."""
        i = self._pos
        count = 0
        while i < self._n and self._text[i] == char:
            count += 1
            m = _WS_RE.match(self._text, i + 1)
            i = m.end() if m else i + 1
        return count

    # ---- literals ----
    def _parse_quoted(self) -> str:
        """'...' or "..."; a backslash escapes the closing quote char only."""
        self._debug("parse_quoted:start")
        quote = self._consume()
        if quote not in _QUOTES:
            raise AssertionError(f"quoted literal must start with a quote, got {quote!r}")

        out: List[str] = []
        while self._pos < self._n:
            ch = self._consume()
            if ch == "\\" and self._peek() == quote:
                out.append(quote)
                self._pos += 1
                continue
            if ch == quote:
                result = "".join(out)
                self._debug("parse_quoted:result", repr(result))
                return result
            out.append(ch)

        raise self._error(UnterminatedQuote, "Unterminated quoted string")

    def _parse_unquoted(self) -> str:
        """Up to ':', '(', ')' or whitespace; '\\:' is a literal colon."""
        self._debug("parse_unquoted:start")
        out: List[str] = []
        while self._pos < self._n:
            ch = self._peek()
            if ch == "\\" and self._peek(1) == ":":
                out.append(":")
                self._pos += 2
                continue
            if ch in _UNQUOTED_STOPS or ch.isspace():
                break
            out.append(ch)
            self._pos += 1
        result = "".join(out).strip()
        self._debug("parse_unquoted:result", repr(result))
        return result

    def _parse_parenthesized(self) -> str:
        """(...) value; '\\)' is a literal close paren."""
        self._debug("parse_parenthesized:start")
        if self._consume() != "(":
            raise AssertionError("parenthesized literal must start with '('")

        out: List[str] = []
        while self._pos < self._n:
            ch = self._consume()
            if ch == "\\" and self._peek() == ")":
                out.append(")")
                self._pos += 1
                continue
            if ch == ")":
                result = "".join(out)
                self._debug("parse_parenthesized:result", repr(result), repr(self._peek()))
                return result
            out.append(ch)

        raise self._error(UnterminatedParenValue, "Unterminated parenthesized string")

    def _parse_literal(self) -> str:
        if self._peek() in _QUOTES:
            return self._parse_quoted()
        return self._parse_unquoted()

    def _parse_value(self) -> Tuple[str, bool]:
        """(text, was_parenthesized)"""
        if self._peek() == "(":
            return self._parse_parenthesized(), True
        return self._parse_literal(), False

    # ---- grammar ----
    def _parse_join(self, opening_level: Optional[int] = None) -> Optional[str]:
        """and / or / and not / or not, or None. With `opening_level`, also checks paren balance."""
        self._debug("parse_join:start", repr(self._peek()))
        self._skip_ws()
        result: Optional[str] = None

        m = _JOIN_RE.match(self._text, self._pos)
        if m:
            self._pos = m.end()
            result = _JOINS[(m.group(1).lower(), m.group(2) is not None)]
        elif opening_level is not None and not self._at_eof():
            closing = self._count_run(")")
            if closing != opening_level:
                raise self._error(
                    ParenLevelMismatch,
                    f"Parentheses level mismatch (opening: {opening_level}, closing: {closing})",
                )

        self._debug("parse_join:result", result)
        return result

    def _parse_expression(self, out: ConditionDump, join: str) -> None:
        self._debug("parse_expression:start", join)
        start = self._pos

        try:
            key = self._parse_literal()

            self._skip_ws()
            if self._peek() != ":":
                raise self._error(ExpectedColon, "Expected colon after key")
            self._pos += 1
            self._skip_ws()

            operator = self._default_operator
            value, parenthesized = self._parse_value()

            self._skip_ws()
            # a second colon: what we have so far was the operator
            if self._peek() == ":":
                if parenthesized:
                    raise self._error(ParenthesizedOperatorNotAllowed,
                                      "Operator cannot be a parenthesized expression")
                operator = value
                self._pos += 1
                self._skip_ws()
                value, _ = self._parse_value()
        except ConditionSyntaxError:
            # leave the whole expression unparsed, not a half-read fragment
            self._pos = start
            raise

        expression = Expression(key=key, operator=operator, value=value)
        if self._transform is not None:
            transformed = self._transform(expression)
            if transformed is not None:
                expression = transformed

        if self._pre_add_hook is not None:
            expression = self._pre_add_hook(expression)
            if not expression:
                # keep the node count; 1=1 is a no-op for the builder
                self._debug("parse_expression:pre_add_hook skip")
                expression = Expression(key="1", operator=self._default_operator, value="1")

        self._meta.add(expression)
        node = ConditionNode.leaf(expression, join)
        self._debug("parse_expression:result", node)
        out.append(node)

    def _parse_group(self, out: ConditionDump, join: str) -> None:
        self._debug("parse_group:start", join)
        if self._depth >= self._max_depth:
            raise self._error(NestingTooDeep, f"Nesting deeper than {self._max_depth} levels")

        start = self._pos
        mark = self._meta.mark()

        self._pos += 1  # '('
        self._skip_ws()

        node = ConditionNode.group(join)
        out.append(node)
        try:
            self._parse_condition(node.condition, join)
            self._skip_ws()
            if self._peek() != ")":
                raise self._error(ExpectedClosingParen, "Expected closing parenthesis")
        except ConditionSyntaxError:
            # a group that never closed is not committed: drop it with its leaves
            out.pop()
            self._meta.rollback(mark)
            self._pos = start
            raise

        self._pos += 1  # ')'
        self._debug("parse_group:result")

    def _parse_term(self, out: ConditionDump, join: str) -> None:
        self._debug("parse_term:start", join, repr(self._peek()))
        self._skip_ws()
        if self._peek() == "(":
            self._parse_group(out, join)
        else:
            self._parse_expression(out, join)
        self._debug("parse_term:end", repr(self._peek()))

    def _parse_condition(self, out: ConditionDump, join: str,
                         opening_level: Optional[int] = None) -> ConditionDump:
        self._depth += 1
        try:
            self._skip_ws()
            self._debug("parse_condition:start", join, repr(self._peek()))

            self._parse_term(out, join)

            while True:
                self._skip_ws()
                next_join = self._parse_join(opening_level)

                if next_join is None:
                    self._skip_ws()
                    # "and" between terms is optional
                    if not self._at_eof() and self._peek() != ")":
                        next_join = AND
                    else:
                        break

                # Forward-edge convention: a node's operator is the join to its
                # NEXT sibling, so the join just read is written to the previous
                # node. If the next term fails (trailing free text is legit) the
                # previous node gets its old operator back.
                previous = out[-1]
                previous_join = previous.operator
                previous.operator = next_join

                try:
                    self._parse_term(out, next_join)
                except ConditionSyntaxError as e:
                    self._debug(e.reason)
                    previous.operator = previous_join
                    raise
        finally:
            self._depth -= 1

        return out


def parse(text: str, options: Optional[ParserOptions] = None, **overrides) -> ParseResult:
    """Module level shortcut for `ConditionParser.parse`."""
    return ConditionParser.parse(text, options, **overrides)
