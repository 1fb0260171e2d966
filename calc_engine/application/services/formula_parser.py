"""Formula parser.

Turns formula text into a syntax tree of calls, indicator references and
literals. Function names and arity are not validated here; the evaluator
does that, so syntax and semantic failures stay distinguishable.
"""

import re

import numpy as np

from calc_engine.domain.errors import FormulaParseError
from calc_engine.domain.nodes import Call, IndicatorRef, Node, NumberLiteral, StringLiteral

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")
_WORD_RE = re.compile(r"[A-Za-z0-9_\-]+")
_FUNCTION_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_WORD_CHARS = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_-")
_QUOTES = ("'", '"')

# Functions whose single argument is a mini-language; unquoted, everything
# up to the matching ')' is taken verbatim, commas included.
RAW_TEXT_FUNCTIONS = frozenset({"WEIGHTED_INDEX", "BOOLEAN_SIGNAL"})


def parse(text: str) -> Node:
    """Parse a formula into a syntax tree."""
    return _Parser(text).parse()


def to_formula(node: Node) -> str:
    """Render a syntax tree in canonical formula form."""
    if isinstance(node, NumberLiteral):
        return np.format_float_positional(node.value, trim="-")
    if isinstance(node, StringLiteral):
        quote = "'" if '"' in node.text else '"'
        return f"{quote}{node.text}{quote}"
    if isinstance(node, IndicatorRef):
        return node.slug
    if isinstance(node, Call):
        return f"{node.name}({', '.join(to_formula(arg) for arg in node.args)})"
    raise TypeError(f"Not a formula node: {node!r}")


class _Parser:
    """Recursive-descent parser over the raw text."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse(self) -> Node:
        self._skip_whitespace()
        if self._at_end():
            raise FormulaParseError("Empty formula", 0)

        node = self._expression()

        self._skip_whitespace()
        if not self._at_end():
            if self.text[self.pos] == ")":
                raise FormulaParseError("Unbalanced parentheses: unexpected ')'", self.pos)
            raise FormulaParseError(f"Unexpected trailing input {self.text[self.pos]!r}", self.pos)
        return node

    def _expression(self) -> Node:
        self._skip_whitespace()
        if self._at_end():
            raise FormulaParseError("Unexpected end of formula", self.pos)

        start = self.pos
        char = self.text[start]

        if char in _QUOTES:
            return self._quoted_string()

        number = _NUMBER_RE.match(self.text, start)
        if number and not self._is_word_char(number.end()):
            self.pos = number.end()
            if self._peek() == "(":
                raise FormulaParseError(f"Invalid function name {number.group(0)!r}", start)
            value = float(number.group(0))
            if not np.isfinite(value):
                raise FormulaParseError("Number out of range", start)
            return NumberLiteral(value, start)

        word = _WORD_RE.match(self.text, start)
        if not word:
            raise FormulaParseError(f"Unexpected character {char!r}", start)
        token = word.group(0)
        self.pos = word.end()

        if self._peek() == "(":
            if not _FUNCTION_NAME_RE.fullmatch(token):
                raise FormulaParseError(f"Invalid function name {token!r}", start)
            return self._call(token.upper(), start)

        return IndicatorRef(token, start)

    def _call(self, name: str, start: int) -> Call:
        self._skip_whitespace()
        open_paren = self.pos
        self.pos += 1

        if name in RAW_TEXT_FUNCTIONS and self._peek() not in _QUOTES:
            return Call(name, (self._raw_text(name, open_paren),), start)

        if self._peek() == ")":
            raise FormulaParseError(f"Empty argument list for {name}", self.pos)

        args: list[Node] = []
        while True:
            args.append(self._expression())
            self._skip_whitespace()
            if self._at_end():
                raise FormulaParseError(f"Unbalanced parentheses: '(' of {name} is never closed", open_paren)

            char = self.text[self.pos]
            if char == ",":
                self.pos += 1
                if self._peek() == ")":
                    raise FormulaParseError(f"Trailing comma in arguments of {name}", self.pos - 1)
                continue
            if char == ")":
                self.pos += 1
                return Call(name, tuple(args), start)
            raise FormulaParseError(f"Expected ',' or ')' in arguments of {name}", self.pos)

    def _raw_text(self, name: str, open_paren: int) -> StringLiteral:
        depth = 0
        begin = self.pos
        while not self._at_end():
            char = self.text[self.pos]
            if char in _QUOTES:
                raise FormulaParseError(f"Quote character in unquoted argument of {name}", self.pos)
            if char == "(":
                depth += 1
            elif char == ")":
                if depth == 0:
                    break
                depth -= 1
            self.pos += 1
        else:
            raise FormulaParseError(f"Unbalanced parentheses: '(' of {name} is never closed", open_paren)

        raw = self.text[begin : self.pos]
        self.pos += 1
        if not raw.strip():
            raise FormulaParseError(f"Empty argument list for {name}", begin)
        offset = len(raw) - len(raw.lstrip())
        return StringLiteral(raw.strip(), begin + offset)

    def _quoted_string(self) -> StringLiteral:
        start = self.pos
        quote = self.text[start]
        end = self.text.find(quote, start + 1)
        if end == -1:
            raise FormulaParseError("Unterminated string literal", start)
        self.pos = end + 1
        return StringLiteral(self.text[start + 1 : end], start + 1)

    def _skip_whitespace(self) -> None:
        while not self._at_end() and self.text[self.pos].isspace():
            self.pos += 1

    def _peek(self) -> str | None:
        """Next non-whitespace character without consuming it."""
        self._skip_whitespace()
        return None if self._at_end() else self.text[self.pos]

    def _at_end(self) -> bool:
        return self.pos >= len(self.text)

    def _is_word_char(self, index: int) -> bool:
        return index < len(self.text) and self.text[index] in _WORD_CHARS
