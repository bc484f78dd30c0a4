"""
Environment filters — LDAP-style predicates over string properties.

Requirements and components may carry a filter such as
``(&(os=linux)(!(arch=x86)))``.  Filters are evaluated against the
resolution environment (profile properties merged with the request's
property changes).

Supported syntax::

    (&(a=b)(c=d))      conjunction
    (|(a=b)(c=d))      disjunction
    (!(a=b))           negation
    (a=b)              equality (case-sensitive)
    (a=*)              presence
    (a=lin*x)          substring / wildcard
    (a~=B)             approximate (case- and whitespace-insensitive)
    (a>=1.2) (a<=3)    ordering (numeric, then version, then text)

Attribute names are case-insensitive.  A bare ``a=b`` without the
enclosing parentheses is accepted for convenience.
"""

from __future__ import annotations

import functools
import re
from collections.abc import Mapping
from dataclasses import dataclass

from src.core.models.version import Version


class FilterSyntaxError(ValueError):
    """Raised when a filter expression cannot be parsed."""


# ── Expression nodes ────────────────────────────────────────────────


@dataclass(frozen=True)
class And:
    operands: tuple[FilterExpr, ...]

    def matches(self, env: Mapping[str, str]) -> bool:
        return all(op.matches(env) for op in self.operands)


@dataclass(frozen=True)
class Or:
    operands: tuple[FilterExpr, ...]

    def matches(self, env: Mapping[str, str]) -> bool:
        return any(op.matches(env) for op in self.operands)


@dataclass(frozen=True)
class Not:
    operand: FilterExpr

    def matches(self, env: Mapping[str, str]) -> bool:
        return not self.operand.matches(env)


@dataclass(frozen=True)
class Compare:
    attribute: str
    operator: str       # "=", "~=", ">=", "<="
    value: str          # unescaped; wildcards kept only for "="
    wildcard: bool = False

    def matches(self, env: Mapping[str, str]) -> bool:
        actual = _lookup(env, self.attribute)
        if actual is None:
            return False

        if self.operator == "=":
            if self.wildcard:
                return _wildcard_regex(self.value).fullmatch(actual) is not None
            return actual == self.value
        if self.operator == "~=":
            return _squash(actual) == _squash(self.value)

        order = _compare_values(actual, self.value)
        if self.operator == ">=":
            return order >= 0
        return order <= 0


FilterExpr = And | Or | Not | Compare


# ── Evaluation helpers ──────────────────────────────────────────────


def _lookup(env: Mapping[str, str], attribute: str) -> str | None:
    if attribute in env:
        return str(env[attribute])
    lowered = attribute.lower()
    for key, value in env.items():
        if key.lower() == lowered:
            return str(value)
    return None


def _squash(text: str) -> str:
    return "".join(text.split()).lower()


@functools.lru_cache(maxsize=256)
def _wildcard_regex(pattern: str) -> re.Pattern[str]:
    # "*" only ever reaches here as a wildcard; literal stars are escaped
    # to "\x00" by the parser.
    pieces = [re.escape(p.replace("\x00", "*")) for p in pattern.split("*")]
    return re.compile(".*".join(pieces), re.DOTALL)


def _compare_values(left: str, right: str) -> int:
    for convert in (int, float, Version.parse):
        try:
            a, b = convert(left), convert(right)
        except ValueError:
            continue
        return (a > b) - (a < b)
    return (left > right) - (left < right)


# ── Parser ──────────────────────────────────────────────────────────


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def error(self, message: str) -> FilterSyntaxError:
        return FilterSyntaxError(f"{message} at offset {self.pos} in filter {self.text!r}")

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def expect(self, char: str) -> None:
        self.skip_ws()
        if self.peek() != char:
            raise self.error(f"Expected {char!r}")
        self.pos += 1

    def parse(self) -> FilterExpr:
        expr = self.parse_filter()
        self.skip_ws()
        if self.pos != len(self.text):
            raise self.error("Trailing characters")
        return expr

    def parse_filter(self) -> FilterExpr:
        self.expect("(")
        self.skip_ws()
        char = self.peek()
        if char == "&":
            self.pos += 1
            expr: FilterExpr = And(self.parse_list())
        elif char == "|":
            self.pos += 1
            expr = Or(self.parse_list())
        elif char == "!":
            self.pos += 1
            expr = Not(self.parse_filter())
        else:
            expr = self.parse_item()
        self.expect(")")
        return expr

    def parse_list(self) -> tuple[FilterExpr, ...]:
        operands: list[FilterExpr] = []
        self.skip_ws()
        while self.peek() == "(":
            operands.append(self.parse_filter())
            self.skip_ws()
        if not operands:
            raise self.error("Empty operand list")
        return tuple(operands)

    def parse_item(self) -> Compare:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in "=~<>()":
            self.pos += 1
        attribute = self.text[start:self.pos].strip()
        if not attribute:
            raise self.error("Missing attribute name")

        if self.text.startswith("=", self.pos):
            operator = "="
        elif self.text[self.pos:self.pos + 2] in ("~=", ">=", "<="):
            operator = self.text[self.pos:self.pos + 2]
        else:
            raise self.error("Expected comparison operator")
        self.pos += len(operator)

        value, wildcard = self.parse_value()
        if wildcard and operator != "=":
            raise self.error(f"Wildcards are not allowed with {operator!r}")
        return Compare(attribute, operator, value, wildcard=wildcard)

    def parse_value(self) -> tuple[str, bool]:
        chars: list[str] = []
        wildcard = False
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == ")":
                break
            if char == "(":
                raise self.error("Unescaped '(' in value")
            if char == "\\":
                self.pos += 1
                if self.pos >= len(self.text):
                    raise self.error("Dangling escape")
                escaped = self.text[self.pos]
                chars.append("\x00" if escaped == "*" else escaped)
            else:
                if char == "*":
                    wildcard = True
                chars.append(char)
            self.pos += 1

        value = "".join(chars)
        if not wildcard:
            value = value.replace("\x00", "*")
        return value, wildcard


@functools.lru_cache(maxsize=1024)
def parse_filter(text: str) -> FilterExpr:
    """Parse a filter expression (cached).

    Raises:
        FilterSyntaxError: If the expression is malformed.
    """
    stripped = (text or "").strip()
    if not stripped:
        raise FilterSyntaxError("Empty filter expression")
    if not stripped.startswith("("):
        stripped = f"({stripped})"
    return _Parser(stripped).parse()


def filter_matches(text: str | None, env: Mapping[str, str]) -> bool:
    """Evaluate an optional filter; ``None`` always matches."""
    if text is None:
        return True
    return parse_filter(text).matches(env)
