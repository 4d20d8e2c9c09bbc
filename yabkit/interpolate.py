"""Strings that reference variables as ``${name}`` or ``${name:default}``."""

from __future__ import annotations

import io
import json
import os
import string
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Iterator, Optional, TextIO, Union

Resolver = Callable[[str], Optional[str]]
"""Returns the value of a variable, or None when the variable is unset."""


@dataclass(frozen=True)
class Literal:
    """Text used as-is when rendering."""

    text: str


@dataclass(frozen=True)
class Variable:
    """A reference to a variable, with an optional default value."""

    name: str
    default: str = ""
    has_default: bool = False


Term = Union[Literal, Variable]


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


class InterpolationParseError(ValueError):
    """Raised when a string is not valid interpolation syntax."""

    def __init__(self, data: str) -> None:
        super().__init__(f"cannot parse string {_quote(data)}")
        self.data = data


class UnknownVariableError(LookupError):
    """Raised when a variable has neither a value nor a default."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"unknown variable {_quote(name)} does not have a value or a default"
        )
        self.name = name


@dataclass(frozen=True)
class InterpolatedString:
    """A parsed string: a sequence of literals and variables."""

    terms: tuple[Term, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "terms", tuple(self.terms))

    def __iter__(self) -> Iterator[Term]:
        return iter(self.terms)

    def __len__(self) -> int:
        return len(self.terms)

    def render(self, resolve: Resolver) -> str:
        """Render the string, looking variables up with ``resolve``."""
        buffer = io.StringIO()
        self.render_to(buffer, resolve)
        return buffer.getvalue()

    def render_to(self, writer: TextIO, resolve: Resolver) -> None:
        """Write the rendered string to ``writer``."""
        for term in self.terms:
            if isinstance(term, Literal):
                writer.write(term.text)
                continue
            value = resolve(term.name)
            if value is None:
                if not term.has_default:
                    raise UnknownVariableError(term.name)
                value = term.default
            writer.write(value)


def env_resolver(name: str) -> Optional[str]:
    """Resolve a variable from the process environment."""
    return os.environ.get(name)


class _State(Enum):
    START = auto()
    LITERAL = auto()
    TERM = auto()
    DOLLAR = auto()
    ESCAPE = auto()
    OPEN = auto()
    NAME = auto()
    NAME_SEP = auto()
    DEFAULT_START = auto()
    DEFAULT = auto()


_NAME_START = frozenset(string.ascii_letters + "_")
_NAME_CHAR = _NAME_START | frozenset(string.digits)
_NAME_SEP = frozenset("-.")


def parse(data: str) -> InterpolatedString:
    """Parse ``data`` into literals and variables.

    ``\\`` escapes the following character. Variable names start with a
    letter or underscore and may contain letters, digits, underscores, and
    single ``-`` or ``.`` separators between them.
    """
    terms: list[Term] = []
    state = _State.START
    current: Optional[Term] = None
    start = 0
    name_start = name_end = 0
    default_start = 0

    for pos, ch in enumerate(data):
        if state in (_State.START, _State.LITERAL, _State.TERM):
            if ch in ("$", "\\"):
                if state is not _State.START:
                    terms.append(current)
                state = _State.DOLLAR if ch == "$" else _State.ESCAPE
            elif state is _State.LITERAL:
                current = Literal(data[start:pos + 1])
            else:
                if state is _State.TERM:
                    terms.append(current)
                start = pos
                current = Literal(ch)
                state = _State.LITERAL
        elif state is _State.DOLLAR:
            if ch == "{":
                state = _State.OPEN
            else:
                current = Literal(data[pos - 1:pos + 1])
                state = _State.TERM
        elif state is _State.ESCAPE:
            current = Literal(ch)
            state = _State.TERM
        elif state is _State.OPEN:
            if ch not in _NAME_START:
                raise InterpolationParseError(data)
            name_start, name_end = pos, pos + 1
            state = _State.NAME
        elif state is _State.NAME:
            if ch == ":":
                state = _State.DEFAULT_START
            elif ch == "}":
                current = Variable(data[name_start:name_end])
                state = _State.TERM
            elif ch in _NAME_SEP:
                state = _State.NAME_SEP
            elif ch in _NAME_CHAR:
                name_end = pos + 1
            else:
                raise InterpolationParseError(data)
        elif state is _State.NAME_SEP:
            if ch not in _NAME_CHAR:
                raise InterpolationParseError(data)
            name_end = pos + 1
            state = _State.NAME
        elif state is _State.DEFAULT_START:
            if ch == "}":
                current = Variable(data[name_start:name_end], "", True)
                state = _State.TERM
            else:
                default_start = pos
                state = _State.DEFAULT
        elif ch == "}":
            current = Variable(
                data[name_start:name_end], data[default_start:pos], True
            )
            state = _State.TERM

    if state in (_State.LITERAL, _State.TERM):
        terms.append(current)
    elif state is not _State.START:
        raise InterpolationParseError(data)

    return InterpolatedString(tuple(terms))