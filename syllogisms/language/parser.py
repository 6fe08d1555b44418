"""
Parser for the rule language.

Every non-blank line starts with a marker that says what it is:

    ::  condition       :: condition a is (value)
    +   claim           + claim b is (value)
    *   action          * Greet (someone)
    >   callback        > say: (someone) "hello"
    ?   exclusion       ? (someone) is in (place)
    //  comment
        anything else is a plain string

Indentation builds the tree: a line's parent is the nearest line above
it with less indentation.

Arguments are tokens: (name) is a variable, "text" is a literal. The
binding key is the line with every token replaced by %s, so
"is a (monster)" and "is a (thing)" name the same relation.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..core.terms import Term
from ..errors import ParseError


class LineType(Enum):
    CONDITION = "::"
    CLAIM = "+"
    ACTION = "*"
    CALLBACK = ">"
    EXCLUSION = "?"
    COMMENT = "//"
    STRING = ""


class TokenType(Enum):
    STRING = "string"
    VARIABLE = "variable"


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str

    def to_term(self) -> Term:
        return Term(self.value, self.type is TokenType.VARIABLE)


@dataclass(frozen=True)
class Binding:
    """A key naming the relation or action, plus its argument tokens in order."""
    key: str
    tokens: tuple = ()

    def terms(self) -> tuple:
        return tuple(t.to_term() for t in self.tokens)


@dataclass(eq=False)
class Line:
    type: LineType
    text: str
    content: str
    binding: Binding
    indent_level: int = 0
    parent: Optional["Line"] = None
    children: List["Line"] = field(default_factory=list)

    def __repr__(self):
        return f"Line({self.type.name}, {self.content!r})"

    def ancestors(self):
        """Parent, grandparent, ... up to the root."""
        line = self.parent
        while line is not None:
            yield line
            line = line.parent


VARIABLE_PATTERN = r"\([^\)]*\)"
STRING_PATTERN = r'"[^"]*"'
TOKEN_RE = re.compile(f"{VARIABLE_PATTERN}|{STRING_PATTERN}")
CALLBACK_NAME_RE = re.compile(r"^([A-Za-z0-9_]+):")

# Longest marker first so "//" isn't read as anything shorter.
_MARKERS = sorted(
    (t for t in LineType if t.value),
    key=lambda t: len(t.value),
    reverse=True,
)


def get_indent_level(text: str) -> int:
    return len(text) - len(text.lstrip(" "))


def parse_token(text: str) -> Token:
    if text.startswith('"'):
        return Token(TokenType.STRING, text.strip('"'))
    if text.startswith("("):
        return Token(TokenType.VARIABLE, text.strip("()"))
    raise ParseError(f"Invalid token: {text!r}")


def get_binding(text: str) -> Binding:
    key = TOKEN_RE.sub("%s", text)
    tokens = tuple(parse_token(m.group(0)) for m in TOKEN_RE.finditer(text))
    return Binding(key, tokens)


def parse_line(text: str) -> Line:
    indent = get_indent_level(text)
    content = text.lstrip(" ")
    line_type = LineType.STRING
    for marker in _MARKERS:
        if content.startswith(marker.value):
            line_type = marker
            content = content[len(marker.value):]
            if content.startswith(" "):
                content = content[1:]
            break
    return Line(
        type=line_type,
        text=text,
        content=content,
        binding=get_binding(content),
        indent_level=indent,
    )


def parse_file(text: str) -> List[Line]:
    """Parse a whole file. Returns the top-level lines; the rest hang off them."""
    roots = []
    stack = []
    for raw in text.split("\n"):
        if not raw.strip():
            continue
        line = parse_line(raw.rstrip("\r"))
        while stack and line.indent_level <= stack[-1].indent_level:
            stack.pop()
        if stack:
            line.parent = stack[-1]
            stack[-1].children.append(line)
        else:
            roots.append(line)
        stack.append(line)
    return roots


def callback_name(line: Line) -> str:
    """The name before the colon in a callback line: "say: (x)" -> "say"."""
    match = CALLBACK_NAME_RE.match(line.content)
    if not match:
        raise ParseError(f"Callback line has no name: {line.text!r}")
    return match.group(1)
