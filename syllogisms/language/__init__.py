from .parser import (
    LineType, TokenType, Token, Binding, Line,
    parse_file, parse_line, parse_token, get_binding, get_indent_level, callback_name,
)
from .state_machine import StateMachine, Exclusion

__all__ = [
    "LineType", "TokenType", "Token", "Binding", "Line",
    "parse_file", "parse_line", "parse_token", "get_binding", "get_indent_level",
    "callback_name",
    "StateMachine", "Exclusion",
]
