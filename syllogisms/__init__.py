"""
Syllogisms: a small rule language and the logic engine that runs it.

Rule files describe conditions, claims, actions and exclusions as an
indented outline. The state machine compiles them into relations and
rules over a miniKanren-style search (terms, persistent substitutions,
lazy fair conjunction and disjunction) and answers questions about them.

Usage:
    python -m syllogisms rules.txt --query '"troll" is scary'
    python -m syllogisms --sample monsters
    python -m syllogisms --sample locations
    python -m syllogisms --sample greetings
"""

from .core.terms import Term, Substitution, IdSource, var, lit, occurs_in
from .core.goals import Goal, Unify, UnifyAll, And, Or, run, first
from .core.relation import Relation, Rule, Action
from .language.parser import (
    LineType, TokenType, Token, Binding, Line,
    parse_file, parse_line, parse_token, get_binding, get_indent_level,
)
from .language.state_machine import StateMachine, Exclusion
from .errors import (
    SyllogismError, InvalidRelation, ArityError,
    UnknownBindingError, UnknownCallbackError, ParseError, RecursiveActionError,
)

__all__ = [
    "Term", "Substitution", "IdSource", "var", "lit", "occurs_in",
    "Goal", "Unify", "UnifyAll", "And", "Or", "run", "first",
    "Relation", "Rule", "Action",
    "LineType", "TokenType", "Token", "Binding", "Line",
    "parse_file", "parse_line", "parse_token", "get_binding", "get_indent_level",
    "StateMachine", "Exclusion",
    "SyllogismError", "InvalidRelation", "ArityError",
    "UnknownBindingError", "UnknownCallbackError", "ParseError", "RecursiveActionError",
]
