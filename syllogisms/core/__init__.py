from .terms import Term, Substitution, IdSource, var, lit, occurs_in
from .goals import Goal, Unify, UnifyAll, And, Or, run, first
from .relation import Relation, RelationQuery, Rule, Action

__all__ = [
    "Term", "Substitution", "IdSource", "var", "lit", "occurs_in",
    "Goal", "Unify", "UnifyAll", "And", "Or", "run", "first",
    "Relation", "RelationQuery", "Rule", "Action",
]
