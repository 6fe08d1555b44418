"""
Relations, rules and actions: the persistent part of the database.

A Relation is a named predicate. It answers a query with every stored
fact that unifies with the arguments, then with every rule whose
conditions can be satisfied for them.

A Rule is one derivation clause: "these parameters hold whenever all of
these conditions hold". Its variables are salted, rewritten with a
fresh prefix each time the rule is used, so neither two rules that both
say (value) nor two uses of the same rule ever share it.

An Action is a table of (rule, payload) pairs. Asking an action for a
payload finds the first rule whose conditions hold.

Recursive rules are rejected when they are added. There is no tabling
or fixpoint machinery, so a relation that depends on itself would search
forever.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from ..errors import ArityError, InvalidRelation
from .goals import And, Goal, Or, Unify, UnifyAll, first
from .terms import IdSource, Substitution, Term, lit


class Rule:
    """
    A parameter tuple plus the conditions that must hold for it.

    With an IdSource, every call to goal() renames the rule's variables
    under a fresh salt, so two uses of one rule in the same search never
    share them. Without one, the variables are used as written and line
    up with the caller's.
    """

    def __init__(self, params: Sequence[Term], ids: Optional[IdSource] = None):
        self.params = tuple(params)
        self.ids = ids
        self.conditions: List[tuple] = []

    def __repr__(self):
        params = ", ".join(map(str, self.params))
        return f"Rule(({params}), {len(self.conditions)} conditions)"

    @property
    def relations(self) -> List["Relation"]:
        return [relation for relation, _ in self.conditions]

    @staticmethod
    def salt_terms(terms: Iterable[Term], salt: str) -> tuple:
        if not salt:
            return tuple(terms)
        return tuple(
            Term(salt + t.key, True) if t.is_variable else t
            for t in terms
        )

    def add_condition(self, relation: "Relation", args: Sequence[Term]):
        self.conditions.append((relation, tuple(args)))

    def goal(self, args: Sequence[Term]) -> Goal:
        salt = self.ids.salt() if self.ids is not None else ""
        conditions = [
            relation.query(self.salt_terms(cond_args, salt))
            for relation, cond_args in self.conditions
        ]
        return And([UnifyAll(args, self.salt_terms(self.params, salt))] + conditions)


class RelationQuery(Goal):
    """Facts first, then rules. Evaluated against the relation as it is when searched."""

    def __init__(self, relation: "Relation", args: Sequence[Term]):
        self.relation = relation
        self.args = tuple(args)

    def __repr__(self):
        args = ", ".join(map(str, self.args))
        return f"RelationQuery({self.relation.name!r}, ({args}))"

    def search(self, sub):
        for fact in self.relation.facts:
            extended = sub.unify_all(self.args, fact)
            if extended is not None:
                yield extended
        for rule in self.relation.rules:
            yield from rule.goal(self.args).search(sub)


@dataclass(eq=False)
class Relation:
    """
    A named predicate backed by facts and rules.

    The arity is fixed by the first fact or rule added. Queries with a
    different number of arguments aren't errors; they just find nothing.
    """
    name: str = ""
    facts: list = field(default_factory=list)
    rules: list = field(default_factory=list)
    arity: Optional[int] = None

    def __repr__(self):
        return f"Relation({self.name!r}, facts={len(self.facts)}, rules={len(self.rules)})"

    def _check_arity(self, n: int, what: str):
        if self.arity is None:
            self.arity = n
        elif n != self.arity:
            raise ArityError(
                f"{what} with {n} arguments added to {self.name!r}, "
                f"which takes {self.arity}"
            )

    def add_fact(self, fact: Sequence[Term]):
        fact = tuple(fact)
        self._check_arity(len(fact), "fact")
        self.facts.append(fact)

    def remove_fact(self, fact: Sequence[Term]) -> int:
        """Remove every stored fact equal to fact. Returns how many went."""
        fact = tuple(fact)
        kept = [f for f in self.facts if f != fact]
        removed = len(self.facts) - len(kept)
        self.facts[:] = kept
        return removed

    def find_cycle(self, rule: Rule) -> Optional[list]:
        """
        Would adding rule make this relation reachable from itself?

        Walks rule -> relations it conditions on -> their rules -> ...
        Returns the path [self, ..., self] if so, else None.
        """
        seen = set()

        def visit(r, path):
            for relation in r.relations:
                if relation is self:
                    return path + [relation]
                if id(relation) in seen:
                    continue
                seen.add(id(relation))
                for inner in relation.rules:
                    found = visit(inner, path + [relation])
                    if found:
                        return found
            return None

        return visit(rule, [self])

    def add_rule(self, rule: Rule):
        cycle = self.find_cycle(rule)
        if cycle:
            names = " -> ".join(repr(r.name) for r in cycle)
            raise InvalidRelation(f"Recursive rule found: {names}", cycle)
        self._check_arity(len(rule.params), "rule")
        self.rules.append(rule)

    def query(self, args: Sequence[Term]) -> Goal:
        return RelationQuery(self, args)

    def facts_goal(self, args: Sequence[Term]) -> Goal:
        """Matches against stored facts only, ignoring rules."""
        args = tuple(args)
        return Or([UnifyAll(args, fact) for fact in self.facts])


class Action:
    """Rules paired with opaque payload ids, in the order they were added."""

    def __init__(self, name: str = ""):
        self.name = name
        self.rules: List[Rule] = []
        self.payloads: List[str] = []

    def __repr__(self):
        return f"Action({self.name!r}, {len(self.rules)} payloads)"

    def add_payload(self, rule: Rule, payload: str):
        self.rules.append(rule)
        self.payloads.append(payload)

    def goal(self, args: Sequence[Term], out: Term) -> Goal:
        """Binds out to the payload of each rule that holds for args."""
        return Or([
            And([rule.goal(args), Unify(out, lit(payload))])
            for rule, payload in zip(self.rules, self.payloads)
        ])

    def get_payload(self, args: Sequence[Term], ids: IdSource) -> Optional[str]:
        """Payload of the first rule that holds, or None."""
        out = ids.fresh("outcome")
        sub = first(self.goal(args, out), Substitution())
        if sub is None:
            return None
        return sub.walk(out).key
