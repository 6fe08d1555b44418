"""
Terms and substitutions.

Everything in the rule language is atomic: a term is either a literal
string or a logical variable. There are no compound terms, so the only
way to build a cycle is a chain of variables pointing back at itself --
that is what the occurs check guards against.

Substitutions are persistent. Extending one never changes it; the new
substitution holds only the fresh bindings and a link to its parent, so
every branch of a search shares the bindings it inherited.

    sub = Substitution()
    sub2 = sub.extend(var("a"), lit("mojo"))
    sub2.walk(var("a"))   -> Term(key='mojo', is_variable=False)
    sub.walk(var("a"))    -> Term(key='a', is_variable=True)
"""

from dataclasses import dataclass
from itertools import count
from typing import Iterable, Optional


@dataclass(frozen=True)
class Term:
    """A literal value or a logical variable, identified by its key."""
    key: str
    is_variable: bool = False

    def __str__(self):
        if self.is_variable:
            return f"({self.key})"
        return f'"{self.key}"'


def var(name: str) -> Term:
    return Term(name, True)


def lit(value: str) -> Term:
    return Term(value, False)


def occurs_in(variable: Term, term: Term, sub: Optional["Substitution"] = None) -> bool:
    """Does term resolve to variable? Binding one to the other would loop forever."""
    if sub is not None:
        term = sub.walk(term)
    return term.is_variable and term.key == variable.key


class Substitution:
    """
    Immutable variable -> Term bindings with structural sharing.

    Each node stores the bindings added by one extension and points at the
    substitution it extended. Lookups follow the parent chain.
    """

    def __init__(self, bindings: Optional[dict] = None, parent: Optional["Substitution"] = None):
        self._bindings = dict(bindings or {})
        self._parent = parent
        self._size = len(self._bindings) + (len(parent) if parent is not None else 0)

    def __len__(self):
        return self._size

    def __contains__(self, key):
        return self.lookup(key) is not None

    def __repr__(self):
        pairs = ", ".join(f"{k}={v}" for k, v in sorted(self.to_dict().items()))
        return f"Substitution({pairs})"

    def lookup(self, key: str) -> Optional[Term]:
        """The term key is directly bound to, or None."""
        node = self
        while node is not None:
            if key in node._bindings:
                return node._bindings[key]
            node = node._parent
        return None

    def walk(self, term: Term) -> Term:
        """Follow variable bindings until reaching a literal or an unbound variable."""
        while term.is_variable:
            bound = self.lookup(term.key)
            if bound is None:
                break
            term = bound
        return term

    def reify(self, terms: Iterable[Term]) -> tuple:
        return tuple(self.walk(t) for t in terms)

    def extend(self, variable: Term, value: Term) -> Optional["Substitution"]:
        """
        Bind one unbound variable. Returns None if the binding would make
        the variable refer to itself.
        """
        if not variable.is_variable:
            raise ValueError(f"cannot bind literal {variable}")
        if self.lookup(variable.key) is not None:
            raise ValueError(f"{variable} is already bound")
        if occurs_in(variable, value, self):
            return None
        return Substitution({variable.key: self.walk(value)}, parent=self)

    def unify_all(self, left: Iterable[Term], right: Iterable[Term]) -> Optional["Substitution"]:
        """
        Unify two tuples position by position, all or nothing.

        Bindings are staged so later positions see earlier ones; if any
        position fails the whole batch fails and nothing is bound.
        """
        left, right = tuple(left), tuple(right)
        if len(left) != len(right):
            return None

        staged = {}

        def resolve(term):
            while term.is_variable:
                bound = staged.get(term.key)
                if bound is None:
                    bound = self.lookup(term.key)
                if bound is None:
                    break
                term = bound
            return term

        for a, b in zip(left, right):
            a, b = resolve(a), resolve(b)
            if a == b:
                continue
            if a.is_variable:
                staged[a.key] = b
            elif b.is_variable:
                staged[b.key] = a
            else:
                return None

        if not staged:
            return self
        return Substitution(staged, parent=self)

    def to_dict(self) -> dict:
        """Flatten to a plain dict, oldest bindings first."""
        chain = []
        node = self
        while node is not None:
            chain.append(node._bindings)
            node = node._parent
        out = {}
        for bindings in reversed(chain):
            out.update(bindings)
        return out


class IdSource:
    """
    Mints salts and fresh variables from one counter.

    A StateMachine owns one and hands it to the rules and queries it
    builds, so ids never depend on global state.
    """

    def __init__(self, start: int = 0):
        self._counter = count(start)

    def next_id(self) -> int:
        return next(self._counter)

    def fresh(self, hint: str = "") -> Term:
        n = self.next_id()
        return Term(f"?{n}:{hint}" if hint else f"?{n}", True)

    def salt(self) -> str:
        return f"{self.next_id()}/"
