"""
Goals: lazy nondeterministic search over substitutions.

A goal is an immutable description of a computation. goal.search(sub)
returns an iterator; each element is one way of extending sub so the
goal holds. Nothing is computed until the caller pulls, so a caller
that only needs the first answer does only the work for the first
answer.

    Unify(a, b)        -- a and b are the same term
    UnifyAll(as, bs)   -- position-wise, all or nothing
    And(goals)         -- every goal holds, left to right
    Or(goals)          -- any goal holds, interleaved fairly
"""

from collections import deque
from itertools import islice
from typing import Iterator, Optional, Sequence

from .terms import Substitution, Term


class Goal:
    """Base class. Subclasses implement search()."""

    def search(self, sub: Substitution) -> Iterator[Substitution]:
        raise NotImplementedError


class Unify(Goal):
    def __init__(self, a: Term, b: Term):
        self.a = a
        self.b = b

    def __repr__(self):
        return f"Unify({self.a}, {self.b})"

    def search(self, sub):
        a = sub.walk(self.a)
        b = sub.walk(self.b)
        if a == b:
            yield sub
            return
        if a.is_variable:
            extended = sub.extend(a, b)
        elif b.is_variable:
            extended = sub.extend(b, a)
        else:
            return
        if extended is not None:
            yield extended


class UnifyAll(Goal):
    def __init__(self, left: Sequence[Term], right: Sequence[Term]):
        self.left = tuple(left)
        self.right = tuple(right)

    def __repr__(self):
        left = ", ".join(map(str, self.left))
        right = ", ".join(map(str, self.right))
        return f"UnifyAll(({left}), ({right}))"

    def search(self, sub):
        extended = sub.unify_all(self.left, self.right)
        if extended is not None:
            yield extended


class And(Goal):
    """
    Conjunction. Results of goal i are the inputs of goal i+1.

    Driven by an explicit stack of live iterators, one per goal, so a
    long conjunction never nests generators and partial products are
    never materialized. And([]) succeeds once with the input unchanged.
    """

    def __init__(self, goals: Sequence[Goal]):
        self.goals = tuple(goals)

    def __repr__(self):
        return f"And({list(self.goals)!r})"

    def search(self, sub):
        goals = self.goals
        if not goals:
            yield sub
            return

        stack = [goals[0].search(sub)]
        while stack:
            try:
                result = next(stack[-1])
            except StopIteration:
                stack.pop()
                continue
            depth = len(stack)
            if depth == len(goals):
                yield result
            else:
                stack.append(goals[depth].search(result))


class Or(Goal):
    """
    Fair disjunction. Pulls one result from each live branch in turn,
    so an infinite branch can't starve its siblings. Or([]) fails.
    """

    def __init__(self, goals: Sequence[Goal]):
        self.goals = tuple(goals)

    def __repr__(self):
        return f"Or({list(self.goals)!r})"

    def search(self, sub):
        pending = deque(goal.search(sub) for goal in self.goals)
        while pending:
            branch = pending.popleft()
            try:
                result = next(branch)
            except StopIteration:
                continue
            pending.append(branch)
            yield result


def run(goal: Goal, sub: Optional[Substitution] = None, limit: Optional[int] = None) -> list:
    """Collect up to limit results (all of them if limit is None)."""
    if sub is None:
        sub = Substitution()
    return list(islice(goal.search(sub), limit))


def first(goal: Goal, sub: Optional[Substitution] = None) -> Optional[Substitution]:
    """The first result, or None. Stops pulling after one."""
    if sub is None:
        sub = Substitution()
    return next(iter(goal.search(sub)), None)
