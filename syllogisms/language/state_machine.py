"""
The state machine: compiles parsed rule files into relations, rules and
actions, and answers questions about them.

    :: condition a is (value)         a condition: nested lines only
        + claim b is (value)          hold while it does

    + condition a is "testy"          a top-level claim is a fact

    :: condition a is (x)
        * Greet                       an action, fired by perform_action
            > say: (x) "hello"        callback with resolved arguments

    :: condition a is (x)
        ? claim (x) is (y)            an exclusion: at most one
                                      claim "<x>" is ... at a time

Relations and actions are keyed by binding key, so every phrasing that
differs only in its tokens shares one. Each nested claim becomes a salted
rule whose conditions are its ancestor conditions. Actions and
exclusions are unsalted: their payloads and retractions need to read the
same variables the conditions bound.
"""

from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Union

from ..core.goals import And, first
from ..core.relation import Action, Relation, Rule
from ..core.terms import IdSource, Substitution
from ..errors import RecursiveActionError, UnknownBindingError, UnknownCallbackError
from .parser import Binding, Line, LineType, callback_name, get_binding, parse_file


@dataclass
class Exclusion:
    """
    Asserting a new fact under relation_key retracts the stored facts
    this exclusion's rule matches. Positions flagged in bound_vars are
    taken from the new claim; the rest are wildcards.
    """
    relation_key: str
    rule: Rule
    bound_vars: tuple


Query = Union[str, Binding]


class StateMachine:
    """
    Holds every relation, action and exclusion a rule file declares.

    Args:
        verbose: print each claim, retraction, rule and action dispatch.
        strict:  refuse claim() on a key no loaded file declared.
        ids:     source of salts and fresh variables (one per machine).
    """

    def __init__(self, verbose: bool = False, strict: bool = False,
                 ids: Optional[IdSource] = None):
        self.relations = {}
        self.actions = {}
        self.payloads = {}
        self.callbacks = {}
        self.exclusions = {}
        self.history = []
        self._running: List[str] = []
        self.ids = ids if ids is not None else IdSource()
        self.verbose = verbose
        self.strict = strict

    # ── Reporting ───────────────────────────────────────────────────────────

    def _log(self, message: str):
        if self.verbose:
            print(f"  {message}")

    def _record(self, event: str, **details):
        entry = {"event": event}
        entry.update(details)
        self.history.append(entry)

    # ── Lookup ──────────────────────────────────────────────────────────────

    def get_relation(self, key: str, create: bool = True) -> Relation:
        if key not in self.relations:
            if not create:
                raise UnknownBindingError(f"No relation declared for {key!r}")
            self.relations[key] = Relation(key)
        return self.relations[key]

    def get_action(self, key: str, create: bool = True) -> Action:
        if key not in self.actions:
            if not create:
                raise UnknownBindingError(f"No action declared for {key!r}")
            self.actions[key] = Action(key)
        return self.actions[key]

    @staticmethod
    def _as_binding(query: Query) -> Binding:
        if isinstance(query, Binding):
            return query
        return get_binding(query)

    # ── Loading ─────────────────────────────────────────────────────────────

    def read_file(self, text: str):
        """Parse and load rule text."""
        self.load(parse_file(text))

    def load_path(self, path: str):
        with open(path) as f:
            self.read_file(f.read())

    def load(self, lines: List[Line]):
        """Compile top-level lines and, through them, all their descendants."""
        for line in lines:
            self._load_line(line)

    def _load_line(self, line: Line):
        binding = line.binding

        if line.type is LineType.CLAIM:
            if line.parent is None:
                self._claim(binding.key, binding.terms())
            else:
                relation = self.get_relation(binding.key)
                rule = self._walk_rule(line, binding.terms(), salt=True)
                relation.add_rule(rule)
                self._log(f"[rule] {line.content} ({len(rule.conditions)} conditions)")

        elif line.type is LineType.ACTION:
            action = self.get_action(binding.key)
            rule = self._walk_rule(line, binding.terms(), salt=False)
            payload = f"payload-{self.ids.next_id()}"
            action.add_payload(rule, payload)
            self.payloads[payload] = list(line.children)
            self._log(f"[action] {line.content} -> {payload}")
            # Children are the payload, run by perform_action, not rules.
            # Claims among them still declare their relations.
            for child in line.children:
                if child.type is LineType.CLAIM:
                    self.get_relation(child.binding.key)
            return

        elif line.type is LineType.EXCLUSION:
            exclusion = self._create_exclusion(line)
            self.exclusions.setdefault(binding.key, []).append(exclusion)
            self._log(f"[exclusion] {line.content}")

        for child in line.children:
            self._load_line(child)

    @staticmethod
    def _conditions_above(line: Line) -> List[Line]:
        return [a for a in line.ancestors() if a.type is LineType.CONDITION]

    def _walk_rule(self, line: Line, params, salt: bool = True) -> Rule:
        rule = Rule(params, ids=self.ids if salt else None)
        for condition in self._conditions_above(line):
            relation = self.get_relation(condition.binding.key)
            rule.add_condition(relation, condition.binding.terms())
        return rule

    def _create_exclusion(self, line: Line) -> Exclusion:
        binding = line.binding
        self.get_relation(binding.key)
        rule = self._walk_rule(line, binding.terms(), salt=False)
        above = {
            token.value
            for condition in self._conditions_above(line)
            for token in condition.binding.tokens
        }
        bound_vars = tuple(token.value in above for token in binding.tokens)
        return Exclusion(binding.key, rule, bound_vars)

    # ── Claims ──────────────────────────────────────────────────────────────

    def claim(self, query: Query):
        """Assert a fact, first retracting whatever its exclusions rule out."""
        binding = self._as_binding(query)
        self._claim(binding.key, binding.terms(), create=not self.strict)

    def _claim(self, key: str, terms: tuple, create: bool = True):
        relation = self.get_relation(key, create=create)
        for exclusion in self.exclusions.get(key, ()):
            self._remove_exclusions(exclusion, relation, terms)
        relation.add_fact(terms)
        self._log(f"[claim] {key} {' '.join(map(str, terms))}")
        self._record("claim", key=key, values=[t.key for t in terms])

    def _remove_exclusions(self, exclusion: Exclusion, relation: Relation, terms: tuple) -> int:
        args = tuple(
            term if bound else self.ids.fresh()
            for term, bound in zip(terms, exclusion.bound_vars)
        )
        goal = And([exclusion.rule.goal(args), relation.facts_goal(args)])

        doomed = []
        for sub in goal.search(Substitution()):
            fact = sub.reify(args)
            if fact not in doomed:
                doomed.append(fact)

        removed = 0
        for fact in doomed:
            removed += relation.remove_fact(fact)
            self._log(f"[retract] {relation.name} {' '.join(map(str, fact))}")
            self._record("retract", key=relation.name, values=[t.key for t in fact])
        return removed

    # ── Queries ─────────────────────────────────────────────────────────────

    def is_true(self, query: Query) -> bool:
        binding = self._as_binding(query)
        relation = self.get_relation(binding.key, create=False)
        return first(relation.query(binding.terms())) is not None

    def get_values(self, query: Query) -> Optional[list]:
        """
        The query's arguments as resolved by the first answer, or None if
        there is none. Positions still unbound come back as None.
        """
        binding = self._as_binding(query)
        relation = self.get_relation(binding.key, create=False)
        terms = binding.terms()
        sub = first(relation.query(terms))
        if sub is None:
            return None
        return self._resolve(terms, sub)

    def solutions(self, query: Query) -> Iterator[list]:
        """Every answer to the query, lazily, as lists of resolved values."""
        binding = self._as_binding(query)
        relation = self.get_relation(binding.key, create=False)
        terms = binding.terms()
        return (self._resolve(terms, sub)
                for sub in relation.query(terms).search(Substitution()))

    @staticmethod
    def _resolve(terms, sub: Substitution) -> list:
        return [None if t.is_variable else t.key for t in sub.reify(terms)]

    def _reify_fresh(self, terms, sub: Substitution) -> tuple:
        """Walk terms through sub; anything still unbound gets a fresh variable."""
        renamed = {}
        out = []
        for term in sub.reify(terms):
            if term.is_variable:
                if term.key not in renamed:
                    renamed[term.key] = self.ids.fresh(term.key)
                term = renamed[term.key]
            out.append(term)
        return tuple(out)

    # ── Actions ─────────────────────────────────────────────────────────────

    def add_callback(self, name: str, handler: Callable[[list], object]):
        self.callbacks[name] = handler

    def callback_names(self) -> set:
        """Names of every callback some action payload invokes."""
        return {
            callback_name(line)
            for lines in self.payloads.values()
            for line in lines
            if line.type is LineType.CALLBACK
        }

    def perform_action(self, query: Query) -> bool:
        """
        Run the payload of the first rule of the action that holds.
        Returns False if none does. A payload that reaches the action it
        belongs to, directly or through other actions, raises
        RecursiveActionError.
        """
        binding = self._as_binding(query)
        action = self.get_action(binding.key, create=False)
        return self._perform(action, binding.terms())

    def _perform(self, action: Action, terms: tuple) -> bool:
        if action.name in self._running:
            chain = self._running[self._running.index(action.name):] + [action.name]
            names = " -> ".join(map(repr, chain))
            raise RecursiveActionError(f"Action invoked itself: {names}", chain)

        out = self.ids.fresh("outcome")
        sub = first(action.goal(terms, out))
        if sub is None:
            self._log(f"[action] {action.name}: no rule holds")
            return False

        payload = sub.walk(out).key
        self._log(f"[action] {action.name} -> {payload}")
        self._record("action", key=action.name, payload=payload)
        self._running.append(action.name)
        try:
            for line in self.payloads[payload]:
                self._dispatch(line, sub)
        finally:
            self._running.pop()
        return True

    def _dispatch(self, line: Line, sub: Substitution):
        binding = line.binding
        if line.type is LineType.CALLBACK:
            name = callback_name(line)
            if name not in self.callbacks:
                raise UnknownCallbackError(f"No callback registered for {name!r}")
            self.callbacks[name](self._resolve(binding.terms(), sub))
        elif line.type is LineType.CLAIM:
            self._claim(binding.key, self._reify_fresh(binding.terms(), sub),
                        create=not self.strict)
        elif line.type is LineType.ACTION:
            action = self.get_action(binding.key, create=False)
            self._perform(action, self._reify_fresh(binding.terms(), sub))
