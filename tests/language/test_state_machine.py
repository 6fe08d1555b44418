"""
Scenario tests for the state machine.

Core claims:
    - Top-level claims are facts; nested claims hold while their conditions do
    - Each nested claim is salted afresh on every use, so (value) never leaks
      between rules or between two uses of one rule
    - Exclusions leave at most one fact per excluded group
    - perform_action runs the payload of the first rule that holds, once
    - An action whose payload reaches that action again is an error
    - Recursive rules are rejected at load time
    - Unknown keys and callbacks are errors, not silent falses
"""

import pytest

from syllogisms.errors import (
    InvalidRelation, RecursiveActionError, UnknownBindingError, UnknownCallbackError,
)
from syllogisms.language.parser import get_binding
from syllogisms.language.state_machine import StateMachine


# ── Helpers ──────────────────────────────────────────────────────────────────

def load(text, **kwargs):
    sm = StateMachine(**kwargs)
    sm.read_file(text)
    return sm


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, values):
        self.calls.append(list(values))


# ── Claims and rules ─────────────────────────────────────────────────────────

class TestClaims:
    def test_top_level_claims(self):
        sm = load(
            "+ condition a is true\n"
            '+ condition b is "true"\n'
            '+ condition b is "false"\n'
            '+ condition b is "neat"\n'
        )
        assert sm.is_true("condition a is true")
        assert sm.is_true('condition b is "true"')
        assert sm.is_true('condition b is "false"')
        assert sm.is_true('condition b is "neat"')
        assert not sm.is_true('condition b is "other"')

    def test_conditional_claim(self):
        sm = load(
            ":: condition a is true\n"
            "   + claim b is true\n"
            "+ condition a is true\n"
        )
        assert sm.is_true("condition a is true")
        assert sm.is_true("claim b is true")

    def test_conditional_claim_without_condition(self):
        sm = load(
            ":: condition a is true\n"
            "   + claim b is true\n"
        )
        assert not sm.is_true("claim b is true")

    def test_wildcards(self):
        sm = load(
            ":: cond a is (v)\n"
            " + claim b is (v)\n"
            '+ cond a is "testy"\n'
        )
        assert sm.is_true('cond a is "testy"')
        assert sm.is_true('claim b is "testy"')
        assert not sm.is_true('claim b is "other"')

    def test_multi_conditional(self):
        sm = load(
            ":: condition a is (value)\n"
            "   :: condition b is (other value)\n"
            "       + claim c is (value) and (other value)\n"
            '+ condition a is "testy"\n'
            '+ condition b is "zesty"\n'
        )
        assert sm.is_true('claim c is "testy" and "zesty"')
        assert not sm.is_true('claim c is "super" and "duper"')

    def test_mismatched_arg_count(self):
        sm = load(
            ":: condition a is (value)\n"
            "       + claim c is true\n"
            '+ condition a is "testy"\n'
        )
        assert not sm.is_true('condition a is "besty"')
        assert sm.is_true('condition a is "testy"')
        assert sm.is_true("claim c is true")

    def test_extraction(self):
        sm = load(
            ":: condition a is (value) and (other value)\n"
            "   + claim b is (value)\n"
            "   + claim c is (other value)\n"
            '+ condition a is "testy" and "zesty"\n'
        )
        assert sm.is_true('claim b is "testy"')
        assert sm.is_true('claim c is "zesty"')
        assert not sm.is_true('condition a is "super" and "duper"')
        assert not sm.is_true('claim b is "zesty"')
        assert not sm.is_true('claim c is "testy"')

    def test_unsatisfied_variables_give_no_results(self):
        sm = load(
            ":: condition a is (value)\n"
            "   :: condition z is (never)\n"
            "       + claim d is (never)\n"
            '+ condition a is "testy"\n'
        )
        assert not sm.is_true("claim d is (anything)")
        assert list(sm.solutions("claim d is (anything)")) == []

    def test_claims_after_load_feed_rules(self):
        sm = load(":: cond a is (v)\n + claim b is (v)\n")
        assert not sm.is_true('claim b is "late"')
        sm.claim('cond a is "late"')
        assert sm.is_true('claim b is "late"')

    def test_claim_accepts_binding(self):
        sm = StateMachine()
        sm.claim(get_binding('thing is "x"'))
        assert sm.is_true('thing is "x"')


class TestSalting:
    def test_same_variable_name_in_two_rules(self):
        sm = load(
            ":: left is (v)\n"
            "   + both is (v)\n"
            ":: right is (v)\n"
            "   + both is (v)\n"
            '+ left is "l"\n'
            '+ right is "r"\n'
        )
        assert sorted(v for (v,) in sm.solutions("both is (x)")) == ["l", "r"]

    def test_query_variable_named_like_rule_variable(self):
        sm = load(
            ":: cond a is (v)\n"
            " + claim b is (v)\n"
            '+ cond a is "testy"\n'
        )
        assert sm.get_values("claim b is (v)") == ["testy"]

    def test_rule_joined_with_itself(self):
        sm = load(
            ":: (p) is a person\n"
            " + (p) is known\n"
            ":: (a) is known\n"
            " :: (b) is known\n"
            "  + (a) has met (b)\n"
            '+ "ada" is a person\n'
            '+ "bob" is a person\n'
        )
        assert sorted(sm.solutions("(x) has met (y)")) == [
            ["ada", "ada"], ["ada", "bob"], ["bob", "ada"], ["bob", "bob"],
        ]

    def test_two_conditions_on_one_derived_relation(self):
        sm = load(
            ":: a is (x)\n"
            " + b is (x)\n"
            ":: b is (x)\n"
            " :: b is (y)\n"
            "  + pair (x) (y)\n"
            '+ a is "1"\n'
            '+ a is "2"\n'
        )
        assert sm.is_true('pair "1" "2"')
        assert sm.is_true('pair "2" "1"')
        assert not sm.is_true('pair "1" "3"')


class TestValues:
    def test_get_values(self):
        sm = load(
            ":: condition a is (value) and (other value)\n"
            "   + claim c is (other value)\n"
            '+ condition a is "testy" and "zesty"\n'
        )
        assert sm.get_values("claim c is (what)") == ["zesty"]
        assert sm.get_values('condition a is "testy" and (x)') == ["testy", "zesty"]

    def test_get_values_none_when_false(self):
        sm = load('+ cond a is "x"\n')
        assert sm.get_values('cond a is "y"') is None

    def test_solutions_enumerate_everything(self):
        sm = load('+ is a "goblin"\n+ is a "troll"\n')
        assert list(sm.solutions("is a (monster)")) == [["goblin"], ["troll"]]

    def test_unbound_positions_are_none(self):
        sm = load(":: a\n + b is (free)\n+ a\n")
        assert sm.get_values("b is (x)") == [None]


class TestUnknownKeys:
    def test_is_true_on_unknown_key_raises(self):
        sm = StateMachine()
        with pytest.raises(UnknownBindingError):
            sm.is_true("never declared")

    def test_get_values_on_unknown_key_raises(self):
        with pytest.raises(UnknownBindingError):
            StateMachine().get_values("never (declared)")

    def test_unknown_action_raises(self):
        with pytest.raises(UnknownBindingError):
            StateMachine().perform_action("Nothing")

    def test_unknown_binding_is_key_error(self):
        with pytest.raises(KeyError):
            StateMachine().is_true("never declared")

    def test_claim_declares_by_default(self):
        sm = StateMachine()
        sm.claim('brand new is "x"')
        assert sm.is_true('brand new is "x"')

    def test_strict_claim_refuses_undeclared(self):
        sm = load(":: cond a is (v)\n + claim b is (v)\n", strict=True)
        with pytest.raises(UnknownBindingError):
            sm.claim('brand new is "x"')
        sm.claim('cond a is "ok"')
        assert sm.is_true('claim b is "ok"')

    def test_strict_payload_claims_use_declared_relations(self):
        text = ":: (person) is friendly\n * Greet\n  + (person) was greeted\n+ \"ada\" is friendly\n"
        sm = load(text, strict=True)
        assert sm.perform_action("Greet")
        assert sm.is_true('"ada" was greeted')

        sm = load(text, strict=True)
        del sm.relations["%s was greeted"]
        with pytest.raises(UnknownBindingError):
            sm.perform_action("Greet")
        assert "%s was greeted" not in sm.relations


class TestRecursion:
    def test_direct_recursion_rejected(self):
        with pytest.raises(InvalidRelation):
            load(":: a is (x)\n + a is (x)\n")

    def test_indirect_recursion_rejected(self):
        sm = StateMachine()
        sm.read_file(":: a is (x)\n + b is (x)\n")
        with pytest.raises(InvalidRelation):
            sm.read_file(":: b is (x)\n + a is (x)\n")
        assert sm.relations["a is %s"].rules == []


# ── Exclusions ───────────────────────────────────────────────────────────────

EXCLUSION_FILE = """
    :: condition a is (something)
        ? claim (something) is (unbound)
    + condition a is "mojo"
"""


class TestExclusions:
    def test_latest_claim_wins(self):
        sm = load(EXCLUSION_FILE)
        sm.claim('claim "mojo" is "good"')
        sm.claim('claim "mojo" is "great"')
        assert sm.is_true('claim "mojo" is "great"')
        assert not sm.is_true('claim "mojo" is "good"')
        assert list(sm.solutions('claim "mojo" is (anything)')) == [["mojo", "great"]]

    def test_unconditioned_groups_untouched(self):
        sm = load(EXCLUSION_FILE)
        sm.claim('claim "mojo" is "great"')
        sm.claim('claim "mojo" is "good"')
        sm.claim('claim "chimpy" is "wonderful"')
        sm.claim('claim "chimpy" is "exquisite"')
        assert sm.is_true('claim "mojo" is "good"')
        assert not sm.is_true('claim "mojo" is "great"')
        assert sm.is_true('claim "chimpy" is "wonderful"')
        assert sm.is_true('claim "chimpy" is "exquisite"')

    def test_ambiguous_exclusions(self):
        sm = load("""
            :: condition a is (something)
                ? claim (something) is (unbound)
            :: condition b is (something else)
                ? claim (something) is (something else)
            + condition a is "mojo"
        """)
        assert len(sm.exclusions["claim %s is %s"]) == 2
        sm.claim('claim "mojo" is "great"')
        sm.claim('claim "mojo" is "good"')
        assert sm.is_true('claim "mojo" is "good"')
        assert not sm.is_true('claim "mojo" is "great"')

    def test_bound_vars(self):
        sm = load(EXCLUSION_FILE)
        (exclusion,) = sm.exclusions["claim %s is %s"]
        assert exclusion.bound_vars == (True, False)

    def test_repeated_claim_keeps_one_copy(self):
        sm = load(EXCLUSION_FILE)
        sm.claim('claim "mojo" is "good"')
        sm.claim('claim "mojo" is "good"')
        assert len(sm.relations["claim %s is %s"].facts) == 1

    def test_retractions_recorded(self):
        sm = load(EXCLUSION_FILE)
        sm.claim('claim "mojo" is "good"')
        sm.claim('claim "mojo" is "great"')
        retracts = [h for h in sm.history if h["event"] == "retract"]
        assert retracts == [{"event": "retract", "key": "claim %s is %s",
                             "values": ["mojo", "good"]}]


# ── Actions ──────────────────────────────────────────────────────────────────

class TestActions:
    def test_callback_receives_resolved_values(self):
        sm = load(
            ":: cond a is (x)\n"
            " * Action\n"
            '  > cb: (x) "static"\n'
            '+ cond a is "testy"\n'
        )
        cb = Recorder()
        sm.add_callback("cb", cb)
        assert sm.perform_action("Action")
        assert cb.calls == [["testy", "static"]]

    def test_only_first_satisfying_rule_fires(self):
        sm = load(
            ":: cond a is (x)\n"
            " * Action\n"
            "  > cb: (x)\n"
            '+ cond a is "one"\n'
            '+ cond a is "two"\n'
        )
        cb = Recorder()
        sm.add_callback("cb", cb)
        sm.perform_action("Action")
        assert cb.calls == [["one"]]

    def test_no_rule_holds(self):
        sm = load(":: cond a is (x)\n * Action\n  > cb: (x)\n")
        cb = Recorder()
        sm.add_callback("cb", cb)
        assert sm.perform_action("Action") is False
        assert cb.calls == []

    def test_action_arguments(self):
        sm = load(
            ":: (person) is in the room\n"
            " * Wave at (person)\n"
            '  > say: "waves at" (person)\n'
            '+ "bob" is in the room\n'
        )
        say = Recorder()
        sm.add_callback("say", say)
        assert sm.perform_action('Wave at "bob"')
        assert not sm.perform_action('Wave at "cy"')
        assert say.calls == [["waves at", "bob"]]

    def test_payload_claims(self):
        sm = load(
            ":: (person) is friendly\n"
            " * Greet\n"
            "  + (person) was greeted\n"
            '+ "ada" is friendly\n'
        )
        assert sm.perform_action("Greet")
        assert sm.is_true('"ada" was greeted')

    def test_payload_lines_are_not_rules(self):
        sm = load(
            ":: (person) is friendly\n"
            " * Greet\n"
            "  + (person) was greeted\n"
            '+ "ada" is friendly\n'
        )
        assert sm.relations["%s was greeted"].rules == []
        assert sm.relations["%s was greeted"].facts == []

    def test_payload_runs_nested_action(self):
        sm = load(
            ":: (person) is friendly\n"
            " * Greet\n"
            "  * Wave at (person)\n"
            ":: (person) is in the room\n"
            " * Wave at (person)\n"
            '  > say: "waves at" (person)\n'
            '+ "ada" is friendly\n'
            '+ "ada" is in the room\n'
        )
        say = Recorder()
        sm.add_callback("say", say)
        sm.perform_action("Greet")
        assert say.calls == [["waves at", "ada"]]

    def test_self_invoking_action_raises(self):
        sm = load("* Loop\n  * Loop\n")
        with pytest.raises(RecursiveActionError) as excinfo:
            sm.perform_action("Loop")
        assert excinfo.value.chain == ("Loop", "Loop")

    def test_mutually_invoking_actions_raise(self):
        sm = load(
            "* Ping\n"
            "  * Pong\n"
            "* Pong\n"
            "  * Ping\n"
            "* Solo\n"
            '  > say: "hi"\n'
        )
        with pytest.raises(RecursiveActionError) as excinfo:
            sm.perform_action("Ping")
        assert excinfo.value.chain == ("Ping", "Pong", "Ping")
        say = Recorder()
        sm.add_callback("say", say)
        assert sm.perform_action("Solo")
        assert say.calls == [["hi"]]

    def test_action_may_run_twice_in_sequence(self):
        sm = load(
            ":: (person) is friendly\n"
            " * Greet\n"
            '  > say: "hello" (person)\n'
            "* Twice\n"
            "  * Greet\n"
            "  * Greet\n"
            '+ "ada" is friendly\n'
        )
        say = Recorder()
        sm.add_callback("say", say)
        assert sm.perform_action("Twice")
        assert say.calls == [["hello", "ada"], ["hello", "ada"]]

    def test_unregistered_callback_raises(self):
        sm = load(":: cond a is (x)\n * Action\n  > missing: (x)\n+ cond a is \"x\"\n")
        with pytest.raises(UnknownCallbackError):
            sm.perform_action("Action")

    def test_callback_names(self):
        sm = load(
            ":: cond a is (x)\n"
            " * One\n"
            "  > first: (x)\n"
            " * Two\n"
            "  > second: (x)\n"
            "  // not a callback\n"
        )
        assert sm.callback_names() == {"first", "second"}

    def test_history_records_dispatch(self):
        sm = load(":: cond a is (x)\n * Action\n  > cb: (x)\n+ cond a is \"x\"\n")
        sm.add_callback("cb", Recorder())
        sm.perform_action("Action")
        assert sm.history[-1]["event"] == "action"
        assert sm.history[-1]["key"] == "Action"


class TestVerbose:
    def test_quiet_by_default(self, capsys):
        load(EXCLUSION_FILE)
        assert capsys.readouterr().out == ""

    def test_verbose_prints_claims(self, capsys):
        load(EXCLUSION_FILE, verbose=True)
        out = capsys.readouterr().out
        assert "[exclusion]" in out
        assert "[claim]" in out
