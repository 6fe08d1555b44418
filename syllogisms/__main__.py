"""
CLI entry point. Run as: python -m syllogisms FILE  or  python -m syllogisms --sample <name>
"""

import argparse
import sys

from .errors import SyllogismError, UnknownBindingError
from .language.state_machine import StateMachine
from .samples import SAMPLES
from .visualization import print_state, print_history, export_dot


def make_echo_callback(name):
    def echo(values):
        shown = ", ".join("?" if v is None else repr(v) for v in values)
        print(f"  > {name}({shown})")
    return echo


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run a syllogisms rule file")
    parser.add_argument("file", nargs="?", default=None, help="Rule file to load")
    parser.add_argument("--sample", choices=list(SAMPLES.keys()), default=None,
                        help="Run a built-in sample instead of a file")
    parser.add_argument("--claim",  action="append", default=[], help="Claim after loading (repeatable)")
    parser.add_argument("--action", action="append", default=[], help="Perform an action (repeatable)")
    parser.add_argument("--query",  action="append", default=[], help="Ask whether something holds (repeatable)")
    parser.add_argument("--dot",    type=str, default=None, help="Export the rule graph to a DOT file")
    parser.add_argument("--strict", action="store_true",    help="Refuse claims on undeclared relations")
    parser.add_argument("--quiet",  action="store_true",    help="Less output")
    args = parser.parse_args(argv)

    if args.file is None and args.sample is None:
        parser.error("give a rule file or --sample")

    machine = StateMachine(verbose=not args.quiet, strict=args.strict)

    # --- Load ---
    claims, actions, queries = [], [], []
    try:
        if args.sample:
            sample = SAMPLES[args.sample]
            print(f"Sample: {args.sample} -- {sample['description']}")
            machine.read_file(sample["text"])
            claims = list(sample.get("claims", []))
            actions = list(sample.get("actions", []))
            queries = list(sample.get("queries", []))
        else:
            machine.load_path(args.file)
            print(f"Loaded {args.file}")
    except SyllogismError as e:
        print(f"Error loading rules: {e}", file=sys.stderr)
        return 1

    for name in machine.callback_names():
        if name not in machine.callbacks:
            machine.add_callback(name, make_echo_callback(name))

    claims += args.claim
    actions += args.action
    queries += args.query

    # --- Run ---
    try:
        for text in claims:
            machine.claim(text)

        for text in actions:
            print(f"\n* {text}")
            if not machine.perform_action(text):
                print("  (no rule holds)")
    except SyllogismError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        print_state(machine)
        print_history(machine)

    if queries:
        print(f"\n{'='*60}")
        print("Queries:")
        for text in queries:
            try:
                answer = machine.is_true(text)
            except UnknownBindingError as e:
                print(f"  {text}: {e}")
                continue
            print(f"  {text}: {'yes' if answer else 'no'}")
        print(f"{'='*60}")

    if args.dot:
        export_dot(machine, args.dot)
    return 0


if __name__ == "__main__":
    sys.exit(main())
