"""
Visualization and reporting utilities.
"""

from .language.state_machine import StateMachine


def _fact_text(fact) -> str:
    return " ".join(str(t) for t in fact)


def print_state(machine: StateMachine):
    """Print every relation with its facts, then actions and exclusions."""
    print(f"\n{'='*60}")
    print(f"Relations ({len(machine.relations)}):")
    for key, relation in sorted(machine.relations.items()):
        print(f"  {key}  [{len(relation.facts)} facts, {len(relation.rules)} rules]")
        for fact in relation.facts:
            print(f"      {_fact_text(fact)}")
    print(f"Actions ({len(machine.actions)}):")
    for key, action in sorted(machine.actions.items()):
        print(f"  {key}  [{len(action.rules)} payloads]")
    exclusions = [e for group in machine.exclusions.values() for e in group]
    print(f"Exclusions ({len(exclusions)}):")
    for exclusion in exclusions:
        flags = "".join("b" if bound else "_" for bound in exclusion.bound_vars)
        print(f"  {exclusion.relation_key}  [{flags}]")
    print(f"{'='*60}")


def print_history(machine: StateMachine):
    """Print the claims, retractions and action dispatches in order."""
    print(f"\n{'='*60}")
    print("History:")
    print(f"{'='*60}")
    for i, entry in enumerate(machine.history, 1):
        if entry["event"] == "action":
            print(f"  {i}. action  {entry['key']} -> {entry['payload']}")
        else:
            values = ", ".join(repr(v) for v in entry["values"])
            print(f"  {i}. {entry['event']:<7} {entry['key']} ({values})")


def export_dot(machine: StateMachine, path="syllogisms_graph.dot"):
    """
    Export the rule graph as a DOT file for Graphviz visualization.

    An edge A -> B means some rule of B (or some action B) conditions on A.
    This is the graph the recursive-rule check walks.
    """
    def quote(text):
        return text.replace('"', '\\"')

    with open(path, "w") as f:
        f.write("digraph syllogisms {\n")
        f.write("  rankdir=LR;\n")
        f.write("  node [shape=box, style=rounded];\n")

        for key, relation in machine.relations.items():
            color = "lightblue" if relation.facts else "lightgray"
            f.write(f'  "{quote(key)}" [fillcolor={color}, style=filled];\n')
            edges = {dep.name for rule in relation.rules for dep in rule.relations}
            for dep in sorted(edges):
                f.write(f'  "{quote(dep)}" -> "{quote(key)}";\n')

        for key, action in machine.actions.items():
            f.write(f'  "{quote(key)}" [shape=ellipse, fillcolor=khaki, style=filled];\n')
            edges = {dep.name for rule in action.rules for dep in rule.relations}
            for dep in sorted(edges):
                f.write(f'  "{quote(dep)}" -> "{quote(key)}" [style=dashed];\n')
        f.write("}\n")
    print(f"Graph exported to {path}")
