"""
Exception types.

Unification failure is never an exception: goals simply produce no
results. These are for the cases where the caller did something wrong --
a recursive rule, a key nobody declared, a line the parser can't read.
"""


class SyllogismError(Exception):
    """Base class for every error raised by this package."""


class InvalidRelation(SyllogismError, ValueError):
    """A rule would make a relation depend on itself."""

    def __init__(self, message, cycle=()):
        super().__init__(message)
        self.cycle = tuple(cycle)


class ArityError(InvalidRelation):
    """A fact or rule has a different number of arguments than its relation."""


class UnknownBindingError(SyllogismError, KeyError):
    """Query or action against a binding key that was never declared."""

    def __str__(self):
        return str(self.args[0]) if self.args else ""


class UnknownCallbackError(SyllogismError, KeyError):
    """An action payload names a callback that was never registered."""

    def __str__(self):
        return str(self.args[0]) if self.args else ""


class ParseError(SyllogismError, ValueError):
    """Text that doesn't match the line or token grammar."""


class RecursiveActionError(SyllogismError):
    """An action's payload invoked that action again before it finished."""

    def __init__(self, message, chain=()):
        super().__init__(message)
        self.chain = tuple(chain)
